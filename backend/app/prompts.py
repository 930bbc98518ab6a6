import json
from typing import Any, Dict, List, Sequence

from core.messages import message
from core.settings import SUGGESTION_COUNT

ANALYSIS_SYSTEM_PROMPT = f"""You recommend chart configurations for a spreadsheet that a user just uploaded.

OUTPUT FORMAT (STRICT):
Return a SINGLE JSON object only. No prose, no code fences, no explanations.
Use valid JSON with double-quoted keys, no trailing commas.

REQUIRED FIELDS:
- summary: string (about 2 sentences describing what the dataset appears to represent)
- suggestions: array of exactly {SUGGESTION_COUNT} objects, most useful first, each with:
  * title: string (short, catchy chart title)
  * description: string (why this chart is useful)
  * chartType: "bar" | "line" | "area" | "pie" | "scatter"
  * xAxisKey: string (column for the X axis, category or time)
  * yAxisKey: string (column for the Y axis, metric or value)

CHART TYPE SELECTION GUIDE:
- Identify categorical columns (good X axis or labels) and numeric columns (good Y axis or values)
- pie: X axis must be categorical with few unique values
- line: prefer time series or ordered data on the X axis
- scatter: both axes numeric
- Suggestions must be different from each other and meaningful

COLUMN USAGE RULES:
- Use ONLY column names from the provided header list, exactly as written (case-sensitive)
- Never use placeholder values like <column> or <field>
"""

CHAT_INSTRUCTIONS = """You are a professional data analysis assistant.
The user uploaded a dataset named "{name}".

Header structure: {headers}

First {sample_size} rows of data:
{sample}

Answer the user's questions based on the data above.
If the user asks for specific statistics (sums, averages, ...), compute them on the sample
and state clearly that the result is based on sample rows only. If an exact figure over the
full dataset is needed, point the user to the chart or explain the limitation.

{language} Keep answers concise, professional and friendly.
"""


def _dumps(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, default=str)


def build_analysis_prompt(headers: Sequence[str], sample: List[Dict[str, Any]]) -> str:
    return f"""DATASET HEADERS:
{_dumps(list(headers))}

FIRST {len(sample)} ROWS:
{_dumps(sample)}

INSTRUCTIONS:
- Analyze this data structure
- Write summary, title and description in the user's language. {message("answer_language")}
- Return ONLY valid JSON matching the schema defined in the system prompt
"""


def build_chat_instructions(name: str, headers: Sequence[str], sample: List[Dict[str, Any]]) -> str:
    return CHAT_INSTRUCTIONS.format(
        name=name,
        headers=_dumps(list(headers)),
        sample_size=len(sample),
        sample=_dumps(sample),
        language=message("answer_language"),
    )
