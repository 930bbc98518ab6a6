import json
import re
from typing import Any, List, Type, TypeVar

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, ValidationError
import logging

logger = logging.getLogger("uvicorn.error")

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class LLMError(RuntimeError):
    pass


# ---------- response text extraction ----------


def _as_text_from_content(content: Any) -> str:
    """Normalize LC content (str | list[chunk] | dict | AIMessage)."""
    if content is None:
        return ""
    if isinstance(content, AIMessage):
        return _as_text_from_content(content.content)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: List[str] = []
        for p in content:
            if isinstance(p, str):
                parts.append(p)
            elif isinstance(p, dict):
                t = p.get("text")
                if isinstance(t, str):
                    parts.append(t)
            else:
                parts.append(str(p))
        return "".join(parts)
    if isinstance(content, dict):
        if isinstance(content.get("text"), str):
            return content["text"]
        if isinstance(content.get("content"), str):
            return content["content"]
        return str(content)
    return str(content)


def as_text(resp: Any) -> str:
    """
    Try the places providers may stash reply text:
      - resp.content (usual)
      - resp.additional_kwargs.reasoning_content (NVIDIA)
      - resp.additional_kwargs.content
    """
    text = _as_text_from_content(getattr(resp, "content", None))
    if text:
        return text

    extras = getattr(resp, "additional_kwargs", {}) or {}
    if isinstance(extras, dict):
        rc = extras.get("reasoning_content")
        if isinstance(rc, str) and rc.strip():
            return rc
        c2 = extras.get("content")
        if isinstance(c2, str) and c2.strip():
            return c2

    if isinstance(resp, str):
        return resp
    return ""


# ---------- JSON recovery ----------


def _strip_code_fences(text: str) -> str:
    return re.sub(
        r"^```(?:json)?\s*|\s*```$",
        "",
        text.strip(),
        flags=re.IGNORECASE | re.MULTILINE,
    )


def _first_balanced_json(text: str) -> str:
    start = None
    depth = 0
    for i, ch in enumerate(text):
        if ch in "{[":
            start = i
            depth = 1
            break
    if start is None:
        raise ValueError("no JSON start in response")
    for j in range(start + 1, len(text)):
        if text[j] in "{[":
            depth += 1
        elif text[j] in "}]":
            depth -= 1
            if depth == 0:
                return text[start : j + 1]
    teaser = text[start : start + 400].replace("\n", "\\n")
    raise ValueError(f"unterminated JSON (teaser): {teaser}")


_re_trailing_commas = re.compile(r",(\s*[}\]])")
_re_bare_literals = re.compile(r"\b(?:None|True|False)\b")


def _try_repair_json(s: str) -> Any:
    t = _re_trailing_commas.sub(r"\1", s)
    t = _re_bare_literals.sub(lambda m: {"None": "null", "True": "true", "False": "false"}[m.group(0)], t)
    return json.loads(t)


def load_json(text: str) -> Any:
    txt = _strip_code_fences(text or "")
    if not txt.strip():
        raise ValueError("empty LLM response text")
    try:
        return json.loads(txt)
    except ValueError:
        pass
    block = _first_balanced_json(txt)
    try:
        return json.loads(block)
    except ValueError:
        try:
            return _try_repair_json(block)
        except ValueError as e:
            teaser = block[:400].replace("\n", "\\n")
            raise ValueError(f"json_parse_failed after repair: {e}; teaser={teaser}")


def short_error(exc: Exception) -> str:
    msg = str(exc)
    if not msg:
        return exc.__class__.__name__
    return msg.replace("\n", " ").strip()[:200]


# ---------- calls ----------


def _messages(system_prompt: str, user_message: str) -> List[BaseMessage]:
    return [SystemMessage(system_prompt), HumanMessage(user_message)]


async def chat_structured(
    llm: BaseChatModel,
    schema: Type[SchemaT],
    system_prompt: str,
    user_message: str,
) -> SchemaT:
    """
    Request a structured object via the provider's tool calling.

    Raises:
        LLMError: If the call fails or the result does not match ``schema``
    """
    try:
        out = await llm.with_structured_output(schema).ainvoke(_messages(system_prompt, user_message))
    except Exception as e:
        raise LLMError(f"structured_output_failed: {short_error(e)}") from e

    if out is None:
        raise LLMError("structured_output_failed: empty result")
    if isinstance(out, schema):
        return out
    try:
        if isinstance(out, dict):
            return schema.model_validate(out)
        return schema.model_validate(load_json(as_text(out)))
    except (ValidationError, ValueError) as e:
        raise LLMError(f"structured_output_invalid: {short_error(e)}") from e


async def chat_json(
    llm: BaseChatModel,
    schema: Type[SchemaT],
    system_prompt: str,
    user_message: str,
) -> SchemaT:
    """Ask for one JSON object in plain text, then parse and validate it."""
    messages = _messages(
        system_prompt + "\nReturn ONE JSON object. No prose, no code fences.",
        user_message,
    )
    try:
        resp = await llm.ainvoke(messages)
    except Exception as e:
        raise LLMError(f"transport_failed: {short_error(e)}") from e

    text = as_text(resp)
    if not text.strip():
        raise LLMError(f"no_content: additional={getattr(resp, 'additional_kwargs', None)}")
    logger.debug("LLM raw text teaser: %r", text[:200])

    try:
        return schema.model_validate(load_json(text))
    except (ValidationError, ValueError) as e:
        raise LLMError(f"json_invalid: {short_error(e)}") from e
