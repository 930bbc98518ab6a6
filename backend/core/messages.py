"""Localized user-facing strings."""

from __future__ import annotations

from typing import Dict, Optional

from core.settings import get_locale

MESSAGES: Dict[str, Dict[str, str]] = {
    "zh": {
        "unsupported_format": "请上传有效的 Excel 文件 (.xlsx 或 .xls)",
        "empty_sheet": "工作表为空",
        "corrupt_file": "解析文件失败",
        "chat_empty_reply": "抱歉，我无法回答这个问题。",
        "chat_error": "发生错误，请稍后再试。",
        "chat_unavailable": "数据助手当前不可用，请检查服务配置。",
        "answer_language": "请始终用中文回答。",
    },
    "en": {
        "unsupported_format": "Please upload a valid Excel file (.xlsx or .xls)",
        "empty_sheet": "The sheet is empty",
        "corrupt_file": "Failed to parse the file",
        "chat_empty_reply": "Sorry, I can't answer that question.",
        "chat_error": "Something went wrong, please try again later.",
        "chat_unavailable": "The data assistant is unavailable. Check the service configuration.",
        "answer_language": "Always answer in English.",
    },
}


def message(key: str, locale: Optional[str] = None) -> str:
    table = MESSAGES.get(locale or get_locale(), MESSAGES["zh"])
    return table[key]
