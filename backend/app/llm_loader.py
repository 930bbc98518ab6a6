"""LLM provider loader.

Centralises construction of chat models so we can swap providers via env vars.
Groq is the default; NVIDIA, OpenAI and Google Gemini are used when their
LangChain integration package is installed.
"""

from __future__ import annotations

from langchain_core.language_models.chat_models import BaseChatModel

from core.settings import _env

DEFAULT_NVIDIA_BASE = "https://integrate.api.nvidia.com/v1"

_GROQ = {"groq"}
_NVIDIA = {"nvidia", "nv", "nvcf"}
_OPENAI = {"openai", "oa"}
_GOOGLE = {"google", "gemini"}


class LLMConfigError(RuntimeError):
    """Raised when the requested LLM provider cannot be initialised."""


def get_provider_name() -> str:
    return (_env("LLM_PROVIDER", "groq") or "groq").lower()


def _resolve_model(default: str) -> str:
    return _env("LLM_MODEL", default) or default


def _require_key(provider: str, *names: str) -> str:
    api_key = _env("LLM_API_KEY")
    for name in names:
        api_key = api_key or _env(name)
    if not api_key:
        raise LLMConfigError(
            f"{provider} provider selected but no API key found. "
            f"Set LLM_API_KEY or {' / '.join(names)}."
        )
    return api_key


def supports_native_structured_output() -> bool:
    """Providers whose tool calling handles Pydantic schemas reliably."""
    return get_provider_name() in _GROQ | _OPENAI | _GOOGLE


def create_chat_model(temperature: float = 0.1) -> BaseChatModel:
    """Return a LangChain chat model for the configured provider."""

    provider = get_provider_name()

    if provider in _GROQ:
        try:
            from langchain_groq import ChatGroq  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise LLMConfigError(
                "Groq provider selected but langchain-groq is not installed. "
                "Run `pip install langchain-groq` or switch LLM_PROVIDER."
            ) from exc

        api_key = _require_key("Groq", "GROQ_API_KEY")
        return ChatGroq(
            model=_resolve_model("llama-3.1-8b-instant"),
            temperature=temperature,
            groq_api_key=api_key,
        )

    if provider in _NVIDIA:
        try:
            from langchain_nvidia_ai_endpoints import ChatNVIDIA  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise LLMConfigError(
                "NVIDIA provider selected but langchain-nvidia-ai-endpoints is not installed."
            ) from exc

        api_key = _require_key("NVIDIA", "NVIDIA_API_KEY", "NVCF_API_KEY")
        base_url = _env("LLM_BASE_URL", DEFAULT_NVIDIA_BASE)
        return ChatNVIDIA(
            model=_resolve_model("meta/llama-3.1-8b-instruct"),
            temperature=temperature,
            base_url=base_url.rstrip("/"),
            api_key=api_key,
        )

    if provider in _OPENAI:
        try:
            from langchain_openai import ChatOpenAI  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise LLMConfigError(
                "OpenAI provider selected but langchain-openai is not installed. "
                "Run `pip install langchain-openai` or switch LLM_PROVIDER."
            ) from exc

        api_key = _require_key("OpenAI", "OPENAI_API_KEY")
        base_url = _env("LLM_BASE_URL") or _env("OPENAI_BASE_URL")

        kwargs = {
            "model": _resolve_model("gpt-4o-mini"),
            "temperature": temperature,
            "api_key": api_key,
        }
        if base_url:
            kwargs["base_url"] = base_url.rstrip("/")

        return ChatOpenAI(**kwargs)

    if provider in _GOOGLE:
        try:
            from langchain_google_genai import ChatGoogleGenerativeAI  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise LLMConfigError(
                "Google provider selected but langchain-google-genai is not installed. "
                "Run `pip install langchain-google-genai` or switch LLM_PROVIDER."
            ) from exc

        api_key = _require_key("Google", "GOOGLE_API_KEY", "API_KEY")
        return ChatGoogleGenerativeAI(
            model=_resolve_model("gemini-2.5-flash"),
            temperature=temperature,
            google_api_key=api_key,
        )

    raise LLMConfigError(
        f"Unsupported LLM_PROVIDER '{provider}'. "
        "Expected 'groq', 'nvidia', 'openai' or 'google'."
    )


def get_chat_model(temperature: float = 0.1) -> BaseChatModel:
    """Public entry point used by the rest of the app."""

    return create_chat_model(temperature=temperature)
