"""LLM client utilities for LangChain integration."""

from langchain_openai import ChatOpenAI

from support_assistant.core.config import Settings, get_settings


def get_llm(
    model: str | None = None,
    temperature: float | None = None,
    settings: Settings | None = None,
) -> ChatOpenAI:
    """
    Get configured chat model for the assistant.

    The instance is handed to the engine at construction time; nothing
    here caches it process-wide.

    Args:
        model: Model name override (defaults to CHAT_MODEL)
        temperature: Temperature override (defaults to CHAT_TEMPERATURE)
        settings: Settings override (defaults to get_settings())

    Returns:
        ChatOpenAI instance configured with API key, model and timeout
    """
    settings = settings or get_settings()

    return ChatOpenAI(
        api_key=settings.OPENAI_API_KEY,
        model=model or settings.CHAT_MODEL,
        temperature=settings.CHAT_TEMPERATURE if temperature is None else temperature,
        timeout=settings.LLM_TIMEOUT_SECONDS,
    )
