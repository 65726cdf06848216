"""
LLM Factory
Builds the LangChain chat model selected in settings.
"""
import logging

from config.settings import settings

logger = logging.getLogger(__name__)


def create_llm():
    """Create LLM based on settings."""
    logger.info(f"Creating {settings.llm_provider} chat model")
    if settings.llm_provider == "openai":
        from langchain_openai import ChatOpenAI
        return ChatOpenAI(
            model=settings.openai_model,
            api_key=settings.openai_api_key,
            temperature=settings.llm_temperature,
        )
    elif settings.llm_provider == "ollama":
        from langchain_ollama import ChatOllama
        return ChatOllama(
            model=settings.ollama_model,
            base_url=settings.ollama_base_url,
            temperature=settings.llm_temperature,
        )
    elif settings.llm_provider == "gemini":
        from langchain_google_genai import ChatGoogleGenerativeAI
        return ChatGoogleGenerativeAI(
            model=settings.gemini_model,
            google_api_key=settings.google_api_key,
            temperature=settings.llm_temperature,
        )
    else:
        raise ValueError(f"Unknown LLM provider: {settings.llm_provider}")
