"""Factories for the langchain embedding and chat model clients."""

from langchain_core.embeddings import Embeddings
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI, GoogleGenerativeAIEmbeddings
from langchain_openai import ChatOpenAI, OpenAIEmbeddings

from ragchat.core.config import Settings
from ragchat.core.errors import ConfigurationError
from ragchat.core.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_PROVIDERS = ("google", "openai")


def _check_provider(provider: str, setting: str) -> str:
    provider = (provider or "").strip().lower()
    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigurationError(f"Unsupported provider: {provider!r}", setting=setting)
    return provider


def create_embeddings(settings: Settings) -> Embeddings:
    """Create the embeddings client for the configured provider.

    Raises:
        ConfigurationError: If the provider is unknown or its API key is missing.
    """
    provider = _check_provider(settings.embedding_provider, "embedding_provider")

    if provider == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError("OpenAI API key not configured", setting="openai_api_key")
        logger.info(f"Creating OpenAI embeddings: {settings.openai_embedding_model}")
        return OpenAIEmbeddings(
            api_key=settings.openai_api_key,
            model=settings.openai_embedding_model,
        )

    if not settings.google_api_key:
        raise ConfigurationError("Google API key not configured", setting="google_api_key")
    logger.info(f"Creating Google embeddings: {settings.google_embedding_model}")
    return GoogleGenerativeAIEmbeddings(
        google_api_key=settings.google_api_key,
        model=settings.google_embedding_model,
    )


def create_chat_model(settings: Settings) -> BaseChatModel:
    """Create the chat model used for reply generation.

    Raises:
        ConfigurationError: If the provider is unknown or its API key is missing.
    """
    provider = _check_provider(settings.chat_provider, "chat_provider")

    if provider == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError("OpenAI API key not configured", setting="openai_api_key")
        logger.info("Creating OpenAI LLM for model: %s", settings.openai_chat_model)
        return ChatOpenAI(
            api_key=settings.openai_api_key,
            model=settings.openai_chat_model,
            temperature=settings.chat_temperature,
            max_tokens=settings.chat_max_output_tokens,
        )

    if not settings.google_api_key:
        raise ConfigurationError("Google API key not configured", setting="google_api_key")
    logger.info("Creating Google LLM for model: %s", settings.google_chat_model)
    return ChatGoogleGenerativeAI(
        google_api_key=settings.google_api_key,
        model=settings.google_chat_model,
        temperature=settings.chat_temperature,
        max_output_tokens=settings.chat_max_output_tokens,
    )
