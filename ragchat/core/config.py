"""Configuration settings for the chat service."""

from typing import Optional, List
import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from ragchat.services.unified_cache.chat_cache import CacheConfig


class Settings(BaseSettings):
    """Application settings."""

    # API Configuration
    app_name: str = "RAG Chat Service"
    app_version: str = "1.0.0"
    api_prefix: str = "/api/v1"
    debug: bool = False

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 3000
    workers: int = 1

    # CORS
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Redis Configuration
    redis_url: Optional[str] = None
    redis_socket_timeout: float = 5.0
    redis_reconnect_interval: float = 5.0  # seconds between PINGs while disconnected

    # Cache policy
    chat_history_ttl: int = 3600  # 1 hour
    knowledge_ttl: int = 86400  # 24 hours
    max_cache_key_length: int = 512

    # Persistence
    data_directory: str = "./data"
    session_db_path: Optional[str] = None
    knowledge_db_path: Optional[str] = None

    # Embeddings
    embedding_provider: str = "google"  # google or openai
    google_api_key: Optional[str] = None
    google_embedding_model: str = "models/text-embedding-004"
    openai_api_key: Optional[str] = None
    openai_embedding_model: str = "text-embedding-3-small"

    # Knowledge retrieval
    knowledge_top_k: int = 3
    knowledge_chunk_size: int = 300
    knowledge_separator: str = "\n---\n"

    # Generation
    chat_provider: str = "google"  # google or openai
    google_chat_model: str = "gemini-2.5-flash"
    openai_chat_model: str = "gpt-4o-mini"
    chat_temperature: float = 0.7
    chat_max_output_tokens: int = 8192
    company_name: str = "our company"

    # Guards
    guard_max_message_length: int = 2000
    guard_max_messages_per_session: int = 100
    guard_enable_injection_check: bool = True

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="RAG_",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def resolved_session_db_path(self) -> str:
        return self.session_db_path or os.path.join(self.data_directory, "sessions.db")

    @property
    def resolved_knowledge_db_path(self) -> str:
        return self.knowledge_db_path or os.path.join(self.data_directory, "knowledge.db")

    def build_cache_config(self) -> CacheConfig:
        """Build the immutable cache configuration used by the data layer."""
        return CacheConfig(
            chat_history_ttl=self.chat_history_ttl,
            knowledge_ttl=self.knowledge_ttl,
            max_key_length=self.max_cache_key_length,
            redis_url=self.redis_url,
        )


# Create settings instance
settings = Settings()

# Override with plain environment variables used by existing deployments
if os.getenv("REDIS_URL"):
    settings.redis_url = os.getenv("REDIS_URL")

if os.getenv("OPENAI_API_KEY"):
    settings.openai_api_key = os.getenv("OPENAI_API_KEY").strip()

if os.getenv("GEMINI_API_KEY"):
    settings.google_api_key = os.getenv("GEMINI_API_KEY").strip()
