"""Dependency injection container for service management.

This module provides a centralized container for the process-wide services:
the cache backend, the session store, the knowledge service, the cache-aside
data layer built on them, and the response pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

from ragchat.core.dependencies import create_chat_model, create_embeddings
from ragchat.core.errors import ConfigurationError
from ragchat.core.logging import get_logger
from ragchat.services.chat_pipeline import ChatPipeline
from ragchat.services.guards import InputGuard
from ragchat.services.knowledge import KnowledgeService
from ragchat.services.llm import ReplyGenerator
from ragchat.services.session_store import SessionStore
from ragchat.services.unified_cache import ChatCacheService
from ragchat.services.unified_cache.backends import RedisBackend

if TYPE_CHECKING:
    from ragchat.core.config import Settings
    from ragchat.core.interfaces import IKnowledgeService, IReplyGenerator, ISessionStore

logger = get_logger(__name__)


class ServiceNotInitializedError(Exception):
    """Raised when accessing a service that hasn't been initialized."""

    def __init__(self, service_name: str):
        super().__init__(f"Service '{service_name}' has not been initialized. "
                         f"Call container.initialize() first.")
        self.service_name = service_name


@dataclass
class ServiceContainer:
    """Centralized container for dependency injection.

    Usage:
        container = ServiceContainer()
        await container.initialize(settings)

        data_layer = container.data_layer
        pipeline = container.chat_pipeline

        await container.shutdown()
    """

    _session_store: Optional[ISessionStore] = field(default=None, repr=False)
    _knowledge_service: Optional[IKnowledgeService] = field(default=None, repr=False)
    _data_layer: Optional[ChatCacheService] = field(default=None, repr=False)
    _guard: Optional[InputGuard] = field(default=None, repr=False)
    _reply_generator: Optional[IReplyGenerator] = field(default=None, repr=False)
    _chat_pipeline: Optional[ChatPipeline] = field(default=None, repr=False)
    _initialized: bool = field(default=False, repr=True)
    _settings: Optional[Settings] = field(default=None, repr=False)

    async def initialize(self, settings: Settings) -> None:
        """Initialize all services.

        Args:
            settings: Application settings.

        Raises:
            ConfigurationError: If the Redis URL or a provider key is missing.
            StorageError: If a database cannot be initialized.
        """
        if self._initialized:
            logger.warning("Container already initialized, skipping")
            return

        if not settings.redis_url:
            raise ConfigurationError("Redis URL is not configured", setting="redis_url")

        self._settings = settings
        logger.info("Initializing service container...")

        try:
            # Session store is the source of truth
            self._session_store = SessionStore(settings.resolved_session_db_path)
            await self._session_store.initialize()
            logger.info("Session store initialized")

            self._knowledge_service = KnowledgeService(
                create_embeddings(settings),
                settings.resolved_knowledge_db_path,
                top_k=settings.knowledge_top_k,
                chunk_size=settings.knowledge_chunk_size,
                separator=settings.knowledge_separator,
            )
            await self._knowledge_service.initialize()
            logger.info("Knowledge service initialized")

            # Data layer owns the cache backend; connection failure is not fatal
            backend = RedisBackend(
                settings.redis_url,
                socket_timeout=settings.redis_socket_timeout,
                reconnect_interval=settings.redis_reconnect_interval,
            )
            self._data_layer = ChatCacheService(
                backend,
                self._session_store,
                self._knowledge_service,
                settings.build_cache_config(),
            )
            await self._data_layer.connect()
            logger.info("Chat data layer initialized (cache enabled: %s)", self._data_layer.enabled)

            self._guard = InputGuard(
                max_message_length=settings.guard_max_message_length,
                max_messages_per_session=settings.guard_max_messages_per_session,
                enable_injection_check=settings.guard_enable_injection_check,
            )

            self._reply_generator = ReplyGenerator(
                create_chat_model(settings),
                company_name=settings.company_name,
            )
            logger.info("Reply generator initialized")

            self._chat_pipeline = ChatPipeline(self._data_layer, self._guard, self._reply_generator)

            self._initialized = True
            logger.info("Service container initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize service container: {e}")
            await self.shutdown()
            raise

    async def shutdown(self) -> None:
        """Shutdown all services and cleanup resources."""
        logger.info("Shutting down service container...")

        if self._data_layer:
            try:
                await self._data_layer.disconnect()
                logger.info("Cache disconnected")
            except Exception as e:
                logger.error(f"Error disconnecting cache: {e}")

        self._initialized = False
        logger.info("Service container shut down")

    @property
    def is_initialized(self) -> bool:
        """Check if the container is initialized."""
        return self._initialized

    @property
    def settings(self) -> Settings:
        """Get application settings."""
        if self._settings is None:
            raise ServiceNotInitializedError("settings")
        return self._settings

    @property
    def session_store(self) -> ISessionStore:
        if self._session_store is None:
            raise ServiceNotInitializedError("session_store")
        return self._session_store

    @property
    def knowledge_service(self) -> IKnowledgeService:
        if self._knowledge_service is None:
            raise ServiceNotInitializedError("knowledge_service")
        return self._knowledge_service

    @property
    def data_layer(self) -> ChatCacheService:
        """Get the cache-aside data layer."""
        if self._data_layer is None:
            raise ServiceNotInitializedError("data_layer")
        return self._data_layer

    @property
    def guard(self) -> InputGuard:
        if self._guard is None:
            raise ServiceNotInitializedError("guard")
        return self._guard

    @property
    def reply_generator(self) -> IReplyGenerator:
        if self._reply_generator is None:
            raise ServiceNotInitializedError("reply_generator")
        return self._reply_generator

    @property
    def chat_pipeline(self) -> ChatPipeline:
        """Get the response pipeline."""
        if self._chat_pipeline is None:
            raise ServiceNotInitializedError("chat_pipeline")
        return self._chat_pipeline

    def set_session_store(self, store: ISessionStore) -> None:
        """Set the session store (for testing)."""
        self._session_store = store

    def set_knowledge_service(self, service: IKnowledgeService) -> None:
        """Set the knowledge service (for testing)."""
        self._knowledge_service = service

    def set_data_layer(self, data_layer: ChatCacheService) -> None:
        """Set the data layer (for testing)."""
        self._data_layer = data_layer

    def set_guard(self, guard: InputGuard) -> None:
        """Set the input guard (for testing)."""
        self._guard = guard

    def set_reply_generator(self, generator: IReplyGenerator) -> None:
        """Set the reply generator (for testing)."""
        self._reply_generator = generator

    def set_chat_pipeline(self, pipeline: ChatPipeline) -> None:
        """Set the response pipeline (for testing)."""
        self._chat_pipeline = pipeline


# Module-level container instance
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Get the global service container instance.

    Raises:
        RuntimeError: If the container hasn't been created yet.
    """
    global _container
    if _container is None:
        raise RuntimeError(
            "Service container not created. Call set_container() first "
            "or use the FastAPI app.state.container."
        )
    return _container


def set_container(container: Optional[ServiceContainer]) -> None:
    """Set the global service container instance."""
    global _container
    _container = container


def create_container() -> ServiceContainer:
    """Create a new, isolated service container (useful in tests)."""
    return ServiceContainer()
