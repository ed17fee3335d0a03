from fastapi import Request, Depends
from ragchat.core.container import ServiceContainer, get_container
from ragchat.core.interfaces import IKnowledgeService
from ragchat.services.chat_pipeline import ChatPipeline
from ragchat.services.unified_cache import ChatCacheService

def get_service_container(request: Request) -> ServiceContainer:
    """Get the service container."""
    # Try getting from app state first (lifespan managed)
    if hasattr(request.app.state, "container"):
        return request.app.state.container
    # Fallback to global (e.g. if testing without full app)
    return get_container()

def get_data_layer(
    container: ServiceContainer = Depends(get_service_container)
) -> ChatCacheService:
    return container.data_layer

def get_chat_pipeline(
    container: ServiceContainer = Depends(get_service_container)
) -> ChatPipeline:
    return container.chat_pipeline

def get_knowledge_service(
    container: ServiceContainer = Depends(get_service_container)
) -> IKnowledgeService:
    return container.knowledge_service
