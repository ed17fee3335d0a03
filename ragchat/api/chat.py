"""Chat session and message endpoints."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ragchat.api.deps import get_chat_pipeline, get_data_layer, get_knowledge_service
from ragchat.core.interfaces import IKnowledgeService
from ragchat.core.logging import get_logger
from ragchat.models.chat import (
    ChatRequest,
    ChatResponse,
    CreateSessionResponse,
    IngestRequest,
    MessagesRequest,
    MessagesResponse,
)
from ragchat.services.chat_pipeline import ChatPipeline
from ragchat.services.unified_cache import ChatCacheService

logger = get_logger(__name__)
router = APIRouter()

GUARD_REJECTION_MESSAGE = (
    "Guard failed, contains malicious text or reached a limit. Can't reply to the message."
)


@router.get("/createsession", response_model=CreateSessionResponse, response_model_by_alias=True)
async def create_session(
    data_layer: ChatCacheService = Depends(get_data_layer),
) -> CreateSessionResponse:
    """Create a chat session."""
    session_id = await data_layer.create_session()
    return CreateSessionResponse(message="Created a session for the chat", session_id=session_id)


@router.post("/chat/message")
async def post_message(
    chat_request: ChatRequest,
    pipeline: ChatPipeline = Depends(get_chat_pipeline),
) -> Dict[str, Any]:
    """Answer a user message within a session.

    A guard rejection is a normal 200 answer carrying a message instead of a
    reply; store, knowledge and generation failures surface as 503 through
    the application's error handlers.
    """
    result = await pipeline.handle_message(chat_request.session_id, chat_request.message)

    if result.rejected:
        logger.warning(
            "Guard rejected message: %s (%s)",
            result.rejection.error,
            result.rejection.reason,
        )
        return {
            "status": True,
            "message": GUARD_REJECTION_MESSAGE,
            "error_code": result.rejection.error_code,
        }

    return ChatResponse(response=result.reply).model_dump()


@router.post("/messages", response_model=MessagesResponse)
async def get_messages(
    messages_request: MessagesRequest,
    data_layer: ChatCacheService = Depends(get_data_layer),
) -> MessagesResponse:
    """Return a session's history, oldest first."""
    history = await data_layer.get_chat_history(messages_request.session_id)
    return MessagesResponse(messages=history)


@router.post("/customhydrate")
async def custom_hydrate(
    ingest_request: IngestRequest,
    knowledge: IKnowledgeService = Depends(get_knowledge_service),
) -> Dict[str, Any]:
    """Add raw text to the knowledge base."""
    chunks = await knowledge.ingest_document(ingest_request.insert_string)
    logger.info("Hydrated knowledge base with %d chunks", chunks)
    return {"status": True, "chunks": chunks}
