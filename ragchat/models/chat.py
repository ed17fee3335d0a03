"""Chat session, message and cache models."""

from datetime import datetime, timezone
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Message author."""
    USER = "USER"
    BOT = "BOT"


class Provenance(str, Enum):
    """Which tier served a read."""
    CACHE = "cache"
    DATABASE = "database"


class NewMessage(BaseModel):
    """A message submitted for persistence (no id or timestamp yet)."""
    role: Role = Field(..., description="Message author")
    content: str = Field(..., description="Message text")


class ChatMessage(BaseModel):
    """A stored message with store-assigned id and timestamp."""
    id: int = Field(..., description="Store-assigned identifier, monotonic per session")
    role: Role = Field(..., description="Message author")
    content: str = Field(..., description="Message text")
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionSnapshot(BaseModel):
    """Cached copy of a session's ordered history."""
    session_id: str = Field(..., description="Session identifier")
    messages: List[ChatMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class KnowledgeContext(BaseModel):
    """Knowledge context blob and the tier that produced it."""
    context: str = Field(..., description="Joined knowledge chunks, empty when nothing matched")
    source: Provenance = Field(..., description="cache or database")


class CacheStatsSnapshot(BaseModel):
    """Cache availability and size."""
    available: bool = Field(..., description="Whether the cache is connected")
    approximate_entry_count: int = Field(0, description="Approximate number of cached keys")


# ---------------------------------------------------------------------------
# HTTP payloads
# ---------------------------------------------------------------------------

class CreateSessionResponse(BaseModel):
    message: str
    session_id: str = Field(..., alias="sessionId")

    model_config = ConfigDict(populate_by_name=True)


class ChatRequest(BaseModel):
    """Chat request model."""
    session_id: str = Field(..., alias="sessionId", min_length=1)
    message: str = Field(..., min_length=1, description="User message")

    model_config = ConfigDict(populate_by_name=True)


class ChatResponse(BaseModel):
    status: bool = True
    response: str = Field(..., description="Generated reply")


class MessagesRequest(BaseModel):
    session_id: str = Field(..., alias="sessionId", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class MessagesResponse(BaseModel):
    status: bool = True
    messages: List[ChatMessage] = Field(default_factory=list)


class IngestRequest(BaseModel):
    """Raw text to add to the knowledge base."""
    insert_string: str = Field(..., alias="insertString", min_length=1)

    model_config = ConfigDict(populate_by_name=True)
