"""
API Response Models
Pydantic models for API responses.
"""
from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime


# === Common ===

class HealthResponse(BaseModel):
    """Health check response."""
    status: Literal["healthy", "degraded", "unhealthy"]
    version: str
    services: dict[str, bool]  # service_name -> is_healthy


class ErrorResponse(BaseModel):
    """Error payload returned by the exception handlers."""
    error: str
    code: str
    details: Optional[dict] = None
    timestamp: datetime


# === Memory ===

class MemoryMessage(BaseModel):
    """A single remembered message."""
    id: str
    role: Literal["user", "assistant", "system", "tool"]
    content: str
    timestamp: datetime


class MemoryHistoryResponse(BaseModel):
    """Windowed history of one conversation."""
    memory_id: str
    messages: list[MemoryMessage]
    total_messages: int = Field(description="Turns stored for the conversation, before windowing")


class ConversationListResponse(BaseModel):
    """All conversations with stored turns."""
    memory_ids: list[str]
    total: int


class MemoryDeleteResponse(BaseModel):
    """Result of deleting a conversation."""
    memory_id: str
    deleted_messages: int
    message: str
