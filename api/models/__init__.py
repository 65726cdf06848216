"""API Models."""
from .requests import MemoryRequest
from .responses import (
    ConversationListResponse,
    ErrorResponse,
    HealthResponse,
    MemoryDeleteResponse,
    MemoryHistoryResponse,
    MemoryMessage,
)

__all__ = [
    "ConversationListResponse",
    "ErrorResponse",
    "HealthResponse",
    "MemoryDeleteResponse",
    "MemoryHistoryResponse",
    "MemoryMessage",
    "MemoryRequest",
]
