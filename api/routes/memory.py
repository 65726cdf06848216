"""
Memory Routes
Chat with per-conversation memory, plus history inspection and deletion.
"""
import logging

from fastapi import APIRouter, Query
from fastapi.responses import PlainTextResponse

from api.models import (
    ConversationListResponse,
    MemoryDeleteResponse,
    MemoryHistoryResponse,
    MemoryMessage,
    MemoryRequest,
)
from assistant import AssistantWithMemory, create_assistant
from config.settings import settings
from memory import MemoryProvider, SerializationError, memory_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/memory", tags=["Memory"])

# LangChain message type -> API role
ROLE_BY_TYPE = {
    "human": "user",
    "ai": "assistant",
    "system": "system",
    "tool": "tool",
    "function": "tool",
}

# Free-form ChatMessage roles that map onto API roles
CHAT_ROLES = {"user", "assistant", "system", "tool"}

# Lazy-initialized instances
_provider: MemoryProvider | None = None
_assistant: AssistantWithMemory | None = None


def _role_of(message) -> str:
    """API role of a stored message; unknown roles are a corrupt record."""
    if message.type in ROLE_BY_TYPE:
        return ROLE_BY_TYPE[message.type]
    role = getattr(message, "role", None)
    if message.type == "chat" and role in CHAT_ROLES:
        return role
    raise SerializationError(f"Stored message has no API role: type={message.type!r}, role={role!r}")


def get_provider() -> MemoryProvider:
    """Get or create the memory provider instance."""
    global _provider
    if _provider is None:
        _provider = MemoryProvider(memory_store)
    return _provider


def get_assistant() -> AssistantWithMemory:
    """Get or create the assistant instance."""
    global _assistant
    if _assistant is None:
        logger.info("Initializing assistant...")
        _assistant = create_assistant(provider=get_provider())
        logger.info("Assistant initialized")
    return _assistant


@router.post("/process", response_class=PlainTextResponse)
async def process_message(request: MemoryRequest):
    """
    Process a text message in the context of a memory identifier.
    Returns the assistant's reply as plain text.
    """
    logger.info(f"Processing message for memory {request.memory_id}")
    return await get_assistant().chat(str(request.memory_id), request.text_message)


@router.get("/", response_model=ConversationListResponse)
async def list_conversations():
    """
    List all conversations that have stored messages.
    """
    memory_ids = await get_provider().store.list_conversations()
    return ConversationListResponse(memory_ids=memory_ids, total=len(memory_ids))


@router.get("/{memory_id}/history", response_model=MemoryHistoryResponse)
async def get_history(
    memory_id: int,
    limit: int = Query(default=settings.memory_max_messages, ge=1, le=1000),
):
    """
    Get the most recent messages of a conversation, oldest first.
    """
    provider = get_provider()
    conversation_id = str(memory_id)

    messages = []
    for turn, message in await provider.messages(conversation_id, limit):
        messages.append(MemoryMessage(
            id=str(turn.id),
            role=_role_of(message),
            content=message.content if isinstance(message.content, str) else str(message.content),
            timestamp=turn.created_at,
        ))

    return MemoryHistoryResponse(
        memory_id=conversation_id,
        messages=messages,
        total_messages=await provider.store.count(conversation_id),
    )


@router.delete("/{memory_id}", response_model=MemoryDeleteResponse)
async def delete_memory(memory_id: int):
    """
    Delete every stored message of a conversation.
    Unknown identifiers are not an error.
    """
    provider = get_provider()
    conversation_id = str(memory_id)

    async with provider.lock(conversation_id):
        deleted = await provider.store.count(conversation_id)
        await provider.clear(conversation_id)

    return MemoryDeleteResponse(
        memory_id=conversation_id,
        deleted_messages=deleted,
        message=f"Memory cleared for {conversation_id}",
    )
