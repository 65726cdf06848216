"""
Assistant Service
Chat with per-conversation memory: window the history, invoke the model,
append the exchange.
"""
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from config.settings import settings
from memory import (
    ConversationId,
    ConversationTurn,
    MemoryProvider,
    memory_store,
    message_from_json,
    message_to_json,
)

logger = logging.getLogger(__name__)

# invoke(context, new_message) -> assistant reply
ModelInvoker = Callable[[Sequence[ConversationTurn], str], Awaitable[str]]


def _response_text(response: Any) -> str:
    """Extract plain text from a chat model response."""
    content = getattr(response, "content", response)
    if isinstance(content, list):
        # Some providers return content blocks instead of a string
        return "".join(
            part if isinstance(part, str) else part.get("text", "")
            for part in content
        )
    return str(content)


def langchain_invoker(llm, system_prompt: Optional[str] = None) -> ModelInvoker:
    """
    Adapt a LangChain chat model to the ModelInvoker contract.

    Stored turns are decoded back into messages, so a corrupt payload
    raises SerializationError before the model is called.
    """
    async def invoke(context: Sequence[ConversationTurn], new_message: str) -> str:
        messages = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        messages.extend(message_from_json(turn.content) for turn in context)
        messages.append(HumanMessage(content=new_message))

        response = await llm.ainvoke(messages)
        return _response_text(response)

    return invoke


class AssistantWithMemory:
    """An assistant that remembers each conversation by its memory id."""

    def __init__(self, invoke: ModelInvoker, provider: MemoryProvider):
        self.invoke = invoke
        self.provider = provider

    async def chat(self, memory_id: ConversationId, user_message: str) -> str:
        """
        Send a user message within a memory-scoped conversation.

        The exchange is only persisted once the model has answered; a failed
        model call leaves the conversation unchanged.
        """
        async with self.provider.lock(memory_id):
            window = await self.provider.get_window(memory_id)
            logger.debug(f"Conversation {memory_id}: invoking model with {len(window)} turns")

            reply = await self.invoke(window, user_message)

            await self.provider.record_turns(
                memory_id,
                [
                    message_to_json(HumanMessage(content=user_message)),
                    message_to_json(AIMessage(content=reply)),
                ],
            )

        logger.info(f"Conversation {memory_id}: recorded exchange ({len(reply)} chars reply)")
        return reply


def create_assistant(llm=None, provider: Optional[MemoryProvider] = None) -> AssistantWithMemory:
    """Wire the configured chat model to the configured memory store."""
    if llm is None:
        from assistant.llm import create_llm
        llm = create_llm()
    provider = provider or MemoryProvider(memory_store)
    return AssistantWithMemory(langchain_invoker(llm, settings.system_prompt), provider)
