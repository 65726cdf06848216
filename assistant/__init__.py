"""Assistant Module."""
from .service import AssistantWithMemory, ModelInvoker, create_assistant, langchain_invoker

__all__ = ["AssistantWithMemory", "ModelInvoker", "create_assistant", "langchain_invoker"]
