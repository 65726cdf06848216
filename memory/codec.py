"""
Message Codec
Converts LangChain messages to and from the JSON payload stored per turn.
"""
import json

from langchain_core.messages import BaseMessage, message_to_dict, messages_from_dict


class SerializationError(ValueError):
    """A stored payload could not be decoded back into a message."""


def message_to_json(message: BaseMessage) -> str:
    """Serialize a single message (role + content) to JSON."""
    return json.dumps(message_to_dict(message), ensure_ascii=False)


def message_from_json(payload: str) -> BaseMessage:
    """
    Deserialize a payload produced by message_to_json.

    Raises:
        SerializationError: if the payload is not a valid serialized message
    """
    try:
        data = json.loads(payload)
        return messages_from_dict([data])[0]
    except (ValueError, KeyError, TypeError) as e:
        raise SerializationError(f"Cannot decode stored message: {e}") from e
