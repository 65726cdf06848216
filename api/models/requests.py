"""
API Request Models
Pydantic models for incoming API requests.
"""
from pydantic import BaseModel, Field


# === Memory ===

class MemoryRequest(BaseModel):
    """Request for the memory-scoped chat endpoint."""
    memory_id: int = Field(..., alias="memoryId", description="Conversation memory identifier")
    text_message: str = Field(..., alias="textMessage", min_length=1, max_length=10000)

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "memory_id": 42,
                "text_message": "Hi, my name is Ada. What can you do?"
            }
        }
