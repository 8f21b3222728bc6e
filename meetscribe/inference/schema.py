"""Pydantic models for the chat-completions streaming wire format."""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict


class ChunkDelta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: Optional[str] = None
    content: Optional[str] = None


class ChunkChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int = 0
    delta: ChunkDelta = ChunkDelta()
    finish_reason: Optional[str] = None


class ChatCompletionChunk(BaseModel):
    """One ``data:`` event of a streamed chat completion."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    model: Optional[str] = None
    choices: List[ChunkChoice] = []

    def delta_text(self) -> str:
        """Text carried by the first choice, or an empty string."""
        if not self.choices:
            return ""
        return self.choices[0].delta.content or ""


class ErrorDetail(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: str = ""
    type: Optional[str] = None
    code: Optional[Union[str, int]] = None


class ErrorResponse(BaseModel):
    """Error body returned with a non-200 status."""
    model_config = ConfigDict(extra="ignore")

    error: ErrorDetail = ErrorDetail()
