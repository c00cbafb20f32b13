from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class ChunkParseError(ValueError):
    pass


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Local identity only; never part of the wire payload.
    id: int = Field(exclude=True)
    role: Role
    content: str


class ChatRequest(BaseModel):
    message: str
    history: list[Message] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json()


class TextChunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    content: str


class ToolStartChunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["tool_start"] = "tool_start"
    name: str


class ToolEndChunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["tool_end"] = "tool_end"
    name: str


class DoneChunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["done"] = "done"


class ErrorChunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["error"] = "error"
    message: str


StreamChunk = Annotated[
    Union[TextChunk, ToolStartChunk, ToolEndChunk, DoneChunk, ErrorChunk],
    Field(discriminator="type"),
]

_CHUNK_ADAPTER: TypeAdapter = TypeAdapter(StreamChunk)


def parse_chunk(payload: str) -> StreamChunk:
    """Parse one frame payload such as ``{"type":"text","content":"hi"}``.

    Raises ``ChunkParseError`` for invalid JSON, an unknown ``type`` or a
    missing field.
    """
    try:
        return _CHUNK_ADAPTER.validate_json(payload)
    except ValidationError as e:
        raise ChunkParseError(str(e)) from e
