"""Pydantic schemas for messages and results flowing through the critique loop."""

import base64
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    """Author of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


class TextPart(BaseModel):
    """A block of text inside a message."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


class ImagePart(BaseModel):
    """Raw image bytes with their MIME type."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    mime_type: str = Field(default="image/png", description="MIME type, e.g. image/png")
    data: bytes = Field(..., repr=False)

    @property
    def is_empty(self) -> bool:
        return len(self.data) == 0

    def to_data_url(self) -> str:
        """Encode the image as a ``data:<mime>;base64,...`` URL."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


Part = Annotated[Union[TextPart, ImagePart], Field(discriminator="kind")]


class Message(BaseModel):
    """One turn of a conversation. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    role: Role
    parts: list[Part] = Field(default_factory=list)

    @field_validator("parts")
    @classmethod
    def _drop_empty_parts(cls, parts: list) -> list:
        return [part for part in parts if not part.is_empty]

    @property
    def is_empty(self) -> bool:
        return not self.parts

    @property
    def text(self) -> str:
        """All text parts joined with blank lines."""
        return "\n\n".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def images(self) -> list[ImagePart]:
        return [p for p in self.parts if isinstance(p, ImagePart)]


class GenerationResult(BaseModel):
    """Parsed outcome of a single provider call."""

    image: Optional[bytes] = Field(default=None, repr=False)
    text: str = ""

    @property
    def has_image(self) -> bool:
        return bool(self.image)

    @property
    def is_empty(self) -> bool:
        return not self.has_image and not self.text.strip()


class LoopIteration(BaseModel):
    """Result of one critique-improve round."""

    index: int = Field(..., ge=1, description="One-based loop number")
    critique: str = Field(..., description="Critique text that drove this round")
    image_path: Path = Field(..., description="Main output file, overwritten every round")
    snapshot_path: Path = Field(..., description="Numbered copy kept in the outputs directory")


class PipelineResult(BaseModel):
    """Final result of a complete generate-and-critique run."""

    output_path: Path = Field(..., description="Path of the final image")
    iterations: list[LoopIteration] = Field(default_factory=list)
    total_loops: int = Field(..., ge=0, description="Number of critique loops requested")
