"""Pydantic models for generation requests, retrieved context, and plans."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GenerationFormat(str, Enum):
    VIDEO = "video"
    PODCAST = "podcast"
    SLIDES = "slides"


class TonePreset(str, Enum):
    PROFESSIONAL = "professional"
    CASUAL = "casual"
    INSPIRING = "inspiring"
    TECHNICAL = "technical"
    EXECUTIVE = "executive"


class LengthPreset(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class RequesterProfile(BaseModel):
    """Who the takeaway is for. Owned by the user-management system."""

    model_config = ConfigDict(frozen=True)

    role: Optional[str] = Field(None, max_length=100)
    segment: Optional[str] = Field(None, max_length=100)
    geo: Optional[str] = Field(None, max_length=100, description="Geography / region")
    function: Optional[str] = Field(None, max_length=100)


class Customization(BaseModel):
    model_config = ConfigDict(frozen=True)

    language: str = Field(default="en", min_length=2, max_length=10)
    tone: TonePreset = TonePreset.PROFESSIONAL
    length: LengthPreset = LengthPreset.MEDIUM
    extra_instruction: Optional[str] = Field(
        None, max_length=200, description="Free-text steering from the requester"
    )


class ContextChunk(BaseModel):
    """A transcript segment returned by the similarity search."""

    id: str
    topic: str
    content: str
    token_count: int = Field(default=0, ge=0)
    similarity: float = Field(ge=0.0, le=1.0)


class RetrievedContext(BaseModel):
    chunks: List[ContextChunk] = Field(default_factory=list)
    query: str
    total_tokens: int = 0

    @property
    def chunk_ids(self) -> list[str]:
        return [c.id for c in self.chunks]

    @property
    def topics(self) -> list[str]:
        """Distinct topics in selection order."""
        return list(dict.fromkeys(c.topic for c in self.chunks))


class TakeawayPlan(BaseModel):
    """Structured plan produced by the first LLM stage.

    Unknown keys are rejected so that any drift in the model's JSON shape
    surfaces as a generation failure instead of being silently dropped.
    """

    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1, max_length=60)
    hook: str = Field(min_length=1)
    key_points: List[str] = Field(min_length=3, max_length=5)
    framing: str = Field(min_length=1)
    cta: str = Field(min_length=1, description="Internal-facing call to action")

    @field_validator("title", "hook", "framing", "cta")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("key_points")
    @classmethod
    def _key_points_not_blank(cls, value: list[str]) -> list[str]:
        for point in value:
            if not point.strip():
                raise ValueError("key points must not be blank")
        return value


class SlideOutline(BaseModel):
    title: str
    bullets: List[str] = Field(default_factory=list)
