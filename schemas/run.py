"""Pydantic model for the persisted generation run record."""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from schemas.generation import (
    Customization,
    GenerationFormat,
    RequesterProfile,
    SlideOutline,
    TakeawayPlan,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GenerationStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    RENDERING = "rendering"
    COMPLETED = "completed"
    FAILED = "failed"


class GenerationRun(BaseModel):
    """One end-to-end generation request and its state-machine position.

    ``profile`` is a snapshot taken when the request is accepted so a retried
    run can be processed from the stored record alone.
    """

    id: str
    user_id: str
    format: GenerationFormat
    profile: RequesterProfile = Field(default_factory=RequesterProfile)
    presenter_name: Optional[str] = None
    customization: Customization = Field(default_factory=Customization)

    rag_query: Optional[str] = None
    rag_chunks_used: List[str] = Field(default_factory=list)
    takeaway_plan: Optional[TakeawayPlan] = None
    script: Optional[str] = None

    status: GenerationStatus = GenerationStatus.QUEUED
    status_message: Optional[str] = None
    retry_count: int = Field(default=0, ge=0)
    error_message: Optional[str] = None

    output_urls: Dict[str, str] = Field(default_factory=dict)
    thumbnail_url: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None


class RenderJob(BaseModel):
    """What a rendering back end needs once a run reaches ``rendering``."""

    generation_id: str
    format: GenerationFormat
    script: str
    language: str
    presenter_name: Optional[str] = None
    slides: List[SlideOutline] = Field(default_factory=list)
