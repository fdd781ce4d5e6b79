"""
Shared test fixtures for the generation pipeline.

Provides: scripted LLM / embedder / similarity-search fakes, a temporary
SQLite run store, and an orchestrator wired from real components around them.
"""

import json
import uuid

import pytest

from generators.plan_generator import PlanGenerator
from generators.prompts import PLANNER_SYSTEM, PODCAST_SYSTEM, SLIDES_SYSTEM, VIDEO_SYSTEM
from generators.script_generator import ScriptGenerator
from guardrails.policy import (
    INSTRUCTION_CLASSIFIER_SYSTEM,
    PLAN_VALIDATOR_SYSTEM,
    SCRIPT_VALIDATOR_SYSTEM,
    PolicyGuardrail,
)
from orchestration.orchestrator import Orchestrator
from rag.retriever import ContextRetriever
from schemas.generation import (
    ContextChunk,
    Customization,
    GenerationFormat,
    RequesterProfile,
)
from schemas.run import GenerationRun
from storage.run_store import RunStore

SAMPLE_PLAN = {
    "title": "Three Keynote Moves for Enterprise Product Teams",
    "hook": "Enterprise customers told us what slows them down, and the keynote answered.",
    "key_points": [
        "A unified workspace cuts context switching for product teams",
        "Admin controls now scale to thousands of seats",
        "Customer stories show faster onboarding across regions",
    ],
    "framing": "Position the keynote as practical help for enterprise product managers.",
    "cta": "Share these takeaways with your account team this week.",
}

# 6 words x 50 = 300 words, the medium video target.
VIDEO_SCRIPT = " ".join(["Enterprise teams gain clarity from the keynote."] * 50)

SLIDES_SCRIPT = json.dumps([
    {"title": "Why it matters", "bullets": ["Less context switching", "Faster onboarding"]},
    {"title": "What to share", "bullets": ["Admin controls at scale"]},
])


class FakeLLM:
    """Completion service that answers by system prompt.

    A reply may be a string, an exception instance (raised), or a callable
    taking the user prompt.
    """

    def __init__(
        self,
        plan=None,
        script: str = VIDEO_SCRIPT,
        instruction_reply="ALLOWED",
        plan_reply="APPROVED",
        script_reply="APPROVED",
    ):
        plan_text = json.dumps(SAMPLE_PLAN if plan is None else plan)
        self.replies = {
            INSTRUCTION_CLASSIFIER_SYSTEM: instruction_reply,
            PLAN_VALIDATOR_SYSTEM: plan_reply,
            SCRIPT_VALIDATOR_SYSTEM: script_reply,
            PLANNER_SYSTEM: plan_text,
            VIDEO_SYSTEM: script,
            PODCAST_SYSTEM: script,
            SLIDES_SYSTEM: script,
        }
        self.calls = []

    def complete(self, system, user, temperature=0.7, max_tokens=1024, json_mode=False):
        self.calls.append({"system": system, "user": user, "json_mode": json_mode})
        reply = self.replies[system]
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(user)
        return reply

    def systems_called(self) -> list[str]:
        return [c["system"] for c in self.calls]


class FakeEmbedder:
    def __init__(self, vector=None, error=None):
        self.vector = vector or [0.1, 0.2, 0.3]
        self.error = error
        self.queries = []

    def embed(self, text):
        self.queries.append(text)
        if self.error is not None:
            raise self.error
        return list(self.vector)


class FakeSearch:
    def __init__(self, chunks=None, error=None):
        self.chunks = chunks if chunks is not None else []
        self.error = error
        self.calls = []

    def search(self, vector, threshold, limit):
        self.calls.append({"vector": vector, "threshold": threshold, "limit": limit})
        if self.error is not None:
            raise self.error
        return list(self.chunks)[:limit]


def make_chunk(chunk_id: str, topic: str, similarity: float, content: str = None) -> ContextChunk:
    return ContextChunk(
        id=chunk_id,
        topic=topic,
        content=content or f"Keynote excerpt {chunk_id} about {topic}.",
        token_count=12,
        similarity=similarity,
    )


def sample_chunks() -> list[ContextChunk]:
    return [
        make_chunk("c1", "product", 0.95),
        make_chunk("c2", "product", 0.93),
        make_chunk("c3", "product", 0.91),
        make_chunk("c4", "customers", 0.88),
        make_chunk("c5", "security", 0.84),
        make_chunk("c6", "customers", 0.80),
    ]


def make_run(
    fmt: GenerationFormat = GenerationFormat.VIDEO,
    customization: Customization = None,
    **kwargs,
) -> GenerationRun:
    return GenerationRun(
        id=str(uuid.uuid4()),
        user_id="user-1",
        format=fmt,
        profile=kwargs.pop(
            "profile", RequesterProfile(role="Product Manager", segment="Enterprise")
        ),
        customization=customization or Customization(),
        **kwargs,
    )


def build_orchestrator(store, llm, embedder=None, search=None, max_retries=3) -> Orchestrator:
    retriever = ContextRetriever(
        embedder or FakeEmbedder(),
        search if search is not None else FakeSearch(sample_chunks()),
        top_k=5,
        similarity_threshold=0.7,
    )
    return Orchestrator(
        store=store,
        retriever=retriever,
        guardrail=PolicyGuardrail(llm),
        planner=PlanGenerator(llm),
        script_generator=ScriptGenerator(llm),
        max_retries=max_retries,
    )


@pytest.fixture
def run_store(tmp_path):
    """RunStore backed by a throwaway SQLite file."""
    return RunStore(str(tmp_path / "generations.db"))


@pytest.fixture
def fake_llm():
    return FakeLLM()
