"""Context retrieval for takeaway generation.

Builds a semantic query from the requester's profile and customization,
embeds it, pulls twice the needed candidates from the similarity search, and
diversifies them across transcript topics so a single dominant theme cannot
crowd out the rest of the keynote.
"""

import logging
from typing import Optional, Protocol

from schemas.errors import RetrievalError
from schemas.generation import (
    ContextChunk,
    Customization,
    GenerationFormat,
    RequesterProfile,
    RetrievedContext,
)

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 10
DEFAULT_SIMILARITY_THRESHOLD = 0.7

FORMAT_HINTS = {
    GenerationFormat.VIDEO: "focusing on visual storytelling and key messages",
    GenerationFormat.PODCAST: "emphasizing conversational insights and context",
    GenerationFormat.SLIDES: "highlighting strategic takeaways and actionable insights",
}


class EmbeddingService(Protocol):
    def embed(self, text: str) -> list[float]: ...


class SimilaritySearch(Protocol):
    def search(self, vector: list[float], threshold: float, limit: int) -> list[ContextChunk]: ...


def build_semantic_query(
    profile: RequesterProfile,
    fmt: GenerationFormat,
    customization: Customization,
) -> str:
    """Compose the natural-language retrieval query."""
    segments = [f"Create a {customization.tone.value} {fmt.value} takeaway"]

    if profile.role:
        segments.append(f"for {profile.role}")
    if profile.segment:
        segments.append(f"in {profile.segment} segment")
    if profile.function:
        segments.append(f"from {profile.function} perspective")
    if profile.geo:
        segments.append(f"in {profile.geo} region")

    if customization.extra_instruction and customization.extra_instruction.strip():
        segments.append(customization.extra_instruction.strip())

    segments.append(FORMAT_HINTS[fmt])
    return " ".join(segments)


def diversify_by_topic(chunks: list[ContextChunk], limit: int) -> list[ContextChunk]:
    """Round-robin chunks across topics, best-first within each topic.

    Topics are visited in the order they first appear in ``chunks``; exhausted
    topics drop out of the rotation. Duplicate ids keep their first
    occurrence. Output is fully determined by the input order and scores.
    """
    groups: dict[str, list[ContextChunk]] = {}
    seen_ids: set[str] = set()
    for chunk in chunks:
        if chunk.id in seen_ids:
            continue
        seen_ids.add(chunk.id)
        groups.setdefault(chunk.topic, []).append(chunk)

    for topic in groups:
        # sorted() is stable, so equal scores keep their input order
        groups[topic] = sorted(groups[topic], key=lambda c: c.similarity, reverse=True)

    result: list[ContextChunk] = []
    topics = list(groups)
    index = 0

    while len(result) < limit and topics:
        topic = topics[index]
        queue = groups[topic]
        result.append(queue.pop(0))

        if not queue:
            topics.pop(index)
            if index >= len(topics):
                index = 0
        else:
            index = (index + 1) % len(topics)

    return result


def format_context_for_prompt(context: RetrievedContext) -> str:
    """Render retrieved chunks as a prompt block grouped by topic label."""
    return "\n---\n\n".join(
        f"[TOPIC: {chunk.topic}]\n{chunk.content}\n" for chunk in context.chunks
    )


class ContextRetriever:
    """Retrieves diversified transcript context for one generation request."""

    def __init__(
        self,
        embedder: EmbeddingService,
        search: SimilaritySearch,
        top_k: int = DEFAULT_TOP_K,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    ):
        self.embedder = embedder
        self.search = search
        self.top_k = top_k
        self.similarity_threshold = similarity_threshold

    def retrieve(
        self,
        profile: RequesterProfile,
        fmt: GenerationFormat,
        customization: Customization,
        top_k: Optional[int] = None,
    ) -> RetrievedContext:
        """Retrieve and diversify context for a requester.

        Args:
            profile: Requester attributes used to personalize the query.
            fmt: Target output format.
            customization: Tone, length, language and free-text instruction.
            top_k: Number of chunks to return (defaults to the configured value).

        Returns:
            RetrievedContext with at most ``top_k`` chunks.

        Raises:
            RetrievalError: If the search fails (transient) or finds nothing
                above the similarity threshold (not transient).
        """
        if top_k is None:
            top_k = self.top_k
        if top_k < 1:
            raise ValueError(f"top_k must be at least 1, got {top_k}")
        query = build_semantic_query(profile, fmt, customization)
        logger.info("Starting retrieval (format=%s, top_k=%d)", fmt.value, top_k)
        logger.debug("Semantic query: %s", query)

        vector = self.embedder.embed(query)

        try:
            candidates = self.search.search(
                vector, threshold=self.similarity_threshold, limit=top_k * 2
            )
        except Exception as e:
            logger.error("Similarity search failed: %s", e)
            raise RetrievalError(
                "Content search is temporarily unavailable",
                transient=True,
                details={"cause": repr(e)},
            ) from e

        if not candidates:
            logger.warning("No relevant chunks found for query: %s", query)
            raise RetrievalError(
                "No relevant content found for this request",
                transient=False,
                details={"query": query},
            )

        chunks = diversify_by_topic(candidates, top_k)
        context = RetrievedContext(
            chunks=chunks,
            query=query,
            total_tokens=sum(c.token_count for c in chunks),
        )

        logger.info(
            "Retrieved %d chunks (%d candidates) across topics: %s",
            len(chunks), len(candidates), ", ".join(context.topics),
        )
        return context
