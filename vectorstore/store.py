"""ChromaDB-backed similarity search over transcript chunks.

The collection is populated by the transcript ingestion job; this module only
reads it. Each record carries ``topic`` and ``token_count`` metadata and the
collection uses cosine space, so ``similarity = 1 - distance``.
"""

import logging
from typing import Optional

import chromadb

from schemas.generation import ContextChunk

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "transcript_chunks"


class TranscriptChunkStore:
    """Read-only similarity search over the transcript chunk collection."""

    def __init__(
        self,
        path: Optional[str] = None,
        collection_name: str = DEFAULT_COLLECTION,
        client=None,
    ):
        if client is not None:
            self.client = client
        elif path:
            self.client = chromadb.PersistentClient(path=path)
        else:
            self.client = chromadb.EphemeralClient()
        self.collection = self.client.get_or_create_collection(
            collection_name, metadata={"hnsw:space": "cosine"}
        )

    def search(
        self,
        vector: list[float],
        threshold: float,
        limit: int,
    ) -> list[ContextChunk]:
        """Return up to ``limit`` chunks at or above ``threshold``, best first."""
        count = self.collection.count()
        if count == 0 or limit <= 0:
            return []

        results = self.collection.query(
            query_embeddings=[vector],
            n_results=min(limit, count),
            include=["documents", "metadatas", "distances"],
        )

        chunks = []
        if results and results.get("ids") and results["ids"][0]:
            for chunk_id, doc, meta, distance in zip(
                results["ids"][0],
                results["documents"][0],
                results["metadatas"][0],
                results["distances"][0],
            ):
                similarity = min(1.0, max(0.0, 1.0 - distance))
                if similarity < threshold:
                    continue
                meta = meta or {}
                chunks.append(
                    ContextChunk(
                        id=chunk_id,
                        topic=meta.get("topic") or "general",
                        content=doc or "",
                        token_count=int(meta.get("token_count", 0)),
                        similarity=similarity,
                    )
                )

        chunks.sort(key=lambda c: c.similarity, reverse=True)
        logger.debug(
            "Similarity search: %d/%d results above %.2f", len(chunks), min(limit, count), threshold
        )
        return chunks
