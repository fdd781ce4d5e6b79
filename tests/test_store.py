"""Tests for the ChromaDB transcript chunk search."""

import uuid

import chromadb
import pytest

from vectorstore.store import TranscriptChunkStore


@pytest.fixture
def chunk_store():
    # EphemeralClient instances share state in-process; isolate by collection name.
    return TranscriptChunkStore(
        client=chromadb.EphemeralClient(),
        collection_name=f"test_{uuid.uuid4().hex}",
    )


def _seed(store):
    store.collection.add(
        ids=["exact", "close", "orthogonal"],
        embeddings=[[1.0, 0.0, 0.0], [0.8, 0.6, 0.0], [0.0, 1.0, 0.0]],
        documents=["Exact match text.", "Close match text.", "Unrelated text."],
        metadatas=[
            {"topic": "product", "token_count": 4},
            {"topic": "customers", "token_count": 5},
            {"token_count": 3},
        ],
    )


class TestTranscriptChunkStore:
    def test_empty_collection_returns_nothing(self, chunk_store):
        assert chunk_store.search([1.0, 0.0, 0.0], threshold=0.0, limit=5) == []

    def test_filters_by_threshold_best_first(self, chunk_store):
        _seed(chunk_store)

        chunks = chunk_store.search([1.0, 0.0, 0.0], threshold=0.5, limit=10)

        assert [c.id for c in chunks] == ["exact", "close"]
        assert chunks[0].similarity == pytest.approx(1.0, abs=1e-4)
        assert chunks[1].similarity == pytest.approx(0.8, abs=1e-4)
        assert chunks[0].topic == "product"
        assert chunks[1].token_count == 5
        assert chunks[0].content == "Exact match text."

    def test_missing_topic_defaults_to_general(self, chunk_store):
        _seed(chunk_store)

        chunks = chunk_store.search([0.0, 1.0, 0.0], threshold=0.9, limit=1)

        assert [(c.id, c.topic) for c in chunks] == [("orthogonal", "general")]

    def test_limit_caps_results(self, chunk_store):
        _seed(chunk_store)

        chunks = chunk_store.search([1.0, 0.0, 0.0], threshold=0.0, limit=2)

        assert len(chunks) == 2
