"""Retrieval-side adapters: query embeddings and transcript chunk search.

Indexing the transcript is handled by the ingestion job, not here.
"""
