from rag.retriever import (
    ContextRetriever,
    build_semantic_query,
    diversify_by_topic,
    format_context_for_prompt,
)
