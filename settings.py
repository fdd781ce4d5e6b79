"""Environment-driven configuration.

Entry points call ``load_dotenv()`` before building ``Settings.from_env()``;
everything downstream receives the resulting object explicitly.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

PROJECT_ROOT = Path(__file__).parent
DATA_DIR = PROJECT_ROOT / "data"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


@dataclass(frozen=True)
class Settings:
    llm_provider: str = "anthropic"
    llm_model: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    llm_timeout_seconds: float = 60.0

    embedding_model: str = "text-embedding-3-large"
    chroma_path: str = str(DATA_DIR / "chroma")
    chroma_collection: str = "transcript_chunks"

    runs_db_path: str = str(DATA_DIR / "generations.db")

    rag_top_k: int = 10
    rag_similarity_threshold: float = 0.7

    max_retries: int = 3
    generation_timeout_seconds: int = 90
    worker_threads: int = 4
    flag_ttl_seconds: float = 30.0

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            llm_provider=os.getenv("LLM_PROVIDER", "anthropic"),
            llm_model=os.getenv("LLM_MODEL") or None,
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            llm_timeout_seconds=_env_float("LLM_TIMEOUT_SECONDS", 60.0),
            embedding_model=os.getenv("EMBEDDING_MODEL", "text-embedding-3-large"),
            chroma_path=os.getenv("CHROMA_PATH", str(DATA_DIR / "chroma")),
            chroma_collection=os.getenv("CHROMA_COLLECTION", "transcript_chunks"),
            runs_db_path=os.getenv("RUNS_DB_PATH", str(DATA_DIR / "generations.db")),
            rag_top_k=_env_int("RAG_TOP_K", 10),
            rag_similarity_threshold=_env_float("RAG_SIMILARITY_THRESHOLD", 0.7),
            max_retries=_env_int("MAX_RETRIES", 3),
            generation_timeout_seconds=_env_int("GENERATION_TIMEOUT_SECONDS", 90),
            worker_threads=_env_int("WORKER_THREADS", 4),
            flag_ttl_seconds=_env_float("FLAG_TTL_SECONDS", 30.0),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
