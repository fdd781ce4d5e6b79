"""The global "generation enabled" switch, read through a short-lived cache."""

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

GENERATION_ENABLED_KEY = "generation_enabled"


class GenerationGate:
    """Caches the persisted flag for ``ttl_seconds``; ``refresh()`` forces a reload.

    Missing settings count as enabled.
    """

    def __init__(
        self,
        store,
        ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._value: Optional[bool] = None
        self._loaded_at = 0.0

    def is_enabled(self) -> bool:
        with self._lock:
            if self._value is None or self._clock() - self._loaded_at >= self.ttl_seconds:
                self._load()
            return self._value

    def refresh(self) -> bool:
        with self._lock:
            self._load()
            return self._value

    def set_enabled(self, enabled: bool):
        self.store.set_setting(GENERATION_ENABLED_KEY, "true" if enabled else "false")
        logger.info("Generation %s", "enabled" if enabled else "disabled")
        self.refresh()

    def _load(self):
        raw = self.store.get_setting(GENERATION_ENABLED_KEY, "true")
        self._value = raw.strip().lower() not in ("false", "0", "no", "off")
        self._loaded_at = self._clock()
