"""Background execution of generation runs.

Request handlers submit run ids here instead of starting detached work; every
submission returns a Future, and a done-callback logs every outcome so no
failure goes unnoticed.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor

from schemas.errors import RetryScheduled
from schemas.run import GenerationStatus

logger = logging.getLogger(__name__)


class RunQueue:
    """Thread pool that drives runs through an Orchestrator."""

    def __init__(self, orchestrator, max_workers: int = 4):
        self.orchestrator = orchestrator
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="generation"
        )

    def submit(self, run_id: str) -> Future:
        future = self._executor.submit(self.orchestrator.process, run_id)
        future.add_done_callback(lambda f: self._log_outcome(run_id, f))
        logger.info("Queued generation %s", run_id)
        return future

    def requeue_pending(self, limit: int = 100) -> list[Future]:
        """Submit every run waiting in ``queued``, oldest first."""
        pending = self.orchestrator.store.list_runs(GenerationStatus.QUEUED, limit=limit)
        if pending:
            logger.info("Requeueing %d pending generations", len(pending))
        return [self.submit(run.id) for run in pending]

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)

    @staticmethod
    def _log_outcome(run_id: str, future: Future):
        if future.cancelled():
            logger.warning("Generation %s was cancelled before it ran", run_id)
            return

        error = future.exception()
        if error is None:
            run = future.result()
            logger.info("Generation %s handed off (%s)", run_id, run.status.value)
        elif isinstance(error, RetryScheduled):
            logger.info(
                "Generation %s requeued for retry %d", run_id, error.retry_count
            )
        else:
            logger.error(
                "Generation %s failed: %s: %s", run_id, type(error).__name__, error
            )
