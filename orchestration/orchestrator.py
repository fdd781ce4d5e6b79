"""Generation state machine.

Sequences instruction check, retrieval, planning and scripting for one run,
persisting partial results after each phase, then hands the finished script
to an external renderer. The orchestrator is the only component that writes
run state and the only one that decides between retry and terminal failure.

    queued -> processing -> rendering -> completed | failed
"""

import logging
from typing import Iterable, Optional

import orjson
from pydantic import ValidationError

from orchestration.retry import is_retriable
from providers.llm import extract_json
from schemas.errors import (
    PipelineError,
    RetryScheduled,
    RunNotFoundError,
    RunStateError,
    ScriptFormatError,
)
from schemas.generation import GenerationFormat, SlideOutline
from schemas.run import GenerationRun, GenerationStatus, RenderJob, utcnow

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3

RETRY_MESSAGE = "Generation failed, retrying..."

INTERNAL_ERROR_MESSAGE = "Generation failed due to an internal error"


class Orchestrator:
    """Runs generation attempts against a RunStore."""

    def __init__(
        self,
        store,
        retriever,
        guardrail,
        planner,
        script_generator,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        self.store = store
        self.retriever = retriever
        self.guardrail = guardrail
        self.planner = planner
        self.script_generator = script_generator
        self.max_retries = max_retries

    def get_run(self, run_id: str) -> GenerationRun:
        run = self.store.get_run(run_id)
        if run is None:
            raise RunNotFoundError(run_id)
        return run

    def process(self, run_id: str) -> GenerationRun:
        """Load a stored run and attempt it. Used by the run queue."""
        return self.start_run(self.get_run(run_id))

    def update_status(
        self,
        run_id: str,
        status: GenerationStatus,
        message: Optional[str] = None,
        from_statuses: Iterable[GenerationStatus] = (GenerationStatus.PROCESSING,),
        **fields,
    ):
        """Move a run to ``status`` only if it is still in ``from_statuses``.

        Raises:
            RunStateError: The run left ``from_statuses`` underneath this
                attempt, e.g. the stale sweep already failed it.
        """
        if not self.store.transition(
            run_id, from_statuses, status=status, status_message=message, **fields
        ):
            self._abandon(run_id)
        logger.info("Generation %s: %s%s", run_id, status.value, f" ({message})" if message else "")

    def save_progress(self, run_id: str, **fields):
        """Persist partial results of a ``processing`` run."""
        if not self.store.transition(run_id, [GenerationStatus.PROCESSING], **fields):
            self._abandon(run_id)

    def _abandon(self, run_id: str):
        run = self.get_run(run_id)
        logger.warning(
            "Generation %s is %s, abandoning this attempt", run_id, run.status.value
        )
        raise RunStateError(
            f"Generation {run_id} is {run.status.value}, attempt abandoned",
            {"generation_id": run_id, "status": run.status.value},
        )

    def start_run(self, run: GenerationRun) -> GenerationRun:
        """Attempt a queued run through to ``rendering``.

        Returns:
            The run as stored after the handoff to rendering.

        Raises:
            RetryScheduled: The attempt failed transiently and the run was
                requeued with ``retry_count`` incremented.
            RunStateError: The run is not ``queued``, or it stopped being
                ``processing`` mid-attempt; its stored state is left alone.
            Exception: The original error, after the run was marked failed.
        """
        if run.status != GenerationStatus.QUEUED:
            raise RunStateError(
                f"Generation {run.id} is {run.status.value}, expected queued",
                {"generation_id": run.id, "status": run.status.value},
            )

        try:
            self._run_phases(run)
        except RunStateError:
            raise
        except Exception as e:
            self._handle_failure(run, e)
            raise

        return self.get_run(run.id)

    def _run_phases(self, run: GenerationRun):
        customization = run.customization

        self.update_status(
            run.id, GenerationStatus.PROCESSING, "Validating input...",
            from_statuses=[GenerationStatus.QUEUED],
        )
        self.guardrail.validate_instruction(customization.extra_instruction)

        self.update_status(run.id, GenerationStatus.PROCESSING, "Retrieving relevant content...")
        context = self.retriever.retrieve(run.profile, run.format, customization)
        self.save_progress(run.id, rag_query=context.query, rag_chunks_used=context.chunk_ids)

        self.update_status(run.id, GenerationStatus.PROCESSING, "Creating takeaway plan...")
        plan = self.planner.plan(context, run.profile, run.format, customization)
        self.guardrail.validate_plan(plan)
        self.save_progress(run.id, takeaway_plan=plan)

        self.update_status(run.id, GenerationStatus.PROCESSING, "Writing script...")
        script = self.script_generator.script(plan, run.format, run.presenter_name, customization)
        self.guardrail.validate_script(script)
        self.save_progress(run.id, script=script)

        self.update_status(run.id, GenerationStatus.RENDERING, "Preparing to render media...")

    def _handle_failure(self, run: GenerationRun, error: Exception):
        """Requeue or fail the run. Raises RetryScheduled when requeued."""
        if is_retriable(error):
            retry_count = self.store.increment_retry(run.id, self.max_retries, RETRY_MESSAGE)
            if retry_count is not None:
                logger.warning(
                    "Generation %s failed (%s: %s), retry %d/%d scheduled",
                    run.id, type(error).__name__, error, retry_count, self.max_retries,
                )
                raise RetryScheduled(run.id, retry_count, error) from error

        logger.error(
            "Generation %s failed: %s: %s", run.id, type(error).__name__, error,
            exc_info=error,
        )
        failed = self.store.transition(
            run.id,
            [GenerationStatus.PROCESSING],
            status=GenerationStatus.FAILED,
            status_message=None,
            error_message=failure_message(error),
        )
        if not failed:
            logger.warning("Generation %s was no longer processing, status left unchanged", run.id)

    # ------------------------------------------------------------------
    # Render hand-off and callbacks
    # ------------------------------------------------------------------

    def render_job(self, run_id: str) -> RenderJob:
        """Build the payload a renderer needs for a run in ``rendering``.

        Raises:
            RunStateError: The run is not ``rendering``.
            ScriptFormatError: A slides script is not a valid slide array;
                the run is marked failed.
        """
        run = self.get_run(run_id)
        if run.status != GenerationStatus.RENDERING:
            raise RunStateError(
                f"Generation {run_id} is {run.status.value}, expected rendering",
                {"generation_id": run_id, "status": run.status.value},
            )

        slides = []
        if run.format == GenerationFormat.SLIDES:
            try:
                slides = parse_slides(run.script or "")
            except ScriptFormatError as e:
                self.mark_failed(run_id, str(e))
                raise

        return RenderJob(
            generation_id=run.id,
            format=run.format,
            script=run.script or "",
            language=run.customization.language,
            presenter_name=run.presenter_name,
            slides=slides,
        )

    def mark_completed(
        self,
        run_id: str,
        output_urls: Optional[dict] = None,
        thumbnail_url: Optional[str] = None,
    ) -> GenerationRun:
        now = utcnow()
        updated = self.store.transition(
            run_id,
            [GenerationStatus.RENDERING],
            status=GenerationStatus.COMPLETED,
            status_message=None,
            output_urls=output_urls or {},
            thumbnail_url=thumbnail_url,
            completed_at=now,
        )
        if not updated:
            self._reject_callback(run_id, "complete")
        logger.info("Generation %s completed", run_id)
        return self.get_run(run_id)

    def mark_failed(self, run_id: str, message: str) -> GenerationRun:
        updated = self.store.transition(
            run_id,
            [GenerationStatus.RENDERING],
            status=GenerationStatus.FAILED,
            status_message=None,
            error_message=message,
        )
        if not updated:
            self._reject_callback(run_id, "fail")
        logger.error("Generation %s failed during rendering: %s", run_id, message)
        return self.get_run(run_id)

    def _reject_callback(self, run_id: str, action: str):
        run = self.get_run(run_id)
        raise RunStateError(
            f"Cannot {action} generation {run_id}: status is {run.status.value}",
            {"generation_id": run_id, "status": run.status.value},
        )


def parse_slides(script: str) -> list[SlideOutline]:
    """Parse a slides script (a JSON array of {title, bullets})."""
    try:
        data = orjson.loads(extract_json(script))
    except orjson.JSONDecodeError as e:
        raise ScriptFormatError("Slides script is not valid JSON") from e

    if not isinstance(data, list) or not data:
        raise ScriptFormatError("Slides script must be a non-empty JSON array")

    try:
        return [SlideOutline.model_validate(item) for item in data]
    except ValidationError as e:
        raise ScriptFormatError(f"Invalid slide outline: {e.error_count()} errors") from e


def failure_message(error: BaseException) -> str:
    """The text stored in ``error_message`` for a failed attempt.

    Pipeline errors carry a short caller-facing message. Anything else may
    hold raw provider or driver detail, which only goes to the log.
    """
    if isinstance(error, PipelineError):
        return error.message
    return INTERNAL_ERROR_MESSAGE
