#!/usr/bin/env python3
"""Operator CLI for the keynote takeaway generation pipeline.

Usage:
  python pipeline.py generate --user-id u1 --format video --role "Product Manager" --segment Enterprise
  python pipeline.py generate --user-id u1 --format slides --tone executive --length short
  python pipeline.py generate --user-id u1 --format podcast --queue   # enqueue only

  python pipeline.py status                              # Recent generations
  python pipeline.py status <generation_id>              # One generation in full

  python pipeline.py drain                               # Process every queued run
  python pipeline.py sweep --older-than 90               # Fail runs stuck in processing

  python pipeline.py complete <id> --output-url video=https://...
  python pipeline.py fail <id> --message "Render provider error"

  python pipeline.py enable                              # Turn generation on
  python pipeline.py disable                             # Turn generation off

  python pipeline.py serve --port 8501                   # Launch the HTTP API
"""

import argparse
import json
import logging
import sys
import uuid
from concurrent.futures import wait
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from orchestration.flags import GENERATION_ENABLED_KEY, GenerationGate
from orchestration.orchestrator import Orchestrator
from orchestration.worker import RunQueue
from schemas.errors import PipelineError, RetryScheduled
from schemas.generation import (
    Customization,
    GenerationFormat,
    LengthPreset,
    RequesterProfile,
    TonePreset,
)
from schemas.run import GenerationRun, GenerationStatus
from settings import Settings
from storage.run_store import RunStore

PROJECT_ROOT = Path(__file__).parent

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(PROJECT_ROOT / "pipeline.log"),
        ],
    )


@dataclass
class Components:
    settings: Settings
    store: RunStore
    orchestrator: Orchestrator
    queue: RunQueue
    gate: GenerationGate


def build_components(settings: Settings) -> Components:
    """Wire the provider clients, stores and orchestrator from settings."""
    from generators.plan_generator import PlanGenerator
    from generators.script_generator import ScriptGenerator
    from guardrails.policy import PolicyGuardrail
    from providers.llm import LLMClient
    from rag.retriever import ContextRetriever
    from vectorstore.embedder import Embedder
    from vectorstore.store import TranscriptChunkStore

    if settings.llm_provider == "anthropic":
        llm_key = settings.anthropic_api_key
    else:
        llm_key = settings.openai_api_key

    llm = LLMClient(
        provider=settings.llm_provider,
        model=settings.llm_model,
        api_key=llm_key,
        timeout=settings.llm_timeout_seconds,
    )
    embedder = Embedder(
        model=settings.embedding_model,
        api_key=settings.openai_api_key,
        timeout=settings.llm_timeout_seconds,
    )
    chunk_store = TranscriptChunkStore(
        path=settings.chroma_path,
        collection_name=settings.chroma_collection,
    )
    store = RunStore(settings.runs_db_path)

    orchestrator = Orchestrator(
        store=store,
        retriever=ContextRetriever(
            embedder,
            chunk_store,
            top_k=settings.rag_top_k,
            similarity_threshold=settings.rag_similarity_threshold,
        ),
        guardrail=PolicyGuardrail(llm),
        planner=PlanGenerator(llm),
        script_generator=ScriptGenerator(llm),
        max_retries=settings.max_retries,
    )

    return Components(
        settings=settings,
        store=store,
        orchestrator=orchestrator,
        queue=RunQueue(orchestrator, max_workers=settings.worker_threads),
        gate=GenerationGate(store, ttl_seconds=settings.flag_ttl_seconds),
    )


def _print_run(run: GenerationRun):
    print(json.dumps(run.model_dump(mode="json"), indent=2, ensure_ascii=False))


def cmd_generate(args, settings: Settings):
    """Create a generation and run it in this process."""
    components = build_components(settings)

    if not components.gate.is_enabled():
        logger.error("Generation is disabled; run `pipeline.py enable` first")
        sys.exit(2)

    run = GenerationRun(
        id=str(uuid.uuid4()),
        user_id=args.user_id,
        format=GenerationFormat(args.format),
        presenter_name=args.presenter,
        profile=RequesterProfile(
            role=args.role,
            segment=args.segment,
            geo=args.geo,
            function=args.function,
        ),
        customization=Customization(
            language=args.language,
            tone=TonePreset(args.tone),
            length=LengthPreset(args.length),
            extra_instruction=args.instruction,
        ),
    )
    components.store.create_run(run)
    logger.info("Created generation %s", run.id)

    if args.queue:
        print(run.id)
        return

    # Each attempt either hands off to rendering, requeues, or fails for good.
    while True:
        try:
            run = components.orchestrator.process(run.id)
            break
        except RetryScheduled as e:
            logger.warning("Attempt failed, retrying (%d/%d)", e.retry_count, settings.max_retries)
        except PipelineError as e:
            logger.error("Generation %s failed: %s", run.id, e)
            _print_run(components.orchestrator.get_run(run.id))
            sys.exit(1)

    _print_run(run)


def cmd_status(args, settings: Settings):
    """Show one generation, or a table of recent ones."""
    store = RunStore(settings.runs_db_path)

    if args.generation_id:
        run = store.get_run(args.generation_id)
        if run is None:
            logger.error("Generation not found: %s", args.generation_id)
            sys.exit(1)
        _print_run(run)
        return

    status = GenerationStatus(args.filter) if args.filter else None
    runs = store.list_runs(status, limit=args.limit)

    print(f"\n{'='*96}")
    print("  GENERATION STATUS")
    print(f"{'='*96}\n")

    if not runs:
        print("  No generations found.")
    else:
        print(f"  {'ID':<38} {'FORMAT':<8} {'STATUS':<11} {'RETRY':>5}  {'UPDATED':<20} MESSAGE")
        print(f"  {'-'*38} {'-'*8} {'-'*11} {'-'*5}  {'-'*20} {'-'*20}")
        for run in runs:
            message = run.error_message or run.status_message or ""
            print(
                f"  {run.id:<38} {run.format.value:<8} {run.status.value:<11} "
                f"{run.retry_count:>5}  {run.updated_at.strftime('%Y-%m-%d %H:%M:%S'):<20} "
                f"{message[:40]}"
            )

    enabled = store.get_setting(GENERATION_ENABLED_KEY, "true")
    print(f"\n  Generation enabled: {enabled}")
    print()


def cmd_drain(args, settings: Settings):
    """Process queued runs until none are left, requeueing retries."""
    components = build_components(settings)
    try:
        # A run can come back to queued at most max_retries times.
        for attempt in range(settings.max_retries + 1):
            futures = components.queue.requeue_pending(limit=args.limit)
            if not futures:
                break
            wait(futures)
            logger.info("Drain pass %d finished %d generations", attempt + 1, len(futures))
    finally:
        components.queue.shutdown()


def cmd_sweep(args, settings: Settings):
    store = RunStore(settings.runs_db_path)
    older_than = args.older_than or settings.generation_timeout_seconds
    stale = store.fail_stale(older_than)
    print(f"Failed {len(stale)} stale generations")
    for run_id in stale:
        print(f"  {run_id}")


def _orchestrator_for_callbacks(settings: Settings):
    # Render callbacks touch only the store.
    return Orchestrator(
        store=RunStore(settings.runs_db_path),
        retriever=None,
        guardrail=None,
        planner=None,
        script_generator=None,
        max_retries=settings.max_retries,
    )


def cmd_complete(args, settings: Settings):
    output_urls = {}
    for item in args.output_url or []:
        key, sep, url = item.partition("=")
        if not sep or not key or not url:
            raise ValueError(f"Expected KIND=URL, got {item!r}")
        output_urls[key] = url

    run = _orchestrator_for_callbacks(settings).mark_completed(
        args.generation_id, output_urls, args.thumbnail
    )
    _print_run(run)


def cmd_fail(args, settings: Settings):
    run = _orchestrator_for_callbacks(settings).mark_failed(args.generation_id, args.message)
    _print_run(run)


def _set_enabled(settings: Settings, enabled: bool):
    gate = GenerationGate(RunStore(settings.runs_db_path), ttl_seconds=settings.flag_ttl_seconds)
    gate.set_enabled(enabled)
    print(f"Generation {'enabled' if enabled else 'disabled'}")


def cmd_enable(args, settings: Settings):
    _set_enabled(settings, True)


def cmd_disable(args, settings: Settings):
    _set_enabled(settings, False)


def cmd_serve(args, settings: Settings):
    """Launch the FastAPI generation service."""
    import uvicorn

    logger.info("Starting generation API on http://%s:%d", args.host, args.port)
    uvicorn.run(
        "webapp.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        app_dir=str(PROJECT_ROOT),
    )


def main():
    load_dotenv()
    settings = Settings.from_env()
    setup_logging(settings.log_level)

    parser = argparse.ArgumentParser(
        description="Keynote takeaway generation pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Generate
    generate_parser = subparsers.add_parser("generate", help="Create and run a generation")
    generate_parser.add_argument("--user-id", required=True, help="Requesting user id")
    generate_parser.add_argument(
        "--format",
        required=True,
        choices=[f.value for f in GenerationFormat],
        help="Output format",
    )
    generate_parser.add_argument("--role", default=None, help="Requester role")
    generate_parser.add_argument("--segment", default=None, help="Customer segment")
    generate_parser.add_argument("--geo", default=None, help="Region")
    generate_parser.add_argument("--function", default=None, help="Business function")
    generate_parser.add_argument("--presenter", default=None, help="Presenter name (video)")
    generate_parser.add_argument(
        "--tone",
        default=TonePreset.PROFESSIONAL.value,
        choices=[t.value for t in TonePreset],
        help="Tone preset (default: professional)",
    )
    generate_parser.add_argument(
        "--length",
        default=LengthPreset.MEDIUM.value,
        choices=[l.value for l in LengthPreset],
        help="Length preset (default: medium)",
    )
    generate_parser.add_argument("--language", default="en", help="Output language code")
    generate_parser.add_argument("--instruction", default=None, help="Extra instruction")
    generate_parser.add_argument(
        "--queue",
        action="store_true",
        help="Only enqueue the generation; process it later with `drain`",
    )

    # Status
    status_parser = subparsers.add_parser("status", help="Show generation status")
    status_parser.add_argument("generation_id", nargs="?", default=None, help="Generation id")
    status_parser.add_argument(
        "--filter",
        default=None,
        choices=[s.value for s in GenerationStatus],
        help="Only list generations in this status",
    )
    status_parser.add_argument("--limit", type=int, default=20, help="Rows to list")

    # Drain
    drain_parser = subparsers.add_parser("drain", help="Process all queued generations")
    drain_parser.add_argument("--limit", type=int, default=100, help="Max runs per pass")

    # Sweep
    sweep_parser = subparsers.add_parser(
        "sweep", help="Fail generations stuck in processing"
    )
    sweep_parser.add_argument(
        "--older-than",
        type=int,
        default=None,
        help="Seconds without progress (default: GENERATION_TIMEOUT_SECONDS)",
    )

    # Render callbacks
    complete_parser = subparsers.add_parser("complete", help="Mark a rendering generation completed")
    complete_parser.add_argument("generation_id", help="Generation id")
    complete_parser.add_argument(
        "--output-url",
        action="append",
        help="Rendered output as KIND=URL (repeatable)",
    )
    complete_parser.add_argument("--thumbnail", default=None, help="Thumbnail URL")

    fail_parser = subparsers.add_parser("fail", help="Mark a rendering generation failed")
    fail_parser.add_argument("generation_id", help="Generation id")
    fail_parser.add_argument("--message", required=True, help="Failure message")

    # Gate
    subparsers.add_parser("enable", help="Enable generation")
    subparsers.add_parser("disable", help="Disable generation")

    # Serve
    serve_parser = subparsers.add_parser("serve", help="Launch the HTTP API")
    serve_parser.add_argument("--port", type=int, default=8501, help="Port (default: 8501)")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Host (default: 0.0.0.0)")
    serve_parser.add_argument(
        "--reload", action="store_true", help="Auto-reload on code changes"
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {
        "generate": cmd_generate,
        "status": cmd_status,
        "drain": cmd_drain,
        "sweep": cmd_sweep,
        "complete": cmd_complete,
        "fail": cmd_fail,
        "enable": cmd_enable,
        "disable": cmd_disable,
        "serve": cmd_serve,
    }

    try:
        commands[args.command](args, settings)
    except Exception as e:
        logger.exception("Pipeline error: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
