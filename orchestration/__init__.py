from orchestration.flags import GenerationGate
from orchestration.orchestrator import Orchestrator, parse_slides
from orchestration.retry import is_retriable
from orchestration.worker import RunQueue
