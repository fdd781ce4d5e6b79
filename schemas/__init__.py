from schemas.generation import (
    GenerationFormat,
    TonePreset,
    LengthPreset,
    RequesterProfile,
    Customization,
    ContextChunk,
    RetrievedContext,
    TakeawayPlan,
    SlideOutline,
)
from schemas.run import (
    GenerationStatus,
    GenerationRun,
    RenderJob,
)
from schemas.errors import (
    PipelineError,
    RetrievalError,
    GuardrailViolation,
    GenerationError,
    ScriptFormatError,
    RetryScheduled,
    RunStateError,
    RunNotFoundError,
)
