"""Format-specific script generator.

Second LLM stage: turns a validated takeaway plan into the words that will be
rendered. Video gets a direct-to-camera monologue, podcast a host narration
with [PAUSE] markers, slides a JSON array of {title, bullets}. Output is only
trimmed here; the slides JSON is checked at the render hand-off.
"""

import json
import logging
from typing import Optional

from generators.prompts import (
    PODCAST_SYSTEM,
    PODCAST_USER,
    SCRIPT_BASE_USER,
    SLIDES_SYSTEM,
    SLIDES_USER,
    VIDEO_SYSTEM,
    VIDEO_USER,
)
from providers.llm import TRANSIENT_ERRORS
from schemas.errors import GenerationError
from schemas.generation import Customization, GenerationFormat, TakeawayPlan
from schemas.presets import LENGTH_PRESETS, TONE_PRESETS, language_label, word_band, word_count

logger = logging.getLogger(__name__)

SYSTEM_PROMPTS = {
    GenerationFormat.VIDEO: VIDEO_SYSTEM,
    GenerationFormat.PODCAST: PODCAST_SYSTEM,
    GenerationFormat.SLIDES: SLIDES_SYSTEM,
}


class ScriptGenerator:
    """Writes the final script for a plan in the requested format."""

    def __init__(self, llm, temperature: float = 0.8, max_tokens: int = 2000):
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens

    def script(
        self,
        plan: TakeawayPlan,
        fmt: GenerationFormat,
        presenter_name: Optional[str],
        customization: Customization,
    ) -> str:
        """Generate the script text.

        Raises:
            GenerationError: If the completion fails transiently or comes back
                empty. Other provider errors propagate unchanged.
        """
        logger.info(
            "Generating %s script (tone=%s, length=%s, presenter=%s)",
            fmt.value, customization.tone.value, customization.length.value,
            bool(presenter_name),
        )

        system = SYSTEM_PROMPTS[fmt]
        prompt = self.build_user_prompt(plan, fmt, presenter_name, customization)

        try:
            text = self.llm.complete(
                system,
                prompt,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except TRANSIENT_ERRORS as e:
            logger.warning("Script completion failed: %s: %s", type(e).__name__, e)
            raise GenerationError(
                "Failed to generate script", {"cause": type(e).__name__}
            ) from e

        script = (text or "").strip()
        if not script:
            raise GenerationError("Failed to generate script: empty response")

        words = word_count(script)
        if fmt != GenerationFormat.SLIDES:
            low, high = word_band(fmt, customization.length)
            if not low <= words <= high:
                logger.warning(
                    "%s script is %d words, outside the %s band %d-%d",
                    fmt.value, words, customization.length.value, low, high,
                )

        logger.info("Generated %s script: %d words, %d chars", fmt.value, words, len(script))
        return script

    def build_user_prompt(
        self,
        plan: TakeawayPlan,
        fmt: GenerationFormat,
        presenter_name: Optional[str],
        customization: Customization,
    ) -> str:
        targets = LENGTH_PRESETS[customization.length]
        base = SCRIPT_BASE_USER.format(
            plan=json.dumps(plan.model_dump(), indent=2),
            tone=customization.tone.value,
            tone_description=TONE_PRESETS[customization.tone]["description"],
            length=customization.length.value,
            language=language_label(customization.language),
        )

        if fmt == GenerationFormat.VIDEO:
            return VIDEO_USER.format(
                base=base,
                presenter=presenter_name or "the presenter",
                seconds=targets.video_seconds,
                words=targets.video_words,
            )
        if fmt == GenerationFormat.PODCAST:
            return PODCAST_USER.format(
                base=base,
                seconds=targets.podcast_seconds,
                words=targets.podcast_words,
            )
        return SLIDES_USER.format(base=base, slides=targets.slides_count)
