"""Takeaway plan generator.

First LLM stage: turns retrieved keynote context plus the requester profile
into a structured plan (title, hook, key points, framing, call to action).
The response is parsed strictly; a malformed plan is an internal contract
failure and raises ``GenerationError``, separate from content policy.
"""

import json
import logging

from pydantic import ValidationError

from generators.prompts import PLANNER_SYSTEM, PLANNER_USER
from providers.llm import TRANSIENT_ERRORS
from rag.retriever import format_context_for_prompt
from schemas.errors import GenerationError
from schemas.generation import (
    Customization,
    GenerationFormat,
    RequesterProfile,
    RetrievedContext,
    TakeawayPlan,
)
from schemas.presets import language_label

logger = logging.getLogger(__name__)


class PlanGenerator:
    """Generates a TakeawayPlan with a single JSON-mode completion."""

    def __init__(self, llm, temperature: float = 0.7, max_tokens: int = 1500):
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens

    def plan(
        self,
        context: RetrievedContext,
        profile: RequesterProfile,
        fmt: GenerationFormat,
        customization: Customization,
    ) -> TakeawayPlan:
        logger.info(
            "Generating takeaway plan (format=%s, tone=%s, length=%s, chunks=%d)",
            fmt.value, customization.tone.value, customization.length.value, len(context.chunks),
        )

        prompt = self._build_user_prompt(context, profile, fmt, customization)
        try:
            response_text = self.llm.complete(
                PLANNER_SYSTEM,
                prompt,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                json_mode=True,
            )
        except TRANSIENT_ERRORS as e:
            logger.warning("Plan completion failed: %s: %s", type(e).__name__, e)
            raise GenerationError(
                "Failed to generate takeaway plan", {"cause": type(e).__name__}
            ) from e

        plan = self._parse(response_text)
        logger.info("Generated plan %r with %d key points", plan.title, len(plan.key_points))
        return plan

    def _build_user_prompt(
        self,
        context: RetrievedContext,
        profile: RequesterProfile,
        fmt: GenerationFormat,
        customization: Customization,
    ) -> str:
        extra = customization.extra_instruction
        return PLANNER_USER.format(
            context=format_context_for_prompt(context),
            role=profile.role or "Not specified",
            segment=profile.segment or "Not specified",
            geo=profile.geo or "Not specified",
            function=profile.function or "Not specified",
            format=fmt.value,
            tone=customization.tone.value,
            length=customization.length.value,
            language=language_label(customization.language),
            additional_context=f"ADDITIONAL CONTEXT: {extra}\n" if extra else "",
        )

    def _parse(self, text: str) -> TakeawayPlan:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error("Plan response is not valid JSON: %s", e)
            logger.debug("Raw plan response: %s", text)
            raise GenerationError(
                "Failed to generate takeaway plan: response was not valid JSON"
            ) from e

        if not isinstance(data, dict):
            raise GenerationError("Failed to generate takeaway plan: plan must be an object")

        try:
            return TakeawayPlan.model_validate(data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'plan'}: {err['msg']}"
                for err in e.errors()
            )
            logger.error("Plan failed schema validation: %s", problems)
            raise GenerationError(
                "Failed to generate takeaway plan: plan did not match the expected structure",
                {"errors": problems},
            ) from e
