"""Tone, length, and language presets shared by the generators."""

from dataclasses import dataclass

from schemas.generation import GenerationFormat, LengthPreset, TonePreset

# Scripts within +/- this fraction of the target word count are on-length.
WORD_BAND_TOLERANCE = 0.25


@dataclass(frozen=True)
class LengthTargets:
    label: str
    video_seconds: int
    video_words: int
    podcast_seconds: int
    podcast_words: int
    slides_count: int


LENGTH_PRESETS: dict[LengthPreset, LengthTargets] = {
    LengthPreset.SHORT: LengthTargets("Short", 60, 150, 120, 300, 5),
    LengthPreset.MEDIUM: LengthTargets("Medium", 120, 300, 240, 600, 8),
    LengthPreset.LONG: LengthTargets("Long", 180, 450, 360, 900, 12),
}

TONE_PRESETS: dict[TonePreset, dict[str, str]] = {
    TonePreset.PROFESSIONAL: {
        "label": "Professional",
        "description": "Clear, confident, business-focused",
    },
    TonePreset.CASUAL: {
        "label": "Casual",
        "description": "Friendly, conversational, approachable",
    },
    TonePreset.INSPIRING: {
        "label": "Inspiring",
        "description": "Motivational, visionary, energetic",
    },
    TonePreset.TECHNICAL: {
        "label": "Technical",
        "description": "Detailed, precise, data-driven",
    },
    TonePreset.EXECUTIVE: {
        "label": "Executive",
        "description": "Strategic, high-level, decisive",
    },
}

LANGUAGES = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "pt": "Portuguese",
    "ja": "Japanese",
    "zh": "Chinese",
    "ko": "Korean",
}


def word_count(text: str) -> int:
    return len(text.split())


def word_band(fmt: GenerationFormat, length: LengthPreset) -> tuple[int, int]:
    """Return the (min, max) spoken word count for a format and length preset.

    Slides have no word target; (0, 0) is returned for them.
    """
    targets = LENGTH_PRESETS[length]
    if fmt == GenerationFormat.VIDEO:
        target = targets.video_words
    elif fmt == GenerationFormat.PODCAST:
        target = targets.podcast_words
    else:
        return (0, 0)
    spread = int(target * WORD_BAND_TOLERANCE)
    return (target - spread, target + spread)


def within_word_band(script: str, fmt: GenerationFormat, length: LengthPreset) -> bool:
    if fmt == GenerationFormat.SLIDES:
        return True
    low, high = word_band(fmt, length)
    return low <= word_count(script) <= high


def language_label(code: str) -> str:
    """Prompt label for a language code, e.g. ``Spanish (es)``."""
    name = LANGUAGES.get(code.lower())
    return f"{name} ({code})" if name else code
