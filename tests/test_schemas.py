"""Tests for request schemas, presets and settings."""

import pytest
from pydantic import ValidationError

from schemas.generation import Customization, GenerationFormat, LengthPreset, RequesterProfile
from schemas.presets import language_label, word_band, within_word_band
from settings import Settings


class TestCustomization:
    def test_defaults(self):
        customization = Customization()

        assert customization.language == "en"
        assert customization.tone.value == "professional"
        assert customization.length == LengthPreset.MEDIUM
        assert customization.extra_instruction is None

    def test_instruction_length_cap(self):
        with pytest.raises(ValidationError):
            Customization(extra_instruction="x" * 201)

    def test_profile_field_cap(self):
        with pytest.raises(ValidationError):
            RequesterProfile(role="r" * 101)


class TestWordBand:
    @pytest.mark.parametrize(
        "fmt,length,band",
        [
            (GenerationFormat.VIDEO, LengthPreset.MEDIUM, (225, 375)),
            (GenerationFormat.VIDEO, LengthPreset.SHORT, (113, 187)),
            (GenerationFormat.PODCAST, LengthPreset.LONG, (675, 1125)),
            (GenerationFormat.SLIDES, LengthPreset.MEDIUM, (0, 0)),
        ],
    )
    def test_bands(self, fmt, length, band):
        assert word_band(fmt, length) == band

    def test_slides_always_within_band(self):
        assert within_word_band("[]", GenerationFormat.SLIDES, LengthPreset.LONG)

    def test_video_band_edges(self):
        assert within_word_band("w " * 225, GenerationFormat.VIDEO, LengthPreset.MEDIUM)
        assert not within_word_band("w " * 224, GenerationFormat.VIDEO, LengthPreset.MEDIUM)


class TestLanguageLabel:
    def test_known_code_gets_name(self):
        assert language_label("es") == "Spanish (es)"

    def test_unknown_code_passes_through(self):
        assert language_label("nl") == "nl"


class TestSettings:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "openai")
        monkeypatch.setenv("RAG_TOP_K", "6")
        monkeypatch.setenv("RAG_SIMILARITY_THRESHOLD", "0.65")
        monkeypatch.setenv("MAX_RETRIES", "2")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.delenv("LLM_MODEL", raising=False)

        settings = Settings.from_env()

        assert settings.llm_provider == "openai"
        assert settings.llm_model is None
        assert settings.rag_top_k == 6
        assert settings.rag_similarity_threshold == 0.65
        assert settings.max_retries == 2
        assert settings.log_level == "DEBUG"

    def test_defaults(self, monkeypatch):
        for name in ("RAG_TOP_K", "MAX_RETRIES", "GENERATION_TIMEOUT_SECONDS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.rag_top_k == 10
        assert settings.max_retries == 3
        assert settings.generation_timeout_seconds == 90
