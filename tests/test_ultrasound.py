"""Tests for the Gemini-backed ultrasound analyzer."""

import json
from types import SimpleNamespace

import pytest

from Assets.Common import gemini
from Assets.Common.gemini import (
    MODEL_ENV_VAR,
    GeminiConfigError,
    GeminiSettings,
    build_generate_config,
    get_gemini_client,
    resolve_model,
)
from Assets.Common.ultrasound import (
    AudioCharacteristics,
    UltrasoundAnalysis,
    UltrasoundAnalyzer,
    analysis_from_payload,
    analysis_to_options,
    describe_analysis,
    parse_analysis_payload,
    profile_from_characteristics,
)


class FakeModels:
    """Stands in for ``client.models`` and records the request."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


def _analyzer(text=None, error=None):
    models = FakeModels(text=text, error=error)
    return UltrasoundAnalyzer(client=SimpleNamespace(models=models), model="test-model"), models


PAYLOAD = {
    "bpm": 152,
    "confidence": 0.9,
    "beatTimesSec": [0.2, 0.6, 1.0],
    "amplitudeScalars": [0.9, 0.85, 0.95],
    "doublePulseOffsetMs": 45,
    "audioCharacteristics": {
        "systolicIntensity": 0.8,
        "diastolicIntensity": 0.6,
        "frequencyRange": {
            "systolic": {"min": 950, "max": 1150},
            "diastolic": {"min": 700, "max": 850},
        },
        "rhythm": "Regular",
        "clarity": "clear",
        "backgroundNoise": "low",
        "dopplerEffect": "strong",
    },
    "analysis": "FHR 152 bpm shown in the corner",
    "recommendations": ["use a clear thump"],
}


class TestPayloadParsing:
    """Tests for validating the model's answer."""

    def test_full_payload(self):
        analysis = analysis_from_payload(PAYLOAD)

        assert analysis.source == "gemini"
        assert analysis.bpm == 152.0
        assert analysis.confidence == 0.9
        assert analysis.beatTimesSec == (0.2, 0.6, 1.0)
        assert analysis.doublePulseOffsetMs == 45.0
        assert analysis.audioCharacteristics.rhythm == "regular"
        assert analysis.audioCharacteristics.systolicRange == (950.0, 1150.0)
        assert analysis.recommendations == ("use a clear thump",)

    def test_values_are_clamped(self):
        analysis = analysis_from_payload(
            {
                "bpm": 260,
                "confidence": 4,
                "audioCharacteristics": {
                    "systolicIntensity": 3,
                    "frequencyRange": {"systolic": {"min": 10, "max": 9000}},
                    "rhythm": "chaotic",
                },
            }
        )

        assert analysis.bpm == 200.0
        assert analysis.confidence == 1.0
        assert analysis.audioCharacteristics.systolicIntensity == 1.0
        assert analysis.audioCharacteristics.systolicRange == (800.0, 1400.0)
        assert analysis.audioCharacteristics.rhythm == "regular"

    def test_missing_values_use_defaults(self):
        analysis = analysis_from_payload({"bpm": 0, "beatTimesSec": ["x"], "doublePulseOffsetMs": -5})

        assert analysis.bpm == 140.0
        assert analysis.confidence == 0.5
        assert analysis.beatTimesSec is None
        assert analysis.doublePulseOffsetMs is None
        assert analysis.audioCharacteristics == AudioCharacteristics()

    def test_low_bpm_is_raised_to_range(self):
        assert analysis_from_payload({"bpm": 60}).bpm == 100.0

    def test_json_inside_prose(self):
        text = "Here you go:\n```json\n" + json.dumps(PAYLOAD) + "\n```"

        assert parse_analysis_payload(text).bpm == 152.0

    def test_text_fallback(self):
        analysis = parse_analysis_payload("The display reads FHR 165 bpm and looks clear.")

        assert analysis.source == "text"
        assert analysis.bpm == 165.0
        assert analysis.confidence == 0.6

    def test_text_without_number(self):
        analysis = parse_analysis_payload("No readable heart rate.")

        assert analysis.source == "text"
        assert analysis.bpm == 140.0


class TestUltrasoundAnalyzer:
    """Tests for the request/response flow."""

    def test_request_shape(self):
        analyzer, models = _analyzer(text=json.dumps(PAYLOAD))
        analysis = analyzer.analyze(b"\x89PNG", "image/png")

        assert analysis.bpm == 152.0
        assert len(models.calls) == 1
        call = models.calls[0]
        assert call["model"] == "test-model"
        assert len(call["contents"]) == 2
        assert isinstance(call["contents"][1], str)
        assert call["config"].response_mime_type == "application/json"

    def test_request_error_gives_default(self):
        analyzer, _ = _analyzer(error=RuntimeError("quota"))
        analysis = analyzer.analyze(b"img")

        assert analysis.source == "default"
        assert analysis.bpm == 140.0
        assert analysis.confidence == 0.3

    def test_empty_answer_gives_default(self):
        analyzer, _ = _analyzer(text="   ")

        assert analyzer.analyze(b"img").source == "default"

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        get_gemini_client.cache_clear()

        with pytest.raises(GeminiConfigError):
            UltrasoundAnalyzer(model="test-model").analyze(b"img")


class TestProfileMapping:
    """Tests for mapping an analysis onto synthesis options."""

    def test_characteristics_shape_profile(self, baseline_profile):
        chars = AudioCharacteristics(
            systolicIntensity=0.8,
            diastolicIntensity=0.6,
            systolicRange=(900.0, 1100.0),
            diastolicRange=(650.0, 800.0),
            rhythm="irregular",
            clarity="faint",
            backgroundNoise="high",
            dopplerEffect="strong",
        )
        profile = profile_from_characteristics(chars, baseline_profile)

        assert (profile.tone.hissBand.lowHz, profile.tone.hissBand.highHz) == (650.0, 1100.0)
        assert profile.tone.hissWeight == pytest.approx(0.35 * 1.3)
        assert profile.tone.whiteWeight == pytest.approx(0.1 * 1.4)
        assert profile.doublePulse.relativeLoudness == pytest.approx(0.75)
        assert profile.background.floorLevel == pytest.approx(0.018)
        assert profile.schedule.jitterMs == 40.0

    def test_options_carry_plan(self):
        options = analysis_to_options(analysis_from_payload(PAYLOAD), durationSeconds=4.0, seed=3)

        assert options.bpm == 152.0
        assert options.durationSeconds == 4.0
        assert options.seed == 3
        assert len(options.beatPlan) == 3
        assert all(event.secondaryOffsetMs == 45.0 for event in options.beatPlan)
        assert options.beatPlan[0].amplitude == pytest.approx(0.9)

    def test_out_of_range_timings_fall_back_to_bpm(self):
        analysis = UltrasoundAnalysis(bpm=150.0, beatTimesSec=(9.0, 9.5))
        options = analysis_to_options(analysis, durationSeconds=2.0)

        assert options.beatPlan is None

    def test_describe(self):
        summary = describe_analysis(analysis_from_payload(PAYLOAD))

        assert summary["bpm"] == 152.0
        assert summary["beats"] == 3
        assert summary["source"] == "gemini"


class TestGeminiConfig:
    """Tests for the Gemini configuration helpers."""

    def test_generate_config(self):
        config = build_generate_config()

        assert config.response_mime_type == "application/json"
        assert config.temperature == pytest.approx(0.1)

    def test_model_override(self, monkeypatch):
        monkeypatch.setenv(MODEL_ENV_VAR, "env-model")

        assert resolve_model() == "env-model"
        assert resolve_model("explicit") == "explicit"

    def test_default_model(self, monkeypatch):
        monkeypatch.delenv(MODEL_ENV_VAR, raising=False)

        assert resolve_model() == gemini.DEFAULT_VISION_MODEL

    def test_settings_from_file(self, tmp_path):
        path = tmp_path / "gemini.json"
        path.write_text(json.dumps({"model": "vision-x", "apiKey": "secret"}), encoding="utf-8")
        settings = GeminiSettings.from_file(str(path))

        assert settings.model == "vision-x"
        assert settings.api_key == "secret"
        assert settings.system_instruction == gemini.DEFAULT_SYSTEM_INSTRUCTION

    def test_settings_key_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "env-secret")
        path = tmp_path / "gemini.json"
        path.write_text(json.dumps({"model": "vision-x"}), encoding="utf-8")

        assert GeminiSettings.from_file(str(path)).api_key == "env-secret"

    def test_settings_missing_file(self, tmp_path):
        with pytest.raises(GeminiConfigError, match="not found"):
            GeminiSettings.from_file(str(tmp_path / "missing.json"))

    def test_settings_invalid_json(self, tmp_path):
        path = tmp_path / "gemini.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(GeminiConfigError, match="valid JSON"):
            GeminiSettings.from_file(str(path))
