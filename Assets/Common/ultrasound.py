# Created on 2026-10-18
# Author: nullptr
# Description: Gemini-backed ultrasound image analysis feeding the heartbeat synthesiser.
"""Ultrasound image analysis via Gemini vision.

The analyzer asks the model for a JSON object with the displayed heart rate and
a few qualitative audio descriptors, validates the answer, and maps it onto
:class:`SynthesisOptions`. Request or parsing failures degrade to a text
extraction or to a default analysis so synthesis can always proceed.
"""
from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from google.genai import types

from Assets.Common.Audio.DopplerSynthesis import (
    AcousticProfile,
    BandRange,
    SynthesisOptions,
    build_acoustic_profile,
    plan_from_timings,
)
from Assets.Common.Audio.DopplerSynthesis.constants import (
    DEFAULT_CHANNEL_COUNT,
    DEFAULT_DURATION_SECONDS,
    DEFAULT_SAMPLE_RATE,
)
from Assets.Common.gemini import (
    GeminiConfigError,
    build_generate_config,
    get_gemini_client,
    resolve_model,
)

logger = logging.getLogger(__name__)

DEFAULT_BPM = 140.0
MIN_DISPLAYED_BPM = 100.0
MAX_DISPLAYED_BPM = 200.0
DEFAULT_CONFIDENCE = 0.5
TEXT_CONFIDENCE = 0.6
FALLBACK_CONFIDENCE = 0.3
DEFAULT_MIME_TYPE = "image/jpeg"

_BPM_TEXT_PATTERN = re.compile(r"(\d{3})\s*(?:BPM|beats?)", re.IGNORECASE)
_JSON_BLOCK_PATTERN = re.compile(r"\{.*\}", re.DOTALL)

_RHYTHMS = ("regular", "irregular", "variable")
_CLARITIES = ("clear", "moderate", "faint")
_NOISE_LEVELS = ("low", "medium", "high")
_DOPPLER_LEVELS = ("strong", "moderate", "weak")

_NOISE_FLOOR_SCALE = {"low": 0.6, "medium": 1.0, "high": 1.5}
_RHYTHM_JITTER_SCALE = {"regular": 1.0, "variable": 1.25, "irregular": 1.5}
_DOPPLER_HISS_SCALE = {"strong": 1.3, "moderate": 1.0, "weak": 0.7}
_CLARITY_WHITE_SCALE = {"clear": 0.6, "moderate": 1.0, "faint": 1.4}

ANALYSIS_PROMPT = """Analyze this fetal ultrasound image and extract the following information:

1. Look for any text that shows heart rate or BPM (like "FHR 155bpm", "HR 140", "BPM 150").
2. If you find a heart rate, extract the exact number.
3. If an M-mode or Doppler trace is visible, estimate beat times in seconds from the left edge.
4. Analyze the image quality and characteristics.

Respond in this exact JSON format:
{
  "bpm": number (the heart rate you found, or 140 if not found),
  "confidence": number (0-1, how confident you are in the BPM),
  "beatTimesSec": [numbers] or null,
  "amplitudeScalars": [numbers 0-1] or null,
  "doublePulseOffsetMs": number or null,
  "audioCharacteristics": {
    "systolicIntensity": 0.8,
    "diastolicIntensity": 0.6,
    "frequencyRange": {
      "systolic": {"min": 900, "max": 1100},
      "diastolic": {"min": 650, "max": 800}
    },
    "rhythm": "regular",
    "clarity": "moderate",
    "backgroundNoise": "medium",
    "dopplerEffect": "moderate"
  },
  "analysis": "description of what you found",
  "recommendations": ["use standard fetal heartbeat characteristics"]
}

If you cannot determine specific values, provide reasonable estimates based on typical fetal heart characteristics."""


@dataclass(frozen=True)
class AudioCharacteristics:
    """Qualitative audio descriptors inferred from the image."""

    systolicIntensity: float = 0.8
    diastolicIntensity: float = 0.6
    systolicRange: Tuple[float, float] = (900.0, 1100.0)
    diastolicRange: Tuple[float, float] = (650.0, 800.0)
    rhythm: str = "regular"
    clarity: str = "moderate"
    backgroundNoise: str = "medium"
    dopplerEffect: str = "moderate"


@dataclass(frozen=True)
class UltrasoundAnalysis:
    """Result of analysing one ultrasound image."""

    bpm: float = DEFAULT_BPM
    confidence: float = FALLBACK_CONFIDENCE
    beatTimesSec: Optional[Tuple[float, ...]] = None
    amplitudeScalars: Optional[Tuple[float, ...]] = None
    doublePulseOffsetMs: Optional[float] = None
    audioCharacteristics: Optional[AudioCharacteristics] = field(default_factory=AudioCharacteristics)
    analysis: str = ""
    recommendations: Tuple[str, ...] = ()
    source: str = "default"


def default_analysis(reason: str = "Using typical fetal heart characteristics") -> UltrasoundAnalysis:
    """Return the analysis used when the image could not be analysed."""
    return UltrasoundAnalysis(
        bpm=DEFAULT_BPM,
        confidence=FALLBACK_CONFIDENCE,
        analysis=reason,
        recommendations=("Use standard fetal heartbeat characteristics",),
        source="default",
    )


def _number(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number == 0.0:
        return default
    return number


def _bounded(value: Any, default: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, _number(value, default)))


def _choice(value: Any, allowed: Sequence[str], default: str) -> str:
    text = str(value or "").strip().lower()
    return text if text in allowed else default


def _number_list(value: Any) -> Optional[Tuple[float, ...]]:
    if not isinstance(value, (list, tuple)) or not value:
        return None
    numbers: List[float] = []
    for item in value:
        try:
            number = float(item)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(number):
            return None
        numbers.append(number)
    return tuple(numbers)


def _optional_number(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) and number > 0.0 else None


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def validate_bpm(value: Any) -> float:
    """Clamp a displayed heart rate to the plausible fetal range."""
    return _bounded(value, DEFAULT_BPM, MIN_DISPLAYED_BPM, MAX_DISPLAYED_BPM)


def _characteristics_from(payload: Mapping[str, Any]) -> AudioCharacteristics:
    freq = _mapping(payload.get("frequencyRange"))
    systolic = _mapping(freq.get("systolic"))
    diastolic = _mapping(freq.get("diastolic"))
    return AudioCharacteristics(
        systolicIntensity=_bounded(payload.get("systolicIntensity"), 0.8, 0.0, 1.0),
        diastolicIntensity=_bounded(payload.get("diastolicIntensity"), 0.6, 0.0, 1.0),
        systolicRange=(
            _bounded(systolic.get("min"), 900.0, 800.0, 1200.0),
            _bounded(systolic.get("max"), 1100.0, 1000.0, 1400.0),
        ),
        diastolicRange=(
            _bounded(diastolic.get("min"), 650.0, 600.0, 900.0),
            _bounded(diastolic.get("max"), 800.0, 700.0, 1000.0),
        ),
        rhythm=_choice(payload.get("rhythm"), _RHYTHMS, "regular"),
        clarity=_choice(payload.get("clarity"), _CLARITIES, "moderate"),
        backgroundNoise=_choice(payload.get("backgroundNoise"), _NOISE_LEVELS, "medium"),
        dopplerEffect=_choice(payload.get("dopplerEffect"), _DOPPLER_LEVELS, "moderate"),
    )


def analysis_from_payload(payload: Mapping[str, Any]) -> UltrasoundAnalysis:
    """Validate a decoded JSON answer and fill in defaults."""
    recommendations = payload.get("recommendations")
    if isinstance(recommendations, list):
        recommendations = tuple(str(item) for item in recommendations)
    else:
        recommendations = ("Use moderate intensity for authentic sound",)
    chars = payload.get("audioCharacteristics")
    return UltrasoundAnalysis(
        bpm=validate_bpm(payload.get("bpm")),
        confidence=_bounded(payload.get("confidence"), DEFAULT_CONFIDENCE, 0.0, 1.0),
        beatTimesSec=_number_list(payload.get("beatTimesSec")),
        amplitudeScalars=_number_list(payload.get("amplitudeScalars")),
        doublePulseOffsetMs=_optional_number(payload.get("doublePulseOffsetMs")),
        audioCharacteristics=_characteristics_from(chars if isinstance(chars, Mapping) else {}),
        analysis=str(payload.get("analysis") or "Gemini analysis completed"),
        recommendations=recommendations,
        source="gemini",
    )


def analysis_from_text(text: str) -> UltrasoundAnalysis:
    """Pull a ``NNN bpm`` figure out of free text."""
    match = _BPM_TEXT_PATTERN.search(text)
    bpm = validate_bpm(match.group(1)) if match else DEFAULT_BPM
    return UltrasoundAnalysis(
        bpm=bpm,
        confidence=TEXT_CONFIDENCE,
        analysis=text,
        recommendations=("Use extracted BPM for audio generation",),
        source="text",
    )


def parse_analysis_payload(text: str) -> UltrasoundAnalysis:
    """Parse the model's answer, falling back to text extraction."""
    candidates = [text]
    block = _JSON_BLOCK_PATTERN.search(text)
    if block and block.group(0) != text:
        candidates.append(block.group(0))
    for candidate in candidates:
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(payload, dict):
            return analysis_from_payload(payload)
    logger.warning("Gemini answer was not valid JSON; extracting BPM from text.")
    return analysis_from_text(text)


class UltrasoundAnalyzer:
    """Send ultrasound images to Gemini and interpret the answer."""

    def __init__(self, client: Any = None, model: Optional[str] = None,
                 config: Optional[types.GenerateContentConfig] = None) -> None:
        self._client = client
        self.model = resolve_model(model)
        self._config = config or build_generate_config()

    def _ensure_client(self) -> Any:
        if self._client is None:
            self._client = get_gemini_client()
        return self._client

    def analyze(self, imageBytes: bytes, mimeType: str = DEFAULT_MIME_TYPE) -> UltrasoundAnalysis:
        """Analyse one image.

        Raises:
            GeminiConfigError: When no API key is configured.
        """
        client = self._ensure_client()
        try:
            response = client.models.generate_content(
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=imageBytes, mime_type=mimeType),
                    ANALYSIS_PROMPT,
                ],
                config=self._config,
            )
        except GeminiConfigError:
            raise
        except Exception:
            logger.exception("Gemini ultrasound analysis failed.")
            return default_analysis("Gemini request failed; using typical fetal heart characteristics")

        text = getattr(response, "text", None) or ""
        if not text.strip():
            logger.warning("Gemini returned an empty answer.")
            return default_analysis("Empty Gemini answer; using typical fetal heart characteristics")
        return parse_analysis_payload(text)


def profile_from_characteristics(
    chars: AudioCharacteristics,
    base: Optional[AcousticProfile] = None,
) -> AcousticProfile:
    """Adjust ``base`` to the qualitative descriptors."""
    base = base or build_acoustic_profile()
    tone = base.tone
    hiss_low = min(chars.diastolicRange[0], chars.systolicRange[0])
    hiss_high = max(chars.diastolicRange[1], chars.systolicRange[1])
    tone = replace(
        tone,
        hissBand=BandRange(hiss_low, hiss_high),
        hissWeight=tone.hissWeight * _DOPPLER_HISS_SCALE[chars.dopplerEffect],
        whiteWeight=tone.whiteWeight * _CLARITY_WHITE_SCALE[chars.clarity],
    )

    pulse = base.doublePulse
    if chars.systolicIntensity > 0.0:
        loudness = max(0.4, min(0.9, chars.diastolicIntensity / chars.systolicIntensity))
        pulse = replace(pulse, relativeLoudness=loudness)

    floor = base.background.floorLevel * _NOISE_FLOOR_SCALE[chars.backgroundNoise]
    background = replace(base.background, floorLevel=max(0.004, min(0.02, floor)))
    jitter = min(base.schedule.jitterMs * _RHYTHM_JITTER_SCALE[chars.rhythm], 40.0)
    schedule = replace(base.schedule, jitterMs=jitter)

    return replace(base, tone=tone, doublePulse=pulse, background=background, schedule=schedule)


def analysis_to_options(
    analysis: UltrasoundAnalysis,
    *,
    durationSeconds: float = DEFAULT_DURATION_SECONDS,
    sampleRate: int = DEFAULT_SAMPLE_RATE,
    channelCount: int = DEFAULT_CHANNEL_COUNT,
    watermarked: bool = False,
    baseProfile: Optional[AcousticProfile] = None,
    seed: Optional[int] = None,
) -> SynthesisOptions:
    """Map an analysis onto :class:`SynthesisOptions`."""
    profile = baseProfile or build_acoustic_profile()
    if analysis.audioCharacteristics is not None:
        profile = profile_from_characteristics(analysis.audioCharacteristics, profile)

    beat_plan = None
    if analysis.beatTimesSec:
        beat_plan = plan_from_timings(
            analysis.beatTimesSec,
            analysis.amplitudeScalars,
            analysis.doublePulseOffsetMs,
            durationSeconds=durationSeconds,
            profile=profile,
        ).events or None

    return SynthesisOptions(
        bpm=analysis.bpm,
        durationSeconds=durationSeconds,
        sampleRate=sampleRate,
        channelCount=channelCount,
        watermarked=watermarked,
        beatPlan=beat_plan,
        acousticProfile=profile,
        seed=seed,
    )


def describe_analysis(analysis: UltrasoundAnalysis) -> Dict[str, Any]:
    """Flatten an analysis for logging or CLI output."""
    return {
        "bpm": analysis.bpm,
        "confidence": analysis.confidence,
        "source": analysis.source,
        "beats": len(analysis.beatTimesSec or ()),
        "doublePulseOffsetMs": analysis.doublePulseOffsetMs,
        "analysis": analysis.analysis,
    }
