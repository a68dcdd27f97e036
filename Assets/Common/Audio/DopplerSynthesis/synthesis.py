# Created on 2026-10-18
# Author: nullptr
# Description: Public entry points tying scheduling, rendering, processing and encoding together.
"""High-level heartbeat synthesis routines."""
from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from .AcousticPresets import build_acoustic_profile
from .constants import (
    DEFAULT_CHANNEL_COUNT,
    DEFAULT_DURATION_SECONDS,
    DEFAULT_SAMPLE_RATE,
    DTYPE,
    AcousticProfile,
)
from .core import _is_positive_finite, _resolve_rng
from .io import encode_wav
from .processing import post_process
from .rendering import render_background, render_beats
from .scheduler import BeatEvent, BeatPlan, schedule_beats

__all__ = [
    "SynthesisOptions",
    "SynthesisResult",
    "RenderedAudio",
    "render_buffer",
    "synthesize",
    "synthesize_to_wav",
]

logger = logging.getLogger(__name__)

_MIN_CHANNELS = 1
_MAX_CHANNELS = 2
WAV_MIME_TYPE = "audio/wav"


@dataclass(frozen=True)
class SynthesisOptions:
    """Inputs for one synthesis call."""

    bpm: float
    durationSeconds: float = DEFAULT_DURATION_SECONDS
    sampleRate: int = DEFAULT_SAMPLE_RATE
    channelCount: int = DEFAULT_CHANNEL_COUNT
    watermarked: bool = False
    beatPlan: Optional[Sequence[BeatEvent]] = None
    acousticProfile: Optional[AcousticProfile] = None
    seed: Optional[int] = None


@dataclass(frozen=True)
class RenderedAudio:
    """Post-processed float buffer and the settings that produced it."""

    samples: np.ndarray
    sampleRate: int
    durationSeconds: float
    plan: BeatPlan
    profile: AcousticProfile

    @property
    def channelCount(self) -> int:
        return int(self.samples.shape[0])

    @property
    def sampleCount(self) -> int:
        return int(self.samples.shape[-1])


@dataclass(frozen=True)
class SynthesisResult:
    """Encoded WAV bytes plus metadata describing how they were produced."""

    wavBytes: bytes
    durationSeconds: float
    bpm: float
    byteLength: int
    sampleRate: int
    channelCount: int
    beatCount: int
    usedExplicitPlan: bool
    hasDoublePulse: bool
    watermarked: bool
    profileName: str

    @property
    def mimeType(self) -> str:
        return WAV_MIME_TYPE

    @property
    def suggestedFilename(self) -> str:
        label = int(round(self.bpm)) if math.isfinite(self.bpm) else 0
        return f"heartbeat-{label}bpm.wav"


def _resolve_settings(options: SynthesisOptions) -> Tuple[int, float, int]:
    if _is_positive_finite(options.sampleRate):
        sr = int(round(options.sampleRate))
    else:
        logger.warning("Invalid sample rate %r; using %d Hz", options.sampleRate, DEFAULT_SAMPLE_RATE)
        sr = DEFAULT_SAMPLE_RATE

    if _is_positive_finite(options.durationSeconds):
        duration = float(options.durationSeconds)
    else:
        logger.warning("Non-positive duration %r; rendering an empty clip", options.durationSeconds)
        duration = 0.0

    try:
        requested = int(options.channelCount)
    except (TypeError, ValueError):
        requested = DEFAULT_CHANNEL_COUNT
    channels = max(_MIN_CHANNELS, min(_MAX_CHANNELS, requested))
    if channels != options.channelCount:
        logger.warning("Channel count %r clamped to %d", options.channelCount, channels)
    return sr, duration, channels


def render_buffer(
    options: SynthesisOptions,
    *,
    rng: Optional[np.random.Generator] = None,
) -> RenderedAudio:
    """Render and post-process the float buffer described by ``options``.

    Args:
        options: Synthesis inputs.
        rng: Random source; when omitted a generator seeded with
            ``options.seed`` is created.
    """
    rng = _resolve_rng(rng, options.seed)
    sr, duration, channels = _resolve_settings(options)
    profile = options.acousticProfile or build_acoustic_profile()

    plan = schedule_beats(options.bpm, duration, options.beatPlan, profile=profile, rng=rng)
    n = int(round(sr * duration))
    buffer = np.zeros((channels, n), dtype=DTYPE)

    for ch in range(channels):
        render_background(buffer, sr, duration, plan, profile, ch, rng=rng)
        render_beats(buffer, sr, plan, profile, ch, rng=rng)

    processed = post_process(buffer, sr, profile, watermarked=options.watermarked)
    logger.debug(
        "Rendered %d x %d samples (%s plan, %d beats, profile=%s)",
        channels,
        n,
        "explicit" if plan.explicit else "algorithmic",
        len(plan),
        profile.name,
    )
    return RenderedAudio(processed, sr, duration, plan, profile)


def synthesize(
    options: SynthesisOptions,
    *,
    rng: Optional[np.random.Generator] = None,
) -> SynthesisResult:
    """Render ``options`` to WAV bytes. No file or network I/O is performed."""
    rendered = render_buffer(options, rng=rng)
    wav = encode_wav(rendered.samples, rendered.sampleRate)
    return SynthesisResult(
        wavBytes=wav,
        durationSeconds=rendered.durationSeconds,
        bpm=float(options.bpm),
        byteLength=len(wav),
        sampleRate=rendered.sampleRate,
        channelCount=rendered.channelCount,
        beatCount=len(rendered.plan),
        usedExplicitPlan=rendered.plan.explicit,
        hasDoublePulse=rendered.plan.hasDoublePulse,
        watermarked=bool(options.watermarked),
        profileName=rendered.profile.name,
    )


def synthesize_to_wav(
    path: str,
    options: SynthesisOptions,
    *,
    rng: Optional[np.random.Generator] = None,
) -> Tuple[str, SynthesisResult]:
    """Synthesize ``options`` and write the WAV to ``path``."""
    result = synthesize(options, rng=rng)
    with open(path, "wb") as fh:
        fh.write(result.wavBytes)
    return os.path.abspath(path), result
