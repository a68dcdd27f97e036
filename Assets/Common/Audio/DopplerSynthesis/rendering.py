# Created on 2026-10-18
# Author: nullptr
# Description: Beat pulse and background texture renderers writing into the PCM buffer.
"""Beat and background renderers.

Both renderers operate on a ``(channels, samples)`` float buffer owned by one
synthesis call. The background renderer assigns every sample of its channel
and must run first; the beat renderer only ever adds into the buffer.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

import numpy as np

from .constants import DTYPE, EPS, AcousticProfile, EnvelopeProfile, ToneProfile
from .core import _ms_to_samples, _resolve_rng
from .envelope import envelope_for_profile
from .scheduler import BeatPlan
from .sources import band_noise, pink_noise, tonal_partials, white_noise

__all__ = [
    "render_beat",
    "render_beats",
    "render_background",
    "distance_to_nearest_beat",
    "beat_gate",
]

logger = logging.getLogger(__name__)


def distance_to_nearest_beat(t: np.ndarray, times: np.ndarray) -> np.ndarray:
    """Distance in seconds from each ``t`` to the closest onset in sorted ``times``.

    With no onsets every distance is infinite.
    """
    t = np.asarray(t, dtype=np.float64)
    times = np.asarray(times, dtype=np.float64)
    if times.size == 0:
        return np.full(t.shape, np.inf)
    idx = np.searchsorted(times, t)
    left = times[np.clip(idx - 1, 0, times.size - 1)]
    right = times[np.clip(idx, 0, times.size - 1)]
    return np.minimum(np.abs(t - left), np.abs(right - t))


def beat_gate(distance: np.ndarray, widthSeconds: float, floor: float, curve: float = 1.0) -> np.ndarray:
    """Map distance-to-beat onto a gain in ``[floor, 1]``.

    Inside ``widthSeconds`` the gain ramps as ``floor + (1 - floor) * (1 - d/w) ** curve``;
    outside it stays at ``floor``.
    """
    distance = np.asarray(distance, dtype=np.float64)
    floor = float(np.clip(floor, 0.0, 1.0))
    if widthSeconds <= 0.0:
        return np.full(distance.shape, floor)
    ramp = np.clip(1.0 - distance / widthSeconds, 0.0, 1.0) ** max(curve, EPS)
    return floor + (1.0 - floor) * ramp


def _pulse_content(n: int, sr: int, tone: ToneProfile, rng: np.random.Generator) -> np.ndarray:
    t = np.arange(n, dtype=np.float64) / sr
    weights = (tone.thumpWeight, tone.hissWeight, tone.partialWeight, tone.whiteWeight)
    total = float(sum(abs(w) for w in weights))
    if total <= EPS:
        return np.zeros(n, dtype=DTYPE)

    mix = np.zeros(n, dtype=np.float64)
    if tone.thumpWeight:
        mix += tone.thumpWeight * band_noise(
            t, tone.thumpBand.lowHz, tone.thumpBand.highHz, sr, rng, components=tone.bandComponents
        )
    if tone.hissWeight:
        mix += tone.hissWeight * band_noise(
            t, tone.hissBand.lowHz, tone.hissBand.highHz, sr, rng, components=tone.bandComponents
        )
    if tone.partialWeight:
        mix += tone.partialWeight * tonal_partials(
            t, tone.fundamentalRange, tone.partialRatios, tone.partialWeights, rng
        )
    if tone.whiteWeight:
        mix += tone.whiteWeight * white_noise(n, rng)
    return (mix / total).astype(DTYPE)


def _add_pulse(
    row: np.ndarray,
    start: int,
    sr: int,
    gain: float,
    tone: ToneProfile,
    envelope: EnvelopeProfile,
    rng: np.random.Generator,
) -> int:
    env = envelope_for_profile(envelope, sr, rng)
    n = env.size
    total = row.shape[-1]
    if n == 0 or start >= total or start + n <= 0:
        return 0
    pulse = _pulse_content(n, sr, tone, rng) * env * gain
    lo = max(start, 0)
    hi = min(start + n, total)
    row[lo:hi] += pulse[lo - start:hi - start]
    return hi - lo


def render_beat(
    buffer: np.ndarray,
    onsetTimeSec: float,
    sr: int,
    amplitude: float,
    profile: AcousticProfile,
    channelIndex: int = 0,
    *,
    rng: Optional[np.random.Generator] = None,
    secondaryOffsetMs: Optional[float] = None,
    secondaryAmplitude: Optional[float] = None,
) -> int:
    """Add one beat (and its optional secondary pulse) into ``buffer``.

    The pulse starts at ``round(onsetTimeSec * sr)`` plus the channel's stereo
    delay and lasts attack+sustain+decay of the primary envelope. Samples that
    fall outside the buffer are skipped. Returns the number of samples written.

    Args:
        buffer: ``(channels, samples)`` array modified in place.
        onsetTimeSec: Primary onset time.
        sr: Sample rate.
        amplitude: Beat amplitude scalar in ``[0, 1]``.
        profile: Acoustic profile with tone, envelopes and stereo gains.
        channelIndex: Target channel row.
        rng: Random source for the noise content.
        secondaryOffsetMs: Offset of the secondary pulse, if any.
        secondaryAmplitude: Secondary amplitude; defaults to the profile's
            relative loudness times ``amplitude``.
    """
    rng = _resolve_rng(rng)
    row = buffer[channelIndex]
    stereo = profile.stereo
    tone = profile.tone
    delay = _ms_to_samples(stereo.delay_ms(channelIndex), sr)
    channel_gain = stereo.gain(channelIndex) * tone.beatGain

    start = int(round(onsetTimeSec * sr)) + delay
    written = _add_pulse(row, start, sr, amplitude * channel_gain, tone, profile.primaryEnvelope, rng)

    if secondaryOffsetMs is not None:
        if secondaryAmplitude is None:
            secondaryAmplitude = amplitude * profile.doublePulse.relativeLoudness
        brightness = profile.doublePulse.brightness
        bright = replace(
            tone,
            thumpBand=tone.thumpBand.shifted(brightness),
            hissBand=tone.hissBand.shifted(brightness),
        )
        secondary_start = int(round((onsetTimeSec + secondaryOffsetMs / 1000.0) * sr)) + delay
        written += _add_pulse(
            row,
            secondary_start,
            sr,
            secondaryAmplitude * channel_gain,
            bright,
            profile.secondaryEnvelope,
            rng,
        )
    return written


def render_beats(
    buffer: np.ndarray,
    sr: int,
    plan: BeatPlan,
    profile: AcousticProfile,
    channelIndex: int = 0,
    *,
    rng: Optional[np.random.Generator] = None,
) -> int:
    """Render every event of ``plan`` into one channel."""
    rng = _resolve_rng(rng)
    written = 0
    for event in plan:
        written += render_beat(
            buffer,
            event.time,
            sr,
            event.amplitude,
            profile,
            channelIndex,
            rng=rng,
            secondaryOffsetMs=event.secondaryOffsetMs,
            secondaryAmplitude=event.secondaryAmplitude,
        )
    return written


def render_background(
    buffer: np.ndarray,
    sr: int,
    durationSeconds: float,
    plan: BeatPlan,
    profile: AcousticProfile,
    channelIndex: int = 0,
    *,
    rng: Optional[np.random.Generator] = None,
) -> None:
    """Fill one channel with the beat-gated pink-noise floor.

    Every sample of the channel is assigned, so this must run before beats are
    layered on top.
    """
    rng = _resolve_rng(rng)
    row = buffer[channelIndex]
    n = row.shape[-1]
    if n == 0:
        return
    bg = profile.background

    t = np.arange(n, dtype=np.float64) / sr
    noise = pink_noise(n, rng, sr=sr, method=bg.pinkMethod)
    phase = rng.uniform(0.0, 2.0 * np.pi)
    modulation = 1.0 + bg.modulationDepth * np.sin(2.0 * np.pi * bg.modulationRateHz * t + phase)

    delay_s = profile.stereo.delay_ms(channelIndex) / 1000.0
    distance = distance_to_nearest_beat(t, plan.times + delay_s)
    gate = beat_gate(distance, bg.gateWidthMs / 1000.0, bg.gateFloor, bg.gateCurve)

    level = bg.floorLevel * profile.stereo.gain(channelIndex)
    row[:] = (noise * modulation * gate * level).astype(DTYPE)
    logger.debug(
        "Background channel %d: %d samples over %.2fs, %d gate centres",
        channelIndex,
        n,
        durationSeconds,
        len(plan),
    )
