# Created on 2026-10-18
# Author: nullptr
# Description: Post processing chain applied to the rendered heartbeat buffer.
"""Post processing stages.

The chain runs band shaping, the optional short reverb, compression with a
``tanh`` safety limiter, the optional watermark and finally peak
normalisation. Every stage accepts and returns a ``(channels, samples)`` array.
"""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .constants import (
    DTYPE,
    EPS,
    PEAK_DEFAULT,
    WATERMARK_AMPLITUDE,
    WATERMARK_DURATION_SECONDS,
    WATERMARK_FADE_SECONDS,
    WATERMARK_FREQUENCY_HZ,
    AcousticProfile,
    DynamicsProfile,
    FilterProfile,
    ReverbProfile,
)
from .core import _ensure_array, _ms_to_samples, _normalize_peak, _peak
from .filters import (
    _BUTTERWORTH_Q,
    _NYQUIST_SAFETY,
    _biquad_process,
    _highpass_biquad_coeff,
    _lowpass_biquad_coeff,
    _peaking_biquad_coeff,
)

__all__ = [
    "apply_band_shaping",
    "apply_short_reverb",
    "apply_dynamics",
    "apply_watermark",
    "normalize_peak",
    "post_process",
]

logger = logging.getLogger(__name__)

_WATERMARK_MAX_RATIO = 0.45


def apply_band_shaping(
    buffer: np.ndarray,
    sr: int,
    filters: FilterProfile,
    emphasisCenterHz: Optional[float] = None,
) -> np.ndarray:
    """High-pass rumble, low-pass hiss and optionally boost the thump band."""
    out = _ensure_array(buffer)
    if out.size == 0:
        return out
    if filters.highPassHz > 0.0:
        out = _biquad_process(out, *_highpass_biquad_coeff(filters.highPassHz, _BUTTERWORTH_Q, sr))
    if 0.0 < filters.lowPassHz < sr * _NYQUIST_SAFETY:
        out = _biquad_process(out, *_lowpass_biquad_coeff(filters.lowPassHz, _BUTTERWORTH_Q, sr))
    if emphasisCenterHz and filters.emphasisDb:
        out = _biquad_process(
            out, *_peaking_biquad_coeff(emphasisCenterHz, filters.emphasisQ, filters.emphasisDb, sr)
        )
    return out


def apply_short_reverb(buffer: np.ndarray, sr: int, reverb: ReverbProfile) -> np.ndarray:
    """Add a few delayed copies and bring the peak back to its dry level."""
    dry = _ensure_array(buffer)
    n = dry.shape[-1]
    if n == 0:
        return dry
    wet = dry.astype(np.float64, copy=True)
    for delay_ms, gain in zip(reverb.delaysMs, reverb.gains):
        d = _ms_to_samples(delay_ms, sr)
        if d <= 0 or d >= n:
            continue
        wet[..., d:] += gain * dry[..., :-d]

    dry_peak = _peak(dry)
    wet_peak = _peak(wet)
    if wet_peak > EPS and dry_peak > EPS:
        wet *= dry_peak / wet_peak
    return wet.astype(DTYPE)


def apply_dynamics(buffer: np.ndarray, dynamics: DynamicsProfile) -> np.ndarray:
    """Compress above ``threshold`` by ``ratio``, apply makeup gain, then ``tanh``."""
    x = _ensure_array(buffer).astype(np.float64)
    threshold = max(dynamics.threshold, 0.0)
    ratio = max(dynamics.ratio, 1.0)
    mag = np.abs(x)
    compressed = np.where(mag > threshold, threshold + (mag - threshold) / ratio, mag)
    out = np.tanh(np.sign(x) * compressed * dynamics.makeupGain)
    return out.astype(DTYPE)


def apply_watermark(
    buffer: np.ndarray,
    sr: int,
    *,
    frequencyHz: float = WATERMARK_FREQUENCY_HZ,
    amplitude: float = WATERMARK_AMPLITUDE,
    durationSeconds: float = WATERMARK_DURATION_SECONDS,
    fadeSeconds: float = WATERMARK_FADE_SECONDS,
) -> np.ndarray:
    """Superimpose a faded high-frequency tone at the start of every channel."""
    out = _ensure_array(buffer).copy()
    total = out.shape[-1]
    n = min(int(round(durationSeconds * sr)), total)
    if n <= 0:
        return out

    freq = min(frequencyHz, sr * _WATERMARK_MAX_RATIO)
    t = np.arange(n, dtype=np.float64) / sr
    tone = amplitude * np.sin(2.0 * np.pi * freq * t)
    fade = min(int(round(fadeSeconds * sr)), n // 2)
    if fade > 0:
        ramp = np.linspace(0.0, 1.0, fade)
        tone[:fade] *= ramp
        tone[n - fade:] *= ramp[::-1]
    out[..., :n] += tone.astype(DTYPE)
    return out


def normalize_peak(buffer: np.ndarray, ceiling: float = PEAK_DEFAULT) -> np.ndarray:
    """Scale the whole buffer down to ``ceiling`` when its peak exceeds it.

    The peak is taken across all channels so their balance is kept. Silent
    buffers are returned untouched.
    """
    out = _ensure_array(buffer)
    peak = _peak(out)
    if peak > ceiling:
        logger.debug("Normalising peak %.4f to %.2f", peak, ceiling)
    return _normalize_peak(out, ceiling)


def post_process(
    buffer: np.ndarray,
    sr: int,
    profile: AcousticProfile,
    *,
    watermarked: bool = False,
) -> np.ndarray:
    """Run the full conditioning chain in order."""
    out = apply_band_shaping(buffer, sr, profile.filters, profile.tone.thumpBand.centerHz)
    if profile.reverb is not None:
        out = apply_short_reverb(out, sr, profile.reverb)
    out = apply_dynamics(out, profile.dynamics)
    if watermarked:
        out = apply_watermark(out, sr)
    return normalize_peak(out)
