# Created on 2026-10-18
# Author: nullptr
# Description: Filter design and processing helpers.
"""Filter design and processing helpers."""
from __future__ import annotations

from math import cos, exp, pi, sin, sqrt
from typing import Tuple

import numpy as np
from scipy import signal as scipy_signal

from .constants import DTYPE
from .core import _db_to_lin, _ensure_array

__all__ = [
    "_bandpass_biquad_coeff",
    "_lowpass_biquad_coeff",
    "_highpass_biquad_coeff",
    "_peaking_biquad_coeff",
    "_biquad_process",
    "_one_pole_lp",
    "_NYQUIST_SAFETY",
    "_BUTTERWORTH_Q",
]

Coefficients = Tuple[float, float, float, float, float]

_RBJ_MIN_Q = 0.1
_NYQUIST_SAFETY = 0.48
_BUTTERWORTH_Q = 1.0 / sqrt(2.0)
_IDENTITY: Coefficients = (1.0, 0.0, 0.0, 0.0, 0.0)


def _limit_frequency(freq: float, sr: int) -> float:
    return float(min(max(freq, 1.0), sr * _NYQUIST_SAFETY))


def _bandpass_biquad_coeff(f0: float, Q: float, sr: int) -> Coefficients:
    """RBJ band-pass filter coefficients (constant peak gain variant)."""
    if sr <= 0 or f0 <= 0.0:
        return _IDENTITY
    w0 = 2.0 * pi * _limit_frequency(f0, sr) / sr
    alpha = sin(w0) / (2.0 * max(Q, _RBJ_MIN_Q))
    b0 = alpha
    b1 = 0.0
    b2 = -alpha
    a0 = 1.0 + alpha
    a1 = -2.0 * cos(w0)
    a2 = 1.0 - alpha
    return (b0 / a0, b1 / a0, b2 / a0, a1 / a0, a2 / a0)


def _lowpass_biquad_coeff(cutoff: float, Q: float, sr: int) -> Coefficients:
    """RBJ low-pass filter coefficients."""

    cutoff = float(max(cutoff, 0.0))
    if sr <= 0 or cutoff <= 0.0:
        return _IDENTITY
    w0 = 2.0 * pi * _limit_frequency(cutoff, sr) / sr
    alpha = sin(w0) / (2.0 * max(Q, _RBJ_MIN_Q))
    cos_w0 = cos(w0)
    b0 = (1.0 - cos_w0) * 0.5
    b1 = 1.0 - cos_w0
    b2 = (1.0 - cos_w0) * 0.5
    a0 = 1.0 + alpha
    a1 = -2.0 * cos_w0
    a2 = 1.0 - alpha
    return (b0 / a0, b1 / a0, b2 / a0, a1 / a0, a2 / a0)


def _highpass_biquad_coeff(cutoff: float, Q: float, sr: int) -> Coefficients:
    """RBJ high-pass filter coefficients."""

    cutoff = float(max(cutoff, 0.0))
    if sr <= 0 or cutoff <= 0.0:
        return _IDENTITY
    w0 = 2.0 * pi * _limit_frequency(cutoff, sr) / sr
    alpha = sin(w0) / (2.0 * max(Q, _RBJ_MIN_Q))
    cos_w0 = cos(w0)
    b0 = (1.0 + cos_w0) * 0.5
    b1 = -(1.0 + cos_w0)
    b2 = (1.0 + cos_w0) * 0.5
    a0 = 1.0 + alpha
    a1 = -2.0 * cos_w0
    a2 = 1.0 - alpha
    return (b0 / a0, b1 / a0, b2 / a0, a1 / a0, a2 / a0)


def _peaking_biquad_coeff(f0: float, Q: float, gain_db: float, sr: int) -> Coefficients:
    """RBJ peaking (bell) filter coefficients."""

    if sr <= 0 or f0 <= 0.0 or gain_db == 0.0:
        return _IDENTITY
    A = sqrt(_db_to_lin(gain_db))
    w0 = 2.0 * pi * _limit_frequency(f0, sr) / sr
    alpha = sin(w0) / (2.0 * max(Q, _RBJ_MIN_Q))
    cos_w0 = cos(w0)
    b0 = 1.0 + alpha * A
    b1 = -2.0 * cos_w0
    b2 = 1.0 - alpha * A
    a0 = 1.0 + alpha / A
    a1 = -2.0 * cos_w0
    a2 = 1.0 - alpha / A
    return (b0 / a0, b1 / a0, b2 / a0, a1 / a0, a2 / a0)


def _biquad_process(x: np.ndarray, b0: float, b1: float, b2: float, a1: float, a2: float) -> np.ndarray:
    """Run the biquad difference equation along the last axis of ``x``."""
    x = _ensure_array(x)
    if x.size == 0:
        return x
    y = scipy_signal.lfilter([b0, b1, b2], [1.0, a1, a2], x, axis=-1)
    return y.astype(DTYPE, copy=False)


def _one_pole_lp(x: np.ndarray, cutoff: float, sr: int) -> np.ndarray:
    """Simple one-pole low-pass filter."""
    x = _ensure_array(x)
    if x.size == 0 or sr <= 0 or cutoff <= 0.0:
        return x
    decay = exp(-2.0 * pi * cutoff / sr)
    y = scipy_signal.lfilter([1.0 - decay], [1.0, -decay], x, axis=-1)
    return y.astype(DTYPE, copy=False)
