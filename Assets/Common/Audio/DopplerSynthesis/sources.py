# Created on 2026-10-18
# Author: nullptr
# Description: Noise and tone generators used by the beat and background renderers.
"""Noise and tone generators."""
from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np
from scipy import signal as scipy_signal

from .constants import DEFAULT_SAMPLE_RATE, DTYPE, EPS, PINK_METHODS
from .filters import _NYQUIST_SAFETY, _bandpass_biquad_coeff, _biquad_process

__all__ = [
    "white_noise",
    "band_noise",
    "pink_noise",
    "tonal_partials",
    "DEFAULT_BAND_COMPONENTS",
]

DEFAULT_BAND_COMPONENTS = 8
_MIN_BAND_COMPONENTS = 1

# Paul Kellet の "refined" ピンクノイズ係数 (pole, gain)
_KELLET_POLES: Tuple[Tuple[float, float], ...] = (
    (0.99886, 0.0555179),
    (0.99332, 0.0750759),
    (0.96900, 0.1538520),
    (0.86650, 0.3104856),
    (0.55000, 0.5329522),
    (-0.7616, -0.0168980),
)
_KELLET_DIRECT_GAIN = 0.5362
_KELLET_DELAYED_GAIN = 0.115926

_OCTAVE_COUNT = 8
_OCTAVE_BASE_HZ = 50.0
_OCTAVE_Q = 1.0


def white_noise(n: int, rng: np.random.Generator) -> np.ndarray:
    """Uniform white noise in ``[-1, 1]``."""
    if n <= 0:
        return np.zeros(0, dtype=DTYPE)
    return rng.uniform(-1.0, 1.0, int(n)).astype(DTYPE)


def band_noise(
    t: np.ndarray,
    lowHz: float,
    highHz: float,
    sr: int,
    rng: np.random.Generator,
    *,
    components: int = DEFAULT_BAND_COMPONENTS,
) -> np.ndarray:
    """Approximate band-limited noise with a few randomly placed sines.

    Frequencies are drawn uniformly from ``[lowHz, highHz]`` (kept below
    Nyquist) with random phases, and the sum is divided by the component count
    so the result stays inside ``[-1, 1]``.

    Args:
        t: Sample times in seconds.
        lowHz: Lower band edge.
        highHz: Upper band edge.
        sr: Sample rate used to bound the band.
        rng: Random source for frequencies and phases.
        components: Number of sine components.
    """
    t = np.asarray(t, dtype=np.float64)
    if t.size == 0:
        return np.zeros(0, dtype=DTYPE)

    components = max(int(components), _MIN_BAND_COMPONENTS)
    ceiling = float(sr) * _NYQUIST_SAFETY if sr > 0 else float(highHz)
    lo = float(min(max(lowHz, 0.0), ceiling))
    hi = float(min(max(highHz, lo), ceiling))

    freqs = rng.uniform(lo, hi, components)
    phases = rng.uniform(0.0, 2.0 * np.pi, components)
    waves = np.sin(2.0 * np.pi * np.outer(t, freqs) + phases)
    return (waves.sum(axis=1) / components).astype(DTYPE)


def _kellet_pink(white: np.ndarray) -> np.ndarray:
    out = _KELLET_DIRECT_GAIN * white
    for pole, gain in _KELLET_POLES:
        out = out + scipy_signal.lfilter([gain], [1.0, -pole], white)
    delayed = np.zeros_like(white)
    delayed[1:] = white[:-1]
    return out + _KELLET_DELAYED_GAIN * delayed


def _octave_pink(white: np.ndarray, sr: int) -> np.ndarray:
    out = np.zeros_like(white)
    for k in range(_OCTAVE_COUNT):
        center = _OCTAVE_BASE_HZ * (2.0 ** k)
        if center >= sr * _NYQUIST_SAFETY:
            break
        b0, b1, b2, a1, a2 = _bandpass_biquad_coeff(center, _OCTAVE_Q, sr)
        out += _biquad_process(white, b0, b1, b2, a1, a2) / np.sqrt(k + 1.0)
    return out


def pink_noise(
    n: int,
    rng: np.random.Generator,
    *,
    sr: Optional[int] = None,
    method: str = "kellet",
) -> np.ndarray:
    """Generate ``n`` samples of pink-ish noise normalised to unit peak.

    ``method`` selects the Paul Kellet recursive filter (``"kellet"``) or a sum
    of eight octave band-passes weighted by ``1/sqrt(k+1)`` (``"octave"``).
    Filter state starts from zero on every call.
    """
    if n <= 0:
        return np.zeros(0, dtype=DTYPE)
    if method not in PINK_METHODS:
        raise ValueError(f"Unknown pink noise method '{method}'. Available: {', '.join(PINK_METHODS)}")

    white = rng.uniform(-1.0, 1.0, int(n))
    if method == "octave":
        pink = _octave_pink(white.astype(DTYPE), sr if sr and sr > 0 else DEFAULT_SAMPLE_RATE)
    else:
        pink = _kellet_pink(white)

    peak = float(np.max(np.abs(pink)))
    if peak > EPS:
        pink = pink / peak
    return np.asarray(pink, dtype=DTYPE)


def tonal_partials(
    t: np.ndarray,
    fundamentalRange: Tuple[float, float],
    ratios: Sequence[float],
    weights: Sequence[float],
    rng: np.random.Generator,
) -> np.ndarray:
    """Sum of harmonic-ish partials over a random fundamental, normalised by weight."""
    t = np.asarray(t, dtype=np.float64)
    if t.size == 0 or not ratios:
        return np.zeros(t.size, dtype=DTYPE)

    lo, hi = fundamentalRange
    f0 = rng.uniform(min(lo, hi), max(lo, hi))
    weights = np.asarray(weights[:len(ratios)], dtype=np.float64)
    if weights.size < len(ratios):
        weights = np.pad(weights, (0, len(ratios) - weights.size), constant_values=weights[-1] if weights.size else 1.0)
    total = float(np.sum(np.abs(weights)))
    if total <= EPS:
        return np.zeros(t.size, dtype=DTYPE)

    freqs = f0 * np.asarray(ratios, dtype=np.float64)
    phases = rng.uniform(0.0, 2.0 * np.pi, len(ratios))
    waves = np.sin(2.0 * np.pi * np.outer(t, freqs) + phases)
    return ((waves @ weights) / total).astype(DTYPE)
