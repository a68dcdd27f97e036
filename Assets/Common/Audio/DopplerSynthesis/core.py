# Created on 2026-10-18
# Author: nullptr
# Description: Core numeric helpers shared across the heartbeat synthesis modules.
"""Core numeric helpers shared across the synthesis modules."""
from __future__ import annotations

import math
from typing import Optional

import numpy as np

from .constants import DTYPE, EPS, PEAK_DEFAULT

__all__ = [
    "_clamp",
    "_ms_to_samples",
    "_db_to_lin",
    "_ensure_array",
    "_peak",
    "_normalize_peak",
    "_resolve_rng",
    "_is_positive_finite",
]


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _ms_to_samples(ms: float, sr: int) -> int:
    """Convert milliseconds to a number of samples (floor, min 0)."""
    if ms <= 0:
        return 0
    return int(sr * (ms / 1000.0))


def _db_to_lin(db: float) -> float:
    """Convert dB to linear gain."""
    return 10.0 ** (db / 20.0)


def _ensure_array(x: np.ndarray, *, dtype=DTYPE) -> np.ndarray:
    """Ensure ``x`` is an ndarray of the requested dtype."""
    x = np.asarray(x)
    if x.dtype != dtype:
        return x.astype(dtype, copy=False)
    return x


def _is_positive_finite(value: Optional[float]) -> bool:
    if value is None:
        return False
    try:
        value = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(value) and value > 0.0


def _peak(sig: np.ndarray) -> float:
    if sig.size == 0:
        return 0.0
    return float(np.max(np.abs(sig)))


def _normalize_peak(sig: np.ndarray, target: float = PEAK_DEFAULT) -> np.ndarray:
    """Scale ``sig`` down so its peak does not exceed ``target``.

    Silent (all-zero) and already quiet buffers are returned unchanged.
    """
    sig = _ensure_array(sig)
    peak = _peak(sig)
    if peak <= EPS or peak <= target:
        return sig
    return (sig * (target / peak)).astype(DTYPE, copy=False)


def _resolve_rng(
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> np.random.Generator:
    """Return ``rng`` when given, otherwise a generator seeded with ``seed``."""
    if rng is not None:
        return rng
    return np.random.default_rng(seed)
