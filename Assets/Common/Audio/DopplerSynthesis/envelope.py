"""Attack/sustain/decay envelopes for beat pulses."""
from __future__ import annotations

from math import exp
from typing import Optional

import numpy as np

from .constants import DTYPE, EnvelopeProfile
from .core import _clamp

__all__ = ["envelope_value", "build_envelope", "envelope_for_profile"]

DEFAULT_ATTACK_EXPONENT = 0.7
DEFAULT_DECAY_RATE = 3.5
_MAX_SUSTAIN_JITTER = 0.05


def envelope_value(
    i: int,
    attack: int,
    sustain: int,
    decay: int,
    *,
    attackExponent: float = DEFAULT_ATTACK_EXPONENT,
    decayRate: float = DEFAULT_DECAY_RATE,
) -> float:
    """Return the envelope multiplier at sample ``i`` of a pulse.

    Attack follows ``(i / attack) ** attackExponent``, sustain holds at 1.0 and
    decay falls as ``exp(-progress * decayRate)``. Indices outside the pulse
    return 0.0.
    """
    total = attack + sustain + decay
    if i < 0 or i >= total:
        return 0.0
    if i < attack:
        return (i / attack) ** attackExponent
    if i < attack + sustain:
        return 1.0
    progress = (i - attack - sustain) / decay
    return exp(-progress * decayRate)


def build_envelope(
    attack: int,
    sustain: int,
    decay: int,
    *,
    attackExponent: float = DEFAULT_ATTACK_EXPONENT,
    decayRate: float = DEFAULT_DECAY_RATE,
    sustainJitter: float = 0.0,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Vectorised :func:`envelope_value` over the whole pulse.

    When ``rng`` is supplied and ``sustainJitter`` is positive the sustain
    segment gets a small random micro-variation (at most ±5%), capped at 1.0.
    """
    attack = max(int(attack), 0)
    sustain = max(int(sustain), 0)
    decay = max(int(decay), 0)
    env = np.empty(attack + sustain + decay, dtype=np.float64)
    if env.size == 0:
        return env.astype(DTYPE)

    if attack:
        env[:attack] = (np.arange(attack, dtype=np.float64) / attack) ** attackExponent
    if sustain:
        seg = np.ones(sustain, dtype=np.float64)
        jitter = _clamp(float(sustainJitter), 0.0, _MAX_SUSTAIN_JITTER)
        if rng is not None and jitter > 0.0:
            seg = np.minimum(seg - rng.uniform(0.0, jitter, sustain), 1.0)
        env[attack:attack + sustain] = seg
    if decay:
        progress = np.arange(decay, dtype=np.float64) / decay
        env[attack + sustain:] = np.exp(-progress * decayRate)
    return env.astype(DTYPE)


def envelope_for_profile(
    profile: EnvelopeProfile,
    sr: int,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """Build the envelope described by ``profile`` at sample rate ``sr``."""
    attack, sustain, decay = profile.to_samples(sr)
    return build_envelope(
        attack,
        sustain,
        decay,
        attackExponent=profile.attackExponent,
        decayRate=profile.decayRate,
        sustainJitter=profile.sustainJitter,
        rng=rng,
    )
