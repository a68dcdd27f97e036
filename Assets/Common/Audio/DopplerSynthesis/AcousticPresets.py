# Created on 2026-10-18
# Author: nullptr
# Description: Named acoustic profiles for the heartbeat synthesiser.
"""Acoustic preset registry.

Each preset is a full :class:`AcousticProfile`; the renderers and post
processor read every parameter from it, so a new sound is a new builder here
rather than a new engine.
"""
from __future__ import annotations

from typing import List

from .constants import (
    AcousticProfile,
    BackgroundProfile,
    BandRange,
    DoublePulseProfile,
    DynamicsProfile,
    EnvelopeProfile,
    FilterProfile,
    ReverbProfile,
    ScheduleProfile,
    ToneProfile,
)

__all__ = [
    "DEFAULT_PROFILE_NAME",
    "build_acoustic_profile",
    "list_available_profiles",
]

DEFAULT_PROFILE_NAME = "baseline"

# Thump + tap
THUMP_TAP_THUMP_BAND = (50.0, 200.0)
THUMP_TAP_TAP_BAND = (700.0, 1400.0)
THUMP_TAP_SPACING_MS = (60.0, 80.0)
THUMP_TAP_TAP_LOUDNESS = 0.5

# Soft / muffled
SOFT_LOW_PASS_HZ = 1200.0
SOFT_THRESHOLD = 0.3
SOFT_RATIO = 1.8

# Whoomp-lub
WHOOMP_JITTER_MS = 12.0
WHOOMP_DECAY_RATES = (6.0, 8.0)

# Womb
WOMB_REVERB_DELAYS_MS = (8.0, 15.0, 25.0)
WOMB_REVERB_GAINS = (0.3, 0.2, 0.1)


def _baseline_profile() -> AcousticProfile:
    """Return the default noise-burst Doppler profile."""

    return AcousticProfile(name="baseline")


def _thump_tap_profile() -> AcousticProfile:
    """Return a heavy thump followed by a short bright tap."""

    tone = ToneProfile(
        thumpBand=BandRange(*THUMP_TAP_THUMP_BAND),
        hissBand=BandRange(*THUMP_TAP_TAP_BAND),
        hissWeight=0.25,
        partialWeight=0.35,
        whiteWeight=0.05,
        beatGain=0.6,
    )
    return AcousticProfile(
        name="thump-tap",
        tone=tone,
        primaryEnvelope=EnvelopeProfile(attackMs=15.0, sustainMs=40.0, decayMs=120.0, decayRate=5.0),
        secondaryEnvelope=EnvelopeProfile(attackMs=3.0, sustainMs=5.0, decayMs=40.0, attackExponent=1.0, decayRate=6.0),
        doublePulse=DoublePulseProfile(
            probability=0.9,
            spacingMs=THUMP_TAP_SPACING_MS,
            relativeLoudness=THUMP_TAP_TAP_LOUDNESS,
            brightness=1.6,
        ),
        dynamics=DynamicsProfile(threshold=0.4, ratio=2.0, makeupGain=1.1),
    )


def _soft_muffled_profile() -> AcousticProfile:
    """Return a darker, gently compressed profile."""

    tone = ToneProfile(hissWeight=0.15, whiteWeight=0.04, beatGain=0.55)
    return AcousticProfile(
        name="soft-muffled",
        tone=tone,
        primaryEnvelope=EnvelopeProfile(attackMs=10.0, sustainMs=15.0, decayMs=110.0, decayRate=4.0),
        secondaryEnvelope=EnvelopeProfile(attackMs=8.0, sustainMs=10.0, decayMs=80.0, decayRate=6.0),
        background=BackgroundProfile(floorLevel=0.01, gateFloor=0.35),
        filters=FilterProfile(highPassHz=50.0, lowPassHz=SOFT_LOW_PASS_HZ, emphasisDb=4.0),
        dynamics=DynamicsProfile(threshold=SOFT_THRESHOLD, ratio=SOFT_RATIO, makeupGain=1.1),
    )


def _whoomp_lub_profile() -> AcousticProfile:
    """Return a slow-onset whoosh with a tighter rhythm."""

    tone = ToneProfile(
        thumpBand=BandRange(40.0, 180.0),
        hissBand=BandRange(500.0, 1100.0),
        hissWeight=0.45,
        partialWeight=0.2,
    )
    return AcousticProfile(
        name="whoomp-lub",
        tone=tone,
        primaryEnvelope=EnvelopeProfile(
            attackMs=20.0, sustainMs=20.0, decayMs=100.0, attackExponent=0.6, decayRate=WHOOMP_DECAY_RATES[0]
        ),
        secondaryEnvelope=EnvelopeProfile(
            attackMs=8.0, sustainMs=8.0, decayMs=70.0, decayRate=WHOOMP_DECAY_RATES[1]
        ),
        schedule=ScheduleProfile(jitterMs=WHOOMP_JITTER_MS),
        doublePulse=DoublePulseProfile(probability=0.8, spacingMs=(90.0, 130.0), relativeLoudness=0.6),
    )


def _womb_profile() -> AcousticProfile:
    """Return a roomy profile with a short reverb and fuller background."""

    return AcousticProfile(
        name="womb",
        background=BackgroundProfile(
            floorLevel=0.016,
            gateWidthMs=250.0,
            gateFloor=0.4,
            modulationDepth=0.4,
            modulationRateHz=0.2,
            pinkMethod="octave",
        ),
        filters=FilterProfile(lowPassHz=1800.0),
        reverb=ReverbProfile(delaysMs=WOMB_REVERB_DELAYS_MS, gains=WOMB_REVERB_GAINS),
    )


def _clean_profile() -> AcousticProfile:
    """Return a low-noise profile with a quieter, flatter background."""

    return AcousticProfile(
        name="clean",
        tone=ToneProfile(whiteWeight=0.03),
        background=BackgroundProfile(floorLevel=0.006, gateWidthMs=150.0, gateFloor=0.5, modulationDepth=0.1),
        doublePulse=DoublePulseProfile(probability=0.75),
    )


_PROFILE_BUILDERS = {
    "baseline": _baseline_profile,
    "thump-tap": _thump_tap_profile,
    "soft-muffled": _soft_muffled_profile,
    "whoomp-lub": _whoomp_lub_profile,
    "womb": _womb_profile,
    "clean": _clean_profile,
}


def build_acoustic_profile(style: str = DEFAULT_PROFILE_NAME) -> AcousticProfile:
    """Construct the :class:`AcousticProfile` registered under ``style``.

    Args:
        style: Preset identifier, e.g. ``baseline`` or ``thump-tap``.
    """

    normalized = style.strip().lower().replace("_", "-")
    if normalized not in _PROFILE_BUILDERS:
        available = ", ".join(sorted(_PROFILE_BUILDERS))
        raise ValueError(f"Unknown acoustic profile '{style}'. Available: {available}")
    return _PROFILE_BUILDERS[normalized]()


def list_available_profiles() -> List[str]:
    """Return the available acoustic profile identifiers."""

    return sorted(_PROFILE_BUILDERS.keys())
