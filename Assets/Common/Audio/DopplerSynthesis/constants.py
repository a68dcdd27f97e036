"""Shared data structures and default parameters for the heartbeat synthesiser."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

import numpy as np

__all__ = [
    "DTYPE",
    "PEAK_DEFAULT",
    "EPS",
    "DEFAULT_SAMPLE_RATE",
    "DEFAULT_DURATION_SECONDS",
    "DEFAULT_CHANNEL_COUNT",
    "MAX_PLAUSIBLE_BPM",
    "MIN_BEAT_INTERVAL_SECONDS",
    "SECONDARY_OFFSET_MIN_MS",
    "SECONDARY_OFFSET_MAX_MS",
    "WATERMARK_FREQUENCY_HZ",
    "WATERMARK_AMPLITUDE",
    "WATERMARK_DURATION_SECONDS",
    "WATERMARK_FADE_SECONDS",
    "PINK_METHODS",
    "BandRange",
    "EnvelopeProfile",
    "ToneProfile",
    "ScheduleProfile",
    "DoublePulseProfile",
    "BackgroundProfile",
    "FilterProfile",
    "DynamicsProfile",
    "ReverbProfile",
    "StereoProfile",
    "AcousticProfile",
]

DTYPE = np.float32
PEAK_DEFAULT = 0.95
EPS = 1e-12

DEFAULT_SAMPLE_RATE = 44100
DEFAULT_DURATION_SECONDS = 8.0
DEFAULT_CHANNEL_COUNT = 1

MAX_PLAUSIBLE_BPM = 220.0
MIN_BEAT_INTERVAL_SECONDS = 60.0 / MAX_PLAUSIBLE_BPM
SECONDARY_OFFSET_MIN_MS = 30.0
SECONDARY_OFFSET_MAX_MS = 160.0

# ---- 透かし ----
WATERMARK_FREQUENCY_HZ = 15000.0
WATERMARK_AMPLITUDE = 0.012
WATERMARK_DURATION_SECONDS = 0.5
WATERMARK_FADE_SECONDS = 0.1

PINK_METHODS = ("kellet", "octave")


@dataclass(frozen=True)
class BandRange:
    """Frequency band expressed in Hz."""

    lowHz: float
    highHz: float

    @property
    def centerHz(self) -> float:
        return float(np.sqrt(max(self.lowHz, 1.0) * max(self.highHz, 1.0)))

    def shifted(self, factor: float) -> "BandRange":
        """Return the band scaled by ``factor`` (used for brighter secondary pulses)."""
        return BandRange(self.lowHz * factor, self.highHz * factor)


@dataclass(frozen=True)
class EnvelopeProfile:
    """Attack/sustain/decay timings for one pulse.

    ``attackExponent`` shapes the attack as ``(i / attack) ** k``; ``k = 1`` gives
    a linear ramp. ``decayRate`` is the exponential rate over the decay window,
    so the tail reaches ``exp(-decayRate)`` of the peak at the end.
    """

    attackMs: float = 6.0
    sustainMs: float = 12.0
    decayMs: float = 90.0
    attackExponent: float = 0.7
    decayRate: float = 3.5
    sustainJitter: float = 0.03

    @property
    def totalMs(self) -> float:
        return self.attackMs + self.sustainMs + self.decayMs

    def to_samples(self, sr: int) -> Tuple[int, int, int]:
        """Return ``(attack, sustain, decay)`` sample counts at ``sr``."""

        def _count(ms: float) -> int:
            if ms <= 0:
                return 0
            return int(sr * (ms / 1000.0))

        return _count(self.attackMs), _count(self.sustainMs), _count(self.decayMs)


@dataclass(frozen=True)
class ToneProfile:
    """Spectral content mix of a single beat pulse."""

    thumpBand: BandRange = field(default_factory=lambda: BandRange(60.0, 300.0))
    hissBand: BandRange = field(default_factory=lambda: BandRange(600.0, 1500.0))
    thumpWeight: float = 1.0
    hissWeight: float = 0.35
    partialWeight: float = 0.25
    whiteWeight: float = 0.1
    bandComponents: int = 8
    fundamentalRange: Tuple[float, float] = (50.0, 90.0)
    partialRatios: Tuple[float, ...] = (1.0, 1.3, 1.8)
    partialWeights: Tuple[float, ...] = (1.0, 0.5, 0.25)
    beatGain: float = 0.6


@dataclass(frozen=True)
class ScheduleProfile:
    """Beat placement parameters for the algorithmic scheduler."""

    startOffsetSeconds: float = 0.2
    jitterMs: float = 30.0
    amplitudeVariation: float = 0.15
    baseAmplitude: float = 0.9
    minAmplitude: float = 0.8
    explicitAmplitude: float = 0.8


@dataclass(frozen=True)
class DoublePulseProfile:
    """Systolic/diastolic double-pulse characteristics."""

    probability: float = 0.85
    spacingMs: Tuple[float, float] = (32.5, 57.5)
    relativeLoudness: float = 0.65
    brightness: float = 1.15


@dataclass(frozen=True)
class BackgroundProfile:
    """Continuous noise floor and beat gating.

    ``floorLevel`` is the peak amplitude of the ungated floor (0.004-0.02,
    about -48 to -34 dBFS). Outside the gate window it is scaled by
    ``gateFloor``, so the quiet stretch between beats drops below that level.
    """

    floorLevel: float = 0.012
    gateWidthMs: float = 200.0
    gateFloor: float = 0.3
    gateCurve: float = 1.5
    modulationDepth: float = 0.25
    modulationRateHz: float = 0.3
    pinkMethod: str = "kellet"


@dataclass(frozen=True)
class FilterProfile:
    """Band shaping applied to the finished mix."""

    highPassHz: float = 60.0
    lowPassHz: float = 2500.0
    emphasisDb: float = 3.0
    emphasisQ: float = 0.9


@dataclass(frozen=True)
class DynamicsProfile:
    """Compression settings (threshold and makeup are linear)."""

    threshold: float = 0.25
    ratio: float = 2.5
    makeupGain: float = 1.15


@dataclass(frozen=True)
class ReverbProfile:
    """Short feed-forward reverb taps."""

    delaysMs: Tuple[float, ...] = (8.0, 15.0, 25.0)
    gains: Tuple[float, ...] = (0.3, 0.2, 0.1)


@dataclass(frozen=True)
class StereoProfile:
    """Per-channel variation used when rendering more than one channel."""

    channelGains: Tuple[float, ...] = (1.0, 0.95)
    channelDelaysMs: Tuple[float, ...] = (0.0, 0.4)

    def gain(self, channelIndex: int) -> float:
        if channelIndex < len(self.channelGains):
            return float(self.channelGains[channelIndex])
        return float(self.channelGains[-1])

    def delay_ms(self, channelIndex: int) -> float:
        if channelIndex < len(self.channelDelaysMs):
            return float(self.channelDelaysMs[channelIndex])
        return float(self.channelDelaysMs[-1])


@dataclass(frozen=True)
class AcousticProfile:
    """Bundle of spectral, envelope and dynamics parameters for one sound."""

    name: str = "baseline"
    tone: ToneProfile = field(default_factory=ToneProfile)
    primaryEnvelope: EnvelopeProfile = field(default_factory=EnvelopeProfile)
    secondaryEnvelope: EnvelopeProfile = field(
        default_factory=lambda: EnvelopeProfile(
            attackMs=5.0, sustainMs=8.0, decayMs=70.0, decayRate=4.5, sustainJitter=0.03
        )
    )
    schedule: ScheduleProfile = field(default_factory=ScheduleProfile)
    doublePulse: DoublePulseProfile = field(default_factory=DoublePulseProfile)
    background: BackgroundProfile = field(default_factory=BackgroundProfile)
    filters: FilterProfile = field(default_factory=FilterProfile)
    dynamics: DynamicsProfile = field(default_factory=DynamicsProfile)
    reverb: Optional[ReverbProfile] = None
    stereo: StereoProfile = field(default_factory=StereoProfile)

    def with_changes(self, **changes) -> "AcousticProfile":
        """Return a copy with the given top-level fields replaced."""
        return replace(self, **changes)
