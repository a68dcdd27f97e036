# Created on 2026-10-18
# Author: nullptr
# Description: Beat onset planning from BPM or from explicit beat timings.
"""Beat scheduling helpers."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .constants import (
    MIN_BEAT_INTERVAL_SECONDS,
    SECONDARY_OFFSET_MAX_MS,
    SECONDARY_OFFSET_MIN_MS,
    AcousticProfile,
)
from .core import _clamp, _is_positive_finite, _resolve_rng

__all__ = [
    "BeatEvent",
    "BeatPlan",
    "schedule_beats",
    "plan_from_timings",
    "normalize_explicit_plan",
]

logger = logging.getLogger(__name__)

_MAX_SECONDARY_RATIO = 0.95


@dataclass(frozen=True)
class BeatEvent:
    """One primary beat and its optional secondary pulse."""

    time: float
    amplitude: float
    secondaryOffsetMs: Optional[float] = None
    secondaryAmplitude: Optional[float] = None

    @property
    def hasSecondary(self) -> bool:
        return self.secondaryOffsetMs is not None

    @property
    def secondaryTime(self) -> Optional[float]:
        if self.secondaryOffsetMs is None:
            return None
        return self.time + self.secondaryOffsetMs / 1000.0


@dataclass(frozen=True)
class BeatPlan:
    """Ordered beat events for one clip."""

    events: Tuple[BeatEvent, ...] = ()
    explicit: bool = False

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self):
        return iter(self.events)

    @property
    def times(self) -> np.ndarray:
        return np.asarray([event.time for event in self.events], dtype=np.float64)

    @property
    def hasDoublePulse(self) -> bool:
        return any(event.hasSecondary for event in self.events)


def _secondary_amplitude(amplitude: float, requested: Optional[float], relativeLoudness: float) -> float:
    ceiling = amplitude * _MAX_SECONDARY_RATIO
    if requested is None:
        requested = amplitude * relativeLoudness
    return _clamp(float(requested), 0.0, ceiling)


def _clamp_offset(offsetMs: Optional[float]) -> Optional[float]:
    if offsetMs is None:
        return None
    offsetMs = float(offsetMs)
    if not math.isfinite(offsetMs):
        return None
    return _clamp(offsetMs, SECONDARY_OFFSET_MIN_MS, SECONDARY_OFFSET_MAX_MS)


def normalize_explicit_plan(
    events: Iterable[BeatEvent],
    durationSeconds: float,
    profile: Optional[AcousticProfile] = None,
) -> BeatPlan:
    """Sanitise a caller-supplied plan.

    Onsets outside ``[0, durationSeconds)`` are discarded, the rest are sorted
    and any onset closer than the minimum beat interval to the previously kept
    one is dropped. Amplitudes are clamped to ``[minAmplitude, 1.0]``.
    """
    profile = profile or AcousticProfile()
    if not _is_positive_finite(durationSeconds):
        return BeatPlan((), explicit=True)

    minAmp = profile.schedule.minAmplitude
    loudness = profile.doublePulse.relativeLoudness
    candidates = sorted(
        (event for event in events if math.isfinite(event.time) and 0.0 <= event.time < durationSeconds),
        key=lambda event: event.time,
    )

    kept: List[BeatEvent] = []
    for event in candidates:
        if kept and event.time - kept[-1].time < MIN_BEAT_INTERVAL_SECONDS:
            logger.debug("Dropping beat at %.3fs: too close to %.3fs", event.time, kept[-1].time)
            continue
        amplitude = event.amplitude if math.isfinite(event.amplitude) else profile.schedule.explicitAmplitude
        amplitude = _clamp(float(amplitude), minAmp, 1.0)
        offset = _clamp_offset(event.secondaryOffsetMs)
        secondary = None
        if offset is not None:
            secondary = _secondary_amplitude(amplitude, event.secondaryAmplitude, loudness)
        kept.append(BeatEvent(event.time, amplitude, offset, secondary))

    dropped = len(candidates) - len(kept)
    if dropped:
        logger.debug("Explicit plan: dropped %d beats closer than %.3fs", dropped, MIN_BEAT_INTERVAL_SECONDS)
    return BeatPlan(tuple(kept), explicit=True)


def plan_from_timings(
    beatTimesSec: Sequence[float],
    amplitudeScalars: Optional[Sequence[float]] = None,
    doublePulseOffsetMs: Union[None, float, Sequence[Optional[float]]] = None,
    *,
    durationSeconds: float,
    profile: Optional[AcousticProfile] = None,
) -> BeatPlan:
    """Build an explicit plan from parallel timing/amplitude arrays.

    ``doublePulseOffsetMs`` may be a single offset applied to every beat or a
    per-beat sequence (``None`` entries disable the secondary pulse). Missing
    amplitudes default to the profile's explicit amplitude.
    """
    profile = profile or AcousticProfile()
    default_amp = profile.schedule.explicitAmplitude
    events: List[BeatEvent] = []
    for index, time in enumerate(beatTimesSec):
        amplitude = default_amp
        if amplitudeScalars is not None and index < len(amplitudeScalars):
            amplitude = float(amplitudeScalars[index])
        if doublePulseOffsetMs is None or np.isscalar(doublePulseOffsetMs):
            offset = doublePulseOffsetMs
        else:
            offset = doublePulseOffsetMs[index] if index < len(doublePulseOffsetMs) else None
        events.append(BeatEvent(float(time), amplitude, offset))
    return normalize_explicit_plan(events, durationSeconds, profile)


def schedule_beats(
    bpm: float,
    durationSeconds: float,
    explicitPlan: Optional[Sequence[BeatEvent]] = None,
    *,
    profile: Optional[AcousticProfile] = None,
    rng: Optional[np.random.Generator] = None,
) -> BeatPlan:
    """Return the beat plan for one clip.

    An explicit plan is sanitised and passed through. Otherwise beats start at
    the profile's start offset and advance by ``60 / bpm`` plus uniform jitter,
    never by less than the minimum beat interval. A non-positive or non-finite
    ``bpm`` or duration yields an empty plan.

    Args:
        bpm: Target beats per minute.
        durationSeconds: Clip length in seconds.
        explicitPlan: Optional caller-supplied beat events.
        profile: Acoustic profile providing scheduling parameters.
        rng: Random source for jitter, amplitude variation and double pulses.
    """
    profile = profile or AcousticProfile()
    if explicitPlan is not None:
        plan = normalize_explicit_plan(explicitPlan, durationSeconds, profile)
        logger.debug("Using explicit beat plan with %d beats", len(plan))
        return plan

    if not _is_positive_finite(bpm) or not _is_positive_finite(durationSeconds):
        logger.debug("Empty beat plan for bpm=%r duration=%r", bpm, durationSeconds)
        return BeatPlan((), explicit=False)

    rng = _resolve_rng(rng)
    schedule = profile.schedule
    pulse = profile.doublePulse
    base_interval = 60.0 / float(bpm)
    half_jitter = max(schedule.jitterMs, 0.0) / 2000.0
    spacing_lo, spacing_hi = sorted(pulse.spacingMs)

    events: List[BeatEvent] = []
    t = max(schedule.startOffsetSeconds, 0.0)
    while t < durationSeconds:
        variation = 1.0 + schedule.amplitudeVariation * (rng.random() - 0.5)
        amplitude = _clamp(schedule.baseAmplitude * variation, schedule.minAmplitude, 1.0)
        offset = None
        secondary = None
        if rng.random() < pulse.probability:
            offset = _clamp_offset(rng.uniform(spacing_lo, spacing_hi))
            secondary = _secondary_amplitude(amplitude, None, pulse.relativeLoudness)
        events.append(BeatEvent(t, amplitude, offset, secondary))
        interval = base_interval + rng.uniform(-half_jitter, half_jitter)
        t += max(interval, MIN_BEAT_INTERVAL_SECONDS)

    logger.debug("Scheduled %d beats at %.1f bpm over %.2fs", len(events), bpm, durationSeconds)
    return BeatPlan(tuple(events), explicit=False)
