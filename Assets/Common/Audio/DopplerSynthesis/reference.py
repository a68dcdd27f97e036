# Created on 2026-10-18
# Author: nullptr
# Description: Extract synthesis parameters from a recorded Doppler heartbeat.
"""Reference recording analysis.

Works on an in-memory sample array; decoding audio files is left to the
caller. The result can be folded into an :class:`AcousticProfile` so that the
synthesiser tracks the recording's timing, double-pulse pattern and noise
floor.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

import numpy as np
from scipy import signal as scipy_signal

from .constants import (
    EPS,
    SECONDARY_OFFSET_MAX_MS,
    SECONDARY_OFFSET_MIN_MS,
    AcousticProfile,
)
from .core import _clamp
from .filters import _one_pole_lp

__all__ = ["ReferenceAnalysis", "analyze_reference_audio"]

logger = logging.getLogger(__name__)

DEFAULT_REFERENCE_BPM = 140.0
DEFAULT_BACKGROUND_LEVEL = 0.1

_ENERGY_WINDOW_SECONDS = 0.1
_ENERGY_THRESHOLD_RATIO = 0.6
_MIN_BEAT_GAP_SECONDS = 0.3
_QUIET_AFTER_BEAT_SECONDS = 0.1
_QUIET_BEFORE_BEAT_SECONDS = 0.05
_PULSE_WINDOW_SECONDS = 0.05
_DOUBLE_PULSE_WINDOW_SECONDS = 0.15
_DOUBLE_PULSE_MIN_MS = 20.0
_DOUBLE_PULSE_MAX_MS = 100.0
_DOUBLE_PULSE_PEAK_RATIO = 0.5
_ENVELOPE_CUTOFF_HZ = 40.0
_FEW_BEATS = 3


@dataclass(frozen=True)
class ReferenceAnalysis:
    """Timing, level and double-pulse statistics of a recording."""

    bpm: float
    beatTimes: Tuple[float, ...]
    meanInterval: float
    intervalStd: float
    jitterRangeSeconds: float
    backgroundLevel: float
    pulseToNoiseRatio: float
    doublePulseRate: float = 0.0
    doublePulseSpacingMs: Optional[float] = None
    doublePulseLoudness: Optional[float] = None
    quality: float = 1.0

    @property
    def beatCount(self) -> int:
        return len(self.beatTimes)

    def to_acoustic_profile(self, base: Optional[AcousticProfile] = None) -> AcousticProfile:
        """Return ``base`` adjusted to this recording."""
        base = base or AcousticProfile()
        schedule = base.schedule
        if self.beatCount >= 2:
            schedule = replace(schedule, jitterMs=_clamp(self.jitterRangeSeconds * 1000.0, 5.0, 40.0))

        pulse = base.doublePulse
        if self.doublePulseSpacingMs is not None:
            lo = _clamp(self.doublePulseSpacingMs - 10.0, SECONDARY_OFFSET_MIN_MS, SECONDARY_OFFSET_MAX_MS)
            hi = _clamp(self.doublePulseSpacingMs + 10.0, SECONDARY_OFFSET_MIN_MS, SECONDARY_OFFSET_MAX_MS)
            pulse = replace(
                pulse,
                probability=_clamp(self.doublePulseRate, 0.0, 1.0),
                spacingMs=(lo, hi),
                relativeLoudness=_clamp(self.doublePulseLoudness or pulse.relativeLoudness, 0.3, 0.9),
            )

        background = base.background
        if self.backgroundLevel > 0.0:
            background = replace(background, floorLevel=_clamp(self.backgroundLevel, 0.004, 0.02))

        return replace(
            base,
            name=f"{base.name}+reference",
            schedule=schedule,
            doublePulse=pulse,
            background=background,
        )


def _rms_energies(x: np.ndarray, window: int, hop: int) -> np.ndarray:
    frames = np.lib.stride_tricks.sliding_window_view(x, window)[::hop]
    return np.sqrt(np.mean(frames ** 2, axis=1))


def _detect_beats(x: np.ndarray, sr: int) -> List[float]:
    window = int(_ENERGY_WINDOW_SECONDS * sr)
    hop = max(window // 2, 1)
    if window <= 0 or x.size <= window:
        return []
    energies = _rms_energies(x, window, hop)
    peak = float(np.max(energies))
    if peak <= EPS:
        return []
    distance = max(int(np.ceil(_MIN_BEAT_GAP_SECONDS * sr / hop)), 1)
    peaks, _ = scipy_signal.find_peaks(energies, height=peak * _ENERGY_THRESHOLD_RATIO, distance=distance)
    return [(int(i) * hop + window / 2.0) / sr for i in peaks]


def _background_level(x: np.ndarray, sr: int, beatTimes: List[float]) -> float:
    energy = 0.0
    count = 0
    for current, following in zip(beatTimes, beatTimes[1:]):
        start = int((current + _QUIET_AFTER_BEAT_SECONDS) * sr)
        end = min(int((following - _QUIET_BEFORE_BEAT_SECONDS) * sr), x.size)
        if end > start:
            seg = x[start:end]
            energy += float(np.sum(seg ** 2))
            count += seg.size
    if count == 0:
        return DEFAULT_BACKGROUND_LEVEL
    return float(np.sqrt(energy / count))


def _pulse_amplitudes(x: np.ndarray, sr: int, beatTimes: List[float]) -> np.ndarray:
    half = int(_PULSE_WINDOW_SECONDS * sr)
    amps = []
    for t in beatTimes:
        centre = int(t * sr)
        seg = x[max(centre - half, 0):min(centre + half, x.size)]
        if seg.size:
            amps.append(float(np.max(np.abs(seg))))
    return np.asarray(amps, dtype=np.float64)


def _double_pulses(x: np.ndarray, sr: int, beatTimes: List[float]) -> Tuple[List[float], List[float]]:
    envelope = _one_pole_lp(np.abs(x).astype(np.float32), _ENVELOPE_CUTOFF_HZ, sr)
    half = int(_DOUBLE_PULSE_WINDOW_SECONDS * sr / 2)
    min_gap = max(int(_DOUBLE_PULSE_MIN_MS * sr / 1000.0), 1)
    spacings: List[float] = []
    ratios: List[float] = []
    for t in beatTimes:
        centre = int(t * sr)
        start, end = centre - half, centre + half
        if start < 0 or end >= envelope.size:
            continue
        seg = envelope[start:end]
        top = float(np.max(seg))
        if top <= EPS:
            continue
        peaks, _ = scipy_signal.find_peaks(seg, height=top * _DOUBLE_PULSE_PEAK_RATIO, distance=min_gap)
        if peaks.size < 2:
            continue
        spacing = (peaks[1] - peaks[0]) * 1000.0 / sr
        if _DOUBLE_PULSE_MIN_MS < spacing < _DOUBLE_PULSE_MAX_MS:
            spacings.append(spacing)
            ratios.append(float(seg[peaks[1]] / max(seg[peaks[0]], EPS)))
    return spacings, ratios


def analyze_reference_audio(
    samples: np.ndarray,
    sampleRate: int,
    *,
    startSeconds: float = 0.0,
    endSeconds: Optional[float] = None,
) -> ReferenceAnalysis:
    """Analyse a recorded heartbeat held in memory.

    Beats are RMS-energy peaks over 100 ms windows (50% hop) above 60% of
    the loudest window, at least 0.3 s apart. BPM comes from the mean beat
    interval, falling back to 140 when fewer than two beats are found.

    Args:
        samples: Mono array or ``(channels, samples)``; only the first channel is used.
        sampleRate: Sample rate of ``samples``.
        startSeconds: Start of the analysis segment.
        endSeconds: End of the analysis segment (defaults to the end).
    """
    if sampleRate <= 0:
        raise ValueError("Sample rate must be positive")
    x = np.asarray(samples, dtype=np.float64)
    if x.ndim == 2:
        x = x[0]
    start = max(int(startSeconds * sampleRate), 0)
    end = x.size if endSeconds is None else min(int(endSeconds * sampleRate), x.size)
    x = x[start:end]

    beat_times = _detect_beats(x, sampleRate)
    intervals = np.diff(beat_times) if len(beat_times) >= 2 else np.zeros(0)
    if intervals.size:
        mean_interval = float(np.mean(intervals))
        bpm = float(round(60.0 / mean_interval))
        interval_std = float(np.std(intervals))
        jitter = float(np.max(intervals) - np.min(intervals))
    else:
        mean_interval = 60.0 / DEFAULT_REFERENCE_BPM
        bpm = DEFAULT_REFERENCE_BPM
        interval_std = 0.0
        jitter = 0.0

    background = _background_level(x, sampleRate, beat_times)
    amplitudes = _pulse_amplitudes(x, sampleRate, beat_times)
    pnr = float(np.mean(amplitudes) / max(background, EPS)) if amplitudes.size else 0.0

    spacings, ratios = _double_pulses(x, sampleRate, beat_times)
    rate = len(spacings) / len(beat_times) if beat_times else 0.0

    quality = 1.0
    if len(beat_times) < _FEW_BEATS:
        quality *= 0.7
    logger.debug("Reference analysis: %d beats, bpm=%.1f, background=%.4f", len(beat_times), bpm, background)

    return ReferenceAnalysis(
        bpm=bpm,
        beatTimes=tuple(beat_times),
        meanInterval=mean_interval,
        intervalStd=interval_std,
        jitterRangeSeconds=jitter,
        backgroundLevel=background,
        pulseToNoiseRatio=pnr,
        doublePulseRate=rate,
        doublePulseSpacingMs=float(np.mean(spacings)) if spacings else None,
        doublePulseLoudness=float(np.mean(ratios)) if ratios else None,
        quality=max(0.1, quality),
    )
