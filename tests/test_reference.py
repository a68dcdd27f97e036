"""Tests for reference recording analysis."""

import numpy as np
import pytest

from Assets.Common.Audio.DopplerSynthesis import (
    AcousticProfile,
    ReferenceAnalysis,
    analyze_reference_audio,
)

SR = 8000


def _pulse_train(rng, bpm=120.0, seconds=10.0, noise=0.01):
    n = int(SR * seconds)
    x = rng.uniform(-noise, noise, n)
    interval = 60.0 / bpm
    burst = int(0.05 * SR)
    t = np.arange(burst) / SR
    shape = 0.8 * np.sin(2 * np.pi * 200.0 * t) * np.exp(-t * 40.0)
    onset = 0.25
    while onset < seconds - 0.1:
        i = int(onset * SR)
        x[i:i + burst] += shape
        onset += interval
    return x


class TestAnalyzeReferenceAudio:
    """Tests for beat and level extraction."""

    def test_recovers_tempo(self, rng):
        analysis = analyze_reference_audio(_pulse_train(rng), SR)

        assert abs(analysis.bpm - 120.0) <= 5.0
        assert 17 <= analysis.beatCount <= 21
        assert analysis.meanInterval == pytest.approx(0.5, abs=0.03)
        assert analysis.quality == 1.0

    def test_levels(self, rng):
        analysis = analyze_reference_audio(_pulse_train(rng), SR)

        assert analysis.backgroundLevel < 0.02
        assert analysis.pulseToNoiseRatio > 10.0

    def test_segment_selection(self, rng):
        x = _pulse_train(rng)
        full = analyze_reference_audio(x, SR)
        part = analyze_reference_audio(x, SR, startSeconds=2.0, endSeconds=6.0)

        assert part.beatCount < full.beatCount
        assert max(part.beatTimes) < 4.0

    def test_first_channel_is_used(self, rng):
        x = _pulse_train(rng)
        stereo = np.vstack([x, np.zeros_like(x)])

        assert analyze_reference_audio(stereo, SR).beatCount == analyze_reference_audio(x, SR).beatCount

    def test_silence_uses_defaults(self):
        analysis = analyze_reference_audio(np.zeros(SR * 2), SR)

        assert analysis.beatCount == 0
        assert analysis.bpm == 140.0
        assert analysis.backgroundLevel == 0.1
        assert analysis.doublePulseRate == 0.0
        assert analysis.quality < 1.0

    def test_invalid_sample_rate(self):
        with pytest.raises(ValueError):
            analyze_reference_audio(np.zeros(100), 0)


class TestReferenceProfile:
    """Tests for folding an analysis into a profile."""

    def _analysis(self, **changes):
        fields = dict(
            bpm=130.0,
            beatTimes=(0.5, 1.0, 1.5),
            meanInterval=0.5,
            intervalStd=0.01,
            jitterRangeSeconds=0.02,
            backgroundLevel=0.5,
            pulseToNoiseRatio=10.0,
            doublePulseRate=0.8,
            doublePulseSpacingMs=50.0,
            doublePulseLoudness=0.5,
        )
        fields.update(changes)
        return ReferenceAnalysis(**fields)

    def test_profile_follows_analysis(self, baseline_profile):
        profile = self._analysis().to_acoustic_profile(baseline_profile)

        assert profile.name == "baseline+reference"
        assert profile.schedule.jitterMs == pytest.approx(20.0)
        assert profile.doublePulse.spacingMs == (40.0, 60.0)
        assert profile.doublePulse.probability == pytest.approx(0.8)
        assert profile.doublePulse.relativeLoudness == pytest.approx(0.5)
        assert profile.background.floorLevel == 0.02

    def test_values_are_clamped(self, baseline_profile):
        profile = self._analysis(
            doublePulseSpacingMs=25.0, doublePulseLoudness=0.1, backgroundLevel=0.0001, jitterRangeSeconds=1.0
        ).to_acoustic_profile(baseline_profile)

        assert profile.doublePulse.spacingMs == (30.0, 35.0)
        assert profile.doublePulse.relativeLoudness == 0.3
        assert profile.background.floorLevel == 0.004
        assert profile.schedule.jitterMs == 40.0

    def test_without_double_pulse_keeps_base(self, baseline_profile):
        profile = self._analysis(
            beatTimes=(1.0,), doublePulseSpacingMs=None, doublePulseLoudness=None
        ).to_acoustic_profile(baseline_profile)

        assert profile.doublePulse == baseline_profile.doublePulse
        assert profile.schedule == baseline_profile.schedule

    def test_default_base(self):
        assert self._analysis().to_acoustic_profile().tone == AcousticProfile().tone
