"""Tests for the noise and tone generators."""

import numpy as np
import pytest

from Assets.Common.Audio.DopplerSynthesis.sources import (
    band_noise,
    pink_noise,
    tonal_partials,
    white_noise,
)


class TestWhiteNoise:
    """Tests for uniform white noise."""

    def test_length_and_range(self, rng):
        """Samples should lie in [-1, 1]."""
        noise = white_noise(10000, rng)

        assert noise.shape == (10000,)
        assert noise.min() >= -1.0
        assert noise.max() <= 1.0

    def test_empty_request(self, rng):
        """Non-positive lengths return an empty array."""
        assert white_noise(0, rng).size == 0
        assert white_noise(-5, rng).size == 0


class TestBandNoise:
    """Tests for the multi-sine band approximation."""

    def test_bounded_by_component_normalisation(self, rng, sample_rate):
        """Dividing by the component count keeps output in [-1, 1]."""
        t = np.arange(sample_rate) / sample_rate
        noise = band_noise(t, 60.0, 300.0, sample_rate, rng)

        assert np.all(np.abs(noise) <= 1.0 + 1e-6)

    def test_energy_inside_band(self, rng, sample_rate, band_rms):
        """Most of the energy should sit inside the requested band."""
        t = np.arange(sample_rate) / sample_rate
        noise = band_noise(t, 200.0, 400.0, sample_rate, rng)

        inside = band_rms(noise, sample_rate, 150.0, 450.0)
        total = band_rms(noise, sample_rate, 0.0, sample_rate / 2)

        assert inside ** 2 > 0.9 * total ** 2

    def test_band_above_nyquist_is_clamped(self, rng, sample_rate):
        """A band past Nyquist still produces finite samples."""
        t = np.arange(1000) / sample_rate
        noise = band_noise(t, 20000.0, 30000.0, sample_rate, rng)

        assert np.all(np.isfinite(noise))

    def test_empty_time_axis(self, rng, sample_rate):
        assert band_noise(np.zeros(0), 60.0, 300.0, sample_rate, rng).size == 0


class TestPinkNoise:
    """Tests for both pink noise methods."""

    @pytest.mark.parametrize("method", ["kellet", "octave"])
    def test_unit_peak(self, rng, sample_rate, method):
        """Output is normalised to a unit peak."""
        noise = pink_noise(sample_rate, rng, sr=sample_rate, method=method)

        assert noise.shape == (sample_rate,)
        assert np.isclose(np.max(np.abs(noise)), 1.0, atol=1e-5)

    @pytest.mark.parametrize("method", ["kellet", "octave"])
    def test_low_frequencies_dominate(self, rng, sample_rate, band_rms, method):
        """Power should fall with frequency."""
        noise = pink_noise(2 * sample_rate, rng, sr=sample_rate, method=method)

        low = band_rms(noise, sample_rate, 40.0, 200.0)
        high = band_rms(noise, sample_rate, 8000.0, 10000.0)

        assert low > high

    def test_unknown_method_raises(self, rng):
        with pytest.raises(ValueError, match="Available"):
            pink_noise(100, rng, method="brown")

    def test_seeded_output_is_reproducible(self):
        """The same seed gives the same noise."""
        a = pink_noise(2048, np.random.default_rng(5))
        b = pink_noise(2048, np.random.default_rng(5))

        assert np.array_equal(a, b)


class TestTonalPartials:
    """Tests for the tonal body partials."""

    def test_bounded(self, rng, sample_rate):
        t = np.arange(sample_rate) / sample_rate
        tone = tonal_partials(t, (50.0, 90.0), (1.0, 1.3, 1.8), (1.0, 0.5, 0.25), rng)

        assert tone.shape == t.shape
        assert np.all(np.abs(tone) <= 1.0 + 1e-6)

    def test_no_ratios_gives_silence(self, rng):
        t = np.arange(100) / 1000.0
        tone = tonal_partials(t, (50.0, 90.0), (), (), rng)

        assert np.allclose(tone, 0.0)
