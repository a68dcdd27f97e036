"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from Assets.Common.Audio.DopplerSynthesis import AcousticProfile, build_acoustic_profile

# Reduced sample rate for fast unit tests
TEST_SR = 22050
# Full-rate scenarios use the production default
FULL_SR = 44100


@pytest.fixture
def sample_rate() -> int:
    """Default sample rate for unit tests."""
    return TEST_SR


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator so every test is reproducible."""
    return np.random.default_rng(1234)


@pytest.fixture
def baseline_profile() -> AcousticProfile:
    """The default acoustic profile."""
    return build_acoustic_profile("baseline")


@pytest.fixture
def band_rms():
    """Return a helper measuring RMS inside a frequency band via an FFT mask."""

    def _band_rms(signal: np.ndarray, sr: int, low_hz: float, high_hz: float) -> float:
        spectrum = np.fft.rfft(np.asarray(signal, dtype=np.float64))
        freqs = np.fft.rfftfreq(len(signal), 1.0 / sr)
        mask = (freqs >= low_hz) & (freqs <= high_hz)
        return float(np.sqrt(np.sum(np.abs(spectrum[mask]) ** 2)) / len(signal))

    return _band_rms
