"""Procedural fetal Doppler heartbeat synthesis for the heartbeat project."""
from __future__ import annotations

from .constants import (
    DEFAULT_DURATION_SECONDS,
    DEFAULT_SAMPLE_RATE,
    DTYPE,
    EPS,
    PEAK_DEFAULT,
    AcousticProfile,
    BackgroundProfile,
    BandRange,
    DoublePulseProfile,
    DynamicsProfile,
    EnvelopeProfile,
    FilterProfile,
    ReverbProfile,
    ScheduleProfile,
    StereoProfile,
    ToneProfile,
)
from .AcousticPresets import build_acoustic_profile, list_available_profiles
from .envelope import build_envelope, envelope_value
from .io import WavHeader, decode_wav, encode_wav, read_wav_header, write_wav
from .processing import post_process
from .reference import ReferenceAnalysis, analyze_reference_audio
from .rendering import distance_to_nearest_beat, render_background, render_beat
from .scheduler import BeatEvent, BeatPlan, plan_from_timings, schedule_beats
from .sources import band_noise, pink_noise, white_noise
from .synthesis import (
    RenderedAudio,
    SynthesisOptions,
    SynthesisResult,
    render_buffer,
    synthesize,
    synthesize_to_wav,
)

__all__ = [
    "DTYPE",
    "EPS",
    "PEAK_DEFAULT",
    "DEFAULT_SAMPLE_RATE",
    "DEFAULT_DURATION_SECONDS",
    "AcousticProfile",
    "BackgroundProfile",
    "BandRange",
    "DoublePulseProfile",
    "DynamicsProfile",
    "EnvelopeProfile",
    "FilterProfile",
    "ReverbProfile",
    "ScheduleProfile",
    "StereoProfile",
    "ToneProfile",
    "build_acoustic_profile",
    "list_available_profiles",
    "white_noise",
    "band_noise",
    "pink_noise",
    "envelope_value",
    "build_envelope",
    "BeatEvent",
    "BeatPlan",
    "schedule_beats",
    "plan_from_timings",
    "render_beat",
    "render_background",
    "distance_to_nearest_beat",
    "post_process",
    "WavHeader",
    "encode_wav",
    "decode_wav",
    "read_wav_header",
    "write_wav",
    "ReferenceAnalysis",
    "analyze_reference_audio",
    "SynthesisOptions",
    "SynthesisResult",
    "RenderedAudio",
    "render_buffer",
    "synthesize",
    "synthesize_to_wav",
]
