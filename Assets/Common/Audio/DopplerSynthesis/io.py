"""Audio I/O helpers."""
from __future__ import annotations

import io
import os
import struct
import wave
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .constants import DTYPE

__all__ = [
    "WAV_HEADER_SIZE",
    "WavHeader",
    "encode_wav",
    "decode_wav",
    "read_wav_header",
    "write_wav",
]

WAV_HEADER_SIZE = 44
_HEADER_STRUCT = struct.Struct("<4sI4s4sIHHIIHH4sI")
_PCM_FORMAT = 1
_SAMPLE_WIDTH = 2


@dataclass(frozen=True)
class WavHeader:
    """Fields of a canonical 44-byte PCM WAV header."""

    riffSize: int
    audioFormat: int
    channelCount: int
    sampleRate: int
    byteRate: int
    blockAlign: int
    bitsPerSample: int
    dataSize: int

    @property
    def frameCount(self) -> int:
        if self.blockAlign <= 0:
            return 0
        return self.dataSize // self.blockAlign


def _as_channels(audio: np.ndarray) -> np.ndarray:
    audio = np.asarray(audio)
    if audio.ndim == 1:
        return audio[np.newaxis, :]
    if audio.ndim != 2:
        raise ValueError("audio must be 1-D or (channels, samples)")
    return audio


def _to_pcm16(audio: np.ndarray) -> np.ndarray:
    # 範囲外は先にクリップし、int16 へは切り捨てで変換
    clipped = np.clip(audio.astype(np.float64), -1.0, 1.0)
    return (clipped * 32767.0).astype("<i2")


def encode_wav(audio: np.ndarray, sampleRate: int) -> bytes:
    """Serialise ``audio`` into 16-bit PCM WAV bytes.

    ``audio`` is ``(channels, samples)`` (or 1-D for mono). Samples are clamped
    to ``[-1, 1]``, scaled by 32767, truncated toward zero and interleaved.
    """
    channels = _as_channels(audio)
    interleaved = _to_pcm16(channels).T.reshape(-1)
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels.shape[0])
        wf.setsampwidth(_SAMPLE_WIDTH)
        wf.setframerate(int(sampleRate))
        wf.writeframes(interleaved.tobytes())
    return buf.getvalue()


def read_wav_header(data: bytes) -> WavHeader:
    """Parse the canonical header at the start of ``data``."""
    if len(data) < WAV_HEADER_SIZE:
        raise ValueError(f"WAV data too short: {len(data)} bytes")
    (riff, riff_size, wave_id, fmt_id, fmt_size, audio_format, channels, sample_rate,
     byte_rate, block_align, bits, data_id, data_size) = _HEADER_STRUCT.unpack_from(data, 0)
    if riff != b"RIFF" or wave_id != b"WAVE":
        raise ValueError("Not a RIFF/WAVE stream")
    if fmt_id != b"fmt " or fmt_size != 16 or data_id != b"data":
        raise ValueError("Unsupported WAV layout; expected canonical PCM header")
    if audio_format != _PCM_FORMAT:
        raise ValueError(f"Unsupported WAV format tag {audio_format}")
    return WavHeader(
        riffSize=riff_size,
        audioFormat=audio_format,
        channelCount=channels,
        sampleRate=sample_rate,
        byteRate=byte_rate,
        blockAlign=block_align,
        bitsPerSample=bits,
        dataSize=data_size,
    )


def decode_wav(data: bytes) -> Tuple[np.ndarray, int]:
    """Decode 16-bit PCM WAV bytes into a ``(channels, samples)`` float array."""
    try:
        with wave.open(io.BytesIO(data), "rb") as wf:
            if wf.getsampwidth() != _SAMPLE_WIDTH:
                raise ValueError(f"Only 16-bit PCM is supported (got {wf.getsampwidth() * 8}-bit)")
            channels = wf.getnchannels()
            sample_rate = wf.getframerate()
            frames = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError, struct.error) as error:
        raise ValueError(f"Not a readable WAV file: {error}") from error
    pcm = np.frombuffer(frames, dtype="<i2").reshape(-1, channels).T
    return (pcm.astype(np.float64) / 32767.0).astype(DTYPE), sample_rate


def write_wav(path: str, audio: np.ndarray, sampleRate: int = 44100) -> str:
    """Write ``audio`` to ``path`` as 16-bit PCM WAV."""
    with open(path, "wb") as fh:
        fh.write(encode_wav(audio, sampleRate))
    return os.path.abspath(path)
