"""Tests for WAV encoding and decoding."""

import io
import struct
import wave

import numpy as np
import pytest

from Assets.Common.Audio.DopplerSynthesis.io import (
    WAV_HEADER_SIZE,
    decode_wav,
    encode_wav,
    read_wav_header,
    write_wav,
)


def _pcm(data: bytes) -> np.ndarray:
    return np.frombuffer(data[WAV_HEADER_SIZE:], dtype="<i2")


class TestEncodeWav:
    """Tests for 16-bit PCM serialisation."""

    def test_header_fields(self):
        data = encode_wav(np.zeros((1, 100), dtype=np.float32), 22050)
        header = read_wav_header(data)

        assert data[:4] == b"RIFF"
        assert data[8:12] == b"WAVE"
        assert header.audioFormat == 1
        assert header.channelCount == 1
        assert header.sampleRate == 22050
        assert header.bitsPerSample == 16
        assert header.blockAlign == 2
        assert header.byteRate == 44100
        assert header.dataSize == 200
        assert header.riffSize == 36 + 200
        assert header.frameCount == 100
        assert len(data) == WAV_HEADER_SIZE + 200

    def test_stereo_header(self):
        header = read_wav_header(encode_wav(np.zeros((2, 10), dtype=np.float32), 44100))

        assert header.channelCount == 2
        assert header.blockAlign == 4
        assert header.byteRate == 44100 * 4
        assert header.frameCount == 10

    def test_empty_clip_is_header_only(self):
        data = encode_wav(np.zeros((1, 0), dtype=np.float32), 44100)

        assert len(data) == WAV_HEADER_SIZE
        assert read_wav_header(data).dataSize == 0

    def test_clamping_and_truncation(self):
        data = encode_wav(np.array([[1.5, -1.5, 0.5, -0.5]], dtype=np.float32), 8000)

        assert _pcm(data).tolist() == [32767, -32767, 16383, -16383]

    def test_channels_are_interleaved(self):
        audio = np.array([[0.5, 0.5, 0.0], [-0.5, -0.5, 1.0]], dtype=np.float32)

        assert _pcm(encode_wav(audio, 8000)).tolist() == [16383, -16383, 16383, -16383, 0, 32767]

    def test_mono_1d_input(self):
        flat = encode_wav(np.array([0.25, -0.25], dtype=np.float32), 8000)
        shaped = encode_wav(np.array([[0.25, -0.25]], dtype=np.float32), 8000)

        assert flat == shaped

    def test_encoding_is_deterministic(self, rng):
        audio = rng.uniform(-1.0, 1.0, (2, 500)).astype(np.float32)

        assert encode_wav(audio, 8000) == encode_wav(audio, 8000)

    def test_rejects_3d_audio(self):
        with pytest.raises(ValueError):
            encode_wav(np.zeros((1, 1, 4)), 8000)


class TestDecodeWav:
    """Tests for reading PCM back into floats."""

    def test_silence_round_trip(self):
        samples, sr = decode_wav(encode_wav(np.zeros((1, 64), dtype=np.float32), 16000))

        assert sr == 16000
        assert samples.shape == (1, 64)
        assert np.all(samples == 0.0)

    def test_within_one_step(self, rng):
        audio = rng.uniform(-1.0, 1.0, (2, 1000)).astype(np.float32)
        samples, _ = decode_wav(encode_wav(audio, 8000))

        assert samples.shape == (2, 1000)
        assert np.max(np.abs(samples - audio)) <= 1.0 / 32767 + 1e-6

    def test_rejects_8bit(self):
        buf = io.BytesIO()
        with wave.open(buf, "wb") as wf:
            wf.setnchannels(1)
            wf.setsampwidth(1)
            wf.setframerate(8000)
            wf.writeframes(bytes(10))

        with pytest.raises(ValueError, match="16-bit"):
            decode_wav(buf.getvalue())

    def test_rejects_non_wav_data(self):
        with pytest.raises(ValueError, match="readable WAV"):
            decode_wav(b"tempo,140\nbeats,19\n")

    def test_rejects_empty_data(self):
        with pytest.raises(ValueError, match="readable WAV"):
            decode_wav(b"")

    def test_rejects_header_without_data_chunk(self):
        wav = encode_wav(np.zeros(32, dtype=np.float32), 8000)

        with pytest.raises(ValueError, match="readable WAV"):
            decode_wav(wav[:12])


class TestReadWavHeader:
    """Tests for header validation."""

    def test_short_data(self):
        with pytest.raises(ValueError, match="too short"):
            read_wav_header(b"RIFF")

    def test_not_riff(self):
        with pytest.raises(ValueError, match="RIFF"):
            read_wav_header(b"X" * WAV_HEADER_SIZE)

    def test_non_pcm_format(self):
        data = struct.pack(
            "<4sI4s4sIHHIIHH4sI",
            b"RIFF", 36, b"WAVE", b"fmt ", 16, 3, 1, 8000, 32000, 4, 32, b"data", 0,
        )

        with pytest.raises(ValueError, match="format"):
            read_wav_header(data)


class TestWriteWav:
    """Tests for writing WAV files."""

    def test_writes_file(self, tmp_path):
        audio = np.array([[0.1, -0.1, 0.2]], dtype=np.float32)
        path = write_wav(str(tmp_path / "clip.wav"), audio, 8000)

        with open(path, "rb") as fh:
            assert fh.read() == encode_wav(audio, 8000)
        assert path.endswith("clip.wav")
