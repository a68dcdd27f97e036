# Created on 2026-10-18
# Author: nullptr
# Description: PyAudio playback of synthesised heartbeat WAV bytes.
"""Scoped audio output for generated heartbeat clips."""
from __future__ import annotations

import io
import logging
import wave
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

CHUNK_FRAMES = 1024


class PlaybackError(RuntimeError):
    """Raised when the audio output device cannot be used."""


def _default_backend_factory() -> Any:
    try:
        import pyaudio
    except ImportError as error:
        raise PlaybackError(
            "PyAudio is not installed. Install the 'playback' extra to enable --play."
        ) from error
    return pyaudio.PyAudio()


class AudioOutput:
    """Context manager owning one PyAudio backend for its lifetime.

    Example:
        with AudioOutput() as output:
            output.play(result.wavBytes)
    """

    def __init__(self, backendFactory: Optional[Callable[[], Any]] = None) -> None:
        self._factory = backendFactory or _default_backend_factory
        self._backend: Optional[Any] = None

    def __enter__(self) -> "AudioOutput":
        try:
            self._backend = self._factory()
        except PlaybackError:
            raise
        except Exception as error:
            raise PlaybackError(f"Unable to open the audio backend: {error}") from error
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._backend is None:
            return
        try:
            self._backend.terminate()
        except Exception:
            logger.exception("Failed to terminate PyAudio backend.")
        finally:
            self._backend = None

    def play(self, wavBytes: bytes) -> int:
        """Play a 16-bit PCM WAV held in memory; returns the frames written."""
        if self._backend is None:
            raise PlaybackError("AudioOutput must be entered before playing.")

        with wave.open(io.BytesIO(wavBytes), "rb") as wf:
            channels = wf.getnchannels()
            rate = wf.getframerate()
            width = wf.getsampwidth()
            frames = wf.readframes(wf.getnframes())

        try:
            stream = self._backend.open(
                format=self._backend.get_format_from_width(width),
                channels=channels,
                rate=rate,
                output=True,
            )
        except Exception as error:
            raise PlaybackError(f"Unable to open an output stream: {error}") from error

        step = CHUNK_FRAMES * channels * width
        try:
            for offset in range(0, len(frames), step):
                stream.write(frames[offset:offset + step])
        finally:
            stream.stop_stream()
            stream.close()
        written = len(frames) // (channels * width) if channels and width else 0
        logger.debug("Played %d frames at %d Hz", written, rate)
        return written
