"""Audio input abstractions and the sounddevice-backed implementation."""

from __future__ import annotations

import abc
import logging
import threading
from typing import List

import numpy as np

from ..config import CONFIG
from ..errors import DeviceAccessError
from .energy import analyze_energy

LOGGER = logging.getLogger("wordcoach.capture")


class InputStream(abc.ABC):
    """A live input stream exclusively owned by one capture session."""

    sample_rate: int = CONFIG.sample_rate
    channels: int = CONFIG.channels

    @abc.abstractmethod
    def read_window(self) -> np.ndarray:
        """Most recent analysis window (int16 samples)."""

    @abc.abstractmethod
    def drain(self) -> List[np.ndarray]:
        """Return and clear the buffered audio chunks."""

    @abc.abstractmethod
    def stop(self) -> None:
        """Stop delivery and release the device. Must tolerate repeated calls."""


class AudioBackend(abc.ABC):
    @abc.abstractmethod
    def acquire_input_stream(self) -> InputStream:
        """Open the input device; raise DeviceAccessError on failure."""

    def analyze_energy(self, window: np.ndarray) -> float:
        return analyze_energy(window)


class SoundDeviceStream(InputStream):
    def __init__(self, sd, sample_rate: int, channels: int, window_size: int) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self._lock = threading.Lock()
        self._chunks: List[np.ndarray] = []
        self._window = np.zeros(window_size, dtype=np.int16)
        self._stopped = False
        self._stream = sd.InputStream(
            samplerate=sample_rate,
            channels=channels,
            dtype="int16",
            callback=self._on_audio,
        )
        try:
            self._stream.start()
        except Exception:
            self._stream.close()
            raise

    def _on_audio(self, indata, frames, time_info, status) -> None:  # noqa: ARG002
        if status:
            LOGGER.debug("Input stream status: %s", status)
        data = np.array(indata, dtype=np.int16, copy=True)
        mono = data if data.ndim == 1 else data[:, 0]
        with self._lock:
            if self._stopped:
                return
            self._chunks.append(data)
            size = self._window.size
            if mono.size >= size:
                self._window = mono[-size:].copy()
            else:
                self._window = np.concatenate([self._window[mono.size :], mono])

    def read_window(self) -> np.ndarray:
        with self._lock:
            return self._window.copy()

    def drain(self) -> List[np.ndarray]:
        with self._lock:
            chunks, self._chunks = self._chunks, []
        return chunks

    def stop(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
        try:
            self._stream.stop()
        finally:
            self._stream.close()


class SoundDeviceBackend(AudioBackend):
    """Microphone capture through PortAudio (``sounddevice``)."""

    def __init__(
        self,
        sample_rate: int = CONFIG.sample_rate,
        channels: int = CONFIG.channels,
        fft_size: int = CONFIG.fft_size,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.fft_size = fft_size

    def acquire_input_stream(self) -> InputStream:
        try:
            import sounddevice as sd  # type: ignore
        except OSError as exc:  # PortAudio library missing
            raise DeviceAccessError(detail=str(exc)) from exc
        try:
            return SoundDeviceStream(sd, self.sample_rate, self.channels, self.fft_size)
        except (sd.PortAudioError, OSError, ValueError) as exc:
            LOGGER.error("Could not open input device: %s", exc)
            raise DeviceAccessError(detail=str(exc)) from exc


__all__ = ["AudioBackend", "InputStream", "SoundDeviceBackend", "SoundDeviceStream"]
