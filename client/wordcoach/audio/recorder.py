"""Capture controller: microphone stream to one finalized clip per attempt."""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Callable, List, Optional

import numpy as np
import soundfile as sf

from ..config import CONFIG
from ..errors import DeviceAccessError
from ..scheduling import AsyncioScheduler, Countdown, Scheduler
from .backend import AudioBackend, InputStream
from .endpoint import EndpointDetector, Observation
from .energy import byte_frequency_data, display_bars
from .types import ACTIVE_STATES, AudioClip, CaptureSession, CaptureState

LOGGER = logging.getLogger("wordcoach.capture")

SOUNDFILE_FORMATS = {"audio/flac": "FLAC", "audio/wav": "WAV", "audio/x-wav": "WAV"}


def encode_clip(
    chunks: List[np.ndarray],
    sample_rate: int,
    media_type: str = CONFIG.media_type,
) -> AudioClip:
    """Concatenate PCM chunks and encode them in memory."""
    if media_type not in SOUNDFILE_FORMATS:
        raise ValueError(f"Unsupported media type: {media_type}")
    non_empty = [chunk for chunk in chunks if chunk.size]
    if not non_empty:
        return AudioClip(b"", media_type)
    pcm = np.concatenate(non_empty).astype(np.int16, copy=False)
    buffer = io.BytesIO()
    sf.write(buffer, pcm, sample_rate, format=SOUNDFILE_FORMATS[media_type], subtype="PCM_16")
    return AudioClip(buffer.getvalue(), media_type)


class CaptureController:
    """Drive one recording attempt from device acquisition to a finished clip.

    ``tick()`` runs one analysis step; ``record()`` drives it on the event
    loop. Trailing silence after detected speech, or ``stop()``, finalizes the
    attempt. The stream and the silence countdown are released exactly once.
    """

    def __init__(
        self,
        backend: AudioBackend,
        *,
        scheduler: Optional[Scheduler] = None,
        threshold: float = CONFIG.silence_threshold,
        silence_ms: int = CONFIG.silence_ms,
        frame_ms: int = CONFIG.frame_ms,
        media_type: str = CONFIG.media_type,
        on_clip_ready: Optional[Callable[[AudioClip], None]] = None,
        level_callback: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.backend = backend
        self.scheduler = scheduler or AsyncioScheduler()
        self.silence_ms = silence_ms
        self.frame_ms = frame_ms
        self.media_type = media_type
        self.on_clip_ready = on_clip_ready
        self.level_callback = level_callback
        self.detector = EndpointDetector(threshold)
        self.state = CaptureState.IDLE
        self._session: Optional[CaptureSession] = None
        self._clip: Optional[AudioClip] = None

    @property
    def clip(self) -> Optional[AudioClip]:
        return self._clip

    @property
    def levels(self) -> List[float]:
        if self._session is None:
            return [8.0] * CONFIG.visualizer_bars
        return list(self._session.levels)

    def begin(self) -> None:
        """Acquire the input device and start listening."""
        if self.state in ACTIVE_STATES:
            return
        try:
            stream = self.backend.acquire_input_stream()
        except DeviceAccessError:
            self._abort_acquisition()
            raise
        self._open(stream)

    async def start(self) -> None:
        """Like ``begin()`` but acquires the device off the event loop."""
        if self.state in ACTIVE_STATES:
            return
        try:
            stream = await asyncio.to_thread(self.backend.acquire_input_stream)
        except DeviceAccessError:
            self._abort_acquisition()
            raise
        self._open(stream)

    def _abort_acquisition(self) -> None:
        LOGGER.error("Microphone unavailable; recording aborted")
        self.state = CaptureState.ABORTED
        self._session = None
        self._clip = None

    def _open(self, stream: InputStream) -> None:
        countdown = Countdown(self.scheduler, self.silence_ms / 1000.0, self._on_silence_elapsed)
        self._session = CaptureSession(stream=stream, countdown=countdown)
        self._clip = None
        self.detector.reset()
        self.state = CaptureState.LISTENING
        LOGGER.info("Recording started")

    def tick(self) -> None:
        """Analyze the latest window and advance the endpoint state machine."""
        session = self._session
        if session is None or self.state not in ACTIVE_STATES:
            return
        window = session.stream.read_window()
        level = self.backend.analyze_energy(window)
        self._report_level(session, window, level)
        observation = self.detector.observe(level)
        if observation is Observation.VOICE:
            session.speech_started = True
            session.countdown.cancel()
            if self.state is CaptureState.LISTENING:
                LOGGER.debug("Speech detected (level %.1f)", level)
                self.state = CaptureState.SPEAKING
        elif observation is Observation.SILENCE:
            session.countdown.arm()

    def stop(self) -> Optional[AudioClip]:
        """Finalize now. Repeated calls return the same clip."""
        if self.state in ACTIVE_STATES:
            self._finalize("stop requested")
        return self._clip

    def close(self) -> None:
        """Tear down without producing a clip if the attempt is still open."""
        session = self._session
        if self.state in ACTIVE_STATES and session is not None:
            self.state = CaptureState.ABORTED
            self._release(session)
            session.stream.drain()
            LOGGER.info("Recording aborted")

    async def record(self) -> Optional[AudioClip]:
        """Run a full attempt; returns None only if ``close()`` aborted it."""
        await self.start()
        try:
            while self.state in ACTIVE_STATES:
                self.tick()
                await asyncio.sleep(self.frame_ms / 1000.0)
        except asyncio.CancelledError:
            self.close()
            raise
        return self._clip

    def _on_silence_elapsed(self) -> None:
        if self.state is CaptureState.SPEAKING:
            self._finalize(f"{self.silence_ms} ms of silence")

    def _finalize(self, reason: str) -> None:
        session = self._session
        if session is None:
            return
        self.state = CaptureState.FINALIZED
        self._release(session)
        chunks = session.stream.drain()
        self._clip = encode_clip(chunks, session.stream.sample_rate, self.media_type)
        LOGGER.info("Recording stopped (%s); clip %d bytes", reason, len(self._clip))
        if self.on_clip_ready:
            self.on_clip_ready(self._clip)

    def _release(self, session: CaptureSession) -> None:
        if session.released:
            return
        session.released = True
        session.countdown.cancel()
        session.stream.stop()

    def _report_level(self, session: CaptureSession, window: np.ndarray, level: float) -> None:
        session.levels = display_bars(byte_frequency_data(window))
        if self.level_callback:
            self.level_callback(level)

    def set_threshold(self, value: float) -> None:
        self.detector.set_threshold(value)


__all__ = ["CaptureController", "encode_clip"]
