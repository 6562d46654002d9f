"""Pytest configuration helpers."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest


def _ensure_repo_on_path() -> None:
    """Allow tests to import from repo modules without setting PYTHONPATH."""
    repo_root = Path(__file__).resolve().parents[1]
    path_str = str(repo_root)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


_ensure_repo_on_path()

from client.wordcoach.audio.backend import AudioBackend, InputStream  # noqa: E402
from client.wordcoach.errors import DeviceAccessError  # noqa: E402


class ManualHandle:
    def __init__(self, deadline: float, callback) -> None:
        self.deadline = deadline
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic clock: timers fire only inside ``advance()``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.handles: list[ManualHandle] = []

    def call_later(self, delay: float, callback) -> ManualHandle:
        handle = ManualHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for h in self.handles if not h.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.handles if not h.cancelled and h.deadline <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: h.deadline)
            self.handles.remove(handle)
            self.now = max(self.now, handle.deadline)
            handle.callback()
        self.now = target


class FakeStream(InputStream):
    def __init__(self, chunks=None) -> None:
        self.chunks = list(chunks or [])
        self.stop_calls = 0
        self.windows_read = 0

    def read_window(self) -> np.ndarray:
        self.windows_read += 1
        return np.zeros(64, dtype=np.int16)

    def drain(self):
        chunks, self.chunks = self.chunks, []
        return chunks

    def stop(self) -> None:
        self.stop_calls += 1


class FakeBackend(AudioBackend):
    """Returns scripted energy levels, one per analysis tick."""

    def __init__(self, levels=None, *, chunks=None, fail: bool = False, default_level: float = 0.0) -> None:
        self.levels = list(levels or [])
        self.default_level = default_level
        self.chunks = chunks
        self.fail = fail
        self.streams: list[FakeStream] = []

    def acquire_input_stream(self) -> FakeStream:
        if self.fail:
            raise DeviceAccessError(detail="permission denied")
        stream = FakeStream(self.chunks)
        self.streams.append(stream)
        return stream

    def analyze_energy(self, window) -> float:
        if self.levels:
            return self.levels.pop(0)
        return self.default_level

    @property
    def stream(self) -> FakeStream:
        return self.streams[-1]


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()
