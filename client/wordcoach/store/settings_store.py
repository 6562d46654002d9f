"""Persistent settings storage for the remote services and capture tuning."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, asdict
from pathlib import Path

from ..config import CONFIG

DEFAULT_BASE_URL = "https://api.openai.com/v1"


@dataclass(slots=True)
class AppSettings:
    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    transcription_model: str = "whisper-1"
    judge_model: str = "gpt-4o-mini"
    language: str = "en"
    request_timeout: float = 30.0
    max_retries: int = 3
    initial_backoff_ms: int = 1000
    silence_threshold: float = CONFIG.silence_threshold
    silence_ms: int = CONFIG.silence_ms

    def resolved_api_key(self) -> str:
        """Stored key, else ``WORDCOACH_API_KEY`` / ``OPENAI_API_KEY`` from the environment."""
        return self.api_key or os.getenv("WORDCOACH_API_KEY") or os.getenv("OPENAI_API_KEY") or ""


class SettingsStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._settings = self._load()

    def _load(self) -> AppSettings:
        if not self.path.exists():
            return AppSettings()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            raw = {}
        if not isinstance(raw, dict):
            raw = {}
        settings = AppSettings()
        for key in asdict(settings):
            if key not in raw:
                continue
            try:
                self._assign(settings, key, raw[key])
            except (TypeError, ValueError):
                continue
        return settings

    def get(self) -> AppSettings:
        return self._settings

    def update(self, **kwargs) -> AppSettings:
        for key, value in kwargs.items():
            if not hasattr(self._settings, key):
                continue
            self._assign(self._settings, key, value)
        self._persist()
        return self._settings

    @staticmethod
    def _assign(settings: AppSettings, key: str, value) -> None:
        current = getattr(settings, key)
        if isinstance(current, float):
            setattr(settings, key, float(value))
        elif isinstance(current, int):
            setattr(settings, key, int(value))
        else:
            setattr(settings, key, str(value or ""))

    def _persist(self) -> None:
        self.path.write_text(json.dumps(asdict(self._settings)), encoding="utf-8")


__all__ = ["AppSettings", "SettingsStore", "DEFAULT_BASE_URL"]
