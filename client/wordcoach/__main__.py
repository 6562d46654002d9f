"""Command-line practice loop: say each word, get a score."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List

from .audio.backend import SoundDeviceBackend
from .audio.recorder import CaptureController
from .errors import ErrorKind, EvaluationError
from .services.evaluation import EvaluationClient
from .services.pipeline import run_attempt
from .store.results_store import ResultsStore
from .store.settings_store import SettingsStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wordcoach",
        description="Pronounce each word aloud; recording stops after a pause and the attempt is scored.",
    )
    parser.add_argument("words", nargs="+", help="Words to practice, in order")
    parser.add_argument(
        "--settings",
        type=Path,
        default=Path.home() / ".wordcoach" / "settings.json",
        help="Settings file (default: ~/.wordcoach/settings.json)",
    )
    parser.add_argument(
        "--results",
        type=Path,
        default=None,
        help="Append scored attempts to this JSON lines file",
    )
    parser.add_argument(
        "--max-seconds",
        type=float,
        default=10.0,
        help="Stop recording after this many seconds even without a pause (default: 10)",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    return parser


async def practice(words: List[str], settings_path: Path, results_path: Path | None, max_seconds: float) -> int:
    settings = SettingsStore(settings_path).get()
    results = ResultsStore(results_path)
    controller = CaptureController(
        SoundDeviceBackend(),
        threshold=settings.silence_threshold,
        silence_ms=settings.silence_ms,
    )
    async with EvaluationClient.from_settings(settings) as client:
        for word in words:
            print(f"\nSay: {word}")
            deadline = asyncio.get_running_loop().call_later(max_seconds, controller.stop)
            try:
                outcome = await run_attempt(
                    controller,
                    client,
                    word,
                    on_clip_ready=lambda clip: print("Checking your pronunciation..."),
                )
            finally:
                deadline.cancel()
            if outcome.error is not None:
                print(f"  {outcome.error.message}")
                if outcome.error.kind in (ErrorKind.DEVICE_ACCESS, ErrorKind.CONFIGURATION):
                    return 1
                continue
            if outcome.result is None:
                continue
            result = outcome.result
            results.append(word, result)
            verdict = "correct" if result.is_correct else "not quite"
            print(f"  Score {result.score}/100 ({verdict}) heard {result.phonetic_match}")
            print(f"  {result.feedback}")
    summary = results.summary()
    if summary.attempts:
        print(
            f"\nAverage score {summary.average_score} over {summary.attempts} words, "
            f"{summary.correct} correct"
        )
    return 0


def main(argv: List[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(practice(args.words, args.settings, args.results, args.max_seconds))
    except EvaluationError as exc:
        print(exc.message, file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
