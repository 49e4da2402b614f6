"""Per-run ``run_manifest.json`` files written next to backtest and sweep artifacts."""

from __future__ import annotations

import json
import platform
import sys
import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from importlib import metadata
from pathlib import Path
from typing import Any

import pandas as pd

MANIFEST_VERSION = 2


def make_run_id(command: str, ticker: str, now: datetime | None = None) -> str:
    """Build a sortable run id such as ``periods-jnj_us-20240102T030405000000``."""
    timestamp = (now or datetime.now(tz=UTC)).strftime("%Y%m%dT%H%M%S%f")
    safe_ticker = "".join(char if char.isalnum() else "_" for char in ticker.lower())
    return f"{command}-{safe_ticker}-{timestamp}"


def _installed_version(distribution: str) -> str | None:
    try:
        return metadata.version(distribution)
    except metadata.PackageNotFoundError:
        return None


def _runtime_versions() -> dict[str, str | None]:
    return {
        "python": sys.version.split()[0],
        "platform": platform.platform(),
        "dvilab": _installed_version("dvilab"),
        "pandas": pd.__version__,
    }


@dataclass
class RunManifestWriter:
    """
    Collects what a CLI run was asked to do and how it ended.

    The manifest moves from ``running`` to one of ``success``, ``cancelled``,
    ``failed`` or ``interrupted`` and is written once, at the end of the run,
    whatever the outcome.
    """

    output_dir: Path
    command: str
    run_id: str
    ticker: str | None = None
    manifest_name: str = "run_manifest.json"
    started_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    _payload: dict[str, Any] = field(init=False)

    def __post_init__(self) -> None:
        self._payload = {
            "manifest_version": MANIFEST_VERSION,
            "run_id": self.run_id,
            "command": self.command,
            "ticker": self.ticker,
            "status": "running",
            "started_at": self.started_at.isoformat(),
            "finished_at": None,
            "duration_seconds": None,
            "versions": _runtime_versions(),
            "inputs": {},
            "config_yaml": None,
            "result": {},
            "failure": {},
        }

    def set_inputs(self, inputs: dict[str, Any], config_yaml: str | None = None) -> None:
        """Record command arguments (sorted by name) and the effective YAML config."""
        self._payload["inputs"] = dict(sorted(inputs.items()))
        self._payload["config_yaml"] = config_yaml

    def mark_completed(
        self,
        summary: dict[str, Any],
        artifact_paths: list[str],
        cancelled: bool = False,
    ) -> None:
        """
        Record a run that produced a result.

        Args:
            summary: Backtest summary or sweep counts.
            artifact_paths: Files written for the run.
            cancelled: True when a sweep stopped early and the result is partial.
        """
        self._payload["status"] = "cancelled" if cancelled else "success"
        self._payload["result"] = {
            "summary": dict(summary),
            "artifact_paths": sorted({str(path) for path in artifact_paths}),
        }
        self._payload["failure"] = {}

    def mark_failure(self, exc: BaseException) -> None:
        """Record the typed error code, sweep counts and traceback of a failed run."""
        interrupted = isinstance(exc, KeyboardInterrupt)
        default_code = "interrupted" if interrupted else "internal_error"
        self._payload["status"] = "interrupted" if interrupted else "failed"
        self._payload["result"] = {}
        self._payload["failure"] = {
            "exception_type": type(exc).__name__,
            "error_code": getattr(exc, "error_code", default_code),
            "message": str(exc),
            "attempted": getattr(exc, "attempted", None),
            "skipped": getattr(exc, "skipped", None),
            "traceback": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        }

    def write(self) -> Path:
        """Stamp the finish time and write the manifest into ``output_dir``."""
        finished_at = datetime.now(tz=UTC)
        self._payload["finished_at"] = finished_at.isoformat()
        self._payload["duration_seconds"] = (finished_at - self.started_at).total_seconds()

        self.output_dir.mkdir(parents=True, exist_ok=True)
        manifest_path = self.output_dir / self.manifest_name
        text = json.dumps(self._payload, indent=2, sort_keys=True, default=str)
        manifest_path.write_text(text + "\n", encoding="utf-8")
        return manifest_path
