"""Run metadata written next to diagnostic coverings."""

from __future__ import annotations

import importlib.metadata
import platform
import subprocess
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def _git_commit() -> str:
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
            timeout=5,
        )
    except (subprocess.CalledProcessError, FileNotFoundError, subprocess.TimeoutExpired):
        return "unknown"
    return result.stdout.strip() or "unknown"


def _package_version() -> str:
    try:
        return importlib.metadata.version("geocells")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def collect_metadata(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return a JSON-serialisable description of the current run.

    Keys: ``timestamp`` (UTC, ISO format), ``python_version``, ``platform``,
    ``working_directory``, ``git_commit`` and ``geocells_version``, the last
    two falling back to ``"unknown"``. Entries of ``extra`` are merged last.
    """
    metadata: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "python_version": sys.version,
        "platform": platform.platform(),
        "working_directory": str(Path.cwd().resolve()),
        "git_commit": _git_commit(),
        "geocells_version": _package_version(),
    }
    if extra:
        metadata.update(extra)
    return metadata
