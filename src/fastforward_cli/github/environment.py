"""Runner environment: event location, actor, and the file-backed sinks."""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .client import DEFAULT_API_URL

__all__ = ["RunnerEnvironment", "append_step_summary", "write_output"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunnerEnvironment:
    """Values a workflow runner exposes through environment variables."""

    event_path: Path | None = None
    actor: str | None = None
    step_summary: Path | None = None
    output: Path | None = None
    api_url: str = DEFAULT_API_URL
    workspace: Path | None = None

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> "RunnerEnvironment":
        env = os.environ if environ is None else environ

        def path_of(name: str) -> Path | None:
            value = (env.get(name) or "").strip()
            return Path(value) if value else None

        return cls(
            event_path=path_of("GITHUB_EVENT_PATH"),
            actor=(env.get("GITHUB_ACTOR") or "").strip() or None,
            step_summary=path_of("GITHUB_STEP_SUMMARY"),
            output=path_of("GITHUB_OUTPUT"),
            api_url=(env.get("GITHUB_API_URL") or "").strip() or DEFAULT_API_URL,
            workspace=path_of("GITHUB_WORKSPACE"),
        )


def append_step_summary(path: Path | None, text: str) -> bool:
    """Append ``text`` to the step summary; returns False when there is none."""
    if path is None:
        logger.debug("GITHUB_STEP_SUMMARY not set; skipping step summary")
        return False
    with open(path, "a", encoding="utf-8") as handle:
        handle.write(text)
        if not text.endswith("\n"):
            handle.write("\n")
    return True


def write_output(path: Path | None, name: str, value: str) -> bool:
    """Set output ``name`` using the multi-line delimiter syntax."""
    if path is None:
        logger.debug("GITHUB_OUTPUT not set; skipping output %s", name)
        return False
    delimiter = f"ghadelimiter_{uuid.uuid4().hex}"
    with open(path, "a", encoding="utf-8") as handle:
        handle.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
    return True
