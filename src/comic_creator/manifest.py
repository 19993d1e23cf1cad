"""
Run logging and manifest recording.

Why this exists:
- Every component logs through one recorder handle that is passed in
  explicitly, so concurrent page tasks share a single serialized sink.
- A run can optionally write a JSON manifest with inputs/outputs and a
  timeline of actions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
from pathlib import Path
import sys
import threading
from typing import Any, Dict, List, TextIO

from .utils import ensure_dir


LEVEL_TAGS = {
    "trace": "T",
    "debug": "D",
    "info": "I",
    "warning": "W",
    "error": "E",
}


def _iso_now() -> str:
    """Return an ISO-8601 timestamp in UTC."""

    return datetime.now(timezone.utc).isoformat()


@dataclass
class ManifestRecorder:
    """
    Collect logs and actions, then optionally write a manifest JSON file.

    Safe to share between worker threads: each log line and action append
    happens under one lock.
    """

    tool_name: str
    tool_version: str
    command: str
    options: Dict[str, Any]
    inputs: Dict[str, Any]
    outputs: Dict[str, Any]
    dry_run: bool
    verbosity: str = "normal"
    console_stream: TextIO = field(default_factory=lambda: sys.stdout)
    started_at: str = field(default_factory=_iso_now)
    logs: List[Dict[str, Any]] = field(default_factory=list)
    actions: List[Dict[str, Any]] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def _should_print(self, level: str) -> bool:
        if self.verbosity == "quiet":
            return level == "error"
        if self.verbosity == "verbose":
            return True
        return level in {"info", "warning", "error"}

    def log(self, message: str, level: str = "info") -> None:
        """Record a log message and also print it to the console."""

        if level not in LEVEL_TAGS:
            raise ValueError(f"Unknown log level: {level}")

        timestamp = _iso_now()
        thread_id = threading.get_ident()
        entry = {
            "timestamp": timestamp,
            "thread": thread_id,
            "level": level,
            "message": message,
        }

        with self._lock:
            self.logs.append(entry)
            if self._should_print(level):
                line = f"{timestamp} {thread_id} {LEVEL_TAGS[level]} - {message}\n"
                # One write per line keeps lines whole on shared streams.
                self.console_stream.write(line)
                self.console_stream.flush()

    def add_action(self, action: str, status: str, **details: Any) -> None:
        """
        Add an action record.

        Example action types: online_page, print_spread.
        """

        entry: Dict[str, Any] = {
            "timestamp": _iso_now(),
            "action": action,
            "status": status,
        }
        entry.update(details)
        with self._lock:
            self.actions.append(entry)

    def _summarize_actions(self) -> Dict[str, int]:
        """Count actions by status (written, error, dry-run)."""

        counts: Dict[str, int] = {}
        for action in self.actions:
            status = action.get("status", "unknown")
            counts[status] = counts.get(status, 0) + 1
        return counts

    def build_manifest(self, summary: Dict[str, Any]) -> Dict[str, Any]:
        """Assemble the final manifest structure."""

        with self._lock:
            actions = list(self.actions)
            logs = list(self.logs)
            counts = self._summarize_actions()

        return {
            "tool": self.tool_name,
            "version": self.tool_version,
            "command": self.command,
            "started_at": self.started_at,
            "ended_at": _iso_now(),
            "options": self.options,
            "inputs": self.inputs,
            "outputs": self.outputs,
            "summary": summary,
            "action_counts": counts,
            "actions": actions,
            "logs": logs,
        }

    def write_manifest(self, path: Path, summary: Dict[str, Any]) -> None:
        """
        Write the manifest JSON, unless this is a dry-run.

        We treat the manifest itself as output, so dry-run avoids writing it.
        """

        if self.dry_run:
            self.log(f"[dry-run] Would write manifest to {path}")
            return

        ensure_dir(path.parent, dry_run=False)
        manifest = self.build_manifest(summary)
        with path.open("w", encoding="utf-8") as handle:
            json.dump(manifest, handle, indent=2, ensure_ascii=True)
        self.log(f"Wrote manifest to {path}", level="debug")
