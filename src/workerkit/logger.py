"""
Structured logging for setup runs.

Every lifecycle event of a run is emitted as one record on the
``workerkit.setup`` logger, either as a JSON object (for log shipping) or as
a short human-readable line.

Logged events:
- setup.started / setup.completed / setup.failed
- step.started / step.completed / step.warning / step.failed

Usage:
    from workerkit.logger import SetupLogger

    logger = SetupLogger(run_id="run-1a2b3c4d")
    logger.log_step_started("database")
    logger.log_step_warning("migrations", "remote apply failed")
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

_setup_logger = logging.getLogger("workerkit.setup")
_setup_logger.setLevel(logging.INFO)

# Default handler writes to stderr so stdout stays free for command output
if not _setup_logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    _setup_logger.addHandler(handler)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(level: str = "info") -> None:
    """Apply the configured level to the workerkit logger tree."""
    logging.getLogger("workerkit").setLevel(_LEVELS.get(level, logging.INFO))
    _setup_logger.setLevel(_LEVELS.get(level, logging.INFO))


class SetupLogger:
    """
    Structured logger for setup lifecycle events.

    Each entry carries the service name and run id so records from
    repeated runs against the same project can be told apart.
    """

    def __init__(
        self,
        run_id: Optional[str] = None,
        service_name: str = "workerkit",
        log_format: str = "text",
    ):
        self.run_id = run_id or f"run-{uuid.uuid4().hex[:8]}"
        self.service_name = service_name
        self.log_format = log_format
        self._logger = _setup_logger

    def _emit(self, event: str, level: str = "info", message: str = "", **fields: Any) -> None:
        if self.log_format == "json":
            entry: Dict[str, Any] = {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "level": level,
                "event": event,
                "service": self.service_name,
                "run_id": self.run_id,
            }
            if message:
                entry["message"] = message
            entry.update(fields)
            line = json.dumps(entry, default=str)
        else:
            detail = " ".join(f"{k}={v}" for k, v in fields.items() if v is not None)
            line = " ".join(part for part in (f"[{event}]", message, detail) if part)

        if level == "error":
            self._logger.error(line)
        elif level == "warn":
            self._logger.warning(line)
        elif level == "debug":
            self._logger.debug(line)
        else:
            self._logger.info(line)

    def log_setup_started(self, project_dir: str, steps: List[str]) -> None:
        self._emit("setup.started", project_dir=project_dir, steps=",".join(steps))

    def log_setup_completed(self, warnings: int = 0) -> None:
        self._emit("setup.completed", warnings=warnings)

    def log_setup_failed(self, step: str, reason: str, kind: Optional[str] = None) -> None:
        self._emit("setup.failed", level="error", message=reason, step=step, kind=kind)

    def log_step_started(self, step: str) -> None:
        self._emit("step.started", step=step)

    def log_step_completed(self, step: str, message: str = "") -> None:
        self._emit("step.completed", message=message, step=step)

    def log_step_warning(self, step: str, message: str) -> None:
        self._emit("step.warning", level="warn", message=message, step=step)

    def log_step_failed(self, step: str, reason: str, kind: Optional[str] = None) -> None:
        self._emit("step.failed", level="error", message=reason, step=step, kind=kind)
