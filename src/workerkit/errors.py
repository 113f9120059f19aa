"""
Error taxonomy for workerkit.

Only conditions that must cross a module boundary as exceptions live here.
Resource conflicts during provisioning are not errors: they are recovered by
discovery and reported as ``ProvisionedResource(sourced_from="discovered")``.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional


class FailureKind(str, Enum):
    """Why a step ended the run."""
    COMMAND = "command"
    PARSE = "parse"
    PERSISTENCE = "persistence"
    USER_ABORT = "user_abort"


class WorkerKitError(Exception):
    """Base class for workerkit errors."""


class PersistenceFailure(WorkerKitError):
    """The config document could not be read or written."""

    def __init__(self, path: Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.verb} {self.path}: {reason}")

    verb = "Cannot access"


class DocumentReadError(PersistenceFailure):
    verb = "Cannot read"


class DocumentWriteError(PersistenceFailure):
    verb = "Cannot write"


class UserAbort(WorkerKitError):
    """The user cancelled an interactive prompt."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "Operation cancelled.")
