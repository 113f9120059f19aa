"""
Load, mutate and store the worker configuration document.

The document is a TOML file read with ``tomllib`` and written with
``tomli_w``. Keys are kept in file order, and keys the caller does not touch
survive a load/store cycle with the same values. Comments and formatting
are not preserved.

Mutations only change the in-memory ``ConfigDocument``; ``store_document``
is a separate, explicit step.
"""

from __future__ import annotations

import logging
import os
import tempfile
import tomllib
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import tomli_w

from workerkit.bindings import reconcile
from workerkit.errors import DocumentReadError, DocumentWriteError

logger = logging.getLogger(__name__)

DATABASES_KEY = "d1_databases"
BUCKETS_KEY = "r2_buckets"
LEGACY_OUTPUT_DIR_KEY = "pages_build_output_dir"


class ConfigDocument:
    """Ordered mapping of top-level keys with typed helpers."""

    def __init__(self, data: Optional[Dict[str, Any]] = None, path: Optional[Path] = None):
        self.data: Dict[str, Any] = data if data is not None else {}
        self.path = path

    def __contains__(self, key: str) -> bool:
        return key in self.data

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConfigDocument):
            return NotImplemented
        return self.data == other.data

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def remove(self, key: str) -> bool:
        """Delete ``key``; returns whether it was present."""
        if key not in self.data:
            return False
        del self.data[key]
        return True

    @property
    def name(self) -> Optional[str]:
        value = self.data.get("name")
        return value if isinstance(value, str) and value else None

    def bindings(self, list_key: str) -> List[Dict[str, Any]]:
        value = self.data.get(list_key)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    def upsert_binding(self, list_key: str, binding: Dict[str, Any]) -> None:
        self.data[list_key] = reconcile(self.data.get(list_key), binding)

    def apply_worker_settings(
        self,
        name: str,
        main: str,
        compatibility_date: str,
        compatibility_flags: List[str],
        assets_binding: str,
        assets_directory: str,
        placement_mode: str,
    ) -> bool:
        """
        Point the document at the worker build output.

        Returns:
            True if the legacy Pages output key was removed
        """
        self.data["name"] = name
        self.data["main"] = main
        self.data["compatibility_date"] = compatibility_date
        self.data["compatibility_flags"] = list(compatibility_flags)
        removed = self.remove(LEGACY_OUTPUT_DIR_KEY)
        self.data["assets"] = {"binding": assets_binding, "directory": assets_directory}
        if not self.data.get("placement"):
            self.data["placement"] = {"mode": placement_mode}
        return removed

    def to_toml(self) -> str:
        return tomli_w.dumps(self.data)


def load_document(path: Path) -> ConfigDocument:
    """
    Read and parse the document at ``path``.

    Raises:
        DocumentReadError: The file is missing, unreadable, not UTF-8 or not valid TOML
    """
    path = Path(path)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        raise DocumentReadError(path, "file not found; create it at the project root")
    except OSError as e:
        raise DocumentReadError(path, str(e))
    except UnicodeDecodeError as e:
        raise DocumentReadError(path, f"not valid UTF-8: {e}")
    except tomllib.TOMLDecodeError as e:
        raise DocumentReadError(path, f"invalid TOML: {e}")

    logger.debug("Loaded %s (%d keys)", path, len(data))
    return ConfigDocument(data, path=path)


def store_document(path: Path, doc: ConfigDocument) -> None:
    """
    Serialize ``doc`` to ``path`` atomically.

    Writes to a temporary file in the same directory and renames it over
    the target so an interrupted run never leaves a truncated document.

    Raises:
        DocumentWriteError: Serialization or the write failed
    """
    path = Path(path)
    try:
        content = doc.to_toml()
    except (TypeError, ValueError) as e:
        raise DocumentWriteError(path, f"cannot serialize: {e}")

    try:
        fd, temp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.name}-",
            suffix=".tmp",
        )
    except OSError as e:
        raise DocumentWriteError(path, str(e))

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        # mkstemp creates 0600; keep the mode the document already had
        os.chmod(temp_path, path.stat().st_mode & 0o777 if path.exists() else 0o644)
        os.replace(temp_path, path)
    except OSError as e:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise DocumentWriteError(path, str(e))

    logger.debug("Wrote %s", path)
