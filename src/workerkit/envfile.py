"""
Append-only handling of the local ``KEY=value`` secrets file.

Presence of a key is a substring check for ``KEY=``. A present key is never
rewritten, even if its value differs from what would be written now.
"""

from __future__ import annotations

import secrets
from pathlib import Path
from typing import Dict, List


class DevVarsFile:
    """The ``.dev.vars`` file of a project."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> str:
        if not self.path.exists():
            return ""
        return self.path.read_text(encoding="utf-8")

    def has_key(self, key: str, content: str = None) -> bool:
        if content is None:
            content = self.read()
        return f"{key}=" in content

    def append(self, values: Dict[str, str]) -> List[str]:
        """
        Append the keys of ``values`` that are not present yet.

        Empty values are skipped.

        Returns:
            The keys that were written

        Raises:
            OSError: The file could not be written
            UnicodeDecodeError: The existing file is not valid UTF-8
        """
        content = self.read()
        lines = []
        written = []
        for key, value in values.items():
            if not value or self.has_key(key, content):
                continue
            lines.append(f"{key}={value}\n")
            written.append(key)

        if not lines:
            return []

        prefix = "" if content == "" or content.endswith("\n") else "\n"
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(prefix + "".join(lines))
        return written


def generate_secret(length: int = 32) -> str:
    """Random hex string of ``length`` characters."""
    return secrets.token_hex((length + 1) // 2)[:length]
