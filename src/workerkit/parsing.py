"""
Extraction of facts from provisioning CLI output.

The provisioning CLI has no machine-readable mode for the commands used
here, so accounts and resource identifiers are recovered from its text
output. Everything that depends on the exact text shape (border glyph,
identifier patterns) lives on an ``OutputFormat`` so a different CLI
version can be supported by supplying another format instead of editing
the algorithms.

Known fragility: the default format matches the box-drawing tables and
``key = "value"`` lines printed by current releases. A release that changes
them will make extraction return nothing, which callers treat as failure.

Parser functions never raise; absence of a match is ``None`` or ``[]``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern


@dataclass(frozen=True)
class AccountIdentity:
    """An account parsed from the account listing."""
    display_name: str
    account_id: str


_UUID = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"


@dataclass(frozen=True)
class OutputFormat:
    """Text shapes of one provisioning CLI version."""

    border: str = "│"
    account_id_regex: str = r"\b[a-f0-9]{32}\b"
    identifier_key: str = "database_id"
    uuid_regex: str = _UUID
    no_account_marker: str = "associated with an account"

    @property
    def account_id_pattern(self) -> Pattern[str]:
        return re.compile(self.account_id_regex)

    def assignment_pattern(self, key: Optional[str] = None) -> Pattern[str]:
        return re.compile(
            re.escape(key or self.identifier_key) + r'\s*=\s*"([^"\n]+)"'
        )

    @property
    def table_identifier_pattern(self) -> Pattern[str]:
        border = re.escape(self.border)
        return re.compile(
            border + r"\s*(" + self.uuid_regex + r")\s*" + border, re.IGNORECASE
        )

    def is_table_row(self, line: str) -> bool:
        stripped = line.strip()
        return (
            stripped.startswith(self.border + " ")
            and stripped.endswith(" " + self.border)
        )


DEFAULT_FORMAT = OutputFormat()


def extract_accounts(output: str, fmt: OutputFormat = DEFAULT_FORMAT) -> List[AccountIdentity]:
    """
    Parse account rows from a table-formatted listing.

    A row counts only when it is framed by the border glyph and contains
    exactly one account id token. Header and separator rows, and rows with
    several ids, are skipped.
    """
    accounts: List[AccountIdentity] = []

    for line in output.splitlines():
        if not fmt.is_table_row(line):
            continue

        stripped = line.strip()
        matches = list(fmt.account_id_pattern.finditer(stripped))
        if len(matches) != 1:
            continue

        match = matches[0]
        name = stripped[: match.start()].strip().strip(fmt.border).strip()
        if not name:
            continue
        accounts.append(AccountIdentity(display_name=name, account_id=match.group(0)))

    return accounts


def reports_no_account(output: str, fmt: OutputFormat = DEFAULT_FORMAT) -> bool:
    """Whether the listing says the login has no account attached."""
    return fmt.no_account_marker in output


def extract_identifier(
    output: str,
    key: Optional[str] = None,
    fmt: OutputFormat = DEFAULT_FORMAT,
) -> Optional[str]:
    """
    Find a resource identifier in command output.

    Tries a ``key = "value"`` assignment first and falls back to a UUID
    framed by table borders. The first pattern that matches wins.
    """
    if not output:
        return None

    match = fmt.assignment_pattern(key).search(output)
    if match:
        return match.group(1).strip()

    match = fmt.table_identifier_pattern.search(output)
    if match:
        return match.group(1)

    return None
