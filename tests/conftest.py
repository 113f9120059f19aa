"""
Pytest configuration and fixtures for workerkit tests.
"""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Dict, List, Optional, Sequence, Tuple, Union

import pytest

from workerkit.config import WorkerKitConfig, reset_config
from workerkit.orchestrator import SetupContext
from workerkit.prompts import Choice, Prompter
from workerkit.runner import CommandOk, CommandOutcome


# ============================================================================
# Sample command output
# ============================================================================

ACCOUNT_ID = "0123456789abcdef0123456789abcdef"
OTHER_ACCOUNT_ID = "fedcba9876543210fedcba9876543210"
CREATED_DB_ID = "4b8f2c1e-1234-4cde-9abc-0123456789ab"
DISCOVERED_DB_ID = "7f3e9a52-8d1c-4b6e-a0f2-3c5d7e9b1a24"

WHOAMI_SINGLE = f"""\
 ⛅️ wrangler 3.57.0
-------------------
Getting User settings...
👋 You are logged in with an OAuth Token, associated with the email dev@example.com.
┌──────────────────────┬──────────────────────────────────┐
│ Account Name         │ Account ID                       │
├──────────────────────┼──────────────────────────────────┤
│ my-account           │ {ACCOUNT_ID} │
└──────────────────────┴──────────────────────────────────┘
"""

WHOAMI_MULTIPLE = f"""\
┌──────────────────────┬──────────────────────────────────┐
│ Account Name         │ Account ID                       │
├──────────────────────┼──────────────────────────────────┤
│ my-account           │ {ACCOUNT_ID} │
│ Team Account         │ {OTHER_ACCOUNT_ID} │
└──────────────────────┴──────────────────────────────────┘
"""

D1_CREATE_OUTPUT = f"""\
✅ Successfully created DB 'my-app-db' in region WEUR
Created your new D1 database.

[[d1_databases]]
binding = "DB"
database_name = "my-app-db"
database_id = "{CREATED_DB_ID}"
"""

D1_INFO_OUTPUT = f"""\
┌───────────────────┬──────────────────────────────────────┐
│                   │ {DISCOVERED_DB_ID} │
├───────────────────┼──────────────────────────────────────┤
│ name              │ my-app-db                            │
├───────────────────┼──────────────────────────────────────┤
│ version           │ production                           │
└───────────────────┴──────────────────────────────────────┘
"""

STARTING_CONFIG = """\
name = "my-app"
compatibility_date = "2024-01-01"
pages_build_output_dir = ".vercel/output/static"

[vars]
API_URL = "https://api.example.com"

[[d1_databases]]
binding = "ANALYTICS"
database_name = "analytics"
database_id = "11111111-2222-3333-4444-555555555555"
"""


# ============================================================================
# Fakes
# ============================================================================


class FakeRunner:
    """
    Command runner answering from a script.

    Responses are keyed by the full command line. A list of outcomes is
    consumed one per call; the last one repeats. Unknown commands succeed
    with empty output.
    """

    def __init__(self, responses: Optional[Dict[str, Union[CommandOutcome, List[CommandOutcome]]]] = None):
        self.responses: Dict[str, List[CommandOutcome]] = {}
        self.calls: List[Tuple[str, Dict[str, str]]] = []
        for command, outcome in (responses or {}).items():
            self.on(command, *(outcome if isinstance(outcome, list) else [outcome]))

    def on(self, command: str, *outcomes: CommandOutcome) -> "FakeRunner":
        self.responses[command] = list(outcomes)
        return self

    def run(self, argv, env=None, cwd=None) -> CommandOutcome:
        command = " ".join(argv)
        self.calls.append((command, dict(env or {})))
        outcomes = self.responses.get(command)
        if not outcomes:
            return CommandOk(stdout="")
        if len(outcomes) > 1:
            return outcomes.pop(0)
        return outcomes[0]

    @property
    def commands(self) -> List[str]:
        return [command for command, _ in self.calls]


class ScriptedPrompter(Prompter):
    """Prompter with canned answers; unanswered questions take defaults."""

    def __init__(
        self,
        text_answers: Optional[Dict[str, str]] = None,
        select_answer=None,
        confirm_answer: Optional[bool] = None,
    ):
        self.text_answers = text_answers or {}
        self.select_answer = select_answer
        self.confirm_answer = confirm_answer
        self.asked: List[str] = []
        self.messages: List[str] = []

    def text(self, message: str, default: str = "") -> str:
        self.asked.append(message)
        for fragment, answer in self.text_answers.items():
            if fragment in message:
                return answer
        return default

    def select(self, message: str, choices: Sequence[Choice]):
        self.asked.append(message)
        if self.select_answer is not None:
            return self.select_answer
        return choices[0].value

    def confirm(self, message: str, default: bool = False) -> bool:
        self.asked.append(message)
        return default if self.confirm_answer is None else self.confirm_answer

    def info(self, message: str) -> None:
        self.messages.append(message)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """No ambient account id or cached config leaks into tests."""
    monkeypatch.delenv("CLOUDFLARE_ACCOUNT_ID", raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def project_dir(tmp_path) -> Path:
    project = tmp_path / "my-app"
    project.mkdir()
    (project / "wrangler.toml").write_text(STARTING_CONFIG, encoding="utf-8")
    return project


@pytest.fixture
def config(project_dir) -> WorkerKitConfig:
    return WorkerKitConfig(
        project_dir=str(project_dir),
        wrangler_command="wrangler",
        package_add_command="bun add",
        migration_generate_command="drizzle-kit generate",
    )


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def prompter() -> ScriptedPrompter:
    return ScriptedPrompter()


@pytest.fixture
def context(config, runner, prompter) -> SetupContext:
    return SetupContext(config=config, runner=runner, prompter=prompter)


@pytest.fixture
def samples() -> SimpleNamespace:
    """Sample command output and the identifiers inside it."""
    return SimpleNamespace(
        account_id=ACCOUNT_ID,
        other_account_id=OTHER_ACCOUNT_ID,
        created_db_id=CREATED_DB_ID,
        discovered_db_id=DISCOVERED_DB_ID,
        whoami_single=WHOAMI_SINGLE,
        whoami_multiple=WHOAMI_MULTIPLE,
        d1_create=D1_CREATE_OUTPUT,
        d1_info=D1_INFO_OUTPUT,
        starting_config=STARTING_CONFIG,
    )


@pytest.fixture
def make_runner():
    """Build a FakeRunner from a {command: outcome(s)} mapping."""
    return FakeRunner


@pytest.fixture
def make_prompter():
    return ScriptedPrompter
