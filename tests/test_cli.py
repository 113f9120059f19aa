"""Tests for the workerkit CLI commands."""

import importlib
import json
import tomllib

import pytest
import yaml
from click.testing import CliRunner

from workerkit.cli import main
from workerkit.runner import CommandErr, CommandOk


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def cli():
    return CliRunner()


@pytest.fixture
def fake_runner(make_runner, samples, monkeypatch):
    """Replace the real command runner in every CLI module."""
    runner = make_runner({
        "bunx wrangler whoami": CommandOk(samples.whoami_single),
        "bunx wrangler d1 create my-app-db": CommandOk(samples.d1_create),
    })
    for module in ("setup", "accounts", "migrate"):
        # The package re-exports each command under its module's name
        monkeypatch.setattr(
            importlib.import_module(f"workerkit.cli.{module}"),
            "CommandRunner",
            lambda *args, **kwargs: runner,
        )
    return runner


# ---------------------------------------------------------------------------
# setup
# ---------------------------------------------------------------------------

class TestSetupCommand:

    def test_non_interactive_run(self, cli, fake_runner, project_dir, samples):
        """A scripted run writes the config, the app config and the secret."""
        result = cli.invoke(main, [
            "setup", "--project-dir", str(project_dir), "--non-interactive", "--no-bucket",
        ])

        assert result.exit_code == 0, result.output
        assert "Setup completed." in result.output
        assert "Next steps:" in result.output

        data = tomllib.loads((project_dir / "wrangler.toml").read_text(encoding="utf-8"))
        assert data["d1_databases"][-1]["database_id"] == samples.created_db_id
        assert "r2_buckets" not in data
        assert (project_dir / "open-next.config.ts").exists()
        assert "AUTH_SECRET=" in (project_dir / ".dev.vars").read_text(encoding="utf-8")

    def test_fatal_step_exits_1_with_command_output(self, cli, fake_runner, project_dir):
        """A fatal step exits 1 and prints the command output as is."""
        fake_runner.on("bunx wrangler d1 create my-app-db", CommandErr("create failed", 1))
        fake_runner.on("bunx wrangler d1 info my-app-db", CommandErr("D1 backend said no", 1))

        result = cli.invoke(main, [
            "setup", "--project-dir", str(project_dir), "--non-interactive", "--no-bucket",
        ])

        assert result.exit_code == 1
        assert "Setup failed at [database]" in result.output
        assert "D1 backend said no" in result.output

    def test_missing_config_document_fails(self, cli, fake_runner, project_dir):
        """A missing wrangler.toml fails at the settings step."""
        (project_dir / "wrangler.toml").unlink()
        result = cli.invoke(main, [
            "setup", "--project-dir", str(project_dir), "--non-interactive",
        ])
        assert result.exit_code == 1
        assert "Setup failed at [worker_settings]" in result.output

    def test_several_accounts_need_the_environment(self, cli, fake_runner, project_dir, samples):
        """Without a terminal, several accounts fail with advice instead of a prompt."""
        fake_runner.on("bunx wrangler whoami", CommandOk(samples.whoami_multiple))
        result = cli.invoke(main, [
            "setup", "--project-dir", str(project_dir), "--non-interactive", "--no-bucket",
        ])
        assert result.exit_code == 1
        assert "Setup failed at [account]" in result.output
        assert "CLOUDFLARE_ACCOUNT_ID" in result.output

    def test_account_from_environment(self, cli, fake_runner, project_dir):
        """An account id in the environment skips the account lookup."""
        result = cli.invoke(
            main,
            ["setup", "--project-dir", str(project_dir), "--non-interactive", "--no-bucket"],
            env={"CLOUDFLARE_ACCOUNT_ID": "feedfacefeedfacefeedfacefeedface"},
        )
        assert result.exit_code == 0, result.output
        assert "bunx wrangler whoami" not in fake_runner.commands

    def test_interactive_answers(self, cli, fake_runner, project_dir):
        """Answers typed on the terminal drive the run."""
        # app name, database name, bucket confirm, Google id, Google secret
        answers = "\nmy-app-db\nn\n\n\n"
        result = cli.invoke(main, ["setup", "--project-dir", str(project_dir)], input=answers)
        assert result.exit_code == 0, result.output
        assert "bunx wrangler d1 create my-app-db" in fake_runner.commands


# ---------------------------------------------------------------------------
# accounts
# ---------------------------------------------------------------------------

class TestAccountsCommand:

    def test_text(self, cli, fake_runner, samples):
        """Accounts are listed one per line with their id first."""
        result = cli.invoke(main, ["accounts"])
        assert result.exit_code == 0
        assert f"{samples.account_id}  my-account" in result.output

    def test_json(self, cli, fake_runner, samples):
        """JSON output lists name and id for each account."""
        result = cli.invoke(main, ["accounts", "--format", "json"])
        assert json.loads(result.output) == [{"name": "my-account", "id": samples.account_id}]

    def test_login_failure(self, cli, fake_runner):
        """A failed lookup exits 1 with the command output."""
        fake_runner.on("bunx wrangler whoami", CommandErr("Not logged in.", 1))
        result = cli.invoke(main, ["accounts"])
        assert result.exit_code == 1
        assert "Not logged in." in result.output


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------

class TestShowCommand:

    def test_yaml(self, cli, project_dir):
        """Managed keys are printed as YAML, other keys are left out."""
        result = cli.invoke(main, ["show", "--project-dir", str(project_dir)])
        assert result.exit_code == 0, result.output
        shown = yaml.safe_load(result.output)
        assert shown["name"] == "my-app"
        assert shown["d1_databases"][0]["binding"] == "ANALYTICS"
        assert "vars" not in shown

    def test_json(self, cli, project_dir):
        """Managed keys can be printed as JSON."""
        result = cli.invoke(main, ["show", "--project-dir", str(project_dir), "-o", "json"])
        assert json.loads(result.output)["compatibility_date"] == "2024-01-01"

    def test_missing_document(self, cli, tmp_path):
        """A missing config file exits 1 with a read error."""
        result = cli.invoke(main, ["show", "--project-dir", str(tmp_path)])
        assert result.exit_code == 1
        assert "Cannot read" in result.output

    def test_undecodable_document(self, cli, project_dir):
        """A config file that is not UTF-8 is reported, not raised."""
        (project_dir / "wrangler.toml").write_bytes(b'name = "caf\xe9"\n')
        result = cli.invoke(main, ["show", "--project-dir", str(project_dir)])
        assert result.exit_code == 1
        assert "not valid UTF-8" in result.output


# ---------------------------------------------------------------------------
# migrate
# ---------------------------------------------------------------------------

class TestMigrateCommand:

    def test_success(self, cli, fake_runner, project_dir):
        """Migrations are generated, then applied locally and remotely."""
        result = cli.invoke(main, ["migrate", "my-app-db", "--project-dir", str(project_dir)])
        assert result.exit_code == 0
        assert fake_runner.commands == [
            "bunx drizzle-kit generate",
            "bunx wrangler d1 migrations apply my-app-db --local",
            "bunx wrangler d1 migrations apply my-app-db --remote",
        ]

    def test_remote_failure_is_not_an_error(self, cli, fake_runner, project_dir):
        """A failed remote apply only warns."""
        fake_runner.on("bunx wrangler d1 migrations apply my-app-db --remote", CommandErr("auth", 1))
        result = cli.invoke(main, ["migrate", "my-app-db", "--project-dir", str(project_dir)])
        assert result.exit_code == 0
        assert "manually" in result.output

    def test_local_failure_exits_1(self, cli, fake_runner, project_dir):
        """A failed local apply exits 1 with its output."""
        fake_runner.on("bunx wrangler d1 migrations apply my-app-db --local", CommandErr("bad sql", 1))
        result = cli.invoke(main, ["migrate", "my-app-db", "--project-dir", str(project_dir)])
        assert result.exit_code == 1
        assert "bad sql" in result.output
