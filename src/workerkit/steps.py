"""
The setup steps, in the order they run.

Each step takes the ``SetupContext``, does one piece of work and returns a
``StepResult``. Steps that touch the config document load it themselves
and store it before returning, so any step can be re-run on its own.
"""

from __future__ import annotations

import logging
import os
import sys

from workerkit.bindings import BucketBinding, DatabaseBinding
from workerkit.document import BUCKETS_KEY, DATABASES_KEY, load_document, store_document
from workerkit.envfile import DevVarsFile, generate_secret
from workerkit.errors import FailureKind
from workerkit.orchestrator import SetupContext, Step, StepResult
from workerkit.parsing import extract_accounts, reports_no_account
from workerkit.prompts import Choice
from workerkit.provisioner import bucket_kind, database_kind
from workerkit.runner import CommandErr

logger = logging.getLogger(__name__)

APP_CONFIG_TEMPLATE = """\
// OpenNext configuration for Cloudflare Workers.
// See https://opennext.js.org/cloudflare for the available options.
import { defineCloudflareConfig } from "@opennextjs/cloudflare";

export default defineCloudflareConfig({});
"""

OAUTH_INSTRUCTIONS = """\
Set up Google OAuth 2.0 for authentication:
1. Open the Google Cloud Console: https://console.cloud.google.com/
2. Create or select a project and configure the OAuth consent screen.
3. Under 'APIs & Services' > 'Credentials', create an 'OAuth client ID'
   of type 'Web application'.
4. Add http://localhost:3000 and your production origin as JavaScript origins.
5. Add <origin>/api/auth/callback/google for each origin as redirect URIs.
6. Copy the Client ID and Client secret."""


def account_env_advice(name: str, platform: str = sys.platform) -> str:
    """How to set the account id variable in the user's shell."""
    if platform == "win32":
        command = f'set {name}=<account id> (Command Prompt) or $env:{name}="<account id>" (PowerShell)'
    else:
        command = f'export {name}="<account id>"'
    return (
        f"Find your account id on the dashboard, then run: {command}\n"
        "and run setup again."
    )


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------

def resolve_account(ctx: SetupContext) -> StepResult:
    config = ctx.config
    if ctx.account_id:
        return StepResult.success(f"Using account {ctx.account_id}")

    from_env = os.environ.get(config.account_env_var)
    if from_env:
        ctx.account_id = from_env
        return StepResult.success(f"Using {config.account_env_var} from environment: {from_env}")

    outcome = ctx.run(config.wrangler("whoami"))
    if isinstance(outcome, CommandErr):
        return StepResult.fatal(
            "Could not read account info. Make sure you are logged in (wrangler login).",
            output=outcome.message,
        )

    accounts = extract_accounts(outcome.stdout, ctx.fmt)
    if not accounts:
        if reports_no_account(outcome.stdout, ctx.fmt):
            reason = "The current login is not associated with an account."
        else:
            reason = "Could not determine the account id from the account listing."
        return StepResult.fatal(
            f"{reason}\n{account_env_advice(config.account_env_var)}",
            kind=FailureKind.PARSE,
            output=outcome.stdout,
        )

    if len(accounts) == 1:
        account_id = accounts[0].account_id
    elif not ctx.prompter.interactive:
        return StepResult.fatal(
            f"Found {len(accounts)} accounts and cannot ask which one to use.\n"
            f"{account_env_advice(config.account_env_var)}",
            kind=FailureKind.PARSE,
            output=outcome.stdout,
        )
    else:
        account_id = ctx.prompter.select(
            "Select the account to use:",
            [Choice(a.account_id, a.display_name, f"ID: {a.account_id}") for a in accounts],
        )

    ctx.account_id = account_id
    return StepResult.success(
        f"Using account {account_id}. Set {config.account_env_var} to skip this lookup next time."
    )


# ---------------------------------------------------------------------------
# Dependencies and worker settings
# ---------------------------------------------------------------------------

def install_dependencies(ctx: SetupContext) -> StepResult:
    package = ctx.config.adapter_package
    outcome = ctx.run(ctx.config.package_add(package))
    if isinstance(outcome, CommandErr):
        return StepResult.fatal(f"Failed to install {package}.", output=outcome.message)
    # The package manager can exit 0 and still report a resolution error
    if "error:" in outcome.stdout:
        return StepResult.fatal(f"Failed to install {package}.", output=outcome.stdout)
    return StepResult.success(f"{package} added")


def configure_worker_settings(ctx: SetupContext) -> StepResult:
    config = ctx.config
    doc = load_document(config.config_path)

    default_name = doc.name or config.project_path.name
    app_name = ctx.prompter.text("Name for the worker application", default_name) or default_name

    removed_legacy = doc.apply_worker_settings(
        name=app_name,
        main=config.main_entry,
        compatibility_date=config.compatibility_date,
        compatibility_flags=config.compatibility_flags,
        assets_binding=config.assets_binding,
        assets_directory=config.assets_directory,
        placement_mode=config.placement_mode,
    )
    store_document(config.config_path, doc)

    ctx.app_name = app_name
    if removed_legacy:
        ctx.notify(f"Removed 'pages_build_output_dir' from {config.config_filename}.")
    return StepResult.success(f"{config.config_filename} configured for worker '{app_name}'")


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------

def provision_database(ctx: SetupContext) -> StepResult:
    config = ctx.config
    default_name = f"{config.project_path.name}-db"
    name = ctx.prompter.text("Name for the D1 database", default_name) or default_name

    # Loaded first: a broken document must stop the run before anything is created
    doc = load_document(config.config_path)

    resource = ctx.provisioner().provision(database_kind(config, ctx.fmt), name)
    if not resource.found:
        return StepResult.fatal(
            f"Failed to create or find D1 database '{name}'.",
            kind=FailureKind.PARSE,
            output=resource.output,
        )

    binding = DatabaseBinding(
        binding=config.database_binding,
        database_name=name,
        database_id=resource.identifier,
        migrations_dir=config.migrations_dir,
    )
    doc.upsert_binding(DATABASES_KEY, binding.to_dict())
    store_document(config.config_path, doc)

    ctx.database = resource
    return StepResult.success(
        f"D1 database '{name}' {resource.sourced_from.value}, id {resource.identifier}"
    )


def provision_bucket(ctx: SetupContext) -> StepResult:
    config = ctx.config
    wanted = ctx.create_bucket
    if wanted is None:
        wanted = ctx.prompter.confirm("Set up an R2 bucket for storage?", default=False)
    if not wanted:
        return StepResult.success("R2 bucket setup skipped")

    doc = load_document(config.config_path)

    default_name = f"{ctx.app_name or config.project_path.name}-bucket"
    name = ctx.prompter.text("Name for the R2 bucket", default_name) or default_name

    resource = ctx.provisioner().provision(bucket_kind(config), name)
    if not resource.found:
        return StepResult.fatal(
            f"Failed to create or find R2 bucket '{name}'; it was not added to "
            f"{config.config_filename}.",
            output=resource.output,
        )

    binding = BucketBinding(binding=config.bucket_binding, bucket_name=name)
    doc.upsert_binding(BUCKETS_KEY, binding.to_dict())
    store_document(config.config_path, doc)

    ctx.bucket = resource
    return StepResult.success(f"R2 bucket '{name}' {resource.sourced_from.value}")


# ---------------------------------------------------------------------------
# Local files
# ---------------------------------------------------------------------------

def create_app_config(ctx: SetupContext) -> StepResult:
    path = ctx.config.app_config_path
    if path.exists():
        return StepResult.success(f"{path.name} already exists")
    try:
        path.write_text(APP_CONFIG_TEMPLATE, encoding="utf-8")
    except OSError as e:
        return StepResult.warning(f"Could not create {path.name}: {e}")
    return StepResult.success(f"Created {path.name}")


def setup_oauth_credentials(ctx: SetupContext) -> StepResult:
    dev_vars = DevVarsFile(ctx.config.dev_vars_path)
    try:
        content = dev_vars.read()
    except (OSError, UnicodeDecodeError) as e:
        return StepResult.warning(f"Could not read {dev_vars.path.name}: {e}")

    if dev_vars.has_key("AUTH_GOOGLE_ID", content) and dev_vars.has_key("AUTH_GOOGLE_SECRET", content):
        return StepResult.success("Google OAuth credentials already present")

    ctx.notify(OAUTH_INSTRUCTIONS)
    client_id = ctx.prompter.text("Google Client ID (leave empty to skip)", "")
    client_secret = ctx.prompter.text("Google Client Secret (leave empty to skip)", "")
    if not client_id and not client_secret:
        return StepResult.success("Google OAuth setup skipped")

    try:
        written = dev_vars.append({
            "AUTH_GOOGLE_ID": client_id,
            "AUTH_GOOGLE_SECRET": client_secret,
        })
    except (OSError, UnicodeDecodeError) as e:
        return StepResult.fatal(f"Could not update {dev_vars.path.name}: {e}")
    return StepResult.success(f"Wrote {', '.join(written) or 'nothing'} to {dev_vars.path.name}")


def generate_auth_secret(ctx: SetupContext) -> StepResult:
    dev_vars = DevVarsFile(ctx.config.dev_vars_path)
    try:
        if dev_vars.has_key("AUTH_SECRET"):
            return StepResult.success("AUTH_SECRET already present")
        dev_vars.append({"AUTH_SECRET": generate_secret(32)})
    except (OSError, UnicodeDecodeError) as e:
        return StepResult.warning(f"Could not write AUTH_SECRET to {dev_vars.path.name}: {e}")
    return StepResult.success(f"Generated AUTH_SECRET in {dev_vars.path.name}")


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------

def apply_migrations(ctx: SetupContext, database_name: str) -> StepResult:
    """
    Generate migration files and apply them locally, then remotely.

    Only the local apply is required: local development has to work, while
    a failed remote apply can be fixed by hand later.
    """
    config = ctx.config
    warnings = []
    outputs = []

    outcome = ctx.run(config.migration_generate())
    if isinstance(outcome, CommandErr):
        warnings.append("Generating migration files failed.")
        outputs.append(outcome.message)

    outcome = ctx.run(config.wrangler("d1", "migrations", "apply", database_name, "--local"))
    if isinstance(outcome, CommandErr):
        return StepResult.fatal(
            f"Applying migrations to the local database '{database_name}' failed.",
            output=outcome.message,
        )

    outcome = ctx.run(config.wrangler("d1", "migrations", "apply", database_name, "--remote"))
    if isinstance(outcome, CommandErr):
        warnings.append(
            f"Applying migrations to the remote database '{database_name}' failed; "
            "apply them manually."
        )
        outputs.append(outcome.message)

    if warnings:
        return StepResult.warning(" ".join(warnings), output="\n".join(outputs))
    return StepResult.success(f"Migrations applied to '{database_name}' (local and remote)")


def run_migrations(ctx: SetupContext) -> StepResult:
    if ctx.database is None:
        return StepResult.warning("Database name not set; skipping migrations")
    return apply_migrations(ctx, ctx.database.name)


DEFAULT_STEPS = [
    Step("account", resolve_account),
    Step("dependencies", install_dependencies),
    Step("worker_settings", configure_worker_settings),
    Step("database", provision_database),
    Step("bucket", provision_bucket, optional=True),
    Step("app_config", create_app_config),
    Step("oauth_credentials", setup_oauth_credentials, optional=True),
    Step("auth_secret", generate_auth_secret),
    Step("migrations", run_migrations),
]
