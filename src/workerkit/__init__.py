"""
workerkit - Set up a Next.js application for Cloudflare Workers.

Drives the provisioning CLI to create (or find) the account's D1 database
and R2 bucket, records their bindings in ``wrangler.toml`` without
disturbing unrelated settings, and prepares local secrets and migrations.
Every step is safe to re-run.

Example usage:
    from workerkit import SetupOrchestrator, SetupContext
    from workerkit.config import get_config
    from workerkit.prompts import ClickPrompter
    from workerkit.runner import CommandRunner

    config = get_config(project_dir="~/src/my-app")
    context = SetupContext(config, CommandRunner(config.command_locale), ClickPrompter())
    report = SetupOrchestrator().run(context)
"""

__version__ = "0.1.0"
__all__ = [
    "SetupOrchestrator",
    "SetupContext",
    "reconcile",
    "__version__",
]


# Lazy imports to keep the CLI start-up light
def __getattr__(name: str):
    if name == "SetupOrchestrator":
        from workerkit.orchestrator import SetupOrchestrator
        return SetupOrchestrator
    if name == "SetupContext":
        from workerkit.orchestrator import SetupContext
        return SetupContext
    if name == "reconcile":
        from workerkit.bindings import reconcile
        return reconcile
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
