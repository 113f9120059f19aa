"""
CLI command for ``workerkit setup`` - the full setup run.

Usage::

    workerkit setup
    workerkit setup --project-dir ~/src/my-app --with-bucket
    CLOUDFLARE_ACCOUNT_ID=... workerkit setup --non-interactive --no-bucket
"""

import sys
from typing import Optional

import click

from workerkit.config import get_config
from workerkit.logger import SetupLogger, configure_logging
from workerkit.orchestrator import SetupContext, SetupOrchestrator, SetupReport, StepOutcome
from workerkit.prompts import ClickPrompter, NonInteractivePrompter
from workerkit.runner import CommandRunner

NEXT_STEPS = """\
Next steps:
1. Add build and deploy scripts to package.json:
     "worker:build": "opennextjs-cloudflare build",
     "preview": "bun run worker:build && opennextjs-cloudflare preview",
     "deploy": "bun run worker:build && opennextjs-cloudflare deploy"
   and remove Pages-specific scripts such as pages:build.
2. Optionally remove @cloudflare/next-on-pages: bun remove @cloudflare/next-on-pages
3. Review wrangler.toml and .dev.vars.
4. Develop with `bun run dev`, preview with `bun run preview`,
   deploy with `bun run deploy`."""


def _configure_tracing(endpoint: str, service_name: str) -> bool:
    """
    Export setup spans over OTLP gRPC.

    Returns:
        True if configuration succeeded, False otherwise
    """
    try:
        from opentelemetry import trace
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as e:
        click.echo(f"Warning: tracing disabled, OTLP exporter unavailable: {e}", err=True)
        return False

    resource = Resource.create({
        "service.name": service_name,
        "service.namespace": "workerkit",
    })
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True)))
    trace.set_tracer_provider(provider)
    return True


def _flush_tracing() -> None:
    from opentelemetry import trace

    provider = trace.get_tracer_provider()
    if hasattr(provider, "force_flush"):
        provider.force_flush(timeout_millis=10000)
    if hasattr(provider, "shutdown"):
        provider.shutdown()


def _echo_command(command: str) -> None:
    click.echo(click.style(f"$ {command}", fg="yellow"))


def _render_report(report: SetupReport) -> None:
    click.echo()
    for name, result in report.results:
        if result.outcome == StepOutcome.SUCCESS:
            icon = click.style("  OK  ", fg="green")
        elif result.outcome == StepOutcome.WARNING:
            icon = click.style("  WARN", fg="yellow")
        else:
            icon = click.style("  FAIL", fg="red")
        click.echo(f"{icon} [{name}] {result.message}")
    click.echo()


@click.command()
@click.option(
    "--project-dir",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Application root containing wrangler.toml (default: current directory).",
)
@click.option(
    "--non-interactive",
    is_flag=True,
    help="Answer every question with its default. Requires the account id in the environment when several accounts exist.",
)
@click.option(
    "--with-bucket/--no-bucket",
    "with_bucket",
    default=None,
    help="Create the R2 bucket without asking, or skip it.",
)
@click.option("--log-format", type=click.Choice(["text", "json"]), default=None, help="Log record format.")
@click.option("--otlp-endpoint", default=None, help="Export step spans to this OTLP gRPC endpoint.")
def setup(
    project_dir: Optional[str],
    non_interactive: bool,
    with_bucket: Optional[bool],
    log_format: Optional[str],
    otlp_endpoint: Optional[str],
):
    """Provision resources and configure the project for Workers. Safe to re-run."""
    overrides = {}
    if project_dir:
        overrides["project_dir"] = project_dir
    if log_format:
        overrides["log_format"] = log_format
    if otlp_endpoint:
        overrides["otlp_endpoint"] = otlp_endpoint
    config = get_config(**overrides)
    configure_logging(config.log_level)

    tracing = bool(config.otlp_endpoint) and _configure_tracing(config.otlp_endpoint, config.service_name)

    prompter = NonInteractivePrompter() if non_interactive else ClickPrompter()
    context = SetupContext(
        config=config,
        runner=CommandRunner(config.command_locale, echo=_echo_command),
        prompter=prompter,
        create_bucket=with_bucket,
    )
    orchestrator = SetupOrchestrator(
        setup_logger=SetupLogger(service_name=config.service_name, log_format=config.log_format),
    )

    click.echo(click.style(f"Setting up {config.project_path.name} for Cloudflare Workers", bold=True))
    try:
        report = orchestrator.run(context)
    finally:
        if tracing:
            _flush_tracing()

    _render_report(report)

    for name, result in report.warnings:
        if result.output:
            click.echo(click.style(f"Output from [{name}]:", fg="yellow"), err=True)
            click.echo(result.output, err=True)

    if not report.ok:
        failure = report.failure
        click.echo(click.style(f"Setup failed at [{report.failed_step}]: {failure.message}", fg="red"), err=True)
        if failure.output:
            click.echo(failure.output, err=True)
        sys.exit(report.exit_code)

    click.echo(click.style("Setup completed.", fg="green", bold=True))
    click.echo(NEXT_STEPS)
