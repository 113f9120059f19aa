"""
Sequencing of setup steps.

The orchestrator runs a fixed list of steps against a ``SetupContext``.
Steps hand their outputs (account id, app name, provisioned resources) to
later steps through the context and report how they went as a
``StepResult``. The orchestrator is the only place that decides whether
the run continues:

- ``SUCCESS`` continues
- ``WARNING`` is logged and continues
- ``FATAL`` stops the run; no later step runs

A fatal result from an optional step is downgraded to a warning, unless
the document could not be persisted or the user cancelled.

Each step re-reads the config document it needs, so a run interrupted
half way can simply be started again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from workerkit.config import WorkerKitConfig
from workerkit.errors import FailureKind, PersistenceFailure, UserAbort
from workerkit.logger import SetupLogger
from workerkit.parsing import DEFAULT_FORMAT, OutputFormat
from workerkit.prompts import Prompter
from workerkit.provisioner import ProvisionedResource, ResourceProvisioner
from workerkit.runner import CommandOutcome, CommandRunner

logger = logging.getLogger(__name__)


class StepOutcome(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    FATAL = "fatal"


@dataclass(frozen=True)
class StepResult:
    """How one step went. Consumed by the orchestrator, never persisted."""

    outcome: StepOutcome
    message: str = ""
    kind: Optional[FailureKind] = None
    output: Optional[str] = None  # captured command output, shown verbatim on failure

    @classmethod
    def success(cls, message: str = "") -> "StepResult":
        return cls(StepOutcome.SUCCESS, message)

    @classmethod
    def warning(cls, message: str, output: Optional[str] = None) -> "StepResult":
        return cls(StepOutcome.WARNING, message, output=output)

    @classmethod
    def fatal(
        cls,
        reason: str,
        kind: FailureKind = FailureKind.COMMAND,
        output: Optional[str] = None,
    ) -> "StepResult":
        return cls(StepOutcome.FATAL, reason, kind=kind, output=output)

    @property
    def is_fatal(self) -> bool:
        return self.outcome == StepOutcome.FATAL


@dataclass
class SetupContext:
    """Everything a step needs, plus what earlier steps produced."""

    config: WorkerKitConfig
    runner: CommandRunner
    prompter: Prompter
    fmt: OutputFormat = DEFAULT_FORMAT
    create_bucket: Optional[bool] = None

    # Filled in by steps
    account_id: Optional[str] = None
    app_name: Optional[str] = None
    database: Optional[ProvisionedResource] = None
    bucket: Optional[ProvisionedResource] = None

    def command_env(self) -> Dict[str, str]:
        if self.account_id:
            return {self.config.account_env_var: self.account_id}
        return {}

    def run(self, argv: List[str]) -> CommandOutcome:
        return self.runner.run(argv, env=self.command_env(), cwd=str(self.config.project_path))

    def provisioner(self) -> ResourceProvisioner:
        return ResourceProvisioner(
            self.runner,
            env=self.command_env(),
            cwd=str(self.config.project_path),
            notify=self.notify,
        )

    def notify(self, message: str) -> None:
        self.prompter.info(message)


@dataclass(frozen=True)
class Step:
    name: str
    func: Callable[[SetupContext], StepResult]
    optional: bool = False


@dataclass
class SetupReport:
    """Results of one run, in execution order."""

    results: List[Tuple[str, StepResult]] = field(default_factory=list)
    failed_step: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failed_step is None

    @property
    def failure(self) -> Optional[StepResult]:
        if self.failed_step is None:
            return None
        return self.results[-1][1]

    @property
    def warnings(self) -> List[Tuple[str, StepResult]]:
        return [(n, r) for n, r in self.results if r.outcome == StepOutcome.WARNING]

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


def default_steps() -> List[Step]:
    from workerkit import steps

    return list(steps.DEFAULT_STEPS)


class SetupOrchestrator:
    """Run steps in order and stop at the first fatal result."""

    def __init__(
        self,
        steps: Optional[Sequence[Step]] = None,
        setup_logger: Optional[SetupLogger] = None,
        tracer: Optional[trace.Tracer] = None,
    ):
        self.steps = list(steps) if steps is not None else default_steps()
        self.log = setup_logger or SetupLogger()
        self.tracer = tracer or trace.get_tracer("workerkit.setup")

    def _run_step(self, step: Step, context: SetupContext) -> StepResult:
        try:
            result = step.func(context)
        except UserAbort as e:
            return StepResult.fatal(str(e), kind=FailureKind.USER_ABORT)
        except PersistenceFailure as e:
            return StepResult.fatal(str(e), kind=FailureKind.PERSISTENCE)

        if (
            step.optional
            and result.is_fatal
            and result.kind not in (FailureKind.PERSISTENCE, FailureKind.USER_ABORT)
        ):
            return StepResult.warning(result.message, output=result.output)
        return result

    def run(self, context: SetupContext) -> SetupReport:
        report = SetupReport()
        self.log.log_setup_started(str(context.config.project_path), [s.name for s in self.steps])

        with self.tracer.start_as_current_span("setup.run") as run_span:
            run_span.set_attribute("setup.run_id", self.log.run_id)
            run_span.set_attribute("setup.project_dir", str(context.config.project_path))

            for step in self.steps:
                with self.tracer.start_as_current_span(f"setup.step:{step.name}") as span:
                    span.set_attribute("step.name", step.name)
                    span.set_attribute("step.optional", step.optional)
                    self.log.log_step_started(step.name)

                    result = self._run_step(step, context)
                    report.results.append((step.name, result))
                    span.set_attribute("step.outcome", result.outcome.value)

                    if result.is_fatal:
                        kind = result.kind.value if result.kind else None
                        span.set_status(Status(StatusCode.ERROR, result.message))
                        self.log.log_step_failed(step.name, result.message, kind=kind)
                        report.failed_step = step.name
                        break

                    if result.outcome == StepOutcome.WARNING:
                        span.add_event("step.warning", attributes={"message": result.message})
                        self.log.log_step_warning(step.name, result.message)
                    else:
                        self.log.log_step_completed(step.name, result.message)
                    span.set_status(Status(StatusCode.OK))

            if report.ok:
                run_span.set_status(Status(StatusCode.OK))
                self.log.log_setup_completed(warnings=len(report.warnings))
            else:
                failure = report.failure
                run_span.set_status(Status(StatusCode.ERROR, failure.message))
                self.log.log_setup_failed(
                    report.failed_step,
                    failure.message,
                    kind=failure.kind.value if failure.kind else None,
                )

        return report
