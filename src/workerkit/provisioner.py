"""
Create-or-discover provisioning of remote resources.

The provisioning CLI reports "already exists" as a failure, so creation is
not idempotent on its own. Each resource is provisioned as:

1. run the create command; an identifier in its output means ``created``
2. otherwise run the describe command; an identifier there means
   ``discovered``
3. otherwise the resource is missing and the caller must stop

Re-running setup after an interruption therefore finds the resources the
previous run made instead of failing on them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Mapping, Optional

from workerkit.config import WorkerKitConfig
from workerkit.parsing import DEFAULT_FORMAT, OutputFormat, extract_identifier
from workerkit.runner import CommandErr, CommandOk, CommandRunner

logger = logging.getLogger(__name__)


class Source(str, Enum):
    CREATED = "created"
    DISCOVERED = "discovered"


@dataclass
class ProvisionedResource:
    """
    Outcome of provisioning one resource.

    ``identifier`` is None when neither creation nor discovery produced one;
    ``output`` then holds the last command's text for the error report.
    """
    name: str
    identifier: Optional[str]
    sourced_from: Optional[Source] = None
    output: str = ""

    @property
    def found(self) -> bool:
        return self.identifier is not None


@dataclass(frozen=True)
class ResourceKind:
    """How to create, describe and identify one kind of resource."""
    kind: str
    create: Callable[[str], List[str]]
    describe: Callable[[str], List[str]]
    identify: Callable[[str, str], Optional[str]]


def database_kind(config: WorkerKitConfig, fmt: OutputFormat = DEFAULT_FORMAT) -> ResourceKind:
    return ResourceKind(
        kind="database",
        create=lambda name: config.wrangler("d1", "create", name),
        describe=lambda name: config.wrangler("d1", "info", name),
        identify=lambda output, name: extract_identifier(output, fmt=fmt),
    )


def bucket_kind(config: WorkerKitConfig) -> ResourceKind:
    # Buckets are addressed by name; a successful command is the proof
    return ResourceKind(
        kind="bucket",
        create=lambda name: config.wrangler("r2", "bucket", "create", name),
        describe=lambda name: config.wrangler("r2", "bucket", "info", name),
        identify=lambda output, name: name,
    )


class ResourceProvisioner:
    """Provision resources through a command runner."""

    def __init__(
        self,
        runner: CommandRunner,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[str] = None,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self.runner = runner
        self.env = dict(env or {})
        self.cwd = cwd
        self.notify = notify or (lambda message: None)

    def provision(self, kind: ResourceKind, name: str) -> ProvisionedResource:
        outcome = self.runner.run(kind.create(name), env=self.env, cwd=self.cwd)
        if isinstance(outcome, CommandOk):
            identifier = kind.identify(outcome.stdout, name)
            if identifier:
                logger.info("Created %s %s (%s)", kind.kind, name, identifier)
                return ProvisionedResource(name, identifier, Source.CREATED, outcome.stdout)
            self.notify(
                f"Could not find the {kind.kind} identifier in the creation output; "
                f"looking up '{name}' instead."
            )
        else:
            self.notify(
                f"Creating {kind.kind} '{name}' failed; it may already exist. "
                "Looking it up instead."
            )
            logger.debug("Create failed for %s %s: %s", kind.kind, name, outcome.message)

        outcome = self.runner.run(kind.describe(name), env=self.env, cwd=self.cwd)
        if isinstance(outcome, CommandErr):
            return ProvisionedResource(name, None, None, outcome.message)

        identifier = kind.identify(outcome.stdout, name)
        if identifier:
            logger.info("Discovered existing %s %s (%s)", kind.kind, name, identifier)
            return ProvisionedResource(name, identifier, Source.DISCOVERED, outcome.stdout)
        return ProvisionedResource(name, None, None, outcome.stdout)
