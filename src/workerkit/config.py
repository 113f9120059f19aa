"""
Centralized configuration for workerkit.

Uses Pydantic BaseSettings for environment variable integration
and validation.

Configuration sources (in order of precedence):
1. Explicit constructor arguments
2. Environment variables (WORKERKIT_*)
3. .env file
4. Default values

Example:
    from workerkit.config import get_config

    config = get_config()
    print(config.config_path)  # <project_dir>/wrangler.toml

    # Override at runtime
    config = get_config(project_dir="~/src/my-app")
"""

from __future__ import annotations

import os
import shlex
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class WorkerKitConfig(BaseSettings):
    """
    Central configuration for workerkit.

    All settings can be overridden via environment variables
    prefixed with WORKERKIT_.

    Example:
        export WORKERKIT_WRANGLER_COMMAND="npx wrangler"
        export WORKERKIT_LOG_FORMAT=text
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKERKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    service_name: str = Field(
        default="workerkit",
        description="Service name for log and span attribution",
    )

    # Files
    project_dir: str = Field(
        default=".",
        description="Root of the application being set up",
    )
    config_filename: str = Field(
        default="wrangler.toml",
        description="Declarative worker configuration document",
    )
    dev_vars_filename: str = Field(
        default=".dev.vars",
        description="Local KEY=value secrets file (append-only)",
    )
    app_config_filename: str = Field(
        default="open-next.config.ts",
        description="Adapter configuration file created when missing",
    )

    # External commands
    wrangler_command: str = Field(
        default="bunx wrangler",
        description="Command prefix for the provisioning CLI",
    )
    package_add_command: str = Field(
        default="bun add",
        description="Command prefix for adding a package dependency",
    )
    migration_generate_command: str = Field(
        default="bunx drizzle-kit generate",
        description="Command that generates schema migration files",
    )
    adapter_package: str = Field(
        default="@opennextjs/cloudflare@latest",
        description="Package installed by the dependency step",
    )
    command_locale: str = Field(
        default="en_US.UTF-8",
        description="LC_ALL/LANG for spawned commands so their output parses the same everywhere",
    )
    account_env_var: str = Field(
        default="CLOUDFLARE_ACCOUNT_ID",
        description="Environment variable carrying the selected account id",
    )

    # Worker settings
    main_entry: str = Field(default=".open-next/worker.js")
    compatibility_date: str = Field(default="2025-03-25")
    compatibility_flags: List[str] = Field(default_factory=lambda: ["nodejs_compat"])
    assets_binding: str = Field(default="ASSETS")
    assets_directory: str = Field(default=".open-next/assets")
    placement_mode: str = Field(default="smart")

    # Bindings
    database_binding: str = Field(default="DATABASE")
    migrations_dir: str = Field(default="./drizzle")
    bucket_binding: str = Field(default="MY_BUCKET")

    # Logging
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Logging level for workerkit",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log output format",
    )

    # Tracing
    otlp_endpoint: Optional[str] = Field(
        default=None,
        description="OTLP gRPC endpoint for step spans (disabled when unset)",
    )

    @field_validator("project_dir")
    @classmethod
    def expand_path(cls, v: str) -> str:
        """Expand ~ and environment variables in paths."""
        return os.path.expanduser(os.path.expandvars(v))

    @field_validator("otlp_endpoint")
    @classmethod
    def validate_endpoint(cls, v: Optional[str]) -> Optional[str]:
        """Strip the protocol prefix; the exporter adds its own."""
        if v is None:
            return v
        if v.startswith("http://"):
            v = v[7:]
        elif v.startswith("https://"):
            v = v[8:]
        return v

    @property
    def project_path(self) -> Path:
        return Path(self.project_dir).resolve()

    @property
    def config_path(self) -> Path:
        return self.project_path / self.config_filename

    @property
    def dev_vars_path(self) -> Path:
        return self.project_path / self.dev_vars_filename

    @property
    def app_config_path(self) -> Path:
        return self.project_path / self.app_config_filename

    @property
    def wrangler_argv(self) -> List[str]:
        return shlex.split(self.wrangler_command)

    def wrangler(self, *args: str) -> List[str]:
        """Build a provisioning CLI invocation."""
        return [*self.wrangler_argv, *args]

    def package_add(self, package: str) -> List[str]:
        return [*shlex.split(self.package_add_command), package]

    def migration_generate(self) -> List[str]:
        return shlex.split(self.migration_generate_command)


# Global singleton
_config: Optional[WorkerKitConfig] = None


def get_config(**overrides) -> WorkerKitConfig:
    """
    Get the global configuration instance.

    Creates a singleton on first call. Subsequent calls return
    the same instance unless overrides are provided.
    """
    global _config

    if overrides or _config is None:
        _config = WorkerKitConfig(**overrides)

    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
