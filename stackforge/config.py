"""stackforge configuration.

Centralised, typed configuration for a bootstrap run.  All settings use
Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from stackforge.blueprint.rails_stack import StackConfig


class CommandConfig(BaseModel):
    """External commands the engine delegates to, and their time limits."""

    install: str = Field(default="bundle install", description="Dependency resolver")
    generate: str = Field(default="bin/rails generate", description="Sub-generator prefix")
    secret: str = Field(default="bin/rails secret", description="Prints one secret on stdout")
    timeout: int = Field(default=300, ge=1, description="Install/generate timeout in seconds")
    secret_timeout: int = Field(default=60, ge=1, description="Secret command timeout in seconds")


class Config(BaseModel):
    """Global configuration for one bootstrap run.

    Instances are typically created once by the CLI entry point and then
    handed to :func:`stackforge.cli.build_bootstrapper`.
    """

    project_dir: Path = Field(default=Path("."))
    commands: CommandConfig = Field(default_factory=CommandConfig)
    stack: StackConfig = Field(default_factory=StackConfig)
    atomic: bool = Field(default=False, description="Commit file changes only if every step succeeds")
    plan: Path | None = Field(default=None, description="YAML plan used instead of the bundled stack")

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file.

        Returns:
            The path where the file was written.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON.

        Args:
            path: The JSON file to read.

        Returns:
            A validated ``Config`` instance.
        """
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            STACKFORGE_PROJECT_DIR, STACKFORGE_APP_NAME, STACKFORGE_ATOMIC,
            STACKFORGE_INSTALL_CMD, STACKFORGE_GENERATE_CMD,
            STACKFORGE_SECRET_CMD, STACKFORGE_TIMEOUT,
            STACKFORGE_SECRET_TIMEOUT.
        """
        command_kwargs: dict[str, Any] = {}
        if os.environ.get("STACKFORGE_INSTALL_CMD"):
            command_kwargs["install"] = os.environ["STACKFORGE_INSTALL_CMD"]
        if os.environ.get("STACKFORGE_GENERATE_CMD"):
            command_kwargs["generate"] = os.environ["STACKFORGE_GENERATE_CMD"]
        if os.environ.get("STACKFORGE_SECRET_CMD"):
            command_kwargs["secret"] = os.environ["STACKFORGE_SECRET_CMD"]
        if os.environ.get("STACKFORGE_TIMEOUT"):
            command_kwargs["timeout"] = int(os.environ["STACKFORGE_TIMEOUT"])
        if os.environ.get("STACKFORGE_SECRET_TIMEOUT"):
            command_kwargs["secret_timeout"] = int(os.environ["STACKFORGE_SECRET_TIMEOUT"])

        stack_kwargs: dict[str, Any] = {}
        if os.environ.get("STACKFORGE_APP_NAME"):
            stack_kwargs["app_name"] = os.environ["STACKFORGE_APP_NAME"]

        atomic = os.environ.get("STACKFORGE_ATOMIC", "").strip().lower() in ("1", "true", "yes")

        return cls(
            project_dir=Path(os.environ.get("STACKFORGE_PROJECT_DIR", ".")),
            commands=CommandConfig(**command_kwargs),
            stack=StackConfig(**stack_kwargs),
            atomic=atomic,
        )
