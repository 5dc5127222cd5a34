"""Delegation to the target framework's own generators."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from .commands import run_checked, split_command
from .errors import SubgeneratorError


@runtime_checkable
class Subgenerator(Protocol):
    """Runs a named, pre-existing generator that writes baseline files."""

    def invoke(self, name: str) -> None: ...


class CommandSubgenerator:
    """Invokes ``<command> <name>``, e.g. ``bin/rails generate rspec:install``."""

    def __init__(
        self,
        command: str | list[str] = "bin/rails generate",
        cwd: str | Path | None = None,
        timeout: float = 300,
    ) -> None:
        self.command = split_command(command)
        self.cwd = cwd
        self.timeout = timeout

    def invoke(self, name: str) -> None:
        if not name.strip():
            raise SubgeneratorError("Generator name must not be empty")
        run_checked(
            self.command + split_command(name),
            SubgeneratorError,
            cwd=self.cwd,
            timeout=self.timeout,
        )
