"""Dependency installation collaborator."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from .commands import run_checked, split_command
from .errors import DependencyInstallError
from .manifest import DependencyManifest


@runtime_checkable
class DependencyInstaller(Protocol):
    """Installs every dependency in a manifest in one synchronous call."""

    def install(self, manifest: DependencyManifest) -> None: ...


class CommandInstaller:
    """Installs by running the ecosystem's resolver, e.g. ``bundle install``.

    The manifest is already written into the project tree by the time this
    runs, so the command itself takes no per-dependency arguments.
    """

    def __init__(
        self,
        command: str | list[str] = "bundle install",
        cwd: str | Path | None = None,
        timeout: float = 600,
    ) -> None:
        self.command = split_command(command)
        self.cwd = cwd
        self.timeout = timeout

    def install(self, manifest: DependencyManifest) -> None:
        run_checked(self.command, DependencyInstallError, cwd=self.cwd, timeout=self.timeout)
