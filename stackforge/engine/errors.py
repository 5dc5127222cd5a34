"""Engine exception hierarchy.

Every error is fatal for the run: primitives and collaborators raise, and the
``Bootstrapper`` is the only place that catches and turns them into a failed
report.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for every failure raised by the bootstrap engine."""


class PhaseError(EngineError):
    """Raised when an operation is attempted in the wrong engine state."""


class DeclarationError(EngineError):
    """Raised when a dependency declaration is malformed."""


class CommandError(EngineError):
    """Base for failures of an external command collaborator."""

    def __init__(
        self,
        message: str,
        command: str = "",
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class DependencyInstallError(CommandError):
    """Raised when the dependency-resolution collaborator fails."""


class SubgeneratorError(CommandError):
    """Raised when an external sub-generator does not complete successfully."""


class SecretResolutionError(CommandError):
    """Raised when a secret cannot be produced or comes back empty."""


class MissingTargetError(EngineError):
    """Raised when a directive needs an existing file that is not there."""

    def __init__(self, path: str, message: str = "") -> None:
        self.path = path
        super().__init__(message or f"Target file does not exist: {path}")


class AnchorError(EngineError):
    """Raised when an inject anchor is absent or matches more than once."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(message)


class WriteError(EngineError):
    """Raised when the project tree cannot be written or deleted."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(message)
