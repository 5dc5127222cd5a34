"""Secret and runtime value resolution.

Values that cannot be known when the blueprint is written (an application
secret, for instance) are produced by a ``SecretSource`` at the moment the
directive that embeds them runs.  A value is minted at most once per run and
never persisted by the engine.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from .commands import run_checked, split_command
from .errors import SecretResolutionError


@runtime_checkable
class SecretSource(Protocol):
    """Produces one opaque secret value."""

    def fetch(self) -> str: ...


class CommandSecretSource:
    """Runs an external executable and uses its stdout as the secret.

    The command takes no arguments beyond those configured, must exit zero
    and print a non-blank value.
    """

    def __init__(
        self,
        command: str | list[str],
        cwd: str | Path | None = None,
        timeout: float = 60,
    ) -> None:
        self.command = split_command(command)
        self.cwd = cwd
        self.timeout = timeout

    def fetch(self) -> str:
        output = run_checked(
            self.command, SecretResolutionError, cwd=self.cwd, timeout=self.timeout
        )
        value = output.strip()
        if not value:
            raise SecretResolutionError(
                f"Secret command produced no output: {' '.join(self.command)}",
                command=" ".join(self.command),
                returncode=0,
            )
        return value


class ValueResolver:
    """Maps value kinds (e.g. ``"secret_key_base"``) to their sources."""

    def __init__(self, sources: dict[str, SecretSource] | None = None) -> None:
        self.sources: dict[str, SecretSource] = dict(sources or {})
        self._cache: dict[str, str] = {}

    def register(self, kind: str, source: SecretSource) -> None:
        self.sources[kind] = source
        self._cache.pop(kind, None)

    def resolve(self, kind: str) -> str:
        """Return the value for *kind*, fetching it on first use.

        Raises:
            SecretResolutionError: If no source is registered for *kind* or
                the source returns a blank value.
        """
        if kind in self._cache:
            return self._cache[kind]

        source = self.sources.get(kind)
        if source is None:
            raise SecretResolutionError(f"No source registered for value '{kind}'")

        value = source.fetch()
        if not isinstance(value, str) or not value.strip():
            raise SecretResolutionError(f"Value '{kind}' resolved to an empty string")

        value = value.strip()
        self._cache[kind] = value
        return value

    def resolve_all(self, kinds: tuple[str, ...] | list[str]) -> dict[str, str]:
        return {kind: self.resolve(kind) for kind in kinds}
