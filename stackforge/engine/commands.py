"""Checked execution of external collaborator commands."""

from __future__ import annotations

import shlex
from pathlib import Path

from stackforge.utils import run_command

from .errors import CommandError


def split_command(command: str | list[str]) -> list[str]:
    """Accept either an argv list or a shell-style string and return argv."""
    if isinstance(command, str):
        return shlex.split(command)
    return list(command)


def run_checked(
    cmd: list[str],
    error_cls: type[CommandError],
    cwd: str | Path | None = None,
    timeout: float = 300,
) -> str:
    """Run *cmd* and return its stdout.

    Raises *error_cls* when the command cannot be spawned, times out, or exits
    non-zero.
    """
    cmd_str = " ".join(cmd)
    try:
        returncode, stdout, stderr = run_command(cmd, cwd=cwd, timeout=timeout)
    except OSError as exc:
        raise error_cls(
            f"Could not start command: {cmd_str} ({exc})",
            command=cmd_str,
        ) from exc

    if returncode == -1:
        raise error_cls(
            f"Command timed out after {timeout}s: {cmd_str}",
            command=cmd_str,
            returncode=returncode,
            stderr=stderr,
        )
    if returncode != 0:
        raise error_cls(
            f"Command failed (exit {returncode}): {cmd_str}\n{stderr}".rstrip(),
            command=cmd_str,
            returncode=returncode,
            stderr=stderr,
        )
    return stdout
