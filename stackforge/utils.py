"""Shared utility functions for stackforge.

Provides synchronous command execution with explicit timeouts, Rich-based
progress reporting, and small formatting helpers.  The engine is strictly
sequential, so nothing here spins up an event loop or a thread pool.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

from rich.console import Console
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Command execution
# ---------------------------------------------------------------------------


def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: float = 120,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run an external command and block until it exits.

    Args:
        cmd: Argument vector.  Commands are never run through a shell.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  A timeout is reported as
        return code ``-1`` with an explanatory stderr message.

    Raises:
        OSError: If the executable cannot be spawned at all (missing binary,
            permission denied).  Callers translate this into their own error.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    try:
        completed = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
            capture_output=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        return (-1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}")

    stdout_str = (completed.stdout or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (completed.stderr or b"").decode("utf-8", errors="replace").strip()
    return (completed.returncode, stdout_str, stderr_str)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """``3.7`` -> ``"3.7s"``, ``65.2`` -> ``"1m 5s"``, ``3661`` -> ``"1h 1m 1s"``.

    Negative durations clamp to ``"0.0s"``.
    """
    seconds = max(seconds, 0.0)
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    units = [(hours, "h"), (minutes, "m"), (secs, "s")]
    if not hours:
        units = units[1:]
    return " ".join(f"{value}{suffix}" for value, suffix in units)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


STATE_COLORS: dict[str, str] = {
    "declaring": "bright_cyan",
    "installing": "bright_yellow",
    "post_install": "bright_green",
    "done": "bright_blue",
    "failed": "bright_red",
}


def print_phase_header(name: str) -> None:
    """Print a full-width rule announcing an engine phase."""
    color = STATE_COLORS.get(name.lower(), "white")
    label = name.replace("_", " ").upper()
    console.print()
    console.print(Rule(f"[bold {color}] {label} [/bold {color}]", style=color))


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Render *data* as a two-column ``Field | Detail`` table."""
    table = Table(title=title, header_style="bold cyan")
    table.add_column("Field", style="dim", no_wrap=True)
    table.add_column("Detail")
    for field, detail in data.items():
        table.add_row(field, str(detail))
    console.print(table)
    console.print()


def _styled(style: str, message: str) -> None:
    console.print(message, style=style)


def print_success(message: str) -> None:
    _styled("bold green", message)


def print_error(message: str) -> None:
    _styled("bold red", message)


def print_warning(message: str) -> None:
    _styled("bold yellow", message)
