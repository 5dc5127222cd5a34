"""Command-line entry point.

Usage::

    python -m stackforge ./my_app
    python -m stackforge ./my_app --app-name my_app --atomic
    python -m stackforge ./my_app --plan plan.yml --report report.json
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pydantic import ValidationError
from rich.markup import escape
from rich.panel import Panel

from stackforge import __version__
from stackforge.blueprint import SECRET_KEY_BASE, build_stack, load_plan
from stackforge.config import Config
from stackforge.engine import (
    Bootstrapper,
    CommandInstaller,
    CommandSecretSource,
    CommandSubgenerator,
    Create,
    DiskTree,
    EngineError,
    ValueResolver,
)
from stackforge.templates import TemplateRenderer
from stackforge.utils import console, print_error, print_summary_table, print_warning


def build_bootstrapper(config: Config) -> Bootstrapper:
    """Wire real collaborators for *config* and queue the blueprint.

    Raises:
        OSError: If a plan file cannot be read.
        ValueError: If a plan file is malformed (includes ``ValidationError``).
        EngineError: If the blueprint declares something the engine rejects.
    """
    root = config.project_dir.resolve()
    commands = config.commands
    renderer = TemplateRenderer()

    def _secret_source() -> CommandSecretSource:
        return CommandSecretSource(commands.secret, cwd=root, timeout=commands.secret_timeout)

    boot = Bootstrapper(
        tree=DiskTree(root),
        installer=CommandInstaller(commands.install, cwd=root, timeout=commands.timeout),
        subgenerator=CommandSubgenerator(commands.generate, cwd=root, timeout=commands.timeout),
        resolver=ValueResolver({SECRET_KEY_BASE: _secret_source()}),
        renderer=renderer,
        atomic=config.atomic,
    )

    if config.plan is not None:
        load_plan(boot, config.plan)
    else:
        build_stack(boot, config.stack, renderer)

    for directive in boot.directives:
        if not isinstance(directive, Create):
            continue
        if directive.template and not renderer.has_template(directive.template):
            raise ValueError(f"Unknown template '{directive.template}' for {directive.path}")
        # Every secret kind gets its own freshly minted value.
        for kind in directive.secrets:
            if kind not in boot.resolver.sources:
                boot.resolver.register(kind, _secret_source())

    return boot


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="stackforge",
        description="Turn an empty web app skeleton into a web + worker + database + broker stack",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  stackforge ./my_app\n"
            "  stackforge ./my_app --app-name my_app --atomic\n"
            "  stackforge ./my_app --plan plan.yml\n"
        ),
    )
    parser.add_argument(
        "project_dir",
        nargs="?",
        default=None,
        help="Project skeleton to bootstrap (default: current directory)",
    )
    parser.add_argument("--app-name", default=None, help="Application name used in generated files")
    parser.add_argument("--config", default=None, help="JSON configuration file (see Config.save)")
    parser.add_argument("--plan", default=None, help="YAML plan to apply instead of the bundled stack")
    parser.add_argument(
        "--atomic",
        action="store_true",
        help="Stage file changes and write them only if every step succeeds",
    )
    parser.add_argument("--timeout", type=int, default=None, help="Timeout in seconds for external commands")
    parser.add_argument("--report", default=None, help="Write the run report as JSON to this path")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``python -m stackforge``."""
    args = _parse_args(argv)

    try:
        config = Config.load(Path(args.config)) if args.config else Config.from_env()
    except (OSError, ValueError) as exc:
        print_error(f"Error: invalid configuration: {escape(str(exc))}")
        sys.exit(1)

    if args.project_dir:
        config.project_dir = Path(args.project_dir)
    if args.app_name:
        config.stack.app_name = args.app_name
    if args.plan:
        config.plan = Path(args.plan)
    if args.atomic:
        config.atomic = True
    if args.timeout is not None:
        if args.timeout < 1:
            print_error(f"Error: --timeout must be positive, got {args.timeout}")
            sys.exit(1)
        config.commands.timeout = args.timeout
        config.commands.secret_timeout = args.timeout

    if not config.project_dir.is_dir():
        print_error(f"Error: project directory not found: {escape(str(config.project_dir))}")
        sys.exit(1)

    console.print(
        Panel(
            f"[bold bright_cyan]stackforge[/bold bright_cyan] {__version__}\n"
            f"Project : {escape(str(config.project_dir.resolve()))}\n"
            f"Source  : {escape(str(config.plan)) if config.plan else 'bundled rails stack'}\n"
            f"Atomic  : {'yes' if config.atomic else 'no'}",
            title="[bold]Bootstrap[/bold]",
            border_style="bright_cyan",
        )
    )

    try:
        boot = build_bootstrapper(config)
    except (OSError, ValueError, ValidationError, EngineError) as exc:
        print_error(f"Error: cannot load blueprint: {escape(str(exc))}")
        sys.exit(1)

    report = boot.run()

    summary = {
        "Final state": report.state.value,
        "Dependencies": str(len(report.dependencies)),
        "Steps applied": str(len(report.applied)),
    }
    if report.failed_step:
        summary["Failed step"] = report.failed_step
        summary["Error"] = f"{report.error_type}: {report.error}"
    print_summary_table({k: escape(v) for k, v in summary.items()}, title="Bootstrap Summary")
    if not report.succeeded and not config.atomic and report.applied:
        print_warning(
            "Steps before the failure were not rolled back; inspect the project "
            "or discard it and re-run (use --atomic to stage changes)."
        )

    if args.report:
        report_path = Path(args.report)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(report.model_dump_json(indent=2), encoding="utf-8")

    sys.exit(report.exit_code)


if __name__ == "__main__":
    main()
