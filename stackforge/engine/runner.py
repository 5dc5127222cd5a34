"""The bootstrap state machine.

A ``Bootstrapper`` collects dependency declarations and post-install
directives, then ``run()`` drives the fixed sequence::

    DECLARING -> INSTALLING -> POST_INSTALL -> DONE
                     |              |
                     +--> FAILED <--+

The first failure is terminal.  Nothing is retried and nothing already
applied is rolled back, unless the run is ``atomic``, in which case all
mutations are staged and only committed on reaching ``DONE``.
"""

from __future__ import annotations

import time
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field
from rich.markup import escape

from stackforge.utils import (
    console,
    format_duration,
    print_error,
    print_phase_header,
    print_success,
)

from .directives import ContentRenderer, Directive, ExecutionContext
from .errors import EngineError, PhaseError
from .installer import DependencyInstaller
from .manifest import Dependency, DependencyManifest, GemfileWriter, ManifestWriter
from .resolver import ValueResolver
from .subgenerator import Subgenerator
from .tree import ProjectTree, StagedTree


class EngineState(str, Enum):
    DECLARING = "declaring"
    INSTALLING = "installing"
    POST_INSTALL = "post_install"
    DONE = "done"
    FAILED = "failed"


_ALLOWED: dict[EngineState, set[EngineState]] = {
    EngineState.DECLARING: {EngineState.INSTALLING},
    EngineState.INSTALLING: {EngineState.POST_INSTALL, EngineState.FAILED},
    EngineState.POST_INSTALL: {EngineState.DONE, EngineState.FAILED},
    EngineState.DONE: set(),
    EngineState.FAILED: set(),
}


class RunReport(BaseModel):
    """Outcome of a single ``Bootstrapper.run()``."""

    state: EngineState
    transitions: list[EngineState] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    applied: list[str] = Field(default_factory=list, description="Descriptions of completed steps")
    failed_step: str | None = None
    error_type: str | None = None
    error: str | None = None
    traceback: str | None = None
    staged_changes: list[str] = Field(default_factory=list)
    started_at: str = ""
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.state is EngineState.DONE

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    def summary(self) -> str:
        if self.succeeded:
            return (
                f"Bootstrap finished: {len(self.applied)} step(s) applied "
                f"in {format_duration(self.duration_seconds)}"
            )
        return f"Bootstrap failed during '{self.failed_step}': {self.error_type}: {self.error}"


class Bootstrapper:
    """Sequences declaration, installation and the post-install hook.

    Args:
        tree: Project tree the run mutates.
        installer: Dependency-resolution collaborator, called exactly once.
        subgenerator: Collaborator behind ``InvokeSubgenerator`` directives.
        resolver: Source of runtime values such as secrets.
        renderer: Template renderer for ``Create`` directives that use
            templates or secrets.
        manifest_writer: Emits declarations into the project manifest
            before install.  Defaults to a ``GemfileWriter``.
        atomic: Stage all mutations and commit them only on success.
    """

    def __init__(
        self,
        tree: ProjectTree,
        installer: DependencyInstaller,
        subgenerator: Subgenerator,
        resolver: ValueResolver | None = None,
        renderer: ContentRenderer | None = None,
        manifest_writer: ManifestWriter | None = None,
        atomic: bool = False,
    ) -> None:
        self.tree = tree
        self.installer = installer
        self.subgenerator = subgenerator
        self.resolver = resolver or ValueResolver()
        self.renderer = renderer
        self.manifest_writer = manifest_writer or GemfileWriter()
        self.atomic = atomic

        self.manifest = DependencyManifest()
        self.directives: list[Directive] = []
        self.state = EngineState.DECLARING
        self.transitions: list[EngineState] = [EngineState.DECLARING]

    # ------------------------------------------------------------------
    # Declaration phase
    # ------------------------------------------------------------------

    def _require_declaring(self, action: str) -> None:
        if self.state is not EngineState.DECLARING:
            raise PhaseError(
                f"Cannot {action} in state '{self.state.value}'; "
                "declarations are only accepted before the run starts"
            )

    def declare(
        self,
        name: str,
        *constraints: str,
        groups: tuple[str, ...] | list[str] = (),
        require: bool = True,
    ) -> Dependency:
        """Declare a dependency (see ``DependencyManifest.declare``)."""
        self._require_declaring("declare a dependency")
        return self.manifest.declare(name, *constraints, groups=groups, require=require)

    @contextmanager
    def group(self, *groups: str) -> Iterator["Bootstrapper"]:
        """Scope declarations made inside the block to *groups*."""
        self._require_declaring("open a dependency group")
        with self.manifest.group(*groups):
            yield self

    def after_install(self, *directives: Directive) -> None:
        """Queue directives for the post-install phase, in order."""
        self._require_declaring("queue a post-install directive")
        self.directives.extend(directives)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _transition(self, new_state: EngineState) -> None:
        if new_state not in _ALLOWED[self.state]:
            raise PhaseError(
                f"Illegal transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state
        self.transitions.append(new_state)
        print_phase_header(new_state.value)

    def run(self) -> RunReport:
        """Execute the whole run and return its report.

        Engine errors never escape: they end the run in ``FAILED`` and are
        described in the report.  Calling ``run()`` twice raises
        ``PhaseError``.
        """
        self._require_declaring("start a run")
        started_at = datetime.now(timezone.utc).isoformat()
        start = time.monotonic()

        target: ProjectTree = StagedTree(self.tree) if self.atomic else self.tree
        ctx = ExecutionContext(
            tree=target,
            subgenerator=self.subgenerator,
            resolver=self.resolver,
            renderer=self.renderer,
        )
        report = RunReport(
            state=self.state,
            dependencies=[d.name for d in self.manifest],
            started_at=started_at,
        )

        step = "install dependencies"
        try:
            self._transition(EngineState.INSTALLING)
            self._install(target)
            report.applied.append(step)

            self._transition(EngineState.POST_INSTALL)
            total = len(self.directives)
            for index, directive in enumerate(self.directives, start=1):
                step = directive.describe()
                console.print(f"  [dim]{index}/{total}[/dim] {escape(step)}")
                directive.apply(ctx)
                report.applied.append(step)

            if isinstance(target, StagedTree):
                step = "commit staged changes"
                report.staged_changes = [
                    f"{change.action} {change.path}" for change in target.commit()
                ]

            self._transition(EngineState.DONE)

        except EngineError as exc:
            self._fail(report, target, step, exc)
        except Exception as exc:
            self._fail(report, target, step, exc)
            report.traceback = traceback.format_exc()

        report.state = self.state
        report.transitions = list(self.transitions)
        report.duration_seconds = time.monotonic() - start

        if report.succeeded:
            print_success(report.summary())
        else:
            print_error(escape(report.summary()))
        return report

    def _install(self, target: ProjectTree) -> None:
        console.print(f"  Declared dependencies: {len(self.manifest)}")
        self.manifest_writer.apply(target, self.manifest)
        if isinstance(target, StagedTree):
            # The installer reads the manifest from disk.
            manifest_changes = target.changes()
            target.commit()
            console.print(f"  [dim]committed {len(manifest_changes)} manifest edit(s)[/dim]")
        self.installer.install(self.manifest)

    def _fail(
        self, report: RunReport, target: ProjectTree, step: str, exc: Exception
    ) -> None:
        report.failed_step = step
        report.error_type = type(exc).__name__
        report.error = str(exc)
        if isinstance(target, StagedTree):
            target.discard()
        self._transition(EngineState.FAILED)
