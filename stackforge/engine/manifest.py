"""Dependency declaration and manifest emission.

Declarations are collected in a ``DependencyManifest`` before anything is
installed.  A ``ManifestWriter`` turns the collected records into edits of the
project's own manifest file; the actual install is left to a
``DependencyInstaller`` collaborator.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from .anchors import Anchor
from .errors import DeclarationError, DependencyInstallError
from .primitives import inject
from .tree import ProjectTree


class Dependency(BaseModel):
    """A named external library, optionally restricted to some groups."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    groups: frozenset[str] = Field(default_factory=frozenset)
    constraints: tuple[str, ...] = Field(default=(), description="Version specs, e.g. '>= 7.0'")
    require: bool = Field(default=True, description="Whether the library is auto-required")

    @property
    def key(self) -> tuple[str, frozenset[str]]:
        return (self.name, self.groups)


class DependencyManifest:
    """Ordered, de-duplicated collection of ``Dependency`` records.

    Declaring the same name with the same group set twice yields a single
    record.  Re-declaration is additive: constraints not yet present are
    appended, nothing already declared is dropped.
    """

    def __init__(self) -> None:
        self._records: dict[tuple[str, frozenset[str]], Dependency] = {}
        self._group_stack: list[frozenset[str]] = []

    def declare(
        self,
        name: str,
        *constraints: str,
        groups: Iterable[str] = (),
        require: bool = True,
    ) -> Dependency:
        """Record a dependency and return the (possibly merged) record."""
        name = name.strip()
        if not name:
            raise DeclarationError("Dependency name must not be empty")

        group_set = frozenset(g.strip() for g in groups if g.strip())
        if self._group_stack:
            group_set |= self._group_stack[-1]

        key = (name, group_set)
        existing = self._records.get(key)
        if existing is None:
            record = Dependency(
                name=name,
                groups=group_set,
                constraints=tuple(dict.fromkeys(constraints)),
                require=require,
            )
        else:
            extra = tuple(c for c in constraints if c not in existing.constraints)
            record = existing.model_copy(
                update={"constraints": existing.constraints + extra}
            )
        self._records[key] = record
        return record

    @contextmanager
    def group(self, *groups: str) -> Iterator["DependencyManifest"]:
        """Scope subsequent declarations to *groups* (nested scopes accumulate)."""
        current = self._group_stack[-1] if self._group_stack else frozenset()
        self._group_stack.append(current | frozenset(groups))
        try:
            yield self
        finally:
            self._group_stack.pop()

    @property
    def dependencies(self) -> list[Dependency]:
        return list(self._records.values())

    def grouped(self) -> dict[frozenset[str], list[Dependency]]:
        """Return dependencies bucketed by group set, in first-seen order."""
        buckets: dict[frozenset[str], list[Dependency]] = {}
        for dep in self._records.values():
            buckets.setdefault(dep.groups, []).append(dep)
        return buckets

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Dependency]:
        return iter(self.dependencies)

    def __contains__(self, name: object) -> bool:
        return any(dep.name == name for dep in self._records.values())


# ---------------------------------------------------------------------------
# Manifest writers
# ---------------------------------------------------------------------------


class ManifestWriter(Protocol):
    """Emits declared dependencies into the project's manifest file."""

    def apply(self, tree: ProjectTree, manifest: DependencyManifest) -> None: ...


class GemfileWriter:
    """Appends ``gem`` lines and ``group ... do`` blocks to a Gemfile."""

    def __init__(self, path: str = "Gemfile") -> None:
        self.path = path

    def render(self, manifest: DependencyManifest) -> str:
        chunks: list[str] = []
        for groups, deps in manifest.grouped().items():
            if not groups:
                chunks.append("".join(_gem_line(d) + "\n" for d in deps))
                continue
            header = ", ".join(f":{g}" for g in sorted(groups))
            body = "".join(f"  {_gem_line(d)}\n" for d in deps)
            chunks.append(f"group {header} do\n{body}end\n")
        return "\n".join(chunks)

    def apply(self, tree: ProjectTree, manifest: DependencyManifest) -> None:
        if not len(manifest):
            return
        if not tree.exists(self.path):
            raise DependencyInstallError(
                f"Cannot declare dependencies: manifest {self.path} is missing",
            )
        current = tree.read(self.path)
        lead = "\n" if current and not current.endswith("\n") else ""
        inject(tree, self.path, lead + "\n" + self.render(manifest), Anchor.end_of_file())


def _gem_line(dep: Dependency) -> str:
    parts = [f'"{dep.name}"'] + [f'"{c}"' for c in dep.constraints]
    if not dep.require:
        parts.append("require: false")
    return "gem " + ", ".join(parts)
