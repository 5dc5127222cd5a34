"""Project tree abstraction.

The engine never touches ``pathlib`` directly: every read and mutation goes
through a ``ProjectTree`` so a run can target the real file system
(``DiskTree``), a dictionary (``MemoryTree``) or a buffered overlay that only
lands on commit (``StagedTree``).

Paths are POSIX-style strings relative to the project root.
"""

from __future__ import annotations

import stat
from pathlib import Path, PurePosixPath
from typing import NamedTuple, Protocol, runtime_checkable

from .errors import MissingTargetError, WriteError


def normalize_path(path: str) -> str:
    """Return *path* as a clean relative POSIX path.

    Raises:
        WriteError: If the path is empty, absolute, or escapes the root.
    """
    raw = str(path).replace("\\", "/").strip()
    pure = PurePosixPath(raw)
    if not raw or pure.is_absolute():
        raise WriteError(raw, f"Path must be relative to the project root: {raw!r}")
    parts = [p for p in pure.parts if p not in ("", ".")]
    if not parts or ".." in parts:
        raise WriteError(raw, f"Path escapes the project root: {raw!r}")
    return "/".join(parts)


@runtime_checkable
class ProjectTree(Protocol):
    """File-system-like interface the engine mutates."""

    def exists(self, path: str) -> bool: ...

    def read(self, path: str) -> str: ...

    def write(self, path: str, content: str) -> None: ...

    def delete(self, path: str) -> None: ...

    def make_executable(self, path: str) -> None: ...


# ---------------------------------------------------------------------------
# DiskTree
# ---------------------------------------------------------------------------


class DiskTree:
    """A ``ProjectTree`` backed by a directory on disk."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def _resolve(self, path: str) -> Path:
        return self.root / normalize_path(path)

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def read(self, path: str) -> str:
        target = self._resolve(path)
        if not target.is_file():
            raise MissingTargetError(normalize_path(path))
        # newline="" keeps line endings byte-for-byte.
        with target.open("r", encoding="utf-8", newline="") as fh:
            return fh.read()

    def write(self, path: str, content: str) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("w", encoding="utf-8", newline="") as fh:
                fh.write(content)
        except OSError as exc:
            raise WriteError(normalize_path(path), f"Cannot write {path}: {exc}") from exc

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        if target.is_dir():
            raise WriteError(normalize_path(path), f"Refusing to delete directory: {path}")
        try:
            target.unlink()
        except FileNotFoundError as exc:
            raise MissingTargetError(normalize_path(path)) from exc
        except OSError as exc:
            raise WriteError(normalize_path(path), f"Cannot delete {path}: {exc}") from exc

    def make_executable(self, path: str) -> None:
        target = self._resolve(path)
        try:
            current = target.stat().st_mode
            target.chmod(current | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        except FileNotFoundError as exc:
            raise MissingTargetError(normalize_path(path)) from exc
        except OSError as exc:
            raise WriteError(normalize_path(path), f"Cannot chmod {path}: {exc}") from exc


# ---------------------------------------------------------------------------
# MemoryTree
# ---------------------------------------------------------------------------


class MemoryTree:
    """A ``ProjectTree`` held entirely in a ``{path: content}`` dict."""

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.files: dict[str, str] = {
            normalize_path(p): c for p, c in (files or {}).items()
        }
        self.executables: set[str] = set()

    def exists(self, path: str) -> bool:
        return normalize_path(path) in self.files

    def read(self, path: str) -> str:
        key = normalize_path(path)
        if key not in self.files:
            raise MissingTargetError(key)
        return self.files[key]

    def write(self, path: str, content: str) -> None:
        self.files[normalize_path(path)] = content

    def delete(self, path: str) -> None:
        key = normalize_path(path)
        if key not in self.files:
            raise MissingTargetError(key)
        del self.files[key]
        self.executables.discard(key)

    def make_executable(self, path: str) -> None:
        key = normalize_path(path)
        if key not in self.files:
            raise MissingTargetError(key)
        self.executables.add(key)

    def snapshot(self) -> dict[str, str]:
        """Return a copy of the current contents."""
        return dict(self.files)


# ---------------------------------------------------------------------------
# StagedTree
# ---------------------------------------------------------------------------


class Change(NamedTuple):
    """One buffered mutation of a ``StagedTree``."""

    action: str  # "write" or "delete"
    path: str


class StagedTree:
    """Overlay that buffers mutations on top of another tree.

    Reads see buffered writes and deletes; nothing reaches *base* until
    :meth:`commit`.  Only the last mutation per path is kept.
    """

    def __init__(self, base: ProjectTree) -> None:
        self.base = base
        self._pending: dict[str, str | None] = {}
        self._executables: set[str] = set()

    def exists(self, path: str) -> bool:
        key = normalize_path(path)
        if key in self._pending:
            return self._pending[key] is not None
        return self.base.exists(key)

    def read(self, path: str) -> str:
        key = normalize_path(path)
        if key in self._pending:
            content = self._pending[key]
            if content is None:
                raise MissingTargetError(key)
            return content
        return self.base.read(key)

    def write(self, path: str, content: str) -> None:
        key = normalize_path(path)
        self._pending.pop(key, None)
        self._pending[key] = content

    def delete(self, path: str) -> None:
        key = normalize_path(path)
        if not self.exists(key):
            raise MissingTargetError(key)
        self._pending.pop(key, None)
        self._pending[key] = None
        self._executables.discard(key)

    def make_executable(self, path: str) -> None:
        key = normalize_path(path)
        if not self.exists(key):
            raise MissingTargetError(key)
        self._executables.add(key)

    def changes(self) -> list[Change]:
        """List buffered mutations in the order they will be applied."""
        return [
            Change("delete" if content is None else "write", path)
            for path, content in self._pending.items()
        ]

    def commit(self) -> list[Change]:
        """Apply every buffered mutation to the base tree and clear the buffer."""
        applied = self.changes()
        for path, content in self._pending.items():
            if content is None:
                if self.base.exists(path):
                    self.base.delete(path)
            else:
                self.base.write(path, content)
        for path in sorted(self._executables):
            self.base.make_executable(path)
        self._pending.clear()
        self._executables.clear()
        return applied

    def discard(self) -> None:
        """Drop every buffered mutation."""
        self._pending.clear()
        self._executables.clear()
