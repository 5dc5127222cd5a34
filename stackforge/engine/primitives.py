"""File mutation primitives: ``create``, ``inject`` and ``remove``.

These are the atomic units every directive is built from.  Each one runs
immediately against the given tree; ordering is whatever order the caller
uses.
"""

from __future__ import annotations

from .anchors import Anchor
from .errors import MissingTargetError
from .tree import ProjectTree, normalize_path


def create(tree: ProjectTree, path: str, content: str) -> str:
    """Write *content* to *path*, replacing anything already there.

    Returns:
        The normalised path that was written.
    """
    key = normalize_path(path)
    tree.write(key, content)
    return key


def inject(
    tree: ProjectTree,
    path: str,
    content: str,
    anchor: Anchor,
    indent: int = 0,
) -> str:
    """Splice *content* into the existing file at *path* at *anchor*.

    The rest of the file is left byte-for-byte unchanged.  Nothing is written
    when the target or the anchor cannot be found.

    Args:
        tree: Project tree to mutate.
        path: Existing file to inject into.
        content: Text to insert.
        anchor: Where to insert it.
        indent: Number of spaces prefixed to every non-blank injected line.

    Raises:
        MissingTargetError: If *path* does not exist.
        AnchorError: If *anchor* is absent or ambiguous.
    """
    key = normalize_path(path)
    if not tree.exists(key):
        raise MissingTargetError(key, f"Cannot inject into missing file: {key}")

    original = tree.read(key)
    offset = anchor.locate(original, key)
    block = indent_block(content, indent) if indent else content
    tree.write(key, original[:offset] + block + original[offset:])
    return key


def remove(tree: ProjectTree, path: str) -> bool:
    """Delete *path* if present.

    Returns:
        ``True`` if a file was deleted, ``False`` if there was nothing to do.
    """
    key = normalize_path(path)
    if not tree.exists(key):
        return False
    tree.delete(key)
    return True


def indent_block(content: str, indent: int) -> str:
    """Prefix each non-blank line of *content* with *indent* spaces."""
    pad = " " * indent
    return "".join(
        pad + line if line.strip() else line
        for line in content.splitlines(keepends=True)
    )
