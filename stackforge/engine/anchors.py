"""Anchors locate where ``inject`` splices new content into a file.

Matching is purely textual.  A pattern anchor must match exactly once: an
absent or ambiguous anchor is an error, never a best-effort guess.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .errors import AnchorError


class AnchorKind(str, Enum):
    START_OF_FILE = "start_of_file"
    END_OF_FILE = "end_of_file"
    BEFORE = "before"
    AFTER = "after"


class Anchor(BaseModel):
    """A position marker inside an existing file."""

    model_config = ConfigDict(frozen=True)

    kind: AnchorKind
    pattern: str | None = Field(default=None, description="Regex for before/after anchors")

    # -- Constructors --------------------------------------------------------

    @classmethod
    def start_of_file(cls) -> "Anchor":
        return cls(kind=AnchorKind.START_OF_FILE)

    @classmethod
    def end_of_file(cls) -> "Anchor":
        return cls(kind=AnchorKind.END_OF_FILE)

    @classmethod
    def before(cls, pattern: str) -> "Anchor":
        return cls(kind=AnchorKind.BEFORE, pattern=pattern)

    @classmethod
    def after(cls, pattern: str) -> "Anchor":
        return cls(kind=AnchorKind.AFTER, pattern=pattern)

    # -- Matching ------------------------------------------------------------

    def locate(self, text: str, path: str = "") -> int:
        """Return the character offset in *text* where content is spliced.

        Raises:
            AnchorError: If a pattern anchor is missing, matches more than
                once, or is not a valid regular expression.
        """
        if self.kind is AnchorKind.START_OF_FILE:
            return 0
        if self.kind is AnchorKind.END_OF_FILE:
            return len(text)

        if not self.pattern:
            raise AnchorError(path, f"Anchor '{self.kind.value}' needs a pattern")
        try:
            regex = re.compile(self.pattern, re.MULTILINE)
        except re.error as exc:
            raise AnchorError(path, f"Invalid anchor pattern {self.pattern!r}: {exc}") from exc

        matches = list(regex.finditer(text))
        if not matches:
            raise AnchorError(path, f"Anchor {self.describe()} not found in {path}")
        if len(matches) > 1:
            raise AnchorError(
                path,
                f"Anchor {self.describe()} is ambiguous in {path} ({len(matches)} matches)",
            )

        match = matches[0]
        return match.start() if self.kind is AnchorKind.BEFORE else match.end()

    def describe(self) -> str:
        if self.kind is AnchorKind.START_OF_FILE:
            return "start of file"
        if self.kind is AnchorKind.END_OF_FILE:
            return "end of file"
        return f"{self.kind.value} /{self.pattern}/"
