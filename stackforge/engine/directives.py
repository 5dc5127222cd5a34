"""Directive models: the declarative steps queued for the post-install phase.

Each directive is an immutable pydantic model that knows how to apply itself
against an ``ExecutionContext``.  Directives are tagged by ``kind`` so a whole
plan can be loaded from JSON or YAML with :func:`parse_directives`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Literal, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from .anchors import Anchor
from .errors import EngineError
from .primitives import create, inject, remove
from .resolver import ValueResolver
from .subgenerator import Subgenerator
from .tree import ProjectTree


class ContentRenderer(Protocol):
    """Anything that can render named templates and inline template strings."""

    def render(self, template_path: str, context: dict[str, Any]) -> str: ...

    def render_string(self, template_string: str, context: dict[str, Any]) -> str: ...


@dataclass
class ExecutionContext:
    """Collaborators a directive may use while it runs."""

    tree: ProjectTree
    subgenerator: Subgenerator
    resolver: ValueResolver
    renderer: ContentRenderer | None = None


# ---------------------------------------------------------------------------
# Directive variants
# ---------------------------------------------------------------------------


class _BaseDirective(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    def describe(self) -> str:
        raise NotImplementedError

    def apply(self, ctx: ExecutionContext) -> None:
        raise NotImplementedError


class Create(_BaseDirective):
    """Write a file, replacing any existing content.

    ``content`` is written verbatim unless ``template`` is set or ``secrets``
    are requested; then the text is rendered as a Jinja2 template with
    ``context`` plus ``secrets`` (resolved when this directive runs).
    """

    kind: Literal["create"] = "create"
    path: str
    content: str | None = None
    template: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)
    secrets: tuple[str, ...] = ()
    executable: bool = False

    @model_validator(mode="after")
    def _one_source(self) -> "Create":
        if (self.content is None) == (self.template is None):
            raise ValueError("Create needs exactly one of 'content' or 'template'")
        return self

    def describe(self) -> str:
        return f"create {self.path}"

    def render_content(self, ctx: ExecutionContext) -> str:
        if self.template is None and not self.secrets:
            return self.content or ""
        if ctx.renderer is None:
            raise EngineError(f"No template renderer available for {self.path}")

        values = {**self.context, "secrets": ctx.resolver.resolve_all(self.secrets)}
        if self.template is not None:
            return ctx.renderer.render(self.template, values)
        return ctx.renderer.render_string(self.content or "", values)

    def apply(self, ctx: ExecutionContext) -> None:
        text = self.render_content(ctx)
        create(ctx.tree, self.path, text)
        if self.executable:
            ctx.tree.make_executable(self.path)


class Inject(_BaseDirective):
    """Splice text into an existing file at an anchor."""

    kind: Literal["inject"] = "inject"
    path: str
    content: str
    anchor: Anchor = Field(default_factory=Anchor.start_of_file)
    indent: int = Field(default=0, ge=0)

    def describe(self) -> str:
        return f"inject into {self.path} ({self.anchor.describe()})"

    def apply(self, ctx: ExecutionContext) -> None:
        inject(ctx.tree, self.path, self.content, self.anchor, indent=self.indent)


class Remove(_BaseDirective):
    """Delete a file if it exists."""

    kind: Literal["remove"] = "remove"
    path: str

    def describe(self) -> str:
        return f"remove {self.path}"

    def apply(self, ctx: ExecutionContext) -> None:
        remove(ctx.tree, self.path)


class InvokeSubgenerator(_BaseDirective):
    """Run an external generator that produces baseline files."""

    kind: Literal["invoke_subgenerator"] = "invoke_subgenerator"
    generator: str = Field(..., min_length=1)

    def describe(self) -> str:
        return f"generate {self.generator}"

    def apply(self, ctx: ExecutionContext) -> None:
        ctx.subgenerator.invoke(self.generator)


APPLICATION_CLASS_PATTERN = r"^[ \t]*class Application\b.*\n"
ROUTES_DRAW_PATTERN = r"^.*\.routes\.draw do[ \t]*\r?\n"


class ApplyConfig(_BaseDirective):
    """Add framework-level settings inside the application class body."""

    kind: Literal["apply_config"] = "apply_config"
    content: str
    path: str = "config/application.rb"
    anchor: Anchor = Field(default_factory=lambda: Anchor.after(APPLICATION_CLASS_PATTERN))
    indent: int = Field(default=4, ge=0)

    def describe(self) -> str:
        return f"apply config to {self.path}"

    def apply(self, ctx: ExecutionContext) -> None:
        inject(ctx.tree, self.path, self.content, self.anchor, indent=self.indent)


def route(content: str, path: str = "config/routes.rb") -> Inject:
    """Build an ``Inject`` adding *content* at the top of the routes block."""
    return Inject(
        path=path,
        content=content,
        anchor=Anchor.after(ROUTES_DRAW_PATTERN),
        indent=2,
    )


Directive = Annotated[
    Union[Create, Inject, Remove, InvokeSubgenerator, ApplyConfig],
    Field(discriminator="kind"),
]

_DIRECTIVE_LIST = TypeAdapter(list[Directive])


def parse_directives(raw: list[dict[str, Any]]) -> list[Directive]:
    """Validate a list of plain dicts (from JSON/YAML) into directives."""
    return _DIRECTIVE_LIST.validate_python(raw)
