"""YAML plan files: a blueprint written as data instead of code.

A plan lists dependencies and post-install directives::

    dependencies:
      - name: sidekiq
      - name: rspec-rails
        groups: [development, test]
    after_install:
      - kind: invoke_subgenerator
        generator: rspec:install
      - kind: create
        path: .env
        content: "SECRET_KEY_BASE={{ secrets.secret_key_base }}\\n"
        secrets: [secret_key_base]
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from stackforge.engine import Bootstrapper, Directive


class PlanDependency(BaseModel):
    name: str = Field(..., pattern=r"\S")
    groups: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    require: bool = True


class Plan(BaseModel):
    """Validated contents of a plan file."""

    dependencies: list[PlanDependency] = Field(default_factory=list)
    after_install: list[Directive] = Field(default_factory=list)

    @classmethod
    def from_yaml(cls, text: str) -> "Plan":
        try:
            data: Any = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Plan file is not valid YAML: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError("Plan file must contain a mapping at the top level")
        return cls.model_validate(data)

    def apply_to(self, boot: Bootstrapper) -> Bootstrapper:
        for dep in self.dependencies:
            boot.declare(dep.name, *dep.constraints, groups=dep.groups, require=dep.require)
        boot.after_install(*self.after_install)
        return boot


def load_plan(boot: Bootstrapper, path: str | Path) -> Bootstrapper:
    """Read a YAML plan from *path* and queue it on *boot*."""
    raw = Path(path).read_text(encoding="utf-8")
    return Plan.from_yaml(raw).apply_to(boot)
