"""Bundled blueprints: payloads that drive the bootstrap engine."""

from stackforge.blueprint.plan import load_plan
from stackforge.blueprint.rails_stack import (
    SECRET_KEY_BASE,
    StackConfig,
    build_stack,
    declare_dependencies,
)

__all__ = [
    "SECRET_KEY_BASE",
    "StackConfig",
    "build_stack",
    "declare_dependencies",
    "load_plan",
]
