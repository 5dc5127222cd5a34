"""stackforge bootstrap engine.

Applies an ordered list of declarative directives to a project tree once
every declared dependency has been installed.

Quick usage::

    from stackforge.engine import Bootstrapper, Create, MemoryTree

    boot = Bootstrapper(tree, installer, subgenerator)
    boot.declare("sidekiq")
    boot.after_install(Create(path=".env", content="RAILS_ENV=development\n"))
    report = boot.run()
"""

from stackforge.engine.anchors import Anchor, AnchorKind
from stackforge.engine.directives import (
    ApplyConfig,
    Create,
    Directive,
    ExecutionContext,
    Inject,
    InvokeSubgenerator,
    Remove,
    parse_directives,
    route,
)
from stackforge.engine.errors import (
    AnchorError,
    CommandError,
    DeclarationError,
    DependencyInstallError,
    EngineError,
    MissingTargetError,
    PhaseError,
    SecretResolutionError,
    SubgeneratorError,
    WriteError,
)
from stackforge.engine.installer import CommandInstaller, DependencyInstaller
from stackforge.engine.manifest import Dependency, DependencyManifest, GemfileWriter
from stackforge.engine.resolver import CommandSecretSource, SecretSource, ValueResolver
from stackforge.engine.runner import Bootstrapper, EngineState, RunReport
from stackforge.engine.subgenerator import CommandSubgenerator, Subgenerator
from stackforge.engine.tree import DiskTree, MemoryTree, ProjectTree, StagedTree

__all__ = [
    # Orchestration
    "Bootstrapper",
    "EngineState",
    "RunReport",
    # Directives
    "Anchor",
    "AnchorKind",
    "ApplyConfig",
    "Create",
    "Directive",
    "ExecutionContext",
    "Inject",
    "InvokeSubgenerator",
    "Remove",
    "parse_directives",
    "route",
    # Dependencies
    "Dependency",
    "DependencyManifest",
    "GemfileWriter",
    "DependencyInstaller",
    "CommandInstaller",
    # Collaborators
    "SecretSource",
    "CommandSecretSource",
    "ValueResolver",
    "Subgenerator",
    "CommandSubgenerator",
    # Project trees
    "ProjectTree",
    "DiskTree",
    "MemoryTree",
    "StagedTree",
    # Errors
    "EngineError",
    "PhaseError",
    "DeclarationError",
    "CommandError",
    "DependencyInstallError",
    "SubgeneratorError",
    "SecretResolutionError",
    "MissingTargetError",
    "AnchorError",
    "WriteError",
]
