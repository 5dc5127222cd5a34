"""Shared pytest fixtures for the stackforge test suite.

Provides reusable fixtures for:
- In-memory and on-disk project trees
- A minimal Rails skeleton as produced by ``rails new``
- Fake collaborators (installer, sub-generator, secret source) that record
  every call into a shared log so ordering can be asserted
- A mock subprocess helper for the command-backed collaborators
"""

from __future__ import annotations

import subprocess
import textwrap
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from stackforge.engine import (
    Bootstrapper,
    DependencyInstallError,
    MemoryTree,
    SubgeneratorError,
    ValueResolver,
)
from stackforge.templates import TemplateRenderer


# ---------------------------------------------------------------------------
# Rails skeleton
# ---------------------------------------------------------------------------

SKELETON_FILES: dict[str, str] = {
    "Gemfile": textwrap.dedent("""\
        source "https://rubygems.org"

        gem "rails", "~> 8.0.2"
        gem "pg", "~> 1.1"
        gem "puma", ">= 5.0"
    """),
    "config/application.rb": textwrap.dedent("""\
        require_relative "boot"

        require "rails/all"

        Bundler.require(*Rails.groups)

        module Shop
          class Application < Rails::Application
            config.load_defaults 8.0
          end
        end
    """),
    "config/routes.rb": textwrap.dedent("""\
        Rails.application.routes.draw do
          get "up" => "rails/health#show", as: :rails_health_check
        end
    """),
    "config/database.yml": textwrap.dedent("""\
        default: &default
          adapter: sqlite3
        development:
          <<: *default
          database: storage/development.sqlite3
    """),
}

RSPEC_INSTALL_FILES: dict[str, str] = {
    ".rspec": "--require spec_helper\n",
    "spec/spec_helper.rb": "RSpec.configure do |config|\nend\n",
    "spec/rails_helper.rb": "RSpec.configure do |config|\n  config.fixture_paths = []\nend\n",
}


@pytest.fixture
def skeleton_tree() -> MemoryTree:
    """In-memory tree holding a fresh Rails skeleton."""
    return MemoryTree(dict(SKELETON_FILES))


@pytest.fixture
def skeleton_dir(tmp_path: Path) -> Path:
    """On-disk Rails skeleton in a temporary directory (auto-cleanup)."""
    root = tmp_path / "shop"
    for rel, content in SKELETON_FILES.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    yield root


@pytest.fixture
def rspec_outputs() -> dict[str, dict[str, str]]:
    """Files the ``rspec:install`` sub-generator writes."""
    return {"rspec:install": dict(RSPEC_INSTALL_FILES)}


@pytest.fixture
def renderer() -> TemplateRenderer:
    """Renderer over the bundled payload templates."""
    return TemplateRenderer()


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FakeInstaller:
    """Records installs; optionally fails."""

    def __init__(self, log: list[str], fail: bool = False) -> None:
        self.log = log
        self.fail = fail
        self.installed: list[list[str]] = []

    def install(self, manifest: Any) -> None:
        self.log.append("install")
        if self.fail:
            raise DependencyInstallError("bundle install failed", command="bundle install", returncode=1)
        self.installed.append([dep.name for dep in manifest])


class FakeSubgenerator:
    """Writes a fixed set of files per generator name into a tree."""

    def __init__(
        self,
        log: list[str],
        tree: Any,
        outputs: dict[str, dict[str, str]] | None = None,
        fail: bool = False,
    ) -> None:
        self.log = log
        self.tree = tree
        self.outputs = outputs or {}
        self.fail = fail

    def invoke(self, name: str) -> None:
        self.log.append(f"generate {name}")
        if self.fail:
            raise SubgeneratorError(f"generator {name} failed", command=name, returncode=1)
        for path, content in self.outputs.get(name, {}).items():
            self.tree.write(path, content)


class FakeSecretSource:
    """Returns a fixed value and counts how often it was asked."""

    def __init__(self, log: list[str], value: str = "s3cr3t-value") -> None:
        self.log = log
        self.value = value
        self.calls = 0

    def fetch(self) -> str:
        self.calls += 1
        self.log.append("secret")
        return self.value


@pytest.fixture
def call_log() -> list[str]:
    """Shared, ordered log of collaborator calls."""
    return []


@pytest.fixture
def make_installer(call_log):
    def factory(fail: bool = False) -> FakeInstaller:
        return FakeInstaller(call_log, fail=fail)

    return factory


@pytest.fixture
def make_subgenerator(call_log):
    def factory(
        tree: Any,
        outputs: dict[str, dict[str, str]] | None = None,
        fail: bool = False,
    ) -> FakeSubgenerator:
        return FakeSubgenerator(call_log, tree, outputs=outputs, fail=fail)

    return factory


@pytest.fixture
def make_secret(call_log):
    def factory(value: str = "s3cr3t-value") -> FakeSecretSource:
        return FakeSecretSource(call_log, value=value)

    return factory


@pytest.fixture
def make_bootstrapper(make_installer, make_subgenerator, make_secret, renderer):
    """Factory for a ``Bootstrapper`` wired to fake collaborators.

    Usage::

        boot = make_bootstrapper(tree, install_fails=True)
    """

    def factory(
        tree: Any,
        *,
        install_fails: bool = False,
        generator_outputs: dict[str, dict[str, str]] | None = None,
        generator_fails: bool = False,
        secret_value: str = "s3cr3t-value",
        atomic: bool = False,
    ) -> Bootstrapper:
        resolver = ValueResolver({"secret_key_base": make_secret(secret_value)})
        return Bootstrapper(
            tree=tree,
            installer=make_installer(fail=install_fails),
            subgenerator=make_subgenerator(tree, outputs=generator_outputs, fail=generator_fails),
            resolver=resolver,
            renderer=renderer,
            atomic=atomic,
        )

    return factory


# ---------------------------------------------------------------------------
# Mock subprocess
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_completed():
    """Factory for ``subprocess.CompletedProcess``-like results.

    Usage:
        def test_command(mock_completed):
            result = mock_completed(stdout="output", returncode=0)
            with patch("subprocess.run", return_value=result):
                ...
    """

    def factory(stdout: str = "", stderr: str = "", returncode: int = 0) -> MagicMock:
        completed = MagicMock(spec=subprocess.CompletedProcess)
        completed.stdout = stdout.encode("utf-8")
        completed.stderr = stderr.encode("utf-8")
        completed.returncode = returncode
        return completed

    return factory
