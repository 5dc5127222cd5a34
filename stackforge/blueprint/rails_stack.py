"""Web + worker + database + broker blueprint.

Turns a freshly generated Rails skeleton into a four-service stack: the web
process, a Sidekiq worker, PostgreSQL and Redis.  The blueprint only declares
dependencies and queues directives on a ``Bootstrapper``; the engine decides
when they run.
"""

from __future__ import annotations

import re
from typing import Any, ClassVar

from pydantic import BaseModel, Field

from stackforge.engine import (
    ApplyConfig,
    Bootstrapper,
    Create,
    Inject,
    InvokeSubgenerator,
    Remove,
    route,
)
from stackforge.engine.anchors import Anchor
from stackforge.templates import TemplateRenderer

_TEMPLATE_PREFIX = "rails_stack"


# ---------------------------------------------------------------------------
# Configuration models
# ---------------------------------------------------------------------------


class DatabaseConfig(BaseModel):
    """PostgreSQL service settings."""

    image: str = Field(default="postgres:15")
    host: str = Field(default="db", description="Compose service name and DATABASE_HOST")
    # Port the server listens on inside the compose network.
    service_port: ClassVar[int] = 5432
    port: int = Field(default=5432, ge=1, le=65535, description="Host port published for the service")
    username: str = Field(default="postgres")
    password: str = Field(default="postgres")
    pool: int = Field(default=5, ge=1)


class RedisConfig(BaseModel):
    """Queue broker settings."""

    image: str = Field(default="redis:7-alpine")
    host: str = Field(default="redis")
    service_port: ClassVar[int] = 6379
    port: int = Field(default=6379, ge=1, le=65535, description="Host port published for the service")
    db: int = Field(default=1, ge=0)

    @property
    def url(self) -> str:
        return f"redis://{self.host}:{self.service_port}/{self.db}"


class WebConfig(BaseModel):
    """Web process settings."""

    ruby_image: str = Field(default="ruby:3.4")
    port: int = Field(default=3000, ge=1, le=65535)


class WorkerConfig(BaseModel):
    """Background-job worker settings."""

    service: str = Field(default="sidekiq")
    concurrency: int = Field(default=5, ge=1)
    queues: list[str] = Field(default_factory=lambda: ["default", "mailers"], min_length=1)
    web_path: str = Field(default="/sidekiq", description="Mount point of the worker dashboard")


class CIConfig(BaseModel):
    """Continuous-integration workflow settings."""

    branch: str = Field(default="main")


class StackConfig(BaseModel):
    """Everything the payload templates are rendered with."""

    app_name: str = Field(default="app", min_length=1)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    web: WebConfig = Field(default_factory=WebConfig)
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    ci: CIConfig = Field(default_factory=CIConfig)
    coverage_filters: list[str] = Field(
        default_factory=lambda: ["app/channels/", "app/views/"]
    )
    environments: list[str] = Field(
        default_factory=lambda: ["development", "test", "production"]
    )

    def template_context(self) -> dict[str, Any]:
        """Build the Jinja2 context shared by every payload template."""
        return {
            "app_name": _app_slug(self.app_name),
            "database": {**self.database.model_dump(), "service_port": self.database.service_port},
            "redis": {
                **self.redis.model_dump(),
                "service_port": self.redis.service_port,
                "url": self.redis.url,
            },
            "web": self.web.model_dump(),
            "worker": self.worker.model_dump(),
            "ci": self.ci.model_dump(),
            "coverage_filters": list(self.coverage_filters),
            "environments": list(self.environments),
        }


# ---------------------------------------------------------------------------
# Blueprint
# ---------------------------------------------------------------------------

SECRET_KEY_BASE = "secret_key_base"


def declare_dependencies(boot: Bootstrapper) -> None:
    """Declare the libraries the generated files rely on."""
    boot.declare("sidekiq")

    with boot.group("development", "test"):
        boot.declare("dotenv-rails")
        boot.declare("factory_bot_rails")
        boot.declare("rspec-rails")
        boot.declare("faker")
        boot.declare("shoulda-matchers")

    with boot.group("development"):
        boot.declare("letter_opener")

    with boot.group("test"):
        boot.declare("database_cleaner-active_record")
        boot.declare("simplecov", require=False)


def build_stack(
    boot: Bootstrapper,
    config: StackConfig | None = None,
    renderer: TemplateRenderer | None = None,
) -> Bootstrapper:
    """Declare dependencies and queue the post-install steps on *boot*.

    Args:
        boot: A bootstrapper still in its declaring state.
        config: Stack settings; defaults reproduce the stock four-service setup.
        renderer: Renderer used for the text injected into existing files.

    Returns:
        The same bootstrapper, for chaining.
    """
    config = config or StackConfig()
    renderer = renderer or TemplateRenderer()
    ctx = config.template_context()

    def _tpl(name: str) -> str:
        return f"{_TEMPLATE_PREFIX}/{name}.j2"

    def _file(path: str, name: str, **kwargs: Any) -> Create:
        return Create(path=path, template=_tpl(name), context=ctx, **kwargs)

    declare_dependencies(boot)

    boot.after_install(
        # Test framework bootstrap must exist before the helper is patched.
        InvokeSubgenerator(generator="rspec:install"),
        _file("spec/support/factory_bot.rb", "factory_bot.rb"),
        _file("spec/support/database_cleaner.rb", "database_cleaner.rb"),
        _file(".env", "env", secrets=(SECRET_KEY_BASE,)),
        Inject(
            path="spec/rails_helper.rb",
            content=renderer.render(_tpl("rails_helper_preamble.rb"), ctx),
            anchor=Anchor.start_of_file(),
        ),
        _file("entrypoint.sh", "entrypoint.sh", executable=True),
        _file("Dockerfile", "Dockerfile"),
        _file("docker-compose.yml", "docker-compose.yml"),
        _file(".github/workflows/ci.yml", "ci.yml"),
        Remove(path="config/database.yml"),
        _file("config/database.yml", "database.yml"),
        _file("config/sidekiq.yml", "sidekiq.yml"),
        _file("config/initializers/sidekiq.rb", "sidekiq_initializer.rb"),
        ApplyConfig(content=renderer.render(_tpl("active_job_adapter.rb"), ctx)),
        route(renderer.render(_tpl("sidekiq_routes.rb"), ctx)),
    )
    return boot


def _app_slug(name: str) -> str:
    """Normalise an application name into a lowercase identifier."""
    slug = re.sub(r"[^a-z0-9_]+", "_", name.strip().lower()).strip("_")
    return slug or "app"
