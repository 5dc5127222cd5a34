"""Tests for the Jinja2 template renderer and the bundled payload templates."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from jinja2 import TemplateNotFound, UndefinedError

from stackforge.blueprint.rails_stack import DatabaseConfig, RedisConfig, StackConfig, WorkerConfig
from stackforge.templates import FILTERS, TemplateRenderer

pytestmark = pytest.mark.unit


@pytest.fixture
def context() -> dict:
    ctx = StackConfig(app_name="shop").template_context()
    ctx["secrets"] = {"secret_key_base": "s3cr3t"}
    return ctx


class TestTemplateRenderer:
    def test_list_templates(self, renderer):
        names = renderer.list_templates("rails_stack")
        assert "rails_stack/env.j2" in names
        assert "rails_stack/docker-compose.yml.j2" in names
        assert names == sorted(names)

    def test_list_templates_unknown_prefix(self, renderer):
        assert renderer.list_templates("nope") == []

    def test_custom_template_dir(self, tmp_path: Path):
        (tmp_path / "hello.j2").write_text("Hello {{ name | slugify }}\n", encoding="utf-8")
        renderer = TemplateRenderer(tmp_path)
        assert renderer.render("hello.j2", {"name": "My App"}) == "Hello my-app\n"

    def test_missing_variable_is_an_error(self, renderer):
        with pytest.raises(UndefinedError):
            renderer.render("rails_stack/env.j2", {})

    def test_missing_template(self, renderer):
        with pytest.raises(TemplateNotFound):
            renderer.render("rails_stack/nope.j2", {})

    def test_has_template(self, renderer):
        assert renderer.has_template("rails_stack/env.j2")
        assert not renderer.has_template("rails_stack/nope.j2")

    def test_render_string(self, renderer):
        assert renderer.render_string("{{ a }}-{{ b }}", {"a": 1, "b": 2}) == "1-2"


class TestFilters:
    @pytest.mark.parametrize(
        "value, expected",
        [("My App", "my-app"), ("  Shop!! 2 ", "shop-2"), ("already-slug", "already-slug")],
    )
    def test_slugify(self, value, expected):
        assert FILTERS["slugify"](value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [("OrderService", "order_service"), ("order-service", "order_service"), ("shop", "shop")],
    )
    def test_snake_case(self, value, expected):
        assert FILTERS["snake_case"](value) == expected


class TestPayloadTemplates:
    """Every bundled template renders with the default stack settings."""

    def test_all_templates_render(self, renderer, context):
        for name in renderer.list_templates("rails_stack"):
            assert renderer.render(name, context).strip(), name

    @pytest.mark.parametrize(
        "name",
        [
            "rails_stack/docker-compose.yml.j2",
            "rails_stack/ci.yml.j2",
            "rails_stack/database.yml.j2",
            "rails_stack/sidekiq.yml.j2",
        ],
    )
    def test_yaml_templates_are_valid_yaml(self, renderer, context, name):
        data = yaml.safe_load(renderer.render(name, context))
        assert isinstance(data, dict)

    def test_env_file(self, renderer, context):
        lines = renderer.render("rails_stack/env.j2", context).splitlines()
        assert lines[0] == "SECRET_KEY_BASE=s3cr3t"
        assert "DATABASE_HOST=db" in lines
        assert all("=" in line and line.split("=", 1)[1] for line in lines)

    def test_sidekiq_queues(self, renderer):
        ctx = StackConfig(worker=WorkerConfig(concurrency=10, queues=["critical", "default"])).template_context()
        data = yaml.safe_load(renderer.render("rails_stack/sidekiq.yml.j2", ctx))
        assert data[":concurrency"] == 10
        assert data[":queues"] == ["critical", "default"]

    def test_database_per_environment(self, renderer):
        ctx = StackConfig(app_name="shop", environments=["development", "test"]).template_context()
        data = yaml.safe_load(renderer.render("rails_stack/database.yml.j2", ctx))
        assert set(data) == {"default", "development", "test"}
        assert data["development"]["database"] == "shop_development"

    def test_dockerfile_exposes_web_port(self, renderer, context):
        text = renderer.render("rails_stack/Dockerfile.j2", context)
        assert text.startswith("FROM ruby:3.4\n")
        assert "EXPOSE 3000" in text

    def test_initializer_uses_redis_url(self, renderer, context):
        text = renderer.render("rails_stack/sidekiq_initializer.rb.j2", context)
        assert text.count('"redis://redis:6379/1"') == 2

    def test_custom_host_ports_only_change_published_ports(self, renderer):
        ctx = StackConfig(
            database=DatabaseConfig(port=5433),
            redis=RedisConfig(port=6380),
        ).template_context()
        ctx["secrets"] = {"secret_key_base": "s3cr3t"}

        services = yaml.safe_load(renderer.render("rails_stack/docker-compose.yml.j2", ctx))["services"]
        assert services["db"]["ports"] == ["5433:5432"]
        assert services["redis"]["ports"] == ["6380:6379"]

        env = renderer.render("rails_stack/env.j2", ctx).splitlines()
        assert "DATABASE_PORT=5432" in env
        assert "REDIS_URL=redis://redis:6379/1" in env
        assert "DATABASE_PORT', 5432)" in renderer.render("rails_stack/database.yml.j2", ctx)

    def test_database_cleaner_truncates_between_examples(self, renderer, context):
        text = renderer.render("rails_stack/database_cleaner.rb.j2", context)
        assert "DatabaseCleaner.strategy = :truncation" in text
        assert "tables_to_keep" not in text
