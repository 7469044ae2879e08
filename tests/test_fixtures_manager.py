"""
Tests for ScenarioFixtures and the module-level helpers.

Verifies:
- Construction from explicit config and from settings
- Singleton lifecycle
- Operations delegate to staging, compilation and the gate
- Log context is scoped to each operation
"""

import os

import pytest
import structlog

from src.fixtures.dependencies import LegacyResolver, ModernResolver
from src.fixtures.manager import (
    ScenarioFixtures,
    compile_template,
    get_scenario_fixtures,
    require_dependency,
    reset_scenario_fixtures,
    stage_template,
)
from src.utils.config import FixturesConfig, Settings


@pytest.fixture
def run_dir_env(monkeypatch, fixture_root):
    """Point the settings' fixture root at tmp_path through the environment."""
    monkeypatch.setenv("SCENARIO_FIXTURES_FIXTURES__DEFAULT_DIR", f"{fixture_root}{os.sep}")
    monkeypatch.setenv("SCENARIO_FIXTURES_DEPENDENCY_GATE__RESOLVER", "modern")
    return fixture_root


class TestScenarioFixturesInit:
    """Tests for ScenarioFixtures construction."""

    def test_defaults(self):
        fixtures = ScenarioFixtures(resolver=ModernResolver())

        assert fixtures.root == FixturesConfig().root
        assert str(fixtures.templates_root).endswith(os.path.join("_run", "templates"))

    def test_default_resolver_is_selected(self):
        fixtures = ScenarioFixtures()

        assert isinstance(fixtures.resolver, ModernResolver)

    def test_from_settings(self, fixture_root, monkeypatch):
        monkeypatch.setattr(
            "src.fixtures.dependencies.has_legacy_metadata", lambda: True
        )
        settings = Settings(
            fixtures={"default_dir": str(fixture_root)},
            dependency_gate={"resolver": "legacy"},
        )

        fixtures = ScenarioFixtures.from_settings(settings)

        assert fixtures.root == fixture_root
        assert isinstance(fixtures.resolver, LegacyResolver)


@pytest.mark.integration
class TestScenarioFixturesOperations:
    """Operations on a tmp_path fixture root."""

    def test_stage_and_compile(self, scenario_fixtures, fixture_root):
        path = scenario_fixtures.stage_template("page.twig", "<p>{{ body }}</p>")
        template = scenario_fixtures.compile_template("page.twig", "cache")

        assert path == fixture_root / "templates" / "page.twig"
        assert template.render(body="hi") == "<p>hi</p>"
        assert any((fixture_root / "cache").iterdir())

    def test_require_dependency_skips(self, fixtures_config):
        fixtures = ScenarioFixtures(
            fixtures=fixtures_config,
            resolver=ModernResolver(lookup=lambda package: "1.2.0"),
        )

        fixtures.require_dependency("vendor/pkg", ">=1.0")
        with pytest.raises(pytest.skip.Exception, match=">=2.0"):
            fixtures.require_dependency("vendor/pkg", ">=2.0")

    def test_log_context_is_unbound_after_operation(self, scenario_fixtures):
        scenario_fixtures.stage_template("t.twig", "{{ x }}")

        assert "operation" not in structlog.contextvars.get_contextvars()


@pytest.mark.integration
class TestModuleHelpers:
    """Tests for the singleton and convenience functions."""

    def test_singleton_is_reused(self, run_dir_env):
        assert get_scenario_fixtures() is get_scenario_fixtures()

    def test_reset_creates_new_instance(self, run_dir_env):
        first = get_scenario_fixtures()
        reset_scenario_fixtures()

        assert get_scenario_fixtures() is not first

    def test_singleton_uses_settings(self, run_dir_env):
        assert get_scenario_fixtures().root == run_dir_env

    def test_convenience_functions(self, run_dir_env):
        stage_template("t.twig", "{{ x }}!")
        template = compile_template("t.twig", "cache")

        assert template.render(x="ok") == "ok!"
        require_dependency("pytest", ">=1.0")

        with pytest.raises(pytest.skip.Exception):
            require_dependency("pytest", "<1.0")
