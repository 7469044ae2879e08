"""
Scenario fixture manager.

Bundles the fixture configuration with the three scenario preconditions:
- stage_template: write template source under the fixture root
- compile_template: compile a staged template into a fresh cache
- require_dependency: skip the scenario unless a package matches a constraint

Usage:
    fixtures = get_scenario_fixtures()
    fixtures.stage_template("t.twig", "{{ x }}")
    fixtures.compile_template("t.twig", "cache")
"""

from pathlib import Path

from jinja2 import Template
from structlog.contextvars import bound_contextvars

from src.fixtures import dependencies, templates
from src.fixtures.dependencies import VersionResolver
from src.utils.config import (
    FixturesConfig,
    Settings,
    TemplateEnvironmentConfig,
    get_settings,
)
from src.utils.logging import ensure_logging_configured, get_logger

logger = get_logger(__name__)


class ScenarioFixtures:
    """Sets up scenario preconditions for one fixture root.

    Holds no state between calls apart from the configuration and the version
    resolver selected at construction time.
    """

    def __init__(
        self,
        fixtures: FixturesConfig | None = None,
        template_options: TemplateEnvironmentConfig | None = None,
        resolver: VersionResolver | None = None,
    ):
        """
        Initialize the fixtures.

        Args:
            fixtures: Fixture root layout. Defaults to FixturesConfig().
            template_options: Jinja2 environment options.
                              Defaults to TemplateEnvironmentConfig().
            resolver: Version resolver. Defaults to select_resolver("auto").
        """
        ensure_logging_configured()

        self._fixtures = fixtures or FixturesConfig()
        self._template_options = template_options or TemplateEnvironmentConfig()
        self._resolver = resolver or dependencies.select_resolver()

        logger.debug(
            "ScenarioFixtures initialized",
            root=str(self._fixtures.root),
            resolver=self._resolver.name,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ScenarioFixtures":
        """Build fixtures from application settings."""
        ensure_logging_configured()
        if settings is None:
            settings = get_settings()
        return cls(
            fixtures=settings.fixtures,
            template_options=settings.templates,
            resolver=dependencies.select_resolver(settings.dependency_gate.resolver),
        )

    @property
    def root(self) -> Path:
        return self._fixtures.root

    @property
    def templates_root(self) -> Path:
        return self._fixtures.templates_root

    @property
    def resolver(self) -> VersionResolver:
        return self._resolver

    def stage_template(self, name: str, source: str) -> Path:
        with bound_contextvars(operation="stage_template", template=name):
            return templates.stage_template(self._fixtures, name, source)

    def compile_template(self, name: str, cache_dir: str) -> Template:
        with bound_contextvars(operation="compile_template", template=name):
            return templates.compile_template(
                self._fixtures, name, cache_dir, self._template_options
            )

    def require_dependency(self, package: str, constraint: str) -> None:
        with bound_contextvars(operation="require_dependency", package=package):
            dependencies.require_dependency(self._resolver, package, constraint)


# ============================================================================
# Module-level singleton
# ============================================================================

_scenario_fixtures: ScenarioFixtures | None = None


def get_scenario_fixtures() -> ScenarioFixtures:
    """
    Get the global ScenarioFixtures instance.

    Returns:
        ScenarioFixtures built from settings.
    """
    global _scenario_fixtures
    if _scenario_fixtures is None:
        _scenario_fixtures = ScenarioFixtures.from_settings()
    return _scenario_fixtures


def reset_scenario_fixtures() -> None:
    """Reset the global ScenarioFixtures instance (for testing)."""
    global _scenario_fixtures
    _scenario_fixtures = None


# ============================================================================
# Convenience functions
# ============================================================================

def stage_template(name: str, source: str) -> Path:
    """Stage a template with the global ScenarioFixtures."""
    return get_scenario_fixtures().stage_template(name, source)


def compile_template(name: str, cache_dir: str) -> Template:
    """Compile a staged template with the global ScenarioFixtures."""
    return get_scenario_fixtures().compile_template(name, cache_dir)


def require_dependency(package: str, constraint: str) -> None:
    """Gate the running scenario with the global ScenarioFixtures."""
    get_scenario_fixtures().require_dependency(package, constraint)
