"""
Pytest fixtures and configuration for scenario-fixtures tests.

Test Classification:
- @pytest.mark.unit: Single class/function, no filesystem beyond tmp_path
  - DEFAULT: Tests without marker are auto-classified as unit
- @pytest.mark.integration: Components wired together (manager, BDD steps)

Mock Strategy:
- File I/O: Use tmp_path fixture, never the real tests/_run/ directory
- Package metadata: Inject version lookups into resolvers, or patch
  importlib.metadata / pkg_resources
"""

import os
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

# Set test environment before importing anything else
os.environ["SCENARIO_FIXTURES_CONFIG_DIR"] = str(Path(__file__).parent.parent / "config")
os.environ["SCENARIO_FIXTURES_GENERAL__LOG_LEVEL"] = "DEBUG"

from src.fixtures.dependencies import ModernResolver  # noqa: E402
from src.fixtures.manager import ScenarioFixtures, reset_scenario_fixtures  # noqa: E402
from src.utils.config import FixturesConfig, get_settings  # noqa: E402
from src.utils.logging import reset_logging  # noqa: E402

# Make the BDD step definitions available to every test module
from src.fixtures.steps import *  # noqa: E402, F401, F403


def pytest_collection_modifyitems(config, items):
    """Tests without explicit markers are assumed to be unit tests."""
    for item in items:
        has_classification = any(
            marker.name in ("unit", "integration") for marker in item.iter_markers()
        )
        if not has_classification:
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def reset_global_state() -> Generator[None, None, None]:
    """Reset cached settings, the fixtures singleton and logging."""
    get_settings.cache_clear()
    reset_scenario_fixtures()
    reset_logging()
    structlog.contextvars.clear_contextvars()
    yield
    get_settings.cache_clear()
    reset_scenario_fixtures()
    reset_logging()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def fixture_root(tmp_path: Path) -> Path:
    """Fixture root of one isolated test run (not created yet)."""
    return tmp_path / "_run"


@pytest.fixture
def fixtures_config(fixture_root: Path) -> FixturesConfig:
    """FixturesConfig pointing at fixture_root, with a trailing separator."""
    return FixturesConfig(default_dir=f"{fixture_root}{os.sep}")


@pytest.fixture
def scenario_fixtures(fixtures_config: FixturesConfig) -> ScenarioFixtures:
    """ScenarioFixtures rooted in tmp_path, using importlib.metadata."""
    return ScenarioFixtures(fixtures=fixtures_config, resolver=ModernResolver())


@pytest.fixture
def compiled_templates():
    """Factory listing the Jinja2 bytecode files in a cache directory."""

    def _list(cache_dir: Path) -> list[Path]:
        return sorted(cache_dir.glob("__jinja2_*.cache"))

    return _list
