"""
pytest-bdd step definitions for scenario preconditions.

Import this module from a conftest.py (or register it as a plugin) to make the
steps available to feature files:

    Given I have the following "t.twig" template
      \"\"\"
      {{ x }}
      \"\"\"
    And the "t.twig" template is compiled in the "cache" directory
    And I have the "jinja2" package satisfying the ">=3.0"

Override the ``scenario_fixtures`` fixture to point the steps at another
fixture root. As a plugin (``-p src.fixtures.steps``) it also configures
logging from the ``general`` settings at session start.
"""

import pytest
from pytest_bdd import given, parsers

from src.fixtures.manager import ScenarioFixtures
from src.utils.logging import configure_logging


def pytest_configure(config: pytest.Config) -> None:
    configure_logging()


@pytest.fixture
def scenario_fixtures() -> ScenarioFixtures:
    """ScenarioFixtures built from settings."""
    return ScenarioFixtures.from_settings()


@given(parsers.parse('I have the following "{template_name}" template'))
def have_the_following_template(
    scenario_fixtures: ScenarioFixtures,
    template_name: str,
    docstring: str,
) -> None:
    scenario_fixtures.stage_template(template_name, docstring)


@given(parsers.parse('the "{template_name}" template is compiled in the "{cache_dir}" directory'))
def have_the_template_compiled(
    scenario_fixtures: ScenarioFixtures,
    template_name: str,
    cache_dir: str,
) -> None:
    scenario_fixtures.compile_template(template_name, cache_dir)


@given(parsers.parse('I have the "{package}" package satisfying the "{version_constraint}"'))
def have_a_dependency_satisfied(
    scenario_fixtures: ScenarioFixtures,
    package: str,
    version_constraint: str,
) -> None:
    scenario_fixtures.require_dependency(package, version_constraint)
