"""
Scenario fixtures module.
"""

from src.fixtures.dependencies import (
    LegacyResolver,
    ModernResolver,
    NullResolver,
    VersionResolver,
    select_resolver,
)
from src.fixtures.errors import (
    ConfigurationError,
    FixtureError,
    InvalidCacheDirectoryError,
    MalformedVersionMetadataError,
)
from src.fixtures.manager import (
    ScenarioFixtures,
    compile_template,
    get_scenario_fixtures,
    require_dependency,
    reset_scenario_fixtures,
    stage_template,
)
from src.fixtures.templates import EnvironmentDescriptor, ExtensionAwareBytecodeCache

__all__ = [
    # Manager
    "ScenarioFixtures",
    "get_scenario_fixtures",
    "reset_scenario_fixtures",
    "stage_template",
    "compile_template",
    "require_dependency",
    # Templates
    "EnvironmentDescriptor",
    "ExtensionAwareBytecodeCache",
    # Dependencies
    "VersionResolver",
    "ModernResolver",
    "LegacyResolver",
    "NullResolver",
    "select_resolver",
    # Errors
    "FixtureError",
    "ConfigurationError",
    "InvalidCacheDirectoryError",
    "MalformedVersionMetadataError",
]
