"""
Configuration management for scenario-fixtures.
Loads and validates settings from YAML files and environment variables.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "SCENARIO_FIXTURES_"
CONFIG_DIR_ENV = f"{ENV_PREFIX}CONFIG_DIR"


class GeneralConfig(BaseModel):
    """General configuration."""

    project_name: str = "scenario-fixtures"
    version: str = "0.1.0"
    log_level: str = "INFO"
    log_file: str | None = None  # None = stderr
    log_format: Literal["console", "json"] = "console"


class FixturesConfig(BaseModel):
    """Fixture root layout.

    default_dir is the base directory of one test run. Staged templates live
    in <default_dir>/<templates_dir>/ and caches are resolved below default_dir.
    """

    model_config = ConfigDict(extra="forbid")

    default_dir: str = "tests/_run/"
    templates_dir: str = "templates"

    @property
    def root(self) -> Path:
        """Fixture root, with any trailing separator dropped."""
        return Path(self.default_dir.rstrip(os.sep) or os.sep)

    @property
    def templates_root(self) -> Path:
        """Directory holding staged template sources."""
        return self.root / self.templates_dir


class TemplateEnvironmentConfig(BaseModel):
    """Jinja2 environment options applied to every compilation."""

    model_config = ConfigDict(extra="forbid")

    auto_reload: bool = True
    debug: bool = True
    optimized: bool = False  # False = no optimizer passes
    strict_variables: bool = False
    cache_file_pattern: str = "__jinja2_%s.cache"


class DependencyGateConfig(BaseModel):
    """Dependency gate configuration.

    resolver:
    - auto: modern when importlib.metadata exists (always on Python >= 3.11),
      else legacy
    - modern: importlib.metadata
    - legacy: pkg_resources, "<version>@<ref>" strings
    """

    model_config = ConfigDict(extra="forbid")

    resolver: Literal["auto", "modern", "legacy"] = "auto"


class Settings(BaseModel):
    """Main settings container."""

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    fixtures: FixturesConfig = Field(default_factory=FixturesConfig)
    templates: TemplateEnvironmentConfig = Field(default_factory=TemplateEnvironmentConfig)
    dependency_gate: DependencyGateConfig = Field(default_factory=DependencyGateConfig)


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary.
        override: Override dictionary.

    Returns:
        Merged dictionary.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _load_yaml_config(config_dir: Path) -> dict[str, Any]:
    """Load settings.yaml with local.yaml overrides.

    local.yaml keeps its overrides under a top-level "settings" key so that
    it can be shared with other config files later on.

    Example local.yaml:
        settings:
          fixtures:
            default_dir: /tmp/acceptance/

    Args:
        config_dir: Configuration directory path.

    Returns:
        Merged configuration dictionary.
    """
    config = _read_yaml(config_dir / "settings.yaml")
    local_overrides = _read_yaml(config_dir / "local.yaml")

    if "settings" in local_overrides:
        config = _deep_merge(config, local_overrides["settings"])

    return config


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides.

    Environment variables should be prefixed with SCENARIO_FIXTURES_ and use
    double underscores for nested keys.

    Example:
        SCENARIO_FIXTURES_FIXTURES__DEFAULT_DIR=/tmp/run/

    Args:
        config: Configuration dictionary.

    Returns:
        Configuration with environment overrides.
    """
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX) or key == CONFIG_DIR_ENV:
            continue

        key_path = key[len(ENV_PREFIX) :].lower().split("__")

        current = config
        for part in key_path[:-1]:
            if part not in current:
                current[part] = {}
            current = current[part]

        final_key = key_path[-1]
        lowered = value.lower()
        if lowered in ("true", "false"):
            current[final_key] = lowered == "true"
        else:
            try:
                current[final_key] = int(value)
            except ValueError:
                # Paths and constraint strings stay strings
                current[final_key] = value

    return config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get application settings.

    Settings are loaded from:
    1. Default values
    2. YAML configuration files
    3. Environment variables (highest priority)

    Returns:
        Settings instance.
    """
    config_dir = Path(os.environ.get(CONFIG_DIR_ENV, "config"))

    config = _load_yaml_config(config_dir)
    config = _apply_env_overrides(config)

    return Settings(**config)

