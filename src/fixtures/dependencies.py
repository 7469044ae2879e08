"""
Dependency gate for acceptance scenarios.

A scenario can require an installed distribution to match a version
constraint. When it does not, the scenario is skipped (pytest.skip), not
failed.

Two metadata capabilities are supported:
- modern: importlib.metadata
- legacy: pkg_resources, reporting versions as "<version>@<ref>"

The resolver is picked once, when the fixtures are built.
"""

import importlib.util
import json
from collections.abc import Callable
from importlib import metadata
from typing import Protocol

import pytest
from packaging.specifiers import SpecifierSet
from packaging.version import InvalidVersion, Version

from src.fixtures.errors import ConfigurationError, MalformedVersionMetadataError
from src.utils.logging import get_logger

logger = get_logger(__name__)

VERSION_REF_SEPARATOR = "@"

VersionLookup = Callable[[str], str | None]


class VersionResolver(Protocol):
    """Answers whether an installed package satisfies a constraint."""

    name: str

    def satisfies(self, package: str, constraint: str) -> bool:
        ...


def version_matches(version: str, constraint: str) -> bool:
    """Check a concrete version against a PEP 440 constraint expression.

    Pre-releases count as matches. A version that cannot be parsed matches
    nothing; an invalid constraint raises packaging's InvalidSpecifier.
    """
    specifiers = SpecifierSet(constraint)
    try:
        parsed = Version(version)
    except InvalidVersion:
        logger.debug("Unparsable installed version", version=version)
        return False
    return specifiers.contains(parsed, prereleases=True)


def _importlib_version(package: str) -> str | None:
    try:
        return metadata.version(package)
    except metadata.PackageNotFoundError:
        return None


def pkg_resources_version(package: str) -> str | None:
    """Return "<version>@<ref>" for an installed distribution via pkg_resources.

    The ref is the VCS commit recorded in direct_url.json (PEP 610), or empty
    for regular installs. Returns None when the distribution is not installed.
    """
    import pkg_resources

    try:
        dist = pkg_resources.get_distribution(package)
    except pkg_resources.DistributionNotFound:
        return None

    ref = ""
    if dist.has_metadata("direct_url.json"):
        direct_url = json.loads(dist.get_metadata("direct_url.json"))
        ref = direct_url.get("vcs_info", {}).get("commit_id", "")

    return f"{dist.version}{VERSION_REF_SEPARATOR}{ref}"


class ModernResolver:
    """Resolver backed by importlib.metadata."""

    name = "modern"

    def __init__(self, lookup: VersionLookup | None = None):
        self._lookup = lookup or _importlib_version

    def satisfies(self, package: str, constraint: str) -> bool:
        version = self._lookup(package)
        if version is None:
            return False
        return version_matches(version, constraint)


class LegacyResolver:
    """Resolver for metadata reported as "<version>@<ref>".

    Raises:
        MalformedVersionMetadataError: If the reported string has no "@".
    """

    name = "legacy"

    def __init__(self, lookup: VersionLookup | None = None):
        self._lookup = lookup or pkg_resources_version

    def satisfies(self, package: str, constraint: str) -> bool:
        raw = self._lookup(package)
        if raw is None:
            return False
        if VERSION_REF_SEPARATOR not in raw:
            raise MalformedVersionMetadataError(package, raw)

        version = raw.split(VERSION_REF_SEPARATOR, 1)[0]
        return version_matches(version, constraint)


class NullResolver:
    """Used when no metadata capability is available: nothing is satisfied."""

    name = "none"

    def satisfies(self, package: str, constraint: str) -> bool:
        return False


def has_modern_metadata() -> bool:
    return importlib.util.find_spec("importlib.metadata") is not None


def has_legacy_metadata() -> bool:
    return importlib.util.find_spec("pkg_resources") is not None


def select_resolver(mode: str = "auto") -> VersionResolver:
    """Pick the version resolver for this run.

    importlib.metadata ships with every supported Python, so "auto" always
    picks ModernResolver. Set ``dependency_gate.resolver: legacy`` to check
    "<version>@<ref>" strings through pkg_resources.

    Args:
        mode: "auto", "modern" or "legacy". auto tries modern first.

    Returns:
        The selected resolver. NullResolver if auto finds no capability.

    Raises:
        ConfigurationError: If mode is unknown, or names an unavailable capability.
    """
    if mode == "auto":
        if has_modern_metadata():
            resolver: VersionResolver = ModernResolver()
        elif has_legacy_metadata():
            resolver = LegacyResolver()
        else:
            resolver = NullResolver()
    elif mode == "modern":
        if not has_modern_metadata():
            raise ConfigurationError("importlib.metadata is not available")
        resolver = ModernResolver()
    elif mode == "legacy":
        if not has_legacy_metadata():
            raise ConfigurationError("pkg_resources is not available (install setuptools)")
        resolver = LegacyResolver()
    else:
        raise ConfigurationError(f"Unknown version resolver: {mode}")

    logger.debug("Version resolver selected", mode=mode, resolver=resolver.name)
    return resolver


def require_dependency(
    resolver: VersionResolver,
    package: str,
    constraint: str,
) -> None:
    """Skip the running scenario unless ``package`` matches ``constraint``.

    Anything other than a definite True from the resolver counts as
    unsatisfied.

    Raises:
        pytest.skip.Exception: If the dependency is not satisfied.
        MalformedVersionMetadataError: If legacy metadata is malformed.
    """
    satisfied = resolver.satisfies(package, constraint)

    logger.debug(
        "Dependency checked",
        package=package,
        constraint=constraint,
        resolver=resolver.name,
        satisfied=satisfied,
    )

    if satisfied is not True:
        pytest.skip(f"This scenario requires {package} to match {constraint}")
