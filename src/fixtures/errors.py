"""
Exceptions raised by scenario fixtures.

Only configuration/environment problems get their own types. I/O failures
(OSError) and jinja2.TemplateNotFound propagate unchanged, and an unsatisfied
dependency is a pytest skip rather than an error.
"""


class FixtureError(Exception):
    """Base exception for scenario fixture errors."""
    pass


class ConfigurationError(FixtureError):
    """Raised when the fixture configuration or environment is broken."""
    pass


class InvalidCacheDirectoryError(ConfigurationError):
    """Raised when a template cache path is missing, unreadable or not a directory."""

    def __init__(self, cache_dir: str):
        self.cache_dir = cache_dir
        super().__init__(
            f"The {cache_dir} template cache directory does not exist or is not readable."
        )


class MalformedVersionMetadataError(ConfigurationError):
    """Raised when legacy version metadata is not of the form <version>@<ref>."""

    def __init__(self, package: str, version: str):
        self.package = package
        self.version = version
        super().__init__(
            f"Version metadata for {package} must contain '@', got {version!r}"
        )
