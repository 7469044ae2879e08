"""
Template staging and compilation for acceptance scenarios.

Staged templates live under <fixture root>/templates/ and are compiled with
Jinja2 into a bytecode cache chosen by the scenario. Test runs routinely reuse
the same template names and cache paths, so every compilation registers a
freshly generated Extension subclass; its identifier is mixed into the
bytecode cache key, which keeps one run from picking up another run's
compiled artifact.
"""

import os
import uuid
from dataclasses import dataclass
from hashlib import sha1
from pathlib import Path

from jinja2 import (
    Environment,
    FileSystemBytecodeCache,
    FileSystemLoader,
    StrictUndefined,
    Template,
    Undefined,
)
from jinja2.bccache import Bucket
from jinja2.ext import Extension

from src.fixtures.errors import InvalidCacheDirectoryError
from src.utils.config import FixturesConfig, TemplateEnvironmentConfig
from src.utils.logging import get_logger

logger = get_logger(__name__)


def make_cache_buster_extension() -> type[Extension]:
    """Create a new, uniquely named Extension subclass.

    The class adds no behaviour. Jinja2 derives Extension.identifier from the
    module and class name, so the identifier differs on every call.
    """
    class_name = f"CacheBusterExtension{uuid.uuid4().hex}"
    return type(class_name, (Extension,), {"__module__": __name__})


class ExtensionAwareBytecodeCache(FileSystemBytecodeCache):
    """Filesystem bytecode cache keyed on the environment's extensions.

    The stock key only covers template name and filename. This cache also
    hashes the identifiers of every extension registered on the environment
    that requests the bucket.
    """

    def get_environment_cache_key(
        self,
        environment: Environment,
        name: str,
        filename: str | None = None,
    ) -> str:
        """Return the cache key for a template loaded by ``environment``."""
        key = sha1(self.get_cache_key(name, filename).encode("utf-8"))
        for identifier in sorted(environment.extensions):
            key.update(f"|{identifier}".encode("utf-8"))
        return key.hexdigest()

    def get_bucket(
        self,
        environment: Environment,
        name: str,
        filename: str | None,
        source: str,
    ) -> Bucket:
        key = self.get_environment_cache_key(environment, name, filename)
        bucket = Bucket(environment, key, self.get_source_checksum(source))
        self.load_bytecode(bucket)
        return bucket


@dataclass(frozen=True)
class EnvironmentDescriptor:
    """Per-call Jinja2 environment configuration.

    Never reused: every compilation builds a new descriptor carrying a new
    extension class.

    debug has no Jinja2 switch (tracebacks are always rewritten onto template
    lines); it is kept so the descriptor states the full configuration.
    """

    loader_root: Path
    search_path: str
    cache_dir: Path
    extension: type[Extension]
    auto_reload: bool = True
    debug: bool = True
    optimized: bool = False
    strict_variables: bool = False
    cache_file_pattern: str = "__jinja2_%s.cache"

    @property
    def templates_path(self) -> Path:
        return self.loader_root / self.search_path

    def build(self) -> Environment:
        """Create the Jinja2 environment described here."""
        return Environment(
            loader=FileSystemLoader(str(self.templates_path)),
            bytecode_cache=ExtensionAwareBytecodeCache(
                str(self.cache_dir), self.cache_file_pattern
            ),
            auto_reload=self.auto_reload,
            optimized=self.optimized,
            undefined=StrictUndefined if self.strict_variables else Undefined,
            extensions=[self.extension],
        )


def stage_template(fixtures: FixturesConfig, name: str, source: str) -> Path:
    """Write template source to <fixture root>/templates/<name>.

    Existing content is overwritten. OSError propagates unchanged.

    Args:
        fixtures: Fixture root layout.
        name: Template file name, also the Jinja2 lookup name.
        source: Raw template source.

    Returns:
        Path of the written file.
    """
    templates_root = fixtures.templates_root
    templates_root.mkdir(parents=True, exist_ok=True)

    path = templates_root / name
    path.write_text(source, encoding="utf-8", newline="")

    logger.debug(
        "Template staged",
        template=name,
        path=str(path),
        length=len(source),
    )
    return path


def resolve_cache_dir(fixtures: FixturesConfig, cache_dir: str) -> Path:
    """Resolve a scenario cache directory below the fixture root."""
    return fixtures.root / cache_dir.lstrip(os.sep)


def create_cache_dir(cache_path: Path) -> Path:
    """Create the cache directory (with parents) if it is missing.

    Raises:
        InvalidCacheDirectoryError: If the directory cannot be created.
    """
    try:
        cache_path.mkdir(mode=0o755, parents=True, exist_ok=True)
    except OSError as e:
        raise InvalidCacheDirectoryError(str(cache_path)) from e
    return cache_path


def validate_cache_dir(cache_path: Path) -> None:
    """Check the cache path is an existing, readable directory.

    Raises:
        InvalidCacheDirectoryError: If it is not.
    """
    if not cache_path.is_dir() or not os.access(cache_path, os.R_OK | os.X_OK):
        raise InvalidCacheDirectoryError(str(cache_path))


def build_environment_descriptor(
    fixtures: FixturesConfig,
    cache_path: Path,
    options: TemplateEnvironmentConfig | None = None,
) -> EnvironmentDescriptor:
    """Describe a fresh compilation environment for ``cache_path``.

    Creates the templates directory if needed and validates the cache
    directory before anything is compiled.

    Raises:
        InvalidCacheDirectoryError: If cache_path is not a readable directory.
        OSError: If the templates directory cannot be created.
    """
    if options is None:
        options = TemplateEnvironmentConfig()

    fixtures.templates_root.mkdir(parents=True, exist_ok=True)
    validate_cache_dir(cache_path)

    return EnvironmentDescriptor(
        loader_root=fixtures.root,
        search_path=fixtures.templates_dir,
        cache_dir=cache_path,
        extension=make_cache_buster_extension(),
        auto_reload=options.auto_reload,
        debug=options.debug,
        optimized=options.optimized,
        strict_variables=options.strict_variables,
        cache_file_pattern=options.cache_file_pattern,
    )


def compile_template(
    fixtures: FixturesConfig,
    name: str,
    cache_dir: str,
    options: TemplateEnvironmentConfig | None = None,
) -> Template:
    """Compile a staged template into ``cache_dir``.

    Loading the template is what parses it, compiles it and writes the
    bytecode into the cache. The template is returned but not rendered.

    Args:
        fixtures: Fixture root layout.
        name: Name of a staged template.
        cache_dir: Cache directory, relative to the fixture root.
        options: Environment options. Defaults to TemplateEnvironmentConfig().

    Returns:
        The loaded template.

    Raises:
        jinja2.TemplateNotFound: If the template was never staged.
        InvalidCacheDirectoryError: If the cache directory is unusable.
    """
    cache_path = create_cache_dir(resolve_cache_dir(fixtures, cache_dir))
    descriptor = build_environment_descriptor(fixtures, cache_path, options)
    environment = descriptor.build()

    logger.debug(
        "Template environment built",
        templates_path=str(descriptor.templates_path),
        cache_dir=str(cache_path),
        extension=descriptor.extension.identifier,
        auto_reload=descriptor.auto_reload,
        debug=descriptor.debug,
        optimized=descriptor.optimized,
        strict_variables=descriptor.strict_variables,
    )

    template = environment.get_template(name)

    logger.debug("Template compiled", template=name, cache_dir=str(cache_path))
    return template
