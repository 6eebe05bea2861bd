"""Orchestration of one generation run."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from .config import Settings, parse_duration
from .database.base import CatalogReader
from .database.factory import create_reader, infer_database_kind
from .errors import UnsupportedTypeWarning
from .output import write_artifacts
from .rust.emitter import GeneratedStruct
from .rust.generator import GeneratorOptions, RustCodeGenerator
from .rust.profiles import get_profile

logger = logging.getLogger(__name__)

ReaderFactory = Callable[..., CatalogReader]


@dataclass
class GenerateOptions:
    """Options for one run; CLI flags override settings."""
    database_url: Optional[str] = None
    output_dir: str = "./output"
    singular: bool = False
    framework: str = "none"
    exclude_tables: List[str] = field(default_factory=list)
    timeout: Union[str, float] = "3s"
    schemas: List[str] = field(default_factory=lambda: ["public"])
    include_views: bool = False

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "GenerateOptions":
        """Build options from settings, with non-empty overrides taking precedence."""
        values = {
            "database_url": settings.database_url,
            "output_dir": settings.output_dir,
            "singular": settings.singular,
            "framework": settings.framework,
            "exclude_tables": list(settings.exclude_tables),
            "timeout": settings.timeout,
            "schemas": list(settings.schemas),
            "include_views": settings.include_views,
        }
        for key, value in overrides.items():
            if value is None or value == []:
                continue
            values[key] = value
        return cls(**values)


@dataclass(frozen=True)
class GenerationReport:
    """Summary of a completed run."""
    output_dir: Path
    files: Tuple[Path, ...]
    structs: Tuple[GeneratedStruct, ...]
    warnings: Tuple[UnsupportedTypeWarning, ...] = ()
    server_version: Optional[str] = None

    @property
    def table_count(self) -> int:
        return len(self.structs)


def run(
    options: GenerateOptions,
    reader_factory: Optional[ReaderFactory] = None,
    progress: Optional[Callable[[str], None]] = None,
) -> GenerationReport:
    """Capture the catalog, generate code and publish it.

    Args:
        options: Run options
        reader_factory: Builds the catalog reader (default: inferred from the URL)
        progress: Called with a short description as each stage starts

    Returns:
        GenerationReport

    Raises:
        AutostructError: Any fatal error; nothing is written in that case
    """
    def stage(description: str):
        logger.debug(description)
        if progress:
            progress(description)

    # Validate everything before touching the database
    infer_database_kind(options.database_url)
    get_profile(options.framework)
    timeout = options.timeout if isinstance(options.timeout, (int, float)) else parse_duration(options.timeout)

    stage("Reading catalog...")
    reader = (reader_factory or create_reader)(
        options.database_url,
        schemas=options.schemas,
        include_views=options.include_views,
        timeout=timeout,
    )
    with reader:
        snapshot = reader.read_catalog()
    logger.info("Captured %d tables and %d user-defined types", len(snapshot.tables), len(snapshot.types))

    stage("Generating code...")
    generator = RustCodeGenerator(snapshot, GeneratorOptions(
        singular=options.singular,
        framework=options.framework,
        exclude_tables=tuple(options.exclude_tables),
    ))
    artifacts = generator.generate_all()
    for warning in artifacts.warnings:
        logger.debug("Unsupported type: %s", warning.message)

    stage(f"Writing {len(artifacts.files)} files...")
    written = write_artifacts(artifacts.files, options.output_dir)

    return GenerationReport(
        output_dir=Path(options.output_dir).resolve(),
        files=tuple(written),
        structs=artifacts.structs,
        warnings=artifacts.warnings,
        server_version=snapshot.server_version,
    )

