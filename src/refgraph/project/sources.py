"""
Source root selection and Java file discovery.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

import structlog

from refgraph.errors import ProjectSetupError

if TYPE_CHECKING:
    from refgraph.config import Config
    from refgraph.project.maven import BuildDescriptor

logger = structlog.get_logger(__name__)

DELOMBOK_DIRECTORY = Path("target") / "delombok"


@dataclass
class ProjectSources:
    """The source roots of a project and the ``.java`` files under them."""

    source_roots: list[Path]
    files: list[Path] = field(default_factory=list)

    @classmethod
    def discover(
        cls,
        source_roots: Iterable[Path],
        exclude_dirs: Iterable[str] = (),
    ) -> ProjectSources:
        """Collect every ``.java`` file below the roots, sorted and absolute."""
        roots = [Path(r).resolve() for r in source_roots]
        skip = set(exclude_dirs)
        found: set[Path] = set()

        for root in roots:
            if not root.is_dir():
                logger.warning("Source root is not a directory, skipping", root=str(root))
                continue
            for path in root.rglob("*.java"):
                relative = path.relative_to(root).parts[:-1]
                if any(part in skip for part in relative):
                    continue
                if path.is_file():
                    found.add(path)

        files = sorted(found)
        logger.info("Source files discovered", roots=[str(r) for r in roots], files=len(files))
        return cls(source_roots=roots, files=files)

    @classmethod
    def from_config(cls, config: Config, descriptor: BuildDescriptor | None = None) -> ProjectSources:
        """
        Pick the source root for a project and discover its files.

        Preference: ``target/delombok`` when present and enabled, then the
        configured source directory, then the build descriptor's, then
        ``src/main/java``.

        Raises:
            ProjectSetupError: If the project root or the chosen source
                root is not a directory.
        """
        root = config.project_root
        if not root.is_dir():
            raise ProjectSetupError(f"Project root is not a directory: {root}")

        delombok = root / DELOMBOK_DIRECTORY
        if config.source.prefer_delombok and delombok.is_dir():
            source_root = delombok
            logger.info("Using delombok output as source root", root=str(delombok))
        elif config.source.source_directory is not None:
            source_root = root / config.source.source_directory
        elif descriptor is not None:
            source_root = root / descriptor.source_directory
        else:
            from refgraph.project.maven import DEFAULT_SOURCE_DIRECTORY

            source_root = root / DEFAULT_SOURCE_DIRECTORY

        if not source_root.is_dir():
            raise ProjectSetupError(f"Source directory not found: {source_root}")

        return cls.discover([source_root], config.source.exclude_dirs)
