"""
Maven build descriptor reader.

Reads the parts of ``pom.xml`` that analysis needs: the source directory
and the dependency coordinates, with ``${property}`` placeholders
interpolated. Dependency archives are looked up in a local repository
laid out the way Maven lays out ``~/.m2/repository``.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from refgraph.errors import BuildDescriptorError

logger = structlog.get_logger(__name__)

POM_FILE = "pom.xml"
DEFAULT_SOURCE_DIRECTORY = "src/main/java"

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")
_SKIPPED_SCOPES = frozenset({"system", "import"})


@dataclass(frozen=True)
class DependencyCoordinate:
    """One ``<dependency>`` entry."""

    group_id: str
    artifact_id: str
    version: str | None
    scope: str = "compile"
    type: str = "jar"

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version or '?'}"

    def archive_path(self, local_repository: Path) -> Path:
        """Where Maven keeps this artifact's jar in a local repository."""
        return (
            local_repository.joinpath(*self.group_id.split("."))
            / self.artifact_id
            / str(self.version)
            / f"{self.artifact_id}-{self.version}.jar"
        )


@dataclass
class BuildDescriptor:
    """What analysis reads from ``pom.xml``."""

    path: Path
    group_id: str | None = None
    artifact_id: str | None = None
    version: str | None = None
    source_directory: str = DEFAULT_SOURCE_DIRECTORY
    dependencies: list[DependencyCoordinate] = field(default_factory=list)

    def archives(
        self,
        local_repository: Path,
        include_test_scope: bool = False,
    ) -> list[Path]:
        """
        Archive paths for usable dependencies.

        Paths are returned whether or not they exist; the resolution
        context skips missing ones with a warning.
        """
        paths = []
        for dep in self.dependencies:
            if dep.scope == "test" and not include_test_scope:
                continue
            if dep.version is None:
                logger.warning("Dependency without version, skipping", dependency=str(dep))
                continue
            if dep.type != "jar":
                logger.warning("Dependency is not a jar, skipping", dependency=str(dep), type=dep.type)
                continue
            if dep.scope in _SKIPPED_SCOPES:
                logger.warning("Dependency scope not resolvable, skipping", dependency=str(dep), scope=dep.scope)
                continue
            paths.append(dep.archive_path(local_repository))
        return paths


def read_build_descriptor(project_root: Path) -> BuildDescriptor:
    """
    Read ``pom.xml`` from a project root.

    Raises:
        BuildDescriptorError: If the file is absent or not well-formed XML.
    """
    path = project_root / POM_FILE
    if not path.is_file():
        raise BuildDescriptorError(f"Build descriptor not found: {path}")

    try:
        root = ET.parse(path).getroot()
    except (ET.ParseError, OSError) as e:
        raise BuildDescriptorError(f"Cannot read build descriptor {path}: {e}") from e

    ns = _namespace(root)
    properties = _properties(root, ns)

    def value(element: ET.Element | None, tag: str) -> str | None:
        if element is None:
            return None
        child = element.find(f"{ns}{tag}")
        if child is None or child.text is None:
            return None
        return _interpolate(child.text.strip(), properties)

    parent = root.find(f"{ns}parent")
    descriptor = BuildDescriptor(
        path=path,
        group_id=value(root, "groupId") or value(parent, "groupId"),
        artifact_id=value(root, "artifactId"),
        version=value(root, "version") or value(parent, "version"),
    )
    # project.* placeholders resolve against the descriptor itself
    own = {
        "groupId": descriptor.group_id,
        "artifactId": descriptor.artifact_id,
        "version": descriptor.version,
    }
    for key, own_value in own.items():
        if own_value is not None:
            properties.setdefault(f"project.{key}", own_value)
            properties.setdefault(f"pom.{key}", own_value)

    source_directory = value(root.find(f"{ns}build"), "sourceDirectory")
    if source_directory:
        descriptor.source_directory = source_directory

    dependencies = root.find(f"{ns}dependencies")
    if dependencies is not None:
        for element in dependencies.findall(f"{ns}dependency"):
            group_id = value(element, "groupId")
            artifact_id = value(element, "artifactId")
            if not group_id or not artifact_id:
                logger.warning("Dependency without coordinates, skipping", path=str(path))
                continue
            descriptor.dependencies.append(
                DependencyCoordinate(
                    group_id=group_id,
                    artifact_id=artifact_id,
                    version=_resolved_or_none(value(element, "version")),
                    scope=value(element, "scope") or "compile",
                    type=value(element, "type") or "jar",
                )
            )

    logger.debug(
        "Build descriptor read",
        path=str(path),
        source_directory=descriptor.source_directory,
        dependencies=len(descriptor.dependencies),
    )
    return descriptor


def _namespace(root: ET.Element) -> str:
    if root.tag.startswith("{"):
        return root.tag[: root.tag.index("}") + 1]
    return ""


def _properties(root: ET.Element, ns: str) -> dict[str, str]:
    properties: dict[str, str] = {}
    element = root.find(f"{ns}properties")
    if element is None:
        return properties
    for child in element:
        if not isinstance(child.tag, str):
            continue
        name = child.tag[len(ns):] if ns and child.tag.startswith(ns) else child.tag
        properties[name] = (child.text or "").strip()
    return properties


def _interpolate(text: str, properties: dict[str, str]) -> str:
    # properties may refer to each other; stop once nothing changes
    for _ in range(10):
        replaced = _PLACEHOLDER.sub(lambda m: properties.get(m.group(1), m.group(0)), text)
        if replaced == text:
            break
        text = replaced
    return text


def _resolved_or_none(version: str | None) -> str | None:
    if version is None or _PLACEHOLDER.search(version):
        return None
    return version
