"""
Plain-text reference reports.

Two reports are written per run: one for method and constructor
references, one for class and type references. Output depends only on
the extraction result, so two runs over the same project produce
identical files.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from refgraph.model import (
    Definition,
    DefinitionKind,
    Reference,
    ReferenceKind,
    ReportSection,
)

if TYPE_CHECKING:
    from refgraph.extraction.definitions import DefinitionTable

logger = structlog.get_logger(__name__)

NOT_FOUND = "Not found in project"

_TITLES = {
    ReportSection.METHOD: "Method Reference Analysis Results",
    ReportSection.TYPE: "Class Reference Analysis Results",
}

_SECTION_KINDS = {
    ReportSection.METHOD: (DefinitionKind.METHOD, DefinitionKind.CONSTRUCTOR),
    ReportSection.TYPE: (DefinitionKind.TYPE,),
}


def _heading(text: str, underline: str = "=") -> list[str]:
    return [text, underline * len(text)]


class ReportFormatter:
    """
    Formats one report section.

    Layout:
    - Title and summary counts
    - References grouped by kind, in kind declaration order
    - Project definitions, then external definitions referenced
    """

    def __init__(self, section: ReportSection) -> None:
        self.section = section

    def format(self, definitions: DefinitionTable, references: list[Reference]) -> str:
        references = [r for r in references if r.kind.section is self.section]
        project = sorted(
            (d for d in definitions if d.kind in _SECTION_KINDS[self.section]),
            key=lambda d: (d.canonical_name, d.kind.value),
        )
        external = self._external_definitions(references)

        lines: list[str] = []
        lines += _heading(_TITLES[self.section])
        lines.append("")
        lines += _heading("Summary")
        lines.append(f"Total references found: {len(references)}")
        lines.append(f"Total project definitions: {len(project)}")
        lines.append(f"External definitions referenced: {len(external)}")
        lines.append("")

        lines += _heading("Detailed Results by Type")
        lines.append("")
        for kind in ReferenceKind:
            group = [r for r in references if r.kind is kind]
            if not group:
                continue
            lines += _heading(f"{kind.value} References ({len(group)}):", "-")
            lines.append("")
            for reference in group:
                lines += self._format_reference(reference)
                lines.append("")

        lines += _heading("Definitions")
        lines.append("")
        for definition in project:
            lines += self._format_definition(definition)
            lines.append("")
        for definition in external:
            lines += self._format_definition(definition)
            lines.append("")

        return "\n".join(lines)

    @staticmethod
    def _format_reference(reference: Reference) -> list[str]:
        definition = reference.definition
        return [
            f"Type: {reference.kind.value}",
            f"Reference: {reference.target_name}",
            f"Location: {reference.location}",
            f"Definition: {definition.describe() if definition is not None else NOT_FOUND}",
        ]

    @staticmethod
    def _format_definition(definition: Definition) -> list[str]:
        if definition.is_external:
            return [
                f"{definition.kind.value}: {definition.canonical_name}",
                "Location: External Library",
                "Status: External",
            ]
        return [
            f"{definition.kind.value}: {definition.canonical_name}",
            f"Location: {definition.location}",
            f"Status: Project {definition.kind.value}",
        ]

    @staticmethod
    def _external_definitions(references: list[Reference]) -> list[Definition]:
        seen: dict[tuple[str, DefinitionKind], Definition] = {}
        for reference in references:
            definition = reference.definition
            if definition is None or not definition.is_external:
                continue
            seen.setdefault((definition.canonical_name, definition.kind), definition)
        return [seen[key] for key in sorted(seen, key=lambda k: (k[0], k[1].value))]


def write_reports(
    definitions: DefinitionTable,
    references: list[Reference],
    method_report: Path,
    type_report: Path,
) -> tuple[Path, Path]:
    """Write both reports, creating parent directories as needed."""
    for path, section in ((method_report, ReportSection.METHOD), (type_report, ReportSection.TYPE)):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(ReportFormatter(section).format(definitions, references) + "\n", encoding="utf-8")
        logger.info("Report written", path=str(path), section=section.value)
    return method_report, type_report
