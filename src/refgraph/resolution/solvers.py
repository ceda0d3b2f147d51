"""
Type solvers: the pluggable lookup backends behind the resolution context.

Each solver answers one question, "is there a type with this qualified
name, and what does it declare?". ``CombinedTypeSolver`` chains them in
priority order; the first solver that knows a name shadows the rest.
"""

from __future__ import annotations

import threading
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Protocol, runtime_checkable

import structlog

from refgraph.errors import ClassFileError, ResolutionFailure
from refgraph.model import OriginKind
from refgraph.resolution.classfile import (
    ClassFile,
    binary_to_qualified,
    parse_field_descriptor,
    parse_method_descriptor,
    read_class_file,
)
from refgraph.resolution.declarations import MethodDeclaration, TypeDeclaration, index_unit
from refgraph.resolution.platform import (
    OBJECT_MEMBERS,
    PLATFORM_KINDS,
    PLATFORM_MEMBERS,
    PlatformMember,
    platform_type_names,
)

if TYPE_CHECKING:
    from refgraph.parsing.parser import SourceUnit

logger = structlog.get_logger(__name__)

_IGNORED_CLASS_FILES = ("package-info", "module-info")


@runtime_checkable
class TypeSolver(Protocol):
    """Lookup backend for qualified type names."""

    name: str

    def try_solve_type(self, qualified_name: str) -> TypeDeclaration | None:
        """Return the declaration for a qualified name, or None if unknown."""
        ...


class PlatformTypeSolver:
    """Resolves names from the bundled Java platform catalog."""

    name = "platform"

    def __init__(self) -> None:
        self._names = platform_type_names()
        self._declarations: dict[str, TypeDeclaration] = {}
        self._lock = threading.Lock()

    def __contains__(self, qualified_name: str) -> bool:
        return qualified_name in self._names

    def try_solve_type(self, qualified_name: str) -> TypeDeclaration | None:
        if qualified_name not in self._names:
            return None
        with self._lock:
            decl = self._declarations.get(qualified_name)
            if decl is None:
                decl = self._declare(qualified_name)
                self._declarations[qualified_name] = decl
        return decl

    def _declare(self, qualified_name: str) -> TypeDeclaration:
        if qualified_name == "java.lang.Object":
            return self._declare_object()

        catalogued = PLATFORM_MEMBERS.get(qualified_name)
        if catalogued is None:
            return TypeDeclaration(
                qualified_name=qualified_name,
                kind=PLATFORM_KINDS.get(qualified_name, "class"),
                origin=OriginKind.EXTERNAL,
                members_known=False,
            )

        decl = TypeDeclaration(
            qualified_name=qualified_name,
            kind=catalogued.kind,
            origin=OriginKind.EXTERNAL,
            supertypes=catalogued.supertypes,
            superclass=catalogued.superclass,
            type_parameters=catalogued.type_parameters,
            fields=dict(catalogued.fields),
            member_types=dict(catalogued.member_types),
            partial_members=True,
        )
        for member in catalogued.methods:
            decl.methods.append(_platform_method(qualified_name, member, decl))
        for member in catalogued.constructors:
            decl.constructors.append(_platform_method(qualified_name, member, decl, is_constructor=True))
        return decl

    def _declare_object(self) -> TypeDeclaration:
        qualified_name = "java.lang.Object"
        decl = TypeDeclaration(qualified_name=qualified_name, origin=OriginKind.EXTERNAL)
        for name, params, return_type, is_static in OBJECT_MEMBERS:
            decl.methods.append(
                MethodDeclaration(
                    owner=qualified_name,
                    name=name,
                    parameter_types=params,
                    return_type=return_type,
                    is_static=is_static,
                    origin=OriginKind.EXTERNAL,
                    declaring_type=decl,
                )
            )
        decl.constructors.append(
            MethodDeclaration(
                owner=qualified_name,
                name="Object",
                is_constructor=True,
                origin=OriginKind.EXTERNAL,
                declaring_type=decl,
            )
        )
        return decl


def _platform_method(
    owner: str,
    member: PlatformMember,
    decl: TypeDeclaration,
    is_constructor: bool = False,
) -> MethodDeclaration:
    return MethodDeclaration(
        owner=owner,
        name=member.name,
        parameter_types=member.parameter_types,
        return_type=member.return_type,
        is_static=member.is_static,
        is_constructor=is_constructor,
        is_varargs=member.is_varargs,
        origin=OriginKind.EXTERNAL,
        type_parameters=member.type_parameters,
        declaring_type=decl,
    )


class SourceTypeSolver:
    """Resolves names declared in the project's own source units."""

    name = "source"

    def __init__(self, declarations: Iterable[TypeDeclaration] = ()) -> None:
        self._types: dict[str, TypeDeclaration] = {}
        for decl in declarations:
            self.add(decl)

    @classmethod
    def from_units(cls, units: Iterable[SourceUnit]) -> SourceTypeSolver:
        solver = cls()
        for unit in units:
            for decl in index_unit(unit):
                solver.add(decl)
        return solver

    def add(self, decl: TypeDeclaration) -> None:
        existing = self._types.get(decl.qualified_name)
        if existing is not None:
            logger.debug(
                "Duplicate type declaration ignored",
                type=decl.qualified_name,
                kept=str(existing.location),
                ignored=str(decl.location),
            )
            return
        self._types[decl.qualified_name] = decl

    @property
    def declarations(self) -> list[TypeDeclaration]:
        return list(self._types.values())

    def __len__(self) -> int:
        return len(self._types)

    def try_solve_type(self, qualified_name: str) -> TypeDeclaration | None:
        return self._types.get(qualified_name)


class ArchiveTypeSolver:
    """
    Resolves names from one dependency archive (a JAR).

    Entries are listed up front; class files are decoded on first lookup.
    A class file that cannot be decoded is a resolution failure for that
    name only.
    """

    name = "archive"

    def __init__(self, archive_path: Path) -> None:
        self.archive_path = archive_path
        try:
            self._zip = zipfile.ZipFile(archive_path)
        except (OSError, zipfile.BadZipFile) as e:
            raise ClassFileError(f"Cannot open archive {archive_path}: {e}") from e

        self._entries: dict[str, str] = {}
        self._member_types: dict[str, dict[str, str]] = {}
        self._declarations: dict[str, TypeDeclaration] = {}
        self._broken: set[str] = set()
        self._lock = threading.Lock()
        self._index()

    def __len__(self) -> int:
        return len(self._entries)

    def close(self) -> None:
        self._zip.close()

    def _index(self) -> None:
        for entry in self._zip.namelist():
            if not entry.endswith(".class"):
                continue
            stem = entry[: -len(".class")]
            base = stem.rsplit("/", 1)[-1]
            if base in _IGNORED_CLASS_FILES:
                continue
            parts = base.split("$")
            # anonymous and local classes: Outer$1, Outer$1Local
            if any(not part or part[0].isdigit() for part in parts[1:]):
                continue
            qualified = binary_to_qualified(stem)
            self._entries[qualified] = entry
            if len(parts) > 1:
                outer = binary_to_qualified(stem.rsplit("$", 1)[0])
                self._member_types.setdefault(outer, {})[parts[-1]] = qualified

    def try_solve_type(self, qualified_name: str) -> TypeDeclaration | None:
        entry = self._entries.get(qualified_name)
        if entry is None:
            return None

        with self._lock:
            if qualified_name in self._broken:
                raise ResolutionFailure(f"Unreadable class file for {qualified_name}")
            decl = self._declarations.get(qualified_name)
            if decl is not None:
                return decl
            try:
                class_file = read_class_file(self._zip.read(entry))
            except (ClassFileError, OSError, zipfile.BadZipFile) as e:
                self._broken.add(qualified_name)
                logger.warning(
                    "Cannot read class file",
                    archive=str(self.archive_path),
                    entry=entry,
                    error=str(e),
                )
                raise ResolutionFailure(f"Unreadable class file for {qualified_name}") from e
            try:
                decl = self._declare(qualified_name, class_file)
            except ClassFileError as e:
                self._broken.add(qualified_name)
                raise ResolutionFailure(f"Malformed descriptor in {qualified_name}") from e
            self._declarations[qualified_name] = decl
        return decl

    def _declare(self, qualified_name: str, class_file: ClassFile) -> TypeDeclaration:
        supertypes = ([class_file.super_name] if class_file.super_name else []) + list(
            class_file.interfaces
        )
        decl = TypeDeclaration(
            qualified_name=qualified_name,
            kind=class_file.kind,
            origin=OriginKind.EXTERNAL,
            supertypes=tuple(supertypes),
            superclass=class_file.super_name if class_file.kind != "interface" else None,
            member_types=dict(self._member_types.get(qualified_name, {})),
        )
        for info in class_file.fields:
            if info.is_synthetic:
                continue
            decl.fields[info.name] = parse_field_descriptor(info.descriptor)[0]

        for info in class_file.methods:
            if info.is_synthetic or info.name == "<clinit>":
                continue
            params, return_type = parse_method_descriptor(info.descriptor)
            is_constructor = info.name == "<init>"
            method = MethodDeclaration(
                owner=qualified_name,
                name=decl.simple_name if is_constructor else info.name,
                parameter_types=params,
                return_type=None if is_constructor else return_type,
                is_static=info.is_static,
                is_constructor=is_constructor,
                is_varargs=info.is_varargs,
                origin=OriginKind.EXTERNAL,
                declaring_type=decl,
            )
            if is_constructor:
                decl.constructors.append(method)
            else:
                decl.methods.append(method)
        return decl


class CombinedTypeSolver:
    """
    Priority-ordered chain of type solvers.

    Hits and misses are cached. Failures are not, so an unreadable class
    file fails every lookup of that name the same way.
    """

    name = "combined"

    def __init__(self, *solvers: TypeSolver) -> None:
        self._solvers: list[TypeSolver] = list(solvers)
        self._cache: dict[str, TypeDeclaration | None] = {}
        self._lock = threading.Lock()

    @property
    def solvers(self) -> list[TypeSolver]:
        return list(self._solvers)

    def add(self, solver: TypeSolver) -> None:
        self._solvers.append(solver)
        with self._lock:
            self._cache.clear()

    def close(self) -> None:
        """Release archive handles held by chained solvers."""
        for solver in self._solvers:
            close = getattr(solver, "close", None)
            if close is not None:
                close()

    def try_solve_type(self, qualified_name: str) -> TypeDeclaration | None:
        with self._lock:
            if qualified_name in self._cache:
                return self._cache[qualified_name]

        found = None
        for solver in self._solvers:
            found = solver.try_solve_type(qualified_name)
            if found is not None:
                break

        with self._lock:
            self._cache.setdefault(qualified_name, found)
            return self._cache[qualified_name]
