"""
Tests for type solvers.
"""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from refgraph.errors import ClassFileError, ResolutionFailure
from refgraph.model import OriginKind
from refgraph.resolution.classfile import ACC_STATIC, ACC_SYNTHETIC
from refgraph.resolution.declarations import TypeDeclaration
from refgraph.resolution.platform import PLATFORM_MEMBERS, parse_signature, platform_type_names
from refgraph.resolution.solvers import (
    ArchiveTypeSolver,
    CombinedTypeSolver,
    PlatformTypeSolver,
    SourceTypeSolver,
    TypeSolver,
)
from tests.conftest import build_class_file, build_jar


@pytest.fixture
def widget_jar(tmp_path: Path) -> Path:
    return build_jar(
        tmp_path / "widgets-1.0.jar",
        {
            "com/acme/Widget": build_class_file(
                "com/acme/Widget",
                interfaces=("java/lang/Runnable",),
                fields=((0x0001, "size", "I"), (ACC_SYNTHETIC, "this$0", "Ljava/lang/Object;")),
                methods=(
                    (0x0001, "<init>", "(Ljava/lang/String;)V"),
                    (0x0001, "run", "()V"),
                    (0x0001 | ACC_STATIC, "of", "(Ljava/lang/String;)Lcom/acme/Widget;"),
                    (ACC_SYNTHETIC, "lambda$run$0", "()V"),
                    (ACC_STATIC, "<clinit>", "()V"),
                ),
            ),
            "com/acme/Widget$Part": build_class_file("com/acme/Widget$Part"),
            "com/acme/Widget$1": build_class_file("com/acme/Widget$1"),
            "com/acme/package-info": build_class_file("com/acme/package-info"),
            "com/acme/Broken": b"not a class file",
        },
    )


class TestPlatformTypeSolver:
    """Tests for the platform catalog."""

    def test_uncatalogued_types_are_opaque(self):
        """Test that a platform type without member data is opaque and cached."""
        solver = PlatformTypeSolver()
        decl = solver.try_solve_type("java.util.Calendar")
        assert decl is not None
        assert decl.origin is OriginKind.EXTERNAL
        assert not decl.members_known
        assert solver.try_solve_type("java.util.Calendar") is decl

    def test_catalogued_members(self):
        """Test that core types carry qualified member signatures."""
        decl = PlatformTypeSolver().try_solve_type("java.util.List")
        assert decl.kind == "interface"
        assert decl.members_known
        assert decl.partial_members
        assert decl.type_parameters == ("E",)
        assert decl.supertypes == ("java.util.Collection<E>",)
        (get,) = decl.methods_named("get")
        assert get.parameter_types == ("int",)
        assert get.return_type == "E"
        assert get.declaring_type is decl
        (of,) = decl.methods_named("of")
        assert of.is_static
        assert of.is_varargs
        assert of.type_parameters == ("T",)

    def test_catalogued_fields_and_constructors(self):
        """Test that fields and constructors are qualified against the catalog."""
        solver = PlatformTypeSolver()
        system = solver.try_solve_type("java.lang.System")
        assert system.fields["out"] == "java.io.PrintStream"
        array_list = solver.try_solve_type("java.util.ArrayList")
        assert [c.parameter_types for c in array_list.constructors] == [
            (),
            ("int",),
            ("java.util.Collection<? extends E>",),
        ]
        assert all(c.name == "ArrayList" for c in array_list.constructors)

    def test_nested_catalog_type(self):
        """Test that Map.Entry is reachable both directly and as a member type."""
        solver = PlatformTypeSolver()
        assert "java.util.Map.Entry" in solver
        assert solver.try_solve_type("java.util.Map").member_types == {"Entry": "java.util.Map.Entry"}
        entry = solver.try_solve_type("java.util.Map.Entry")
        assert entry.methods_named("getKey")[0].return_type == "K"

    def test_object_members_known(self):
        """Test that java.lang.Object is fully described."""
        decl = PlatformTypeSolver().try_solve_type("java.lang.Object")
        assert decl.members_known
        assert not decl.partial_members
        assert decl.methods_named("toString")
        assert decl.methods_named("equals")[0].parameter_types == ("java.lang.Object",)
        assert len(decl.constructors) == 1

    def test_unknown_name(self):
        """Test that an unknown name is not solved."""
        solver = PlatformTypeSolver()
        assert solver.try_solve_type("com.example.Nope") is None
        assert "java.lang.String" in solver

    def test_annotation_kind(self):
        """Test that annotation types report the annotation kind."""
        decl = PlatformTypeSolver().try_solve_type("java.lang.Override")
        assert decl.kind == "annotation"

    def test_protocol(self):
        """Test that the platform solver satisfies the solver protocol."""
        assert isinstance(PlatformTypeSolver(), TypeSolver)
        assert isinstance(SourceTypeSolver(), TypeSolver)


class TestPlatformSignatures:
    """Tests for catalog signature parsing."""

    def test_generic_static_varargs(self):
        """Test that modifiers, type variables and varargs are read from a signature."""
        member = parse_signature("static <T> List<T> asList(T...)")
        assert member.name == "asList"
        assert member.is_static
        assert member.is_varargs
        assert member.type_parameters == ("T",)
        assert member.parameter_types == ("T...",)
        assert member.return_type == "java.util.List<T>"

    def test_nested_arguments_split_at_top_level(self):
        """Test that commas inside type arguments do not split parameters."""
        member = parse_signature("V merge(K,V,BiFunction<? super V,? super V,? extends V>)")
        assert member.parameter_types == (
            "K",
            "V",
            "java.util.function.BiFunction<? super V,? super V,? extends V>",
        )
        assert not member.is_static

    def test_nested_type_keeps_its_owner(self):
        """Test that Map.Entry qualifies through its outer type only."""
        member = parse_signature("Set<Map.Entry<K,V>> entrySet()")
        assert member.return_type == "java.util.Set<java.util.Map.Entry<K,V>>"

    def test_constructor(self):
        """Test that constructor signatures take the simple name of their type."""
        member = parse_signature("(String,Throwable)", constructor_of="java.lang.RuntimeException")
        assert member.name == "RuntimeException"
        assert member.parameter_types == ("java.lang.String", "java.lang.Throwable")
        assert member.return_type is None

    def test_malformed(self):
        """Test that a signature without a parameter list is rejected."""
        with pytest.raises(ValueError):
            parse_signature("int length")

    def test_catalog_types_are_named(self):
        """Test that every catalogued type is a known platform name."""
        assert set(PLATFORM_MEMBERS) <= platform_type_names()


class TestSourceTypeSolver:
    """Tests for the in-project solver."""

    def test_from_units(self, units):
        """Test that a source solver is built from parsed units."""
        parsed = units(
            {
                "A.java": "package p; class A { class B {} }",
                "C.java": "package q; interface C {}",
            }
        )
        solver = SourceTypeSolver.from_units(parsed)
        assert len(solver) == 3
        assert solver.try_solve_type("p.A.B").qualified_name == "p.A.B"
        assert solver.try_solve_type("q.C").kind == "interface"
        assert solver.try_solve_type("p.B") is None

    def test_first_duplicate_wins(self):
        """Test that the first duplicate declaration wins."""
        first = TypeDeclaration("p.A")
        second = TypeDeclaration("p.A", kind="interface")
        solver = SourceTypeSolver([first, second])
        assert solver.try_solve_type("p.A") is first


class TestArchiveTypeSolver:
    """Tests for the archive-backed solver."""

    def test_index_skips_anonymous_and_package_info(self, widget_jar):
        """Test that anonymous classes and package-info are not indexed."""
        solver = ArchiveTypeSolver(widget_jar)
        try:
            assert len(solver) == 3
            assert solver.try_solve_type("com.acme.Widget.1") is None
            assert solver.try_solve_type("com.acme.package-info") is None
        finally:
            solver.close()

    def test_declaration(self, widget_jar):
        """Test that a class file in an archive becomes a declaration."""
        solver = ArchiveTypeSolver(widget_jar)
        try:
            decl = solver.try_solve_type("com.acme.Widget")
        finally:
            solver.close()
        assert decl.origin is OriginKind.EXTERNAL
        assert decl.supertypes == ("java.lang.Object", "java.lang.Runnable")
        assert decl.superclass == "java.lang.Object"
        assert decl.fields == {"size": "int"}
        assert [m.name for m in decl.methods] == ["run", "of"]
        assert decl.methods_named("of")[0].is_static
        assert decl.methods_named("of")[0].return_type == "com.acme.Widget"
        (ctor,) = decl.constructors
        assert ctor.name == "Widget"
        assert ctor.parameter_types == ("java.lang.String",)
        assert decl.member_types == {"Part": "com.acme.Widget.Part"}

    def test_broken_class_file_is_resolution_failure(self, widget_jar):
        """Test that a broken class file is a resolution failure."""
        solver = ArchiveTypeSolver(widget_jar)
        try:
            with pytest.raises(ResolutionFailure):
                solver.try_solve_type("com.acme.Broken")
            # still failing the same way on the second lookup
            with pytest.raises(ResolutionFailure):
                solver.try_solve_type("com.acme.Broken")
        finally:
            solver.close()

    def test_unreadable_archive(self, tmp_path: Path):
        """Test that an unreadable archive raises ClassFileError."""
        bad = tmp_path / "bad.jar"
        bad.write_bytes(b"not a zip")
        with pytest.raises(ClassFileError):
            ArchiveTypeSolver(bad)

    def test_missing_archive(self, tmp_path: Path):
        """Test that a missing archive raises ClassFileError."""
        with pytest.raises(ClassFileError):
            ArchiveTypeSolver(tmp_path / "absent.jar")


class TestCombinedTypeSolver:
    """Tests for solver chaining."""

    def test_priority_order(self):
        """Test that solvers are consulted in priority order."""
        shadowing = SourceTypeSolver([TypeDeclaration("java.lang.String")])
        combined = CombinedTypeSolver(PlatformTypeSolver(), shadowing)
        assert combined.try_solve_type("java.lang.String").origin is OriginKind.EXTERNAL

        reversed_order = CombinedTypeSolver(shadowing, PlatformTypeSolver())
        assert reversed_order.try_solve_type("java.lang.String").origin is OriginKind.PROJECT

    def test_misses_cached_until_solver_added(self):
        """Test that misses are cached until a solver is added."""
        combined = CombinedTypeSolver(PlatformTypeSolver())
        assert combined.try_solve_type("p.A") is None
        combined.add(SourceTypeSolver([TypeDeclaration("p.A")]))
        assert combined.try_solve_type("p.A") is not None
        assert len(combined.solvers) == 2

    def test_archive_in_chain(self, widget_jar):
        """Test that an archive solver works inside the chain."""
        archive = ArchiveTypeSolver(widget_jar)
        try:
            combined = CombinedTypeSolver(PlatformTypeSolver(), SourceTypeSolver(), archive)
            assert combined.try_solve_type("com.acme.Widget.Part") is not None
        finally:
            archive.close()

    def test_zip_without_classes(self, tmp_path: Path):
        """Test that a zip without classes solves nothing."""
        path = tmp_path / "empty.jar"
        with zipfile.ZipFile(path, "w") as jar:
            jar.writestr("README", "nothing")
        solver = ArchiveTypeSolver(path)
        try:
            assert len(solver) == 0
        finally:
            solver.close()
