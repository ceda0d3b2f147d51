"""
Tests for the resolution context: scoping, typing and member lookup.
"""

from __future__ import annotations

from refgraph.model import OriginKind
from refgraph.parsing import syntax
from refgraph.resolution.context import ResolutionContext, Unresolved, split_described
from tests.conftest import find_node


def resolve_call(context_for, files: dict[str, str], path: str, call_text: str):
    context, units = context_for(files)
    unit = next(u for u in units if u.file_path == path)
    node = find_node(unit, "method_invocation", call_text)
    return context.resolve_invocation(node, unit)


def find_all(unit, node_type: str) -> list:
    return [n for n in syntax.walk(unit.root) if n.type == node_type]


class TestSplitDescribed:
    def test_split(self):
        """Test that described types split into base and arguments."""
        assert split_described("Map<K,List<V>>[]") == ("Map", ["K", "List<V>"], 1)
        assert split_described("String") == ("String", [], 0)
        assert split_described("Object...") == ("Object", [], 1)


class TestTypeNames:
    """Tests for scoped type name resolution."""

    FILES = {
        "app/Main.java": """
            package app;

            import java.util.List;
            import lib.*;
            import com.vendor.Gadget;

            class Main<T> {
                static class Nested {}
                List<T> items;
                Helper helper;
                Widget widget;
                Gadget gadget;
                Nested nested;
                String name;
                Nested.Deep deep;
                int count;
                Missing missing;
            }
            """,
        "app/Helper.java": "package app; class Helper {}",
        "lib/Widget.java": "package lib; public class Widget {}",
    }

    def resolve(self, context_for, field_name: str):
        context, units = context_for(self.FILES)
        unit = units[0]
        for node in find_all(unit, "field_declaration"):
            declarator = node.child_by_field_name("declarator")
            if declarator.child_by_field_name("name").text.decode() == field_name:
                return context.resolve_type_node(node.child_by_field_name("type"), unit)
        raise LookupError(field_name)

    def test_single_type_import(self, context_for):
        """Test that a single-type import resolves its simple name."""
        resolution = self.resolve(context_for, "items")
        assert resolution.qualified_name == "java.util.List"
        assert resolution.declaration is not None

    def test_same_package(self, context_for):
        """Test that types in the same package resolve without imports."""
        resolution = self.resolve(context_for, "helper")
        assert resolution.qualified_name == "app.Helper"
        assert resolution.is_project

    def test_on_demand_import(self, context_for):
        """Test that an on-demand import resolves known types."""
        assert self.resolve(context_for, "widget").qualified_name == "lib.Widget"

    def test_unknown_import_keeps_imported_name(self, context_for):
        """Test that an unknown import keeps the imported name."""
        resolution = self.resolve(context_for, "gadget")
        assert resolution.qualified_name == "com.vendor.Gadget"
        assert resolution.declaration is None
        assert not resolution.assumed

    def test_member_type(self, context_for):
        """Test that a member type resolves through its enclosing type."""
        assert self.resolve(context_for, "nested").qualified_name == "app.Main.Nested"

    def test_implicit_java_lang(self, context_for):
        """Test that java.lang types resolve implicitly."""
        assert self.resolve(context_for, "name").qualified_name == "java.lang.String"

    def test_unknown_simple_name_assumed_java_lang(self, context_for):
        """Test that an unknown simple name is assumed to be in java.lang."""
        resolution = self.resolve(context_for, "missing")
        assert resolution.qualified_name == "java.lang.Missing"
        assert resolution.assumed

    def test_qualified_member_chain(self, context_for):
        """Test that a qualified member chain resolves."""
        resolution = self.resolve(context_for, "deep")
        assert resolution.qualified_name == "app.Main.Nested.Deep"
        assert resolution.declaration is None

    def test_primitive_is_not_a_type_reference(self, context_for):
        """Test that a primitive is not a type reference."""
        assert self.resolve(context_for, "count") is None

    def test_type_variable_is_not_a_type_reference(self, context_for):
        """Test that a type variable is not a type reference."""
        context, units = context_for(self.FILES)
        node = find_node(units[0], "type_identifier", "T")
        assert context.resolve_type_name("T", node, units[0]) is None


class TestInvocations:
    """Tests for method invocation resolution."""

    def test_unqualified_call_in_enclosing_type(self, context_for):
        """Test that an unqualified call finds a method of the enclosing type."""
        method = resolve_call(
            context_for,
            {
                "A.java": """
                    class A {
                        void helper(Object o) {}
                        void m() { helper("x"); }
                    }
                    """
            },
            "A.java",
            'helper("x")',
        )
        assert method.owner == "A"
        assert method.origin is OriginKind.PROJECT
        assert not method.is_static

    def test_call_on_field_of_other_project_type(self, context_for):
        """Test that a call on a field of another project type resolves."""
        method = resolve_call(
            context_for,
            {
                "p/A.java": """
                    package p;
                    class A {
                        B b;
                        void m() { b.run(1); }
                    }
                    """,
                "p/B.java": """
                    package p;
                    class B {
                        void run(int times) {}
                    }
                    """,
            },
            "p/A.java",
            "b.run(1)",
        )
        assert method.qualified_name == "p.B.run"
        assert method.parameter_types == ("int",)

    def test_local_variable_and_inherited_method(self, context_for):
        """Test that calls on locals reach inherited methods."""
        method = resolve_call(
            context_for,
            {
                "A.java": """
                    class Base { void shared() {} }
                    class Child extends Base {}
                    class A {
                        void m() {
                            Child c = new Child();
                            c.shared();
                        }
                    }
                    """
            },
            "A.java",
            "c.shared()",
        )
        assert method.owner == "Base"

    def test_var_and_generic_substitution(self, context_for):
        """Test that var declarations and generic arguments are substituted."""
        method = resolve_call(
            context_for,
            {
                "A.java": """
                    class Item { void use() {} }
                    class Box<T> { T get() { return null; } }
                    class A {
                        void m() {
                            var box = new Box<Item>();
                            box.get().use();
                        }
                    }
                    """
            },
            "A.java",
            "box.get().use()",
        )
        assert method.qualified_name == "Item.use"

    def test_overload_selection_by_argument_type(self, context_for):
        """Test that overloads are selected by argument type."""
        method = resolve_call(
            context_for,
            {
                "A.java": """
                    class A {
                        void f(int value) {}
                        void f(String value) {}
                        void m() { f("text"); }
                    }
                    """
            },
            "A.java",
            'f("text")',
        )
        assert method.parameter_types == ("String",)

    def test_static_call_on_project_type(self, context_for):
        """Test that a static call on a project type resolves as static."""
        method = resolve_call(
            context_for,
            {
                "A.java": """
                    class Util { static int twice(int x) { return 2 * x; } }
                    class A { int m() { return Util.twice(2); } }
                    """
            },
            "A.java",
            "Util.twice(2)",
        )
        assert method.is_static
        assert method.owner == "Util"

    def test_unlisted_platform_overload_synthesized(self, context_for):
        """Test that an overload missing from a catalogued type is synthesised from the call site."""
        method = resolve_call(
            context_for,
            {"A.java": 'class A { int m() { return "abc".indexOf("b", 1); } }'},
            "A.java",
            '"abc".indexOf("b", 1)',
        )
        assert method.owner == "java.lang.String"
        assert method.parameter_types == ("java.lang.String", "int")
        assert method.origin is OriginKind.EXTERNAL
        assert method.is_implicit
        assert not method.is_static

    def test_catalogued_platform_member(self, context_for):
        """Test that a listed platform member resolves to its catalog declaration."""
        method = resolve_call(
            context_for,
            {"A.java": 'class A { String m() { return "abc".substring(1); } }'},
            "A.java",
            '"abc".substring(1)',
        )
        assert method.owner == "java.lang.String"
        assert method.parameter_types == ("int",)
        assert method.return_type == "java.lang.String"
        assert not method.is_implicit

    def test_type_arguments_follow_platform_supertypes(self, context_for):
        """Test that ArrayList<String> reaches Iterable's iterator() with String elements."""
        method = resolve_call(
            context_for,
            {
                "A.java": """
                    import java.util.ArrayList;
                    class A {
                        String m(ArrayList<String> xs) { return xs.iterator().next().trim(); }
                    }
                    """
            },
            "A.java",
            "xs.iterator().next().trim()",
        )
        assert method.owner == "java.lang.String"
        assert method.name == "trim"

    def test_platform_field_access_chain(self, context_for):
        """Test that System.out types as PrintStream and picks the matching overload."""
        method = resolve_call(
            context_for,
            {"A.java": "class A { void m(int n) { System.out.println(n); } }"},
            "A.java",
            "System.out.println(n)",
        )
        assert method.owner == "java.io.PrintStream"
        assert method.parameter_types == ("int",)

    def test_static_on_demand_import_of_catalogued_type(self, context_for):
        """Test that static imports search catalogued members, then synthesise on the type."""
        files = {
            "A.java": """
                import static java.util.Arrays.*;
                class A {
                    Object m(int[] xs) { sort(xs); return asList("a", "b"); }
                    int n(int[] xs) { return binarySearch(xs, 1); }
                }
                """
        }
        listed = resolve_call(context_for, files, "A.java", 'asList("a", "b")')
        assert listed.owner == "java.util.Arrays"
        assert listed.is_static
        assert not listed.is_implicit
        unlisted = resolve_call(context_for, files, "A.java", "binarySearch(xs, 1)")
        assert unlisted.owner == "java.util.Arrays"
        assert unlisted.is_static
        assert unlisted.is_implicit

    def test_static_platform_call(self, context_for):
        """Test that a static call on a platform type resolves."""
        method = resolve_call(
            context_for,
            {"A.java": "class A { int m() { return Math.max(1, 2); } }"},
            "A.java",
            "Math.max(1, 2)",
        )
        assert method.owner == "java.lang.Math"
        assert method.is_static

    def test_object_method_found_on_project_type(self, context_for):
        """Test that Object methods are found on project types."""
        method = resolve_call(
            context_for,
            {"A.java": "class A { String m(A other) { return other.toString(); } }"},
            "A.java",
            "other.toString()",
        )
        assert method.owner == "java.lang.Object"
        assert method.origin is OriginKind.EXTERNAL

    def test_static_import(self, context_for):
        """Test that a statically imported method resolves."""
        method = resolve_call(
            context_for,
            {
                "p/A.java": """
                    package p;
                    import static p.Util.check;
                    class A { void m() { check(true); } }
                    """,
                "p/Util.java": """
                    package p;
                    class Util { static void check(boolean b) {} }
                    """,
            },
            "p/A.java",
            "check(true)",
        )
        assert method.qualified_name == "p.Util.check"
        assert method.is_static

    def test_unknown_receiver_is_unresolved(self, context_for):
        """Test that a call on an unknown receiver is unresolved."""
        result = resolve_call(
            context_for,
            {"A.java": "class A { void m() { mystery.go(); } }"},
            "A.java",
            "mystery.go()",
        )
        assert isinstance(result, Unresolved)

    def test_lambda_parameter_shadows_field(self, context_for):
        """Test that a lambda parameter shadows a field of the same name."""
        result = resolve_call(
            context_for,
            {
                "A.java": """
                    import java.util.function.Consumer;
                    class A {
                        A x;
                        void run() {}
                        Consumer<Object> c = x -> x.run();
                    }
                    """
            },
            "A.java",
            "x.run()",
        )
        # the inferred lambda parameter has no known type
        assert isinstance(result, Unresolved)

    def test_call_inside_anonymous_class(self, context_for):
        """Test that calls inside an anonymous class resolve."""
        method = resolve_call(
            context_for,
            {
                "A.java": """
                    class A {
                        Runnable r = new Runnable() {
                            void tick() {}
                            public void run() { tick(); }
                        };
                    }
                    """
            },
            "A.java",
            "tick()",
        )
        assert method.name == "tick"
        assert method.owner == "java.lang.Runnable"
        assert method.origin is OriginKind.PROJECT


class TestConstructors:
    """Tests for creation and explicit constructor resolution."""

    def test_object_creation_picks_constructor(self, context_for):
        """Test that object creation picks the matching constructor."""
        context, units = context_for(
            {
                "A.java": """
                    class Point {
                        Point() {}
                        Point(int x, int y) {}
                    }
                    class A { Object m() { return new Point(1, 2); } }
                    """
            }
        )
        node = find_node(units[0], "object_creation_expression")
        ctor = context.resolve_object_creation(node, units[0])
        assert ctor.is_constructor
        assert ctor.parameter_types == ("int", "int")

    def test_platform_constructor_selected(self, context_for):
        """Test that a catalogued constructor is chosen by argument types."""
        context, units = context_for(
            {"A.java": "import java.util.ArrayList; class A { Object m() { return new ArrayList<String>(10); } }"}
        )
        node = find_node(units[0], "object_creation_expression")
        ctor = context.resolve_object_creation(node, units[0])
        assert ctor.owner == "java.util.ArrayList"
        assert ctor.name == "ArrayList"
        assert ctor.parameter_types == ("int",)
        assert ctor.origin is OriginKind.EXTERNAL
        assert not ctor.is_implicit

    def test_unlisted_platform_constructor_synthesized(self, context_for):
        """Test that a constructor missing from a catalogued type is synthesised."""
        context, units = context_for(
            {"A.java": 'class A { Object m() { return new StringBuilder("a", 2); } }'}
        )
        node = find_node(units[0], "object_creation_expression")
        ctor = context.resolve_object_creation(node, units[0])
        assert ctor.owner == "java.lang.StringBuilder"
        assert ctor.parameter_types == ("java.lang.String", "int")
        assert ctor.is_implicit

    def test_super_call_to_platform_exception(self, context_for):
        """Test that super(message) in an exception subclass binds the catalogued constructor."""
        context, units = context_for(
            {"A.java": "class Oops extends RuntimeException { Oops(String m) { super(m); } }"}
        )
        node = find_node(units[0], "explicit_constructor_invocation")
        ctor = context.resolve_explicit_constructor(node, units[0])
        assert ctor.owner == "java.lang.RuntimeException"
        assert ctor.parameter_types == ("java.lang.String",)

    def test_super_call(self, context_for):
        """Test that a super call resolves to the superclass constructor."""
        context, units = context_for(
            {
                "A.java": """
                    class Base { Base(String name) {} }
                    class A extends Base { A() { super("a"); } }
                    """
            }
        )
        node = find_node(units[0], "explicit_constructor_invocation")
        ctor = context.resolve_explicit_constructor(node, units[0])
        assert ctor.owner == "Base"
        assert ctor.parameter_types == ("String",)

    def test_constructor_reference(self, context_for):
        """Test that a constructor reference resolves to a constructor."""
        context, units = context_for(
            {
                "A.java": """
                    import java.util.function.Supplier;
                    class A { Supplier<A> s = A::new; }
                    """
            }
        )
        node = find_node(units[0], "method_reference")
        ctor = context.resolve_method_reference(node, units[0])
        assert ctor.is_constructor
        assert ctor.owner == "A"


class TestBuild:
    """Tests for ResolutionContext.build."""

    def test_missing_archives_skipped(self, units, tmp_path):
        """Test that missing dependency archives are skipped."""
        context = ResolutionContext.build(
            units({"A.java": "class A {}"}),
            archives=[tmp_path / "absent.jar"],
        )
        assert len(context.solver.solvers) == 2

    def test_local_class_declaration(self, context_for):
        """Test that a local class declaration is visible in its block."""
        context, units = context_for(
            {
                "A.java": """
                    class A {
                        void m() {
                            class Local { void go() {} }
                            new Local().go();
                        }
                    }
                    """
            }
        )
        call = find_node(units[0], "method_invocation")
        method = context.resolve_invocation(call, units[0])
        assert method.qualified_name == "A.Local.go"
