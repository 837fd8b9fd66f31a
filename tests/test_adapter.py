"""Tests for building declarations from live Python classes and modules."""
from __future__ import annotations

import abc
import types
from enum import Enum
from typing import ClassVar, NamedTuple, Optional, Protocol

import pytest

from graph_plantuml import create_graph, create_script
from graph_plantuml.formatter import DefaultFormatter
from graph_plantuml.reflection import (
    declaration_from_class,
    declaration_from_module,
    qualified_name,
)
from graph_plantuml.types import GeneratorOptions

_SENTINEL = object()


class Color(Enum):
    RED = 1
    GREEN = 2


class Shape(Protocol):
    def area(self) -> float: ...


class Base:
    """Base entity.

    :vartype tags: list[str]
    """

    LIMIT = 10
    KIND = "base"
    registry: ClassVar[dict] = {}
    tags = []
    name: str = "anon"
    _secret: int = 0
    __hidden: bool = False

    def __init__(self, name: str, size: int = 3) -> None:
        self.name = name

    @staticmethod
    def create(kind: Color = Color.RED) -> Base:
        return Base(kind.name)

    @classmethod
    def build(cls, *args, **kwargs) -> Optional[Base]:
        return None

    def find(self, key: str | None = None, fallback=_SENTINEL) -> str | None:
        return None

    def _helper(self):
        pass

    def __mangled(self):
        pass


class Circle(Base, Shape):
    LIMIT = 10
    KIND = "circle"
    radius: float = 1.0

    def area(self) -> float:
        return 3.14 * self.radius**2


class Job(abc.ABC):
    @abc.abstractmethod
    def run(self) -> None: ...


def by_name(members):
    return {m.name: m for m in members}


# ============================================================================
# Classes
# ============================================================================


class TestDeclarationFromClass:
    def test_name_and_stereotype(self):
        decl = declaration_from_class(Circle)
        assert decl.name == f"{__name__}.Circle"
        assert decl.short_name == "Circle"
        assert decl.stereotype == "class"
        assert declaration_from_class(Shape).stereotype == "interface"
        assert declaration_from_class(Job).stereotype == "abstract"

    def test_bases_skip_object_protocol_and_abc(self):
        decl = declaration_from_class(Circle)
        assert [b.short_name for b in decl.bases] == ["Base", "Shape"]
        assert decl.parent.short_name == "Base"
        assert [i.short_name for i in decl.interfaces] == ["Shape"]
        assert declaration_from_class(Job).bases == []
        assert declaration_from_class(Shape).bases == []

    def test_constants(self):
        decl = declaration_from_class(Base)
        assert [(c.name, c.value) for c in decl.constants] == [
            ("LIMIT", 10),
            ("KIND", "base"),
        ]

    def test_fields(self):
        fields = by_name(declaration_from_class(Base).fields)
        assert set(fields) == {"registry", "name", "_secret", "__hidden", "tags"}

        assert fields["registry"].is_static
        assert fields["registry"].type == "dict"
        assert fields["name"].type == "str"
        assert fields["name"].default == "anon"
        assert not fields["name"].is_static
        assert fields["_secret"].visibility == "protected"
        assert fields["__hidden"].visibility == "private"
        assert fields["__hidden"].default is False
        # unannotated class attribute, type from the docstring
        assert fields["tags"].is_static
        assert fields["tags"].type == "list[str]"

    def test_operations(self):
        ops = by_name(declaration_from_class(Base).operations)
        assert set(ops) == {"__init__", "create", "build", "find", "_helper", "__mangled"}

        init = ops["__init__"]
        assert [p.name for p in init.parameters] == ["name", "size"]
        assert init.parameters[1].default.kind == "literal"
        assert init.parameters[1].default.value == 3

        create = ops["create"]
        assert create.is_static
        assert create.parameters[0].default.kind == "constant"
        assert create.parameters[0].default.value == "Color.RED"
        assert create.return_type == "Base"
        assert not create.return_nullable

        build = ops["build"]
        assert build.is_static
        assert [p.name for p in build.parameters] == ["*args", "**kwargs"]
        assert build.return_type == "Base"
        assert build.return_nullable

        find = ops["find"]
        assert find.parameters[0].type == "str | None"
        assert find.parameters[1].default.kind == "unresolved"
        assert find.return_type == "str"
        assert find.return_nullable

        assert ops["_helper"].visibility == "protected"
        assert ops["__mangled"].visibility == "private"
        assert ops["__init__"].visibility == "public"

    def test_abstract_methods(self):
        run = by_name(declaration_from_class(Job).operations)["run"]
        assert run.is_abstract
        assert run.return_type == "None"

    def test_inherited_members_keep_their_declaring_class(self):
        decl = declaration_from_class(Circle)
        fields = by_name(decl.fields)
        assert fields["radius"].declaring == qualified_name(Circle)
        assert fields["name"].declaring == qualified_name(Base)
        ops = by_name(decl.operations)
        assert ops["area"].declaring == qualified_name(Circle)
        assert ops["find"].declaring == qualified_name(Base)
        # own members come first
        assert decl.fields[0].name == "radius"
        assert decl.operations[0].name == "area"

    def test_only_self_label(self):
        decl = declaration_from_class(Circle)
        label = DefaultFormatter(GeneratorOptions(only_self=True)).format_class_label(decl)
        assert "LIMIT" not in label
        assert '+{static} KIND : string = "circle" {readOnly}' in label
        assert "+radius : float = 1.0" in label
        assert "+area() : float" in label
        assert "find" not in label

    def test_cache_shares_base_declarations(self):
        cache = {}
        circle = declaration_from_class(Circle, cache=cache)
        base = declaration_from_class(Base, cache=cache)
        assert circle.bases[0] is base


# ============================================================================
# Modules
# ============================================================================


class TestDeclarationFromModule:
    def make_module(self):
        module = types.ModuleType("sample_ext")
        source = (
            "import os\n"
            "VERSION = '1.0'\n"
            "MAX_ITEMS = 20\n"
            "path_join = os.path.join\n"
            "def load(path: str, strict: bool = False) -> dict:\n"
            "    return {}\n"
            "def _private():\n"
            "    pass\n"
        )
        exec(compile(source, "<sample_ext>", "exec"), module.__dict__)
        return module

    def test_constants_and_functions(self):
        decl = declaration_from_module(self.make_module())
        assert decl.name == "sample_ext"
        assert decl.stereotype == "extension"
        assert [c.name for c in decl.constants] == ["VERSION", "MAX_ITEMS"]
        assert [o.name for o in decl.operations] == ["load", "_private"]
        assert all(not o.is_class_bound for o in decl.operations)

    def test_extension_label(self):
        decl = declaration_from_module(self.make_module())
        assert DefaultFormatter().format_extension_label(decl) == (
            "sample_ext << (E,#FF7700) Extension >>\n"
            '    +{static} VERSION : string = "1.0" {readOnly}\n'
            "    +{static} MAX_ITEMS : int = 20 {readOnly}\n"
            "    +load(path : str, strict : bool = false) : dict\n"
            "    +_private()\n"
        )


# ============================================================================
# End to end
# ============================================================================


class TestCreateScript:
    def test_classes_to_script(self):
        script = create_script(Circle, graph_attributes={"graph.rankdir": "LR"})
        lines = script.split("\n")
        assert lines[:3] == ["@startuml", "left to right direction", f"namespace {__name__} {{"]
        assert "  class Circle << class >> {" in lines
        assert "  interface Shape << interface >> {" in lines
        assert f"{__name__}.Circle --|> {__name__}.Base" in lines
        assert f"{__name__}.Circle ..|> {__name__}.Shape" in lines
        assert lines[-2:] == ["@enduml", ""]

    def test_module_to_script(self):
        module = TestDeclarationFromModule().make_module()
        script = create_script(module)
        assert script == (
            "@startuml\n"
            "  class sample_ext << (E,#FF7700) Extension >> {\n"
            '    +{static} VERSION : string = "1.0" {readOnly}\n'
            "    +{static} MAX_ITEMS : int = 20 {readOnly}\n"
            "    +load(path : str, strict : bool = false) : dict\n"
            "    +_private()\n"
            "  }\n"
            "@enduml\n"
        )

    def test_classes_and_modules_together(self):
        module = TestDeclarationFromModule().make_module()
        graph = create_graph(Circle, module)
        assert [v.id for v in graph.vertices()] == [
            f"{__name__}.Base",
            f"{__name__}.Shape",
            f"{__name__}.Circle",
            "sample_ext",
        ]

    def test_unsupported_target(self):
        with pytest.raises(TypeError, match="got int"):
            create_script(42)


# ============================================================================
# Annotations and names
# ============================================================================


class Point(NamedTuple):
    x: int
    label: Optional[str] = None


def make_local_class():
    class Local:
        size: int = 0

    return Local


class TestNames:
    def test_forward_references_are_unwrapped(self):
        fields = by_name(declaration_from_class(Point).fields)
        assert fields["x"].type == "int"
        assert fields["label"].type == "Optional[str]"

    def test_local_classes_drop_locals_segment(self):
        local = make_local_class()
        assert qualified_name(local) == f"{__name__}.make_local_class.Local"
        script = create_script(local)
        assert "<locals>" not in script
        assert f"namespace {__name__}.make_local_class {{" in script
