"""graph-plantuml: turn Python class and module metadata into PlantUML class diagrams."""

from __future__ import annotations

import inspect
from typing import Any, Mapping

from .types import GeneratorOptions, Formatter, Generator
from .reflection import Declaration, declaration_from_class, declaration_from_module
from .formatter import DefaultFormatter
from .graph import ClassGraph, DeclarationVertex, RelationEdge, attributes_prefixed
from .builder import ClassGraphBuilder
from .generator import ImageRenderError, PlantUmlGenerator
from .encoding import encode, decode

__all__ = [
    "create_script",
    "create_graph",
    "GeneratorOptions",
    "Formatter",
    "Generator",
    "Declaration",
    "DefaultFormatter",
    "ClassGraph",
    "DeclarationVertex",
    "RelationEdge",
    "ClassGraphBuilder",
    "PlantUmlGenerator",
    "ImageRenderError",
    "attributes_prefixed",
    "declaration_from_class",
    "declaration_from_module",
    "encode",
    "decode",
]


def _to_declaration(target: Any, cache: dict[type, Declaration]) -> Declaration:
    if isinstance(target, Declaration):
        return target
    if inspect.ismodule(target):
        return declaration_from_module(target)
    if inspect.isclass(target):
        return declaration_from_class(target, cache=cache)
    raise TypeError(
        f"Expected a class, module or Declaration, got {type(target).__name__}"
    )


def create_graph(
    *targets: Any,
    generator: PlantUmlGenerator | None = None,
    graph_attributes: Mapping[str, Any] | None = None,
) -> ClassGraph:
    """Build a declaration graph for classes, modules or declarations."""
    builder = ClassGraphBuilder(generator, ClassGraph(graph_attributes))
    cache: dict[type, Declaration] = {}
    for target in targets:
        builder.create_vertex(_to_declaration(target, cache))
    return builder.graph


def create_script(
    *targets: Any,
    options: GeneratorOptions | None = None,
    graph_attributes: Mapping[str, Any] | None = None,
    encode: bool = False,
) -> str:
    """Build the PlantUML script for classes, modules or declarations.

    Bases of each class are added to the diagram as well.
    """
    generator = PlantUmlGenerator(options)
    graph = create_graph(*targets, generator=generator, graph_attributes=graph_attributes)
    return generator.create_script(graph, encode=encode)
