from __future__ import annotations

from .generator import PlantUmlGenerator
from .graph import ClassGraph, DeclarationVertex, RelationEdge
from .reflection.types import Declaration

# ============================================================================
# Graph builder
#
# Adds one vertex per declaration (bases first, recursively) and one edge per
# inheritance relation. Each vertex caches its formatted member label under
# the generator's label key, so script assembly never formats again.
#
#   class -> class          solid    (generalization)
#   class -> interface      dashed   (realization)
#   interface -> interface  solid    (generalization)
# ============================================================================


class ClassGraphBuilder:
    def __init__(
        self,
        generator: PlantUmlGenerator | None = None,
        graph: ClassGraph | None = None,
    ) -> None:
        self.generator = generator or PlantUmlGenerator()
        self.graph = graph if graph is not None else ClassGraph()

    def create_vertex(self, declaration: Declaration) -> DeclarationVertex:
        """Add a class or interface and its bases, return its vertex."""
        if declaration.stereotype == "extension":
            return self.create_vertex_extension(declaration)

        existing = self.graph.get_vertex(declaration.name)
        if existing is not None:
            return existing

        bases = [(base, self.create_vertex(base)) for base in declaration.bases]

        vertex = self.graph.add_vertex(
            self._new_vertex(
                declaration,
                self.generator.formatter.format_class_label(declaration),
            )
        )

        for base, base_vertex in bases:
            if base.is_interface and not declaration.is_interface:
                style = "dashed"
            else:
                style = "solid"
            self.graph.add_edge(RelationEdge(vertex, base_vertex, {"style": style}))

        return vertex

    def create_vertex_extension(self, extension: Declaration) -> DeclarationVertex:
        existing = self.graph.get_vertex(extension.name)
        if existing is not None:
            return existing
        return self.graph.add_vertex(
            self._new_vertex(
                extension,
                self.generator.formatter.format_extension_body(extension),
            )
        )

    def _new_vertex(self, declaration: Declaration, label: str) -> DeclarationVertex:
        attributes = {
            "id": declaration.name,
            "stereotype": declaration.stereotype,
            self.generator.label_key: label,
        }
        group = declaration.group or declaration.namespace
        if group:
            attributes["group"] = group
        return DeclarationVertex(declaration, attributes)

    def add(self, *declarations: Declaration) -> ClassGraphBuilder:
        for declaration in declarations:
            self.create_vertex(declaration)
        return self

    def create_script(self, encode: bool = False) -> str:
        return self.generator.create_script(self.graph, encode=encode)
