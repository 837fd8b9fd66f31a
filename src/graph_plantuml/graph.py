from __future__ import annotations

from typing import Any, Iterator, Mapping

from grandalf.graphs import Edge, Graph, Vertex

from .reflection.types import Declaration

# ============================================================================
# Declaration graph
#
# Thin layer over grandalf: vertices wrap one Declaration each, edges carry a
# relation style. Both (and the graph itself) hold a free-form attribute dict.
#
# Recognized attribute keys:
#   graph:  graph.bgcolor, graph.rankdir,
#           cluster.<id>.graph.*, cluster.<id>.node.*, cluster.<id>.edge.*
#   vertex: id, group, stereotype, label_<format>
#   edge:   style ("dashed" -> realization, anything else -> generalization)
#
# grandalf keeps vertices per connected component, so insertion order is
# tracked here to keep the emitted script deterministic.
# ============================================================================


def attributes_prefixed(attributes: Mapping[str, Any], prefix: str) -> dict[str, Any]:
    """Return the attributes whose key starts with `prefix`, prefix stripped.

    An empty prefix returns a copy of all attributes.
    """
    if not prefix:
        return dict(attributes)
    return {
        name[len(prefix):]: value
        for name, value in attributes.items()
        if name.startswith(prefix)
    }


class DeclarationVertex(Vertex):
    """A grandalf vertex wrapping one declaration."""

    def __init__(
        self,
        declaration: Declaration | None = None,
        attributes: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(declaration)
        self.attributes: dict[str, Any] = dict(attributes or {})
        if declaration is not None:
            self.attributes.setdefault("id", declaration.name)

    @property
    def declaration(self) -> Declaration | None:
        return self.data

    @property
    def id(self) -> str:
        return str(self.attributes.get("id", ""))

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def __repr__(self) -> str:
        return f"DeclarationVertex({self.id!r})"


class RelationEdge(Edge):
    """A directed grandalf edge from a declaration to one of its bases."""

    def __init__(
        self,
        source: DeclarationVertex,
        target: DeclarationVertex,
        attributes: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(source, target)
        self.attributes: dict[str, Any] = dict(attributes or {})

    @property
    def source(self) -> DeclarationVertex:
        return self.v[0]

    @property
    def target(self) -> DeclarationVertex:
        return self.v[1]

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def __repr__(self) -> str:
        return f"RelationEdge({self.source.id!r} -> {self.target.id!r})"


class ClassGraph:
    """Directed graph of declarations with graph-level attributes."""

    def __init__(self, attributes: Mapping[str, Any] | None = None) -> None:
        self.attributes: dict[str, Any] = dict(attributes or {})
        self._graph = Graph()
        self._vertices: dict[str, DeclarationVertex] = {}
        self._edges: list[RelationEdge] = []

    def add_vertex(self, vertex: DeclarationVertex) -> DeclarationVertex:
        """Add a vertex, or return the one already registered under its id."""
        existing = self._vertices.get(vertex.id)
        if existing is not None:
            return existing
        self._graph.add_vertex(vertex)
        self._vertices[vertex.id] = vertex
        return vertex

    def add_edge(self, edge: RelationEdge) -> RelationEdge:
        """Add an edge; a second edge between the same pair returns the first."""
        source = self.add_vertex(edge.source)
        target = self.add_vertex(edge.target)
        if source is not edge.source or target is not edge.target:
            edge = RelationEdge(source, target, edge.attributes)
        existing = source.e_to(target)
        if existing is not None:
            return existing
        edge = self._graph.add_edge(edge)
        self._edges.append(edge)
        return edge

    def get_vertex(self, vertex_id: str) -> DeclarationVertex | None:
        return self._vertices.get(vertex_id)

    def vertices(self) -> list[DeclarationVertex]:
        return list(self._vertices.values())

    def edges(self) -> list[RelationEdge]:
        return list(self._edges)

    def component_count(self) -> int:
        """Number of weakly connected components."""
        return len(self._graph.C)

    def __iter__(self) -> Iterator[DeclarationVertex]:
        return iter(self._vertices.values())

    def __len__(self) -> int:
        return len(self._vertices)
