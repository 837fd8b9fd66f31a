"""PlantUML script assembly and image rendering.

`PlantUmlGenerator.create_script` walks a `ClassGraph` in a fixed sequence:

    @startuml
    <global directives>              background color, direction
    namespace <group> [#color] {     one container per group (when grouped)
      class <Short> << class >> {
        <cached member label>
      }
    }
    <edges>                          A --|> B, A ..|> B
    @enduml

`create_image_file` hands the script to the PlantUML command line.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import tempfile
from typing import Any

from .encoding import encode as encode_script
from .formatter import EXTENSION_TAG, DefaultFormatter
from .graph import ClassGraph, DeclarationVertex, RelationEdge, attributes_prefixed
from .reflection.types import HIERARCHY_SEPARATOR
from .types import GeneratorOptions

logger = logging.getLogger(__name__)

DEFAULT_GROUP = 0

# Command template placeholders: executable, format, input, output
DEFAULT_CMD_FORMAT = "{executable} -t{format} {input} -filename {output}"

# Per-group style overrides, keyed by group name or sequential group index
CLUSTER_PREFIXES = {
    "graph": "cluster.{}.graph.",
    "node": "cluster.{}.node.",
    "edge": "cluster.{}.edge.",
}

# Stereotypes PlantUML accepts as element keywords; others declare a class
ELEMENT_KEYWORDS = frozenset(
    {
        "class",
        "interface",
        "abstract",
        "enum",
        "annotation",
        "entity",
        "protocol",
        "struct",
        "exception",
        "metaclass",
    }
)

REALIZATION_ARROW = "..|>"
GENERALIZATION_ARROW = "--|>"


class ImageRenderError(RuntimeError):
    """The PlantUML command failed or produced no image."""


class PlantUmlGenerator:
    """Assemble PlantUML scripts from declaration graphs."""

    name = "plantuml"

    def __init__(
        self,
        options: GeneratorOptions | None = None,
        formatter: DefaultFormatter | None = None,
    ) -> None:
        self.options = options or GeneratorOptions()
        self._formatter = formatter

    @property
    def formatter(self) -> DefaultFormatter:
        if self._formatter is None:
            self._formatter = DefaultFormatter(self.options)
        return self._formatter

    @property
    def label_key(self) -> str:
        """Vertex attribute holding the pre-rendered member label."""
        return f"label_{self.formatter.format}"

    # ------------------------------------------------------------------
    # Script
    # ------------------------------------------------------------------

    def create_script(self, graph: ClassGraph, encode: bool = False) -> str:
        groups: dict[Any, list[DeclarationVertex]] = {}
        for vertex in graph.vertices():
            groups.setdefault(_group_of(vertex), []).append(vertex)

        script = ["@startuml"]
        script.extend(self._layout_graph(graph))

        if any(group != DEFAULT_GROUP for group in groups):
            for gid, (group, vertices) in enumerate(groups.items()):
                script.extend(self._layout_group(graph, group, gid, vertices))
        else:
            for vertex in graph.vertices():
                script.append(self._layout_vertex(vertex))

        for edge in graph.edges():
            script.append(self._layout_edge(edge))

        script.append("@enduml")
        script.append("")

        logger.debug(
            "Assembled script: %d vertices, %d group(s), %d edges, %d component(s)",
            len(graph),
            len(groups),
            len(graph.edges()),
            graph.component_count(),
        )

        text = self.options.eol.join(script)
        if encode:
            text = encode_script(text)
        return text

    def _layout_graph(self, graph: ClassGraph) -> list[str]:
        """Global directives derived from `graph.*` attributes."""
        layout = attributes_prefixed(graph.attributes, "graph.")
        lines: list[str] = []

        bgcolor = str(layout.get("bgcolor") or "").lstrip("#")
        if bgcolor:
            hash_prefix = "" if bgcolor.lower() == "transparent" else "#"
            lines.append(f"skinparam backgroundColor {hash_prefix}{bgcolor}")

        # BT and RL have no PlantUML equivalent
        rankdir = str(layout.get("rankdir") or "").upper()
        if rankdir == "LR":
            lines.append("left to right direction")
        elif rankdir == "TB":
            lines.append("top to bottom direction")

        return lines

    def _layout_group(
        self,
        graph: ClassGraph,
        group: Any,
        gid: int,
        vertices: list[DeclarationVertex],
    ) -> list[str]:
        if group == DEFAULT_GROUP:
            return [self._layout_vertex(vertex) for vertex in vertices]

        layout: dict[str, Any] = {}
        for cluster_id in (group, gid):
            layout = attributes_prefixed(
                graph.attributes, CLUSTER_PREFIXES["graph"].format(cluster_id)
            )
            if layout:
                break

        bgcolor = str(layout.get("bgcolor") or "").lstrip("#")
        if bgcolor:
            bgcolor = " #" + bgcolor

        name = self._display_name(str(group))
        lines = [f"namespace {name}{bgcolor} {{"]
        lines.extend(self._layout_vertex(vertex) for vertex in vertices)
        lines.append("}")
        return lines

    def _layout_vertex(self, vertex: DeclarationVertex) -> str:
        eol = self.options.eol
        indent = self.options.indent_string

        short_name = vertex.id.rsplit(HIERARCHY_SEPARATOR, 1)[-1]
        stereotype = str(vertex.get_attribute("stereotype") or "class")
        keyword = stereotype if stereotype in ELEMENT_KEYWORDS else "class"
        tag = EXTENSION_TAG if stereotype == "extension" else f"<< {stereotype} >>"

        return (
            f"{indent}{keyword} {short_name} {tag} {{"
            + eol
            + str(vertex.get_attribute(self.label_key) or "")
            + indent
            + "}"
        )

    def _layout_edge(self, edge: RelationEdge) -> str:
        if edge.get_attribute("style") == "dashed":
            arrow = REALIZATION_ARROW
        else:
            arrow = GENERALIZATION_ARROW

        source = self._display_name(edge.source.id)
        target = self._display_name(edge.target.id)
        return f"{source} {arrow} {target}"

    def _display_name(self, name: str) -> str:
        return name.replace(HIERARCHY_SEPARATOR, self.options.namespace_separator)

    # ------------------------------------------------------------------
    # Image
    # ------------------------------------------------------------------

    def create_image_file(
        self,
        graph: ClassGraph,
        cmd_format: str = "",
        output_path: str | None = None,
    ) -> str:
        """Render the graph through the PlantUML command, return the image path.

        Raises:
            ImageRenderError: the command is missing, fails or writes nothing.
            ValueError: `cmd_format` names an unknown placeholder.
        """
        script = self.create_script(graph)

        fd, script_path = tempfile.mkstemp(suffix=".puml", prefix="graph-plantuml-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(script)

            if output_path is None:
                base, _ = os.path.splitext(script_path)
                output_path = f"{base}.{self.options.format}"

            try:
                command = (cmd_format or DEFAULT_CMD_FORMAT).format(
                    executable=self.options.executable,
                    format=self.options.format,
                    input=shlex.quote(script_path),
                    output=shlex.quote(output_path),
                )
            except (KeyError, IndexError) as exc:
                raise ValueError(
                    f"Unknown placeholder {exc} in command template {cmd_format!r}"
                ) from exc
            logger.info("Running PlantUML: %s", command)

            try:
                result = subprocess.run(
                    shlex.split(command), capture_output=True, check=False
                )
            except OSError as exc:
                raise ImageRenderError(f"Unable to invoke PlantUML: {exc}") from exc
        finally:
            os.unlink(script_path)

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise ImageRenderError(
                f"PlantUML exited with code {result.returncode}: "
                f"{stderr[:300] if stderr else '(empty)'}"
            )
        if not os.path.exists(output_path):
            raise ImageRenderError(f"PlantUML produced no image at {output_path}")

        logger.debug("Wrote %s image to %s", self.options.format, output_path)
        return output_path


def _group_of(vertex: DeclarationVertex) -> Any:
    group = vertex.get_attribute("group")
    if group is None or group == "":
        return DEFAULT_GROUP
    return group
