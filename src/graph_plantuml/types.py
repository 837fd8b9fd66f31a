from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import TYPE_CHECKING, Any, Mapping, Protocol

if TYPE_CHECKING:
    from .graph import ClassGraph
    from .reflection.types import Declaration, Operation

# ============================================================================
# Generator options -- user-facing configuration
#
# Read-only once formatting begins: formatters and generators keep a
# reference and never mutate it.
# ============================================================================

# Visibility ranks, most public first. A member is shown when its rank is not
# above the rank of `min_visibility`.
VISIBILITY_RANKS = {
    "public": 0,
    "protected": 1,
    "package": 2,
    "private": 3,
}


@dataclass(slots=True, frozen=True)
class GeneratorOptions:
    show_constants: bool = True
    show_properties: bool = True
    show_methods: bool = True
    # Hide members inherited from a parent declaration
    only_self: bool = False
    # Least public visibility still shown ("private" shows everything)
    min_visibility: str = "private"
    indent_string: str = "  "
    # PlantUML has no notion of other separators; "." creates packages
    namespace_separator: str = "."
    eol: str = "\n"
    # Image command settings (invoke `java -jar plantuml.jar -help` for formats)
    executable: str = "java -jar plantuml.jar"
    format: str = "png"

    def __post_init__(self) -> None:
        if self.min_visibility not in VISIBILITY_RANKS:
            raise ValueError(
                f"Unsupported visibility '{self.min_visibility}', expected one of "
                f"{', '.join(VISIBILITY_RANKS)}"
            )

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> GeneratorOptions:
        """Build options from a plain mapping, defaults for missing keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown option(s): {', '.join(unknown)}")
        return replace(cls(), **dict(values))


# ============================================================================
# Capability contracts
# ============================================================================


class Formatter(Protocol):
    format: str

    def format_extension_label(self, extension: Declaration) -> str: ...

    def format_class_label(self, declaration: Declaration) -> str: ...

    def format_operations(
        self, operations: list[Operation], owning_name: str | None = None
    ) -> str: ...


class Generator(Protocol):
    name: str
    options: GeneratorOptions

    @property
    def formatter(self) -> Formatter: ...

    def create_script(self, graph: ClassGraph, encode: bool = False) -> str: ...

    def create_image_file(
        self, graph: ClassGraph, cmd_format: str = "", output_path: str | None = None
    ) -> str: ...
