from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

# ============================================================================
# Declaration metadata types
#
# Normalized shape of a class, interface or extension and its members.
# Built once by the adapter (or by hand), then only read by the formatter.
# Qualified names always use "." as the hierarchy delimiter.
# ============================================================================

HIERARCHY_SEPARATOR = "."

Visibility = Literal["public", "protected", "package", "private"]

Stereotype = Literal["class", "interface", "abstract", "extension"]

DefaultKind = Literal[
    "constant",    # a named constant reference, e.g. Color.RED
    "literal",     # a printable literal value
    "unresolved",  # present but could not be turned into a printable form
]


@dataclass(slots=True, frozen=True)
class DefaultValue:
    """Default value of an optional parameter."""

    kind: DefaultKind
    # Constant name for "constant", the literal for "literal", unused otherwise
    value: Any = None


@dataclass(slots=True)
class Parameter:
    name: str
    type: str | None = None
    default: DefaultValue | None = None
    # Passed by reference (rendered as `inout`)
    by_reference: bool = False

    @property
    def is_optional(self) -> bool:
        return self.default is not None


@dataclass(slots=True)
class Constant:
    name: str
    value: Any
    # Qualified name of the declaration that defines the constant
    declaring: str | None = None


@dataclass(slots=True)
class Field:
    """A property of a class (instance or static)."""

    name: str
    declaring: str | None = None
    visibility: Visibility = "public"
    is_static: bool = False
    # Type name, already normalized (annotation first, docstring fallback)
    type: str | None = None
    # None means "no default", which is never rendered
    default: Any = None


@dataclass(slots=True)
class Operation:
    """A method of a class, or a free function when `declaring` is None."""

    name: str
    declaring: str | None = None
    visibility: Visibility = "public"
    is_static: bool = False
    is_abstract: bool = False
    parameters: list[Parameter] = field(default_factory=list)
    return_type: str | None = None
    # Return type accepts None (rendered with a leading `?`)
    return_nullable: bool = False

    @property
    def is_class_bound(self) -> bool:
        return self.declaring is not None


@dataclass(slots=True)
class Declaration:
    """A class, interface or extension (module)."""

    name: str
    stereotype: str = "class"
    # Direct bases in acquisition order
    bases: list[Declaration] = field(default_factory=list)
    constants: list[Constant] = field(default_factory=list)
    fields: list[Field] = field(default_factory=list)
    operations: list[Operation] = field(default_factory=list)
    # Cluster id used by the graph builder; namespace when unset
    group: str | None = None

    @property
    def short_name(self) -> str:
        return self.name.rsplit(HIERARCHY_SEPARATOR, 1)[-1]

    @property
    def namespace(self) -> str:
        head, _, _ = self.name.rpartition(HIERARCHY_SEPARATOR)
        return head

    @property
    def is_interface(self) -> bool:
        return self.stereotype == "interface"

    @property
    def parent(self) -> Declaration | None:
        """First base that is not an interface (never set for extensions)."""
        if self.stereotype == "extension":
            return None
        for base in self.bases:
            if not base.is_interface:
                return base
        return None

    @property
    def interfaces(self) -> list[Declaration]:
        return [base for base in self.bases if base.is_interface]

    def constant(self, name: str) -> Constant | None:
        for const in self.constants:
            if const.name == name:
                return const
        return None
