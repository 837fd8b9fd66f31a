from __future__ import annotations

import numbers
import re
from enum import Enum
from typing import Any

from .reflection.types import (
    HIERARCHY_SEPARATOR,
    Constant,
    Declaration,
    DefaultValue,
    Field,
    Operation,
    Parameter,
)
from .types import VISIBILITY_RANKS, GeneratorOptions

# ============================================================================
# PlantUML label formatter
#
# Turns one declaration into the member block of a PlantUML class body:
#
#     +{static} LIMIT : int = 10 {readOnly}      <- constants
#                                                <- blank separator
#     -{static} count : int = 5                  <- fields
#     --                                         <- divider (always present)
#     +{abstract}area() : float                  <- operations
#
# Extension bodies list constants then functions, with no divider.
#
# Pure: reads the declaration and the options, returns a string.
# ============================================================================

# Rendered for parameter defaults (and values) with no printable form
UNKNOWN = "«unknown»"

# PlantUML spot + stereotype shown next to extension names
EXTENSION_TAG = "<< (E,#FF7700) Extension >>"

VISIBILITY_MARKERS = {
    "public": "+",
    "protected": "#",
    "package": "~",
    "private": "-",
}

_VALUE_KINDS: dict[type, str] = {
    bool: "bool",
    int: "int",
    float: "float",
    str: "string",
    type(None): "null",
}

_ARRAY_TYPES = (list, tuple, set, frozenset, dict)

# Creole markup pairs that PlantUML would otherwise turn into formatting
# (`__init__` would be underlined). `~` is the creole escape character.
_CREOLE_MARKUP_RE = re.compile(r'(__|\*\*|//|""|--|\^\^)')

# Prefixes stripped from constant references used as parameter defaults
_SELF_PREFIXES = ("self.", "cls.")


def escape(text: str) -> str:
    """Neutralize PlantUML creole markup in a name or type."""
    return _CREOLE_MARKUP_RE.sub(r"~\1", text)


def value_kind(value: Any) -> str:
    """Type name shown for a constant, derived from its runtime value."""
    if isinstance(value, Enum):
        return type(value).__name__
    if isinstance(value, _ARRAY_TYPES):
        return "array"
    return _VALUE_KINDS.get(type(value), type(value).__name__)


def cast(value: Any, quote: str = '"') -> str:
    """Printable form of a constant, field default or literal parameter default."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return f"{type(value).__name__}.{value.name}"
    if isinstance(value, str):
        if not quote:
            return value
        return quote + value.replace(quote, "\\" + quote) + quote
    if isinstance(value, _ARRAY_TYPES):
        return "array (...)"
    if isinstance(value, numbers.Number):
        return str(value)
    return UNKNOWN


class DefaultFormatter:
    """Format declarations as PlantUML class body labels."""

    format = "plantuml"

    def __init__(self, options: GeneratorOptions | None = None) -> None:
        self.options = options or GeneratorOptions()

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    def format_extension_label(self, extension: Declaration) -> str:
        """Name, extension tag, then constants and functions of an extension."""
        return (
            f"{escape(extension.name)} {EXTENSION_TAG}"
            + self.options.eol
            + self.format_extension_body(extension)
        )

    def format_extension_body(self, extension: Declaration) -> str:
        # constants then functions; no blank separator and no divider
        label = self.format_constants(extension)
        operations = self.format_operations(extension.operations)
        if operations:
            label += self.options.indent_string * 2 + operations + self.options.eol
        return label

    def format_class_label(self, declaration: Declaration) -> str:
        constants = self.format_constants(declaration)
        fields = self.format_properties(declaration)
        operations = self.format_operations(declaration.operations, declaration.name)
        return self._assemble(constants, fields, operations)

    def _assemble(self, constants: str, fields: str, operations: str) -> str:
        eol = self.options.eol
        indent = self.options.indent_string * 2

        label = ""
        if constants:
            # constant lines carry their own eol; this one leaves a blank line
            label += constants + eol
        if fields:
            label += indent + fields + eol
        label += indent + "--" + eol
        if operations:
            label += indent + operations + eol
        return label

    # ------------------------------------------------------------------
    # Member blocks
    # ------------------------------------------------------------------

    def format_constants(self, declaration: Declaration) -> str:
        if not self.options.show_constants:
            return ""

        indent = self.options.indent_string * 2
        parent = declaration.parent
        label = ""

        for const in declaration.constants:
            if self.options.only_self and parent is not None and _unchanged(
                parent.constant(const.name), const
            ):
                continue

            label += (
                indent
                + "+{static} "
                + escape(const.name)
                + " : "
                + escape(value_kind(const.value))
                + " = "
                + cast(const.value)
                + " {readOnly}"
                + self.options.eol
            )

        return label

    def format_properties(self, declaration: Declaration) -> str:
        if not self.options.show_properties or not declaration.fields:
            return ""

        entries: list[str] = []
        for prop in declaration.fields:
            if self.options.only_self and prop.declaring != declaration.name:
                continue
            if not self.is_visible(prop):
                continue

            label = self.visibility(prop)
            if prop.is_static:
                label += "{static} "
            label += escape(prop.name)
            if prop.type is not None:
                label += " : " + self.type_name(prop.type)
            # only non-None defaults are shown
            if prop.default is not None:
                label += " = " + cast(prop.default)
            entries.append(label)

        return self._join(entries)

    def format_operations(
        self, operations: list[Operation], owning_name: str | None = None
    ) -> str:
        if owning_name and not self.options.show_methods:
            return ""

        entries: list[str] = []
        for op in operations:
            label = ""
            if op.is_class_bound and owning_name:
                # inherited from a parent declaration
                if self.options.only_self and op.declaring != owning_name:
                    continue
                if not self.is_visible(op):
                    continue

                label += self.visibility(op)
                if op.is_abstract:
                    label += "{abstract}"
                if op.is_static:
                    label += "{static}"
            else:
                # free functions have no visibility of their own
                label += "+"

            label += escape(op.name) + "("
            label += ", ".join(self.format_parameter(p) for p in op.parameters)
            label += ")"

            if op.return_type is not None:
                label += (
                    " : "
                    + ("?" if op.return_nullable else "")
                    + self.type_name(op.return_type)
                )
            entries.append(label)

        return self._join(entries)

    def format_parameter(self, parameter: Parameter) -> str:
        label = "inout " if parameter.by_reference else ""
        label += escape(parameter.name)
        if parameter.type is not None:
            label += " : " + self.type_name(parameter.type)
        if parameter.is_optional:
            label += " = " + self.format_default(parameter.default)
        return label

    def format_default(self, default: DefaultValue) -> str:
        if default.kind == "constant" and isinstance(default.value, str):
            name = default.value
            for prefix in _SELF_PREFIXES:
                if name.startswith(prefix):
                    name = name[len(prefix):]
            return cast(name, quote="")
        if default.kind == "literal":
            return cast(default.value)
        return UNKNOWN

    def _join(self, entries: list[str]) -> str:
        if not entries:
            return ""
        return (self.options.eol + self.options.indent_string * 2).join(entries)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def is_visible(self, member: Field | Operation) -> bool:
        rank = VISIBILITY_RANKS.get(member.visibility, VISIBILITY_RANKS["package"])
        return rank <= VISIBILITY_RANKS[self.options.min_visibility]

    def visibility(self, member: Field | Operation) -> str:
        return VISIBILITY_MARKERS.get(member.visibility, "~")

    def type_name(self, name: str) -> str:
        return self.escape_namespace_separator(escape(name))

    def escape_namespace_separator(self, name: str) -> str:
        return name.replace(HIERARCHY_SEPARATOR, self.options.namespace_separator)


def _unchanged(inherited: Constant | None, const: Constant) -> bool:
    """True when the parent defines the same constant with an identical value."""
    if inherited is None:
        return False
    return type(inherited.value) is type(const.value) and inherited.value == const.value
