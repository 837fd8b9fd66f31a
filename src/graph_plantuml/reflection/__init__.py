from __future__ import annotations

from .types import (
    HIERARCHY_SEPARATOR,
    Constant,
    Declaration,
    DefaultValue,
    Field,
    Operation,
    Parameter,
    Visibility,
)
from .adapter import declaration_from_class, declaration_from_module, qualified_name

__all__ = [
    "HIERARCHY_SEPARATOR",
    "Constant",
    "Declaration",
    "DefaultValue",
    "Field",
    "Operation",
    "Parameter",
    "Visibility",
    "declaration_from_class",
    "declaration_from_module",
    "qualified_name",
]
