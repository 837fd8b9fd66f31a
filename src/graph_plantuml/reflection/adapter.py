"""Build declarations from live Python classes and modules.

Members are collected along the MRO, the class's own members first, so a
subclass declaration also lists what it inherits (the formatter's
`only_self` option hides those again). Conventions used:

- constants are upper-case, non-callable class (or module) attributes;
- fields are annotated names and other plain class attributes; `ClassVar`
  and unannotated class attributes are static;
- `_name` is protected, `__name` is private, dunders are public;
- `typing.Protocol` classes are interfaces, other abstract classes are
  ``abstract``, modules are extensions.
"""

from __future__ import annotations

import abc
import inspect
import logging
import numbers
import re
import types
import typing
from enum import Enum
from typing import Any

from .types import (
    Constant,
    Declaration,
    DefaultValue,
    Field,
    Operation,
    Parameter,
    Visibility,
)

logger = logging.getLogger(__name__)

_MISSING = object()

# Bases that carry no information for a class diagram
_SKIPPED_BASES: tuple[type, ...] = (object, typing.Generic, typing.Protocol, abc.ABC)

_OPTIONAL_RE = re.compile(r"^(?:typing\.)?Optional\[(.+)\]$")
_CLASSVAR_RE = re.compile(r"^(?:typing\.)?ClassVar(?:\[(.+)\])?$")
# `:vartype name: T`, `:type name: T` or `:ivar T name:` in a class docstring
_DOC_TYPE_RE = re.compile(r"^\s*:(?:var)?type\s+(\w+)\s*:\s*(.+?)\s*$", re.MULTILINE)
_DOC_IVAR_RE = re.compile(r"^\s*:ivar\s+(.+?)\s+(\w+)\s*:", re.MULTILINE)
_FORWARD_REF_RE = re.compile(r"ForwardRef\('([^']*)'[^)]*\)")

_PRINTABLE_DEFAULTS = (type(None), bool, str, numbers.Number, list, tuple, set, frozenset, dict)

# Bookkeeping set by typing (Protocol flags) and the compiler (lazy annotations)
_SKIPPED_NAMES = frozenset(
    {
        "_is_protocol",
        "_is_runtime_protocol",
        "__annotate__",
        "__annotate_func__",
        "__annotations_cache__",
    }
)


def declaration_from_class(
    cls: type,
    *,
    group: str | None = None,
    cache: dict[type, Declaration] | None = None,
) -> Declaration:
    """Normalize a class into a Declaration (bases included, recursively).

    `cache` shares base declarations between several calls.
    """
    if cache is None:
        cache = {}
    if cls in cache:
        return cache[cls]

    declaration = Declaration(
        name=qualified_name(cls),
        stereotype=_stereotype(cls),
        group=group,
    )
    cache[cls] = declaration

    declaration.bases = [
        declaration_from_class(base, cache=cache)
        for base in cls.__bases__
        if not _is_skipped_base(base)
    ]

    seen: set[str] = set()
    for klass in cls.__mro__:
        if _is_skipped_base(klass):
            continue
        _collect_members(declaration, klass, seen)

    return declaration


def declaration_from_module(module: types.ModuleType, *, group: str | None = None) -> Declaration:
    """Normalize a module into an extension: constants and free functions."""
    declaration = Declaration(name=module.__name__, stereotype="extension", group=group)

    for name, value in vars(module).items():
        if _is_constant(name, value):
            declaration.constants.append(Constant(name, value, declaring=module.__name__))
        elif inspect.isfunction(value) and value.__module__ == module.__name__:
            declaration.operations.append(
                _operation(name, value, declaring=None, bound=False)
            )

    return declaration


def qualified_name(cls: type) -> str:
    # classes defined inside functions: `func.<locals>.Cls` becomes `func.Cls`
    qualname = cls.__qualname__.replace(".<locals>", "")
    if cls.__module__ == "builtins":
        return qualname
    return f"{cls.__module__}.{qualname}"


# ============================================================================
# Members
# ============================================================================


def _collect_members(declaration: Declaration, klass: type, seen: set[str]) -> None:
    declaring = qualified_name(klass)
    namespace = vars(klass)
    annotations = _annotations(klass)
    doc_types = _doc_types(klass)

    names = list(annotations) + [n for n in namespace if n not in annotations]
    for raw_name in names:
        name = _unmangle(raw_name, klass)
        if name in seen or _is_internal(name):
            continue
        value = namespace.get(raw_name, _MISSING)

        if name.startswith("__") and name.endswith("__"):
            # dunders only count when written in this class body
            if not _defined_in(value, klass):
                continue

        if raw_name in annotations:
            type_, is_static = _field_type(annotations[raw_name])
            seen.add(name)
            declaration.fields.append(
                Field(
                    name=name,
                    declaring=declaring,
                    visibility=_visibility(name),
                    is_static=is_static,
                    type=type_ or doc_types.get(name),
                    default=_field_default(value),
                )
            )
            continue

        if value is _MISSING:
            continue

        if isinstance(value, (staticmethod, classmethod)):
            seen.add(name)
            declaration.operations.append(
                _operation(
                    name,
                    value.__func__,
                    declaring=declaring,
                    bound=isinstance(value, classmethod),
                    is_static=True,
                )
            )
        elif inspect.isfunction(value):
            seen.add(name)
            declaration.operations.append(
                _operation(name, value, declaring=declaring, bound=True)
            )
        elif isinstance(value, property):
            seen.add(name)
            declaration.fields.append(
                Field(
                    name=name,
                    declaring=declaring,
                    visibility=_visibility(name),
                    type=_return_type(value.fget)[0] or doc_types.get(name),
                )
            )
        elif _is_constant(name, value):
            seen.add(name)
            declaration.constants.append(Constant(name, value, declaring=declaring))
        elif not callable(value) and not inspect.isdatadescriptor(value):
            seen.add(name)
            declaration.fields.append(
                Field(
                    name=name,
                    declaring=declaring,
                    visibility=_visibility(name),
                    is_static=True,
                    type=doc_types.get(name),
                    default=value,
                )
            )


def _operation(
    name: str,
    func: Any,
    *,
    declaring: str | None,
    bound: bool,
    is_static: bool = False,
) -> Operation:
    operation = Operation(
        name=name,
        declaring=declaring,
        visibility=_visibility(name) if declaring else "public",
        is_static=is_static,
        is_abstract=bool(getattr(func, "__isabstractmethod__", False)),
    )

    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError) as exc:
        logger.debug("No signature for %s: %s", name, exc)
        return operation

    parameters = list(signature.parameters.values())
    if bound and parameters:
        parameters = parameters[1:]
    operation.parameters = [_parameter(p) for p in parameters]
    operation.return_type, operation.return_nullable = _split_nullable(
        signature.return_annotation
    )
    return operation


def _parameter(param: inspect.Parameter) -> Parameter:
    name = param.name
    if param.kind is inspect.Parameter.VAR_POSITIONAL:
        name = "*" + name
    elif param.kind is inspect.Parameter.VAR_KEYWORD:
        name = "**" + name

    type_ = None
    if param.annotation is not inspect.Parameter.empty:
        type_ = _type_name(param.annotation)

    return Parameter(name=name, type=type_, default=_default_value(param.default))


def _default_value(value: Any) -> DefaultValue | None:
    if value is inspect.Parameter.empty:
        return None
    if isinstance(value, Enum):
        return DefaultValue("constant", f"{type(value).__name__}.{value.name}")
    if isinstance(value, _PRINTABLE_DEFAULTS):
        return DefaultValue("literal", value)
    return DefaultValue("unresolved")


def _return_type(func: Any) -> tuple[str | None, bool]:
    if func is None:
        return None, False
    try:
        annotation = inspect.signature(func).return_annotation
    except (TypeError, ValueError):
        return None, False
    return _split_nullable(annotation)


# ============================================================================
# Helpers
# ============================================================================


def _stereotype(cls: type) -> str:
    if getattr(cls, "_is_protocol", False):
        return "interface"
    if inspect.isabstract(cls):
        return "abstract"
    return "class"


def _is_skipped_base(cls: type) -> bool:
    return cls in _SKIPPED_BASES or cls.__module__ == "builtins"


def _annotations(klass: type) -> dict[str, Any]:
    try:
        return dict(inspect.get_annotations(klass))
    except (NameError, TypeError) as exc:
        logger.debug("Unreadable annotations on %s: %s", klass, exc)
        return {}


def _doc_types(klass: type) -> dict[str, str]:
    doc = klass.__dict__.get("__doc__") or ""
    found = {name: type_ for name, type_ in _DOC_TYPE_RE.findall(doc)}
    for type_, name in _DOC_IVAR_RE.findall(doc):
        found.setdefault(name, type_)
    return found


def _unmangle(name: str, klass: type) -> str:
    mangled = f"_{klass.__name__.lstrip('_')}__"
    if name.startswith(mangled):
        return "__" + name[len(mangled):]
    return name


def _is_internal(name: str) -> bool:
    # sunder names (_abc_impl, _member_map_, ...) and interpreter bookkeeping
    if name.startswith("_abc") or name in _SKIPPED_NAMES:
        return True
    return (
        len(name) > 2
        and name.startswith("_")
        and name.endswith("_")
        and not name.startswith("__")
    )


def _defined_in(value: Any, klass: type) -> bool:
    func = getattr(value, "__func__", value)
    if not inspect.isfunction(func):
        return False
    return func.__qualname__.startswith(klass.__qualname__ + ".")


def _is_constant(name: str, value: Any) -> bool:
    if not name.isupper() or name.startswith("__"):
        return False
    return not (
        callable(value)
        or inspect.ismodule(value)
        or inspect.isdatadescriptor(value)
    )


def _visibility(name: str) -> Visibility:
    if name.startswith("__") and not name.endswith("__"):
        return "private"
    if name.startswith("_") and not name.endswith("__"):
        return "protected"
    return "public"


def _field_default(value: Any) -> Any:
    if value is _MISSING or inspect.isdatadescriptor(value) or callable(value):
        return None
    return value


def _field_type(annotation: Any) -> tuple[str | None, bool]:
    """Type name of an annotated attribute and whether it is a ClassVar."""
    annotation = _unwrap_forward_ref(annotation)
    if isinstance(annotation, str):
        match = _CLASSVAR_RE.match(annotation.strip())
        if match:
            return (match.group(1) or None), True
        return annotation.strip(), False
    if annotation is typing.ClassVar:
        return None, True
    if typing.get_origin(annotation) is typing.ClassVar:
        args = typing.get_args(annotation)
        return (_type_name(args[0]) if args else None), True
    return _type_name(annotation), False


def _type_name(annotation: Any) -> str:
    annotation = _unwrap_forward_ref(annotation)
    if isinstance(annotation, str):
        return annotation.strip()
    if annotation is None or annotation is type(None):
        return "None"
    if isinstance(annotation, type) and typing.get_origin(annotation) is None:
        return qualified_name(annotation)
    text = repr(annotation).replace("typing.", "")
    # nested forward references, e.g. list[ForwardRef('Node')]
    return _FORWARD_REF_RE.sub(r"\1", text)


def _unwrap_forward_ref(annotation: Any) -> Any:
    if isinstance(annotation, typing.ForwardRef):
        return annotation.__forward_arg__
    return annotation


def _split_nullable(annotation: Any) -> tuple[str | None, bool]:
    """Split `Optional[T]` / `T | None` into (T, True)."""
    if annotation is inspect.Signature.empty:
        return None, False
    annotation = _unwrap_forward_ref(annotation)

    if isinstance(annotation, str):
        text = annotation.strip()
        match = _OPTIONAL_RE.match(text)
        if match:
            return match.group(1).strip(), True
        parts = _split_union(text)
        if len(parts) > 1 and "None" in parts:
            return " | ".join(p for p in parts if p != "None"), True
        return text, False

    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = typing.get_args(annotation)
        rest = [arg for arg in args if arg is not type(None)]
        if len(rest) < len(args):
            return " | ".join(_type_name(arg) for arg in rest), True

    return _type_name(annotation), False


def _split_union(text: str) -> list[str]:
    """Split a union type string on top-level `|`."""
    parts: list[str] = []
    depth = 0
    current = ""
    for char in text:
        if char in "[(":
            depth += 1
        elif char in "])":
            depth -= 1
        if char == "|" and depth == 0:
            parts.append(current.strip())
            current = ""
            continue
        current += char
    parts.append(current.strip())
    return parts
