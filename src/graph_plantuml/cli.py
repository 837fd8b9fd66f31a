from __future__ import annotations

import argparse
import importlib
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

from . import create_graph
from .config import DiagramConfig, load_config
from .generator import ImageRenderError, PlantUmlGenerator
from .types import VISIBILITY_RANKS


def resolve_target(target: str) -> Any:
    """Import `package.module` or `package.module:Class[.Nested]`."""
    module_name, _, attr_path = target.partition(":")
    module = importlib.import_module(module_name)
    if not attr_path:
        return module
    obj: Any = module
    for part in attr_path.split("."):
        obj = getattr(obj, part)
    return obj


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="graph-plantuml",
        description="Generate a PlantUML class diagram from Python classes and modules.",
    )
    parser.add_argument(
        "targets",
        nargs="+",
        help="Import paths: 'package.module' (extension) or 'package.module:Class'.",
    )
    parser.add_argument("--config", type=Path, help="YAML file with options and graph attributes")
    parser.add_argument("--only-self", action="store_true", help="Hide inherited members")
    parser.add_argument("--no-constants", action="store_true", help="Hide constants")
    parser.add_argument("--no-properties", action="store_true", help="Hide fields")
    parser.add_argument("--no-methods", action="store_true", help="Hide methods")
    parser.add_argument(
        "--min-visibility",
        choices=tuple(VISIBILITY_RANKS),
        help="Least public visibility still shown (default: private, i.e. all)",
    )
    parser.add_argument("--namespace-separator", help="Separator used for qualified names")
    parser.add_argument("--rankdir", choices=("LR", "TB"), help="Diagram direction")
    parser.add_argument("--bgcolor", help="Background color, e.g. EEEEEE or transparent")
    parser.add_argument("--encode", action="store_true", help="Print the PlantUML-encoded script")
    parser.add_argument(
        "--image",
        metavar="FORMAT",
        help="Render an image in FORMAT (png, svg, ...) through the PlantUML command",
    )
    parser.add_argument("--output", type=Path, help="Write the script or image here")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def _apply_arguments(config: DiagramConfig, args: argparse.Namespace) -> DiagramConfig:
    overrides: dict[str, Any] = {}
    if args.only_self:
        overrides["only_self"] = True
    if args.no_constants:
        overrides["show_constants"] = False
    if args.no_properties:
        overrides["show_properties"] = False
    if args.no_methods:
        overrides["show_methods"] = False
    if args.min_visibility:
        overrides["min_visibility"] = args.min_visibility
    if args.namespace_separator:
        overrides["namespace_separator"] = args.namespace_separator
    if args.image:
        overrides["format"] = args.image

    attributes = dict(config.graph_attributes)
    if args.rankdir:
        attributes["graph.rankdir"] = args.rankdir
    if args.bgcolor:
        attributes["graph.bgcolor"] = args.bgcolor

    return DiagramConfig(options=replace(config.options, **overrides), graph_attributes=attributes)


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint."""
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config) if args.config else DiagramConfig()
        config = _apply_arguments(config, args)
    except (OSError, TypeError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(2)

    targets = []
    for target in args.targets:
        try:
            targets.append(resolve_target(target))
        except (ImportError, AttributeError) as exc:
            print(f"error: cannot resolve {target!r}: {exc}", file=sys.stderr)
            raise SystemExit(2)

    generator = PlantUmlGenerator(config.options)
    graph = create_graph(
        *targets, generator=generator, graph_attributes=config.graph_attributes
    )

    if args.image:
        try:
            path = generator.create_image_file(
                graph, output_path=str(args.output) if args.output else None
            )
        except ImageRenderError as exc:
            print(f"error: {exc}", file=sys.stderr)
            raise SystemExit(1)
        print(path)
        return

    script = generator.create_script(graph, encode=args.encode)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(script, encoding="utf-8")
    else:
        sys.stdout.write(script if not args.encode else script + "\n")
