from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .types import GeneratorOptions

# ============================================================================
# YAML configuration file
#
#   options:                      # GeneratorOptions fields
#     only_self: true
#     namespace_separator: "::"
#   graph:                        # graph-level attributes
#     graph.rankdir: LR
#     cluster.app.models.graph.bgcolor: "#EEF"
# ============================================================================


@dataclass(slots=True)
class DiagramConfig:
    options: GeneratorOptions = field(default_factory=GeneratorOptions)
    graph_attributes: dict[str, Any] = field(default_factory=dict)


def load_config(path: Path) -> DiagramConfig:
    """Load options and graph attributes from a YAML file."""
    if not path.exists():
        raise FileNotFoundError(str(path))

    raw = path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ValueError(f"Failed to parse YAML {path}: {exc}") from exc

    if data is None:
        return DiagramConfig()
    if not isinstance(data, dict):
        raise TypeError(
            f"Top-level YAML must be a mapping in {path}, got {type(data).__name__}"
        )

    unknown = sorted(set(data) - {"options", "graph"})
    if unknown:
        raise ValueError(f"Unknown section(s) in {path}: {', '.join(unknown)}")

    options = data.get("options") or {}
    graph = data.get("graph") or {}
    for section, value in (("options", options), ("graph", graph)):
        if not isinstance(value, dict):
            raise TypeError(
                f"Section {section!r} must be a mapping in {path}, "
                f"got {type(value).__name__}"
            )

    return DiagramConfig(
        options=GeneratorOptions.from_mapping(options),
        graph_attributes={str(key): value for key, value in graph.items()},
    )
