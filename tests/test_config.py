"""Tests for option handling and the YAML configuration file."""
from __future__ import annotations

import pytest

from graph_plantuml.config import DiagramConfig, load_config
from graph_plantuml.types import GeneratorOptions


def write(tmp_path, text: str):
    path = tmp_path / "diagram.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestGeneratorOptions:
    def test_defaults(self):
        options = GeneratorOptions()
        assert options.show_constants and options.show_properties and options.show_methods
        assert not options.only_self
        assert options.min_visibility == "private"
        assert options.indent_string == "  "
        assert options.namespace_separator == "."
        assert options.eol == "\n"
        assert options.format == "png"

    def test_unknown_visibility(self):
        with pytest.raises(ValueError, match="Unsupported visibility 'secret'"):
            GeneratorOptions(min_visibility="secret")

    def test_from_mapping(self):
        options = GeneratorOptions.from_mapping({"only_self": True, "format": "svg"})
        assert options.only_self
        assert options.format == "svg"
        assert options.show_methods

    def test_from_mapping_rejects_unknown_keys(self):
        with pytest.raises(ValueError, match="Unknown option"):
            GeneratorOptions.from_mapping({"show_everything": True})


class TestLoadConfig:
    def test_options_and_graph_sections(self, tmp_path):
        path = write(
            tmp_path,
            "options:\n"
            "  only_self: true\n"
            "  namespace_separator: '::'\n"
            "graph:\n"
            "  graph.rankdir: LR\n"
            "  cluster.app.models.graph.bgcolor: '#EEF'\n",
        )
        config = load_config(path)
        assert config.options.only_self
        assert config.options.namespace_separator == "::"
        assert config.graph_attributes == {
            "graph.rankdir": "LR",
            "cluster.app.models.graph.bgcolor": "#EEF",
        }

    def test_empty_file(self, tmp_path):
        config = load_config(write(tmp_path, ""))
        assert config == DiagramConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ValueError, match="Failed to parse YAML"):
            load_config(write(tmp_path, "options: [unclosed\n"))

    def test_top_level_must_be_a_mapping(self, tmp_path):
        with pytest.raises(TypeError, match="must be a mapping"):
            load_config(write(tmp_path, "- only_self\n"))

    def test_unknown_section(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown section"):
            load_config(write(tmp_path, "layout:\n  rankdir: LR\n"))

    def test_section_must_be_a_mapping(self, tmp_path):
        with pytest.raises(TypeError, match="Section 'graph'"):
            load_config(write(tmp_path, "graph: LR\n"))

    def test_unknown_option(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown option"):
            load_config(write(tmp_path, "options:\n  colour: red\n"))
