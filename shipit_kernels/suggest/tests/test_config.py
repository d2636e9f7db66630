"""
Tests for the generator configuration.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import pytest

from shipit_kernels.suggest.config import (
    GeneratorConfig,
    LLMConfig,
    ScoreWeights,
    ThresholdConfig,
    config_from_kernel,
    get_generator_config,
    load_config,
    set_generator_config,
)


class TestDefaults:

    def test_threshold_defaults(self):
        t = ThresholdConfig()
        assert (t.t_action, t.t_overall_min, t.t_section_min, t.t_generic) == (0.5, 0.65, 0.6, 0.55)
        assert t.short_section_penalty == 0.15

    def test_round_trip(self):
        config = GeneratorConfig(max_suggestions=3, enable_debug=True)
        assert GeneratorConfig.from_dict(config.to_dict()) == config


class TestValidation:

    def test_threshold_out_of_range(self):
        with pytest.raises(ValueError, match="t_action"):
            ThresholdConfig(t_action=1.5)

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError):
            ScoreWeights(actionability=0.5, type_choice=0.5, synthesis=0.5)

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="backend"):
            LLMConfig(backend="openai")

    def test_negative_cap(self):
        with pytest.raises(ValueError):
            GeneratorConfig(max_suggestions=-1)


class TestLoadConfig:

    def test_bare_mapping(self, tmp_path):
        path = tmp_path / "suggest.yaml"
        path.write_text("thresholds:\n  t_action: 0.6\nmax_suggestions: 8\n", encoding="utf-8")
        config = load_config(path)
        assert config.thresholds.t_action == 0.6
        assert config.thresholds.t_overall_min == 0.65
        assert config.max_suggestions == 8

    def test_nested_under_suggest(self, tmp_path):
        path = tmp_path / "project.yaml"
        path.write_text(
            "suggest:\n"
            "  llm:\n"
            "    enabled: true\n"
            "    backend: mock\n"
            "  weights:\n"
            "    actionability: 0.5\n"
            "    type_choice: 0.25\n"
            "    synthesis: 0.25\n",
            encoding="utf-8",
        )
        config = load_config(path)
        assert config.llm.enabled
        assert config.llm.backend == "mock"
        assert config.weights.actionability == 0.5

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == GeneratorConfig()

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(path)

    def test_invalid_value_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("thresholds:\n  t_generic: 2\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(path)


class TestKernelConfig:

    def test_inline_mapping(self):
        config = config_from_kernel({"generator": {"max_suggestions": 2}})
        assert config.max_suggestions == 2

    def test_path_wins(self, tmp_path):
        path = tmp_path / "suggest.yaml"
        path.write_text("max_suggestions: 9\n", encoding="utf-8")
        config = config_from_kernel({"config_path": str(path), "generator": {"max_suggestions": 2}})
        assert config.max_suggestions == 9

    def test_process_default(self):
        previous = get_generator_config()
        try:
            custom = GeneratorConfig(max_suggestions=1)
            set_generator_config(custom)
            assert config_from_kernel({}) is custom
        finally:
            set_generator_config(previous)
