"""
Configuration for the ShipIt suggestion kernel family.

Nested dataclasses validated in ``__post_init__``; ``GeneratorConfig`` is the
top-level object handed to the pipeline. YAML files are loaded with
``load_config()``; a process-wide default is kept for the CLI and kernels.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

import yaml

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Sub-configurations
# ---------------------------------------------------------------------------

@dataclass
class ThresholdConfig:
    """Decision thresholds shared by the gate, validators and ranking."""
    t_action: float = 0.5                   # minimum actionable signal
    t_out_of_scope: float = 0.4             # reported in gate reasons
    t_overall_min: float = 0.65             # high-confidence overall score
    t_section_min: float = 0.6              # high-confidence actionability
    t_generic: float = 0.55                 # V2 generic-word ratio
    t_attach: float = 0.80                  # reserved for initiative attachment
    min_evidence_chars: int = 120
    short_section_penalty: float = 0.15     # added to t_action for <=2 lines

    def __post_init__(self):
        for name in ("t_action", "t_out_of_scope", "t_overall_min", "t_section_min",
                     "t_generic", "t_attach", "short_section_penalty"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Invalid {name} {value!r}, must be within [0, 1]")
        if self.min_evidence_chars < 0:
            raise ValueError(f"Invalid min_evidence_chars {self.min_evidence_chars!r}, must be >= 0")


@dataclass
class ScoreWeights:
    """Weights of the overall score combination."""
    actionability: float = 0.4
    type_choice: float = 0.3
    synthesis: float = 0.3

    def __post_init__(self):
        total = self.actionability + self.type_choice + self.synthesis
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Invalid score weights (sum={total:.3f}), must sum to 1")


@dataclass
class LLMConfig:
    """Optional model-based intent classifier."""
    enabled: bool = False
    backend: str = "ollama"                 # ollama | mock
    endpoint: str = "http://127.0.0.1:11434"
    model: str = "mistral:instruct"
    temperature: float = 0.1
    num_predict: int = 512
    timeout: int = 60

    def __post_init__(self):
        valid = ("ollama", "mock")
        if self.backend not in valid:
            raise ValueError(f"Invalid backend {self.backend!r}, must be one of {valid}")


# ---------------------------------------------------------------------------
# Top-level configuration
# ---------------------------------------------------------------------------

@dataclass
class GeneratorConfig:
    """Top-level configuration for suggestion generation."""
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    weights: ScoreWeights = field(default_factory=ScoreWeights)
    llm: LLMConfig = field(default_factory=LLMConfig)
    max_suggestions: int = 5                # display cap, never applied by the pipeline
    enable_debug: bool = False

    def __post_init__(self):
        if self.max_suggestions < 0:
            raise ValueError(f"Invalid max_suggestions {self.max_suggestions!r}, must be >= 0")

    def to_dict(self) -> Dict[str, Any]:
        t = self.thresholds
        return {
            "thresholds": {
                "t_action": t.t_action,
                "t_out_of_scope": t.t_out_of_scope,
                "t_overall_min": t.t_overall_min,
                "t_section_min": t.t_section_min,
                "t_generic": t.t_generic,
                "t_attach": t.t_attach,
                "min_evidence_chars": t.min_evidence_chars,
                "short_section_penalty": t.short_section_penalty,
            },
            "weights": {
                "actionability": self.weights.actionability,
                "type_choice": self.weights.type_choice,
                "synthesis": self.weights.synthesis,
            },
            "llm": {
                "enabled": self.llm.enabled,
                "backend": self.llm.backend,
                "endpoint": self.llm.endpoint,
                "model": self.llm.model,
                "temperature": self.llm.temperature,
                "num_predict": self.llm.num_predict,
                "timeout": self.llm.timeout,
            },
            "max_suggestions": self.max_suggestions,
            "enable_debug": self.enable_debug,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GeneratorConfig":
        th = d.get("thresholds", {})
        w = d.get("weights", {})
        llm = d.get("llm", {})
        return cls(
            thresholds=ThresholdConfig(
                t_action=th.get("t_action", 0.5),
                t_out_of_scope=th.get("t_out_of_scope", 0.4),
                t_overall_min=th.get("t_overall_min", 0.65),
                t_section_min=th.get("t_section_min", 0.6),
                t_generic=th.get("t_generic", 0.55),
                t_attach=th.get("t_attach", 0.80),
                min_evidence_chars=th.get("min_evidence_chars", 120),
                short_section_penalty=th.get("short_section_penalty", 0.15),
            ),
            weights=ScoreWeights(
                actionability=w.get("actionability", 0.4),
                type_choice=w.get("type_choice", 0.3),
                synthesis=w.get("synthesis", 0.3),
            ),
            llm=LLMConfig(
                enabled=llm.get("enabled", False),
                backend=llm.get("backend", "ollama"),
                endpoint=llm.get("endpoint", "http://127.0.0.1:11434"),
                model=llm.get("model", "mistral:instruct"),
                temperature=llm.get("temperature", 0.1),
                num_predict=llm.get("num_predict", 512),
                timeout=llm.get("timeout", 60),
            ),
            max_suggestions=d.get("max_suggestions", 5),
            enable_debug=d.get("enable_debug", False),
        )


def load_config(path: Union[str, Path]) -> GeneratorConfig:
    """Load a ``GeneratorConfig`` from a YAML file (missing keys take defaults)."""
    path = Path(path)
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(raw).__name__}")
    # Accept both a bare mapping and one nested under "suggest:"
    section = raw.get("suggest", raw)
    config = GeneratorConfig.from_dict(section)
    logger.debug(f"[config] Loaded generator config from {path}")
    return config


# ---------------------------------------------------------------------------
# Process-wide default
# ---------------------------------------------------------------------------

_global_config: Optional[GeneratorConfig] = None


def get_generator_config() -> GeneratorConfig:
    """Return the process-wide default configuration (created on first use)."""
    global _global_config
    if _global_config is None:
        _global_config = GeneratorConfig()
    return _global_config


def set_generator_config(config: GeneratorConfig) -> None:
    """Replace the process-wide default configuration."""
    global _global_config
    _global_config = config


def config_from_kernel(kernel_config: Dict[str, Any]) -> GeneratorConfig:
    """Resolve the generator config of a kernel run: YAML path, inline mapping, or default."""
    path = kernel_config.get("config_path")
    if path:
        return load_config(path)
    inline = kernel_config.get("generator")
    if inline:
        return GeneratorConfig.from_dict(inline)
    return get_generator_config()
