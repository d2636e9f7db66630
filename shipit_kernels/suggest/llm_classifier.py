"""
Optional model-based intent classifier.

Providers return a seven-category probability vector plus a confidence.
The rule-based vector stays authoritative: the model vector is blended in
with a confidence-derived weight, and any provider failure degrades to the
neutral response, which carries zero weight.

Providers:
    "mock"   -- canned response or raised error, for tests
    "ollama" -- Jinja2-rendered prompt posted to ``{endpoint}/api/generate``

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import jinja2

from shipit_kernels.suggest.config import LLMConfig
from shipit_kernels.suggest.models import INTENT_LABELS, IntentClassification, Section

logger = logging.getLogger(__name__)

PROMPT_DIR = Path(__file__).parent / "prompts"
PROMPT_TEMPLATE = "intent_classify.j2"

MAX_LLM_WEIGHT = 0.8
MIN_LLM_CONFIDENCE = 0.3
NEUTRAL_PROBABILITY = 0.25


class ProviderError(RuntimeError):
    """Raised by a provider when it cannot produce a usable response."""


@dataclass(frozen=True)
class LLMIntentResponse:
    plan_change: float = NEUTRAL_PROBABILITY
    new_workstream: float = NEUTRAL_PROBABILITY
    status_informational: float = NEUTRAL_PROBABILITY
    communication: float = NEUTRAL_PROBABILITY
    research: float = NEUTRAL_PROBABILITY
    calendar: float = NEUTRAL_PROBABILITY
    micro_tasks: float = NEUTRAL_PROBABILITY
    confidence: float = 0.0

    def scores(self) -> Dict[str, float]:
        return {label: getattr(self, label) for label in INTENT_LABELS}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LLMIntentResponse":
        """Build from a parsed reply; missing or malformed values raise ``ProviderError``."""
        values: Dict[str, float] = {}
        for name in INTENT_LABELS + ("confidence",):
            raw = d.get(name)
            if not isinstance(raw, (int, float)) or isinstance(raw, bool):
                raise ProviderError(f"Missing or non-numeric field {name!r} in model reply")
            values[name] = max(0.0, min(1.0, float(raw)))
        return cls(**values)


NEUTRAL_RESPONSE = LLMIntentResponse()


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

class LLMProvider(ABC):
    """Capability interface: classify one section into the seven categories."""

    name: str = "base"

    @abstractmethod
    async def classify(self, section: Section) -> LLMIntentResponse:
        """Return probabilities for ``section``; raise ``ProviderError`` on failure."""


class MockLLMProvider(LLMProvider):
    """Returns a fixed response (or raises a fixed error) and logs every call."""

    name = "mock"

    def __init__(
        self,
        response: Optional[LLMIntentResponse] = None,
        error: Optional[Exception] = None,
        responses: Optional[Dict[str, LLMIntentResponse]] = None,
    ):
        self.response = response or NEUTRAL_RESPONSE
        self.error = error
        self.responses = responses or {}
        self.calls: List[str] = []

    async def classify(self, section: Section) -> LLMIntentResponse:
        self.calls.append(section.section_id)
        if self.error is not None:
            raise self.error
        return self.responses.get(section.section_id, self.response)


def _load_template() -> jinja2.Template:
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(PROMPT_DIR)),
        undefined=jinja2.StrictUndefined,
    )
    return env.get_template(PROMPT_TEMPLATE)


def render_prompt(section: Section) -> str:
    return _load_template().render(
        heading=section.heading_text,
        body=section.raw_text,
        labels=list(INTENT_LABELS),
    )


def _parse_llm_json(text: str) -> Optional[Dict[str, Any]]:
    """Extract a JSON object from a model reply: direct, fenced, or first {...} block."""
    text = text.strip()
    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    m = re.search(r"```(?:json)?\s*\n(.*?)\n```", text, re.DOTALL)
    if m:
        try:
            return json.loads(m.group(1))
        except json.JSONDecodeError:
            pass

    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end > start:
        try:
            return json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            pass

    return None


class OllamaLLMProvider(LLMProvider):
    """Ollama ``/api/generate`` over ``httpx.AsyncClient``; no retries."""

    name = "ollama"

    def __init__(self, config: LLMConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client

    async def _generate(self, client: httpx.AsyncClient, prompt: str) -> str:
        response = await client.post(
            f"{self.config.endpoint}/api/generate",
            json={
                "model": self.config.model,
                "prompt": prompt,
                "stream": False,
                "format": "json",
                "options": {
                    "temperature": self.config.temperature,
                    "num_predict": self.config.num_predict,
                },
            },
            timeout=self.config.timeout,
        )
        response.raise_for_status()
        return response.json().get("response", "")

    async def classify(self, section: Section) -> LLMIntentResponse:
        prompt = render_prompt(section)
        try:
            if self._client is not None:
                text = await self._generate(self._client, prompt)
            else:
                async with httpx.AsyncClient() as client:
                    text = await self._generate(client, prompt)
        except httpx.HTTPError as e:
            raise ProviderError(f"Ollama request failed: {e}") from e

        parsed = _parse_llm_json(text)
        if parsed is None:
            raise ProviderError(f"Unparseable model reply ({len(text)} chars)")
        return LLMIntentResponse.from_dict(parsed)


def create_provider(config: LLMConfig) -> LLMProvider:
    if config.backend == "mock":
        return MockLLMProvider()
    return OllamaLLMProvider(config)


# ---------------------------------------------------------------------------
# Fallback and blending
# ---------------------------------------------------------------------------

async def classify_with_fallback(provider: LLMProvider, section: Section) -> LLMIntentResponse:
    """Never raises: any provider failure yields the neutral response."""
    try:
        return await provider.classify(section)
    except Exception as e:
        logger.warning(
            f"[llm] {provider.name} failed on {section.section_id}, using rule-based intent: {e}"
        )
        return NEUTRAL_RESPONSE


def llm_weight(confidence: float) -> float:
    if confidence < MIN_LLM_CONFIDENCE:
        return 0.0
    return min(MAX_LLM_WEIGHT, confidence)


def blend_intent_scores(
    llm: LLMIntentResponse,
    rule: IntentClassification,
    confidence: Optional[float] = None,
) -> IntentClassification:
    """
    Confidence-weighted average of the two vectors. Routing flags are taken
    from the rule vector unchanged.
    """
    w = llm_weight(llm.confidence if confidence is None else confidence)
    if w == 0.0:
        return rule
    blended = {
        label: (1.0 - w) * getattr(rule, label) + w * getattr(llm, label)
        for label in INTENT_LABELS
    }
    return replace(rule, **blended)
