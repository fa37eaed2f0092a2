"""
prompts/library.py — Prompt Variant Library

Holds the configured prompt variants and picks one per request.

select(kind):
  - candidates = active variants of that kind with weight > 0
  - none configured → None (the caller falls back to its built-in template)
  - otherwise a weighted random choice, so two variants weighted 3:1 are
    served roughly 75% / 25% and can be compared through PromptMetrics

The random source is injectable so selection is reproducible in tests.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from intentflow.observability.logger import get_logger

log = get_logger(__name__)


class PromptKind(str, Enum):
    VALIDATION = "validation"
    INTENT = "intent"
    RESPONSE = "response"


@dataclass(frozen=True)
class PromptVariant:
    id: str
    kind: PromptKind
    content: str
    weight: float = 1.0
    active: bool = True


def builtin_variant_id(kind: PromptKind) -> str:
    return f"builtin:{kind.value}"


class PromptLibrary:
    def __init__(
        self,
        variants: Iterable[PromptVariant] = (),
        rng: Optional[random.Random] = None,
    ) -> None:
        self._variants: list[PromptVariant] = list(variants)
        self._rng = rng or random.Random()

    @classmethod
    def from_config(cls, configs: Iterable, rng: Optional[random.Random] = None) -> "PromptLibrary":
        """Build from settings.prompts.variants (PromptVariantConfig models)."""
        return cls(
            (
                PromptVariant(
                    id=c.id,
                    kind=PromptKind(c.kind),
                    content=c.content,
                    weight=c.weight,
                    active=c.active,
                )
                for c in configs
            ),
            rng=rng,
        )

    def add(self, variant: PromptVariant) -> None:
        self._variants.append(variant)

    def variants(self, kind: Optional[PromptKind] = None) -> list[PromptVariant]:
        if kind is None:
            return list(self._variants)
        return [v for v in self._variants if v.kind == kind]

    def select(self, kind: PromptKind) -> Optional[PromptVariant]:
        candidates = [v for v in self._variants if v.kind == kind and v.active and v.weight > 0]
        if not candidates:
            return None

        total = sum(v.weight for v in candidates)
        point = self._rng.uniform(0, total)
        cumulative = 0.0
        for variant in candidates:
            cumulative += variant.weight
            if point <= cumulative:
                break
        log.debug("prompt_library.selected", kind=kind.value, variant_id=variant.id)
        return variant
