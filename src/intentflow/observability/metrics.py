"""
observability/metrics.py — Prompt Variant Metrics

Receives post-hoc (variant_id, success, identity, elapsed_ms) reports from the
response synthesizer and aggregates them per prompt variant so weighted
variants can be compared.

The MetricsSink protocol is the boundary; PromptMetrics is the in-process
implementation wired by bootstrap. Anything with an async track() of the same
shape (a database writer, a StatsD client) can be injected instead.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

from intentflow.observability.logger import get_logger

log = get_logger(__name__)


class MetricsSink(Protocol):
    async def track(
        self,
        variant_id: str,
        success: bool,
        identity: str,
        elapsed_ms: float,
    ) -> None: ...


@dataclass(frozen=True)
class MetricRecord:
    variant_id: str
    success: bool
    identity: str
    elapsed_ms: float
    recorded_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class VariantStats:
    total: int
    successful: int
    success_rate: float
    avg_response_ms: float


class PromptMetrics:
    """
    Bounded in-memory metric log.

    Oldest records are discarded once max_records is reached; the stats
    therefore describe the recent window, not all time.
    """

    def __init__(self, max_records: int = 10_000) -> None:
        self._max_records = max_records
        self._records: list[MetricRecord] = []

    async def track(
        self,
        variant_id: str,
        success: bool,
        identity: str,
        elapsed_ms: float,
    ) -> None:
        self._records.append(MetricRecord(
            variant_id=variant_id,
            success=success,
            identity=identity,
            elapsed_ms=elapsed_ms,
        ))
        if len(self._records) > self._max_records:
            del self._records[: len(self._records) - self._max_records]
        log.debug(
            "metrics.tracked",
            variant_id=variant_id,
            success=success,
            elapsed_ms=round(elapsed_ms, 1),
        )

    def records(self, variant_id: Optional[str] = None) -> list[MetricRecord]:
        if variant_id is None:
            return list(self._records)
        return [r for r in self._records if r.variant_id == variant_id]

    def stats(self, variant_id: str) -> VariantStats:
        records = self.records(variant_id)
        total = len(records)
        successful = sum(1 for r in records if r.success)
        avg = sum(r.elapsed_ms for r in records) / total if total else 0.0
        return VariantStats(
            total=total,
            successful=successful,
            success_rate=successful / total if total else 0.0,
            avg_response_ms=avg,
        )

    def variants(self) -> list[str]:
        seen: dict[str, None] = {}
        for r in self._records:
            seen.setdefault(r.variant_id, None)
        return list(seen)

    def __len__(self) -> int:
        return len(self._records)
