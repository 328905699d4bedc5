"""
Per-UTXO analytics collaborator.

Analytics (privacy sub-scores, suspicious verdicts) come from outside the
engine. Results are collected into an InsightSet so a failing collaborator
degrades the analysis to defaults instead of aborting it.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from utxoguard.classifier import apply_insight
from utxoguard.models import ClassifiedUtxo, HealthStatus, RawUtxo


class UtxoInsight(BaseModel):
    privacy_score: int | None = Field(default=None, ge=0, le=100)
    status: HealthStatus = HealthStatus.UNKNOWN

    model_config = {"frozen": True}


UNKNOWN_INSIGHT = UtxoInsight()


class UtxoAnalytics(ABC):
    """Source of privacy scores and health verdicts for individual UTXOs."""

    @abstractmethod
    def assess(self, utxo: RawUtxo) -> UtxoInsight:
        """Return the insight for one UTXO; may raise on failure"""


class StaticAnalytics(UtxoAnalytics):
    """Analytics backed by precomputed insights keyed by outpoint (txid:vout)."""

    def __init__(self, insights: Mapping[str, UtxoInsight]):
        self.insights = dict(insights)

    def assess(self, utxo: RawUtxo) -> UtxoInsight:
        return self.insights.get(utxo.outpoint, UNKNOWN_INSIGHT)

    @classmethod
    def from_file(cls, path: Path) -> StaticAnalytics:
        """
        Load insights from a JSON file.

        The file maps outpoints to objects with optional ``privacy_score`` and
        ``status`` fields. Invalid entries are skipped with a warning.
        """
        data: Any = json.loads(path.read_text())
        if not isinstance(data, dict):
            raise ValueError(f"Analytics file {path} must contain a JSON object")

        insights: dict[str, UtxoInsight] = {}
        for outpoint, entry in data.items():
            try:
                insights[outpoint] = UtxoInsight.model_validate(entry)
            except ValidationError as e:
                logger.warning(
                    f"Skipping invalid analytics entry {outpoint}: {e.error_count()} error(s)"
                )
        logger.debug(f"Loaded analytics for {len(insights)} outpoints from {path}")
        return cls(insights)


@dataclass
class InsightSet:
    insights: dict[str, UtxoInsight] = field(default_factory=dict)
    available: bool = True
    warnings: list[str] = field(default_factory=list)

    def get(self, outpoint: str) -> UtxoInsight:
        return self.insights.get(outpoint, UNKNOWN_INSIGHT)


def collect_insights(analytics: UtxoAnalytics | None, utxos: Sequence[RawUtxo]) -> InsightSet:
    """
    Ask the collaborator about every UTXO.

    A failure on one UTXO leaves that UTXO with the unknown default and
    records a warning. When every lookup fails (or there is no collaborator)
    the set is marked unavailable.
    """
    if analytics is None:
        return InsightSet(available=False, warnings=["Wallet analytics not configured"])

    result = InsightSet()
    failures = 0
    for utxo in utxos:
        try:
            result.insights[utxo.outpoint] = analytics.assess(utxo)
        except Exception as e:
            failures += 1
            logger.warning(f"Analytics failed for {utxo.outpoint}: {e}")
            result.warnings.append(f"Analytics unavailable for {utxo.outpoint}: {e}")

    if utxos and failures == len(utxos):
        result.available = False
    return result


def enrich(utxos: Sequence[ClassifiedUtxo], insights: InsightSet) -> list[ClassifiedUtxo]:
    enriched = []
    for item in utxos:
        insight = insights.get(item.outpoint)
        enriched.append(apply_insight(item, insight.privacy_score, insight.status))
    return enriched
