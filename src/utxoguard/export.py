"""
Structured report export.

Export documents keep snake_case field names and carry a schema_version so
downstream tooling can rely on their shape.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field

from utxoguard.models import (
    ClassifiedUtxo,
    HealthReport,
    Recommendation,
    SecurityReport,
    Threat,
)

SCHEMA_VERSION = 1


class ExportKind(str, Enum):
    SECURITY = "security"
    HEALTH = "health"
    CLASSIFICATION = "classification"


class ExportDocument(BaseModel):
    schema_version: int = SCHEMA_VERSION
    kind: ExportKind
    wallet_address: str
    analysis_time: datetime = Field(default_factory=lambda: datetime.now(UTC))
    summary: dict[str, Any] = Field(default_factory=dict)
    threats: list[Threat] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    payload: dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> str:
        return self.model_dump_json(indent=2)


def _summary(report: SecurityReport) -> dict[str, Any]:
    return {
        "overall_score": report.overall_score,
        "status": report.status.value,
        "analytics_available": report.analytics_available,
        **report.metrics.model_dump(mode="json"),
    }


def utxo_row(item: ClassifiedUtxo) -> dict[str, Any]:
    token = item.token
    return {
        "outpoint": item.outpoint,
        "value_atoms": item.value_atoms,
        "utxo_type": item.utxo_type.value,
        "category": item.utxo_type.category,
        "health": item.health.status.value,
        "reasoning": item.health.reasoning,
        "confirmation_height": item.utxo.confirmation_height,
        "privacy_score": item.privacy_score,
        "token_id": token.token_id if token else None,
        "token_ticker": token.ticker if token else None,
        "token_amount_atoms": token.amount_atoms if token else None,
        "is_mint_authority": token.is_mint_authority if token else False,
    }


def security_export(
    report: SecurityReport, analysis_time: datetime | None = None
) -> ExportDocument:
    return ExportDocument(
        kind=ExportKind.SECURITY,
        wallet_address=report.address,
        analysis_time=analysis_time or datetime.now(UTC),
        summary=_summary(report),
        threats=report.threats,
        recommendations=report.recommendations,
        warnings=report.warnings,
        payload={
            "analysis": report.analysis.model_dump(mode="json"),
            "token_portfolio": report.token_portfolio.model_dump(mode="json"),
            "token_risks": [t.model_dump(mode="json") for t in report.token_risks],
        },
    )


def health_export(health: HealthReport) -> ExportDocument:
    return ExportDocument(
        kind=ExportKind.HEALTH,
        wallet_address=health.address,
        analysis_time=health.analysis_time,
        summary={
            "overall_score": health.overall_score,
            "status": health.status.value,
            **health.metrics.model_dump(mode="json"),
        },
        threats=health.threats,
        recommendations=health.recommendations,
        warnings=health.warnings,
        payload={
            "balance": health.balance.model_dump(mode="json") if health.balance else None,
            "value_distribution": health.value_distribution,
            "atoms_in_tokens": health.atoms_in_tokens,
            "available_for_fees": health.available_for_fees,
            "portfolio": health.portfolio.model_dump(mode="json"),
        },
    )


def classification_export(
    utxos: Sequence[ClassifiedUtxo],
    report: SecurityReport,
    filter_terms: Sequence[str] | None = None,
    analysis_time: datetime | None = None,
) -> ExportDocument:
    portfolio = report.token_portfolio
    return ExportDocument(
        kind=ExportKind.CLASSIFICATION,
        wallet_address=report.address,
        analysis_time=analysis_time or datetime.now(UTC),
        summary=_summary(report),
        threats=report.threats,
        recommendations=report.recommendations,
        warnings=report.warnings,
        payload={
            "filter": list(filter_terms or []),
            "by_type": portfolio.by_type,
            "by_category": portfolio.by_category,
            "dust_analysis": {
                "pure_dust": portfolio.by_type.get("pure-dust", 0),
                "token_dust": portfolio.token_dust_utxos,
            },
            "utxos": [utxo_row(u) for u in utxos],
        },
    )


def export_filename(document: ExportDocument) -> str:
    tail = document.wallet_address.split(":")[-1]
    label = re.sub(r"[^A-Za-z0-9]", "", tail)[:12] or "wallet"
    stamp = document.analysis_time.strftime("%Y%m%d-%H%M%S")
    return f"{label}-{document.kind.value}-report-{stamp}.json"


def write_export(document: ExportDocument, destination: Path) -> Path:
    """
    Write an export document.

    Args:
        document: Document to write
        destination: A directory (a generated filename is used) or a .json path

    Returns:
        Path of the written file
    """
    if destination.suffix == ".json":
        path = destination
    else:
        path = destination / export_filename(document)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(document.to_json())
    logger.info(f"Exported {document.kind.value} report to {path}")
    return path
