"""
Wallet analysis service.

Fetches a snapshot through the wallet client and runs it through the shared
engine: classify, enrich, score. Every command uses this one path.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from utxoguard.analytics import UtxoAnalytics, collect_insights, enrich
from utxoguard.backends.base import WalletClient
from utxoguard.classifier import classify_all
from utxoguard.config import DEFAULT_CONFIG, ClassificationConfig
from utxoguard.constants import DEFAULT_METADATA_CONCURRENCY
from utxoguard.enrichment import fetch_token_metadata, token_ids
from utxoguard.models import (
    ClassifiedUtxo,
    DetailedBalance,
    HealthReport,
    SecurityReport,
    TokenMetadata,
)
from utxoguard.scorer import build_health_report, build_security_report
from utxoguard.selector import SpendStrategy, StrategySelection, build_selection


class AnalysisUnavailableError(Exception):
    """Raised when the UTXO snapshot itself cannot be obtained."""

    pass


@dataclass
class WalletAnalysis:
    address: str
    utxos: list[ClassifiedUtxo]
    report: SecurityReport
    balance: DetailedBalance | None = None
    metadata: dict[str, TokenMetadata] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True when some enrichment fell back to defaults."""
        return bool(self.warnings) or not self.report.analytics_available


class WalletAnalyzer:
    """
    Runs the classification engine against a wallet client.

    Only a failed snapshot fetch aborts the analysis. Analytics, balance and
    token metadata are enrichment: failures there are recorded as warnings
    and the report is built from defaults.
    """

    def __init__(
        self,
        client: WalletClient,
        analytics: UtxoAnalytics | None = None,
        config: ClassificationConfig | None = None,
        metadata_concurrency: int = DEFAULT_METADATA_CONCURRENCY,
    ):
        self.client = client
        self.analytics = analytics
        self.config = config or DEFAULT_CONFIG
        self.metadata_concurrency = metadata_concurrency

    async def analyze(self) -> WalletAnalysis:
        try:
            address = self.client.address
            raw = await self.client.get_utxo_snapshot()
        except Exception as e:
            logger.error(f"Could not fetch UTXO snapshot: {e}")
            raise AnalysisUnavailableError(f"UTXO snapshot unavailable: {e}") from e

        warnings: list[str] = list(getattr(self.client, "skipped", []))

        insights = collect_insights(self.analytics, raw)
        warnings.extend(insights.warnings)
        utxos = enrich(classify_all(raw, self.config), insights)

        balance = await self._fetch_balance(warnings)

        metadata = await fetch_token_metadata(
            self.client, token_ids(utxos), self.metadata_concurrency
        )
        warnings.extend(metadata.warnings)

        report = build_security_report(
            utxos,
            address,
            self.config,
            analytics_available=insights.available,
            warnings=warnings,
            metadata=metadata.metadata,
        )
        return WalletAnalysis(
            address=address,
            utxos=utxos,
            report=report,
            balance=balance,
            metadata=metadata.metadata,
            warnings=warnings,
        )

    async def _fetch_balance(self, warnings: list[str]) -> DetailedBalance | None:
        try:
            return await self.client.get_detailed_balance()
        except Exception as e:
            logger.warning(f"Balance unavailable: {e}")
            warnings.append(f"Balance unavailable: {e}")
            return None

    def health_report(self, analysis: WalletAnalysis) -> HealthReport:
        return build_health_report(
            analysis.utxos,
            analysis.address,
            analysis.balance,
            self.config,
            analytics_available=analysis.report.analytics_available,
            warnings=analysis.warnings,
            metadata=analysis.metadata,
        )

    def selection(
        self, analysis: WalletAnalysis, strategy: SpendStrategy | str
    ) -> StrategySelection:
        return build_selection(analysis.utxos, strategy, self.config)


async def analyze_wallet(
    client: WalletClient,
    analytics: UtxoAnalytics | None = None,
    config: ClassificationConfig | None = None,
) -> WalletAnalysis:
    return await WalletAnalyzer(client, analytics, config).analyze()
