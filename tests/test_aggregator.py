"""
Tests for portfolio aggregation and token risks.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from utxoguard.aggregator import aggregate, assess_token_risks, diversification_level
from utxoguard.classifier import classify_all
from utxoguard.models import (
    ClassifiedUtxo,
    RawUtxo,
    Severity,
    ThreatKind,
    TokenMetadata,
    UtxoType,
)

TOKEN_ID = "1c6c9c64d70b285befe733f175d0f384538576876bd280b10587df81279d3f5e"
OTHER_TOKEN_ID = "fb4233e8a568993976ed38a81c2671587c5ad09552dedefa78760deed6ff87aa"


class TestAggregate:
    """Tests for aggregate()."""

    def test_counts_are_complete(self, classified: list[ClassifiedUtxo]) -> None:
        """Test that per-type counts sum to the total."""
        summary = aggregate(classified)
        assert summary.total == 7
        assert sum(summary.by_type.values()) == summary.total
        assert sum(summary.by_category.values()) == summary.total
        assert set(summary.by_type) == {t.value for t in UtxoType}

    def test_token_figures(self, classified: list[ClassifiedUtxo]) -> None:
        """Test unique tokens, mint batons and token UTXO counts."""
        summary = aggregate(classified)
        assert summary.token_utxos == 3
        assert summary.unique_tokens == 2
        assert summary.mint_authorities == 1
        assert summary.token_dust_utxos == 3
        assert summary.by_category == {"tokens": 3, "dust": 1, "currency": 3}

    def test_value_totals(self, classified: list[ClassifiedUtxo]) -> None:
        """Test that token-locked and plain atoms partition the total."""
        summary = aggregate(classified)
        assert summary.atoms_in_tokens == 3 * 546
        assert summary.plain_atoms == 300 + 800 + 5_000 + 250_000
        assert summary.total_atoms == summary.atoms_in_tokens + summary.plain_atoms

    def test_holdings(self, classified: list[ClassifiedUtxo]) -> None:
        """Test per-token holdings, largest first."""
        holdings = aggregate(classified).holdings
        assert [h.token_id for h in holdings] == [TOKEN_ID, OTHER_TOKEN_ID]
        assert holdings[0].utxo_count == 2
        assert holdings[0].amount_atoms == 1_250
        assert holdings[1].mint_authorities == 1

    def test_metadata_fills_ticker(self, classified: list[ClassifiedUtxo]) -> None:
        """Test that fetched metadata supplies missing tickers."""
        metadata = {TOKEN_ID: TokenMetadata(token_id=TOKEN_ID, ticker="GRP", name="Group")}
        holdings = {h.token_id: h for h in aggregate(classified, metadata).holdings}
        assert holdings[TOKEN_ID].ticker == "GRP"
        assert holdings[OTHER_TOKEN_ID].ticker is None

    def test_empty(self) -> None:
        """Test aggregation of an empty wallet."""
        summary = aggregate([])
        assert summary.total == 0
        assert summary.unique_tokens == 0
        assert summary.diversification == "none"
        assert not summary.has_tokens


class TestDiversification:
    """Tests for diversification levels."""

    def test_levels(self) -> None:
        assert diversification_level(0) == "none"
        assert diversification_level(2) == "low"
        assert diversification_level(3) == "medium"
        assert diversification_level(5) == "high"


class TestTokenRisks:
    """Tests for assess_token_risks()."""

    def test_mint_baton_custody(self, classified: list[ClassifiedUtxo]) -> None:
        """Test that holding a mint baton raises a high custody risk."""
        threats, recommendations = assess_token_risks(aggregate(classified))
        kinds = {t.kind for t in threats}
        assert ThreatKind.MINT_AUTHORITY_CUSTODY in kinds
        assert any(r.title == "Secure Mint Baton Storage" for r in recommendations)
        assert any(r.title == "Review Token Portfolio" for r in recommendations)

    def test_concentration_and_fragmentation(
        self,
        make_utxo: Callable[..., RawUtxo],
        token_data: Callable[..., dict[str, Any]],
    ) -> None:
        """Test that many outputs of one token trigger concentration and fragmentation."""
        utxos = classify_all([make_utxo(546, token=token_data()) for _ in range(10)])
        threats, recommendations = assess_token_risks(aggregate(utxos))
        by_kind = {t.kind: t for t in threats}
        assert by_kind[ThreatKind.TOKEN_CONCENTRATION].severity == Severity.MEDIUM
        assert by_kind[ThreatKind.TOKEN_CONCENTRATION].affected_count == 10
        assert by_kind[ThreatKind.TOKEN_FRAGMENTATION].severity == Severity.LOW
        assert ThreatKind.MINT_AUTHORITY_CUSTODY not in by_kind
        assert any(r.title == "Consolidate Token UTXOs" for r in recommendations)

    def test_no_tokens_no_risks(self, make_utxo: Callable[..., RawUtxo]) -> None:
        """Test that a plain XEC wallet has no token risks."""
        threats, recommendations = assess_token_risks(aggregate(classify_all([make_utxo(5_000)])))
        assert threats == []
        assert recommendations == []
