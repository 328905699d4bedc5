"""
Tests for security scoring and threat detection.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from utxoguard.classifier import apply_insight, classify_all
from utxoguard.models import (
    ClassifiedUtxo,
    DetailedBalance,
    HealthStatus,
    RawUtxo,
    SecurityStatus,
    Severity,
    ThreatKind,
)
from utxoguard.scorer import (
    build_health_report,
    build_security_report,
    composite_score,
    status_for_score,
    value_distribution,
)

ADDRESS = "ecash:qz2708636snqhsxu8wnlka78h6fdp77ar59jrf5035"

MakeUtxo = Callable[..., RawUtxo]
TokenData = Callable[..., dict[str, Any]]


def _kinds(utxos: list[ClassifiedUtxo]) -> dict[ThreatKind, Any]:
    report = build_security_report(utxos, ADDRESS)
    return {t.kind: t for t in report.threats}


class TestDustDetection:
    """Tests for dust attack and systematic dust detection."""

    def test_four_dust_is_not_an_attack(self, make_utxo: MakeUtxo) -> None:
        """Test that four dust outputs stay below the attack threshold."""
        utxos = classify_all([make_utxo(v) for v in (100, 200, 300, 400)] + [make_utxo(50_000)])
        assert ThreatKind.DUST_ATTACK not in _kinds(utxos)

    def test_five_dust_is_an_attack(self, make_utxo: MakeUtxo) -> None:
        """Test that five dust outputs raise a high dust-attack threat."""
        utxos = classify_all([make_utxo(v) for v in (100, 200, 300, 400, 500)])
        threat = _kinds(utxos)[ThreatKind.DUST_ATTACK]
        assert threat.severity == Severity.HIGH
        assert threat.affected_count == 5
        assert threat.details["total_dust_atoms"] == 1_500
        assert threat.details["average_dust_atoms"] == 300

    def test_token_outputs_never_count_as_dust(
        self, make_utxo: MakeUtxo, token_data: TokenData
    ) -> None:
        """Test that 546-atom token outputs do not trigger dust detection."""
        utxos = classify_all([make_utxo(546, token=token_data()) for _ in range(8)])
        report = build_security_report(utxos, ADDRESS)
        assert report.metrics.dust_utxos == 0
        assert report.metrics.healthy_utxos == 8
        assert report.metrics.token_utxos == 8
        assert report.metrics.token_ratio == 100.0
        assert ThreatKind.DUST_ATTACK not in {t.kind for t in report.threats}
        assert ThreatKind.SYSTEMATIC_DUST not in {t.kind for t in report.threats}

    def test_five_identical_is_systematic(self, make_utxo: MakeUtxo) -> None:
        """Test that five identical dust values raise a critical threat."""
        utxos = classify_all([make_utxo(546) for _ in range(5)])
        threat = _kinds(utxos)[ThreatKind.SYSTEMATIC_DUST]
        assert threat.severity == Severity.CRITICAL
        assert threat.description == "5 UTXOs with identical value 546 satoshis"

    def test_four_identical_is_only_a_pattern(self, make_utxo: MakeUtxo) -> None:
        """Test that four identical dust values are recorded without a critical threat."""
        utxos = classify_all([make_utxo(546) for _ in range(4)])
        report = build_security_report(utxos, ADDRESS)
        assert ThreatKind.SYSTEMATIC_DUST not in {t.kind for t in report.threats}
        assert len(report.analysis.dust_patterns) == 1
        pattern = report.analysis.dust_patterns[0]
        assert pattern.value_atoms == 546
        assert pattern.count == 4
        assert not pattern.suspicious


class TestPrivacyDetection:
    """Tests for privacy-related detectors."""

    def test_default_privacy_score(self, make_utxo: MakeUtxo) -> None:
        """Test that unscored wallets use the default privacy score."""
        report = build_security_report(classify_all([make_utxo(5_000)]), ADDRESS)
        assert report.metrics.privacy_score == 50
        assert report.analysis.scored_utxos == 0

    def test_low_privacy(self, make_utxo: MakeUtxo) -> None:
        """Test that a low average privacy score raises a medium threat."""
        utxos = [
            apply_insight(u, score, HealthStatus.UNKNOWN)
            for u, score in zip(
                classify_all([make_utxo(5_001), make_utxo(5_002), make_utxo(5_003)]),
                (20, 25, 60),
                strict=True,
            )
        ]
        report = build_security_report(utxos, ADDRESS)
        threat = {t.kind: t for t in report.threats}[ThreatKind.LOW_PRIVACY]
        assert threat.severity == Severity.MEDIUM
        assert threat.affected_count == 2
        assert report.metrics.privacy_score == 35
        assert any(r.title == "Improve Privacy Score" for r in report.recommendations)

    def test_round_numbers(self, make_utxo: MakeUtxo) -> None:
        """Test that three round amounts raise a low threat."""
        utxos = classify_all([make_utxo(v) for v in (100_000, 50_000, 20_000, 12_345)])
        assert _kinds(utxos)[ThreatKind.ROUND_NUMBERS].severity == Severity.LOW

    def test_two_round_numbers_ignored(self, make_utxo: MakeUtxo) -> None:
        """Test that two round amounts are below the threshold."""
        utxos = classify_all([make_utxo(v) for v in (100_000, 50_000, 12_345)])
        assert ThreatKind.ROUND_NUMBERS not in _kinds(utxos)


class TestSuspiciousAndNetwork:
    """Tests for suspicious, unconfirmed and concentration detectors."""

    def _suspicious(self, make_utxo: MakeUtxo, count: int) -> list[ClassifiedUtxo]:
        return [
            apply_insight(u, None, HealthStatus.SUSPICIOUS)
            for u in classify_all([make_utxo(5_000 + i) for i in range(count)])
        ]

    def test_few_suspicious_is_medium(self, make_utxo: MakeUtxo) -> None:
        threat = _kinds(self._suspicious(make_utxo, 2))[ThreatKind.SUSPICIOUS_UTXOS]
        assert threat.severity == Severity.MEDIUM
        assert threat.affected_count == 2

    def test_many_suspicious_is_high(self, make_utxo: MakeUtxo) -> None:
        threat = _kinds(self._suspicious(make_utxo, 5))[ThreatKind.SUSPICIOUS_UTXOS]
        assert threat.severity == Severity.HIGH

    def test_no_suspicious_no_threat(self, make_utxo: MakeUtxo) -> None:
        assert ThreatKind.SUSPICIOUS_UTXOS not in _kinds(classify_all([make_utxo(5_000)]))

    def test_unconfirmed_accumulation(self, make_utxo: MakeUtxo) -> None:
        """Test that ten unconfirmed outputs raise a medium threat."""
        utxos = classify_all([make_utxo(5_000 + i, height=None) for i in range(10)])
        assert _kinds(utxos)[ThreatKind.UNCONFIRMED_ACCUMULATION].severity == Severity.MEDIUM

    def test_zero_height_is_unconfirmed(self, make_utxo: MakeUtxo) -> None:
        """Test that height zero counts as unconfirmed."""
        report = build_security_report(classify_all([make_utxo(5_000, height=0)]), ADDRESS)
        assert report.metrics.unconfirmed_utxos == 1

    def test_address_concentration(self, make_utxo: MakeUtxo) -> None:
        """Test that fifty outputs on one address raise a low threat."""
        utxos = classify_all([make_utxo(5_000 + i) for i in range(50)])
        threat = _kinds(utxos)[ThreatKind.ADDRESS_CONCENTRATION]
        assert threat.severity == Severity.LOW
        assert threat.recommendation == "Consider using HD address rotation for better privacy"


class TestScore:
    """Tests for the composite score and status bands."""

    @pytest.mark.parametrize(
        ("score", "status"),
        [
            (0, SecurityStatus.CRITICAL),
            (29.9, SecurityStatus.CRITICAL),
            (30, SecurityStatus.AT_RISK),
            (49.9, SecurityStatus.AT_RISK),
            (50, SecurityStatus.MODERATE),
            (69.9, SecurityStatus.MODERATE),
            (70, SecurityStatus.GOOD),
            (84.9, SecurityStatus.GOOD),
            (85, SecurityStatus.SECURE),
            (100, SecurityStatus.SECURE),
        ],
    )
    def test_status_bands(self, score: float, status: SecurityStatus) -> None:
        assert status_for_score(score) == status

    def test_composite_formula(self) -> None:
        """Test the weighted composite for a clean wallet."""
        assert composite_score(50, 100, 0, 0) == pytest.approx(80.0)
        assert composite_score(100, 100, 0, 0) == pytest.approx(100.0)

    def test_penalties_floor_at_zero(self) -> None:
        """Test that dust and suspicious penalties cannot go negative."""
        assert composite_score(0, 0, 100, 100) == 0.0

    def test_monotonic_in_dust_ratio(self) -> None:
        """Test that more dust never raises the score."""
        scores = [composite_score(50, 60, dust, 5) for dust in range(0, 101, 5)]
        assert scores == sorted(scores, reverse=True)

    def test_clean_wallet_report(self, make_utxo: MakeUtxo) -> None:
        """Test the score and status of a healthy wallet."""
        utxos = classify_all([make_utxo(5_000 + i) for i in range(4)])
        report = build_security_report(utxos, ADDRESS)
        assert report.overall_score == 80
        assert report.status == SecurityStatus.GOOD
        assert report.threats == []

    def test_status_follows_reported_score(self, make_utxo: MakeUtxo) -> None:
        """Test that the status band is derived from the rounded overall score."""
        utxos = [
            apply_insight(u, score, HealthStatus.UNKNOWN)
            for u, score in zip(
                classify_all([make_utxo(5_000), make_utxo(5_001)]), (61, 62), strict=True
            )
        ]
        report = build_security_report(utxos, ADDRESS)
        assert report.overall_score == 85
        assert report.status == SecurityStatus.SECURE
        assert report.status == status_for_score(report.overall_score)

    def test_empty_wallet(self) -> None:
        """Test that an empty wallet still produces a report."""
        report = build_security_report([], ADDRESS)
        assert report.metrics.total_utxos == 0
        assert report.metrics.dust_ratio == 0.0
        assert report.overall_score == 50
        assert report.status == SecurityStatus.MODERATE

    def test_ratios_rounded(self, make_utxo: MakeUtxo) -> None:
        """Test ratios are percentages rounded to two decimals."""
        utxos = classify_all([make_utxo(100), make_utxo(5_000), make_utxo(6_000)])
        report = build_security_report(utxos, ADDRESS)
        assert report.metrics.dust_ratio == 33.33


class TestOrdering:
    """Tests for threat and recommendation ordering."""

    def test_sorted_by_weight(self, make_utxo: MakeUtxo) -> None:
        """Test that threats and recommendations are sorted by weight, descending."""
        utxos = classify_all([make_utxo(546) for _ in range(6)] + [make_utxo(100_000)])
        report = build_security_report(utxos, ADDRESS)
        threat_weights = [t.severity.weight for t in report.threats]
        rec_weights = [r.priority.weight for r in report.recommendations]
        assert threat_weights == sorted(threat_weights, reverse=True)
        assert rec_weights == sorted(rec_weights, reverse=True)
        assert report.threats[0].kind == ThreatKind.SYSTEMATIC_DUST
        assert report.recommendations[0].priority == Severity.CRITICAL

    def test_analytics_unavailable_flag(self, make_utxo: MakeUtxo) -> None:
        """Test that degraded analytics is carried into the report."""
        report = build_security_report(
            classify_all([make_utxo(5_000)]),
            ADDRESS,
            analytics_available=False,
            warnings=["analytics offline"],
        )
        assert not report.analytics_available
        assert report.warnings == ["analytics offline"]


class TestHealthReport:
    """Tests for the health dashboard."""

    def test_value_distribution(self, classified: list[ClassifiedUtxo]) -> None:
        """Test token-aware value buckets."""
        buckets = value_distribution(classified)
        assert buckets["token-utxos"] == 3
        assert buckets["pure-dust"] == 1
        assert buckets["small"] == 1
        assert buckets["medium"] == 1
        assert buckets["large"] == 1
        assert sum(buckets.values()) == len(classified)

    def test_available_for_fees_with_balance(self, classified: list[ClassifiedUtxo]) -> None:
        """Test that token-locked atoms are not counted as available for fees."""
        balance = DetailedBalance(confirmed_atoms=257_738, unconfirmed_atoms=0)
        health = build_health_report(classified, ADDRESS, balance)
        assert health.atoms_in_tokens == 1_638
        assert health.available_for_fees == 257_738 - 1_638

    def test_available_for_fees_without_balance(self, classified: list[ClassifiedUtxo]) -> None:
        """Test the fallback to spendable plain outputs."""
        health = build_health_report(classified, ADDRESS)
        assert health.balance is None
        assert health.available_for_fees == 800 + 5_000 + 250_000
