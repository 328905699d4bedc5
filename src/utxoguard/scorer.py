"""
Wallet security and health scoring.

Runs the threat detectors over a classified UTXO set, folds the results into
a composite 0-100 score and emits prioritized recommendations. Dust counts
always come from the token-aware classification, so 546-atom token outputs
never count as dust.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime

from loguru import logger

from utxoguard import constants
from utxoguard.aggregator import aggregate, assess_token_risks
from utxoguard.config import DEFAULT_CONFIG, ClassificationConfig
from utxoguard.models import (
    ClassifiedUtxo,
    DetailedBalance,
    DustPattern,
    HealthReport,
    HealthStatus,
    Recommendation,
    SecurityMetrics,
    SecurityReport,
    SecurityStatus,
    Severity,
    Threat,
    ThreatAnalysis,
    ThreatKind,
    TokenMetadata,
)

CLI = "utxoguard"


def status_for_score(score: float) -> SecurityStatus:
    if score < 30:
        return SecurityStatus.CRITICAL
    if score < 50:
        return SecurityStatus.AT_RISK
    if score < 70:
        return SecurityStatus.MODERATE
    if score < 85:
        return SecurityStatus.GOOD
    return SecurityStatus.SECURE


def composite_score(
    privacy_score: float, healthy_pct: float, dust_pct: float, suspicious_pct: float
) -> float:
    """
    Weighted 0-100 wallet score.

    Args:
        privacy_score: Average privacy sub-score (0-100)
        healthy_pct: Percentage of healthy UTXOs
        dust_pct: Percentage of pure-dust UTXOs
        suspicious_pct: Percentage of suspicious UTXOs

    Returns:
        Unrounded score clamped to [0, 100]
    """
    score = (
        privacy_score * constants.PRIVACY_WEIGHT
        + healthy_pct * constants.HEALTH_WEIGHT
        + max(0.0, 100 - dust_pct * constants.DUST_PENALTY) * constants.DUST_WEIGHT
        + max(0.0, 100 - suspicious_pct * constants.SUSPICIOUS_PENALTY)
        * constants.SUSPICIOUS_WEIGHT
    )
    return min(100.0, max(0.0, score))


def _pct(part: int, total: int) -> float:
    return part / total * 100 if total else 0.0


def _is_round(value: int, units: Iterable[int]) -> bool:
    return value > 0 and any(value % unit == 0 for unit in units)


def _by_weight(items: list, key) -> list:
    # sorted() is stable, so equal weights keep detector order
    return sorted(items, key=lambda item: key(item).weight, reverse=True)


def analyze_threats(
    utxos: Sequence[ClassifiedUtxo], config: ClassificationConfig
) -> ThreatAnalysis:
    """Collect the raw measurements every detector works from."""
    dust = [u for u in utxos if u.is_pure_dust]
    value_counts = Counter(u.value_atoms for u in dust)
    patterns = [
        DustPattern(
            value_atoms=value,
            count=count,
            suspicious=count >= config.systematic_dust_count,
        )
        for value, count in sorted(value_counts.items())
        if count >= config.dust_pattern_count
    ]

    scores = [u.privacy_score for u in utxos if u.privacy_score is not None]
    average = sum(scores) / len(scores) if scores else float(config.default_privacy_score)

    return ThreatAnalysis(
        dust_count=len(dust),
        total_dust_atoms=sum(u.value_atoms for u in dust),
        dust_patterns=patterns,
        average_privacy_score=average,
        scored_utxos=len(scores),
        poor_privacy_utxos=sum(1 for s in scores if s < config.poor_utxo_privacy_score),
        round_number_utxos=sum(
            1 for u in utxos if _is_round(u.value_atoms, config.round_number_units)
        ),
        suspicious_utxos=sum(1 for u in utxos if u.health.status == HealthStatus.SUSPICIOUS),
        unconfirmed_utxos=sum(1 for u in utxos if not u.utxo.is_confirmed),
    )


def detect_threats(
    analysis: ThreatAnalysis, total: int, config: ClassificationConfig
) -> list[Threat]:
    threats: list[Threat] = []

    if analysis.dust_count >= config.dust_attack_count:
        average_dust = analysis.total_dust_atoms / analysis.dust_count
        threats.append(
            Threat(
                kind=ThreatKind.DUST_ATTACK,
                severity=Severity.HIGH,
                title="Potential Dust Attack",
                description=f"{analysis.dust_count} pure dust UTXOs without token data",
                impact="Spending dust alongside other coins can link your addresses",
                affected_count=analysis.dust_count,
                details={
                    "dust_count": analysis.dust_count,
                    "total_dust_atoms": analysis.total_dust_atoms,
                    "average_dust_atoms": round(average_dust, 2),
                },
                recommendation="Do not spend dust outputs together with your regular coins",
            )
        )

    for pattern in analysis.dust_patterns:
        if not pattern.suspicious:
            continue
        threats.append(
            Threat(
                kind=ThreatKind.SYSTEMATIC_DUST,
                severity=Severity.CRITICAL,
                title="Systematic Dust Pattern",
                description=(
                    f"{pattern.count} UTXOs with identical value {pattern.value_atoms} satoshis"
                ),
                impact="Identical dust amounts indicate a coordinated tracking attempt",
                affected_count=pattern.count,
                details={"value_atoms": pattern.value_atoms, "count": pattern.count},
                recommendation="Freeze these outputs and never include them in a transaction",
            )
        )

    if analysis.average_privacy_score < config.low_privacy_threshold:
        threats.append(
            Threat(
                kind=ThreatKind.LOW_PRIVACY,
                severity=Severity.MEDIUM,
                title="Low Privacy Score",
                description=(
                    f"Average privacy score is {round(analysis.average_privacy_score)}/100"
                ),
                impact="Transactions from this wallet are easy to cluster",
                affected_count=analysis.poor_privacy_utxos,
                recommendation="Prefer the privacy spending strategy",
            )
        )

    if analysis.round_number_utxos >= config.round_number_count:
        threats.append(
            Threat(
                kind=ThreatKind.ROUND_NUMBERS,
                severity=Severity.LOW,
                title="Round Number Amounts",
                description=f"{analysis.round_number_utxos} UTXOs carry round amounts",
                impact="Round amounts make payments easier to identify",
                affected_count=analysis.round_number_utxos,
            )
        )

    if analysis.suspicious_utxos > 0:
        severity = (
            Severity.HIGH
            if analysis.suspicious_utxos >= config.suspicious_high_count
            else Severity.MEDIUM
        )
        threats.append(
            Threat(
                kind=ThreatKind.SUSPICIOUS_UTXOS,
                severity=severity,
                title="Suspicious UTXOs",
                description=f"{analysis.suspicious_utxos} UTXOs flagged as suspicious",
                impact="Suspicious outputs may be linked to tracking or fraud",
                affected_count=analysis.suspicious_utxos,
            )
        )

    if analysis.unconfirmed_utxos >= config.unconfirmed_accumulation_count:
        threats.append(
            Threat(
                kind=ThreatKind.UNCONFIRMED_ACCUMULATION,
                severity=Severity.MEDIUM,
                title="Unconfirmed UTXO Accumulation",
                description=f"{analysis.unconfirmed_utxos} UTXOs are not yet confirmed",
                impact="Unconfirmed outputs can still be double-spent or dropped",
                affected_count=analysis.unconfirmed_utxos,
            )
        )

    if total >= config.address_concentration_count:
        threats.append(
            Threat(
                kind=ThreatKind.ADDRESS_CONCENTRATION,
                severity=Severity.LOW,
                title="Address Concentration",
                description=f"{total} UTXOs held on a single address",
                impact="All activity is visible under one address",
                affected_count=total,
                recommendation="Consider using HD address rotation for better privacy",
            )
        )

    return threats


def build_recommendations(
    threats: Sequence[Threat],
    analysis: ThreatAnalysis,
    overall_score: float,
    config: ClassificationConfig,
) -> list[Recommendation]:
    kinds = {t.kind for t in threats}
    recommendations: list[Recommendation] = []

    if ThreatKind.SYSTEMATIC_DUST in kinds:
        recommendations.append(
            Recommendation(
                priority=Severity.CRITICAL,
                category="dust-attack",
                title="Quarantine Identical Dust",
                description="Several dust outputs share one exact value",
                action="Exclude these outputs from every transaction",
                command_hint=f"{CLI} classify --filter pure-dust",
                impact="Stops the tracker from linking your spends",
            )
        )

    if ThreatKind.DUST_ATTACK in kinds:
        recommendations.append(
            Recommendation(
                priority=Severity.HIGH,
                category="dust-attack",
                title="Mitigate Dust Attack",
                description=f"{analysis.dust_count} dust UTXOs detected",
                action="Keep dust out of coin selection; the selector already excludes it",
                command_hint=f"{CLI} select --strategy security",
                impact="Prevents address clustering through dust",
            )
        )

    if analysis.average_privacy_score < config.privacy_recommendation_threshold:
        recommendations.append(
            Recommendation(
                priority=Severity.MEDIUM,
                category="privacy",
                title="Improve Privacy Score",
                description=(
                    f"Privacy score is {round(analysis.average_privacy_score)}/100"
                ),
                action="Spend with the privacy strategy and avoid address reuse",
                command_hint=f"{CLI} select --strategy privacy",
                impact="Harder transaction graph analysis",
            )
        )

    if ThreatKind.ROUND_NUMBERS in kinds:
        recommendations.append(
            Recommendation(
                priority=Severity.LOW,
                category="privacy",
                title="Avoid Round Amounts",
                description=f"{analysis.round_number_utxos} UTXOs carry round amounts",
                action="Use non-round payment amounts where possible",
                impact="Payments blend in with change outputs",
            )
        )

    if analysis.suspicious_utxos > 0:
        recommendations.append(
            Recommendation(
                priority=Severity.HIGH,
                category="security",
                title="Review Suspicious UTXOs",
                description=f"{analysis.suspicious_utxos} suspicious UTXOs detected",
                action="Inspect the flagged outputs before spending them",
                command_hint=f"{CLI} classify --filter suspicious",
                impact="Avoids interacting with tainted funds",
            )
        )

    if ThreatKind.UNCONFIRMED_ACCUMULATION in kinds:
        recommendations.append(
            Recommendation(
                priority=Severity.MEDIUM,
                category="network",
                title="Wait for Confirmations",
                description=f"{analysis.unconfirmed_utxos} UTXOs are unconfirmed",
                action="Let pending transactions confirm before spending their outputs",
                impact="Avoids chains of unconfirmed transactions",
            )
        )

    if ThreatKind.ADDRESS_CONCENTRATION in kinds:
        recommendations.append(
            Recommendation(
                priority=Severity.LOW,
                category="privacy",
                title="Rotate Receive Addresses",
                description="All UTXOs sit on a single address",
                action="Consider using HD address rotation for better privacy",
                impact="Spreads activity across addresses",
            )
        )

    if overall_score < config.general_recommendation_score:
        recommendations.append(
            Recommendation(
                priority=Severity.MEDIUM,
                category="general",
                title="Improve Overall Security",
                description=f"Security score is {round(overall_score)}/100",
                action="Work through the recommendations above and re-run the analysis",
                command_hint=f"{CLI} security",
                impact="Better wallet hygiene overall",
            )
        )

    return recommendations


def build_security_report(
    utxos: Sequence[ClassifiedUtxo],
    address: str,
    config: ClassificationConfig | None = None,
    analytics_available: bool = True,
    warnings: Iterable[str] = (),
    metadata: Mapping[str, TokenMetadata] | None = None,
) -> SecurityReport:
    """
    Score a classified UTXO set.

    Args:
        utxos: Classified (and optionally analytics-enriched) UTXOs
        address: Wallet address the snapshot belongs to
        config: Detector thresholds
        analytics_available: False when the analytics collaborator could not
            be consulted; the report then relies on default privacy scores
        warnings: Enrichment warnings to carry into the report
        metadata: Optional token metadata for the portfolio summary

    Returns:
        SecurityReport with threats and recommendations sorted by weight
    """
    config = config or DEFAULT_CONFIG
    total = len(utxos)

    analysis = analyze_threats(utxos, config)
    portfolio = aggregate(utxos, metadata, config)

    healthy = sum(1 for u in utxos if u.health.status == HealthStatus.HEALTHY)
    healthy_pct = _pct(healthy, total)
    dust_pct = _pct(analysis.dust_count, total)
    suspicious_pct = _pct(analysis.suspicious_utxos, total)

    score = composite_score(analysis.average_privacy_score, healthy_pct, dust_pct, suspicious_pct)
    overall = round(score)
    status = status_for_score(overall)

    metrics = SecurityMetrics(
        total_utxos=total,
        healthy_utxos=healthy,
        dust_utxos=analysis.dust_count,
        token_utxos=portfolio.token_utxos,
        suspicious_utxos=analysis.suspicious_utxos,
        unconfirmed_utxos=analysis.unconfirmed_utxos,
        privacy_score=round(analysis.average_privacy_score),
        dust_ratio=round(dust_pct, 2),
        suspicious_ratio=round(suspicious_pct, 2),
        token_ratio=round(_pct(portfolio.token_utxos, total), 2),
    )

    threats = detect_threats(analysis, total, config)
    token_risks, token_recommendations = assess_token_risks(portfolio, config)
    recommendations = build_recommendations(threats, analysis, overall, config)
    recommendations.extend(token_recommendations)

    report = SecurityReport(
        address=address,
        overall_score=overall,
        status=status,
        metrics=metrics,
        threats=_by_weight(threats, lambda t: t.severity),
        recommendations=_by_weight(recommendations, lambda r: r.priority),
        token_portfolio=portfolio,
        token_risks=_by_weight(token_risks, lambda t: t.severity),
        analysis=analysis,
        analytics_available=analytics_available,
        warnings=list(warnings),
    )
    logger.info(
        f"Security score for {address}: {report.overall_score}/100 ({status.value}), "
        f"{len(report.threats)} threat(s)"
    )
    return report


VALUE_BUCKETS = (
    ("micro", 10),
    ("small", 1_000),
    ("medium", 100_000),
    ("large", 10_000_000),
)


def value_distribution(utxos: Iterable[ClassifiedUtxo]) -> dict[str, int]:
    """Token-aware value buckets in atoms; token and dust outputs are counted apart."""
    buckets = {"token-utxos": 0, "pure-dust": 0}
    buckets.update({name: 0 for name, _ in VALUE_BUCKETS})
    buckets["whale"] = 0

    for item in utxos:
        if item.has_token:
            buckets["token-utxos"] += 1
        elif item.is_pure_dust:
            buckets["pure-dust"] += 1
        else:
            name = next(
                (name for name, limit in VALUE_BUCKETS if item.value_atoms < limit), "whale"
            )
            buckets[name] += 1
    return buckets


def build_health_report(
    utxos: Sequence[ClassifiedUtxo],
    address: str,
    balance: DetailedBalance | None = None,
    config: ClassificationConfig | None = None,
    analytics_available: bool = True,
    warnings: Iterable[str] = (),
    metadata: Mapping[str, TokenMetadata] | None = None,
) -> HealthReport:
    """Health dashboard built on the security report plus balance figures."""
    warnings = list(warnings)
    report = build_security_report(
        utxos, address, config, analytics_available, warnings, metadata
    )
    portfolio = report.token_portfolio

    if balance is not None:
        available = max(0, balance.confirmed_atoms - portfolio.atoms_in_tokens)
    else:
        available = sum(u.value_atoms for u in utxos if not u.has_token and not u.is_pure_dust)

    return HealthReport(
        address=address,
        analysis_time=datetime.now(UTC),
        balance=balance,
        overall_score=report.overall_score,
        status=report.status,
        metrics=report.metrics,
        portfolio=portfolio,
        value_distribution=value_distribution(utxos),
        atoms_in_tokens=portfolio.atoms_in_tokens,
        available_for_fees=available,
        threats=report.threats,
        recommendations=report.recommendations,
        warnings=warnings,
    )
