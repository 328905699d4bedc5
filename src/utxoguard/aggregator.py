"""
Portfolio aggregation over classified UTXOs.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence

from loguru import logger

from utxoguard.config import DEFAULT_CONFIG, ClassificationConfig
from utxoguard.models import (
    ClassifiedUtxo,
    HealthStatus,
    PortfolioSummary,
    Recommendation,
    Severity,
    Threat,
    ThreatKind,
    TokenHolding,
    TokenMetadata,
    UtxoType,
)


def diversification_level(unique_tokens: int) -> str:
    if unique_tokens == 0:
        return "none"
    if unique_tokens >= 5:
        return "high"
    if unique_tokens >= 3:
        return "medium"
    return "low"


def aggregate(
    utxos: Sequence[ClassifiedUtxo],
    metadata: Mapping[str, TokenMetadata] | None = None,
    config: ClassificationConfig | None = None,
) -> PortfolioSummary:
    """
    Summarize a classified UTXO set in a single pass.

    Args:
        utxos: Classified UTXOs
        metadata: Optional token metadata keyed by token id, used to fill in
            tickers the attachments do not carry
        config: Thresholds; only the dust threshold is used here

    Returns:
        PortfolioSummary where every UtxoType appears in by_type
    """
    config = config or DEFAULT_CONFIG
    metadata = metadata or {}

    by_type: Counter[str] = Counter({t.value: 0 for t in UtxoType})
    by_category: Counter[str] = Counter({"tokens": 0, "dust": 0, "currency": 0})
    by_health: Counter[str] = Counter({s.value: 0 for s in HealthStatus})
    holdings: dict[str, TokenHolding] = {}

    total_atoms = 0
    plain_atoms = 0
    atoms_in_tokens = 0
    token_dust = 0

    for item in utxos:
        by_type[item.utxo_type.value] += 1
        by_category[item.utxo_type.category] += 1
        by_health[item.health.status.value] += 1
        total_atoms += item.value_atoms

        token = item.token
        if not item.has_token or token is None:
            plain_atoms += item.value_atoms
            continue

        atoms_in_tokens += item.value_atoms
        if item.value_atoms <= config.dust_threshold:
            token_dust += 1

        holding = holdings.get(token.token_id)
        if holding is None:
            meta = metadata.get(token.token_id)
            holding = TokenHolding(
                token_id=token.token_id,
                ticker=token.ticker or (meta.ticker if meta else None),
                name=token.name or (meta.name if meta else None),
                protocol_tag=token.protocol_tag,
            )
            holdings[token.token_id] = holding
        holding.utxo_count += 1
        holding.amount_atoms += token.amount_atoms
        holding.atoms_locked += item.value_atoms
        if token.is_mint_authority:
            holding.mint_authorities += 1

    token_utxos = by_category["tokens"]
    summary = PortfolioSummary(
        total=len(utxos),
        by_type=dict(by_type),
        by_category=dict(by_category),
        by_health=dict(by_health),
        token_utxos=token_utxos,
        unique_tokens=len(holdings),
        mint_authorities=by_type[UtxoType.MINT_AUTHORITY.value],
        token_dust_utxos=token_dust,
        total_atoms=total_atoms,
        plain_atoms=plain_atoms,
        atoms_in_tokens=atoms_in_tokens,
        holdings=sorted(holdings.values(), key=lambda h: h.utxo_count, reverse=True),
        diversification=diversification_level(len(holdings)),
    )
    logger.debug(
        f"Portfolio: {summary.total} UTXOs, {summary.token_utxos} token UTXOs, "
        f"{summary.unique_tokens} unique tokens"
    )
    return summary


def assess_token_risks(
    summary: PortfolioSummary, config: ClassificationConfig | None = None
) -> tuple[list[Threat], list[Recommendation]]:
    """Token portfolio risks and the recommendations that go with them."""
    config = config or DEFAULT_CONFIG
    threats: list[Threat] = []
    recommendations: list[Recommendation] = []

    if not summary.has_tokens:
        return threats, recommendations

    busiest = max(summary.holdings, key=lambda h: h.utxo_count, default=None)
    if busiest is not None and busiest.utxo_count >= config.token_concentration_count:
        label = busiest.ticker or busiest.token_id[:8]
        threats.append(
            Threat(
                kind=ThreatKind.TOKEN_CONCENTRATION,
                severity=Severity.MEDIUM,
                title="Token Concentration",
                description=f"{busiest.utxo_count} UTXOs hold the same token ({label})",
                impact="Spending this token links many outputs together",
                affected_count=busiest.utxo_count,
                details={"token_id": busiest.token_id, "utxo_count": busiest.utxo_count},
            )
        )

    if summary.mint_authorities > 0:
        threats.append(
            Threat(
                kind=ThreatKind.MINT_AUTHORITY_CUSTODY,
                severity=Severity.HIGH,
                title="Mint Authority Custody",
                description=f"Wallet holds {summary.mint_authorities} mint baton(s)",
                impact="Losing or spending a mint baton permanently ends token minting",
                affected_count=summary.mint_authorities,
                recommendation="Keep mint batons in dedicated, well-backed-up storage",
            )
        )
        recommendations.append(
            Recommendation(
                priority=Severity.HIGH,
                category="tokens",
                title="Secure Mint Baton Storage",
                description="Mint batons control future token supply",
                action="Back up this wallet and avoid moving mint batons unless minting",
                impact="Prevents accidental loss of minting capability",
            )
        )

    average = summary.token_utxos / summary.unique_tokens if summary.unique_tokens else 0.0
    if average >= config.token_fragmentation_average:
        threats.append(
            Threat(
                kind=ThreatKind.TOKEN_FRAGMENTATION,
                severity=Severity.LOW,
                title="Token Fragmentation",
                description=f"Average of {average:.1f} UTXOs per token",
                impact="Fragmented token balances raise transaction size and fees",
                affected_count=summary.token_utxos,
                details={"average_utxos_per_token": round(average, 2)},
            )
        )
        recommendations.append(
            Recommendation(
                priority=Severity.LOW,
                category="tokens",
                title="Consolidate Token UTXOs",
                description="Token balances are spread across many outputs",
                action="Send each token to yourself to merge its outputs",
                impact="Smaller token transactions and lower fees",
            )
        )

    if summary.diversification == "low" and summary.unique_tokens >= 2:
        recommendations.append(
            Recommendation(
                priority=Severity.LOW,
                category="tokens",
                title="Review Token Portfolio",
                description=f"{summary.unique_tokens} tokens held with low diversification",
                action="Review token holdings and their issuers periodically",
                impact="Better awareness of token exposure",
            )
        )

    return threats, recommendations
