"""
Token-aware UTXO classification.

A small XEC value does not make an output dust: eCash token outputs carry
546 atoms by convention, so the token attachment is always checked before
the value thresholds.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from loguru import logger

from utxoguard.config import DEFAULT_CONFIG, ClassificationConfig
from utxoguard.constants import DEFAULT_TOKEN_PROTOCOL
from utxoguard.models import (
    ClassifiedUtxo,
    HealthAssessment,
    HealthStatus,
    RawUtxo,
    TokenAttachment,
    UtxoType,
)

TOKEN_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")

HEALTH_REASONING = {
    UtxoType.TOKEN_BEARING: "Token UTXO with valuable token data (small XEC amount is normal)",
    UtxoType.MINT_AUTHORITY: "Mint baton UTXO - enables future token minting",
    UtxoType.PURE_DUST: "Pure dust UTXO with no token data - potential spam",
    UtxoType.CHANGE_LIKE: "Small XEC amount likely from token transaction change",
    UtxoType.LARGE: "Large UTXO good for transaction fees and flexibility",
    UtxoType.STANDARD: "Standard XEC UTXO",
}


class InvalidFilterError(ValueError):
    """Raised when a classification filter term is not recognized."""

    pass


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isascii() and value.strip().isdecimal():
        return int(value.strip())
    return default


def extract_token(utxo: RawUtxo) -> TokenAttachment | None:
    """
    Extract a validated token attachment from a raw UTXO.

    Returns None unless the attachment carries a well-formed 64-character hex
    token id. Once the id is valid, malformed secondary fields fall back to
    defaults so the output is still recognized as token-bearing.
    """
    raw = utxo.token
    if not isinstance(raw, Mapping):
        return None

    token_id = _first(raw, "tokenId", "token_id")
    if not isinstance(token_id, str) or not TOKEN_ID_PATTERN.match(token_id):
        if token_id is not None:
            logger.debug(f"Ignoring malformed token id on {utxo.outpoint}")
        return None

    protocol = _first(raw, "protocol", "protocol_tag")
    token_type = raw.get("tokenType")
    if protocol is None and isinstance(token_type, Mapping):
        protocol = token_type.get("protocol")

    decimals = _as_int(_first(raw, "decimals"))
    ticker = _first(raw, "ticker")
    name = _first(raw, "name")

    amount = _as_int(_first(raw, "atoms", "amount", "amount_atoms"))

    return TokenAttachment(
        token_id=token_id.lower(),
        amount_atoms=max(amount, 0),
        is_mint_authority=_first(raw, "isMintBaton", "is_mint_baton", "is_mint_authority") is True,
        protocol_tag=protocol if isinstance(protocol, str) and protocol else DEFAULT_TOKEN_PROTOCOL,
        decimals=decimals if 0 <= decimals <= 255 else 0,
        ticker=ticker if isinstance(ticker, str) else None,
        name=name if isinstance(name, str) else None,
    )


def detect_utxo_type(
    utxo: RawUtxo,
    token: TokenAttachment | None = None,
    config: ClassificationConfig = DEFAULT_CONFIG,
) -> UtxoType:
    """Derive the UTXO type; the token check always precedes value thresholds."""
    if token is not None:
        return UtxoType.MINT_AUTHORITY if token.is_mint_authority else UtxoType.TOKEN_BEARING

    value = utxo.value_atoms
    if value <= config.dust_threshold:
        return UtxoType.PURE_DUST
    if value <= config.change_threshold:
        return UtxoType.CHANGE_LIKE
    if value >= config.large_threshold:
        return UtxoType.LARGE
    return UtxoType.STANDARD


def assess_health(utxo_type: UtxoType) -> HealthAssessment:
    status = HealthStatus.DUST if utxo_type == UtxoType.PURE_DUST else HealthStatus.HEALTHY
    return HealthAssessment(status=status, reasoning=HEALTH_REASONING[utxo_type])


def classify(utxo: RawUtxo, config: ClassificationConfig | None = None) -> ClassifiedUtxo:
    """Classify one UTXO. Pure and total over every RawUtxo."""
    config = config or DEFAULT_CONFIG
    token = extract_token(utxo)
    utxo_type = detect_utxo_type(utxo, token, config)
    return ClassifiedUtxo(
        utxo=utxo,
        utxo_type=utxo_type,
        health=assess_health(utxo_type),
        token=token,
    )


def classify_all(
    utxos: Iterable[RawUtxo], config: ClassificationConfig | None = None
) -> list[ClassifiedUtxo]:
    config = config or DEFAULT_CONFIG
    classified = [classify(utxo, config) for utxo in utxos]
    logger.debug(f"Classified {len(classified)} UTXOs")
    return classified


def apply_insight(
    classified: ClassifiedUtxo, privacy_score: int | None, status: HealthStatus
) -> ClassifiedUtxo:
    """
    Merge an analytics verdict into a classification.

    The privacy sub-score is always attached. A suspicious verdict only
    overrides plain currency outputs above dust: token outputs stay healthy
    and pure dust stays dust.
    """
    health = classified.health
    plain = not classified.has_token and not classified.is_pure_dust
    if status == HealthStatus.SUSPICIOUS and plain:
        health = HealthAssessment(
            status=HealthStatus.SUSPICIOUS,
            reasoning="Flagged as suspicious by wallet analytics",
        )
    return classified.model_copy(update={"privacy_score": privacy_score, "health": health})


def _matches(classified: ClassifiedUtxo, term: str) -> bool:
    if term == "token":
        return classified.has_token
    if term == "dust":
        return classified.is_pure_dust
    if term == "mint":
        return classified.utxo_type == UtxoType.MINT_AUTHORITY
    if term in _TYPE_TERMS:
        return classified.utxo_type.value == term
    if term in _CATEGORY_TERMS:
        return classified.utxo_type.category == term
    return classified.health.status.value == term


_TYPE_TERMS = {t.value for t in UtxoType}
_CATEGORY_TERMS = {"tokens", "currency"}
_SHORTHAND_TERMS = {"token", "dust", "mint"}
_HEALTH_TERMS = {s.value for s in HealthStatus}
FILTER_TERMS = frozenset(_TYPE_TERMS | _CATEGORY_TERMS | _SHORTHAND_TERMS | _HEALTH_TERMS)


def filter_classified(
    utxos: Iterable[ClassifiedUtxo], terms: str | Iterable[str]
) -> list[ClassifiedUtxo]:
    """
    Keep UTXOs matching any of the given terms.

    Terms are UTXO types (``pure-dust``), categories (``tokens``), health
    statuses (``suspicious``) or the shorthands ``token``, ``dust`` and
    ``mint``. Accepts a comma-separated string.
    """
    if isinstance(terms, str):
        terms = terms.split(",")
    wanted = [t.strip().lower() for t in terms if t.strip()]
    unknown = [t for t in wanted if t not in FILTER_TERMS]
    if unknown:
        raise InvalidFilterError(
            f"Unknown filter term(s): {', '.join(unknown)}. "
            f"Valid terms: {', '.join(sorted(FILTER_TERMS))}"
        )
    if not wanted:
        return list(utxos)
    return [u for u in utxos if any(_matches(u, t) for t in wanted)]
