"""
UTXO, classification and report data models.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator


class UtxoType(str, Enum):
    PURE_DUST = "pure-dust"
    TOKEN_BEARING = "token-bearing"
    MINT_AUTHORITY = "mint-authority"
    CHANGE_LIKE = "change-like"
    LARGE = "large"
    STANDARD = "standard"

    @property
    def category(self) -> str:
        """Display group: tokens, dust or currency."""
        if self in (UtxoType.TOKEN_BEARING, UtxoType.MINT_AUTHORITY):
            return "tokens"
        if self == UtxoType.PURE_DUST:
            return "dust"
        return "currency"

    @property
    def label(self) -> str:
        return _TYPE_LABELS[self]


_TYPE_LABELS = {
    UtxoType.PURE_DUST: "Pure dust",
    UtxoType.TOKEN_BEARING: "Token",
    UtxoType.MINT_AUTHORITY: "Mint authority",
    UtxoType.CHANGE_LIKE: "Change",
    UtxoType.LARGE: "Large",
    UtxoType.STANDARD: "Standard",
}


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DUST = "dust"
    SUSPICIOUS = "suspicious"
    UNKNOWN = "unknown"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def weight(self) -> int:
        return _SEVERITY_WEIGHTS[self]


_SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}


class SecurityStatus(str, Enum):
    SECURE = "secure"
    GOOD = "good"
    MODERATE = "moderate"
    AT_RISK = "at-risk"
    CRITICAL = "critical"


class ThreatKind(str, Enum):
    DUST_ATTACK = "dust-attack"
    SYSTEMATIC_DUST = "systematic-dust"
    LOW_PRIVACY = "low-privacy"
    ROUND_NUMBERS = "round-numbers"
    SUSPICIOUS_UTXOS = "suspicious-utxos"
    UNCONFIRMED_ACCUMULATION = "unconfirmed-accumulation"
    ADDRESS_CONCENTRATION = "address-concentration"
    TOKEN_CONCENTRATION = "token-concentration"
    MINT_AUTHORITY_CUSTODY = "mint-authority-custody"
    TOKEN_FRAGMENTATION = "token-fragmentation"


class RawUtxo(BaseModel):
    """
    Unspent output as reported by the wallet client.

    Accepts both snake_case names and the camelCase spellings emitted by
    eCash indexers, including the nested ``outpoint`` shape. The token
    attachment is kept raw; the classifier decides whether it is usable.
    """

    tx_id: str = Field(..., min_length=1, validation_alias=AliasChoices("tx_id", "txid", "txId"))
    output_index: int = Field(
        ..., ge=0, validation_alias=AliasChoices("output_index", "vout", "outIdx", "out_idx")
    )
    value_atoms: int = Field(
        ..., ge=0, validation_alias=AliasChoices("value_atoms", "sats", "value")
    )
    confirmation_height: int | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "confirmation_height", "blockHeight", "block_height", "height"
        ),
    )
    token: Any = None

    model_config = {"frozen": True, "populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def flatten_outpoint(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("outpoint"), dict):
            outpoint = data["outpoint"]
            data = {k: v for k, v in data.items() if k != "outpoint"}
            data.setdefault("txid", outpoint.get("txid"))
            data.setdefault("outIdx", outpoint.get("outIdx", outpoint.get("vout")))
        return data

    @field_validator("confirmation_height")
    @classmethod
    def normalize_height(cls, v: int | None) -> int | None:
        # Indexers report mempool outputs with height -1
        if v is not None and v < 0:
            return None
        return v

    @property
    def outpoint(self) -> str:
        return f"{self.tx_id}:{self.output_index}"

    @property
    def is_confirmed(self) -> bool:
        return self.confirmation_height is not None and self.confirmation_height > 0


class TokenAttachment(BaseModel):
    token_id: str = Field(..., pattern=r"^[0-9a-f]{64}$")
    amount_atoms: int = Field(default=0, ge=0)
    is_mint_authority: bool = False
    protocol_tag: str = "SLP"
    decimals: int = Field(default=0, ge=0, le=255)
    ticker: str | None = None
    name: str | None = None

    model_config = {"frozen": True}


class HealthAssessment(BaseModel):
    status: HealthStatus
    reasoning: str

    model_config = {"frozen": True}


class ClassifiedUtxo(BaseModel):
    """A UTXO together with its token-aware classification."""

    utxo: RawUtxo
    utxo_type: UtxoType
    health: HealthAssessment
    token: TokenAttachment | None = None
    privacy_score: int | None = Field(default=None, ge=0, le=100)

    model_config = {"frozen": True}

    @property
    def is_pure_dust(self) -> bool:
        return self.utxo_type == UtxoType.PURE_DUST

    @property
    def has_token(self) -> bool:
        return self.utxo_type in (UtxoType.TOKEN_BEARING, UtxoType.MINT_AUTHORITY)

    @property
    def value_atoms(self) -> int:
        return self.utxo.value_atoms

    @property
    def outpoint(self) -> str:
        return self.utxo.outpoint


class TokenMetadata(BaseModel):
    token_id: str
    ticker: str | None = None
    name: str | None = None
    decimals: int = 0
    protocol_tag: str | None = None

    model_config = {"frozen": True}


class DetailedBalance(BaseModel):
    confirmed_atoms: int = Field(default=0, ge=0)
    unconfirmed_atoms: int = 0

    model_config = {"frozen": True}

    @property
    def total_atoms(self) -> int:
        return self.confirmed_atoms + self.unconfirmed_atoms


class Threat(BaseModel):
    kind: ThreatKind
    severity: Severity
    title: str
    description: str
    impact: str
    affected_count: int = Field(default=0, ge=0)
    details: dict[str, Any] = Field(default_factory=dict)
    recommendation: str | None = None

    model_config = {"frozen": True}


class Recommendation(BaseModel):
    priority: Severity
    category: str
    title: str
    description: str
    action: str
    command_hint: str | None = None
    impact: str = ""

    model_config = {"frozen": True}


class SecurityMetrics(BaseModel):
    total_utxos: int = 0
    healthy_utxos: int = 0
    dust_utxos: int = 0
    token_utxos: int = 0
    suspicious_utxos: int = 0
    unconfirmed_utxos: int = 0
    privacy_score: int = 50
    dust_ratio: float = 0.0
    suspicious_ratio: float = 0.0
    token_ratio: float = 0.0

    model_config = {"frozen": True}


class DustPattern(BaseModel):
    value_atoms: int
    count: int
    suspicious: bool = False

    model_config = {"frozen": True}


class ThreatAnalysis(BaseModel):
    """Raw detector measurements behind the threat list."""

    dust_count: int = 0
    total_dust_atoms: int = 0
    dust_patterns: list[DustPattern] = Field(default_factory=list)
    average_privacy_score: float = 50.0
    scored_utxos: int = 0
    poor_privacy_utxos: int = 0
    round_number_utxos: int = 0
    suspicious_utxos: int = 0
    unconfirmed_utxos: int = 0

    model_config = {"frozen": True}


class TokenHolding(BaseModel):
    token_id: str
    ticker: str | None = None
    name: str | None = None
    protocol_tag: str = "SLP"
    utxo_count: int = 0
    amount_atoms: int = 0
    mint_authorities: int = 0
    atoms_locked: int = 0


class PortfolioSummary(BaseModel):
    total: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    by_category: dict[str, int] = Field(default_factory=dict)
    by_health: dict[str, int] = Field(default_factory=dict)
    token_utxos: int = 0
    unique_tokens: int = 0
    mint_authorities: int = 0
    token_dust_utxos: int = 0
    total_atoms: int = 0
    plain_atoms: int = 0
    atoms_in_tokens: int = 0
    holdings: list[TokenHolding] = Field(default_factory=list)
    diversification: str = "none"

    model_config = {"frozen": True}

    @property
    def has_tokens(self) -> bool:
        return self.token_utxos > 0


class SecurityReport(BaseModel):
    address: str
    overall_score: int = Field(..., ge=0, le=100)
    status: SecurityStatus
    metrics: SecurityMetrics
    threats: list[Threat] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    token_portfolio: PortfolioSummary
    token_risks: list[Threat] = Field(default_factory=list)
    analysis: ThreatAnalysis
    analytics_available: bool = True
    warnings: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def threat_count(self) -> int:
        return len(self.threats)


class HealthReport(BaseModel):
    address: str
    analysis_time: datetime
    balance: DetailedBalance | None = None
    overall_score: int = Field(..., ge=0, le=100)
    status: SecurityStatus
    metrics: SecurityMetrics
    portfolio: PortfolioSummary
    value_distribution: dict[str, int] = Field(default_factory=dict)
    atoms_in_tokens: int = 0
    available_for_fees: int = 0
    threats: list[Threat] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}
