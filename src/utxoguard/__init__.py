"""
utxoguard - Token-aware UTXO analysis for eCash wallets

Classifies wallet UTXOs without mistaking 546-atom token outputs for dust,
scores wallet security and privacy, and selects spendable XEC inputs that
never include token outputs.
"""

__version__ = "0.1.0"

from utxoguard.aggregator import aggregate, assess_token_risks
from utxoguard.classifier import (
    InvalidFilterError,
    classify,
    classify_all,
    extract_token,
    filter_classified,
)
from utxoguard.config import ClassificationConfig, Settings, get_settings
from utxoguard.constants import DUST_THRESHOLD, LARGE_THRESHOLD
from utxoguard.models import (
    ClassifiedUtxo,
    HealthStatus,
    PortfolioSummary,
    RawUtxo,
    SecurityReport,
    SecurityStatus,
    Severity,
    Threat,
    TokenAttachment,
    UtxoType,
)
from utxoguard.scorer import build_health_report, build_security_report
from utxoguard.selector import (
    InsufficientFundsError,
    InvalidStrategyError,
    SpendStrategy,
    build_selection,
    pick_inputs,
    select_for_strategy,
)

__all__ = [
    "ClassificationConfig",
    "ClassifiedUtxo",
    "DUST_THRESHOLD",
    "HealthStatus",
    "InsufficientFundsError",
    "InvalidFilterError",
    "InvalidStrategyError",
    "LARGE_THRESHOLD",
    "PortfolioSummary",
    "RawUtxo",
    "SecurityReport",
    "SecurityStatus",
    "Settings",
    "Severity",
    "SpendStrategy",
    "Threat",
    "TokenAttachment",
    "UtxoType",
    "aggregate",
    "assess_token_risks",
    "build_health_report",
    "build_security_report",
    "build_selection",
    "classify",
    "classify_all",
    "extract_token",
    "filter_classified",
    "get_settings",
    "pick_inputs",
    "select_for_strategy",
]
