"""
Strategy-based selection of spendable XEC UTXOs.

Token-bearing and mint-authority outputs are never returned: spending one
in a plain XEC transaction burns the token.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from loguru import logger
from pydantic import BaseModel, Field

from utxoguard.config import DEFAULT_CONFIG, ClassificationConfig
from utxoguard.models import ClassifiedUtxo


class InvalidStrategyError(ValueError):
    """Raised when a spending strategy name is not recognized."""

    pass


class InsufficientFundsError(ValueError):
    """Raised when the eligible UTXOs cannot cover a target amount."""

    pass


class SpendStrategy(str, Enum):
    EFFICIENT = "efficient"
    PRIVACY = "privacy"
    SECURITY = "security"

    @classmethod
    def parse(cls, name: str | SpendStrategy) -> SpendStrategy:
        if isinstance(name, SpendStrategy):
            return name
        normalized = name.strip().lower() if isinstance(name, str) else ""
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise InvalidStrategyError(
                f"Invalid strategy '{name}'. Valid strategies: {valid}"
            ) from None


class StrategySelection(BaseModel):
    strategy: SpendStrategy
    utxos: list[ClassifiedUtxo] = Field(default_factory=list)
    eligible: int = 0
    protected_tokens: int = 0
    excluded_dust: int = 0
    excluded_below_minimum: int = 0
    warning: str | None = None

    model_config = {"frozen": True}

    @property
    def total_atoms(self) -> int:
        return sum(u.value_atoms for u in self.utxos)


def minimum_value(strategy: SpendStrategy, config: ClassificationConfig) -> int:
    """Exclusive lower bound on UTXO value for a strategy."""
    if strategy == SpendStrategy.SECURITY:
        return config.security_min_value
    if strategy == SpendStrategy.PRIVACY:
        return config.privacy_min_value
    # Pure dust is already excluded, so efficient takes any remaining value
    return 0


def select_for_strategy(
    utxos: Sequence[ClassifiedUtxo],
    strategy: SpendStrategy | str,
    config: ClassificationConfig | None = None,
) -> list[ClassifiedUtxo]:
    """
    Return the UTXOs a strategy may spend, in input order.

    Token-bearing, mint-authority and pure-dust outputs are always excluded.
    Raises InvalidStrategyError for unknown strategy names.
    """
    strategy = SpendStrategy.parse(strategy)
    config = config or DEFAULT_CONFIG
    floor = minimum_value(strategy, config)
    return [
        u for u in utxos if not u.has_token and not u.is_pure_dust and u.value_atoms > floor
    ]


def build_selection(
    utxos: Sequence[ClassifiedUtxo],
    strategy: SpendStrategy | str,
    config: ClassificationConfig | None = None,
) -> StrategySelection:
    """Select for a strategy and report what was excluded and why."""
    strategy = SpendStrategy.parse(strategy)
    selected = select_for_strategy(utxos, strategy, config)

    protected = sum(1 for u in utxos if u.has_token)
    dust = sum(1 for u in utxos if u.is_pure_dust)
    below_minimum = len(utxos) - protected - dust - len(selected)

    warning = None
    if not selected:
        warning = (
            f"No suitable UTXOs for strategy {strategy.value} "
            f"(eligible=0, protectedTokens={protected}, excludedDust={dust})"
        )
        logger.warning(warning)
    else:
        logger.info(
            f"Strategy {strategy.value}: {len(selected)} eligible UTXOs, "
            f"{protected} token UTXOs protected, {dust} dust excluded"
        )

    return StrategySelection(
        strategy=strategy,
        utxos=selected,
        eligible=len(selected),
        protected_tokens=protected,
        excluded_dust=dust,
        excluded_below_minimum=below_minimum,
        warning=warning,
    )


def pick_inputs(utxos: Sequence[ClassifiedUtxo], target_atoms: int) -> list[ClassifiedUtxo]:
    """
    Pick inputs covering target_atoms, largest first.

    Args:
        utxos: Already-eligible UTXOs (the output of select_for_strategy)
        target_atoms: Amount to cover, fees included

    Returns:
        Fewest largest UTXOs whose sum reaches the target
    """
    if target_atoms <= 0:
        raise ValueError("Target amount must be positive")
    if any(u.has_token or u.is_pure_dust for u in utxos):
        raise ValueError("Token and dust UTXOs cannot be used as XEC inputs")

    picked: list[ClassifiedUtxo] = []
    total = 0
    for utxo in sorted(utxos, key=lambda u: u.value_atoms, reverse=True):
        picked.append(utxo)
        total += utxo.value_atoms
        if total >= target_atoms:
            logger.info(f"Picked {len(picked)} UTXOs totaling {total:,} atoms")
            return picked

    raise InsufficientFundsError(f"Insufficient funds: need {target_atoms:,}, have {total:,}")
