"""
Base wallet client interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from utxoguard.models import DetailedBalance, RawUtxo, TokenMetadata


@dataclass
class PaymentOutput:
    address: str
    value_atoms: int


class WalletClient(ABC):
    """
    Abstract wallet client.

    The analysis engine only reads UTXO snapshots, balances and token
    metadata. Transaction building and broadcasting stay with the client;
    callers hand it the inputs chosen by the strategy selector.
    """

    address: str

    @abstractmethod
    async def get_utxo_snapshot(self) -> list[RawUtxo]:
        """Get the current UTXO set for the wallet address"""

    @abstractmethod
    async def get_token_metadata(self, token_id: str) -> TokenMetadata:
        """Get ticker, name and decimals for a token"""

    @abstractmethod
    async def get_detailed_balance(self) -> DetailedBalance:
        """Get confirmed and unconfirmed balance in atoms"""

    @abstractmethod
    async def submit_transaction(
        self, outputs: list[PaymentOutput], inputs: list[RawUtxo] | None = None
    ) -> str:
        """Build, sign and broadcast a transaction, returns txid"""

    async def close(self) -> None:
        """Close backend connection"""
        pass
