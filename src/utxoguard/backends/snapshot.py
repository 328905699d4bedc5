"""
Read-only wallet client over a JSON UTXO snapshot.

Snapshot layout::

    {
        "address": "ecash:qq...",
        "utxos": [{"outpoint": {"txid": "...", "outIdx": 0}, "sats": "546", ...}],
        "balance": {"confirmed_atoms": 1000, "unconfirmed_atoms": 0},
        "tokens": {"<token id>": {"ticker": "ABC", "decimals": 2}}
    }

Only ``utxos`` is required. Entries use the field names an eCash indexer
returns, so an exported indexer response can be analyzed directly.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from utxoguard.backends.base import PaymentOutput, WalletClient
from utxoguard.models import DetailedBalance, RawUtxo, TokenMetadata


class SnapshotError(Exception):
    """Raised when a snapshot cannot be read or used."""

    pass


class SnapshotFileClient(WalletClient):
    def __init__(self, path: Path, address: str | None = None):
        self.path = path
        self._data: dict[str, Any] | None = None
        self._address_override = address
        self.skipped: list[str] = []

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data
        if not self.path.exists():
            raise SnapshotError(f"Snapshot file not found: {self.path}")
        try:
            data = json.loads(self.path.read_text())
        except json.JSONDecodeError as e:
            raise SnapshotError(f"Snapshot {self.path} is not valid JSON: {e}") from e

        # A bare list is treated as the UTXO array
        if isinstance(data, list):
            data = {"utxos": data}
        if not isinstance(data, dict) or not isinstance(data.get("utxos"), list):
            raise SnapshotError(f"Snapshot {self.path} has no 'utxos' array")
        self._data = data
        return data

    @property
    def address(self) -> str:  # type: ignore[override]
        if self._address_override:
            return self._address_override
        return str(self._load().get("address") or "unknown")

    async def get_utxo_snapshot(self) -> list[RawUtxo]:
        data = self._load()
        utxos: list[RawUtxo] = []
        self.skipped = []
        for index, entry in enumerate(data["utxos"]):
            try:
                utxos.append(RawUtxo.model_validate(entry))
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed UTXO entry #{index}: {e.error_count()} error(s)"
                )
                self.skipped.append(f"Malformed UTXO entry #{index} skipped")
        logger.info(f"Loaded {len(utxos)} UTXOs from {self.path}")
        return utxos

    async def get_token_metadata(self, token_id: str) -> TokenMetadata:
        tokens = self._load().get("tokens") or {}
        entry = tokens.get(token_id)
        if not isinstance(entry, dict):
            raise SnapshotError(f"No metadata for token {token_id}")
        return TokenMetadata.model_validate({**entry, "token_id": token_id})

    async def get_detailed_balance(self) -> DetailedBalance:
        balance = self._load().get("balance")
        if balance is None:
            raise SnapshotError("Snapshot carries no balance")
        return DetailedBalance.model_validate(balance)

    async def submit_transaction(
        self, outputs: list[PaymentOutput], inputs: list[RawUtxo] | None = None
    ) -> str:
        raise SnapshotError("Snapshot client is read-only and cannot broadcast transactions")
