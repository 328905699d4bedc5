"""
Test configuration for utxoguard tests.
"""

from __future__ import annotations

import itertools
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from utxoguard.classifier import classify_all
from utxoguard.models import ClassifiedUtxo, RawUtxo

TOKEN_ID = "1c6c9c64d70b285befe733f175d0f384538576876bd280b10587df81279d3f5e"
OTHER_TOKEN_ID = "fb4233e8a568993976ed38a81c2671587c5ad09552dedefa78760deed6ff87aa"

_txids = itertools.count(1)


def _txid() -> str:
    return f"{next(_txids):064x}"


@pytest.fixture
def make_utxo() -> Callable[..., RawUtxo]:
    """Factory for RawUtxo with a unique txid per call."""

    def _make(
        value: int,
        token: Any = None,
        height: int | None = 800_000,
        vout: int = 0,
    ) -> RawUtxo:
        return RawUtxo(
            tx_id=_txid(),
            output_index=vout,
            value_atoms=value,
            confirmation_height=height,
            token=token,
        )

    return _make


@pytest.fixture
def token_data() -> Callable[..., dict[str, Any]]:
    """Factory for indexer-style token attachments."""

    def _make(
        token_id: str = TOKEN_ID,
        atoms: str = "1000",
        mint_baton: bool = False,
        **extra: Any,
    ) -> dict[str, Any]:
        return {"tokenId": token_id, "atoms": atoms, "isMintBaton": mint_baton, **extra}

    return _make


@pytest.fixture
def classified(
    make_utxo: Callable[..., RawUtxo], token_data: Callable[..., dict[str, Any]]
) -> list[ClassifiedUtxo]:
    """A small mixed wallet: two tokens, a mint baton, dust and plain XEC."""
    return classify_all(
        [
            make_utxo(546, token=token_data()),
            make_utxo(546, token=token_data(atoms="250")),
            make_utxo(546, token=token_data(OTHER_TOKEN_ID, mint_baton=True)),
            make_utxo(300),
            make_utxo(800),
            make_utxo(5_000),
            make_utxo(250_000),
        ]
    )


@pytest.fixture
def snapshot_file(tmp_path: Path) -> Path:
    """Indexer-style snapshot with tokens, dust and a malformed entry."""
    data = {
        "address": "ecash:qz2708636snqhsxu8wnlka78h6fdp77ar59jrf5035",
        "utxos": [
            {
                "outpoint": {"txid": "aa" * 32, "outIdx": 1},
                "blockHeight": 812_000,
                "sats": "546",
                "token": {
                    "tokenId": TOKEN_ID,
                    "tokenType": {"protocol": "ALP"},
                    "atoms": "5000",
                    "isMintBaton": False,
                },
            },
            {"outpoint": {"txid": "bb" * 32, "outIdx": 0}, "blockHeight": 812_001, "sats": 546},
            {"outpoint": {"txid": "cc" * 32, "outIdx": 2}, "blockHeight": -1, "sats": "150000"},
            {"outpoint": {"txid": "dd" * 32, "outIdx": 0}, "blockHeight": 812_002, "sats": 2500},
            {"outpoint": {"txid": "ee" * 32}, "sats": "not-a-number"},
        ],
        "balance": {"confirmed_atoms": 3592, "unconfirmed_atoms": 150000},
        "tokens": {TOKEN_ID: {"ticker": "GRP", "name": "Group Token", "decimals": 2}},
    }
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(data))
    return path
