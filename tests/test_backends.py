"""
Tests for the snapshot wallet client.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from utxoguard.backends import PaymentOutput, SnapshotError, SnapshotFileClient

TOKEN_ID = "1c6c9c64d70b285befe733f175d0f384538576876bd280b10587df81279d3f5e"


@pytest.mark.asyncio
async def test_load_snapshot(snapshot_file: Path) -> None:
    client = SnapshotFileClient(snapshot_file)
    utxos = await client.get_utxo_snapshot()

    assert client.address.startswith("ecash:")
    assert len(utxos) == 4
    assert utxos[0].outpoint == f"{'aa' * 32}:1"
    assert utxos[2].confirmation_height is None
    assert client.skipped == ["Malformed UTXO entry #4 skipped"]


@pytest.mark.asyncio
async def test_address_override(snapshot_file: Path) -> None:
    client = SnapshotFileClient(snapshot_file, address="ecash:override")
    assert client.address == "ecash:override"


@pytest.mark.asyncio
async def test_balance_and_metadata(snapshot_file: Path) -> None:
    client = SnapshotFileClient(snapshot_file)
    balance = await client.get_detailed_balance()
    assert balance.confirmed_atoms == 3592
    assert balance.total_atoms == 153_592

    metadata = await client.get_token_metadata(TOKEN_ID)
    assert metadata.ticker == "GRP"
    assert metadata.decimals == 2

    with pytest.raises(SnapshotError, match="No metadata"):
        await client.get_token_metadata("00" * 32)


@pytest.mark.asyncio
async def test_bare_list_snapshot(tmp_path: Path) -> None:
    path = tmp_path / "utxos.json"
    path.write_text('[{"txid": "' + "ab" * 32 + '", "vout": 0, "value": 1000}]')
    client = SnapshotFileClient(path)
    assert len(await client.get_utxo_snapshot()) == 1
    assert client.address == "unknown"
    with pytest.raises(SnapshotError, match="no balance"):
        await client.get_detailed_balance()


@pytest.mark.asyncio
async def test_missing_file(tmp_path: Path) -> None:
    client = SnapshotFileClient(tmp_path / "missing.json")
    with pytest.raises(SnapshotError, match="not found"):
        await client.get_utxo_snapshot()


@pytest.mark.asyncio
async def test_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(SnapshotError, match="not valid JSON"):
        await SnapshotFileClient(path).get_utxo_snapshot()


@pytest.mark.asyncio
async def test_read_only(snapshot_file: Path) -> None:
    client = SnapshotFileClient(snapshot_file)
    with pytest.raises(SnapshotError, match="read-only"):
        await client.submit_transaction([PaymentOutput(address="ecash:qq", value_atoms=1_000)])
