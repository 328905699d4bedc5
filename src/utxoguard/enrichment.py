"""
Token metadata enrichment through the wallet client.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field

from loguru import logger

from utxoguard.backends.base import WalletClient
from utxoguard.constants import DEFAULT_METADATA_CONCURRENCY
from utxoguard.models import ClassifiedUtxo, TokenMetadata


@dataclass
class MetadataResult:
    metadata: dict[str, TokenMetadata] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.warnings)


def token_ids(utxos: Iterable[ClassifiedUtxo]) -> list[str]:
    seen: dict[str, None] = {}
    for item in utxos:
        if item.token is not None:
            seen.setdefault(item.token.token_id, None)
    return list(seen)


async def fetch_token_metadata(
    client: WalletClient,
    ids: Iterable[str],
    max_concurrency: int = DEFAULT_METADATA_CONCURRENCY,
) -> MetadataResult:
    """
    Look up metadata for each token id with bounded concurrency.

    A failed lookup never fails the batch: the token is left without
    metadata and a warning is recorded.
    """
    ids = list(ids)
    result = MetadataResult()
    if not ids:
        return result

    semaphore = asyncio.Semaphore(max_concurrency)

    async def _fetch(token_id: str) -> TokenMetadata:
        async with semaphore:
            return await client.get_token_metadata(token_id)

    results = await asyncio.gather(*(_fetch(t) for t in ids), return_exceptions=True)

    for token_id, outcome in zip(ids, results, strict=True):
        if isinstance(outcome, BaseException):
            logger.warning(f"Token metadata lookup failed for {token_id[:16]}...: {outcome}")
            result.warnings.append(f"Token metadata unavailable for {token_id}")
            continue
        result.metadata[token_id] = outcome

    logger.debug(f"Fetched metadata for {len(result.metadata)}/{len(ids)} tokens")
    return result
