from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from .classifier import TransactionClassifier
from .errors import BatchFetchError, GatewayError, InvalidSignatureError
from .gateway import LedgerGateway
from .keys import validate_signature
from .types import RawTransactionRecord, TransactionInfo

logger = logging.getLogger(__name__)


class BatchDetailFetcher:
    """Fetches transaction records concurrently and classifies them.

    Every retrieved record travels together with the signature it was
    requested for, so dropped items never shift the pairing.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        classifier: TransactionClassifier | None = None,
        max_concurrency: int = 16,
    ) -> None:
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be positive")
        self.gateway = gateway
        self.classifier = classifier or TransactionClassifier()
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def get_details(self, signature: str) -> RawTransactionRecord | None:
        signature = validate_signature(signature)
        return await self.gateway.transaction_by_signature(signature)

    async def get_display_details(self, signature: str) -> TransactionInfo | None:
        record = await self.get_details(signature)
        if record is None:
            return None
        return self.classifier.classify(record, signature)

    async def _fetch_one(self, signature: str) -> RawTransactionRecord | GatewayError | None:
        try:
            signature = validate_signature(signature)
        except InvalidSignatureError as exc:
            logger.error("Dropping malformed signature %r: %s", signature, exc)
            return None
        async with self._semaphore:
            try:
                record = await self.gateway.transaction_by_signature(signature)
            except GatewayError as exc:
                logger.warning("Failed to fetch transaction %s: %s", signature, exc)
                return exc
        if record is None:
            logger.debug("Transaction %s not found", signature)
        return record

    async def get_details_batch(self, signatures: Sequence[str]) -> list[tuple[str, RawTransactionRecord]]:
        """Records for ``signatures`` in input order; failed or missing items are dropped.

        Raises ``BatchFetchError`` when a non-empty batch yields nothing and at
        least one item failed at the gateway, so the caller can retry the batch.
        """
        signatures = list(signatures)
        if not signatures:
            return []
        results = await asyncio.gather(*(self._fetch_one(s) for s in signatures))

        pairs: list[tuple[str, RawTransactionRecord]] = []
        failures: list[GatewayError] = []
        for signature, result in zip(signatures, results):
            if isinstance(result, GatewayError):
                failures.append(result)
            elif isinstance(result, dict):
                pairs.append((signature, result))

        if not pairs and failures:
            raise BatchFetchError(signatures, cause=failures[-1])
        return pairs

    async def get_display_details_batch(self, signatures: Sequence[str]) -> list[TransactionInfo]:
        infos = []
        for signature, record in await self.get_details_batch(signatures):
            infos.append(self.classifier.classify(record, signature))
        return infos
