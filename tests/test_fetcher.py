import asyncio
import logging

import pytest

from solana_trade_stream.errors import BatchFetchError, InvalidSignatureError
from solana_trade_stream.fetcher import BatchDetailFetcher

from fakes import FakeGateway, make_address, make_signature, transfer_record


def _gateway_with(signatures: list[str]) -> FakeGateway:
    return FakeGateway(
        transactions={
            sig: transfer_record(make_address(i), make_address(i + 100), 1_000 * (i + 1))
            for i, sig in enumerate(signatures)
        }
    )


def test_malformed_signature_is_dropped_and_logged_once(caplog) -> None:
    good = [make_signature(1), make_signature(2)]
    fetcher = BatchDetailFetcher(_gateway_with(good))

    with caplog.at_level(logging.WARNING, logger="solana_trade_stream"):
        infos = asyncio.run(fetcher.get_display_details_batch([good[0], "0OIl-not-base58", good[1]]))

    assert [info.signature for info in infos] == good
    errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert len(errors) == 1


def test_records_stay_paired_with_their_signature() -> None:
    sigs = [make_signature(i) for i in range(1, 6)]
    gateway = _gateway_with(sigs)
    del gateway.transactions[sigs[1]]
    gateway.failing.add(sigs[3])
    fetcher = BatchDetailFetcher(gateway, max_concurrency=2)

    async def scenario() -> tuple[list, list]:
        return await fetcher.get_details_batch(sigs), await fetcher.get_display_details_batch(sigs)

    pairs, infos = asyncio.run(scenario())

    assert [sig for sig, _ in pairs] == [sigs[0], sigs[2], sigs[4]]
    assert [info.signature for info in infos] == [sigs[0], sigs[2], sigs[4]]
    assert infos[1].value == 3_000


def test_whole_batch_failure_raises() -> None:
    sigs = [make_signature(1), make_signature(2)]
    gateway = _gateway_with(sigs)
    gateway.failing.update(sigs)
    fetcher = BatchDetailFetcher(gateway)

    with pytest.raises(BatchFetchError) as excinfo:
        asyncio.run(fetcher.get_details_batch(sigs))
    assert excinfo.value.signatures == sigs


def test_batch_of_only_missing_records_is_not_a_failure() -> None:
    fetcher = BatchDetailFetcher(FakeGateway())
    assert asyncio.run(fetcher.get_details_batch([make_signature(1)])) == []
    assert asyncio.run(fetcher.get_details_batch([])) == []


def test_single_item_variants() -> None:
    sig = make_signature(9)
    fetcher = BatchDetailFetcher(_gateway_with([sig]))

    info = asyncio.run(fetcher.get_display_details(sig))
    assert info is not None
    assert info.signature == sig
    assert asyncio.run(fetcher.get_display_details(make_signature(10))) is None

    with pytest.raises(InvalidSignatureError):
        asyncio.run(fetcher.get_details("bad"))
