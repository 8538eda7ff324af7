import pytest

from solana_trade_stream.seen import SeenSignatures


def test_seen_rejects_duplicates() -> None:
    seen = SeenSignatures()
    assert seen.add("a") is True
    assert seen.add("a") is False
    assert "a" in seen
    assert len(seen) == 1


def test_bounded_seen_evicts_oldest_first() -> None:
    seen = SeenSignatures(max_size=2)
    for signature in ("a", "b", "c"):
        seen.add(signature)

    assert "a" not in seen
    assert "b" in seen and "c" in seen
    assert seen.add("a") is True


def test_max_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        SeenSignatures(max_size=0)
