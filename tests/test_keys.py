import pytest

from solana_trade_stream.errors import InvalidAddressError, InvalidSignatureError
from solana_trade_stream.keys import is_valid_signature, validate_address, validate_signature

from fakes import make_address, make_signature


def test_valid_keys_are_returned_stripped() -> None:
    address = make_address(5)
    assert validate_address(f"  {address} ") == address
    assert validate_signature(make_signature(5)) == make_signature(5)


def test_wrong_length_and_bad_alphabet_are_rejected() -> None:
    with pytest.raises(InvalidAddressError):
        validate_address(make_signature(5))
    with pytest.raises(InvalidAddressError):
        validate_address("0OIl" * 11)
    with pytest.raises(InvalidSignatureError):
        validate_signature(make_address(5))
    with pytest.raises(ValueError):
        validate_signature("")


def test_is_valid_signature() -> None:
    assert is_valid_signature(make_signature(8)) is True
    assert is_valid_signature("not-a-signature") is False
