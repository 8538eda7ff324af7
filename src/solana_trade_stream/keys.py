from __future__ import annotations

import base58

from .errors import InvalidAddressError, InvalidSignatureError

PUBKEY_LENGTH = 32
SIGNATURE_LENGTH = 64


def _decoded_length(text: str) -> int | None:
    try:
        return len(base58.b58decode(text))
    except ValueError:
        return None


def validate_address(address: str) -> str:
    if not isinstance(address, str) or not address.strip():
        raise InvalidAddressError(str(address), "empty")
    address = address.strip()
    if _decoded_length(address) != PUBKEY_LENGTH:
        raise InvalidAddressError(address)
    return address


def validate_signature(signature: str) -> str:
    if not isinstance(signature, str) or not signature.strip():
        raise InvalidSignatureError(str(signature), "empty")
    signature = signature.strip()
    if _decoded_length(signature) != SIGNATURE_LENGTH:
        raise InvalidSignatureError(signature)
    return signature


def is_valid_signature(signature: str) -> bool:
    try:
        validate_signature(signature)
    except InvalidSignatureError:
        return False
    return True
