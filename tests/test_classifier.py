import struct

import base58
import pytest

from solana_trade_stream.classifier import TransactionClassifier, decode_system_transfer
from solana_trade_stream.constants import RAYDIUM_V4_POOL_PROGRAM_ID, SYSTEM_PROGRAM_ID
from solana_trade_stream.errors import InvalidSignatureError
from solana_trade_stream.types import (
    DexProgramType,
    Direction,
    TransactionStatus,
    TransactionType,
)

from fakes import (
    compiled_transfer_data,
    make_address,
    make_signature,
    parsed_record,
    token_balance,
    transfer_record,
)

SIG = make_signature(42)
ALICE = make_address(1)
BOB = make_address(2)
POOL = make_address(3)
MINT = make_address(10)
OTHER_MINT = make_address(11)
NEW_MINT = make_address(12)


def test_parsed_system_transfer() -> None:
    info = TransactionClassifier.from_raw(transfer_record(ALICE, BOB, 2_000), SIG)

    assert info.signature == SIG
    assert info.status is TransactionStatus.SUCCESS
    assert info.is_successful
    assert info.transaction_type is TransactionType.TRANSFER
    assert info.native_transfer is not None
    assert (info.native_transfer.source, info.native_transfer.destination) == (ALICE, BOB)
    assert info.value == 2_000
    assert info.fee == 5000
    assert info.signer == ALICE
    assert info.fee_payer == ALICE
    assert info.signers == (ALICE,)
    assert info.version == 0
    assert info.compute_units_consumed == 150
    assert [d.account for d in info.balance_deltas] == [ALICE, BOB]
    assert info.source == "rpc"
    assert info.confidence == 1.0
    assert info.created_at == info.updated_at > 0
    assert info.is_swap is False


def test_raw_message_with_loaded_addresses() -> None:
    loaded = make_address(4)
    record = {
        "slot": 7,
        "blockTime": None,
        "version": 0,
        "meta": {
            "err": None,
            "fee": 5000,
            "preBalances": [5_000_000, 0, 1, 0],
            "postBalances": [5_000_000 - 777 - 5000, 777, 1, 0],
            "loadedAddresses": {"writable": [loaded], "readonly": []},
            "logMessages": [],
        },
        "transaction": {
            "signatures": [SIG],
            "message": {
                "header": {
                    "numRequiredSignatures": 1,
                    "numReadonlySignedAccounts": 0,
                    "numReadonlyUnsignedAccounts": 1,
                },
                "accountKeys": [ALICE, BOB, SYSTEM_PROGRAM_ID],
                "instructions": [
                    {"programIdIndex": 2, "accounts": [0, 1], "data": compiled_transfer_data(777)},
                ],
                "recentBlockhash": "hash",
            },
        },
    }

    info = TransactionClassifier.from_raw(record, SIG)

    assert info.involved_accounts == (ALICE, BOB, SYSTEM_PROGRAM_ID, loaded)
    assert info.writable_accounts == (ALICE, BOB, loaded)
    assert info.readonly_accounts == (SYSTEM_PROGRAM_ID,)
    assert info.signers == (ALICE,)
    assert info.instructions[0].program_id == SYSTEM_PROGRAM_ID
    assert info.instructions[0].accounts == (ALICE, BOB)
    assert info.native_transfer is not None
    assert info.native_transfer.lamports == 777
    assert info.transaction_type is TransactionType.TRANSFER
    assert info.recent_blockhash == "hash"


def test_decode_system_transfer_ignores_other_instructions() -> None:
    assert decode_system_transfer(compiled_transfer_data(123)) == 123
    assert decode_system_transfer(base58.b58encode(struct.pack("<IQ", 3, 5)).decode()) is None
    assert decode_system_transfer(base58.b58encode(b"\x02\x00").decode()) is None
    assert decode_system_transfer("not base58 0OIl") is None


def test_failed_transaction_keeps_error() -> None:
    record = transfer_record(ALICE, BOB, 10)
    record["meta"]["err"] = {"InstructionError": [0, {"Custom": 1}]}

    info = TransactionClassifier.from_raw(record, SIG)

    assert info.status is TransactionStatus.FAILED
    assert info.error == {"InstructionError": [0, {"Custom": 1}]}
    assert not info.is_successful


def test_token_diffing_infers_mint_and_removed() -> None:
    record = parsed_record(
        [ALICE, BOB],
        [1_000_000, 0],
        [995_000, 0],
        logs=["Program log: Instruction: MintTo"],
        pre_tokens=[token_balance(1, MINT, ALICE, 100, 6), token_balance(2, OTHER_MINT, BOB, 50, 6)],
        post_tokens=[token_balance(1, MINT, ALICE, 40, 6), token_balance(3, NEW_MINT, ALICE, 10, 6)],
    )

    info = TransactionClassifier.from_raw(record, SIG)
    changes = {(c.mint, c.owner): c for c in info.token_changes}

    assert info.transaction_type is TransactionType.TOKEN_TRANSFER
    assert changes[(MINT, ALICE)].delta == -60
    assert changes[(MINT, ALICE)].kind == "change"
    assert changes[(OTHER_MINT, BOB)].kind == "removed"
    assert changes[(NEW_MINT, ALICE)].kind == "mint"
    assert changes[(NEW_MINT, ALICE)].delta == 10


def test_nft_transfer() -> None:
    record = parsed_record(
        [ALICE, BOB],
        [1_000_000, 0],
        [995_000, 0],
        pre_tokens=[token_balance(1, MINT, ALICE, 1, 0)],
        post_tokens=[token_balance(2, MINT, BOB, 1, 0)],
    )

    info = TransactionClassifier.from_raw(record, SIG)

    assert info.is_nft_transfer is True
    assert info.nft_mint == MINT
    assert info.transaction_type is TransactionType.NFT_TRANSFER


def test_raydium_swap_sets_dex_fields_and_direction() -> None:
    fee = 5000
    record = parsed_record(
        [ALICE, POOL, RAYDIUM_V4_POOL_PROGRAM_ID],
        [10_000_000_000, 50_000_000_000, 1],
        [8_000_000_000 - fee, 52_000_000_000, 1],
        fee=fee,
        logs=[
            f"Program {RAYDIUM_V4_POOL_PROGRAM_ID} invoke [1]",
            "Program log: ray_log: A4CWmAAAAAAA",
            f"Program {RAYDIUM_V4_POOL_PROGRAM_ID} success",
        ],
        pre_tokens=[token_balance(3, MINT, POOL, 100_000_000, 6)],
        post_tokens=[token_balance(3, MINT, POOL, 95_000_000, 6), token_balance(4, MINT, ALICE, 5_000_000, 6)],
    )

    info = TransactionClassifier.from_raw(record, SIG)

    assert info.dex_program_type is DexProgramType.RAYDIUM
    assert info.dex_program_id == RAYDIUM_V4_POOL_PROGRAM_ID
    assert info.dex_pool_name == "raydium-v4-pool"
    assert info.transaction_type is TransactionType.SWAP
    assert info.is_swap is True
    assert info.direction is Direction.BUY


def test_invalid_signature_is_rejected() -> None:
    with pytest.raises(InvalidSignatureError):
        TransactionClassifier.from_raw(transfer_record(ALICE, BOB, 1), "short")


def test_irregular_record_degrades_to_defaults() -> None:
    info = TransactionClassifier.from_raw({"meta": "oops", "transaction": None, "slot": "x"}, SIG)

    assert info.slot == 0
    assert info.fee == 0
    assert info.signer == ""
    assert info.transaction_type is TransactionType.OTHER
    assert info.dex_program_type is DexProgramType.NONE
    assert info.direction is Direction.UNKNOWN
