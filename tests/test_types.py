from solana_trade_stream.constants import RAYDIUM_LAUNCHPAD_PROGRAM_ID, VOTE_PROGRAM_ID
from solana_trade_stream.types import (
    DexProgramType,
    InstructionInfo,
    NativeTransfer,
    TransactionInfo,
    TransactionStatus,
)

from fakes import make_address, make_signature


def _info(**kwargs) -> TransactionInfo:
    return TransactionInfo(signature=make_signature(1), **kwargs)


def test_value_and_fee_in_sol() -> None:
    info = _info(
        fee=5000,
        native_transfer=NativeTransfer(make_address(1), make_address(2), 2_500_000_000),
    )
    assert info.fee_sol == 0.000005
    assert info.value_sol == 2.5
    assert info.is_successful is True
    assert _info(status=TransactionStatus.FAILED).is_successful is False


def test_vote_detection_from_instructions() -> None:
    vote = InstructionInfo(program_id=VOTE_PROGRAM_ID, accounts=(), data="", program="vote")
    assert _info(instructions=(vote,)).is_vote is True
    assert _info().is_vote is False


def test_launchpad_and_pump_flags() -> None:
    launchpad = _info(logs=(f"Program {RAYDIUM_LAUNCHPAD_PROGRAM_ID} invoke [1]",))
    assert launchpad.is_raydium_launchpad_trade is True
    assert launchpad.is_meteora_dbc_trade is False

    assert _info(dex_program_type=DexProgramType.PUMP_AAM).is_pump is True
    assert _info(dex_program_type=DexProgramType.ORCA).is_pump is False
