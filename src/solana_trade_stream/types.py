from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .constants import (
    LAMPORTS_PER_SOL,
    METEORA_DLMM_V2_PROGRAM_ID,
    METEORA_DYNAMIC_BOND_CURVE_PROGRAM_ID,
    PUMP_BOND_CURVE_PROGRAM_ID,
    RAYDIUM_LAUNCHPAD_PROGRAM_ID,
    VOTE_PROGRAM_ID,
)

RawTransactionRecord = dict[str, Any]


class DexProgramType(str, Enum):
    NONE = "none"
    RAYDIUM = "Raydium"
    METEORA = "Meteora"
    ORCA = "Orca"
    PUMP_AAM = "PumpAAM"
    PUMP_BOND_CURVE = "PumpBondCurve"


class TransactionType(str, Enum):
    SWAP = "Swap"
    ADD_LIQUIDITY = "AddLiquidity"
    REMOVE_LIQUIDITY = "RemoveLiquidity"
    TRANSFER = "Transfer"
    TOKEN_TRANSFER = "TokenTransfer"
    NFT_TRANSFER = "NFTTransfer"
    OTHER = "Other"


class Direction(str, Enum):
    BUY = "Buy"
    SELL = "Sell"
    UNKNOWN = "Unknown"


class TransactionStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class SignatureInfo:
    signature: str
    slot: int
    err: Any
    block_time: int | None
    memo: str | None
    confirmation_status: str | None

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> SignatureInfo:
        return cls(
            signature=item["signature"],
            slot=int(item.get("slot") or 0),
            err=item.get("err"),
            block_time=item.get("blockTime"),
            memo=item.get("memo"),
            confirmation_status=item.get("confirmationStatus"),
        )


@dataclass(frozen=True)
class Reward:
    pubkey: str
    lamports: int
    post_balance: int
    reward_type: str | None


@dataclass(frozen=True)
class BlockInfo:
    slot: int
    blockhash: str
    previous_blockhash: str
    parent_slot: int
    block_time: int | None
    block_height: int | None
    rewards: tuple[Reward, ...]
    transaction_signatures: tuple[str, ...]

    @property
    def transaction_count(self) -> int:
        return len(self.transaction_signatures)


@dataclass(frozen=True)
class TokenBalance:
    account_index: int
    mint: str
    owner: str
    amount: str
    decimals: int
    ui_amount: float | None = None

    @property
    def raw_amount(self) -> int:
        try:
            return int(self.amount)
        except (TypeError, ValueError):
            return 0


@dataclass(frozen=True)
class TokenBalanceChange:
    """Raw amount movement of one (mint, owner) pair.

    ``kind`` is ``"change"`` for pairs present before and after,
    ``"mint"``/``"added"`` for balances that only exist afterwards and
    ``"burn"``/``"removed"`` for balances that disappeared.
    """

    mint: str
    owner: str
    account_index: int
    pre_amount: int
    post_amount: int
    decimals: int
    kind: str = "change"

    @property
    def delta(self) -> int:
        return self.post_amount - self.pre_amount

    @property
    def ui_delta(self) -> float:
        return self.delta / (10**self.decimals)


@dataclass(frozen=True)
class InstructionInfo:
    program_id: str
    accounts: tuple[str, ...]
    data: str
    program: str
    stack_height: int | None = None


@dataclass(frozen=True)
class InnerInstructionInfo:
    index: int
    instructions: tuple[InstructionInfo, ...]


@dataclass(frozen=True)
class AccountDelta:
    account: str
    index: int
    pre: int
    post: int

    @property
    def delta(self) -> int:
        return self.post - self.pre


@dataclass(frozen=True)
class NativeTransfer:
    """Single sender/receiver guess from native balances.

    Only reliable for simple one-to-one transfers; multi-party transactions
    should be read from ``TransactionInfo.balance_deltas`` instead.
    """

    source: str
    destination: str
    lamports: int

    @property
    def sol(self) -> float:
        return self.lamports / LAMPORTS_PER_SOL


@dataclass(frozen=True)
class TransactionInfo:
    signature: str
    slot: int = 0
    block_time: int | None = None
    fee: int = 0
    status: TransactionStatus = TransactionStatus.SUCCESS
    error: Any = None
    signer: str = ""
    fee_payer: str = ""
    signers: tuple[str, ...] = ()
    involved_accounts: tuple[str, ...] = ()
    writable_accounts: tuple[str, ...] = ()
    readonly_accounts: tuple[str, ...] = ()
    recent_blockhash: str = ""
    version: int | None = None
    compute_units_consumed: int | None = None
    pre_balances: tuple[int, ...] = ()
    post_balances: tuple[int, ...] = ()
    pre_token_balances: tuple[TokenBalance, ...] = ()
    post_token_balances: tuple[TokenBalance, ...] = ()
    logs: tuple[str, ...] = ()
    instructions: tuple[InstructionInfo, ...] = ()
    inner_instructions: tuple[InnerInstructionInfo, ...] = ()
    native_transfer: NativeTransfer | None = None
    balance_deltas: tuple[AccountDelta, ...] = ()
    token_changes: tuple[TokenBalanceChange, ...] = ()
    is_nft_transfer: bool = False
    nft_mint: str | None = None
    is_swap: bool = False
    dex_program_id: str | None = None
    dex_pool_name: str | None = None
    dex_program_type: DexProgramType = DexProgramType.NONE
    transaction_type: TransactionType = TransactionType.OTHER
    direction: Direction = Direction.UNKNOWN
    created_at: int = 0
    updated_at: int = 0
    source: str = "rpc"
    confidence: float = 1.0

    @property
    def is_successful(self) -> bool:
        return self.status is TransactionStatus.SUCCESS

    @property
    def fee_sol(self) -> float:
        return self.fee / LAMPORTS_PER_SOL

    @property
    def value(self) -> int:
        return self.native_transfer.lamports if self.native_transfer else 0

    @property
    def value_sol(self) -> float:
        return self.value / LAMPORTS_PER_SOL

    @property
    def is_pump(self) -> bool:
        return self.dex_program_type in (DexProgramType.PUMP_AAM, DexProgramType.PUMP_BOND_CURVE)

    def all_program_ids(self) -> list[str]:
        ids = [ins.program_id for ins in self.instructions]
        for inner in self.inner_instructions:
            ids.extend(ins.program_id for ins in inner.instructions)
        return ids

    def mentions_program(self, program_id: str) -> bool:
        if self.dex_program_id == program_id:
            return True
        if any(program_id in log for log in self.logs):
            return True
        return program_id in self.all_program_ids()

    @property
    def is_pump_bond_curve_trade(self) -> bool:
        return self.mentions_program(PUMP_BOND_CURVE_PROGRAM_ID)

    @property
    def is_meteora_dbc_trade(self) -> bool:
        return self.mentions_program(METEORA_DYNAMIC_BOND_CURVE_PROGRAM_ID) or any(
            METEORA_DLMM_V2_PROGRAM_ID in log for log in self.logs
        )

    @property
    def is_raydium_launchpad_trade(self) -> bool:
        if self.mentions_program(RAYDIUM_LAUNCHPAD_PROGRAM_ID):
            return True
        if self.dex_program_type is DexProgramType.RAYDIUM:
            markers = ("launchpad", "Launchpad", "IDO", "ido")
            return any(m in log for log in self.logs for m in markers)
        return False

    @property
    def is_vote(self) -> bool:
        if self.mentions_program(VOTE_PROGRAM_ID):
            return True
        return any("vote" in log and "rogram" in log for log in self.logs)


@dataclass(frozen=True)
class SwapStep:
    input_token: str
    input_amount: float
    output_token: str
    output_amount: float


@dataclass(frozen=True)
class TokenInfo:
    base_token: str | None
    quote_token: str
    base_change_raw: int
    quote_change_raw: int
    base_change: float | None
    quote_change: float | None
    direction: Direction
    price: float | None
    swap_path: tuple[SwapStep, ...] = ()


@dataclass(frozen=True)
class TransferEvent:
    signature: str
    slot: int
    block_time: int | None
    source: str
    destination: str
    lamports: int
    token_changes: tuple[TokenBalanceChange, ...] = ()
    is_nft: bool = False


@dataclass(frozen=True)
class SwapEvent:
    signature: str
    slot: int
    block_time: int | None
    signer: str
    dex_program_type: DexProgramType
    dex_program_id: str | None
    base_token: str | None
    quote_token: str
    base_change: float | None
    quote_change: float | None
    direction: Direction
    price: float | None


@dataclass(frozen=True)
class LiquidityEvent:
    signature: str
    slot: int
    block_time: int | None
    signer: str
    dex_program_type: DexProgramType
    dex_program_id: str | None
    added: bool
    token_changes: tuple[TokenBalanceChange, ...]


@dataclass(frozen=True)
class UnclassifiedEvent:
    signature: str
    slot: int
    block_time: int | None
    transaction_type: TransactionType


TransactionEvent = TransferEvent | SwapEvent | LiquidityEvent | UnclassifiedEvent
