from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .constants import (
    DEX_KEYWORDS,
    METEORA_DAMM_V2_PROGRAM_ID,
    METEORA_DLMM_V2_PROGRAM_ID,
    METEORA_POOL_PROGRAM_ID,
    ORCA_WHIRLPOOLS_PROGRAM_ID,
    PUMP_AAM_PROGRAM_ID,
    PUMP_BOND_CURVE_PROGRAM_ID,
    RAYDIUM_CLMM_POOL_PROGRAM_ID,
    RAYDIUM_CPMM_POOL_PROGRAM_ID,
    RAYDIUM_V4_POOL_PROGRAM_ID,
)
from .types import DexProgramType, TransactionType


@dataclass(frozen=True)
class PoolProgram:
    """One pool program and the log markers of its liquidity instructions.

    With ``require_all`` every marker of a group must appear somewhere in
    the logs; otherwise any single marker counts and the last one seen in
    log order wins.
    """

    program_id: str
    pool_name: str
    add_liquidity: tuple[str, ...] = ()
    remove_liquidity: tuple[str, ...] = ()
    require_all: bool = False


@dataclass(frozen=True)
class ProtocolRule:
    dex_type: DexProgramType
    pools: tuple[PoolProgram, ...]

    @property
    def program_ids(self) -> tuple[str, ...]:
        return tuple(pool.program_id for pool in self.pools)


@dataclass(frozen=True)
class DexMatch:
    dex_type: DexProgramType = DexProgramType.NONE
    program_id: str | None = None
    pool_name: str | None = None
    transaction_type: TransactionType | None = None
    is_swap: bool = False

    @property
    def matched(self) -> bool:
        return self.dex_type is not DexProgramType.NONE


DEFAULT_RULES: tuple[ProtocolRule, ...] = (
    ProtocolRule(
        DexProgramType.RAYDIUM,
        (
            PoolProgram(RAYDIUM_V4_POOL_PROGRAM_ID, "raydium-v4-pool", ("MintTo",), ("Burn",)),
            PoolProgram(RAYDIUM_CPMM_POOL_PROGRAM_ID, "raydium-cpmm-pool", ("MintTo",), ("Burn",)),
            PoolProgram(RAYDIUM_CLMM_POOL_PROGRAM_ID, "raydium-clmm-pool", ("IncreaseLiquidityV2",), ("Burn",)),
        ),
    ),
    ProtocolRule(
        DexProgramType.METEORA,
        (
            PoolProgram(METEORA_DAMM_V2_PROGRAM_ID, "meteora-damm-v2-pool", ("AddLiquidity",), ("RemoveLiquidity",)),
            PoolProgram(METEORA_DLMM_V2_PROGRAM_ID, "meteora-dlmm-v2-pool", ("AddLiquidity",), ("RemoveLiquidity",)),
            PoolProgram(
                METEORA_POOL_PROGRAM_ID,
                "meteora-pool",
                ("AddBalanceLiquidity",),
                ("RemoveBalanceLiquidity",),
            ),
        ),
    ),
    ProtocolRule(
        DexProgramType.ORCA,
        (
            PoolProgram(
                ORCA_WHIRLPOOLS_PROGRAM_ID,
                "orca-whirl-pools",
                ("IncreaseLiquidity",),
                ("DecreaseLiquidity",),
            ),
        ),
    ),
    ProtocolRule(
        DexProgramType.PUMP_AAM,
        (
            PoolProgram(
                PUMP_AAM_PROGRAM_ID,
                "pump-amm-pool",
                ("Instruction: Deposit", "Instruction: MintTo"),
                ("Instruction: Burn", "Instruction: Withdraw"),
                require_all=True,
            ),
        ),
    ),
    ProtocolRule(
        DexProgramType.PUMP_BOND_CURVE,
        (PoolProgram(PUMP_BOND_CURVE_PROGRAM_ID, "pump-bonding-curve"),),
    ),
)


class DexProtocolMatcher:
    """Detects the exchange protocol behind a transaction from its logs and program ids."""

    def __init__(
        self,
        rules: Sequence[ProtocolRule] = DEFAULT_RULES,
        keywords: Sequence[str] = DEX_KEYWORDS,
    ) -> None:
        self.rules = tuple(rules)
        self.keywords = tuple(keywords)

    def keyword_hit(self, logs: Iterable[str]) -> bool:
        return any(keyword in line for line in logs for keyword in self.keywords)

    def match(self, logs: Sequence[str], program_ids: Iterable[str] = ()) -> DexMatch:
        logs = tuple(logs)
        invoked = set(program_ids)
        keyword = self.keyword_hit(logs)

        for rule in self.rules:
            pool = self._find_pool(rule, logs, invoked)
            if pool is None:
                continue
            tx_type = self._liquidity_type(pool, logs)
            return DexMatch(
                dex_type=rule.dex_type,
                program_id=pool.program_id,
                pool_name=pool.pool_name,
                transaction_type=tx_type,
                is_swap=keyword or tx_type is TransactionType.SWAP,
            )
        return DexMatch(is_swap=keyword)

    @staticmethod
    def _find_pool(rule: ProtocolRule, logs: tuple[str, ...], invoked: set[str]) -> PoolProgram | None:
        for pool in rule.pools:
            if pool.program_id in invoked or any(pool.program_id in line for line in logs):
                return pool
        return None

    @staticmethod
    def _liquidity_type(pool: PoolProgram, logs: tuple[str, ...]) -> TransactionType:
        if pool.require_all:
            def present(markers: tuple[str, ...]) -> bool:
                return bool(markers) and all(any(m in line for line in logs) for m in markers)

            if present(pool.remove_liquidity):
                return TransactionType.REMOVE_LIQUIDITY
            if present(pool.add_liquidity):
                return TransactionType.ADD_LIQUIDITY
            return TransactionType.SWAP

        tx_type = TransactionType.SWAP
        for line in logs:
            if any(m in line for m in pool.add_liquidity):
                tx_type = TransactionType.ADD_LIQUIDITY
            if any(m in line for m in pool.remove_liquidity):
                tx_type = TransactionType.REMOVE_LIQUIDITY
        return tx_type
