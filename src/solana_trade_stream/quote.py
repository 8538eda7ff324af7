from __future__ import annotations

import re

from .constants import KNOWN_DECIMALS, LAMPORTS_PER_SOL, QUOTE_TOKENS, SOL, USD1, USDC, USDT, WSOL
from .types import Direction, SwapStep, TokenBalance, TokenInfo, TransactionInfo


# "Swap 50,132.799581 fih for 175.275832 USD1 on Raydium CPMM"
_SWAP_LOG = re.compile(
    r"Swap\s+(?P<in_amount>[\d,]+(?:\.\d+)?)\s+(?P<in_token>\S+)\s+for\s+"
    r"(?P<out_amount>[\d,]+(?:\.\d+)?)(?:\s+(?P<out_token>\S+))?(?:\s+on\s+(?P<venue>.+))?"
)


def direction_from_changes(base_change: float | None, quote_change: float | None) -> Direction:
    if base_change is None or quote_change is None:
        return Direction.UNKNOWN
    if base_change > 0 and quote_change < 0:
        return Direction.BUY
    if base_change < 0 and quote_change > 0:
        return Direction.SELL
    return Direction.UNKNOWN


def price_from_changes(base_change: float | None, quote_change: float | None) -> float | None:
    if not base_change or not quote_change:
        return None
    return abs(quote_change) / abs(base_change)


def parse_swap_log(line: str) -> SwapStep | None:
    match = _SWAP_LOG.search(line)
    if match is None:
        return None
    try:
        in_amount = float(match.group("in_amount").replace(",", ""))
        out_amount = float(match.group("out_amount").replace(",", ""))
    except ValueError:
        return None
    return SwapStep(
        input_token=match.group("in_token"),
        input_amount=in_amount,
        output_token=match.group("out_token") or "unknown",
        output_amount=out_amount,
    )


class QuoteResolver:
    """Resolves base/quote tokens and the signer's side of a swap-like transaction.

    All amounts are read from the point of view of ``signer`` (defaults to the
    transaction signer, then the fee payer). Token changes are keyed by
    (mint, owner); a missing pre or post entry counts as zero.
    """

    def __init__(self, info: TransactionInfo, signer: str | None = None) -> None:
        self.info = info
        self.signer = signer or info.signer or info.fee_payer

    def _signer_amount(self, balances: tuple[TokenBalance, ...], mint: str) -> int:
        for balance in balances:
            if balance.mint == mint and balance.owner == self.signer:
                return balance.raw_amount
        return 0

    def _signer_mints(self) -> list[str]:
        mints: list[str] = []
        for balance in self.info.pre_token_balances + self.info.post_token_balances:
            if balance.owner == self.signer and balance.mint not in mints:
                mints.append(balance.mint)
        return mints

    def involved_mints(self) -> list[str]:
        mints: list[str] = []
        for balance in self.info.pre_token_balances + self.info.post_token_balances:
            if balance.mint not in mints:
                mints.append(balance.mint)
        return mints

    def has_token(self, mint: str) -> bool:
        return any(b.mint == mint for b in self.info.pre_token_balances + self.info.post_token_balances)

    def has_sol_activity(self) -> bool:
        return any(pre != post for pre, post in zip(self.info.pre_balances, self.info.post_balances))

    def token_decimals(self, mint: str) -> int | None:
        for balance in self.info.pre_token_balances + self.info.post_token_balances:
            if balance.mint == mint:
                return balance.decimals
        return KNOWN_DECIMALS.get(mint)

    def token_change_raw(self, mint: str) -> int:
        if not self.signer:
            return 0
        post = self._signer_amount(self.info.post_token_balances, mint)
        pre = self._signer_amount(self.info.pre_token_balances, mint)
        return post - pre

    def token_change(self, mint: str) -> float | None:
        if not self.signer:
            return None
        decimals = self.token_decimals(mint)
        if decimals is None:
            return None
        return self.token_change_raw(mint) / (10**decimals)

    def native_change_raw(self) -> int:
        """Signer lamport delta with the fee added back when the signer paid it."""
        accounts = self.info.involved_accounts
        if self.signer not in accounts:
            return 0
        index = accounts.index(self.signer)
        if index >= len(self.info.pre_balances) or index >= len(self.info.post_balances):
            return 0
        delta = self.info.post_balances[index] - self.info.pre_balances[index]
        if self.signer == (self.info.fee_payer or self.info.signer):
            delta += self.info.fee
        return delta

    def received_token(self) -> tuple[str, int] | None:
        best: tuple[str, int] | None = None
        for mint in self._signer_mints():
            change = self.token_change_raw(mint)
            if change > 0 and (best is None or change > best[1]):
                best = (mint, change)
        return best

    def spent_token(self) -> tuple[str, int] | None:
        best: tuple[str, int] | None = None
        for mint in self._signer_mints():
            change = -self.token_change_raw(mint)
            if change > 0 and (best is None or change > best[1]):
                best = (mint, change)
        return best

    def final_quote_token(self) -> str:
        received = self.received_token()
        if received is not None and received[0] in QUOTE_TOKENS:
            return received[0]
        spent = self.spent_token()
        if spent is not None and spent[0] in QUOTE_TOKENS:
            return spent[0]
        if self.has_token(WSOL):
            return WSOL
        if self.has_sol_activity():
            return SOL
        for mint in (USD1, USDC, USDT):
            if self.has_token(mint):
                return mint
        return SOL

    def base_token(self) -> str | None:
        quote = self.final_quote_token()
        best: str | None = None
        best_abs = 0.0
        for mint in self.involved_mints():
            if mint == quote or mint in QUOTE_TOKENS:
                continue
            change = self.token_change(mint)
            if change is not None and abs(change) > best_abs:
                best_abs = abs(change)
                best = mint
        return best

    def base_change_raw(self) -> int:
        base = self.base_token()
        return self.token_change_raw(base) if base else 0

    def base_change(self) -> float | None:
        base = self.base_token()
        return self.token_change(base) if base else None

    def quote_change_raw(self) -> int:
        quote = self.final_quote_token()
        if quote in (SOL, WSOL):
            wrapped = self.token_change_raw(WSOL)
            return wrapped if wrapped else self.native_change_raw()
        return self.token_change_raw(quote)

    def quote_change(self) -> float | None:
        quote = self.final_quote_token()
        if quote in (SOL, WSOL):
            if not self.signer:
                return None
            return self.quote_change_raw() / LAMPORTS_PER_SOL
        return self.token_change(quote)

    def direction(self) -> Direction:
        return direction_from_changes(self.base_change(), self.quote_change())

    def price(self) -> float | None:
        return price_from_changes(self.base_change(), self.quote_change())

    def swap_path(self) -> list[SwapStep]:
        steps = []
        for line in self.info.logs:
            if "Swap" not in line or " for " not in line:
                continue
            step = parse_swap_log(line)
            if step is not None:
                steps.append(step)
        return steps

    def pool_address(self) -> str | None:
        """Best guess: the single non-signer owner of touched token accounts."""
        owners: list[str] = []
        for balance in self.info.pre_token_balances + self.info.post_token_balances:
            if balance.owner and balance.owner != self.signer and balance.owner not in owners:
                owners.append(balance.owner)
        return owners[0] if owners else None

    def token_info(self) -> TokenInfo:
        base_change = self.base_change()
        quote_change = self.quote_change()
        return TokenInfo(
            base_token=self.base_token(),
            quote_token=self.final_quote_token(),
            base_change_raw=self.base_change_raw(),
            quote_change_raw=self.quote_change_raw(),
            base_change=base_change,
            quote_change=quote_change,
            direction=direction_from_changes(base_change, quote_change),
            price=price_from_changes(base_change, quote_change),
            swap_path=tuple(self.swap_path()),
        )
