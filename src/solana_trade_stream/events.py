from __future__ import annotations

from .quote import QuoteResolver
from .types import (
    Direction,
    LiquidityEvent,
    SwapEvent,
    TransactionEvent,
    TransactionInfo,
    TransactionType,
    TransferEvent,
    UnclassifiedEvent,
)

_TRANSFER_TYPES = (TransactionType.TRANSFER, TransactionType.TOKEN_TRANSFER, TransactionType.NFT_TRANSFER)


def is_swap_like(info: TransactionInfo) -> bool:
    """Protocol-confirmed swaps, plus keyword hits whose signer side resolves to a direction."""
    if info.transaction_type is TransactionType.SWAP:
        return True
    return (
        info.is_swap
        and info.transaction_type is TransactionType.TOKEN_TRANSFER
        and info.direction is not Direction.UNKNOWN
    )


def categorize(info: TransactionInfo) -> TransactionEvent:
    if is_swap_like(info):
        token = QuoteResolver(info).token_info()
        return SwapEvent(
            signature=info.signature,
            slot=info.slot,
            block_time=info.block_time,
            signer=info.signer,
            dex_program_type=info.dex_program_type,
            dex_program_id=info.dex_program_id,
            base_token=token.base_token,
            quote_token=token.quote_token,
            base_change=token.base_change,
            quote_change=token.quote_change,
            direction=token.direction,
            price=token.price,
        )

    if info.transaction_type in (TransactionType.ADD_LIQUIDITY, TransactionType.REMOVE_LIQUIDITY):
        return LiquidityEvent(
            signature=info.signature,
            slot=info.slot,
            block_time=info.block_time,
            signer=info.signer,
            dex_program_type=info.dex_program_type,
            dex_program_id=info.dex_program_id,
            added=info.transaction_type is TransactionType.ADD_LIQUIDITY,
            token_changes=info.token_changes,
        )

    if info.transaction_type in _TRANSFER_TYPES:
        transfer = info.native_transfer
        return TransferEvent(
            signature=info.signature,
            slot=info.slot,
            block_time=info.block_time,
            source=transfer.source if transfer else "",
            destination=transfer.destination if transfer else "",
            lamports=transfer.lamports if transfer else 0,
            token_changes=info.token_changes,
            is_nft=info.is_nft_transfer,
        )

    return UnclassifiedEvent(
        signature=info.signature,
        slot=info.slot,
        block_time=info.block_time,
        transaction_type=info.transaction_type,
    )
