from __future__ import annotations

import dataclasses
import json
import logging
import struct
import time
from typing import Any

import base58

from .constants import SYSTEM_PROGRAM_ID
from .dex import DexProtocolMatcher
from .keys import validate_signature
from .quote import QuoteResolver
from .types import (
    AccountDelta,
    InnerInstructionInfo,
    InstructionInfo,
    NativeTransfer,
    RawTransactionRecord,
    TokenBalance,
    TokenBalanceChange,
    TransactionInfo,
    TransactionStatus,
    TransactionType,
)

logger = logging.getLogger(__name__)

_SYSTEM_TRANSFER_TAG = 2
_PARSED_ACCOUNT_FIELDS = ("source", "destination", "account", "from", "to", "authority")


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_token_balances(items: Any) -> tuple[TokenBalance, ...]:
    balances = []
    for item in _as_list(items):
        item = _as_dict(item)
        amount = _as_dict(item.get("uiTokenAmount"))
        if not item.get("mint"):
            continue
        balances.append(
            TokenBalance(
                account_index=_as_int(item.get("accountIndex")),
                mint=str(item["mint"]),
                owner=str(item.get("owner") or ""),
                amount=str(amount.get("amount") or "0"),
                decimals=_as_int(amount.get("decimals")),
                ui_amount=amount.get("uiAmount"),
            )
        )
    return tuple(balances)


def diff_token_balances(
    pre: tuple[TokenBalance, ...],
    post: tuple[TokenBalance, ...],
    logs: tuple[str, ...],
) -> tuple[TokenBalanceChange, ...]:
    """Per (mint, owner) movements; balances seen on one side only are minted or burnt."""
    minted = any("MintTo" in line for line in logs)
    burnt = any("Burn" in line for line in logs)
    post_by_key = {(b.mint, b.owner): b for b in post}
    pre_keys = {(b.mint, b.owner) for b in pre}
    changes: list[TokenBalanceChange] = []

    for before in pre:
        after = post_by_key.get((before.mint, before.owner))
        if after is None:
            changes.append(
                TokenBalanceChange(
                    mint=before.mint,
                    owner=before.owner,
                    account_index=before.account_index,
                    pre_amount=before.raw_amount,
                    post_amount=0,
                    decimals=before.decimals,
                    kind="burn" if burnt else "removed",
                )
            )
        elif after.raw_amount != before.raw_amount:
            changes.append(
                TokenBalanceChange(
                    mint=before.mint,
                    owner=before.owner,
                    account_index=after.account_index,
                    pre_amount=before.raw_amount,
                    post_amount=after.raw_amount,
                    decimals=after.decimals,
                )
            )

    for after in post:
        if (after.mint, after.owner) in pre_keys:
            continue
        changes.append(
            TokenBalanceChange(
                mint=after.mint,
                owner=after.owner,
                account_index=after.account_index,
                pre_amount=0,
                post_amount=after.raw_amount,
                decimals=after.decimals,
                kind="mint" if minted else "added",
            )
        )
    return tuple(changes)


def native_balance_deltas(
    accounts: tuple[str, ...], pre: tuple[int, ...], post: tuple[int, ...]
) -> tuple[AccountDelta, ...]:
    deltas = []
    for index, (before, after) in enumerate(zip(pre, post)):
        if before == after:
            continue
        account = accounts[index] if index < len(accounts) else ""
        deltas.append(AccountDelta(account=account, index=index, pre=before, post=after))
    return tuple(deltas)


def guess_native_transfer(deltas: tuple[AccountDelta, ...]) -> NativeTransfer | None:
    """First decreased account pays the first increased one.

    Approximation for one-to-one transfers only. Fees, rent and
    multi-party movements make it wrong; ``balance_deltas`` has the rest.
    """
    sender = next((d for d in deltas if d.delta < 0), None)
    receiver = next((d for d in deltas if d.delta > 0), None)
    if sender is None or receiver is None or not sender.account or not receiver.account:
        return None
    return NativeTransfer(source=sender.account, destination=receiver.account, lamports=-sender.delta)


def decode_system_transfer(data: str) -> int | None:
    """Lamports of a compiled system ``Transfer`` instruction, else ``None``."""
    try:
        raw = base58.b58decode(data)
    except ValueError:
        return None
    if len(raw) < 12:
        return None
    tag, lamports = struct.unpack_from("<IQ", raw)
    return lamports if tag == _SYSTEM_TRANSFER_TAG else None


class _Message:
    """Normalized view over a ``jsonParsed`` or raw ``json`` message."""

    def __init__(self, message: dict[str, Any], meta: dict[str, Any]) -> None:
        self.accounts: tuple[str, ...] = ()
        self.signers: tuple[str, ...] = ()
        self.writable: tuple[str, ...] = ()
        self.readonly: tuple[str, ...] = ()
        self.instructions: tuple[InstructionInfo, ...] = ()
        self.transfer: NativeTransfer | None = None
        self.recent_blockhash = str(message.get("recentBlockhash") or "")

        keys = _as_list(message.get("accountKeys"))
        if keys and isinstance(keys[0], dict):
            self._load_parsed(message, keys)
        else:
            self._load_raw(message, keys, _as_dict(meta.get("loadedAddresses")))

    def _load_parsed(self, message: dict[str, Any], keys: list[Any]) -> None:
        entries = [_as_dict(k) for k in keys]
        self.accounts = tuple(str(k.get("pubkey", "")) for k in entries)
        self.signers = tuple(str(k.get("pubkey", "")) for k in entries if k.get("signer"))
        self.writable = tuple(str(k.get("pubkey", "")) for k in entries if k.get("writable"))
        self.readonly = tuple(str(k.get("pubkey", "")) for k in entries if not k.get("writable"))
        self.instructions = tuple(
            self.parsed_instruction(_as_dict(ins), self.accounts) for ins in _as_list(message.get("instructions"))
        )
        for raw in _as_list(message.get("instructions")):
            transfer = self._parsed_transfer(_as_dict(raw), self.accounts)
            if transfer is not None:
                self.transfer = transfer
                break

    def _load_raw(self, message: dict[str, Any], keys: list[Any], loaded: dict[str, Any]) -> None:
        static = tuple(str(k) for k in keys)
        loaded_writable = tuple(str(k) for k in _as_list(loaded.get("writable")))
        loaded_readonly = tuple(str(k) for k in _as_list(loaded.get("readonly")))
        self.accounts = static + loaded_writable + loaded_readonly

        header = _as_dict(message.get("header"))
        required = _as_int(header.get("numRequiredSignatures"))
        ro_signed = _as_int(header.get("numReadonlySignedAccounts"))
        ro_unsigned = _as_int(header.get("numReadonlyUnsignedAccounts"))
        self.signers = static[:required]
        writable = [k for i, k in enumerate(static[:required]) if i < required - ro_signed]
        writable += list(static[required : len(static) - ro_unsigned])
        self.writable = tuple(writable) + loaded_writable
        self.readonly = tuple(k for k in static if k not in writable) + loaded_readonly

        self.instructions = tuple(
            self.raw_instruction(_as_dict(ins), self.accounts) for ins in _as_list(message.get("instructions"))
        )
        for ins in self.instructions:
            if ins.program_id != SYSTEM_PROGRAM_ID or len(ins.accounts) < 2:
                continue
            lamports = decode_system_transfer(ins.data)
            if lamports is not None:
                self.transfer = NativeTransfer(ins.accounts[0], ins.accounts[1], lamports)
                break

    @staticmethod
    def parsed_instruction(raw: dict[str, Any], accounts: tuple[str, ...]) -> InstructionInfo:
        if "programIdIndex" in raw:
            return _Message.raw_instruction(raw, accounts)
        parsed = raw.get("parsed")
        if parsed is not None:
            info = _as_dict(_as_dict(parsed).get("info"))
            involved = tuple(str(info[f]) for f in _PARSED_ACCOUNT_FIELDS if isinstance(info.get(f), str))
            data = json.dumps(parsed, sort_keys=True)
            program = str(raw.get("program") or "parsed")
        else:
            involved = tuple(str(a) for a in _as_list(raw.get("accounts")))
            data = str(raw.get("data") or "")
            program = "partially_decoded"
        return InstructionInfo(
            program_id=str(raw.get("programId") or ""),
            accounts=involved,
            data=data,
            program=program,
            stack_height=_optional_int(raw.get("stackHeight")),
        )

    @staticmethod
    def raw_instruction(raw: dict[str, Any], accounts: tuple[str, ...]) -> InstructionInfo:
        def key(index: Any) -> str:
            i = _as_int(index, -1)
            return accounts[i] if 0 <= i < len(accounts) else ""

        return InstructionInfo(
            program_id=key(raw.get("programIdIndex")),
            accounts=tuple(key(i) for i in _as_list(raw.get("accounts"))),
            data=str(raw.get("data") or ""),
            program="compiled",
            stack_height=_optional_int(raw.get("stackHeight")),
        )

    @staticmethod
    def _parsed_transfer(raw: dict[str, Any], accounts: tuple[str, ...]) -> NativeTransfer | None:
        parsed = raw.get("parsed")
        if isinstance(parsed, dict):
            if raw.get("program") != "system" or parsed.get("type") != "transfer":
                return None
            info = _as_dict(parsed.get("info"))
            source, destination = info.get("source"), info.get("destination")
            lamports = _optional_int(info.get("lamports"))
            if isinstance(source, str) and isinstance(destination, str) and lamports is not None:
                return NativeTransfer(source, destination, lamports)
            return None
        if "programIdIndex" in raw:
            ins = _Message.raw_instruction(raw, accounts)
            if ins.program_id == SYSTEM_PROGRAM_ID and len(ins.accounts) >= 2:
                lamports = decode_system_transfer(ins.data)
                if lamports is not None:
                    return NativeTransfer(ins.accounts[0], ins.accounts[1], lamports)
        return None


def _inner_instructions(meta: dict[str, Any], accounts: tuple[str, ...]) -> tuple[InnerInstructionInfo, ...]:
    groups = []
    for group in _as_list(meta.get("innerInstructions")):
        group = _as_dict(group)
        instructions = tuple(
            _Message.parsed_instruction(_as_dict(ins), accounts) for ins in _as_list(group.get("instructions"))
        )
        groups.append(InnerInstructionInfo(index=_as_int(group.get("index")), instructions=instructions))
    return tuple(groups)


class TransactionClassifier:
    """Turns a raw ``getTransaction`` record into a classified ``TransactionInfo``."""

    def __init__(self, matcher: DexProtocolMatcher | None = None) -> None:
        self.matcher = matcher or DexProtocolMatcher()

    @classmethod
    def from_raw(cls, record: RawTransactionRecord, signature: str) -> TransactionInfo:
        return cls().classify(record, signature)

    def classify(self, record: RawTransactionRecord, signature: str) -> TransactionInfo:
        signature = validate_signature(signature)
        record = _as_dict(record)
        meta = _as_dict(record.get("meta"))
        transaction = _as_dict(record.get("transaction"))
        message = _Message(_as_dict(transaction.get("message")), meta)

        logs = tuple(str(line) for line in _as_list(meta.get("logMessages")))
        pre_balances = tuple(_as_int(v) for v in _as_list(meta.get("preBalances")))
        post_balances = tuple(_as_int(v) for v in _as_list(meta.get("postBalances")))
        pre_tokens = parse_token_balances(meta.get("preTokenBalances"))
        post_tokens = parse_token_balances(meta.get("postTokenBalances"))
        deltas = native_balance_deltas(message.accounts, pre_balances, post_balances)
        error = meta.get("err")
        fee_payer = message.accounts[0] if message.accounts else ""
        now = int(time.time())

        tx_type = TransactionType.OTHER
        native_transfer = guess_native_transfer(deltas)
        if message.transfer is not None:
            native_transfer = message.transfer
            tx_type = TransactionType.TRANSFER

        is_nft = False
        nft_mint = None
        if pre_tokens or post_tokens:
            tx_type = TransactionType.TOKEN_TRANSFER
            for balance in pre_tokens + post_tokens:
                if balance.decimals == 0 and balance.raw_amount == 1:
                    is_nft = True
                    nft_mint = balance.mint
                    tx_type = TransactionType.NFT_TRANSFER
                    break

        inner = _inner_instructions(meta, message.accounts)
        program_ids = [ins.program_id for ins in message.instructions]
        program_ids += [ins.program_id for group in inner for ins in group.instructions]
        dex = self.matcher.match(logs, program_ids)
        if dex.transaction_type is not None:
            tx_type = dex.transaction_type

        info = TransactionInfo(
            signature=signature,
            slot=_as_int(record.get("slot")),
            block_time=_optional_int(record.get("blockTime")),
            fee=_as_int(meta.get("fee")),
            status=TransactionStatus.SUCCESS if error is None else TransactionStatus.FAILED,
            error=error,
            signer=fee_payer,
            fee_payer=fee_payer,
            signers=message.signers,
            involved_accounts=message.accounts,
            writable_accounts=message.writable,
            readonly_accounts=message.readonly,
            recent_blockhash=message.recent_blockhash,
            version=record.get("version") if isinstance(record.get("version"), int) else None,
            compute_units_consumed=_optional_int(meta.get("computeUnitsConsumed")),
            pre_balances=pre_balances,
            post_balances=post_balances,
            pre_token_balances=pre_tokens,
            post_token_balances=post_tokens,
            logs=logs,
            instructions=message.instructions,
            inner_instructions=inner,
            native_transfer=native_transfer,
            balance_deltas=deltas,
            token_changes=diff_token_balances(pre_tokens, post_tokens, logs),
            is_nft_transfer=is_nft,
            nft_mint=nft_mint,
            is_swap=dex.is_swap,
            dex_program_id=dex.program_id,
            dex_pool_name=dex.pool_name,
            dex_program_type=dex.dex_type,
            transaction_type=tx_type,
            created_at=now,
            updated_at=now,
        )
        if info.is_swap or tx_type is TransactionType.SWAP:
            info = dataclasses.replace(info, direction=QuoteResolver(info).direction())
        logger.debug("Classified %s as %s (%s)", signature, tx_type.value, dex.dex_type.value)
        return info
