from __future__ import annotations

LAMPORTS_PER_SOL = 1_000_000_000

SOLANA_MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"

# Native SOL has no mint; the system program id stands in for it.
SOL = "11111111111111111111111111111111"
WSOL = "So11111111111111111111111111111111111111112"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"
USD1 = "USD1ttGY1N17NEEHLmELoaybftRBUSErhqYiQzvEmuB"

QUOTE_TOKENS = frozenset({SOL, WSOL, USDC, USDT, USD1})

# Used when a quote mint has no token balance to read decimals from.
KNOWN_DECIMALS = {
    SOL: 9,
    WSOL: 9,
    USDC: 6,
    USDT: 6,
    USD1: 6,
}

SYSTEM_PROGRAM_ID = SOL
VOTE_PROGRAM_ID = "Vote111111111111111111111111111111111111111"

RAYDIUM_V4_POOL_PROGRAM_ID = "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8"
RAYDIUM_CPMM_POOL_PROGRAM_ID = "CPMMoo8L3F4NbTegBCKVNunggL7H1ZpdTHKxQB5qKP1C"
RAYDIUM_CLMM_POOL_PROGRAM_ID = "CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK"
RAYDIUM_LAUNCHPAD_PROGRAM_ID = "LanMV9sAd7wArD4vJFi2qDdfnVhFxYSUg6eADduJ3uj"

METEORA_DAMM_V2_PROGRAM_ID = "cpamdpZCGKUy5JxQXB4dcpGPiikHawvSWAd6mEn1sGG"
METEORA_DLMM_V2_PROGRAM_ID = "LBUZKhRxPF3XUpBCjp4YzTKgLccjZhTSDM9YuVaPwxo"
METEORA_POOL_PROGRAM_ID = "Eo7WjKq67rjJQSZxS6z3YkapzY3eMj6Xy8X5EQVn5UaB"
METEORA_DYNAMIC_BOND_CURVE_PROGRAM_ID = "dbcij3LWUppWqq96dh6gJWwBifmcGfLSB5D4DuSMaqN"

ORCA_WHIRLPOOLS_PROGRAM_ID = "whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc"

PUMP_AAM_PROGRAM_ID = "pAMMBay6oceH9fJKBRHGP5D4bD4sWpmSwMn52FMfXEA"
PUMP_BOND_CURVE_PROGRAM_ID = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"

# Weak signal: any of these in a log line marks the transaction as swap-like.
DEX_KEYWORDS = (
    "Buy",
    "buy",
    "Sell",
    "sell",
    "swap",
    "Swap",
    "liquidity",
    "Liquidity",
    "pool",
    "Pool",
    "raydium",
    "Raydium",
    "orca",
    "Orca",
    "serum",
    "Serum",
    "market",
    "Market",
    "trade",
    "Trade",
    "Pump",
    "pump",
    "meteora",
    "Meteora",
)
