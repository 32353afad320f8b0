"""Well-known Solana identities: native mint, major tokens and program ids."""

NATIVE_MINT = "So11111111111111111111111111111111111111112"
NATIVE_SYMBOL = "SOL"
NATIVE_DECIMALS = 9
LAMPORTS_PER_SOL = 10**NATIVE_DECIMALS
NATIVE_LOGO_URI = (
    "https://raw.githubusercontent.com/solana-labs/token-list/main/assets/mainnet/"
    "So11111111111111111111111111111111111111112/logo.png"
)

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"

# Static metadata table, consulted before any network lookup
WELL_KNOWN_TOKENS: dict[str, dict[str, str | int | None]] = {
    NATIVE_MINT: {
        "name": "Solana",
        "symbol": NATIVE_SYMBOL,
        "decimals": NATIVE_DECIMALS,
        "logo_uri": NATIVE_LOGO_URI,
    },
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": {
        "name": "USD Coin",
        "symbol": "USDC",
        "decimals": 6,
        "logo_uri": None,
    },
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": {
        "name": "Tether USD",
        "symbol": "USDT",
        "decimals": 6,
        "logo_uri": None,
    },
    "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So": {
        "name": "Marinade SOL",
        "symbol": "mSOL",
        "decimals": 9,
        "logo_uri": None,
    },
    "SRMuApVNdxXokk5GT7XD5cUUgXMBCoAz2LHeuAoKWRt": {
        "name": "Serum",
        "symbol": "SRM",
        "decimals": 6,
        "logo_uri": None,
    },
    "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R": {
        "name": "Raydium",
        "symbol": "RAY",
        "decimals": 6,
        "logo_uri": None,
    },
    "9n4nbM75f5Ui33ZbPYXn59EwSgE8CGsHtAeTH5YFeJ9E": {
        "name": "Bitcoin (Portal)",
        "symbol": "BTC",
        "decimals": 8,
        "logo_uri": None,
    },
    "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263": {
        "name": "Bonk",
        "symbol": "BONK",
        "decimals": 5,
        "logo_uri": None,
    },
    "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN": {
        "name": "Jupiter",
        "symbol": "JUP",
        "decimals": 6,
        "logo_uri": None,
    },
}

# Exchange and aggregator programs whose presence marks a transaction as a swap
SWAP_PROGRAM_IDS: dict[str, str] = {
    "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4": "jupiter_v6",
    "JUP4Fb2cqiRUcaTHdrPC8h2gNsA2ETXiPDD33WcGuJB": "jupiter_v4",
    "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8": "raydium_amm_v4",
    "CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK": "raydium_clmm",
    "whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc": "orca_whirlpool",
    "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM": "orca_v2",
    "22Y43yTVxuUkoRKdm9thyRhQ3SdgQS7c7kB6UNCiaczD": "serum_dex_v3",
}
