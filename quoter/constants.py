"""Chain constants and quoting policy parameters.

Centralizes well-known addresses, native currency aliases and the fixed
numbers the quote pipeline depends on.
"""

from enum import IntEnum


class ChainId(IntEnum):
    """Chains the service knows native currency details for."""

    MAINNET = 1
    OPTIMISM = 10
    BNB = 56
    POLYGON = 137
    BASE = 8453
    ARBITRUM_ONE = 42161
    SEPOLIA = 11155111


# Pseudo-address commonly used by wallets and aggregators for the native asset
NATIVE_PSEUDO_ADDRESS = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"

# Identifiers that resolve to the chain's native currency without a provider lookup
NATIVE_NAMES_BY_ID: dict[int, tuple[str, ...]] = {
    ChainId.MAINNET: ("ETH", "ETHER", NATIVE_PSEUDO_ADDRESS),
    ChainId.OPTIMISM: ("ETH", "ETHER", NATIVE_PSEUDO_ADDRESS),
    ChainId.BNB: ("BNB", "BNB", NATIVE_PSEUDO_ADDRESS),
    ChainId.POLYGON: ("MATIC", "POL", NATIVE_PSEUDO_ADDRESS),
    ChainId.BASE: ("ETH", "ETHER", NATIVE_PSEUDO_ADDRESS),
    ChainId.ARBITRUM_ONE: ("ETH", "ETHER", NATIVE_PSEUDO_ADDRESS),
    ChainId.SEPOLIA: ("ETH", "ETHER", NATIVE_PSEUDO_ADDRESS),
}

# (symbol, name, wrapped token address) of the native currency per chain
NATIVE_CURRENCY_BY_ID: dict[int, tuple[str, str, str]] = {
    ChainId.MAINNET: ("ETH", "Ether", "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"),
    ChainId.OPTIMISM: ("ETH", "Ether", "0x4200000000000000000000000000000000000006"),
    ChainId.BNB: ("BNB", "BNB", "0xbb4cdb9cbd36b01bd1cbaebf2de08d9173bc095c"),
    ChainId.POLYGON: ("MATIC", "Polygon Matic", "0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270"),
    ChainId.BASE: ("ETH", "Ether", "0x4200000000000000000000000000000000000006"),
    ChainId.ARBITRUM_ONE: ("ETH", "Ether", "0x82af49447d8a07e3bd95bd0d56f35241523fbab1"),
    ChainId.SEPOLIA: ("ETH", "Ether", "0xfff9976782d46cc05630d1f6ebab18b2324d6b14"),
}

# Chains that price gas with an EIP-1559 base fee
EIP1559_CHAINS = frozenset(
    {
        ChainId.MAINNET,
        ChainId.OPTIMISM,
        ChainId.POLYGON,
        ChainId.BASE,
        ChainId.ARBITRUM_ONE,
        ChainId.SEPOLIA,
    }
)

# Multicall3 is deployed at the same address on every supported chain
MULTICALL3_ADDRESS = "0xca11bde05977b3631167028862be2a173976ca11"

# Exact-output quotes are pinned this many blocks behind the bootstrap block
EXACT_OUTPUT_BLOCK_SAFETY_MARGIN = 10

# Swap deadline offset from the current time
SWAP_DEADLINE_SECONDS = 60

# Slippage percentages are encoded as numerator / 10_000 (two decimal places)
SLIPPAGE_DENOMINATOR = 10_000

# Fractional digit caps used when rendering amounts
GAS_COST_DECIMALS_CAP = 6
QUOTE_GAS_ADJUSTED_DECIMALS_CAP = 2

# Cache lifetimes (seconds)
TOKEN_CACHE_TTL = 3600
GAS_PRICE_CACHE_TTL = 15
POOL_CACHE_TTL = 360
TOKEN_PROPERTIES_CACHE_TTL = 360

# Remote simulator settings
TENDERLY_TIMEOUT_SECONDS = 5.0
TENDERLY_SUPPORTED_CHAINS = frozenset({ChainId.MAINNET, ChainId.BASE, ChainId.ARBITRUM_ONE})

# Uniswap v4 StateView lens contract (reads pool state by pool id)
V4_STATE_VIEW_BY_ID: dict[int, str] = {
    ChainId.MAINNET: "0x7ffe42c4a5deea5b0fec41c94c136cf115597227",
    ChainId.BASE: "0xa3c0c9b65bad0b08107aa264b0f3db444b867a71",
    ChainId.ARBITRUM_ONE: "0x76fd297e2d437cd7f76d50f01afe6160f86e9990",
}

# Fee-on-transfer detector contract per chain
FEE_DETECTOR_BY_ID: dict[int, str] = {
    ChainId.MAINNET: "0xbc708b192552e19a088b4c4b8772aeea83bcf760",
}

# Amount borrowed by the fee detector when probing a token
FEE_DETECTOR_BORROW_AMOUNT = 100_000
