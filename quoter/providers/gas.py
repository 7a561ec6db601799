"""Gas price providers.

OnChainGasPriceProvider picks the EIP-1559 estimator on chains with a base fee
and the legacy ``eth_gasPrice`` estimator elsewhere; CachingGasPriceProvider
keeps the answer for a short TTL.
"""

from __future__ import annotations

from dataclasses import dataclass
from statistics import median
from typing import Protocol

import structlog

from quoter.constants import EIP1559_CHAINS
from quoter.providers.cache import TTLCache
from quoter.providers.chain import ChainConnection

logger = structlog.get_logger()


@dataclass(frozen=True)
class GasPrice:
    gas_price_wei: int


class GasPriceProvider(Protocol):
    async def get_gas_price(self, block_number: int) -> GasPrice: ...


class EIP1559GasPriceProvider:
    """Next block base fee plus the median priority fee of recent blocks."""

    def __init__(
        self,
        chain: ChainConnection,
        priority_fee_percentile: float = 50,
        block_count: int = 5,
    ) -> None:
        self.chain = chain
        self.priority_fee_percentile = priority_fee_percentile
        self.block_count = block_count

    async def get_gas_price(self, block_number: int) -> GasPrice:
        history = await self.chain.fee_history(
            self.block_count, "latest", [self.priority_fee_percentile]
        )
        # The last entry is the projected base fee of the next block
        next_base_fee = int(history["baseFeePerGas"][-1])
        rewards = [int(block_rewards[0]) for block_rewards in history.get("reward", [])]
        priority_fee = int(median(rewards)) if rewards else 0

        gas_price = next_base_fee + priority_fee
        logger.debug(
            "eip1559_gas_price",
            block_number=block_number,
            base_fee=next_base_fee,
            priority_fee=priority_fee,
        )
        return GasPrice(gas_price_wei=gas_price)


class LegacyGasPriceProvider:
    def __init__(self, chain: ChainConnection) -> None:
        self.chain = chain

    async def get_gas_price(self, block_number: int) -> GasPrice:
        return GasPrice(gas_price_wei=await self.chain.gas_price())


class OnChainGasPriceProvider:
    """Chooses the fee-model-aware estimator by chain."""

    def __init__(
        self,
        chain_id: int,
        eip1559_provider: GasPriceProvider,
        legacy_provider: GasPriceProvider,
        eip1559_chains: frozenset[int] = EIP1559_CHAINS,
    ) -> None:
        self.chain_id = chain_id
        self.eip1559_provider = eip1559_provider
        self.legacy_provider = legacy_provider
        self.eip1559_chains = eip1559_chains

    async def get_gas_price(self, block_number: int) -> GasPrice:
        if self.chain_id in self.eip1559_chains:
            return await self.eip1559_provider.get_gas_price(block_number)
        return await self.legacy_provider.get_gas_price(block_number)


class CachingGasPriceProvider:
    def __init__(
        self, chain_id: int, inner: GasPriceProvider, cache: TTLCache[GasPrice]
    ) -> None:
        self.chain_id = chain_id
        self.inner = inner
        self.cache = cache

    async def get_gas_price(self, block_number: int) -> GasPrice:
        key = f"gas-price-{self.chain_id}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        gas_price = await self.inner.get_gas_price(block_number)
        self.cache.set(key, gas_price)
        return gas_price
