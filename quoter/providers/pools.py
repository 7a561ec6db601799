"""Liquidity pool state providers.

One on-chain provider per protocol version, each wrapped in a TTL cache.
The V2 provider also attaches fee-on-transfer properties of the pool tokens,
read through a TokenPropertiesProvider.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

import structlog
from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from quoter.constants import FEE_DETECTOR_BORROW_AMOUNT
from quoter.errors import UpstreamFailure
from quoter.models.route import LiquidityProtocol, RouteLeg
from quoter.models.types import normalize_address
from quoter.providers.cache import TTLCache
from quoter.providers.chain import BlockIdentifier, ChainConnection
from quoter.providers.multicall import ContractCall, MulticallProvider

logger = structlog.get_logger()


@dataclass(frozen=True)
class TokenProperties:
    """Transfer-fee properties of a token, in basis points (None = unknown)."""

    buy_fee_bps: int | None = None
    sell_fee_bps: int | None = None

    @property
    def has_transfer_fee(self) -> bool:
        return bool(self.buy_fee_bps) or bool(self.sell_fee_bps)


@dataclass(frozen=True)
class V2PoolState:
    address: str
    token0: str
    token1: str
    reserve0: int
    reserve1: int
    token0_properties: TokenProperties | None = None
    token1_properties: TokenProperties | None = None


@dataclass(frozen=True)
class V3PoolState:
    address: str
    sqrt_price_x96: int
    tick: int
    liquidity: int


@dataclass(frozen=True)
class V4PoolState:
    pool_id: str
    sqrt_price_x96: int
    tick: int
    liquidity: int
    lp_fee: int


PoolState = V2PoolState | V3PoolState | V4PoolState


class PoolProvider(Protocol):
    """Fetches pool state by pool address (V2/V3) or pool id (V4)."""

    protocol: LiquidityProtocol

    async def get_pools(
        self, pool_ids: Sequence[str], block: BlockIdentifier = "latest"
    ) -> dict[str, PoolState]: ...


# =============================================================================
# Token fee properties
# =============================================================================


class OnChainTokenFeeFetcher:
    """Probes tokens for transfer fees through a fee detector contract."""

    VALIDATE_SIGNATURE = "validate(address,address,uint256)"

    def __init__(
        self,
        chain: ChainConnection,
        detector_address: str | None,
        base_token: str,
        borrow_amount: int = FEE_DETECTOR_BORROW_AMOUNT,
    ) -> None:
        self.chain = chain
        self.detector_address = detector_address
        self.base_token = base_token
        self.borrow_amount = borrow_amount

    async def fetch_fees(self, addresses: Sequence[str]) -> dict[str, TokenProperties]:
        if self.detector_address is None:
            return {}

        tokens = [normalize_address(a) for a in addresses]
        results = await asyncio.gather(
            *(self._fetch_one(token) for token in tokens), return_exceptions=True
        )

        fees = {}
        for token, result in zip(tokens, results, strict=True):
            if isinstance(result, UpstreamFailure):
                logger.debug("token_fee_probe_failed", token=token, error=str(result))
                continue
            if isinstance(result, BaseException):
                raise result
            fees[token] = result
        return fees

    async def _fetch_one(self, token: str) -> TokenProperties:
        data = function_signature_to_4byte_selector(self.VALIDATE_SIGNATURE) + encode(
            ["address", "address", "uint256"],
            [to_checksum_address(token), to_checksum_address(self.base_token), self.borrow_amount],
        )
        raw = await self.chain.call(self.detector_address, data)  # type: ignore[arg-type]
        buy_fee, sell_fee = decode(["uint256", "uint256"], raw)
        return TokenProperties(buy_fee_bps=int(buy_fee), sell_fee_bps=int(sell_fee))


class TokenPropertiesProvider:
    """Caches fee-on-transfer properties per token."""

    def __init__(
        self,
        chain_id: int,
        cache: TTLCache[TokenProperties],
        fee_fetcher: OnChainTokenFeeFetcher,
    ) -> None:
        self.chain_id = chain_id
        self.cache = cache
        self.fee_fetcher = fee_fetcher

    async def get_properties(self, addresses: Iterable[str]) -> dict[str, TokenProperties]:
        properties: dict[str, TokenProperties] = {}
        missing = []
        for address in dict.fromkeys(normalize_address(a) for a in addresses):
            cached = self.cache.get(f"token-properties-{self.chain_id}-{address}")
            if cached is not None:
                properties[address] = cached
            else:
                missing.append(address)

        if missing:
            fetched = await self.fee_fetcher.fetch_fees(missing)
            for address, props in fetched.items():
                self.cache.set(f"token-properties-{self.chain_id}-{address}", props)
            properties.update(fetched)
        return properties


# =============================================================================
# On-chain pool providers
# =============================================================================


class V2PoolProvider:
    """Reads reserves and tokens of constant-product pools."""

    protocol = LiquidityProtocol.V2

    def __init__(
        self,
        chain_id: int,
        multicall: MulticallProvider,
        token_properties: TokenPropertiesProvider,
    ) -> None:
        self.chain_id = chain_id
        self.multicall = multicall
        self.token_properties = token_properties

    async def get_pools(
        self, pool_ids: Sequence[str], block: BlockIdentifier = "latest"
    ) -> dict[str, PoolState]:
        addresses = [normalize_address(p) for p in pool_ids]
        calls = []
        for address in addresses:
            calls.append(
                ContractCall(address, "getReserves()", (), ("uint112", "uint112", "uint32"))
            )
            calls.append(ContractCall(address, "token0()", (), ("address",)))
            calls.append(ContractCall(address, "token1()", (), ("address",)))
        results = await self.multicall.call(calls, block)

        raw_pools = []
        for i, address in enumerate(addresses):
            reserves, token0, token1 = results[3 * i : 3 * i + 3]
            if not (reserves.success and token0.success and token1.success):
                logger.debug("v2_pool_unavailable", pool=address)
                continue
            raw_pools.append(
                (
                    address,
                    normalize_address(token0.values[0]),
                    normalize_address(token1.values[0]),
                    int(reserves.values[0]),
                    int(reserves.values[1]),
                )
            )

        properties = await self.token_properties.get_properties(
            token for _, token0, token1, _, _ in raw_pools for token in (token0, token1)
        )

        return {
            address: V2PoolState(
                address=address,
                token0=token0,
                token1=token1,
                reserve0=reserve0,
                reserve1=reserve1,
                token0_properties=properties.get(token0),
                token1_properties=properties.get(token1),
            )
            for address, token0, token1, reserve0, reserve1 in raw_pools
        }


class V3PoolProvider:
    """Reads price and active liquidity of concentrated-liquidity pools."""

    protocol = LiquidityProtocol.V3

    def __init__(self, chain_id: int, multicall: MulticallProvider) -> None:
        self.chain_id = chain_id
        self.multicall = multicall

    async def get_pools(
        self, pool_ids: Sequence[str], block: BlockIdentifier = "latest"
    ) -> dict[str, PoolState]:
        addresses = [normalize_address(p) for p in pool_ids]
        calls = []
        for address in addresses:
            calls.append(
                ContractCall(
                    address,
                    "slot0()",
                    (),
                    ("uint160", "int24", "uint16", "uint16", "uint16", "uint8", "bool"),
                )
            )
            calls.append(ContractCall(address, "liquidity()", (), ("uint128",)))
        results = await self.multicall.call(calls, block)

        pools: dict[str, PoolState] = {}
        for i, address in enumerate(addresses):
            slot0, liquidity = results[2 * i], results[2 * i + 1]
            if not (slot0.success and liquidity.success):
                logger.debug("v3_pool_unavailable", pool=address)
                continue
            pools[address] = V3PoolState(
                address=address,
                sqrt_price_x96=int(slot0.values[0]),
                tick=int(slot0.values[1]),
                liquidity=int(liquidity.values[0]),
            )
        return pools


class V4PoolProvider:
    """Reads singleton-pool state by pool id through the StateView lens."""

    protocol = LiquidityProtocol.V4

    def __init__(
        self, chain_id: int, multicall: MulticallProvider, state_view_address: str | None
    ) -> None:
        self.chain_id = chain_id
        self.multicall = multicall
        self.state_view_address = state_view_address

    async def get_pools(
        self, pool_ids: Sequence[str], block: BlockIdentifier = "latest"
    ) -> dict[str, PoolState]:
        if self.state_view_address is None:
            logger.warning("v4_state_view_not_configured", chain_id=self.chain_id)
            return {}

        ids = [p.lower() for p in pool_ids]
        calls = []
        for pool_id in ids:
            key = bytes.fromhex(pool_id.removeprefix("0x"))
            calls.append(
                ContractCall(
                    self.state_view_address,
                    "getSlot0(bytes32)",
                    (key,),
                    ("uint160", "int24", "uint24", "uint24"),
                )
            )
            calls.append(
                ContractCall(self.state_view_address, "getLiquidity(bytes32)", (key,), ("uint128",))
            )
        results = await self.multicall.call(calls, block)

        pools: dict[str, PoolState] = {}
        for i, pool_id in enumerate(ids):
            slot0, liquidity = results[2 * i], results[2 * i + 1]
            # An uninitialized pool reports a zero price
            if not (slot0.success and liquidity.success) or slot0.values[0] == 0:
                logger.debug("v4_pool_unavailable", pool_id=pool_id)
                continue
            pools[pool_id] = V4PoolState(
                pool_id=pool_id,
                sqrt_price_x96=int(slot0.values[0]),
                tick=int(slot0.values[1]),
                lp_fee=int(slot0.values[3]),
                liquidity=int(liquidity.values[0]),
            )
        return pools


class CachingPoolProvider:
    """TTL cache in front of an on-chain pool provider."""

    def __init__(self, chain_id: int, inner: PoolProvider, cache: TTLCache[PoolState]) -> None:
        self.chain_id = chain_id
        self.inner = inner
        self.cache = cache
        self.protocol = inner.protocol

    def _key(self, pool_id: str) -> str:
        return f"pool-{self.chain_id}-{self.protocol.value}-{pool_id.lower()}"

    async def get_pools(
        self, pool_ids: Sequence[str], block: BlockIdentifier = "latest"
    ) -> dict[str, PoolState]:
        pools: dict[str, PoolState] = {}
        missing = []
        for pool_id in pool_ids:
            cached = self.cache.get(self._key(pool_id))
            if cached is not None:
                pools[pool_id.lower()] = cached
            else:
                missing.append(pool_id)

        if missing:
            fetched = await self.inner.get_pools(missing, block)
            for pool_id, state in fetched.items():
                self.cache.set(self._key(pool_id), state)
            pools.update(fetched)
        return pools

    def invalidate(self, pool_ids: Iterable[str]) -> None:
        self.cache.delete(self._key(p) for p in pool_ids)


@dataclass(frozen=True)
class PoolProviders:
    """The cached pool provider of every protocol version."""

    v2: CachingPoolProvider
    v3: CachingPoolProvider
    v4: CachingPoolProvider

    def for_protocol(self, protocol: LiquidityProtocol) -> CachingPoolProvider | None:
        return {
            LiquidityProtocol.V2: self.v2,
            LiquidityProtocol.V3: self.v3,
            LiquidityProtocol.V4: self.v4,
        }.get(protocol)

    def invalidate_route(self, legs: Iterable[RouteLeg]) -> None:
        """Evict the pools a route went through, so the next quote re-reads them.

        Mixed routes carry pools of several versions, so they are evicted
        from every provider.
        """
        for leg in legs:
            pool_ids = [pool.address for pool in leg.pools]
            provider = self.for_protocol(leg.protocol)
            targets = [provider] if provider is not None else [self.v2, self.v3, self.v4]
            for target in targets:
                target.invalidate(pool_ids)
