"""Construction of every object in the provider graph.

ProviderFactory only knows how to build one object from its direct
dependencies; the order in which they are built belongs to the
BootstrapCoordinator.
"""

from __future__ import annotations

from quoter.config import Settings
from quoter.constants import (
    FEE_DETECTOR_BY_ID,
    GAS_PRICE_CACHE_TTL,
    POOL_CACHE_TTL,
    TOKEN_CACHE_TTL,
    TOKEN_PROPERTIES_CACHE_TTL,
    V4_STATE_VIEW_BY_ID,
)
from quoter.models.currency import Token, native_on_chain
from quoter.providers.cache import TTLCache
from quoter.providers.chain import ChainConnection
from quoter.providers.gas import (
    CachingGasPriceProvider,
    EIP1559GasPriceProvider,
    GasPrice,
    GasPriceProvider,
    LegacyGasPriceProvider,
    OnChainGasPriceProvider,
)
from quoter.providers.multicall import MulticallProvider
from quoter.providers.pools import (
    CachingPoolProvider,
    OnChainTokenFeeFetcher,
    PoolProviders,
    TokenPropertiesProvider,
    V2PoolProvider,
    V3PoolProvider,
    V4PoolProvider,
)
from quoter.providers.portion import PortionProvider
from quoter.providers.simulation import (
    EthEstimateGasSimulator,
    FallbackSimulator,
    Simulator,
    TenderlySimulator,
)
from quoter.providers.tokens import (
    CachingTokenProviderWithFallback,
    OnChainTokenProvider,
    TokenListProvider,
    TokenProvider,
)
from quoter.routing.engine import RemoteRoutingEngine, RoutingEngine


class ProviderFactory:
    """Builds the default web3/httpx-backed provider graph from Settings."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.chain_id = settings.chain_id
        self._opened: list[ChainConnection | TenderlySimulator | RemoteRoutingEngine] = []

    async def aclose(self) -> None:
        """Close every connection this factory opened, newest first."""
        while self._opened:
            await self._opened.pop().aclose()

    def create_chain_connection(self) -> ChainConnection:
        connection = ChainConnection.from_url(self.settings.rpc_url, self.chain_id)
        self._opened.append(connection)
        return connection

    def create_token_cache(self) -> TTLCache[Token]:
        return TTLCache(TOKEN_CACHE_TTL)

    async def create_token_list_provider(self, cache: TTLCache[Token]) -> TokenListProvider:
        return await TokenListProvider.load(
            self.chain_id,
            cache,
            path=self.settings.token_list_path,
            url=self.settings.token_list_url,
        )

    def create_multicall_provider(self, chain: ChainConnection) -> MulticallProvider:
        return MulticallProvider(chain)

    def create_token_provider(
        self,
        cache: TTLCache[Token],
        token_list_provider: TokenProvider,
        multicall: MulticallProvider,
    ) -> TokenProvider:
        on_chain = OnChainTokenProvider(self.chain_id, multicall)
        return CachingTokenProviderWithFallback(self.chain_id, cache, token_list_provider, on_chain)

    def create_gas_price_cache(self) -> TTLCache[GasPrice]:
        return TTLCache(GAS_PRICE_CACHE_TTL)

    def create_pool_providers(
        self, chain: ChainConnection, multicall: MulticallProvider
    ) -> PoolProviders:
        fee_fetcher = OnChainTokenFeeFetcher(
            chain,
            FEE_DETECTOR_BY_ID.get(self.chain_id),
            native_on_chain(self.chain_id).wrapped_address,
        )
        token_properties = TokenPropertiesProvider(
            self.chain_id, TTLCache(TOKEN_PROPERTIES_CACHE_TTL), fee_fetcher
        )
        return PoolProviders(
            v4=CachingPoolProvider(
                self.chain_id,
                V4PoolProvider(self.chain_id, multicall, V4_STATE_VIEW_BY_ID.get(self.chain_id)),
                TTLCache(POOL_CACHE_TTL),
            ),
            v3=CachingPoolProvider(
                self.chain_id, V3PoolProvider(self.chain_id, multicall), TTLCache(POOL_CACHE_TTL)
            ),
            v2=CachingPoolProvider(
                self.chain_id,
                V2PoolProvider(self.chain_id, multicall, token_properties),
                TTLCache(POOL_CACHE_TTL),
            ),
        )

    def create_portion_provider(self) -> PortionProvider:
        return PortionProvider()

    def create_simulator(
        self, chain: ChainConnection, pools: PoolProviders, portion: PortionProvider
    ) -> Simulator:
        remote = TenderlySimulator(
            self.chain_id,
            self.settings.tenderly_base_url,
            self.settings.tenderly_user,
            self.settings.tenderly_project,
            self.settings.tenderly_access_key,
            pools,
            portion,
        )
        self._opened.append(remote)
        local = EthEstimateGasSimulator(self.chain_id, chain, pools, portion)
        return FallbackSimulator(self.chain_id, chain, portion, remote, local)

    def create_gas_price_provider(
        self, chain: ChainConnection, cache: TTLCache[GasPrice]
    ) -> GasPriceProvider:
        on_chain = OnChainGasPriceProvider(
            self.chain_id, EIP1559GasPriceProvider(chain), LegacyGasPriceProvider(chain)
        )
        return CachingGasPriceProvider(self.chain_id, on_chain, cache)

    def create_routing_engine(
        self,
        chain: ChainConnection,
        multicall: MulticallProvider,
        gas_price_provider: GasPriceProvider,
        simulator: Simulator,
    ) -> RoutingEngine:
        engine = RemoteRoutingEngine(
            chain, multicall, gas_price_provider, simulator, self.settings.routing_engine_url
        )
        self._opened.append(engine)
        return engine
