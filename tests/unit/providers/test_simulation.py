"""Tests for swap calldata simulation."""

import httpx
import pytest
from eth_abi import encode

from quoter.errors import UpstreamFailure
from quoter.models.currency import CurrencyAmount
from quoter.models.route import (
    LiquidityProtocol,
    Percent,
    RouteComputationRequest,
    SimulationOptions,
    SimulationStatus,
    SwapOptions,
    SwapType,
    TradeType,
)
from quoter.providers.cache import TTLCache
from quoter.providers.pools import CachingPoolProvider, PoolProviders, V3PoolState
from quoter.providers.portion import PortionProvider
from quoter.providers.simulation import (
    EthEstimateGasSimulator,
    FallbackSimulator,
    TenderlySimulator,
    apply_simulated_gas,
)
from quoter.quoting.builder import RouteRequestBuilder
from quoter.quoting.validation import validate_request
from tests.helpers import (
    BOOTSTRAP_BLOCK,
    MAINNET,
    RECIPIENT,
    USDC,
    USDC_WETH_V3_POOL,
    FakeTokenProvider,
    make_method_parameters,
    make_quote_params,
    make_route_result,
    native_eth,
    usdc,
)

TENDERLY_URL = "https://api.tenderly.example"


class FakeSimulationChain:
    """Node stand-in for balance checks and gas estimation."""

    chain_id = MAINNET

    def __init__(
        self,
        native_balance: int = 10 * 10**18,
        token_balance: int = 10**12,
        gas: int = 300_000,
        estimate_error: Exception | None = None,
        balance_error: Exception | None = None,
    ) -> None:
        self.native_balance = native_balance
        self.token_balance = token_balance
        self.gas = gas
        self.estimate_error = estimate_error
        self.balance_error = balance_error
        self.estimated: list[dict] = []
        self.calls: list[str] = []

    async def get_balance(self, address: str) -> int:
        if self.balance_error is not None:
            raise self.balance_error
        return self.native_balance

    async def call(self, to: str, data: bytes, block="latest") -> bytes:
        if self.balance_error is not None:
            raise self.balance_error
        self.calls.append(to)
        return encode(["uint256"], [self.token_balance])

    async def estimate_gas(self, tx: dict) -> int:
        self.estimated.append(tx)
        if self.estimate_error is not None:
            raise self.estimate_error
        return self.gas


class StaticPoolProvider:
    def __init__(self, protocol: LiquidityProtocol) -> None:
        self.protocol = protocol

    async def get_pools(self, pool_ids, block="latest"):
        return {}


def make_pool_providers() -> PoolProviders:
    return PoolProviders(
        v2=CachingPoolProvider(MAINNET, StaticPoolProvider(LiquidityProtocol.V2), TTLCache(360)),
        v3=CachingPoolProvider(MAINNET, StaticPoolProvider(LiquidityProtocol.V3), TTLCache(360)),
        v4=CachingPoolProvider(MAINNET, StaticPoolProvider(LiquidityProtocol.V4), TTLCache(360)),
    )


def cache_pool(pools: PoolProviders) -> str:
    """Put the route's V3 pool in the cache and return its cache key."""
    key = pools.v3._key(USDC_WETH_V3_POOL)
    state = V3PoolState(USDC_WETH_V3_POOL, sqrt_price_x96=2**96, tick=0, liquidity=10**18)
    pools.v3.cache.set(key, state)
    return key


async def make_request(trade_type: TradeType = TradeType.EXACT_INPUT, **overrides):
    if trade_type is TradeType.EXACT_INPUT:
        direction = {"exactIn": True}
    else:
        direction = {"exactIn": None, "exactOut": True}
    params = validate_request(
        make_quote_params(recipient=RECIPIENT, simulate=True, **direction, **overrides)
    )
    builder = RouteRequestBuilder(MAINNET, FakeTokenProvider(), BOOTSTRAP_BLOCK)
    return await builder.build(params)


def simulatable_result(**overrides):
    return make_route_result(method_parameters=make_method_parameters(), **overrides)


def tenderly(pools: PoolProviders, handler, access_key: str = "key") -> TenderlySimulator:
    return TenderlySimulator(
        MAINNET,
        TENDERLY_URL,
        "acct",
        "proj",
        access_key,
        pools,
        PortionProvider(),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def fallback(chain, pools, handler=None, access_key: str = "") -> FallbackSimulator:
    handler = handler or (lambda request: httpx.Response(500))
    return FallbackSimulator(
        MAINNET,
        chain,
        PortionProvider(),
        tenderly(pools, handler, access_key),
        EthEstimateGasSimulator(MAINNET, chain, pools, PortionProvider()),
    )


class TestApplySimulatedGas:
    def test_exact_input_rescales_gas_fields(self):
        request = RouteComputationRequest(
            amount=CurrencyAmount(native_eth(), 10**18),
            quote_currency=usdc(),
            trade_type=TradeType.EXACT_INPUT,
            swap_options=SwapOptions(
                type=SwapType.SWAP_ROUTER_02,
                recipient=RECIPIENT,
                slippage_tolerance=Percent(50, 10_000),
                deadline=0,
                simulate=SimulationOptions(RECIPIENT),
            ),
            config=None,  # type: ignore[arg-type]
        )
        result = apply_simulated_gas(request, make_route_result(), 300_000, PortionProvider())

        assert result.estimated_gas_used == 300_000
        assert result.estimated_gas_used_quote_token.raw == 4_567_891 * 2
        assert result.estimated_gas_used_usd.raw == 4_560_000 * 2
        assert result.quote_gas_adjusted.raw == 2_500_123_456 - 4_567_891 * 2
        assert result.simulation_status is SimulationStatus.SUCCEEDED

    @pytest.mark.asyncio
    async def test_exact_output_adds_gas(self):
        request = await make_request(TradeType.EXACT_OUTPUT, amount="2500")
        result = apply_simulated_gas(request, make_route_result(), 150_000, PortionProvider())
        assert result.quote_gas_adjusted.raw == 2_500_123_456 + 4_567_891


class TestFallbackSimulator:
    @pytest.mark.asyncio
    async def test_insufficient_native_balance(self):
        chain = FakeSimulationChain(native_balance=10**17)
        simulator = fallback(chain, make_pool_providers())

        result = await simulator.simulate(await make_request(), simulatable_result())

        assert result.simulation_status is SimulationStatus.INSUFFICIENT_BALANCE
        assert chain.estimated == []

    @pytest.mark.asyncio
    async def test_token_balance_checked_with_balance_of(self):
        chain = FakeSimulationChain(token_balance=10**6)
        simulator = fallback(chain, make_pool_providers())
        request = await make_request(tokenIn="USDC", tokenOut="ETH", amount="2")

        result = await simulator.simulate(request, simulatable_result())

        assert chain.calls == [USDC]
        assert result.simulation_status is SimulationStatus.INSUFFICIENT_BALANCE

    @pytest.mark.asyncio
    async def test_balance_check_failure_is_system_down(self):
        chain = FakeSimulationChain(balance_error=UpstreamFailure("eth_getBalance failed"))
        simulator = fallback(chain, make_pool_providers())

        result = await simulator.simulate(await make_request(), simulatable_result())
        assert result.simulation_status is SimulationStatus.SYSTEM_DOWN

    @pytest.mark.asyncio
    async def test_local_estimate_when_remote_unconfigured(self):
        chain = FakeSimulationChain(gas=300_000)
        simulator = fallback(chain, make_pool_providers())

        result = await simulator.simulate(await make_request(), simulatable_result())

        assert result.simulation_status is SimulationStatus.SUCCEEDED
        assert result.estimated_gas_used == 300_000
        (tx,) = chain.estimated
        assert tx["value"] == 0
        assert tx["from"].lower() == RECIPIENT

    @pytest.mark.asyncio
    async def test_local_estimate_failure_evicts_pools(self):
        pools = make_pool_providers()
        key = cache_pool(pools)
        chain = FakeSimulationChain(estimate_error=UpstreamFailure("execution reverted"))
        simulator = fallback(chain, pools)

        result = await simulator.simulate(await make_request(), simulatable_result())

        assert result.simulation_status is SimulationStatus.FAILED
        assert pools.v3.cache.get(key) is None

    @pytest.mark.asyncio
    async def test_remote_preferred_when_configured(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"transaction": {"status": True, "gas_used": 200_000}})

        chain = FakeSimulationChain()
        simulator = fallback(chain, make_pool_providers(), handler, access_key="key")

        result = await simulator.simulate(await make_request(), simulatable_result())

        assert result.simulation_status is SimulationStatus.SUCCEEDED
        assert result.estimated_gas_used == 200_000
        assert chain.estimated == []
        (request,) = seen
        assert request.url.path == "/api/v1/account/acct/project/proj/simulate"
        assert request.headers["X-Access-Key"] == "key"

    @pytest.mark.asyncio
    async def test_remote_failure_falls_back(self):
        chain = FakeSimulationChain(gas=250_000)
        simulator = fallback(chain, make_pool_providers(), access_key="key")

        result = await simulator.simulate(await make_request(), simulatable_result())

        assert result.simulation_status is SimulationStatus.SUCCEEDED
        assert result.estimated_gas_used == 250_000
        assert len(chain.estimated) == 1


class TestTenderlySimulator:
    @pytest.mark.asyncio
    async def test_revert_evicts_pools(self):
        pools = make_pool_providers()
        key = cache_pool(pools)
        simulator = tenderly(
            pools,
            lambda r: httpx.Response(
                200, json={"transaction": {"status": False, "error_message": "STF"}}
            ),
        )

        result = await simulator.simulate(await make_request(), simulatable_result())

        assert result.simulation_status is SimulationStatus.FAILED
        assert pools.v3.cache.get(key) is None

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        simulator = tenderly(make_pool_providers(), lambda r: httpx.Response(502))

        with pytest.raises(UpstreamFailure):
            await simulator.simulate(await make_request(), simulatable_result())

    @pytest.mark.asyncio
    async def test_without_calldata_not_supported(self):
        simulator = tenderly(make_pool_providers(), lambda r: httpx.Response(500))

        result = await simulator.simulate(await make_request(), make_route_result())
        assert result.simulation_status is SimulationStatus.NOT_SUPPORTED

    def test_supports(self):
        configured = tenderly(make_pool_providers(), lambda r: httpx.Response(500))
        unconfigured = tenderly(make_pool_providers(), lambda r: httpx.Response(500), "")

        assert configured.supports(MAINNET)
        assert not configured.supports(56)
        assert not unconfigured.supports(MAINNET)
