"""Factory functions and fakes for building test objects.

The fakes stand in for the network-backed providers so tests never touch a
node, a token list URL or the pathfinder.
"""

from decimal import Decimal
from typing import Any

from quoter.models.currency import Currency, CurrencyAmount, Token, native_on_chain
from quoter.models.route import (
    LiquidityProtocol,
    MethodParameters,
    RouteComputationRequest,
    RouteLeg,
    RoutePool,
    SimulationStatus,
    SwapRouteResult,
)
from quoter.providers.tokens import TokenAccessor
from tests.helpers.constants import (
    BOOTSTRAP_BLOCK,
    DAI,
    MAINNET,
    ROUTER,
    USDC,
    USDC_WETH_V3_POOL,
    WETH,
)


def make_token(
    address: str = USDC, decimals: int = 6, symbol: str | None = "USDC", chain_id: int = MAINNET
) -> Token:
    return Token(chain_id=chain_id, address=address, decimals=decimals, symbol=symbol)


def usdc() -> Token:
    return make_token(USDC, 6, "USDC")


def weth() -> Token:
    return make_token(WETH, 18, "WETH")


def dai() -> Token:
    return make_token(DAI, 18, "DAI")


def make_quote_params(**overrides: Any) -> dict[str, Any]:
    """Create raw quote request fields (exact-in 1 ETH -> USDC by default).

    Args:
        **overrides: Fields to add or replace; a value of None removes the field

    Returns:
        Dict with external (camelCase) field names
    """
    params: dict[str, Any] = {
        "tokenIn": "ETH",
        "tokenOut": "USDC",
        "amount": "1",
        "exactIn": True,
    }
    for key, value in overrides.items():
        if value is None:
            params.pop(key, None)
        else:
            params[key] = value
    return params


def make_route_leg(
    token_path: tuple[Currency, ...] | None = None,
    pools: tuple[RoutePool, ...] | None = None,
    protocol: LiquidityProtocol = LiquidityProtocol.V3,
    percent: Decimal = Decimal("100"),
) -> RouteLeg:
    return RouteLeg(
        protocol=protocol,
        percent=percent,
        token_path=token_path or (weth(), usdc()),
        pools=pools or (RoutePool(address=USDC_WETH_V3_POOL, fee=500),),
    )


def make_route_result(
    quote_currency: Currency | None = None,
    quote: int = 2_500_123_456,
    quote_gas_adjusted: int = 2_495_555_565,
    gas_quote_token: int = 4_567_891,
    gas_usd: int = 4_560_000,
    estimated_gas_used: int = 150_000,
    route: tuple[RouteLeg, ...] | None = None,
    method_parameters: MethodParameters | None = None,
    gas_token_amount: CurrencyAmount | None = None,
    simulation_status: SimulationStatus | None = None,
) -> SwapRouteResult:
    """Create a priced route; defaults to ~2500 USDC for 1 WETH."""
    currency = quote_currency or usdc()
    return SwapRouteResult(
        block_number=BOOTSTRAP_BLOCK,
        estimated_gas_used=estimated_gas_used,
        estimated_gas_used_quote_token=CurrencyAmount(currency, gas_quote_token),
        estimated_gas_used_usd=CurrencyAmount(usdc(), gas_usd),
        gas_price_wei=30_000_000_000,
        quote=CurrencyAmount(currency, quote),
        quote_gas_adjusted=CurrencyAmount(currency, quote_gas_adjusted),
        route=route or (make_route_leg(),),
        estimated_gas_used_gas_token=gas_token_amount,
        method_parameters=method_parameters,
        simulation_status=simulation_status,
    )


def make_method_parameters(value: str = "0x00") -> MethodParameters:
    return MethodParameters(calldata="0x5ae401dc" + "00" * 32, value=value, to=ROUTER)


class FakeTokenProvider:
    """Token provider over a fixed set of tokens that records every lookup."""

    def __init__(self, tokens: list[Token] | None = None) -> None:
        self.tokens = tokens if tokens is not None else [usdc(), weth(), dai()]
        self.calls: list[list[str]] = []

    async def get_tokens(self, identifiers: list[str]) -> TokenAccessor:
        self.calls.append(list(identifiers))
        accessor = TokenAccessor(self.tokens)
        found = [accessor.get_token(i) for i in identifiers]
        return TokenAccessor([t for t in found if t is not None])


class FakeRoutingEngine:
    """Routing engine returning a canned result (None means no route)."""

    def __init__(
        self, result: SwapRouteResult | None = None, error: Exception | None = None
    ) -> None:
        self.result = result
        self.error = error
        self.requests: list[RouteComputationRequest] = []

    async def route(self, request: RouteComputationRequest) -> SwapRouteResult | None:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.result


def native_eth() -> Currency:
    return native_on_chain(MAINNET)
