"""Routing engine.

The pathfinding itself runs in an external pathfinder service. The engine
prices gas locally, forwards the computation request, turns the answer into a
SwapRouteResult and, when asked to, simulates the resulting calldata.
"""

from __future__ import annotations

from typing import Protocol

import httpx
import structlog
from pydantic import ValidationError

from quoter.errors import UpstreamFailure
from quoter.models.currency import CurrencyAmount, Token
from quoter.models.route import RouteComputationRequest, SwapRouteResult
from quoter.models.types import normalize_address
from quoter.providers.chain import ChainConnection
from quoter.providers.gas import GasPriceProvider
from quoter.providers.multicall import ContractCall, MulticallProvider
from quoter.providers.simulation import Simulator
from quoter.routing.wire import RouteResponse, WireRoute, encode_request

logger = structlog.get_logger()

DEFAULT_ENGINE_TIMEOUT_SECONDS = 30.0


class RoutingEngine(Protocol):
    """Prices a swap; returns None when no route exists."""

    async def route(self, request: RouteComputationRequest) -> SwapRouteResult | None: ...


class RemoteRoutingEngine:
    """Routing engine backed by an external pathfinder reached over HTTP."""

    def __init__(
        self,
        chain: ChainConnection,
        multicall: MulticallProvider,
        gas_price_provider: GasPriceProvider,
        simulator: Simulator,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_ENGINE_TIMEOUT_SECONDS,
    ) -> None:
        self.chain = chain
        self.chain_id = chain.chain_id
        self.multicall = multicall
        self.gas_price_provider = gas_price_provider
        self.simulator = simulator
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def route(self, request: RouteComputationRequest) -> SwapRouteResult | None:
        """Price the swap described by request.

        Raises:
            UpstreamFailure: Pathfinder unreachable, erroring, or answering
                with a malformed payload; gas price or gas token lookup failed
        """
        gas_price = await self.gas_price_provider.get_gas_price(request.config.block_number)
        payload = encode_request(request, self.chain_id, gas_price.gas_price_wei)

        try:
            response = await self.client.post(f"{self.base_url}/route", json=payload)
            response.raise_for_status()
            body = RouteResponse.model_validate(response.json())
        except httpx.HTTPError as e:
            raise UpstreamFailure(f"Routing engine request failed: {e}") from e
        except (ValidationError, ValueError) as e:
            raise UpstreamFailure(f"Routing engine returned an invalid response: {e}") from e

        if body.route is None:
            logger.info(
                "no_route_found",
                trade_type=request.trade_type.value,
                block_number=request.config.block_number,
            )
            return None

        result = await self._to_result(request, body.route, gas_price.gas_price_wei)

        swap_options = request.swap_options
        if (
            swap_options is not None
            and swap_options.simulate is not None
            and result.method_parameters is not None
        ):
            result = await self.simulator.simulate(request, result)
            logger.info("route_simulated", simulation_status=result.simulation_status)
        return result

    async def _to_result(
        self, request: RouteComputationRequest, route: WireRoute, gas_price_wei: int
    ) -> SwapRouteResult:
        quote_currency = request.quote_currency

        gas_token_amount = None
        if request.config.gas_token and route.estimated_gas_used_gas_token is not None:
            gas_token = await self._load_gas_token(request.config.gas_token)
            gas_token_amount = CurrencyAmount(gas_token, int(route.estimated_gas_used_gas_token))

        return SwapRouteResult(
            block_number=route.block_number,
            estimated_gas_used=int(route.estimated_gas_used),
            estimated_gas_used_quote_token=CurrencyAmount(
                quote_currency, int(route.estimated_gas_used_quote_token)
            ),
            estimated_gas_used_usd=CurrencyAmount(
                route.estimated_gas_used_usd.currency.to_currency(self.chain_id),
                int(route.estimated_gas_used_usd.raw),
            ),
            estimated_gas_used_gas_token=gas_token_amount,
            gas_price_wei=gas_price_wei,
            method_parameters=(
                route.method_parameters.to_method_parameters()
                if route.method_parameters is not None
                else None
            ),
            quote=CurrencyAmount(quote_currency, int(route.quote)),
            quote_gas_adjusted=CurrencyAmount(quote_currency, route.quote_gas_adjusted),
            route=tuple(leg.to_leg(self.chain_id) for leg in route.legs),
        )

    async def _load_gas_token(self, address: str) -> Token:
        decimals, symbol = await self.multicall.call(
            [
                ContractCall(address, "decimals()", (), ("uint8",)),
                ContractCall(address, "symbol()", (), ("string",)),
            ]
        )
        if not decimals.success:
            raise UpstreamFailure(f"Could not read decimals of gas token {address}")
        return Token(
            chain_id=self.chain_id,
            address=normalize_address(address),
            decimals=int(decimals.values[0]),
            symbol=str(symbol.values[0]) if symbol.success else None,
        )
