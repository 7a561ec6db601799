"""Swap calldata simulation.

FallbackSimulator checks the sender's balance, then prefers the remote
Tenderly simulator and falls back to a local ``eth_estimateGas`` when the
remote one fails or does not support the chain. A successful simulation
re-prices the gas fields of the route with the simulated gas; a failed one
evicts the route's pools from the pool caches.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Protocol

import httpx
import structlog
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from quoter.constants import TENDERLY_SUPPORTED_CHAINS, TENDERLY_TIMEOUT_SECONDS
from quoter.errors import UpstreamFailure
from quoter.models.currency import CurrencyAmount
from quoter.models.route import (
    MethodParameters,
    RouteComputationRequest,
    SimulationStatus,
    SwapRouteResult,
    TradeType,
)
from quoter.providers.chain import ChainConnection
from quoter.providers.pools import PoolProviders
from quoter.providers.portion import PortionProvider

logger = structlog.get_logger()


class Simulator(Protocol):
    async def simulate(
        self, request: RouteComputationRequest, result: SwapRouteResult
    ) -> SwapRouteResult: ...


def _scale(amount: CurrencyAmount, numerator: int, denominator: int) -> CurrencyAmount:
    return CurrencyAmount(amount.currency, amount.raw * numerator // denominator)


def apply_simulated_gas(
    request: RouteComputationRequest,
    result: SwapRouteResult,
    gas_used: int,
    portion: PortionProvider,
) -> SwapRouteResult:
    """Re-price the route's gas fields with the simulated gas usage."""
    estimated = result.estimated_gas_used
    if estimated <= 0:
        return replace(result, simulation_status=SimulationStatus.SUCCEEDED)

    gas_quote_token = _scale(result.estimated_gas_used_quote_token, gas_used, estimated)
    portion_bips = request.swap_options.portion_bips if request.swap_options else None
    quote = portion.get_portion_adjusted_quote(request.trade_type, result.quote, portion_bips)
    if request.trade_type is TradeType.EXACT_INPUT:
        adjusted_raw = quote.raw - gas_quote_token.raw
    else:
        adjusted_raw = quote.raw + gas_quote_token.raw

    gas_token = result.estimated_gas_used_gas_token
    return replace(
        result,
        estimated_gas_used=gas_used,
        estimated_gas_used_quote_token=gas_quote_token,
        estimated_gas_used_usd=_scale(result.estimated_gas_used_usd, gas_used, estimated),
        estimated_gas_used_gas_token=(
            _scale(gas_token, gas_used, estimated) if gas_token is not None else None
        ),
        quote_gas_adjusted=CurrencyAmount(quote.currency, adjusted_raw),
        simulation_status=SimulationStatus.SUCCEEDED,
    )


def _sender(request: RouteComputationRequest) -> str:
    if request.swap_options is None or request.swap_options.simulate is None:
        raise ValueError("Simulation requested without a sender address")
    return request.swap_options.simulate.from_address


def _call_value(parameters: MethodParameters) -> int:
    return int(parameters.value, 16) if parameters.value.startswith("0x") else int(parameters.value)


class TenderlySimulator:
    """Simulates the swap transaction through the Tenderly API."""

    def __init__(
        self,
        chain_id: int,
        base_url: str,
        user: str,
        project: str,
        access_key: str,
        pools: PoolProviders,
        portion: PortionProvider,
        supported_chains: frozenset[int] = TENDERLY_SUPPORTED_CHAINS,
        timeout: float = TENDERLY_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.chain_id = chain_id
        self.base_url = base_url.rstrip("/")
        self.user = user
        self.project = project
        self.access_key = access_key
        self.pools = pools
        self.portion = portion
        self.supported_chains = supported_chains
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self.client.aclose()

    @property
    def is_configured(self) -> bool:
        return bool(self.user and self.project and self.access_key)

    def supports(self, chain_id: int) -> bool:
        return self.is_configured and chain_id in self.supported_chains

    async def simulate(
        self, request: RouteComputationRequest, result: SwapRouteResult
    ) -> SwapRouteResult:
        """Run the simulation.

        Raises:
            UpstreamFailure: If Tenderly cannot be reached or answers with an error
        """
        parameters = result.method_parameters
        if parameters is None or parameters.to is None:
            return replace(result, simulation_status=SimulationStatus.NOT_SUPPORTED)

        url = f"{self.base_url}/api/v1/account/{self.user}/project/{self.project}/simulate"
        body = {
            "network_id": str(self.chain_id),
            "from": _sender(request),
            "to": parameters.to,
            "input": parameters.calldata,
            "value": str(_call_value(parameters)),
            "block_number": result.block_number,
            "save": False,
            "simulation_type": "quick",
        }
        try:
            response = await self.client.post(
                url, json=body, headers={"X-Access-Key": self.access_key}
            )
            response.raise_for_status()
            transaction = response.json()["transaction"]
        except (httpx.HTTPError, ValueError, KeyError) as e:
            raise UpstreamFailure(f"Tenderly simulation failed: {e}") from e

        if not transaction.get("status"):
            logger.info(
                "tenderly_simulation_reverted",
                block_number=result.block_number,
                error=transaction.get("error_message"),
            )
            self.pools.invalidate_route(result.route)
            return replace(result, simulation_status=SimulationStatus.FAILED)

        return apply_simulated_gas(request, result, int(transaction["gas_used"]), self.portion)


class EthEstimateGasSimulator:
    """Simulates by asking the node to estimate gas for the swap."""

    def __init__(
        self,
        chain_id: int,
        chain: ChainConnection,
        pools: PoolProviders,
        portion: PortionProvider,
    ) -> None:
        self.chain_id = chain_id
        self.chain = chain
        self.pools = pools
        self.portion = portion

    async def simulate(
        self, request: RouteComputationRequest, result: SwapRouteResult
    ) -> SwapRouteResult:
        parameters = result.method_parameters
        if parameters is None or parameters.to is None:
            return replace(result, simulation_status=SimulationStatus.NOT_SUPPORTED)

        tx = {
            "from": to_checksum_address(_sender(request)),
            "to": to_checksum_address(parameters.to),
            "data": parameters.calldata,
            "value": _call_value(parameters),
        }
        try:
            gas_used = await self.chain.estimate_gas(tx)
        except UpstreamFailure as e:
            logger.info("estimate_gas_simulation_failed", error=str(e))
            self.pools.invalidate_route(result.route)
            return replace(result, simulation_status=SimulationStatus.FAILED)

        return apply_simulated_gas(request, result, gas_used, self.portion)


class FallbackSimulator:
    """Balance check, then remote simulation with local estimation as fallback."""

    BALANCE_OF_SIGNATURE = "balanceOf(address)"

    def __init__(
        self,
        chain_id: int,
        chain: ChainConnection,
        portion: PortionProvider,
        remote: TenderlySimulator,
        local: EthEstimateGasSimulator,
    ) -> None:
        self.chain_id = chain_id
        self.chain = chain
        self.portion = portion
        self.remote = remote
        self.local = local

    async def simulate(
        self, request: RouteComputationRequest, result: SwapRouteResult
    ) -> SwapRouteResult:
        try:
            has_balance = await self._has_sufficient_balance(request, result)
        except (UpstreamFailure, DecodingError) as e:
            logger.warning("simulation_balance_check_failed", error=str(e))
            return replace(result, simulation_status=SimulationStatus.SYSTEM_DOWN)

        if not has_balance:
            return replace(result, simulation_status=SimulationStatus.INSUFFICIENT_BALANCE)

        if self.remote.supports(self.chain_id):
            try:
                return await self.remote.simulate(request, result)
            except UpstreamFailure as e:
                logger.warning("remote_simulation_failed_falling_back", error=str(e))
        return await self.local.simulate(request, result)

    async def _has_sufficient_balance(
        self, request: RouteComputationRequest, result: SwapRouteResult
    ) -> bool:
        if request.trade_type is TradeType.EXACT_INPUT:
            required = request.amount
        else:
            portion_bips = request.swap_options.portion_bips if request.swap_options else None
            required = self.portion.get_portion_adjusted_quote(
                TradeType.EXACT_OUTPUT, result.quote, portion_bips
            )

        sender = _sender(request)
        currency = required.currency
        if currency.is_native:
            balance = await self.chain.get_balance(sender)
        else:
            data = function_signature_to_4byte_selector(self.BALANCE_OF_SIGNATURE) + encode(
                ["address"], [to_checksum_address(sender)]
            )
            raw = await self.chain.call(currency.address, data)  # type: ignore[union-attr]
            (balance,) = decode(["uint256"], raw)

        logger.debug("simulation_balance_check", balance=int(balance), required=required.raw)
        return int(balance) >= required.raw
