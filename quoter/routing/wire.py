"""JSON wire format spoken with the external pathfinder service.

Amounts travel as raw integer strings in the currency's smallest unit.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from quoter.models.currency import Currency, NativeCurrency, Token, native_on_chain
from quoter.models.route import (
    LiquidityProtocol,
    MethodParameters,
    RouteComputationRequest,
    RouteLeg,
    RoutePool,
)
from quoter.models.types import Address, Bytes, Uint256


class WireCurrency(BaseModel):
    """A currency reference: either the chain's native currency or a token."""

    native: bool = False
    address: Address | None = None
    decimals: int = Field(default=18, ge=0, le=77)
    symbol: str | None = None
    name: str | None = None

    @classmethod
    def from_currency(cls, currency: Currency) -> WireCurrency:
        if isinstance(currency, NativeCurrency):
            return cls(native=True, decimals=currency.decimals, symbol=currency.symbol)
        return cls(
            address=currency.address,
            decimals=currency.decimals,
            symbol=currency.symbol,
            name=currency.name,
        )

    def to_currency(self, chain_id: int) -> Currency:
        if self.native or self.address is None:
            return native_on_chain(chain_id)
        return Token(
            chain_id=chain_id,
            address=self.address,
            decimals=self.decimals,
            symbol=self.symbol,
            name=self.name,
        )


class WireAmount(BaseModel):
    raw: Uint256
    currency: WireCurrency


class WirePool(BaseModel):
    address: str
    fee: int | None = None


class WireLeg(BaseModel):
    protocol: LiquidityProtocol
    percent: Decimal = Field(ge=0, le=100)
    token_path: list[WireCurrency] = Field(alias="tokenPath", min_length=2)
    pools: list[WirePool] = Field(min_length=1)

    model_config = {"populate_by_name": True}

    def to_leg(self, chain_id: int) -> RouteLeg:
        return RouteLeg(
            protocol=self.protocol,
            percent=self.percent,
            token_path=tuple(c.to_currency(chain_id) for c in self.token_path),
            pools=tuple(RoutePool(address=p.address, fee=p.fee) for p in self.pools),
        )


class WireMethodParameters(BaseModel):
    calldata: Bytes
    value: str
    to: Address | None = None

    def to_method_parameters(self) -> MethodParameters:
        return MethodParameters(calldata=self.calldata, value=self.value, to=self.to)


class WireRoute(BaseModel):
    """Priced route as returned by the pathfinder.

    ``estimatedGasUsedQuoteToken``, ``quote`` and ``quoteGasAdjusted`` are
    denominated in the request's quote currency; ``estimatedGasUsedGasToken``
    in the requested gas token.
    """

    block_number: int = Field(alias="blockNumber", ge=0)
    estimated_gas_used: Uint256 = Field(alias="estimatedGasUsed")
    estimated_gas_used_quote_token: Uint256 = Field(alias="estimatedGasUsedQuoteToken")
    estimated_gas_used_usd: WireAmount = Field(alias="estimatedGasUsedUSD")
    estimated_gas_used_gas_token: Uint256 | None = Field(
        default=None, alias="estimatedGasUsedGasToken"
    )
    quote: Uint256
    # May be negative when gas costs exceed the output of a tiny swap
    quote_gas_adjusted: int = Field(alias="quoteGasAdjusted")
    method_parameters: WireMethodParameters | None = Field(default=None, alias="methodParameters")
    legs: list[WireLeg] = Field(min_length=1)

    model_config = {"populate_by_name": True}


class RouteResponse(BaseModel):
    """Pathfinder answer; ``route`` is null when no route exists."""

    route: WireRoute | None = None


def encode_request(
    request: RouteComputationRequest, chain_id: int, gas_price_wei: int
) -> dict[str, Any]:
    """Serialize a RouteComputationRequest for the pathfinder."""
    config = request.config
    selection = config.pool_selection
    swap_options = request.swap_options

    return {
        "chainId": chain_id,
        "tradeType": request.trade_type.value,
        "amount": {
            "raw": str(request.amount.raw),
            "currency": WireCurrency.from_currency(request.amount.currency).model_dump(),
        },
        "quoteCurrency": WireCurrency.from_currency(request.quote_currency).model_dump(),
        "gasPriceWei": str(gas_price_wei),
        "swapOptions": (
            {
                "type": swap_options.type.value,
                "recipient": swap_options.recipient,
                "deadline": swap_options.deadline,
                "slippageTolerance": {
                    "numerator": swap_options.slippage_tolerance.numerator,
                    "denominator": swap_options.slippage_tolerance.denominator,
                },
                "simulate": (
                    {"fromAddress": swap_options.simulate.from_address}
                    if swap_options.simulate is not None
                    else None
                ),
            }
            if swap_options is not None
            else None
        ),
        "config": {
            "blockNumber": config.block_number,
            "v3PoolSelection": {
                "topN": selection.top_n,
                "topNTokenInOut": selection.top_n_token_in_out,
                "topNSecondHop": selection.top_n_second_hop,
                "topNSecondHopForTokenAddress": dict(selection.top_n_second_hop_for_token_address),
                "topNWithEachBaseToken": selection.top_n_with_each_base_token,
                "topNWithBaseToken": selection.top_n_with_base_token,
                "topNDirectSwaps": selection.top_n_direct_swaps,
            },
            "maxSwapsPerPath": config.max_swaps_per_path,
            "minSplits": config.min_splits,
            "maxSplits": config.max_splits,
            "distributionPercent": config.distribution_percent,
            "protocols": [p.value for p in config.protocols],
            "forceCrossProtocol": config.force_cross_protocol,
            "forceMixedRoutes": config.force_mixed_routes,
            "debugRouting": config.debug_routing,
            "enableFeeOnTransferFeeFetching": config.enable_fee_on_transfer_fee_fetching,
            "gasToken": config.gas_token,
        },
    }
