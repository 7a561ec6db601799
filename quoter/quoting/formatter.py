"""Renders a SwapRouteResult into the external QuoteData contract.

Fixed-point fields never show more fractional digits than the smaller of the
currency's decimals and the field's cap; ``quote`` is rendered exactly.
"""

from quoter.constants import GAS_COST_DECIMALS_CAP, QUOTE_GAS_ADJUSTED_DECIMALS_CAP
from quoter.models.currency import CurrencyAmount
from quoter.models.response import MethodParametersData, QuoteData
from quoter.models.route import SwapRouteResult

ROUTE_SEPARATOR = " -> "


def to_capped_fixed(amount: CurrencyAmount, cap: int) -> str:
    return amount.to_fixed(min(amount.currency.decimals, cap))


def format_route_result(result: SwapRouteResult) -> QuoteData:
    gas_token = result.estimated_gas_used_gas_token
    method_parameters = result.method_parameters

    return QuoteData(
        block_number=str(result.block_number),
        estimated_gas_used=str(result.estimated_gas_used),
        estimated_gas_used_quote_token=to_capped_fixed(
            result.estimated_gas_used_quote_token, GAS_COST_DECIMALS_CAP
        ),
        estimated_gas_used_usd=to_capped_fixed(
            result.estimated_gas_used_usd, GAS_COST_DECIMALS_CAP
        ),
        estimated_gas_used_gas_token=(
            to_capped_fixed(gas_token, GAS_COST_DECIMALS_CAP) if gas_token is not None else None
        ),
        gas_price_wei=str(result.gas_price_wei),
        method_parameters=(
            MethodParametersData(calldata=method_parameters.calldata, value=method_parameters.value)
            if method_parameters is not None
            else None
        ),
        quote=result.quote.to_exact(),
        quote_gas_adjusted=to_capped_fixed(
            result.quote_gas_adjusted, QUOTE_GAS_ADJUSTED_DECIMALS_CAP
        ),
        route=ROUTE_SEPARATOR.join(str(leg) for leg in result.route),
        simulation_status=(
            int(result.simulation_status) if result.simulation_status is not None else None
        ),
    )
