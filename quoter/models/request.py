"""Quote request models.

QuoteRequest mirrors the loosely typed external request (query string or JSON
body). Every recognized option and its default is enumerated here, so the
defaulting rules live in one place.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field

from quoter.models.route import LiquidityProtocol, PoolSelectionConfig, TradeType
from quoter.models.types import Address


def _numeric_to_str(value: Any) -> Any:
    """Accept JSON numbers for amount-like fields by rendering them as text."""
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    return value


DecimalText = Annotated[str, BeforeValidator(_numeric_to_str)]


class QuoteRequest(BaseModel):
    """External quote request.

    Defaults apply only when a field is absent. A field sent explicitly as
    null fails validation (unless None is a legal value for it).
    """

    token_in: str = Field(alias="tokenIn", min_length=1)
    token_out: str = Field(alias="tokenOut", min_length=1)
    amount: DecimalText = Field(min_length=1)

    exact_in: bool | None = Field(default=None, alias="exactIn")
    exact_out: bool | None = Field(default=None, alias="exactOut")

    recipient: Address | None = None
    chain_id: int | None = Field(default=None, alias="chainId", gt=0)
    protocols: str | None = None
    force_cross_protocol: bool = Field(default=False, alias="forceCrossProtocol")
    force_mixed_routes: bool = Field(default=False, alias="forceMixedRoutes")
    simulate: bool = False
    debug_routing: bool = Field(default=True, alias="debugRouting")
    enable_fee_on_transfer_fee_fetching: bool = Field(
        default=False, alias="enableFeeOnTransferFeeFetching"
    )
    request_block_number: int | None = Field(default=None, alias="requestBlockNumber", ge=0)
    gas_token: Address | None = Field(default=None, alias="gasToken")
    slippage_tolerance: Decimal = Field(
        default=Decimal("0.5"),
        alias="slippageTolerance",
        ge=0,
        le=100,
        description="Slippage tolerance as a percentage (0.5 means 0.5%)",
    )

    # Pool selection
    top_n: int = Field(default=3, alias="topN", ge=0)
    top_n_token_in_out: int = Field(default=2, alias="topNTokenInOut", ge=0)
    top_n_second_hop: int = Field(default=2, alias="topNSecondHop", ge=0)
    top_n_second_hop_for_token_address_raw: str = Field(
        default="", alias="topNSecondHopForTokenAddressRaw"
    )
    top_n_with_each_base_token: int = Field(default=2, alias="topNWithEachBaseToken", ge=0)
    top_n_with_base_token: int = Field(default=6, alias="topNWithBaseToken", ge=0)
    top_n_direct_swaps: int = Field(default=2, alias="topNDirectSwaps", ge=0)
    max_swaps_per_path: int = Field(default=3, alias="maxSwapsPerPath", ge=1)
    min_splits: int = Field(default=1, alias="minSplits", ge=1)
    max_splits: int = Field(default=3, alias="maxSplits", ge=1)
    distribution_percent: int = Field(default=5, alias="distributionPercent", ge=1, le=100)

    model_config = {"populate_by_name": True, "extra": "ignore"}


@dataclass(frozen=True)
class NormalizedQuoteParameters:
    """Fully defaulted, constraint-checked projection of a QuoteRequest."""

    token_in: str
    token_out: str
    amount: str
    trade_type: TradeType
    recipient: str | None
    chain_id: int | None
    protocols: tuple[LiquidityProtocol, ...]
    force_cross_protocol: bool
    force_mixed_routes: bool
    simulate: bool
    debug_routing: bool
    enable_fee_on_transfer_fee_fetching: bool
    request_block_number: int | None
    gas_token: str | None
    slippage_tolerance: Decimal
    pool_selection: PoolSelectionConfig
    max_swaps_per_path: int
    min_splits: int
    max_splits: int
    distribution_percent: int

    @property
    def is_exact_input(self) -> bool:
        return self.trade_type is TradeType.EXACT_INPUT
