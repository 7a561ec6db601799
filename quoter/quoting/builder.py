"""Route request builder.

Turns NormalizedQuoteParameters into the RouteComputationRequest handed to the
routing engine. Exact-input and exact-output requests share the same tuning
but deliberately differ in two policies:

* reference block: exact input honours ``requestBlockNumber`` (else the
  bootstrap block); exact output is always pinned to the bootstrap block
  minus EXACT_OUTPUT_BLOCK_SAFETY_MARGIN, ignoring any override;
* simulation: only exact-input swap options carry the simulate flag.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from decimal import Decimal

import structlog

from quoter.constants import (
    EXACT_OUTPUT_BLOCK_SAFETY_MARGIN,
    NATIVE_NAMES_BY_ID,
    SLIPPAGE_DENOMINATOR,
    SWAP_DEADLINE_SECONDS,
)
from quoter.errors import UnknownToken
from quoter.models.currency import Currency, native_on_chain, parse_amount
from quoter.models.request import NormalizedQuoteParameters
from quoter.models.route import (
    Percent,
    RouteComputationRequest,
    RoutingConfig,
    SimulationOptions,
    SwapOptions,
    SwapType,
    TradeType,
)
from quoter.providers.tokens import TokenProvider

logger = structlog.get_logger()


def slippage_to_percent(slippage_tolerance: Decimal) -> Percent:
    """Encode a percentage as an exact fraction with two-decimal granularity.

    0.5 (%) becomes 50/10000; digits past the second decimal are floored.
    """
    numerator = math.floor(Decimal(slippage_tolerance) * 100)
    return Percent(numerator=numerator, denominator=SLIPPAGE_DENOMINATOR)


class RouteRequestBuilder:
    """Builds mode-specific routing engine requests.

    Args:
        chain_id: Chain the service quotes on
        token_provider: Resolves non-native token identifiers
        bootstrap_block: Block height recorded when the service became ready
        clock: Returns the current unix time in seconds (injectable for tests)
    """

    def __init__(
        self,
        chain_id: int,
        token_provider: TokenProvider,
        bootstrap_block: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.chain_id = chain_id
        self.token_provider = token_provider
        self.bootstrap_block = bootstrap_block
        self.clock = clock

    def is_native_alias(self, identifier: str) -> bool:
        aliases = NATIVE_NAMES_BY_ID.get(self.chain_id, ())
        return identifier.lower() in (alias.lower() for alias in aliases)

    async def resolve_currency(self, identifier: str) -> Currency:
        """Resolve a symbol or address to a currency.

        Raises:
            UnknownToken: If no token provider knows the identifier
        """
        if self.is_native_alias(identifier):
            return native_on_chain(self.chain_id)

        accessor = await self.token_provider.get_tokens([identifier])
        token = accessor.get_token(identifier)
        if token is None:
            raise UnknownToken(f"Could not find token {identifier} on chain {self.chain_id}")
        return token

    def reference_block(self, params: NormalizedQuoteParameters) -> int:
        if params.trade_type is TradeType.EXACT_INPUT:
            if params.request_block_number is not None:
                return params.request_block_number
            return self.bootstrap_block
        return self.bootstrap_block - EXACT_OUTPUT_BLOCK_SAFETY_MARGIN

    def build_swap_options(self, params: NormalizedQuoteParameters) -> SwapOptions | None:
        if params.recipient is None:
            return None

        simulate = None
        if params.trade_type is TradeType.EXACT_INPUT and params.simulate:
            simulate = SimulationOptions(from_address=params.recipient)

        return SwapOptions(
            type=SwapType.SWAP_ROUTER_02,
            recipient=params.recipient,
            slippage_tolerance=slippage_to_percent(params.slippage_tolerance),
            deadline=int(self.clock()) + SWAP_DEADLINE_SECONDS,
            simulate=simulate,
        )

    def build_config(self, params: NormalizedQuoteParameters) -> RoutingConfig:
        return RoutingConfig(
            block_number=self.reference_block(params),
            pool_selection=params.pool_selection,
            max_swaps_per_path=params.max_swaps_per_path,
            min_splits=params.min_splits,
            max_splits=params.max_splits,
            distribution_percent=params.distribution_percent,
            protocols=params.protocols,
            force_cross_protocol=params.force_cross_protocol,
            force_mixed_routes=params.force_mixed_routes,
            debug_routing=params.debug_routing,
            enable_fee_on_transfer_fee_fetching=params.enable_fee_on_transfer_fee_fetching,
            gas_token=params.gas_token,
        )

    async def build(self, params: NormalizedQuoteParameters) -> RouteComputationRequest:
        """Resolve currencies and assemble the request for the routing engine.

        Raises:
            UnknownToken: If tokenIn or tokenOut cannot be resolved
            InvalidRequest: If the amount does not parse against its currency
        """
        token_in = await self.resolve_currency(params.token_in)
        token_out = await self.resolve_currency(params.token_out)

        if params.trade_type is TradeType.EXACT_INPUT:
            amount = parse_amount(params.amount, token_in)
            quote_currency = token_out
        else:
            amount = parse_amount(params.amount, token_out)
            quote_currency = token_in

        request = RouteComputationRequest(
            amount=amount,
            quote_currency=quote_currency,
            trade_type=params.trade_type,
            swap_options=self.build_swap_options(params),
            config=self.build_config(params),
        )
        logger.debug(
            "route_request_built",
            trade_type=params.trade_type.value,
            token_in=params.token_in,
            token_out=params.token_out,
            block_number=request.config.block_number,
            has_swap_options=request.swap_options is not None,
        )
        return request
