"""Data models for quote requests, routes and responses."""

from quoter.models.currency import (
    Currency,
    CurrencyAmount,
    NativeCurrency,
    Token,
    native_on_chain,
    parse_amount,
)
from quoter.models.request import NormalizedQuoteParameters, QuoteRequest
from quoter.models.response import QuoteData, QuoteResponse
from quoter.models.route import (
    LiquidityProtocol,
    MethodParameters,
    Percent,
    PoolSelectionConfig,
    RouteComputationRequest,
    RouteLeg,
    RoutePool,
    RoutingConfig,
    SimulationOptions,
    SimulationStatus,
    SwapOptions,
    SwapRouteResult,
    SwapType,
    TradeType,
)
from quoter.models.types import Address, LowerCaseKeyDict, normalize_address

__all__ = [
    # Types
    "Address",
    "LowerCaseKeyDict",
    "normalize_address",
    # Currencies
    "Currency",
    "CurrencyAmount",
    "NativeCurrency",
    "Token",
    "native_on_chain",
    "parse_amount",
    # Request
    "QuoteRequest",
    "NormalizedQuoteParameters",
    # Routing
    "LiquidityProtocol",
    "MethodParameters",
    "Percent",
    "PoolSelectionConfig",
    "RouteComputationRequest",
    "RouteLeg",
    "RoutePool",
    "RoutingConfig",
    "SimulationOptions",
    "SimulationStatus",
    "SwapOptions",
    "SwapRouteResult",
    "SwapType",
    "TradeType",
    # Response
    "QuoteData",
    "QuoteResponse",
]
