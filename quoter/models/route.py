"""Routing engine invocation and result structures.

A RouteComputationRequest is built fresh for every quote and frozen once
constructed; the routing engine answers with a SwapRouteResult (or None).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum, IntEnum

from quoter.models.currency import Currency, CurrencyAmount
from quoter.models.types import LowerCaseKeyDict


class TradeType(str, Enum):
    """Which side of the swap is fixed."""

    EXACT_INPUT = "EXACT_INPUT"
    EXACT_OUTPUT = "EXACT_OUTPUT"


class LiquidityProtocol(str, Enum):
    """Liquidity protocol versions the routing engine can route through."""

    V2 = "V2"
    V3 = "V3"
    V4 = "V4"
    MIXED = "MIXED"


class SwapType(str, Enum):
    """Router contract the calldata is encoded for."""

    SWAP_ROUTER_02 = "SWAP_ROUTER_02"
    UNIVERSAL_ROUTER = "UNIVERSAL_ROUTER"


class SimulationStatus(IntEnum):
    """Outcome of simulating the swap calldata."""

    NOT_SUPPORTED = 0
    FAILED = 1
    SUCCEEDED = 2
    INSUFFICIENT_BALANCE = 3
    NOT_APPROVED = 4
    SYSTEM_DOWN = 5


@dataclass(frozen=True)
class Percent:
    """An exact, unreduced fraction such as 50/10000 for 0.5%."""

    numerator: int
    denominator: int

    def to_decimal(self) -> Decimal:
        return Decimal(self.numerator) / Decimal(self.denominator)

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"


@dataclass(frozen=True)
class SimulationOptions:
    from_address: str


@dataclass(frozen=True)
class SwapOptions:
    """Options for producing executable calldata.

    Attributes:
        type: Router contract to encode for
        recipient: Address receiving the output
        slippage_tolerance: Maximum adverse price movement as a fraction
        deadline: Unix timestamp after which the swap reverts
        simulate: Present when the calldata should be simulated from an address
        portion_bips: Optional portion (fee) taken from the output, in basis points
    """

    type: SwapType
    recipient: str
    slippage_tolerance: Percent
    deadline: int
    simulate: SimulationOptions | None = None
    portion_bips: int | None = None


@dataclass(frozen=True)
class PoolSelectionConfig:
    """Bounds on how many candidate pools the routing engine considers."""

    top_n: int
    top_n_token_in_out: int
    top_n_second_hop: int
    top_n_second_hop_for_token_address: LowerCaseKeyDict[int]
    top_n_with_each_base_token: int
    top_n_with_base_token: int
    top_n_direct_swaps: int


@dataclass(frozen=True)
class RoutingConfig:
    """Per-request routing engine tuning."""

    block_number: int
    pool_selection: PoolSelectionConfig
    max_swaps_per_path: int
    min_splits: int
    max_splits: int
    distribution_percent: int
    protocols: tuple[LiquidityProtocol, ...]
    force_cross_protocol: bool
    force_mixed_routes: bool
    debug_routing: bool
    enable_fee_on_transfer_fee_fetching: bool
    gas_token: str | None


@dataclass(frozen=True)
class RouteComputationRequest:
    """Everything the routing engine needs to price one swap.

    Attributes:
        amount: The fixed side of the swap (input for exact-in, output for exact-out)
        quote_currency: The currency to solve for
        trade_type: Exact input or exact output
        swap_options: Present only when the caller supplied a recipient
        config: Block reference, pool selection and routing policy
    """

    amount: CurrencyAmount
    quote_currency: Currency
    trade_type: TradeType
    swap_options: SwapOptions | None
    config: RoutingConfig


@dataclass(frozen=True)
class MethodParameters:
    """Executable call data for the swap."""

    calldata: str
    value: str
    to: str | None = None


@dataclass(frozen=True)
class RoutePool:
    address: str
    fee: int | None = None  # in hundredths of a bip (500 = 0.05%)


@dataclass(frozen=True)
class RouteLeg:
    """One split of a route: a path of tokens through pools of a single protocol."""

    protocol: LiquidityProtocol
    percent: Decimal
    token_path: tuple[Currency, ...]
    pools: tuple[RoutePool, ...]

    def __str__(self) -> str:
        parts = [_currency_label(self.token_path[0])] if self.token_path else []
        for pool, token in zip(self.pools, self.token_path[1:], strict=False):
            fee = f"{Decimal(pool.fee) / Decimal(10_000):.2f}% " if pool.fee is not None else ""
            parts.append(f" -- {fee}[{pool.address}] --> {_currency_label(token)}")
        return f"[{self.protocol.value}] {self.percent:.2f}% = " + "".join(parts)


def _currency_label(currency: Currency) -> str:
    if currency.symbol:
        return currency.symbol
    return currency.address  # type: ignore[union-attr]


@dataclass(frozen=True)
class SwapRouteResult:
    """Priced route produced by the routing engine."""

    block_number: int
    estimated_gas_used: int
    estimated_gas_used_quote_token: CurrencyAmount
    estimated_gas_used_usd: CurrencyAmount
    gas_price_wei: int
    quote: CurrencyAmount
    quote_gas_adjusted: CurrencyAmount
    route: tuple[RouteLeg, ...]
    estimated_gas_used_gas_token: CurrencyAmount | None = None
    method_parameters: MethodParameters | None = None
    simulation_status: SimulationStatus | None = None
