"""Test helpers module for shared test utilities.

- constants: Token addresses, accounts and fixed blocks/timestamps
- factories: Token, route result and request factories plus provider fakes
- fakes: Bootstrap factory, chain connection and clock fakes
"""

from tests.helpers.constants import (
    BOOTSTRAP_BLOCK,
    DAI,
    DAI_USDC_V2_POOL,
    FIXED_NOW,
    MAINNET,
    RECIPIENT,
    ROUTER,
    USDC,
    USDC_WETH_V3_POOL,
    WETH,
)
from tests.helpers.factories import (
    FakeRoutingEngine,
    FakeTokenProvider,
    dai,
    make_method_parameters,
    make_quote_params,
    make_route_leg,
    make_route_result,
    make_token,
    native_eth,
    usdc,
    weth,
)
from tests.helpers.fakes import FakeChainConnection, FakeClock, FakeProviderFactory

__all__ = [
    # Constants
    "WETH",
    "USDC",
    "DAI",
    "RECIPIENT",
    "ROUTER",
    "USDC_WETH_V3_POOL",
    "DAI_USDC_V2_POOL",
    "MAINNET",
    "BOOTSTRAP_BLOCK",
    "FIXED_NOW",
    # Factories
    "make_token",
    "usdc",
    "weth",
    "dai",
    "native_eth",
    "make_quote_params",
    "make_route_leg",
    "make_route_result",
    "make_method_parameters",
    # Fakes
    "FakeClock",
    "FakeChainConnection",
    "FakeProviderFactory",
    "FakeTokenProvider",
    "FakeRoutingEngine",
]
