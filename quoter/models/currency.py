"""Currencies and exact currency amounts.

Amounts are held as raw integers in the currency's smallest unit and only
converted to decimal text at the edges, so nothing is lost to float rounding.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext

from quoter.constants import NATIVE_CURRENCY_BY_ID
from quoter.errors import InvalidRequest
from quoter.models.types import UINT256_MAX, normalize_address

# Enough precision for any uint256 amount with 77 decimals
_DECIMAL_PRECISION = 160

_AMOUNT_PATTERN = re.compile(r"^(\d+)?(?:\.(\d*))?$")


@dataclass(frozen=True)
class Token:
    """An ERC-20 token."""

    chain_id: int
    address: str
    decimals: int
    symbol: str | None = None
    name: str | None = None

    @property
    def is_native(self) -> bool:
        return False

    @property
    def wrapped(self) -> Token:
        return self

    def __post_init__(self) -> None:
        object.__setattr__(self, "address", normalize_address(self.address))


@dataclass(frozen=True)
class NativeCurrency:
    """A chain's native currency (ETH on mainnet)."""

    chain_id: int
    decimals: int
    symbol: str
    name: str
    wrapped_address: str

    @property
    def is_native(self) -> bool:
        return True

    @property
    def wrapped(self) -> Token:
        return Token(
            chain_id=self.chain_id,
            address=self.wrapped_address,
            decimals=self.decimals,
            symbol=f"W{self.symbol}",
            name=f"Wrapped {self.name}",
        )


Currency = Token | NativeCurrency


def native_on_chain(chain_id: int) -> NativeCurrency:
    """Return the native currency of a chain.

    Raises:
        KeyError: If the chain has no known native currency
    """
    symbol, name, wrapped = NATIVE_CURRENCY_BY_ID[chain_id]
    return NativeCurrency(
        chain_id=chain_id, decimals=18, symbol=symbol, name=name, wrapped_address=wrapped
    )


@dataclass(frozen=True)
class CurrencyAmount:
    """An exact amount of a currency, in raw (smallest-unit) integer form."""

    currency: Currency
    raw: int

    def to_exact(self) -> str:
        """Render the exact decimal value, without exponent or trailing zeros."""
        sign = "-" if self.raw < 0 else ""
        decimals = self.currency.decimals
        digits = str(abs(self.raw))
        if decimals == 0:
            return sign + digits
        digits = digits.rjust(decimals + 1, "0")
        whole, fraction = digits[:-decimals], digits[-decimals:].rstrip("0")
        return f"{sign}{whole}.{fraction}" if fraction else sign + whole

    def to_fixed(self, places: int) -> str:
        """Render with exactly ``places`` fractional digits, rounding half up."""
        if places > self.currency.decimals:
            raise ValueError(f"Cannot render {places} places for {self.currency.decimals} decimals")
        with localcontext() as ctx:
            ctx.prec = _DECIMAL_PRECISION
            value = Decimal(self.raw).scaleb(-self.currency.decimals)
            quantum = Decimal(1).scaleb(-places)
            return f"{value.quantize(quantum, rounding=ROUND_HALF_UP):f}"


def parse_amount(value: str, currency: Currency) -> CurrencyAmount:
    """Parse a human decimal string (e.g. "1.5") into a raw currency amount.

    Raises:
        InvalidRequest: If the value is not a positive decimal or has more
            fractional digits than the currency supports, or exceeds uint256
    """
    text = value.strip() if isinstance(value, str) else ""
    match = _AMOUNT_PATTERN.match(text)
    if not text or match is None or text == ".":
        raise InvalidRequest(f"amount must be a decimal string, got '{value}'")

    whole, fraction = match.group(1) or "0", match.group(2) or ""
    if len(fraction) > currency.decimals:
        raise InvalidRequest(
            f"amount has {len(fraction)} fractional digits, "
            f"{currency.symbol} supports {currency.decimals}"
        )

    digits = (whole + fraction.ljust(currency.decimals, "0")).lstrip("0")
    if len(digits) > len(str(UINT256_MAX)):
        raise InvalidRequest("amount exceeds the maximum uint256 value")

    raw = int(digits or "0")
    if raw > UINT256_MAX:
        raise InvalidRequest("amount exceeds the maximum uint256 value")
    if raw == 0:
        raise InvalidRequest("amount must be greater than zero")
    return CurrencyAmount(currency=currency, raw=raw)
