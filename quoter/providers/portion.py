"""Portion (fee) accounting on swap proceeds."""

from quoter.models.currency import CurrencyAmount
from quoter.models.route import TradeType

BIPS_BASE = 10_000


class PortionProvider:
    """Computes the slice of the output taken as a portion, in basis points."""

    def get_portion_amount(
        self, output: CurrencyAmount, portion_bips: int | None
    ) -> CurrencyAmount:
        bips = portion_bips or 0
        return CurrencyAmount(output.currency, output.raw * bips // BIPS_BASE)

    def get_portion_adjusted_quote(
        self, trade_type: TradeType, quote: CurrencyAmount, portion_bips: int | None
    ) -> CurrencyAmount:
        """Quote the caller sees once the portion is taken from the output.

        Exact input: the quote is the output, reduced by the portion.
        Exact output: the quote is the input, grown so the output still
        covers the requested amount plus the portion.
        """
        if not portion_bips:
            return quote
        if trade_type is TradeType.EXACT_INPUT:
            portion = self.get_portion_amount(quote, portion_bips)
            return CurrencyAmount(quote.currency, quote.raw - portion.raw)
        # Ceiling division so the grown input is never short
        grown = -(-quote.raw * BIPS_BASE // (BIPS_BASE - portion_bips))
        return CurrencyAmount(quote.currency, grown)
