"""Swap quote service - quoting front-end for a DEX routing engine."""

from quoter.quoting.service import QuoteService

__version__ = "0.1.0"
__all__ = ["QuoteService", "__version__"]
