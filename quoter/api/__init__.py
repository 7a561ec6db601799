"""HTTP surface of the quote service."""
