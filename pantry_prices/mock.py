from __future__ import annotations

from dataclasses import dataclass

from .models import PriceQuote


@dataclass(frozen=True)
class MockPricing:
    """Seed parameters for a provider's stand-in prices."""

    per_char_salt: int
    modulus: int
    base: int


def mock_price(query: str, pricing: MockPricing) -> float:
    seed = sum(ord(ch) + pricing.per_char_salt for ch in query)
    return float(seed % pricing.modulus + pricing.base)


def fallback_price(query: str, pricing: MockPricing, *, url: str) -> PriceQuote:
    """Deterministic quote used when no real price could be resolved.

    The same query always maps to the same price for a given provider, so
    retries never make a displayed price jump around.
    """
    return PriceQuote(price=mock_price(query, pricing), url=url, is_real_price=False)
