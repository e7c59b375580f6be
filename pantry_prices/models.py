from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any


@dataclass(frozen=True)
class NormalizedQuery:
    raw: str

    # Lowercased words longer than two characters, in query order.
    tokens: tuple[str, ...] = ()

    # Same length as tokens; each token minus a single trailing "s".
    roots: tuple[str, ...] = ()

    @property
    def head(self) -> str | None:
        return self.tokens[0] if self.tokens else None

    @property
    def head_root(self) -> str | None:
        return self.roots[0] if self.roots else None

    @property
    def rest(self) -> list[tuple[str, str]]:
        """(token, root) pairs after the head word."""
        return list(zip(self.tokens[1:], self.roots[1:]))


@dataclass(frozen=True)
class Candidate:
    """A single (name, price) pair pulled out of a provider page."""

    name: str | None
    price: float
    raw: dict[str, Any] | None = None   # provider record the pair came from


@dataclass(frozen=True)
class ScoredCandidate:
    candidate: Candidate
    score: float
    index: int                          # extraction order


@dataclass(frozen=True)
class PriceQuote:
    price: float
    url: str
    is_real_price: bool

    def to_dict(self) -> dict[str, Any]:
        return {"price": self.price, "url": self.url, "isRealPrice": self.is_real_price}


@dataclass(frozen=True)
class InventoryItem:
    id: int
    name: str
    quantity: float = 0.0
    unit: str | None = None
    category: str | None = None
    expiry_date: date | None = None
    is_consumed: bool = False


@dataclass
class ShoppingItem:
    id: int
    name: str
    current_quantity: float
    suggested_quantity: int = 1
    reason: str = "low_stock"           # low_stock, expiring
    prices: dict[str, PriceQuote] = field(default_factory=dict)
