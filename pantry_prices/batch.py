from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Iterable, Sequence

from .mock import fallback_price
from .models import PriceQuote
from .providers import PriceResolver

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 3


@dataclass(frozen=True)
class ProviderQuote:
    name: str
    provider: str
    quote: PriceQuote


@dataclass(frozen=True)
class PriceRow:
    """All provider quotes for one name."""

    name: str
    quotes: dict[str, PriceQuote]

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        for provider, q in self.quotes.items():
            out[provider] = q.to_dict()
        return out


def _windows(names: Sequence[str], size: int) -> Iterable[Sequence[str]]:
    for start in range(0, len(names), size):
        yield names[start : start + size]


async def _safe_resolve(resolver: PriceResolver, name: str) -> ProviderQuote:
    try:
        q = await resolver.resolve_price(name)
    except Exception:
        # resolve_price already absorbs failures; this only guards subclasses.
        logger.exception("[%s] resolver raised for %r", resolver.key, name)
        q = fallback_price(name, resolver.pricing, url=resolver.fallback_url(name))
    return ProviderQuote(name=name, provider=resolver.key, quote=q)


async def fetch_product_prices(name: str, resolvers: Sequence[PriceResolver]) -> dict[str, PriceQuote]:
    """Resolve a single name against every provider concurrently."""
    results = await asyncio.gather(*(_safe_resolve(r, name) for r in resolvers))
    return {pq.provider: pq.quote for pq in results}


async def _row(name: str, resolvers: Sequence[PriceResolver]) -> PriceRow:
    return PriceRow(name=name, quotes=await fetch_product_prices(name, resolvers))


async def _settle(tasks: list[asyncio.Future]) -> None:
    # A consumer that stops early leaves the rest of the window running;
    # let it finish and drop the results.
    pending = [t for t in tasks if not t.done()]
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)


def _check_window(window: int) -> None:
    if window < 1:
        raise ValueError(f"window must be >= 1, got {window}")


async def iter_quotes(
    names: Iterable[str],
    resolvers: Sequence[PriceResolver],
    *,
    window: int = DEFAULT_WINDOW,
) -> AsyncIterator[ProviderQuote]:
    """Stream one ProviderQuote per (name, provider) as each lookup completes.

    Names are processed *window* at a time; at most
    ``window * len(resolvers)`` lookups are in flight.
    """
    _check_window(window)
    chunks = list(_windows(list(names), window))
    for idx, chunk in enumerate(chunks, 1):
        logger.debug("quote window %d/%d: %s", idx, len(chunks), list(chunk))
        tasks = [asyncio.ensure_future(_safe_resolve(r, n)) for n in chunk for r in resolvers]
        try:
            for fut in asyncio.as_completed(tasks):
                yield await fut
        finally:
            await _settle(tasks)


async def resolve_prices(
    names: Iterable[str],
    resolvers: Sequence[PriceResolver],
    *,
    window: int = DEFAULT_WINDOW,
) -> AsyncIterator[PriceRow]:
    """Stream a PriceRow per name once every provider has answered for it."""
    _check_window(window)
    chunks = list(_windows(list(names), window))
    for idx, chunk in enumerate(chunks, 1):
        logger.debug("price window %d/%d: %s", idx, len(chunks), list(chunk))
        tasks = [asyncio.ensure_future(_row(n, resolvers)) for n in chunk]
        try:
            for fut in asyncio.as_completed(tasks):
                yield await fut
        finally:
            await _settle(tasks)
