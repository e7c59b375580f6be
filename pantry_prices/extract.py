"""Candidate extraction from retailer search pages.

Strategies are tried in order and the first one that finds at least one
positively priced candidate wins:

1. Embedded hydration JSON (``__NEXT_DATA__``)
2. JSON-LD structured data
3. Visual CSS selectors on price nodes

A strategy that hits malformed markup or an unexpected JSON shape simply
reports ``NotApplicable``; errors never leave this module.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Sequence, Union

from bs4 import BeautifulSoup

from .models import Candidate
from .normalize import coerce_price, parse_price_text

logger = logging.getLogger(__name__)

# Path from the __NEXT_DATA__ root to the search result item list.
NEXT_DATA_ITEMS_PATH: tuple[str | int, ...] = (
    "props", "pageProps", "initialData", "searchResult", "itemStacks", 0, "items",
)


@dataclass(frozen=True)
class Found:
    strategy: str
    candidates: tuple[Candidate, ...]


@dataclass(frozen=True)
class NotApplicable:
    strategy: str
    reason: str = ""


StrategyResult = Union[Found, NotApplicable]
Strategy = Callable[[BeautifulSoup], StrategyResult]


def _walk(node: Any, path: Sequence[str | int]) -> Any:
    for step in path:
        if isinstance(step, int):
            if not isinstance(node, list) or len(node) <= step:
                return None
        elif not isinstance(node, dict):
            return None
        node = node[step] if isinstance(step, int) else node.get(step)
    return node


def _item_price(item: dict[str, Any]) -> float | None:
    # Raw number first, then the nested price-info object, then the
    # formatted line price ("$1,234.00").
    price = coerce_price(item.get("price"))
    if price:
        return price
    info = item.get("priceInfo")
    if isinstance(info, dict):
        price = coerce_price(info.get("price"))
        if price:
            return price
        line_price = info.get("linePrice")
        if isinstance(line_price, str):
            return parse_price_text(line_price)
    return None


def embedded_json_strategy(soup: BeautifulSoup) -> StrategyResult:
    name = "embedded_json"
    script = soup.find("script", id="__NEXT_DATA__")
    if script is None or not script.string:
        return NotApplicable(name, "no __NEXT_DATA__ payload")

    payload = json.loads(script.string)
    items = _walk(payload, NEXT_DATA_ITEMS_PATH)
    if not isinstance(items, list):
        return NotApplicable(name, "item list missing")

    candidates: list[Candidate] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        title = item.get("name")
        price = _item_price(item)
        if not title or not isinstance(title, str) or price is None:
            continue
        candidates.append(Candidate(name=title, price=price, raw=item))

    if not candidates:
        return NotApplicable(name, f"{len(items)} items, none priced")
    return Found(name, tuple(candidates))


def _json_ld_objects(data: Any) -> Iterator[dict[str, Any]]:
    if isinstance(data, list):
        for entry in data:
            if isinstance(entry, dict):
                yield entry
    elif isinstance(data, dict):
        yield data


def _offer_price(node: Any) -> float | None:
    if not isinstance(node, dict):
        return None
    offers = node.get("offers")
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    if not isinstance(offers, dict):
        return None
    return coerce_price(offers.get("price"))


def _structured_candidate(obj: dict[str, Any]) -> Candidate | None:
    kind = obj.get("@type")
    if kind == "Product":
        price = _offer_price(obj)
        if price:
            return Candidate(name=obj.get("name") or None, price=price, raw=obj)
    elif kind == "ItemList":
        elements = obj.get("itemListElement")
        if isinstance(elements, list) and elements:
            first = elements[0]
            # ListItem wrappers keep the product under "item".
            for node in (first, first.get("item") if isinstance(first, dict) else None):
                price = _offer_price(node)
                if price:
                    return Candidate(name=node.get("name") or None, price=price, raw=node)
    return None


def structured_data_strategy(soup: BeautifulSoup) -> StrategyResult:
    name = "structured_data"
    blocks = soup.find_all("script", type="application/ld+json")
    for block in blocks:
        text = block.string or block.get_text()
        if not text or not text.strip():
            continue
        try:
            data = json.loads(text)
        except ValueError:
            logger.debug("skipping malformed JSON-LD block")
            continue
        for obj in _json_ld_objects(data):
            cand = _structured_candidate(obj)
            if cand is not None:
                return Found(name, (cand,))
    return NotApplicable(name, f"{len(blocks)} JSON-LD blocks, no priced product")


@dataclass(frozen=True)
class VisualSelectorStrategy:
    """Read the first price node matched by any of *price_selectors*.

    When *scope* is given the search is limited to the first node matching
    it (e.g. the first listing tile). *parse* turns node text into a price.
    """

    price_selectors: tuple[str, ...]
    scope: str | None = None
    parse: Callable[[str], float | None] = field(default=parse_price_text)
    name: str = "visual_selector"

    def __call__(self, soup: BeautifulSoup) -> StrategyResult:
        root = soup
        if self.scope:
            root = soup.select_one(self.scope)
            if root is None:
                return NotApplicable(self.name, f"no node for {self.scope!r}")

        for sel in self.price_selectors:
            node = root.select_one(sel)
            if node is None:
                continue
            price = self.parse(node.get_text(strip=True))
            if price:
                return Found(self.name, (Candidate(name=None, price=float(price)),))
        return NotApplicable(self.name, "no priced node")


def run_strategies(soup: BeautifulSoup, strategies: Sequence[Strategy]) -> StrategyResult:
    last: StrategyResult = NotApplicable("none", "no strategies")
    for strategy in strategies:
        label = getattr(strategy, "name", None) or getattr(strategy, "__name__", repr(strategy))
        try:
            result = strategy(soup)
        except Exception as exc:
            logger.debug("strategy %s failed: %s", label, exc)
            result = NotApplicable(label, f"error: {exc}")
        logger.debug("strategy %s -> %s", label, type(result).__name__)
        if isinstance(result, Found) and result.candidates:
            return result
        last = result
    return last


def extract(html: str, strategies: Sequence[Strategy]) -> StrategyResult:
    """Parse *html* once and return the first strategy result that found candidates."""
    soup = BeautifulSoup(html or "", "html.parser")
    return run_strategies(soup, strategies)


def iter_candidates(html: str, strategies: Sequence[Strategy]) -> Iterator[Candidate]:
    result = extract(html, strategies)
    if isinstance(result, Found):
        yield from result.candidates
