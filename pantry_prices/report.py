from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from .models import PriceQuote, ShoppingItem
from .providers import MercadoLibreResolver, SamsResolver
from .suggest import ShoppingCandidates

PROVIDER_LABELS = {r.key: r.label for r in (MercadoLibreResolver, SamsResolver)}


def _label(provider: str) -> str:
    return PROVIDER_LABELS.get(provider, provider)


def _money(value: float) -> str:
    return f"${value:,.2f}"


def set_manual_price(item: ShoppingItem, provider: str, price: float) -> PriceQuote:
    """Override a quote by hand. A typed-in price counts as real."""
    if math.isnan(price) or math.isinf(price) or price < 0:
        raise ValueError(f"price must be a finite number >= 0, got {price}")
    current = item.prices.get(provider)
    url = current.url if current else ""
    quote = PriceQuote(price=float(price), url=url, is_real_price=True)
    item.prices[provider] = quote
    return quote


def _item_dict(item: ShoppingItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "current_quantity": item.current_quantity,
        "suggested_quantity": item.suggested_quantity,
        "reason": item.reason,
        "prices": {p: q.to_dict() for p, q in item.prices.items()},
    }


@dataclass
class ShoppingReport:
    timestamp: str
    main: list[ShoppingItem]
    recommended: list[ShoppingItem]

    def total(self, provider: str) -> float:
        total = 0.0
        for it in self.main:
            q = it.prices.get(provider)
            if q is not None:
                total += q.price * it.suggested_quantity
        return total

    def summary_text(self, provider: str) -> str:
        lines = [
            f"Run: {self.timestamp}  ({_label(provider)})",
            f"Main: {len(self.main)}  Suggested: {len(self.recommended)}  "
            f"Total: {_money(self.total(provider))}",
            "",
        ]
        for i, it in enumerate(self.main, 1):
            lines.append(f"  {i}. {_row_text(it, provider)}")
        if self.recommended:
            lines.append("")
            lines.append("  Suggestions (low rotation):")
            for it in self.recommended:
                lines.append(f"   - {_row_text(it, provider)}")
        return "\n".join(lines)

    def share_text(self, provider: str, today: date | None = None) -> str:
        today = today or date.today()
        title = f"🛒 Lista de Compras - {_label(provider)} ({today.isoformat()})"
        items = "\n".join(f"[ ] {it.name} ({it.suggested_quantity})" for it in self.main)
        return f"{title}\nTotal Est: {_money(self.total(provider))}\n\n{items}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "main": [_item_dict(it) for it in self.main],
            "recommended": [_item_dict(it) for it in self.recommended],
        }

    def write_json(self, path: str = "artifacts/shopping_list.json") -> str:
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(self.to_dict(), indent=2, ensure_ascii=False))
        return str(out)


def _row_text(item: ShoppingItem, provider: str) -> str:
    q = item.prices.get(provider)
    if q is None or q.price == 0:
        price = "—"
    else:
        price = _money(q.price * item.suggested_quantity)
        if not q.is_real_price:
            price += " (est.)"
    tag = " [expiring]" if item.reason == "expiring" else ""
    return f"{item.name} x{item.suggested_quantity}{tag}  {price}"


def build_report(candidates: ShoppingCandidates) -> ShoppingReport:
    return ShoppingReport(
        timestamp=datetime.now(timezone.utc).isoformat(),
        main=list(candidates.main),
        recommended=list(candidates.recommended),
    )
