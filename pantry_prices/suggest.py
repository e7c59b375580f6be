from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Iterable

from .models import InventoryItem, PriceQuote, ShoppingItem

# Categories that run out quickly; low stock here goes straight onto the list.
HIGH_VELOCITY_CATEGORIES = ("Alimentos", "Bebidas", "Salud", "Mascotas", "Limpieza", "Higiene")
DEFAULT_CATEGORY = "Varios"

LOW_STOCK_THRESHOLD = 1
EXPIRY_WINDOW = timedelta(days=3)


@dataclass
class ShoppingCandidates:
    main: list[ShoppingItem] = field(default_factory=list)
    recommended: list[ShoppingItem] = field(default_factory=list)

    def all_items(self) -> list[ShoppingItem]:
        return [*self.main, *self.recommended]


def is_high_velocity(category: str | None) -> bool:
    name = category or DEFAULT_CATEGORY
    return any(c in name for c in HIGH_VELOCITY_CATEGORIES)


def is_expiring(item: InventoryItem, now: datetime) -> bool:
    if item.expiry_date is None:
        return False
    return datetime.combine(item.expiry_date, time.min) < now + EXPIRY_WINDOW


def placeholder_prices(providers: Iterable[str]) -> dict[str, PriceQuote]:
    return {p: PriceQuote(price=0.0, url="", is_real_price=False) for p in providers}


def build_candidates(
    items: Iterable[InventoryItem],
    *,
    providers: Iterable[str] = ("ml", "sams"),
    now: datetime | None = None,
) -> ShoppingCandidates:
    """Split inventory into the main shopping list and low-rotation suggestions.

    Main: anything expiring soon, plus low stock in a high-velocity category.
    Recommended: low stock everywhere else (the user decides).
    """
    now = now or datetime.now()
    providers = tuple(providers)
    out = ShoppingCandidates()

    for item in items:
        expiring = is_expiring(item, now)
        low = item.quantity <= LOW_STOCK_THRESHOLD
        if not low and not expiring:
            continue

        entry = ShoppingItem(
            id=item.id,
            name=item.name,
            current_quantity=item.quantity,
            suggested_quantity=1,
            reason="expiring" if expiring else "low_stock",
            prices=placeholder_prices(providers),
        )

        if expiring or is_high_velocity(item.category):
            out.main.append(entry)
        else:
            out.recommended.append(entry)

    return out


def promote(candidates: ShoppingCandidates, item_id: int) -> bool:
    """Move a recommended item onto the main list."""
    for idx, item in enumerate(candidates.recommended):
        if item.id == item_id:
            candidates.main.append(candidates.recommended.pop(idx))
            return True
    return False


def update_quantity(candidates: ShoppingCandidates, item_id: int, delta: int) -> int | None:
    """Adjust a main-list quantity by ``delta``; it never drops below 1.

    Returns the new quantity, or None when the id is not on the main list.
    """
    for item in candidates.main:
        if item.id == item_id:
            item.suggested_quantity = max(1, item.suggested_quantity + delta)
            return item.suggested_quantity
    return None


def remove(candidates: ShoppingCandidates, item_id: int) -> bool:
    """Drop an item from the main list."""
    for idx, item in enumerate(candidates.main):
        if item.id == item_id:
            del candidates.main[idx]
            return True
    return False
