from __future__ import annotations

from datetime import date, datetime
from typing import Any

from .http import HttpClient
from .models import InventoryItem

ITEMS_PATH = "/rest/v1/inventory_items"


class InventoryClient:
    """Read-only view of the household inventory table (PostgREST API)."""

    def __init__(self, *, base_url: str, api_key: str, access_token: str | None = None, timeout_s: float = 30.0):
        self.http = HttpClient(base_url=base_url, api_key=api_key, access_token=access_token, timeout_s=timeout_s)

    def list_consumed_items(self) -> list[InventoryItem]:
        rows = self._get_json(
            ITEMS_PATH,
            params={"select": "*,categories(name)", "is_consumed": "eq.true"},
        )
        if not isinstance(rows, list):
            raise RuntimeError(f"Unexpected inventory payload: {type(rows).__name__}")

        out: list[InventoryItem] = []
        for row in rows:
            item = _parse_item(row)
            if item is not None:
                out.append(item)
        return out

    def item_names(self) -> list[str]:
        return [it.name for it in self.list_consumed_items()]

    def _get_json(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        resp = self.http.get(path, params=params)
        if resp.status_code >= 400:
            raise RuntimeError(f"Inventory API error {resp.status_code} for {path}: {resp.text[:500]}")
        try:
            return resp.json()
        except Exception as e:
            raise RuntimeError(f"Failed to decode JSON from inventory API for {path}: {e}")


def _parse_item(row: Any) -> InventoryItem | None:
    if not isinstance(row, dict):
        return None
    _id = row.get("id")
    name = row.get("name")
    if _id is None or not name:
        return None

    category = row.get("categories")
    # Embedded one-to-one relations come back as an object, sometimes a list.
    if isinstance(category, list):
        category = category[0] if category else None
    cat_name = category.get("name") if isinstance(category, dict) else None

    qty = row.get("quantity")
    return InventoryItem(
        id=int(_id),
        name=str(name),
        quantity=float(qty) if isinstance(qty, (int, float)) else 0.0,
        unit=str(row["unit"]) if row.get("unit") is not None else None,
        category=str(cat_name) if cat_name else None,
        expiry_date=_parse_date(row.get("expiry_date")),
        is_consumed=bool(row.get("is_consumed")),
    )


def _parse_date(value: Any) -> date | None:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None
