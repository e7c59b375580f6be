from datetime import date

import pytest

from pantry_prices.inventory import InventoryClient


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


def _client():
    return InventoryClient(base_url="https://db.test/", api_key="anon", access_token="jwt")


def test_list_consumed_items(monkeypatch):
    calls = []
    rows = [
        {"id": 1, "name": "Leche", "quantity": 1, "unit": "l", "categories": {"name": "Alimentos"},
         "expiry_date": "2026-10-20", "is_consumed": True},
        {"id": 2, "name": "Pilas", "quantity": 0, "categories": None, "expiry_date": None, "is_consumed": True},
        {"id": 3, "name": "", "quantity": 2},
        {"name": "sin id"},
    ]

    def fake_get(url, *, params=None, headers=None, timeout=None):
        calls.append((url, params, headers))
        return FakeResponse(payload=rows)

    monkeypatch.setattr("pantry_prices.http.requests.get", fake_get)
    items = _client().list_consumed_items()

    url, params, headers = calls[0]
    assert url == "https://db.test/rest/v1/inventory_items"
    assert params == {"select": "*,categories(name)", "is_consumed": "eq.true"}
    assert headers["apikey"] == "anon"
    assert headers["Authorization"] == "Bearer jwt"

    assert [i.name for i in items] == ["Leche", "Pilas"]
    assert items[0].category == "Alimentos"
    assert items[0].expiry_date == date(2026, 10, 20)
    assert items[0].unit == "l"
    assert items[1].category is None
    assert items[1].expiry_date is None


def test_timestamp_expiry_and_list_relation(monkeypatch):
    rows = [{"id": 9, "name": "Yogurt", "quantity": 2, "categories": [{"name": "Bebidas"}],
             "expiry_date": "2026-10-21T00:00:00Z"}]
    monkeypatch.setattr("pantry_prices.http.requests.get", lambda url, **kw: FakeResponse(payload=rows))

    (item,) = _client().list_consumed_items()
    assert item.category == "Bebidas"
    assert item.expiry_date == date(2026, 10, 21)


def test_item_names(monkeypatch):
    rows = [{"id": 1, "name": "Pan"}, {"id": 2, "name": "Café"}]
    monkeypatch.setattr("pantry_prices.http.requests.get", lambda url, **kw: FakeResponse(payload=rows))
    assert _client().item_names() == ["Pan", "Café"]


def test_http_error_raises(monkeypatch):
    monkeypatch.setattr(
        "pantry_prices.http.requests.get",
        lambda url, **kw: FakeResponse(status_code=401, text="JWT expired"),
    )
    with pytest.raises(RuntimeError, match="401"):
        _client().list_consumed_items()


def test_bad_json_raises(monkeypatch):
    monkeypatch.setattr("pantry_prices.http.requests.get", lambda url, **kw: FakeResponse(payload=None))
    with pytest.raises(RuntimeError, match="decode JSON"):
        _client().list_consumed_items()


def test_anon_key_used_without_access_token(monkeypatch):
    seen = {}

    def fake_get(url, *, params=None, headers=None, timeout=None):
        seen.update(headers)
        return FakeResponse(payload=[])

    monkeypatch.setattr("pantry_prices.http.requests.get", fake_get)
    InventoryClient(base_url="https://db.test", api_key="anon").list_consumed_items()
    assert seen["Authorization"] == "Bearer anon"
