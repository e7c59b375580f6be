import json

import httpx
import pytest

from pantry_prices.config import Config
from pantry_prices.http import BROWSER_USER_AGENT, async_client
from pantry_prices.mock import mock_price
from pantry_prices.providers import (
    ML_PRICING,
    SAMS_LOGIN_URL,
    SAMS_PRICING,
    MercadoLibreResolver,
    SamsResolver,
    default_resolvers,
)


def _next_data(items):
    payload = {"props": {"pageProps": {"initialData": {"searchResult": {"itemStacks": [{"items": items}]}}}}}
    return f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(payload)}</script>'


def _client(handler):
    return async_client(transport=httpx.MockTransport(handler))


def _html(body, status=200):
    def handler(request):
        return httpx.Response(status, text=body)
    return handler


ML_PAGE = (
    '<ol><li class="ui-search-layout__item"><span class="andes-money-amount__fraction">1,299</span></li>'
    '<li class="ui-search-layout__item"><span class="andes-money-amount__fraction">5</span></li></ol>'
)


@pytest.mark.asyncio
async def test_ml_first_listing_price():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, text=ML_PAGE)

    async with _client(handler) as client:
        quote = await MercadoLibreResolver(client).resolve_price("leche entera")

    assert quote.is_real_price is True
    assert quote.price == 1299
    assert quote.url == "https://listado.mercadolibre.com.mx/leche%20entera_NoIndex_True"
    assert seen[0].headers["user-agent"] == BROWSER_USER_AGENT


@pytest.mark.asyncio
async def test_ml_no_price_falls_back():
    async with _client(_html("<html>sin resultados</html>")) as client:
        quote = await MercadoLibreResolver(client).resolve_price("leche entera")

    assert quote.is_real_price is False
    assert quote.price == mock_price("leche entera", ML_PRICING)
    assert quote.url == "https://listado.mercadolibre.com.mx/leche%20entera"


@pytest.mark.asyncio
async def test_ml_http_error_falls_back():
    async with _client(_html(ML_PAGE, status=503)) as client:
        quote = await MercadoLibreResolver(client).resolve_price("pan")
    assert quote.is_real_price is False


@pytest.mark.asyncio
async def test_sams_best_match_from_embedded_json():
    page = _next_data([
        {"name": "Tortillas de Harina", "price": 30},
        {"name": "Caja de Huevo Rojo", "price": 120},
        {"name": "Huevo Orgánico Grande", "price": 89},
    ])
    async with _client(_html(page)) as client:
        quote = await SamsResolver(client).resolve_price("Huevos Orgánicos")

    assert quote.is_real_price is True
    assert quote.price == 89
    assert quote.url == "https://www.sams.com.mx/search?q=Huevos%20Org%C3%A1nicos"


@pytest.mark.asyncio
async def test_sams_zero_score_falls_back():
    page = _next_data([{"name": "Leche Entera", "price": 25}, {"name": "Pan Blanco", "price": 40}])
    async with _client(_html(page)) as client:
        resolver = SamsResolver(client)
        first = await resolver.resolve_price("xyz123nonexistent")
        second = await resolver.resolve_price("xyz123nonexistent")

    assert first.is_real_price is False
    assert first.price == mock_price("xyz123nonexistent", SAMS_PRICING)
    assert first == second


@pytest.mark.asyncio
async def test_sams_structured_data():
    page = (
        '<script type="application/ld+json">'
        '{"@type": "Product", "name": "Huevo Blanco 30 piezas", "offers": {"price": "79.50"}}'
        "</script>"
    )
    async with _client(_html(page)) as client:
        quote = await SamsResolver(client).resolve_price("huevo")
    assert quote.is_real_price is True
    assert quote.price == 79.5


@pytest.mark.asyncio
async def test_sams_structured_data_is_scored():
    page = (
        '<script type="application/ld+json">'
        '{"@type": "Product", "name": "Blanquillos San Juan", "offers": {"price": "79.50"}}'
        "</script>"
    )
    async with _client(_html(page)) as client:
        quote = await SamsResolver(client).resolve_price("huevo")
    assert quote.is_real_price is False
    assert quote.price == mock_price("huevo", SAMS_PRICING)


@pytest.mark.asyncio
async def test_sams_visual_selector_fallback():
    page = '<div class="product"><span class="samsb-price-text">$1,249.00</span></div>'
    async with _client(_html(page)) as client:
        quote = await SamsResolver(client).resolve_price("pantalla")
    assert quote.is_real_price is True
    assert quote.price == 1249.0


@pytest.mark.asyncio
async def test_sams_network_failure_never_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        quote = await SamsResolver(client).resolve_price("leche")

    assert quote.is_real_price is False
    assert quote.price == mock_price("leche", SAMS_PRICING)
    assert quote.url == "https://www.sams.com.mx/search?q=leche"


@pytest.mark.asyncio
async def test_sams_search_bypasses_cache_and_skips_login_without_credentials():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, text="<html></html>")

    async with _client(handler) as client:
        await SamsResolver(client).resolve_price("leche")

    assert [r.method for r in seen] == ["GET"]
    assert "no-cache" in seen[0].headers["cache-control"]
    assert seen[0].headers["pragma"] == "no-cache"
    assert "cookie" not in seen[0].headers


@pytest.mark.asyncio
async def test_sams_login_cookie_sent_with_search():
    seen = []
    page = _next_data([{"name": "Leche Lala", "price": 27}])

    def handler(request):
        seen.append(request)
        if request.method == "POST":
            assert json.loads(request.content) == {"email": "a@b.mx", "password": "pw"}
            return httpx.Response(
                200,
                headers=[("set-cookie", "sid=abc; Path=/; HttpOnly"), ("set-cookie", "tok=1; Secure")],
            )
        return httpx.Response(200, text=page)

    async with _client(handler) as client:
        quote = await SamsResolver(client, email="a@b.mx", password="pw").resolve_price("leche")

    assert quote.price == 27
    assert str(seen[0].url) == SAMS_LOGIN_URL
    assert seen[1].headers["cookie"] == "sid=abc; tok=1"


@pytest.mark.asyncio
async def test_sams_login_is_repeated_per_lookup():
    posts = []

    def handler(request):
        if request.method == "POST":
            posts.append(request)
            return httpx.Response(200, headers=[("set-cookie", "sid=abc")])
        return httpx.Response(200, text="<html></html>")

    async with _client(handler) as client:
        resolver = SamsResolver(client, email="a@b.mx", password="pw")
        await resolver.resolve_price("leche")
        await resolver.resolve_price("pan")

    assert len(posts) == 2


@pytest.mark.asyncio
async def test_sams_login_failure_is_ignored():
    seen = []
    page = _next_data([{"name": "Leche Lala", "price": 27}])

    def handler(request):
        seen.append(request)
        if request.method == "POST":
            return httpx.Response(403)
        return httpx.Response(200, text=page)

    async with _client(handler) as client:
        quote = await SamsResolver(client, email="a@b.mx", password="pw").resolve_price("leche")

    assert quote.is_real_price is True
    assert "cookie" not in seen[1].headers


@pytest.mark.asyncio
async def test_sams_login_transport_error_is_ignored():
    page = _next_data([{"name": "Leche Lala", "price": 27}])

    def handler(request):
        if request.method == "POST":
            raise httpx.ConnectTimeout("slow", request=request)
        return httpx.Response(200, text=page)

    async with _client(handler) as client:
        quote = await SamsResolver(client, email="a@b.mx", password="pw").resolve_price("leche")
    assert quote.price == 27


@pytest.mark.asyncio
async def test_response_cookies_do_not_persist():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, headers=[("set-cookie", "tracker=1")], text=ML_PAGE)

    async with _client(handler) as client:
        resolver = MercadoLibreResolver(client)
        await resolver.resolve_price("pan")
        await resolver.resolve_price("pan")

    assert "cookie" not in seen[1].headers


@pytest.mark.asyncio
async def test_default_resolvers():
    cfg = Config(sams_email="a@b.mx", sams_password="pw")
    async with _client(_html("")) as client:
        resolvers = default_resolvers(client, cfg)
    assert [r.key for r in resolvers] == ["ml", "sams"]
