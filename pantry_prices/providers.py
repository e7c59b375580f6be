from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from .config import Config
from .extract import (
    Found,
    Strategy,
    VisualSelectorStrategy,
    embedded_json_strategy,
    extract,
    structured_data_strategy,
)
from .http import NO_CACHE_HEADERS
from .match import DEFAULT_WEIGHTS, ScoringWeights, choose_best
from .mock import MockPricing, fallback_price
from .models import PriceQuote
from .normalize import normalize_query, parse_price_digits

logger = logging.getLogger(__name__)

ML_LISTING_URL = "https://listado.mercadolibre.com.mx/"
SAMS_SEARCH_URL = "https://www.sams.com.mx/search"
SAMS_LOGIN_URL = "https://www.sams.com.mx/api/v1/login"

ML_PRICING = MockPricing(per_char_salt=0, modulus=180, base=20)
SAMS_PRICING = MockPricing(per_char_salt=5, modulus=250, base=50)


def _quote(name: str) -> str:
    # Same escaping as JavaScript's encodeURIComponent.
    return quote(name, safe="-_.!~*'()")


@dataclass(frozen=True)
class ProviderSession:
    """Auth artifact for a single lookup. Never cached across lookups."""

    cookie: str | None = None

    @property
    def authenticated(self) -> bool:
        return bool(self.cookie)


class PriceResolver:
    """Uniform "price for this name" contract.

    ``resolve_price`` never raises: transport, parse and auth problems all
    end in the provider's deterministic mock quote.
    """

    key: str = ""
    label: str = ""
    pricing: MockPricing

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    def fallback_url(self, name: str) -> str:
        raise NotImplementedError

    async def _resolve(self, name: str) -> PriceQuote | None:
        raise NotImplementedError

    async def resolve_price(self, name: str) -> PriceQuote:
        try:
            found = await self._resolve(name)
        except Exception as exc:
            logger.warning("[%s] lookup failed for %r: %s", self.key, name, exc)
            found = None
        if found is not None:
            return found
        return fallback_price(name, self.pricing, url=self.fallback_url(name))


class MercadoLibreResolver(PriceResolver):
    """Public listing page; the first result tile's price, no scoring."""

    key = "ml"
    label = "Mercado Libre"
    pricing = ML_PRICING

    strategies: tuple[Strategy, ...] = (
        VisualSelectorStrategy(
            price_selectors=(".andes-money-amount__fraction",),
            scope=".ui-search-layout__item",
            parse=parse_price_digits,
        ),
    )

    def listing_url(self, name: str) -> str:
        return f"{ML_LISTING_URL}{_quote(name)}_NoIndex_True"

    def fallback_url(self, name: str) -> str:
        return f"{ML_LISTING_URL}{_quote(name)}"

    async def _resolve(self, name: str) -> PriceQuote | None:
        url = self.listing_url(name)
        resp = await self.client.get(url)
        resp.raise_for_status()

        result = extract(resp.text, self.strategies)
        if not isinstance(result, Found):
            logger.debug("[ml] no listing price for %r (%s)", name, result.reason)
            return None
        return PriceQuote(price=result.candidates[0].price, url=url, is_real_price=True)


class SamsResolver(PriceResolver):
    """Search page with optional login, full extraction chain and best-match scoring."""

    key = "sams"
    label = "Sams Club"
    pricing = SAMS_PRICING

    strategies: tuple[Strategy, ...] = (
        embedded_json_strategy,
        structured_data_strategy,
        VisualSelectorStrategy(price_selectors=(".samsb-price-text", ".curr-price")),
    )

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        email: str | None = None,
        password: str | None = None,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
    ):
        super().__init__(client)
        self._email = email
        self._password = password
        self.weights = weights

    def search_url(self, name: str) -> str:
        return f"{SAMS_SEARCH_URL}?q={_quote(name)}"

    def fallback_url(self, name: str) -> str:
        return self.search_url(name)

    async def login(self) -> ProviderSession:
        """Best-effort login. Any failure yields an anonymous session."""
        if not (self._email and self._password):
            logger.debug("[sams] no credentials configured, searching anonymously")
            return ProviderSession()

        try:
            resp = await self.client.post(
                SAMS_LOGIN_URL,
                json={"email": self._email, "password": self._password},
            )
        except httpx.HTTPError as exc:
            logger.warning("[sams] login attempt error: %s", exc)
            return ProviderSession()

        if resp.is_error:
            logger.info("[sams] login attempt declined: %s", resp.status_code)
            return ProviderSession()

        pairs = [h.split(";", 1)[0].strip() for h in resp.headers.get_list("set-cookie")]
        cookie = "; ".join(p for p in pairs if p)
        if cookie:
            logger.info("[sams] login ok, session cookie obtained")
        return ProviderSession(cookie=cookie or None)

    async def _resolve(self, name: str) -> PriceQuote | None:
        session = await self.login()

        url = self.search_url(name)
        headers = dict(NO_CACHE_HEADERS)
        if session.authenticated:
            headers["Cookie"] = session.cookie

        resp = await self.client.get(url, headers=headers)
        resp.raise_for_status()

        result = extract(resp.text, self.strategies)
        if not isinstance(result, Found):
            logger.info("[sams] no candidates for %r (%s)", name, result.reason)
            return None
        logger.info("[sams] %s found %d candidates for %r", result.strategy, len(result.candidates), name)

        best = choose_best(normalize_query(name), result.candidates, self.weights)
        if best is None:
            logger.info("[sams] no good match for %r", name)
            return None

        logger.info(
            "[sams] selected %r (score %.1f) price %s",
            best.candidate.name, best.score, best.candidate.price,
        )
        return PriceQuote(price=best.candidate.price, url=url, is_real_price=True)


def default_resolvers(client: httpx.AsyncClient, config: Config) -> list[PriceResolver]:
    return [
        MercadoLibreResolver(client),
        SamsResolver(client, email=config.sams_email, password=config.sams_password),
    ]
