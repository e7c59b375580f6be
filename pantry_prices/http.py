from __future__ import annotations

from dataclasses import dataclass
from http.cookiejar import CookieJar, DefaultCookiePolicy

import httpx
import requests

# Retail search pages serve a bot wall to default library user agents.
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store",
    "Pragma": "no-cache",
}


@dataclass(frozen=True)
class HttpClient:
    """Synchronous JSON client for the hosted inventory backend."""

    base_url: str
    api_key: str
    access_token: str | None = None
    timeout_s: float = 30.0

    def get(self, path: str, *, params: dict | None = None) -> requests.Response:
        url = self.base_url.rstrip("/") + "/" + path.lstrip("/")
        return requests.get(
            url,
            params=params,
            headers={
                "apikey": self.api_key,
                "Authorization": f"Bearer {self.access_token or self.api_key}",
                "Accept": "application/json",
            },
            timeout=self.timeout_s,
        )


def async_client(*, timeout_s: float = 20.0, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """Shared client for provider lookups; one per batch run.

    The cookie jar accepts nothing: provider sessions are passed as explicit
    Cookie headers and must not leak from one lookup into the next.
    """
    jar = CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))
    return httpx.AsyncClient(
        timeout=timeout_s,
        follow_redirects=True,
        headers={"User-Agent": BROWSER_USER_AGENT},
        cookies=jar,
        transport=transport,
    )
