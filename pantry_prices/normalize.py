from __future__ import annotations

import re

from .models import NormalizedQuery

# Tokens this short ("de", "la", "kg") carry no product meaning.
MIN_TOKEN_LENGTH = 3

_PRICE_NOISE_RE = re.compile(r"[$,\s]")
_PRICE_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
_NON_DIGIT_RE = re.compile(r"\D")


def singularize(token: str) -> str:
    """Strip a single trailing "s". No other stemming rules apply."""
    return token[:-1] if token.endswith("s") else token


def normalize_query(query: str) -> NormalizedQuery:
    tokens = tuple(
        tok for tok in (query or "").lower().split() if len(tok) >= MIN_TOKEN_LENGTH
    )
    roots = tuple(singularize(tok) for tok in tokens)
    return NormalizedQuery(raw=query or "", tokens=tokens, roots=roots)


def parse_price_text(text: str | None) -> float | None:
    """Parse display prices like '$1,299.50', ' 89.00 MXN' or '$89.00.'.

    Currency symbols, thousands separators and whitespace are dropped, then
    the first number is read; trailing text after it is ignored.
    """
    if not text:
        return None
    m = _PRICE_NUMBER_RE.search(_PRICE_NOISE_RE.sub("", text))
    if not m:
        return None
    value = float(m.group(0))
    return value if value > 0 else None


def parse_price_digits(text: str | None) -> int | None:
    """Parse whole-number price fractions, dropping every non-digit ('1,299' -> 1299)."""
    if not text:
        return None
    digits = _NON_DIGIT_RE.sub("", text)
    if not digits:
        return None
    value = int(digits)
    return value if value > 0 else None


def coerce_price(value: object) -> float | None:
    """Accept numeric prices or numeric strings; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None
    if isinstance(value, str):
        try:
            num = float(value.strip())
        except ValueError:
            return parse_price_text(value)
        return num if num > 0 else None
    return None
