"""Parsing and formatting of Brazilian-locale monetary text (``R$ 1.234,56``)."""

from __future__ import annotations

import math
import re
from typing import Optional

_NON_NUMERIC = re.compile(r"[^\d,.\-]")
_SEPARATOR_SWAP = str.maketrans({",": ".", ".": ","})


def parse_currency(value: object | None) -> Optional[float]:
    """Parse locale monetary text into a float.

    ``.`` is a thousands separator and ``,`` the decimal separator; any
    currency symbol or whitespace is ignored.  Returns ``None`` for empty
    input or text that does not parse, which callers treat as absent data.
    """

    if value is None:
        return None
    text = _NON_NUMERIC.sub("", str(value))
    if not text:
        return None
    text = text.replace(".", "").replace(",", ".", 1)
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isnan(number):
        return None
    return number


def format_currency(value: float, *, symbol: bool = False) -> str:
    """Render ``value`` as ``1.234,56`` (optionally prefixed with ``R$``)."""

    text = f"{float(value):,.2f}".translate(_SEPARATOR_SWAP)
    return f"R$ {text}" if symbol else text


def normalize_price_text(raw: str) -> str:
    """Canonical redisplay of a typed price, applied when the field loses focus.

    Unparseable text is returned untouched so the user can keep editing it.
    """

    number = parse_currency(raw)
    if number is None:
        return raw
    return format_currency(number)


def format_percent(value: Optional[float]) -> str:
    if value is None:
        return ""
    return f"{float(value):.2f}".replace(".", ",") + "%"


__all__ = ["format_currency", "format_percent", "normalize_price_text", "parse_currency"]
