"""Display helpers for money amounts."""
from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
DEFAULT_LOCALE = "en-IN"

# locale -> (currency symbol, grouping style)
LOCALE_FORMATS: dict[str, tuple[str, str]] = {
    "en-IN": ("₹", "indian"),
    "hi-IN": ("₹", "indian"),
    "en-US": ("$", "thousands"),
}


def _group_thousands(digits: str) -> str:
    groups: list[str] = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    groups.insert(0, digits)
    return ",".join(groups)


def _group_indian(digits: str) -> str:
    """12345678 -> 1,23,45,678 (last three digits, then pairs)."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs: list[str] = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    pairs.insert(0, head)
    return ",".join(pairs) + "," + tail


def format_money(amount: Decimal | int | float | str, locale: str = DEFAULT_LOCALE) -> str:
    """Render *amount* as a currency string, e.g. ``₹1,23,456.79``.

    Rounds half away from zero to two decimals. Unknown locales fall back to
    the default Indian format.
    """
    fmt = LOCALE_FORMATS.get(locale)
    if fmt is None:
        logger.warning("Unknown locale %s, falling back to %s", locale, DEFAULT_LOCALE)
        fmt = LOCALE_FORMATS[DEFAULT_LOCALE]
    symbol, grouping = fmt

    value = Decimal(str(amount)).quantize(CENTS, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    whole, _, fraction = f"{abs(value):f}".partition(".")
    grouped = _group_indian(whole) if grouping == "indian" else _group_thousands(whole)
    return f"{sign}{symbol}{grouped}.{fraction}"
