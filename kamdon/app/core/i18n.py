"""Message catalogs for dashboard insights.

Each language lives in ``locales/<code>/messages.json``. Regional tags such as
``hi-IN`` resolve to their base catalog; anything without a catalog reads
English.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

LOCALES_DIR = Path(__file__).resolve().parent.parent / "locales"
DEFAULT_LANGUAGE = "en"


@lru_cache(maxsize=1)
def available_languages() -> frozenset[str]:
    """Language codes that ship a ``messages.json`` catalog."""
    return frozenset(path.parent.name for path in LOCALES_DIR.glob("*/messages.json"))


def resolve_language(tag: str | None) -> str | None:
    """Map a language tag onto a shipped catalog, or ``None``.

    ``"hi-IN"`` and ``"hi_in"`` both resolve to ``"hi"``.
    """
    if not tag:
        return None
    tag = tag.strip().lower().replace("_", "-")
    supported = available_languages()
    if tag in supported:
        return tag
    base = tag.split("-", 1)[0]
    return base if base in supported else None


@lru_cache(maxsize=8)
def _catalog(lang: str) -> dict[str, str]:
    path = LOCALES_DIR / lang / "messages.json"
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def translate(lang: str | None, key: str, **params: object) -> str:
    """Render *key* in *lang*, interpolating ``{name}`` placeholders.

    Unknown languages and keys missing from a regional catalog read the
    English text. A key missing everywhere comes back unchanged.
    """
    resolved = resolve_language(lang) or DEFAULT_LANGUAGE
    text = _catalog(resolved).get(key)
    if text is None and resolved != DEFAULT_LANGUAGE:
        text = _catalog(DEFAULT_LANGUAGE).get(key)
    if text is None:
        logger.warning("No message for key %s", key)
        return key
    if not params:
        return text
    try:
        return text.format(**params)
    except KeyError as exc:
        logger.warning("Message %s is missing placeholder %s", key, exc)
        return text
