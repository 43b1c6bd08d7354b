"""Accept-Language negotiation."""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from kamdon.app.core.i18n import DEFAULT_LANGUAGE, resolve_language


class LanguageMiddleware(BaseHTTPMiddleware):
    """Pick the insight language from ``Accept-Language``.

    The choice lands on ``request.state.language`` and is echoed back in
    ``Content-Language``.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        language = negotiate_language(request.headers.get("Accept-Language", ""))
        request.state.language = language

        response = await call_next(request)
        response.headers["Content-Language"] = language
        return response


def _quality(params: list[str]) -> float:
    for param in params:
        name, _, value = param.strip().partition("=")
        if name.strip().lower() == "q":
            try:
                return max(0.0, min(1.0, float(value)))
            except ValueError:
                return 0.0
    return 1.0


def negotiate_language(header: str) -> str:
    """Return the highest-quality supported language in *header*.

    Ties keep header order. ``q=0`` rules a language out and ``*`` stands
    for the default language.
    """
    ranked: list[tuple[float, int, str]] = []
    for position, part in enumerate(header.split(",")):
        tag, *params = part.split(";")
        tag = tag.strip()
        if not tag:
            continue
        quality = _quality(params)
        if quality <= 0:
            continue
        language = DEFAULT_LANGUAGE if tag == "*" else resolve_language(tag)
        if language is not None:
            ranked.append((-quality, position, language))
    return min(ranked)[2] if ranked else DEFAULT_LANGUAGE
