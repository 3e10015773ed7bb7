"""Pure helpers for service tickets and session cookies."""
from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional
from urllib.parse import parse_qs, urlsplit

TICKET_PARAMETER = "ticket"
TICKET_PREFIXES = ("ST-", "PT-")


def extract_ticket(url: str, parameter: str = TICKET_PARAMETER) -> Optional[str]:
    """Return the ticket query parameter of ``url``, or None if absent or empty."""
    query = urlsplit(url).query
    values = parse_qs(query, keep_blank_values=True).get(parameter)
    if not values:
        return None
    ticket = values[0].strip()
    return ticket or None


def looks_like_ticket(value: Optional[str]) -> bool:
    """True for service and proxy tickets issued by the server."""
    return bool(value) and value.startswith(TICKET_PREFIXES)


def find_cookie(cookies: Iterable[Mapping[str, Any]], name: str) -> Optional[Mapping[str, Any]]:
    for cookie in cookies:
        if cookie.get("name") == name:
            return cookie
    return None
