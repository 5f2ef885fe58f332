"""Cookie jar helpers for the Store-Cart API session affinity.

The Store API identifies a guest cart through cookies it sets over several
responses, each response carrying only some of them. The gateway keeps the
jar as a plain ``name -> value`` mapping so any key-value store can hold it.

A cookie the upstream expires (``Max-Age=0`` or an ``Expires`` date in the
past) parses to ``None`` and is removed from the jar on merge.
"""

from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _is_expired(attributes: Iterable[str], now: datetime) -> bool:
    max_age: int | None = None
    expires: datetime | None = None
    for attribute in attributes:
        key, _, value = attribute.partition("=")
        key = key.strip().lower()
        if key == "max-age":
            try:
                max_age = int(value.strip())
            except ValueError:
                continue
        elif key == "expires":
            try:
                expires = parsedate_to_datetime(value.strip())
            except (TypeError, ValueError):
                continue
            if expires.tzinfo is None:
                expires = expires.replace(tzinfo=UTC)

    # Max-Age wins over Expires when both are present
    if max_age is not None:
        return max_age <= 0
    return expires is not None and expires <= now


def parse_set_cookie(
    headers: Iterable[str],
    clock: Callable[[], datetime] = _utcnow,
) -> dict[str, str | None]:
    """Reduce raw ``Set-Cookie`` header values to their name/value pairs.

    Attributes (``Path``, ``HttpOnly`` ...) are dropped once read; a cookie
    the header expires maps to ``None``. A header without a ``name=value``
    first segment is ignored.
    """
    now = clock()
    cookies: dict[str, str | None] = {}
    for header in headers:
        first, *attributes = header.split(";")
        name, sep, value = first.partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        cookies[name] = None if _is_expired(attributes, now) else value.strip()
    return cookies


def parse_cookie_header(header: str | None) -> dict[str, str]:
    """Parse a request ``Cookie`` header (``a=1; b=2``)."""
    if not header:
        return {}
    cookies: dict[str, str] = {}
    for part in header.split(";"):
        name, sep, value = part.partition("=")
        name = name.strip()
        if sep and name:
            cookies[name] = value.strip()
    return cookies


def merge_cookies(existing: Mapping[str, str], incoming: Mapping[str, str | None]) -> dict[str, str]:
    """Merge ``incoming`` over ``existing`` by cookie name.

    Names absent from ``incoming`` are kept; a ``None`` value removes the name.
    """
    merged = dict(existing)
    for name, value in incoming.items():
        if value is None:
            merged.pop(name, None)
        else:
            merged[name] = value
    return merged


def render_cookie_header(cookies: Mapping[str, str]) -> str:
    return "; ".join(f"{name}={value}" for name, value in cookies.items())
