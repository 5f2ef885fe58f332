"""Response error extraction for load test observability.

Parses gateway error responses into human-readable messages. Every error
body has the shape ``{"success": false, "message": "...", "error": ...}``
where ``error`` is a string, a field map for validation failures, or the
upstream WooCommerce payload.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response


def extract_error_detail(response: Response) -> str:
    """Extract a human-readable error message from a gateway error response.

    Returns a compact string suitable for Locust failure messages and log lines.
    Gracefully handles unparseable bodies and missing fields.
    """
    try:
        body = response.json()
    except ValueError:
        # Not JSON: return raw text, truncated
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if not isinstance(body, dict):
        return str(body)[:300]

    message = body.get("message", "")
    error = body.get("error")
    if isinstance(error, dict):
        # Upstream payloads carry their own message; validation errors are field maps
        detail = error.get("message") or " | ".join(f"{k}: {v}" for k, v in error.items())
    else:
        detail = error

    if message and detail:
        return f"{message} ({detail})"[:300]
    return str(message or detail or body)[:300]
