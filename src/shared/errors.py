"""Gateway error taxonomy.

Every error the gateway raises on purpose derives from ``GatewayError`` and
knows the HTTP status it maps to. The handlers registered in ``app.py`` turn
them into ``{"success": false, "message": ..., "error": ...}`` bodies.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


class GatewayError(Exception):
    """Base class for errors rendered at the handler boundary."""

    status_code = 500

    def __init__(self, message: str, error: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.error = error

    def to_dict(self) -> dict:
        body = {"success": False, "message": self.message}
        if self.error is not None:
            body["error"] = self.error
        return body


class ValidationError(GatewayError):
    """A required field is missing or malformed (400)."""

    status_code = 400

    def __init__(self, errors: dict[str, str] | str, message: str | None = None) -> None:
        if isinstance(errors, str):
            errors = {"request": errors}
        if message is None:
            message = "; ".join(f"{field}: {msg}" for field, msg in errors.items())
        super().__init__(message, error=errors)
        self.errors = errors


class AuthenticationError(GatewayError):
    """Missing, invalid or expired bearer token on an identity-sensitive path (401)."""

    status_code = 401


class ForbiddenError(GatewayError):
    status_code = 403


class NotFoundError(GatewayError):
    """Referenced cart item or order is absent (404)."""

    status_code = 404


class PaymentDeclinedError(GatewayError):
    status_code = 402


class UpstreamError(GatewayError):
    """Failure reported by the Commerce or Store-Cart API.

    ``upstream_status`` is the status the upstream answered with (``None`` for
    transport failures). When ``proxied`` is set the gateway answers with that
    same status, otherwise with a plain 500. The upstream body travels in
    ``payload`` for diagnostics.
    """

    def __init__(
        self,
        message: str,
        upstream_status: int | None = None,
        payload: Any = None,
        proxied: bool = False,
    ) -> None:
        super().__init__(message, error=payload)
        self.upstream_status = upstream_status
        self.payload = payload
        self.proxied = proxied

    @property
    def status_code(self) -> int:  # type: ignore[override]
        if self.proxied and self.upstream_status and self.upstream_status >= 400:
            return self.upstream_status
        return 500

    @property
    def is_not_found(self) -> bool:
        return self.upstream_status == 404


@contextmanager
def upstream_operation(message: str) -> Iterator[None]:
    """Re-raise any ``UpstreamError`` under an operation-level message.

    The upstream status, payload and proxy flag are preserved so the
    diagnostic detail still reaches the response and the logs.
    """
    try:
        yield
    except UpstreamError as exc:
        raise UpstreamError(
            message,
            upstream_status=exc.upstream_status,
            payload=exc.payload,
            proxied=exc.proxied,
        ) from exc
