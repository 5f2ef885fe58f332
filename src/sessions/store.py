"""Session registry: maps a client-supplied session id to its upstream state.

Each session holds the Store-Cart cookie jar, the last nonce the Store API
handed out, and at most one upstream order id bound at checkout.

``SessionStore`` is the interface the rest of the gateway depends on. The
in-memory implementation is the default and the one used in tests: it lives
in a single process, is lost on restart and is not shared between workers.
A TTL-capable key-value store should back it in a multi-process deployment.

No locks are taken. Concurrent requests for *different* sessions never touch
the same entry; concurrent requests for the *same* session may interleave
between a read and the following write, so one of two simultaneous cookie
merges can lose its contribution. The Store API re-sends its cookies on
later responses, which makes that loss recoverable.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta

import structlog

from upstream.cookies import merge_cookies, render_cookie_header

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class SessionState:
    session_id: str
    created_at: datetime
    cookies: dict[str, str] = field(default_factory=dict)
    nonce: str | None = None
    order_id: int | None = None

    @property
    def cookie_header(self) -> str:
        return render_cookie_header(self.cookies)

    @property
    def has_cookies(self) -> bool:
        return bool(self.cookies)


class SessionStore(ABC):
    """Key-value contract for per-session gateway state."""

    @abstractmethod
    async def get(self, session_id: str) -> SessionState | None:
        ...

    @abstractmethod
    async def get_or_create(self, session_id: str) -> SessionState:
        """Return the session, creating an empty one on first sight."""
        ...

    @abstractmethod
    async def merge_cookies(self, session_id: str, cookies: Mapping[str, str | None]) -> SessionState:
        """Merge ``cookies`` into the stored jar by name.

        Earlier cookies are kept unless ``cookies`` expires them (a ``None`` value).
        """
        ...

    @abstractmethod
    async def set_nonce(self, session_id: str, nonce: str) -> None:
        ...

    @abstractmethod
    async def bind_order(self, session_id: str, order_id: int) -> int:
        """Bind ``order_id`` unless an order is already bound; return the bound id."""
        ...

    @abstractmethod
    async def bound_order(self, session_id: str) -> int | None:
        ...

    @abstractmethod
    async def unbind(self, session_id: str) -> None:
        ...

    @abstractmethod
    async def destroy(self, session_id: str) -> None:
        ...

    @abstractmethod
    async def expire_older_than(self, age: timedelta) -> int:
        """Drop every session created more than ``age`` ago; return how many went."""
        ...


class InMemorySessionStore(SessionStore):
    """Process-local, non-durable ``SessionStore``."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._sessions: dict[str, SessionState] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    @staticmethod
    def _snapshot(state: SessionState) -> SessionState:
        return replace(state, cookies=dict(state.cookies))

    def _entry(self, session_id: str) -> SessionState:
        state = self._sessions.get(session_id)
        if state is None:
            state = SessionState(session_id=session_id, created_at=self._clock())
            self._sessions[session_id] = state
            logger.debug("Session created", session_id=session_id)
        return state

    async def get(self, session_id: str) -> SessionState | None:
        state = self._sessions.get(session_id)
        return self._snapshot(state) if state else None

    async def get_or_create(self, session_id: str) -> SessionState:
        return self._snapshot(self._entry(session_id))

    async def merge_cookies(self, session_id: str, cookies: Mapping[str, str | None]) -> SessionState:
        state = self._entry(session_id)
        if cookies:
            state.cookies = merge_cookies(state.cookies, cookies)
            logger.debug("Session cookies merged", session_id=session_id, cookie_names=sorted(state.cookies))
        return self._snapshot(state)

    async def set_nonce(self, session_id: str, nonce: str) -> None:
        self._entry(session_id).nonce = nonce

    async def bind_order(self, session_id: str, order_id: int) -> int:
        state = self._entry(session_id)
        if state.order_id is None:
            state.order_id = order_id
            logger.info("Order bound to session", session_id=session_id, order_id=order_id)
        return state.order_id

    async def bound_order(self, session_id: str) -> int | None:
        state = self._sessions.get(session_id)
        return state.order_id if state else None

    async def unbind(self, session_id: str) -> None:
        state = self._sessions.get(session_id)
        if state is not None:
            state.order_id = None

    async def destroy(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is not None:
            logger.info("Session destroyed", session_id=session_id)

    async def expire_older_than(self, age: timedelta) -> int:
        cutoff = self._clock() - age
        expired = [sid for sid, state in self._sessions.items() if state.created_at <= cutoff]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info("Expired sessions swept", expired_count=len(expired), cutoff=cutoff.isoformat())
        return len(expired)
