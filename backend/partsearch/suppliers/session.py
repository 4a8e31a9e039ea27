"""Per-supplier authentication session cache.

Every adapter that needs to log in owns exactly one SessionCache. The cache
holds at most one session (a bearer token, a customer id or a cookie header)
together with its expiry, and knows how to obtain a fresh one through the
login coroutine the adapter hands it.

No lock is taken: two concurrent searches that both miss the
cache will both log in, and the last successful login wins. Both callers
still receive a usable session.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

import structlog

from partsearch.core.exceptions import UpstreamAuthError


logger = structlog.get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SessionState:
    """A cached authentication artifact for one supplier."""

    token: Optional[str]
    issued_at: datetime
    expires_at: Optional[datetime] = None
    credential: Optional[str] = None  # Login name the session belongs to

    def is_valid(self, now: datetime, safety_margin: timedelta = timedelta(0)) -> bool:
        """Check whether the session can still be used.

        Args:
            now: Current time (timezone-aware)
            safety_margin: Time before expiry at which the session is retired

        Returns:
            True if a token is present and the expiry (minus margin) is in the future
        """
        if not self.token:
            return False
        if self.expires_at is None:
            return True
        return now < self.expires_at - safety_margin


LoginCallable = Callable[[], Awaitable[SessionState]]


class SessionCache:
    """Expiry-tagged session storage with an attached login routine."""

    def __init__(
        self,
        supplier_id: str,
        login: LoginCallable,
        safety_margin: timedelta = timedelta(0),
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the cache.

        Args:
            supplier_id: Stable supplier tag used in logs and errors
            login: Coroutine function performing the upstream login
            safety_margin: Retire sessions this long before their declared expiry
            clock: Time source, overridable in tests
        """
        self.supplier_id = supplier_id
        self.safety_margin = safety_margin
        self._login = login
        self._clock = clock
        self._state: Optional[SessionState] = None
        self.login_count = 0
        self.logger = logger.bind(supplier=supplier_id)

    def get_valid(self) -> Optional[SessionState]:
        """Return the cached session if it is still valid, else None."""
        state = self._state
        if state is not None and state.is_valid(self._clock(), self.safety_margin):
            return state
        return None

    @property
    def is_valid(self) -> bool:
        return self.get_valid() is not None

    async def login(self) -> SessionState:
        """Run the upstream login and store the resulting session.

        Returns:
            The freshly stored SessionState

        Raises:
            UpstreamAuthError: If login fails or returns no token
        """
        self.login_count += 1
        self.logger.info("session_login_started", attempt=self.login_count)
        state = await self._login()
        if state is None or not state.token:
            raise UpstreamAuthError(self.supplier_id, "login returned no session")

        self._state = state
        self.logger.info(
            "session_login_succeeded",
            expires_at=state.expires_at.isoformat() if state.expires_at else None,
        )
        return state

    async def ensure(self) -> SessionState:
        """Return the cached session, logging in first if there is none."""
        state = self.get_valid()
        if state is not None:
            self.logger.debug("session_cache_hit")
            return state
        return await self.login()

    def invalidate(self) -> None:
        """Drop the cached session so the next ensure() logs in again."""
        if self._state is not None:
            self.logger.info("session_invalidated")
        self._state = None

    def new_state(
        self,
        token: str,
        ttl: Optional[timedelta] = None,
        credential: Optional[str] = None,
    ) -> SessionState:
        """Build a SessionState stamped with this cache's clock.

        Args:
            token: Token, customer id or cookie header
            ttl: Lifetime from now, or None for no expiry
            credential: Login name the session belongs to

        Returns:
            SessionState (not yet stored)
        """
        now = self._clock()
        return SessionState(
            token=token,
            issued_at=now,
            expires_at=now + ttl if ttl is not None else None,
            credential=credential,
        )
