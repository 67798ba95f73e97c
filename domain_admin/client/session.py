"""
Client session: the token, the lazily fetched profile, and the state
machine between them.

    ANONYMOUS --login--> TOKEN_ONLY --ensure_profile--> AUTHENTICATED
        ^                    |                               |
        +--- fetch failed ---+------------- logout ----------+

A SessionManager is owned by one client context and passed to whatever needs
it (the navigation guard, UI gating); there is no module-level session.
"""
import asyncio
from enum import Enum
from typing import Optional

from domain_admin.client.collaborators import CredentialClient, ProfileClient
from domain_admin.client.token_store import MemoryTokenStore, TokenStore
from domain_admin.features.auth.schemas import UserInfo
from domain_admin.utils import get_logger


log = get_logger(__name__)


class SessionState(Enum):
    ANONYMOUS = "anonymous"
    TOKEN_ONLY = "token_only"
    AUTHENTICATED = "authenticated"


class SessionManager:

    def __init__(
        self,
        credentials: CredentialClient,
        profiles: ProfileClient,
        store: Optional[TokenStore] = None,
    ):
        self._credentials = credentials
        self._profiles = profiles
        self._store = store if store is not None else MemoryTokenStore()
        self._lock = asyncio.Lock()
        # Bumped whenever the token is replaced or dropped; a fetch started
        # under an older generation must not write its result.
        self._generation = 0
        self._inflight: Optional[asyncio.Task] = None
        self._inflight_generation = 0

        self._token: Optional[str] = self._store.get()
        self._profile: Optional[UserInfo] = None
        log.debug("Session cold start: %s", self.state.value)

    @property
    def state(self) -> SessionState:
        if self._token is None:
            return SessionState.ANONYMOUS
        if self._profile is None:
            return SessionState.TOKEN_ONLY
        return SessionState.AUTHENTICATED

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def profile(self) -> Optional[UserInfo]:
        return self._profile

    def can(self, permission: str) -> bool:
        """True if the hydrated profile grants ``permission``; False before hydration."""
        return self._profile is not None and self._profile.can(permission)

    async def login(self, username: str, password: str) -> SessionState:
        """
        Authenticate and keep the token; the profile is fetched on first need.

        InvalidCredentials and AccountDisabled propagate and leave the
        session anonymous.
        """
        async with self._lock:
            self._clear()
            token = await self._credentials.authenticate(username, password)
            self._token = token
            self._store.set(token)
            log.info("Signed in as %s", username)
            return self.state

    async def ensure_profile(self) -> SessionState:
        """
        Hydrate the profile if only the token is known.

        Never raises for a failed fetch: the session drops to ANONYMOUS and
        the caller reads that from the returned state. Concurrent callers
        wait on the same fetch, and cancelling a caller does not cancel it.
        """
        # A fetch finishing for a replaced token leaves the new token still
        # TOKEN_ONLY, so go round again with a fetch of our own.
        while self.state is SessionState.TOKEN_ONLY:
            task = self._inflight
            if task is None or task.done() or self._inflight_generation != self._generation:
                task = asyncio.get_running_loop().create_task(
                    self._hydrate(self._token, self._generation)
                )
                self._inflight = task
                self._inflight_generation = self._generation
            await asyncio.shield(task)
        return self.state

    async def refresh_profile(self) -> SessionState:
        """Drop the cached profile and fetch it again, picking up role changes."""
        async with self._lock:
            if self._token is not None:
                self._profile = None
        return await self.ensure_profile()

    async def logout(self) -> SessionState:
        async with self._lock:
            if self._token is not None:
                log.info("Signed out")
            self._clear()
            return self.state

    async def _hydrate(self, token: str, generation: int) -> None:
        try:
            profile: Optional[UserInfo]
            try:
                profile = await self._profiles.fetch_profile(token)
            except Exception as exc:
                log.warning("Profile fetch failed, signing out: %s", exc)
                profile = None

            async with self._lock:
                if generation != self._generation:
                    log.debug("Discarding profile fetched for a replaced session")
                    return
                if profile is None:
                    self._clear()
                else:
                    self._profile = profile
                    log.debug("Profile hydrated for %s (%s)", profile.username, profile.role)
        finally:
            if self._inflight is asyncio.current_task():
                self._inflight = None

    def _clear(self) -> None:
        self._generation += 1
        self._token = None
        self._profile = None
        self._store.clear()
