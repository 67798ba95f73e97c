"""
Navigation guard for the admin console.

Every page transition asks the guard first. The guard reads the session
state, hydrating the profile when only the token is known, and answers
ALLOW, REDIRECT_LOGIN or REDIRECT_HOME. It never raises.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from domain_admin.client.session import SessionManager, SessionState
from domain_admin.utils import get_logger


log = get_logger(__name__)

LOGIN_PATH = "/login"
HOME_PATH = "/"
MAX_REDIRECTS = 5


class Decision(Enum):
    ALLOW = "allow"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_HOME = "redirect_home"


@dataclass(frozen=True)
class RouteMeta:
    path: str
    name: str
    title: Optional[str] = None
    # None means protected
    requires_auth: Optional[bool] = None
    redirect: Optional[str] = None

    @property
    def protected(self) -> bool:
        return self.requires_auth is not False


ROUTES: Dict[str, RouteMeta] = {
    route.path: route
    for route in (
        RouteMeta("/login", "Login", "Sign in", requires_auth=False),
        RouteMeta("/", "Layout", requires_auth=True, redirect="/dashboard"),
        RouteMeta("/dashboard", "Dashboard", "Dashboard"),
        RouteMeta("/system", "System", "System", redirect="/system/users"),
        RouteMeta("/system/users", "Users", "Users"),
        RouteMeta("/system/roles", "Roles", "Roles"),
        RouteMeta("/system/permissions", "Permissions", "Permissions"),
        RouteMeta("/profile", "Profile", "Profile"),
    )
}

NOT_FOUND = RouteMeta("/:pathMatch(.*)*", "NotFound", "Not found")


def resolve_route(path: str) -> RouteMeta:
    """Look up the route for ``path``; query string and trailing slash are ignored."""
    path = path.split("?", 1)[0].split("#", 1)[0]
    if len(path) > 1:
        path = path.rstrip("/")
    return ROUTES.get(path or "/", NOT_FOUND)


class NavigationGuard:

    def __init__(self, session: SessionManager, login_path: str = LOGIN_PATH, home_path: str = HOME_PATH):
        self.session = session
        self.login_path = login_path
        self.home_path = home_path

    async def decide(self, target: RouteMeta) -> Decision:
        state = self.session.state

        if not target.protected:
            if target.path == self.login_path and state is not SessionState.ANONYMOUS:
                return Decision.REDIRECT_HOME
            return Decision.ALLOW

        if state is SessionState.ANONYMOUS:
            return Decision.REDIRECT_LOGIN

        if state is SessionState.TOKEN_ONLY:
            state = await self.session.ensure_profile()
            if state is SessionState.AUTHENTICATED:
                return Decision.ALLOW
            # Expired tokens land on the login page without an error
            return Decision.REDIRECT_LOGIN

        return Decision.ALLOW


@dataclass(frozen=True)
class NavigationResult:
    requested: str
    decision: Decision
    # Where the navigator ended up; None when a newer navigation won
    path: Optional[str]

    @property
    def superseded(self) -> bool:
        return self.path is None


class Navigator:
    """
    Runs transitions through the guard, one decision at a time.

    A navigation started while an earlier one is still waiting on the guard
    supersedes it: the earlier decision is disregarded when it arrives, but
    the profile fetch it triggered still completes for the session.
    """

    def __init__(self, guard: NavigationGuard, current: Optional[str] = None):
        self.guard = guard
        self.current = current
        self._sequence = 0

    async def navigate(self, path: str) -> NavigationResult:
        self._sequence += 1
        ticket = self._sequence

        first: Optional[Decision] = None
        location = path
        for _ in range(MAX_REDIRECTS):
            target = resolve_route(location)
            decision = await self.guard.decide(target)
            if ticket != self._sequence:
                log.debug("Navigation to %s superseded", path)
                return NavigationResult(path, decision, None)
            if first is None:
                first = decision

            if decision is Decision.REDIRECT_LOGIN:
                location = self.guard.login_path
            elif decision is Decision.REDIRECT_HOME:
                location = self.guard.home_path
            elif target.redirect:
                location = target.redirect
            else:
                break
        else:
            log.warning("Too many redirects navigating to %s", path)

        self.current = location
        return NavigationResult(path, first, location)
