"""
Collaborators the session talks to, and their HTTP implementation.
"""
from typing import Optional, Protocol

import httpx

from domain_admin.core import config
from domain_admin.core.errors import AccountDisabled, InvalidCredentials, Unauthorized
from domain_admin.features.auth.schemas import UserInfo
from domain_admin.utils import get_logger


log = get_logger(__name__)


class CredentialClient(Protocol):
    async def authenticate(self, username: str, password: str) -> str:
        """Return a session token, or raise InvalidCredentials / AccountDisabled."""
        ...


class ProfileClient(Protocol):
    async def fetch_profile(self, token: str) -> UserInfo:
        """Return the token owner's profile, or raise Unauthorized."""
        ...


def _error_body(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class ApiClient:
    """
    Credential and profile collaborator over the admin HTTP API.

    Pass ``transport`` to talk to an in-process app (httpx.ASGITransport).
    """

    def __init__(
        self,
        base_url: str = config.API_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def authenticate(self, username: str, password: str) -> str:
        response = await self._http.post("/auth/login", json={"username": username, "password": password})
        if response.status_code != 200:
            self._raise(response)
        return response.json()["token"]

    async def fetch_profile(self, token: str) -> UserInfo:
        response = await self._http.get("/auth/profile", headers={"Authorization": f"Bearer {token}"})
        if response.status_code != 200:
            self._raise(response)
        return UserInfo.model_validate(response.json())

    def _raise(self, response: httpx.Response) -> None:
        body = _error_body(response)
        code = body.get("error")
        detail = body.get("detail") if isinstance(body.get("detail"), str) else None
        log.debug("%s %s -> %s %s", response.request.method, response.request.url.path, response.status_code, code)
        if code == InvalidCredentials.code:
            raise InvalidCredentials(detail)
        if code == AccountDisabled.code:
            raise AccountDisabled(detail)
        if response.status_code == 401:
            raise Unauthorized(detail)
        response.raise_for_status()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
