import itertools
import logging
from collections.abc import Callable
from typing import Any, Optional

import httpx

from outstocked.gateway.errors import AuthServiceError, error_message
from outstocked.gateway.session_store import MemorySessionStore
from outstocked.schemas.auth import AuthEvent, AuthUser, Session

logger = logging.getLogger(__name__)

AuthCallback = Callable[[AuthEvent, Optional[Session]], None]


class Subscription:
    """Handle returned by ``on_auth_state_change``."""

    def __init__(self, client: "AuthClient", key: int):
        self._client = client
        self._key = key

    @property
    def active(self) -> bool:
        return self._key in self._client._listeners

    def unsubscribe(self) -> None:
        self._client._listeners.pop(self._key, None)


class _GoTrueClient:
    """Shared HTTP plumbing for the hosted auth service (``/auth/v1``)."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = f"{base_url.rstrip('/')}/auth/v1"
        self.api_key = api_key
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    def _headers(self, token: Optional[str] = None) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token or self.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        try:
            response = await self._http.request(
                method,
                f"{self.base_url}{path}",
                headers=self._headers(token),
                json=json,
                params=params,
            )
        except httpx.HTTPError as e:
            logger.error("Auth service request %s %s failed: %s", method, path, e)
            raise AuthServiceError(f"Failed to contact auth service: {e}") from e

        if response.status_code >= 400:
            raise AuthServiceError(error_message(response), response.status_code)

        if not response.content:
            return {}
        return response.json()

    async def aclose(self) -> None:
        await self._http.aclose()


class AuthClient(_GoTrueClient):
    """Client side of the auth service contract.

    Holds the current session, persists it through a session store and
    notifies subscribers of sign-in, sign-out and token refresh.
    """

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        store=None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(base_url, anon_key, timeout=timeout, transport=transport)
        self.store = store if store is not None else MemorySessionStore()
        self._session: Optional[Session] = None
        self._listeners: dict[int, AuthCallback] = {}
        self._keys = itertools.count()

    @property
    def access_token(self) -> Optional[str]:
        return self._session.access_token if self._session else None

    # Subscriptions

    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        key = next(self._keys)
        self._listeners[key] = callback
        return Subscription(self, key)

    def _emit(self, event: AuthEvent, session: Optional[Session]) -> None:
        logger.debug("Auth event: %s", event.value)
        for callback in list(self._listeners.values()):
            try:
                callback(event, session)
            except Exception:
                logger.exception("Auth state listener failed on %s", event.value)

    def _set_session(self, session: Optional[Session]) -> None:
        self._session = session
        if session is None:
            self.store.clear()
        else:
            self.store.save(session)

    # Session

    async def get_session(self) -> Optional[Session]:
        """Return the persisted session, refreshing it first if it has expired."""
        if self._session is None:
            self._session = self.store.load()
        if self._session is None:
            return None

        if self._session.is_expired():
            try:
                return await self.refresh_session()
            except AuthServiceError:
                self._set_session(None)
                raise
        return self._session

    async def refresh_session(self, refresh_token: Optional[str] = None) -> Session:
        token = refresh_token or (self._session.refresh_token if self._session else None)
        if not token:
            raise AuthServiceError("Auth session missing!")

        data = await self._request(
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": token},
        )
        session = Session.model_validate(data)
        self._set_session(session)
        self._emit(AuthEvent.TOKEN_REFRESHED, session)
        return session

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        data = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        session = Session.model_validate(data)
        self._set_session(session)
        self._emit(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_up(
        self, email: str, password: str, data: Optional[dict[str, Any]] = None
    ) -> Optional[Session]:
        """
        Register a new identity.
        Returns the session when the service signs the user straight in, None
        when e-mail confirmation is still pending.
        """
        body = await self._request(
            "POST",
            "/signup",
            json={"email": email, "password": password, "data": data or {}},
        )
        if "access_token" not in body:
            return None

        session = Session.model_validate(body)
        self._set_session(session)
        self._emit(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_out(self) -> None:
        token = self.access_token
        try:
            if token:
                await self._request("POST", "/logout", token=token)
        except AuthServiceError as e:
            # The local session is dropped regardless
            logger.warning("Remote sign-out failed: %s", e.message)
        finally:
            self._set_session(None)
            self._emit(AuthEvent.SIGNED_OUT, None)

    async def get_user(self, access_token: Optional[str] = None) -> Optional[AuthUser]:
        token = access_token or self.access_token
        if not token:
            return None
        data = await self._request("GET", "/user", token=token)
        return AuthUser.model_validate(data)

    async def update_user(
        self, password: Optional[str] = None, data: Optional[dict[str, Any]] = None
    ) -> AuthUser:
        token = self.access_token
        if not token:
            raise AuthServiceError("Auth session missing!")

        body: dict[str, Any] = {}
        if password is not None:
            body["password"] = password
        if data is not None:
            body["data"] = data

        user = AuthUser.model_validate(await self._request("PUT", "/user", token=token, json=body))
        if self._session is not None:
            self._session = self._session.model_copy(update={"user": user})
            self.store.save(self._session)
            self._emit(AuthEvent.USER_UPDATED, self._session)
        return user

    async def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        await self._request("POST", "/recover", json={"email": email}, params=params)


class AuthAdminClient(_GoTrueClient):
    """Server side of the auth service contract, authenticated with the service role key."""

    async def get_user(self, access_token: str) -> AuthUser:
        data = await self._request("GET", "/user", token=access_token)
        return AuthUser.model_validate(data)

    async def invite_user_by_email(
        self,
        email: str,
        data: Optional[dict[str, Any]] = None,
        redirect_to: Optional[str] = None,
    ) -> AuthUser:
        params = {"redirect_to": redirect_to} if redirect_to else None
        body = await self._request(
            "POST",
            "/invite",
            json={"email": email, "data": data or {}},
            params=params,
        )
        return AuthUser.model_validate(body)
