import asyncio
import logging
from typing import Any, Optional
from uuid import UUID

from outstocked.client.auth_state import (
    AuthState,
    AuthStore,
    InitializationForced,
    PasswordSetupCleared,
    PasswordSetupRequired,
    ProfileResolved,
    SessionRestored,
    SignedIn,
    SignedOut,
)
from outstocked.client.errors import NotAuthenticatedError, PasswordSetupError
from outstocked.client.metadata import NoMetadata, decode_metadata
from outstocked.client.profile_loader import (
    PROFILES_TABLE,
    NeedsPasswordSetup,
    ProfileLoader,
    ProfileOutcome,
    Resolved,
    profile_row_for,
)
from outstocked.client.validation import validate_credentials, validate_password_setup
from outstocked.config import get_settings
from outstocked.gateway.errors import DatabaseError, ServiceError
from outstocked.schemas.auth import AuthEvent, Session

logger = logging.getLogger(__name__)


class AuthProvider:
    """
    Session bootstrap, auth event listener and profile loading for one client.

    ``start()`` fetches the persisted session in the background, arms a
    safety timer that forces ``initialized`` if the fetch hangs, and
    subscribes to auth events. Profile loading always runs as a separate
    task, so consumers can observe "signed in, profile pending".

    Usage::

        async with AuthProvider(backend.auth, backend.db) as provider:
            await provider.wait_until_initialized()
            ...
    """

    def __init__(
        self,
        auth,
        db,
        store: Optional[AuthStore] = None,
        init_timeout: Optional[float] = None,
        site_url: Optional[str] = None,
    ):
        settings = get_settings()
        self.auth = auth
        self.db = db
        self.store = store or AuthStore()
        self.loader = ProfileLoader(auth, db)
        self.init_timeout = settings.auth_init_timeout if init_timeout is None else init_timeout
        self.site_url = site_url or settings.site_url

        self._subscription = None
        self._bootstrap_task: Optional[asyncio.Task] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: set[asyncio.Task] = set()
        self._initialized: Optional[asyncio.Event] = None
        self._started = False
        self._closed = False

    # State accessors

    @property
    def state(self) -> AuthState:
        return self.store.state

    @property
    def is_admin(self) -> bool:
        return self.store.state.is_admin

    @property
    def initialized(self) -> bool:
        return self.store.state.initialized

    @property
    def needs_password_setup(self) -> bool:
        return self.store.state.needs_password_setup

    # Lifecycle

    async def __aenter__(self) -> "AuthProvider":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def start(self) -> None:
        if self._started:
            raise RuntimeError("AuthProvider has already been started")
        self._started = True

        loop = asyncio.get_running_loop()
        self._initialized = asyncio.Event()
        if self.store.state.initialized:
            self._initialized.set()

        self._bootstrap_task = loop.create_task(self._initialize(self.store.version))
        self._timer = loop.call_later(self.init_timeout, self._force_initialized)
        self._subscription = self.auth.on_auth_state_change(self._on_auth_event)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._cancel_timer()

        pending = [t for t in (self._bootstrap_task, *self._tasks) if t and not t.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def wait_until_initialized(self, timeout: Optional[float] = None) -> AuthState:
        if self._initialized is None:
            raise RuntimeError("AuthProvider has not been started")
        await asyncio.wait_for(self._initialized.wait(), timeout)
        return self.store.state

    async def wait_idle(self) -> AuthState:
        """Wait for the session fetch and every scheduled profile load to finish."""
        while True:
            pending = [t for t in (self._bootstrap_task, *self._tasks) if t and not t.done()]
            if not pending:
                return self.store.state
            await asyncio.gather(*pending, return_exceptions=True)

    # Internals

    def _dispatch(self, action, expected_version: Optional[int] = None) -> bool:
        if self._closed:
            return False
        applied = self.store.dispatch(action, expected_version=expected_version)
        if self._initialized is not None and self.store.state.initialized:
            self._initialized.set()
        return applied

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _initialize(self, version: int) -> None:
        session: Optional[Session] = None
        try:
            session = await self.auth.get_session()
        except Exception as e:
            logger.error("Auth initialization error: %s", e)
        finally:
            self._cancel_timer()

        if self._dispatch(SessionRestored(session), expected_version=version):
            if session is not None:
                logger.info("Restored session for %s", session.user.id)
                self._schedule_profile_load(session.user.id)
        else:
            logger.debug("Session fetch finished after state moved on; result discarded")

    def _force_initialized(self) -> None:
        self._timer = None
        if self._bootstrap_task is not None and not self._bootstrap_task.done():
            logger.warning(
                "Session fetch did not finish within %.1fs; continuing without it",
                self.init_timeout,
            )
            self._bootstrap_task.cancel()
        if not self.store.state.initialized:
            self._dispatch(InitializationForced())

    def _on_auth_event(self, event: AuthEvent, session: Optional[Session]) -> None:
        if self._closed:
            return
        logger.info("Auth event: %s", event.value)

        if event in (AuthEvent.SIGNED_IN, AuthEvent.TOKEN_REFRESHED):
            if session is not None:
                self._dispatch(SignedIn(session))
                self._schedule_profile_load(session.user.id)
        elif event == AuthEvent.SIGNED_OUT:
            self._dispatch(SignedOut())

    def _schedule_profile_load(self, user_id: UUID) -> None:
        task = asyncio.get_running_loop().create_task(
            self.load_profile(user_id, expected_version=self.store.version)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # Profile loading

    async def load_profile(
        self, user_id: UUID, expected_version: Optional[int] = None
    ) -> Optional[ProfileOutcome]:
        try:
            outcome = await self.loader.load(user_id)
        except Exception:
            logger.exception("Error loading profile for %s", user_id)
            return None

        if isinstance(outcome, Resolved):
            self._dispatch(
                ProfileResolved(outcome.profile, outcome.organization),
                expected_version=expected_version,
            )
        elif isinstance(outcome, NeedsPasswordSetup):
            self._dispatch(PasswordSetupRequired(), expected_version=expected_version)
        else:
            logger.info("Profile for %s left unresolved: %s", user_id, outcome.reason)
        return outcome

    async def refresh_profile(self) -> None:
        user = self.store.state.user
        if user is not None:
            await self.load_profile(user.id, expected_version=self.store.version)

    # Auth actions. Service errors propagate so the caller can show them.

    async def sign_in(self, email: str, password: str) -> Session:
        validate_credentials(email, password)
        return await self.auth.sign_in_with_password(email, password)

    async def sign_up(
        self,
        email: str,
        password: str,
        organization_name: str,
        display_name: Optional[str] = None,
    ) -> Optional[Session]:
        validate_credentials(email, password)
        return await self.auth.sign_up(
            email,
            password,
            data={"organization_name": organization_name, "display_name": display_name},
        )

    async def sign_up_with_invite(
        self,
        email: str,
        password: str,
        organization_id: UUID | str,
        display_name: Optional[str] = None,
    ) -> Optional[Session]:
        validate_credentials(email, password)
        return await self.auth.sign_up(
            email,
            password,
            data={"organization_id": str(organization_id), "display_name": display_name},
        )

    async def sign_out(self) -> None:
        await self.auth.sign_out()

    async def reset_password(self, email: str) -> None:
        await self.auth.reset_password_for_email(email, redirect_to=self.site_url)

    async def complete_password_setup(
        self,
        password: str,
        display_name: Optional[str] = None,
        confirm_password: Optional[str] = None,
    ) -> None:
        """
        Finish an invited user's account: set the password, then create the profile.

        The two steps are not atomic. If the profile insert fails, the user
        keeps the invite marker and is routed back here on the next load;
        running the setup again is safe because an already existing profile
        counts as success.
        """
        if confirm_password is not None:
            validate_password_setup(password, confirm_password)

        try:
            user = await self.auth.get_user()
        except ServiceError as e:
            logger.warning("Password setup: could not fetch user: %s", e.message)
            user = None
        if user is None:
            raise NotAuthenticatedError()

        metadata = decode_metadata(user.user_metadata)
        name = display_name or user.user_metadata.get("display_name") or user.email_local_part

        try:
            await self.auth.update_user(password=password, data={"display_name": name})
        except ServiceError as e:
            raise PasswordSetupError(e.message) from e

        organization_id = None if isinstance(metadata, NoMetadata) else metadata.organization_id
        if organization_id is None:
            raise PasswordSetupError("No organization found")

        row = profile_row_for(user, organization_id, name, metadata.invited_role)
        try:
            await self.db.insert(PROFILES_TABLE, row)
        except DatabaseError as e:
            if not e.is_conflict:
                raise PasswordSetupError(e.message) from e
            logger.info("Profile for %s already exists; finishing setup", user.id)
        except ServiceError as e:
            raise PasswordSetupError(e.message) from e

        self._dispatch(PasswordSetupCleared())
        await self.load_profile(user.id, expected_version=self.store.version)
