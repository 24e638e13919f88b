from uuid import uuid4

from fakes import make_session, make_user
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
from outstocked.schemas.profile import OrganizationRead, ProfileRead


def make_profile(user, role="user") -> ProfileRead:
    return ProfileRead(id=user.id, organization_id=uuid4(), email=user.email, role=role)


class TestAuthStore:
    """Tests for the auth state transitions."""

    def test_initial_state(self):
        state = AuthStore().state
        assert state == AuthState()
        assert not state.initialized
        assert not state.is_admin

    def test_session_actions_bump_version(self):
        store = AuthStore()
        store.dispatch(SessionRestored(None))
        store.dispatch(SignedIn(make_session()))
        store.dispatch(SignedOut())
        assert store.version == 3

        store.dispatch(PasswordSetupRequired())
        assert store.version == 3

    def test_stale_result_is_dropped(self):
        store = AuthStore()
        version = store.version
        session = make_session()
        store.dispatch(SignedIn(session))

        applied = store.dispatch(SessionRestored(None), expected_version=version)
        assert applied is False
        assert store.state.user == session.user

    def test_forced_initialization_keeps_user(self):
        store = AuthStore()
        session = make_session()
        store.dispatch(SignedIn(session))
        store.dispatch(InitializationForced())
        assert store.state.initialized
        assert store.state.user == session.user

    def test_token_refresh_keeps_profile_for_same_user(self):
        store = AuthStore()
        user = make_user()
        store.dispatch(SignedIn(make_session(user)))
        store.dispatch(ProfileResolved(make_profile(user, "admin"), None))

        store.dispatch(SignedIn(make_session(user)))
        assert store.state.is_admin

    def test_new_identity_drops_previous_profile(self):
        store = AuthStore()
        user = make_user()
        store.dispatch(SignedIn(make_session(user)))
        store.dispatch(ProfileResolved(make_profile(user, "admin"), None))

        store.dispatch(SignedIn(make_session(make_user(email="other@example.com"))))
        assert store.state.profile is None
        assert not store.state.is_admin

    def test_signed_out_clears_everything(self):
        store = AuthStore()
        user = make_user()
        store.dispatch(SignedIn(make_session(user)))
        org = OrganizationRead(id=uuid4(), name="Acme")
        store.dispatch(ProfileResolved(make_profile(user), org))
        store.dispatch(PasswordSetupRequired())

        store.dispatch(SignedOut())
        assert store.state == AuthState(initialized=True)

    def test_password_setup_flag(self):
        store = AuthStore()
        user = make_user()
        store.dispatch(SignedIn(make_session(user)))
        store.dispatch(PasswordSetupRequired())
        assert store.state.needs_password_setup
        assert store.state.profile is None

        store.dispatch(PasswordSetupCleared())
        assert not store.state.needs_password_setup

        store.dispatch(PasswordSetupRequired())
        store.dispatch(ProfileResolved(make_profile(user), None))
        assert not store.state.needs_password_setup

    def test_subscribers_notified_on_change(self):
        store = AuthStore()
        seen = []
        unsubscribe = store.subscribe(seen.append)

        store.dispatch(SessionRestored(None))
        store.dispatch(InitializationForced())  # no change
        assert len(seen) == 1

        unsubscribe()
        store.dispatch(SignedIn(make_session()))
        assert len(seen) == 1

    def test_failing_subscriber_does_not_block_others(self):
        store = AuthStore()
        seen = []

        def broken(state):
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(seen.append)
        store.dispatch(SessionRestored(None))
        assert len(seen) == 1
