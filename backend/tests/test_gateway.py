import json
from uuid import uuid4

import httpx
import pytest

from fakes import make_session
from outstocked.gateway.auth_client import AuthAdminClient, AuthClient
from outstocked.gateway.errors import AuthServiceError, DatabaseError
from outstocked.gateway.rest_client import RestClient
from outstocked.gateway.session_store import FileSessionStore, MemorySessionStore
from outstocked.schemas.auth import AuthEvent

BASE_URL = "http://supabase.test"


def token_body(user_id=None, email="jane@example.com") -> dict:
    return {
        "access_token": "new-access",
        "refresh_token": "new-refresh",
        "token_type": "bearer",
        "expires_in": 3600,
        "user": {"id": str(user_id or uuid4()), "email": email, "user_metadata": {}},
    }


class TestAuthClient:
    """Tests for the auth service client."""

    @pytest.mark.asyncio
    async def test_sign_in_persists_and_notifies(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/auth/v1/token"
            assert request.url.params["grant_type"] == "password"
            assert request.headers["apikey"] == "anon"
            return httpx.Response(200, json=token_body())

        store = MemorySessionStore()
        client = AuthClient(BASE_URL, "anon", store=store, transport=httpx.MockTransport(handler))
        client.on_auth_state_change(lambda event, session: seen.append(event))

        session = await client.sign_in_with_password("jane@example.com", "secret1")
        assert session.expires_at is not None
        assert store.load() == session
        assert client.access_token == "new-access"
        assert seen == [AuthEvent.SIGNED_IN]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_error_message_from_provider(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400, json={"error": "invalid_grant", "error_description": "Invalid login credentials"}
            )

        client = AuthClient(BASE_URL, "anon", transport=httpx.MockTransport(handler))
        with pytest.raises(AuthServiceError) as exc_info:
            await client.sign_in_with_password("jane@example.com", "wrong")
        assert exc_info.value.message == "Invalid login credentials"
        assert exc_info.value.status == 400
        await client.aclose()

    @pytest.mark.asyncio
    async def test_sign_up_pending_confirmation(self):
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body["data"] == {"organization_name": "Acme"}
            return httpx.Response(200, json={"id": str(uuid4()), "email": body["email"]})

        client = AuthClient(BASE_URL, "anon", transport=httpx.MockTransport(handler))
        assert await client.sign_up("jane@example.com", "secret1", {"organization_name": "Acme"}) is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_expired_session_is_refreshed(self):
        expired = make_session(expires_in=-60)
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.params["grant_type"])
            return httpx.Response(200, json=token_body(expired.user.id))

        client = AuthClient(
            BASE_URL, "anon", store=MemorySessionStore(expired), transport=httpx.MockTransport(handler)
        )
        session = await client.get_session()
        assert calls == ["refresh_token"]
        assert session.access_token == "new-access"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_failed_refresh_clears_session(self):
        store = MemorySessionStore(make_session(expires_in=-60))

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"msg": "Invalid Refresh Token: Already Used"})

        client = AuthClient(BASE_URL, "anon", store=store, transport=httpx.MockTransport(handler))
        with pytest.raises(AuthServiceError):
            await client.get_session()
        assert store.load() is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_sign_out_always_clears(self):
        store = MemorySessionStore(make_session())
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline")

        client = AuthClient(BASE_URL, "anon", store=store, transport=httpx.MockTransport(handler))
        subscription = client.on_auth_state_change(lambda event, session: seen.append(event))
        await client.get_session()
        await client.sign_out()

        assert store.load() is None
        assert seen == [AuthEvent.SIGNED_OUT]

        subscription.unsubscribe()
        assert not subscription.active
        await client.aclose()

    @pytest.mark.asyncio
    async def test_admin_invite(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["path"] = request.url.path
            captured["redirect_to"] = request.url.params["redirect_to"]
            captured["auth"] = request.headers["authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": str(uuid4()), "email": "bob@example.com"})

        admin = AuthAdminClient(BASE_URL, "service-key", transport=httpx.MockTransport(handler))
        await admin.invite_user_by_email(
            "bob@example.com", data={"invited_role": "user"}, redirect_to="https://x.test/set-password"
        )
        assert captured["path"] == "/auth/v1/invite"
        assert captured["redirect_to"] == "https://x.test/set-password"
        assert captured["auth"] == "Bearer service-key"
        assert captured["body"] == {"email": "bob@example.com", "data": {"invited_role": "user"}}
        await admin.aclose()


class TestRestClient:
    """Tests for the row-oriented database client."""

    @pytest.mark.asyncio
    async def test_select_filters(self):
        def handler(request: httpx.Request) -> httpx.Response:
            params = request.url.params
            assert request.url.path == "/rest/v1/user_profiles"
            assert params["id"] == "eq.abc"
            assert params["revoked_at"] == "is.null"
            assert params["limit"] == "1"
            assert request.headers["authorization"] == "Bearer user-token"
            return httpx.Response(200, json=[])

        client = RestClient(
            BASE_URL, "anon", token_provider=lambda: "user-token", transport=httpx.MockTransport(handler)
        )
        assert await client.select_one("user_profiles", id="abc", revoked_at=None) is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_unique_violation(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                409, json={"code": "23505", "message": "duplicate key value violates unique constraint"}
            )

        client = RestClient(BASE_URL, "anon", transport=httpx.MockTransport(handler))
        with pytest.raises(DatabaseError) as exc_info:
            await client.insert("user_profiles", {"id": "abc"})
        assert exc_info.value.is_conflict
        assert exc_info.value.message == "duplicate key value violates unique constraint"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_insert_returns_row(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["prefer"] == "return=representation"
            return httpx.Response(201, json=[{"id": "abc", "role": "user"}])

        client = RestClient(BASE_URL, "anon", transport=httpx.MockTransport(handler))
        assert await client.insert("user_profiles", {"id": "abc"}) == {"id": "abc", "role": "user"}
        await client.aclose()

    @pytest.mark.asyncio
    async def test_count(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "HEAD"
            return httpx.Response(200, headers={"content-range": "0-2/3"})

        client = RestClient(BASE_URL, "anon", transport=httpx.MockTransport(handler))
        assert await client.count("inventory_requests", status="pending") == 3
        await client.aclose()

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out")

        client = RestClient(BASE_URL, "anon", transport=httpx.MockTransport(handler))
        with pytest.raises(DatabaseError) as exc_info:
            await client.select("organizations")
        assert exc_info.value.status is None
        await client.aclose()


class TestFileSessionStore:
    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "session.json"
        session = make_session()
        FileSessionStore(path).save(session)
        assert FileSessionStore(path).load() == session

        FileSessionStore(path).clear()
        assert FileSessionStore(path).load() is None

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text("{not json", encoding="utf-8")
        assert FileSessionStore(path).load() is None


class TestCreateBackend:
    @pytest.mark.asyncio
    async def test_database_uses_signed_in_token(self):
        from outstocked.config import Settings
        from outstocked.gateway import create_backend

        store = MemorySessionStore(make_session())
        backend = create_backend(
            Settings(supabase_url=BASE_URL, supabase_anon_key="anon"), store=store
        )
        await backend.auth.get_session()
        assert backend.db._headers()["Authorization"] == f"Bearer {backend.auth.access_token}"
        await backend.aclose()

    def test_requires_backend_configuration(self):
        from outstocked.config import Settings
        from outstocked.gateway import create_backend

        with pytest.raises(RuntimeError):
            create_backend(Settings(supabase_url="", supabase_anon_key=None))
