from uuid import uuid4

import pytest

from fakes import FakeAuth, FakeDB, make_session, make_user
from outstocked.client.errors import InputError
from outstocked.client.metadata import (
    InvitedMetadata,
    NoMetadata,
    OrgMemberMetadata,
    decode_metadata,
)
from outstocked.client.profile_loader import (
    PROFILES_TABLE,
    Absent,
    Failed,
    Found,
    NeedsPasswordSetup,
    ProfileLoader,
    Unresolved,
)
from outstocked.client.validation import validate_password_setup
from outstocked.gateway.errors import AuthServiceError, DatabaseError


class TestMetadata:
    def test_invited(self):
        org = uuid4()
        metadata = decode_metadata(
            {"invited_by": "someone", "organization_id": str(org), "invited_role": "admin"}
        )
        assert metadata == InvitedMetadata(invited_by="someone", invited_role="admin", organization_id=org)

    def test_org_member(self):
        org = uuid4()
        assert decode_metadata({"organization_id": str(org)}) == OrgMemberMetadata(organization_id=org)

    def test_unknown_role_falls_back_to_user(self):
        metadata = decode_metadata({"organization_id": str(uuid4()), "invited_role": "owner"})
        assert metadata.invited_role == "user"

    @pytest.mark.parametrize("raw", [None, {}, {"organization_id": "not-a-uuid"}])
    def test_nothing_usable(self, raw):
        assert decode_metadata(raw) == NoMetadata()


class TestLookup:
    @pytest.mark.asyncio
    async def test_lookup_results(self):
        user = make_user()
        db = FakeDB()
        loader = ProfileLoader(FakeAuth(), db)

        assert isinstance(await loader.lookup_profile(user.id), Absent)

        db.add(PROFILES_TABLE, {"id": str(user.id), "organization_id": str(uuid4()), "email": "x@y.z"})
        assert isinstance(await loader.lookup_profile(user.id), Found)

        db.failures[PROFILES_TABLE] = DatabaseError("boom", 500)
        assert isinstance(await loader.lookup_profile(user.id), Failed)

    @pytest.mark.asyncio
    async def test_user_refetch_failure(self):
        auth = FakeAuth(make_session())
        auth.user_error = AuthServiceError("network down")
        outcome = await ProfileLoader(auth, FakeDB()).load(auth.user.id)
        assert isinstance(outcome, Unresolved)

    @pytest.mark.asyncio
    async def test_provision_failure(self):
        user = make_user(metadata={"organization_id": str(uuid4())})
        db = FakeDB()
        db.insert_failures[PROFILES_TABLE] = DatabaseError("violates foreign key constraint", 409, "23503")
        outcome = await ProfileLoader(FakeAuth(make_session(user)), db).load(user.id)
        assert isinstance(outcome, Unresolved)

    @pytest.mark.asyncio
    async def test_invited(self):
        user = make_user(metadata={"invited_by": str(uuid4())})
        outcome = await ProfileLoader(FakeAuth(make_session(user)), FakeDB()).load(user.id)
        assert isinstance(outcome, NeedsPasswordSetup)


class TestPasswordValidation:
    @pytest.mark.parametrize(
        "password,confirm,message",
        [
            ("", "", "Please fill in both password fields"),
            ("secret1", "secret2", "Passwords do not match"),
            ("abc", "abc", "Password must be at least 6 characters"),
        ],
    )
    def test_rejected(self, password, confirm, message):
        with pytest.raises(InputError) as exc_info:
            validate_password_setup(password, confirm)
        assert exc_info.value.message == message

    def test_accepted(self):
        validate_password_setup("secret1", "secret1")
