"""UserAdmin / 프로필 빌더 / 관리자 CLI 테스트"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mycogenesis.admin import UserAdmin, build_user_profile, generate_avatar_url
from mycogenesis.admin.cli import _main, build_parser
from mycogenesis.clients.firebase_auth import AuthUser
from mycogenesis.clients.firestore import SERVER_TIMESTAMP, FirestoreDocument
from mycogenesis.core.exceptions import AdminException, FirebaseAuthException


@pytest.fixture
def auth_user() -> AuthUser:
    return AuthUser(uid="u1", email="grower@myco.test", id_token="token-1", display_name="Ada Grower")


@pytest.fixture
def firestore() -> MagicMock:
    client = MagicMock()
    client.with_id_token.return_value = client
    client.get_document = AsyncMock(return_value=None)
    client.set_document = AsyncMock(side_effect=lambda path, data: FirestoreDocument(id="u1", path=path, data=data))
    client.update_document = AsyncMock()
    client.delete_document = AsyncMock()
    client.run_query = AsyncMock(return_value=[])
    return client


@pytest.fixture
def admin(auth_user, firestore) -> UserAdmin:
    auth = MagicMock()
    auth.sign_in_with_password = AsyncMock(return_value=auth_user)
    auth.delete_account = AsyncMock()
    user_admin = UserAdmin(auth_client=auth, firestore_client=firestore)
    user_admin.current_user = auth_user
    return user_admin


class TestBuildUserProfile:
    def test_default_profile(self, auth_user) -> None:
        profile = build_user_profile(auth_user)

        assert profile["firstName"] == "Ada"
        assert profile["lastName"] == "Grower"
        assert profile["role"] == "user"
        assert profile["status"] == "active"
        assert profile["createdAt"] is SERVER_TIMESTAMP
        assert profile["preferences"] == {"notifications": True, "newsletter": False, "theme": "light"}
        assert profile["metadata"] == {"signupMethod": "migration"}
        assert profile["photoURL"] == profile["profile"]["avatar"]

    def test_admin_without_display_name(self) -> None:
        user = AuthUser(uid="u2", email="root@myco.test", id_token="t")

        profile = build_user_profile(user, role="admin", bio="System Administrator")

        assert profile["displayName"] == "Admin User"
        assert profile["profile"]["bio"] == "System Administrator"

    def test_avatar_uses_initials(self) -> None:
        url = generate_avatar_url("ada grower")

        assert url.startswith("https://ui-avatars.com/api/?name=AG&")
        assert "background=0d9488" in url


class TestUserAdmin:
    @pytest.mark.asyncio
    async def test_requires_signed_in_user(self, firestore) -> None:
        user_admin = UserAdmin(auth_client=MagicMock(), firestore_client=firestore)

        with pytest.raises(AdminException):
            await user_admin.check_profile()

    @pytest.mark.asyncio
    async def test_sign_in_sets_current_user(self, admin, auth_user) -> None:
        admin.current_user = None

        assert await admin.sign_in("grower@myco.test", "pw") == auth_user
        assert admin.current_user == auth_user

    @pytest.mark.asyncio
    async def test_set_admin_updates_existing_profile(self, admin, firestore) -> None:
        firestore.get_document.return_value = FirestoreDocument(id="u1", path="users/u1", data={"role": "user"})

        assert await admin.set_current_user_as_admin() is True

        path, data = firestore.update_document.await_args.args
        assert path == "users/u1"
        assert data["role"] == "admin"
        firestore.with_id_token.assert_called_with("token-1")

    @pytest.mark.asyncio
    async def test_set_admin_creates_missing_profile(self, admin, firestore) -> None:
        await admin.set_current_user_as_admin()

        path, data = firestore.set_document.await_args.args
        assert path == "users/u1"
        assert data["role"] == "admin"
        assert data["metadata"]["signupMethod"] == "admin-setup"

    @pytest.mark.asyncio
    async def test_set_admin_by_email(self, admin, firestore) -> None:
        firestore.run_query.return_value = [
            FirestoreDocument(id="u9", path="users/u9", data={"email": "other@myco.test"})
        ]

        assert await admin.set_user_as_admin_by_email("other@myco.test") is True

        query = firestore.run_query.await_args.args[0]
        assert query.to_structured_query()["limit"] == 1
        assert firestore.update_document.await_args.args[0] == "users/u9"

    @pytest.mark.asyncio
    async def test_set_admin_by_unknown_email(self, admin) -> None:
        with pytest.raises(AdminException):
            await admin.set_user_as_admin_by_email("ghost@myco.test")

    @pytest.mark.asyncio
    async def test_create_missing_profile(self, admin, firestore) -> None:
        profile = await admin.create_missing_profile()

        assert profile["metadata"]["signupMethod"] == "profile-repair"
        firestore.set_document.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_existing_profile_not_overwritten(self, admin, firestore) -> None:
        firestore.get_document.return_value = FirestoreDocument(id="u1", path="users/u1", data={"role": "admin"})

        assert await admin.migrate_profile() == {"role": "admin"}
        firestore.set_document.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_check_profile_missing_fields(self, admin, firestore) -> None:
        firestore.get_document.return_value = FirestoreDocument(
            id="u1", path="users/u1", data={"email": "grower@myco.test"}
        )

        report = await admin.check_profile()

        assert report["exists"] is True
        assert report["missing_fields"] == ["createdAt", "updatedAt"]

    @pytest.mark.asyncio
    async def test_check_user_lists_recent(self, admin, firestore) -> None:
        firestore.run_query.return_value = [
            FirestoreDocument(id="u2", path="users/u2", data={"email": "b@myco.test", "firstName": "Bo"}),
        ]

        report = await admin.check_user(limit=5)

        assert report["exists"] is False
        assert report["auth"]["email"] == "grower@myco.test"
        assert report["recent_users"] == [
            {"uid": "u2", "email": "b@myco.test", "name": "Bo", "role": "user", "email_verified": False}
        ]

    @pytest.mark.asyncio
    async def test_delete_account(self, admin, firestore) -> None:
        assert await admin.delete_current_user_account() is True

        firestore.delete_document.assert_awaited_once_with("users/u1")
        admin.auth.delete_account.assert_awaited_once_with("token-1")
        assert admin.current_user is None

    @pytest.mark.asyncio
    async def test_delete_requires_recent_login(self, admin) -> None:
        admin.auth.delete_account = AsyncMock(side_effect=FirebaseAuthException("requires-recent-login"))

        assert await admin.delete_current_user_account() is False
        assert admin.current_user is not None


class TestCli:
    def test_parser(self) -> None:
        args = build_parser().parse_args(["--email", "a@myco.test", "check-user", "--limit", "3"])

        assert args.command == "check-user"
        assert args.limit == 3

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--email", "a@myco.test"])

    @pytest.mark.asyncio
    @patch("mycogenesis.admin.cli.shutdown_shared_http_client", new_callable=AsyncMock)
    async def test_main_exit_codes(self, mock_shutdown, admin, firestore) -> None:
        args = build_parser().parse_args(["--email", "grower@myco.test", "set-admin"])
        assert await _main(args, "pw", admin=admin) == 0

        args = build_parser().parse_args(["--email", "grower@myco.test", "check-role"])
        assert await _main(args, "pw", admin=admin) == 1

        args = build_parser().parse_args(["--email", "grower@myco.test", "set-admin-by-email", "ghost@myco.test"])
        assert await _main(args, "pw", admin=admin) == 1

        assert mock_shutdown.await_count == 3
