"""사용자 관리자 작업 - 역할 / 프로필 / 계정

Firebase Auth REST로 로그인한 사용자 권한으로 Firestore users 컬렉션을 다룹니다.
모든 작업은 users/{uid} 문서를 기준으로 하며 콘텐츠 컴포넌트와 상태를 공유하지 않습니다.
"""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

from mycogenesis.clients.firebase_auth import AuthUser, FirebaseAuthClient
from mycogenesis.clients.firestore import SERVER_TIMESTAMP, FirestoreClient, Query
from mycogenesis.core.exceptions import AdminException, FirebaseAuthException
from mycogenesis.core.logging import logger

USERS_COLLECTION = "users"
REQUIRED_PROFILE_FIELDS = ("email", "createdAt", "updatedAt")


def generate_avatar_url(name: str) -> str:
    """이니셜 아바타 URL (ui-avatars.com)"""
    initials = "".join(part[0] for part in name.split() if part).upper()[:2]
    return f"https://ui-avatars.com/api/?name={quote(initials)}&background=0d9488&color=fff&size=128"


def split_display_name(display_name: Optional[str]) -> tuple[str, str]:
    parts = (display_name or "").split(" ")
    return parts[0], " ".join(parts[1:])


def build_user_profile(
    user: AuthUser,
    role: str = "user",
    signup_method: str = "migration",
    bio: str = "",
) -> dict[str, Any]:
    """신규 users/{uid} 문서 (기본 역할 user, 상태 active)"""
    first_name, last_name = split_display_name(user.display_name)
    email = user.email or ""
    display_name = (
        user.display_name
        or f"{first_name} {last_name}".strip()
        or email.split("@")[0]
    )
    if role == "admin" and not user.display_name:
        display_name = "Admin User"
    avatar = user.photo_url or generate_avatar_url(user.display_name or email)

    return {
        "uid": user.uid,
        "email": email,
        "firstName": first_name,
        "lastName": last_name,
        "displayName": display_name,
        "photoURL": avatar,
        "role": role,
        "status": "active",
        "emailVerified": user.email_verified,
        "createdAt": SERVER_TIMESTAMP,
        "updatedAt": SERVER_TIMESTAMP,
        "lastLogin": SERVER_TIMESTAMP,
        "preferences": {
            "notifications": True,
            "newsletter": False,
            "theme": "light",
        },
        "profile": {
            "bio": bio,
            "location": "",
            "website": "",
            "avatar": avatar,
        },
        "metadata": {
            "signupMethod": signup_method,
        },
    }


class UserAdmin:
    def __init__(
        self,
        auth_client: Optional[FirebaseAuthClient] = None,
        firestore_client: Optional[FirestoreClient] = None,
    ) -> None:
        self.auth = auth_client or FirebaseAuthClient()
        self.firestore = firestore_client or FirestoreClient()
        self.current_user: Optional[AuthUser] = None

    async def sign_in(self, email: str, password: str) -> AuthUser:
        self.current_user = await self.auth.sign_in_with_password(email, password)
        logger.info(f"[ADMIN] Signed in as {self.current_user.email} ({self.current_user.uid})")
        return self.current_user

    def _require_user(self) -> AuthUser:
        if self.current_user is None:
            raise AdminException("No user currently logged in")
        return self.current_user

    def _db(self) -> FirestoreClient:
        return self.firestore.with_id_token(self._require_user().id_token)

    @staticmethod
    def _user_path(uid: str) -> str:
        return f"{USERS_COLLECTION}/{uid}"

    async def get_profile(self, uid: Optional[str] = None) -> Optional[dict[str, Any]]:
        uid = uid or self._require_user().uid
        document = await self._db().get_document(self._user_path(uid))
        return document.data if document else None

    # ------------------------------------------------------------------
    # 역할
    # ------------------------------------------------------------------
    async def set_current_user_as_admin(self, signup_method: str = "admin-setup") -> bool:
        """현재 사용자를 admin으로 (프로필이 없으면 admin 프로필 생성)"""
        user = self._require_user()
        db = self._db()
        path = self._user_path(user.uid)

        if await db.get_document(path):
            await db.update_document(path, {"role": "admin", "updatedAt": SERVER_TIMESTAMP})
            logger.info(f"[ADMIN] Updated existing user profile to admin role: {user.uid}")
        else:
            profile = build_user_profile(user, role="admin", signup_method=signup_method, bio="System Administrator")
            await db.set_document(path, profile)
            logger.info(f"[ADMIN] Created new user profile with admin role: {user.uid}")
        return True

    async def set_user_as_admin_by_email(self, email: str) -> bool:
        """users 컬렉션에서 email로 찾아 역할 갱신 (현재 사용자에게 쓰기 권한 필요)"""
        db = self._db()
        matches = await db.run_query(Query(USERS_COLLECTION).where("email", "==", email).limit(1))
        if not matches:
            raise AdminException(f"No user profile found for {email}", {"email": email})

        target = matches[0]
        await db.update_document(target.path, {"role": "admin", "updatedAt": SERVER_TIMESTAMP})
        logger.info(f"[ADMIN] Set admin role for {email} ({target.id})")
        return True

    async def check_current_user_role(self) -> Optional[dict[str, Any]]:
        profile = await self.get_profile()
        if profile is None:
            logger.warning("[ADMIN] User profile not found in Firestore")
            return None
        logger.info(f"[ADMIN] Current role: {profile.get('role') or 'undefined'}, status: {profile.get('status') or 'undefined'}")
        return profile

    # ------------------------------------------------------------------
    # 프로필
    # ------------------------------------------------------------------
    async def check_and_create_profile(self, signup_method: str = "migration") -> dict[str, Any]:
        """프로필이 있으면 그대로, 없으면 기본 프로필 생성"""
        user = self._require_user()
        existing = await self.get_profile(user.uid)
        if existing is not None:
            logger.info(f"[ADMIN] User profile already exists: {user.uid}")
            return existing

        profile = build_user_profile(user, signup_method=signup_method)
        document = await self._db().set_document(self._user_path(user.uid), profile)
        logger.info(f"[ADMIN] User profile created: {user.uid}")
        return document.data

    async def migrate_profile(self) -> dict[str, Any]:
        return await self.check_and_create_profile(signup_method="migration")

    async def create_missing_profile(self) -> dict[str, Any]:
        return await self.check_and_create_profile(signup_method="profile-repair")

    async def check_profile(self) -> dict[str, Any]:
        """프로필 존재 여부와 필수 필드 누락 확인"""
        user = self._require_user()
        profile = await self.get_profile(user.uid)
        if profile is None:
            return {"uid": user.uid, "exists": False, "missing_fields": list(REQUIRED_PROFILE_FIELDS)}
        missing = [name for name in REQUIRED_PROFILE_FIELDS if not profile.get(name)]
        if missing:
            logger.warning(f"[ADMIN] Missing fields for {user.uid}: {', '.join(missing)}")
        return {"uid": user.uid, "exists": True, "missing_fields": missing, "profile": profile}

    async def check_user(self, limit: int = 10) -> dict[str, Any]:
        """현재 사용자 상태 + 최근 가입 사용자 목록"""
        report = await self.check_profile()
        user = self._require_user()
        report["auth"] = {
            "email": user.email,
            "display_name": user.display_name,
            "email_verified": user.email_verified,
        }

        query = Query(USERS_COLLECTION).order_by("createdAt", "desc").limit(limit)
        documents = await self._db().run_query(query)
        report["recent_users"] = [
            {
                "uid": doc.id,
                "email": doc.data.get("email"),
                "name": doc.data.get("displayName")
                or f"{doc.data.get('firstName', '')} {doc.data.get('lastName', '')}".strip(),
                "role": doc.data.get("role") or "user",
                "email_verified": bool(doc.data.get("emailVerified", False)),
            }
            for doc in documents
        ]
        return report

    # ------------------------------------------------------------------
    # 계정 삭제
    # ------------------------------------------------------------------
    async def delete_current_user_account(self) -> bool:
        """users/{uid} 문서 삭제 후 Auth 계정 삭제"""
        user = self._require_user()
        await self._db().delete_document(self._user_path(user.uid))
        try:
            await self.auth.delete_account(user.id_token)
        except FirebaseAuthException as e:
            if e.code == "auth/requires-recent-login":
                logger.warning("[ADMIN] Account deletion requires recent authentication; sign in again and retry")
            else:
                logger.error(f"[ADMIN] Error deleting user account: {e}")
            return False
        logger.info(f"[ADMIN] User account deleted: {user.uid}")
        self.current_user = None
        return True
