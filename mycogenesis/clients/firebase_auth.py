"""Firebase Auth REST 클라이언트 (Identity Toolkit)

관리자 스크립트에서 로그인/계정 조회/계정 삭제에만 사용합니다.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from mycogenesis.clients.http_client import SharedHttpClient, get_shared_http_client
from mycogenesis.core.config import settings
from mycogenesis.core.exceptions import FirebaseAuthException

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

# Identity Toolkit 에러 메시지 → auth/* 코드
_ERROR_CODES = {
    "EMAIL_NOT_FOUND": "auth/user-not-found",
    "INVALID_PASSWORD": "auth/wrong-password",
    "INVALID_LOGIN_CREDENTIALS": "auth/invalid-credential",
    "USER_DISABLED": "auth/user-disabled",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "auth/too-many-requests",
    "INVALID_ID_TOKEN": "auth/invalid-user-token",
    "TOKEN_EXPIRED": "auth/user-token-expired",
    "CREDENTIAL_TOO_OLD_LOGIN_AGAIN": "auth/requires-recent-login",
    "USER_NOT_FOUND": "auth/user-not-found",
}


@dataclass
class AuthUser:
    """인증된 사용자 (Firebase Auth currentUser 대응)"""
    uid: str
    email: Optional[str]
    id_token: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    email_verified: bool = False


class FirebaseAuthClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout_s: Optional[float] = None,
        http_client: Optional[SharedHttpClient] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.firebase_api_key
        self.timeout_s = timeout_s or settings.firebase_timeout_s
        self._http = http_client or get_shared_http_client()

    async def _post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        if not self.api_key:
            raise FirebaseAuthException("auth/invalid-api-key", "firebase_api_key is not configured")
        client = await self._http.get_client()
        try:
            resp = await client.post(
                f"{IDENTITY_TOOLKIT_URL}/{endpoint}",
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout_s,
            )
        except httpx.TransportError as e:
            raise FirebaseAuthException("auth/network-request-failed", f"{type(e).__name__}: {e}") from e

        if resp.status_code >= 400:
            raise self._to_exception(resp)
        return resp.json()

    @staticmethod
    def _to_exception(resp: httpx.Response) -> FirebaseAuthException:
        reason = f"HTTP {resp.status_code}"
        try:
            reason = resp.json().get("error", {}).get("message") or reason
        except ValueError:
            pass
        # "TOO_MANY_ATTEMPTS_TRY_LATER : Access to this account..." 형식 대응
        key = reason.split(":", 1)[0].strip()
        return FirebaseAuthException(_ERROR_CODES.get(key, "auth/internal-error"), reason)

    async def sign_in_with_password(self, email: str, password: str) -> AuthUser:
        body = await self._post(
            "accounts:signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        user = AuthUser(uid=body["localId"], email=body.get("email"), id_token=body["idToken"])
        return await self.lookup(user.id_token) or user

    async def lookup(self, id_token: str) -> Optional[AuthUser]:
        body = await self._post("accounts:lookup", {"idToken": id_token})
        users = body.get("users") or []
        if not users:
            return None
        raw = users[0]
        return AuthUser(
            uid=raw["localId"],
            email=raw.get("email"),
            id_token=id_token,
            display_name=raw.get("displayName"),
            photo_url=raw.get("photoUrl"),
            email_verified=bool(raw.get("emailVerified", False)),
        )

    async def delete_account(self, id_token: str) -> None:
        await self._post("accounts:delete", {"idToken": id_token})


