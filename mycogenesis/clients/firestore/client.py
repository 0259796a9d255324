"""Firestore REST 클라이언트

- 공개 읽기: API key만 사용
- 관리자 쓰기: Firebase Auth ID 토큰(Bearer)을 with_id_token()으로 주입
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import httpx

from mycogenesis.clients.http_client import SharedHttpClient, get_shared_http_client
from mycogenesis.core.config import settings
from mycogenesis.core.exceptions import FirestoreException, NetworkException
from mycogenesis.core.logging import logger

from .query import Query
from .values import decode_fields, encode_fields, parse_timestamp

FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"

# HTTP status → firestore/* 에러 코드
_STATUS_CODES = {
    400: "firestore/invalid-argument",
    401: "firestore/unauthenticated",
    403: "firestore/permission-denied",
    404: "firestore/not-found",
    409: "firestore/already-exists",
    429: "firestore/quota-exceeded",
    503: "firestore/unavailable",
}


@dataclass
class FirestoreDocument:
    """디코딩된 문서"""
    id: str
    path: str
    data: dict[str, Any]
    create_time: Optional[datetime] = None
    update_time: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.data}


class FirestoreClient:
    """Firestore REST v1 클라이언트"""

    def __init__(
        self,
        project_id: Optional[str] = None,
        database: Optional[str] = None,
        api_key: Optional[str] = None,
        id_token: Optional[str] = None,
        timeout_s: Optional[float] = None,
        http_client: Optional[SharedHttpClient] = None,
    ) -> None:
        self.project_id = project_id or settings.firebase_project_id
        self.database = database or settings.firebase_database
        self.api_key = api_key if api_key is not None else settings.firebase_api_key
        self.id_token = id_token
        self.timeout_s = timeout_s or settings.firebase_timeout_s
        self._http = http_client or get_shared_http_client()

    @property
    def documents_root(self) -> str:
        return f"projects/{self.project_id}/databases/{self.database}/documents"

    @property
    def base_url(self) -> str:
        return f"{FIRESTORE_BASE_URL}/{self.documents_root}"

    def with_id_token(self, id_token: str) -> "FirestoreClient":
        """인증 사용자 권한으로 요청하는 클라이언트 복제"""
        return FirestoreClient(
            project_id=self.project_id,
            database=self.database,
            api_key=self.api_key,
            id_token=id_token,
            timeout_s=self.timeout_s,
            http_client=self._http,
        )

    def _params(self, extra: Optional[list[tuple[str, str]]] = None) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = []
        if self.api_key:
            params.append(("key", self.api_key))
        if extra:
            params.extend(extra)
        return params

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.id_token}"} if self.id_token else {}

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[list[tuple[str, str]]] = None,
        json: Optional[dict[str, Any]] = None,
        allow_not_found: bool = False,
    ) -> Optional[Any]:
        client = await self._http.get_client()
        try:
            resp = await client.request(
                method,
                url,
                params=self._params(params),
                json=json,
                headers=self._headers(),
                timeout=self.timeout_s,
            )
        except httpx.TransportError as e:
            logger.info(f"[FIRESTORE] {method} transport error: {type(e).__name__}: {e!r}")
            raise NetworkException(f"firestore {method}: {type(e).__name__}")

        if resp.status_code == 404 and allow_not_found:
            return None
        if resp.status_code >= 400:
            raise self._to_exception(resp)
        if not resp.content:
            return {}
        return resp.json()

    @staticmethod
    def _to_exception(resp: httpx.Response) -> FirestoreException:
        code = _STATUS_CODES.get(resp.status_code, "firestore/unknown")
        message = f"HTTP {resp.status_code}"
        try:
            body = resp.json()
            if isinstance(body, list) and body:
                body = body[0]
            error = body.get("error", {}) if isinstance(body, dict) else {}
            message = error.get("message") or message
        except ValueError:
            pass
        return FirestoreException(code, f"Firestore request failed: {message}")

    def _decode_document(self, raw: dict[str, Any]) -> FirestoreDocument:
        name = raw.get("name", "")
        path = name.split("/documents/", 1)[-1]
        return FirestoreDocument(
            id=path.rsplit("/", 1)[-1],
            path=path,
            data=decode_fields(raw.get("fields", {})),
            create_time=parse_timestamp(raw["createTime"]) if raw.get("createTime") else None,
            update_time=parse_timestamp(raw["updateTime"]) if raw.get("updateTime") else None,
        )

    async def run_query(self, query: Query) -> list[FirestoreDocument]:
        """structuredQuery 실행"""
        body = await self._request(
            "POST",
            f"{self.base_url}:runQuery",
            json={"structuredQuery": query.to_structured_query()},
        )
        documents: list[FirestoreDocument] = []
        for entry in body or []:
            # 결과가 없으면 readTime만 있는 항목 하나가 옵니다.
            if isinstance(entry, dict) and entry.get("document"):
                documents.append(self._decode_document(entry["document"]))
        return documents

    async def get_document(self, path: str) -> Optional[FirestoreDocument]:
        """문서 조회 (없으면 None)"""
        raw = await self._request("GET", f"{self.base_url}/{path}", allow_not_found=True)
        return self._decode_document(raw) if raw else None

    async def set_document(self, path: str, data: dict[str, Any]) -> FirestoreDocument:
        """문서 생성 또는 전체 덮어쓰기"""
        raw = await self._request("PATCH", f"{self.base_url}/{path}", json={"fields": encode_fields(data)})
        return self._decode_document(raw)

    async def update_document(self, path: str, data: dict[str, Any]) -> FirestoreDocument:
        """기존 문서의 일부 필드만 갱신 (문서가 없으면 firestore/not-found)"""
        params = [("updateMask.fieldPaths", key) for key in data]
        params.append(("currentDocument.exists", "true"))
        raw = await self._request(
            "PATCH",
            f"{self.base_url}/{path}",
            params=params,
            json={"fields": encode_fields(data)},
        )
        return self._decode_document(raw)

    async def delete_document(self, path: str) -> None:
        await self._request("DELETE", f"{self.base_url}/{path}")

    async def increment_field(self, path: str, field_name: str, amount: int = 1, **extra: Any) -> int:
        """read-modify-write 카운터 증가

        트랜잭션이 아니므로 동시 증가는 유실될 수 있습니다.
        """
        current = await self.get_document(path)
        data = dict(current.data) if current else {}
        value = int(data.get(field_name) or 0) + amount
        data[field_name] = value
        data.update(extra)
        await self.set_document(path, data)
        return value
