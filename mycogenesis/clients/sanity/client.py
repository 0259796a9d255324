"""Sanity HTTP 클라이언트

GROQ 쿼리 API(/data/query)와 mutation API(/data/mutate)만 사용합니다.
파라미터는 `$name=<json>` 형태로 쿼리스트링에 인코딩됩니다.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import httpx

from mycogenesis.clients.http_client import SharedHttpClient, get_shared_http_client
from mycogenesis.core.config import settings
from mycogenesis.core.exceptions import NetworkException, SanityApiException
from mycogenesis.core.logging import logger


class SanityClient:
    """Sanity Content Lake 클라이언트"""

    def __init__(
        self,
        project_id: Optional[str] = None,
        dataset: Optional[str] = None,
        api_version: Optional[str] = None,
        use_cdn: Optional[bool] = None,
        token: Optional[str] = None,
        timeout_s: Optional[float] = None,
        http_client: Optional[SharedHttpClient] = None,
    ) -> None:
        self.project_id = project_id or settings.sanity_project_id
        self.dataset = dataset or settings.sanity_dataset
        self.api_version = (api_version or settings.sanity_api_version).lstrip("v")
        self.use_cdn = settings.sanity_use_cdn if use_cdn is None else use_cdn
        self.token = token if token is not None else settings.sanity_token
        self.timeout_s = timeout_s or settings.sanity_timeout_s
        self._http = http_client or get_shared_http_client()

    def _base_url(self, use_cdn: bool) -> str:
        host = "apicdn" if use_cdn else "api"
        return f"https://{self.project_id}.{host}.sanity.io/v{self.api_version}"

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    @staticmethod
    def encode_params(query: str, params: Optional[dict[str, Any]] = None) -> dict[str, str]:
        """GROQ 쿼리 + 파라미터를 쿼리스트링 dict로 변환 (None 값은 제외)"""
        encoded: dict[str, str] = {"query": query}
        for name, value in (params or {}).items():
            if value is None:
                continue
            encoded[f"${name}"] = json.dumps(value, ensure_ascii=False)
        return encoded

    async def fetch(self, query: str, params: Optional[dict[str, Any]] = None) -> Any:
        """GROQ 쿼리 실행

        Returns:
            응답의 result 멤버 (문서 배열/단일 문서/None)

        Raises:
            SanityApiException: HTTP 오류 또는 잘못된 응답
            NetworkException: 전송 계층 오류
        """
        # 토큰이 있으면 CDN을 건너뜀 (draft/비공개 데이터셋)
        use_cdn = self.use_cdn and not self.token
        url = f"{self._base_url(use_cdn)}/data/query/{self.dataset}"
        client = await self._http.get_client()
        try:
            resp = await client.get(
                url,
                params=self.encode_params(query, params),
                headers=self._auth_headers(),
                timeout=self.timeout_s,
            )
        except httpx.TransportError as e:
            logger.info(f"[SANITY] query transport error: {type(e).__name__}: {e!r}")
            raise NetworkException(f"sanity query: {type(e).__name__}")

        if resp.status_code >= 400:
            raise SanityApiException(self._error_reason(resp), status_code=resp.status_code)

        try:
            body = resp.json()
        except ValueError as e:
            raise SanityApiException(f"invalid JSON response ({e})", status_code=resp.status_code)

        if not isinstance(body, dict) or "result" not in body:
            raise SanityApiException("response has no result member", status_code=resp.status_code)
        return body["result"]

    async def create(self, document: dict[str, Any]) -> dict[str, Any]:
        """문서 생성 (mutation)"""
        if not self.token:
            raise SanityApiException("write token is not configured")
        if not document.get("_type"):
            raise SanityApiException("document must have a _type")

        url = f"{self._base_url(False)}/data/mutate/{self.dataset}"
        client = await self._http.get_client()
        try:
            resp = await client.post(
                url,
                params={"returnIds": "true"},
                json={"mutations": [{"create": document}]},
                headers=self._auth_headers(),
                timeout=self.timeout_s,
            )
        except httpx.TransportError as e:
            raise NetworkException(f"sanity mutate: {type(e).__name__}")

        if resp.status_code >= 400:
            raise SanityApiException(self._error_reason(resp), status_code=resp.status_code)
        return resp.json()

    @staticmethod
    def _error_reason(resp: httpx.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            return f"HTTP {resp.status_code}"
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            return error.get("description") or error.get("message") or f"HTTP {resp.status_code}"
        if isinstance(error, str):
            return body.get("message") or error
        return f"HTTP {resp.status_code}"
