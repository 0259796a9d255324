"""공유 HTTP 클라이언트 (httpx)

- Sanity/Firestore 요청마다 AsyncClient를 만들면 TLS/커넥션 오버헤드가 커지므로
  프로세스 단위로 클라이언트를 재사용합니다.
- 앱 종료 시 close()로 정리합니다.
- 테스트에서는 transport(httpx.MockTransport)를 주입합니다.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import httpx

from mycogenesis import __version__


class SharedHttpClient:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._lock = asyncio.Lock()
        self._client: Optional[httpx.AsyncClient] = None
        self._transport = transport

    async def get_client(self) -> httpx.AsyncClient:
        async with self._lock:
            if self._client is not None:
                return self._client
            self._client = httpx.AsyncClient(
                headers=self.default_headers(),
                follow_redirects=True,
                transport=self._transport,
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            )
            return self._client

    def default_headers(self) -> dict[str, str]:
        return {
            "User-Agent": f"mycogenesis-content/{__version__}",
            "Accept": "application/json",
        }

    async def close(self) -> None:
        async with self._lock:
            if self._client is None:
                return
            await self._client.aclose()
            self._client = None


_shared_http_client = SharedHttpClient()


def get_shared_http_client() -> SharedHttpClient:
    return _shared_http_client


async def shutdown_shared_http_client() -> None:
    await _shared_http_client.close()
