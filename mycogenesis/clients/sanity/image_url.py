"""Sanity 이미지 URL 빌더

asset 참조(image-<id>-<W>x<H>-<ext>)를 CDN URL로 변환합니다.

    builder = ImageUrlBuilder("gae98lpg", "production")
    builder.image(product["images"][0]["asset"]).width(800).height(600).format("webp").url()
"""

from __future__ import annotations

import re
from typing import Any, Optional
from urllib.parse import urlencode

CDN_BASE_URL = "https://cdn.sanity.io/images"

_REF_PATTERN = re.compile(r"^image-(?P<id>[A-Za-z0-9]+)-(?P<dims>\d+x\d+)-(?P<ext>[a-z0-9]+)$")
_URL_PATTERN = re.compile(
    r"/images/[^/]+/[^/]+/(?P<id>[A-Za-z0-9]+)-(?P<dims>\d+x\d+)\.(?P<ext>[a-z0-9]+)"
)


def parse_asset_ref(source: Any) -> str:
    """이미지 source에서 asset 참조 문자열 추출

    허용 형식:
        - "image-<id>-<W>x<H>-<ext>"
        - {"_ref": "..."}
        - {"_id": "..."} (확장된 asset)
        - {"url": "https://cdn.sanity.io/images/..."} (확장된 asset)
        - {"asset": <위 형식 중 하나>}

    Raises:
        ValueError: 참조를 해석할 수 없을 때
    """
    if isinstance(source, str):
        if _REF_PATTERN.match(source):
            return source
        match = _URL_PATTERN.search(source)
        if match:
            return f"image-{match['id']}-{match['dims']}-{match['ext']}"
        raise ValueError(f"Malformed asset reference: {source!r}")

    if isinstance(source, dict):
        if "asset" in source and source["asset"]:
            return parse_asset_ref(source["asset"])
        for key in ("_ref", "_id", "url"):
            if source.get(key):
                return parse_asset_ref(source[key])

    raise ValueError(f"Unable to resolve image asset from source: {source!r}")


class ImageUrl:
    """체이닝 가능한 단일 이미지 URL 빌더 (불변)"""

    def __init__(self, project_id: str, dataset: str, ref: str, params: Optional[dict[str, Any]] = None) -> None:
        self.project_id = project_id
        self.dataset = dataset
        self.ref = ref
        self._params: dict[str, Any] = dict(params or {})

    def _with(self, key: str, value: Any) -> "ImageUrl":
        params = dict(self._params)
        params[key] = value
        return ImageUrl(self.project_id, self.dataset, self.ref, params)

    def width(self, value: int) -> "ImageUrl":
        return self._with("w", int(value))

    def height(self, value: int) -> "ImageUrl":
        return self._with("h", int(value))

    def format(self, value: str) -> "ImageUrl":
        return self._with("fm", value)

    def quality(self, value: int) -> "ImageUrl":
        return self._with("q", int(value))

    def fit(self, value: str) -> "ImageUrl":
        return self._with("fit", value)

    def url(self) -> str:
        match = _REF_PATTERN.match(self.ref)
        if not match:
            raise ValueError(f"Malformed asset reference: {self.ref!r}")
        base = (
            f"{CDN_BASE_URL}/{self.project_id}/{self.dataset}/"
            f"{match['id']}-{match['dims']}.{match['ext']}"
        )
        # 파라미터 순서는 w, h, fm, q, fit 고정 (URL 캐시 키 안정성)
        ordered = [(k, self._params[k]) for k in ("w", "h", "fm", "q", "fit") if k in self._params]
        return f"{base}?{urlencode(ordered)}" if ordered else base

    def __str__(self) -> str:
        return self.url()


class ImageUrlBuilder:
    """프로젝트/데이터셋 단위 이미지 URL 빌더"""

    def __init__(self, project_id: str, dataset: str) -> None:
        self.project_id = project_id
        self.dataset = dataset

    def image(self, source: Any) -> ImageUrl:
        return ImageUrl(self.project_id, self.dataset, parse_asset_ref(source))
