"""Sanity CMS 클라이언트 - export only."""

from .client import SanityClient
from .image_url import ImageUrl, ImageUrlBuilder, parse_asset_ref

__all__ = ["SanityClient", "ImageUrl", "ImageUrlBuilder", "parse_asset_ref"]
