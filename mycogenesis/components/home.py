"""홈 페이지 카드 렌더링 (추천 상품 / 블로그 미리보기)"""

from typing import Any, Optional

from markupsafe import Markup

from .templating import render_template

PLACEHOLDER_PRODUCT_IMAGE = "/images/placeholder-mushroom.jpg"
PLACEHOLDER_BLOG_IMAGE = "/images/placeholder-blog.jpg"

AVAILABILITY_BADGES = {
    "available": ("Available", "bg-green-100 text-green-800"),
    "out-of-stock": ("Out of Stock", "bg-red-100 text-red-800"),
    "seasonal": ("Seasonal", "bg-yellow-100 text-yellow-800"),
    "coming-soon": ("Coming Soon", "bg-blue-100 text-blue-800"),
}


def availability_badge(availability: Optional[str]) -> tuple[str, str]:
    return AVAILABILITY_BADGES.get(availability or "", ("Unknown", "bg-gray-100 text-gray-800"))


def product_image_url(product: dict[str, Any]) -> str:
    primary = product.get("primaryImage") or {}
    return primary.get("url") or PLACEHOLDER_PRODUCT_IMAGE


def blog_image_url(post: dict[str, Any]) -> str:
    featured = post.get("featuredImage") or {}
    return featured.get("url") or PLACEHOLDER_BLOG_IMAGE


def render_featured_products(products: Optional[list[dict[str, Any]]]) -> Markup:
    return Markup(render_template(
        "featured_products.html",
        products=products or [],
        image_url=product_image_url,
        badge=availability_badge,
    ))


def render_blog_cards(posts: Optional[list[dict[str, Any]]]) -> Markup:
    return Markup(render_template("blog_cards.html", posts=posts or [], image_url=blog_image_url))
