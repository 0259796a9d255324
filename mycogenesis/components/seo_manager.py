"""SEO 메타 태그 / Open Graph / Twitter Card / JSON-LD 관리

페이지 하나를 렌더링할 때마다 새 SEOManager를 만들고, set_*_seo()로 상태를 채운 뒤
render_meta_tags()로 <head> 조각을 생성합니다.
"""

from __future__ import annotations

import json
from typing import Any, Optional
from urllib.parse import quote

from markupsafe import Markup

from mycogenesis.core.config import settings

from .content_renderer import ContentRenderer
from .templating import render_template

DEFAULT_DESCRIPTION = (
    "Your guide to mushroom cultivation, mycology research, and sustainable growing practices."
)
DEFAULT_IMAGE = "/images/og-default.jpg"


def _image_of(doc: dict[str, Any], key: str) -> Optional[str]:
    image = doc.get(key)
    if not isinstance(image, dict):
        return None
    asset = image.get("asset")
    return image.get("url") or (asset.get("url") if isinstance(asset, dict) else None)


def _iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


class SEOManager:
    def __init__(self, base_url: Optional[str] = None, site_name: Optional[str] = None) -> None:
        self.base_url = (base_url if base_url is not None else settings.site_url).rstrip("/")
        self.site_name = site_name or settings.site_name
        self.clear()

    def clear(self) -> None:
        self.title = self.site_name
        self.meta: dict[str, str] = {}
        self.properties: dict[str, str] = {}
        self.canonical_url: Optional[str] = None
        self.structured_data: Optional[dict[str, Any]] = None

    def set_meta_tag(self, name: str, content: Any) -> None:
        if content:
            self.meta[name] = str(content)

    def set_meta_property(self, prop: str, content: Any) -> None:
        if content:
            self.properties[prop] = str(content)

    def set_canonical_url(self, url: str) -> None:
        self.canonical_url = url

    def set_structured_data(self, data: dict[str, Any]) -> None:
        """JSON-LD는 페이지당 하나 (기존 값 교체)"""
        self.structured_data = data

    def set_basic_seo(self, title: str, description: str, image: str, url: str, page_type: str = "website") -> None:
        self.title = title
        self.set_meta_tag("description", description)

        self.set_meta_property("og:title", title)
        self.set_meta_property("og:description", description)
        self.set_meta_property("og:image", image)
        self.set_meta_property("og:url", url)
        self.set_meta_property("og:type", page_type)
        self.set_meta_property("og:site_name", self.site_name)

        self.set_meta_tag("twitter:card", "summary_large_image")
        self.set_meta_tag("twitter:title", title)
        self.set_meta_tag("twitter:description", description)
        self.set_meta_tag("twitter:image", image)

        self.set_canonical_url(url)
        self.set_meta_tag("robots", "index, follow")

    def _organization(self) -> dict[str, Any]:
        return {"@type": "Organization", "name": self.site_name}

    def set_business_page_seo(self, page: dict[str, Any]) -> None:
        title = page.get("seoTitle") or page.get("title") or self.site_name
        description = page.get("seoDescription") or page.get("excerpt") or DEFAULT_DESCRIPTION
        image = _image_of(page, "heroImage") or DEFAULT_IMAGE
        url = f"{self.base_url}/pages/business/{page.get('slug') or ''}"

        self.set_basic_seo(f"{title} | {self.site_name}", description, image, url, "article")
        self.set_structured_data({
            "@context": "https://schema.org",
            "@type": "Article",
            "headline": title,
            "description": description,
            "image": image,
            "url": url,
            "datePublished": _iso(page.get("publishedAt") or page.get("_createdAt")),
            "dateModified": _iso(page.get("_updatedAt") or page.get("lastUpdated")),
            "author": self._organization(),
            "publisher": {
                **self._organization(),
                "logo": {"@type": "ImageObject", "url": f"{self.base_url}/images/logo.png"},
            },
        })
        if page.get("tags"):
            self.set_meta_tag("keywords", ", ".join(page["tags"]))

    def set_tutorial_seo(self, tutorial: dict[str, Any]) -> None:
        title = tutorial.get("seoTitle") or tutorial.get("title") or self.site_name
        description = tutorial.get("seoDescription") or tutorial.get("description") or DEFAULT_DESCRIPTION
        image = _image_of(tutorial, "featuredImage") or DEFAULT_IMAGE
        url = f"{self.base_url}/pages/tutorials/{tutorial.get('slug') or ''}"

        self.set_basic_seo(f"{title} | {self.site_name}", description, image, url, "article")

        data: dict[str, Any] = {
            "@context": "https://schema.org",
            "@type": "HowTo",
            "name": title,
            "description": description,
            "image": image,
            "url": url,
            "datePublished": _iso(tutorial.get("publishedAt")),
            "dateModified": _iso(tutorial.get("lastUpdated")),
            "author": self._organization(),
            "estimatedCost": {
                "@type": "MonetaryAmount",
                "currency": "USD",
                "value": tutorial.get("estimatedCost") or "0",
            },
            "totalTime": tutorial.get("estimatedTime") or "PT1H",
        }
        steps = tutorial.get("steps") or []
        if steps:
            data["step"] = [
                {
                    "@type": "HowToStep",
                    "position": index + 1,
                    "name": step.get("title"),
                    "text": ContentRenderer.to_plain_text(step.get("content") or step.get("description")),
                    "url": f"{url}#step-{index + 1}",
                }
                for index, step in enumerate(steps)
            ]
        materials = tutorial.get("materials") or []
        if materials:
            data["supply"] = [
                {
                    "@type": "HowToSupply",
                    "name": m.get("name") if isinstance(m, dict) else str(m),
                    "requiredQuantity": m.get("quantity") if isinstance(m, dict) else None,
                }
                for m in materials
            ]
        self.set_structured_data(data)

        self.set_meta_tag("tutorial:difficulty", tutorial.get("difficulty"))
        self.set_meta_tag("tutorial:duration", tutorial.get("estimatedTime"))
        self.set_meta_tag("tutorial:category", tutorial.get("category"))

    def set_faq_seo(
        self,
        faqs: list[dict[str, Any]],
        search_term: Optional[str] = None,
        category: Optional[str] = None,
    ) -> None:
        title = "Frequently Asked Questions"
        description = "Find answers to common questions about mushroom cultivation, mycology, and growing practices."
        query = ""
        if search_term:
            title = f"FAQ: {search_term}"
            description = f"Find answers about {search_term} and mushroom cultivation practices."
            query = f"?search={quote(search_term)}"
        elif category:
            title = f"FAQ: {category}"
            description = f"Frequently asked questions about {category} in mushroom cultivation."
            query = f"?category={quote(category)}"

        url = f"{self.base_url}/pages/faq{query}"
        self.set_basic_seo(f"{title} | {self.site_name}", description, DEFAULT_IMAGE, url, "website")

        if faqs:
            self.set_structured_data({
                "@context": "https://schema.org",
                "@type": "FAQPage",
                "mainEntity": [
                    {
                        "@type": "Question",
                        "name": faq.get("question"),
                        "acceptedAnswer": {
                            "@type": "Answer",
                            "text": ContentRenderer.to_plain_text(faq.get("answer")),
                        },
                    }
                    for faq in faqs
                ],
            })

    def set_breadcrumbs(self, breadcrumbs: list[dict[str, str]]) -> None:
        if not breadcrumbs:
            return
        self.set_structured_data({
            "@context": "https://schema.org",
            "@type": "BreadcrumbList",
            "itemListElement": [
                {"@type": "ListItem", "position": i + 1, "name": c.get("name"), "item": c.get("url")}
                for i, c in enumerate(breadcrumbs)
            ],
        })

    def set_error_state(self, error_type: str = "404") -> None:
        self.set_meta_tag("robots", "noindex, nofollow")
        if error_type == "404":
            self.title = f"Page Not Found | {self.site_name}"
            self.meta["description"] = "The requested page could not be found."
        else:
            self.title = f"Error | {self.site_name}"
            self.meta["description"] = "An error occurred while loading this page."

    def validate(self) -> dict[str, Any]:
        issues = []
        if not self.title or self.title == self.site_name:
            issues.append("Missing or default page title")
        if "description" not in self.meta:
            issues.append("Missing meta description")
        if "og:title" not in self.properties:
            issues.append("Missing Open Graph title")
        if not self.canonical_url:
            issues.append("Missing canonical URL")
        return {"is_valid": not issues, "issues": issues}

    def structured_data_json(self) -> Optional[str]:
        if self.structured_data is None:
            return None
        # </script> 조기 종료 방지
        return json.dumps(self.structured_data, ensure_ascii=False, default=str).replace("</", "<\\/")

    def render_meta_tags(self) -> Markup:
        return Markup(render_template(
            "seo_head.html",
            title=self.title,
            meta=self.meta,
            properties=self.properties,
            canonical_url=self.canonical_url,
            structured_data=Markup(self.structured_data_json()) if self.structured_data else None,
        ))
