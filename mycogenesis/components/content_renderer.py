"""Portable Text → HTML 렌더러

Sanity rich text 블록 배열을 HTML 문자열로 변환합니다. 모든 텍스트/속성은 escape 됩니다.

지원 블록:
    block (normal, h1~h6, blockquote, bullet/number 리스트), image,
    calloutBox, statsGrid, twoColumnContent, timeline
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from markupsafe import Markup, escape

from mycogenesis.core.logging import logger

HEADING_CLASSES = {
    "h1": "text-3xl font-bold mt-8 mb-4",
    "h2": "text-2xl font-bold mt-8 mb-4",
    "h3": "text-xl font-semibold mt-6 mb-3",
    "h4": "text-lg font-medium mt-4 mb-2",
    "h5": "text-base font-medium mt-4 mb-2",
    "h6": "text-sm font-medium mt-4 mb-2",
}

DECORATORS = {
    "strong": ('<strong class="font-semibold">', "</strong>"),
    "em": ('<em class="italic">', "</em>"),
    "code": ('<code class="bg-gray-100 px-1 py-0.5 rounded text-sm font-mono">', "</code>"),
    "underline": ("<u>", "</u>"),
    "strike-through": ("<s>", "</s>"),
}

LIST_TAGS = {"bullet": "ul", "number": "ol"}

IMAGE_WIDTH_CLASSES = {
    "full": "w-full",
    "large": "w-3/4 mx-auto",
    "medium": "w-1/2 mx-auto",
    "small": "w-1/4 mx-auto",
}

CALLOUT_STYLES = {
    "info": "bg-blue-50 border-blue-200 text-blue-800",
    "success": "bg-green-50 border-green-200 text-green-800",
    "warning": "bg-amber-50 border-amber-200 text-amber-800",
    "mission": "bg-teal-50 border-teal-200 text-teal-800",
    "vision": "bg-purple-50 border-purple-200 text-purple-800",
    "values": "bg-orange-50 border-orange-200 text-orange-800",
    "stats": "bg-slate-50 border-slate-200 text-slate-800",
}

INTERNAL_LINK_PATHS = {
    "businessPage": "/pages/business/{slug}",
    "tutorialGuide": "/pages/tutorials/{slug}",
    "blogPost": "/blog/{slug}",
    "product": "/products/{slug}",
}


def _attr(value: Any) -> str:
    return str(escape("" if value is None else value))


class ContentRenderer:
    """Portable Text 렌더러

    Args:
        image_url: asset → URL 함수 (없으면 asset.url 사용)
    """

    def __init__(self, image_url: Optional[Callable[[Any], Optional[str]]] = None) -> None:
        self.image_url = image_url

    def render_blocks(self, blocks: Any) -> Markup:
        if not isinstance(blocks, list):
            return Markup("")

        parts: list[str] = []
        open_list: Optional[str] = None
        for block in blocks:
            list_item = block.get("listItem") if isinstance(block, dict) and block.get("_type") == "block" else None
            tag = LIST_TAGS.get(list_item, "ul") if list_item else None

            if open_list and tag != open_list:
                parts.append(f"</{open_list}>")
                open_list = None
            if tag and open_list is None:
                parts.append(f'<{tag} class="{"list-disc" if tag == "ul" else "list-decimal"} ml-6 mb-4">')
                open_list = tag

            parts.append(self.render_block(block))

        if open_list:
            parts.append(f"</{open_list}>")
        return Markup("".join(parts))

    def render_block(self, block: Any) -> str:
        if not isinstance(block, dict) or not block.get("_type"):
            return ""

        block_type = block["_type"]
        if block_type == "block":
            return self.render_text_block(block)
        if block_type == "image":
            return self.render_image(block)
        if block_type == "calloutBox":
            return self.render_callout_box(block)
        if block_type == "statsGrid":
            return self.render_stats_grid(block)
        if block_type == "twoColumnContent":
            return self.render_two_column_content(block)
        if block_type == "timeline":
            return self.render_timeline(block)

        logger.warning(f"[RENDER] Unknown block type: {block_type}")
        return ""

    def render_text_block(self, block: dict[str, Any]) -> str:
        children = block.get("children")
        if not isinstance(children, list):
            return ""

        inner = self.render_inline(children, block.get("markDefs") or [])
        if block.get("listItem"):
            return f"<li>{inner}</li>"

        style = block.get("style") or "normal"
        if style in HEADING_CLASSES:
            return f'<{style} class="{HEADING_CLASSES[style]}">{inner}</{style}>'
        if style == "blockquote":
            return f'<blockquote class="border-l-4 border-teal-600 pl-4 italic text-slate-600 my-4">{inner}</blockquote>'
        return f'<p class="mb-4">{inner}</p>'

    def render_inline(self, children: list[Any], mark_defs: list[dict[str, Any]]) -> str:
        defs = {d.get("_key"): d for d in mark_defs if isinstance(d, dict)}
        out = []
        for child in children:
            if not isinstance(child, dict) or child.get("_type") != "span":
                continue
            text = str(escape(child.get("text") or ""))
            for mark in child.get("marks") or []:
                text = self.apply_mark(text, mark, defs)
            out.append(text)
        return "".join(out)

    def apply_mark(self, text: str, mark: Any, defs: dict[str, dict[str, Any]]) -> str:
        if isinstance(mark, str) and mark in DECORATORS:
            start, end = DECORATORS[mark]
            return f"{start}{text}{end}"

        annotation = mark if isinstance(mark, dict) else defs.get(mark)
        if not annotation:
            return text
        return self.apply_annotation(text, annotation)

    def apply_annotation(self, text: str, annotation: dict[str, Any]) -> str:
        kind = annotation.get("_type")
        if kind == "link":
            target = ' target="_blank" rel="noopener noreferrer"' if annotation.get("blank") else ""
            return (
                f'<a href="{_attr(annotation.get("href"))}" '
                f'class="text-teal-600 hover:text-teal-800 underline transition-colors"{target}>{text}</a>'
            )
        if kind == "internalLink":
            pattern = INTERNAL_LINK_PATHS.get(annotation.get("type"), "/{slug}")
            href = pattern.format(slug=annotation.get("slug") or "")
            return f'<a href="{_attr(href)}" class="text-teal-600 hover:text-teal-800 underline">{text}</a>'
        if kind == "citation":
            return (
                f'<span class="citation" title="Citation: {_attr(annotation.get("text"))}">'
                f'{text}<sup class="text-xs">[{_attr(annotation.get("number"))}]</sup></span>'
            )
        return text

    def _resolve_image_url(self, block: dict[str, Any]) -> str:
        asset = block.get("asset")
        url = None
        if self.image_url is not None:
            url = self.image_url(block)
        if not url and isinstance(asset, dict):
            url = asset.get("url")
        return url or block.get("url") or ""

    def render_image(self, block: dict[str, Any]) -> str:
        if not block.get("asset") and not block.get("url"):
            return ""
        width_class = IMAGE_WIDTH_CLASSES.get(block.get("width") or "full", IMAGE_WIDTH_CLASSES["full"])
        caption = block.get("caption")
        figcaption = (
            f'<figcaption class="text-sm text-slate-600 text-center mt-2">{_attr(caption)}</figcaption>'
            if caption else ""
        )
        return (
            f'<figure class="my-8 {width_class}">'
            f'<img src="{_attr(self._resolve_image_url(block))}" alt="{_attr(block.get("alt"))}" '
            f'class="w-full h-auto rounded-lg shadow-sm" loading="lazy">'
            f"{figcaption}</figure>"
        )

    def render_callout_box(self, block: dict[str, Any]) -> str:
        style = CALLOUT_STYLES.get(block.get("type"), CALLOUT_STYLES["info"])
        title = f'<h4 class="font-semibold mb-2">{_attr(block.get("title"))}</h4>' if block.get("title") else ""
        content = block.get("content")
        body = self.render_blocks(content) if isinstance(content, list) else _attr(content)
        return (
            f'<div class="my-6 p-4 border rounded-lg {style}">{title}'
            f'<div class="text-sm leading-relaxed">{body}</div></div>'
        )

    def render_stats_grid(self, block: dict[str, Any]) -> str:
        stats = block.get("stats")
        if not isinstance(stats, list) or not stats:
            return ""
        title = (
            f'<h3 class="text-xl font-semibold mb-6 text-center">{_attr(block.get("title"))}</h3>'
            if block.get("title") else ""
        )
        items = []
        for stat in stats:
            description = (
                f'<div class="text-xs text-slate-600">{_attr(stat.get("description"))}</div>'
                if stat.get("description") else ""
            )
            items.append(
                '<div class="text-center p-4 bg-white rounded-lg shadow-sm border">'
                f'<div class="text-2xl font-bold text-teal-600 mb-1">{_attr(stat.get("number"))}</div>'
                f'<div class="text-sm font-medium text-slate-800 mb-1">{_attr(stat.get("label"))}</div>'
                f"{description}</div>"
            )
        cols = min(len(stats), 4)
        return (
            f'<div class="my-8">{title}'
            f'<div class="grid grid-cols-1 sm:grid-cols-2 lg:grid-cols-{cols} gap-6">{"".join(items)}</div></div>'
        )

    def render_two_column_content(self, block: dict[str, Any]) -> str:
        return (
            '<div class="my-8 grid md:grid-cols-2 gap-8">'
            f'<div class="prose prose-slate max-w-none">{self.render_blocks(block.get("leftColumn"))}</div>'
            f'<div class="prose prose-slate max-w-none">{self.render_blocks(block.get("rightColumn"))}</div>'
            "</div>"
        )

    def render_timeline(self, block: dict[str, Any]) -> str:
        events = block.get("events")
        if not isinstance(events, list) or not events:
            return ""
        title = (
            f'<h3 class="text-xl font-semibold mb-8 text-center">{_attr(block.get("title"))}</h3>'
            if block.get("title") else ""
        )
        items = []
        for event in events:
            tone = "text-teal-800" if event.get("isImportant") else "text-slate-800"
            items.append(
                '<div class="relative flex items-start"><div class="ml-12 pb-6">'
                '<div class="bg-white p-4 rounded-lg shadow-sm border">'
                f'<h4 class="font-semibold {tone}">{_attr(event.get("title"))}</h4>'
                f'<span class="text-sm text-slate-500">{_attr(event.get("date"))}</span>'
                f'<p class="text-sm text-slate-600">{_attr(event.get("description"))}</p>'
                "</div></div></div>"
            )
        return f'<div class="my-8">{title}<div class="space-y-6">{"".join(items)}</div></div>'

    @staticmethod
    def extract_text(blocks: Any) -> list[str]:
        """블록별 평문 (검색/SEO용)"""
        if isinstance(blocks, str):
            return [blocks]
        if not isinstance(blocks, list):
            return []
        texts = []
        for block in blocks:
            if not isinstance(block, dict) or block.get("_type") != "block":
                continue
            text = "".join(
                child.get("text") or ""
                for child in block.get("children") or []
                if isinstance(child, dict)
            )
            if text:
                texts.append(text)
        return texts

    @classmethod
    def to_plain_text(cls, blocks: Any) -> str:
        return "\n\n".join(cls.extract_text(blocks))
