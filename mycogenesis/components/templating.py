"""Jinja2 템플릿 환경 (components/templates)"""
import os
from datetime import date, datetime
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

current_dir = os.path.dirname(os.path.abspath(__file__))
template_dir = os.path.join(current_dir, "templates")


def datefmt(value: Any, fmt: str = "%B %d, %Y") -> str:
    """datetime/date는 포맷, 문자열은 ISO 파싱 시도 후 그대로"""
    if isinstance(value, (datetime, date)):
        return value.strftime(fmt)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime(fmt)
        except ValueError:
            return value
    return "" if value is None else str(value)


env = Environment(
    loader=FileSystemLoader(template_dir),
    autoescape=select_autoescape(["html", "xml"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
env.filters["datefmt"] = datefmt


def render_template(name: str, **context) -> str:
    return env.get_template(name).render(**context)


def render_page(head: str, body: str, notifications=None) -> str:
    """<head> 조각 + 본문 → 전체 HTML 문서"""
    return render_template("page.html", head=Markup(head), body=Markup(body), notifications=notifications or [])
