"""튜토리얼 컴포넌트 - 단계 이동 + 진행 상황 저장

진행 상황은 KeyValueStorage의 tutorial_progress_<tutorial _id> 키에
{currentStep, completedSteps, lastAccessed} JSON으로 저장됩니다.
currentStep == -1 은 개요, == 단계 수 는 완료 화면입니다.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Optional

from markupsafe import Markup

from mycogenesis.core.exceptions import ContentNotFoundException, StorageException
from mycogenesis.core.logging import logger
from mycogenesis.core.storage import KeyValueStorage, MemoryStorage

from .content_renderer import ContentRenderer
from .seo_manager import SEOManager
from .templating import render_template

OVERVIEW_STEP = -1

DIFFICULTY_STYLES = {
    "beginner": "bg-green-100 text-green-800",
    "intermediate": "bg-yellow-100 text-yellow-800",
    "advanced": "bg-orange-100 text-orange-800",
    "expert": "bg-red-100 text-red-800",
}

TIP_STYLES = {
    "tip": "bg-blue-50 border-blue-200 text-blue-800",
    "warning": "bg-amber-50 border-amber-200 text-amber-800",
    "note": "bg-slate-50 border-slate-200 text-slate-800",
    "troubleshooting": "bg-red-50 border-red-200 text-red-800",
}


def progress_key(tutorial_id: str) -> str:
    return f"tutorial_progress_{tutorial_id}"


class TutorialComponent:
    def __init__(self, storage: Optional[KeyValueStorage] = None, renderer: Optional[ContentRenderer] = None) -> None:
        self.storage = storage if storage is not None else MemoryStorage()
        self.renderer = renderer or ContentRenderer()
        self.tutorial: Optional[dict[str, Any]] = None
        self.current_step = 0
        self.completed_steps: set[int] = set()
        self.not_found = False
        self.error: Optional[str] = None

    def init(self, tutorial: Optional[dict[str, Any]]) -> "TutorialComponent":
        self.tutorial = tutorial
        self.not_found = tutorial is None
        self.current_step = 0
        self.completed_steps = set()
        if tutorial is not None:
            self.load_progress()
        return self

    async def load(self, coordinator: Any, slug: str) -> "TutorialComponent":
        try:
            tutorial = await coordinator.load_tutorial(slug)
        except ContentNotFoundException:
            return self.init(None)
        except Exception as e:
            logger.error(f"[TUTORIAL] Error loading tutorial {slug}: {e}")
            self.error = "We're having trouble loading this tutorial. Please try again later."
            return self
        return self.init(tutorial)

    @property
    def steps(self) -> list[dict[str, Any]]:
        return (self.tutorial or {}).get("steps") or []

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def storage_key(self) -> Optional[str]:
        if not self.tutorial or not self.tutorial.get("_id"):
            return None
        return progress_key(self.tutorial["_id"])

    # ------------------------------------------------------------------
    # 진행 상황 저장
    # ------------------------------------------------------------------
    def load_progress(self) -> Optional[dict[str, Any]]:
        key = self.storage_key
        if key is None:
            return None
        try:
            raw = self.storage.get_item(key)
        except StorageException as e:
            logger.warning(f"[TUTORIAL] Failed to read tutorial progress: {e}")
            return None
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"[TUTORIAL] Failed to parse tutorial progress: {e}")
            return None

        self.current_step = int(data.get("currentStep") or 0)
        self.completed_steps = {int(i) for i in data.get("completedSteps") or []}
        return data

    def save_progress(self) -> None:
        key = self.storage_key
        if key is None:
            return
        data = {
            "currentStep": self.current_step,
            "completedSteps": sorted(self.completed_steps),
            "lastAccessed": datetime.now(timezone.utc).isoformat(),
        }
        self.storage.set_item(key, json.dumps(data))

    def reset_progress(self) -> None:
        self.completed_steps.clear()
        self.current_step = 0
        key = self.storage_key
        if key is not None:
            self.storage.remove_item(key)

    # ------------------------------------------------------------------
    # 이동
    # ------------------------------------------------------------------
    def show_overview(self) -> None:
        self.current_step = OVERVIEW_STEP

    def start_tutorial(self) -> None:
        self.current_step = 0

    def go_to_step(self, index: int) -> bool:
        if 0 <= index < self.total_steps:
            self.current_step = index
            self.save_progress()
            return True
        return False

    def previous_step(self) -> bool:
        if self.current_step > 0:
            self.current_step -= 1
            self.save_progress()
            return True
        return False

    def next_step(self) -> bool:
        """다음 단계로 이동, 마지막 단계에서는 완료 화면 (False 반환)"""
        if self.current_step < self.total_steps - 1:
            self.current_step += 1
            self.save_progress()
            return True
        self.current_step = self.total_steps
        return False

    def toggle_step_complete(self, index: int) -> bool:
        if index in self.completed_steps:
            self.completed_steps.discard(index)
        else:
            self.completed_steps.add(index)
        self.save_progress()
        return index in self.completed_steps

    @property
    def progress_percent(self) -> float:
        if self.total_steps == 0:
            return 0.0
        return len(self.completed_steps) / self.total_steps * 100

    @property
    def is_complete(self) -> bool:
        return self.total_steps > 0 and self.current_step >= self.total_steps

    # ------------------------------------------------------------------
    # 렌더링
    # ------------------------------------------------------------------
    def render(self) -> Markup:
        step = self.steps[self.current_step] if 0 <= self.current_step < self.total_steps else None
        return Markup(render_template(
            "tutorial.html",
            component=self,
            tutorial=self.tutorial or {},
            step=step,
            difficulty_styles=DIFFICULTY_STYLES,
            tip_styles=TIP_STYLES,
        ))

    def seo(self, seo: Optional[SEOManager] = None) -> SEOManager:
        seo = seo or SEOManager()
        if self.tutorial:
            seo.set_tutorial_seo(self.tutorial)
        else:
            seo.set_error_state("404" if self.not_found else "error")
        return seo
