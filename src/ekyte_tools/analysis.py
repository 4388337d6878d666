"""Heuristics over captured page HTML."""

from __future__ import annotations

import re
from typing import Any

PREVIEW_LENGTH = 500

_TASK_WORDS = re.compile(r"task|tarefa", re.IGNORECASE)
_BUTTONS = re.compile(r"<button", re.IGNORECASE)
_SCRIPTS = re.compile(r"<script", re.IGNORECASE)

_LEARNINGS = (
    ("hasTasks", "The page shows a task list"),
    ("hasFilters", "The interface offers filters"),
    ("hasTable", "Tasks are rendered as a table"),
    ("hasAngular", "The application renders client-side with Angular"),
)


def analyze_content(html: str) -> dict[str, Any]:
    """Summarize which UI features appear in *html*."""

    return {
        "contentLength": len(html),
        "hasTasks": "task" in html or "tarefa" in html,
        "hasFilters": "filter" in html or "filtro" in html,
        "hasTable": "<table" in html or "tbody" in html,
        "hasButtons": "<button" in html,
        "hasInputs": "<input" in html,
        "hasDropdowns": "<select" in html or "dropdown" in html,
        "hasAngular": "ng-" in html or "angular" in html or "app-" in html,
        "hasReact": "react" in html or "jsx" in html,
        "hasVue": "v-" in html or "vue" in html,
        "taskCount": len(_TASK_WORDS.findall(html)),
        "buttonCount": len(_BUTTONS.findall(html)),
        "scriptCount": len(_SCRIPTS.findall(html)),
        "contentPreview": html[:PREVIEW_LENGTH],
    }


def learnings_from(analysis: dict[str, Any]) -> list[str]:
    return [text for flag, text in _LEARNINGS if analysis.get(flag)]
