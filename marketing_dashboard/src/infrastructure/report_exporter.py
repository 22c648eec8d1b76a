"""Infrastructure adapter for summary export targets."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from src.application.dashboard_service import DashboardResult
from src.reporting import write_dashboard_html


def save_summary_json(path: Path, summary: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary, indent=2, ensure_ascii=False), encoding="utf-8")


def save_dashboard_html(path: Path, result: DashboardResult) -> None:
    write_dashboard_html(path, result)
