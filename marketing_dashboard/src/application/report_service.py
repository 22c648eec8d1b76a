"""Application service for the end-to-end dashboard pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from time import perf_counter
from typing import Any

from src.application.dashboard_service import DashboardResult, build_dashboard, summary_payload, workbook_sheets
from src.infrastructure import load_record_frame, save_dashboard_html, save_output_workbook, save_summary_json

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_INPUT_PATH = PROJECT_ROOT / "data" / "marketing-data.json"
DEFAULT_OUTPUT_DIR = PROJECT_ROOT / "output"


@dataclass(frozen=True)
class PipelineOutputs:
    result: DashboardResult
    load_meta: dict[str, Any]
    json_path: Path
    html_path: Path
    excel_path: Path
    excel_saved: bool
    stage_timings: list[tuple[str, float]]


def run_dashboard_pipeline(
    input_path: Path = DEFAULT_INPUT_PATH,
    output_dir: Path = DEFAULT_OUTPUT_DIR,
    use_cache: bool = True,
) -> PipelineOutputs:
    pipeline_start = perf_counter()
    stage_start = pipeline_start
    stage_timings: list[tuple[str, float]] = []

    def _mark(stage_name: str) -> None:
        nonlocal stage_start
        now = perf_counter()
        stage_timings.append((stage_name, now - stage_start))
        stage_start = now

    output_json_path = output_dir / "summary.json"
    output_html_path = output_dir / "dashboard.html"
    output_excel_path = output_dir / "summary.xlsx"

    frame, load_meta = load_record_frame(input_path, cache_dir=output_dir / ".cache", use_cache=use_cache)
    _mark("load_record_frame")
    result = build_dashboard(frame)
    _mark("build_dashboard")

    save_summary_json(output_json_path, summary_payload(result, load_meta=load_meta))
    save_dashboard_html(output_html_path, result)
    _mark("save_json_html")

    excel_error = save_output_workbook(output_excel_path, workbook_sheets(result))
    excel_saved = excel_error is None
    _mark("save_excel")
    total_elapsed = perf_counter() - pipeline_start

    print(
        "Dashboard prepared: "
        f"records={result.record_count}, "
        f"regions={len(result.regions)}, "
        f"channels={result.channel_count}"
    )
    stage_text = ", ".join([f"{name}={seconds:.3f}s" for name, seconds in stage_timings])
    print(f"Stage Timing: {stage_text}")
    print(f"Total Elapsed: {total_elapsed:.3f}s")
    print(f"Load Meta: {load_meta}")
    print(f"Saved JSON: {output_json_path}")
    print(f"Saved HTML: {output_html_path}")
    if excel_saved:
        print(f"Saved Excel: {output_excel_path}")
    else:
        print(f"Excel save skipped (file may be open/locked): {excel_error}")

    return PipelineOutputs(
        result=result,
        load_meta=load_meta,
        json_path=output_json_path,
        html_path=output_html_path,
        excel_path=output_excel_path,
        excel_saved=excel_saved,
        stage_timings=stage_timings,
    )
