"""Application layer package."""

from .dashboard_service import DashboardResult, build_dashboard, summary_payload, workbook_sheets
from .report_service import PipelineOutputs, run_dashboard_pipeline

__all__ = [
    "DashboardResult",
    "build_dashboard",
    "summary_payload",
    "workbook_sheets",
    "PipelineOutputs",
    "run_dashboard_pipeline",
]
