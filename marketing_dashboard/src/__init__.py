"""Marketing contribution dashboard package."""

from .application import DashboardResult, build_dashboard, run_dashboard_pipeline
from .ingestion import read_marketing_data, write_output_excel
from .rollup import compute_region_channel_rollup, compute_region_rollup, compute_totals

__all__ = [
    "compute_totals",
    "compute_region_rollup",
    "compute_region_channel_rollup",
    "read_marketing_data",
    "write_output_excel",
    "DashboardResult",
    "build_dashboard",
    "run_dashboard_pipeline",
]
