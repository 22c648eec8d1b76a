"""Infrastructure layer package."""

from .dataset_repository import load_record_frame, save_output_workbook
from .report_exporter import save_dashboard_html, save_summary_json

__all__ = ["load_record_frame", "save_output_workbook", "save_summary_json", "save_dashboard_html"]
