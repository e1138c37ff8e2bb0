from app.services.excel_parser import ParsedWorkbook, parse_workbook, validate_upload
from app.services.chart_data import build_chart_data, check_axes
from app.services.chart_export import EXPORT_FORMATS, render_chart
from app.services.ai_summary import AISummaryService, ai_summary_service

__all__ = [
    # Workbooks
    "ParsedWorkbook",
    "parse_workbook",
    "validate_upload",
    # Charts
    "build_chart_data",
    "check_axes",
    "EXPORT_FORMATS",
    "render_chart",
    # AI
    "AISummaryService",
    "ai_summary_service",
]
