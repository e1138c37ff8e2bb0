"""
Excel upload and analysis endpoints

Every route is scoped to the authenticated user; analyses owned by
someone else behave exactly like missing ones (404).
"""

import time
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile, status
from starlette.concurrency import run_in_threadpool

from app.core.database import get_storage
from app.core.exceptions import ChartNotFoundError, UnsupportedFormatError
from app.core.logging_config import logger
from app.core.rate_limiter import limiter, AI_SUMMARY_LIMIT
from app.models.analysis import Analysis, ChartConfig
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, get_user_analysis
from app.schemas.analysis import (
    AISummaryResponse,
    AnalysisResponse,
    AnalysisSummary,
    ChartRequest,
    ChartResponse,
    UploadedAnalysis,
    UploadResponse,
)
from app.services.ai_summary import AISummaryService, ai_summary_service
from app.services.chart_data import build_chart_data
from app.services.chart_export import EXPORT_FORMATS, render_chart
from app.services.excel_parser import parse_workbook, validate_upload
from app.storage import Storage

router = APIRouter()


def get_ai_summary_service() -> AISummaryService:
    return ai_summary_service


def attachment_header(filename: str) -> str:
    """Content-Disposition value that survives non-ASCII file names"""
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "'")
    header = f'attachment; filename="{fallback}"'
    if fallback != filename:
        header += f"; filename*=UTF-8''{quote(filename)}"
    return header


# ==================== Upload / History ====================

@router.post("/upload", response_model=UploadResponse)
async def upload_excel(
    excel: Optional[UploadFile] = File(None, description="Excel workbook (.xls or .xlsx)"),
    current_user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    """
    Upload an Excel workbook.

    The first sheet is parsed into rows keyed by header and stored as a
    new analysis owned by the caller.
    """
    if excel is None or not excel.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded"
        )

    content = await excel.read()
    validate_upload(excel.filename, excel.content_type, len(content))

    parsed = await run_in_threadpool(parse_workbook, content, excel.filename)

    analysis = await storage.analyses.create(
        user_id=current_user.id,
        filename=f"{int(time.time() * 1000)}_{excel.filename}",
        original_name=excel.filename,
        data=parsed.rows,
        columns=parsed.columns,
    )
    await storage.users.add_upload(current_user.id, analysis.id)

    logger.info(
        f"[Files] User {current_user.id} uploaded {excel.filename} -> analysis {analysis.id} "
        f"({analysis.row_count} rows)"
    )

    return UploadResponse(
        analysis=UploadedAnalysis(
            id=analysis.id,
            filename=analysis.original_name,
            columns=analysis.columns,
            row_count=analysis.row_count,
            upload_date=analysis.created_at,
        )
    )


@router.get("/history", response_model=List[AnalysisSummary])
async def get_history(
    current_user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    """Caller's analyses, newest first, without row data"""
    analyses = await storage.analyses.list_for_user(current_user.id)
    return [AnalysisSummary.model_validate(a.model_dump()) for a in analyses]


@router.get("/{analysis_id}", response_model=AnalysisResponse)
async def get_analysis(analysis: Analysis = Depends(get_user_analysis)):
    return AnalysisResponse.model_validate(analysis.model_dump())


@router.delete("/{analysis_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_analysis(
    analysis: Analysis = Depends(get_user_analysis),
    storage: Storage = Depends(get_storage)
):
    """Delete one of the caller's analyses"""
    await storage.analyses.delete(analysis.id)
    await storage.users.remove_upload(analysis.user_id, analysis.id)

    logger.info(f"[Files] User {analysis.user_id} deleted analysis {analysis.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==================== Charts ====================

@router.post("/{analysis_id}/chart", response_model=ChartResponse)
async def create_chart(
    chart_request: ChartRequest,
    analysis: Analysis = Depends(get_user_analysis),
    storage: Storage = Depends(get_storage)
):
    """Reshape the analysis rows for a chart and save the chart on the analysis"""
    config = build_chart_data(
        analysis.data,
        chart_request.x_axis,
        chart_request.y_axis,
        chart_request.chart_type.value,
        columns=analysis.columns,
    )

    chart = ChartConfig(
        type=chart_request.chart_type,
        x_axis=chart_request.x_axis,
        y_axis=chart_request.y_axis,
        config=config,
    )
    await storage.analyses.add_chart(analysis.id, chart)

    logger.info(f"[Files] Chart {chart.type.value} ({chart.x_axis} x {chart.y_axis}) saved on analysis {analysis.id}")
    return ChartResponse(chart=chart)


@router.get("/{analysis_id}/download/{fmt}")
async def download_chart(
    fmt: str,
    analysis: Analysis = Depends(get_user_analysis)
):
    """Render the analysis' first saved chart as PNG or PDF"""
    fmt = fmt.lower()
    if fmt not in EXPORT_FORMATS:
        raise UnsupportedFormatError(fmt, list(EXPORT_FORMATS))
    if not analysis.charts:
        raise ChartNotFoundError(analysis.id)

    content = await run_in_threadpool(render_chart, analysis.charts[0], fmt)

    return Response(
        content=content,
        media_type=EXPORT_FORMATS[fmt],
        headers={"Content-Disposition": attachment_header(f"{analysis.original_name}_chart.{fmt}")}
    )


# ==================== AI Summary ====================

@router.post("/{analysis_id}/ai-summary", response_model=AISummaryResponse)
@limiter.limit(AI_SUMMARY_LIMIT)
async def create_ai_summary(
    request: Request,
    analysis: Analysis = Depends(get_user_analysis),
    summary_service: AISummaryService = Depends(get_ai_summary_service)
):
    """Generate a narrative summary of the analysis (rate limited: 10/min)"""
    result = await summary_service.summarize(analysis)
    return AISummaryResponse(**result)
