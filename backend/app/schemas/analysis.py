from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal
from datetime import datetime

from app.models.analysis import ChartConfig, ChartType


# ==================== Upload / History ====================

class UploadedAnalysis(BaseModel):
    """Short description of a freshly parsed upload"""
    id: str
    filename: str  # original file name
    columns: List[str]
    row_count: int
    upload_date: datetime


class UploadResponse(BaseModel):
    message: str = "File uploaded and parsed successfully"
    analysis: UploadedAnalysis


class AnalysisSummary(BaseModel):
    """History entry, row data left out"""
    id: str
    filename: str
    original_name: str
    columns: List[str]
    row_count: int
    created_at: datetime


class AnalysisResponse(AnalysisSummary):
    user_id: str
    data: List[Dict[str, Any]]
    charts: List[ChartConfig]
    updated_at: datetime


# ==================== Charts ====================

class ChartRequest(BaseModel):
    """Accepts snake_case or the camelCase keys older clients send"""
    model_config = ConfigDict(populate_by_name=True)

    chart_type: ChartType = Field(validation_alias=AliasChoices("chart_type", "chartType"))
    x_axis: str = Field(min_length=1, validation_alias=AliasChoices("x_axis", "xAxis"))
    y_axis: str = Field(min_length=1, validation_alias=AliasChoices("y_axis", "yAxis"))


class ChartResponse(BaseModel):
    message: str = "Chart created successfully"
    chart: ChartConfig


# ==================== AI Summary ====================

class AISummaryResponse(BaseModel):
    summary: str
    generated_at: datetime
    source: Literal["anthropic", "builtin"]
