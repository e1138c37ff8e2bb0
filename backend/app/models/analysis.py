"""
Analysis model - one uploaded and parsed Excel workbook
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime
import enum


class ChartType(str, enum.Enum):
    """Chart types a saved chart can have"""
    BAR = "bar"
    LINE = "line"
    PIE = "pie"
    SCATTER = "scatter"
    COLUMN_3D = "3d-column"


class ChartConfig(BaseModel):
    """A chart saved against an analysis, with its reshaped data"""

    model_config = ConfigDict(populate_by_name=True)

    type: ChartType
    x_axis: str
    y_axis: str
    config: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class OwnerInfo(BaseModel):
    """Owner fields populated into admin listings"""
    id: str
    name: str
    email: str


class Analysis(BaseModel):
    """
    Parsed workbook.

    `data` holds the rows of the first sheet as dicts keyed by header,
    `columns` keeps the header order.
    """

    id: str
    user_id: str
    filename: str
    original_name: str
    data: List[Dict[str, Any]] = Field(default_factory=list)
    columns: List[str] = Field(default_factory=list)
    row_count: int = 0
    charts: List[ChartConfig] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Only set by admin listings
    owner: Optional[OwnerInfo] = None

    def __repr__(self):
        return f"<Analysis {self.original_name} ({self.row_count} rows)>"
