"""
Chart Data - reshapes analysis rows into chart-ready payloads

The payloads use the Chart.js data layout (labels + datasets) so the
frontend can hand them straight to the chart component. The 3D column
chart gets precomputed bar geometry instead.
"""
import math
import re
from typing import Any, Dict, List, Optional, Sequence

from app.core.exceptions import ColumnNotFoundError
from app.models.analysis import ChartType

BAR_COLORS = ("rgba(54, 162, 235, 0.2)", "rgba(54, 162, 235, 1)")
LINE_COLORS = ("rgba(75, 192, 192, 0.2)", "rgba(75, 192, 192, 1)")

PIE_PALETTE = [
    "#FF6384", "#36A2EB", "#FFCE56", "#4BC0C0", "#9966FF",
    "#FF9F40", "#FF6384", "#C9CBCF", "#4BC0C0", "#FF6384",
]

# 3D column layout
BAR_MAX_HEIGHT = 8
BAR_SPACING = 1.2

_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_FULL_NUMBER = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?\s*$")


def to_number(value: Any) -> float:
    """
    Lenient numeric conversion.

    Numbers pass through, strings use their leading numeric prefix
    ("12.5kg" -> 12.5), everything else (None, booleans, text,
    NaN, infinity) is 0. "Infinity" and overflowing strings like
    "1e999" are 0 too, since chart payloads must stay valid JSON.
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value.lstrip())
        if not match:
            return 0
        number = float(match.group(0))
    else:
        return 0

    if isinstance(number, float):
        if math.isnan(number) or math.isinf(number):
            return 0
        if number.is_integer():
            return int(number)
    return number


def _is_numeric_label(value: Any) -> bool:
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, (int, float)):
        return not (isinstance(value, float) and (math.isnan(value) or math.isinf(value)))
    return isinstance(value, str) and bool(_FULL_NUMBER.match(value))


def check_axes(columns: Sequence[str], x_axis: str, y_axis: str) -> None:
    """Raise ColumnNotFoundError unless both axes are known columns"""
    for column in (x_axis, y_axis):
        if column not in columns:
            raise ColumnNotFoundError(column, list(columns))


def _dataset_chart(labels: List[Any], values: List[float], y_axis: str, chart_type: str) -> Dict[str, Any]:
    background, border = BAR_COLORS if chart_type == ChartType.BAR.value else LINE_COLORS
    return {
        "labels": labels,
        "datasets": [{
            "label": y_axis,
            "data": values,
            "backgroundColor": background,
            "borderColor": border,
            "borderWidth": 1,
            "fill": chart_type != ChartType.LINE.value,
        }],
    }


def _pie_chart(labels: List[Any], values: List[float]) -> Dict[str, Any]:
    totals: Dict[Any, float] = {}
    for label, value in zip(labels, values):
        totals[label] = totals.get(label, 0) + value

    return {
        "labels": list(totals.keys()),
        "datasets": [{
            "data": list(totals.values()),
            "backgroundColor": PIE_PALETTE,
            "borderWidth": 1,
        }],
    }


def _scatter_chart(labels: List[Any], values: List[float], y_axis: str) -> Dict[str, Any]:
    points = [
        {"x": to_number(label) if _is_numeric_label(label) else index, "y": value}
        for index, (label, value) in enumerate(zip(labels, values))
    ]
    return {
        "datasets": [{
            "label": y_axis,
            "data": points,
            "backgroundColor": BAR_COLORS[1],
        }],
    }


def _column_3d_chart(labels: List[Any], values: List[float]) -> Dict[str, Any]:
    count = len(values)
    max_value = max(values) if values else 0

    bars = []
    for index, (label, value) in enumerate(zip(labels, values)):
        height = (value / max_value) * BAR_MAX_HEIGHT if max_value > 0 else 0
        bars.append({
            "label": label,
            "value": value,
            "height": height,
            "color": f"hsl({index * 360 / count:g}, 70%, 50%)",
            "position": (index - count / 2) * BAR_SPACING,
        })

    return {"labels": labels, "values": values, "bars": bars}


def build_chart_data(
    rows: List[Dict[str, Any]],
    x_axis: str,
    y_axis: str,
    chart_type: str,
    columns: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """
    Reshape rows into the payload for one chart.

    Args:
        rows: Analysis rows
        x_axis: Column used for labels
        y_axis: Column used for values
        chart_type: bar, line, pie, scatter or 3d-column; anything else
            gets the plain {labels, values} shape
        columns: When given, both axes must be among them

    Returns:
        Chart payload dict
    """
    if columns is not None:
        check_axes(columns, x_axis, y_axis)

    labels = [row.get(x_axis) for row in rows]
    values = [to_number(row.get(y_axis)) for row in rows]

    if chart_type in (ChartType.BAR.value, ChartType.LINE.value):
        return _dataset_chart(labels, values, y_axis, chart_type)
    if chart_type == ChartType.PIE.value:
        return _pie_chart(labels, values)
    if chart_type == ChartType.SCATTER.value:
        return _scatter_chart(labels, values, y_axis)
    if chart_type == ChartType.COLUMN_3D.value:
        return _column_3d_chart(labels, values)

    return {"labels": labels, "values": values}
