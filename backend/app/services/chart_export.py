"""
Chart Export - renders saved charts to PNG or PDF

Rendering uses matplotlib Figure objects on the Agg backend (no pyplot
global state), so it can run in a worker thread.
"""
import colorsys
import re
from io import BytesIO
from typing import Any, Dict, List, Tuple

import matplotlib
matplotlib.use("Agg")
from matplotlib.figure import Figure  # noqa: E402

from app.core.config import settings  # noqa: E402
from app.core.exceptions import UnsupportedFormatError  # noqa: E402
from app.core.logging_config import logger  # noqa: E402
from app.models.analysis import ChartConfig, ChartType  # noqa: E402
from app.services.chart_data import PIE_PALETTE  # noqa: E402

EXPORT_FORMATS: Dict[str, str] = {
    "png": "image/png",
    "pdf": "application/pdf",
}

FIGURE_SIZE = (8, 6)
BAR_COLOR = "#36A2EB"
LINE_COLOR = "#4BC0C0"

_HSL = re.compile(r"hsl\(\s*([\d.]+)\s*,\s*([\d.]+)%\s*,\s*([\d.]+)%\s*\)")


def hsl_to_rgb(value: str) -> Tuple[float, float, float]:
    """'hsl(120, 70%, 50%)' -> matplotlib RGB tuple"""
    match = _HSL.match(value or "")
    if not match:
        return (0.21, 0.64, 0.92)
    hue, saturation, lightness = (float(part) for part in match.groups())
    return colorsys.hls_to_rgb(hue / 360, lightness / 100, saturation / 100)


def _label_text(labels: List[Any]) -> List[str]:
    return ["" if label is None else str(label) for label in labels]


def _first_dataset(config: Dict[str, Any]) -> Dict[str, Any]:
    datasets = config.get("datasets") or [{}]
    return datasets[0]


def _draw_bar_or_line(fig: Figure, chart: ChartConfig) -> None:
    ax = fig.add_subplot()
    labels = _label_text(chart.config.get("labels", []))
    values = _first_dataset(chart.config).get("data") or chart.config.get("values", [])
    positions = list(range(len(values)))

    if chart.type == ChartType.LINE:
        ax.plot(positions, values, color=LINE_COLOR, marker="o", label=chart.y_axis)
    else:
        ax.bar(positions, values, color=BAR_COLOR, alpha=0.6, edgecolor=BAR_COLOR, label=chart.y_axis)

    ax.set_xticks(positions)
    ax.set_xticklabels(labels, rotation=45, ha="right")
    ax.set_xlabel(chart.x_axis)
    ax.set_ylabel(chart.y_axis)
    ax.legend()


def _draw_pie(fig: Figure, chart: ChartConfig) -> None:
    ax = fig.add_subplot()
    labels = _label_text(chart.config.get("labels", []))
    # Wedges can't be negative
    values = [max(value, 0) for value in _first_dataset(chart.config).get("data", [])]

    if not values or sum(values) <= 0:
        ax.text(0.5, 0.5, "No positive values to plot", ha="center", va="center")
        ax.axis("off")
        return

    colors = [PIE_PALETTE[i % len(PIE_PALETTE)] for i in range(len(values))]
    ax.pie(values, labels=labels, colors=colors, autopct="%1.1f%%", startangle=90)
    ax.axis("equal")


def _draw_scatter(fig: Figure, chart: ChartConfig) -> None:
    ax = fig.add_subplot()
    points = _first_dataset(chart.config).get("data", [])
    ax.scatter([point["x"] for point in points], [point["y"] for point in points], color=BAR_COLOR)
    ax.set_xlabel(chart.x_axis)
    ax.set_ylabel(chart.y_axis)


def _draw_column_3d(fig: Figure, chart: ChartConfig) -> None:
    ax = fig.add_subplot(projection="3d")
    bars = chart.config.get("bars", [])

    for bar in bars:
        ax.bar3d(
            bar["position"], 0, 0,
            0.8, 0.8, bar["height"],
            color=hsl_to_rgb(bar.get("color", "")),
            shade=True,
        )

    ax.set_xticks([bar["position"] + 0.4 for bar in bars])
    ax.set_xticklabels(_label_text([bar["label"] for bar in bars]), rotation=45, ha="right")
    ax.set_yticks([])
    ax.set_zlabel(chart.y_axis)


RENDERERS = {
    ChartType.BAR: _draw_bar_or_line,
    ChartType.LINE: _draw_bar_or_line,
    ChartType.PIE: _draw_pie,
    ChartType.SCATTER: _draw_scatter,
    ChartType.COLUMN_3D: _draw_column_3d,
}


def render_chart(chart: ChartConfig, fmt: str) -> bytes:
    """
    Render a saved chart.

    Args:
        chart: Saved chart with its reshaped data
        fmt: "png" or "pdf"

    Returns:
        Encoded image/document bytes

    Raises:
        UnsupportedFormatError: fmt isn't png or pdf
    """
    fmt = fmt.lower()
    if fmt not in EXPORT_FORMATS:
        raise UnsupportedFormatError(fmt, list(EXPORT_FORMATS))

    fig = Figure(figsize=FIGURE_SIZE)
    RENDERERS.get(chart.type, _draw_bar_or_line)(fig, chart)
    fig.suptitle(f"{chart.y_axis} by {chart.x_axis}", fontsize=14, fontweight="bold")
    fig.tight_layout()

    buffer = BytesIO()
    fig.savefig(buffer, format=fmt, dpi=settings.CHART_EXPORT_DPI, facecolor="white")

    logger.debug(f"[ChartExport] Rendered {chart.type.value} chart as {fmt} ({buffer.tell()} bytes)")
    return buffer.getvalue()
