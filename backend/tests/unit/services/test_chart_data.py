"""
Unit Tests for chart data shaping
"""
import pytest

from app.core.exceptions import ColumnNotFoundError
from app.services.chart_data import (
    BAR_COLORS,
    BAR_MAX_HEIGHT,
    LINE_COLORS,
    PIE_PALETTE,
    build_chart_data,
    check_axes,
    to_number,
)

ROWS = [
    {"Month": "Jan", "Revenue": 100},
    {"Month": "Feb", "Revenue": "250"},
    {"Month": "Mar", "Revenue": None},
    {"Month": "Apr", "Revenue": 50.5},
]


class TestToNumber:

    @pytest.mark.parametrize("value, expected", [
        (10, 10),
        (2.5, 2.5),
        (4.0, 4),
        ("12", 12),
        ("12.5kg", 12.5),
        ("  -3", -3),
        ("1e3", 1000),
        ("abc", 0),
        ("", 0),
        (None, 0),
        (True, 0),
        (float("nan"), 0),
        (float("inf"), 0),
        ("Infinity", 0),
        ("-Infinity", 0),
        ("1e999", 0),
        ([1], 0),
    ])
    def test_conversion(self, value, expected):
        assert to_number(value) == expected


class TestCheckAxes:

    def test_known_columns(self):
        check_axes(["Month", "Revenue"], "Month", "Revenue")

    def test_unknown_column(self):
        with pytest.raises(ColumnNotFoundError) as exc_info:
            check_axes(["Month", "Revenue"], "Month", "Cost")

        assert exc_info.value.details["column"] == "Cost"

    def test_build_checks_columns_when_given(self):
        with pytest.raises(ColumnNotFoundError):
            build_chart_data(ROWS, "Week", "Revenue", "bar", columns=["Month", "Revenue"])


class TestBuildChartData:

    def test_bar(self):
        data = build_chart_data(ROWS, "Month", "Revenue", "bar")

        assert data["labels"] == ["Jan", "Feb", "Mar", "Apr"]
        dataset = data["datasets"][0]
        assert dataset["label"] == "Revenue"
        assert dataset["data"] == [100, 250, 0, 50.5]
        assert (dataset["backgroundColor"], dataset["borderColor"]) == BAR_COLORS
        assert dataset["fill"] is True

    def test_line(self):
        dataset = build_chart_data(ROWS, "Month", "Revenue", "line")["datasets"][0]

        assert (dataset["backgroundColor"], dataset["borderColor"]) == LINE_COLORS
        assert dataset["fill"] is False

    def test_pie_sums_repeated_labels(self):
        rows = [
            {"Team": "A", "Points": 3},
            {"Team": "B", "Points": 1},
            {"Team": "A", "Points": 2},
        ]

        data = build_chart_data(rows, "Team", "Points", "pie")

        assert data["labels"] == ["A", "B"]
        assert data["datasets"][0]["data"] == [5, 1]
        assert data["datasets"][0]["backgroundColor"] == PIE_PALETTE

    def test_scatter_uses_numeric_x_or_row_index(self):
        rows = [
            {"x": 1.5, "y": 2},
            {"x": "3", "y": 4},
            {"x": "n/a", "y": 6},
        ]

        data = build_chart_data(rows, "x", "y", "scatter")

        assert data["datasets"][0]["data"] == [
            {"x": 1.5, "y": 2},
            {"x": 3, "y": 4},
            {"x": 2, "y": 6},
        ]

    def test_column_3d(self):
        rows = [{"k": "a", "v": 5}, {"k": "b", "v": 10}]

        data = build_chart_data(rows, "k", "v", "3d-column")

        assert data["labels"] == ["a", "b"]
        assert data["values"] == [5, 10]
        first, second = data["bars"]
        assert first["height"] == BAR_MAX_HEIGHT / 2
        assert second["height"] == BAR_MAX_HEIGHT
        assert first["color"] == "hsl(0, 70%, 50%)"
        assert second["color"] == "hsl(180, 70%, 50%)"
        assert first["position"] == pytest.approx(-1.2)
        assert second["position"] == pytest.approx(0)

    def test_column_3d_without_positive_values(self):
        rows = [{"k": "a", "v": 0}, {"k": "b", "v": -4}]

        bars = build_chart_data(rows, "k", "v", "3d-column")["bars"]

        assert [bar["height"] for bar in bars] == [0, 0]

    def test_unknown_type_gets_plain_shape(self):
        data = build_chart_data(ROWS, "Month", "Revenue", "radar")

        assert data == {"labels": ["Jan", "Feb", "Mar", "Apr"], "values": [100, 250, 0, 50.5]}

    def test_no_rows(self):
        data = build_chart_data([], "Month", "Revenue", "3d-column")

        assert data == {"labels": [], "values": [], "bars": []}
