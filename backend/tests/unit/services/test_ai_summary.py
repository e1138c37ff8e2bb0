"""
Unit Tests for the AI summary service
Tests for: prompt building, built-in summary, Claude calls (mocked)
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from anthropic import APIConnectionError

from app.core.exceptions import AIServiceError
from app.models.analysis import Analysis
from app.services.ai_summary import (
    SOURCE_ANTHROPIC,
    SOURCE_BUILTIN,
    AISummaryService,
    build_builtin_summary,
    build_summary_prompt,
)


@pytest.fixture
def analysis() -> Analysis:
    rows = [
        {"Product": "Widget", "Price": 10, "Stock": 5},
        {"Product": "Gadget", "Price": 25.5, "Stock": None},
        {"Product": "Gizmo", "Price": 40, "Stock": 12},
    ]
    return Analysis(
        id="7",
        user_id="1",
        filename="1700000000000_inventory.xlsx",
        original_name="inventory.xlsx",
        data=rows,
        columns=["Product", "Price", "Stock"],
        row_count=len(rows),
    )


def mock_client(text: str = "Key insights: prices rise."):
    """AsyncAnthropic stand-in whose messages.create returns one text block"""
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)]
    ))
    return client


class TestPrompt:

    def test_prompt_describes_workbook(self, analysis):
        prompt = build_summary_prompt(analysis, preview_rows=2)

        assert "File: inventory.xlsx" in prompt
        assert "Rows: 3" in prompt
        assert "Columns: Product, Price, Stock" in prompt
        assert "first 2 rows" in prompt
        assert "Widget" in prompt and "Gadget" in prompt
        assert "Gizmo" not in prompt
        for section in ("Key insights", "trends or patterns", "visualizations", "Data quality"):
            assert section in prompt


class TestBuiltinSummary:

    def test_sections_and_stats(self, analysis):
        summary = build_builtin_summary(analysis)

        assert summary.startswith("Summary of inventory.xlsx")
        for number in ("1.", "2.", "3.", "4."):
            assert f"\n{number} " in summary
        assert "Price: min 10, max 40" in summary
        assert "Product: 3 distinct values" in summary
        assert "Price increases" in summary
        assert "Stock: 1 empty cells" in summary

    def test_text_only_workbook(self):
        analysis = Analysis(
            id="1", user_id="1", filename="f.xlsx", original_name="f.xlsx",
            data=[{"Name": "a"}, {"Name": "b"}], columns=["Name"], row_count=2,
        )

        summary = build_builtin_summary(analysis)

        assert "Not enough numeric data" in summary
        assert "No empty cells found." in summary


class TestAISummaryService:

    @pytest.mark.asyncio
    async def test_builtin_without_key(self, analysis):
        result = await AISummaryService().summarize(analysis)

        assert result["source"] == SOURCE_BUILTIN
        assert "inventory.xlsx" in result["summary"]

    @pytest.mark.asyncio
    async def test_claude_summary(self, analysis):
        client = mock_client()

        result = await AISummaryService(client=client).summarize(analysis)

        assert result["source"] == SOURCE_ANTHROPIC
        assert result["summary"] == "Key insights: prices rise."
        kwargs = client.messages.create.await_args.kwargs
        assert "inventory.xlsx" in kwargs["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_connection_error(self, analysis):
        client = MagicMock()
        client.messages.create = AsyncMock(
            side_effect=APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com"))
        )

        with pytest.raises(AIServiceError) as exc_info:
            await AISummaryService(client=client).summarize(analysis)

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_empty_reply(self, analysis):
        with pytest.raises(AIServiceError):
            await AISummaryService(client=mock_client("  ")).summarize(analysis)
