"""
AI Summary Service

Produces a narrative summary of an analysis. With ANTHROPIC_API_KEY set
the summary comes from Claude; otherwise a statistical summary is built
locally so the feature keeps working in demo setups.
"""
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
import pandas as pd
from anthropic import APIConnectionError, APIError, APIStatusError, APITimeoutError, AsyncAnthropic

from app.core.config import settings
from app.core.exceptions import AIServiceError
from app.core.logging_config import logger
from app.models.analysis import Analysis

SOURCE_ANTHROPIC = "anthropic"
SOURCE_BUILTIN = "builtin"

SYSTEM_PROMPT = (
    "You are a data analyst. You receive a sample of a spreadsheet and write "
    "a concise, well structured report for a non-technical reader."
)


def build_summary_prompt(analysis: Analysis, preview_rows: Optional[int] = None) -> str:
    """Prompt describing the workbook plus a sample of its rows"""
    if preview_rows is None:
        preview_rows = settings.AI_SUMMARY_PREVIEW_ROWS
    preview = analysis.data[:preview_rows]

    return (
        "Analyze this Excel data and provide insights:\n"
        "\n"
        f"File: {analysis.original_name}\n"
        f"Rows: {analysis.row_count}\n"
        f"Columns: {', '.join(analysis.columns)}\n"
        "\n"
        f"Sample data (first {preview_rows} rows):\n"
        f"{json.dumps(preview, indent=2, default=str)}\n"
        "\n"
        "Please provide:\n"
        "1. Key insights about the data\n"
        "2. Potential trends or patterns\n"
        "3. Suggested visualizations\n"
        "4. Data quality observations\n"
    )


def _numeric_columns(frame: pd.DataFrame) -> List[str]:
    numeric = []
    for column in frame.columns:
        series = frame[column]
        if series.dropna().empty or pd.api.types.is_bool_dtype(series):
            continue
        if pd.api.types.is_numeric_dtype(series):
            numeric.append(column)
    return numeric


def _format_number(value: float) -> str:
    return f"{value:,.2f}".rstrip("0").rstrip(".")


def build_builtin_summary(analysis: Analysis) -> str:
    """Deterministic statistical summary, used when no AI provider is configured"""
    frame = pd.DataFrame(analysis.data, columns=analysis.columns)
    numeric = _numeric_columns(frame)
    text_columns = [c for c in analysis.columns if c not in numeric]

    lines = [
        f"Summary of {analysis.original_name}",
        "",
        "1. Key insights about the data",
        f"- {analysis.row_count} rows across {len(analysis.columns)} columns "
        f"({len(numeric)} numeric, {len(text_columns)} text or mixed).",
    ]
    for column in numeric:
        series = pd.to_numeric(frame[column], errors="coerce").dropna()
        lines.append(
            f"- {column}: min {_format_number(series.min())}, "
            f"max {_format_number(series.max())}, "
            f"mean {_format_number(series.mean())}, total {_format_number(series.sum())}"
        )
    for column in text_columns:
        lines.append(f"- {column}: {int(frame[column].nunique(dropna=True))} distinct values")

    lines += ["", "2. Potential trends or patterns"]
    trends = []
    for column in numeric:
        series = pd.to_numeric(frame[column], errors="coerce").dropna()
        if len(series) < 2:
            continue
        first, last = series.iloc[0], series.iloc[-1]
        if last > first:
            direction = "increases"
        elif last < first:
            direction = "decreases"
        else:
            direction = "ends where it started"
        trends.append(f"- {column} {direction} from the first row ({_format_number(first)}) "
                      f"to the last row ({_format_number(last)}).")
    lines += trends or ["- Not enough numeric data to detect trends."]

    lines += ["", "3. Suggested visualizations"]
    label_column = text_columns[0] if text_columns else (analysis.columns[0] if analysis.columns else None)
    suggestions = []
    for column in numeric:
        if label_column and label_column != column:
            suggestions.append(f"- Bar or 3D column chart of {column} by {label_column}.")
        else:
            suggestions.append(f"- Line chart of {column} across rows.")
    if len(numeric) >= 2:
        suggestions.append(f"- Scatter plot of {numeric[1]} against {numeric[0]}.")
    if text_columns and numeric:
        suggestions.append(f"- Pie chart of {numeric[0]} grouped by {text_columns[0]}.")
    lines += suggestions or ["- A table view; no numeric columns were found."]

    lines += ["", "4. Data quality observations"]
    empty_counts = frame.isna().sum()
    gaps = [f"- {column}: {int(count)} empty cells" for column, count in empty_counts.items() if count]
    lines += gaps or ["- No empty cells found."]
    mixed = [c for c in text_columns if frame[c].dropna().map(type).nunique() > 1]
    if mixed:
        lines.append(f"- Mixed value types in: {', '.join(mixed)}")

    return "\n".join(lines)


class AISummaryService:
    """Generates analysis summaries with Claude or the built-in fallback"""

    def __init__(self, client: Optional[AsyncAnthropic] = None):
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None or settings.ai_enabled()

    def _get_client(self) -> AsyncAnthropic:
        if self._client is None:
            client_kwargs: Dict[str, Any] = {
                "api_key": settings.ANTHROPIC_API_KEY,
                "timeout": httpx.Timeout(float(settings.CLAUDE_REQUEST_TIMEOUT), connect=10.0),
                "max_retries": 2,
            }
            if settings.ANTHROPIC_BASE_URL and settings.ANTHROPIC_BASE_URL.strip():
                client_kwargs["base_url"] = settings.ANTHROPIC_BASE_URL.strip()
            self._client = AsyncAnthropic(**client_kwargs)
        return self._client

    async def _generate(self, prompt: str) -> str:
        logger.info(f"Claude API: model={settings.CLAUDE_MODEL}, prompt_len={len(prompt)}")
        try:
            response = await self._get_client().messages.create(
                model=settings.CLAUDE_MODEL,
                max_tokens=settings.CLAUDE_MAX_TOKENS,
                temperature=settings.CLAUDE_TEMPERATURE,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
        except (APIConnectionError, APITimeoutError) as e:
            logger.error(f"Claude API network error: {type(e).__name__}")
            raise AIServiceError()
        except (APIStatusError, APIError) as e:
            logger.error(f"Claude API error: {e}")
            raise AIServiceError()

        text = "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
        if not text.strip():
            raise AIServiceError("AI provider returned an empty summary")
        return text

    async def summarize(self, analysis: Analysis) -> Dict[str, Any]:
        """
        Summarize an analysis.

        Returns:
            {summary, generated_at, source}

        Raises:
            AIServiceError: provider call failed
        """
        if self.enabled:
            summary = await self._generate(build_summary_prompt(analysis))
            source = SOURCE_ANTHROPIC
        else:
            summary = build_builtin_summary(analysis)
            source = SOURCE_BUILTIN

        logger.info(f"[AISummary] Generated {source} summary for analysis {analysis.id}")
        return {
            "summary": summary,
            "generated_at": datetime.utcnow(),
            "source": source,
        }


ai_summary_service = AISummaryService()
