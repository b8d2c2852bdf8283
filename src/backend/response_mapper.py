"""
Model reply -> AnalysisResult.

The reply carries chart data as ``series`` + ``data_points[{label, values}]``;
charts are consumed as one row per category with one field per series, so
each chart is pivoted here.
"""

import json
import logging
import re
from typing import Any, Dict, List, Sequence

from src.core.errors import MalformedReplyError
from src.core.models import AnalysisResult, ChartConfig, FieldDescription, KPIMetric
from src.core.schema import REQUIRED_FIELDS, REQUIRED_LIST_FIELDS

logger = logging.getLogger(__name__)

X_AXIS_KEY = "name"


def _from_fenced_blocks(text: str) -> Any:
    for block in re.findall(r"```(?:json)?\s*([\s\S]*?)```", text, re.IGNORECASE):
        try:
            return json.loads(block.strip())
        except json.JSONDecodeError:
            continue
    return None


def parse_reply(text: str) -> Dict[str, Any]:
    """Parse the reply text as a JSON object."""
    if not text or not text.strip():
        raise MalformedReplyError("Empty reply text")

    candidate = text.strip()
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as e:
        payload = _from_fenced_blocks(candidate)
        if payload is None:
            logger.error(f"Reply is not valid JSON: {candidate[:500]!r}")
            raise MalformedReplyError(f"Reply is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise MalformedReplyError(f"Reply must be a JSON object, got {type(payload).__name__}")
    return payload


def pivot_series(
    series: Sequence[str],
    data_points: Sequence[Dict[str, Any]],
    x_axis_key: str = X_AXIS_KEY,
) -> List[Dict[str, Any]]:
    """Long-to-wide: ``{label, values[]}`` -> ``{x_axis_key: label, series[j]: values[j]}``.

    Row order follows ``data_points`` and field order follows ``series``. A
    value missing from a short ``values`` array (or null) becomes 0.
    """
    rows = []
    for point in data_points:
        values = point.get("values") or []
        row: Dict[str, Any] = {x_axis_key: point.get("label")}
        for j, key in enumerate(series):
            value = values[j] if j < len(values) else None
            row[key] = 0 if value is None else value
        rows.append(row)
    return rows


def _check_structure(raw: Dict[str, Any]) -> None:
    missing = [name for name in REQUIRED_FIELDS if name not in raw]
    if missing:
        raise MalformedReplyError(f"Reply is missing required fields: {', '.join(missing)}")

    not_lists = [name for name in REQUIRED_LIST_FIELDS if not isinstance(raw[name], list)]
    if not_lists:
        raise MalformedReplyError(f"Reply fields must be arrays: {', '.join(not_lists)}")

    for index, chart in enumerate(raw["charts"]):
        if not isinstance(chart, dict):
            raise MalformedReplyError(f"Chart {index} is not an object")
        if not isinstance(chart.get("series"), list) or not isinstance(chart.get("data_points"), list):
            raise MalformedReplyError(f"Chart {index} must carry 'series' and 'data_points' arrays")


def _map_chart(index: int, chart: Dict[str, Any]) -> ChartConfig:
    series = list(chart["series"])
    return ChartConfig(
        id=f"chart-{index}",
        title=chart.get("title", ""),
        description=chart.get("description", ""),
        type=chart.get("type", "bar"),
        x_axis_key=X_AXIS_KEY,
        data_keys=tuple(series),
        data=tuple(pivot_series(series, chart["data_points"])),
    )


def _map_kpi(kpi: Dict[str, Any]) -> KPIMetric:
    return KPIMetric(
        label=kpi.get("label", ""),
        value=kpi.get("value", ""),
        trend=kpi.get("trend"),
        trend_direction=kpi.get("trendDirection"),
        description=kpi.get("description"),
    )


def _map_field_description(item: Dict[str, Any]) -> FieldDescription:
    return FieldDescription(
        field_name=item.get("fieldName", ""),
        source_file=item.get("sourceFile", ""),
        meaning=item.get("meaning", ""),
    )


def map_response(raw: Dict[str, Any]) -> AnalysisResult:
    """Map a schema-conforming reply to the result model."""
    if not isinstance(raw, dict):
        raise MalformedReplyError("Reply must be a JSON object")
    _check_structure(raw)

    try:
        result = AnalysisResult(
            summary=raw["summary"],
            kpis=tuple(_map_kpi(kpi) for kpi in raw["kpis"]),
            charts=tuple(_map_chart(i, chart) for i, chart in enumerate(raw["charts"])),
            field_descriptions=tuple(_map_field_description(fd) for fd in raw["fieldDescriptions"]),
            relationships_found=tuple(raw["relationshipsFound"]),
        )
    except (AttributeError, TypeError) as e:
        raise MalformedReplyError(f"Reply does not match the response schema: {e}") from e

    logger.info(f"Mapped reply: {len(result.kpis)} KPIs, {len(result.charts)} charts")
    return result
