"""
Pipeline data model: normalized files and the analysis result contract.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class NormalizedFile:
    """Canonical text form of one uploaded file."""
    name: str
    mime_type: str
    text_content: str
    size_bytes: int

    @property
    def extension(self) -> str:
        return self.name.rsplit(".", 1)[-1].lower() if "." in self.name else ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "mimeType": self.mime_type,
            "textContent": self.text_content,
            "sizeBytes": self.size_bytes,
        }


@dataclass(frozen=True)
class KPIMetric:
    label: str
    value: str
    trend: Optional[float] = None
    trend_direction: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"label": self.label, "value": self.value}
        if self.trend is not None:
            data["trend"] = self.trend
        if self.trend_direction is not None:
            data["trendDirection"] = self.trend_direction
        if self.description is not None:
            data["description"] = self.description
        return data


@dataclass(frozen=True)
class FieldDescription:
    field_name: str
    source_file: str
    meaning: str

    def to_dict(self) -> Dict[str, Any]:
        return {"fieldName": self.field_name, "sourceFile": self.source_file, "meaning": self.meaning}


@dataclass(frozen=True)
class ChartConfig:
    """Chart-ready configuration: one row per category, one field per series."""
    id: str
    title: str
    description: str
    type: str
    x_axis_key: str
    data_keys: Tuple[str, ...]
    data: Tuple[Dict[str, Any], ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "xAxisKey": self.x_axis_key,
            "dataKeys": list(self.data_keys),
            "data": [dict(row) for row in self.data],
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Everything one successful analysis call produces."""
    summary: str
    kpis: Tuple[KPIMetric, ...] = field(default_factory=tuple)
    charts: Tuple[ChartConfig, ...] = field(default_factory=tuple)
    field_descriptions: Tuple[FieldDescription, ...] = field(default_factory=tuple)
    relationships_found: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "kpis": [kpi.to_dict() for kpi in self.kpis],
            "charts": [chart.to_dict() for chart in self.charts],
            "fieldDescriptions": [fd.to_dict() for fd in self.field_descriptions],
            "relationshipsFound": list(self.relationships_found),
        }
