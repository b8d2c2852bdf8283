"""
Analysis request assembly: file context, instruction prompt, response schema.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from src.config import CONFIG
from src.core.models import NormalizedFile
from src.core.schema import RESPONSE_SCHEMA, SCHEMA_VERSION

PROMPT_TEMPLATE = """
You are an expert Senior Financial Data Analyst and Power BI Specialist.

Your task is to analyze the provided raw data files.
These files may contain CSV, JSON, or Text dumps from databases.

1. **Correlate Data:** look for common identifiers (IDs, Emails, Dates, Transaction Codes) to join the data.
2. **Financial Analysis:** Calculate key metrics like Total Revenue, Net Profit, Margins, Growth Rates, Cost breakdowns.
3. **Identify Trends:** Look for time-based patterns.
4. **Describe Metadata:** Explain what the fields mean based on their content.

Here is the raw data:
{context}

Generate a JSON response matching the schema provided.
IMPORTANT: Write the 'summary', 'meaning', 'description' and 'relationshipsFound' fields in {language}.

For the 'charts' section:
- 'series': List the names of the metrics you are plotting (e.g. ["Revenue", "Expenses"]).
- 'data_points': For each point on the X-axis (label), provide the corresponding values for each series in the 'values' array.

Prioritize:
- Monthly Revenue/Profit trends (Line/Area)
- Category breakdowns (Pie/Bar)
- Top performers (Bar)
"""


@dataclass(frozen=True)
class AnalysisRequest:
    """One model invocation worth of input. Built fresh per analysis."""
    files: Tuple[NormalizedFile, ...]
    context: str
    prompt: str
    language: str
    response_schema: Dict[str, Any]
    schema_version: str = SCHEMA_VERSION


def file_header(position: int, name: str) -> str:
    return f"\n--- FILE {position}: {name} ---\n"


def build_context(files: Sequence[NormalizedFile]) -> str:
    """Concatenate files in order, each behind a 1-based header."""
    return "".join(
        f"{file_header(index, f.name)}{f.text_content}\n"
        for index, f in enumerate(files, start=1)
    )


def build_prompt(context: str, language: Optional[str] = None) -> str:
    language = language or CONFIG.analysis.output_language
    return PROMPT_TEMPLATE.format(context=context, language=language)


def build_request(files: Sequence[NormalizedFile], language: Optional[str] = None) -> AnalysisRequest:
    language = language or CONFIG.analysis.output_language
    context = build_context(files)
    return AnalysisRequest(
        files=tuple(files),
        context=context,
        prompt=build_prompt(context, language),
        language=language,
        response_schema=RESPONSE_SCHEMA,
    )
