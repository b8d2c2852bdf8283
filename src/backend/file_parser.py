"""
Multi-format file normalizer: CSV, TXT, JSON, XLSX, XLS -> canonical text.
"""

import asyncio
import io
import json
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from src.config import CONFIG
from src.core.errors import MalformedJSONError, UnreadableFileError
from src.core.models import NormalizedFile

logger = logging.getLogger(__name__)

SPREADSHEET_FORMATS = ("xlsx", "xls")


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


@dataclass(frozen=True)
class UploadedFile:
    """Raw upload as selected by the user. Bytes are read lazily from ``path`` when not given."""
    name: str
    mime_type: str = ""
    size_bytes: int = 0
    data: Optional[bytes] = None
    path: Optional[str] = None

    @classmethod
    def from_path(cls, path: str) -> "UploadedFile":
        file_path = Path(path)
        size = file_path.stat().st_size if file_path.exists() else 0
        return cls(
            name=file_path.name,
            mime_type=mimetypes.guess_type(file_path.name)[0] or "",
            size_bytes=size,
            path=str(file_path),
        )

    @classmethod
    def from_bytes(cls, name: str, data: bytes, mime_type: str = "") -> "UploadedFile":
        return cls(name=name, mime_type=mime_type, size_bytes=len(data), data=data)

    def read(self) -> bytes:
        if self.data is not None:
            return self.data
        if not self.path:
            raise UnreadableFileError(self.name, "no content or path")
        try:
            return Path(self.path).read_bytes()
        except OSError as e:
            raise UnreadableFileError(self.name, str(e)) from e


class FileParser:
    """Turn uploaded files into bounded text for the model prompt."""

    def __init__(self, max_chars: int = None, truncation_marker: str = None, encoding: str = None):
        settings = CONFIG.file_parsing
        self.supported_formats = list(settings.supported_formats)
        self.max_chars = settings.max_chars if max_chars is None else max_chars
        self.truncation_marker = truncation_marker or settings.truncation_marker
        self.encoding = encoding or settings.text_encoding

    async def normalize(self, upload: UploadedFile) -> NormalizedFile:
        """Read and normalize a single upload."""
        raw = await asyncio.to_thread(upload.read)
        text = await asyncio.to_thread(self.to_text, upload.name, raw)
        text = self.truncate(upload.name, text)
        return NormalizedFile(
            name=upload.name,
            mime_type=upload.mime_type or "",
            text_content=text,
            size_bytes=upload.size_bytes or len(raw),
        )

    async def normalize_batch(self, uploads: Sequence[UploadedFile]) -> List[NormalizedFile]:
        """Normalize all uploads; results follow input order and any failure fails the batch."""
        if not uploads:
            return []
        results = await asyncio.gather(*(self.normalize(upload) for upload in uploads))
        logger.info(f"Normalized {len(results)} file(s)")
        return list(results)

    def to_text(self, name: str, raw: bytes) -> str:
        """Dispatch on the file extension, not the content."""
        ext = self._extension(name)
        if ext in SPREADSHEET_FORMATS:
            return self._parse_spreadsheet(name, raw)
        text = self._decode(name, raw)
        if ext == "json":
            return self._parse_json(name, text)
        return text

    def truncate(self, name: str, text: str) -> str:
        if len(text) <= self.max_chars:
            return text
        logger.warning(f"File {name} truncated from {len(text)} to {self.max_chars} chars.")
        return text[: self.max_chars] + self.truncation_marker

    def _parse_spreadsheet(self, name: str, raw: bytes) -> str:
        """First sheet only, serialized as CSV."""
        try:
            df = pd.read_excel(io.BytesIO(raw), sheet_name=0, header=None, dtype=str)
        except Exception as e:
            raise UnreadableFileError(name, f"spreadsheet parsing failed: {e}") from e

        df = df.fillna("")
        csv_text = df.to_csv(index=False, header=False, lineterminator="\n")
        if csv_text.endswith("\n"):
            csv_text = csv_text[:-1]
        return csv_text

    def _parse_json(self, name: str, text: str) -> str:
        """Validate and minify."""
        try:
            payload = json.loads(text, parse_constant=_reject_constant)
        except (json.JSONDecodeError, ValueError) as e:
            raise MalformedJSONError(name, f"invalid JSON: {e}") from e
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False)

    def _decode(self, name: str, raw: bytes) -> str:
        try:
            text = raw.decode(self.encoding)
        except (UnicodeDecodeError, LookupError) as e:
            raise UnreadableFileError(name, f"cannot decode as {self.encoding}: {e}") from e
        return text.lstrip("\ufeff")

    def _extension(self, name: str) -> str:
        return Path(name).suffix.lower().lstrip(".")

    def preview_records(self, normalized: NormalizedFile) -> List[Dict[str, Any]]:
        """Recover row records from normalized content for a raw-data view.

        JSON files are read as JSON (truncated JSON yields no records); every
        other extension is read as delimited text.
        """
        content = normalized.text_content
        if not content:
            return []
        if normalized.extension == "json":
            return self._json_records(normalized.name, content)
        return self._delimited_records(normalized.name, content)

    def _json_records(self, name: str, content: str) -> List[Dict[str, Any]]:
        if content.endswith(self.truncation_marker):
            logger.debug(f"No JSON preview for truncated file {name}")
            return []
        try:
            payload = json.loads(content, parse_constant=_reject_constant)
        except ValueError as e:
            logger.debug(f"No JSON preview for {name}: {e}")
            return []
        if isinstance(payload, list):
            return [row if isinstance(row, dict) else {"value": row} for row in payload]
        if isinstance(payload, dict):
            return [payload]
        return []

    def _delimited_records(self, name: str, content: str) -> List[Dict[str, Any]]:
        marker = self.truncation_marker.strip()
        lines = [line for line in content.split("\n") if line.strip() and marker not in line]
        if not lines:
            return []

        separator = ";" if ";" in lines[0] else ","
        try:
            df = pd.read_csv(
                io.StringIO("\n".join(lines)),
                sep=separator,
                dtype=str,
                keep_default_na=False,
                skipinitialspace=True,
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            logger.debug(f"No tabular preview for {name}: {e}")
            return []

        df.columns = [str(col).strip() for col in df.columns]
        return [{k: str(v).strip() for k, v in row.items()} for row in df.to_dict("records")]
