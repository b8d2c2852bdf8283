"""
Session state: file selection, analysis status, last result.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from src.agents.ai_agent import AIAgent
from src.backend.file_parser import FileParser
from src.config import CONFIG
from src.core.errors import (
    AnalysisError,
    AnalysisInProgressError,
    GENERIC_FAILURE_MESSAGE,
    SelectionLimitError,
    UNREADABLE_MESSAGE,
    UnknownFileError,
)
from src.core.models import AnalysisResult, NormalizedFile

logger = logging.getLogger(__name__)


class AppStatus(Enum):
    IDLE = "IDLE"
    PARSING = "PARSING"
    ANALYZING = "ANALYZING"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


class AnalysisSession:
    """One user's selection and analysis lifecycle.

    Any change to the selection re-normalizes every remaining upload from its
    raw bytes; normalized records are never patched in place.
    """

    def __init__(self, parser=None, ai_agent=None, max_files: int = None):
        self.parser = parser or FileParser()
        self.ai_agent = ai_agent or AIAgent()
        self.max_files = CONFIG.file_parsing.max_files if max_files is None else max_files
        self.status = AppStatus.IDLE
        self.uploads: List = []
        self.files: List[NormalizedFile] = []
        self.result: Optional[AnalysisResult] = None
        self.error: Optional[str] = None
        self._analyzing = False

    async def add_files(self, uploads: Sequence) -> List[NormalizedFile]:
        if len(self.uploads) + len(uploads) > self.max_files:
            raise SelectionLimitError(
                f"Selection would hold {len(self.uploads) + len(uploads)} files",
                user_message=f"Máximo de {self.max_files} arquivos permitidos.",
            )
        return await self._select(self.uploads + list(uploads))

    async def remove_file(self, index: int) -> List[NormalizedFile]:
        self._check_index(index)
        remaining = list(self.uploads)
        del remaining[index]
        return await self._select(remaining)

    def preview(self, index: int) -> List[Dict[str, Any]]:
        """Row records of the selected file at ``index`` for a raw-data view."""
        self._check_index(index)
        return self.parser.preview_records(self.files[index])

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.files):
            raise UnknownFileError(
                f"No file at position {index} (selection holds {len(self.files)})",
                user_message="Arquivo não encontrado na seleção.",
            )

    async def _select(self, uploads: List) -> List[NormalizedFile]:
        self.status = AppStatus.PARSING
        self.error = None
        try:
            normalized = await self.parser.normalize_batch(uploads)
        except Exception as e:
            logger.error(f"File selection rejected: {e}")
            self.status = AppStatus.ERROR
            self.error = getattr(e, "user_message", UNREADABLE_MESSAGE)
            raise

        self.uploads = uploads
        self.files = normalized
        self.status = AppStatus.IDLE
        return list(normalized)

    async def analyze(self, language: str = None) -> Optional[AnalysisResult]:
        if not self.files:
            return None
        if self._analyzing:
            raise AnalysisInProgressError("An analysis is already running")

        self._analyzing = True
        self.status = AppStatus.ANALYZING
        self.error = None
        try:
            outcome = await self.ai_agent.execute({"files": list(self.files), "language": language})
        finally:
            self._analyzing = False

        if outcome.success:
            self.result = outcome.data["result"]
            self.status = AppStatus.COMPLETE
            return self.result

        cause = outcome.exception
        self.error = cause.user_message if isinstance(cause, AnalysisError) else GENERIC_FAILURE_MESSAGE
        self.status = AppStatus.ERROR
        logger.error(f"Analysis failed: {outcome.error}")
        return None

    def reset(self) -> None:
        self.uploads = []
        self.files = []
        self.result = None
        self.error = None
        self.status = AppStatus.IDLE
