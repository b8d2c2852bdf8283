"""
Backend Agent: normalizes a batch of uploaded files.
"""

from typing import Dict, Any
from datetime import datetime
from src.agents.base_agent import BaseAgent, AgentResult
from src.backend.file_parser import FileParser, UploadedFile


class BackendAgent(BaseAgent):
    """Reads uploads and turns them into prompt-ready text."""

    def __init__(self, parser: FileParser = None):
        super().__init__("BackendAgent")
        self.parser = parser or FileParser()

    async def execute(self, task: Dict[str, Any]) -> AgentResult:
        """Normalize ``task["files"]`` (uploads or paths) as one all-or-nothing batch."""
        start = datetime.now()

        try:
            uploads = [
                f if isinstance(f, UploadedFile) else UploadedFile.from_path(str(f))
                for f in task.get("files", [])
            ]
            if not uploads:
                raise ValueError("No files provided")

            self.log_step(f"Normalizing {len(uploads)} file(s): {', '.join(u.name for u in uploads)}")
            normalized = await self.parser.normalize_batch(uploads)

            result = {
                "files": normalized,
                "file_count": len(normalized),
                "total_chars": sum(len(f.text_content) for f in normalized),
                "truncated": [f.name for f in normalized if f.text_content.endswith(self.parser.truncation_marker)],
            }

            duration = (datetime.now() - start).total_seconds()

            return AgentResult(
                agent_name=self.name,
                success=True,
                data=result,
                duration_seconds=duration
            )

        except Exception as e:
            return self.failure(e, (datetime.now() - start).total_seconds())
