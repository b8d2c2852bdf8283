"""
AI Agent: builds the analysis request, calls the model, maps the reply.
"""

from typing import Dict, Any
from datetime import datetime
from src.agents.base_agent import BaseAgent, AgentResult
from src.backend.request_builder import build_request
from src.backend.response_mapper import map_response, parse_reply
from src.core.llm_interface import LLMInterface, llm


class AIAgent(BaseAgent):
    """AI-powered financial analysis over normalized files."""

    def __init__(self, interface: LLMInterface = None):
        super().__init__("AIAgent")
        self.llm = interface or llm

    async def execute(self, task: Dict[str, Any]) -> AgentResult:
        """Analyze ``task["files"]`` (normalized) and return ``data["result"]``."""
        start = datetime.now()

        try:
            files = task.get("files") or []
            if not files:
                raise ValueError("No content provided for analysis")

            request = build_request(files, language=task.get("language"))
            self.log_step(
                f"Requesting analysis of {len(files)} file(s), {len(request.context)} context characters"
            )

            reply_text = await self.llm.generate_structured(request.prompt, request.response_schema)
            self.logger.debug(f"[{self.name}] Raw reply: {reply_text[:1000]}")

            analysis = map_response(parse_reply(reply_text))

            duration = (datetime.now() - start).total_seconds()

            return AgentResult(
                agent_name=self.name,
                success=True,
                data={
                    "result": analysis,
                    "schema_version": request.schema_version,
                    "language": request.language,
                },
                duration_seconds=duration
            )

        except Exception as e:
            return self.failure(e, (datetime.now() - start).total_seconds())
