"""
Coordinator Agent: runs normalization then analysis.
"""

from typing import Dict, Any
from datetime import datetime
from src.agents.base_agent import BaseAgent, AgentResult
from src.agents.backend_agent import BackendAgent
from src.agents.ai_agent import AIAgent


class CoordinatorAgent(BaseAgent):
    """End-to-end controller: uploads in, AnalysisResult out."""

    def __init__(self, backend: BackendAgent = None, ai: AIAgent = None):
        super().__init__("CoordinatorAgent")
        self.agents = {
            "backend": backend or BackendAgent(),
            "ai": ai or AIAgent(),
        }

    async def execute(self, task: Dict[str, Any]) -> AgentResult:
        """Orchestrate the two stages; the first failing stage ends the run."""
        start = datetime.now()
        task_id = task.get("task_id", "default")
        self.log_step(f"Starting analysis for task: {task_id}")
        self._apply_llm_settings(task)

        backend_result = await self._execute_agent("backend", task)
        if not backend_result.success:
            return self._stage_failed("Normalization", backend_result, start)

        ai_task = dict(task)
        ai_task["files"] = backend_result.data["files"]
        ai_result = await self._execute_agent("ai", ai_task)
        if not ai_result.success:
            return self._stage_failed("Analysis", ai_result, start)

        duration = (datetime.now() - start).total_seconds()
        self.log_step(f"Task {task_id} completed in {duration:.2f}s")

        return AgentResult(
            agent_name=self.name,
            success=True,
            data={
                "task_id": task_id,
                "status": "completed",
                "files": backend_result.data["files"],
                "truncated": backend_result.data.get("truncated", []),
                "result": ai_result.data["result"],
            },
            duration_seconds=duration
        )

    async def _execute_agent(self, agent_key: str, task: Dict[str, Any]) -> AgentResult:
        """Execute single agent with error handling."""
        try:
            return await self.agents[agent_key].execute(task)
        except Exception as e:
            self.log_error(f"{agent_key} execution failed: {str(e)}")
            return AgentResult(
                agent_name=agent_key,
                success=False,
                data={},
                error=str(e),
                exception=e,
            )

    def _stage_failed(self, stage: str, stage_result: AgentResult, start: datetime) -> AgentResult:
        self.log_error(f"{stage} failed: {stage_result.error}")
        return AgentResult(
            agent_name=self.name,
            success=False,
            data={"status": "failed", "failed_stage": stage_result.agent_name},
            error=stage_result.error,
            duration_seconds=(datetime.now() - start).total_seconds(),
            exception=stage_result.exception,
        )

    def _apply_llm_settings(self, task: Dict[str, Any]) -> None:
        """Apply runtime LLM settings before the analysis stage."""
        llm_settings = task.get("llm_settings", {})
        if not llm_settings:
            return
        self.agents["ai"].llm.apply_runtime_settings(llm_settings)
        self.log_step("Applied runtime LLM settings")
