"""
Gemini interface for schema-constrained JSON generation. Single attempt, no retries.
"""

import copy
import logging
from typing import Any, Dict, Optional

from src.config import CONFIG
from src.core.errors import (
    AnalysisError,
    BlockedReplyError,
    EmptyReplyError,
    MissingCredentialError,
)

logger = logging.getLogger(__name__)

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


def _enum_name(value: Any) -> str:
    return str(getattr(value, "name", value) or "")


class LLMInterface:
    """Thin wrapper over google-generativeai."""

    def __init__(self):
        self.config = CONFIG.llm
        self.model_name = self.config.model_name
        self.api_key = self.config.api_key or ""
        self.temperature = self.config.temperature
        self.max_tokens = self.config.max_tokens
        self.last_error = ""

    def apply_runtime_settings(self, settings: Optional[Dict[str, Any]]) -> None:
        """Override model/key/sampling settings at runtime (e.g. from CLI flags)."""
        if not settings:
            return
        self.model_name = settings.get("model_name") or settings.get("model") or self.model_name
        if settings.get("api_key"):
            self.api_key = settings["api_key"]
        if "temperature" in settings:
            self.temperature = float(settings["temperature"])
        if "max_tokens" in settings:
            self.max_tokens = int(settings["max_tokens"])

    def _get_client(self, api_key: str) -> Any:
        try:
            import google.generativeai as genai
        except ImportError as e:
            raise ImportError("google-generativeai package required") from e
        genai.configure(api_key=api_key)
        return genai

    def _safety_settings(self, client: Any) -> Dict[Any, Any]:
        categories = client.types.HarmCategory
        block_none = client.types.HarmBlockThreshold.BLOCK_NONE
        return {getattr(categories, name): block_none for name in SAFETY_CATEGORIES}

    async def generate_structured(self, prompt: str, schema: Dict[str, Any]) -> str:
        """Generate a JSON reply constrained to ``schema`` and return its text."""
        if not self.api_key:
            raise MissingCredentialError("API Key is missing")

        try:
            client = self._get_client(self.api_key)
            model = client.GenerativeModel(self.model_name)
            response = await model.generate_content_async(
                prompt,
                generation_config=client.types.GenerationConfig(
                    response_mime_type="application/json",
                    response_schema=copy.deepcopy(schema),
                    temperature=self.temperature,
                    max_output_tokens=self.max_tokens,
                ),
                safety_settings=self._safety_settings(client),
            )
        except Exception as e:
            self.last_error = f"LLM generation failed (gemini/{self.model_name}): {str(e)}"
            raise AnalysisError(self.last_error) from e

        return self._reply_text(response)

    def _reply_text(self, response: Any) -> str:
        try:
            text = response.text
        except ValueError:
            # Raised by the SDK when the candidate carries no parts.
            text = ""

        if text and text.strip():
            return text

        candidates = getattr(response, "candidates", None) or []
        finish_reason = _enum_name(candidates[0].finish_reason) if candidates else ""
        feedback = getattr(response, "prompt_feedback", None)
        block_reason = _enum_name(getattr(feedback, "block_reason", "")) if feedback else ""
        logger.warning(f"Gemini response missing text. finish_reason={finish_reason!r} block_reason={block_reason!r}")

        if finish_reason in ("SAFETY", "3") or block_reason not in ("", "0", "BLOCK_REASON_UNSPECIFIED"):
            raise BlockedReplyError(f"Reply blocked by safety filters ({finish_reason or block_reason})")
        raise EmptyReplyError(f"Model returned no text (finish reason: {finish_reason or 'unknown'})")


# Global LLM instance
llm = LLMInterface()
