"""
System configuration: Gemini model, analysis language, file parsing limits.
"""

import os
from dataclasses import dataclass, field


def _first_env(*names: str, default: str = "") -> str:
    """Return the first non-empty environment variable among names."""
    for name in names:
        value = os.getenv(name, "")
        if value:
            return value
    return default


@dataclass
class LLMConfig:
    """Gemini configuration."""
    model_name: str = "gemini-2.5-flash"
    api_key: str = ""
    temperature: float = 0.2
    max_tokens: int = 8192

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            model_name=os.getenv("LLM_MODEL", "gemini-2.5-flash"),
            api_key=_first_env("GEMINI_API_KEY", "LLM_API_KEY", "API_KEY"),
            temperature=float(os.getenv("LLM_TEMPERATURE", "0.2")),
            max_tokens=int(os.getenv("LLM_MAX_TOKENS", "8192")),
        )


@dataclass
class AnalysisConfig:
    """Prompt configuration."""
    output_language: str = "Portuguese (pt-BR)"

    @classmethod
    def from_env(cls):
        return cls(output_language=os.getenv("ANALYSIS_LANGUAGE", "Portuguese (pt-BR)"))


@dataclass
class FileParsingConfig:
    """File parsing configuration."""
    supported_formats: list = field(default_factory=lambda: ["csv", "xlsx", "xls", "json", "txt"])
    max_chars: int = 250_000
    truncation_marker: str = "\n...[TRUNCATED]"
    max_files: int = 5
    text_encoding: str = "utf-8"


@dataclass
class SystemConfig:
    """Master system configuration."""
    llm: LLMConfig = field(default_factory=LLMConfig.from_env)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig.from_env)
    file_parsing: FileParsingConfig = field(default_factory=FileParsingConfig)

    # Paths
    log_dir: str = "logs"

    # Runtime
    debug_mode: bool = bool(os.getenv("DEBUG", "False").lower() == "true")

    @classmethod
    def from_env(cls):
        """Load complete config from environment."""
        return cls(
            llm=LLMConfig.from_env(),
            analysis=AnalysisConfig.from_env(),
            log_dir=os.getenv("LOG_DIR", "logs"),
        )


# Global config instance
CONFIG = SystemConfig.from_env()
