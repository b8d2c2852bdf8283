"""
Error types raised by the ingestion and analysis pipeline.

Every error carries a ``user_message`` suitable for display; ``str(error)``
keeps the technical detail for logs.
"""

GENERIC_FAILURE_MESSAGE = (
    "Ocorreu um erro durante a análise. Verifique sua chave API ou tente com arquivos menores."
)
BLOCKED_MESSAGE = (
    "A análise foi bloqueada pelos filtros de segurança. "
    "Tente remover dados sensíveis (PII) ou conteúdo explícito."
)
EMPTY_REPLY_MESSAGE = (
    "A IA não retornou uma resposta válida. Tente novamente ou verifique os arquivos."
)
UNREADABLE_MESSAGE = "Falha ao ler um ou mais arquivos. Verifique o formato."


class AnalysisError(RuntimeError):
    """Base class for pipeline failures."""

    user_message = GENERIC_FAILURE_MESSAGE

    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        if user_message:
            self.user_message = user_message


class UnreadableFileError(AnalysisError):
    """A file could not be read or decoded."""

    user_message = UNREADABLE_MESSAGE

    def __init__(self, file_name: str, reason: str):
        super().__init__(f"Could not read {file_name}: {reason}")
        self.file_name = file_name
        self.reason = reason


class MalformedJSONError(UnreadableFileError):
    """A .json upload is not valid JSON."""


class MissingCredentialError(AnalysisError):
    """No API key is configured for the model call."""


class EmptyOrBlockedReplyError(AnalysisError):
    """The model returned no usable text."""

    user_message = EMPTY_REPLY_MESSAGE


class EmptyReplyError(EmptyOrBlockedReplyError):
    """The model returned an empty reply for a non-safety reason."""


class BlockedReplyError(EmptyOrBlockedReplyError):
    """The reply was withheld by the model's safety filters."""

    user_message = BLOCKED_MESSAGE


class MalformedReplyError(AnalysisError):
    """The reply is not JSON or lacks the structure the mapper needs."""


class SelectionLimitError(AnalysisError):
    """Too many files in one selection."""


class AnalysisInProgressError(AnalysisError):
    """An analysis is already running for this session."""


class UnknownFileError(AnalysisError):
    """No file at the requested position of the selection."""
