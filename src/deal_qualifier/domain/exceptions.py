"""Domain exceptions for deal qualification.

All domain-specific exceptions inherit from ``DealQualifierError`` so
callers (the HTTP layer in particular) can catch the full family with a
single ``except`` clause when needed.
"""

from __future__ import annotations

from typing import Any


class DealQualifierError(Exception):
    """Base exception for all deal-qualifier errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class RetrievalError(DealQualifierError):
    """Raised when the retrieval collaborator fails.

    Fatal to the current evaluation run: the run is aborted and nothing is
    written to the session cache.
    """

    def __init__(
        self,
        message: str = "Retrieval failed",
        session_id: str = "",
        query: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.session_id = session_id
        self.query = query


class CompletionError(DealQualifierError):
    """Raised when the chat model call fails (unreachable, quota, error).

    Like ``RetrievalError`` this aborts the run.  Malformed output from an
    otherwise successful call is *not* a ``CompletionError``; stages recover
    from that locally.
    """

    def __init__(
        self,
        message: str = "Completion failed",
        stage: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.stage = stage


class ScoreParseError(DealQualifierError):
    """Raised by ``ParseOutcome.unwrap()`` when a caller asks for strict parsing."""

    def __init__(
        self,
        message: str = "Could not parse model output",
        raw: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.raw = raw


class SessionNotFoundError(DealQualifierError):
    """Raised when a chat query references a session with no cached evaluation."""

    def __init__(
        self,
        session_id: str = "",
        message: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message or f"No evaluation found for session '{session_id}'. Upload a document first.",
            details,
        )
        self.session_id = session_id


class IngestionError(DealQualifierError):
    """Raised when an uploaded document cannot be read or indexed."""

    def __init__(
        self,
        message: str = "Ingestion failed",
        session_id: str = "",
        source: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.session_id = session_id
        self.source = source
