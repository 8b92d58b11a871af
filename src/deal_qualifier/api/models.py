"""Request and response bodies for the HTTP API.

Wire names are camelCase (``sessionId``) to match the browser frontend;
the Python attributes are snake_case.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AskRequest(BaseModel):
    """``POST /ask-deal-agent`` body."""

    model_config = ConfigDict(populate_by_name=True)

    question: str | None = None
    session_id: str | None = Field(default=None, alias="sessionId")


class AskResponse(BaseModel):
    answer: str


class UploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    session_id: str = Field(alias="sessionId")
    chunks: int = 0


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    sessions: int = 0
