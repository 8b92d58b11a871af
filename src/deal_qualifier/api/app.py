"""FastAPI application exposing upload, chat and evaluation lookup.

``create_app()`` wires already-built collaborators into a FastAPI app, so
tests can pass scripted models and an in-memory vector store.
``create_default_app()`` builds the production collaborators from
``AppConfig.from_env()`` and is the uvicorn factory target::

    uvicorn deal_qualifier.api.app:create_default_app --factory

Every error response is ``{"error": "..."}``.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from deal_qualifier import __version__
from deal_qualifier.api.models import AskRequest, AskResponse, HealthResponse, UploadResponse
from deal_qualifier.domain.exceptions import SessionNotFoundError
from deal_qualifier.graph.graph import EvaluationOrchestrator
from deal_qualifier.infrastructure.config import AppConfig, ServerConfig
from deal_qualifier.infrastructure.ingestion import DocumentIngestor
from deal_qualifier.infrastructure.session_cache import SessionResultCache
from deal_qualifier.presentation.export import state_to_dict
from deal_qualifier.services.chat import DealChatSynthesizer, aask

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    orchestrator: EvaluationOrchestrator,
    ingestor: DocumentIngestor,
    synthesizer: DealChatSynthesizer,
    cache: SessionResultCache | None = None,
    server_config: ServerConfig | None = None,
) -> FastAPI:
    """Build the FastAPI app around the given collaborators.

    Parameters
    ----------
    orchestrator:
        Runs the stage pipeline after each upload.
    ingestor:
        Chunks and indexes uploaded PDFs into the retriever's vector store.
    synthesizer:
        Answers chat questions against cached evaluations.
    cache:
        Evaluation store shared by upload and chat.  Defaults to the
        orchestrator's cache, or a new one.
    server_config:
        Default session and CORS origins.
    """
    server_config = server_config or ServerConfig()
    if cache is None:
        cache = orchestrator.cache if orchestrator.cache is not None else SessionResultCache()
    default_session = server_config.default_session_id

    app = FastAPI(
        title="Deal Qualifier API",
        description="Multi-stage RFP qualification and deal chat",
        version=__version__,
    )
    app.state.cache = cache
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(server_config.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
        return _error(400, "Invalid request")

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(version=__version__, sessions=len(cache))

    @app.post("/upload-pdf", response_model=UploadResponse, response_model_by_alias=True)
    async def upload_pdf(
        file: UploadFile | None = File(None),
        session_id: str = Form(default_session, alias="sessionId"),
    ) -> Any:
        """Ingest a PDF, evaluate it and cache the result for the session."""
        if file is None:
            return _error(400, "No file uploaded.")
        session_id = session_id or default_session

        try:
            async with cache.async_session_lock(session_id):
                data = await file.read()
                chunks = await run_in_threadpool(
                    ingestor.ingest_pdf_bytes, data, session_id, file.filename or ""
                )
                try:
                    state = await orchestrator.arun(orchestrator.initial_state(session_id))
                except Exception:
                    # a failed run must not leave its chunks for the next upload
                    await run_in_threadpool(ingestor.discard_session, session_id)
                    raise
                cache.put(session_id, state)
        except Exception:
            logger.exception("Upload failed for session %s", session_id)
            return _error(500, "Upload failed")

        logger.info("Processed upload %r for session %s (%d chunks)", file.filename, session_id, chunks)
        return UploadResponse(
            message="PDF processed and evaluated.", session_id=session_id, chunks=chunks
        )

    @app.post("/ask-deal-agent", response_model=AskResponse)
    async def ask_deal_agent(body: AskRequest) -> Any:
        """Answer a question about a previously uploaded deal."""
        question = (body.question or "").strip()
        if not question:
            return _error(400, "Missing question")
        session_id = body.session_id or default_session

        try:
            answer = await aask(cache, synthesizer, session_id, question)
        except SessionNotFoundError as exc:
            return _error(400, str(exc))
        except Exception:
            logger.exception("Agent processing failed for session %s", session_id)
            return _error(500, "Agent processing failed")
        return AskResponse(answer=answer)

    @app.get("/deal-evaluation/{session_id}")
    async def deal_evaluation(session_id: str) -> Any:
        """The cached evaluation for *session_id* as JSON."""
        state = cache.get(session_id)
        if state is None:
            return _error(404, str(SessionNotFoundError(session_id)))
        return state_to_dict(state)

    return app


def create_default_app(config: AppConfig | None = None) -> FastAPI:
    """Production wiring: provider models, in-memory vector store, one cache."""
    from langchain_core.vectorstores import InMemoryVectorStore

    from deal_qualifier.infrastructure.models import create_chat_model, create_embeddings
    from deal_qualifier.infrastructure.retrieval import VectorStoreRetriever

    config = config or AppConfig.from_env()
    config.validate()

    vector_store = InMemoryVectorStore(create_embeddings(config.model))
    model = create_chat_model(config.model)
    cache = SessionResultCache()

    orchestrator = EvaluationOrchestrator(
        VectorStoreRetriever(vector_store, k=config.ingestion.retrieval_k),
        model,
        cache=cache,
        config=config.pipeline,
    )
    return create_app(
        orchestrator,
        DocumentIngestor(vector_store, config.ingestion),
        DealChatSynthesizer(model, config.pipeline),
        cache=cache,
        server_config=config.server,
    )


__all__ = ["create_app", "create_default_app"]
