"""Tests for the FastAPI endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from langchain_core.embeddings import DeterministicFakeEmbedding
from langchain_core.vectorstores import InMemoryVectorStore

from deal_qualifier.api.app import create_app
from deal_qualifier.graph.graph import EvaluationOrchestrator
from deal_qualifier.infrastructure.config import ServerConfig
from deal_qualifier.infrastructure.ingestion import DocumentIngestor
from deal_qualifier.infrastructure.retrieval import VectorStoreRetriever
from deal_qualifier.infrastructure.session_cache import SessionResultCache
from deal_qualifier.services.chat import DealChatSynthesizer
from deal_qualifier.testing import ScriptedChatModel, pipeline_routes, text_pdf_bytes


@pytest.fixture
def chat_model() -> ScriptedChatModel:
    return ScriptedChatModel(responses=["Bid, but clarify the timeline."])


@pytest.fixture
def stage_model() -> ScriptedChatModel:
    return ScriptedChatModel(routes=pipeline_routes(flags=["Tight timeline"]))


@pytest.fixture
def store() -> InMemoryVectorStore:
    return InMemoryVectorStore(DeterministicFakeEmbedding(size=32))


@pytest.fixture
def ingestor(store: InMemoryVectorStore) -> DocumentIngestor:
    return DocumentIngestor(store)


@pytest.fixture
def client(
    cache: SessionResultCache,
    store: InMemoryVectorStore,
    ingestor: DocumentIngestor,
    stage_model: ScriptedChatModel,
    chat_model: ScriptedChatModel,
) -> TestClient:
    orchestrator = EvaluationOrchestrator(VectorStoreRetriever(store), stage_model)
    app = create_app(
        orchestrator,
        ingestor,
        DealChatSynthesizer(chat_model),
        cache=cache,
        server_config=ServerConfig(),
    )
    return TestClient(app)


def _upload(client: TestClient, pdf: bytes, session_id: str | None = "s1"):
    data = {"sessionId": session_id} if session_id is not None else {}
    return client.post(
        "/upload-pdf",
        files={"file": ("rfp.pdf", pdf, "application/pdf")},
        data=data,
    )


class TestUploadPdf:

    def test_upload_evaluates_and_caches(
        self, client: TestClient, cache: SessionResultCache, rfp_pdf: bytes
    ) -> None:
        response = _upload(client, rfp_pdf)
        assert response.status_code == 200
        body = response.json()
        assert body["sessionId"] == "s1"
        assert body["chunks"] >= 1
        assert "message" in body

        state = cache.get("s1")
        assert state is not None
        assert state["strategic_fit"].score == pytest.approx(1.4)
        assert "claims platform" in state["documents"][0].text

    def test_default_session(self, client: TestClient, cache: SessionResultCache, rfp_pdf: bytes) -> None:
        response = _upload(client, rfp_pdf, session_id=None)
        assert response.json()["sessionId"] == "demo-session"
        assert "demo-session" in cache

    def test_no_file(self, client: TestClient) -> None:
        response = client.post("/upload-pdf", data={"sessionId": "s1"})
        assert response.status_code == 400
        assert response.json() == {"error": "No file uploaded."}

    def test_unreadable_file(self, client: TestClient, cache: SessionResultCache) -> None:
        response = _upload(client, b"not a pdf at all")
        assert response.status_code == 500
        assert response.json() == {"error": "Upload failed"}
        assert "s1" not in cache

    def test_model_failure_does_not_cache(
        self, client: TestClient, cache: SessionResultCache, stage_model: ScriptedChatModel, rfp_pdf: bytes
    ) -> None:
        stage_model.error = "provider down"
        response = _upload(client, rfp_pdf)
        assert response.status_code == 500
        assert "s1" not in cache

    def test_reupload_replaces_session_document(
        self, client: TestClient, cache: SessionResultCache
    ) -> None:
        _upload(client, text_pdf_bytes("OLDDOC bank payments RFP"))
        response = _upload(client, text_pdf_bytes("NEWDOC hospital records RFP"))
        assert response.status_code == 200

        texts = [p.text for p in cache.get("s1")["documents"]]
        assert texts
        assert all("NEWDOC" in t for t in texts)
        assert not any("OLDDOC" in t for t in texts)

    def test_reupload_leaves_other_sessions_alone(
        self, client: TestClient, cache: SessionResultCache
    ) -> None:
        _upload(client, text_pdf_bytes("OTHERDOC logistics RFP"), session_id="s2")
        _upload(client, text_pdf_bytes("OLDDOC bank payments RFP"))
        _upload(client, text_pdf_bytes("NEWDOC hospital records RFP"))
        _upload(client, text_pdf_bytes("OTHERDOC logistics RFP"), session_id="s2")
        texts = [p.text for p in cache.get("s2")["documents"]]
        assert all("OTHERDOC" in t for t in texts)

    def test_failed_run_keeps_previous_result(
        self,
        client: TestClient,
        cache: SessionResultCache,
        ingestor: DocumentIngestor,
        stage_model: ScriptedChatModel,
        rfp_pdf: bytes,
    ) -> None:
        _upload(client, rfp_pdf)
        first = cache.get("s1")

        stage_model.error = "provider down"
        response = _upload(client, text_pdf_bytes("FAILDOC retail loyalty RFP"))
        assert response.status_code == 500
        assert cache.get("s1") == first
        assert ingestor.chunk_ids("s1") == []

    def test_failed_run_does_not_leak_into_next_upload(
        self, client: TestClient, cache: SessionResultCache, stage_model: ScriptedChatModel
    ) -> None:
        stage_model.error = "provider down"
        assert _upload(client, text_pdf_bytes("FAILDOC retail loyalty RFP")).status_code == 500

        stage_model.error = None
        assert _upload(client, text_pdf_bytes("NEWDOC hospital records RFP")).status_code == 200
        texts = [p.text for p in cache.get("s1")["documents"]]
        assert not any("FAILDOC" in t for t in texts)


class TestAskDealAgent:

    def test_answer(self, client: TestClient, chat_model: ScriptedChatModel, rfp_pdf: bytes) -> None:
        _upload(client, rfp_pdf)
        response = client.post("/ask-deal-agent", json={"question": "Should we bid?", "sessionId": "s1"})
        assert response.status_code == 200
        assert response.json() == {"answer": "Bid, but clarify the timeline."}
        assert "Strategic Fit Score: 1.40" in chat_model.captured_prompts[0]
        assert "Tight timeline" in chat_model.captured_prompts[0]

    def test_missing_question(self, client: TestClient) -> None:
        response = client.post("/ask-deal-agent", json={"sessionId": "s1"})
        assert response.status_code == 400
        assert response.json() == {"error": "Missing question"}

    def test_blank_question(self, client: TestClient) -> None:
        response = client.post("/ask-deal-agent", json={"question": "  ", "sessionId": "s1"})
        assert response.status_code == 400

    def test_unknown_session(self, client: TestClient, chat_model: ScriptedChatModel) -> None:
        response = client.post("/ask-deal-agent", json={"question": "Bid?", "sessionId": "nobody"})
        assert response.status_code == 400
        assert "nobody" in response.json()["error"]
        assert chat_model.call_count == 0

    def test_default_session(self, client: TestClient, rfp_pdf: bytes) -> None:
        _upload(client, rfp_pdf, session_id=None)
        response = client.post("/ask-deal-agent", json={"question": "Bid?"})
        assert response.status_code == 200

    def test_model_failure(self, client: TestClient, chat_model: ScriptedChatModel, rfp_pdf: bytes) -> None:
        _upload(client, rfp_pdf)
        chat_model.error = "timeout"
        response = client.post("/ask-deal-agent", json={"question": "Bid?", "sessionId": "s1"})
        assert response.status_code == 500
        assert response.json() == {"error": "Agent processing failed"}

    def test_malformed_body(self, client: TestClient) -> None:
        response = client.post(
            "/ask-deal-agent", content=b"not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 400
        assert "error" in response.json()


class TestEvaluationLookup:

    def test_cached_evaluation(self, client: TestClient, rfp_pdf: bytes) -> None:
        _upload(client, rfp_pdf)
        response = client.get("/deal-evaluation/s1")
        assert response.status_code == 200
        body = response.json()
        assert body["sessionId"] == "s1"
        assert body["strategicFitScore"] == pytest.approx(1.4)
        assert len(body["strategicFitScoreBreakdown"]) == 4
        assert body["redFlags"][0]["flag"] == "Tight timeline"

    def test_unknown(self, client: TestClient) -> None:
        response = client.get("/deal-evaluation/nobody")
        assert response.status_code == 404
        assert "error" in response.json()


class TestMisc:

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_cors_preflight(self, client: TestClient) -> None:
        response = client.options(
            "/ask-deal-agent",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
