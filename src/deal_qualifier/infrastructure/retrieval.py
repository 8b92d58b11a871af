"""Retrieval collaborator interface and a LangChain vector-store adapter.

The pipeline only depends on the ``Retriever`` protocol: given a session
and a natural-language query, return ranked passages from that session's
ingested document.  ``VectorStoreRetriever`` adapts any LangChain
``VectorStore`` whose documents carry a ``session_id`` metadata field.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from langchain_core.documents import Document
from langchain_core.vectorstores import VectorStore

from deal_qualifier.domain.values import Passage

logger = logging.getLogger(__name__)

SESSION_METADATA_KEY = "session_id"


@runtime_checkable
class Retriever(Protocol):
    """Session-scoped passage retrieval."""

    def retrieve(self, session_id: str, query: str) -> list[Passage]:
        """Return passages relevant to *query*, best first."""
        ...

    async def aretrieve(self, session_id: str, query: str) -> list[Passage]:
        """Async variant of :meth:`retrieve`."""
        ...


def callable_session_filter(session_id: str) -> Callable[[Document], bool]:
    """Filter for stores that accept a predicate (``InMemoryVectorStore``)."""

    def _matches(doc: Document) -> bool:
        return doc.metadata.get(SESSION_METADATA_KEY) == session_id

    return _matches


def dict_session_filter(session_id: str) -> dict[str, Any]:
    """Filter for stores that accept a metadata dict (Chroma, Qdrant, ...)."""
    return {SESSION_METADATA_KEY: session_id}


def to_passage(doc: Document) -> Passage:
    return Passage(text=doc.page_content, metadata=dict(doc.metadata))


class VectorStoreRetriever:
    """``Retriever`` backed by a LangChain ``VectorStore``.

    Parameters
    ----------
    vector_store:
        Store holding chunks tagged with ``session_id`` metadata.
    k:
        Number of passages per query.
    session_filter:
        Builds the store-specific filter for a session.  Defaults to a
        predicate, which is what ``InMemoryVectorStore`` expects; pass
        ``dict_session_filter`` for stores that filter on metadata dicts.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        k: int = 4,
        session_filter: Callable[[str], Any] = callable_session_filter,
    ) -> None:
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        self.vector_store = vector_store
        self.k = k
        self._session_filter = session_filter

    def retrieve(self, session_id: str, query: str) -> list[Passage]:
        docs = self.vector_store.similarity_search(
            query, k=self.k, filter=self._session_filter(session_id)
        )
        logger.debug(
            "VectorStoreRetriever: session=%s query=%r -> %d passages",
            session_id, query, len(docs),
        )
        return [to_passage(doc) for doc in docs]

    async def aretrieve(self, session_id: str, query: str) -> list[Passage]:
        docs = await self.vector_store.asimilarity_search(
            query, k=self.k, filter=self._session_filter(session_id)
        )
        logger.debug(
            "VectorStoreRetriever: session=%s query=%r -> %d passages (async)",
            session_id, query, len(docs),
        )
        return [to_passage(doc) for doc in docs]
