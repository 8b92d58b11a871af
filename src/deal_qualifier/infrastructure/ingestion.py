"""Document ingestion: PDF text extraction, chunking and indexing.

Uploaded proposals are read with ``pypdf``, split with LangChain's
``RecursiveCharacterTextSplitter`` and added to a vector store with
``session_id`` metadata so ``VectorStoreRetriever`` can scope queries to a
single session.

A session holds one document at a time: the ids returned by ``add_texts``
are remembered per session and deleted from the store before the next
ingestion for that session.
"""

from __future__ import annotations

import io
import logging
import threading
from pathlib import Path

from langchain_core.vectorstores import VectorStore
from langchain_text_splitters import RecursiveCharacterTextSplitter
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from deal_qualifier.domain.exceptions import IngestionError
from deal_qualifier.infrastructure.config import IngestionConfig
from deal_qualifier.infrastructure.retrieval import SESSION_METADATA_KEY

logger = logging.getLogger(__name__)


class DocumentIngestor:
    """Chunk documents and index them into a session-tagged vector store.

    Parameters
    ----------
    vector_store:
        Destination store.  Must support ``add_texts`` with metadatas and
        ``delete(ids=...)``.
    config:
        Chunking parameters.
    """

    def __init__(self, vector_store: VectorStore, config: IngestionConfig | None = None) -> None:
        self.vector_store = vector_store
        self.config = config or IngestionConfig()
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=self.config.chunk_size,
            chunk_overlap=self.config.chunk_overlap,
        )
        self._session_chunk_ids: dict[str, list[str]] = {}
        self._lock = threading.Lock()

    # -- extraction ----------------------------------------------------------

    @staticmethod
    def extract_pdf_text(reader: PdfReader) -> str:
        """Concatenate the text of every page."""
        pages = [page.extract_text() or "" for page in reader.pages]
        return "\n".join(p for p in pages if p.strip())

    def read_pdf_bytes(self, data: bytes, source: str = "") -> str:
        try:
            reader = PdfReader(io.BytesIO(data))
            return self.extract_pdf_text(reader)
        except PyPdfError as exc:
            raise IngestionError(f"Could not read PDF '{source}': {exc}", source=source) from exc

    def read_pdf_file(self, path: str | Path) -> str:
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise IngestionError(f"Could not open '{path}': {exc}", source=str(path)) from exc
        return self.read_pdf_bytes(data, source=path.name)

    # -- chunk + index -------------------------------------------------------

    def chunk(self, text: str) -> list[str]:
        return [c for c in self._splitter.split_text(text) if c.strip()]

    def ingest_text(self, text: str, session_id: str, source: str = "") -> int:
        """Chunk *text* and index it as *session_id*'s only document.

        Chunks from an earlier ingestion for the session are deleted first.
        Returns the number of chunks stored.  A document with no extractable
        text stores nothing; later retrieval for the session is then empty.
        """
        chunks = self.chunk(text)
        self.discard_session(session_id)
        if not chunks:
            logger.warning(
                "DocumentIngestor: no text extracted from %s for session %s",
                source or "<text>", session_id,
            )
            return 0

        metadatas = [
            {SESSION_METADATA_KEY: session_id, "chunk_index": i, "source": source}
            for i in range(len(chunks))
        ]
        ids = self.vector_store.add_texts(chunks, metadatas=metadatas)
        with self._lock:
            self._session_chunk_ids[session_id] = list(ids)
        logger.info(
            "DocumentIngestor: indexed %d chunks from %s for session %s",
            len(chunks), source or "<text>", session_id,
        )
        return len(chunks)

    def ingest_pdf_bytes(self, data: bytes, session_id: str, filename: str = "") -> int:
        return self.ingest_text(self.read_pdf_bytes(data, source=filename), session_id, filename)

    def ingest_pdf_file(self, path: str | Path, session_id: str) -> int:
        path = Path(path)
        return self.ingest_text(self.read_pdf_file(path), session_id, path.name)

    # -- session lifecycle ---------------------------------------------------

    def chunk_ids(self, session_id: str) -> list[str]:
        with self._lock:
            return list(self._session_chunk_ids.get(session_id, ()))

    def discard_session(self, session_id: str) -> int:
        """Delete the chunks last indexed for *session_id*.

        Returns the number of chunks removed.
        """
        with self._lock:
            ids = self._session_chunk_ids.pop(session_id, None)
        if not ids:
            return 0
        self.vector_store.delete(ids=ids)
        logger.debug("DocumentIngestor: removed %d chunks for session %s", len(ids), session_id)
        return len(ids)
