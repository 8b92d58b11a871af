"""Infrastructure: configuration, stage registry, session cache and the
retrieval / ingestion / model collaborators."""

from deal_qualifier.infrastructure.config import (
    DEFAULT_SESSION_ID,
    AppConfig,
    IngestionConfig,
    ModelConfig,
    PipelineConfig,
    ServerConfig,
    load_config_from_json,
)
from deal_qualifier.infrastructure.ingestion import DocumentIngestor
from deal_qualifier.infrastructure.models import create_chat_model, create_embeddings
from deal_qualifier.infrastructure.registry import StageRegistry
from deal_qualifier.infrastructure.retrieval import Retriever, VectorStoreRetriever
from deal_qualifier.infrastructure.session_cache import SessionResultCache

__all__ = [
    "AppConfig",
    "DEFAULT_SESSION_ID",
    "DocumentIngestor",
    "IngestionConfig",
    "ModelConfig",
    "PipelineConfig",
    "Retriever",
    "ServerConfig",
    "SessionResultCache",
    "StageRegistry",
    "VectorStoreRetriever",
    "create_chat_model",
    "create_embeddings",
    "load_config_from_json",
]
