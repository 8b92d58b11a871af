"""Factories for the LangChain chat and embedding models.

Provider packages are imported lazily so that importing the library (and
running the test suite with scripted models) does not require API keys or
provider SDK initialisation.
"""

from __future__ import annotations

import logging

from langchain_core.embeddings import Embeddings
from langchain_core.language_models import BaseChatModel

from deal_qualifier.infrastructure.config import ModelConfig

logger = logging.getLogger(__name__)


def create_chat_model(config: ModelConfig | None = None) -> BaseChatModel:
    """Instantiate the completion collaborator described by *config*."""
    config = config or ModelConfig()
    config.validate()

    if config.provider == "anthropic":
        from langchain_anthropic import ChatAnthropic

        model: BaseChatModel = ChatAnthropic(
            model=config.model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )
    else:
        from langchain_openai import ChatOpenAI

        model = ChatOpenAI(
            model=config.model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

    logger.info("Using %s chat model %s", config.provider, config.model)
    return model


def create_embeddings(config: ModelConfig | None = None) -> Embeddings:
    """Instantiate the embedding model used to index uploaded documents."""
    config = config or ModelConfig()
    from langchain_openai import OpenAIEmbeddings

    logger.info("Using OpenAI embeddings %s", config.embedding_model)
    return OpenAIEmbeddings(model=config.embedding_model)
