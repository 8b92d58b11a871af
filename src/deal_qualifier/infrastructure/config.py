"""Configuration dataclasses for the deal-qualifier service.

Each config is a plain ``dataclass`` with a ``validate()`` method that raises
``ValueError`` on invalid combinations, plus ``to_dict()`` / ``from_dict()``.
Configs are **frozen** so a single instance can be shared by the
orchestrator, the chat synthesizer and the HTTP layer.

``AppConfig.from_env()`` reads ``DEAL_QUALIFIER_*`` environment variables;
the CLI loads a ``.env`` file first with ``python-dotenv``.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from typing import Any

DEFAULT_SESSION_ID = "demo-session"


def _filtered(cls: type, data: Mapping[str, Any]) -> dict[str, Any]:
    valid_keys = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in valid_keys}


# ===================================================================== #
#  Pipeline Configuration                                                #
# ===================================================================== #

@dataclass(frozen=True)
class PipelineConfig:
    """Parameters governing the evaluation pipeline and chat synthesis.

    Attributes
    ----------
    context_separator:
        String placed between retrieved passages when building a stage's
        prompt context.
    chat_excerpt_chars:
        Maximum number of document characters embedded in the chat prompt.
    reconcile_scores:
        If ``True``, weighted scores and totals are recomputed from the raw
        ``score`` / ``weight`` pairs instead of trusting the model's math.
    score_tolerance:
        Absolute difference above which the model's arithmetic counts as
        wrong (the record is then flagged ``reconciled``).
    include_verdict:
        Append the deterministic verdict stage after the scoring stages.
    go_threshold:
        Minimum fraction of the maximum achievable score for ``GO``.
    no_go_threshold:
        Below this fraction of the maximum the verdict is ``NO-GO``.
    max_red_flags_for_go:
        A deal with more red flags than this is never ``GO``.
    """

    context_separator: str = "\n\n"
    chat_excerpt_chars: int = 3000
    reconcile_scores: bool = True
    score_tolerance: float = 0.01
    include_verdict: bool = False
    go_threshold: float = 0.7
    no_go_threshold: float = 0.4
    max_red_flags_for_go: int = 1

    def validate(self) -> None:
        """Raise ``ValueError`` if any field is out of valid range."""
        if self.chat_excerpt_chars < 0:
            raise ValueError(
                f"chat_excerpt_chars must be >= 0, got {self.chat_excerpt_chars}"
            )
        if self.score_tolerance < 0.0:
            raise ValueError(
                f"score_tolerance must be >= 0, got {self.score_tolerance}"
            )
        if not (0.0 <= self.no_go_threshold <= self.go_threshold <= 1.0):
            raise ValueError(
                "thresholds must satisfy 0 <= no_go_threshold <= go_threshold <= 1, "
                f"got no_go={self.no_go_threshold}, go={self.go_threshold}"
            )
        if self.max_red_flags_for_go < 0:
            raise ValueError(
                f"max_red_flags_for_go must be >= 0, got {self.max_red_flags_for_go}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PipelineConfig:
        cfg = cls(**_filtered(cls, data))
        cfg.validate()
        return cfg


# ===================================================================== #
#  Model Configuration                                                   #
# ===================================================================== #

_VALID_PROVIDERS = frozenset({"anthropic", "openai"})


@dataclass(frozen=True)
class ModelConfig:
    """Which chat model and embedding model back the collaborators.

    Attributes
    ----------
    provider:
        Chat model backend, ``"anthropic"`` or ``"openai"``.
    model:
        Chat model identifier.
    temperature:
        Sampling temperature for every completion call.
    max_tokens:
        Maximum tokens per response.
    embedding_model:
        OpenAI embedding model used to index uploaded documents.
    """

    provider: str = "anthropic"
    model: str = "claude-sonnet-4-5-20250929"
    temperature: float = 0.2
    max_tokens: int = 2048
    embedding_model: str = "text-embedding-3-small"

    def validate(self) -> None:
        if self.provider not in _VALID_PROVIDERS:
            raise ValueError(
                f"provider must be one of {sorted(_VALID_PROVIDERS)}, "
                f"got '{self.provider}'"
            )
        if not self.model:
            raise ValueError("model must not be empty")
        if not (0.0 <= self.temperature <= 2.0):
            raise ValueError(
                f"temperature must be in [0, 2], got {self.temperature}"
            )
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be >= 1, got {self.max_tokens}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ModelConfig:
        cfg = cls(**_filtered(cls, data))
        cfg.validate()
        return cfg


# ===================================================================== #
#  Ingestion Configuration                                               #
# ===================================================================== #

@dataclass(frozen=True)
class IngestionConfig:
    """Chunking and retrieval parameters for uploaded documents.

    Attributes
    ----------
    chunk_size:
        Target characters per chunk.
    chunk_overlap:
        Characters shared between consecutive chunks.
    retrieval_k:
        Passages returned per retrieval query.
    """

    chunk_size: int = 500
    chunk_overlap: int = 200
    retrieval_k: int = 4

    def validate(self) -> None:
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if not (0 <= self.chunk_overlap < self.chunk_size):
            raise ValueError(
                f"chunk_overlap must be in [0, chunk_size), got {self.chunk_overlap}"
            )
        if self.retrieval_k < 1:
            raise ValueError(f"retrieval_k must be >= 1, got {self.retrieval_k}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> IngestionConfig:
        cfg = cls(**_filtered(cls, data))
        cfg.validate()
        return cfg


# ===================================================================== #
#  Server Configuration                                                  #
# ===================================================================== #

@dataclass(frozen=True)
class ServerConfig:
    """HTTP server parameters.

    Attributes
    ----------
    host, port:
        Bind address for uvicorn.
    default_session_id:
        Session used when a request omits ``sessionId``.
    cors_origins:
        Origins allowed to call the API from a browser.
    log_level:
        Root logging level name.
    """

    host: str = "0.0.0.0"
    port: int = 3001
    default_session_id: str = DEFAULT_SESSION_ID
    cors_origins: tuple[str, ...] = ("http://localhost:5173",)
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        # JSON / env input arrives as a list or a comma-separated string.
        if isinstance(self.cors_origins, str):
            origins = tuple(o.strip() for o in self.cors_origins.split(",") if o.strip())
            object.__setattr__(self, "cors_origins", origins)
        elif not isinstance(self.cors_origins, tuple):
            object.__setattr__(self, "cors_origins", tuple(self.cors_origins))

    def validate(self) -> None:
        if not (0 < self.port < 65536):
            raise ValueError(f"port must be in (0, 65536), got {self.port}")
        if not self.default_session_id:
            raise ValueError("default_session_id must not be empty")

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["cors_origins"] = list(self.cors_origins)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ServerConfig:
        cfg = cls(**_filtered(cls, data))
        cfg.validate()
        return cfg


# ===================================================================== #
#  Application Configuration                                             #
# ===================================================================== #

@dataclass(frozen=True)
class AppConfig:
    """All configuration sections for one service instance."""

    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    ingestion: IngestionConfig = field(default_factory=IngestionConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    def validate(self) -> None:
        self.pipeline.validate()
        self.model.validate()
        self.ingestion.validate()
        self.server.validate()

    def to_dict(self) -> dict[str, Any]:
        return {section: getattr(self, section).to_dict() for section in _CONFIG_MAP}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AppConfig:
        sections = {
            section: section_cls.from_dict(data.get(section) or {})
            for section, section_cls in _CONFIG_MAP.items()
        }
        return cls(**sections)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppConfig:
        """Build a config from ``DEAL_QUALIFIER_<SECTION>_<FIELD>`` variables.

        Example: ``DEAL_QUALIFIER_MODEL_PROVIDER=openai``,
        ``DEAL_QUALIFIER_SERVER_PORT=8080``.  Unset fields keep defaults.
        """
        env = os.environ if environ is None else environ
        data: dict[str, dict[str, Any]] = {}
        for section, section_cls in _CONFIG_MAP.items():
            values: dict[str, Any] = {}
            for f in fields(section_cls):
                key = f"DEAL_QUALIFIER_{section.upper()}_{f.name.upper()}"
                if key in env:
                    values[f.name] = _coerce_env(env[key], f.default)
            data[section] = values
        return cls.from_dict(data)


def _coerce_env(raw: str, default: Any) -> Any:
    """Convert an environment string to the type of the field's default."""
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw


_CONFIG_MAP: dict[str, type] = {
    "pipeline": PipelineConfig,
    "model": ModelConfig,
    "ingestion": IngestionConfig,
    "server": ServerConfig,
}


def load_config_from_json(json_str: str) -> AppConfig:
    """Parse a JSON object with ``pipeline`` / ``model`` / ``ingestion`` /
    ``server`` sections into an ``AppConfig``.  Missing sections use defaults.
    """
    raw = json.loads(json_str)
    if not isinstance(raw, dict):
        raise ValueError("Top-level JSON must be an object")
    return AppConfig.from_dict(raw)
