"""Tests for configuration dataclasses."""

from __future__ import annotations

import dataclasses
import json

import pytest

from deal_qualifier.infrastructure.config import (
    DEFAULT_SESSION_ID,
    AppConfig,
    IngestionConfig,
    ModelConfig,
    PipelineConfig,
    ServerConfig,
    load_config_from_json,
)


class TestPipelineConfig:

    def test_defaults(self) -> None:
        cfg = PipelineConfig()
        cfg.validate()
        assert cfg.context_separator == "\n\n"
        assert cfg.chat_excerpt_chars == 3000
        assert cfg.reconcile_scores is True
        assert cfg.include_verdict is False

    def test_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            PipelineConfig().chat_excerpt_chars = 1  # type: ignore[misc]

    def test_threshold_order(self) -> None:
        with pytest.raises(ValueError, match="thresholds"):
            PipelineConfig(go_threshold=0.3, no_go_threshold=0.5).validate()

    def test_from_dict_ignores_unknown(self) -> None:
        cfg = PipelineConfig.from_dict({"chat_excerpt_chars": 100, "bogus": 1})
        assert cfg.chat_excerpt_chars == 100


class TestModelConfig:

    def test_bad_provider(self) -> None:
        with pytest.raises(ValueError, match="provider"):
            ModelConfig(provider="llamafile").validate()

    def test_bad_temperature(self) -> None:
        with pytest.raises(ValueError, match="temperature"):
            ModelConfig(temperature=3.0).validate()


class TestIngestionConfig:

    def test_defaults(self) -> None:
        cfg = IngestionConfig()
        assert (cfg.chunk_size, cfg.chunk_overlap) == (500, 200)

    def test_overlap_must_be_smaller(self) -> None:
        with pytest.raises(ValueError, match="chunk_overlap"):
            IngestionConfig(chunk_size=100, chunk_overlap=100).validate()


class TestServerConfig:

    def test_defaults(self) -> None:
        cfg = ServerConfig()
        assert cfg.default_session_id == DEFAULT_SESSION_ID == "demo-session"
        assert cfg.cors_origins == ("http://localhost:5173",)

    def test_origins_from_string(self) -> None:
        cfg = ServerConfig(cors_origins="http://a, http://b")  # type: ignore[arg-type]
        assert cfg.cors_origins == ("http://a", "http://b")

    def test_origins_from_list(self) -> None:
        cfg = ServerConfig.from_dict({"cors_origins": ["http://a"]})
        assert cfg.cors_origins == ("http://a",)

    def test_bad_port(self) -> None:
        with pytest.raises(ValueError, match="port"):
            ServerConfig(port=0).validate()


class TestAppConfig:

    def test_round_trip_dict(self) -> None:
        cfg = AppConfig()
        assert AppConfig.from_dict(cfg.to_dict()) == cfg

    def test_load_from_json(self) -> None:
        raw = json.dumps({"pipeline": {"include_verdict": True}, "server": {"port": 8080}})
        cfg = load_config_from_json(raw)
        assert cfg.pipeline.include_verdict is True
        assert cfg.server.port == 8080
        assert cfg.model == ModelConfig()

    def test_load_from_json_rejects_array(self) -> None:
        with pytest.raises(ValueError, match="object"):
            load_config_from_json("[]")

    def test_from_env(self) -> None:
        cfg = AppConfig.from_env(
            {
                "DEAL_QUALIFIER_MODEL_PROVIDER": "openai",
                "DEAL_QUALIFIER_MODEL_TEMPERATURE": "0.5",
                "DEAL_QUALIFIER_SERVER_PORT": "9000",
                "DEAL_QUALIFIER_PIPELINE_INCLUDE_VERDICT": "true",
                "DEAL_QUALIFIER_SERVER_CORS_ORIGINS": "http://x,http://y",
                "UNRELATED": "1",
            }
        )
        assert cfg.model.provider == "openai"
        assert cfg.model.temperature == pytest.approx(0.5)
        assert cfg.server.port == 9000
        assert cfg.pipeline.include_verdict is True
        assert cfg.server.cors_origins == ("http://x", "http://y")

    def test_from_env_empty_uses_defaults(self) -> None:
        assert AppConfig.from_env({}) == AppConfig()

    def test_from_env_validates(self) -> None:
        with pytest.raises(ValueError):
            AppConfig.from_env({"DEAL_QUALIFIER_INGESTION_CHUNK_SIZE": "0"})
