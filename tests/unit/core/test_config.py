"""Tests for settings, errors, logging and client factories."""

import dataclasses
import json
import logging

import pytest

from langchain_openai import ChatOpenAI, OpenAIEmbeddings

from ragchat.core.config import Settings
from ragchat.core.dependencies import create_chat_model, create_embeddings
from ragchat.core.errors import (
    ChatServiceError,
    ConfigurationError,
    ErrorCategory,
    SessionNotFoundError,
    StorageError,
)
from ragchat.core.logging import JsonFormatter, setup_logging


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.chat_history_ttl == 3600
        assert settings.knowledge_ttl == 86400
        assert settings.max_cache_key_length == 512
        assert settings.knowledge_top_k == 3

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("RAG_CHAT_HISTORY_TTL", "120")
        monkeypatch.setenv("RAG_REDIS_URL", "redis://example:6379/1")
        settings = Settings(_env_file=None)
        assert settings.chat_history_ttl == 120
        assert settings.redis_url == "redis://example:6379/1"

    def test_resolved_db_paths(self):
        settings = Settings(_env_file=None, data_directory="/srv/data")
        assert settings.resolved_session_db_path == "/srv/data/sessions.db"
        assert settings.resolved_knowledge_db_path == "/srv/data/knowledge.db"

        settings = Settings(_env_file=None, session_db_path="/tmp/s.db")
        assert settings.resolved_session_db_path == "/tmp/s.db"

    def test_cache_config_is_immutable(self):
        config = Settings(_env_file=None, knowledge_ttl=10).build_cache_config()
        assert config.knowledge_ttl == 10
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.knowledge_ttl = 20


class TestErrors:

    def test_to_dict(self):
        error = StorageError("insert failed", operation="append_messages", session_id="s1")
        data = error.to_dict()
        assert data["category"] == "storage"
        assert data["details"] == {"operation": "append_messages", "session_id": "s1"}
        assert data["recoverable"] is True

    def test_session_not_found(self):
        error = SessionNotFoundError("s1")
        assert isinstance(error, StorageError)
        assert isinstance(error, ChatServiceError)
        assert error.category is ErrorCategory.NOT_FOUND
        assert not error.recoverable

    def test_configuration_error(self):
        error = ConfigurationError("missing", setting="redis_url")
        assert error.details == {"setting": "redis_url"}
        assert not error.recoverable


class TestLogging:

    def test_json_formatter(self):
        record = logging.LogRecord("ragchat.test", logging.INFO, __file__, 10, "hello %s", ("world",), None)
        data = json.loads(JsonFormatter().format(record))
        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["logger"] == "ragchat.test"

    def test_json_formatter_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            import sys
            record = logging.LogRecord("t", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        data = json.loads(JsonFormatter().format(record))
        assert "ValueError: boom" in data["exception"]

    def test_setup_logging_replaces_handlers(self):
        setup_logging("DEBUG", "json")
        setup_logging("INFO", "text")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.INFO


class TestClientFactories:

    def test_missing_google_key(self):
        settings = Settings(_env_file=None, embedding_provider="google", google_api_key=None)
        with pytest.raises(ConfigurationError):
            create_embeddings(settings)

    def test_missing_openai_key(self):
        settings = Settings(_env_file=None, chat_provider="openai", openai_api_key=None)
        with pytest.raises(ConfigurationError):
            create_chat_model(settings)

    def test_unsupported_provider(self):
        settings = Settings(_env_file=None, embedding_provider="cohere")
        with pytest.raises(ConfigurationError) as exc_info:
            create_embeddings(settings)
        assert exc_info.value.details["setting"] == "embedding_provider"

    def test_openai_clients(self):
        settings = Settings(
            _env_file=None,
            embedding_provider="openai",
            chat_provider="openai",
            openai_api_key="sk-test",
        )
        assert isinstance(create_embeddings(settings), OpenAIEmbeddings)
        assert isinstance(create_chat_model(settings), ChatOpenAI)
