"""Tests for configuration."""

import pytest
from pydantic import ValidationError

from solr_indexer.config import Settings, get_settings


def test_settings_defaults():
    """Test that settings have correct default values."""
    settings = Settings()
    assert settings.app_name == "Solr Indexer"
    assert settings.app_version == "0.1.0"
    assert settings.environment in ["development", "staging", "production"]
    assert settings.api_v1_prefix == "/api/v1"


def test_get_settings_returns_singleton():
    """Test that get_settings returns the same instance."""
    settings1 = get_settings()
    settings2 = get_settings()
    assert settings1 is settings2


def test_settings_solr_defaults():
    settings = Settings(_env_file=None)
    assert settings.solr_queue_size == 500
    assert settings.solr_thread_count == 1
    assert settings.solr_filter_properties == {"id": "jcr:uuid"}
    assert settings.documents_root == "/content/documents"


def test_settings_reject_non_positive_batch_size():
    with pytest.raises(ValidationError):
        Settings(solr_queue_size=0)


def test_settings_read_filter_properties_from_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SOLR_FILTER_PROPERTIES", '{"id": "jcr:uuid", "title": "myproject:title"}')
    monkeypatch.setenv("SOLR_QUEUE_SIZE", "100")

    settings = Settings()

    assert settings.solr_filter_properties == {"id": "jcr:uuid", "title": "myproject:title"}
    assert settings.solr_queue_size == 100
