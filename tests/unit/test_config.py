"""Unit tests for settings parsing."""
from __future__ import annotations

import pytest

from image_similarity.core.config import Settings


class TestSettings:
    """Test Settings."""

    def test_defaults(self, test_settings):
        assert test_settings.storage_backend == "memory"
        assert test_settings.uses_database is False
        assert test_settings.accepted_mime_types == ["image/jpeg", "image/png"]
        assert test_settings.max_upload_bytes == 10 * 1024 * 1024
        assert test_settings.default_search_limit == 10
        assert test_settings.max_search_limit == 100
        assert test_settings.processed_image_size == 224

    def test_comma_separated_lists(self, monkeypatch):
        monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")

        settings = Settings(_env_file=None)

        assert settings.cors_origins == ["http://a.test", "http://b.test"]

    def test_json_lists(self, monkeypatch):
        monkeypatch.setenv("ACCEPTED_MIME_TYPES", '["image/png"]')

        settings = Settings(_env_file=None)

        assert settings.accepted_mime_types == ["image/png"]

    def test_choices_normalised(self):
        settings = Settings(_env_file=None, storage_backend=" Database ", feature_extractor="CLIP")

        assert settings.uses_database is True
        assert settings.feature_extractor == "clip"

    def test_invalid_limit_rejected(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, max_search_limit=0)
