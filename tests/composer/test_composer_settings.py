"""Unit tests for ComposerSettings."""

import logging

import pytest

from exam_composer.composer.config import ComposerSettings


class TestComposerSettings:

    def test_defaults(self):
        settings = ComposerSettings()
        assert settings.debounce_seconds == 5.0
        assert settings.heartbeat_seconds == 120.0
        assert settings.default_page_size == 10
        assert settings.page_size_options == (5, 10, 20, 50)
        assert settings.strict_versions is False

    @pytest.mark.parametrize("kwargs", [
        {"debounce_seconds": -1},
        {"heartbeat_seconds": 0},
        {"tick_interval_ms": 0},
        {"default_page_size": 7},
        {"page_size_options": (0, 10)},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            ComposerSettings(**kwargs)

    def test_from_dict_ignores_unknown_keys(self):
        settings = ComposerSettings.from_dict({"debounce_seconds": 2, "theme": "dark"})
        assert settings.debounce_seconds == 2

    def test_from_dict_accepts_list_options(self):
        settings = ComposerSettings.from_dict({"page_size_options": [10, 25], "default_page_size": 25})
        assert settings.page_size_options == (10, 25)

    def test_from_dict_falls_back_to_defaults(self, caplog):
        with caplog.at_level(logging.WARNING):
            settings = ComposerSettings.from_dict({"heartbeat_seconds": -5})
        assert settings == ComposerSettings()
        assert "Invalid composer settings" in caplog.text
