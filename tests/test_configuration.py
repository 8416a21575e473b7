"""Tests for the configuration loader."""

from pathlib import Path

import pytest

from keyhole.configuration import clear_cache, get_settings, parse_extensions
from keyhole.errors import ConfigurationError, ErrorCategory


class TestGetSettings:
    """Loading settings from the environment and a .env file."""

    def test_defaults(self) -> None:
        settings = get_settings()

        assert settings.KEYHOLE_REFERENCE_LANGUAGE == "en"
        assert settings.KEYHOLE_DIALECT == "auto"
        assert settings.KEYHOLE_SOURCE_MAPS is False
        assert settings.KEYHOLE_STRICT is False
        assert parse_extensions(settings.KEYHOLE_EXTENSIONS) == (".js", ".mjs", ".cjs")

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KEYHOLE_REFERENCE_LANGUAGE", "de")
        monkeypatch.setenv("KEYHOLE_STRICT", "true")

        settings = get_settings()

        assert settings.KEYHOLE_REFERENCE_LANGUAGE == "de"
        assert settings.KEYHOLE_STRICT is True

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("vite", "rollup"),
            (" Webpack-Eval ", "webpack_eval"),
            ("WEBPACK", "webpack"),
            ("parcel", "auto"),
        ],
    )
    def test_dialect_synonyms(
        self, monkeypatch: pytest.MonkeyPatch, raw: str, expected: str
    ) -> None:
        monkeypatch.setenv("KEYHOLE_DIALECT", raw)

        assert get_settings().KEYHOLE_DIALECT == expected

    def test_dotenv_file(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("KEYHOLE_REFERENCE_LANGUAGE=fr\n", encoding="utf-8")

        assert get_settings(app_dir=tmp_path).KEYHOLE_REFERENCE_LANGUAGE == "fr"

    def test_process_environment_wins_over_dotenv(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        (tmp_path / ".env").write_text("KEYHOLE_REFERENCE_LANGUAGE=fr\n", encoding="utf-8")
        monkeypatch.setenv("KEYHOLE_REFERENCE_LANGUAGE", "it")

        assert get_settings(app_dir=tmp_path).KEYHOLE_REFERENCE_LANGUAGE == "it"

    def test_settings_are_cached(self, monkeypatch: pytest.MonkeyPatch) -> None:
        first = get_settings()
        monkeypatch.setenv("KEYHOLE_REFERENCE_LANGUAGE", "nl")

        assert get_settings().KEYHOLE_REFERENCE_LANGUAGE == first.KEYHOLE_REFERENCE_LANGUAGE

        clear_cache()
        assert get_settings().KEYHOLE_REFERENCE_LANGUAGE == "nl"

    def test_invalid_skip_pattern(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KEYHOLE_SKIP_PATTERN", "vendor(")

        with pytest.raises(ConfigurationError) as info:
            get_settings()

        assert info.value.category is ErrorCategory.CONFIGURATION
        assert "KEYHOLE_SKIP_PATTERN" in str(info.value)

    def test_invalid_language_code(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KEYHOLE_REFERENCE_LANGUAGE", "en/../x")

        with pytest.raises(ConfigurationError, match="KEYHOLE_REFERENCE_LANGUAGE"):
            get_settings()


class TestParseExtensions:
    """Extension list parsing."""

    def test_adds_missing_dots(self) -> None:
        assert parse_extensions("js, .mjs ,,cjs") == (".js", ".mjs", ".cjs")

    def test_empty(self) -> None:
        assert parse_extensions(" , ") == ()
