"""Tests for editor settings normalization and persistence."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from livemark.services.settings import (
    DEFAULT_SETTINGS,
    EditorSettings,
    SettingsStore,
    formatting_preferences,
    normalize_settings,
)


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "LIVEMARK_FONT_SIZE",
        "LIVEMARK_TAB_SIZE",
        "LIVEMARK_LINE_HEIGHT",
        "LIVEMARK_TYPOGRAPHY_SCALE",
        "LIVEMARK_ITALIC_DELIMITER",
        "LIVEMARK_SHORTCUTS_MODE",
    ):
        monkeypatch.delenv(name, raising=False)


def test_pixel_line_height_becomes_ratio() -> None:
    assert normalize_settings(EditorSettings(font_size=16, line_height=24)).line_height == 1.5
    assert normalize_settings(EditorSettings(font_size=10, line_height=9)).line_height == 1.2
    assert normalize_settings({"line_height": 3.0}).line_height == 2.4
    assert normalize_settings({"line_height": "nan"}).line_height == DEFAULT_SETTINGS.line_height


def test_unknown_values_fall_back_to_defaults() -> None:
    settings = normalize_settings(
        {
            "shortcuts_mode": "everything",
            "font_size": -3,
            "font_family": "  ",
            "typography_scale": 2,
            "motion_level": "full",
        }
    )

    assert settings.shortcuts_mode == "hybrid"
    assert settings.font_size == DEFAULT_SETTINGS.font_size
    assert settings.font_family == "monospace"
    assert settings.typography_scale == 1.35
    assert settings.motion_level == "full"


def test_payload_uses_camel_case_keys() -> None:
    settings = EditorSettings.from_payload(
        {"fontSize": 16, "shortcutsMode": "hostOnly", "italicDelimiter": "asterisk", "unknown": 1}
    )

    assert settings.font_size == 16
    assert settings.intercept_shortcuts is False
    payload = settings.to_payload()
    assert payload["italicDelimiter"] == "asterisk"
    assert payload["typographyScale"] == 1.0
    assert EditorSettings.from_payload(None) == DEFAULT_SETTINGS


def test_formatting_preferences_follow_settings() -> None:
    prefs = formatting_preferences(EditorSettings(empty_selection_behavior="markers", italic_delimiter="asterisk"))

    assert prefs.empty_selection_behavior == "markers"
    assert prefs.italic_delimiter == "asterisk"


def test_load_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    assert SettingsStore(tmp_path / "settings.json").load() == DEFAULT_SETTINGS


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.json"
    store = SettingsStore(path)
    original = EditorSettings(font_size=16, italic_delimiter="asterisk", widget_density="compact")

    store.save(original)

    assert json.loads(path.read_text(encoding="utf-8"))["version"] == 1
    assert not path.with_suffix(".tmp").exists()
    assert SettingsStore(path).load() == original


def test_invalid_json_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    assert SettingsStore(path).load() == DEFAULT_SETTINGS
    assert path.read_text(encoding="utf-8") == "{not json"


def test_unversioned_payload_is_migrated(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"font_size": 20, "legacy": True}), encoding="utf-8")

    settings = SettingsStore(path).load()

    assert settings.font_size == 20
    stored = json.loads(path.read_text(encoding="utf-8"))
    assert stored["version"] == 1
    assert "legacy" not in stored


def test_runtime_overrides_skip_none(tmp_path: Path) -> None:
    settings = SettingsStore(tmp_path / "settings.json").load(overrides={"tab_size": 2, "font_size": None})

    assert settings.tab_size == 2
    assert settings.font_size == DEFAULT_SETTINGS.font_size


def test_environment_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LIVEMARK_FONT_SIZE", "18")
    monkeypatch.setenv("LIVEMARK_TAB_SIZE", "wide")
    monkeypatch.setenv("LIVEMARK_LINE_HEIGHT", "2.0")
    monkeypatch.setenv("LIVEMARK_ITALIC_DELIMITER", "asterisk")

    settings = SettingsStore(tmp_path / "settings.json").load()

    assert settings.font_size == 18
    assert settings.tab_size == DEFAULT_SETTINGS.tab_size
    assert settings.line_height == 2.0
    assert settings.italic_delimiter == "asterisk"
