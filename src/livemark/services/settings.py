"""Editor settings dataclass, normalization and JSON persistence."""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from ..editor.formatting import FormattingPreferences

__all__ = [
    "DEFAULT_SETTINGS",
    "EditorSettings",
    "SettingsStore",
    "formatting_preferences",
    "normalize_settings",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".livemark"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "LIVEMARK_FONT_FAMILY": "font_family",
    "LIVEMARK_SHORTCUTS_MODE": "shortcuts_mode",
    "LIVEMARK_EMPTY_SELECTION": "empty_selection_behavior",
    "LIVEMARK_ITALIC_DELIMITER": "italic_delimiter",
    "LIVEMARK_MOTION_LEVEL": "motion_level",
    "LIVEMARK_WIDGET_DENSITY": "widget_density",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "LIVEMARK_FONT_SIZE": "font_size",
    "LIVEMARK_TAB_SIZE": "tab_size",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "LIVEMARK_LINE_HEIGHT": "line_height",
    "LIVEMARK_TYPOGRAPHY_SCALE": "typography_scale",
}
_CHOICES: Mapping[str, tuple[str, ...]] = {
    "shortcuts_mode": ("hybrid", "hostOnly", "webviewOnly"),
    "empty_selection_behavior": ("word", "markers"),
    "italic_delimiter": ("underscore", "asterisk"),
    "motion_level": ("off", "subtle", "full"),
    "widget_density": ("comfortable", "compact"),
}
# Host payloads use camelCase keys.
_WIRE_NAMES: Mapping[str, str] = {
    "fontFamily": "font_family",
    "fontSize": "font_size",
    "lineHeight": "line_height",
    "tabSize": "tab_size",
    "shortcutsMode": "shortcuts_mode",
    "emptySelectionBehavior": "empty_selection_behavior",
    "italicDelimiter": "italic_delimiter",
    "motionLevel": "motion_level",
    "widgetDensity": "widget_density",
    "typographyScale": "typography_scale",
}


@dataclass(slots=True, frozen=True)
class EditorSettings:
    """Display metrics plus the preferences the formatting engine consumes."""

    font_family: str = "monospace"
    font_size: int = 14
    line_height: float = 1.6
    tab_size: int = 4
    shortcuts_mode: str = "hybrid"
    empty_selection_behavior: str = "word"
    italic_delimiter: str = "underscore"
    motion_level: str = "subtle"
    widget_density: str = "comfortable"
    typography_scale: float = 1.0

    @property
    def intercept_shortcuts(self) -> bool:
        """Whether widgets handle formatting shortcuts themselves."""

        return self.shortcuts_mode != "hostOnly"

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> EditorSettings:
        """Build normalized settings from a host payload (camelCase or snake_case keys)."""

        data: Dict[str, Any] = {}
        for key, value in (payload or {}).items():
            data[_WIRE_NAMES.get(key, key)] = value
        return normalize_settings(_filter_fields(data))

    def to_payload(self) -> Dict[str, Any]:
        reverse = {value: key for key, value in _WIRE_NAMES.items()}
        return {reverse[key]: value for key, value in asdict(self).items()}


DEFAULT_SETTINGS = EditorSettings()


def _number(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def normalize_settings(settings: EditorSettings | Mapping[str, Any] | None) -> EditorSettings:
    """Clamp numeric metrics and replace unknown choices with defaults.

    A line height of 4 or more is treated as pixels and converted to a ratio
    of the font size (at least 12). Line height is clamped to 1.2-2.4 and the
    typography scale to 0.85-1.35.
    """

    if settings is None:
        data: Dict[str, Any] = {}
    elif isinstance(settings, EditorSettings):
        data = asdict(settings)
    else:
        data = _filter_fields(settings)
    defaults = DEFAULT_SETTINGS

    line_height = _number(data.get("line_height"))
    if line_height is None or line_height <= 0:
        line_height = defaults.line_height
    elif line_height >= 4:
        base_font = _number(data.get("font_size")) or defaults.font_size
        line_height = line_height / max(base_font, 12)
    data["line_height"] = max(1.2, min(2.4, line_height))

    scale = _number(data.get("typography_scale"))
    data["typography_scale"] = defaults.typography_scale if scale is None else max(0.85, min(1.35, scale))

    for name in ("font_size", "tab_size"):
        number = _number(data.get(name))
        data[name] = int(number) if number is not None and number > 0 else getattr(defaults, name)

    for name, choices in _CHOICES.items():
        if data.get(name) not in choices:
            if name in data:
                LOGGER.debug("Unknown %s value %r; using %r", name, data[name], getattr(defaults, name))
            data[name] = getattr(defaults, name)

    family = data.get("font_family")
    if not isinstance(family, str) or not family.strip():
        data["font_family"] = defaults.font_family
    return EditorSettings(**data)


def formatting_preferences(settings: EditorSettings | None) -> FormattingPreferences:
    settings = settings or DEFAULT_SETTINGS
    return FormattingPreferences(
        empty_selection_behavior=settings.empty_selection_behavior,
        italic_delimiter=settings.italic_delimiter,
    )


class SettingsStore:
    """JSON persistence for :class:`EditorSettings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> EditorSettings:
        """Load settings from disk, then apply ``overrides`` and ``LIVEMARK_*`` variables."""

        payload = self._read_payload()
        settings = DEFAULT_SETTINGS
        if payload:
            try:
                settings = normalize_settings(EditorSettings(**_filter_fields(payload)))
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = DEFAULT_SETTINGS
            if payload.get("version") != _SETTINGS_VERSION:
                try:
                    self.save(settings)
                except OSError as exc:  # pragma: no cover - read-only home directories
                    LOGGER.warning("Failed to migrate settings payload: %s", exc)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="runtime")
        return self._apply_env_overrides(settings)

    def save(self, settings: EditorSettings) -> Path:
        """Persist settings with an atomic file replace."""

        data = asdict(settings)
        data["version"] = _SETTINGS_VERSION
        body = json.dumps(data, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: EditorSettings,
        overrides: Mapping[str, Any],
        *,
        source: str,
    ) -> EditorSettings:
        filtered = {key: value for key, value in _filter_fields(overrides).items() if value is not None}
        if not filtered:
            return settings
        LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
        return normalize_settings(replace(settings, **filtered))

    def _apply_env_overrides(self, settings: EditorSettings) -> EditorSettings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid integer", env_name, value)
        for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = float(value)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid float", env_name, value)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {field.name for field in fields(EditorSettings)}
    return {key: value for key, value in payload.items() if key in allowed}
