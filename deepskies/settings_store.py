from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from .view import DEFAULT_DISPLAY_HEIGHT, DEFAULT_DISPLAY_WIDTH

logger = logging.getLogger(__name__)

SETTINGS_PATH = Path.home() / ".deepskies_settings.json"
# Increment when the on-disk settings layout changes
SETTINGS_SCHEMA_VERSION = 1

DEFAULT_CATALOG_PATH = "STARS.DAT"
DEFAULT_OUTPUT_PATH = "deepskies.png"
LOG_LEVEL_CHOICES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ViewerSettings:
    """Application settings. The view direction itself is never stored here."""

    schema_version: int = SETTINGS_SCHEMA_VERSION
    catalog_path: str = DEFAULT_CATALOG_PATH
    output_path: str = DEFAULT_OUTPUT_PATH
    display_width: int = DEFAULT_DISPLAY_WIDTH
    display_height: int = DEFAULT_DISPLAY_HEIGHT
    log_level: str = "INFO"
    log_file: Optional[str] = None
    label_font_size: int = 11
    foreground: str = "#ffffff"
    background: str = "#000000"


def _resolve_settings_path() -> Path:
    """Return the active settings path, honoring the DEEPSKIES_SETTINGS override."""
    override = os.environ.get("DEEPSKIES_SETTINGS")
    if override:
        return Path(override).expanduser()
    return SETTINGS_PATH


def _positive_int(value: object, default: int) -> int:
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _color(value: object, default: str) -> str:
    if isinstance(value, str):
        text = value.strip().lower()
        if len(text) == 7 and text.startswith("#"):
            try:
                int(text[1:], 16)
            except ValueError:
                return default
            return text
    return default


def parse_color(value: str) -> tuple[int, int, int]:
    text = value.lstrip("#")
    return int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16)


def load_persistent_settings(path: Path | str | None = None) -> ViewerSettings:
    target = Path(path).expanduser() if path else _resolve_settings_path()
    if not target.exists():
        return ViewerSettings()
    try:
        payload = json.loads(target.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("ignoring unreadable settings file %s: %s", target, exc)
        return ViewerSettings()
    if not isinstance(payload, dict):
        return ViewerSettings()

    log_level = str(payload.get("log_level", "INFO") or "INFO").upper()
    if log_level not in LOG_LEVEL_CHOICES:
        log_level = "INFO"
    defaults = ViewerSettings()
    return ViewerSettings(
        schema_version=int(payload.get("schema_version", SETTINGS_SCHEMA_VERSION) or SETTINGS_SCHEMA_VERSION),
        catalog_path=str(payload.get("catalog_path") or DEFAULT_CATALOG_PATH),
        output_path=str(payload.get("output_path") or DEFAULT_OUTPUT_PATH),
        display_width=_positive_int(payload.get("display_width"), defaults.display_width),
        display_height=_positive_int(payload.get("display_height"), defaults.display_height),
        log_level=log_level,
        log_file=(payload.get("log_file") or None),
        label_font_size=_positive_int(payload.get("label_font_size"), defaults.label_font_size),
        foreground=_color(payload.get("foreground"), defaults.foreground),
        background=_color(payload.get("background"), defaults.background),
    )


def save_persistent_settings(settings: ViewerSettings, path: Path | str | None = None) -> Path:
    target = Path(path).expanduser() if path else _resolve_settings_path()
    data = asdict(settings)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return target


__all__ = [
    "LOG_LEVEL_CHOICES",
    "SETTINGS_PATH",
    "SETTINGS_SCHEMA_VERSION",
    "ViewerSettings",
    "load_persistent_settings",
    "parse_color",
    "save_persistent_settings",
]
