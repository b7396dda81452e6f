from __future__ import annotations

import copy
import os
import platform
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from phototag.constants import DEFAULT_WATERMARK_URL
from phototag.errors import ConfigurationError
from phototag.render.colors import parse_color

DEFAULT_CONFIG: dict[str, Any] = {
    "image_width": 375,
    "image_height": 500,
    "max_width": 120,
    "inactive_margin": 12,
    "arrow_size": 6,
    "border_color": "rgba(153, 153, 153, 0.25)",
    "background_color": "rgba(255, 255, 255, 0.96)",
    "horizontal_spacing": 10,
    "vertical_spacing": 4,
    "line_height": 15,
    "font_family": "Open Sans",
    "font_size": 11,
    "font_color": "rgb(54, 54, 54)",
    "font_path": None,
    "bold_font_path": None,
    "brand_width": 30,
    "brand_spacing": 4,
    "watermark_url": DEFAULT_WATERMARK_URL,
    "watermark_width": 113,
    "watermark_height": 51,
    "image_proxy_url": "",
    "page_origin": "",
    "jpeg_quality": 92,
    "resource_timeout": 30.0,
}

_POSITIVE_KEYS = ("image_width", "image_height", "max_width", "font_size", "line_height")
_NON_NEGATIVE_KEYS = (
    "inactive_margin",
    "horizontal_spacing",
    "vertical_spacing",
    "brand_width",
    "brand_spacing",
    "watermark_width",
    "watermark_height",
)
_COLOR_KEYS = ("border_color", "background_color", "font_color")


@dataclass(frozen=True, slots=True)
class RenderConfig:
    image_width: int = 375
    image_height: int = 500
    max_width: float = 120
    inactive_margin: float = 12
    arrow_size: float = 6
    border_color: str = "rgba(153, 153, 153, 0.25)"
    background_color: str = "rgba(255, 255, 255, 0.96)"
    horizontal_spacing: float = 10
    vertical_spacing: float = 4
    line_height: float = 15
    font_family: str = "Open Sans"
    font_size: int = 11
    font_color: str = "rgb(54, 54, 54)"
    font_path: Path | None = None
    bold_font_path: Path | None = None
    brand_width: float = 30
    brand_spacing: float = 4
    watermark_url: str = DEFAULT_WATERMARK_URL
    watermark_width: float = 113
    watermark_height: float = 51
    image_proxy_url: str = ""
    page_origin: str = ""
    jpeg_quality: int = 92
    resource_timeout: float | None = 30.0

    @property
    def brand_slot_width(self) -> float:
        return self.brand_width + self.brand_spacing * 2


def get_config_path() -> Path:
    system_name = platform.system().lower()
    if system_name == "windows":
        base = os.environ.get("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return Path(base) / "phototag" / "config.yaml"
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home) / "phototag" / "config.yaml"
    return Path.home() / ".config" / "phototag" / "config.yaml"


def _deep_merge(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    cfg_path = path or get_config_path()
    if not cfg_path.exists():
        if path is not None:
            raise ConfigurationError(f"config file not found: {cfg_path}")
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        loaded = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"invalid YAML in config file {cfg_path}: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"config file is not a mapping: {cfg_path}")
    return _deep_merge(DEFAULT_CONFIG, loaded)


def write_default_config(path: Path | None = None, force: bool = False) -> Path:
    cfg_path = path or get_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    if cfg_path.exists() and not force:
        return cfg_path
    cfg_path.write_text(yaml.safe_dump(DEFAULT_CONFIG, sort_keys=False, allow_unicode=True), encoding="utf-8")
    return cfg_path


def _as_number(key: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{key} must be a number, got: {value!r}") from exc


def build_render_config(overrides: dict[str, Any] | None = None) -> RenderConfig:
    """Merge ``overrides`` over the defaults and validate the result.

    Unknown keys are rejected so that a typo does not silently fall back to a
    default value.
    """
    data = _deep_merge(DEFAULT_CONFIG, overrides or {})
    known = {item.name for item in fields(RenderConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"unknown config keys: {', '.join(unknown)}")

    for key in _POSITIVE_KEYS:
        if _as_number(key, data[key]) <= 0:
            raise ConfigurationError(f"{key} must be positive, got: {data[key]!r}")
    for key in _NON_NEGATIVE_KEYS:
        if _as_number(key, data[key]) < 0:
            raise ConfigurationError(f"{key} must not be negative, got: {data[key]!r}")
    if _as_number("arrow_size", data["arrow_size"]) < 1:
        raise ConfigurationError(f"arrow_size must be at least 1, got: {data['arrow_size']!r}")
    for key in _COLOR_KEYS:
        try:
            parse_color(data[key])
        except ValueError as exc:
            raise ConfigurationError(f"{key} is not a valid color: {data[key]!r}") from exc

    timeout = data.get("resource_timeout")
    if timeout is not None and _as_number("resource_timeout", timeout) <= 0:
        raise ConfigurationError(f"resource_timeout must be positive or null, got: {timeout!r}")

    quality = _as_number("jpeg_quality", data["jpeg_quality"])
    watermark_url = data["watermark_url"]
    if not isinstance(watermark_url, str) or not watermark_url.strip():
        raise ConfigurationError(f"watermark_url must be a non-empty string, got: {watermark_url!r}")
    for key in ("font_path", "bold_font_path"):
        if data.get(key) is not None and not isinstance(data[key], (str, os.PathLike)):
            raise ConfigurationError(f"{key} must be a path or null, got: {data[key]!r}")

    font_path = data.get("font_path")
    bold_font_path = data.get("bold_font_path")
    return RenderConfig(
        image_width=int(data["image_width"]),
        image_height=int(data["image_height"]),
        max_width=float(data["max_width"]),
        inactive_margin=float(data["inactive_margin"]),
        arrow_size=float(data["arrow_size"]),
        border_color=str(data["border_color"]),
        background_color=str(data["background_color"]),
        horizontal_spacing=float(data["horizontal_spacing"]),
        vertical_spacing=float(data["vertical_spacing"]),
        line_height=float(data["line_height"]),
        font_family=str(data["font_family"]),
        font_size=int(data["font_size"]),
        font_color=str(data["font_color"]),
        font_path=Path(font_path) if font_path else None,
        bold_font_path=Path(bold_font_path) if bold_font_path else None,
        brand_width=float(data["brand_width"]),
        brand_spacing=float(data["brand_spacing"]),
        watermark_url=watermark_url,
        watermark_width=float(data["watermark_width"]),
        watermark_height=float(data["watermark_height"]),
        image_proxy_url=str(data.get("image_proxy_url") or ""),
        page_origin=str(data.get("page_origin") or ""),
        jpeg_quality=max(1, min(100, int(quality))),
        resource_timeout=float(timeout) if timeout is not None else None,
    )
