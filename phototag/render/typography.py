from __future__ import annotations

import logging
import os
import platform
import re
from functools import lru_cache
from pathlib import Path
from typing import Callable

from PIL import ImageFont

from phototag.constants import ELLIPSIS

LOGGER = logging.getLogger(__name__)

_FONT_FILE_SUFFIXES = {".ttf", ".ttc", ".otf", ".otc"}
_REGULAR_STYLES = {"", "regular", "normal", "book", "roman"}
_BOLD_STYLES = {"bold", "bd"}


def _system_font_candidates(bold: bool) -> list[Path]:
    system = platform.system().lower()
    if "windows" in system:
        return [Path(r"C:\Windows\Fonts\arialbd.ttf" if bold else r"C:\Windows\Fonts\arial.ttf")]
    if "darwin" in system:
        return [
            Path("/System/Library/Fonts/Supplemental/Arial Bold.ttf" if bold else "/System/Library/Fonts/Supplemental/Arial.ttf"),
            Path("/Library/Fonts/Arial Unicode.ttf"),
        ]
    return [
        Path("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf" if bold else "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
        Path("/usr/share/fonts/TTF/DejaVuSans-Bold.ttf" if bold else "/usr/share/fonts/TTF/DejaVuSans.ttf"),
    ]


def _system_font_directories() -> list[Path]:
    system = platform.system().lower()
    roots: list[Path] = []
    if "windows" in system:
        windows_dir = Path(os.environ.get("WINDIR", r"C:\Windows"))
        roots.append(windows_dir / "Fonts")
        local_app_data = os.environ.get("LOCALAPPDATA")
        if local_app_data:
            roots.append(Path(local_app_data) / "Microsoft" / "Windows" / "Fonts")
    elif "darwin" in system:
        roots.extend(
            [
                Path("/System/Library/Fonts"),
                Path("/Library/Fonts"),
                Path.home() / "Library" / "Fonts",
            ]
        )
    else:
        roots.extend(
            [
                Path("/usr/share/fonts"),
                Path("/usr/local/share/fonts"),
                Path.home() / ".fonts",
                Path.home() / ".local" / "share" / "fonts",
            ]
        )
    return roots


@lru_cache(maxsize=1)
def list_available_font_paths() -> list[Path]:
    available: list[Path] = []
    seen: set[str] = set()

    for root in _system_font_directories():
        if not root.is_dir():
            continue
        for dir_path, _dir_names, file_names in os.walk(root, onerror=lambda _err: None):
            for file_name in file_names:
                if Path(file_name).suffix.lower() not in _FONT_FILE_SUFFIXES:
                    continue
                candidate = Path(dir_path) / file_name
                key = str(candidate).lower()
                if key in seen:
                    continue
                seen.add(key)
                available.append(candidate)

    available.sort(key=lambda path: (path.stem.lower(), str(path).lower()))
    return available


def _compact(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


def find_font_files(family: str, paths: list[Path] | None = None) -> dict[str, Path]:
    """Map ``regular``/``bold`` to installed font files of ``family``.

    Files are matched on their stem, e.g. ``OpenSans-Bold.ttf`` is the bold
    face of "Open Sans".
    """
    key = _compact(family)
    found: dict[str, Path] = {}
    if not key:
        return found
    for path in paths if paths is not None else list_available_font_paths():
        stem = _compact(path.stem)
        if not stem.startswith(key):
            continue
        style = stem[len(key):]
        if style in _REGULAR_STYLES:
            found.setdefault("regular", path)
        elif style in _BOLD_STYLES:
            found.setdefault("bold", path)
    return found


def font_candidates(
    faces: dict[str, Path],
    bold: bool = False,
    font_path: Path | None = None,
    bold_font_path: Path | None = None,
) -> list[Path]:
    """Font files to try, in order, for one face.

    Bold requests prefer a bold file over ``font_path`` so the brand line
    keeps its weight when only a regular override is configured.
    """
    candidates: list[Path] = []
    if bold:
        if bold_font_path:
            candidates.append(bold_font_path)
        if "bold" in faces:
            candidates.append(faces["bold"])
    if font_path:
        candidates.append(font_path)
    if "regular" in faces:
        candidates.append(faces["regular"])
    candidates.extend(_system_font_candidates(bold))
    return candidates


@lru_cache(maxsize=64)
def load_font(
    family: str,
    size: int,
    bold: bool = False,
    font_path: Path | None = None,
    bold_font_path: Path | None = None,
) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    candidates = font_candidates(find_font_files(family), bold, font_path, bold_font_path)
    for candidate in candidates:
        if not candidate.exists():
            continue
        try:
            return ImageFont.truetype(str(candidate), size=size)
        except OSError as exc:
            LOGGER.debug("cannot open font %s: %s", candidate, exc)
    LOGGER.debug("no font file for %r, using Pillow default font", family)
    return ImageFont.load_default(size=size)


class FontWatcher:
    """Tells callers when a font family is ready to measure and draw.

    Fonts are resolved from local files, so readiness is known right away
    and the callback runs before ``on_font_loaded`` returns.
    """

    def __init__(self, font_path: Path | None = None) -> None:
        self._font_path = font_path
        self._ready: set[str] = set()

    def is_ready(self, family: str) -> bool:
        return family in self._ready

    def on_font_loaded(self, family: str, callback: Callable[[], None]) -> None:
        if family not in self._ready:
            if self._font_path is None and not find_font_files(family):
                LOGGER.warning("font family %r is not installed, falling back to a system font", family)
            self._ready.add(family)
        callback()


def truncate_text(text: str, max_width: float, measure: Callable[[str], float]) -> str:
    """Crop ``text`` with a trailing ellipsis until it fits ``max_width``.

    At least one character is always kept, so the result may still overflow
    when even that does not fit.
    """
    if measure(text) <= max_width:
        return text
    output = text
    while len(output) > 1 and measure(output + ELLIPSIS) > max_width:
        output = output[:-1]
    return output + ELLIPSIS
