from __future__ import annotations

import io
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from phototag.constants import LOCAL_IMAGE_EXTENSIONS


def _normalize(image: Image.Image) -> Image.Image:
    return ImageOps.exif_transpose(image).convert("RGBA").copy()


def decode_bytes(data: bytes) -> Image.Image:
    if not data:
        raise RuntimeError("empty image payload")
    try:
        with Image.open(io.BytesIO(data)) as image:
            return _normalize(image)
    except UnidentifiedImageError as exc:
        raise RuntimeError("payload is not a decodable image") from exc


def decode_image(path: Path) -> Image.Image:
    ext = path.suffix.lower()
    if ext not in LOCAL_IMAGE_EXTENSIONS:
        raise RuntimeError(f"unsupported image format: {path.suffix}")
    if not path.is_file():
        raise RuntimeError(f"image file not found: {path}")
    try:
        with Image.open(path) as image:
            return _normalize(image)
    except UnidentifiedImageError as exc:
        raise RuntimeError(f"cannot decode image: {path}") from exc
