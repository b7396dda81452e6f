from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from phototag.constants import DIRECTION_SOUTH

_HEX_COLOR = re.compile(r"[0-9a-fA-F]{3}(?:[0-9a-fA-F]{3}(?:[0-9a-fA-F]{2})?)?")


def _prevail_hex(value: Any) -> str | None:
    if value is None or value == "":
        return None
    text = str(value).strip().lstrip("#")
    if not _HEX_COLOR.fullmatch(text):
        raise ValueError(f"brand logo prevail_hex is not a hex color: {value!r}")
    return text


def _fraction(position: dict[str, Any], key: str) -> float:
    value = position.get(key, 0.0)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"tag position {key} must be a number, got: {value!r}") from exc


def _url_of(data: Any) -> str | None:
    if isinstance(data, dict):
        url = data.get("url")
        return str(url) if url else None
    return None


@dataclass(frozen=True, slots=True)
class ImageRef:
    url: str

    @classmethod
    def from_versions(cls, data: dict[str, Any] | None, *preferred: str) -> ImageRef | None:
        """Pick the first version in ``preferred`` order that carries a URL."""
        if not isinstance(data, dict):
            return None
        for key in preferred:
            url = _url_of(data.get(key))
            if url:
                return cls(url=url)
        return None


@dataclass(frozen=True, slots=True)
class BrandLogo:
    url: str
    prevail_hex: str | None = None


@dataclass(frozen=True, slots=True)
class Brand:
    name: str
    logo: BrandLogo | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Brand:
        logo_data = data.get("logo")
        logo = None
        if isinstance(logo_data, dict) and logo_data.get("url"):
            logo = BrandLogo(url=str(logo_data["url"]), prevail_hex=_prevail_hex(logo_data.get("prevail_hex")))
        return cls(name=str(data.get("name") or ""), logo=logo)


@dataclass(frozen=True, slots=True)
class Product:
    brand: Brand
    image: ImageRef | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Product:
        return cls(
            brand=Brand.from_dict(data.get("brand") or {}),
            image=ImageRef.from_versions(data.get("image"), "thumbnail", "original"),
        )


@dataclass(frozen=True, slots=True)
class Tag:
    tlc_x: float
    tlc_y: float
    product: Product
    size_text: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Tag:
        position = data.get("position") or {}
        sizes = data.get("sizes") or {}
        return cls(
            tlc_x=_fraction(position, "tlc_x"),
            tlc_y=_fraction(position, "tlc_y"),
            product=Product.from_dict(data.get("product") or {}),
            size_text=str(sizes.get("string") or ""),
        )

    @property
    def brand_name(self) -> str:
        return self.product.brand.name

    @property
    def has_logo(self) -> bool:
        return self.product.brand.logo is not None

    @property
    def has_thumbnail(self) -> bool:
        return self.product.image is not None


@dataclass(frozen=True, slots=True)
class Photo:
    image: ImageRef
    tags: tuple[Tag, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Photo:
        image = ImageRef.from_versions(data.get("versions"), "large", "original")
        if image is None:
            raise ValueError("photo has neither a large nor an original image version")
        tags = tuple(Tag.from_dict(item) for item in data.get("tags") or [])
        return cls(image=image, tags=tags)


@dataclass(frozen=True, slots=True)
class LabelSize:
    width: float
    height: float


@dataclass(slots=True)
class Layout:
    label_x: float
    label_y: float
    width: float
    height: float
    anchor_x: float
    anchor_y: float
    direction: str = DIRECTION_SOUTH
    text_x: float = 0.0
    brand_baseline_y: float = 0.0
    size_baseline_y: float = 0.0
    logo_slot_width: float | None = None
    thumbnail_x: float | None = None
    separators: list[float] = field(default_factory=list)

    @property
    def box(self) -> tuple[float, float, float, float]:
        return self.label_x, self.label_y, self.label_x + self.width, self.label_y + self.height
