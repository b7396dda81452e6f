from __future__ import annotations

import asyncio

import pytest
from PIL import Image

from phototag.errors import ResourceLoadError


class MemoryLoader:
    """Serves solid-color images by URL; URLs in ``fail`` raise, URLs in ``hang`` never finish."""

    def __init__(
        self,
        images: dict[str, Image.Image] | None = None,
        *,
        fail: set[str] | None = None,
        hang: set[str] | None = None,
    ) -> None:
        self.images = images or {}
        self.fail = fail or set()
        self.hang = hang or set()
        self.requested: list[str] = []
        self.cancelled: list[str] = []

    async def load(self, url: str) -> Image.Image:
        self.requested.append(url)
        await asyncio.sleep(0)
        if url in self.fail:
            raise ResourceLoadError(url, "simulated failure")
        if url in self.hang:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled.append(url)
                raise
        return self.images.get(url) or Image.new("RGBA", (80, 60), (200, 40, 40, 255))


@pytest.fixture
def memory_loader() -> type[MemoryLoader]:
    return MemoryLoader


@pytest.fixture
def photo_data() -> dict:
    return {
        "versions": {
            "large": {"url": "https://cdn.example.com/photo-large.jpg"},
            "original": {"url": "https://cdn.example.com/photo.jpg"},
        },
        "tags": [],
    }


def make_tag(
    x: float,
    y: float,
    brand: str = "Acme",
    size: str = "M",
    *,
    logo: bool = False,
    thumbnail: bool = False,
    prevail_hex: str | None = None,
) -> dict:
    brand_data: dict = {"name": brand}
    if logo:
        brand_data["logo"] = {"url": f"https://cdn.example.com/logo-{brand}.png", "prevail_hex": prevail_hex}
    product: dict = {"brand": brand_data}
    if thumbnail:
        product["image"] = {"thumbnail": {"url": f"https://cdn.example.com/thumb-{brand}.jpg"}}
    return {"position": {"tlc_x": x, "tlc_y": y}, "product": product, "sizes": {"string": size}}


@pytest.fixture
def tag_factory():
    return make_tag
