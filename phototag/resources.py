from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Protocol
from urllib.parse import urlsplit
from urllib.request import url2pathname

import httpx
from PIL import Image

from phototag.decoders.image_decoder import decode_bytes, decode_image
from phototag.errors import ResourceLoadError
from phototag.models import Photo
from phototag.urls import UrlResolver

LOGGER = logging.getLogger(__name__)


class ImageLoader(Protocol):
    async def load(self, url: str) -> Image.Image: ...


class HttpImageLoader:
    """Loads images over HTTP(S) with httpx, or from local paths and ``file://`` URLs."""

    def __init__(
        self,
        timeout: float | None = 30.0,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> HttpImageLoader:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def load(self, url: str) -> Image.Image:
        scheme = urlsplit(url).scheme.lower()
        try:
            if scheme in {"http", "https"}:
                response = await self._http().get(url)
                response.raise_for_status()
                return await asyncio.to_thread(decode_bytes, response.content)
            if scheme == "file":
                path = Path(url2pathname(urlsplit(url).path))
            else:
                path = Path(url)
            return await asyncio.to_thread(decode_image, path)
        except httpx.HTTPError as exc:
            raise ResourceLoadError(url, str(exc) or type(exc).__name__) from exc
        except RuntimeError as exc:
            raise ResourceLoadError(url, str(exc)) from exc


class CountedBarrier:
    """Completes once ``count`` arrivals are seen, or fails on the first failure."""

    def __init__(self, count: int) -> None:
        self._pending = count
        self._future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        if count <= 0:
            self._future.set_result(None)

    @property
    def pending(self) -> int:
        return self._pending

    @property
    def done(self) -> bool:
        return self._future.done()

    def arrive(self) -> None:
        if self._future.done():
            return
        self._pending -= 1
        if self._pending <= 0:
            self._future.set_result(None)

    def fail(self, exc: BaseException) -> None:
        if not self._future.done():
            self._future.set_exception(exc)

    async def wait(self) -> None:
        await self._future


@dataclass(slots=True)
class ResourceTable:
    """Bitmaps loaded for one render, keyed by tag index."""

    base: Image.Image | None = None
    watermark: Image.Image | None = None
    brand_logos: dict[int, Image.Image] = field(default_factory=dict)
    product_images: dict[int, Image.Image] = field(default_factory=dict)


_Slot = tuple[str, Callable[[Image.Image], None]]


class ResourceOrchestrator:
    def __init__(self, loader: ImageLoader, resolve: UrlResolver, watermark_url: str) -> None:
        self._loader = loader
        self._resolve = resolve
        self._watermark_url = watermark_url

    def _slots(self, photo: Photo, table: ResourceTable) -> list[_Slot]:
        slots: list[_Slot] = [
            (photo.image.url, lambda image: setattr(table, "base", image)),
            (self._watermark_url, lambda image: setattr(table, "watermark", image)),
        ]
        for index, tag in enumerate(photo.tags):
            logo = tag.product.brand.logo
            if logo is not None:
                slots.append((logo.url, lambda image, i=index: table.brand_logos.__setitem__(i, image)))
            if tag.product.image is not None:
                slots.append((tag.product.image.url, lambda image, i=index: table.product_images.__setitem__(i, image)))
        return slots

    async def acquire(self, photo: Photo) -> ResourceTable:
        """Load every image the photo needs; fail fast on the first error."""
        table = ResourceTable()
        slots = self._slots(photo, table)
        barrier = CountedBarrier(len(slots))
        LOGGER.debug("loading %d resources for %d tags", len(slots), len(photo.tags))

        tasks = [asyncio.create_task(self._load_slot(url, assign, barrier)) for url, assign in slots]
        try:
            await barrier.wait()
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        return table

    async def _load_slot(self, url: str, assign: Callable[[Image.Image], None], barrier: CountedBarrier) -> None:
        try:
            resolved = self._resolve(url)
            image = await self._loader.load(resolved)
            if not isinstance(image, Image.Image):
                raise TypeError(f"loader returned {type(image).__name__}, not an image")
            LOGGER.debug("loaded %s (%dx%d)", resolved, image.width, image.height)
            assign(image)
        except ResourceLoadError as exc:
            barrier.fail(exc)
            return
        except Exception as exc:
            barrier.fail(ResourceLoadError(url, str(exc) or type(exc).__name__))
            return
        barrier.arrive()
