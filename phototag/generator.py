from __future__ import annotations

import asyncio
import base64
import enum
import io
import logging
from pathlib import Path
from typing import Any

from PIL import Image

from phototag.config import RenderConfig, build_render_config
from phototag.constants import DENSITY_RETINA, DENSITY_STANDARD, WATERMARK_MARGIN_BOTTOM, WATERMARK_MARGIN_RIGHT
from phototag.errors import RenderStateError, ResourceLoadError
from phototag.models import Layout, Photo, Tag
from phototag.render.context import DrawingContext
from phototag.render.layout import compute_label_size, compute_tag_layout
from phototag.render.primitives import (
    clipped_to_label,
    draw_arrow,
    draw_brand_logo,
    draw_label,
    draw_product_thumbnail,
    draw_separator,
    draw_text,
    set_font,
)
from phototag.render.typography import FontWatcher
from phototag.resources import HttpImageLoader, ImageLoader, ResourceOrchestrator, ResourceTable
from phototag.urls import UrlResolver, make_url_resolver

LOGGER = logging.getLogger(__name__)


class RenderState(enum.Enum):
    IDLE = "idle"
    LOADING_RESOURCES = "loading_resources"
    RESOURCES_READY = "resources_ready"
    FONT_READY = "font_ready"
    COMPOSING = "composing"
    DONE = "done"
    FAILED = "failed"


_IN_FLIGHT = {
    RenderState.LOADING_RESOURCES,
    RenderState.RESOURCES_READY,
    RenderState.FONT_READY,
    RenderState.COMPOSING,
}


class PhotoGenerator:
    """Composites a photo, its watermark and its tag labels into one image.

    One instance renders one photo; renders on the same instance must not
    overlap.
    """

    def __init__(
        self,
        photo: Photo | dict[str, Any],
        config: RenderConfig | dict[str, Any] | None = None,
        *,
        loader: ImageLoader | None = None,
        url_resolver: UrlResolver | None = None,
        font_watcher: FontWatcher | None = None,
    ) -> None:
        self._photo = photo if isinstance(photo, Photo) else Photo.from_dict(photo)
        self._config = config if isinstance(config, RenderConfig) else build_render_config(config)
        self._loader = loader
        self._resolve = url_resolver or make_url_resolver(self._config)
        self._font_watcher = font_watcher or FontWatcher(self._config.font_path)
        self._density = DENSITY_STANDARD
        self._state = RenderState.IDLE
        self._context: DrawingContext | None = None

    @property
    def photo(self) -> Photo:
        return self._photo

    @property
    def config(self) -> RenderConfig:
        return self._config

    @property
    def state(self) -> RenderState:
        return self._state

    @property
    def density(self) -> int:
        return self._density

    @property
    def context(self) -> DrawingContext | None:
        return self._context

    def _transition(self, state: RenderState) -> None:
        LOGGER.debug("render state %s -> %s", self._state.value, state.value)
        self._state = state

    async def render(self, *, retina: bool = False) -> Image.Image:
        if self._state in _IN_FLIGHT:
            raise RenderStateError("a render is already in progress on this generator")

        self._density = DENSITY_RETINA if retina else DENSITY_STANDARD
        self._context = None
        self._transition(RenderState.LOADING_RESOURCES)
        try:
            resources = await self._load_resources()
        except ResourceLoadError as exc:
            self._transition(RenderState.FAILED)
            LOGGER.error("render aborted: %s", exc)
            raise
        except BaseException:
            self._transition(RenderState.FAILED)
            raise
        self._transition(RenderState.RESOURCES_READY)

        try:
            await self._wait_for_font()
            self._transition(RenderState.FONT_READY)

            ctx = DrawingContext(self._config.image_width, self._config.image_height, self._density)
            self._transition(RenderState.COMPOSING)
            self._draw_base(ctx, resources)
            for index, tag in enumerate(self._photo.tags):
                self._draw_tag(ctx, index, tag, resources)
        except BaseException:
            self._transition(RenderState.FAILED)
            raise

        self._context = ctx
        self._transition(RenderState.DONE)
        LOGGER.info(
            "rendered %d tags at %dx%d",
            len(self._photo.tags),
            ctx.surface.width,
            ctx.surface.height,
        )
        return ctx.surface

    async def _load_resources(self) -> ResourceTable:
        if self._loader is not None:
            orchestrator = ResourceOrchestrator(self._loader, self._resolve, self._config.watermark_url)
            return await orchestrator.acquire(self._photo)
        async with HttpImageLoader(self._config.resource_timeout) as loader:
            orchestrator = ResourceOrchestrator(loader, self._resolve, self._config.watermark_url)
            return await orchestrator.acquire(self._photo)

    async def _wait_for_font(self) -> None:
        ready = asyncio.get_running_loop().create_future()

        def _on_ready() -> None:
            if not ready.done():
                ready.set_result(None)

        self._font_watcher.on_font_loaded(self._config.font_family, _on_ready)
        await ready

    def _draw_base(self, ctx: DrawingContext, resources: ResourceTable) -> None:
        d = ctx.density
        cfg = self._config
        base = resources.base
        if base is not None:
            ctx.draw_image(base, (0, 0, base.width, base.height), (0, 0, cfg.image_width * d, cfg.image_height * d))

        watermark = resources.watermark
        if watermark is not None:
            offset_x = cfg.image_width - cfg.watermark_width - WATERMARK_MARGIN_RIGHT
            offset_y = cfg.image_height - cfg.watermark_height - WATERMARK_MARGIN_BOTTOM
            ctx.draw_image(
                watermark,
                (0, 0, watermark.width, watermark.height),
                (offset_x * d, offset_y * d, cfg.watermark_width * d, cfg.watermark_height * d),
            )

    def layout_for(self, ctx: DrawingContext, tag: Tag) -> Layout:
        label_size = compute_label_size(ctx, tag.brand_name, tag.size_text, self._config)
        return compute_tag_layout(tag, label_size, self._config, (self._config.image_width, self._config.image_height))

    def _draw_tag(self, ctx: DrawingContext, index: int, tag: Tag, resources: ResourceTable) -> None:
        cfg = self._config
        layout = self.layout_for(ctx, tag)
        x, y = layout.anchor_x, layout.anchor_y
        label_x, label_y = layout.label_x, layout.label_y
        width, height = layout.width, layout.height

        draw_arrow(ctx, layout.direction, x, y - 1, cfg.arrow_size, cfg.border_color)
        draw_label(ctx, label_x, label_y, width, height, cfg.background_color, cfg.border_color)
        draw_arrow(ctx, layout.direction, x, y, cfg.arrow_size - 1, cfg.background_color)

        logo = tag.product.brand.logo
        logo_image = resources.brand_logos.get(index)
        if logo is not None and logo_image is not None and layout.logo_slot_width is not None:
            with clipped_to_label(ctx, label_x, label_y, width, height):
                draw_brand_logo(
                    ctx,
                    logo_image,
                    label_x,
                    label_y,
                    cfg.brand_width,
                    height,
                    cfg.brand_spacing,
                    logo.prevail_hex,
                )
            draw_separator(ctx, label_x + layout.logo_slot_width, label_y, height)

        thumbnail = resources.product_images.get(index)
        if thumbnail is not None and layout.thumbnail_x is not None:
            with clipped_to_label(ctx, label_x, label_y, width, height):
                draw_product_thumbnail(ctx, thumbnail, label_x, label_y, height, width)
            draw_separator(ctx, layout.thumbnail_x, label_y, height)

        set_font(ctx, cfg, bold=True)
        draw_text(ctx, cfg, layout.text_x, layout.brand_baseline_y, tag.brand_name, bold=True)
        set_font(ctx, cfg)
        draw_text(ctx, cfg, layout.text_x, layout.size_baseline_y, tag.size_text)

    def get_image(self) -> Image.Image:
        if self._state is not RenderState.DONE or self._context is None:
            raise RenderStateError("the photo has not been rendered successfully")
        return self._context.surface

    def encode(self, fmt: str = "JPEG", quality: int | None = None) -> bytes:
        image = self.get_image()
        buffer = io.BytesIO()
        if fmt.upper() == "JPEG":
            image.convert("RGB").save(
                buffer,
                format="JPEG",
                quality=quality or self._config.jpeg_quality,
                optimize=True,
            )
        else:
            image.save(buffer, format="PNG", optimize=True)
        return buffer.getvalue()

    def get_image_data(self) -> str:
        """Return the rendered photo as base64 JPEG, without a data-URL prefix."""
        return base64.b64encode(self.encode("JPEG")).decode("ascii")

    def save(self, path: Path, fmt: str = "JPEG", quality: int | None = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.encode(fmt, quality))
        return path
