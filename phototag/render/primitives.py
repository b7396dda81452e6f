from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from PIL import Image

from phototag.config import RenderConfig
from phototag.constants import (
    BRAND_LOGO_ASPECT,
    DIRECTION_NORTH,
    LABEL_CORNER_RADIUS,
    SEPARATOR_STOPS,
    SEPARATOR_WIDTH,
)
from phototag.render.context import DrawingContext, FontLike
from phototag.render.typography import load_font, truncate_text


def draw_arrow(ctx: DrawingContext, direction: str, x: float, y: float, size: float, color: str) -> None:
    """Draw a pointer triangle with its apex at (x, y) and a base ``2*size`` wide."""
    d = ctx.density
    x, y, size = x * d, y * d, size * d
    wide_y = y - size if direction == DIRECTION_NORTH else y + size

    ctx.begin_path()
    ctx.move_to(x, y)
    ctx.line_to(x + size, wide_y)
    ctx.line_to(x - size, wide_y)
    ctx.line_to(x, y)
    ctx.close_path()
    ctx.line_width = d
    ctx.stroke_style = color
    ctx.stroke()
    ctx.fill_style = color
    ctx.fill()


def draw_label(
    ctx: DrawingContext,
    x: float,
    y: float,
    width: float,
    height: float,
    background: str | None = None,
    border: str | None = None,
) -> None:
    """Trace a rounded rectangle, stroking and filling it when colors are given.

    With neither color the path is only traced, ready for ``ctx.clip()``.
    """
    d = ctx.density
    x, y, w, h = x * d, y * d, width * d, height * d
    r = LABEL_CORNER_RADIUS * d

    ctx.begin_path()
    ctx.move_to(x + r, y)
    ctx.line_to(x + w - r, y)
    ctx.quadratic_curve_to(x + w, y, x + w, y + r)
    ctx.line_to(x + w, y + h - r)
    ctx.quadratic_curve_to(x + w, y + h, x + w - r, y + h)
    ctx.line_to(x + r, y + h)
    ctx.quadratic_curve_to(x, y + h, x, y + h - r)
    ctx.line_to(x, y + r)
    ctx.quadratic_curve_to(x, y, x + r, y)
    ctx.close_path()
    if border:
        ctx.line_width = d
        ctx.stroke_style = border
        ctx.stroke()
    if background:
        ctx.fill_style = background
        ctx.fill()


def draw_brand_logo(
    ctx: DrawingContext,
    image: Image.Image,
    x: float,
    y: float,
    width: float,
    label_height: float,
    spacing: float,
    prevailing_hex: str | None = None,
) -> None:
    d = ctx.density
    aspect_w, aspect_h = BRAND_LOGO_ASPECT
    height = round(width / aspect_w * aspect_h)

    if prevailing_hex:
        ctx.fill_style = "#" + prevailing_hex.lstrip("#")
        ctx.fill_rect(x * d, y * d, (width + spacing * 2) * d, label_height * d)

    logo_x = x + spacing
    logo_y = y
    if height < label_height:
        logo_y += (label_height - height) / 2

    ctx.draw_image(
        image,
        (0, 0, image.width, image.height),
        (logo_x * d, logo_y * d, width * d, height * d),
    )


def square_crop_box(width: int, height: int) -> tuple[float, float, float, float]:
    """Centered square source region of a ``width`` x ``height`` image."""
    if width > height:
        return ((width - height) / 2, 0, height, height)
    if width < height:
        return (0, (height - width) / 2, width, width)
    return (0, 0, width, height)


def draw_product_thumbnail(
    ctx: DrawingContext,
    image: Image.Image,
    x: float,
    y: float,
    size: float,
    label_width: float,
) -> None:
    d = ctx.density
    left = x + label_width - size
    ctx.draw_image(
        image,
        square_crop_box(image.width, image.height),
        (left * d, y * d, size * d, size * d),
    )


@contextmanager
def clipped_to_label(
    ctx: DrawingContext,
    x: float,
    y: float,
    width: float,
    height: float,
) -> Iterator[DrawingContext]:
    """Clip drawing to the label outline; the previous clip returns on exit."""
    with ctx.saved():
        draw_label(ctx, x, y, width, height)
        ctx.clip()
        yield ctx


def draw_separator(ctx: DrawingContext, x: float, y: float, height: float) -> None:
    d = ctx.density
    with ctx.saved():
        ctx.line_width = SEPARATOR_WIDTH * d
        ctx.stroke_vertical_gradient(x * d, y * d, height * d, list(SEPARATOR_STOPS))


def logical_font(config: RenderConfig, bold: bool = False) -> FontLike:
    """The label font at its unscaled size, used for all text metrics."""
    return load_font(config.font_family, int(round(config.font_size)), bold, config.font_path, config.bold_font_path)


def set_font(ctx: DrawingContext, config: RenderConfig, bold: bool = False) -> None:
    ctx.font = load_font(
        config.font_family,
        int(round(config.font_size * ctx.density)),
        bold,
        config.font_path,
        config.bold_font_path,
    )
    ctx.fill_style = config.font_color


def draw_text(
    ctx: DrawingContext,
    config: RenderConfig,
    x: float,
    y: float,
    text: str,
    bold: bool = False,
) -> str:
    """Draw ``text`` at baseline (x, y), cropped to ``config.max_width``.

    Cropping measures with the unscaled font so every density draws the same
    string. Returns the string actually drawn.
    """
    font = logical_font(config, bold)
    output = truncate_text(text, config.max_width, lambda value: float(font.getlength(value)) if value else 0.0)
    ctx.fill_text(output, x * ctx.density, y * ctx.density)
    return output
