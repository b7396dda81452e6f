from __future__ import annotations

from phototag.config import RenderConfig
from phototag.constants import DIRECTION_NORTH, DIRECTION_SOUTH
from phototag.models import LabelSize, Layout, Tag
from phototag.render.context import DrawingContext
from phototag.render.primitives import logical_font


def _clamp(value: float, lower: float, upper: float) -> float:
    if value < lower:
        return lower
    if value > upper:
        return upper
    return value


def compute_label_size(
    ctx: DrawingContext,
    brand_text: str,
    size_text: str,
    config: RenderConfig,
) -> LabelSize:
    """Size a label from its two text lines, in logical units.

    Text is measured with the unscaled font, so the size is identical at every
    density and retina geometry is exactly the standard geometry doubled.
    """
    with ctx.saved():
        ctx.font = logical_font(config, bold=True)
        width = ctx.measure_text(brand_text)
        ctx.font = logical_font(config)
        width = max(width, ctx.measure_text(size_text))
    width = min(width, config.max_width) + config.horizontal_spacing * 2
    height = config.line_height * 2 + config.vertical_spacing * 2
    return LabelSize(width=width, height=height)


def compute_tag_layout(
    tag: Tag,
    label_size: LabelSize,
    config: RenderConfig,
    surface_size: tuple[float, float],
) -> Layout:
    surface_width, surface_height = surface_size
    inactive = config.inactive_margin
    arrow = config.arrow_size

    x = surface_width * tag.tlc_x
    y = surface_height * tag.tlc_y
    width = label_size.width
    height = label_size.height
    if tag.has_logo:
        width += config.brand_slot_width
    if tag.has_thumbnail:
        width += height

    x = _clamp(x, inactive, surface_width - inactive)
    y = _clamp(y, inactive, surface_height - inactive)

    # Upper bound uses the full width, not width / 2, so the box never crosses the right edge
    label_x = _clamp(x - width / 2, inactive, surface_width - inactive - width)
    label_y = y + arrow - 1

    # Keep the pointer inside the label horizontally
    x = _clamp(x, inactive * 2, surface_width - inactive * 2)

    direction = DIRECTION_SOUTH
    if label_y + height > surface_height - inactive:
        direction = DIRECTION_NORTH
        label_y = y - (arrow - 1) - height

    text_x = label_x + config.horizontal_spacing
    logo_slot_width = None
    thumbnail_x = None
    separators: list[float] = []
    if tag.has_logo:
        logo_slot_width = config.brand_slot_width
        text_x += logo_slot_width
        separators.append(label_x + logo_slot_width)
    if tag.has_thumbnail:
        thumbnail_x = label_x + width - height
        separators.append(thumbnail_x)

    return Layout(
        label_x=label_x,
        label_y=label_y,
        width=width,
        height=height,
        anchor_x=x,
        anchor_y=y,
        direction=direction,
        text_x=text_x,
        brand_baseline_y=label_y + config.line_height,
        size_baseline_y=label_y + config.line_height * 2,
        logo_slot_width=logo_slot_width,
        thumbnail_x=thumbnail_x,
        separators=separators,
    )
