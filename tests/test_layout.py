import pytest

from phototag.config import build_render_config
from phototag.constants import DIRECTION_NORTH, DIRECTION_SOUTH
from phototag.models import Brand, BrandLogo, ImageRef, LabelSize, Product, Tag
from phototag.render.context import DrawingContext
from phototag.render.layout import compute_label_size, compute_tag_layout

CONFIG = build_render_config()
SURFACE = (CONFIG.image_width, CONFIG.image_height)


def _tag(x: float, y: float, *, logo: bool = False, thumbnail: bool = False, brand: str = "Acme") -> Tag:
    return Tag(
        tlc_x=x,
        tlc_y=y,
        product=Product(
            brand=Brand(name=brand, logo=BrandLogo(url="logo.png") if logo else None),
            image=ImageRef(url="thumb.jpg") if thumbnail else None,
        ),
        size_text="M",
    )


def test_tag_near_bottom_flips_north() -> None:
    size = LabelSize(width=60, height=38)

    layout = compute_tag_layout(_tag(0.5, 0.9), size, CONFIG, SURFACE)

    assert layout.direction == DIRECTION_NORTH
    assert layout.anchor_x == pytest.approx(187.5)
    assert layout.label_x == pytest.approx(layout.anchor_x - size.width / 2)
    assert layout.label_y == pytest.approx(450 - (CONFIG.arrow_size - 1) - size.height)


def test_tag_near_top_stays_south() -> None:
    size = LabelSize(width=60, height=38)

    layout = compute_tag_layout(_tag(0.5, 0.1), size, CONFIG, SURFACE)

    assert layout.direction == DIRECTION_SOUTH
    assert layout.label_x == pytest.approx(157.5)
    assert layout.label_y == pytest.approx(50 + CONFIG.arrow_size - 1)
    assert layout.brand_baseline_y == pytest.approx(layout.label_y + CONFIG.line_height)
    assert layout.size_baseline_y == pytest.approx(layout.label_y + CONFIG.line_height * 2)


def test_label_at_right_edge_is_pulled_fully_inside() -> None:
    size = LabelSize(width=60, height=38)

    layout = compute_tag_layout(_tag(1.0, 0.3), size, CONFIG, SURFACE)

    assert layout.label_x == pytest.approx(CONFIG.image_width - CONFIG.inactive_margin - size.width)
    assert layout.anchor_x == pytest.approx(CONFIG.image_width - CONFIG.inactive_margin * 2)


def test_direction_flips_exactly_when_label_would_overflow_bottom() -> None:
    size = LabelSize(width=60, height=38)
    limit = CONFIG.image_height - CONFIG.inactive_margin
    for step in range(101):
        tlc_y = step / 100
        layout = compute_tag_layout(_tag(0.5, tlc_y), size, CONFIG, SURFACE)
        south_bottom = layout.anchor_y + CONFIG.arrow_size - 1 + size.height
        expected = DIRECTION_NORTH if south_bottom > limit else DIRECTION_SOUTH
        assert layout.direction == expected, tlc_y


@pytest.mark.parametrize("density", [1, 2])
@pytest.mark.parametrize("logo,thumbnail", [(False, False), (True, False), (False, True), (True, True)])
@pytest.mark.parametrize("brand", ["Acme", "An Exceedingly Long Brand Name For Testing Bounds"])
def test_label_box_stays_inside_surface(density: int, logo: bool, thumbnail: bool, brand: str) -> None:
    ctx = DrawingContext(*SURFACE, density=density)
    size = compute_label_size(ctx, brand, "M", CONFIG)
    width, height = SURFACE
    for i in range(21):
        for j in range(21):
            layout = compute_tag_layout(_tag(i / 20, j / 20, logo=logo, thumbnail=thumbnail, brand=brand), size, CONFIG, SURFACE)
            left, top, right, bottom = layout.box
            assert left >= 0 and top >= 0, (i, j)
            assert right <= width and bottom <= height, (i, j)


def test_label_width_grows_with_text_then_clamps() -> None:
    ctx = DrawingContext(*SURFACE)
    widths = [compute_label_size(ctx, "W" * count, "", CONFIG).width for count in range(1, 40)]

    assert widths == sorted(widths)
    assert widths[0] < CONFIG.max_width + CONFIG.horizontal_spacing * 2
    assert widths[-1] == pytest.approx(CONFIG.max_width + CONFIG.horizontal_spacing * 2)


def test_label_height_is_fixed_and_density_independent() -> None:
    expected = CONFIG.line_height * 2 + CONFIG.vertical_spacing * 2
    for density in (1, 2):
        ctx = DrawingContext(*SURFACE, density=density)
        clamped = compute_label_size(ctx, "W" * 60, "", CONFIG)
        assert clamped.height == pytest.approx(expected)
        assert clamped.width == pytest.approx(CONFIG.max_width + CONFIG.horizontal_spacing * 2)


@pytest.mark.parametrize("brand,size", [("Acme Outfitters", "EU 42"), ("i", "WWWWWW"), ("Mixed Case Brand 123", "")])
def test_label_size_does_not_depend_on_density(brand: str, size: str) -> None:
    standard = compute_label_size(DrawingContext(*SURFACE), brand, size, CONFIG)
    retina = compute_label_size(DrawingContext(*SURFACE, density=2), brand, size, CONFIG)

    assert retina == standard


def test_label_with_logo_and_thumbnail_reserves_both_slots() -> None:
    size = LabelSize(width=70, height=38)

    layout = compute_tag_layout(_tag(0.5, 0.3, logo=True, thumbnail=True), size, CONFIG, SURFACE)

    assert layout.width == pytest.approx(70 + CONFIG.brand_slot_width + 38)
    assert layout.logo_slot_width == CONFIG.brand_slot_width
    assert layout.thumbnail_x == pytest.approx(layout.label_x + layout.width - layout.height)
    assert layout.separators == [layout.label_x + CONFIG.brand_slot_width, layout.thumbnail_x]
    assert layout.text_x == pytest.approx(layout.label_x + CONFIG.horizontal_spacing + CONFIG.brand_slot_width)
    # the text column ends before the thumbnail begins
    text_column = size.width - CONFIG.horizontal_spacing * 2
    assert layout.text_x + text_column <= layout.thumbnail_x


def test_extreme_left_anchor_clamps_pointer_inside_label() -> None:
    size = LabelSize(width=60, height=38)

    layout = compute_tag_layout(_tag(0.0, 0.0), size, CONFIG, SURFACE)

    assert layout.anchor_x == CONFIG.inactive_margin * 2
    assert layout.anchor_y == CONFIG.inactive_margin
    assert layout.label_x == CONFIG.inactive_margin
    assert layout.direction == DIRECTION_SOUTH


def test_extreme_right_anchor_keeps_label_on_surface() -> None:
    size = LabelSize(width=100, height=38)

    layout = compute_tag_layout(_tag(1.0, 0.5), size, CONFIG, SURFACE)

    assert layout.anchor_x == CONFIG.image_width - CONFIG.inactive_margin * 2
    assert layout.label_x + layout.width == pytest.approx(CONFIG.image_width - CONFIG.inactive_margin)
