from __future__ import annotations

import re

from PIL import ImageColor

Color = tuple[int, int, int, int]

_CSS_RGBA = re.compile(
    r"^rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+%?)\s*)?\)$",
    re.IGNORECASE,
)


def _channel(value: str) -> int:
    return max(0, min(255, int(round(float(value)))))


def _alpha(value: str | None) -> int:
    if value is None:
        return 255
    if value.endswith("%"):
        fraction = float(value[:-1]) / 100.0
    else:
        fraction = float(value)
    return max(0, min(255, int(round(fraction * 255))))


def parse_color(value: str | Color) -> Color:
    """Parse a CSS color string into an RGBA tuple.

    ``rgba()`` takes its alpha as a 0..1 fraction like a browser does, which
    ``ImageColor`` does not understand, so that form is handled here.
    """
    if isinstance(value, tuple):
        if len(value) == 3:
            return (int(value[0]), int(value[1]), int(value[2]), 255)
        return (int(value[0]), int(value[1]), int(value[2]), int(value[3]))

    text = str(value).strip()
    match = _CSS_RGBA.match(text)
    if match:
        red, green, blue, alpha = match.groups()
        return (_channel(red), _channel(green), _channel(blue), _alpha(alpha))
    try:
        rgba = ImageColor.getcolor(text, "RGBA")
    except ValueError as exc:
        raise ValueError(f"unsupported color: {value!r}") from exc
    return (int(rgba[0]), int(rgba[1]), int(rgba[2]), int(rgba[3]))


def interpolate(stops: list[tuple[float, Color]], t: float) -> Color:
    if not stops:
        return (0, 0, 0, 0)
    t = max(0.0, min(1.0, t))
    if t <= stops[0][0]:
        return stops[0][1]
    for (start, start_color), (end, end_color) in zip(stops, stops[1:]):
        if t <= end:
            span = end - start
            local = 0.0 if span <= 0 else (t - start) / span
            return tuple(  # type: ignore[return-value]
                int(round(a + (b - a) * local)) for a, b in zip(start_color, end_color)
            )
    return stops[-1][1]
