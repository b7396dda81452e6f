from __future__ import annotations

import copy
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

from PIL import Image, ImageChops, ImageDraw, ImageFont

from phototag.constants import CURVE_SEGMENTS
from phototag.render.colors import Color, interpolate, parse_color

Point = tuple[float, float]
FontLike = ImageFont.FreeTypeFont | ImageFont.ImageFont


@dataclass(frozen=True, slots=True)
class DrawOp:
    """One recorded draw call, in surface pixels."""

    name: str
    geometry: tuple[float, ...]
    detail: Any = None


@dataclass(slots=True)
class _DrawState:
    fill_style: Color = (0, 0, 0, 255)
    stroke_style: Color = (0, 0, 0, 255)
    line_width: float = 1.0
    font: FontLike | None = None
    clip: Image.Image | None = None


def _flatten(points: list[Point]) -> tuple[float, ...]:
    return tuple(value for point in points for value in point)


class DrawingContext:
    """A canvas-style drawing target over a Pillow RGBA surface.

    All drawing state (fill and stroke style, line width, font and clip mask)
    lives on this object and is saved/restored explicitly with ``saved()``.
    Coordinates passed in are surface pixels; callers working in logical
    units multiply by ``density`` first. Every draw call is recorded in
    ``operations``.
    """

    def __init__(self, width: float, height: float, density: int = 1) -> None:
        self.density = density
        self.width = width
        self.height = height
        size = (max(1, int(round(width * density))), max(1, int(round(height * density))))
        self.surface = Image.new("RGBA", size, (0, 0, 0, 0))
        self.operations: list[DrawOp] = []
        self._state = _DrawState()
        self._stack: list[_DrawState] = []
        self._subpaths: list[list[Point]] = []
        self._measure = ImageDraw.Draw(Image.new("RGBA", (1, 1)))

    # -- state ---------------------------------------------------------------

    @property
    def fill_style(self) -> Color:
        return self._state.fill_style

    @fill_style.setter
    def fill_style(self, value: str | Color) -> None:
        self._state.fill_style = parse_color(value)

    @property
    def stroke_style(self) -> Color:
        return self._state.stroke_style

    @stroke_style.setter
    def stroke_style(self, value: str | Color) -> None:
        self._state.stroke_style = parse_color(value)

    @property
    def line_width(self) -> float:
        return self._state.line_width

    @line_width.setter
    def line_width(self, value: float) -> None:
        self._state.line_width = float(value)

    @property
    def font(self) -> FontLike | None:
        return self._state.font

    @font.setter
    def font(self, value: FontLike) -> None:
        self._state.font = value

    @property
    def clip_mask(self) -> Image.Image | None:
        return self._state.clip

    def save(self) -> None:
        self._stack.append(copy.copy(self._state))

    def restore(self) -> None:
        if self._stack:
            self._state = self._stack.pop()

    @contextmanager
    def saved(self) -> Iterator[DrawingContext]:
        self.save()
        try:
            yield self
        finally:
            self.restore()

    @property
    def depth(self) -> int:
        return len(self._stack)

    # -- paths ---------------------------------------------------------------

    def begin_path(self) -> None:
        self._subpaths = []

    def move_to(self, x: float, y: float) -> None:
        self._subpaths.append([(x, y)])

    def line_to(self, x: float, y: float) -> None:
        if not self._subpaths:
            self.move_to(x, y)
            return
        self._subpaths[-1].append((x, y))

    def quadratic_curve_to(self, cx: float, cy: float, x: float, y: float) -> None:
        if not self._subpaths:
            self.move_to(cx, cy)
        x0, y0 = self._subpaths[-1][-1]
        for step in range(1, CURVE_SEGMENTS + 1):
            t = step / CURVE_SEGMENTS
            a = (1 - t) * (1 - t)
            b = 2 * (1 - t) * t
            c = t * t
            self._subpaths[-1].append((a * x0 + b * cx + c * x, a * y0 + b * cy + c * y))

    def close_path(self) -> None:
        if self._subpaths and len(self._subpaths[-1]) > 1:
            first = self._subpaths[-1][0]
            if self._subpaths[-1][-1] != first:
                self._subpaths[-1].append(first)

    @property
    def path_points(self) -> list[Point]:
        return [point for subpath in self._subpaths for point in subpath]

    def stroke(self) -> None:
        layer, draw = self._layer()
        width = max(1, int(round(self._state.line_width)))
        for subpath in self._subpaths:
            if len(subpath) >= 2:
                draw.line(subpath, fill=self._state.stroke_style, width=width, joint="curve")
        self._composite(layer)
        self._record("stroke", _flatten(self.path_points), (self._state.stroke_style, self._state.line_width))

    def fill(self) -> None:
        layer, draw = self._layer()
        for subpath in self._subpaths:
            if len(subpath) >= 3:
                draw.polygon(subpath, fill=self._state.fill_style)
        self._composite(layer)
        self._record("fill", _flatten(self.path_points), self._state.fill_style)

    def clip(self) -> None:
        """Intersect the clip region with the current path."""
        mask = Image.new("L", self.surface.size, 0)
        draw = ImageDraw.Draw(mask)
        for subpath in self._subpaths:
            if len(subpath) >= 3:
                draw.polygon(subpath, fill=255)
        if self._state.clip is not None:
            mask = ImageChops.multiply(mask, self._state.clip)
        self._state.clip = mask
        self._record("clip", _flatten(self.path_points))

    # -- pixels --------------------------------------------------------------

    def fill_rect(self, x: float, y: float, width: float, height: float) -> None:
        layer, draw = self._layer()
        if width > 0 and height > 0:
            right = max(x, x + width - 1)
            bottom = max(y, y + height - 1)
            draw.rectangle((x, y, right, bottom), fill=self._state.fill_style)
        self._composite(layer)
        self._record("fill_rect", (x, y, width, height), self._state.fill_style)

    def draw_image(
        self,
        image: Image.Image,
        src: tuple[float, float, float, float],
        dest: tuple[float, float, float, float],
    ) -> None:
        sx, sy, sw, sh = src
        dx, dy, dw, dh = dest
        box = (int(round(sx)), int(round(sy)), int(round(sx + sw)), int(round(sy + sh)))
        target = (max(1, int(round(dw))), max(1, int(round(dh))))
        tile = image.convert("RGBA").crop(box).resize(target, Image.Resampling.LANCZOS)
        layer = Image.new("RGBA", self.surface.size, (0, 0, 0, 0))
        layer.paste(tile, (int(round(dx)), int(round(dy))))
        self._composite(layer)
        self._record("draw_image", (dx, dy, dw, dh), src)

    def stroke_vertical_gradient(
        self,
        x: float,
        y: float,
        height: float,
        stops: list[tuple[float, str | Color]],
    ) -> None:
        """Stroke a vertical line from (x, y) down by ``height`` with a linear gradient."""
        parsed = [(offset, parse_color(color)) for offset, color in stops]
        rows = max(1, int(round(height)))
        columns = max(1, int(round(self._state.line_width)))
        pixels = [interpolate(parsed, (row + 0.5) / rows) for row in range(rows)]
        gradient = Image.new("RGBA", (1, rows))
        gradient.putdata(pixels)
        if columns > 1:
            gradient = gradient.resize((columns, rows), resample=Image.Resampling.NEAREST)
        layer = Image.new("RGBA", self.surface.size, (0, 0, 0, 0))
        layer.paste(gradient, (int(round(x - columns / 2)), int(round(y))))
        self._composite(layer)
        self._record("gradient_line", (x, y, height), self._state.line_width)

    # -- text ----------------------------------------------------------------

    def measure_text(self, text: str) -> float:
        if not text:
            return 0.0
        return float(self._measure.textlength(text, font=self._require_font()))

    def fill_text(self, text: str, x: float, y: float) -> None:
        """Draw ``text`` with its alphabetic baseline at ``y``."""
        font = self._require_font()
        layer, draw = self._layer()
        if text:
            if isinstance(font, ImageFont.FreeTypeFont):
                draw.text((x, y), text, font=font, fill=self._state.fill_style, anchor="ls")
            else:
                bottom = font.getbbox(text)[3]
                draw.text((x, y - bottom), text, font=font, fill=self._state.fill_style)
        self._composite(layer)
        self._record("fill_text", (x, y), text)

    # -- internals -----------------------------------------------------------

    def _require_font(self) -> FontLike:
        if self._state.font is None:
            raise RuntimeError("no font selected on the drawing context")
        return self._state.font

    def _layer(self) -> tuple[Image.Image, ImageDraw.ImageDraw]:
        layer = Image.new("RGBA", self.surface.size, (0, 0, 0, 0))
        return layer, ImageDraw.Draw(layer)

    def _composite(self, layer: Image.Image) -> None:
        if self._state.clip is not None:
            alpha = ImageChops.multiply(layer.getchannel("A"), self._state.clip)
            layer.putalpha(alpha)
        self.surface.alpha_composite(layer)

    def _record(self, name: str, geometry: tuple[float, ...], detail: Any = None) -> None:
        self.operations.append(DrawOp(name=name, geometry=geometry, detail=detail))
