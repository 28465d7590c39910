# stamp_utils.py
import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from PIL import Image

import settings
from canvas import Color, FontSpec, StampCanvas
from errors import MeasurementError
from models import CapturedImage

logger = logging.getLogger(__name__)

# font roles
HEADING = "heading"
BASE = "base"
SMALL = "small"

# line height as a multiple of the role's font size
LINE_HEIGHT_FACTORS = {HEADING: 1.4, BASE: 1.3, SMALL: 1.4}

COORDS_COLOR: Color = (0xCB, 0xD5, 0xE1)
ADDRESS_COLOR: Color = (0xFF, 0xFF, 0xFF)
PERSON_COLOR: Color = (0xFB, 0xBF, 0x24)
TIME_COLOR: Color = (0x38, 0xBD, 0xF8)

# (position within panel, opacity) from the panel top down to the image bottom
GRADIENT_STOPS = ((0.0, 0.0), (0.2, 0.5), (1.0, 0.9))


@dataclass(frozen=True)
class LayoutParams:
    base_font_size: int
    time_font_size: int
    small_font_size: int
    padding: int
    max_text_width: float

    def font_size(self, role: str) -> int:
        return {HEADING: self.time_font_size, BASE: self.base_font_size, SMALL: self.small_font_size}[role]

    def line_height(self, role: str) -> float:
        return self.font_size(role) * LINE_HEIGHT_FACTORS[role]


def derive_layout(width: int) -> LayoutParams:
    """Scale font sizes and padding from the source image width."""
    if width <= 0:
        raise ValueError(f"Image width must be positive, got {width}")
    base = max(24, math.floor(width * 0.035))
    return LayoutParams(
        base_font_size=base,
        time_font_size=math.floor(base * 1.5),
        small_font_size=math.floor(base * 0.7),
        padding=math.floor(base * 1.0),
        max_text_width=width * 0.9,
    )


def wrap_text(text: str, measure: Callable[[str], float], max_width: float) -> List[str]:
    """
    Greedy word wrap.

    A word is appended to the current line only while the joined line measures
    strictly below max_width. A single word wider than max_width keeps its own
    line unsplit. Empty input gives one empty line.
    """
    words = text.split()
    if not words:
        return [""]

    lines = []
    current = words[0]
    for word in words[1:]:
        candidate = f"{current} {word}"
        try:
            width = measure(candidate)
        except MeasurementError:
            raise
        except Exception as e:
            raise MeasurementError(f"Could not measure {candidate!r}: {e}") from e
        if width < max_width:
            current = candidate
        else:
            lines.append(current)
            current = word
    lines.append(current)
    return lines


@dataclass(frozen=True)
class OverlayLine:
    field: str
    text: str
    role: str
    color: Color
    bold: bool = False
    # extra space reserved between this line and the one below it
    margin_below: float = 0.0

    def font(self, params: LayoutParams) -> FontSpec:
        return FontSpec(params.font_size(self.role), self.bold)


@dataclass(frozen=True)
class PlacedLine:
    line: OverlayLine
    x: float
    baseline: float
    height: float

    @property
    def top(self) -> float:
        return self.baseline - self.height


@dataclass(frozen=True)
class StackLayout:
    panel_height: float
    lines: Tuple[PlacedLine, ...]


def build_lines(
    record: CapturedImage,
    params: LayoutParams,
    measure: Callable[[str, FontSpec], float],
) -> List[OverlayLine]:
    """Overlay lines in bottom-up order: coordinates, address, person | device, time."""
    address_font = FontSpec(params.base_font_size, bold=True)
    address_lines = wrap_text(
        record.address_text(),
        lambda s: measure(s, address_font),
        params.max_text_width,
    )

    lines = [OverlayLine("coordinates", record.coords_text(), SMALL, COORDS_COLOR)]
    # last wrapped line sits lowest
    for text in reversed(address_lines):
        lines.append(OverlayLine("address", text, BASE, ADDRESS_COLOR, bold=True))
    lines.append(OverlayLine("person_device", record.person_device_text(), SMALL, PERSON_COLOR))
    lines.append(
        OverlayLine(
            "time",
            record.time_text(),
            HEADING,
            TIME_COLOR,
            bold=True,
            margin_below=params.base_font_size * 0.2,
        )
    )
    return lines


def layout_stack(lines: List[OverlayLine], params: LayoutParams, width: int, height: int) -> StackLayout:
    """
    Place bottom-up ordered lines right-aligned against the bottom edge.

    Each line gets a baseline and reserves its line height above it; the
    panel height is whatever the pass consumed plus padding at both ends.
    """
    x = width - params.padding
    offset = float(params.padding)  # distance from the bottom edge
    placed = []
    for line in lines:
        offset += line.margin_below
        line_height = params.line_height(line.role)
        placed.append(PlacedLine(line, x, height - offset, line_height))
        offset += line_height
    return StackLayout(panel_height=offset + params.padding, lines=tuple(placed))


def paint_overlay(canvas: StampCanvas, layout: StackLayout, params: LayoutParams):
    _, h = canvas.size
    canvas.fill_gradient_rect(h - layout.panel_height, layout.panel_height, GRADIENT_STOPS)
    for placed in layout.lines:
        line = placed.line
        canvas.draw_line(line.text, placed.x, placed.baseline, line.font(params), line.color)


def _stamp(canvas: StampCanvas, record: CapturedImage) -> StackLayout:
    w, h = canvas.size
    params = derive_layout(w)
    lines = build_lines(record, params, canvas.measure_text)
    layout = layout_stack(lines, params, w, h)
    paint_overlay(canvas, layout, params)
    logger.debug(
        "Stamped %dx%d image: %d lines, panel %.1fpx, base font %dpx",
        w, h, len(layout.lines), layout.panel_height, params.base_font_size,
    )
    return layout


def render_overlay(image: Image.Image, record: CapturedImage) -> Image.Image:
    """Return a new RGBA image with the overlay drawn; `image` is left untouched."""
    canvas = StampCanvas(image)
    _stamp(canvas, record)
    return canvas.image


def composite_watermark(data: bytes, record: CapturedImage, quality: Optional[float] = None) -> bytes:
    """
    Decode `data`, stamp the metadata overlay and return the JPEG bytes.

    - quality: 0..1, defaults to settings.JPEG_QUALITY
    Raises DecodeError, MeasurementError or ExportError.
    """
    canvas = StampCanvas.decode(data)
    _stamp(canvas, record)
    return canvas.encode(settings.JPEG_QUALITY if quality is None else quality)
