# canvas.py
"""
Pillow-backed drawing surface used by the compositor.

Everything the overlay needs from a 2D raster library goes through
`StampCanvas`: decode, text measurement, right-aligned text drawing,
gradient fills and lossy encoding.
"""
import io
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

import settings
from errors import DecodeError, ExportError

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]


@dataclass(frozen=True)
class FontSpec:
    size: int
    bold: bool = False


@lru_cache(maxsize=64)
def load_font(spec: FontSpec) -> ImageFont.FreeTypeFont:
    path = settings.FONT_BOLD if spec.bold else settings.FONT_REGULAR
    try:
        return ImageFont.truetype(path, spec.size)
    except OSError:
        logger.warning(
            "Font %s not found, using Pillow default at %dpx; Vietnamese diacritics in the overlay may not render",
            path,
            spec.size,
        )
        return ImageFont.load_default(size=spec.size)


class StampCanvas:
    def __init__(self, image: Image.Image):
        self.image = image.convert("RGBA")
        self._draw = ImageDraw.Draw(self.image)

    @classmethod
    def decode(cls, data: bytes) -> "StampCanvas":
        """Decode encoded image bytes into a fresh surface."""
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                return cls(img)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise DecodeError(f"Could not decode image: {e}") from e

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    def measure_text(self, text: str, spec: FontSpec) -> float:
        return self._draw.textlength(text, font=load_font(spec))

    def draw_line(self, text: str, x: float, y: float, spec: FontSpec, color: Color):
        """Draw `text` with its right edge at x and its bottom at y."""
        if not text:
            return
        self._draw.text((x, y), text, font=load_font(spec), fill=color + (255,), anchor="rd")

    def fill_gradient_rect(
        self,
        top: float,
        height: float,
        stops: Sequence[Tuple[float, float]],
        color: Color = (0, 0, 0),
    ):
        """
        Blend a vertical gradient over the full width, from `top` to the bottom edge.

        - stops: (position 0..1 within the rect, opacity 0..1) pairs, ascending
        """
        w, h = self.image.size
        y0 = max(0, int(np.floor(top)))
        if height <= 0 or y0 >= h or w == 0:
            return

        rows = np.arange(y0, h, dtype=np.float64)
        t = np.clip((rows - top) / height, 0.0, 1.0)
        positions = [p for p, _ in stops]
        opacities = [a for _, a in stops]
        alpha = np.rint(np.interp(t, positions, opacities) * 255).astype(np.uint8)

        layer = np.zeros((h - y0, w, 4), dtype=np.uint8)
        layer[..., :3] = color
        layer[..., 3] = alpha[:, None]
        self.image.alpha_composite(Image.fromarray(layer), dest=(0, y0))

    def encode(self, quality: float = 0.85) -> bytes:
        """Serialize to JPEG; quality is on a 0..1 scale."""
        w, h = self.image.size
        if w == 0 or h == 0:
            raise ExportError(f"Cannot encode an empty {w}x{h} surface")
        buf = io.BytesIO()
        try:
            self.image.convert("RGB").save(buf, "JPEG", quality=int(round(quality * 100)))
        except (OSError, ValueError, SystemError) as e:
            raise ExportError(f"JPEG export failed: {e}") from e
        return buf.getvalue()
