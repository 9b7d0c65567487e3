"""
Text measurement used to size node and block labels.

The layouter only needs label widths. Any object with a
``measure(text, scale=1.0) -> float`` method can be passed in; the default
measures with a Pillow font so sizes resemble what a canvas would draw.
"""

from typing import Dict, Optional, Protocol, Tuple

from PIL import ImageFont

DEFAULT_FONT_SIZE = 10


class TextMeasurer(Protocol):
    """Protocol for label measurement services."""

    def measure(self, text: str, scale: float = 1.0) -> float:
        """Return the rendered width of ``text`` at ``scale`` times the base size."""
        ...


class PillowTextMeasurer:
    """
    Measures text with a Pillow font.

    Fonts are loaded lazily per scale and cached. Tries the user-specified
    font first, then common sans-serif fonts, then Pillow's default font.

    Attributes:
        font_size: Base font size in points.
        font_name: Optional font name or path to try first.
    """

    FALLBACK_FONTS = (
        "DejaVuSans",
        "DejaVu Sans",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "Arial",
        "Helvetica",
        "/System/Library/Fonts/Helvetica.ttc",
        "C:/Windows/Fonts/arial.ttf",
    )

    def __init__(self, font_size: int = DEFAULT_FONT_SIZE, font_name: Optional[str] = None):
        self.font_size = font_size
        self.font_name = font_name
        self._fonts: Dict[int, ImageFont.ImageFont] = {}
        self._cache: Dict[Tuple[str, int], float] = {}

    def measure(self, text: str, scale: float = 1.0) -> float:
        if not text:
            return 0.0
        size = max(1, int(round(self.font_size * scale)))
        key = (text, size)
        if key not in self._cache:
            self._cache[key] = float(self._load_font(size).getlength(text))
        return self._cache[key]

    def _load_font(self, size: int):
        if size in self._fonts:
            return self._fonts[size]

        fonts_to_try = []
        if self.font_name:
            fonts_to_try.append(self.font_name)
        fonts_to_try.extend(self.FALLBACK_FONTS)

        font = None
        for name in fonts_to_try:
            try:
                font = ImageFont.truetype(name, size)
                break
            except OSError:
                continue

        if font is None:
            try:
                font = ImageFont.load_default(size=size)
            except TypeError:
                # Older Pillow versions don't support size parameter
                font = ImageFont.load_default()

        self._fonts[size] = font
        return font


class FixedWidthMeasurer:
    """
    Measures text as ``len(text) * char_width``.

    Deterministic and font-independent, for tests and headless use.
    """

    def __init__(self, char_width: float = 6.0):
        self.char_width = char_width

    def measure(self, text: str, scale: float = 1.0) -> float:
        return len(text) * self.char_width * scale
