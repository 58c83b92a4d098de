"""Stable per-name colors and per-cell color blending."""

from __future__ import annotations

import colorsys
import logging
import math
import random
import re
import threading
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from neighborhoods.common.errors import ColorParseError
from neighborhoods.common.models import NameShare
from neighborhoods.store.color_store import ColorStore, InMemoryColorStore

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#cccccc"

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_NUMBER = r"-?(?:\d+(?:\.\d+)?|\.\d+)"
_HSL_RE = re.compile(
    rf"^hsla?\(\s*({_NUMBER})(?:deg)?\s*,\s*({_NUMBER})%?\s*,\s*({_NUMBER})%?\s*(?:,\s*{_NUMBER}%?\s*)?\)$",
    re.IGNORECASE,
)
_RGB_RE = re.compile(
    rf"^rgba?\(\s*({_NUMBER})\s*,\s*({_NUMBER})\s*,\s*({_NUMBER})\s*(?:,\s*{_NUMBER}%?\s*)?\)$",
    re.IGNORECASE,
)

RGB = Tuple[int, int, int]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def parse_color(color: str) -> RGB:
    """Convert hex, rgb() or hsl() text into an (r, g, b) tuple."""

    if not isinstance(color, str):
        raise ColorParseError(f"Color must be a string, got {type(color).__name__}")
    text = color.strip()

    match = _HEX_RE.match(text)
    if match:
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        value = int(digits, 16)
        return (value >> 16) & 255, (value >> 8) & 255, value & 255

    match = _HSL_RE.match(text)
    if match:
        hue, saturation, lightness = (float(part) for part in match.groups())
        return hsl_to_rgb(hue, saturation, lightness)

    match = _RGB_RE.match(text)
    if match:
        channels = tuple(max(0, min(255, round_half_up(float(part)))) for part in match.groups())
        return channels  # type: ignore[return-value]

    raise ColorParseError(f"Unrecognised color: {color!r}")


def hsl_to_rgb(hue: float, saturation: float, lightness: float) -> RGB:
    """Hue in degrees, saturation/lightness in percent."""

    h = (hue % 360) / 360.0
    s = min(max(saturation, 0.0), 100.0) / 100.0
    l = min(max(lightness, 0.0), 100.0) / 100.0
    r, g, b = colorsys.hls_to_rgb(h, l, s)
    return round_half_up(r * 255), round_half_up(g * 255), round_half_up(b * 255)


def format_rgb(rgb: RGB) -> str:
    return f"rgb({rgb[0]}, {rgb[1]}, {rgb[2]})"


def blend(colors: Sequence[str], default: str = DEFAULT_COLOR) -> str:
    """Per-channel average of ``colors``; unparseable entries are skipped."""

    colors = list(colors)
    if not colors:
        return default

    parsed: List[RGB] = []
    for color in colors:
        try:
            parsed.append(parse_color(color))
        except ColorParseError:
            logger.warning("Skipping unparseable color %r while blending", color)

    if not parsed:
        return default
    if len(colors) == 1:
        return colors[0]

    total = len(parsed)
    return format_rgb(
        tuple(round_half_up(sum(rgb[i] for rgb in parsed) / total) for i in range(3))  # type: ignore[arg-type]
    )


def darken(color: str, percent: float) -> str:
    """Lower the HSL lightness of ``color`` by ``percent`` points."""

    match = _HSL_RE.match(color.strip()) if isinstance(color, str) else None
    if match:
        hue, saturation, lightness = (float(part) for part in match.groups())
        lightness = max(0.0, lightness - percent)
        return f"hsl({hue:g}, {saturation:g}%, {lightness:g}%)"

    try:
        r, g, b = parse_color(color)
    except ColorParseError:
        return color
    h, l, s = colorsys.rgb_to_hls(r / 255.0, g / 255.0, b / 255.0)
    l = max(0.0, l - percent / 100.0)
    r2, g2, b2 = colorsys.hls_to_rgb(h, l, s)
    return format_rgb((round_half_up(r2 * 255), round_half_up(g2 * 255), round_half_up(b2 * 255)))


def normalize_name(name: str) -> str:
    return name.strip().lower()


class Colorizer:
    """Owns the name → color cache and the store it is backed by."""

    def __init__(
        self,
        store: Optional[ColorStore] = None,
        rng: Optional[random.Random] = None,
        saturation: int = 70,
        lightness: int = 60,
        default_color: str = DEFAULT_COLOR,
    ) -> None:
        self.store = store if store is not None else InMemoryColorStore()
        self.rng = rng or random.Random()
        self.saturation = saturation
        self.lightness = lightness
        self.default_color = default_color
        self._cache: Dict[str, str] = {}
        self._lock = threading.Lock()

    def load(self) -> Dict[str, str]:
        """Warm the cache with every color the store already knows."""

        colors = self.store.all()
        with self._lock:
            self._cache.update(colors)
        return dict(colors)

    def generate(self) -> str:
        hue = self.rng.randrange(360)
        return f"hsl({hue}, {self.saturation}%, {self.lightness}%)"

    def color_for(self, name: str) -> str:
        key = normalize_name(name)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                return cached
            color = self.store.get_or_create(key, self.generate)
            self._cache[key] = color
            return color

    def cached_color(self, name: str) -> str:
        """Non-generating lookup for synchronous rendering."""

        return self._cache.get(normalize_name(name), self.default_color)

    def display_color(self, names: Iterable[str]) -> str:
        return blend([self.color_for(name) for name in names], default=self.default_color)

    def name_shares(self, names: Sequence[str]) -> List[NameShare]:
        """Unique names with their share of ``names``, largest first."""

        total = len(names)
        if not total:
            return []
        counts = Counter(names)
        shares = [
            NameShare(
                name=name,
                color=self.color_for(name),
                percentage=round_half_up(counts[name] / total * 100),
            )
            for name in dict.fromkeys(names)
        ]
        return sorted(shares, key=lambda share: -share.percentage)
