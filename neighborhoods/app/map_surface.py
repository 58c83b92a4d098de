"""Map surfaces that accept clear/draw instructions."""

from __future__ import annotations

from pathlib import Path
from typing import List

import pandas as pd
import pydeck as pdk

from neighborhoods.common.errors import ColorParseError
from neighborhoods.common.models import RenderInstruction
from neighborhoods.core.colorizer import DEFAULT_COLOR, parse_color
from neighborhoods.core.renderer import fit_bounds

DEFAULT_VIEW = (37.7749, -122.4194)  # San Francisco


class RecordingSurface:
    """Keeps the instructions currently on screen; used by tests and the CLI."""

    def __init__(self) -> None:
        self.instructions: List[RenderInstruction] = []
        self.clear_count = 0

    def clear(self) -> None:
        self.instructions = []
        self.clear_count += 1

    def draw(self, instruction: RenderInstruction) -> None:
        self.instructions.append(instruction)


class PydeckSurface(RecordingSurface):
    """Renders the current instructions as a deck.gl polygon layer."""

    def __init__(self, fill_opacity: float = 0.7, map_style: str = "light") -> None:
        super().__init__()
        self.fill_opacity = fill_opacity
        self.map_style = map_style

    def frame(self) -> pd.DataFrame:
        alpha = int(round(max(0.0, min(self.fill_opacity, 1.0)) * 255))
        rows = [
            {
                "cell_id": item.cell_id,
                "polygon": item.bounds.polygon(),
                "fill_rgba": [*_rgb(item.fill_color), alpha],
                "line_rgba": [*_rgb(item.border_color), 255],
                "popup_html": item.popup_html,
            }
            for item in self.instructions
        ]
        return pd.DataFrame(rows, columns=["cell_id", "polygon", "fill_rgba", "line_rgba", "popup_html"])

    def deck(self) -> pdk.Deck:
        bounds = fit_bounds(self.instructions)
        if bounds is None:
            center = DEFAULT_VIEW
            zoom = 13
        else:
            center = ((bounds.south + bounds.north) / 2, (bounds.west + bounds.east) / 2)
            zoom = 15
        layer = pdk.Layer(
            "PolygonLayer",
            data=self.frame(),
            get_polygon="polygon",
            get_fill_color="fill_rgba",
            get_line_color="line_rgba",
            line_width_min_pixels=1,
            stroked=True,
            filled=True,
            pickable=True,
            auto_highlight=True,
        )
        return pdk.Deck(
            map_style=self.map_style,
            initial_view_state=pdk.ViewState(latitude=center[0], longitude=center[1], zoom=zoom),
            layers=[layer],
            tooltip={"html": "{popup_html}"},
        )

    def to_html(self, path: str | Path) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        self.deck().to_html(str(target), open_browser=False)
        return target


def _rgb(color: str, fallback: str = DEFAULT_COLOR) -> List[int]:
    try:
        return list(parse_color(color))
    except ColorParseError:
        return list(parse_color(fallback))
