"""Translate aggregated cells into draw instructions for a map surface."""

from __future__ import annotations

from html import escape
from typing import Iterable, List, Optional, Protocol, Sequence

from neighborhoods.common.geo import GridSnapper
from neighborhoods.common.models import (
    AggregatedCell,
    CellBounds,
    PopupContent,
    RenderInstruction,
)
from neighborhoods.core.colorizer import Colorizer, darken


class MapSurface(Protocol):
    def clear(self) -> None: ...

    def draw(self, instruction: RenderInstruction) -> None: ...


class CellRenderer:
    """Builds squares, colors and popups for each aggregated cell."""

    def __init__(
        self,
        snapper: GridSnapper,
        colorizer: Colorizer,
        border_darken: int = 10,
        share_basis: str = "names",
    ) -> None:
        self.snapper = snapper
        self.colorizer = colorizer
        self.border_darken = border_darken
        self.share_basis = share_basis

    def instructions(self, cells: Iterable[AggregatedCell]) -> List[RenderInstruction]:
        return [self.instruction(cell) for cell in cells]

    def instruction(self, cell: AggregatedCell) -> RenderInstruction:
        basis = cell.mentions if self.share_basis == "mentions" and cell.mentions else cell.names
        popup = PopupContent(
            title=f"{cell.count} Neighborhood{'s' if cell.count != 1 else ''}",
            shares=tuple(self.colorizer.name_shares(basis)),
            lat=cell.lat,
            lng=cell.lng,
            updated=cell.most_recent_timestamp,
        )
        return RenderInstruction(
            cell_id=cell.cell_id,
            bounds=self.snapper.cell_bounds(cell.cell_id),
            fill_color=cell.display_color,
            border_color=darken(cell.display_color, self.border_darken),
            popup=popup,
            popup_html=popup_html(popup),
        )

    def render(self, surface: MapSurface, cells: Iterable[AggregatedCell]) -> List[RenderInstruction]:
        """Clear the surface, then draw every cell."""

        instructions = self.instructions(cells)
        surface.clear()
        for instruction in instructions:
            surface.draw(instruction)
        return instructions


def popup_html(popup: PopupContent) -> str:
    items = "".join(
        '<li style="margin: 4px 0; display: flex; justify-content: space-between;">'
        f'<span><span style="display: inline-block; width: 12px; height: 12px; '
        f'background-color: {escape(share.color)}; margin-right: 8px; border: 1px solid #333;"></span>'
        f"{escape(share.name)}</span>"
        f'<span style="margin-left: 10px; font-weight: bold;">{share.percentage}%</span></li>'
        for share in popup.shares
    )
    return (
        '<div style="min-width: 200px; max-height: 300px; overflow-y: auto;">'
        f'<div style="margin-bottom: 8px; font-weight: bold;">{escape(popup.title)}:</div>'
        f'<ul style="margin: 0; padding-left: 20px; list-style: none;">{items}</ul>'
        f'<div style="margin-top: 8px; font-size: 0.9em; color: #666;">'
        f"{popup.lat:.4f}, {popup.lng:.4f}<br>"
        f"Last updated: {popup.updated.strftime('%Y-%m-%d %H:%M UTC')}</div>"
        "</div>"
    )


def fit_bounds(instructions: Sequence[RenderInstruction], pad: float = 0.1) -> Optional[CellBounds]:
    """Bounding box around every drawn cell, padded by ``pad`` of its size."""

    if not instructions:
        return None
    south = min(item.bounds.south for item in instructions)
    west = min(item.bounds.west for item in instructions)
    north = max(item.bounds.north for item in instructions)
    east = max(item.bounds.east for item in instructions)
    lat_pad = (north - south) * pad
    lng_pad = (east - west) * pad
    return CellBounds(
        south=south - lat_pad,
        west=west - lng_pad,
        north=north + lat_pad,
        east=east + lng_pad,
    )
