"""Configuration helpers for the neighborhood mapper."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass(frozen=True)
class GridConfig:
    """Snapping resolution in degrees."""

    step: float = 0.001


@dataclass(frozen=True)
class ColorConfig:
    """Per-name color generation and blending defaults."""

    saturation: int = 70
    lightness: int = 60
    default_color: str = "#cccccc"
    border_darken: int = 10
    seed: Optional[int] = None


@dataclass(frozen=True)
class StoreConfig:
    """Select the backing store for records and name colors."""

    type: str = "memory"  # memory | file
    locations_path: str = "./data/locations.json"
    colors_path: str = "./data/colors.json"
    merge_on_append: bool = False
    list_limit: int = 2000


@dataclass(frozen=True)
class RenderConfig:
    """How cells are handed to the map surface."""

    fill_opacity: float = 0.7
    share_basis: str = "names"  # names | mentions


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class AppConfig:
    """Aggregated configuration model."""

    grid: GridConfig
    colors: ColorConfig
    store: StoreConfig
    render: RenderConfig
    logging: LoggingConfig


def default_config() -> AppConfig:
    return AppConfig(
        grid=GridConfig(),
        colors=ColorConfig(),
        store=StoreConfig(),
        render=RenderConfig(),
        logging=LoggingConfig(),
    )


def load_config(path: str | Path) -> AppConfig:
    """Parse a YAML config file into an AppConfig dataclass."""

    raw = _load_yaml(path)
    grid_cfg = raw.get("grid", {})
    colors_cfg = raw.get("colors", {})
    store_cfg = raw.get("store", {})
    render_cfg = raw.get("render", {})
    logging_cfg = raw.get("logging", {})

    grid = GridConfig(step=float(grid_cfg.get("step", 0.001)))
    seed = colors_cfg.get("seed")
    colors = ColorConfig(
        saturation=int(colors_cfg.get("saturation", 70)),
        lightness=int(colors_cfg.get("lightness", 60)),
        default_color=str(colors_cfg.get("default_color", "#cccccc")),
        border_darken=int(colors_cfg.get("border_darken", 10)),
        seed=int(seed) if seed is not None else None,
    )
    store = StoreConfig(
        type=str(store_cfg.get("type", "memory")),
        locations_path=str(store_cfg.get("locations_path", "./data/locations.json")),
        colors_path=str(store_cfg.get("colors_path", "./data/colors.json")),
        merge_on_append=bool(store_cfg.get("merge_on_append", False)),
        list_limit=int(store_cfg.get("list_limit", 2000)),
    )
    render = RenderConfig(
        fill_opacity=float(render_cfg.get("fill_opacity", 0.7)),
        share_basis=str(render_cfg.get("share_basis", "names")),
    )
    logging_section = LoggingConfig(level=str(logging_cfg.get("level", "INFO")).upper())

    if store.type not in ("memory", "file"):
        raise ValueError(f"Unknown store.type: {store.type}")
    if render.share_basis not in ("names", "mentions"):
        raise ValueError(f"Unknown render.share_basis: {render.share_basis}")

    return AppConfig(
        grid=grid,
        colors=colors,
        store=store,
        render=render,
        logging=logging_section,
    )


def _load_yaml(path: str | Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a top-level mapping.")
    return data
