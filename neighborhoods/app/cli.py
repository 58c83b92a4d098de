"""Command-line entry point for the neighborhood mapper."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from neighborhoods.app.map_surface import PydeckSurface
from neighborhoods.app.session import build_session
from neighborhoods.common.config import AppConfig, default_config, load_config
from neighborhoods.common.errors import StoreUnavailableError, SubmissionError
from neighborhoods.core.aggregator import cells_frame


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Collect and aggregate neighborhood names on a grid.")
    parser.add_argument("--config", default=None, help="Path to YAML config (defaults to in-memory stores).")
    commands = parser.add_subparsers(dest="command", required=True)

    submit = commands.add_parser("submit", help="Name the neighborhood at a coordinate.")
    submit.add_argument("--name", required=True)
    submit.add_argument("--lat", type=float, required=True)
    submit.add_argument("--lng", type=float, required=True)

    commands.add_parser("cells", help="Print aggregated cells.")
    commands.add_parser("names", help="List every neighborhood name with an assigned color.")

    export = commands.add_parser("export", help="Write the current cells to HTML and/or CSV.")
    export.add_argument("--html", default=None, help="Path for a pydeck HTML map.")
    export.add_argument("--csv", default=None, help="Path for a CSV table of cells.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config: AppConfig = load_config(args.config) if args.config else default_config()
    logging.basicConfig(
        level=getattr(logging, config.logging.level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    surface = PydeckSurface(fill_opacity=config.render.fill_opacity)
    try:
        session = build_session(config, surface=surface)
        if args.command == "submit":
            record = session.submit(args.name, args.lat, args.lng)
            print(f"Saved {args.name!r} in cell {record.cell_id}")
        elif args.command == "cells":
            cells = session.refresh()
            if not cells:
                print("No locations saved yet")
            else:
                print(cells_frame(cells).to_string(index=False))
        elif args.command == "names":
            for name in session.neighborhood_names():
                print(name)
        elif args.command == "export":
            if not args.html and not args.csv:
                raise SubmissionError("Pass --html and/or --csv to export.")
            cells = session.refresh()
            if args.html:
                print(f"Wrote map to {surface.to_html(args.html)}")
            if args.csv:
                cells_frame(cells).to_csv(args.csv, index=False)
                print(f"Wrote {len(cells)} cell(s) to {args.csv}")
    except SubmissionError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except StoreUnavailableError as exc:
        logging.getLogger(__name__).error("Store unavailable: %s", exc)
        print("error: store unavailable, please retry", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
