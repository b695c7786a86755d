"""Command line entry point: ``weathr`` / ``python -m weathr``."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .app import run
from .config import SimulateOverride, WeathrConfig, resolve
from .core.conditions import WeatherCondition
from .core.scene import ExtraEffect

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(name)s %(levelname)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="weathr",
        description="Animated ASCII weather for your terminal.",
    )
    parser.add_argument(
        "--simulate",
        metavar="CONDITION",
        help="show a fixed condition instead of live weather (e.g. rain, snow, thunderstorm)",
    )
    parser.add_argument("--night", action="store_true", help="force a night sky (with --simulate)")
    parser.add_argument("--leaves", action="store_true", default=None, help="add falling autumn leaves")
    parser.add_argument("--airplanes", action="store_true", default=None, help="add the occasional airplane")
    parser.add_argument("--hide-hud", action="store_true", default=None, help="hide the weather readout")
    parser.add_argument("--hide-location", action="store_true", default=None, help="keep coordinates off the HUD")
    parser.add_argument("--auto-location", action="store_true", default=None, help="look up the location by IP")
    parser.add_argument("--fps", type=int, help="frames per second (1-60, default 15)")
    parser.add_argument("--seed", type=int, help="random seed for reproducible animation")
    parser.add_argument("--config", type=Path, help="config file (default: $XDG_CONFIG_HOME/weathr/config.json)")
    parser.add_argument("--log-file", type=Path, help="write logs here instead of only errors to stderr")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging (with --log-file)")
    parser.add_argument("--list-conditions", action="store_true", help="print the accepted conditions and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(log_file: Optional[Path], verbose: bool = False) -> None:
    """The animation owns the screen, so stderr only gets errors unless logging to a file."""
    if log_file is not None:
        level = logging.DEBUG if verbose else logging.INFO
        logging.basicConfig(level=level, filename=str(log_file), format=LOG_FORMAT)
    else:
        logging.basicConfig(level=logging.ERROR, stream=sys.stderr, format=LOG_FORMAT)


def _simulate_override(args: argparse.Namespace) -> Optional[SimulateOverride]:
    if args.simulate is None:
        if args.night:
            logger.warning("--night only applies with --simulate")
        return None
    extras = []
    if args.leaves:
        extras.append(ExtraEffect.LEAVES)
    if args.airplanes:
        extras.append(ExtraEffect.AIRPLANES)
    return SimulateOverride.create(args.simulate, args.night, extras)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_file, args.verbose)

    if args.list_conditions:
        for condition in WeatherCondition:
            print(f"{condition.value:<24} {condition.display_name}")
        return 0

    config = resolve(
        WeathrConfig.load(args.config),
        hide_hud=args.hide_hud,
        hide_location=args.hide_location,
        fps=args.fps,
        seed=args.seed,
        airplanes=args.airplanes,
        leaves=args.leaves,
        auto_location=args.auto_location,
    )
    return run(config, _simulate_override(args))


if __name__ == "__main__":
    sys.exit(main())
