"""Command line entry point that fetches weather using the same stack as the app."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from typing import Any, List, Optional, Sequence

from .app import create_app
from .entities import CANONICAL_UNITS, SUPPORTED_UNITS, GeoPoint
from .errors import ConfigurationError, ProviderError
from .settings import Settings


class CommandError(Exception):
    """Raised for failures reported to the user with a non-zero exit code."""


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="weatherflow", description="Fetch normalized weather data")
    sub = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (("current", "Current conditions"), ("forecast", "Six day forecast")):
        command = sub.add_parser(name, help=help_text)
        command.add_argument("--lat", type=float, required=True, help="Latitude")
        command.add_argument("--lon", type=float, required=True, help="Longitude")
        command.add_argument("--units", choices=SUPPORTED_UNITS, default=CANONICAL_UNITS)
    search = sub.add_parser("search", help="Search locations by name")
    search.add_argument("query")
    sub.add_parser("ping", help="Health check")
    return parser


async def run(args: argparse.Namespace, settings: Settings) -> Any:
    async with create_app(settings) as app:
        if args.command == "ping":
            return app.health_api.ping()
        if args.command == "search":
            return [asdict(point) for point in await app.search(args.query)]
        point = GeoPoint(lat=args.lat, lon=args.lon)
        try:
            if args.command == "current":
                record = await app.current(point, args.units)
            else:
                record = await app.forecast(point, args.units)
        except ProviderError as exc:
            raise CommandError(f"Weather provider failed: {exc}") from exc
        return asdict(record)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = Settings.from_env()
        configure_logging(settings.log_level)
        payload = asyncio.run(run(args, settings))
    except (CommandError, ConfigurationError, ProviderError) as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 1
    sys.stdout.write(json.dumps(payload) + "\n")
    return 0


def _entry(argv: Optional[List[str]] = None) -> None:
    sys.exit(main(argv))


if __name__ == "__main__":  # pragma: no cover
    _entry()
