"""
Basket Index Command Line Interface.

Usage:
    basket-index --help
    basket-index info
    basket-index serve --port 8001
    basket-index snapshot crypto --range 3M
    basket-index snapshot compare --tickers BOTZ,ROBO --range 1Y
    basket-index snapshot history --tickers ISRG
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from . import __version__


def cmd_info(args) -> None:
    """Show package information."""
    from .settings import load_index_settings

    settings = load_index_settings()

    print(f"Basket Index v{__version__}")
    print("\nCredentials:")
    for name, present in settings.credential_status().items():
        print(f"  {name}: {'set' if present else 'missing'}")
    print(f"\nFetch timeout: {settings.fetch_timeout_seconds:.1f}s, attempts: {settings.fetch_max_attempts}")
    print(f"Cache max entries: {settings.cache_max_entries}")


def cmd_serve(args) -> None:
    """Start API server."""
    import uvicorn

    print(f"Starting Basket Index API on {args.host}:{args.port}")
    uvicorn.run("basket_index.api.main:get_app", factory=True, host=args.host, port=args.port)


async def _run_snapshot(args) -> dict[str, Any]:
    from .common.ranges import TimeRange, parse_asset_ids, parse_range, parse_tickers
    from .common.universe import COMPARE_DEFAULT_TICKERS
    from .data_pipeline.errors import RequestValidationError
    from .services.runtime import build_runtime

    runtime = build_runtime()
    try:
        if args.kind == "crypto":
            time_range = parse_range(args.range, TimeRange.THREE_MONTHS)
            ids = parse_asset_ids(args.tickers) if args.tickers else None
            return await runtime.crypto.get_index(time_range, ids)
        time_range = parse_range(args.range, TimeRange.ONE_YEAR)
        if args.kind == "equity":
            tickers = parse_tickers(args.tickers) if args.tickers else None
            return await runtime.equity.get_index(time_range, tickers)
        if args.kind == "compare":
            return await runtime.compare.compare(time_range, parse_tickers(args.tickers, COMPARE_DEFAULT_TICKERS))
        symbols = parse_tickers(args.tickers)
        if len(symbols) != 1:
            raise RequestValidationError("Exactly one ticker is required")
        return await runtime.history.history(symbols[0], time_range)
    finally:
        await runtime.aclose()


def cmd_snapshot(args) -> None:
    """Run one pipeline and print its payload as JSON."""
    from .data_pipeline.errors import RequestValidationError
    from .observability.logging import configure_logging
    from .settings import load_index_settings

    settings = load_index_settings()
    configure_logging(
        args.log_level,
        json_format=True,
        secrets=(settings.coingecko_api_key, settings.tiingo_api_key),
    )
    try:
        payload = asyncio.run(_run_snapshot(args))
    except RequestValidationError as exc:
        print(json.dumps({"ok": False, "error": str(exc)}))
        sys.exit(2)
    print(json.dumps(payload, indent=2 if args.pretty else None, default=str))
    if not payload.get("ok"):
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="basket-index",
        description="Basket Index - weighted basket indices with resilient upstream fetching",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    info_parser = subparsers.add_parser("info", help="Show package information")
    info_parser.set_defaults(func=cmd_info)

    serve_parser = subparsers.add_parser("serve", help="Start API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind")
    serve_parser.add_argument("--port", type=int, default=8001, help="Port to bind")
    serve_parser.set_defaults(func=cmd_serve)

    snapshot_parser = subparsers.add_parser("snapshot", help="Run one pipeline and print JSON")
    snapshot_parser.add_argument("kind", choices=["crypto", "equity", "compare", "history"])
    snapshot_parser.add_argument("--range", default=None, help="1M|3M|6M|1Y|YTD")
    snapshot_parser.add_argument("--tickers", default=None, help="Comma-separated tickers or asset ids")
    snapshot_parser.add_argument("--log-level", default="WARNING", help="Log level for pipeline events")
    snapshot_parser.add_argument("--pretty", action="store_true", help="Indent JSON output")
    snapshot_parser.set_defaults(func=cmd_snapshot)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
