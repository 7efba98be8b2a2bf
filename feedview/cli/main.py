"""Main entry point for the feedview terminal front-end."""

from __future__ import annotations

import asyncio
import logging
import sys

from feedview import __version__
from feedview.cli.repl import Repl
from feedview.config import resolve_api_url, settings
from feedview.services.coordinator import ViewStateCoordinator
from feedview.services.feed_client import FeedClient
from feedview.services.live_channel import LiveChannel, ReconnectPolicy
from feedview.services.preference_store import JsonFileStore, PreferenceStore


def print_help():
    """Print help message."""
    print(f"""
feedview v{__version__}

Usage:
  feedview [options]

Options:
  --api-url URL     Override API endpoint
  --origin URL      Origin the view runs under (default: {settings.ORIGIN})
  -h, --help        Show this help
  -v, --version     Show version

Environment:
  FEED_API_URL      Override API endpoint (same as --api-url)
  FEED_ORIGIN       Same as --origin
  FEED_LOG_LEVEL    Logging level (default: WARNING)

Type /help inside the REPL for commands.
""")


def parse_args(args: list[str]) -> dict:
    """
    Parse command line arguments.

    Returns dict with:
        api_url: str | None
        origin: str | None
        show_help: bool
        show_version: bool
    """
    result = {
        "api_url": None,
        "origin": None,
        "show_help": False,
        "show_version": False,
    }

    i = 0
    while i < len(args):
        arg = args[i]

        if arg in ("--api-url", "--origin"):
            if i + 1 < len(args):
                result[arg[2:].replace("-", "_")] = args[i + 1]
                i += 1
            else:
                print(f"Error: {arg} requires a URL")
                sys.exit(1)
        elif arg in ("--help", "-h"):
            result["show_help"] = True
        elif arg in ("--version", "-v"):
            result["show_version"] = True
        else:
            print(f"Unknown option: {arg}")
            print("Run 'feedview --help' for usage.")
            sys.exit(1)

        i += 1

    return result


def build_view(api_url: str) -> ViewStateCoordinator:
    """Wire the client, channel and preference store for `api_url`."""
    client = FeedClient(api_url)
    channel = LiveChannel(api_url, ReconnectPolicy.from_settings())
    preferences = PreferenceStore(JsonFileStore(settings.PREFERENCES_PATH))
    return ViewStateCoordinator(client, preferences, channel)


async def run(api_url: str) -> None:
    view = build_view(api_url)
    try:
        await Repl(view).start()
    finally:
        await view.dispose()
        await view.client.aclose()


def main():
    """Main entry point."""
    args = parse_args(sys.argv[1:])

    if args["show_help"]:
        print_help()
        return

    if args["show_version"]:
        print(f"feedview {__version__}")
        return

    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    api_url = resolve_api_url(args["api_url"], args["origin"])
    print(f"Connecting to {api_url}")

    try:
        asyncio.run(run(api_url))
    except KeyboardInterrupt:
        print()


if __name__ == "__main__":
    main()
