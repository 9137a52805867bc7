"""Command-line watcher for the account and trade update streams."""

from __future__ import annotations

import argparse
import asyncio
import sys

from alpaca_stream.config import Settings
from alpaca_stream.domain.events import AccountUpdate, TradeUpdate
from alpaca_stream.errors import ClientError, DecodeError
from alpaca_stream.logging.logger import StreamLogger, setup_logger
from alpaca_stream.streams.base import StreamType, tag_for
from alpaca_stream.streams.client import StreamClient


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(description="Watch Alpaca account or trade updates")
    parser.add_argument(
        "--stream",
        choices=[stream.value for stream in StreamType],
        help="Stream to subscribe to",
    )
    parser.add_argument("--max-events", type=int, help="Exit after this many updates")
    parser.add_argument("--log-level", type=str, help="Logging level")
    return parser


def apply_cli_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Apply CLI values onto environment-derived settings."""
    overrides: dict[str, object] = {}
    if args.stream:
        overrides["stream"] = args.stream
    if args.max_events is not None:
        overrides["max_events"] = args.max_events
    if args.log_level:
        overrides["log_level"] = args.log_level.strip().upper()
    return settings.with_overrides(**overrides)


async def watch(settings: Settings, stream_logger: StreamLogger) -> int:
    """Print updates from the configured stream until closed or the limit is hit."""
    tag = tag_for(settings.stream)
    seen = 0
    async with StreamClient(settings.api) as client:
        subscription = await client.subscribe(tag)
        stream_logger.subscribed(settings.stream.value)
        async with subscription:
            async for item in subscription:
                if isinstance(item, DecodeError):
                    stream_logger.decode_error(settings.stream.value, item)
                    continue
                if isinstance(item, AccountUpdate):
                    stream_logger.account(item)
                elif isinstance(item, TradeUpdate):
                    stream_logger.trade(item)
                seen += 1
                if settings.max_events is not None and seen >= settings.max_events:
                    break
    return 0


def main() -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args()
    try:
        settings = apply_cli_overrides(Settings.from_env(), args)
    except ClientError as exc:
        print(f"Configuration error: {exc}")
        return 2
    setup_logger(settings.log_level)
    stream_logger = StreamLogger(level=settings.log_level)
    try:
        return asyncio.run(watch(settings, stream_logger))
    except ClientError as exc:
        stream_logger.error(str(exc))
        return 1
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
