"""
Command line entry point.

    telemetry-harness metrics          run every demo emitter until Ctrl+C
    telemetry-harness kv [--url URL]   run the instrumented key-value demo

Both commands read the exporter DSN from ``TELEMETRY_DSN``.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config.settings import KeyValueSettings, TelemetrySettings
from .harness.emitters import install_demo_emitters
from .harness.lifecycle import run_until_signal, telemetry_session
from .kv.client import KeyValueClient, run_kv_commands
from .kv.instrumentation import instrument_kv_client
from .runtime.errors import ConfigurationError, KeyValueError


logger = logging.getLogger("telemetry_harness")


async def run_metrics(settings: TelemetrySettings, stop_event: Optional[asyncio.Event] = None) -> None:
    """Report demo measurements until a shutdown signal arrives."""
    async with telemetry_session(settings) as provider:
        tasks = install_demo_emitters(provider.registry, settings)
        await run_until_signal(provider, tasks, stop_event)


async def run_kv(settings: TelemetrySettings, kv_settings: KeyValueSettings) -> int:
    """Run the key-value demo with instrumented commands."""
    async with telemetry_session(settings) as provider:
        with KeyValueClient.from_settings(kv_settings) as client:
            instrument_kv_client(client, provider.registry)

            loop = asyncio.get_running_loop()
            try:
                results = await loop.run_in_executor(None, run_kv_commands, client)
            except KeyValueError as e:
                logger.error(f"Key-value commands failed: {e}")
                return 1

            logger.info(f"Pipeline results: {results}")
            return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="telemetry-harness",
        description="Report demo metrics and key-value client telemetry"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("metrics", help="Run demo emitters and observers until interrupted")

    kv_parser = subparsers.add_parser("kv", help="Run instrumented key-value commands")
    kv_parser.add_argument(
        "--url",
        help="Key-value server URL (defaults to KV_URL or redis://localhost:6379/0)"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        settings = TelemetrySettings.from_env()
        settings.require_dsn()

        if args.command == "metrics":
            asyncio.run(run_metrics(settings))
            return 0

        kv_settings = KeyValueSettings.from_env()
        if args.url:
            kv_settings = KeyValueSettings(url=args.url, socket_timeout=kv_settings.socket_timeout)
        return asyncio.run(run_kv(settings, kv_settings))

    except ConfigurationError as e:
        logger.error(f"Startup failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
