#!/usr/bin/env python3
"""
Example: Report metrics from synchronous and asynchronous instruments.

This example demonstrates:
1. Counters, up/down counters and histograms fed by repeating tasks
2. Observers pulled by the periodic collector
3. Labelled measurements (cache hits and misses)
4. Flushing buffered data on Ctrl+C

Requirements:
- TELEMETRY_DSN set to https://<token>@<host>/<project_id>
"""

import asyncio
import logging
import sys

from telemetry_harness import (
    ConfigurationError, TelemetrySettings, install_demo_emitters,
    run_until_signal, telemetry_session
)


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main() -> int:
    try:
        settings = TelemetrySettings.from_env()

        async with telemetry_session(settings) as provider:
            tasks = install_demo_emitters(provider.registry, settings)
            await run_until_signal(provider, tasks)
    except ConfigurationError as e:
        logger.error(f"{e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
