#!/usr/bin/env python3
"""
Example: Instrumented key-value commands.

Runs ``set``, ``get`` and a pipelined batch against a Redis server and
reports command counts and durations.

Requirements:
- TELEMETRY_DSN set to https://<token>@<host>/<project_id>
- A Redis server at KV_URL (default redis://localhost:6379/0)
"""

import asyncio
import logging
import sys

from telemetry_harness import (
    ConfigurationError, KeyValueClient, KeyValueError, KeyValueSettings,
    TelemetrySettings, instrument_kv_client, run_kv_commands, telemetry_session
)


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main() -> int:
    try:
        settings = TelemetrySettings.from_env()
        kv_settings = KeyValueSettings.from_env()

        async with telemetry_session(settings) as provider:
            with KeyValueClient.from_settings(kv_settings) as client:
                instrument_kv_client(client, provider.registry)
                try:
                    loop = asyncio.get_running_loop()
                    results = await loop.run_in_executor(None, run_kv_commands, client)
                except KeyValueError as e:
                    logger.error(f"{e}")
                    return 1
                logger.info(f"Pipeline results: {results}")
    except ConfigurationError as e:
        logger.error(f"{e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
