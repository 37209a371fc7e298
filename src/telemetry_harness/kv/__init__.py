"""Key-value client and its instrumentation."""

from .client import Batch, KeyValueClient, run_kv_commands
from .instrumentation import KeyValueInstrumentation, instrument_kv_client

__all__ = [
    "Batch",
    "KeyValueClient",
    "run_kv_commands",
    "KeyValueInstrumentation",
    "instrument_kv_client",
]
