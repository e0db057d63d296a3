"""
Serial acquisition host for SAP frames.

Reads raw 32-byte frames from the sensor link on a background thread and runs
them through the decode/parse pipeline. Kept apart from the core so the
decoder itself has no dependency on pyserial.
"""

from .config import DecoderConfig, HostRuntime, load_config
from .runner import DecoderHost, SerialReaderThread, SerialSettings

__all__ = [
    "DecoderConfig",
    "HostRuntime",
    "load_config",
    "DecoderHost",
    "SerialReaderThread",
    "SerialSettings",
]
