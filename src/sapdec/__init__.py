"""Decoder and calibration for SAP sensor telemetry frames."""

from importlib.metadata import PackageNotFoundError, version

from .catalog import TRAILER, PacketVariant, all_variants, header_pattern
from .decoder import DecodeStatus, decode, decode_with_status
from .packet import Packet
from .parser import UnknownVariantError, accel, ecg, parse, voltage

try:  # pragma: no cover - fallback when package metadata missing
    __version__ = version("sapdec")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = [
    "__version__",
    "TRAILER",
    "PacketVariant",
    "all_variants",
    "header_pattern",
    "DecodeStatus",
    "decode",
    "decode_with_status",
    "Packet",
    "UnknownVariantError",
    "accel",
    "ecg",
    "parse",
    "voltage",
]
