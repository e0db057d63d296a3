"""Registry of SAP packet variants transmitted by the sensor front end."""
from __future__ import annotations

import enum
from typing import Dict, List, Tuple

TRAILER = 0xFFFF
HEADER_BITS = 16
FRAME_OVERHEAD = 4  # 2-byte header + 2-byte trailer


class PacketVariant(enum.Enum):
    """
    Known packet layouts as ``(header, frame_length)``.

    Declaration order is the search order used by the frame decoder when the
    caller does not name the expected variant.
    """

    # 5322-00AX-00AY-00AZ-0000-0000-0000-FFFF
    SAP_ACC = (0x5322, 16)
    # 5C22-01AX-01AY-01AZ-01VA-01VB-FFFF, VA = 00 + 6 MSBs, VB = 2 LSBs + 000000
    SAP_ACC_VOL = (0x5C22, 14)
    # 532D-01AX-01AY-01AZ-01VA-01VB-FFFF
    SAP_ACC_ECG = (0x532D, 14)
    # two redundant SAP_ALL payloads back to back
    SAP_DOUBLE = (0x5C2D, 24)
    # 5C2D-00AX-00AY-00AZ-00Vo-01EG-FFFF
    SAP_ALL = (0x5C2D, 14)

    def __init__(self, header: int, frame_length: int) -> None:
        if not 0 <= header <= 0xFFFF:
            raise ValueError(f"{self.name}: header must fit in 16 bits")
        if frame_length < FRAME_OVERHEAD or frame_length % 2:
            raise ValueError(f"{self.name}: frame_length must be even and >= {FRAME_OVERHEAD}")
        self.header = header
        self.frame_length = frame_length

    @property
    def payload_length(self) -> int:
        return self.frame_length - FRAME_OVERHEAD

    @property
    def trailer(self) -> int:
        return TRAILER

    @property
    def frame_bits(self) -> int:
        return self.frame_length * 8


def all_variants() -> Tuple[PacketVariant, ...]:
    return tuple(PacketVariant)


def header_pattern(variant: PacketVariant) -> int:
    """
    Return the header as it appears on the wire, packed MSB first.

    The transport inverts bit order within each 16-bit word, so bit 0 of the
    header is the first bit received. The returned integer places that bit in
    its most significant position to line up with ``BitStreamView`` windows.
    """
    pattern = 0
    for i in range(HEADER_BITS):
        pattern = (pattern << 1) | ((variant.header >> i) & 1)
    return pattern


def variants_for_header(header: int) -> Tuple[PacketVariant, ...]:
    return tuple(v for v in PacketVariant if v.header == header)


def ambiguous_headers() -> Dict[int, Tuple[PacketVariant, ...]]:
    """Headers shared by more than one variant, e.g. SAP_ALL and SAP_DOUBLE."""
    grouped: Dict[int, List[PacketVariant]] = {}
    for variant in PacketVariant:
        grouped.setdefault(variant.header, []).append(variant)
    return {header: tuple(group) for header, group in grouped.items() if len(group) > 1}


def variant_from_name(name: str) -> PacketVariant:
    key = name.strip().upper()
    try:
        return PacketVariant[key]
    except KeyError as exc:
        choices = ", ".join(v.name for v in PacketVariant)
        raise ValueError(f"Unknown packet variant '{name}'. Expected one of {choices}") from exc
