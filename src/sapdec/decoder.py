"""
Header search and payload reassembly for raw 32-byte SAP frames.

A frame is a 256-bit capture containing part of the 0xAAAA preamble, a 16-bit
header, the payload and a 0xFFFF trailer. The transport inverts bit order in
every 16-bit word, so headers are matched against their LSB-first pattern and
payload words are read back with the first received bit as bit 0.
"""
from __future__ import annotations

import enum
import logging
from typing import Iterable, List, Optional, Tuple

from .bits import WORD_BITS, BitStreamView
from .catalog import HEADER_BITS, PacketVariant, all_variants, header_pattern
from .packet import Packet

FRAME_SIZE = 32
HEADER_THRESHOLD = 2
SEARCH_RANGE_BITS = 16 * 8

_log = logging.getLogger(__name__)


class DecodeStatus(str, enum.Enum):
    OK = "ok"
    TRAILER_MISMATCH = "trailer_mismatch"
    INVALID_LENGTH = "invalid_length"
    HEADER_NOT_FOUND = "header_not_found"


def _header_matches(distance: int, threshold: int = HEADER_THRESHOLD) -> bool:
    if distance == 0:
        return True
    return distance <= threshold


def _fits(variant: PacketVariant, offset: int, total_bits: int) -> bool:
    return offset + variant.frame_bits <= total_bits


def _extract(view: BitStreamView, variant: PacketVariant, offset: int) -> Tuple[List[int], int]:
    start = offset + HEADER_BITS
    payload = [0] * variant.payload_length
    for j in range(variant.payload_length // 2):
        word = view.decode_word16(start + j * WORD_BITS)
        payload[2 * j] = word >> 8
        payload[2 * j + 1] = word & 0xFF
    trailer = view.decode_word16(start + (variant.payload_length // 2) * WORD_BITS)
    return payload, trailer


def decode_with_status(
    frame: bytes | bytearray, expected_variant: Optional[PacketVariant] = None
) -> Tuple[DecodeStatus, Optional[Packet]]:
    """
    Decode *frame* and report which outcome occurred.

    Offsets 0..128 are scanned in order and, at each offset, the candidate
    variants in catalog order (or only *expected_variant*). The first header
    window within ``HEADER_THRESHOLD`` bit errors wins. Candidates whose
    payload and trailer would not fit in the frame are skipped.
    """
    if len(frame) != FRAME_SIZE:
        _log.debug("Rejecting frame of %d bytes (expected %d)", len(frame), FRAME_SIZE)
        return DecodeStatus.INVALID_LENGTH, None

    view = BitStreamView(frame)
    candidates: Iterable[PacketVariant] = (
        (expected_variant,) if expected_variant is not None else all_variants()
    )
    patterns = [(variant, header_pattern(variant)) for variant in candidates]
    for offset in range(SEARCH_RANGE_BITS + 1):
        for variant, pattern in patterns:
            if not _fits(variant, offset, len(view)):
                continue
            distance = view.window_hamming_distance(offset, HEADER_BITS, pattern)
            if not _header_matches(distance):
                continue
            payload, trailer = _extract(view, variant, offset)
            trailer_valid = trailer == variant.trailer
            if not trailer_valid:
                _log.debug(
                    "%s at bit %d: trailer %04X, expected %04X",
                    variant.name,
                    offset,
                    trailer,
                    variant.trailer,
                )
            packet = Packet(variant, payload, trailer_valid=trailer_valid, bit_offset=offset)
            status = DecodeStatus.OK if trailer_valid else DecodeStatus.TRAILER_MISMATCH
            return status, packet

    _log.debug("No header found in frame %s", bytes(frame).hex())
    return DecodeStatus.HEADER_NOT_FOUND, None


def decode(
    frame: bytes | bytearray, expected_variant: Optional[PacketVariant] = None
) -> Optional[Packet]:
    """Return the first packet found in *frame*, or ``None``."""
    _, packet = decode_with_status(frame, expected_variant)
    return packet
