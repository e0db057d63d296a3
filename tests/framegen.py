"""Builders for synthetic raw frames, mirroring the transport's bit inversion."""
from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

from sapdec.catalog import TRAILER, PacketVariant

FRAME_BITS = 256


def word_bits(value: int) -> List[int]:
    # the link sends each 16-bit word LSB first
    return [(value >> k) & 1 for k in range(16)]


def packet_bits(variant: PacketVariant, payload: Sequence[int], *, trailer: int = TRAILER) -> List[int]:
    bits = word_bits(variant.header)
    for j in range(0, len(payload), 2):
        bits += word_bits((payload[j] << 8) | payload[j + 1])
    bits += word_bits(trailer)
    return bits


def bits_to_bytes(bits: Sequence[int]) -> bytes:
    return bytes(
        int("".join(str(b) for b in bits[n : n + 8]), 2) for n in range(0, len(bits), 8)
    )


def build_frame(placements: Iterable[Tuple[int, Sequence[int]]], flips: Iterable[int] = ()) -> bytes:
    """Write each bit sequence at its offset into a zeroed 256-bit frame, then flip *flips*."""
    bits = [0] * FRAME_BITS
    for offset, chunk in placements:
        bits[offset : offset + len(chunk)] = list(chunk)
    for index in flips:
        bits[index] ^= 1
    assert len(bits) == FRAME_BITS
    return bits_to_bytes(bits)
