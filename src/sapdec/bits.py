from __future__ import annotations

from typing import Iterable, Optional

import numpy as np

WORD_BITS = 16


class BitStreamView:
    """
    Addressable bit sequence over a byte buffer.

    Bit 0 is the most significant bit of byte 0, bit 8 the most significant bit
    of byte 1 and so on. Windows are read in that same order; only
    :meth:`decode_word16` reverses it.
    """

    def __init__(self, data: bytes | bytearray | Iterable[int]):
        raw = np.frombuffer(bytes(data), dtype=np.uint8)
        self._bits = np.unpackbits(raw)

    def __len__(self) -> int:
        return int(self._bits.size)

    def bit_at(self, index: int) -> int:
        if not 0 <= index < self._bits.size:
            raise IndexError(f"bit index {index} out of range (0..{self._bits.size - 1})")
        return int(self._bits[index])

    def window(self, offset: int, width: int) -> np.ndarray:
        if offset < 0 or width <= 0:
            raise ValueError(f"invalid window (offset={offset}, width={width})")
        end = offset + width
        if end > self._bits.size:
            raise ValueError(
                f"window {offset}..{end} runs past the end of a {self._bits.size}-bit buffer"
            )
        return self._bits[offset:end]

    def window_value(self, offset: int, width: int) -> int:
        value = 0
        for bit in self.window(offset, width):
            value = (value << 1) | int(bit)
        return value

    def window_hamming_distance(self, offset: int, width: int, pattern: int) -> int:
        """Count bits differing between the window at *offset* and *pattern* (MSB first)."""
        mask = (1 << width) - 1
        diff = (self.window_value(offset, width) ^ pattern) & mask
        return bin(diff).count("1")

    def decode_word16(self, offset: int) -> int:
        """Read 16 bits at *offset* with the first bit as the least significant bit."""
        value = 0
        for shift, bit in enumerate(self.window(offset, WORD_BITS)):
            value |= int(bit) << shift
        return value


def format_hex(data: Iterable[int], name: Optional[str] = None) -> str:
    body = "[" + ", ".join(f"{value:02x}" for value in data) + "]"
    return f"{name}: {body}" if name else body
