from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .catalog import PacketVariant


@dataclass(frozen=True)
class Packet:
    """
    Decoded packet: variant tag plus the raw payload bytes between header and trailer.

    A payload shorter than the variant's ``payload_length`` is rejected so that
    parsing never indexes past it. Longer payloads are accepted as-is.
    """

    variant: Any
    payload: Sequence[int]
    trailer_valid: bool = True
    bit_offset: Optional[int] = None

    def __post_init__(self) -> None:
        values = tuple(int(value) for value in self.payload)
        for value in values:
            if not 0 <= value <= 0xFF:
                raise ValueError(f"payload byte {value} outside 0..255")
        if isinstance(self.variant, PacketVariant) and len(values) < self.variant.payload_length:
            raise ValueError(
                f"{self.variant.name} payload needs {self.variant.payload_length} bytes, got {len(values)}"
            )
        object.__setattr__(self, "payload", values)

    def payload_bytes(self) -> bytes:
        return bytes(self.payload)
