from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, TextIO

from .catalog import PacketVariant
from .decoder import DecodeStatus, decode_with_status
from .packet import Packet
from .parser import channel_names, parse

CHANNELS = ("ax", "ay", "az", "vol", "ecg")


@dataclass
class SampleRecord:
    """Calibrated channels of one decoded frame."""

    frame_index: int
    variant: str
    bit_offset: int
    trailer_valid: bool
    channels: Dict[str, float] = field(default_factory=dict)

    def as_row(self) -> Dict[str, object]:
        row: Dict[str, object] = {
            "frame_index": self.frame_index,
            "variant": self.variant,
            "bit_offset": self.bit_offset,
            "trailer_valid": self.trailer_valid,
        }
        for name in CHANNELS:
            row[name] = self.channels.get(name)
        return row


def sample_from_packet(frame_index: int, packet: Packet) -> SampleRecord:
    values = parse(packet)
    names = channel_names(packet.variant)
    return SampleRecord(
        frame_index=frame_index,
        variant=packet.variant.name,
        bit_offset=packet.bit_offset if packet.bit_offset is not None else -1,
        trailer_valid=packet.trailer_valid,
        channels=dict(zip(names, values)),
    )


class CsvLogger:
    """
    Lazily creates a CSV writer when the first record arrives. Keeping writer
    creation lazy avoids touching the filesystem during dry runs or tests.
    """

    def __init__(self, path: Path):
        self.path = path
        self._handle: Optional[csv.DictWriter[str]] = None
        self._file_handle: Optional[TextIO] = None

    def append(self, sample: SampleRecord) -> None:
        if self._handle is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file_handle = self.path.open("w", newline="", encoding="utf-8")
            fieldnames = ["frame_index", "variant", "bit_offset", "trailer_valid", *CHANNELS]
            self._handle = csv.DictWriter(self._file_handle, fieldnames=fieldnames)
            self._handle.writeheader()
        assert self._handle is not None
        self._handle.writerow(sample.as_row())
        if self._file_handle is not None:
            self._file_handle.flush()

    def close(self) -> None:
        if self._file_handle:
            self._file_handle.close()
            self._file_handle = None
            self._handle = None


class SamplePipeline:
    """
    Glue that decodes raw frames, calibrates the packets and optionally logs them.
    """

    def __init__(
        self,
        expected_variant: Optional[PacketVariant] = None,
        output_csv: Optional[Path] = None,
    ):
        self.expected_variant = expected_variant
        self.logger = CsvLogger(output_csv) if output_csv else None
        self._callbacks: List[Callable[[SampleRecord], None]] = []
        self._stats: Dict[str, int] = {status.value: 0 for status in DecodeStatus}
        self._stats["frames"] = 0
        self._index = 0
        self._log = logging.getLogger(__name__)

    def process(self, frames: Iterable[bytes]) -> List[SampleRecord]:
        processed: List[SampleRecord] = []
        for frame in frames:
            index = self._index
            self._index += 1
            self._stats["frames"] += 1
            status, packet = decode_with_status(frame, self.expected_variant)
            self._stats[status.value] += 1
            if packet is None:
                self._log.debug("Frame %d dropped: %s", index, status.value)
                continue
            sample = sample_from_packet(index, packet)
            processed.append(sample)
            if self.logger:
                self.logger.append(sample)
            for callback in self._callbacks:
                callback(sample)
        return processed

    def register_callback(self, callback: Callable[[SampleRecord], None]) -> None:
        self._callbacks.append(callback)

    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    def close(self) -> None:
        if self.logger:
            self.logger.close()
