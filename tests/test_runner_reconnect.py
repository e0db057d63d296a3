from __future__ import annotations

import csv
import io
import queue

from framegen import build_frame, packet_bits
from sapdec.catalog import PacketVariant
from sapdec.host.config import DecoderConfig, HostRuntime
from sapdec.host.runner import (
    DecoderHost,
    SerialReaderThread,
    SerialSettings,
    iterate_binary_stream,
)

PAYLOAD = [0x00, 0x10, 0x00, 0x20, 0x00, 0x30] + [0x00] * 6


class FakeSerialInstance:
    def __init__(self, chunks: list[bytes]):
        self._chunks = chunks

    def read(self, size: int) -> bytes:
        if self._chunks:
            return self._chunks.pop(0)
        return b""

    def close(self) -> None:
        pass


class FakeSerialModule:
    def __init__(self, chunks: list[bytes]):
        self.calls = 0
        self._chunks = chunks
        self.SerialException = RuntimeError

    def Serial(self, *args, **kwargs):
        self.calls += 1
        if self.calls == 1:
            raise self.SerialException("mock disconnect")
        # Provide a fresh copy of chunks for each connection
        return FakeSerialInstance(list(self._chunks))


def test_serial_reader_reconnect(monkeypatch):
    frame = build_frame([(0, packet_bits(PacketVariant.SAP_ACC, PAYLOAD))])
    fake_serial = FakeSerialModule([frame[:10], frame[10:]])
    monkeypatch.setattr("sapdec.host.runner.serial", fake_serial)

    settings = SerialSettings(port="/dev/ttyFAKE", baudrate=115200, timeout=0.05)
    cfg = DecoderConfig()
    cfg.host = HostRuntime(
        queue_maxsize=4,
        reconnect_initial_sec=0.01,
        reconnect_max_sec=0.02,
        stats_log_interval=1,
    )

    frame_queue: "queue.Queue" = queue.Queue()
    reader = SerialReaderThread(settings, cfg, frame_queue)
    reader.start()
    try:
        received = frame_queue.get(timeout=1.0)
        assert received == frame
        assert fake_serial.calls >= 2  # initial failure + successful reconnect
    finally:
        reader.stop()
        reader.join(timeout=1.0)
    assert reader.stats()["reconnects"] == 0


def test_iterate_binary_stream_regroups_frames():
    blob = bytes(range(64)) + b"\x01\x02"
    frames = list(iterate_binary_stream(io.BytesIO(blob)))
    assert frames == [bytes(range(32)), bytes(range(32, 64))]


def test_reader_without_pyserial_stops_cleanly(monkeypatch):
    monkeypatch.setattr("sapdec.host.runner.serial", None)
    reader = SerialReaderThread(SerialSettings(port="/dev/ttyFAKE"), DecoderConfig(), queue.Queue())
    reader.start()
    reader.join(timeout=1.0)
    assert not reader.is_alive()
    assert isinstance(reader.last_exception, ImportError)


def test_host_reads_frames_from_stdin(monkeypatch, tmp_path):
    frame = build_frame([(0, packet_bits(PacketVariant.SAP_ACC, PAYLOAD))])
    blob = frame * 2 + bytes(32) + b"\x01\x02"
    monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(blob)))

    cfg = DecoderConfig(expected_variant="SAP_ACC", output_csv=tmp_path / "stdin.csv")
    host = DecoderHost(SerialSettings(port="-"), cfg)
    host.run()

    assert host.pipeline.stats() == {
        "frames": 3,
        "ok": 2,
        "trailer_mismatch": 0,
        "invalid_length": 0,
        "header_not_found": 1,
    }
    with cfg.output_csv.open(encoding="utf-8") as fh:
        rows = list(csv.DictReader(fh))
    assert [row["frame_index"] for row in rows] == ["0", "1"]
    assert {row["variant"] for row in rows} == {"SAP_ACC"}
