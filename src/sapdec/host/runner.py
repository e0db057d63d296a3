from __future__ import annotations

import logging
import queue
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, List, Optional

import typer

try:
    import serial  # type: ignore[import]
except ImportError:  # pragma: no cover - handled in CLI validation
    serial = None  # type: ignore[assignment]

from ..decoder import FRAME_SIZE
from ..processing import SamplePipeline, SampleRecord
from .config import DecoderConfig, load_config

logger = logging.getLogger(__name__)


@dataclass
class SerialSettings:
    port: str
    baudrate: int = 115200
    timeout: float = 2.0


def iterate_binary_stream(handle: Any, frame_size: int = FRAME_SIZE) -> Iterator[bytes]:
    """Yield fixed-size frames from a binary file-like object until EOF."""
    buffer = bytearray()
    while True:
        chunk = handle.read(frame_size)
        if not chunk:
            break
        buffer.extend(chunk)
        while len(buffer) >= frame_size:
            yield bytes(buffer[:frame_size])
            del buffer[:frame_size]
    if buffer:
        logger.debug("Discarding %d bytes of incomplete frame at EOF", len(buffer))


class SerialReaderThread(threading.Thread):
    """Reads raw 32-byte frames from the serial link and queues them for decoding."""

    def __init__(
        self,
        settings: SerialSettings,
        config: DecoderConfig,
        frame_queue: "queue.Queue[bytes]",
    ) -> None:
        super().__init__(daemon=True)
        self.settings = settings
        self.config = config
        self.queue = frame_queue
        self._stop_event = threading.Event()
        self._serial_handle = None
        self._buffer = bytearray()
        self._frames = 0
        self._dropped = 0
        self._reconnects = 0
        self._connected_once = False
        self.last_exception: Optional[Exception] = None
        self._log = logging.getLogger(__name__)

    def run(self) -> None:  # pragma: no cover - exercised via integration-style tests
        if serial is None:
            self.last_exception = ImportError(
                "pyserial is required but not installed. Install extra 'serial'."
            )
            self._log.error("Serial reader for %s not started: %s", self.settings.port, self.last_exception)
            return
        initial_delay = max(self.config.host.reconnect_initial_sec, 0.01)
        max_delay = max(self.config.host.reconnect_max_sec, initial_delay)
        backoff = initial_delay
        while not self._stop_event.is_set():
            self._serial_handle = None
            try:
                self._serial_handle = self._open_serial()
                if self._connected_once:
                    self._reconnects += 1
                    self._log.info("Reconnected to %s", self.settings.port)
                else:
                    self._log.info("Connected to %s", self.settings.port)
                    self._connected_once = True
                self.last_exception = None
                backoff = initial_delay
                self._buffer.clear()
                for frame in self._iter_frames():
                    if self._stop_event.is_set():
                        break
                    self._emit(frame)
            except serial.SerialException as exc:  # type: ignore[union-attr]
                self.last_exception = exc
                self._log.warning("Serial error (%s): %s", self.settings.port, exc)
            except Exception as exc:  # pragma: no cover - defensive
                self.last_exception = exc
                self._log.exception("Unexpected error in serial reader")
            finally:
                if self._serial_handle is not None:
                    try:
                        self._serial_handle.close()
                    except Exception:
                        self._log.debug("Error closing %s", self.settings.port, exc_info=True)
                    self._serial_handle = None
            if self._stop_event.is_set():
                break
            wait_time = min(backoff, max_delay)
            self._log.info("Reconnecting in %.1fs", wait_time)
            self._stop_event.wait(wait_time)
            backoff = min(backoff * 2, max_delay)

    def stop(self) -> None:
        self._stop_event.set()
        if self._serial_handle is not None:
            try:
                self._serial_handle.close()
            except Exception:
                self._log.debug("Error closing %s", self.settings.port, exc_info=True)

    def stats(self) -> dict[str, int]:
        return {"received": self._frames, "dropped": self._dropped, "reconnects": self._reconnects}

    def _emit(self, frame: bytes) -> None:
        self._frames += 1
        try:
            self.queue.put(frame, timeout=1.0)
        except queue.Full:
            self._dropped += 1
            self._log.warning("Frame queue full (%d), dropping frame", self.queue.qsize())

    def _iter_frames(self) -> Iterator[bytes]:
        while not self._stop_event.is_set():
            if self._serial_handle is None:
                time.sleep(0.01)
                continue
            data = self._serial_handle.read(max(FRAME_SIZE - len(self._buffer), 1))
            if not data:
                continue
            self._buffer.extend(data)
            while len(self._buffer) >= FRAME_SIZE:
                frame = bytes(self._buffer[:FRAME_SIZE])
                del self._buffer[:FRAME_SIZE]
                yield frame

    def _open_serial(self):
        if serial is None:
            raise ImportError("pyserial is required but not installed. Install extra 'serial'.")
        return serial.Serial(
            port=self.settings.port,
            baudrate=self.settings.baudrate,
            timeout=self.settings.timeout,
        )


class DecoderHost:
    """Host-side loop: acquire frames, decode, calibrate, persist CSV."""

    def __init__(self, settings: SerialSettings, config: DecoderConfig):
        self.settings = settings
        self.config = config
        config.warn_if_ambiguous()
        self.pipeline = SamplePipeline(
            expected_variant=config.variant,
            output_csv=config.output_csv,
        )

    def run(self) -> None:
        if self.settings.port == "-":
            self._run_from_stream()
            return

        frame_queue: "queue.Queue[bytes]" = queue.Queue(maxsize=self.config.host.queue_maxsize)
        reader = SerialReaderThread(self.settings, self.config, frame_queue)
        reader.start()
        interval_sec = max(float(self.config.host.stats_log_interval), 5.0)
        next_log = time.monotonic() + interval_sec

        def emit_stats() -> None:
            self._log_stats("", reader.stats())

        try:
            while True:
                try:
                    frame = frame_queue.get(timeout=1.0)
                except queue.Empty:
                    if time.monotonic() >= next_log:
                        emit_stats()
                        next_log = time.monotonic() + interval_sec
                    continue
                self.pipeline.process([frame])
                if time.monotonic() >= next_log:
                    emit_stats()
                    next_log = time.monotonic() + interval_sec
        except KeyboardInterrupt:
            logger.info("Stopping host (Ctrl+C)")
        finally:
            reader.stop()
            reader.join(timeout=5)
            self.pipeline.close()
            self._log_stats("Final stats: ", reader.stats())

    def _run_from_stream(self) -> List[SampleRecord]:
        try:
            samples = self.pipeline.process(iterate_binary_stream(sys.stdin.buffer))
            self._log_stats("Processed stdin: ", {})
        finally:
            self.pipeline.close()
        return samples

    def _log_stats(self, prefix: str, reader_stats: dict[str, int]) -> None:
        stats = self.pipeline.stats()
        logger.info(
            "%sframes=%d ok=%d trailer_mismatch=%d header_not_found=%d invalid_length=%d "
            "dropped=%d reconnects=%d",
            prefix,
            stats.get("frames", 0),
            stats.get("ok", 0),
            stats.get("trailer_mismatch", 0),
            stats.get("header_not_found", 0),
            stats.get("invalid_length", 0),
            reader_stats.get("dropped", 0),
            reader_stats.get("reconnects", 0),
        )


def run(
    port: str = typer.Option(
        "/dev/ttyUSB0", "--port", "-p", help="Serial device. Use '-' to read from stdin."
    ),
    baudrate: int = typer.Option(115200, "--baud", help="Serial baudrate."),
    timeout: float = typer.Option(2.0, "--timeout", help="Serial read timeout (seconds)."),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to decoder host config (JSON)."
    ),
    override: Optional[List[str]] = typer.Option(
        None,
        "--set",
        help="Override config keys, e.g. --set expected_variant=SAP_ALL --set host.queue_maxsize=64",
    ),
):
    """Stream frames from the serial link, decode them and log calibrated samples."""

    try:
        cfg = load_config(config_path, override or None)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    if port != "-" and serial is None:
        raise typer.BadParameter("pyserial is required for serial ports (pip install .[serial])")
    settings = SerialSettings(port=port, baudrate=baudrate, timeout=timeout)
    host = DecoderHost(settings=settings, config=cfg)
    try:
        host.run()
    except KeyboardInterrupt:
        logger.info("Stopping host (Ctrl+C)")
