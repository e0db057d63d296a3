"""Capture file loading and tabulation of decoded samples."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

import pandas as pd

from .catalog import PacketVariant
from .decoder import FRAME_SIZE
from .processing import CHANNELS, SamplePipeline, SampleRecord

logger = logging.getLogger(__name__)

COLUMNS = ["frame_index", "variant", "bit_offset", "trailer_valid", *CHANNELS]


def iter_frames(blob: bytes, frame_size: int = FRAME_SIZE) -> Iterator[bytes]:
    """Split *blob* into consecutive frames, dropping a trailing partial frame."""
    usable = len(blob) - len(blob) % frame_size
    if usable != len(blob):
        logger.warning(
            "Ignoring %d trailing bytes (capture is not a multiple of %d)",
            len(blob) - usable,
            frame_size,
        )
    for start in range(0, usable, frame_size):
        yield blob[start : start + frame_size]


def load_capture(path: str | Path) -> List[bytes]:
    """Load a binary capture of back-to-back 32-byte frames from *path*."""
    path = Path(path)
    if not path.exists():  # pragma: no cover - defensive
        raise FileNotFoundError(path)
    return list(iter_frames(path.read_bytes()))


def samples_to_dataframe(samples: Iterable[SampleRecord]) -> pd.DataFrame:
    rows = [sample.as_row() for sample in samples]
    df = pd.DataFrame(rows, columns=COLUMNS)
    return df.astype({name: float for name in CHANNELS})


def decode_capture(
    path: str | Path,
    *,
    expected_variant: Optional[PacketVariant] = None,
) -> tuple[pd.DataFrame, dict[str, int]]:
    """Decode every frame in a capture file.

    Returns
    -------
    tuple
        Sample table (one row per decoded frame, missing channels as NaN) and
        the pipeline's outcome counters.
    """

    pipeline = SamplePipeline(expected_variant=expected_variant)
    try:
        samples = pipeline.process(load_capture(path))
    finally:
        pipeline.close()
    return samples_to_dataframe(samples), pipeline.stats()
