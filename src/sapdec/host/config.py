from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from ..catalog import PacketVariant, ambiguous_headers, variant_from_name

logger = logging.getLogger(__name__)


@dataclass
class HostRuntime:
    queue_maxsize: int = 512
    reconnect_initial_sec: float = 0.5
    reconnect_max_sec: float = 5.0
    stats_log_interval: float = 60.0


@dataclass
class DecoderConfig:
    expected_variant: Optional[str] = None
    output_csv: Path | None = None
    host: HostRuntime = field(default_factory=HostRuntime)

    @property
    def variant(self) -> Optional[PacketVariant]:
        if not self.expected_variant:
            return None
        return variant_from_name(self.expected_variant)

    def warn_if_ambiguous(self) -> None:
        if self.variant is not None:
            return
        for header, variants in ambiguous_headers().items():
            logger.warning(
                "Header 0x%04X is shared by %s; set expected_variant to decode anything but %s",
                header,
                "/".join(v.name for v in variants),
                variants[0].name,
            )

def load_config(path: Path | str | None, overrides: Sequence[str] | None = None) -> DecoderConfig:
    """
    Load a decoder host configuration from JSON and apply CLI-style overrides.

    Overrides are expressed as dotted `key=value` pairs, e.g.:
        ["expected_variant=SAP_ALL", "host.queue_maxsize=64"]
    A missing *path* starts from the defaults.
    """
    data: Dict[str, Any] = {}
    if path is not None:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    host_data: Dict[str, Any] = dict(data.get("host") or {})
    data["host"] = host_data
    for override in overrides or []:
        _apply_override(data, override)
    expected = data.get("expected_variant")
    cfg = DecoderConfig(
        expected_variant=str(expected) if expected else None,
        output_csv=Path(data["output_csv"]) if data.get("output_csv") else None,
        host=HostRuntime(
            queue_maxsize=int(host_data.get("queue_maxsize", 512)),
            reconnect_initial_sec=float(host_data.get("reconnect_initial_sec", 0.5)),
            reconnect_max_sec=float(host_data.get("reconnect_max_sec", 5.0)),
            stats_log_interval=float(host_data.get("stats_log_interval", 60.0)),
        ),
    )
    if cfg.expected_variant:
        variant_from_name(cfg.expected_variant)
    return cfg


def _apply_override(data: Dict[str, Any], item: str) -> None:
    key, sep, raw_value = item.partition("=")
    key = key.strip()
    if not sep:
        raise ValueError(f"Override '{item}' must use key=value syntax")
    if not key:
        raise ValueError("Override key may not be empty")
    section, _, leaf = key.rpartition(".")
    if section == "host":
        data["host"][leaf] = _scalar(raw_value.strip())
    elif not section:
        data[leaf] = _scalar(raw_value.strip())
    else:
        raise ValueError(f"Unknown config section '{section}'")


def _scalar(raw: str) -> Any:
    if raw.lower() in {"null", "none", ""}:
        return None
    for cast in (int, float):
        try:
            return cast(raw)
        except ValueError:
            continue
    return raw
