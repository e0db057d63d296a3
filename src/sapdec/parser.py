"""Payload interpretation and calibration of SAP samples."""
from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from .catalog import PacketVariant
from .packet import Packet

ADC_RANGE = 1.8
ADC_FULL_SCALE = 255.0
ACCEL_SCALE = 1000.0

_CHANNELS: Dict[PacketVariant, Tuple[str, ...]] = {
    PacketVariant.SAP_ACC: ("ax", "ay", "az"),
    PacketVariant.SAP_ACC_VOL: ("ax", "ay", "az", "vol"),
    PacketVariant.SAP_ACC_ECG: ("ax", "ay", "az", "vol"),
    PacketVariant.SAP_DOUBLE: ("ax", "ay", "az", "vol", "ecg"),
    PacketVariant.SAP_ALL: ("ax", "ay", "az", "vol", "ecg"),
}


class UnknownVariantError(ValueError):
    def __init__(self, variant: object):
        super().__init__(f"Unknown packet variant: {variant!r}")
        self.variant = variant


def accel(data: int) -> float:
    """
    Acceleration in g from the 8 MSBs of a 12-bit +/-2 g sample.

    Values above 128 are negative; 128 itself stays positive.
    """
    if data > 128:
        data -= 256
    return (data << 4) / ACCEL_SCALE


def voltage(data: int) -> float:
    """Super-capacitor voltage; 1.8 V ADC reference."""
    return data / ADC_FULL_SCALE * ADC_RANGE


def ecg(data: int) -> float:
    return data / ADC_FULL_SCALE * ADC_RANGE


def channel_names(variant: PacketVariant) -> Tuple[str, ...]:
    try:
        return _CHANNELS[variant]
    except (KeyError, TypeError) as exc:
        raise UnknownVariantError(variant) from exc


def correct_double(payload: Sequence[int]) -> List[int]:
    """
    Fuse the two redundant copies of a SAP_DOUBLE payload.

    Each half carries one SAP_ALL payload of five 16-bit sample words, i.e.
    10 bytes, so byte ``k`` is fused with byte ``k + 10`` of a 20-byte payload.
    Dropped bits read as zero, so OR-ing the halves recovers bits kept by
    either copy.
    """
    half = len(payload) // 2
    return [payload[k] | payload[k + half] for k in range(half)]


def _accelerations(data: Sequence[int]) -> List[float]:
    return [accel(data[i * 2 + 1]) for i in range(3)]


def _parse_all(data: Sequence[int]) -> List[float]:
    values = _accelerations(data)
    values.append(voltage(data[7]))
    values.append(ecg(data[9]))
    return values


def parse(packet: Packet) -> List[float]:
    """Return the calibrated channels of *packet* in ``channel_names`` order."""
    variant = packet.variant
    payload = packet.payload

    if variant is PacketVariant.SAP_ACC:
        return _accelerations(payload)

    if variant is PacketVariant.SAP_ALL:
        return _parse_all(payload)

    if variant is PacketVariant.SAP_ACC_VOL:
        values = _accelerations(payload)
        vol = ((payload[7] & 0x3F) << 2) | (payload[9] >> 6)
        values.append(voltage(vol))
        return values

    if variant is PacketVariant.SAP_ACC_ECG:
        values = _accelerations(payload)
        # payload[7] is not masked here, unlike SAP_ACC_VOL
        vol = (payload[7] << 2) | (payload[9] >> 6)
        values.append(voltage(vol))
        return values

    if variant is PacketVariant.SAP_DOUBLE:
        return _parse_all(correct_double(payload))

    raise UnknownVariantError(variant)
