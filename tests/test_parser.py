from __future__ import annotations

import numpy as np
import pytest

from sapdec.catalog import PacketVariant
from sapdec.packet import Packet
from sapdec.parser import (
    UnknownVariantError,
    accel,
    channel_names,
    correct_double,
    ecg,
    parse,
    voltage,
)

ALL_PAYLOAD = [0x00, 0x10, 0x00, 0x20, 0x00, 0x30, 0x00, 0x80, 0x01, 0xFF]


@pytest.mark.parametrize(
    "raw, expected",
    [(0, 0.0), (1, 0.016), (127, 2.032), (128, 2.048), (129, -2.032), (255, -0.016)],
)
def test_accel_conversion(raw: int, expected: float) -> None:
    assert accel(raw) == pytest.approx(expected)


def test_adc_channels_stay_in_range() -> None:
    for raw in range(256):
        assert 0.0 <= voltage(raw) <= 1.8
        assert ecg(raw) == voltage(raw)
    assert voltage(255) == pytest.approx(1.8)


def test_acc_ecg_end_to_end() -> None:
    data = 0x68
    payload = [1, 0x89, 1, 0x23, 1, 0x34, 1, data >> 2, 1, (data << 6) & 0xFF, 0xFF, 0xFF]
    result = parse(Packet(PacketVariant.SAP_ACC_ECG, payload))
    vol = ((data >> 2) << 2) | (((data << 6) & 0xFF) >> 6)
    assert vol == 0x68
    assert np.allclose(result, [-1.904, 0.56, 0.832, vol / 255.0 * 1.8])
    assert result == [accel(0x89), accel(0x23), accel(0x34), voltage(vol)]


def test_acc_vol_masks_upper_bits_but_acc_ecg_does_not() -> None:
    payload = [0, 0, 0, 0, 0, 0, 0, 0xFF, 0, 0xC0]
    masked = parse(Packet(PacketVariant.SAP_ACC_VOL, payload))
    unmasked = parse(Packet(PacketVariant.SAP_ACC_ECG, payload))
    assert masked[3] == pytest.approx(1.8)
    assert unmasked[3] == pytest.approx(1023 / 255.0 * 1.8)


def test_acc_and_all_layouts() -> None:
    acc = parse(Packet(PacketVariant.SAP_ACC, [0, 0x10, 0, 0xF0, 0, 0x80] + [0] * 6))
    assert acc == pytest.approx([0.256, -0.256, 2.048])

    values = parse(Packet(PacketVariant.SAP_ALL, ALL_PAYLOAD))
    assert values == pytest.approx([0.256, 0.512, 0.768, 0x80 / 255.0 * 1.8, 1.8])


def test_double_packet_recovers_dropped_bits() -> None:
    first = [0x00, 0x10, 0x00, 0x20, 0x00, 0x30, 0x00, 0x80, 0x01, 0xFE]
    second = [0x00, 0x10, 0x00, 0x00, 0x00, 0x30, 0x00, 0x80, 0x01, 0xFF]
    assert correct_double(first + second) == ALL_PAYLOAD

    values = parse(Packet(PacketVariant.SAP_DOUBLE, first + second))
    assert values == parse(Packet(PacketVariant.SAP_ALL, ALL_PAYLOAD))
    assert values[1] == pytest.approx(accel(0x20))
    assert values[4] == pytest.approx(ecg(0xFF))


def test_output_matches_channel_names() -> None:
    for variant in PacketVariant:
        packet = Packet(variant, [0x01] * variant.payload_length)
        assert len(parse(packet)) == len(channel_names(variant))


def test_unknown_variant_is_rejected() -> None:
    packet = Packet("SAP_GYRO", [0] * 10)
    with pytest.raises(UnknownVariantError):
        parse(packet)
    with pytest.raises(ValueError):
        channel_names("SAP_GYRO")


def test_packet_validates_payload_bytes() -> None:
    with pytest.raises(ValueError, match="outside 0..255"):
        Packet(PacketVariant.SAP_ACC, [0, 256] + [0] * 10)
    packet = Packet(PacketVariant.SAP_ACC_VOL, bytearray(range(1, 11)))
    assert packet.payload == tuple(range(1, 11))
    assert packet.payload_bytes() == bytes(range(1, 11))


def test_short_payload_is_rejected_before_parsing() -> None:
    with pytest.raises(ValueError, match="SAP_ACC payload needs 12 bytes, got 2"):
        Packet(PacketVariant.SAP_ACC, [1, 2])


def test_double_packet_needs_two_ten_byte_copies() -> None:
    five = [0x00, 0x10, 0x00, 0x20, 0x00]
    with pytest.raises(ValueError, match="SAP_DOUBLE payload needs 20 bytes, got 10"):
        Packet(PacketVariant.SAP_DOUBLE, five + five)


def test_longer_payload_is_accepted() -> None:
    packet = Packet(PacketVariant.SAP_ACC_ECG, [1] * 12)
    assert len(parse(packet)) == 4
