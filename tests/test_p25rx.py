import random

import pytest

from mmdvmdsp.p25defines import (
    P25_DUID_HDU,
    P25_DUID_LDU1,
    P25_DUID_PDU,
    P25_DUID_TDU,
    P25_DUID_TDULC,
    P25_DUID_TSDU,
    P25_HDR_FRAME_LENGTH_BYTES,
    P25_LDU_FRAME_LENGTH_BYTES,
    P25_LDU_FRAME_LENGTH_SAMPLES,
    P25_PDU_HDR_FRAME_LENGTH_BYTES,
    P25_RADIO_SYMBOL_LENGTH,
    P25_SYNC_BYTES,
    P25_TERM_FRAME_LENGTH_BYTES,
    P25_TERMLC_FRAME_LENGTH_BYTES,
    P25_TSDU_FRAME_LENGTH_BYTES,
)
from mmdvmdsp.p25rx import P25RX, P25RXState

LEVEL = 1000
# Receiver convention: dibit 01 is the most negative level.
DIBIT_LEVELS = {0b01: -3 * LEVEL, 0b00: -LEVEL, 0b10: LEVEL, 0b11: 3 * LEVEL}


def modulate(data):
    out = []
    for byte in data:
        for shift in (6, 4, 2, 0):
            out.extend([DIBIT_LEVELS[(byte >> shift) & 0x03]] * P25_RADIO_SYMBOL_LENGTH)
    return out


def make_frame(length, duid, seed):
    rng = random.Random(seed)
    nid = bytes([0x29, 0x30 | duid]) + bytes(6)
    body = bytes([0x1B, 0xE4]) + bytes(rng.randrange(256) for _ in range(length - 16))
    return P25_SYNC_BYTES + nid + body


class Recorder:
    def __init__(self):
        self.headers = []
        self.ldus = []
        self.lost = 0
        self.decode = []

    def callbacks(self, send_rssi=False):
        return {
            "on_header": self.headers.append,
            "on_ldu": self.ldus.append,
            "on_lost": self._lost,
            "on_decode": self.decode.append,
            "send_rssi": send_rssi,
        }

    def _lost(self):
        self.lost += 1


def ldu_stream(count):
    frames = [make_frame(P25_LDU_FRAME_LENGTH_BYTES, P25_DUID_LDU1, seed) for seed in range(count)]
    samples = []
    for frame in frames:
        samples.extend(modulate(frame))
    return frames, samples


def test_noise_free_silence_finds_nothing():
    rec = Recorder()
    rx = P25RX(**rec.callbacks())
    rx.samples([0] * 10000)
    assert rec.headers == [] and rec.ldus == []
    assert rec.decode == []
    assert rx.state is P25RXState.NONE


def test_rssi_length_mismatch_raises():
    rx = P25RX()
    with pytest.raises(ValueError):
        rx.samples([0, 0, 0], [0, 0])


def test_ldu_frames_round_trip():
    rec = Recorder()
    rx = P25RX(**rec.callbacks())
    frames, samples = ldu_stream(3)
    rx.samples(samples)
    assert rec.headers == []
    assert len(rec.ldus) == 3
    for emitted, frame in zip(rec.ldus, frames):
        assert len(emitted) == P25_LDU_FRAME_LENGTH_BYTES + 1
        assert emitted[0] == 0x01
        # The final dibit is sliced before its samples arrive, so skip the last byte.
        assert emitted[1:-1] == frame[:-1]
        assert emitted[-1] & 0xF0 == frame[-1] & 0xF0


def test_ldu_with_rssi_appends_average():
    rec = Recorder()
    rx = P25RX(**rec.callbacks(send_rssi=True))
    frames, samples = ldu_stream(2)
    rx.samples(samples, [100] * len(samples))
    assert len(rec.ldus) == 2
    for emitted, frame in zip(rec.ldus, frames):
        assert len(emitted) == P25_LDU_FRAME_LENGTH_BYTES + 3
        assert emitted[-2:] == bytes([0, 100])
        assert emitted[1:P25_LDU_FRAME_LENGTH_BYTES] == frame[:-1]


def test_sync_loss_reports_lost_once():
    rec = Recorder()
    rx = P25RX(**rec.callbacks())
    frames, samples = ldu_stream(3)
    rx.samples(samples + [0] * (5 * P25_LDU_FRAME_LENGTH_SAMPLES))
    flags = [frame[0] for frame in rec.ldus]
    assert flags[:3] == [1, 1, 1]
    assert len(flags) > 3
    assert all(flag == 0 for flag in flags[3:])
    assert rec.lost == 1
    assert rec.decode == [True, False]
    assert rx.state is P25RXState.NONE


def test_reset_returns_to_search_and_decodes_again():
    frames, samples = ldu_stream(2)

    fresh = Recorder()
    fresh_rx = P25RX(**fresh.callbacks())
    fresh_rx.samples(samples)

    rec = Recorder()
    rx = P25RX(**rec.callbacks())
    rx.samples(samples[:2000])
    assert rx.state is P25RXState.HDR
    rx.reset()
    assert rx.state is P25RXState.NONE
    rx.samples(samples)
    assert rec.ldus == fresh.ldus
    assert len(rec.ldus) == 2