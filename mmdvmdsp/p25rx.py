"""P25 receiver: frame sync detection, level tracking and dibit slicing."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from enum import Enum

from mmdvmdsp.p25defines import (
    P25_DUID_HDU,
    P25_DUID_PDU,
    P25_DUID_TDU,
    P25_DUID_TDULC,
    P25_DUID_TSDU,
    P25_HDR_FRAME_LENGTH_BYTES,
    P25_HDR_FRAME_LENGTH_SAMPLES,
    P25_HDR_FRAME_LENGTH_SYMBOLS,
    P25_LDU_FRAME_LENGTH_BYTES,
    P25_LDU_FRAME_LENGTH_SAMPLES,
    P25_LDU_FRAME_LENGTH_SYMBOLS,
    P25_PDU_HDR_FRAME_LENGTH_BYTES,
    P25_PDU_HDR_FRAME_LENGTH_SYMBOLS,
    P25_RADIO_SYMBOL_LENGTH,
    P25_SYNC_BYTES,
    P25_SYNC_LENGTH_SAMPLES,
    P25_SYNC_LENGTH_SYMBOLS,
    P25_SYNC_SYMBOLS,
    P25_SYNC_SYMBOLS_MASK,
    P25_SYNC_SYMBOLS_VALUES,
    P25_TERM_FRAME_LENGTH_BYTES,
    P25_TERM_FRAME_LENGTH_SYMBOLS,
    P25_TERMLC_FRAME_LENGTH_BYTES,
    P25_TERMLC_FRAME_LENGTH_SYMBOLS,
    P25_TSDU_FRAME_LENGTH_BYTES,
    P25_TSDU_FRAME_LENGTH_SYMBOLS,
)

__all__ = ["P25RXState", "P25RX"]

_log = logging.getLogger(__name__)

SCALING_FACTOR = 18750  # Q15(0.57)

CORRELATION_COUNTDOWN = 10

MAX_SYNC_BIT_START_ERRS = 2
MAX_SYNC_BIT_RUN_ERRS = 4

MAX_SYNC_SYMBOLS_ERRS = 2

NOAVEPTR = 99
NOENDPTR = 9999

MAX_SYNC_FRAMES = 4 + 1

_AVERAGE_LENGTH = 16
_FRAME = P25_LDU_FRAME_LENGTH_SAMPLES
_SYM = P25_RADIO_SYMBOL_LENGTH

# DUID -> (start from the sync position rather than the frame start, symbols, bytes)
_HEADER_FRAMES = {
    P25_DUID_HDU: (False, P25_HDR_FRAME_LENGTH_SYMBOLS, P25_HDR_FRAME_LENGTH_BYTES),
    P25_DUID_PDU: (True, P25_PDU_HDR_FRAME_LENGTH_SYMBOLS, P25_PDU_HDR_FRAME_LENGTH_BYTES),
    P25_DUID_TSDU: (False, P25_TSDU_FRAME_LENGTH_SYMBOLS, P25_TSDU_FRAME_LENGTH_BYTES),
    P25_DUID_TDU: (False, P25_TERM_FRAME_LENGTH_SYMBOLS, P25_TERM_FRAME_LENGTH_BYTES),
    P25_DUID_TDULC: (False, P25_TERMLC_FRAME_LENGTH_SYMBOLS, P25_TERMLC_FRAME_LENGTH_BYTES),
}


class P25RXState(Enum):
    """State of the P25 receiver."""

    NONE = 0
    HDR = 1
    LDU = 2


def _wrap16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _advance(ptr: int, step: int) -> int:
    ptr += step
    return ptr - _FRAME if ptr >= _FRAME else ptr


def _write_bit(buffer: bytearray, offset: int, bit: bool) -> None:
    mask = 0x80 >> (offset & 7)
    if bit:
        buffer[offset >> 3] |= mask
    else:
        buffer[offset >> 3] &= ~mask & 0xFF


def _noop(*_args: object) -> None:
    return None


class P25RX:
    """Finds P25 frames in filtered baseband samples and slices them into bytes.

    Header-type frames go to ``on_header``, voice frames to ``on_ldu``; each frame
    is prefixed with a flag byte. ``on_lost`` is called when sync is lost and
    ``on_decode`` reports carrier detection turning on and off.
    """

    def __init__(
        self,
        on_header: Callable[[bytes], None] | None = None,
        on_ldu: Callable[[bytes], None] | None = None,
        on_lost: Callable[[], None] | None = None,
        on_decode: Callable[[bool], None] | None = None,
        send_rssi: bool = False,
    ) -> None:
        self._on_header = on_header or _noop
        self._on_ldu = on_ldu or _noop
        self._on_lost = on_lost or _noop
        self._on_decode = on_decode or _noop
        self.send_rssi = send_rssi

        self._bit_buffer = [0] * _SYM
        self._buffer = [0] * _FRAME
        self._centre = [0] * _AVERAGE_LENGTH
        self._threshold = [0] * _AVERAGE_LENGTH
        self.reset()

    @property
    def state(self) -> P25RXState:
        """Current receiver state."""
        return self._state

    def reset(self) -> None:
        """Return to searching for sync."""
        self._state = P25RXState.NONE
        self._data_ptr = 0
        self._bit_ptr = 0
        self._max_corr = 0
        self._average_ptr = NOAVEPTR
        self._hdr_start_ptr = NOENDPTR
        self._ldu_start_ptr = NOENDPTR
        self._ldu_end_ptr = NOENDPTR
        self._hdr_sync_ptr = NOENDPTR
        self._ldu_sync_ptr = NOENDPTR
        self._min_sync_ptr = NOENDPTR
        self._max_sync_ptr = NOENDPTR
        self._centre_val = 0
        self._threshold_val = 0
        self._lost_count = 0
        self._countdown = 0
        self._rssi_accum = 0
        self._rssi_count = 0
        self._duid = 0

    def samples(self, samples: Sequence[int], rssi: Sequence[int] | None = None) -> None:
        """Feed a block of samples with their RSSI readings."""
        if rssi is None:
            rssi = [0] * len(samples)
        elif len(rssi) != len(samples):
            raise ValueError("rssi readings must match the samples one to one")

        for sample, level in zip(samples, rssi):
            self._rssi_accum = (self._rssi_accum + level) & 0xFFFFFFFF
            self._rssi_count = (self._rssi_count + 1) & 0xFFFF

            bits = (self._bit_buffer[self._bit_ptr] << 1) & 0xFFFFFFFF
            if sample < 0:
                bits |= 0x01
            self._bit_buffer[self._bit_ptr] = bits

            self._buffer[self._data_ptr] = sample

            if self._state is P25RXState.HDR:
                self._process_hdr()
            elif self._state is P25RXState.LDU:
                self._process_ldu()
            else:
                self._process_none()

            self._data_ptr += 1
            if self._data_ptr >= _FRAME:
                self._data_ptr = 0
                self._duid = 0

            self._bit_ptr += 1
            if self._bit_ptr >= _SYM:
                self._bit_ptr = 0

    def _process_none(self) -> None:
        if self._correlate_sync() and self._countdown == 0:
            # First sync: start the countdown to the state change.
            self._rssi_accum = 0
            self._rssi_count = 0
            self._on_decode(True)
            self._average_ptr = NOAVEPTR
            self._countdown = CORRELATION_COUNTDOWN

        if self._countdown > 0:
            self._countdown -= 1

        if self._countdown == 1:
            # Sync positions of an LDU following a header.
            self._min_sync_ptr = _advance(self._hdr_sync_ptr, P25_HDR_FRAME_LENGTH_SAMPLES - 1)
            self._max_sync_ptr = _advance(self._hdr_sync_ptr, P25_HDR_FRAME_LENGTH_SAMPLES + 1)
            self._state = P25RXState.HDR
            self._countdown = 0

    def _in_sync_window(self) -> bool:
        ptr = self._data_ptr
        if self._min_sync_ptr < self._max_sync_ptr:
            return self._min_sync_ptr <= ptr <= self._max_sync_ptr
        return ptr >= self._min_sync_ptr or ptr <= self._max_sync_ptr

    def _process_hdr(self) -> None:
        if self._in_sync_window():
            self._correlate_sync()

        if self._data_ptr != self._max_sync_ptr:
            return

        nid_start = _advance(self._hdr_start_ptr, P25_SYNC_LENGTH_SAMPLES)
        nid = bytearray(2)
        self._samples_to_bits(nid_start, 2 * 4, nid, 0, self._centre_val, self._threshold_val)
        self._duid = nid[1] & 0x0F

        layout = _HEADER_FRAMES.get(self._duid)
        if layout is not None:
            from_sync, symbols, length = layout
            start = self._hdr_sync_ptr if from_sync else self._hdr_start_ptr
            self._calculate_levels(start, symbols)
            _log.debug(
                "P25RX: sync found in header duid=%d pos=%d centre=%d threshold=%d",
                self._duid, self._hdr_sync_ptr, self._centre_val, self._threshold_val,
            )
            frame = bytearray(length + 1)
            self._samples_to_bits(start, symbols, frame, 8, self._centre_val, self._threshold_val)
            frame[0] = 0x01
            self._on_header(bytes(frame))

        self._min_sync_ptr = _advance(self._ldu_sync_ptr, _FRAME - 1)
        self._max_sync_ptr = _advance(self._ldu_sync_ptr, 1)
        self._state = P25RXState.LDU
        self._max_corr = 0

    def _process_ldu(self) -> None:
        if self._in_sync_window():
            self._correlate_sync()

        if self._data_ptr != self._ldu_end_ptr:
            return

        # Only move the sync window when it comes from a good sync.
        if self._lost_count == MAX_SYNC_FRAMES:
            self._min_sync_ptr = _advance(self._ldu_sync_ptr, _FRAME - 1)
            self._max_sync_ptr = _advance(self._ldu_sync_ptr, 1)

        self._calculate_levels(self._ldu_start_ptr, P25_LDU_FRAME_LENGTH_SYMBOLS)
        _log.debug(
            "P25RX: sync found in LDU pos=%d centre=%d threshold=%d",
            self._ldu_sync_ptr, self._centre_val, self._threshold_val,
        )

        frame = bytearray(P25_LDU_FRAME_LENGTH_BYTES + 3)
        self._samples_to_bits(
            self._ldu_start_ptr, P25_LDU_FRAME_LENGTH_SYMBOLS, frame, 8,
            self._centre_val, self._threshold_val,
        )

        self._lost_count = (self._lost_count - 1) & 0xFFFF
        if self._lost_count == 0:
            _log.debug("P25RX: sync timed out, lost lock")
            self._on_decode(False)
            self._on_lost()
            self._state = P25RXState.NONE
            self._ldu_end_ptr = NOENDPTR
            self._average_ptr = NOAVEPTR
            self._countdown = 0
            self._max_corr = 0
            self._duid = 0
        else:
            frame[0] = 0x01 if self._lost_count == MAX_SYNC_FRAMES - 1 else 0x00
            self._write_rssi_ldu(frame)
            self._max_corr = 0

    def _correlate_sync(self) -> bool:
        symbol_errs = (
            (self._bit_buffer[self._bit_ptr] & P25_SYNC_SYMBOLS_MASK) ^ P25_SYNC_SYMBOLS
        ).bit_count()
        if symbol_errs > MAX_SYNC_SYMBOLS_ERRS:
            return False

        start_ptr = _advance(self._data_ptr, _FRAME - P25_SYNC_LENGTH_SAMPLES + _SYM)

        corr = 0
        low = 16000
        high = -16000
        ptr = start_ptr
        for symbol in P25_SYNC_SYMBOLS_VALUES:
            val = self._buffer[ptr]
            high = max(high, val)
            low = min(low, val)
            if symbol == 3:
                corr -= 3 * val
            elif symbol == 1:
                corr -= val
            elif symbol == -1:
                corr += val
            else:
                corr += 3 * val
            ptr = _advance(ptr, _SYM)

        if corr <= self._max_corr:
            return False

        if self._average_ptr == NOAVEPTR:
            self._centre_val = _wrap16((high + low) >> 1)
            self._threshold_val = _wrap16(((high - self._centre_val) * SCALING_FACTOR) >> 15)

        sync = bytearray(len(P25_SYNC_BYTES))
        self._samples_to_bits(
            start_ptr, P25_SYNC_LENGTH_SYMBOLS, sync, 0, self._centre_val, self._threshold_val
        )

        max_errs = MAX_SYNC_BIT_START_ERRS if self._state is P25RXState.NONE else MAX_SYNC_BIT_RUN_ERRS
        errs = sum((got ^ want).bit_count() for got, want in zip(sync, P25_SYNC_BYTES))
        if errs > max_errs:
            return False

        self._max_corr = corr
        self._lost_count = MAX_SYNC_FRAMES
        self._ldu_sync_ptr = self._data_ptr
        self._ldu_start_ptr = start_ptr
        self._ldu_end_ptr = _advance(self._data_ptr, _FRAME - P25_SYNC_LENGTH_SAMPLES - 1)

        if self._state is P25RXState.NONE:
            self._hdr_sync_ptr = self._data_ptr
            self._hdr_start_ptr = start_ptr
            self._min_sync_ptr = _advance(self._data_ptr, P25_HDR_FRAME_LENGTH_SAMPLES - 1)
            self._max_sync_ptr = _advance(self._data_ptr, P25_HDR_FRAME_LENGTH_SAMPLES + 1)

        return True

    def _calculate_levels(self, start: int, count: int) -> None:
        max_pos = -16000
        min_pos = 16000
        max_neg = 16000
        min_neg = -16000

        for _ in range(count):
            sample = self._buffer[start]
            if sample > 0:
                max_pos = max(max_pos, sample)
                min_pos = min(min_pos, sample)
            else:
                max_neg = min(max_neg, sample)
                min_neg = max(min_neg, sample)
            start = _advance(start, _SYM)

        pos_thresh = _wrap16((max_pos + min_pos) >> 1)
        neg_thresh = _wrap16((max_neg + min_neg) >> 1)
        centre = _wrap16((pos_thresh + neg_thresh) >> 1)
        threshold = _wrap16(pos_thresh - centre)

        if self._average_ptr == NOAVEPTR:
            self._centre = [centre] * _AVERAGE_LENGTH
            self._threshold = [threshold] * _AVERAGE_LENGTH
            self._average_ptr = 0
        else:
            self._centre[self._average_ptr] = centre
            self._threshold[self._average_ptr] = threshold
            self._average_ptr += 1
            if self._average_ptr >= _AVERAGE_LENGTH:
                self._average_ptr = 0

        centre_sum = 0
        threshold_sum = 0
        for c, t in zip(self._centre, self._threshold):
            centre_sum = _wrap16(centre_sum + c)
            threshold_sum = _wrap16(threshold_sum + t)
        self._centre_val = centre_sum >> 4
        self._threshold_val = threshold_sum >> 4

    def _samples_to_bits(
        self,
        start: int,
        count: int,
        buffer: bytearray,
        offset: int,
        centre: int,
        threshold: int,
    ) -> None:
        for _ in range(count):
            sample = _wrap16(self._buffer[start] - centre)
            if sample < -threshold:
                high, low = False, True
            elif sample < 0:
                high, low = False, False
            elif sample < threshold:
                high, low = True, False
            else:
                high, low = True, True
            _write_bit(buffer, offset, high)
            _write_bit(buffer, offset + 1, low)
            offset += 2
            start = _advance(start, _SYM)

    def _write_rssi_ldu(self, ldu: bytearray) -> None:
        if self.send_rssi and self._rssi_count > 0:
            rssi = (self._rssi_accum // self._rssi_count) & 0xFFFF
            ldu[217] = (rssi >> 8) & 0xFF
            ldu[218] = rssi & 0xFF
            self._on_ldu(bytes(ldu[: P25_LDU_FRAME_LENGTH_BYTES + 3]))
        else:
            self._on_ldu(bytes(ldu[: P25_LDU_FRAME_LENGTH_BYTES + 1]))

        self._rssi_accum = 0
        self._rssi_count = 0