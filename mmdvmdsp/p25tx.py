"""P25 transmitter: C4FM dibit modulation with raised-cosine shaping."""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence

from mmdvmdsp.dsp import FirFilter, FirInterpolator
from mmdvmdsp.modem_io import ModemIO, ModemState
from mmdvmdsp.p25defines import (
    P25_LDU_FRAME_LENGTH_BYTES,
    P25_RADIO_SYMBOL_LENGTH,
    P25_TERM_FRAME_LENGTH_BYTES,
)

__all__ = ["P25TX", "TX_BUFFER_LEN"]

TX_BUFFER_LEN = 2000

# Generated with rcosdesign(0.2, 8, 5, 'normal'); 40 taps, interpolation by 5.
RC_0_2_FILTER = (
    -897, -1636, -1840, -1278, 0, 1613, 2936, 3310, 2315, 0, -3011, -5627, -6580, -4839,
    0, 7482, 16311, 24651, 30607, 32767, 30607, 24651, 16311, 7482, 0, -4839, -6580, -5627,
    -3011, 0, 2315, 3310, 2936, 1613, 0, -1278, -1840, -1636, -897, 0,
)

LOWPASS_FILTER = (
    124, -188, -682, 1262, 556, -621, -1912, -911, 2058, 3855, 1234, -4592, -7692, -2799,
    8556, 18133, 18133, 8556, -2799, -7692, -4592, 1234, 3855, 2058, -911, -1912, -621,
    556, 1262, -682, -188, 124,
)

P25_LEVELA = 1260
P25_LEVELB = 420
P25_LEVELC = -420
P25_LEVELD = -1260

# Dibit value (high bit first) -> symbol level.
_DIBIT_LEVELS = {0b11: P25_LEVELA, 0b10: P25_LEVELB, 0b00: P25_LEVELC, 0b01: P25_LEVELD}

P25_START_SYNC = 0x77

_BLOCK = 4 * P25_RADIO_SYMBOL_LENGTH  # samples produced per byte


class P25TX:
    """Queues P25 frames and modulates them into samples for the modem."""

    def __init__(self, modem: ModemIO) -> None:
        self.modem = modem
        self.duplex = True
        self._capacity = TX_BUFFER_LEN
        self._buffer: deque[int] = deque()
        self._mod_filter = FirInterpolator(RC_0_2_FILTER, P25_RADIO_SYMBOL_LENGTH)
        self._lp_filter = FirFilter(LOWPASS_FILTER)
        self._po_buffer: list[int] = []
        self._po_ptr = 0
        self.tx_delay = 240  # 200 ms
        self.tx_hang = 6000  # 5 s
        self.tx_count = 0

    def process(self) -> None:
        """Write as much pending output to the modem as it has room for."""
        if not self._po_buffer and self._buffer:
            if not self.modem.tx:
                self._po_buffer = [P25_START_SYNC] * self.tx_delay
            else:
                length = self._buffer.popleft()
                self._po_buffer = [self._buffer.popleft() for _ in range(length)]
            self._po_ptr = 0

        if self._po_buffer:
            space = self.modem.get_space()
            while space > _BLOCK:
                self._write_byte(self._po_buffer[self._po_ptr])
                self._po_ptr += 1
                space -= _BLOCK
                if self.duplex:
                    self.tx_count = self.tx_hang
                if self._po_ptr >= len(self._po_buffer):
                    self._po_buffer = []
                    self._po_ptr = 0
                    return
        elif self.tx_count > 0:
            # Transmit silence until the hang timer has expired.
            space = self.modem.get_space()
            while space > _BLOCK:
                self._emit([0, 0, 0, 0])
                space -= _BLOCK
                self.tx_count -= 1
                if self.tx_count == 0:
                    return

    def write_data(self, data: Sequence[int]) -> None:
        """Queue a frame; the first byte is a tag and is not transmitted."""
        length = len(data)
        if length < P25_TERM_FRAME_LENGTH_BYTES + 1 or length > 255:
            raise ValueError(f"invalid P25 frame length {length}")
        if self._capacity - len(self._buffer) < length:
            raise OverflowError("P25 transmit buffer is full")
        self._buffer.append(length - 1)
        self._buffer.extend(b & 0xFF for b in data[1:])

    def _write_byte(self, c: int) -> None:
        levels = [_DIBIT_LEVELS[(c >> shift) & 0x03] for shift in (6, 4, 2, 0)]
        self._emit(levels)

    def _emit(self, levels: list[int]) -> None:
        interpolated = self._mod_filter.filter(levels)
        out = self._lp_filter.filter(interpolated)
        self.modem.write(ModemState.P25, out)

    def set_tx_delay(self, delay: int) -> None:
        """Set the preamble length from a delay setting of 0 to 255."""
        if not 0 <= delay <= 255:
            raise ValueError(f"delay must be between 0 and 255, got {delay}")
        self.tx_delay = min(600 + delay * 12, 1200)

    def get_space(self) -> int:
        """Number of whole LDU frames the queue can still take."""
        return (self._capacity - len(self._buffer)) // P25_LDU_FRAME_LENGTH_BYTES

    def set_params(self, tx_hang: int) -> None:
        """Set the hang time in seconds."""
        if not 0 <= tx_hang <= 255:
            raise ValueError(f"hang time must be between 0 and 255, got {tx_hang}")
        self.tx_hang = tx_hang * 1200