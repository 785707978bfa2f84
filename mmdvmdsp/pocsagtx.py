"""POCSAG transmitter: two-level FSK with a short shaping filter."""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence

from mmdvmdsp.dsp import FirFilter
from mmdvmdsp.modem_io import ModemIO, ModemState

__all__ = [
    "POCSAGTX",
    "POCSAG_FRAME_LENGTH_BYTES",
    "POCSAG_PREAMBLE_LENGTH_BYTES",
    "POCSAG_RADIO_SYMBOL_LENGTH",
]

POCSAG_FRAME_LENGTH_BYTES = 17 * 4
POCSAG_PREAMBLE_LENGTH_BYTES = 18 * 4
POCSAG_RADIO_SYMBOL_LENGTH = 20

POCSAG_LEVEL1 = (1700,) * POCSAG_RADIO_SYMBOL_LENGTH
POCSAG_LEVEL0 = (-1700,) * POCSAG_RADIO_SYMBOL_LENGTH

SHAPING_FILTER = (5461, 5461, 5461, 5461, 5461, 5461)

POCSAG_SYNC = 0xAA

_BUFFER_LEN = 4000
_BLOCK = 8 * POCSAG_RADIO_SYMBOL_LENGTH  # samples produced per byte


class POCSAGTX:
    """Queues POCSAG batches and modulates them into samples for the modem."""

    def __init__(self, modem: ModemIO) -> None:
        self.modem = modem
        self._capacity = _BUFFER_LEN
        self._buffer: deque[int] = deque()
        self._mod_filter = FirFilter(SHAPING_FILTER)
        self._po_buffer: list[int] = []
        self._po_ptr = 0
        self.tx_delay = POCSAG_PREAMBLE_LENGTH_BYTES

    def process(self) -> None:
        """Write as much pending output to the modem as it has room for."""
        if not self._buffer and not self._po_buffer:
            return

        if not self._po_buffer:
            if not self.modem.tx:
                self._po_buffer = [POCSAG_SYNC] * self.tx_delay
            else:
                self._po_buffer = [
                    self._buffer.popleft() for _ in range(POCSAG_FRAME_LENGTH_BYTES)
                ]
            self._po_ptr = 0

        space = self.modem.get_space()
        while space > _BLOCK:
            self.write_byte(self._po_buffer[self._po_ptr])
            self._po_ptr += 1
            space -= _BLOCK
            if self._po_ptr >= len(self._po_buffer):
                self._po_buffer = []
                self._po_ptr = 0
                return

    def busy(self) -> bool:
        """Whether anything is queued or still being sent."""
        return bool(self._po_buffer) or bool(self._buffer)

    def write_data(self, data: Sequence[int]) -> None:
        """Queue one batch of exactly one frame length."""
        if len(data) != POCSAG_FRAME_LENGTH_BYTES:
            raise ValueError(f"invalid POCSAG frame length {len(data)}")
        if self._capacity - len(self._buffer) < POCSAG_FRAME_LENGTH_BYTES:
            raise OverflowError("POCSAG transmit buffer is full")
        self._buffer.extend(b & 0xFF for b in data)

    def write_byte(self, c: int) -> None:
        """Modulate one byte, most significant bit first."""
        samples: list[int] = []
        for shift in range(7, -1, -1):
            samples.extend(POCSAG_LEVEL1 if (c >> shift) & 0x01 else POCSAG_LEVEL0)
        out = self._mod_filter.filter(samples)
        self.modem.write(ModemState.POCSAG, out)

    def set_tx_delay(self, delay: int) -> None:
        """Set the preamble length from a delay setting of 0 to 255."""
        if not 0 <= delay <= 255:
            raise ValueError(f"delay must be between 0 and 255, got {delay}")
        self.tx_delay = min(POCSAG_PREAMBLE_LENGTH_BYTES + (delay * 3) // 2, 150)

    def get_space(self) -> int:
        """Number of whole frames the queue can still take."""
        return (self._capacity - len(self._buffer)) // POCSAG_FRAME_LENGTH_BYTES