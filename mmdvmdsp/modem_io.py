"""Sample input/output of the modem: level scaling, filtering and mode dispatch."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import IntEnum
from typing import Generic, TypeVar

from mmdvmdsp.dsp import FirFilter, ssat

__all__ = ["ModemState", "Mark", "RxBlock", "ModemIO", "DC_OFFSET"]

DC_OFFSET = 2048
ADC_MAX = 4095

WATCHDOG_TIMEOUT = 48000  # two seconds of sample ticks
LED_PERIOD_RUNNING = 24000
LED_PERIOD_STOPPED = 240000

# Generated with rcosdesign(0.2, 8, 5, 'sqrt').
RRC_0_2_FILTER = (
    401, 104, -340, -731, -847, -553, 112, 909, 1472, 1450, 683, -675, -2144, -3040,
    -2706, -770, 2667, 6995, 11237, 14331, 15464, 14331, 11237, 6995, 2667, -770,
    -2706, -3040, -2144, -675, 683, 1450, 1472, 909, 112, -553, -847, -731, -340,
    104, 401, 0,
)

# Generated with rcosdesign(0.2, 8, 10, 'sqrt').
NXDN_0_2_FILTER = (
    284, 198, 73, -78, -240, -393, -517, -590, -599, -533, -391, -181, 79, 364, 643,
    880, 1041, 1097, 1026, 819, 483, 39, -477, -1016, -1516, -1915, -2150, -2164,
    -1914, -1375, -545, 557, 1886, 3376, 4946, 6502, 7946, 9184, 10134, 10731, 10935,
    10731, 10134, 9184, 7946, 6502, 4946, 3376, 1886, 557, -545, -1375, -1914, -2164,
    -2150, -1915, -1516, -1016, -477, 39, 483, 819, 1026, 1097, 1041, 880, 643, 364,
    79, -181, -391, -533, -599, -590, -517, -393, -240, -78, 73, 198, 284, 0,
)

NXDN_ISINC_FILTER = (
    790, -1085, -1073, -553, 747, 2341, 3156, 2152, -893, -4915, -7834, -7536, -3102,
    4441, 12354, 17394, 17394, 12354, 4441, -3102, -7536, -7834, -4915, -893, 2152,
    3156, 2341, 747, -553, -1073, -1085, 790,
)

# Generated with gaussfir(0.5, 4, 5).
GAUSSIAN_0_5_FILTER = (8, 104, 760, 3158, 7421, 9866, 7421, 3158, 760, 104, 8, 0)

# One symbol boxcar filter.
BOXCAR_FILTER = (12000, 12000, 12000, 12000, 12000, 0)


class ModemState(IntEnum):
    """Operating state of the modem."""

    IDLE = 0
    DSTAR = 1
    DMR = 2
    YSF = 3
    P25 = 4
    NXDN = 5
    POCSAG = 6
    FM = 10
    NXDNCAL1K = 91
    DMRDMO1K = 92
    P25CAL1K = 93
    DMRCAL1K = 94
    LFCAL = 95
    RSSICAL = 96
    CWID = 97
    DMRCAL = 98
    DSTARCAL = 99
    INTCAL = 100
    POCSAGCAL = 101


class Mark(IntEnum):
    """Control marks carried alongside samples."""

    NONE = 0x00
    SLOT2 = 0x04
    SLOT1 = 0x08


@dataclass(frozen=True)
class RxBlock:
    """One block of received samples handed to a receiver."""

    samples: tuple[int, ...]
    rssi: tuple[int, ...]
    control: tuple[int, ...]
    cos: bool


Receiver = Callable[[RxBlock], None]

_T = TypeVar("_T")


class _RingBuffer(Generic[_T]):
    """Bounded FIFO that remembers whether a put was refused."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"buffer capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._items: deque[_T] = deque()
        self._overflow = False

    @property
    def data(self) -> int:
        return len(self._items)

    @property
    def space(self) -> int:
        return self.capacity - len(self._items)

    def put(self, item: _T) -> bool:
        if len(self._items) >= self.capacity:
            self._overflow = True
            return False
        self._items.append(item)
        return True

    def get(self) -> _T | None:
        return self._items.popleft() if self._items else None

    def has_overflowed(self) -> bool:
        overflow, self._overflow = self._overflow, False
        return overflow


def _wrap16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _wrap32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _level(value: int, name: str) -> int:
    if not 0 <= value <= 255:
        raise ValueError(f"{name} must be between 0 and 255, got {value}")
    return _wrap16(value * 128)


def _offset(value: int, name: str) -> int:
    if not -32768 <= value <= 32767:
        raise ValueError(f"{name} must fit in 16 signed bits, got {value}")
    return (DC_OFFSET + value) & 0xFFFF


# Filter chain applied to the samples handed to each mode's receivers.
_CHAINS = {
    ModemState.DSTAR: "gaussian",
    ModemState.DSTARCAL: "gaussian",
    ModemState.P25: "boxcar",
    ModemState.NXDN: "nxdn",
    ModemState.DMR: "rrc",
    ModemState.YSF: "rrc",
}

# Receivers fed while idle, in the order they are served.
_IDLE_RECEIVERS = (
    ModemState.DSTAR,
    ModemState.P25,
    ModemState.NXDN,
    ModemState.YSF,
    ModemState.DMR,
    ModemState.FM,
)

_TIMEOUT_STATES = frozenset(
    {
        ModemState.DSTAR,
        ModemState.DMR,
        ModemState.YSF,
        ModemState.P25,
        ModemState.NXDN,
        ModemState.POCSAG,
    }
)

_MODE_LED_STATES = (
    ModemState.DSTAR,
    ModemState.DMR,
    ModemState.YSF,
    ModemState.P25,
    ModemState.NXDN,
    ModemState.POCSAG,
    ModemState.FM,
)


class ModemIO:
    """Moves samples between the converters and the mode receivers and transmitters.

    ``interrupt`` stands for one converter tick: it takes an ADC sample and an
    RSSI reading and returns the value for the DAC. ``process`` drains received
    blocks, scales and filters them and hands them to registered receivers.
    """

    def __init__(self, rx_buffer_size: int, tx_buffer_size: int, block_size: int) -> None:
        if block_size < 1:
            raise ValueError(f"block size must be positive, got {block_size}")
        self.block_size = block_size

        self._rx_buffer: _RingBuffer[tuple[int, int]] = _RingBuffer(rx_buffer_size)
        self._tx_buffer: _RingBuffer[tuple[int, int]] = _RingBuffer(tx_buffer_size)
        self._rssi_buffer: _RingBuffer[int] = _RingBuffer(rx_buffer_size)

        self._filters = {
            "rrc": FirFilter(RRC_0_2_FILTER),
            "gaussian": FirFilter(GAUSSIAN_0_5_FILTER),
            "boxcar": FirFilter(BOXCAR_FILTER),
            "nxdn": FirFilter(NXDN_0_2_FILTER),
            "nxdn_isinc": FirFilter(NXDN_ISINC_FILTER),
        }
        self._receivers: dict[ModemState, list[Receiver]] = {}

        self._started = False
        self.modem_state = ModemState.IDLE
        self.tx = False
        self.dcd = False

        self._ptt_invert = False
        self._rx_level = 128 * 128
        self._tx_levels = {
            state: 128 * 128
            for state in (
                ModemState.CWID,
                ModemState.DSTAR,
                ModemState.DMR,
                ModemState.YSF,
                ModemState.P25,
                ModemState.NXDN,
                ModemState.POCSAG,
                ModemState.FM,
            )
        }
        self._rx_dc_offset = DC_OFFSET
        self._tx_dc_offset = DC_OFFSET
        self._use_cos_as_lockout = False

        self._led_count = 0
        self._detect = False
        self._adc_overflow = 0
        self._dac_overflow = 0
        self._watchdog = 0
        self._lockout = False

        # Discrete lines of the board.
        self.cos = False
        self.led = False
        self.ptt = False
        self.cos_led = False
        self.mode_leds = {state: False for state in _MODE_LED_STATES}

    def add_receiver(self, state: ModemState, handler: Receiver) -> None:
        """Register a handler for the received blocks of a mode."""
        self._receivers.setdefault(ModemState(state), []).append(handler)

    def start(self) -> None:
        """Start sampling; calling it again has no effect."""
        if self._started:
            return
        self.ptt = self._ptt_invert
        self.cos_led = False
        self.led = True
        self._started = True
        self.set_mode(ModemState.IDLE)

    def interrupt(self, adc_sample: int, rssi: int = 0) -> int:
        """Handle one converter tick and return the sample for the DAC."""
        item = self._tx_buffer.get()
        sample, control = item if item is not None else (DC_OFFSET, int(Mark.NONE))
        self._rx_buffer.put((adc_sample, control))
        self._rssi_buffer.put(rssi)
        self._watchdog += 1
        return sample

    def process(self) -> None:
        """Run one pass of housekeeping and receive processing."""
        self._led_count += 1
        if not self._started:
            if self._led_count >= LED_PERIOD_STOPPED:
                self._led_count = 0
                self.led = not self.led
            return

        if self._watchdog >= WATCHDOG_TIMEOUT:
            if self.modem_state in _TIMEOUT_STATES:
                self.set_mode(ModemState.IDLE)
            self._watchdog = 0

        if self._led_count >= LED_PERIOD_RUNNING:
            self._led_count = 0
            self.led = not self.led

        if self._use_cos_as_lockout:
            self._lockout = self.cos

        if self._tx_buffer.data == 0 and self.tx:
            self.tx = False
            self.ptt = self._ptt_invert

        if self._rx_buffer.data < self.block_size:
            return

        samples, control, rssi = self._read_block()
        if self._lockout:
            return
        self._dispatch(samples, tuple(rssi), tuple(control))

    def _read_block(self) -> tuple[list[int], list[int], list[int]]:
        samples: list[int] = []
        control: list[int] = []
        rssi: list[int] = []
        for _ in range(self.block_size):
            item = self._rx_buffer.get()
            assert item is not None
            raw, mark = item
            level = self._rssi_buffer.get()
            control.append(mark)
            rssi.append(level if level is not None else 0)

            if self._detect and raw in (0, ADC_MAX):
                self._adc_overflow += 1

            centred = _wrap16(raw - self._rx_dc_offset)
            scaled = _wrap32(centred * self._rx_level)
            samples.append(ssat(scaled >> 15, 16))
        return samples, control, rssi

    def _dispatch(self, samples: list[int], rssi: tuple[int, ...], control: tuple[int, ...]) -> None:
        if self.modem_state == ModemState.IDLE:
            targets: Iterable[ModemState] = _IDLE_RECEIVERS
        else:
            targets = (self.modem_state,)

        filtered: dict[str, tuple[int, ...]] = {}
        for state in targets:
            handlers = self._receivers.get(state)
            if not handlers:
                continue
            chain = _CHAINS.get(state)
            if chain is None:
                values = tuple(samples)
            else:
                if chain not in filtered:
                    filtered[chain] = self._run_chain(chain, samples)
                values = filtered[chain]
            block = RxBlock(values, rssi, control, self.cos)
            for handler in handlers:
                handler(block)

    def _run_chain(self, chain: str, samples: list[int]) -> tuple[int, ...]:
        out = self._filters[chain].filter(samples)
        if chain == "nxdn":
            out = self._filters["nxdn_isinc"].filter(out)
        return tuple(out)

    def write(
        self,
        mode: ModemState,
        samples: Sequence[int],
        control: Sequence[int] | None = None,
    ) -> None:
        """Queue samples for transmission in the given mode."""
        if not self._started or self._lockout:
            return
        if control is not None and len(control) != len(samples):
            raise ValueError("control marks must match the samples one to one")

        if not self.tx:
            self.tx = True
            self.ptt = not self._ptt_invert

        tx_level = self._tx_levels.get(ModemState(mode), self._tx_levels[ModemState.CWID])
        marks = control if control is not None else [int(Mark.NONE)] * len(samples)
        for sample, mark in zip(samples, marks):
            scaled = _wrap32(sample * tx_level)
            level = ssat(scaled >> 15, 16)
            value = (level + self._tx_dc_offset) & 0xFFFF
            if value > ADC_MAX:
                self._dac_overflow += 1
            self._tx_buffer.put((value, int(mark)))

    def get_space(self) -> int:
        """Number of samples the transmit buffer can still take."""
        return self._tx_buffer.space

    def set_decode(self, dcd: bool) -> None:
        """Record carrier detection and drive the COS LED."""
        if dcd != self.dcd:
            self.cos_led = bool(dcd)
        self.dcd = bool(dcd)

    def set_adc_detection(self, detect: bool) -> None:
        """Enable or disable counting of ADC overflows."""
        self._detect = bool(detect)

    def set_mode(self, state: ModemState) -> None:
        """Change the modem state and its mode LEDs."""
        state = ModemState(state)
        if state == self.modem_state:
            return
        if self.modem_state in self.mode_leds:
            self.mode_leds[self.modem_state] = False
        if state in self.mode_leds:
            self.mode_leds[state] = True
        self.modem_state = state

    def set_parameters(
        self,
        rx_invert: bool,
        tx_invert: bool,
        ptt_invert: bool,
        rx_level: int,
        cw_id_tx_level: int,
        dstar_tx_level: int,
        dmr_tx_level: int,
        ysf_tx_level: int,
        p25_tx_level: int,
        nxdn_tx_level: int,
        pocsag_tx_level: int,
        fm_tx_level: int,
        tx_dc_offset: int,
        rx_dc_offset: int,
        use_cos_as_lockout: bool,
    ) -> None:
        """Apply the level, inversion and offset settings."""
        levels = {
            ModemState.CWID: _level(cw_id_tx_level, "cw_id_tx_level"),
            ModemState.DSTAR: _level(dstar_tx_level, "dstar_tx_level"),
            ModemState.DMR: _level(dmr_tx_level, "dmr_tx_level"),
            ModemState.YSF: _level(ysf_tx_level, "ysf_tx_level"),
            ModemState.P25: _level(p25_tx_level, "p25_tx_level"),
            ModemState.NXDN: _level(nxdn_tx_level, "nxdn_tx_level"),
            ModemState.POCSAG: _level(pocsag_tx_level, "pocsag_tx_level"),
            ModemState.FM: _level(fm_tx_level, "fm_tx_level"),
        }
        rx = _level(rx_level, "rx_level")
        tx_offset = _offset(tx_dc_offset, "tx_dc_offset")
        rx_offset = _offset(rx_dc_offset, "rx_dc_offset")

        if rx_invert:
            rx = -rx
        if tx_invert:
            for state in (
                ModemState.DSTAR,
                ModemState.DMR,
                ModemState.YSF,
                ModemState.P25,
                ModemState.NXDN,
                ModemState.POCSAG,
            ):
                levels[state] = -levels[state]

        self._ptt_invert = bool(ptt_invert)
        self._rx_level = rx
        self._tx_levels = levels
        self._tx_dc_offset = tx_offset
        self._rx_dc_offset = rx_offset
        self._use_cos_as_lockout = bool(use_cos_as_lockout)

    def get_overflow(self) -> tuple[bool, bool]:
        """Return whether the ADC and DAC overflowed since the last call."""
        result = (self._adc_overflow > 0, self._dac_overflow > 0)
        self._adc_overflow = 0
        self._dac_overflow = 0
        return result

    def has_tx_overflow(self) -> bool:
        """Whether the transmit buffer refused a sample since the last call."""
        return self._tx_buffer.has_overflowed()

    def has_rx_overflow(self) -> bool:
        """Whether the receive buffer refused a sample since the last call."""
        return self._rx_buffer.has_overflowed()

    def has_lockout(self) -> bool:
        """Whether the COS line currently locks the modem out."""
        return self._lockout

    def reset_watchdog(self) -> None:
        """Restart the inactivity watchdog."""
        self._watchdog = 0

    def get_watchdog(self) -> int:
        """Ticks counted since the watchdog was last reset."""
        return self._watchdog