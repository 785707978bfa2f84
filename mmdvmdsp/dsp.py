"""Fixed-point DSP primitives: saturation, biquad and FIR filters."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Sequence

__all__ = ["ssat", "DirectFormI", "FirFilter", "FirInterpolator"]


def ssat(value: int, bits: int) -> int:
    """Saturate a signed integer to the range of a ``bits``-wide two's complement value."""
    if not 1 <= bits <= 64:
        raise ValueError(f"bit width must be between 1 and 64, got {bits}")
    high = (1 << (bits - 1)) - 1
    low = -(1 << (bits - 1))
    return max(low, min(high, value))


def _wrap32(value: int) -> int:
    """Wrap an integer to signed 32-bit arithmetic."""
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


class DirectFormI:
    """Second-order IIR section in direct form I with Q15 samples.

    The ``a0`` coefficient is accepted for convenience and ignored.
    """

    def __init__(self, b0: int, b1: int, b2: int, a0: int, a1: int, a2: int) -> None:
        self.b0 = b0
        self.b1 = b1
        self.b2 = b2
        self.a1 = a1
        self.a2 = a2
        self.reset()

    def reset(self) -> None:
        """Clear the delay lines."""
        self._x1 = 0
        self._x2 = 0
        self._y1 = 0
        self._y2 = 0

    def filter(self, sample: int) -> int:
        """Filter one sample and return one output sample."""
        upscaled = _wrap32(
            self.b0 * sample
            + self.b1 * self._x1
            + self.b2 * self._x2
            - self.a1 * self._y1
            - self.a2 * self._y2
        )
        out = ssat(upscaled >> 15, 15)

        self._x2 = self._x1
        self._y2 = self._y1
        self._x1 = sample
        self._y1 = out
        return out


class FirFilter:
    """Q15 FIR filter that keeps its state between blocks."""

    def __init__(self, coeffs: Sequence[int]) -> None:
        if not coeffs:
            raise ValueError("a FIR filter needs at least one coefficient")
        self.coeffs = tuple(coeffs)
        self.reset()

    def reset(self) -> None:
        """Clear the filter history."""
        # Most recent input first.
        self._history: deque[int] = deque([0] * len(self.coeffs), maxlen=len(self.coeffs))

    def filter(self, samples: Iterable[int]) -> list[int]:
        """Filter a block of samples and return the same number of outputs."""
        out = []
        for sample in samples:
            self._history.appendleft(sample)
            acc = sum(c * x for c, x in zip(self.coeffs, self._history))
            out.append(ssat(acc >> 15, 16))
        return out


class FirInterpolator:
    """Q15 polyphase FIR interpolator producing ``factor`` outputs per input."""

    def __init__(self, coeffs: Sequence[int], factor: int) -> None:
        if factor < 1:
            raise ValueError(f"interpolation factor must be positive, got {factor}")
        if not coeffs or len(coeffs) % factor != 0:
            raise ValueError("number of coefficients must be a non-zero multiple of the factor")
        self.coeffs = tuple(coeffs)
        self.factor = factor
        self.phase_length = len(coeffs) // factor
        self._phases = [self.coeffs[j::factor] for j in range(factor)]
        self.reset()

    def reset(self) -> None:
        """Clear the filter history."""
        self._history: deque[int] = deque([0] * self.phase_length, maxlen=self.phase_length)

    def filter(self, samples: Iterable[int]) -> list[int]:
        """Interpolate a block of samples, returning ``factor`` outputs per input."""
        out = []
        for sample in samples:
            self._history.appendleft(sample)
            for phase in self._phases:
                acc = sum(c * x for c, x in zip(phase, self._history))
                out.append(ssat(acc >> 15, 16))
        return out