"""Fixed-point modem signal processing: DSP filters, sample I/O, P25 receive and transmit, POCSAG transmit."""

__version__ = "0.1.0"
__all__ = ["dsp", "p25defines", "modem_io", "p25rx", "p25tx", "pocsagtx"]