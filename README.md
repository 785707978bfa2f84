# mmdvmdsp

Fixed-point signal processing for a digital voice and paging modem. It is written
in pure Python. The integer arithmetic gives the same results as 16-bit (Q15) and
32-bit (Q31) hardware.

## Modules

- `mmdvmdsp.dsp`: building blocks for the other modules.
  - `ssat(value, bits)` does signed saturation.
  - `DirectFormI` is a second-order IIR section in direct form I.
  - `FirFilter` is a streaming Q15 FIR filter.
  - `FirInterpolator` is a polyphase Q15 FIR interpolator.
- `mmdvmdsp.p25defines`: P25 frame lengths, sync patterns and data unit IDs.
- `mmdvmdsp.modem_io`: `ModemIO`, which moves samples between the converter side and the mode receivers and transmitters.
  - It holds the RX, TX and RSSI buffers.
  - It applies DC offset and level scaling and counts ADC and DAC overflows.
  - It drives the PTT, LED and COS LED flags, keeps the watchdog and switches between `ModemState` values.
  - Register receive handlers for a state with `add_receiver`. Each handler is called with an `RxBlock` of filtered samples, RSSI readings, control marks and the COS line.
- `mmdvmdsp.p25rx`: `P25RX`, a P25 receiver.
  - It finds frame sync, tracks the symbol levels and slices samples into dibits.
  - It delivers frames through callbacks: `on_header` for HDU, PDU, TSDU, TDU and TDULC frames, `on_ldu` for voice frames, `on_lost` when sync is lost, and `on_decode` when carrier detection changes.
- `mmdvmdsp.p25tx`: `P25TX`, the P25 modulator that feeds a `ModemIO`.
- `mmdvmdsp.pocsagtx`: `POCSAGTX`, the POCSAG paging modulator that feeds a `ModemIO`.

## Installation

```
pip install .
```

## Example

```python
from mmdvmdsp.modem_io import ModemIO, ModemState
from mmdvmdsp.p25rx import P25RX
from mmdvmdsp.p25tx import P25TX

modem = ModemIO(rx_buffer_size=9600, tx_buffer_size=3600, block_size=20)
modem.start()
modem.set_mode(ModemState.P25)

# Receive side: hand each filtered P25 block to the receiver.
rx = P25RX(on_ldu=print, on_decode=modem.set_decode)
modem.add_receiver(ModemState.P25, lambda block: rx.samples(block.samples, block.rssi))

# Transmit side: queue a frame. The first byte is a tag and is not sent.
tx = P25TX(modem)
tx.write_data(bytes(19))
tx.process()
```

Call `ModemIO.interrupt(adc_sample, rssi)` once per sample period. It takes the
ADC reading and returns the value for the DAC. `ModemIO.process()` turns complete
blocks of received samples into `RxBlock`s and passes them to the registered
handlers.

Once the modem is transmitting, each `P25TX.process()` sends the frames that are
queued. Before that, the first call sends the start-sync preamble, and
`set_tx_delay` sets its length. After the data runs out, the transmitter sends
silence until the hang time set by `set_params` has expired.

Errors are raised as exceptions:

- `write_data` raises `ValueError` if a frame has the wrong length.
- `write_data` raises `OverflowError` if the queue is full.

## What it does not do

This package only processes samples. It does not provide:

- a serial host protocol;
- hardware or converter drivers;
- a command-line program;
- receivers or transmitters for D-Star, DMR, YSF, NXDN or FM.

`ModemIO` has filter chains and states for those modes, so you can register your
own handlers for them.

## Running the tests

```
pip install ".[test]"
pytest
```