import pytest

from mmdvmdsp.modem_io import DC_OFFSET, ModemIO
from mmdvmdsp.pocsagtx import (
    POCSAG_FRAME_LENGTH_BYTES,
    POCSAG_PREAMBLE_LENGTH_BYTES,
    POCSAG_RADIO_SYMBOL_LENGTH,
    POCSAGTX,
)

BLOCK = 8 * POCSAG_RADIO_SYMBOL_LENGTH


def make(tx_size=100000):
    modem = ModemIO(100, tx_size, 20)
    modem.start()
    return modem, POCSAGTX(modem)


def drain(modem, count):
    return [modem.interrupt(DC_OFFSET, 0) for _ in range(count)]


def test_default_delay():
    _, tx = make()
    assert tx.tx_delay == POCSAG_PREAMBLE_LENGTH_BYTES


def test_set_tx_delay():
    _, tx = make()
    tx.set_tx_delay(0)
    assert tx.tx_delay == POCSAG_PREAMBLE_LENGTH_BYTES
    tx.set_tx_delay(255)
    assert tx.tx_delay == 150
    with pytest.raises(ValueError):
        tx.set_tx_delay(300)


def test_write_data_wrong_length():
    _, tx = make()
    with pytest.raises(ValueError):
        tx.write_data(bytes(POCSAG_FRAME_LENGTH_BYTES - 1))


def test_busy_and_space():
    _, tx = make()
    assert tx.busy() is False
    before = tx.get_space()
    tx.write_data(bytes(POCSAG_FRAME_LENGTH_BYTES))
    assert tx.busy() is True
    assert tx.get_space() == before - 1


def test_overflow():
    _, tx = make()
    with pytest.raises(OverflowError):
        for _ in range(100):
            tx.write_data(bytes(POCSAG_FRAME_LENGTH_BYTES))
    assert tx.get_space() == 0


def test_process_idle_does_nothing():
    modem, tx = make()
    before = modem.get_space()
    tx.process()
    assert modem.get_space() == before


def test_preamble_then_frame():
    modem, tx = make()
    tx.write_data(bytes(POCSAG_FRAME_LENGTH_BYTES))
    start = modem.get_space()
    tx.process()
    after_preamble = modem.get_space()
    assert modem.tx is True
    assert start - after_preamble == tx.tx_delay * BLOCK
    assert tx.busy() is True

    tx.process()
    assert after_preamble - modem.get_space() == POCSAG_FRAME_LENGTH_BYTES * BLOCK
    assert tx.busy() is False


def test_write_byte_polarity():
    modem, tx = make()
    tx.write_byte(0xFF)
    high = drain(modem, BLOCK)
    assert all(v >= DC_OFFSET for v in high)
    assert max(high) > DC_OFFSET

    modem2, tx2 = make()
    tx2.write_byte(0x00)
    low = drain(modem2, BLOCK)
    assert all(v <= DC_OFFSET for v in low)
    assert min(low) < DC_OFFSET


def test_write_byte_sample_count():
    modem, tx = make()
    before = modem.get_space()
    tx.write_byte(0x5A)
    assert before - modem.get_space() == BLOCK


def test_limited_space_keeps_busy():
    modem, tx = make(tx_size=1000)
    tx.write_data(bytes(POCSAG_FRAME_LENGTH_BYTES))
    tx.process()
    assert tx.busy() is True
    assert modem.get_space() <= BLOCK