import copy

import pytest

from mmdvmdsp.dsp import DirectFormI, FirFilter, FirInterpolator, ssat
from mmdvmdsp import p25defines

UNITY = 1 << 15
MIN_Q15 = -32768

# Coefficients from the P25 transmit path.
RC_0_2_FILTER = [-897, -1636, -1840, -1278, 0, 1613, 2936, 3310, 2315, 0, -3011, -5627, -6580, -4839,
                 0, 7482, 16311, 24651, 30607, 32767, 30607, 24651, 16311, 7482, 0, -4839, -6580, -5627,
                 -3011, 0, 2315, 3310, 2936, 1613, 0, -1278, -1840, -1636, -897, 0]
LOWPASS_FILTER = [124, -188, -682, 1262, 556, -621, -1912, -911, 2058, 3855, 1234, -4592, -7692, -2799,
                  8556, 18133, 18133, 8556, -2799, -7692, -4592, 1234, 3855, 2058, -911, -1912, -621,
                  556, 1262, -682, -188, 124]


@pytest.mark.parametrize(
    "value,bits,expected",
    [(100, 16, 100), (40000, 16, 32767), (-40000, 16, -32768), (20000, 15, 16383), (-20000, 15, -16384)],
)
def test_ssat_clamps(value, bits, expected):
    assert ssat(value, bits) == expected


def test_ssat_rejects_bad_width():
    with pytest.raises(ValueError):
        ssat(5, 0)


def test_direct_form_passthrough_and_saturation():
    f = DirectFormI(UNITY, 0, 0, UNITY, 0, 0)
    assert f.filter(1234) == 1234
    assert f.filter(-500) == -500
    assert f.filter(30000) == 16383


def test_direct_form_delay_and_reset():
    f = DirectFormI(0, 0, UNITY, 0, 0, 0)
    outputs = [f.filter(x) for x in (10, 20, 30, 40)]
    assert outputs == [0, 0, 10, 20]
    f.reset()
    assert f.filter(99) == 0


def test_direct_form_copy_keeps_state():
    f = DirectFormI(0, UNITY, 0, 0, 0, 0)
    f.filter(77)
    g = copy.copy(f)
    assert g.filter(5) == 77
    assert f.filter(6) == 77


def test_fir_impulse_response_is_negated_coefficients():
    f = FirFilter(LOWPASS_FILTER)
    impulse = [MIN_Q15] + [0] * (len(LOWPASS_FILTER) - 1)
    assert f.filter(impulse) == [-c for c in LOWPASS_FILTER]


def test_fir_block_continuity():
    data = [(i * 937) % 4000 - 2000 for i in range(60)]
    whole = FirFilter(LOWPASS_FILTER).filter(data)
    split = FirFilter(LOWPASS_FILTER)
    assert split.filter(data[:17]) + split.filter(data[17:]) == whole
    assert len(whole) == len(data)


def test_fir_reset_clears_history():
    f = FirFilter([0, UNITY - 1])
    f.filter([MIN_Q15])
    f.reset()
    assert f.filter([0]) == [0]


def test_fir_rejects_empty():
    with pytest.raises(ValueError):
        FirFilter([])


def test_interpolator_impulse_response():
    interp = FirInterpolator(RC_0_2_FILTER, p25defines.P25_RADIO_SYMBOL_LENGTH)
    out = interp.filter([MIN_Q15] + [0] * 7)
    assert len(out) == 8 * p25defines.P25_RADIO_SYMBOL_LENGTH
    assert out == [-c for c in RC_0_2_FILTER]


def test_interpolator_block_continuity_and_reset():
    data = [1260, 420, -420, -1260, 420, 1260, -1260, -420, 420, 420]
    whole = FirInterpolator(RC_0_2_FILTER, 5).filter(data)
    split = FirInterpolator(RC_0_2_FILTER, 5)
    assert split.filter(data[:4]) + split.filter(data[4:]) == whole
    split.reset()
    assert split.filter([0, 0]) == [0] * 10


def test_interpolator_rejects_bad_length():
    with pytest.raises(ValueError):
        FirInterpolator([1, 2, 3], 2)
    with pytest.raises(ValueError):
        FirInterpolator([1, 2], 0)