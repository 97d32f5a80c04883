"""Test the first-order allpass and the filters built from it.

Run: uv run pytest tests/test_allpass.py

Key tests: the allpass keeps the magnitude spectrum, lowpass + highpass
give back the input, and 0 dB shelves do nothing.
"""

import numpy as np
import pytest
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from primitives.filters import (
    AllpassMode, allpass_pole, allpass1,
    lowpass1, highpass1, lowshelf1, highshelf1,
)
from shared.errors import InvalidMode, InvalidSignal, ParameterOutOfRange

SR = 44100


def make_delayed_impulse(n=8192):
    """Impulse at n=1, so the first-sample start-up term is zero."""
    signal = np.zeros(n)
    signal[1] = 1.0
    return signal


def make_noise(n=4000, channels=2, seed=1):
    rng = np.random.default_rng(seed)
    return rng.standard_normal((n, channels)) * 0.5


def make_dc(n=6000):
    return np.ones(n)


def make_nyquist(n=6000):
    return np.where(np.arange(n) % 2 == 0, 1.0, -1.0)


def steady_gain(output, reference, tail=200):
    return np.max(np.abs(output[-tail:])) / np.max(np.abs(reference[-tail:]))


# ---------------------------------------------------------------------------
# Test 1: Pole derivation
# ---------------------------------------------------------------------------
def test_general_pole_at_quarter_rate():
    # tan(pi/4) = 1 -> p = 2/2 - 1 = 0
    assert allpass_pole(SR / 4, SR) == pytest.approx(0.0, abs=1e-12)


def test_cut_poles():
    fc, fs = SR / 4, SR   # tan(...) = 1
    c = 10 ** (-20 / 20)  # 0.1
    low = allpass_pole(fc, fs, AllpassMode.LOW_SHELF_CUT, -20.0)
    high = allpass_pole(fc, fs, AllpassMode.HIGH_SHELF_CUT, -20.0)
    assert low == pytest.approx(2 * c / (1 + c) - 1)
    assert high == pytest.approx(2 / (c + 1) - 1)


def test_string_modes():
    assert allpass_pole(1000, SR, "lowshelf", -6.0) == \
        allpass_pole(1000, SR, AllpassMode.LOW_SHELF_CUT, -6.0)
    assert allpass_pole(1000, SR, "general") == allpass_pole(1000, SR)


@pytest.mark.parametrize("fc", [20.0, 1000.0, 10000.0, 22000.0])
def test_pole_is_stable(fc):
    assert abs(allpass_pole(fc, SR)) < 1.0


# ---------------------------------------------------------------------------
# Test 2: Allpass keeps magnitude, moves phase
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("fc, mode, gain", [
    (1000.0, AllpassMode.GENERAL, 0.0),
    (200.0, AllpassMode.LOW_SHELF_CUT, -12.0),
    (5000.0, AllpassMode.HIGH_SHELF_CUT, -12.0),
])
def test_unity_magnitude(fc, mode, gain):
    x = make_delayed_impulse()
    y = allpass1(fc, SR, x, mode, gain)
    assert np.allclose(np.abs(np.fft.rfft(y)), np.abs(np.fft.rfft(x)), atol=1e-9)
    assert np.sum(y ** 2) == pytest.approx(np.sum(x ** 2), rel=1e-9)


def test_phase_is_minus_90_at_centre():
    fs, fc, n = 8192.0, 1024.0, 8192  # fc lands exactly on bin 1024
    x = make_delayed_impulse(n)
    y = allpass1(fc, fs, x)
    response = np.fft.rfft(y) / np.fft.rfft(x)
    assert np.angle(response[1024]) == pytest.approx(-np.pi / 2, abs=1e-6)


def test_first_sample():
    x = np.array([1.0, 0.0, 0.0])
    p = allpass_pole(3000.0, SR)
    y = allpass1(3000.0, SR, x)
    assert y[0] == pytest.approx(p)
    assert y[1] == pytest.approx(1.0 + p * p)


# ---------------------------------------------------------------------------
# Test 3: Lowpass / highpass
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("fc", [100.0, 1000.0, 12000.0])
def test_lowpass_plus_highpass_is_identity(fc):
    x = make_noise()
    assert np.allclose(lowpass1(fc, SR, x) + highpass1(fc, SR, x), x, atol=1e-12)


def test_lowpass_passes_dc_blocks_nyquist():
    assert steady_gain(lowpass1(1000.0, SR, make_dc()), make_dc()) == pytest.approx(1.0, abs=1e-9)
    assert steady_gain(lowpass1(1000.0, SR, make_nyquist()), make_nyquist()) < 1e-9


def test_highpass_blocks_dc_passes_nyquist():
    assert steady_gain(highpass1(1000.0, SR, make_dc()), make_dc()) < 1e-9
    assert steady_gain(highpass1(1000.0, SR, make_nyquist()), make_nyquist()) == \
        pytest.approx(1.0, abs=1e-9)


# ---------------------------------------------------------------------------
# Test 4: Shelves
# ---------------------------------------------------------------------------
def test_zero_gain_shelves_are_identity():
    x = make_noise()
    assert np.array_equal(lowshelf1(500.0, SR, 0.0, x), x)
    assert np.array_equal(highshelf1(500.0, SR, 0.0, x), x)


@pytest.mark.parametrize("gain", [6.0, -6.0, -20.0])
def test_lowshelf_gains(gain):
    c = 10 ** (gain / 20)
    assert steady_gain(lowshelf1(300.0, SR, gain, make_dc()), make_dc()) == \
        pytest.approx(c, rel=1e-6)
    assert steady_gain(lowshelf1(300.0, SR, gain, make_nyquist()), make_nyquist()) == \
        pytest.approx(1.0, rel=1e-6)


@pytest.mark.parametrize("gain", [6.0, -6.0, -20.0])
def test_highshelf_gains(gain):
    c = 10 ** (gain / 20)
    assert steady_gain(highshelf1(3000.0, SR, gain, make_nyquist()), make_nyquist()) == \
        pytest.approx(c, rel=1e-6)
    assert steady_gain(highshelf1(3000.0, SR, gain, make_dc()), make_dc()) == \
        pytest.approx(1.0, rel=1e-6)


# ---------------------------------------------------------------------------
# Test 5: Shapes and rejected arguments
# ---------------------------------------------------------------------------
def test_shapes_preserved_and_input_untouched():
    stereo = make_noise(500)
    mono = stereo[:, 0].copy()
    before = stereo.copy()
    for fn in (lambda s: allpass1(800.0, SR, s), lambda s: lowpass1(800.0, SR, s),
               lambda s: highpass1(800.0, SR, s), lambda s: lowshelf1(800.0, SR, -3.0, s),
               lambda s: highshelf1(800.0, SR, 3.0, s)):
        assert fn(stereo).shape == stereo.shape
        assert fn(mono).shape == mono.shape
    assert np.array_equal(stereo, before)


def test_float32_accepted():
    x = make_noise(300).astype(np.float32)
    y = lowpass1(1000.0, SR, x)
    assert y.dtype == np.float64
    assert np.allclose(y, lowpass1(1000.0, SR, x.astype(np.float64)))


@pytest.mark.parametrize("mode", [AllpassMode.LOW_SHELF_CUT, AllpassMode.HIGH_SHELF_CUT])
@pytest.mark.parametrize("gain", [0.0, 3.0])
def test_cut_mode_needs_negative_gain(mode, gain):
    with pytest.raises(InvalidMode):
        allpass1(1000.0, SR, make_noise(10), mode, gain)


def test_general_mode_rejects_negative_gain():
    with pytest.raises(InvalidMode):
        allpass1(1000.0, SR, make_noise(10), AllpassMode.GENERAL, -3.0)


def test_unknown_mode():
    with pytest.raises(InvalidMode):
        allpass1(1000.0, SR, make_noise(10), "bandshelf", -3.0)


@pytest.mark.parametrize("fc, fs", [
    (SR / 2, SR),      # at Nyquist
    (30000.0, SR),     # above Nyquist
    (0.0, SR),
    (-100.0, SR),
    (1000.0, 0),
])
def test_frequency_out_of_range(fc, fs):
    with pytest.raises(ParameterOutOfRange):
        lowpass1(fc, fs, make_noise(10))


def test_bad_signal():
    with pytest.raises(InvalidSignal):
        highshelf1(1000.0, SR, -3.0, np.arange(100))


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
