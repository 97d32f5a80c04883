"""Filters: general difference equation, first-order allpass, and the
lowpass / highpass / shelf filters built from the allpass.

All functions are stateless: each call starts from a zero state and returns
a new buffer shaped like its `signal` argument.

The first-order family follows the allpass-sum construction:

    lowpass   = (x + allpass(x)) / 2
    highpass  = (x - allpass(x)) / 2
    lowshelf  = scale * (x + allpass(x)) / 2 + x
    highshelf = scale * (x - allpass(x)) / 2 + x

with scale = 10^(gain/20) - 1. Cutting shelves (gain < 0) move the allpass
pole so the crossover stays at the requested frequency.
"""

import logging
import math
from enum import Enum
from numbers import Real

import numpy as np

from primitives import dsp
from shared.errors import InvalidCoefficients, InvalidMode, ParameterOutOfRange
from shared.signal import as_columns, valid_signal

log = logging.getLogger(__name__)


class AllpassMode(Enum):
    GENERAL = "general"
    LOW_SHELF_CUT = "lowshelf"
    HIGH_SHELF_CUT = "highshelf"


# ---------------------------------------------------------------------------
# Argument checks
# ---------------------------------------------------------------------------

def _check_rates(centre_freq, sampling_freq):
    if not isinstance(sampling_freq, Real) or not sampling_freq > 0:
        raise ParameterOutOfRange(
            f"sampling_freq must be a positive number, got {sampling_freq!r}.")
    if not isinstance(centre_freq, Real) or not 0 < centre_freq < 0.5 * sampling_freq:
        raise ParameterOutOfRange(
            f"centre_freq must be in (0, {0.5 * sampling_freq:g}) Hz "
            f"(below Nyquist), got {centre_freq!r}.")


def _check_gain(gain):
    if isinstance(gain, bool) or not isinstance(gain, Real) or not math.isfinite(gain):
        raise ParameterOutOfRange(f"gain must be a finite number of dB, got {gain!r}.")


def _check_taps(taps, name):
    try:
        arr = np.asarray(taps, dtype=np.float64)
    except (TypeError, ValueError):
        raise InvalidCoefficients(f"{name} taps must be real numbers, got {taps!r}.") from None
    if arr.ndim == 0:
        arr = arr.reshape(1)
    if arr.ndim != 1 or arr.size == 0:
        raise InvalidCoefficients(f"{name} taps must be a non-empty 1-D sequence.")
    if not np.all(np.isfinite(arr)):
        raise InvalidCoefficients(f"{name} taps must be finite.")
    if not np.any(arr != 0):
        raise InvalidCoefficients(f"{name} taps are all zero.")
    return arr


def _as_mode(mode):
    if isinstance(mode, AllpassMode):
        return mode
    try:
        return AllpassMode(mode)
    except ValueError:
        accepted = ", ".join(repr(m.value) for m in AllpassMode)
        raise InvalidMode(
            f"Allpass mode {mode!r} is not accepted. Accepted modes: {accepted}.") from None


def _restore(out, signal):
    """Give the output the input's shape (mono stays 1-D)."""
    if signal.ndim == 1:
        return out[:, 0]
    return out


# ---------------------------------------------------------------------------
# General difference equation
# ---------------------------------------------------------------------------

def difference_equation_filter(forward, backward, signal):
    """Filter a signal with explicit feed-forward / feed-backward taps.

    Works for FIR (backward = [1]) and IIR filters:

        y[n] = (1/b[0]) * (sum_i f[i]*x[n-i] - sum_{j>=1} b[j]*y[n-j])

    Each channel is filtered independently from a zero initial state.
    """
    valid_signal(signal)
    fwd = _check_taps(forward, "forward")
    bwd = _check_taps(backward, "backward")
    if bwd[0] == 0:
        raise InvalidCoefficients("backward[0] normalizes the filter and must be non-zero.")
    out = dsp.difference_equation(as_columns(signal), fwd, bwd)
    return _restore(out, signal)


# ---------------------------------------------------------------------------
# First-order allpass and derived filters
# ---------------------------------------------------------------------------

def allpass_pole(centre_freq, sampling_freq, mode=AllpassMode.GENERAL, gain=0.0):
    """Pole of the first-order allpass whose phase crosses -90 deg at centre_freq.

    gain (dB) only matters for the cut modes and must be negative there.
    """
    _check_rates(centre_freq, sampling_freq)
    mode = _as_mode(mode)
    _check_gain(gain)

    t = math.tan(math.pi * centre_freq / sampling_freq)
    if mode is AllpassMode.GENERAL:
        if gain < 0:
            raise InvalidMode("allpass mode 'general' does not accept a negative gain.")
        pole = 2.0 / (t + 1.0) - 1.0
    else:
        if gain >= 0:
            raise InvalidMode(
                f"allpass mode '{mode.value}' is for cutting and needs gain < 0, got {gain}.")
        c = 10.0 ** (gain / 20.0)
        if mode is AllpassMode.LOW_SHELF_CUT:
            pole = 2.0 * c / (t + c) - 1.0
        else:
            pole = 2.0 / (c * t + 1.0) - 1.0

    log.debug("allpass pole %.6f (fc=%g, fs=%g, %s, %g dB)",
              pole, centre_freq, sampling_freq, mode.value, gain)
    return pole


def allpass1(centre_freq, sampling_freq, signal, mode=AllpassMode.GENERAL, gain=0.0):
    """First-order allpass. Unity magnitude, phase -90 deg at centre_freq."""
    valid_signal(signal)
    pole = allpass_pole(centre_freq, sampling_freq, mode, gain)
    return _restore(dsp.allpass1(as_columns(signal), pole), signal)


def _allpass_pair(centre_freq, sampling_freq, signal, mode, gain):
    valid_signal(signal)
    pole = allpass_pole(centre_freq, sampling_freq, mode, gain)
    x = as_columns(signal)
    return x, dsp.allpass1(x, pole)


def lowpass1(centre_freq, sampling_freq, signal):
    """First-order lowpass: -3 dB at centre_freq."""
    x, ap = _allpass_pair(centre_freq, sampling_freq, signal, AllpassMode.GENERAL, 0.0)
    return _restore((x + ap) / 2.0, signal)


def highpass1(centre_freq, sampling_freq, signal):
    """First-order highpass: -3 dB at centre_freq."""
    x, ap = _allpass_pair(centre_freq, sampling_freq, signal, AllpassMode.GENERAL, 0.0)
    return _restore((x - ap) / 2.0, signal)


def lowshelf1(centre_freq, sampling_freq, gain, signal):
    """First-order low shelf. gain in dB, boost (> 0) or cut (< 0). 0 dB is a no-op."""
    _check_gain(gain)
    mode = AllpassMode.LOW_SHELF_CUT if gain < 0 else AllpassMode.GENERAL
    x, ap = _allpass_pair(centre_freq, sampling_freq, signal, mode, gain)
    scale = 10.0 ** (gain / 20.0) - 1.0
    return _restore(scale * (x + ap) / 2.0 + x, signal)


def highshelf1(centre_freq, sampling_freq, gain, signal):
    """First-order high shelf. gain in dB, boost (> 0) or cut (< 0). 0 dB is a no-op."""
    _check_gain(gain)
    mode = AllpassMode.HIGH_SHELF_CUT if gain < 0 else AllpassMode.GENERAL
    x, ap = _allpass_pair(centre_freq, sampling_freq, signal, mode, gain)
    scale = 10.0 ** (gain / 20.0) - 1.0
    return _restore(scale * (x - ap) / 2.0 + x, signal)
