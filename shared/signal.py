"""Signal contract helpers used by every filter and by the reverb.

valid_signal is called on each buffer argument before processing.
linear_normalize / safety_check deduplicate the post-render pipeline.
"""

import warnings

import numpy as np

from shared.errors import InvalidSignal, ParameterOutOfRange, SignalShapeWarning


def valid_signal(signal, name="signal"):
    """Check a sample buffer: float dtype, shape (samples,) or (samples, channels).

    Raises InvalidSignal on a bad buffer. Warns (does not fail) when there are
    more channels than samples. Returns True otherwise.
    """
    if not isinstance(signal, np.ndarray):
        raise InvalidSignal(
            f"'{name}' must be a numpy array, not {type(signal).__name__}.")
    if not np.issubdtype(signal.dtype, np.floating):
        raise InvalidSignal(
            f"'{name}' must be floating point, not {signal.dtype}.")
    if signal.ndim not in (1, 2):
        raise InvalidSignal(
            f"'{name}' must be 1-D or 2-D (samples, channels), got {signal.ndim}-D.")
    samples = signal.shape[0]
    channels = signal.shape[1] if signal.ndim == 2 else 1
    if samples < 1 or channels < 1:
        raise InvalidSignal(f"'{name}' is empty (shape {signal.shape}).")
    if channels > samples:
        warnings.warn(
            f"'{name}' should have more samples ({samples}) than channels ({channels}).",
            SignalShapeWarning, stacklevel=2)
    return True


def as_columns(signal):
    """View a validated signal as float64 (samples, channels)."""
    x = np.asarray(signal, dtype=np.float64)
    if x.ndim == 1:
        return x.reshape(-1, 1)
    return x


def linear_normalize(signal, level=1.0):
    """Scale so the loudest sample has magnitude `level`.

    A silent buffer comes back as a zero copy.
    """
    valid_signal(signal)
    if not level > 0:
        raise ParameterOutOfRange(f"level must be > 0, got {level}.")
    peak = np.max(np.abs(signal))
    if peak == 0:
        return np.zeros(signal.shape, dtype=np.float64)
    return signal.astype(np.float64) / peak * level


def safety_check(output):
    """Reject non-finite or exploded output.

    Returns (ok, error_message).
    """
    if not np.all(np.isfinite(output)):
        return False, "output diverged (non-finite values)"
    peak = np.max(np.abs(output))
    if peak > 1e6:
        return False, f"output exploded (peak={peak:.0e})"
    return True, ""
