"""Numba sample loops for the filter primitives.

Each function takes a float64 (samples, channels) buffer and returns a new
buffer of the same shape. No argument checking here; see primitives/filters.py.
"""

import numpy as np
from numba import njit


@njit(cache=True)
def difference_equation(signal, forward, backward):
    """Direct Form 1 LTI filter from explicit tap vectors.

    y[n] = (sum f[i]*x[n-i] - sum_{j>=1} b[j]*y[n-j]) / b[0]
    Samples before n=0 are zero.
    """
    n_samples, n_channels = signal.shape
    n_fwd = len(forward)
    n_bwd = len(backward)
    b0 = backward[0]
    out = np.zeros((n_samples, n_channels))
    for c in range(n_channels):
        for n in range(n_samples):
            acc = 0.0
            for i in range(min(n_fwd, n + 1)):
                acc += forward[i] * signal[n - i, c]
            for j in range(1, min(n_bwd, n + 1)):
                acc -= backward[j] * out[n - j, c]
            out[n, c] = acc / b0
    return out


@njit(cache=True)
def allpass1(signal, pole):
    """First-order allpass, one pole.

    y[0] = x[0]*p, then y[n] = x[n-1] - p*x[n] + p*y[n-1]
    """
    n_samples, n_channels = signal.shape
    out = np.zeros((n_samples, n_channels))
    for c in range(n_channels):
        out[0, c] = signal[0, c] * pole
        for n in range(1, n_samples):
            out[n, c] = signal[n - 1, c] - pole * signal[n, c] + pole * out[n - 1, c]
    return out
