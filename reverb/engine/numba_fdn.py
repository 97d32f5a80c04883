"""Numba-optimized FDN inner loop.

All per-call state is flat numpy arrays (bundled in FDNState) so Numba can
JIT the entire per-sample loop. The state is allocated fresh for every
render and thrown away afterwards.
"""

from dataclasses import dataclass

import numpy as np
from numba import njit

N = 4


@dataclass
class FDNState:
    """Mutable state of one render: delay lines, damping and tonal filters."""

    delay_bufs: np.ndarray        # (N, max_len); line i uses the first L_i slots
    delay_lengths: np.ndarray     # (N,) int64
    delay_write_idxs: np.ndarray  # (N,) int64, slot holding the oldest sample
    damping_y1: np.ndarray        # (N,) last damping filter outputs
    tonal_y1: np.ndarray          # (1,) last tonal-correction output

    @classmethod
    def allocate(cls, delay_lengths):
        lengths = np.asarray(delay_lengths, dtype=np.int64)
        return cls(
            delay_bufs=np.zeros((N, int(np.max(lengths)))),
            delay_lengths=lengths,
            delay_write_idxs=np.zeros(N, dtype=np.int64),
            damping_y1=np.zeros(N),
            tonal_y1=np.zeros(1),
        )


@njit(cache=True)
def _process_block(
    mono,
    output,
    taps, record_taps,
    # Delay line state
    delay_bufs, delay_lengths, delay_write_idxs,
    # Damping filter state + coefficients
    damping_g, damping_p, damping_y1,
    # Tonal correction
    tonal_constant, tonal_y1,
    # Scattering matrix (4x4, already scaled by gain/sqrt(2))
    matrix,
    # Gains
    in_decays, out_decays,
):
    n_samples = len(mono)
    reads = np.empty(N)
    feedback = np.empty(N)
    tonal = tonal_y1[0]

    for n in range(n_samples):
        # --- Read the oldest sample of each line (delay = full length) ---
        tapped = 0.0
        for i in range(N):
            reads[i] = delay_bufs[i, delay_write_idxs[i]]
            tapped += reads[i] * out_decays[i]
        if record_taps:
            for i in range(N):
                taps[n, i] = reads[i]

        # --- Tonal correction on the weighted tap sum ---
        tonal = (tapped / N - tonal_constant * tonal) / (1.0 - tonal_constant)
        output[n] = tonal

        # --- Damping (one-pole lowpass per line) ---
        for i in range(N):
            damping_y1[i] = damping_g[i] * reads[i] - damping_p[i] * damping_y1[i]

        # --- Scatter + fresh input: feedback = in_decays*x + damped @ M^T ---
        x = mono[n]
        for i in range(N):
            s = in_decays[i] * x
            for j in range(N):
                s += damping_y1[j] * matrix[i, j]
            feedback[i] = s

        # --- Push newest, drop oldest ---
        for i in range(N):
            wi = delay_write_idxs[i]
            delay_bufs[i, wi] = feedback[i]
            delay_write_idxs[i] = (wi + 1) % delay_lengths[i]

    tonal_y1[0] = tonal


def run_network(mono, state, damping_g, damping_p, tonal_constant, matrix,
                in_decays, out_decays, record_taps=False):
    """Run the network over a whole mono buffer, advancing `state`.

    Returns (reverb, taps); taps is (n_samples, 4) of raw line reads when
    record_taps is set, else None.
    """
    n_samples = len(mono)
    output = np.empty(n_samples)
    taps = np.zeros((n_samples if record_taps else 0, N))
    _process_block(
        np.ascontiguousarray(mono, dtype=np.float64),
        output,
        taps, record_taps,
        state.delay_bufs, state.delay_lengths, state.delay_write_idxs,
        np.asarray(damping_g, dtype=np.float64),
        np.asarray(damping_p, dtype=np.float64),
        state.damping_y1,
        float(tonal_constant), state.tonal_y1,
        np.ascontiguousarray(matrix, dtype=np.float64),
        np.asarray(in_decays, dtype=np.float64),
        np.asarray(out_decays, dtype=np.float64),
    )
    return output, (taps if record_taps else None)
