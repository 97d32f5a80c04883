"""Feedback matrix: controls how energy flows between FDN delay lines."""

import numpy as np


# Stautner & Puckette (1982), four delay lines. Each row and column has two
# non-zero entries of +/-1, so dividing by sqrt(2) makes it orthogonal.
_STAUTNER_PUCKETTE = np.array([
    [0.0, 1.0, 1.0, 0.0],
    [-1.0, 0.0, 0.0, -1.0],
    [1.0, 0.0, 0.0, -1.0],
    [0.0, 1.0, -1.0, 0.0],
])


def stautner_puckette(gain: float = 1.0) -> np.ndarray:
    """4x4 Stautner-Puckette matrix scaled by gain/sqrt(2).

    gain=1 is energy-preserving; gain<1 makes every pass around the loop lose
    energy.
    """
    return _STAUTNER_PUCKETTE * (gain / np.sqrt(2.0))


def is_unitary(matrix: np.ndarray, tol: float = 1e-6) -> bool:
    """Check if a matrix is unitary (M @ M^T ≈ I)."""
    product = matrix @ matrix.T
    return np.allclose(product, np.eye(len(matrix)), atol=tol)
