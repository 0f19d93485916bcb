"""Approximate non-negative least squares for small food systems."""

from collections.abc import Sequence

import numpy as np

CONVERGENCE_THRESHOLD = 1e-4
_MIN_CURVATURE = 1e-9


def nnls_solve(
    a: Sequence[Sequence[float]] | np.ndarray,
    b: Sequence[float] | np.ndarray,
    max_iter: int = 500,
) -> list[float] | None:
    """Solve ``min ||Ax - b||`` subject to ``x >= 0`` by coordinate descent.

    ``a`` has one row per macro equation and one column per candidate food
    (grams of macro per gram of food); ``b`` holds the target grams. Each sweep
    takes a Newton step per coordinate using the diagonal of ``AᵀA`` and clamps
    at zero. Returns None for an empty candidate set or when nothing but the
    zero vector fits.
    """
    matrix = np.asarray(a, dtype=float)
    target = np.asarray(b, dtype=float)
    if matrix.ndim != 2 or matrix.shape[1] == 0:  # noqa: PLR2004
        return None

    ata = matrix.T @ matrix
    atb = matrix.T @ target
    n = matrix.shape[1]
    x = np.zeros(n)

    for _ in range(max_iter):
        max_change = 0.0
        for i in range(n):
            gradient = ata[i] @ x - atb[i]
            curvature = ata[i, i] if ata[i, i] > _MIN_CURVATURE else _MIN_CURVATURE
            updated = max(0.0, x[i] - gradient / curvature)
            max_change = max(max_change, abs(updated - x[i]))
            x[i] = updated
        if max_change < CONVERGENCE_THRESHOLD:
            break

    if not np.all(np.isfinite(x)) or x.sum() <= 0:
        return None
    return x.tolist()
