"""Small dense-matrix and complex-number helpers."""
from __future__ import annotations

import numpy as np


def format_complex(value: complex, precision: int = 8) -> str:
    """`` 0.70710678-0.00000000i`` style: sign char, |re|, sign, |im|, ``i``."""
    re = round(float(np.real(value)), precision)
    im = round(float(np.imag(value)), precision)
    return (
        (" " if re >= 0 else "-") + f"{abs(re):.{precision}f}"
        + ("+" if im >= 0 else "-") + f"{abs(im):.{precision}f}" + "i"
    )


def identity_matrix(n: int) -> np.ndarray:
    return np.eye(n, dtype=np.complex128)


def make_controlled(U: np.ndarray) -> np.ndarray:
    """Add one control wire (as the most significant sub-space bit) to U."""
    U = np.asarray(U, dtype=np.complex128)
    m = U.shape[0]
    C = identity_matrix(2 * m)
    C[m:, m:] = U
    return C


def is_unitary(U: np.ndarray, atol: float = 1e-10) -> bool:
    U = np.asarray(U, dtype=np.complex128)
    return np.allclose(U.conj().T @ U, np.eye(U.shape[0]), atol=atol)
