"""Dense numpy reference simulator (practical up to n ≈ 20, oracle for correctness).

Applies gates one-by-one to the full state vector via tensor contraction
(no full unitary build).
Endianness: big-endian (qubit 0 = most significant bit), same as the engine.
"""
from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from qu_engine.kernel import gates as gmod


def apply_dense(psi: np.ndarray, U: np.ndarray, qubits: Sequence[int], n: int) -> np.ndarray:
    """Return U applied to ``qubits`` of ``psi`` (U in big-endian sub-space)."""
    k = len(qubits)
    tensor = psi.reshape((2,) * n)
    Ut = np.asarray(U, dtype=np.complex128).reshape((2,) * (2 * k))
    out = np.tensordot(Ut, tensor, axes=(list(range(k, 2 * k)), list(qubits)))
    out = np.moveaxis(out, list(range(k)), list(qubits))
    return out.reshape(1 << n)


def simulate(n: int, ops: Iterable[tuple[str, Sequence[int], dict | None]]) -> np.ndarray:
    """Run ``(gate name, wires, params)`` ops from |0...0>, return the state."""
    psi = np.zeros(1 << n, dtype=np.complex128)
    psi[0] = 1.0
    for name, wires, params in ops:
        psi = apply_dense(psi, gmod.gate_matrix(name, params), wires, n)
    return psi
