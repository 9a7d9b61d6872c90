"""Sparse bit-indexed gate application.

The state is a dict ``index → amplitude`` holding only nonzero amplitudes,
plus ``state_bits``, the OR of every stored index.

Endianness: BIG-ENDIAN, qubit w ↔ bit (n-1-w) of the amplitude index.

A k-qubit matrix U is applied without building the 2^n operator:

  * the n-k untouched bit positions are "increment" positions; every
    combination of them is a base index (2^(n-k) of them);
  * the k touched positions are "fix" positions; for each nonzero U[r, c]
    the bits of r and c are scattered onto the fix positions once
    (``row_or`` / ``col_or``);
  * new[base | row_or] += U[r, c] * old[base | col_or].

A base whose bits are not all present in ``state_bits`` cannot address a
populated amplitude and is skipped.
"""
from __future__ import annotations

from typing import Sequence

import numpy as np


def _maps(qubits: Sequence[int], num_qubits: int):
    # big-endian bit positions, last requested qubit = least significant
    targets = [(num_qubits - 1) - q for q in qubits]
    targets.reverse()
    k = len(targets)

    inc_map: list[tuple[int, int]] = []        # (counter bit, state bit)
    fix_map: list[tuple[int, int, int]] = []   # (row bit, col bit, state bit)
    for bit in range(num_qubits):
        if bit not in targets:
            inc_map.append((1 << len(inc_map), 1 << bit))
        else:
            j = len(fix_map)
            fix_map.append((1 << (j + k), 1 << j, 1 << targets[j]))
    return inc_map, fix_map


def flatten_nonzero(U: np.ndarray, fix_map) -> list[tuple[complex, int, int]]:
    """Nonzero entries of U as ``(value, row_or, col_or)``."""
    flat = np.asarray(U, dtype=np.complex128).ravel()
    entries = []
    for uindex in np.flatnonzero(flat):
        uindex = int(uindex)
        row_or = 0
        col_or = 0
        for row_and, col_and, state_or in fix_map:
            if uindex & row_and:
                row_or |= state_or
            if uindex & col_and:
                col_or |= state_or
        entries.append((complex(flat[uindex]), row_or, col_or))
    return entries


def apply_transform(
    state: dict[int, complex],
    state_bits: int,
    U: np.ndarray,
    qubits: Sequence[int],
    num_qubits: int,
) -> tuple[dict[int, complex], int]:
    """Apply U to ``qubits``; returns the new ``(state, state_bits)``."""
    qubits = list(qubits)
    dim = 1 << len(qubits)
    if U.shape != (dim, dim):
        raise ValueError(f"{U.shape} matrix cannot act on {len(qubits)} qubit(s)")
    if len(set(qubits)) != len(qubits):
        raise ValueError(f"duplicate qubits in {qubits}")
    for q in qubits:
        if q < 0 or q >= num_qubits:
            raise ValueError(f"qubit {q} out of range [0, {num_qubits})")

    inc_map, fix_map = _maps(qubits, num_qubits)
    entries = flatten_nonzero(U, fix_map)

    new_state: dict[int, complex] = {}
    for counter in range(1 << len(inc_map)):
        row = 0
        for counter_and, state_or in inc_map:
            if counter & counter_and:
                row |= state_or

        if (state_bits & row) != row:
            continue

        for uval, row_or, col_or in entries:
            j = row | col_or
            amp = state.get(j)
            if amp is None:
                continue
            i = row | row_or
            new_state[i] = new_state.get(i, 0j) + (amp if uval == 1 else uval * amp)

    out: dict[int, complex] = {}
    out_bits = 0
    for i, amp in new_state.items():
        if amp != 0:
            out[i] = amp
            out_bits |= i
    return out, out_bits


def to_dense(state: dict[int, complex], num_qubits: int) -> np.ndarray:
    psi = np.zeros(1 << num_qubits, dtype=np.complex128)
    for i, amp in state.items():
        psi[i] = amp
    return psi
