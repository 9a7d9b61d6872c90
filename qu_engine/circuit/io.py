"""Circuit snapshot validation and structural cloning.

A snapshot is the persisted form of a circuit, plain data only::

    {
      "number_of_qubits": 2,
      "params": ["theta"],                 # formal params (custom gate bodies)
      "gates": [[cell | None, ...], ...],  # gates[wire][column]
      "custom_gates": {name: snapshot},
      "description": "...",                # optional, custom gate bodies
    }

    cell = {"id": str, "name": str, "connector": int, "options": {...}}

Registers and simulation state are runtime-only and never part of it.

Endianness convention: BIG-ENDIAN.
  qubit 0 = most significant bit of the amplitude index.
  |q_0 q_1 ... q_{n-1}>  has index  2^{n-1}*q_0 + ... + q_{n-1}.
"""
from __future__ import annotations

import copy
from typing import Any

from qu_engine.circuit.cells import GateOptions

ENDIANNESS = "big"

SNAPSHOT_KEYS = frozenset({"number_of_qubits", "params", "gates", "custom_gates", "description"})


def clone_snapshot(snapshot: dict) -> dict:
    """Deep structural copy; the result shares nothing with the input."""
    return copy.deepcopy(snapshot)


# ── validation ──────────────────────────────────────────────────────
def validate_snapshot(d: dict[str, Any], tag: str = "circuit") -> dict:
    """Validate and normalise a snapshot.  Raises ValueError on bad input.

    The returned snapshot is a fresh copy with a rectangular grid of
    ``number_of_qubits`` rows and normalised cell options.
    """
    if not isinstance(d, dict):
        raise ValueError(f"{tag}: must be a dict")
    extra = set(d) - SNAPSHOT_KEYS
    if extra:
        raise ValueError(f"{tag}: unknown top-level keys: {extra}")

    n = d.get("number_of_qubits", 1)
    if not isinstance(n, int) or isinstance(n, bool) or n < 1:
        raise ValueError(f"{tag}: number_of_qubits must be positive int, got {n!r}")

    params = d.get("params") or []
    if not isinstance(params, (list, tuple)) or not all(isinstance(p, str) for p in params):
        raise ValueError(f"{tag}: params must be list[str]")

    rows = d.get("gates") or []
    if not isinstance(rows, list) or not all(isinstance(r, list) for r in rows):
        raise ValueError(f"{tag}: gates must be list[list]")
    if len(rows) > n:
        n = len(rows)
    num_cols = max((len(r) for r in rows), default=0)

    gates: list[list[dict | None]] = []
    for wire in range(n):
        src = rows[wire] if wire < len(rows) else []
        row = [_validate_cell(c, f"{tag}: gates[{wire}][{col}]") for col, c in enumerate(src)]
        row.extend([None] * (num_cols - len(row)))
        gates.append(row)

    custom = d.get("custom_gates") or {}
    if not isinstance(custom, dict):
        raise ValueError(f"{tag}: custom_gates must be a dict")

    out = {
        "number_of_qubits": n,
        "params": list(params),
        "gates": gates,
        "custom_gates": {
            name: validate_snapshot(body, f"{tag}: custom gate '{name}'")
            for name, body in custom.items()
        },
    }
    if "description" in d:
        if not isinstance(d["description"], str):
            raise ValueError(f"{tag}: description must be a str")
        out["description"] = d["description"]
    return out


def _validate_cell(c: Any, tag: str) -> dict | None:
    if c is None:
        return None
    if not isinstance(c, dict):
        raise ValueError(f"{tag}: cell must be a dict or None")
    if not {"id", "name"} <= set(c):
        raise ValueError(f"{tag}: missing 'id' or 'name'")
    connector = c.get("connector", 0)
    if not isinstance(connector, int) or connector < 0:
        raise ValueError(f"{tag}: connector must be a non-negative int")
    return {
        "id": str(c["id"]),
        "name": c["name"],
        "connector": connector,
        "options": GateOptions.from_value(c.get("options")).to_dict(),
    }
