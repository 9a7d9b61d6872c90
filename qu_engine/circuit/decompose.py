"""Custom-gate inlining.

``decompose(snapshot)`` returns a copy of the snapshot in which every custom
gate instance has been replaced, recursively, by the primitive gates of its
body.  Only catalogue primitives and ``measure`` remain afterwards and the
copy's ``custom_gates`` is empty.  The input snapshot is never mutated.

Inlining an instance at column c whose body decomposes to W columns:

    wire in the instance  → body row (by connector) replaces the cell at c
    any other wire        → W-1 empty cells are inserted after c

so every column stays aligned across wires.

Formal parameters of a body are replaced, symbolically, by the actual
expressions of the instance: ``theta / 2`` with ``theta = "pi/2"`` becomes
``(pi/2) / 2``.  Nothing is evaluated here.
"""
from __future__ import annotations

from typing import Any, Mapping

from qu_engine.circuit.cells import new_id
from qu_engine.circuit.io import clone_snapshot
from qu_engine.kernel import expr
from qu_engine.kernel.gates import MEASURE, is_primitive


def decompose(snapshot: dict, catalogue: Mapping[str, dict] | None = None, _stack: tuple[str, ...] = ()) -> dict:
    """Return a fully primitive copy of ``snapshot``.

    ``catalogue`` holds custom gate bodies visible from an enclosing
    circuit; the snapshot's own ``custom_gates`` take precedence.
    """
    obj = clone_snapshot(snapshot)
    visible = {**(catalogue or {}), **obj.get("custom_gates", {})}
    gates = obj["gates"]
    n = obj["number_of_qubits"]

    column = 0
    while gates and column < len(gates[0]):
        for wire in range(n):
            cell = gates[wire][column]
            if cell is None or cell["connector"] != 0:
                continue
            name = cell["name"]
            if is_primitive(name) or name == MEASURE:
                continue
            body = visible.get(name)
            if body is None:
                # left for the simulator to report
                continue
            if name in _stack:
                raise ValueError(f"custom gate '{name}' is recursive: {' -> '.join(_stack + (name,))}")
            inlined = _inline(body, cell.get("options") or {}, visible, _stack + (name,))
            _splice(gates, n, column, cell["id"], inlined)
        column += 1

    obj["custom_gates"] = {}
    return obj


def bind_actuals(formals: list[str], actual: Any) -> dict[str, Any]:
    """Map formal names onto actual values given by name or by position."""
    if not formals or not actual:
        return {}
    if isinstance(actual, Mapping):
        return {name: actual[name] for name in formals if name in actual and actual[name] is not None}
    return {name: value for name, value in zip(formals, actual) if value is not None}


def substitute_params(body: dict, mapping: Mapping[str, Any]) -> None:
    """Rewrite every parameter expression inside ``body`` in place."""
    if not mapping:
        return
    for row in body["gates"]:
        for cell in row:
            if cell is None:
                continue
            params = (cell.get("options") or {}).get("params")
            if isinstance(params, dict):
                for key, value in params.items():
                    if isinstance(value, str):
                        params[key] = expr.substitute(value, mapping)
            elif isinstance(params, list):
                for i, value in enumerate(params):
                    if isinstance(value, str):
                        params[i] = expr.substitute(value, mapping)


def _inline(body_def: dict, options: dict, catalogue: Mapping[str, dict], stack: tuple[str, ...]) -> dict:
    body = clone_snapshot(body_def)
    substitute_params(body, bind_actuals(body.get("params") or [], options.get("params")))

    condition = options.get("condition")
    if condition:
        for row in body["gates"]:
            for cell in row:
                if cell is not None and not cell.setdefault("options", {}).get("condition"):
                    cell["options"]["condition"] = dict(condition)

    return decompose(body, catalogue, stack)


def _splice(gates: list[list], n: int, column: int, instance_id: str, body: dict) -> None:
    rows = body["gates"]
    width = max((len(r) for r in rows), default=0)
    if width == 0:
        rows, width = [], 1

    # fresh ids: two expansions of one body must not share ids in a column
    id_map: dict[str, str] = {}
    for row in rows:
        for cell in row:
            if cell is not None:
                cell["id"] = id_map.setdefault(cell["id"], new_id())

    padding = [None] * (width - 1)
    for w in range(n):
        row = gates[w]
        g = row[column]
        if g is not None and g["id"] == instance_id:
            connector = g["connector"]
            insert = list(rows[connector]) if connector < len(rows) else [None] * width
            insert.extend([None] * (width - len(insert)))
            gates[w] = row[:column] + insert + row[column + 1:]
        else:
            gates[w] = row[:column + 1] + padding + row[column + 1:]
