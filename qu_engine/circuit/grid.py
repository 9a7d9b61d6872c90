"""Circuit IR: a wire × column grid of gate-instance cells.

``gates[wire][column]`` is a ``GateInstance`` or None.  The grid is kept
rectangular: every wire has ``num_cols()`` cells.  Cells of one logical
instance share an id, live in a single column and carry connectors 0..k-1.
Two instances whose wire spans overlap never share a column.
"""
from __future__ import annotations

import numbers
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Union

from qu_engine.circuit.cells import GateInstance, GateOptions, PlacedGate, RegisterRef, new_id
from qu_engine.circuit.cregs import ClassicalRegisters
from qu_engine.circuit.decompose import decompose as decompose_snapshot
from qu_engine.circuit.io import clone_snapshot, validate_snapshot
from qu_engine.kernel.gates import BASIC_GATES, MEASURE, CustomGate, GateDefinition
from qu_engine.utils.logging_config import get_logger

log = get_logger(__name__)

Wires = Union[int, Sequence[int]]


class Circuit:
    """Quantum circuit grid plus custom-gate catalogue and classical registers.

    Args:
        num_qubits: initial number of wires; placing a gate on a higher
            wire grows the circuit.
    """

    def __init__(self, num_qubits: int = 1):
        self.num_qubits = num_qubits
        self.params: list[str] = []
        self.custom_gates: dict[str, CustomGate] = {}
        self.cregs = ClassicalRegisters()
        self.gates: list[list[Optional[GateInstance]]] = []
        self.clear()

    def clear(self) -> None:
        self.gates = [[] for _ in range(self.num_qubits)]

    # ── dimensions ───────────────────────────────────────────────────

    def num_cols(self) -> int:
        return len(self.gates[0]) if self.gates else 0

    def num_amplitudes(self) -> int:
        return 1 << self.num_qubits

    def num_gates(self, decompose: bool = False) -> int:
        """Number of logical instances (connector-0 cells)."""
        circuit = Circuit.from_snapshot(self.save(decompose=True)) if decompose else self
        return sum(
            1
            for row in circuit.gates
            for cell in row
            if cell is not None and cell.connector == 0
        )

    def _grow(self, num_qubits: int, num_cols: int) -> None:
        if num_qubits > self.num_qubits:
            self.num_qubits = num_qubits
        while len(self.gates) < self.num_qubits:
            self.gates.append([])
        width = max(self.num_cols(), num_cols)
        for row in self.gates:
            row.extend([None] * (width - len(row)))

    # ── reading ──────────────────────────────────────────────────────

    def _cell(self, column: int, wire: int) -> Optional[GateInstance]:
        if wire < 0 or wire >= len(self.gates) or column < 0:
            return None
        row = self.gates[wire]
        return row[column] if column < len(row) else None

    def get_gate_at(self, column: int, wire: int) -> Optional[PlacedGate]:
        """The whole instance touching ``(column, wire)``, wires by connector."""
        cell = self._cell(column, wire)
        if cell is None:
            return None
        wires: dict[int, int] = {}
        for w in range(len(self.gates)):
            g = self._cell(column, w)
            if g is not None and g.id == cell.id:
                wires[g.connector] = w
        return PlacedGate.from_cell(cell, [wires[c] for c in sorted(wires)])

    def column_gates(self, column: int) -> list[PlacedGate]:
        """Every instance in ``column``, once each, in wire order."""
        seen: set[str] = set()
        out = []
        for w in range(len(self.gates)):
            cell = self._cell(column, w)
            if cell is not None and cell.id not in seen:
                seen.add(cell.id)
                out.append(self.get_gate_at(column, w))
        return out

    def is_empty_cell(self, col: int, wire: int) -> bool:
        """True if nothing touches, straddles or blocks ``(col, wire)``.

        A ``measure`` or conditional instance blocks its whole column.
        """
        if self._cell(col, wire) is not None:
            return False
        for gate in self.column_gates(col):
            if gate.name == MEASURE or gate.options.condition is not None or gate.straddles(wire):
                return False
        return True

    def last_non_empty_place(self, wires: Sequence[int], using_cregs: bool) -> int:
        """Last column conflicting with ``wires`` (-1 when there is none)."""
        lo, hi = min(wires), max(wires)
        if using_cregs:
            lo, hi = 0, max(hi, self.num_qubits - 1)

        col = self.num_cols()
        while col > 0:
            col -= 1
            for wire in range(lo, hi + 1):
                if not self.is_empty_cell(col, wire):
                    return col
        return -1

    # ── placement ────────────────────────────────────────────────────

    def add_gate(
        self,
        name: str,
        column: int,
        wires: Wires,
        options: Union[GateOptions, Mapping[str, Any], None] = None,
    ) -> PlacedGate:
        """Place ``name`` on ``wires`` at ``column`` (auto-place when < 0)."""
        wire_list = [wires] if isinstance(wires, numbers.Integral) else list(wires)
        if not wire_list:
            raise ValueError(f"gate '{name}' needs at least one wire")
        if any(not isinstance(w, numbers.Integral) or w < 0 for w in wire_list):
            raise ValueError(f"gate '{name}': wires must be non-negative integers, got {wire_list}")
        if len(set(wire_list)) != len(wire_list):
            raise ValueError(f"gate '{name}': duplicate wires {wire_list}")
        wire_list = [int(w) for w in wire_list]

        opts = GateOptions.from_value(options)
        if opts.creg is not None:
            self._ensure_creg(opts.creg)

        if column < 0:
            column = self.last_non_empty_place(wire_list, name == MEASURE or opts.uses_cregs) + 1
        else:
            self._evict(column, wire_list)

        self._grow(max(wire_list) + 1, column + 1)

        gate_id = new_id()
        for connector, wire in enumerate(wire_list):
            self.gates[wire][column] = GateInstance(gate_id, name, connector, opts.clone())
        return PlacedGate(gate_id, name, 0, opts.clone(), wire_list)

    def _evict(self, column: int, wires: Sequence[int]) -> None:
        lo, hi = min(wires), max(wires)
        for gate in self.column_gates(column):
            g_lo, g_hi = gate.span
            if g_lo <= hi and lo <= g_hi:
                log.warning(
                    "Replacing gate '%s' on wires %s at column %d", gate.name, gate.wires, column
                )
                self.remove_gate(column, gate.wires[0])

    def _ensure_creg(self, ref: RegisterRef) -> None:
        # grow the register without touching the current value of the bit
        current = 0
        if ref.name in self.cregs:
            bits = self.cregs[ref.name]
            if isinstance(ref.bit, numbers.Integral) and 0 <= ref.bit < len(bits):
                current = bits[ref.bit]
        self.cregs.set_bit(ref.name, ref.bit if ref.bit is not None else 0, current)

    def remove_gate(self, column: int, wire: int) -> None:
        """Clear every cell of the instance at ``(column, wire)``."""
        cell = self._cell(column, wire)
        if cell is None:
            return
        for row in self.gates:
            if column < len(row) and row[column] is not None and row[column].id == cell.id:
                row[column] = None

    def add_measure(self, wire: int, creg: str, cbit: int = 0) -> PlacedGate:
        return self.add_gate(MEASURE, -1, wire, {"creg": {"name": creg, "bit": cbit}})

    # ── gate catalogue ───────────────────────────────────────────────

    def register_gate(
        self,
        name: str,
        definition: Union["Circuit", Mapping[str, Any]],
        params: Optional[Iterable[str]] = None,
        description: str = "",
    ) -> CustomGate:
        """Register a sub-circuit (Circuit or snapshot) as custom gate ``name``."""
        if name in BASIC_GATES or name == MEASURE:
            raise ValueError(f"'{name}' is a primitive gate and cannot be redefined")
        if isinstance(definition, Circuit):
            body = definition.save()
        else:
            body = validate_snapshot(dict(definition), f"custom gate '{name}'")
        if params is not None:
            body["params"] = list(params)
        # the description travels with the body so save() / load() keep it
        body["description"] = description or body.get("description", "")
        gate = CustomGate(name=name, params=tuple(body["params"]), description=body["description"], body=body)
        self.custom_gates[name] = gate
        return gate

    def get_gate_def(self, name: str) -> Optional[GateDefinition]:
        return BASIC_GATES.get(name) or self.custom_gates.get(name)

    def used_gates(self) -> list[str]:
        """Distinct gate names left after decomposition, in wire-major order."""
        decomposed = Circuit.from_snapshot(self.save(decompose=True))
        used: list[str] = []
        for row in decomposed.gates:
            for cell in row:
                if cell is not None and cell.name not in used:
                    used.append(cell.name)
        return used

    # ── persistence ──────────────────────────────────────────────────

    def save(self, decompose: bool = False) -> dict:
        """Structural snapshot ``{number_of_qubits, params, gates, custom_gates}``."""
        data = {
            "number_of_qubits": self.num_qubits,
            "params": list(self.params),
            "gates": [[cell.to_dict() if cell is not None else None for cell in row] for row in self.gates],
            "custom_gates": {name: clone_snapshot(g.body) for name, g in self.custom_gates.items()},
        }
        if decompose:
            return decompose_snapshot(data)
        return data

    def load(self, snapshot: Mapping[str, Any]) -> None:
        d = validate_snapshot(dict(snapshot))
        self.num_qubits = d["number_of_qubits"]
        self.clear()
        self.params = list(d["params"])
        self.gates = [
            [GateInstance.from_dict(c) if c is not None else None for c in row]
            for row in d["gates"]
        ]
        self.custom_gates = {
            name: CustomGate(
                name=name,
                params=tuple(body["params"]),
                description=body.get("description", ""),
                body=body,
            )
            for name, body in d["custom_gates"].items()
        }
        for row in self.gates:
            for cell in row:
                if cell is not None and cell.options.creg is not None:
                    self._ensure_creg(cell.options.creg)

    @classmethod
    def from_snapshot(cls, snapshot: Mapping[str, Any]) -> "Circuit":
        circuit = cls()
        circuit.load(snapshot)
        return circuit

    # ── classical registers ──────────────────────────────────────────

    def create_creg(self, name: str, length: int = 1) -> None:
        self.cregs.create(name, length)

    def set_creg_bit(self, name: str, bit: int, value) -> None:
        self.cregs.set_bit(name, bit, value)

    def get_creg_bit(self, name: str, bit: int) -> int:
        return self.cregs.get_bit(name, bit)

    def creg_base(self, name: str) -> int:
        return self.cregs.base(name)

    def creg_total_bits(self) -> int:
        return self.cregs.total_bits()

    def get_creg_value(self, name: str) -> int:
        return self.cregs.value(name)

    # ── execution ────────────────────────────────────────────────────

    def run(
        self,
        initial_values: Optional[Sequence[Any]] = None,
        on_gate: Optional[Callable[[int, int, int], None]] = None,
        on_column: Optional[Callable[[int], None]] = None,
        config=None,
    ):
        """Simulate on a fresh ``Simulator`` and return it."""
        from qu_engine.runner.simulator import Simulator

        sim = Simulator(self, config)
        sim.run(initial_values, on_gate=on_gate, on_column=on_column)
        return sim

    def __repr__(self) -> str:
        return f"Circuit(num_qubits={self.num_qubits}, num_cols={self.num_cols()})"
