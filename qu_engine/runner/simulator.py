"""Sparse state-vector simulator for ``Circuit``.

Lifecycle:
  Uninitialized → init_state() → Initialized ({0: 1+0j}, registers zeroed)
  → apply_gate() ... → run complete.  reset_state()/init_state() go back to
  Initialized.

A simulator owns its state and its copy of the classical registers; two
runs of one circuit need two simulators.

Measurement is simple: ``measure_all`` picks the single most
probable basis state (random tie-break) and caches it until the next gate
application.  The amplitudes themselves are never collapsed, and this is
not a shot sampler.
"""
from __future__ import annotations

import time
from typing import Any, Callable, Optional, Sequence

import numpy as np

from qu_engine.circuit.cells import GateOptions
from qu_engine.circuit.grid import Circuit
from qu_engine.config import DEFAULT_CONFIG, SimulatorConfig
from qu_engine.errors import MeasureDestinationError
from qu_engine.kernel import sparse
from qu_engine.kernel.algebra import format_complex
from qu_engine.kernel.gates import MEASURE, get_gate, get_raw_gate
from qu_engine.utils.logging_config import get_logger

log = get_logger(__name__)


class Simulator:

    def __init__(self, circuit: Circuit, config: Optional[SimulatorConfig] = None):
        self.circuit = circuit
        self.config = config or DEFAULT_CONFIG
        self.rng = np.random.default_rng(self.config.seed)
        self.num_qubits = circuit.num_qubits
        self.cregs = circuit.cregs.clone()
        self.state: Optional[dict[int, complex]] = None
        self.state_bits = 0
        self.collapsed: list[int] = []
        self.prob: list[float] = []
        self.stats: dict[str, Any] = {}

    # ── state lifecycle ──────────────────────────────────────────────

    def reset_state(self) -> None:
        self.num_qubits = self.circuit.num_qubits
        self.state = {}
        self.state_bits = 0

        # register layout of the circuit, every bit zero
        self.cregs = self.circuit.cregs.clone()
        self.cregs.reset()

        self.collapsed = []
        self.prob = []
        self.stats = {}

    def init_state(self) -> None:
        self.reset_state()
        self.state[0] = complex(1, 0)
        self.state_bits = 0

    def num_amplitudes(self) -> int:
        return 1 << self.num_qubits

    def _grow(self, num_qubits: int) -> None:
        # new wires are appended as less significant bits
        shift = num_qubits - self.num_qubits
        self.state = {i << shift: amp for i, amp in self.state.items()}
        self.state_bits <<= shift
        self.num_qubits = num_qubits

    # ── gate application ─────────────────────────────────────────────

    def apply_transform(self, U: np.ndarray, qubits: Sequence[int]) -> None:
        self.state, self.state_bits = sparse.apply_transform(
            self.state, self.state_bits, U, qubits, self.num_qubits
        )

    def apply_gate(self, name: str, wires, options: Any = None) -> None:
        """Apply catalogue gate ``name`` (or ``measure``) to ``wires``."""
        wires = [wires] if isinstance(wires, int) else list(wires)
        opts = GateOptions.from_value(options)
        if self.state is None:
            self.init_state()

        if name == MEASURE:
            if opts.creg is None:
                raise MeasureDestinationError('"measure" gate requires destination')
            if max(wires) >= self.num_qubits:
                self._grow(max(wires) + 1)
            self.measure(wires[0], opts.creg.name, opts.creg.bit)
            return

        gate = get_gate(name)
        if gate is None:
            log.warning('Unknown gate "%s".', name)
            return

        raw = get_raw_gate(gate, opts)

        self.collapsed = []
        self.prob = []

        if max(wires) >= self.num_qubits:
            self._grow(max(wires) + 1)
        self.apply_transform(raw, wires)

    def run(
        self,
        initial_values: Optional[Sequence[Any]] = None,
        on_gate: Optional[Callable[[int, int, int], None]] = None,
        on_column: Optional[Callable[[int], None]] = None,
    ) -> None:
        """Simulate the whole circuit from |0...0> (or ``initial_values``).

        ``on_gate(column, wire, count)`` fires after every gate instance,
        executed or skipped by its condition; ``on_column(column)`` after
        every column.
        """
        self.init_state()
        self.stats["start"] = time.time()

        if initial_values:
            for wire in range(min(self.num_qubits, len(initial_values))):
                if initial_values[wire]:
                    self.apply_gate("x", [wire])

        decomposed = Circuit.from_snapshot(self.circuit.save(decompose=True))
        gate_counter = 0
        executed = 0
        for column in range(decomposed.num_cols()):
            for wire in range(decomposed.num_qubits):
                gate = decomposed.get_gate_at(column, wire)
                if gate is None or gate.connector != 0:
                    continue
                gate_counter += 1

                execute = True
                condition = gate.options.condition
                if condition is not None:
                    execute = self.cregs.value(condition.creg) == int(condition.value)

                if execute:
                    self.apply_gate(gate.name, gate.wires, gate.options)
                    executed += 1

                if on_gate:
                    on_gate(column, wire, gate_counter)

            if on_column:
                on_column(column)

        self.stats["end"] = time.time()
        self.stats["duration"] = self.stats["end"] - self.stats["start"]
        self.stats["gates"] = gate_counter
        self.stats["executed"] = executed
        log.debug(
            "Run finished: %d qubits, %d columns, %d/%d gates executed in %.4fs",
            self.num_qubits, decomposed.num_cols(), executed, gate_counter, self.stats["duration"],
        )

    # ── measurement ──────────────────────────────────────────────────

    def measure_all(self, force: bool = False) -> list[int]:
        """Bits of the most probable basis state, cached until the next gate."""
        if self.collapsed and len(self.collapsed) == self.num_qubits and not force:
            return list(self.collapsed)
        if self.state is None:
            self.init_state()

        precision = self.config.probability_precision
        self.collapsed = []
        max_chance = 0.0
        for i in sorted(self.state):
            amp = self.state[i]
            chance = round(abs(amp) ** 2, precision) if amp else 0.0
            if chance > max_chance or (
                chance == max_chance and (not self.collapsed or self.rng.integers(2))
            ):
                max_chance = chance
                self.collapsed = [1 if (1 << q) & i else 0 for q in range(self.num_qubits - 1, -1, -1)]
        return list(self.collapsed)

    def measure(self, wire: int, creg: Optional[str] = None, cbit: Optional[int] = None) -> int:
        """Bit of ``wire`` in the current collapse; optionally stored in ``creg[cbit]``."""
        if not self.collapsed or len(self.collapsed) != self.num_qubits:
            self.measure_all()

        value = self.collapsed[wire]

        if creg and cbit is not None:
            self.cregs.set_bit(creg, cbit, value)

        return value

    def probabilities(self) -> list[float]:
        """Marginal probability of reading 1 on each wire."""
        if self.prob and len(self.prob) == self.num_qubits:
            return list(self.prob)

        n = self.num_qubits
        prob = [0.0] * n
        for i, amp in (self.state or {}).items():
            p = abs(amp) ** 2
            for wire in range(n):
                if i & (1 << ((n - 1) - wire)):
                    prob[wire] += p

        precision = self.config.probability_precision
        self.prob = [round(p, precision) for p in prob]
        return list(self.prob)

    def probability(self, wire: int) -> float:
        return self.probabilities()[wire]

    # ── inspection ───────────────────────────────────────────────────

    def amplitude(self, index: int) -> complex:
        return (self.state or {}).get(index, 0j)

    def state_vector(self) -> np.ndarray:
        """Dense copy of the state (2^n amplitudes)."""
        return sparse.to_dense(self.state or {}, self.num_qubits)

    def state_as_string(self, only_possible: bool = False) -> str:
        """One line per amplitude: `` re±im i|bits⟩<TAB>probability%``."""
        if self.state is None:
            return "Error: circuit is not initialized. Please call init_state() or run() method."

        precision = self.config.display_precision
        indices = sorted(self.state) if only_possible else range(self.num_amplitudes())
        lines = []
        for i in indices:
            amp = self.state.get(i, 0j)
            m = round(abs(amp) ** 2 * 100, 2)
            if not only_possible or m:
                lines.append(f"{format_complex(amp, precision)}|{i:0{self.num_qubits}b}⟩\t{m:g}%")
        return "\n".join(lines)

    def print(self, only_possible: bool = False) -> None:
        print(self.state_as_string(only_possible))

    # ── classical registers ──────────────────────────────────────────

    def get_creg_value(self, name: str) -> int:
        return self.cregs.value(name)

    def get_creg_bit(self, name: str, bit: int) -> int:
        return self.cregs.get_bit(name, bit)

    def set_creg_bit(self, name: str, bit: int, value) -> None:
        self.cregs.set_bit(name, bit, value)

    def creg_base(self, name: str) -> int:
        return self.cregs.base(name)

    def creg_total_bits(self) -> int:
        return self.cregs.total_bits()
