"""Benchmark: sparse transform throughput on dense and sparse states."""
from __future__ import annotations

import time

from qu_engine.circuit.grid import Circuit
from qu_engine.config import SimulatorConfig
from qu_engine.kernel import gates as gmod
from qu_engine.kernel import sparse
from qu_engine.utils.logging_config import get_logger, setup_logging

log = get_logger(__name__)


def _uniform_state(n: int):
    """H on every wire: all 2^n amplitudes populated."""
    state, bits = {0: 1 + 0j}, 0
    H = gmod.gate_matrix("h")
    for q in range(n):
        state, bits = sparse.apply_transform(state, bits, H, [q], n)
    return state, bits


def _bench(n: int, gate_name: str, wires: list[int], dense: bool, reps: int = 5) -> float:
    U = gmod.gate_matrix(gate_name)
    state, bits = _uniform_state(n) if dense else ({0: 1 + 0j}, 0)
    t0 = time.perf_counter()
    for _ in range(reps):
        state, bits = sparse.apply_transform(state, bits, U, wires, n)
    dt = time.perf_counter() - t0
    return reps / dt  # gates / s


def bench_transform(n: int = 12):
    print(f"num_qubits = {n}")
    print(f"{'state':<8} {'gate':<8} {'gates/s':>10}")
    print("-" * 28)
    for dense in (False, True):
        label = "dense" if dense else "sparse"
        for g, wires in [("h", [0]), ("x", [n - 1]), ("cx", [0, n - 1]), ("ccx", [0, 1, 2])]:
            rate = _bench(n, g, wires, dense)
            print(f"{label:<8} {g:<8} {rate:>10.1f}")
    print()


def bench_run(n: int, config: SimulatorConfig | None = None) -> dict:
    """Full ``Circuit.run`` of an n-qubit QFT; returns the simulator stats."""
    c = Circuit(n)
    for j in range(n):
        c.add_gate("h", -1, [j])
        for k in range(j + 1, n):
            c.add_gate("cu1", -1, [k, j], {"params": {"lambda": f"pi / 2^{k - j}"}})
    sim = c.run(config=config)
    log.info(
        "qft(%d): %d gates, %d amplitudes, %.4fs",
        n, sim.stats["gates"], len(sim.state), sim.stats["duration"],
    )
    return sim.stats


if __name__ == "__main__":
    cfg = SimulatorConfig.from_env()
    setup_logging(cfg.log_level)
    for e in [8, 10, 12]:
        bench_transform(e)
        bench_run(e, cfg)
