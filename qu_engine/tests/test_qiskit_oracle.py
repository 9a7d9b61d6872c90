"""Compare the simulator against Qiskit Statevector on small circuits."""
import numpy as np
import pytest

try:
    from qiskit import QuantumCircuit
    from qiskit.quantum_info import Statevector
    HAS_QISKIT = True
except ImportError:
    HAS_QISKIT = False

from qu_engine.circuit.grid import Circuit


def _apply(qc, name, wires, params):
    """Mirror one of our gates onto a Qiskit circuit."""
    if name in ("h", "x", "y", "z", "s", "t", "sdg", "tdg", "swap", "cx", "cy", "cz", "ch", "ccx", "cswap"):
        getattr(qc, name)(*wires)
    elif name in ("rx", "ry"):
        getattr(qc, name)(params["theta"], *wires)
    elif name == "rz":
        qc.p(params["phi"], *wires)
    elif name == "cu1":
        qc.cp(params["lambda"], *wires)
    elif name == "u3":
        qc.u(params["theta"], params["phi"], params["lambda"], *wires)
    else:
        raise KeyError(name)


def _compare(n, ops, atol=1e-8):
    ours = Circuit(n)
    qc = QuantumCircuit(n)
    for name, wires, params in ops:
        ours.add_gate(name, -1, wires, {"params": params} if params else None)
        _apply(qc, name, wires, params)
    got = ours.run().state_vector()
    # Qiskit is little-endian; reversing the qubits gives our ordering
    ref = np.array(Statevector(qc.reverse_bits()).data)
    overlap = np.abs(np.vdot(ref, got))
    assert overlap > 1.0 - atol, f"overlap={overlap}"


@pytest.mark.skipif(not HAS_QISKIT, reason="qiskit not installed")
class TestQiskitDirect:
    def test_bell(self):
        _compare(2, [("h", [0], None), ("cx", [0, 1], None)])

    def test_x_on_q0_is_msb(self):
        _compare(3, [("x", [0], None)])

    def test_ghz4(self):
        ops = [("h", [0], None)] + [("cx", [i - 1, i], None) for i in range(1, 4)]
        _compare(4, ops)

    def test_qft3(self):
        ops = []
        for j in range(3):
            ops.append(("h", [j], None))
            for k in range(j + 1, 3):
                ops.append(("cu1", [k, j], {"lambda": np.pi / 2 ** (k - j)}))
        _compare(3, [("x", [2], None)] + ops)

    @pytest.mark.parametrize("n", [3, 4, 5])
    def test_random_circuits(self, n):
        rng = np.random.default_rng(n)
        ops = []
        for _ in range(4 * n):
            q = int(rng.integers(n))
            kind = int(rng.integers(4))
            if kind == 0:
                ops.append(("h", [q], None))
            elif kind == 1:
                ops.append(("ry", [q], {"theta": float(rng.uniform(0, np.pi))}))
            elif kind == 2:
                ops.append(("u3", [q], {
                    "theta": float(rng.uniform(0, np.pi)),
                    "phi": float(rng.uniform(0, np.pi)),
                    "lambda": float(rng.uniform(0, np.pi)),
                }))
            else:
                a, b = rng.choice(n, size=2, replace=False)
                ops.append(("cx", [int(a), int(b)], None))
        ops.append(("ccx", [0, 1, 2], None))
        _compare(n, ops)
