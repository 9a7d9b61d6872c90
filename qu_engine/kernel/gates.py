"""Gate catalogue and concrete matrix evaluation.

Convention: a k-wire gate is a 2^k × 2^k matrix in *big-endian* sub-space
order, i.e. ``wires[0]`` of the placed instance is the most significant bit
of the row / column index:

    2-wire gate on wires [a, b]:
      row/col 0 → (a=0, b=0)
      row/col 1 → (a=0, b=1)
      row/col 2 → (a=1, b=0)
      row/col 3 → (a=1, b=1)

Matrix template entries are numbers or expression strings over the gate's
formal ``params`` (see ``qu_engine.kernel.expr``).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Sequence, Union

import numpy as np

from qu_engine.errors import ExpressionError
from qu_engine.kernel import expr

MEASURE = "measure"

Entry = Union[int, float, complex, str]


@dataclass(frozen=True)
class GateDefinition:
    name: str
    params: tuple[str, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class PrimitiveGate(GateDefinition):
    """Catalogue entry with a (possibly parametric) matrix template."""
    matrix: tuple[tuple[Entry, ...], ...] = ()
    drawing_info: Mapping[str, Any] = field(default_factory=dict, compare=False)
    export_info: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @property
    def num_wires(self) -> int:
        return max(len(self.matrix), 1).bit_length() - 1


@dataclass(frozen=True)
class CustomGate(GateDefinition):
    """Named sub-circuit, inlined by the decomposer before simulation."""
    body: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @property
    def num_wires(self) -> int:
        return self.body.get("number_of_qubits", 0)


# ── catalogue ────────────────────────────────────────────────────────

_S2 = "1 / sqrt(2)"
_NS2 = "-1 / sqrt(2)"
_HALF_P = "0.5 * (1 + i)"
_HALF_M = "0.5 * (1 - i)"


def _phase(angle: str) -> str:
    return f"exp(i * {angle})"


def _controlled(rows):
    """Template of a gate with one extra control wire in front."""
    m = len(rows)
    out = []
    for r in range(2 * m):
        row = [0] * (2 * m)
        if r < m:
            row[r] = 1
        else:
            row[m:] = rows[r - m]
        out.append(row)
    return out


_X = [[0, 1], [1, 0]]
_Y = [[0, "-i"], ["i", 0]]
_Z = [[1, 0], [0, -1]]
_H = [[_S2, _S2], [_S2, _NS2]]
_SRN = [[_HALF_P, _HALF_M], [_HALF_M, _HALF_P]]
_RX = [["cos(theta / 2)", "-i * sin(theta / 2)"], ["-i * sin(theta / 2)", "cos(theta / 2)"]]
_RY = [["cos(theta / 2)", "-sin(theta / 2)"], ["sin(theta / 2)", "cos(theta / 2)"]]
_U2 = [
    [_S2, "-exp(i * lambda) / sqrt(2)"],
    ["exp(i * phi) / sqrt(2)", "exp(i * lambda + i * phi) / sqrt(2)"],
]
_U3 = [
    ["cos(theta / 2)", "-exp(i * lambda) * sin(theta / 2)"],
    ["exp(i * phi) * sin(theta / 2)", "exp(i * lambda + i * phi) * cos(theta / 2)"],
]
_SWAP = [[1, 0, 0, 0], [0, 0, 1, 0], [0, 1, 0, 0], [0, 0, 0, 1]]
_SRSWAP = [[1, 0, 0, 0], [0, _HALF_P, _HALF_M, 0], [0, _HALF_M, _HALF_P, 0], [0, 0, 0, 1]]


def _p(angle: str):
    return [[1, 0], [0, _phase(angle)]]


def _gate(name, description, matrix, params=(), label=None, connectors=None, quil=None):
    n = len(matrix).bit_length() - 1
    return PrimitiveGate(
        name=name,
        params=tuple(params),
        description=description,
        matrix=tuple(tuple(row) for row in matrix),
        drawing_info=MappingProxyType({
            "connectors": tuple(connectors or ("box",) * n),
            "label": label if label is not None else name.upper(),
        }),
        export_info=MappingProxyType({"quil": quil} if quil else {}),
    )


_CTRL = ("dot",)

_CATALOGUE = [
    _gate("id", "Single qubit identity gate", [[1, 0], [0, 1]], label="...", quil={"name": "I"}),
    _gate("x", 'Pauli X (PI rotation over X-axis) aka "NOT" gate', _X, connectors=("not",), quil={"name": "X"}),
    _gate("y", "Pauli Y (PI rotation over Y-axis)", _Y, quil={"name": "Y"}),
    _gate("z", "Pauli Z (PI rotation over Z-axis)", _Z, quil={"name": "Z"}),
    _gate("h", "Hadamard gate", _H, quil={"name": "H"}),
    _gate("srn", "Square root of NOT", _SRN, label=""),
    _gate("r2", 'PI/2 rotation over Z-axis aka "Phase PI/2"', _p("pi / 2"), quil={"replacement": {"name": "s"}}),
    _gate("r4", 'PI/4 rotation over Z-axis aka "Phase PI/4"', _p("pi / 4"), quil={"replacement": {"name": "t"}}),
    _gate("r8", 'PI/8 rotation over Z-axis aka "Phase PI/8"', _p("pi / 8"),
          quil={"replacement": {"name": "rz", "params": {"phi": "pi/8"}}}),
    _gate("rx", "Rotation around the X-axis by given angle", _RX, ["theta"], quil={"name": "RX", "params": ["theta"]}),
    _gate("ry", "Rotation around the Y-axis by given angle", _RY, ["theta"], quil={"name": "RY", "params": ["theta"]}),
    _gate("rz", "Rotation around the Z-axis by given angle", _p("phi"), ["phi"], quil={"name": "RZ", "params": ["phi"]}),
    _gate("u1", "1-parameter 0-pulse single qubit gate", _p("lambda"), ["lambda"],
          quil={"name": "PHASE", "params": ["lambda"]}),
    _gate("u2", "2-parameter 1-pulse single qubit gate", _U2, ["phi", "lambda"],
          quil={"name": "u2", "params": ["phi", "lambda"]}),
    _gate("u3", "3-parameter 2-pulse single qubit gate", _U3, ["theta", "phi", "lambda"],
          quil={"name": "u3", "params": ["theta", "phi", "lambda"]}),
    _gate("s", "PI/2 rotation over Z-axis (synonym for `r2`)", _p("pi / 2"), quil={"name": "S"}),
    _gate("t", "PI/4 rotation over Z-axis (synonym for `r4`)", _p("pi / 4"), quil={"name": "T"}),
    _gate("sdg", "(-PI/2) rotation over Z-axis", _p("-pi / 2"),
          quil={"replacement": {"name": "rz", "params": {"phi": "-pi/2"}}}),
    _gate("tdg", "(-PI/4) rotation over Z-axis", _p("-pi / 4"),
          quil={"replacement": {"name": "rz", "params": {"phi": "-pi/4"}}}),
    _gate("swap", "Swaps the state of two qubits", _SWAP, connectors=("x", "x"), quil={"name": "SWAP"}),
    _gate("srswap", "Square root of swap", _SRSWAP, label="√SWAP"),
    _gate("cx", 'Controlled NOT (controlled Pauli X) aka "CNOT"', _controlled(_X), label="X",
          connectors=_CTRL + ("not",), quil={"name": "CNOT"}),
    _gate("cy", "Controlled Y gate (controlled rotation over Y-axis by PI)", _controlled(_Y), label="Y",
          connectors=_CTRL + ("box",)),
    _gate("cz", "Controlled Z gate (controlled rotation over Z-axis by PI)", _controlled(_Z), label="Z",
          connectors=_CTRL + ("dot",), quil={"name": "CZ"}),
    _gate("ch", "Controlled Hadamard gate", _controlled(_H), label="H", connectors=_CTRL + ("box",)),
    _gate("csrn", "Controlled square root of NOT", _controlled(_SRN), label="√NOT", connectors=_CTRL + ("box",)),
    _gate("cr2", "Controlled PI/2 rotation over Z-axis", _controlled(_p("pi / 2")), label="R2",
          connectors=_CTRL + ("box",), quil={"replacement": {"name": "cu1", "params": {"lambda": "pi/2"}}}),
    _gate("cr4", "Controlled PI/4 rotation over Z-axis", _controlled(_p("pi / 4")), label="R4",
          connectors=_CTRL + ("box",), quil={"replacement": {"name": "cu1", "params": {"lambda": "pi/4"}}}),
    _gate("cr8", "Controlled PI/8 rotation over Z-axis", _controlled(_p("pi / 8")), label="R8",
          connectors=_CTRL + ("box",), quil={"replacement": {"name": "cu1", "params": {"lambda": "pi/8"}}}),
    _gate("crx", "Controlled rotation around the X-axis by given angle", _controlled(_RX), ["theta"],
          label="RX", connectors=_CTRL + ("box",)),
    _gate("cry", "Controlled rotation around the Y-axis by given angle", _controlled(_RY), ["theta"],
          label="RY", connectors=_CTRL + ("box",)),
    _gate("crz", "Controlled rotation around Z-axis by given angle", _controlled(_p("phi")), ["phi"],
          label="RZ", connectors=_CTRL + ("box",), quil={"name": "CPHASE", "params": ["phi"]}),
    _gate("cu1", "Controlled 1-parameter 0-pulse single qubit gate", _controlled(_p("lambda")), ["lambda"],
          label="U1", connectors=_CTRL + ("box",), quil={"name": "CPHASE", "params": ["lambda"]}),
    _gate("cu2", "Controlled 2-parameter 1-pulse single qubit gate", _controlled(_U2), ["phi", "lambda"],
          label="U2", connectors=_CTRL + ("box",), quil={"name": "cu2", "params": ["phi", "lambda"]}),
    _gate("cu3", "Controlled 3-parameter 2-pulse single qubit gate", _controlled(_U3), ["theta", "phi", "lambda"],
          label="U3", connectors=_CTRL + ("box",), quil={"name": "cu3", "params": ["theta", "phi", "lambda"]}),
    _gate("cs", "Controlled PI/2 rotation over Z-axis (synonym for `cr2`)", _controlled(_p("pi / 2")),
          label="S", connectors=_CTRL + ("box",)),
    _gate("ct", "Controlled PI/4 rotation over Z-axis (synonym for `cr4`)", _controlled(_p("pi / 4")),
          label="T", connectors=_CTRL + ("box",)),
    _gate("csdg", "Controlled (-PI/2) rotation over Z-axis", _controlled(_p("-pi / 2")),
          label="S†", connectors=_CTRL + ("box",)),
    _gate("ctdg", "Controlled (-PI/4) rotation over Z-axis", _controlled(_p("-pi / 4")),
          label="T†", connectors=_CTRL + ("box",)),
    _gate("ccx", 'Toffoli aka "CCNOT" gate', _controlled(_controlled(_X)), label="X",
          connectors=_CTRL * 2 + ("not",), quil={"name": "CCNOT"}),
    _gate("cswap", 'Controlled swap aka "Fredkin" gate', _controlled(_SWAP), label="",
          connectors=_CTRL + ("x", "x"), quil={"name": "CSWAP"}),
    _gate("csrswap", "Controlled square root of swap", _controlled(_SRSWAP), label="√SWAP",
          connectors=_CTRL + ("box", "box")),
]

BASIC_GATES: Mapping[str, PrimitiveGate] = MappingProxyType({g.name: g for g in _CATALOGUE})


def is_primitive(name: str) -> bool:
    return name in BASIC_GATES


def get_gate(name: str) -> PrimitiveGate | None:
    return BASIC_GATES.get(name)


# ── concrete matrices ────────────────────────────────────────────────

def bind_params(gate: GateDefinition, params: Mapping[str, Any] | Sequence[Any] | None) -> dict[str, complex | None]:
    """Evaluate actual parameters and bind them to the gate's formal names.

    ``params`` is a mapping ``formal → value`` or, for backward
    compatibility, a list bound positionally.  Values are numbers or
    expression text over the built-in constants.
    """
    params = params if params is not None else {}
    env: dict[str, complex | None] = {}
    for index, name in enumerate(gate.params):
        if isinstance(params, Mapping):
            value = params.get(name)
        else:
            value = params[index] if len(params) > index else None
        env[name] = expr.evaluate(value) if value is not None else None
    return env


def get_raw_gate(gate: PrimitiveGate, options: Any = None) -> np.ndarray:
    """Concrete complex matrix of ``gate`` for the parameters in ``options``.

    ``options`` may be a ``GateOptions``, an options dict with a ``params``
    key, or None.
    """
    if options is None:
        params = None
    elif isinstance(options, Mapping):
        params = options.get("params")
    else:
        params = getattr(options, "params", None)

    env: dict[str, complex | None] | None = None
    dim = len(gate.matrix)
    raw = np.zeros((dim, dim), dtype=np.complex128)
    for r, row in enumerate(gate.matrix):
        for c, item in enumerate(row):
            if isinstance(item, str):
                if env is None:
                    env = bind_params(gate, params)
                try:
                    raw[r, c] = expr.parse(item).evaluate(env)
                except ExpressionError as exc:
                    raise ExpressionError(f"gate '{gate.name}': {exc}") from exc
            else:
                raw[r, c] = item
    return raw


def gate_matrix(name: str, params: Mapping[str, Any] | Sequence[Any] | None = None) -> np.ndarray:
    """Return the unitary matrix of a primitive gate by name."""
    gate = BASIC_GATES.get(name)
    if gate is None:
        raise ValueError(f"unknown gate {name}")
    return get_raw_gate(gate, {"params": params})
