"""Gate catalogue: every matrix is unitary, parameters bind by name or position."""
import math

import numpy as np
import pytest

from qu_engine.circuit.cells import GateOptions
from qu_engine.errors import ExpressionError
from qu_engine.kernel import gates as gmod
from qu_engine.kernel.algebra import is_unitary, make_controlled

_ANGLES = {"theta": 0.7, "phi": -1.3, "lambda": 2.1}


@pytest.mark.parametrize("name", sorted(gmod.BASIC_GATES))
def test_every_gate_is_unitary(name):
    gate = gmod.BASIC_GATES[name]
    U = gmod.gate_matrix(name, {p: _ANGLES[p] for p in gate.params})
    assert U.shape == (1 << gate.num_wires, 1 << gate.num_wires)
    assert is_unitary(U)


def test_catalogue_is_read_only():
    with pytest.raises(TypeError):
        gmod.BASIC_GATES["foo"] = gmod.BASIC_GATES["x"]


def test_measure_is_not_a_catalogue_gate():
    assert not gmod.is_primitive(gmod.MEASURE)
    assert gmod.get_gate(gmod.MEASURE) is None


def test_known_matrices():
    s = 1 / math.sqrt(2)
    np.testing.assert_allclose(gmod.gate_matrix("h"), [[s, s], [s, -s]], atol=1e-12)
    np.testing.assert_allclose(gmod.gate_matrix("y"), [[0, -1j], [1j, 0]], atol=1e-12)
    np.testing.assert_allclose(gmod.gate_matrix("s"), np.diag([1, 1j]), atol=1e-12)
    np.testing.assert_allclose(gmod.gate_matrix("tdg"), np.diag([1, np.exp(-1j * np.pi / 4)]), atol=1e-12)
    np.testing.assert_allclose(
        gmod.gate_matrix("cx"),
        [[1, 0, 0, 0], [0, 1, 0, 0], [0, 0, 0, 1], [0, 0, 1, 0]],
    )


def test_controlled_templates_match_make_controlled():
    for cname, base in [("cx", "x"), ("cz", "z"), ("ch", "h"), ("cs", "s"), ("cswap", "swap")]:
        np.testing.assert_allclose(
            gmod.gate_matrix(cname), make_controlled(gmod.gate_matrix(base)), atol=1e-12
        )
    np.testing.assert_allclose(
        gmod.gate_matrix("ccx"), make_controlled(gmod.gate_matrix("cx")), atol=1e-12
    )
    angles = {"theta": 0.4, "phi": 0.9, "lambda": -0.2}
    np.testing.assert_allclose(
        gmod.gate_matrix("cu3", angles), make_controlled(gmod.gate_matrix("u3", angles)), atol=1e-12
    )


def test_synonyms_share_matrices():
    np.testing.assert_allclose(gmod.gate_matrix("r2"), gmod.gate_matrix("s"))
    np.testing.assert_allclose(gmod.gate_matrix("r4"), gmod.gate_matrix("t"))
    np.testing.assert_allclose(gmod.gate_matrix("cr2"), gmod.gate_matrix("cs"))


def test_srn_squared_is_x():
    U = gmod.gate_matrix("srn")
    np.testing.assert_allclose(U @ U, gmod.gate_matrix("x"), atol=1e-12)
    C = gmod.gate_matrix("csrn")
    np.testing.assert_allclose(C @ C, gmod.gate_matrix("cx"), atol=1e-12)


def test_negated_argument_stays_on_principal_branch():
    # lambda = -i * log(i) = pi / 2
    U = gmod.gate_matrix("u1", {"lambda": "-i * log(sqrt(-1))"})
    np.testing.assert_allclose(U, np.diag([1, 1j]), atol=1e-12)


def test_numpy_scalar_params():
    np.testing.assert_allclose(
        gmod.gate_matrix("rx", {"theta": np.int64(1)}),
        gmod.gate_matrix("rx", {"theta": 1.0}),
        atol=1e-12,
    )


def test_srswap_squared_is_swap():
    U = gmod.gate_matrix("srswap")
    np.testing.assert_allclose(U @ U, gmod.gate_matrix("swap"), atol=1e-12)


def test_u3_special_cases():
    np.testing.assert_allclose(
        gmod.gate_matrix("u3", {"theta": math.pi, "phi": 0, "lambda": math.pi}),
        gmod.gate_matrix("x"),
        atol=1e-12,
    )
    np.testing.assert_allclose(
        gmod.gate_matrix("u2", {"phi": 0, "lambda": math.pi}),
        gmod.gate_matrix("h"),
        atol=1e-12,
    )


def test_rx_pi_is_x_up_to_phase():
    U = gmod.gate_matrix("rx", {"theta": "pi"})
    np.testing.assert_allclose(U, -1j * gmod.gate_matrix("x"), atol=1e-12)


def test_named_and_positional_params_agree():
    named = gmod.gate_matrix("u3", {"theta": "pi/3", "phi": 0.5, "lambda": "-pi"})
    positional = gmod.gate_matrix("u3", ["pi/3", 0.5, "-pi"])
    np.testing.assert_allclose(named, positional, atol=1e-12)


def test_get_raw_gate_accepts_options_forms():
    gate = gmod.get_gate("rz")
    a = gmod.get_raw_gate(gate, GateOptions(params={"phi": "pi / 2"}))
    b = gmod.get_raw_gate(gate, {"params": {"phi": math.pi / 2}})
    np.testing.assert_allclose(a, b, atol=1e-12)
    np.testing.assert_allclose(a, gmod.gate_matrix("s"), atol=1e-12)
    assert a.dtype == np.complex128


def test_missing_param_raises():
    with pytest.raises(ExpressionError, match="gate 'rx'"):
        gmod.gate_matrix("rx")
    with pytest.raises(ExpressionError, match="unbound"):
        gmod.gate_matrix("u3", {"theta": 1.0, "phi": 0.0})


def test_bad_param_expression_raises():
    with pytest.raises(ExpressionError):
        gmod.gate_matrix("rx", {"theta": "pi +"})


def test_unknown_gate_raises():
    with pytest.raises(ValueError, match="unknown gate"):
        gmod.gate_matrix("nope")


def test_bind_params():
    gate = gmod.get_gate("u2")
    env = gmod.bind_params(gate, ["pi", None])
    assert abs(env["phi"] - math.pi) < 1e-12
    assert env["lambda"] is None
    assert gmod.bind_params(gmod.get_gate("x"), None) == {}


def test_drawing_info():
    assert gmod.get_gate("cx").drawing_info["connectors"] == ("dot", "not")
    assert gmod.get_gate("rx").drawing_info["label"] == "RX"
    assert gmod.get_gate("ccx").num_wires == 3
