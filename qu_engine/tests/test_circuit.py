"""Circuit grid: placement, lookup, removal, registers and snapshots."""
import logging

import pytest

from qu_engine.circuit.cells import GateOptions
from qu_engine.circuit.grid import Circuit
from qu_engine.circuit.io import validate_snapshot
from qu_engine.errors import UnknownRegisterError
from qu_engine.tests.fixtures.circuits import bell_2q, build, conditional_flip, ghz, rotation_body


def _grid_names(c):
    return [[cell.name if cell else None for cell in row] for row in c.gates]


def test_new_circuit_is_empty():
    c = Circuit(3)
    assert c.num_qubits == 3
    assert c.num_cols() == 0
    assert c.num_amplitudes() == 8
    assert c.num_gates() == 0


def test_auto_placement_packs_columns():
    c = build(3, [("h", -1, [0]), ("h", -1, [1]), ("h", -1, [2]), ("cx", -1, [0, 1]), ("x", -1, [2])])
    assert _grid_names(c) == [["h", "cx"], ["h", "cx"], ["h", "x"]]


def test_auto_placement_respects_straddled_wires():
    c = build(3, [("cx", -1, [0, 2]), ("x", -1, [1])])
    # x on wire 1 cannot share a column with a gate spanning wires 0..2
    assert c.num_cols() == 2
    assert c.get_gate_at(1, 1).name == "x"


def test_auto_placement_goes_after_last_conflict():
    c = build(2, [("x", -1, [0]), ("x", -1, [0]), ("h", -1, [1])])
    # h fills the first free column on wire 1
    assert c.get_gate_at(0, 1).name == "h"
    c.add_gate("cx", -1, [1, 0])
    assert c.get_gate_at(2, 0).name == "cx"


def test_multi_wire_cells_share_id_and_number_connectors():
    c = Circuit(3)
    placed = c.add_gate("ccx", 0, [2, 0, 1])
    cells = [c.gates[w][0] for w in (2, 0, 1)]
    assert {cell.id for cell in cells} == {placed.id}
    assert [cell.connector for cell in cells] == [0, 1, 2]
    got = c.get_gate_at(0, 1)
    assert got.wires == [2, 0, 1]
    assert got.connector == 2
    assert got.name == "ccx"


def test_get_gate_at_misses():
    c = bell_2q()
    assert c.get_gate_at(5, 0) is None
    assert c.get_gate_at(0, 1) is None
    assert c.get_gate_at(0, 7) is None


def test_grid_stays_rectangular_and_grows():
    c = Circuit(1)
    c.add_gate("x", 3, [2])
    assert c.num_qubits == 3
    assert all(len(row) == 4 for row in c.gates)
    assert c.get_gate_at(3, 2).name == "x"


def test_remove_gate_clears_every_cell():
    c = ghz(3)
    c.remove_gate(1, 1)
    assert c.get_gate_at(1, 0) is None
    assert c.get_gate_at(1, 1) is None
    assert c.num_gates() == 2
    c.remove_gate(9, 0)  # nothing there
    assert c.num_gates() == 2


def test_explicit_column_evicts_overlapping_gate(caplog):
    c = Circuit(3)
    c.add_gate("cx", 0, [0, 2])
    with caplog.at_level(logging.WARNING, logger="qu_engine"):
        c.add_gate("h", 0, [1])
    assert "Replacing gate 'cx'" in caplog.text
    assert c.get_gate_at(0, 0) is None
    assert c.get_gate_at(0, 2) is None
    assert c.get_gate_at(0, 1).name == "h"


def test_explicit_column_keeps_disjoint_gates():
    c = Circuit(3)
    c.add_gate("x", 0, [0])
    c.add_gate("x", 0, [2])
    assert c.num_gates() == 2


@pytest.mark.parametrize("wires", [[], [0, 0], [-1], [0.5]])
def test_add_gate_rejects_bad_wires(wires):
    with pytest.raises(ValueError):
        Circuit(2).add_gate("x", -1, wires)


def test_is_empty_cell():
    c = Circuit(3)
    c.add_gate("cx", 0, [0, 2])
    assert not c.is_empty_cell(0, 0)
    assert not c.is_empty_cell(0, 1)  # straddled
    assert c.is_empty_cell(1, 1)

    c = Circuit(3)
    c.add_measure(0, "c", 0)
    # measurement blocks its whole column
    assert not c.is_empty_cell(0, 2)


def test_conditional_gate_goes_after_measurement():
    c = conditional_flip()
    assert c.get_gate_at(0, 0).name == "x"
    assert c.get_gate_at(1, 0).name == "measure"
    assert c.get_gate_at(2, 1).name == "x"
    assert c.get_gate_at(2, 1).options.condition.value == 1


def test_last_non_empty_place():
    c = bell_2q()
    assert c.last_non_empty_place([0], False) == 1
    c = Circuit(3)
    c.add_gate("x", 0, [2])
    assert c.last_non_empty_place([0], False) == -1
    assert c.last_non_empty_place([0], True) == 0


def test_add_measure_creates_register():
    c = Circuit(2)
    placed = c.add_measure(1, "out", 2)
    assert placed.options.creg.name == "out"
    assert placed.options.creg.bit == 2
    assert c.cregs["out"] == [0, 0, 0]


def test_options_are_copied_into_cells():
    opts = {"params": {"theta": "pi / 2"}}
    c = Circuit(1)
    c.add_gate("rx", -1, [0], opts)
    opts["params"]["theta"] = "0"
    assert c.get_gate_at(0, 0).options.params == {"theta": "pi / 2"}


def test_unknown_option_key_rejected():
    with pytest.raises(ValueError, match="unknown gate options"):
        Circuit(1).add_gate("x", -1, [0], {"colour": "red"})


def test_condition_without_register_is_dropped():
    opts = GateOptions.from_value({"condition": {"creg": "", "value": 1}})
    assert opts.condition is None


# ── classical registers ──────────────────────────────────────────────

def test_registers_value_base_and_total():
    c = Circuit(1)
    c.create_creg("a", 2)
    c.create_creg("b", 3)
    c.set_creg_bit("b", 0, 1)
    c.set_creg_bit("b", 2, 1)
    assert c.get_creg_value("b") == 5
    assert c.get_creg_bit("b", 1) == 0
    assert c.creg_base("a") == 0
    assert c.creg_base("b") == 2
    assert c.creg_total_bits() == 5


def test_set_bit_grows_and_creates():
    c = Circuit(1)
    c.set_creg_bit("new", 3, True)
    assert c.cregs["new"] == [0, 0, 0, 1]
    assert c.get_creg_value("new") == 8


@pytest.mark.parametrize("bit", ["1", 1.0, None, -1, True])
def test_set_bit_rejects_non_integer_index(bit):
    with pytest.raises(TypeError):
        Circuit(1).set_creg_bit("c", bit, 1)


def test_unknown_register_errors():
    c = Circuit(1)
    with pytest.raises(UnknownRegisterError):
        c.get_creg_value("missing")
    with pytest.raises(UnknownRegisterError):
        c.creg_base("missing")
    with pytest.raises(UnknownRegisterError):
        c.get_creg_bit("missing", 0)


def test_get_bit_out_of_range():
    c = Circuit(1)
    c.create_creg("c", 2)
    with pytest.raises(IndexError):
        c.get_creg_bit("c", 2)


def test_register_clone_is_independent():
    c = Circuit(1)
    c.create_creg("c", 1)
    other = c.cregs.clone()
    other.set_bit("c", 0, 1)
    assert c.get_creg_value("c") == 0


# ── snapshots ────────────────────────────────────────────────────────

def test_save_load_round_trip():
    c = conditional_flip()
    c.add_gate("rx", -1, [1], {"params": {"theta": "pi / 3"}})
    snap = c.save()
    again = Circuit.from_snapshot(snap)
    assert again.save() == snap
    assert again.num_qubits == 2
    assert "c" in again.cregs  # recreated from the measurement's destination


def test_save_load_round_trip_keeps_custom_catalogue():
    c = Circuit(2)
    c.register_gate("bell", bell_2q(), description="Bell pair")
    c.register_gate("rot", rotation_body())
    c.add_gate("bell", -1, [0, 1])
    again = Circuit.from_snapshot(c.save())
    assert again.custom_gates == c.custom_gates
    assert again.get_gate_def("bell").description == "Bell pair"
    assert again.get_gate_def("rot").params == ("theta",)
    assert again.save() == c.save()


def test_register_gate_from_snapshot_keeps_description():
    snap = bell_2q().save()
    snap["description"] = "from file"
    c = Circuit(2)
    assert c.register_gate("bell", snap).description == "from file"
    assert c.register_gate("bell2", snap, description="override").description == "override"


def test_description_must_be_text():
    with pytest.raises(ValueError, match="description"):
        validate_snapshot({"number_of_qubits": 1, "description": 3})


def test_save_returns_independent_copy():
    c = bell_2q()
    snap = c.save()
    snap["gates"][0][0]["name"] = "x"
    assert c.get_gate_at(0, 0).name == "h"


def test_load_pads_ragged_rows():
    snap = {"number_of_qubits": 2, "gates": [[{"id": "a", "name": "x"}, None, {"id": "b", "name": "h"}]]}
    c = Circuit.from_snapshot(snap)
    assert all(len(row) == 3 for row in c.gates)
    assert c.get_gate_at(2, 0).name == "h"


@pytest.mark.parametrize("bad", [
    {"number_of_qubits": 0},
    {"number_of_qubits": 1, "gates": "nope"},
    {"number_of_qubits": 1, "gates": [[{"name": "x"}]]},
    {"number_of_qubits": 1, "gates": [[{"id": "a", "name": "x", "connector": -1}]]},
    {"number_of_qubits": 1, "params": [1]},
    {"number_of_qubits": 1, "extra": True},
])
def test_validate_snapshot_rejects(bad):
    with pytest.raises(ValueError):
        validate_snapshot(bad)


def test_register_gate_rejects_primitive_names():
    c = Circuit(2)
    with pytest.raises(ValueError, match="primitive"):
        c.register_gate("cx", bell_2q())
    with pytest.raises(ValueError, match="primitive"):
        c.register_gate("measure", bell_2q())


def test_get_gate_def():
    c = Circuit(2)
    c.register_gate("bell", bell_2q(), description="Bell pair")
    assert c.get_gate_def("h").name == "h"
    assert c.get_gate_def("bell").description == "Bell pair"
    assert c.get_gate_def("bell").num_wires == 2
    assert c.get_gate_def("nope") is None


def test_used_gates_after_decomposition():
    c = Circuit(3)
    c.register_gate("bell", bell_2q())
    c.add_gate("bell", -1, [1, 2])
    c.add_gate("x", -1, [0])
    assert sorted(c.used_gates()) == ["cx", "h", "x"]
    assert c.num_gates() == 2
    assert c.num_gates(decompose=True) == 3
