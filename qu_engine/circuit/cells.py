"""Value types stored in the circuit grid.

A logical gate instance spanning k wires is stored as k ``GateInstance``
cells in one column, sharing ``id`` and numbered by ``connector`` 0..k-1.
"""
from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Union

Params = Union[dict, list]


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class RegisterRef:
    """Classical destination ``name[bit]`` of a measurement."""
    name: str
    bit: int = 0

    def to_dict(self) -> dict:
        return {"name": self.name, "bit": self.bit}


@dataclass
class Condition:
    """Execute only when register ``creg`` currently equals ``value``."""
    creg: str
    value: int

    def to_dict(self) -> dict:
        return {"creg": self.creg, "value": self.value}


@dataclass
class GateOptions:
    params: Optional[Params] = None
    creg: Optional[RegisterRef] = None
    condition: Optional[Condition] = None

    @property
    def uses_cregs(self) -> bool:
        return self.creg is not None or self.condition is not None

    def clone(self) -> "GateOptions":
        return GateOptions(
            params=copy.deepcopy(self.params),
            creg=RegisterRef(self.creg.name, self.creg.bit) if self.creg else None,
            condition=Condition(self.condition.creg, self.condition.value) if self.condition else None,
        )

    def to_dict(self) -> dict:
        d: dict[str, Any] = {}
        if self.params is not None:
            d["params"] = copy.deepcopy(self.params)
        if self.creg is not None:
            d["creg"] = self.creg.to_dict()
        if self.condition is not None:
            d["condition"] = self.condition.to_dict()
        return d

    @classmethod
    def from_value(cls, value: Union["GateOptions", Mapping[str, Any], None]) -> "GateOptions":
        """Accept GateOptions, an options dict, or None."""
        if value is None:
            return cls()
        if isinstance(value, GateOptions):
            return value.clone()
        if not isinstance(value, Mapping):
            raise ValueError(f"options must be a dict or GateOptions, got {type(value).__name__}")
        unknown = set(value) - {"params", "creg", "condition"}
        if unknown:
            raise ValueError(f"unknown gate options {sorted(unknown)}")

        creg = value.get("creg")
        if creg is not None and not isinstance(creg, RegisterRef):
            if not isinstance(creg, Mapping) or "name" not in creg:
                raise ValueError(f"creg option must be {{'name', 'bit'}}, got {creg!r}")
            creg = RegisterRef(creg["name"], creg.get("bit", 0))
        cond = value.get("condition")
        if cond is not None and not isinstance(cond, Condition):
            if not isinstance(cond, Mapping) or "value" not in cond:
                raise ValueError(f"condition option must be {{'creg', 'value'}}, got {cond!r}")
            cond = Condition(cond.get("creg"), cond["value"])
        # a condition without register name is no condition
        if cond is not None and not cond.creg:
            cond = None
        return cls(params=copy.deepcopy(value.get("params")), creg=creg, condition=cond)


@dataclass
class GateInstance:
    """One grid cell of a (possibly multi-wire) gate instance."""
    id: str
    name: str
    connector: int = 0
    options: GateOptions = field(default_factory=GateOptions)

    def clone(self) -> "GateInstance":
        return GateInstance(self.id, self.name, self.connector, self.options.clone())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "connector": self.connector,
            "options": self.options.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "GateInstance":
        return cls(
            id=str(d["id"]),
            name=d["name"],
            connector=int(d.get("connector", 0)),
            options=GateOptions.from_value(d.get("options")),
        )


@dataclass
class PlacedGate(GateInstance):
    """A gate instance read back from the grid, with all of its wires.

    ``wires[c]`` is the wire holding connector ``c``.
    """
    wires: list[int] = field(default_factory=list)

    @property
    def span(self) -> tuple[int, int]:
        return min(self.wires), max(self.wires)

    def straddles(self, wire: int) -> bool:
        lo, hi = self.span
        return lo < wire < hi

    @classmethod
    def from_cell(cls, cell: GateInstance, wires: Sequence[int]) -> "PlacedGate":
        return cls(cell.id, cell.name, cell.connector, cell.options.clone(), list(wires))
