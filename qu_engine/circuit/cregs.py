"""Classical registers: named, growable bit arrays in declaration order.

The integer value of a register is little-endian (``sum bit[i] * 2**i``).
The *base* of a register is its bit offset in the concatenation of all
registers in declaration order.
"""
from __future__ import annotations

import numbers
from typing import Iterator

from qu_engine.errors import UnknownRegisterError


class ClassicalRegisters:

    def __init__(self):
        self._regs: dict[str, list[int]] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._regs

    def __iter__(self) -> Iterator[str]:
        return iter(self._regs)

    def __len__(self) -> int:
        return len(self._regs)

    def __getitem__(self, name: str) -> list[int]:
        return list(self._require(name, "__getitem__"))

    def as_dict(self) -> dict[str, list[int]]:
        return {name: list(bits) for name, bits in self._regs.items()}

    def _require(self, name: str, caller: str) -> list[int]:
        bits = self._regs.get(name)
        if bits is None:
            raise UnknownRegisterError(f'"{caller}": unknown register "{name}"')
        return bits

    # ── lifecycle ────────────────────────────────────────────────────

    def create(self, name: str, length: int = 1) -> None:
        """(Re)declare ``name`` with ``length`` zero bits (at least one)."""
        self._regs[name] = [0] * max(int(length or 1), 1)

    def set_bit(self, name: str, bit, value) -> None:
        """Set ``name[bit]``, creating and growing the register as needed."""
        if isinstance(bit, bool) or not isinstance(bit, numbers.Integral):
            raise TypeError(
                f'invalid "cbit" argument to "set_bit": expected integer, got {type(bit).__name__}'
            )
        bit = int(bit)
        if bit < 0:
            raise TypeError(f'invalid "cbit" argument to "set_bit": negative index {bit}')
        bits = self._regs.setdefault(name, [])
        while bit >= len(bits):
            bits.append(0)
        bits[bit] = 1 if value else 0

    def get_bit(self, name: str, bit: int) -> int:
        bits = self._require(name, "get_bit")
        if isinstance(bit, bool) or not isinstance(bit, numbers.Integral) or not 0 <= bit < len(bits):
            raise IndexError(f'"get_bit": bit "{bit}" not found in register "{name}"')
        return bits[int(bit)]

    def base(self, name: str) -> int:
        self._require(name, "base")
        offset = 0
        for reg_name, bits in self._regs.items():
            if reg_name == name:
                break
            offset += len(bits)
        return offset

    def total_bits(self) -> int:
        return sum(len(bits) for bits in self._regs.values())

    def value(self, name: str) -> int:
        bits = self._require(name, "value")
        return sum(1 << i for i, b in enumerate(bits) if b)

    def reset(self) -> None:
        """Zero every bit, keeping register lengths."""
        for name, bits in self._regs.items():
            self._regs[name] = [0] * len(bits)

    def clone(self) -> "ClassicalRegisters":
        other = ClassicalRegisters()
        other._regs = self.as_dict()
        return other

    def __repr__(self) -> str:
        return f"ClassicalRegisters({self._regs!r})"
