"""A naive register allocator for loading operands into ARM32 registers.

Values handed to the allocator are duck typed: each carries a mutable
``load_reg_id`` attribute, -1 while the value holds no load register.
"""

from __future__ import annotations

from typing import Any

from minic.platform import MAX_USABLE_REG_NUM


class SimpleRegisterAllocator:
    """Hands out registers r0-r10, spilling the oldest holder when all are taken."""

    def __init__(self) -> None:
        self._occupied: set[int] = set()
        self._used: set[int] = set()
        self._reg_values: list[Any] = []

    @property
    def occupied(self) -> frozenset[int]:
        """Registers currently taken."""
        return frozenset(self._occupied)

    @property
    def used(self) -> frozenset[int]:
        """Every register that has been taken at some point."""
        return frozenset(self._used)

    @property
    def reg_values(self) -> tuple[Any, ...]:
        """Values holding a register, oldest first."""
        return tuple(self._reg_values)

    @staticmethod
    def _check(no: int) -> None:
        if not 0 <= no < MAX_USABLE_REG_NUM:
            raise ValueError(f"register {no} is outside r0-r{MAX_USABLE_REG_NUM - 1}")

    def _mark(self, no: int) -> None:
        self._occupied.add(no)
        self._used.add(no)

    def allocate(self, var=None, no=-1):
        """Give var a register, preferring no, and return the register number.

        A value that already holds a register keeps it. When every register is
        taken, the value that has held its register longest gives it up.
        """
        if var is not None and var.load_reg_id != -1:
            return var.load_reg_id

        if no != -1:
            self._check(no)

        if no != -1 and no not in self._occupied:
            regno = no
        else:
            regno = next(
                (k for k in range(MAX_USABLE_REG_NUM) if k not in self._occupied), -1
            )

        if regno != -1:
            self._mark(regno)
        else:
            if not self._reg_values:
                raise RuntimeError("no register is free and none can be spilled")
            oldest = self._reg_values.pop(0)
            regno = oldest.load_reg_id
            oldest.load_reg_id = -1

        if var is not None:
            var.load_reg_id = regno
            self._reg_values.append(var)

        return regno

    def occupy(self, no):
        """Take register no, spilling whatever value holds it."""
        self._check(no)
        if no in self._occupied:
            self.free_register(no)
        self._mark(no)

    def free_value(self, var):
        """Release the register held by var, if any."""
        if var is not None and var.load_reg_id != -1:
            self._occupied.discard(var.load_reg_id)
            self._reg_values.remove(var)
            var.load_reg_id = -1

    def free_register(self, no):
        """Release register no and detach the value holding it; -1 is ignored."""
        if no == -1:
            return
        self._occupied.discard(no)
        holder = next((val for val in self._reg_values if val.load_reg_id == no), None)
        if holder is not None:
            holder.load_reg_id = -1
            self._reg_values.remove(holder)