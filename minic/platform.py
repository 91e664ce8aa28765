"""ARM32 platform facts: register names, immediate and displacement rules."""

from __future__ import annotations

from dataclasses import dataclass

MAX_REG_NUM = 16
"""Number of ARM32 core registers."""

MAX_USABLE_REG_NUM = 11
"""General purpose registers r0-r10 available to the allocator."""

TMP_REG_NO = 10
"""Register borrowed for large immediates and addresses."""

FP_REG_NO = 11
SP_REG_NO = 13
LX_REG_NO = 14

REG_NAMES: tuple[str, ...] = (
    "r0",
    "r1",
    "r2",
    "r3",
    "r4",
    "r5",
    "r6",
    "r7",
    "r8",
    "r9",
    "r10",
    "fp",
    "ip",
    "sp",
    "lr",
    "pc",
)

_MASK32 = 0xFFFFFFFF


@dataclass(eq=False)
class RegisterValue:
    """A value that lives permanently in a physical register."""

    name: str
    reg_id: int
    size: int = 4
    memory_addr: tuple[int, int] | None = None
    load_reg_id: int = -1


INT_REG_VAL: tuple[RegisterValue, ...] = tuple(
    RegisterValue(name, reg_id) for reg_id, name in enumerate(REG_NAMES)
)
"""One integer register value per physical register."""


def _rotate_left_two(num: int) -> int:
    return ((num << 2) | (num >> 30)) & _MASK32


def _is_rotated_byte(num: int) -> bool:
    value = num & _MASK32
    for _ in range(16):
        if value <= 0xFF:
            return True
        value = _rotate_left_two(value)
    return False


def const_expr(num: int) -> bool:
    """Return whether num, or its negation, is an ARM rotated 8-bit immediate."""
    return _is_rotated_byte(num) or _is_rotated_byte(-num)


def is_disp(num: int) -> bool:
    """Return whether num is a valid load/store displacement."""
    return -4096 < num < 4096


def is_reg(name: str) -> bool:
    """Return whether name is an ARM32 register name."""
    return name in REG_NAMES