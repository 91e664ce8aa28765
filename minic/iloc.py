"""ARM32 instruction sequences (ILOC) and their assembly text.

Values handed to the loading and storing helpers are duck typed. Every value
has ``name``, ``reg_id`` (-1 when it has no register) and ``memory_addr``
(a ``(base_reg_no, offset)`` pair, or ``None``). Integer constants also carry
``const_value``; global variables carry ``is_global = True``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TextIO

from minic.platform import FP_REG_NO, REG_NAMES, SP_REG_NO, const_expr, is_disp


@dataclass
class ArmInst:
    """A single ARM32 assembly line."""

    opcode: str
    result: str = ""
    arg1: str = ""
    arg2: str = ""
    cond: str = ""
    addition: str = ""
    dead: bool = False

    def replace(self, opcode, result="", arg1="", arg2="", cond="", addition=""):
        """Overwrite the instruction's contents."""
        self.opcode = opcode
        self.result = result
        self.arg1 = arg1
        self.arg2 = arg2
        self.cond = cond
        self.addition = addition

    def set_dead(self):
        """Mark the instruction as removed."""
        self.dead = True

    @property
    def is_label(self) -> bool:
        return self.result == ":"

    def render(self) -> str:
        """Return the assembly text, or an empty string for dead or empty lines."""
        if self.dead or not self.opcode:
            return ""
        text = self.opcode + self.cond
        if self.result:
            text += self.result if self.is_label else " " + self.result
        for part in (self.arg1, self.arg2, self.addition):
            if part:
                text += "," + part
        return text


def _is_constant(var: Any) -> bool:
    return getattr(var, "const_value", None) is not None


def _is_global(var: Any) -> bool:
    return bool(getattr(var, "is_global", False))


def _memory_addr(var: Any) -> tuple[int, int]:
    addr = getattr(var, "memory_addr", None)
    if addr is None:
        raise ValueError(f"value {getattr(var, 'name', var)!r} has no stack address")
    return addr


@dataclass
class ILocArm32:
    """An ordered list of ARM32 instructions being built for one function."""

    module: Any = None
    code: list[ArmInst] = field(default_factory=list)

    def _emit(self, *args: str) -> None:
        self.code.append(ArmInst(*args))

    def comment(self, text):
        """Emit an assembly comment."""
        self._emit("@", text)

    def to_str(self, num, flag=True):
        """Format a number, prefixed with '#' when it is an immediate."""
        return ("#" if flag else "") + str(num)

    def label(self, name):
        """Emit a label line."""
        self._emit(name, ":")

    def inst(self, op, rs, arg1="", arg2=""):
        """Emit a generic instruction with up to two source operands."""
        self._emit(op, rs, arg1, arg2)

    def load_imm(self, rs_reg_no, constant):
        """Load a 32-bit immediate with movw, plus movt when the high half is set."""
        reg = REG_NAMES[rs_reg_no]
        self._emit("movw", reg, "#:lower16:" + str(constant))
        if (constant >> 16) & 0xFFFF:
            self._emit("movt", reg, "#:upper16:" + str(constant))

    def load_symbol(self, rs_reg_no, name):
        """Load the address of a symbol."""
        reg = REG_NAMES[rs_reg_no]
        self._emit("movw", reg, "#:lower16:" + name)
        self._emit("movt", reg, "#:upper16:" + name)

    def load_base(self, rs_reg_no, base_reg_no, offset):
        """Emit ldr from base register plus offset."""
        rs_reg = REG_NAMES[rs_reg_no]
        base = REG_NAMES[base_reg_no]
        if is_disp(offset):
            if offset:
                base += "," + self.to_str(offset)
        else:
            self.load_imm(rs_reg_no, offset)
            base += "," + rs_reg
        self._emit("ldr", rs_reg, "[" + base + "]")

    def store_base(self, src_reg_no, base_reg_no, disp, tmp_reg_no):
        """Emit str to base register plus displacement."""
        base = REG_NAMES[base_reg_no]
        if is_disp(disp):
            if disp:
                base += "," + self.to_str(disp)
        else:
            self.load_imm(tmp_reg_no, disp)
            base += "," + REG_NAMES[tmp_reg_no]
        self._emit("str", REG_NAMES[src_reg_no], "[" + base + "]")

    def mov_reg(self, rs_reg_no, src_reg_no):
        """Emit a register to register move."""
        self._emit("mov", REG_NAMES[rs_reg_no], REG_NAMES[src_reg_no])

    def load_var(self, rs_reg_no, var):
        """Bring the value of var into the given register."""
        if _is_constant(var):
            self.load_imm(rs_reg_no, var.const_value)
        elif var.reg_id != -1:
            if var.reg_id != rs_reg_no:
                self._emit("mov", REG_NAMES[rs_reg_no], REG_NAMES[var.reg_id])
        elif _is_global(var):
            self.load_symbol(rs_reg_no, var.name)
            reg = REG_NAMES[rs_reg_no]
            self._emit("ldr", reg, "[" + reg + "]")
        else:
            base_reg_no, offset = _memory_addr(var)
            self.load_base(rs_reg_no, base_reg_no, offset)

    def lea_var(self, rs_reg_no, var):
        """Load the stack address of var into the given register."""
        base_reg_no, offset = _memory_addr(var)
        self.lea_stack(rs_reg_no, base_reg_no, offset)

    def store_var(self, src_reg_no, dest_var, tmp_reg_no):
        """Store a register into dest_var."""
        if dest_var.reg_id != -1:
            if src_reg_no != dest_var.reg_id:
                self._emit("mov", REG_NAMES[dest_var.reg_id], REG_NAMES[src_reg_no])
        elif _is_global(dest_var):
            self.load_symbol(tmp_reg_no, dest_var.name)
            self._emit("str", REG_NAMES[src_reg_no], "[" + REG_NAMES[tmp_reg_no] + "]")
        else:
            base_reg_no, offset = _memory_addr(dest_var)
            self.store_base(src_reg_no, base_reg_no, offset, tmp_reg_no)

    def lea_stack(self, rs_reg_no, base_reg_no, offset):
        """Compute base register plus offset into a register."""
        rs_reg = REG_NAMES[rs_reg_no]
        base_reg = REG_NAMES[base_reg_no]
        if const_expr(offset):
            self._emit("add", rs_reg, base_reg, self.to_str(offset))
        else:
            self.load_imm(rs_reg_no, offset)
            self._emit("add", rs_reg, base_reg, rs_reg)

    def alloc_stack(self, func, tmp_reg_no):
        """Reserve the function's stack frame of func.max_dep bytes."""
        off = func.max_dep
        if off == 0:
            return
        self.mov_reg(FP_REG_NO, SP_REG_NO)
        if const_expr(off):
            self._emit("sub", "sp", "sp", self.to_str(off))
        else:
            self.load_imm(tmp_reg_no, off)
            self._emit("sub", "sp", "sp", REG_NAMES[tmp_reg_no])

    def call_fun(self, name):
        """Emit a call to the named function."""
        self._emit("bl", name)

    def nop(self):
        """Emit an empty placeholder instruction."""
        self._emit("")

    def jump(self, label):
        """Emit an unconditional branch."""
        self._emit("b", label)

    def delete_unused_label(self):
        """Mark labels that no branch targets as dead."""
        labels = [
            inst
            for inst in self.code
            if not inst.dead and inst.opcode.startswith(".") and inst.is_label
        ]
        for label in labels:
            used = any(
                not inst.dead and inst.opcode.startswith("b") and inst.result == label.opcode
                for inst in self.code
            )
            if not used:
                label.set_dead()

    def output(self, stream: TextIO, output_empty=False):
        """Write the instructions as assembly text to stream."""
        for inst in self.code:
            text = inst.render()
            if inst.is_label:
                stream.write(text + "\n")
            elif text:
                stream.write("\t" + text + "\n")
            elif output_empty:
                stream.write("\n")