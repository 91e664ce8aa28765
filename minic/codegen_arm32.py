"""ARM32 assembly generator.

The module, functions, variables and IR instructions it works on are duck
typed.

The module has ``functions`` and ``global_variables``. A global variable has
``name``, ``size``, ``alignment`` and ``in_bss``; the last is True when it
has no initial value other than zero.

A function has:

``name``, ``alignment`` and ``is_builtin``
    Its symbol, its code alignment, and whether it has no code of its own.
``insts``
    Its IR instructions, as a mutable list.
``var_values``
    Its local variables.
``params``
    Its formal parameters.
``exist_func_call``
    True when it calls another function.
``max_func_call_arg_cnt``
    The largest number of arguments passed by any call it makes.
``protected_regs``, ``protected_reg_str`` and ``max_dep``
    Writable; filled in during generation.

Values and instructions follow the conventions of :mod:`minic.instselector`.
Every value also has ``size`` in bytes, and may have ``ir_name``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from minic.codegen import CodeGeneratorAsm
from minic.iloc import ILocArm32
from minic.instselector import InstSelectorArm32, IROp
from minic.platform import (
    FP_REG_NO,
    INT_REG_VAL,
    LX_REG_NO,
    REG_NAMES,
    SP_REG_NO,
    TMP_REG_NO,
)
from minic.regalloc import SimpleRegisterAllocator

LABEL_PREFIX = ".L"
"""Prefix of the file-wide label names given to IR labels."""

_ARG_REGISTERS = 4
_WORD = 4


def _value_text(value: Any) -> str:
    return getattr(value, "ir_name", "") or getattr(value, "name", "")


@dataclass(eq=False)
class _StackArg:
    """A memory slot, addressed from sp, for an argument passed on the stack."""

    name: str
    memory_addr: tuple[int, int]
    size: int = _WORD
    reg_id: int = -1
    load_reg_id: int = -1


@dataclass(eq=False)
class _Move:
    """An assignment inserted around calls: operands are destination, source."""

    operands: list[Any]
    op: IROp = IROp.ASSIGN
    dead: bool = False
    has_result_value: bool = False
    reg_id: int = -1
    memory_addr: Any = None
    name: str = ""
    size: int = 0
    load_reg_id: int = -1
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    def __str__(self) -> str:
        dest, src = self.operands
        return f"{_value_text(dest)} = {_value_text(src)}"


def _round_word(size: int) -> int:
    return (size + 3) & ~3


class CodeGeneratorArm32(CodeGeneratorAsm):
    """Generates ARMv7 assembly with a naive register and stack allocation."""

    def __init__(self, module: Any) -> None:
        super().__init__(module)
        self.allocator = SimpleRegisterAllocator()

    def _write(self, text: str) -> None:
        self.stream.write(text + "\n")

    def gen_header(self):
        """Write the architecture directives."""
        for line in (".arch armv7ve", ".arm", ".fpu vfpv4"):
            self._write(line)

    def gen_data_section(self):
        """Write the global variables."""
        self._write(".text")
        for var in self.module.global_variables:
            if var.in_bss:
                self._write(f".comm {var.name}, {var.size}, {var.alignment}")
            else:
                self._write(f".global {var.name}")
                self._write(".data")
                self._write(f".align {var.alignment}")
                self._write(f".type {var.name}, %object")
                self._write(var.name)

    def ir_value_comment(self, val):
        """Return a comment telling where val lives, or an empty string."""
        name = getattr(val, "name", "")
        ir_name = getattr(val, "ir_name", "")
        show_name = f"{name}:{ir_name}" if name and ir_name else ir_name

        if val.reg_id != -1:
            return f"\t@ {show_name}:{REG_NAMES[val.reg_id]}"
        addr = getattr(val, "memory_addr", None)
        if addr is not None:
            base_reg_no, offset = addr
            return f"\t@ {show_name}:[{REG_NAMES[base_reg_no]},#{offset}]"
        return ""

    def gen_function_code(self, func):
        """Allocate registers for func, select instructions and write its code."""
        self.register_allocation(func)

        insts = func.insts
        for inst in insts:
            if inst.op is IROp.LABEL:
                inst.name = f"{LABEL_PREFIX}{self.label_index}"
                self.label_index += 1

        iloc = ILocArm32(self.module)
        selector = InstSelectorArm32(
            insts, iloc, func, self.allocator, show_linear_ir=self.show_linear_ir
        )
        selector.run()
        iloc.delete_unused_label()

        self._write(f".align {func.alignment}")
        self._write(f".global {func.name}")
        self._write(f".type {func.name}, %function")
        self._write(f"{func.name}:")

        if self.show_linear_ir:
            described = list(func.var_values)
            described.extend(inst for inst in insts if inst.has_result_value)
            for value in described:
                text = self.ir_value_comment(value)
                if text:
                    self._write(text)

        iloc.output(self.stream)

    def register_allocation(self, func):
        """Choose saved registers, then lay out call arguments, stack and params."""
        if func.is_builtin:
            return
        protected = [TMP_REG_NO, FP_REG_NO]
        if func.exist_func_call:
            protected.append(LX_REG_NO)
        func.protected_regs = protected

        self.adjust_func_call_insts(func)
        self.stack_alloc(func)
        self.adjust_formal_param_insts(func)

    def adjust_formal_param_insts(self, func):
        """Put the first four params in r0-r3 and the rest above the saved registers."""
        params = list(func.params)
        for k, param in enumerate(params[:_ARG_REGISTERS]):
            param.reg_id = k

        fp_esp = len(func.protected_regs) * _WORD
        for param in params[_ARG_REGISTERS:]:
            param.memory_addr = (FP_REG_NO, fp_esp)
            fp_esp += param.size

    def adjust_func_call_insts(self, func):
        """Insert moves that pass call arguments in r0-r3 and on the stack."""
        new_insts: list[Any] = []
        for inst in func.insts:
            if inst.op is not IROp.FUNC_CALL:
                new_insts.append(inst)
                continue

            operands = inst.operands
            for k in range(_ARG_REGISTERS, len(operands)):
                slot = _StackArg(
                    f"arg{k}", (SP_REG_NO, (k - _ARG_REGISTERS) * _WORD)
                )
                new_insts.append(_Move([slot, operands[k]]))
                operands[k] = slot

            for k in range(min(_ARG_REGISTERS, len(operands))):
                new_insts.append(_Move([INT_REG_VAL[k], operands[k]]))
                operands[k] = INT_REG_VAL[k]

            new_insts.append(inst)

            if inst.has_result_value and inst.reg_id != 0:
                new_insts.append(_Move([inst, INT_REG_VAL[0]]))

        func.insts[:] = new_insts

    def stack_alloc(self, func):
        """Give every unplaced local and temporary an fp-relative slot; set max_dep."""
        sp_esp = 0
        for var in func.var_values:
            if var.reg_id == -1 and getattr(var, "memory_addr", None) is None:
                sp_esp += _round_word(var.size)
                var.memory_addr = (FP_REG_NO, -sp_esp)

        for inst in func.insts:
            if inst.has_result_value and inst.reg_id == -1:
                sp_esp += _round_word(inst.size)
                inst.memory_addr = (FP_REG_NO, -sp_esp)

        max_args = func.max_func_call_arg_cnt
        if max_args > _ARG_REGISTERS:
            sp_esp += (max_args - _ARG_REGISTERS) * _WORD

        func.max_dep = sp_esp