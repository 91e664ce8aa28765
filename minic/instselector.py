"""Instruction selection: linear IR instructions to ARM32 assembly.

IR instructions and values are duck typed.

Every value has ``name``, ``reg_id`` (-1 when it has no register),
``memory_addr`` (a ``(base_reg_no, offset)`` pair, or ``None``) and a mutable
``load_reg_id``. Integer constants also carry ``const_value`` and global
variables carry ``is_global = True``.

An instruction is itself a value, the one it produces. It also has:

``op``
    An :class:`IROp`.
``operands``
    A list of values.
``dead``
    True when the instruction is to be skipped.
``has_result_value``
    True when the instruction produces a value.
``target``
    The label instruction a goto jumps to.
``callee_name``
    The name of the function a call invokes.

``str(inst)`` gives the instruction's IR text.

The function being compiled has ``protected_regs`` (register numbers to
save), a writable ``protected_reg_str`` and ``max_dep`` (the frame size).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable

from minic.iloc import ILocArm32
from minic.platform import INT_REG_VAL, REG_NAMES, SP_REG_NO, TMP_REG_NO
from minic.regalloc import SimpleRegisterAllocator

_ARG_REGISTERS = 4


class IROp(enum.Enum):
    """Linear IR operators understood by the selector."""

    ENTRY = "entry"
    EXIT = "exit"
    LABEL = "label"
    GOTO = "goto"
    ASSIGN = "assign"
    ADD_I = "add"
    SUB_I = "sub"
    MUL_I = "mul"
    DIV_I = "div"
    MOD_I = "mod"
    NEG_I = "neg"
    FUNC_CALL = "call"
    ARG = "arg"


@dataclass(eq=False)
class _StackSlot:
    """An outgoing argument slot addressed from the stack pointer."""

    name: str
    memory_addr: tuple[int, int]
    reg_id: int = -1
    load_reg_id: int = -1


class InstSelectorArm32:
    """Translates the IR instructions of one function into ILOC code."""

    def __init__(
        self,
        ir: list[Any],
        iloc: ILocArm32,
        func: Any,
        allocator: SimpleRegisterAllocator,
        show_linear_ir: bool = False,
    ) -> None:
        self.ir = ir
        self.iloc = iloc
        self.func = func
        self.allocator = allocator
        self.show_linear_ir = show_linear_ir
        self.real_arg_count = 0
        self._handlers: dict[IROp, Callable[[Any], None]] = {
            IROp.ENTRY: self._translate_entry,
            IROp.EXIT: self._translate_exit,
            IROp.LABEL: self._translate_label,
            IROp.GOTO: self._translate_goto,
            IROp.ASSIGN: self._translate_assign,
            IROp.ADD_I: lambda inst: self._translate_two_operator(inst, "add"),
            IROp.SUB_I: lambda inst: self._translate_two_operator(inst, "sub"),
            IROp.MUL_I: lambda inst: self._translate_two_operator(inst, "mul"),
            IROp.DIV_I: lambda inst: self._translate_two_operator(inst, "sdiv"),
            IROp.MOD_I: self._translate_mod,
            IROp.NEG_I: self._translate_neg,
            IROp.FUNC_CALL: self._translate_call,
            IROp.ARG: self._translate_arg,
        }

    def run(self):
        """Translate every instruction that is not dead."""
        for inst in self.ir:
            if not getattr(inst, "dead", False):
                self.translate(inst)

    def translate(self, inst):
        """Translate one IR instruction; raise ValueError for an unknown operator."""
        handler = self._handlers.get(inst.op)
        if handler is None:
            raise ValueError(f"unsupported IR operator: {inst.op!r}")
        if self.show_linear_ir:
            text = str(inst)
            if text:
                self.iloc.comment(text)
        handler(inst)

    def _translate_label(self, inst: Any) -> None:
        self.iloc.label(inst.name)

    def _translate_goto(self, inst: Any) -> None:
        self.iloc.jump(inst.target.name)

    def _translate_entry(self, inst: Any) -> None:
        regs = ",".join(REG_NAMES[no] for no in self.func.protected_regs)
        self.func.protected_reg_str = regs
        if regs:
            self.iloc.inst("push", "{" + regs + "}")
        self.iloc.alloc_stack(self.func, TMP_REG_NO)

    def _translate_exit(self, inst: Any) -> None:
        if inst.operands:
            self.iloc.load_var(0, inst.operands[0])
        self.iloc.inst("mov", "sp", "fp")
        regs = self.func.protected_reg_str
        if regs:
            self.iloc.inst("pop", "{" + regs + "}")
        self.iloc.inst("bx", "lr")

    def _translate_assign(self, inst: Any) -> None:
        result, source = inst.operands[0], inst.operands[1]
        self._assign(result, source)

    def _assign(self, result: Any, source: Any) -> None:
        if source.reg_id != -1:
            self.iloc.store_var(source.reg_id, result, TMP_REG_NO)
        elif result.reg_id != -1:
            self.iloc.load_var(result.reg_id, source)
        else:
            temp = self.allocator.allocate()
            self.iloc.load_var(temp, source)
            self.iloc.store_var(temp, result, TMP_REG_NO)
            self.allocator.free_register(temp)

    def _load_operand(self, value: Any) -> int:
        if value.reg_id != -1:
            return value.reg_id
        reg = self.allocator.allocate(value)
        self.iloc.load_var(reg, value)
        return reg

    def _result_register(self, inst: Any) -> int:
        if inst.reg_id != -1:
            return inst.reg_id
        return self.allocator.allocate(inst)

    def _finish_result(self, inst: Any, reg: int) -> None:
        if inst.reg_id == -1:
            self.iloc.store_var(reg, inst, TMP_REG_NO)

    def _translate_two_operator(self, inst: Any, opcode: str) -> None:
        arg1, arg2 = inst.operands[0], inst.operands[1]
        reg1 = self._load_operand(arg1)
        reg2 = self._load_operand(arg2)
        result_reg = self._result_register(inst)
        self.iloc.inst(opcode, REG_NAMES[result_reg], REG_NAMES[reg1], REG_NAMES[reg2])
        self._finish_result(inst, result_reg)
        for value in (arg1, arg2, inst):
            self.allocator.free_value(value)

    def _translate_mod(self, inst: Any) -> None:
        arg1, arg2 = inst.operands[0], inst.operands[1]
        reg1 = self._load_operand(arg1)
        reg2 = self._load_operand(arg2)
        result_reg = self._result_register(inst)
        temp = self.allocator.allocate()
        self.iloc.inst("sdiv", REG_NAMES[temp], REG_NAMES[reg1], REG_NAMES[reg2])
        self.iloc.inst("mul", REG_NAMES[temp], REG_NAMES[temp], REG_NAMES[reg2])
        self.iloc.inst("sub", REG_NAMES[result_reg], REG_NAMES[reg1], REG_NAMES[temp])
        self._finish_result(inst, result_reg)
        self.allocator.free_register(temp)
        for value in (arg1, arg2, inst):
            self.allocator.free_value(value)

    def _translate_neg(self, inst: Any) -> None:
        # The first operand is the constant 0; the negated value comes second.
        arg = inst.operands[1]
        arg_reg = self._load_operand(arg)
        result_reg = self._result_register(inst)
        self.iloc.inst("rsb", REG_NAMES[result_reg], REG_NAMES[arg_reg], "#0")
        self._finish_result(inst, result_reg)
        self.allocator.free_value(arg)
        self.allocator.free_value(inst)

    def _translate_call(self, inst: Any) -> None:
        operands = list(inst.operands)
        if self.real_arg_count and len(operands) != self.real_arg_count:
            raise ValueError(
                f"call to {inst.callee_name} has {len(operands)} arguments "
                f"but {self.real_arg_count} ARG instructions"
            )

        if operands:
            for no in range(_ARG_REGISTERS):
                self.allocator.occupy(no)
            for offset, arg in enumerate(operands[_ARG_REGISTERS:]):
                slot = _StackSlot(f"arg{offset + _ARG_REGISTERS}", (SP_REG_NO, offset * 4))
                self._assign(slot, arg)
            for k, arg in enumerate(operands[:_ARG_REGISTERS]):
                self._assign(INT_REG_VAL[k], arg)

        self.iloc.call_fun(inst.callee_name)

        if operands:
            for no in range(_ARG_REGISTERS):
                self.allocator.free_register(no)

        if inst.has_result_value:
            self._assign(inst, INT_REG_VAL[0])

        self.real_arg_count = 0

    def _translate_arg(self, inst: Any) -> None:
        src = inst.operands[0]
        position = self.real_arg_count + 1
        if self.real_arg_count < _ARG_REGISTERS:
            if src.reg_id == -1:
                raise ValueError(f"argument {position} is not in a register")
            if src.reg_id != self.real_arg_count:
                raise ValueError(
                    f"argument {position} is in the wrong register: {src.reg_id}"
                )
        else:
            addr = getattr(src, "memory_addr", None)
            if addr is None or addr[0] != SP_REG_NO:
                raise ValueError(f"argument {position} is not addressed from sp")
        self.real_arg_count += 1