from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest

from minic.iloc import ILocArm32
from minic.instselector import InstSelectorArm32, IROp
from minic.platform import FP_REG_NO, SP_REG_NO
from minic.regalloc import SimpleRegisterAllocator


@dataclass(eq=False)
class Val:
    name: str = ""
    reg_id: int = -1
    memory_addr: tuple[int, int] | None = None
    load_reg_id: int = -1
    const_value: int | None = None
    is_global: bool = False


@dataclass(eq=False)
class Inst:
    op: Any
    operands: list = field(default_factory=list)
    name: str = ""
    reg_id: int = -1
    memory_addr: tuple[int, int] | None = None
    load_reg_id: int = -1
    dead: bool = False
    has_result_value: bool = False
    target: Any = None
    callee_name: str = ""
    text: str = ""

    def __str__(self):
        return self.text


@dataclass
class Func:
    protected_regs: list = field(default_factory=list)
    protected_reg_str: str = ""
    max_dep: int = 0


def stack(offset):
    return Val(memory_addr=(FP_REG_NO, offset))


def select(insts, func=None, show=False):
    iloc = ILocArm32()
    alloc = SimpleRegisterAllocator()
    selector = InstSelectorArm32(insts, iloc, func or Func(), alloc, show)
    selector.run()
    return [i.render() for i in iloc.code], alloc


def test_entry_pushes_and_allocates_frame():
    func = Func(protected_regs=[10, 11, 14], max_dep=8)
    lines, _ = select([Inst(IROp.ENTRY)], func)
    assert lines == ["push {r10,fp,lr}", "mov fp,sp", "sub sp,sp,#8"]
    assert func.protected_reg_str == "r10,fp,lr"


def test_exit_loads_return_value_and_restores():
    func = Func(protected_reg_str="r10,fp")
    lines, _ = select([Inst(IROp.EXIT, [Val(const_value=5)])], func)
    assert lines == ["movw r0,#:lower16:5", "mov sp,fp", "pop {r10,fp}", "bx lr"]


def test_label_and_goto():
    label = Inst(IROp.LABEL, name=".L1")
    lines, _ = select([label, Inst(IROp.GOTO, target=label)])
    assert lines == [".L1:", "b .L1"]


def test_add_with_stack_operands():
    a, b = stack(-4), stack(-8)
    inst = Inst(IROp.ADD_I, [a, b], memory_addr=(FP_REG_NO, -12), has_result_value=True)
    lines, alloc = select([inst])
    assert lines == ["ldr r0,[fp,#-4]", "ldr r1,[fp,#-8]", "add r2,r0,r1", "str r2,[fp,#-12]"]
    assert alloc.occupied == frozenset()
    assert a.load_reg_id == b.load_reg_id == inst.load_reg_id == -1


@pytest.mark.parametrize(
    "op, opcode",
    [(IROp.ADD_I, "add"), (IROp.SUB_I, "sub"), (IROp.MUL_I, "mul"), (IROp.DIV_I, "sdiv")],
)
def test_binary_with_registers(op, opcode):
    inst = Inst(op, [Val(reg_id=4), Val(reg_id=5)], reg_id=6)
    lines, _ = select([inst])
    assert lines == [f"{opcode} r6,r4,r5"]


def test_mod_uses_divide_multiply_subtract():
    inst = Inst(IROp.MOD_I, [Val(reg_id=4), Val(reg_id=5)], reg_id=6)
    lines, alloc = select([inst])
    assert lines == ["sdiv r0,r4,r5", "mul r0,r0,r5", "sub r6,r4,r0"]
    assert alloc.occupied == frozenset()


def test_neg_uses_second_operand():
    inst = Inst(IROp.NEG_I, [Val(const_value=0), Val(reg_id=4)], reg_id=5)
    lines, _ = select([inst])
    assert lines == ["rsb r5,r4,#0"]


def test_assign_memory_to_memory():
    lines, alloc = select([Inst(IROp.ASSIGN, [stack(-8), stack(-4)])])
    assert lines == ["ldr r0,[fp,#-4]", "str r0,[fp,#-8]"]
    assert alloc.occupied == frozenset()


def test_call_passes_arguments_and_stores_result():
    call = Inst(
        IROp.FUNC_CALL,
        [Val(const_value=1), stack(-4)],
        memory_addr=(FP_REG_NO, -8),
        has_result_value=True,
        callee_name="foo",
    )
    lines, alloc = select([call])
    assert lines == ["movw r0,#:lower16:1", "ldr r1,[fp,#-4]", "bl foo", "str r0,[fp,#-8]"]
    assert alloc.occupied == frozenset()


def test_call_without_arguments_or_result():
    lines, _ = select([Inst(IROp.FUNC_CALL, [], callee_name="f")])
    assert lines == ["bl f"]


def test_call_fifth_argument_goes_to_stack():
    args = [Val(reg_id=k) for k in range(4)] + [Val(reg_id=4)]
    lines, _ = select([Inst(IROp.FUNC_CALL, args, callee_name="g")])
    assert "str r4,[sp]" in lines
    assert lines.index("str r4,[sp]") < lines.index("bl g")
    assert lines[-1] == "bl g"


def test_arg_instructions_matching_call():
    args = [Val(reg_id=0), Val(reg_id=1)]
    insts = [Inst(IROp.ARG, [a]) for a in args]
    insts.append(Inst(IROp.FUNC_CALL, args, callee_name="h"))
    lines, _ = select(insts)
    assert lines[-1] == "bl h"


def test_arg_count_mismatch_raises():
    args = [Val(reg_id=0), Val(reg_id=1)]
    insts = [Inst(IROp.ARG, [a]) for a in args]
    insts.append(Inst(IROp.FUNC_CALL, args + [Val(reg_id=2)], callee_name="h"))
    with pytest.raises(ValueError):
        select(insts)


def test_arg_in_wrong_register_raises():
    with pytest.raises(ValueError):
        select([Inst(IROp.ARG, [Val(reg_id=3)])])


def test_arg_not_in_register_raises():
    with pytest.raises(ValueError):
        select([Inst(IROp.ARG, [stack(-4)])])


def test_fifth_arg_must_be_sp_addressed():
    insts = [Inst(IROp.ARG, [Val(reg_id=k)]) for k in range(4)]
    insts.append(Inst(IROp.ARG, [stack(-4)]))
    with pytest.raises(ValueError):
        select(insts)
    ok = [Inst(IROp.ARG, [Val(reg_id=k)]) for k in range(4)]
    ok.append(Inst(IROp.ARG, [Val(memory_addr=(SP_REG_NO, 0))]))
    lines, _ = select(ok)
    assert lines == []


def test_show_linear_ir_emits_comment():
    inst = Inst(IROp.ADD_I, [Val(reg_id=4), Val(reg_id=5)], reg_id=6, text="add")
    lines, _ = select([inst], show=True)
    assert lines == ["@ add", "add r6,r4,r5"]


def test_dead_instructions_are_skipped():
    inst = Inst(IROp.ADD_I, [Val(reg_id=4), Val(reg_id=5)], reg_id=6, dead=True)
    lines, _ = select([inst])
    assert lines == []


def test_unknown_operator_raises():
    selector = InstSelectorArm32([], ILocArm32(), Func(), SimpleRegisterAllocator())
    with pytest.raises(ValueError):
        selector.translate(Inst("bogus"))