from types import SimpleNamespace

import pytest

from minic.codegen import CodeGenerator, CodeGeneratorAsm


class RecordingAsm(CodeGeneratorAsm):
    def __init__(self, module):
        super().__init__(module)
        self.calls = []
        self.seen_label_index = []

    def gen_header(self):
        self.calls.append("header")
        self.stream.write(".arm\n")

    def gen_data_section(self):
        self.calls.append("data")
        self.stream.write(".text\n")

    def gen_function_code(self, func):
        self.calls.append(func.name)
        self.seen_label_index.append(self.label_index)
        self.label_index += 2
        self.stream.write(f"{func.name}:\n")

    def register_allocation(self, func):
        self.calls.append("alloc")


def _module(*funcs):
    return SimpleNamespace(
        functions=[SimpleNamespace(name=name, is_builtin=builtin) for name, builtin in funcs]
    )


def test_abstract_classes_cannot_be_built():
    with pytest.raises(TypeError):
        CodeGenerator(_module())
    with pytest.raises(TypeError):
        CodeGeneratorAsm(_module())


def test_run_writes_file_in_section_order(tmp_path):
    gen = RecordingAsm(_module(("main", False), ("f", False)))
    target = tmp_path / "out.s"
    assert CodeGenerator.run(gen, str(target)) is True
    assert gen.calls == ["header", "data", "main", "f"]
    assert target.read_text(encoding="utf-8") == ".arm\n.text\nmain:\nf:\n"


def test_builtin_functions_are_skipped(tmp_path):
    gen = RecordingAsm(_module(("putint", True), ("main", False), ("getint", True)))
    assert CodeGenerator.run(gen, str(tmp_path / "out.s")) is True
    assert gen.calls == ["header", "data", "main"]


def test_label_index_restarts_each_code_section(tmp_path):
    gen = RecordingAsm(_module(("a", False), ("b", False)))
    CodeGenerator.run(gen, str(tmp_path / "one.s"))
    CodeGenerator.run(gen, str(tmp_path / "two.s"))
    assert gen.seen_label_index == [0, 2, 0, 2]


def test_stream_released_after_run(tmp_path):
    gen = RecordingAsm(_module(("main", False)))
    assert CodeGenerator.run(gen, str(tmp_path / "out.s")) is True
    assert gen.stream is None


def test_empty_name_writes_to_stdout(capsys):
    gen = RecordingAsm(_module(("main", False)))
    assert CodeGenerator.run(gen, "") is True
    assert capsys.readouterr().out == ".arm\n.text\nmain:\n"
    assert gen.stream is None


def test_unopenable_file_raises(tmp_path):
    gen = RecordingAsm(_module(("main", False)))
    with pytest.raises(OSError):
        CodeGenerator.run(gen, str(tmp_path / "missing" / "out.s"))
    assert gen.calls == []


def test_show_linear_ir_defaults_off(tmp_path):
    gen = RecordingAsm(_module(("main", False)))
    assert gen.show_linear_ir is False
    gen.show_linear_ir = True
    assert CodeGenerator.run(gen, str(tmp_path / "out.s")) is True
    assert gen.show_linear_ir is True
    assert gen.calls == ["header", "data", "main"]