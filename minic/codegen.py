"""Code generator base classes.

The module handed to a generator is duck typed: it has ``functions``, an
iterable of functions, each with a boolean ``is_builtin``.
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from typing import Any, TextIO


class CodeGenerator(ABC):
    """Turns a module into text written to a file or standard output."""

    def __init__(self, module: Any) -> None:
        self.module = module
        self.stream: TextIO | None = None
        self.show_linear_ir = False

    def run(self, out_file_name=""):
        """Generate into out_file_name, or standard output when it is empty.

        Returns the generator's result; raises OSError if the file cannot be
        opened.
        """
        if not out_file_name:
            self.stream = sys.stdout
            try:
                return self.generate()
            finally:
                self.stream = None
        with open(out_file_name, "w", encoding="utf-8") as stream:
            self.stream = stream
            try:
                return self.generate()
            finally:
                self.stream = None

    @abstractmethod
    def generate(self):
        """Write the output to self.stream; return True on success."""


class CodeGeneratorAsm(CodeGenerator):
    """Assembly generator: header, data section, then one code block per function."""

    def __init__(self, module: Any) -> None:
        super().__init__(module)
        self.label_index = 0

    @abstractmethod
    def gen_header(self):
        """Write the assembly header."""

    @abstractmethod
    def gen_data_section(self):
        """Write global variables, initialised and not."""

    @abstractmethod
    def gen_function_code(self, func):
        """Write the .text code of one function."""

    @abstractmethod
    def register_allocation(self, func):
        """Assign registers and stack slots for one function."""

    def gen_code_section(self):
        """Write the code of every non-builtin function, numbering labels from 0."""
        self.label_index = 0
        for func in self.module.functions:
            if not func.is_builtin:
                self.gen_function_code(func)

    def generate(self):
        """Write header, data section and code section."""
        self.gen_header()
        self.gen_data_section()
        self.gen_code_section()
        return True