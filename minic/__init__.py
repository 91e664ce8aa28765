"""AST helpers, DOT graph output and an ARM32 assembly back end for a small C-like language."""

__version__ = "1.0.1"

__all__ = [
    "ast",
    "codegen",
    "codegen_arm32",
    "graph",
    "iloc",
    "instselector",
    "platform",
    "regalloc",
]