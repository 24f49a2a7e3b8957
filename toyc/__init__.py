"""Syntax tree, semantic analysis and RISC-V code generation for a small C-like language."""

__version__ = "0.1.0"
__all__ = ["ast", "semantic", "codegen"]