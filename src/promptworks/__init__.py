"""Promptworks - deterministic prompt compilation for generative models."""

__version__ = "0.1.0"

from promptworks.core.compiler import PromptCompiler, compile_prompt
from promptworks.core.models import CompileRequest, CompileResult

__all__ = [
    "CompileRequest",
    "CompileResult",
    "PromptCompiler",
    "compile_prompt",
]
