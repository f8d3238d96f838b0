"""
Code emission.

Contains the per-type conversion registry and the fragment emitter.
"""

from __future__ import annotations

from .code_emitter import CodeEmitter, from_json_function, to_json_function
from .templates import TemplateRenderer, format_literal
from .type_helpers import EmitContext, TypeHelper, TypeHelperRegistry, default_helpers

__all__ = [
    "CodeEmitter",
    "EmitContext",
    "TemplateRenderer",
    "TypeHelper",
    "TypeHelperRegistry",
    "default_helpers",
    "format_literal",
    "from_json_function",
    "to_json_function",
]
