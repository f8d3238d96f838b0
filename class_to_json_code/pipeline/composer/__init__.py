"""
Composer module.

Contains the generation passes and the composer merging their output.
"""

from __future__ import annotations

from .composer import GeneratedUnit, GeneratorComposer
from .passes import EnumPass, GenerationPass, PassResult, SerializablePass, companion_module, default_passes

__all__ = [
    "EnumPass",
    "GeneratedUnit",
    "GenerationPass",
    "GeneratorComposer",
    "PassResult",
    "SerializablePass",
    "companion_module",
    "default_passes",
]
