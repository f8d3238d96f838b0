"""
Pipeline - ast-based JSON encode/decode code generator for Python classes.

This module provides a multi-phase architecture for generating JSON
conversion code from annotated Python declarations:

1. Phase 1 (Model): Read each unit into an immutable declaration snapshot
2. Phase 2 (Analyzer): Merge configuration and select the serialized fields
3. Phase 3 (Emitter): Render decode/encode fragments through the type helper registry
4. Phase 4 (Composer): Run every generation pass and merge their fragments
5. Phase 5 (Output): Write the companion module for each unit
6. Phase 6 (Patcher): Optionally splice to_json/from_json members into the source
"""

from __future__ import annotations

from .composer import EnumPass, GeneratedUnit, GenerationPass, GeneratorComposer, SerializablePass
from .config import ClassOverride, FieldOverride, FieldRename, GeneratorConfig, OutputConfig, ResolvedConfig
from .diagnostics import Diagnostic, DiagnosticCollector, Severity
from .errors import (
    ClassNotFoundError,
    ConfigurationError,
    DuplicateKeyError,
    GeneratorError,
    InvalidGenerationSourceError,
    PatchError,
    PatchRangeError,
    SourceValidationError,
    UnsupportedTypeError,
)
from .generator import PipelineGenerator, RunReport, UnitReport
from .patcher import AtomicWriter, PatchInstruction, SourcePatcher

__all__ = [
    "PipelineGenerator",
    "RunReport",
    "UnitReport",
    "GeneratorConfig",
    "OutputConfig",
    "ResolvedConfig",
    "ClassOverride",
    "FieldOverride",
    "FieldRename",
    "Diagnostic",
    "DiagnosticCollector",
    "Severity",
    "GeneratorComposer",
    "GeneratedUnit",
    "GenerationPass",
    "SerializablePass",
    "EnumPass",
    "AtomicWriter",
    "PatchInstruction",
    "SourcePatcher",
    "GeneratorError",
    "ConfigurationError",
    "InvalidGenerationSourceError",
    "UnsupportedTypeError",
    "DuplicateKeyError",
    "ClassNotFoundError",
    "PatchError",
    "PatchRangeError",
    "SourceValidationError",
]
