"""Class to JSON Code Generator

A Python package for generating JSON encode/decode functions for annotated
Python classes and enums. Writes a companion module per source file and can
optionally add to_json/from_json members to the classes in place.
"""

__version__ = "1.0.1"
__author__ = "François Lagunas"

from .annotations import JsonKey, json_enum, json_key, json_serializable
from .pipeline import (
    AtomicWriter,
    GeneratorConfig,
    GeneratorError,
    OutputConfig,
    PipelineGenerator,
    SourcePatcher,
)

__all__ = [
    "PipelineGenerator",
    "GeneratorConfig",
    "OutputConfig",
    "GeneratorError",
    "SourcePatcher",
    "AtomicWriter",
    "JsonKey",
    "json_key",
    "json_serializable",
    "json_enum",
]
