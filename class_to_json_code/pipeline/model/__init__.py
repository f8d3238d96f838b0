"""
Semantic model.

Contains the immutable declaration snapshot and the ast-based reader
that builds it.
"""

from __future__ import annotations

from .nodes import (
    AnnotatedElement,
    ClassModel,
    ConstructorParam,
    EnumModel,
    FieldDescriptor,
    TypeKind,
    TypeRef,
    UnitModel,
)
from .reader import ENUM_TRIGGER, SERIALIZABLE_TRIGGER, ClassLocation, SourceModelReader, locate_class

__all__ = [
    "AnnotatedElement",
    "ClassLocation",
    "ClassModel",
    "ConstructorParam",
    "EnumModel",
    "FieldDescriptor",
    "TypeKind",
    "TypeRef",
    "UnitModel",
    "SourceModelReader",
    "locate_class",
    "SERIALIZABLE_TRIGGER",
    "ENUM_TRIGGER",
]
