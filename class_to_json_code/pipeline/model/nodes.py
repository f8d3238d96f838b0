"""
Semantic model node definitions.

These nodes are an immutable snapshot of the declarations found in one
unit: every type is resolved and every override is already decoded, so
the rest of the pipeline never looks at source syntax again.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..config import ClassOverride, FieldOverride
from ..errors import InvalidGenerationSourceError


class TypeKind(Enum):
    """Kind of type in the model."""

    PRIMITIVE = "primitive"  # int, float, str, bool
    CLASS = "class"  # A convertible class with from_json/to_json
    ENUM = "enum"  # Enum subclass
    LIST = "list"  # list[T]
    SET = "set"  # set[T], frozenset[T]
    TUPLE = "tuple"  # tuple[T, ...]
    DICT = "dict"  # dict[K, V]
    DATETIME = "datetime"
    DATE = "date"
    DECIMAL = "decimal"
    UUID = "uuid"
    TYPE_PARAM = "type_param"  # A class type parameter (T)
    ANY = "any"  # Any, object or unannotated


@dataclass(frozen=True)
class TypeRef:
    """A resolved type reference."""

    kind: TypeKind = TypeKind.ANY
    name: str = ""  # Type name (e.g., "int", "Point", "T")

    # For container and generic class types
    type_args: tuple[TypeRef, ...] = ()

    # Whether None is an accepted value (T | None, Optional[T])
    is_nullable: bool = False

    def with_nullable(self, is_nullable: bool = True) -> TypeRef:
        return TypeRef(self.kind, self.name, self.type_args, is_nullable)

    def __str__(self) -> str:
        result = self.name or "Any"
        if self.type_args:
            result = f"{result}[{', '.join(str(arg) for arg in self.type_args)}]"
        if self.is_nullable:
            result = f"{result} | None"
        return result


@dataclass(frozen=True)
class FieldDescriptor:
    """A field declared on a class."""

    name: str
    type_ref: TypeRef = TypeRef()
    is_public: bool = True
    is_final: bool = False
    has_getter: bool = True
    has_setter: bool = True

    # Source expression of the declared Python default, if any
    default_expr: str | None = None

    # Decoded JsonKey(...) options
    override: FieldOverride | None = None


@dataclass(frozen=True)
class ConstructorParam:
    """A keyword-capable constructor parameter."""

    name: str
    has_default: bool = False


@dataclass(frozen=True)
class ClassModel:
    """A class declaration snapshot taken once per generation pass."""

    name: str
    fields: tuple[FieldDescriptor, ...] = ()
    constructor_params: tuple[ConstructorParam, ...] = ()
    type_params: tuple[str, ...] = ()
    supertype: str | None = None

    # Decoded @json_serializable(...) options
    override: ClassOverride | None = None

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for f in self.fields:
            if f.name in seen:
                raise InvalidGenerationSourceError(f'Field "{f.name}" is declared more than once.', element=self.name)
            seen.add(f.name)

    def field(self, name: str) -> FieldDescriptor | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None


@dataclass(frozen=True)
class EnumModel:
    """An Enum declaration with the JSON value of each member."""

    name: str
    members: tuple[tuple[str, Any], ...] = ()


@dataclass(frozen=True)
class AnnotatedElement:
    """A declaration carrying a generation trigger (e.g. @json_serializable)."""

    trigger: str
    element: ClassModel | EnumModel

    @property
    def name(self) -> str:
        return self.element.name


@dataclass(frozen=True)
class UnitModel:
    """Everything known about one source file."""

    path: str
    source: str = ""
    classes: tuple[ClassModel, ...] = ()
    enums: tuple[EnumModel, ...] = ()
    annotated: tuple[AnnotatedElement, ...] = ()

    @property
    def module_name(self) -> str:
        stem = self.path.replace("\\", "/").rsplit("/", 1)[-1]
        return stem[:-3] if stem.endswith(".py") else stem

    def annotated_with(self, trigger: str) -> list[AnnotatedElement]:
        return [a for a in self.annotated if a.trigger == trigger]
