"""
Per-type conversion registry.

Each TypeHelper turns a Python expression of a given declared type into the
expression that encodes it to (or decodes it from) a JSON-compatible value.
Helpers are tried in order; the first one returning an expression wins.
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass, field

from ...utils import to_screaming_snake_case, to_snake_case
from ..errors import UnsupportedTypeError
from ..model.nodes import EnumModel, TypeKind, TypeRef
from .templates import TemplateRenderer, default_renderer


@dataclass
class EmitContext:
    """Mutable state gathered while emitting the code of one class.

    Attributes:
        enums: Enum declarations of the unit, by name
        type_params: Type parameters with generic argument factories enabled
        local_classes: Serializable classes of the unit, mapped to whether their
            companion functions take generic argument factories
        members: Helper fragments registered by type helpers, in registration order
        imports: (module, name) pairs the generated code needs
        type_names: Class and enum names the generated code references
    """

    enums: dict[str, EnumModel] = field(default_factory=dict)
    type_params: tuple[str, ...] = ()
    local_classes: dict[str, bool] = field(default_factory=dict)
    renderer: TemplateRenderer = field(default_factory=default_renderer)
    members: dict[str, None] = field(default_factory=dict)
    imports: set[tuple[str, str]] = field(default_factory=set)
    type_names: set[str] = field(default_factory=set)

    def add_member(self, member: str) -> None:
        self.members.setdefault(member, None)

    def add_import(self, module: str, name: str) -> None:
        self.imports.add((module, name))


def from_json_function(class_name: str) -> str:
    return f"_{to_snake_case(class_name)}_from_json"


def to_json_function(class_name: str) -> str:
    return f"_{to_snake_case(class_name)}_to_json"


def factory_name(direction: str, type_param: str) -> str:
    """Name of the converter callable for a type parameter (e.g. from_json_t)."""
    return f"{direction}_{type_param.lower()}"


def enum_map_name(enum_name: str) -> str:
    return f"_{to_screaming_snake_case(enum_name)}_ENUM_MAP"


def render_enum_map(enum_model: EnumModel, renderer: TemplateRenderer | None = None) -> str:
    """Render the member -> JSON value constant of an enum."""
    renderer = renderer or default_renderer()
    return renderer.render("enum_map", map_name=enum_map_name(enum_model.name), enum=enum_model)


class TypeHelper(ABC):
    """Converts expressions of the types it recognizes.

    Both methods return None when the helper does not handle the type.
    `depth` is the nesting level, used to name comprehension variables.
    """

    def serialize(self, expression: str, type_ref: TypeRef, ctx: EmitContext, registry: TypeHelperRegistry, depth: int) -> str | None:
        return None

    def deserialize(self, expression: str, type_ref: TypeRef, ctx: EmitContext, registry: TypeHelperRegistry, depth: int) -> str | None:
        return None


class AnyHelper(TypeHelper):
    def serialize(self, expression, type_ref, ctx, registry, depth):
        if type_ref.kind is TypeKind.ANY:
            return expression
        return None

    def deserialize(self, expression, type_ref, ctx, registry, depth):
        if type_ref.kind is TypeKind.ANY:
            return expression
        return None


class PrimitiveHelper(TypeHelper):
    """int, float, str and bool: coerced on decode, passed through on encode."""

    COERCIONS = {"int": "int", "float": "float", "str": "str", "bool": "bool"}

    def serialize(self, expression, type_ref, ctx, registry, depth):
        if type_ref.kind is TypeKind.PRIMITIVE:
            return expression
        return None

    def deserialize(self, expression, type_ref, ctx, registry, depth):
        if type_ref.kind is not TypeKind.PRIMITIVE:
            return None
        coercion = self.COERCIONS.get(type_ref.name)
        if coercion is None:
            return expression
        return f"{coercion}({expression})"


class TypeParamHelper(TypeHelper):
    """Class type parameters: routed through factory callables when enabled."""

    def serialize(self, expression, type_ref, ctx, registry, depth):
        if type_ref.kind is not TypeKind.TYPE_PARAM:
            return None
        if type_ref.name in ctx.type_params:
            return f"{factory_name('to_json', type_ref.name)}({expression})"
        return expression

    def deserialize(self, expression, type_ref, ctx, registry, depth):
        if type_ref.kind is not TypeKind.TYPE_PARAM:
            return None
        if type_ref.name in ctx.type_params:
            return f"{factory_name('from_json', type_ref.name)}({expression})"
        return expression


class ValueTypeHelper(TypeHelper):
    """Standard library value types with a canonical string form."""

    # kind -> (import module, import name, encode template, decode template)
    CONVERSIONS = {
        TypeKind.DATETIME: ("datetime", "datetime", "{e}.isoformat()", "datetime.fromisoformat({e})"),
        TypeKind.DATE: ("datetime", "date", "{e}.isoformat()", "date.fromisoformat({e})"),
        TypeKind.DECIMAL: ("decimal", "Decimal", "str({e})", "Decimal(str({e}))"),
        TypeKind.UUID: ("uuid", "UUID", "str({e})", "UUID({e})"),
    }

    def serialize(self, expression, type_ref, ctx, registry, depth):
        conversion = self.CONVERSIONS.get(type_ref.kind)
        if conversion is None:
            return None
        return conversion[2].format(e=expression)

    def deserialize(self, expression, type_ref, ctx, registry, depth):
        conversion = self.CONVERSIONS.get(type_ref.kind)
        if conversion is None:
            return None
        ctx.add_import(conversion[0], conversion[1])
        return conversion[3].format(e=expression)


class EnumHelper(TypeHelper):
    """Enums declared in the unit use a value map; others use `.value`."""

    def serialize(self, expression, type_ref, ctx, registry, depth):
        if type_ref.kind is not TypeKind.ENUM:
            return None
        ctx.type_names.add(type_ref.name)
        enum_model = ctx.enums.get(type_ref.name)
        if enum_model is None:
            return f"{expression}.value"
        ctx.add_member(render_enum_map(enum_model, ctx.renderer))
        return f"{enum_map_name(type_ref.name)}[{expression}]"

    def deserialize(self, expression, type_ref, ctx, registry, depth):
        if type_ref.kind is not TypeKind.ENUM:
            return None
        ctx.type_names.add(type_ref.name)
        enum_model = ctx.enums.get(type_ref.name)
        if enum_model is None:
            return f"{type_ref.name}({expression})"
        ctx.add_member(render_enum_map(enum_model, ctx.renderer))
        ctx.add_member(ctx.renderer.render("enum_decode"))
        return f"_enum_decode({enum_map_name(type_ref.name)}, {expression})"


class IterableHelper(TypeHelper):
    """list, set, frozenset and tuple; encoded as JSON arrays."""

    KINDS = (TypeKind.LIST, TypeKind.SET, TypeKind.TUPLE)

    def serialize(self, expression, type_ref, ctx, registry, depth):
        if type_ref.kind not in self.KINDS:
            return None
        if type_ref.kind is TypeKind.TUPLE and len(type_ref.type_args) > 1:
            items = ", ".join(registry.serialize(f"{expression}[{i}]", arg, ctx, depth + 1) for i, arg in enumerate(type_ref.type_args))
            return f"[{items}]"
        var = f"e{depth}"
        inner = registry.serialize(var, self._item_type(type_ref), ctx, depth + 1)
        if inner == var:
            return f"list({expression})"
        return f"[{inner} for {var} in {expression}]"

    def deserialize(self, expression, type_ref, ctx, registry, depth):
        if type_ref.kind not in self.KINDS:
            return None
        if type_ref.kind is TypeKind.TUPLE and len(type_ref.type_args) > 1:
            items = ", ".join(registry.deserialize(f"{expression}[{i}]", arg, ctx, depth + 1) for i, arg in enumerate(type_ref.type_args))
            return f"({items},)"
        var = f"e{depth}"
        inner = registry.deserialize(var, self._item_type(type_ref), ctx, depth + 1)
        constructor = type_ref.name or type_ref.kind.value
        if inner == var:
            return f"{constructor}({expression})"
        if type_ref.kind is TypeKind.LIST:
            return f"[{inner} for {var} in {expression}]"
        if type_ref.kind is TypeKind.SET and constructor == "set":
            return f"{{{inner} for {var} in {expression}}}"
        return f"{constructor}({inner} for {var} in {expression})"

    @staticmethod
    def _item_type(type_ref: TypeRef) -> TypeRef:
        return type_ref.type_args[0] if type_ref.type_args else TypeRef(TypeKind.ANY)


class MapHelper(TypeHelper):
    """dict[K, V] with str, int or enum keys; encoded as JSON objects."""

    def serialize(self, expression, type_ref, ctx, registry, depth):
        if type_ref.kind is not TypeKind.DICT:
            return None
        key_type, value_type = self._arg_types(type_ref)
        key_var, value_var = f"k{depth}", f"v{depth}"
        key = self._convert_key(key_var, key_type, ctx, registry, depth, encode=True)
        value = registry.serialize(value_var, value_type, ctx, depth + 1)
        if key == key_var and value == value_var:
            return f"dict({expression})"
        return f"{{{key}: {value} for {key_var}, {value_var} in {expression}.items()}}"

    def deserialize(self, expression, type_ref, ctx, registry, depth):
        if type_ref.kind is not TypeKind.DICT:
            return None
        key_type, value_type = self._arg_types(type_ref)
        key_var, value_var = f"k{depth}", f"v{depth}"
        key = self._convert_key(key_var, key_type, ctx, registry, depth, encode=False)
        value = registry.deserialize(value_var, value_type, ctx, depth + 1)
        if key == key_var and value == value_var:
            return f"dict({expression})"
        return f"{{{key}: {value} for {key_var}, {value_var} in {expression}.items()}}"

    @staticmethod
    def _arg_types(type_ref: TypeRef) -> tuple[TypeRef, TypeRef]:
        if len(type_ref.type_args) == 2:
            return type_ref.type_args[0], type_ref.type_args[1]
        return TypeRef(TypeKind.ANY), TypeRef(TypeKind.ANY)

    @staticmethod
    def _convert_key(var, key_type, ctx, registry, depth, encode):
        if key_type.kind is TypeKind.ANY or (key_type.kind is TypeKind.PRIMITIVE and key_type.name == "str"):
            return var
        if key_type.kind is TypeKind.PRIMITIVE and key_type.name == "int":
            return f"str({var})" if encode else f"int({var})"
        if key_type.kind is TypeKind.ENUM:
            if encode:
                return registry.serialize(var, key_type, ctx, depth + 1)
            return registry.deserialize(var, key_type, ctx, depth + 1)
        raise UnsupportedTypeError(f'Map keys of type "{key_type}" are not supported; use str, int or an Enum.')


class ConvertibleHelper(TypeHelper):
    """Nested classes; type arguments are passed as converters.

    Serializable classes of the same unit call their companion functions
    directly. Other classes must expose from_json/to_json members.
    """

    def serialize(self, expression, type_ref, ctx, registry, depth):
        if type_ref.kind is not TypeKind.CLASS:
            return None
        ctx.type_names.add(type_ref.name)
        var = f"e{depth}"
        converters = [f"lambda {var}: {registry.serialize(var, arg, ctx, depth + 1)}" for arg in type_ref.type_args]
        if type_ref.name in ctx.local_classes:
            arguments = [expression] + (converters if ctx.local_classes[type_ref.name] else [])
            return f"{to_json_function(type_ref.name)}({', '.join(arguments)})"
        return f"{expression}.to_json({', '.join(converters)})"

    def deserialize(self, expression, type_ref, ctx, registry, depth):
        if type_ref.kind is not TypeKind.CLASS:
            return None
        ctx.type_names.add(type_ref.name)
        var = f"e{depth}"
        converters = [f"lambda {var}: {registry.deserialize(var, arg, ctx, depth + 1)}" for arg in type_ref.type_args]
        if type_ref.name in ctx.local_classes:
            arguments = [expression] + (converters if ctx.local_classes[type_ref.name] else [])
            return f"{from_json_function(type_ref.name)}({', '.join(arguments)})"
        return f"{type_ref.name}.from_json({', '.join([expression] + converters)})"


def default_helpers() -> list[TypeHelper]:
    return [
        AnyHelper(),
        PrimitiveHelper(),
        TypeParamHelper(),
        ValueTypeHelper(),
        EnumHelper(),
        IterableHelper(),
        MapHelper(),
        ConvertibleHelper(),
    ]


class TypeHelperRegistry:
    """Ordered collection of type helpers.

    Nullable types are unwrapped here, so helpers only ever see non-nullable
    types.
    """

    def __init__(self, helpers: list[TypeHelper] | None = None):
        self.helpers = list(helpers) if helpers is not None else default_helpers()

    def with_helpers(self, *helpers: TypeHelper) -> TypeHelperRegistry:
        """Return a registry trying `helpers` before the current ones."""
        return TypeHelperRegistry(list(helpers) + self.helpers)

    def serialize(self, expression: str, type_ref: TypeRef, ctx: EmitContext, depth: int = 0) -> str:
        """Return the expression encoding `expression` of type `type_ref`.

        Raises:
            UnsupportedTypeError: If no helper handles the type
        """
        if type_ref.is_nullable:
            inner = self.serialize(expression, type_ref.with_nullable(False), ctx, depth)
            return self._wrap_nullable(expression, inner)
        for helper in self.helpers:
            result = helper.serialize(expression, type_ref, ctx, self, depth)
            if result is not None:
                return result
        raise UnsupportedTypeError(f'Could not generate `to_json` code for type "{type_ref}".')

    def deserialize(self, expression: str, type_ref: TypeRef, ctx: EmitContext, depth: int = 0) -> str:
        """Return the expression decoding `expression` into type `type_ref`.

        Raises:
            UnsupportedTypeError: If no helper handles the type
        """
        if type_ref.is_nullable:
            inner = self.deserialize(expression, type_ref.with_nullable(False), ctx, depth)
            return self._wrap_nullable(expression, inner)
        for helper in self.helpers:
            result = helper.deserialize(expression, type_ref, ctx, self, depth)
            if result is not None:
                return result
        raise UnsupportedTypeError(f'Could not generate `from_json` code for type "{type_ref}".')

    @staticmethod
    def _wrap_nullable(expression: str, inner: str) -> str:
        if inner == expression:
            return expression
        return f"None if {expression} is None else {inner}"
