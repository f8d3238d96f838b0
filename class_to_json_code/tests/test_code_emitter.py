import ast

import pytest

from class_to_json_code.pipeline import GeneratorConfig, UnsupportedTypeError
from class_to_json_code.pipeline.analyzer import merge_config, select_fields
from class_to_json_code.pipeline.emitter import CodeEmitter, TypeHelper, TypeHelperRegistry
from class_to_json_code.pipeline.model import ClassModel, ConstructorParam, FieldDescriptor, TypeKind, TypeRef

from .conftest import read_unit

POINT = """
from dataclasses import dataclass

@json_serializable
@dataclass
class Point:
    x: int
    y: int
"""


def emit_unit(source, config=None, emitter=None):
    emitter = emitter or CodeEmitter()
    unit = read_unit(source)
    class_model = unit.annotated_with("json_serializable")[0].element
    global_config = config or GeneratorConfig()
    config = merge_config(global_config, class_model.override)
    selection = select_fields(class_model, config)
    ctx = emitter.create_context(class_model, config, unit, global_config)
    return emitter.emit(class_model, selection, config, ctx), ctx


class TestCodeEmitter:
    """Test class for fragment emission"""

    def test_point_fragments(self):
        """Default config emits the decode factory then the encode function"""
        fragments, ctx = emit_unit(POINT)
        assert fragments == [
            'def _point_from_json(json: dict[str, Any]) -> Point:\n'
            '    return Point(\n'
            '        x=int(json["x"]),\n'
            '        y=int(json["y"]),\n'
            '    )',
            'def _point_to_json(instance: Point) -> dict[str, Any]:\n'
            '    return {\n'
            '        "x": instance.x,\n'
            '        "y": instance.y,\n'
            '    }',
        ]
        assert ("typing", "Any") in ctx.imports
        assert "Point" in ctx.type_names

    def test_deterministic(self):
        """Emitting twice from identical inputs gives identical text"""
        first, _ = emit_unit(POINT, GeneratorConfig(create_field_map=True, create_json_keys=True, create_per_field_to_json=True))
        second, _ = emit_unit(POINT, GeneratorConfig(create_field_map=True, create_json_keys=True, create_per_field_to_json=True))
        assert first == second

    def test_optional_fragments_order(self):
        """Field map, keys class and per-field map sit between decode and encode"""
        fragments, _ = emit_unit(POINT, GeneratorConfig(create_field_map=True, create_json_keys=True, create_per_field_to_json=True))
        assert [f.split("\n")[0] for f in fragments] == [
            "def _point_from_json(json: dict[str, Any]) -> Point:",
            "_POINT_FIELD_MAP: dict[str, str] = {",
            "class _PointJsonKeys:",
            "_POINT_PER_FIELD_TO_JSON: dict[str, Callable[..., Any]] = {",
            "def _point_to_json(instance: Point) -> dict[str, Any]:",
        ]
        for fragment in fragments:
            ast.parse(fragment)

    def test_empty_field_set(self):
        """A class without fields still gets valid functions"""
        fragments, _ = emit_unit(
            """
            @json_serializable
            class Empty:
                pass
            """,
            GeneratorConfig(create_json_keys=True),
        )
        assert fragments[0] == "def _empty_from_json(json: dict[str, Any]) -> Empty:\n    return Empty()"
        assert fragments[1] == "class _EmptyJsonKeys:\n    pass"
        assert fragments[2] == "def _empty_to_json(instance: Empty) -> dict[str, Any]:\n    return {}"

    def test_disabled_fragments(self):
        fragments, _ = emit_unit(POINT, GeneratorConfig(create_factory=False, create_to_json=False))
        assert fragments == []

    def test_unsupported_map_key(self):
        """Map keys other than str, int or enums are rejected"""
        with pytest.raises(UnsupportedTypeError):
            emit_unit(
                """
                from dataclasses import dataclass

                @json_serializable
                @dataclass
                class Bad:
                    values: dict[float, int]
                """
            )

    def test_json_methods(self):
        """In-place members delegate to the companion functions"""
        class_model = ClassModel(name="Point", fields=(FieldDescriptor("x"),), constructor_params=(ConstructorParam("x"),))
        text = CodeEmitter().emit_json_methods(class_model, GeneratorConfig().resolved(), ".point_json")
        assert text == (
            "def to_json(self) -> dict:\n"
            "    from .point_json import _point_to_json\n"
            "\n"
            "    return _point_to_json(self)\n"
            "\n"
            "@classmethod\n"
            'def from_json(cls, json: dict) -> "Point":\n'
            "    from .point_json import _point_from_json\n"
            "\n"
            "    return _point_from_json(json)"
        )


class TestTypeHelperRegistry:
    """Test class for the pluggable conversion registry"""

    def test_prepended_helper_wins(self):
        """Helpers added with with_helpers are tried first"""

        class MoneyHelper(TypeHelper):
            def serialize(self, expression, type_ref, ctx, registry, depth):
                if type_ref.kind is TypeKind.CLASS and type_ref.name == "Money":
                    return f"{expression}.cents"
                return None

        registry = TypeHelperRegistry().with_helpers(MoneyHelper())
        emitter = CodeEmitter(registry=registry)
        fragments, _ = emit_unit(
            """
            from dataclasses import dataclass

            @json_serializable(create_factory=False)
            @dataclass
            class Price:
                amount: Money
            """,
            emitter=emitter,
        )
        assert '"amount": instance.amount.cents,' in fragments[0]

    def test_nullable_wrapping(self):
        registry = TypeHelperRegistry()
        ctx = CodeEmitter().create_context(ClassModel(name="A"), GeneratorConfig().resolved())
        type_ref = TypeRef(TypeKind.PRIMITIVE, "int", is_nullable=True)
        assert registry.deserialize('json["a"]', type_ref, ctx) == 'None if json["a"] is None else int(json["a"])'
        assert registry.serialize("instance.a", type_ref, ctx) == "instance.a"

    def test_external_class_uses_members(self):
        """Classes outside the unit go through their from_json/to_json members"""
        registry = TypeHelperRegistry()
        ctx = CodeEmitter().create_context(ClassModel(name="A"), GeneratorConfig().resolved())
        type_ref = TypeRef(TypeKind.CLASS, "Remote")
        assert registry.deserialize("v", type_ref, ctx) == "Remote.from_json(v)"
        assert registry.serialize("v", type_ref, ctx) == "v.to_json()"
