import ast

import pytest

from class_to_json_code.pipeline import DuplicateKeyError, GeneratorComposer, GeneratorConfig, Severity
from class_to_json_code.pipeline.diagnostics import DiagnosticCollector
from class_to_json_code.pipeline.model import AnnotatedElement, ClassModel, ConstructorParam, FieldDescriptor, SourceModelReader, UnitModel
from class_to_json_code.pipeline.patcher import splice

from .conftest import read_unit

COLORS = """
from dataclasses import dataclass
from enum import Enum

@json_enum
class Color(Enum):
    RED = "red"

@json_serializable
@dataclass
class Tag:
    color: Color

@json_serializable
@dataclass
class Label:
    color: Color
"""


class TestGeneratorComposer:
    """Test class for composing pass output"""

    def test_enum_map_deduplicated(self):
        """The enum pass and enum-typed fields emit the same map once"""
        generated = GeneratorComposer.default(GeneratorConfig()).compose(read_unit(COLORS))
        maps = [f for f in generated.fragments if f.startswith("_COLOR_ENUM_MAP")]
        assert len(maps) == 1
        decoders = [f for f in generated.fragments if f.startswith("def _enum_decode")]
        assert len(decoders) == 1
        assert generated.text.count("\n\n\n") == 0
        ast.parse("from __future__ import annotations\n" + generated.text)

    def test_fragment_order(self):
        """Fragments keep first-seen order across classes"""
        generated = GeneratorComposer.default(GeneratorConfig()).compose(read_unit(COLORS))
        names = [f.split("\n")[0] for f in generated.fragments]
        assert names.index("def _tag_from_json(json: dict[str, Any]) -> Tag:") < names.index(
            "def _label_from_json(json: dict[str, Any]) -> Label:"
        )

    def test_fail_fast(self):
        """An element error aborts the whole unit"""
        unit = read_unit(
            """
            from dataclasses import dataclass
            from typing import Annotated

            @json_serializable
            @dataclass
            class Clash:
                a: Annotated[int, JsonKey(name="v")]
                b: Annotated[int, JsonKey(name="v")]
            """
        )
        with pytest.raises(DuplicateKeyError):
            GeneratorComposer.default(GeneratorConfig()).compose(unit)

    def test_json_methods_patch(self):
        """add_json_methods yields one patch per class with the delegating members"""
        unit = read_unit(
            """
            from dataclasses import dataclass

            @json_serializable(add_json_methods=True)
            @dataclass
            class Point:
                x: int
            """,
            path="pkg/point.py",
        )
        generated = GeneratorComposer.default(GeneratorConfig()).compose(unit)
        assert len(generated.patches) == 1
        patched = splice(unit.source, generated.patches)
        assert "    def to_json(self) -> dict:\n        from .point_json import _point_to_json\n" in patched
        assert "    @classmethod\n    def from_json(cls, json: dict)" in patched
        ast.parse(patched)

    def test_json_methods_patch_keeps_crlf_newlines(self):
        source = "@json_serializable(add_json_methods=True)\r\nclass Point:\r\n    def __init__(self, x: int):\r\n        self.x = x\r\n"
        unit = SourceModelReader().read("point.py", source)
        generated = GeneratorComposer.default(GeneratorConfig()).compose(unit)
        patched = splice(unit.source, generated.patches)
        assert "def to_json(self) -> dict:\r\n" in patched
        assert patched.count("\n") == patched.count("\r\n")
        ast.parse(patched)

    def test_single_line_class_body_is_reported(self):
        """Members are not spliced after a body sharing the class line"""
        unit = read_unit(
            """
            @json_serializable(add_json_methods=True)
            class Empty: pass
            """
        )
        diagnostics = DiagnosticCollector()
        generated = GeneratorComposer.default(GeneratorConfig()).compose(unit, diagnostics)

        assert generated.patches == []
        assert any(f.startswith("def _empty_from_json") for f in generated.fragments)
        assert [d.severity for d in diagnostics] == [Severity.ERROR]
        assert "single-line body" in diagnostics.diagnostics[0].message

    def test_existing_members_are_kept(self):
        """No patch when both members already exist"""
        unit = read_unit(
            """
            @json_serializable(add_json_methods=True)
            class Point:
                def __init__(self, x: int):
                    self.x = x

                def to_json(self):
                    return {"x": self.x}

                @classmethod
                def from_json(cls, json):
                    return cls(json["x"])
            """
        )
        generated = GeneratorComposer.default(GeneratorConfig()).compose(unit)
        assert generated.patches == []
        assert not generated.is_empty()

    def test_class_not_found_drops_only_the_patch(self):
        """A patch target missing from the snapshot is reported; companion fragments remain"""
        ghost = ClassModel(name="Ghost", fields=(FieldDescriptor("x"),), constructor_params=(ConstructorParam("x"),))
        unit = UnitModel(
            path="ghost.py",
            source="x = 1\n",
            classes=(ghost,),
            annotated=(AnnotatedElement("json_serializable", ghost),),
        )
        diagnostics = DiagnosticCollector("ghost.py")
        generated = GeneratorComposer.default(GeneratorConfig(add_json_methods=True)).compose(unit, diagnostics)

        assert generated.patches == []
        assert any(f.startswith("def _ghost_from_json") for f in generated.fragments)
        assert [d.severity for d in diagnostics] == [Severity.ERROR]
        assert diagnostics.diagnostics[0].element == "Ghost"

    def test_empty_enum_warns(self):
        diagnostics = DiagnosticCollector()
        unit = read_unit(
            """
            from enum import Enum

            @json_enum
            class Nothing(Enum):
                pass
            """
        )
        GeneratorComposer.default(GeneratorConfig()).compose(unit, diagnostics)
        assert [d.severity for d in diagnostics] == [Severity.WARNING]
