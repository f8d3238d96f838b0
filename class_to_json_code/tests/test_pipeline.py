"""
End-to-end pipeline tests on real files.
"""

import ast
import textwrap

from class_to_json_code.pipeline import GeneratorConfig, InvalidGenerationSourceError, OutputConfig, PipelineGenerator, Severity

POINT = textwrap.dedent(
    '''
    from dataclasses import dataclass
    from enum import Enum

    from class_to_json_code import json_enum, json_serializable


    @json_enum
    class Shape(Enum):
        ROUND = "round"
        SQUARE = "square"


    @json_serializable
    @dataclass
    class Point:
        """A point."""

        x: int
        y: int
        shape: Shape = Shape.ROUND
    '''
).lstrip()


class TestPipelineGenerator:
    """Test class for the async generation pipeline"""

    def test_companion_written(self, tmp_path):
        source = tmp_path / "point.py"
        source.write_text(POINT)

        report = PipelineGenerator().run([source])

        assert report.ok
        companion = tmp_path / "point_json.py"
        assert report.units[0].companion_path == str(companion)
        text = companion.read_text()
        assert text.startswith("# Generated by class_to_json_code. Do not edit by hand.\n\nfrom __future__ import annotations\n")
        assert "from typing import Any\n" in text
        assert "from .point import Point, Shape\n" in text
        assert "def _point_from_json(json: dict[str, Any]) -> Point:" in text
        assert text.count("_SHAPE_ENUM_MAP = {") == 1
        assert text.endswith("\n") and not text.endswith("\n\n")
        ast.parse(text)
        # The source itself is untouched without add_json_methods
        assert source.read_text() == POINT

    def test_render_companion_imports(self, tmp_path):
        source = tmp_path / "invoice.py"
        source.write_text(
            textwrap.dedent(
                """
                from dataclasses import dataclass
                from datetime import datetime

                @json_serializable
                @dataclass
                class Invoice:
                    created: datetime
                """
            )
        )
        generator = PipelineGenerator(GeneratorConfig(output=OutputConfig(add_generation_comment=False)))
        generator.run([source])
        lines = (tmp_path / "invoice_json.py").read_text().split("\n")
        assert lines[:5] == [
            "from __future__ import annotations",
            "",
            "from datetime import datetime",
            "from typing import Any",
            "",
        ]
        assert lines[5] == "from .invoice import Invoice"

    def test_add_json_methods_and_idempotency(self, tmp_path):
        """A second run over the patched source changes nothing"""
        source = tmp_path / "point.py"
        source.write_text(POINT)
        config = GeneratorConfig(add_json_methods=True)

        first = PipelineGenerator(config).run([source])
        assert first.ok
        assert first.patches.changed_paths == [str(source)]
        patched = source.read_text()
        assert "    def to_json(self) -> dict:\n        from .point_json import _point_to_json\n" in patched
        assert '    """A point."""' in patched
        assert patched.startswith(POINT.split("@json_serializable")[0])
        companion = (tmp_path / "point_json.py").read_text()

        second = PipelineGenerator(config).run([source])
        assert second.ok
        assert second.patches.changed_paths == []
        assert not second.units[0].companion_written
        assert source.read_text() == patched
        assert (tmp_path / "point_json.py").read_text() == companion

    def test_failing_unit_does_not_abort_siblings(self, tmp_path):
        good = tmp_path / "good.py"
        good.write_text(POINT)
        bad = tmp_path / "bad.py"
        bad.write_text(
            textwrap.dedent(
                """
                from typing import Annotated

                @json_serializable
                class Clash:
                    a: Annotated[int, JsonKey(name="v")]
                    b: Annotated[int, JsonKey(name="v")]
                """
            )
        )
        broken = tmp_path / "broken.py"
        broken.write_text("class Broken(:\n")

        report = PipelineGenerator().run([bad, good, broken])

        assert not report.ok
        by_path = {u.path: u for u in report.units}
        assert by_path[str(good)].ok and by_path[str(good)].companion_written
        assert not by_path[str(bad)].ok
        assert not by_path[str(broken)].ok
        assert not (tmp_path / "bad_json.py").exists()
        errors = [d for d in report.diagnostics if d.severity is Severity.ERROR]
        assert {d.path for d in errors} == {str(bad), str(broken)}

    def test_undecodable_or_unparsable_annotation_does_not_abort_siblings(self, tmp_path):
        good = tmp_path / "good.py"
        good.write_text(POINT)
        latin1 = tmp_path / "latin1.py"
        latin1.write_bytes("# caf\u00e9\nx = 1\n".encode("latin-1"))
        bad_annotation = tmp_path / "bad_annotation.py"
        bad_annotation.write_text(
            textwrap.dedent(
                """
                from dataclasses import dataclass

                @json_serializable
                @dataclass
                class Broken:
                    x: "int["
                """
            )
        )

        config = GeneratorConfig(add_json_methods=True)
        report = PipelineGenerator(config).run([latin1, bad_annotation, good])

        assert not report.ok
        by_path = {u.path: u for u in report.units}
        assert by_path[str(good)].companion_written
        assert report.patches.changed_paths == [str(good)]
        assert isinstance(by_path[str(latin1)].error, InvalidGenerationSourceError)
        assert isinstance(by_path[str(bad_annotation)].error, InvalidGenerationSourceError)
        assert "to_json" in good.read_text()

    def test_no_companion(self, tmp_path):
        source = tmp_path / "point.py"
        source.write_text(POINT)
        config = GeneratorConfig(add_json_methods=True, output=OutputConfig(write_companion=False))
        report = PipelineGenerator(config).run([source])
        assert not (tmp_path / "point_json.py").exists()
        assert report.patches.changed_paths == [str(source)]
        assert any(d.severity is Severity.WARNING for d in report.diagnostics)

    def test_unit_without_annotations(self, tmp_path):
        source = tmp_path / "plain.py"
        source.write_text("x = 1\n")
        report = PipelineGenerator().run([source])
        assert report.ok
        assert report.units[0].companion_path is None
        assert not (tmp_path / "plain_json.py").exists()
