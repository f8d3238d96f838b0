"""
Shared helpers: generate the companion of a source snippet and load both
modules so generated code can be called.
"""

from __future__ import annotations

import sys
import textwrap
import types

import pytest

from class_to_json_code.pipeline import GeneratorConfig, OutputConfig, PipelineGenerator
from class_to_json_code.pipeline.model import SourceModelReader


def read_unit(source: str, path: str = "sample.py"):
    return SourceModelReader().read(path, textwrap.dedent(source))


@pytest.fixture
def load_generated(monkeypatch):
    """Return a loader: (source, config) -> (source module, companion module)."""

    def loader(source: str, config: GeneratorConfig | None = None, module_name: str = "sample"):
        config = config or GeneratorConfig()
        config.output = OutputConfig(relative_imports=False)
        source = textwrap.dedent(source)

        module = types.ModuleType(module_name)
        monkeypatch.setitem(sys.modules, module_name, module)
        exec(compile(source, f"{module_name}.py", "exec"), module.__dict__)

        generator = PipelineGenerator(config)
        unit = generator.reader.read(f"{module_name}.py", source)
        generated = generator.generate(unit)
        companion_source = generator.render_companion(unit, generated)

        companion = types.ModuleType(f"{module_name}_json")
        monkeypatch.setitem(sys.modules, companion.__name__, companion)
        exec(compile(companion_source, f"{module_name}_json.py", "exec"), companion.__dict__)
        return module, companion

    return loader
