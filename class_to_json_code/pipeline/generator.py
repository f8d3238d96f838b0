"""
Pipeline generator.

Processes units (Python source files) as independent asyncio tasks:

1. Read the unit's source (worker thread)
2. Build the semantic model
3. Compose the output of every generation pass
4. Write the companion module (worker thread)

Once every unit is done, all patch instructions of the run are merged into
one batch per file and applied.
"""

from __future__ import annotations

import asyncio
import collections
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .composer import GeneratedUnit, GeneratorComposer
from .config import GeneratorConfig
from .diagnostics import Diagnostic, DiagnosticCollector
from .emitter.templates import TemplateRenderer, default_renderer
from .errors import GeneratorError
from .model.nodes import UnitModel
from .model.reader import SourceModelReader
from .patcher import AtomicWriter, PatchReport, SourcePatcher, read_source

logger = logging.getLogger(__name__)

GENERATION_COMMENT = "Generated by class_to_json_code. Do not edit by hand."

STDLIB_MODULES = {"collections.abc", "datetime", "decimal", "typing", "uuid"}


@dataclass
class UnitReport:
    """Result of processing one unit."""

    path: str
    diagnostics: DiagnosticCollector
    generated: GeneratedUnit | None = None
    companion_path: str | None = None
    companion_written: bool = False
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunReport:
    """Result of one generation run."""

    units: list[UnitReport] = field(default_factory=list)
    patches: PatchReport = field(default_factory=PatchReport)

    @property
    def ok(self) -> bool:
        return all(u.ok for u in self.units) and self.patches.ok

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return [d for u in self.units for d in u.diagnostics]


class PipelineGenerator:
    """Generates JSON encode/decode code for a set of Python source files."""

    def __init__(
        self,
        config: GeneratorConfig | None = None,
        reader: SourceModelReader | None = None,
        composer: GeneratorComposer | None = None,
        patcher: SourcePatcher | None = None,
        writer: AtomicWriter | None = None,
        renderer: TemplateRenderer | None = None,
    ):
        """
        Initialize the pipeline.

        Args:
            config: Global configuration
            reader: Semantic model reader
            composer: Composer holding the generation passes
            patcher: Patcher applying in-place rewrites
            writer: Writer for companion modules
            renderer: Template renderer for the companion prefix
        """
        self.config = config or GeneratorConfig()
        self.reader = reader or SourceModelReader()
        self.composer = composer or GeneratorComposer.default(self.config)
        self.writer = writer or AtomicWriter()
        self.patcher = patcher or SourcePatcher(self.writer, validate=self.config.output.validate_before_write)
        self.renderer = renderer or default_renderer()

    def generate(self, unit: UnitModel, diagnostics: DiagnosticCollector | None = None) -> GeneratedUnit:
        """Compose the output of one unit without touching the file system."""
        return self.composer.compose(unit, diagnostics)

    def companion_path(self, path: str | Path) -> Path:
        path = Path(path)
        return path.with_name(f"{path.stem}{self.config.output.companion_suffix}.py")

    def render_companion(self, unit: UnitModel, generated: GeneratedUnit) -> str:
        """Render the full companion module of a unit."""
        prefix = self.renderer.render(
            "prefix",
            generation_comment=GENERATION_COMMENT if self.config.output.add_generation_comment else "",
            required_imports=self._assemble_imports(unit, generated),
        )
        return f"{prefix}\n\n\n{generated.text}\n"

    def _assemble_imports(self, unit: UnitModel, generated: GeneratedUnit) -> list[str]:
        """Assemble the import statements of a companion module."""
        import_groups: dict[str, set[str]] = collections.defaultdict(set)
        for module, name in generated.imports:
            import_groups[module].add(name)

        declared = {c.name for c in unit.classes} | {e.name for e in unit.enums}
        local_names = sorted(generated.type_names & declared)

        assembled = ["from __future__ import annotations", ""]

        stdlib_groups = {m: import_groups[m] for m in import_groups if m in STDLIB_MODULES}
        other_groups = {m: import_groups[m] for m in import_groups if m not in STDLIB_MODULES}

        for module in sorted(stdlib_groups):
            assembled.append(f"from {module} import {', '.join(sorted(stdlib_groups[module]))}")

        if other_groups:
            assembled.append("")
            for module in sorted(other_groups):
                assembled.append(f"from {module} import {', '.join(sorted(other_groups[module]))}")

        if local_names:
            prefix = "." if self.config.output.relative_imports else ""
            assembled.append("")
            assembled.append(f"from {prefix}{unit.module_name} import {', '.join(local_names)}")

        return assembled

    async def process_unit(self, path: str | Path) -> UnitReport:
        """Read, compose and write the companion of one unit.

        Errors are recorded on the report so they never abort sibling units.
        """
        path_str = str(path)
        diagnostics = DiagnosticCollector(path_str)
        report = UnitReport(path=path_str, diagnostics=diagnostics)
        try:
            source = await asyncio.to_thread(read_source, Path(path))
            unit = self.reader.read(path_str, source)
            generated = self.generate(unit, diagnostics)
            report.generated = generated

            if self.config.output.write_companion and not generated.is_empty():
                companion = self.companion_path(path)
                content = self.render_companion(unit, generated)
                report.companion_path = str(companion)
                report.companion_written = await asyncio.to_thread(
                    self.writer.write_if_changed,
                    companion,
                    content,
                    self.config.output.validate_before_write,
                )
        except (GeneratorError, OSError) as e:
            diagnostics.error(f"Generation failed: {e}")
            report.error = e
        return report

    async def run_async(self, paths: Iterable[str | Path]) -> RunReport:
        """Process every unit concurrently, then apply all patches per file."""
        units = await asyncio.gather(*(self.process_unit(path) for path in paths))
        report = RunReport(units=list(units))

        # Units that failed contribute nothing; their patches were never returned
        instructions = [patch for unit in units if unit.generated is not None for patch in unit.generated.patches]
        report.patches = await self.patcher.apply_async(instructions)
        logger.info(
            "Processed %d units: %d companions written, %d files patched",
            len(report.units),
            sum(1 for u in report.units if u.companion_written),
            len(report.patches.changed_paths),
        )
        return report

    def run(self, paths: Iterable[str | Path]) -> RunReport:
        """Synchronous wrapper around run_async."""
        return asyncio.run(self.run_async(list(paths)))
