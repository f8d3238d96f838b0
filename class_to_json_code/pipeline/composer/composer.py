"""
Generator composer.

Runs an ordered list of passes over one unit and merges what they produce
into a single, duplicate-free GeneratedUnit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..config import GeneratorConfig
from ..diagnostics import DiagnosticCollector
from ..emitter.code_emitter import CodeEmitter
from ..model.nodes import UnitModel
from ..patcher.patch import PatchInstruction
from .passes import GenerationPass, default_passes

logger = logging.getLogger(__name__)


@dataclass
class GeneratedUnit:
    """Aggregate output of every pass for one unit.

    Attributes:
        path: Path of the unit
        fragments: Unique fragments in first-seen order
        imports: (module, name) pairs the fragments need
        type_names: Class and enum names the fragments reference
        patches: In-place patch instructions, one per patched declaration
    """

    path: str
    fragments: dict[str, None] = field(default_factory=dict)
    imports: set[tuple[str, str]] = field(default_factory=set)
    type_names: set[str] = field(default_factory=set)
    patches: list[PatchInstruction] = field(default_factory=list)

    def add_fragment(self, fragment: str) -> bool:
        """Add a fragment unless an identical one is already present.

        Returns:
            True if the fragment was new
        """
        fragment = fragment.strip()
        if not fragment or fragment in self.fragments:
            return False
        self.fragments[fragment] = None
        return True

    @property
    def text(self) -> str:
        """Fragments separated by a blank line."""
        return "\n\n".join(self.fragments)

    def is_empty(self) -> bool:
        return not self.fragments


class GeneratorComposer:
    """Runs generation passes over a unit and merges their results."""

    def __init__(self, passes: list[GenerationPass]):
        self.passes = list(passes)

    @classmethod
    def default(cls, config: GeneratorConfig, emitter: CodeEmitter | None = None) -> GeneratorComposer:
        return cls(default_passes(config, emitter))

    def compose(self, unit: UnitModel, diagnostics: DiagnosticCollector | None = None) -> GeneratedUnit:
        """Run every pass over every matching element of the unit.

        Args:
            unit: The unit snapshot
            diagnostics: Collector for the unit

        Returns:
            The merged output

        Raises:
            GeneratorError: On the first element that fails; no partial output is returned
        """
        diagnostics = diagnostics if diagnostics is not None else DiagnosticCollector(unit.path)
        generated = GeneratedUnit(path=unit.path)

        for generation_pass in self.passes:
            for element in unit.annotated:
                if not generation_pass.matches(element):
                    continue
                result = generation_pass.run(unit, element, diagnostics)
                for fragment in result.fragments:
                    if not generated.add_fragment(fragment):
                        logger.debug("Dropped duplicate fragment from %s for %s", type(generation_pass).__name__, element.name)
                generated.imports |= result.imports
                generated.type_names |= result.type_names
                generated.patches.extend(result.patches)

        return generated
