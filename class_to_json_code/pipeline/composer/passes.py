"""
Generation passes.

Each pass recognizes its own trigger on annotated elements and returns the
fragments (and, for in-place rewriting, the patch instructions) it produces
for one element. Passes are independent of each other; the composer merges
their results.
"""

from __future__ import annotations

import textwrap
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..analyzer.config_merger import merge_config
from ..analyzer.field_selector import select_fields
from ..config import GeneratorConfig, OutputConfig, ResolvedConfig
from ..diagnostics import DiagnosticCollector
from ..emitter.code_emitter import CodeEmitter
from ..errors import ClassNotFoundError
from ..model.nodes import AnnotatedElement, ClassModel, EnumModel, UnitModel
from ..model.reader import ENUM_TRIGGER, SERIALIZABLE_TRIGGER, locate_class
from ..patcher.patch import PatchInstruction


def companion_module(unit: UnitModel, output: OutputConfig) -> str:
    """Import path of the companion module generated for a unit."""
    prefix = "." if output.relative_imports else ""
    return f"{prefix}{unit.module_name}{output.companion_suffix}"


@dataclass
class PassResult:
    """Everything one pass produced for one element."""

    fragments: list[str] = field(default_factory=list)
    imports: set[tuple[str, str]] = field(default_factory=set)
    type_names: set[str] = field(default_factory=set)
    patches: list[PatchInstruction] = field(default_factory=list)


class GenerationPass(ABC):
    """A generation pass triggered by one marker decorator."""

    trigger: str = ""

    def __init__(self, config: GeneratorConfig, emitter: CodeEmitter | None = None):
        """
        Initialize the pass.

        Args:
            config: Global generator configuration
            emitter: Code emitter shared by the passes of a composer
        """
        self.config = config
        self.emitter = emitter or CodeEmitter()

    def matches(self, element: AnnotatedElement) -> bool:
        return element.trigger == self.trigger

    @abstractmethod
    def run(self, unit: UnitModel, element: AnnotatedElement, diagnostics: DiagnosticCollector) -> PassResult:
        """
        Generate the output of one annotated element.

        Args:
            unit: The unit the element belongs to
            element: The annotated element
            diagnostics: Collector for the unit

        Returns:
            The fragments and patches for the element

        Raises:
            GeneratorError: If the element cannot be generated
        """


class SerializablePass(GenerationPass):
    """Encode/decode code for classes marked with @json_serializable."""

    trigger = SERIALIZABLE_TRIGGER

    def run(self, unit: UnitModel, element: AnnotatedElement, diagnostics: DiagnosticCollector) -> PassResult:
        class_model = element.element
        assert isinstance(class_model, ClassModel)

        config = merge_config(self.config, class_model.override, element=class_model.name)
        selection = select_fields(class_model, config, diagnostics)
        ctx = self.emitter.create_context(class_model, config, unit, self.config)
        result = PassResult(
            fragments=self.emitter.emit(class_model, selection, config, ctx),
            imports=set(ctx.imports),
            type_names=set(ctx.type_names),
        )

        if config.add_json_methods:
            if not self.config.output.write_companion:
                diagnostics.warning("In-place members delegate to the companion module, which is not being written.", element=class_model.name)
            try:
                patch = self.json_methods_patch(unit, class_model, config)
            except ClassNotFoundError as e:
                # Only the in-place patch is lost; the companion output stands
                diagnostics.error(f"In-place members were not added: {e.message}", element=class_model.name)
            else:
                if patch is not None:
                    result.patches.append(patch)
        return result

    def json_methods_patch(self, unit: UnitModel, class_model: ClassModel, config: ResolvedConfig) -> PatchInstruction | None:
        """Compute the patch adding the to_json/from_json members to a class.

        Members already present in the class body are not added again; when
        nothing is missing no patch is returned.

        Raises:
            ClassNotFoundError: If the class is not declared at the top level of the snapshot
        """
        location = locate_class(unit.source, class_model.name)
        include_to_json = config.create_to_json and "to_json" not in location.method_names
        include_from_json = config.create_factory and "from_json" not in location.method_names
        if not (include_to_json or include_from_json):
            return None

        members = self.emitter.emit_json_methods(
            class_model,
            config,
            companion_module(unit, self.config.output),
            include_to_json=include_to_json,
            include_from_json=include_from_json,
        )
        declaration = unit.source[location.start_offset : location.end_offset]
        newline = location.newline
        body = textwrap.indent(members, location.body_indent).replace("\n", newline)
        replacement = f"{declaration}{newline}{newline}{body}"
        return PatchInstruction(unit.path, location.start_offset, location.end_offset, replacement)


class EnumPass(GenerationPass):
    """Value maps for enums marked with @json_enum."""

    trigger = ENUM_TRIGGER

    def run(self, unit: UnitModel, element: AnnotatedElement, diagnostics: DiagnosticCollector) -> PassResult:
        enum_model = element.element
        assert isinstance(enum_model, EnumModel)
        if not enum_model.members:
            diagnostics.warning("Enum has no members; its value map is empty.", element=enum_model.name)
        return PassResult(fragments=[self.emitter.emit_enum_map(enum_model)], type_names={enum_model.name})


def default_passes(config: GeneratorConfig, emitter: CodeEmitter | None = None) -> list[GenerationPass]:
    emitter = emitter or CodeEmitter()
    return [SerializablePass(config, emitter), EnumPass(config, emitter)]
