"""
Code emission.

Turns a class snapshot, its field selection and its resolved configuration
into Python source fragments. Emission is a pure function of its inputs:
the same inputs always render byte-identical text.
"""

from __future__ import annotations

from typing import Any

from ...utils import to_screaming_snake_case
from ..analyzer.config_merger import merge_config
from ..analyzer.field_selector import FieldSelection
from ..config import GeneratorConfig, ResolvedConfig
from ..model.nodes import ClassModel, EnumModel, FieldDescriptor, TypeRef, UnitModel
from ..model.reader import SERIALIZABLE_TRIGGER
from .templates import TemplateRenderer, default_renderer, format_literal
from .type_helpers import (
    EmitContext,
    TypeHelperRegistry,
    factory_name,
    from_json_function,
    render_enum_map,
    to_json_function,
)


class CodeEmitter:
    """Renders the JSON encode/decode fragments of a class."""

    def __init__(self, registry: TypeHelperRegistry | None = None, renderer: TemplateRenderer | None = None):
        """
        Initialize the emitter.

        Args:
            registry: Per-type conversion registry (defaults to the built-in helpers)
            renderer: Template renderer (defaults to the packaged python templates)
        """
        self.registry = registry or TypeHelperRegistry()
        self.renderer = renderer or default_renderer()

    def create_context(
        self,
        class_model: ClassModel,
        config: ResolvedConfig,
        unit: UnitModel | None = None,
        global_config: GeneratorConfig | None = None,
    ) -> EmitContext:
        """Create the emission context of a class within its unit.

        Args:
            class_model: The class snapshot
            config: Its resolved configuration
            unit: The unit declaring it
            global_config: Configuration the other classes of the unit are merged onto
        """
        type_params = class_model.type_params if config.generic_argument_factories else ()
        ctx = EmitContext(
            enums={e.name: e for e in unit.enums} if unit else {},
            type_params=type_params,
            local_classes=self._local_classes(unit, global_config or GeneratorConfig()) if unit else {},
            renderer=self.renderer,
        )
        ctx.add_import("typing", "Any")
        ctx.type_names.add(class_model.name)
        if type_params:
            ctx.add_import("collections.abc", "Callable")
        return ctx

    @staticmethod
    def _local_classes(unit: UnitModel, global_config: GeneratorConfig) -> dict[str, bool]:
        """Serializable classes of the unit and whether they take generic argument factories."""
        local_classes = {}
        for element in unit.annotated_with(SERIALIZABLE_TRIGGER):
            c = element.element
            factories = merge_config(global_config, c.override, element=c.name).generic_argument_factories
            local_classes[c.name] = bool(factories and c.type_params)
        return local_classes

    def emit(self, class_model: ClassModel, selection: FieldSelection, config: ResolvedConfig, ctx: EmitContext) -> list[str]:
        """Emit every fragment enabled by the configuration.

        Args:
            class_model: The class snapshot
            selection: Its field selection
            config: Its resolved configuration
            ctx: Emission context, receiving helper members and imports

        Returns:
            Fragments in emission order, helper members last

        Raises:
            UnsupportedTypeError: If a field type cannot be converted
        """
        fragments = []
        if config.create_factory:
            fragments.append(self.emit_from_json(class_model, selection, config, ctx))
        if config.create_field_map:
            fragments.append(self.emit_field_map(class_model, selection))
        if config.create_json_keys:
            fragments.append(self.emit_json_keys(class_model, selection))
        if config.create_per_field_to_json:
            fragments.append(self.emit_per_field_to_json(class_model, selection, ctx))
        if config.create_to_json:
            fragments.append(self.emit_to_json(class_model, selection, ctx))
        fragments.extend(ctx.members)
        return fragments

    def emit_from_json(self, class_model: ClassModel, selection: FieldSelection, config: ResolvedConfig, ctx: EmitContext) -> str:
        """Render the decode factory."""
        args = []
        optional_args = []
        for binding in selection.constructor_bindings:
            f = binding.field
            key = selection.key(f)
            if binding.param.has_default and key.default_value is None:
                optional_args.append(self._decode_entry(f, selection, ctx, guarded=True))
            else:
                args.append(self._decode_entry(f, selection, ctx, guarded=False))

        assignments = [self._decode_entry(f, selection, ctx, guarded=True) for f in selection.assigned_fields]

        factory_params = [f"{factory_name('from_json', t)}: Callable[[Any], {t}]" for t in ctx.type_params]
        return self.renderer.render(
            "from_json",
            function_name=from_json_function(class_model.name),
            class_name=class_model.name,
            factory_params=factory_params,
            check_keys=self._check_keys_arguments(selection, config, ctx),
            args=args,
            optional_args=optional_args,
            assignments=assignments,
        )

    def emit_to_json(self, class_model: ClassModel, selection: FieldSelection, ctx: EmitContext) -> str:
        """Render the encode function.

        Unconditional fields go into the dict literal until the first guarded
        field; everything after is assigned in order so key order follows
        declaration order.
        """
        entries: list[dict[str, Any]] = []
        statements: list[dict[str, Any]] = []
        for f in selection.encode_fields:
            key = selection.key(f)
            accessor = f"instance.{f.name}"
            conditions = []
            type_ref = f.type_ref
            if not key.include_if_null and type_ref.is_nullable:
                conditions.append(f"{accessor} is not None")
                type_ref = type_ref.with_nullable(False)
            default = key.default_value if key.default_value is not None else f.default_expr
            if key.omit_if_default and default is not None:
                conditions.append(f"{accessor} != {default}")

            if key.to_json:
                value = f"{key.to_json}({accessor})"
            else:
                value = self.registry.serialize(accessor, type_ref, ctx)

            entry = {"key": key.json_key, "value": value, "condition": " and ".join(conditions)}
            if conditions or statements:
                statements.append(entry)
            else:
                entries.append(entry)

        factory_params = [f"{factory_name('to_json', t)}: Callable[[Any], Any]" for t in ctx.type_params]
        return self.renderer.render(
            "to_json",
            function_name=to_json_function(class_model.name),
            class_name=class_model.name,
            factory_params=factory_params,
            entries=entries,
            statements=statements,
        )

    def emit_field_map(self, class_model: ClassModel, selection: FieldSelection) -> str:
        """Render the field name -> output key constant."""
        entries = [(f.name, selection.key(f).json_key) for f in selection.encode_fields]
        return self.renderer.render(
            "field_map",
            map_name=f"_{to_screaming_snake_case(class_model.name)}_FIELD_MAP",
            entries=entries,
        )

    def emit_json_keys(self, class_model: ClassModel, selection: FieldSelection) -> str:
        """Render a class holding one constant per output key."""
        entries = [(f.name, selection.key(f).json_key) for f in selection.encode_fields]
        return self.renderer.render("json_keys", class_name=f"_{class_model.name}JsonKeys", entries=entries)

    def emit_per_field_to_json(self, class_model: ClassModel, selection: FieldSelection, ctx: EmitContext) -> str:
        """Render the output key -> encode function map."""
        ctx.add_import("collections.abc", "Callable")
        entries = []
        for f in selection.encode_fields:
            key = selection.key(f)
            value = f"{key.to_json}(value)" if key.to_json else self.registry.serialize("value", f.type_ref, ctx)
            entries.append((key.json_key, value))
        return self.renderer.render(
            "per_field_to_json",
            map_name=f"_{to_screaming_snake_case(class_model.name)}_PER_FIELD_TO_JSON",
            factory_params=[factory_name("to_json", t) for t in ctx.type_params],
            entries=entries,
        )

    def emit_enum_map(self, enum_model: EnumModel) -> str:
        """Render the member -> JSON value constant of an enum."""
        return render_enum_map(enum_model, self.renderer)

    def emit_json_methods(
        self,
        class_model: ClassModel,
        config: ResolvedConfig,
        module: str,
        include_to_json: bool = True,
        include_from_json: bool = True,
    ) -> str:
        """Render the to_json/from_json members inserted into the class body.

        The members delegate to the companion module, so the logic lives in
        exactly one place.
        """
        type_params = class_model.type_params if config.generic_argument_factories else ()
        return self.renderer.render(
            "json_methods",
            class_name=class_model.name,
            module=module,
            include_to_json=include_to_json,
            include_from_json=include_from_json,
            to_json_function=to_json_function(class_model.name),
            from_json_function=from_json_function(class_model.name),
            to_json_params=[factory_name("to_json", t) for t in type_params],
            from_json_params=[factory_name("from_json", t) for t in type_params],
        )

    def _decode_entry(self, f: FieldDescriptor, selection: FieldSelection, ctx: EmitContext, guarded: bool) -> dict[str, str]:
        key = selection.key(f)
        literal_key = format_literal(key.json_key)
        type_ref = f.type_ref

        if guarded or not (type_ref.is_nullable or key.default_value is not None):
            access = f"json[{literal_key}]"
        else:
            access = f"json.get({literal_key})"

        if key.default_value is not None:
            # The default also covers an explicit null
            present = f"json[{literal_key}]" if guarded else f"json.get({literal_key})"
            converted = self._decode_value(present, f, type_ref.with_nullable(False), selection, ctx)
            value = f"{key.default_value} if {present} is None else {converted}"
        else:
            value = self._decode_value(access, f, type_ref, selection, ctx)
        return {"name": f.name, "key": key.json_key, "value": value}

    def _decode_value(self, access: str, f: FieldDescriptor, type_ref: TypeRef, selection: FieldSelection, ctx: EmitContext) -> str:
        converter = selection.key(f).from_json
        if converter:
            return f"{converter}({access})"
        return self.registry.deserialize(access, type_ref, ctx)

    def _check_keys_arguments(self, selection: FieldSelection, config: ResolvedConfig, ctx: EmitContext) -> str:
        arguments = []
        if config.disallow_unrecognized_keys:
            allowed = [selection.key(f).json_key for f in selection.decode_fields]
            arguments.append(f"allowed_keys={format_literal(allowed)}")
        required = [selection.key(f).json_key for f in selection.decode_fields if selection.key(f).required]
        if required:
            arguments.append(f"required_keys={format_literal(required)}")
        disallow_null = [selection.key(f).json_key for f in selection.decode_fields if selection.key(f).disallow_null_value]
        if disallow_null:
            arguments.append(f"disallow_null_values={format_literal(disallow_null)}")
        if arguments:
            ctx.add_member(self.renderer.render("check_keys"))
        return ", ".join(arguments)
