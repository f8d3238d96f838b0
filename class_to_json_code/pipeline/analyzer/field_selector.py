"""
Field selection.

Decides, per field, whether it takes part in decoding and encoding. The
two directions are decided independently: a field can be encode-only.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..config import ResolvedConfig
from ..diagnostics import DiagnosticCollector
from ..errors import DuplicateKeyError, InvalidGenerationSourceError
from ..model.nodes import ClassModel, ConstructorParam, FieldDescriptor
from .config_merger import KeyConfig, key_config_for

PRIVATE_FIELD = "It is assigned to a private field."
SETTER_ONLY = "Setter-only properties are not supported."
EXCLUDED_FROM_JSON = "It is assigned to a field not meant to be used in from_json."
NOT_CONSTRUCTIBLE = "It is final and not bound to a constructor parameter."
EXCLUDED_TO_JSON = "It is assigned to a field not meant to be used in to_json."


@dataclass
class ConstructorBinding:
    """A constructor parameter bound to the field that feeds it."""

    param: ConstructorParam
    field: FieldDescriptor


@dataclass
class FieldSelection:
    """Result of field selection for one class.

    Attributes:
        decode_fields: Fields read by the decode factory, in declaration order
        encode_fields: Fields written by the encode function, in declaration order
        constructor_bindings: Constructor parameters fed from decoded fields
        assigned_fields: Fields set on the instance after construction
        excluded: (field, reason) pairs; a field may appear once per direction
        key_configs: Resolved key configuration per field name
    """

    class_name: str
    decode_fields: list[FieldDescriptor] = field(default_factory=list)
    encode_fields: list[FieldDescriptor] = field(default_factory=list)
    constructor_bindings: list[ConstructorBinding] = field(default_factory=list)
    assigned_fields: list[FieldDescriptor] = field(default_factory=list)
    excluded: list[tuple[FieldDescriptor, str]] = field(default_factory=list)
    key_configs: dict[str, KeyConfig] = field(default_factory=dict)

    @property
    def usable(self) -> list[FieldDescriptor]:
        """Fields taking part in decode and/or encode, in declaration order."""
        by_name = {f.name: f for f in self.decode_fields + self.encode_fields}
        # key_configs is filled in declaration order
        return [by_name[name] for name in self.key_configs if name in by_name]

    def key(self, field_descriptor: FieldDescriptor) -> KeyConfig:
        return self.key_configs[field_descriptor.name]


def select_fields(
    class_model: ClassModel,
    config: ResolvedConfig,
    diagnostics: DiagnosticCollector | None = None,
) -> FieldSelection:
    """Compute the decode and encode field sets of a class.

    Args:
        class_model: The class snapshot
        config: Resolved configuration for the class
        diagnostics: Collector receiving warnings

    Returns:
        The field selection

    Raises:
        InvalidGenerationSourceError: If a required constructor argument cannot be populated
        DuplicateKeyError: If two encoded fields share an output key
    """
    diagnostics = diagnostics if diagnostics is not None else DiagnosticCollector()
    selection = FieldSelection(class_name=class_model.name)

    if config.generic_argument_factories and not class_model.type_params:
        diagnostics.warning(
            f"The class `{class_model.name}` sets `generic_argument_factories`, which only affects "
            "classes with type parameters. The option is ignored.",
            element=class_model.name,
        )

    # Used to explain why a required constructor argument cannot be populated
    unavailable_reasons: dict[str, str] = {}
    accessible: dict[str, FieldDescriptor] = {}

    for f in class_model.fields:
        key = key_config_for(config, f)
        selection.key_configs[f.name] = key
        if not f.is_public and not key.explicit_yes_from_json:
            unavailable_reasons[f.name] = PRIVATE_FIELD
        elif not f.has_getter:
            unavailable_reasons[f.name] = SETTER_ONLY
            diagnostics.warning(f"Setters are ignored: {class_model.name}.{f.name}", element=class_model.name)
        elif key.explicit_no_from_json:
            unavailable_reasons[f.name] = EXCLUDED_FROM_JSON
        else:
            accessible[f.name] = f

    for name, reason in unavailable_reasons.items():
        selection.excluded.append((class_model.field(name), reason))

    if config.create_factory:
        working = _bind_constructor(class_model, accessible, unavailable_reasons, selection)
        selection.decode_fields = list(working)

        # Forced encode fields come back even when the factory does not consume them
        for f in class_model.fields:
            if selection.key(f).explicit_yes_to_json and f.has_getter and f not in working:
                working.append(f)
        order = {f.name: i for i, f in enumerate(class_model.fields)}
        working.sort(key=lambda f: order[f.name])
    else:
        selection.decode_fields = list(accessible.values())
        working = [f for f in class_model.fields if f.name in accessible or (selection.key(f).explicit_yes_to_json and f.has_getter)]

    encode_fields = []
    for f in working:
        if selection.key(f).explicit_no_to_json:
            selection.excluded.append((f, EXCLUDED_TO_JSON))
        else:
            encode_fields.append(f)

    # Checked last, against the final field list after all pruning
    seen_keys: dict[str, FieldDescriptor] = {}
    for f in encode_fields:
        json_key = selection.key(f).json_key
        if json_key in seen_keys:
            raise DuplicateKeyError(json_key, seen_keys[json_key].name, f.name, element=class_model.name)
        seen_keys[json_key] = f

    selection.encode_fields = encode_fields
    return selection


def _bind_constructor(
    class_model: ClassModel,
    accessible: dict[str, FieldDescriptor],
    unavailable_reasons: dict[str, str],
    selection: FieldSelection,
) -> list[FieldDescriptor]:
    """Bind constructor parameters to fields and return the fields the factory consumes."""
    bound: set[str] = set()
    for param in class_model.constructor_params:
        f = accessible.get(param.name)
        if f is not None:
            selection.constructor_bindings.append(ConstructorBinding(param, f))
            bound.add(f.name)
            continue
        if param.has_default:
            continue
        reason = unavailable_reasons.get(param.name, "There is no field with this name.")
        raise InvalidGenerationSourceError(
            f'Cannot populate the required constructor argument: {param.name}. {reason}',
            element=class_model.name,
        )

    used = []
    for f in class_model.fields:
        if f.name not in accessible:
            continue
        if f.name in bound:
            used.append(f)
        elif not f.is_final and f.has_setter:
            selection.assigned_fields.append(f)
            used.append(f)
        else:
            selection.excluded.append((f, NOT_CONSTRUCTIBLE))
    return used
