"""
Layered configuration merging.

Precedence is field > class > global; an unset value at one scope inherits
the value of the next broader scope.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from ...utils import snake_to_pascal_case, to_camel_case, to_kebab_case, to_screaming_snake_case, to_snake_case
from ..config import ClassOverride, FieldOverride, FieldRename, GeneratorConfig, ResolvedConfig
from ..model.nodes import FieldDescriptor

# Field options that shadow a class-level switch of another name
_FIELD_TO_SWITCH = {
    "include_if_null": "include_if_null",
    "omit_if_default": "exclude_default_values",
}

_RENAMERS = {
    FieldRename.NONE: lambda name: name,
    FieldRename.SNAKE: to_snake_case,
    FieldRename.KEBAB: to_kebab_case,
    FieldRename.PASCAL: snake_to_pascal_case,
    FieldRename.CAMEL: to_camel_case,
    FieldRename.SCREAMING_SNAKE: to_screaming_snake_case,
}


def rename_field(name: str, policy: FieldRename) -> str:
    """Apply a FieldRename policy to a field name."""
    return _RENAMERS[FieldRename(policy)](name)


@dataclass(frozen=True)
class KeyConfig:
    """Resolved key configuration for one field."""

    json_key: str
    include_from_json: bool | None = None
    include_to_json: bool | None = None
    default_value: str | None = None
    include_if_null: bool = True
    omit_if_default: bool = False
    required: bool = False
    disallow_null_value: bool = False
    from_json: str | None = None
    to_json: str | None = None

    @property
    def explicit_yes_from_json(self) -> bool:
        return self.include_from_json is True

    @property
    def explicit_no_from_json(self) -> bool:
        return self.include_from_json is False

    @property
    def explicit_yes_to_json(self) -> bool:
        return self.include_to_json is True

    @property
    def explicit_no_to_json(self) -> bool:
        return self.include_to_json is False


def merge_config(
    global_config: GeneratorConfig | ResolvedConfig,
    class_override: ClassOverride | dict[str, Any] | None = None,
    field_override: FieldOverride | dict[str, Any] | None = None,
    element: str | None = None,
) -> ResolvedConfig:
    """Merge the three configuration scopes into one ResolvedConfig.

    Args:
        global_config: Global defaults
        class_override: Class-level options, as an override or a raw mapping
        field_override: Field-level options, as an override or a raw mapping
        element: Name of the element the overrides belong to, used in errors

    Returns:
        The merged configuration

    Raises:
        ConfigurationError: If an override payload is malformed
    """
    config = global_config.resolved() if isinstance(global_config, GeneratorConfig) else global_config

    if class_override is not None and not isinstance(class_override, ClassOverride):
        class_override = ClassOverride.from_dict(class_override, element)
    if class_override is not None:
        config = replace(config, **class_override.set_values())

    if field_override is not None and not isinstance(field_override, FieldOverride):
        field_override = FieldOverride.from_dict(field_override, element)
    if field_override is not None:
        shadowed = {switch: getattr(field_override, option) for option, switch in _FIELD_TO_SWITCH.items() if getattr(field_override, option) is not None}
        config = replace(config, **shadowed)

    return config


def key_config_for(config: ResolvedConfig, field: FieldDescriptor) -> KeyConfig:
    """Resolve the key configuration of a field against its class configuration."""
    override = field.override or FieldOverride()
    field_config = merge_config(config, None, override, element=field.name)

    json_key = override.name if override.name is not None else rename_field(field.name, config.field_rename)

    include_if_null = field_config.include_if_null
    if override.disallow_null_value:
        include_if_null = False

    return KeyConfig(
        json_key=json_key,
        include_from_json=override.include_from_json,
        include_to_json=override.include_to_json,
        default_value=override.default_value,
        include_if_null=include_if_null,
        omit_if_default=field_config.exclude_default_values,
        required=bool(override.required),
        disallow_null_value=bool(override.disallow_null_value),
        from_json=override.from_json,
        to_json=override.to_json,
    )
