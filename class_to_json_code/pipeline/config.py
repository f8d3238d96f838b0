"""
Configuration for the code generator pipeline.

Three layers exist: the global GeneratorConfig (loaded from a config file),
ClassOverride (from @json_serializable(...)) and FieldOverride (from
JsonKey(...)). Override values of None mean "inherit from the broader scope".
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from .errors import ConfigurationError


class FieldRename(str, Enum):
    """Naming policy applied to field names that have no explicit output key."""

    NONE = "none"
    KEBAB = "kebab"
    SNAKE = "snake"
    PASCAL = "pascal"
    CAMEL = "camel"
    SCREAMING_SNAKE = "screaming_snake"


@dataclass(frozen=True)
class ResolvedConfig:
    """Merged generation switches for one class (or one field of it)."""

    create_factory: bool = True
    create_to_json: bool = True
    create_field_map: bool = False
    create_json_keys: bool = False
    create_per_field_to_json: bool = False
    generic_argument_factories: bool = False
    include_if_null: bool = True
    exclude_default_values: bool = False
    field_rename: FieldRename = FieldRename.NONE
    disallow_unrecognized_keys: bool = False
    add_json_methods: bool = False


# Option name -> accepted type, shared by the global config and class overrides
SWITCH_TYPES: dict[str, type] = {f.name: (FieldRename if f.name == "field_rename" else bool) for f in fields(ResolvedConfig)}


@dataclass(frozen=True)
class ClassOverride:
    """Class-level options from @json_serializable(...); None means unset."""

    create_factory: bool | None = None
    create_to_json: bool | None = None
    create_field_map: bool | None = None
    create_json_keys: bool | None = None
    create_per_field_to_json: bool | None = None
    generic_argument_factories: bool | None = None
    include_if_null: bool | None = None
    exclude_default_values: bool | None = None
    field_rename: FieldRename | None = None
    disallow_unrecognized_keys: bool | None = None
    add_json_methods: bool | None = None

    @staticmethod
    def from_dict(d: dict[str, Any], element: str | None = None) -> ClassOverride:
        """Create a class override from decoded decorator arguments.

        Raises:
            ConfigurationError: If an option is unknown or has the wrong type
        """
        values = _check_options(d, SWITCH_TYPES, element)
        return ClassOverride(**values)

    def set_values(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


FIELD_OPTION_TYPES: dict[str, type] = {
    "name": str,
    "include_from_json": bool,
    "include_to_json": bool,
    "default_value": str,
    "include_if_null": bool,
    "omit_if_default": bool,
    "required": bool,
    "disallow_null_value": bool,
    "from_json": str,
    "to_json": str,
}


@dataclass(frozen=True)
class FieldOverride:
    """Field-level options from JsonKey(...); None means unset.

    Attributes:
        name: Custom output key
        include_from_json: True forces decode participation, False excludes it
        include_to_json: True forces encode participation, False excludes it
        default_value: Source expression used when the key is missing or null
        include_if_null: Whether None values are encoded
        omit_if_default: Whether values equal to the default are left out when encoding
        required: Whether decoding fails when the key is missing
        disallow_null_value: Whether decoding fails when the value is null
        from_json: Name of a function converting the JSON value
        to_json: Name of a function converting the field value
    """

    name: str | None = None
    include_from_json: bool | None = None
    include_to_json: bool | None = None
    default_value: str | None = None
    include_if_null: bool | None = None
    omit_if_default: bool | None = None
    required: bool | None = None
    disallow_null_value: bool | None = None
    from_json: str | None = None
    to_json: str | None = None

    def __post_init__(self) -> None:
        if self.disallow_null_value and self.include_if_null:
            raise ConfigurationError("Cannot set both `disallow_null_value` and `include_if_null` to True.")

    @staticmethod
    def from_dict(d: dict[str, Any], element: str | None = None) -> FieldOverride:
        """Create a field override from decoded JsonKey arguments.

        Raises:
            ConfigurationError: If an option is unknown, has the wrong type or conflicts
        """
        values = _check_options(d, FIELD_OPTION_TYPES, element)
        try:
            return FieldOverride(**values)
        except ConfigurationError as e:
            raise ConfigurationError(e.message, element=element) from e


@dataclass
class OutputConfig:
    """Configuration for output file handling.

    Attributes:
        write_companion: Whether to write the companion <stem><suffix>.py module
        companion_suffix: Suffix appended to the unit's stem for the companion module
        relative_imports: Whether companion and patched members import each other relatively
        validate_before_write: Whether to parse Python output before replacing a file
        add_generation_comment: Whether the companion starts with a "generated" comment
    """

    write_companion: bool = True
    companion_suffix: str = "_json"
    relative_imports: bool = True
    validate_before_write: bool = True
    add_generation_comment: bool = True


@dataclass
class GeneratorConfig:
    """Global configuration: defaults for every switch plus output handling."""

    create_factory: bool = True
    create_to_json: bool = True
    create_field_map: bool = False
    create_json_keys: bool = False
    create_per_field_to_json: bool = False
    generic_argument_factories: bool = False
    include_if_null: bool = True
    exclude_default_values: bool = False
    field_rename: FieldRename = FieldRename.NONE
    disallow_unrecognized_keys: bool = False
    add_json_methods: bool = False

    output: OutputConfig = field(default_factory=OutputConfig)

    def resolved(self) -> ResolvedConfig:
        """Return the switches of this config as a ResolvedConfig."""
        return ResolvedConfig(**{name: getattr(self, name) for name in SWITCH_TYPES})

    @staticmethod
    def from_dict(d: dict) -> GeneratorConfig:
        """Create a config from a dictionary."""
        config = GeneratorConfig()
        for k, v in d.items():
            if k == "output" and isinstance(v, dict):
                config.output = OutputConfig(**{name: value for name, value in v.items() if hasattr(config.output, name)})
            elif k == "field_rename":
                config.field_rename = _to_field_rename(v, "config")
            elif hasattr(config, k):
                setattr(config, k, v)
        return config

    def to_dict(self) -> dict:
        """Convert config to a dictionary."""
        return {
            "create_factory": self.create_factory,
            "create_to_json": self.create_to_json,
            "create_field_map": self.create_field_map,
            "create_json_keys": self.create_json_keys,
            "create_per_field_to_json": self.create_per_field_to_json,
            "generic_argument_factories": self.generic_argument_factories,
            "include_if_null": self.include_if_null,
            "exclude_default_values": self.exclude_default_values,
            "field_rename": self.field_rename.value,
            "disallow_unrecognized_keys": self.disallow_unrecognized_keys,
            "add_json_methods": self.add_json_methods,
            "output": {
                "write_companion": self.output.write_companion,
                "companion_suffix": self.output.companion_suffix,
                "relative_imports": self.output.relative_imports,
                "validate_before_write": self.output.validate_before_write,
                "add_generation_comment": self.output.add_generation_comment,
            },
        }


def _to_field_rename(value: Any, element: str | None) -> FieldRename:
    if isinstance(value, FieldRename):
        return value
    try:
        return FieldRename(value)
    except ValueError as e:
        choices = ", ".join(r.value for r in FieldRename)
        raise ConfigurationError(f"Invalid field_rename {value!r}; expected one of: {choices}.", element=element) from e


def _check_options(d: dict[str, Any], option_types: dict[str, type], element: str | None) -> dict[str, Any]:
    """Validate an option payload against the accepted option names and types."""
    if not isinstance(d, dict):
        raise ConfigurationError(f"Options must be a mapping, got {type(d).__name__}.", element=element)

    values: dict[str, Any] = {}
    for name, value in d.items():
        expected = option_types.get(name)
        if expected is None:
            raise ConfigurationError(f'Unknown option "{name}".', element=element)
        if value is None:
            continue
        if expected is FieldRename:
            value = _to_field_rename(value, element)
        elif not isinstance(value, expected):
            raise ConfigurationError(
                f'Option "{name}" expects {expected.__name__}, got {type(value).__name__}.',
                element=element,
            )
        elif expected is str and not value.strip():
            raise ConfigurationError(f'Option "{name}" must not be empty.', element=element)
        values[name] = value
    return values
