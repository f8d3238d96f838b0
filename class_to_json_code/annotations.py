"""
Runtime markers read by the generator.

The generator works on source text, so these markers do nothing at runtime
beyond returning what they decorate. They exist so annotated modules import
and run normally.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


def json_serializable(cls: type | None = None, **options: Any):
    """Mark a class for encode/decode generation.

    Usable bare (`@json_serializable`) or with class options
    (`@json_serializable(field_rename="snake")`).
    """
    if cls is None:
        return lambda inner: inner
    return cls


def json_enum(cls: type) -> type:
    """Mark an enum for value map generation."""
    return cls


@dataclass(frozen=True)
class JsonKey:
    """Field options, used as `Annotated[T, JsonKey(...)]` metadata."""

    name: str | None = None
    include_from_json: bool | None = None
    include_to_json: bool | None = None
    default_value: Any = None
    include_if_null: bool | None = None
    omit_if_default: bool | None = None
    required: bool | None = None
    disallow_null_value: bool | None = None
    from_json: Any = None
    to_json: Any = None


json_key = JsonKey
