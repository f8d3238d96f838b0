"""
Exception hierarchy for the generation pipeline.

Element-level errors abort generation for the unit that raised them;
patch-level errors abort a single file's patch batch.
"""

from __future__ import annotations


class GeneratorError(Exception):
    """Base class for every error raised by the pipeline."""

    def __init__(self, message: str, element: str | None = None):
        super().__init__(message)
        self.message = message
        self.element = element

    def __str__(self) -> str:
        if self.element:
            return f"{self.message} (element: {self.element})"
        return self.message


class ConfigurationError(GeneratorError):
    """Raised when an override payload is malformed or contradicts itself.

    This can happen when:
    - An option name is unknown
    - An option has the wrong value type
    - Two field options conflict (e.g. disallow_null_value with include_if_null)
    """


class InvalidGenerationSourceError(GeneratorError):
    """Raised when a class cannot be generated from its declaration."""


class UnsupportedTypeError(InvalidGenerationSourceError):
    """Raised when no conversion helper handles a declared type."""


class DuplicateKeyError(InvalidGenerationSourceError):
    """Raised when two fields resolve to the same output key."""

    def __init__(self, key: str, first_field: str, second_field: str, element: str | None = None):
        super().__init__(
            f'More than one field has the JSON key for name "{key}": "{first_field}" and "{second_field}".',
            element=element,
        )
        self.key = key
        self.fields = (first_field, second_field)


class ClassNotFoundError(GeneratorError):
    """Raised when an in-place patch target cannot be located by name or has no indented body."""


class PatchError(GeneratorError):
    """Base class for errors that abort a file's patch batch."""


class PatchRangeError(PatchError):
    """Raised when a patch range is invalid against the current file contents."""


class SourceValidationError(PatchError):
    """Raised when patched source no longer parses."""
