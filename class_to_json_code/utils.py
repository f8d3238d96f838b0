"""
Utility functions for the class to JSON code generator.
"""

import re

# Regex pattern to split text into words, handling camelCase boundaries
_WORD_PATTERN = re.compile(r"[a-z]+|[A-Z][a-z]*|[0-9]+")


def _normalize_separators(text: str) -> str:
    """Normalize separators (underscores, hyphens) to spaces."""
    return text.replace("_", " ").replace("-", " ")


def _split_into_words(text: str) -> list[str]:
    """Split text into words, handling camelCase boundaries."""
    return _WORD_PATTERN.findall(_normalize_separators(text))


def _capitalize_and_join(words: list[str]) -> str:
    """Capitalize each word and join them together."""
    return "".join(word.capitalize() for word in words if word)


def snake_to_pascal_case(text: str) -> str:
    """Convert snake_case, camelCase, or space-separated text to PascalCase.

    Examples:
        "first_name" -> "FirstName"
        "FIRST_NAME" -> "FirstName"
        "actionTemplate" -> "ActionTemplate"
        "first 3 rows" -> "First3Rows"

    Args:
        text: The text to convert

    Returns:
        PascalCase string
    """
    if not text:
        return ""
    return _capitalize_and_join(_split_into_words(text))


def to_camel_case(text: str) -> str:
    """Convert text to camelCase ("first_name" -> "firstName")."""
    pascal = snake_to_pascal_case(text)
    return pascal[:1].lower() + pascal[1:]


def to_snake_case(text: str) -> str:
    """Convert text to snake_case ("FirstName" -> "first_name")."""
    return "_".join(word.lower() for word in _split_into_words(text))


def to_kebab_case(text: str) -> str:
    """Convert text to kebab-case ("firstName" -> "first-name")."""
    return "-".join(word.lower() for word in _split_into_words(text))


def to_screaming_snake_case(text: str) -> str:
    """Convert text to SCREAMING_SNAKE_CASE ("firstName" -> "FIRST_NAME")."""
    return "_".join(word.upper() for word in _split_into_words(text))
