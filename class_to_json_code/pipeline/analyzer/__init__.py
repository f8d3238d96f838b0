"""
Analyzer module.

Contains configuration merging and field selection.
"""

from __future__ import annotations

from .config_merger import KeyConfig, key_config_for, merge_config
from .field_selector import ConstructorBinding, FieldSelection, select_fields

__all__ = [
    "KeyConfig",
    "merge_config",
    "key_config_for",
    "ConstructorBinding",
    "FieldSelection",
    "select_fields",
]
