"""
Patcher module.

Applies in-place patch instructions to source files with atomic writes.
"""

from __future__ import annotations

from .atomic_writer import AtomicWriter, read_source
from .patch import PatchInstruction
from .source_patcher import FileOutcome, PatchReport, SourcePatcher, group_by_file, splice

__all__ = [
    "AtomicWriter",
    "FileOutcome",
    "PatchInstruction",
    "PatchReport",
    "SourcePatcher",
    "group_by_file",
    "read_source",
    "splice",
]
