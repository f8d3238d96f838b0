"""
Patch instruction definition.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PatchInstruction:
    """One substitution against a specific file snapshot.

    Offsets are character offsets into the decoded text the instruction was
    computed from; `text[start_offset:end_offset]` is replaced.
    """

    file_path: str
    start_offset: int
    end_offset: int
    replacement_text: str

    def apply(self, text: str) -> str:
        return text[: self.start_offset] + self.replacement_text + text[self.end_offset :]
