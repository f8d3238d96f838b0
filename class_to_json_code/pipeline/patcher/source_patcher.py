"""
Source patcher.

Applies batches of PatchInstructions. Instructions are grouped per file and
applied from the highest start offset to the lowest, so offsets captured
from one snapshot stay valid for the whole batch. Each file is written once,
after its whole batch validates.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from ..errors import GeneratorError, PatchRangeError
from .atomic_writer import AtomicWriter, read_source
from .patch import PatchInstruction

logger = logging.getLogger(__name__)


@dataclass
class FileOutcome:
    """What happened to one file's patch batch."""

    path: str
    instructions: int = 0
    changed: bool = False
    error: Exception | None = None


@dataclass
class PatchReport:
    """Outcomes of every batch applied in one run."""

    outcomes: list[FileOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(o.error is None for o in self.outcomes)

    @property
    def changed_paths(self) -> list[str]:
        return [o.path for o in self.outcomes if o.changed]

    @property
    def failed(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.error is not None]


def group_by_file(instructions: Iterable[PatchInstruction]) -> dict[str, list[PatchInstruction]]:
    """Group instructions into per-file batches, keeping first-seen file order."""
    batches: dict[str, list[PatchInstruction]] = {}
    for instruction in instructions:
        batches.setdefault(instruction.file_path, []).append(instruction)
    return batches


def splice(text: str, instructions: list[PatchInstruction]) -> str:
    """Apply one file's instructions to its text.

    Every range is validated against `text` before anything is spliced.

    Raises:
        PatchRangeError: If a range falls outside the text or two ranges overlap
    """
    ordered = sorted(instructions, key=lambda i: i.start_offset, reverse=True)
    for instruction in ordered:
        if not 0 <= instruction.start_offset <= instruction.end_offset <= len(text):
            raise PatchRangeError(
                f"Patch range [{instruction.start_offset}, {instruction.end_offset}) is invalid for a file of length {len(text)}.",
                element=instruction.file_path,
            )
    for higher, lower in zip(ordered, ordered[1:]):
        if lower.end_offset > higher.start_offset:
            raise PatchRangeError(
                f"Patch ranges [{lower.start_offset}, {lower.end_offset}) and [{higher.start_offset}, {higher.end_offset}) overlap.",
                element=higher.file_path,
            )

    for instruction in ordered:
        text = instruction.apply(text)
    return text


class SourcePatcher:
    """Applies patch batches to files on disk."""

    def __init__(self, writer: AtomicWriter | None = None, validate: bool = True):
        """
        Initialize the patcher.

        Args:
            writer: Writer used to replace files (defaults to an AtomicWriter)
            validate: Whether patched Python files must still parse
        """
        self.writer = writer or AtomicWriter()
        self.validate = validate

    def apply_batch(self, path: str, instructions: list[PatchInstruction]) -> bool:
        """Apply all instructions targeting one file.

        Returns:
            True if the file content changed and was written

        Raises:
            OSError: If the file cannot be read or written
            InvalidGenerationSourceError: If the file is not valid UTF-8
            PatchError: If a range is invalid or the result does not validate
        """
        file_path = Path(path)
        text = read_source(file_path)
        patched = splice(text, instructions)
        if patched == text:
            logger.debug("Patch batch for %s leaves it unchanged", path)
            return False
        self.writer.write(file_path, patched, validate=self.validate)
        logger.info("Patched %s (%d instructions)", path, len(instructions))
        return True

    def apply(self, instructions: Iterable[PatchInstruction]) -> PatchReport:
        """Apply every instruction, one batch per file.

        A failing batch is recorded in the report and does not stop the
        other files.
        """
        report = PatchReport()
        for path, batch in group_by_file(instructions).items():
            report.outcomes.append(self._apply_recorded(path, batch))
        return report

    async def apply_async(self, instructions: Iterable[PatchInstruction]) -> PatchReport:
        """Apply every batch concurrently, each in a worker thread."""
        batches = group_by_file(instructions)
        outcomes = await asyncio.gather(*(asyncio.to_thread(self._apply_recorded, path, batch) for path, batch in batches.items()))
        return PatchReport(list(outcomes))

    def _apply_recorded(self, path: str, batch: list[PatchInstruction]) -> FileOutcome:
        outcome = FileOutcome(path=path, instructions=len(batch))
        try:
            outcome.changed = self.apply_batch(path, batch)
        except (OSError, GeneratorError) as e:
            logger.error("Patch batch for %s failed: %s", path, e)
            outcome.error = e
        return outcome
