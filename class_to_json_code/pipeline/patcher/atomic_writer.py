"""
Atomic file writer for safe code generation.

Ensures that file writes are atomic so an interrupted or failed write
never leaves a partially patched file behind.
"""

from __future__ import annotations

import ast
import logging
import tempfile
from collections.abc import Callable
from pathlib import Path

from ..errors import InvalidGenerationSourceError, SourceValidationError

logger = logging.getLogger(__name__)


def read_source(path: Path) -> str:
    """Read a source file without newline translation, so offsets match the file contents.

    Raises:
        InvalidGenerationSourceError: If the file is not valid UTF-8
        OSError: If the file cannot be read
    """
    try:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise InvalidGenerationSourceError(f"Source is not valid UTF-8: {e.reason} at byte {e.start}", element=str(path)) from e


class AtomicWriter:
    """Handles atomic file writes with validation.

    Uses a two-phase commit approach:
    1. Write to a temporary file in the same directory
    2. Validate the content
    3. Atomically replace the target file
    """

    def __init__(self, validate_python: Callable[[str], None] | None = None):
        """Initialize the atomic writer.

        Args:
            validate_python: Optional validation function for Python code
        """
        self._validate_python = validate_python or self._default_validate_python

    def write(self, path: Path, content: str, validate: bool = True) -> None:
        """Write content to file atomically.

        Args:
            path: Target file path
            content: Content to write
            validate: Whether to validate Python files before finalizing

        Raises:
            SourceValidationError: If validation fails
            OSError: If file operations fail
        """
        path.parent.mkdir(parents=True, exist_ok=True)

        # Same directory ensures atomic rename on the same filesystem
        temp_fd, temp_path_str = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            text=True,
        )
        temp_path = Path(temp_path_str)

        try:
            with open(temp_fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)

            if validate and path.suffix == ".py":
                self._validate_python(content)

            temp_path.replace(path)
            logger.debug("Wrote %s (%d characters)", path, len(content))

        except Exception:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    logger.warning("Could not remove temporary file %s", temp_path)
            raise

    def write_if_changed(self, path: Path, content: str, validate: bool = True) -> bool:
        """Write content unless the file already holds exactly that content.

        Returns:
            True if the file was written
        """
        if path.exists() and read_source(path) == content:
            return False
        self.write(path, content, validate)
        return True

    def _default_validate_python(self, content: str) -> None:
        """Default Python validation.

        Raises:
            SourceValidationError: If the content does not parse
        """
        try:
            ast.parse(content)
        except SyntaxError as e:
            raise SourceValidationError(f"Generated Python code is not valid: {e}") from e
