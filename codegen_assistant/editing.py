"""Write generated code back into a source file."""

import logging
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    """Zero-based, end-exclusive range of lines in a source file."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid selection: {self.start}..{self.end}")

    @property
    def is_empty(self) -> bool:
        return self.start == self.end


def apply_generated_code(path: Path, selection: Selection, content: str) -> None:
    """Replace the selected lines with content, or insert it at an empty selection."""
    lines = path.read_text(encoding="utf-8").splitlines(keepends=True)
    start = min(selection.start, len(lines))
    end = min(selection.end, len(lines))

    if start > 0 and not lines[start - 1].endswith("\n"):
        lines[start - 1] += "\n"
    new_lines = content.splitlines(keepends=True)
    if new_lines and not new_lines[-1].endswith("\n") and end < len(lines):
        new_lines[-1] += "\n"

    lines[start:end] = new_lines
    path.write_text("".join(lines), encoding="utf-8")
    log.info(
        "%s lines %d-%d of %s",
        "Inserted at" if selection.is_empty else "Replaced",
        start + 1,
        end,
        path,
    )
