"""Prompt construction from source context."""

import logging
from collections.abc import Sequence
from pathlib import Path

from codegen_assistant.editing import Selection

log = logging.getLogger(__name__)

DEFAULT_TEMPLATE = """\
You are a helpful, precise C# coding assistant. Given the following context \
and related unit tests, produce only the C# code required that passes the tests.

Context:
<CODE_BLOCK>
<CODE_BLOCK_CONTENT>

Tests Summary:
<TEST_SUMMARY>

Constraints:
- Target framework: net6.0
- Only return code, no explanation or comments
- Follow existing naming conventions and styling in the file
- Do not introduce secrets or hard-coded credentials
"""

TEST_SUMMARY = (
    "Tests will be executed via the configured command and validated "
    "automatically after code is inserted."
)


def build_context_snippet(
    lines: Sequence[str], selection: Selection, context_lines: int
) -> str:
    """Return the selected lines plus surrounding context, clamped to the file."""
    start = max(0, selection.start - context_lines)
    end = min(len(lines), max(selection.end, selection.start + 1) + context_lines)
    return "\n".join(lines[start:end])


def read_template(template_path: str, workspace: Path) -> str | None:
    """Read a prompt template, resolving relative paths against the workspace.

    Returns None when no path is set or the file cannot be read.
    """
    if not template_path:
        return None

    resolved = workspace / Path(template_path).expanduser()
    try:
        return resolved.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        log.warning("Ignoring prompt template %s: %s", resolved, exc)
        return None


def build_prompt(snippet: str, template: str | None = None) -> str:
    """Fill the template placeholders with the context snippet."""
    return (
        (template or DEFAULT_TEMPLATE)
        .replace("<CODE_BLOCK_CONTENT>", snippet)
        .replace("<CODE_BLOCK>", "Current file context")
        .replace("<TEST_SUMMARY>", TEST_SUMMARY)
    )
