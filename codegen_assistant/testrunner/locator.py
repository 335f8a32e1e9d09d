"""Locate the most recent test result artifact in a directory."""

import logging
from pathlib import Path

log = logging.getLogger(__name__)

RESULTS_FILE_SUFFIX = ".trx"


def find_latest(directory: Path, suffix: str = RESULTS_FILE_SUFFIX) -> Path | None:
    """Find the most recently modified result file in a directory.

    Args:
        directory: Directory the test command writes its results to
        suffix: File name suffix, compared case-insensitively

    Returns:
        Path of the newest matching file, or None if there is none or the
        directory cannot be read. Files with equal modification times are
        ordered by name so the choice is stable.

    """
    suffix = suffix.lower()
    try:
        candidates = [
            (entry.stat().st_mtime_ns, entry.name, entry)
            for entry in directory.iterdir()
            if entry.name.lower().endswith(suffix) and entry.is_file()
        ]
    except OSError as exc:
        log.debug("Cannot scan results directory %s: %s", directory, exc)
        return None

    if not candidates:
        return None

    _, _, latest = max(candidates)
    return latest
