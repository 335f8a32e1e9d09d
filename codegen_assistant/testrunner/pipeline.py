"""Run a test command and turn its outcome into a test run result."""

import asyncio
import dataclasses
import logging
import re
from pathlib import Path

from codegen_assistant.errors import LaunchError, ParseError
from codegen_assistant.models.result import TestRunResult, TestSummary
from codegen_assistant.testrunner.locator import RESULTS_FILE_SUFFIX, find_latest
from codegen_assistant.testrunner.parser import parse_trx_file

log = logging.getLogger(__name__)

DEFAULT_RESULTS_DIRECTORY = "codegen_test_results"

# POSIX shells exit with these when the command is not executable / not found
SHELL_LAUNCH_FAILURE_CODES = frozenset({126, 127})

STREAM_LIMIT = 1024 * 1024
STREAM_CHUNK_SIZE = 64 * 1024

_RESULTS_DIRECTORY_PATTERN = re.compile(
    r"""--results-directory\s+("[^"]+"|'[^']+'|\S+)"""
)


def parse_results_directory(command: str) -> str | None:
    """Extract the ``--results-directory`` argument from a test command."""
    if (match := _RESULTS_DIRECTORY_PATTERN.search(command)) is None:
        return None
    raw = match.group(1)
    if raw[0] in "\"'" and raw[-1] == raw[0]:
        return raw[1:-1]
    return raw


def resolve_results_directory(command: str, cwd: Path) -> Path:
    """Directory to search for result files after the command has run."""
    if (directory := parse_results_directory(command)) is None:
        return cwd / DEFAULT_RESULTS_DIRECTORY
    return cwd / Path(directory).expanduser()


def is_clean_exit(exit_code: int | None) -> bool:
    """Zero or unknown exit codes do not by themselves indicate failure."""
    return exit_code is None or exit_code == 0


def reconcile(parsed: TestRunResult, exit_code: int | None) -> TestRunResult:
    """Combine parsed outcomes with the process exit code.

    A nonzero exit fails the run even when every parsed test passed. Summary
    counts are kept as parsed.
    """
    return dataclasses.replace(
        parsed, success=not parsed.failures and is_clean_exit(exit_code)
    )


def exit_code_result(exit_code: int | None) -> TestRunResult:
    """Build a result from the exit code alone, when no artifact is usable."""
    if is_clean_exit(exit_code):
        return TestRunResult(success=True, summary=TestSummary())
    return TestRunResult(success=False, summary=TestSummary(failed=1, total=1))


async def _stream_output(
    stream: asyncio.StreamReader | None, output: logging.Logger
) -> None:
    if stream is None:
        return
    pending = b""
    while chunk := await stream.read(STREAM_CHUNK_SIZE):
        *lines, pending = (pending + chunk).split(b"\n")
        # unterminated output is flushed once it reaches the line limit
        while len(pending) >= STREAM_LIMIT:
            lines.append(pending[:STREAM_LIMIT])
            pending = pending[STREAM_LIMIT:]
        for line in lines:
            output.info("%s", line.decode(errors="replace").rstrip("\r"))
    if pending:
        output.info("%s", pending.decode(errors="replace").rstrip("\r"))


async def run_tests(
    command: str, cwd: Path, output: logging.Logger | None = None
) -> TestRunResult:
    """Run a test command through the shell and report its outcome.

    Args:
        command: Shell command that runs the tests and writes a TRX file
        cwd: Working directory for the command
        output: Logger receiving the command's output as it arrives

    Returns:
        Test run result; failing tests are reported, never raised

    Raises:
        LaunchError: If the command could not be started

    """
    output = output or log
    results_dir = resolve_results_directory(command, cwd)

    log.info("Running tests in %s: %s", cwd, command)
    try:
        process = await asyncio.create_subprocess_shell(
            command,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise LaunchError(f"Failed to launch test command: {exc}") from exc

    try:
        await asyncio.gather(
            _stream_output(process.stdout, output),
            _stream_output(process.stderr, output),
        )
    except BaseException:
        if process.returncode is None:
            process.kill()
        raise
    finally:
        exit_code = await process.wait()
    log.info("Test command exited with code %s", exit_code)

    if exit_code in SHELL_LAUNCH_FAILURE_CODES:
        raise LaunchError(
            f"Test command could not be executed (exit code {exit_code}): {command}"
        )

    return collect_results(results_dir, exit_code, output)


def collect_results(
    results_dir: Path, exit_code: int | None, output: logging.Logger | None = None
) -> TestRunResult:
    """Locate and parse the newest artifact, falling back to the exit code."""
    output = output or log

    if (results_file := find_latest(results_dir, RESULTS_FILE_SUFFIX)) is not None:
        try:
            parsed = parse_trx_file(results_file)
        except ParseError as exc:
            output.warning("Failed to parse TRX: %s", exc)
        else:
            return reconcile(parsed, exit_code)
    else:
        log.info("No result file found in %s", results_dir)

    return exit_code_result(exit_code)
