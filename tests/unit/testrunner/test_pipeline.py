"""Tests for result reconciliation in the test pipeline."""

import asyncio
import logging
from pathlib import Path

import pytest

from codegen_assistant.models.result import TestFailure, TestSummary
from codegen_assistant.testing.factories import TestRunResultFactory
from codegen_assistant.testing.payloads import trx_document, unit_test_result
from codegen_assistant.testrunner.pipeline import (
    DEFAULT_RESULTS_DIRECTORY,
    STREAM_LIMIT,
    _stream_output,
    collect_results,
    exit_code_result,
    parse_results_directory,
    reconcile,
    resolve_results_directory,
)


@pytest.mark.parametrize(
    ("command", "expected"),
    [
        ("dotnet test --results-directory ./out", "./out"),
        ('dotnet test --results-directory "my results" --no-build', "my results"),
        ("dotnet test --results-directory 'single quoted'", "single quoted"),
        (
            'dotnet test --logger "trx;LogFileName=r.trx" --results-directory  /abs',
            "/abs",
        ),
        ("dotnet test", None),
        ("dotnet test --results-directory", None),
    ],
)
def test_parse_results_directory(command: str, expected: str | None) -> None:
    """Extracts quoted and unquoted results directories."""
    assert parse_results_directory(command) == expected


def test_resolve_results_directory_defaults_under_cwd(tmp_path: Path) -> None:
    """Commands without the option use the default subdirectory."""
    assert (
        resolve_results_directory("dotnet test", tmp_path)
        == tmp_path / DEFAULT_RESULTS_DIRECTORY
    )


def test_resolve_results_directory_relative_and_absolute(tmp_path: Path) -> None:
    """Relative paths are resolved against cwd, absolute ones kept."""
    assert (
        resolve_results_directory("x --results-directory ./out", tmp_path)
        == tmp_path / "out"
    )
    assert resolve_results_directory(
        f"x --results-directory {tmp_path / 'abs'}", Path("/elsewhere")
    ) == (tmp_path / "abs")


class TestReconcile:
    """Tests for reconcile."""

    @pytest.mark.parametrize("exit_code", [0, None])
    def test_clean_exit_keeps_parsed_success(self, exit_code: int | None) -> None:
        """A clean or unknown exit leaves a green result green."""
        parsed = TestRunResultFactory.build(success=True, failures=())

        assert reconcile(parsed, exit_code).success is True

    def test_nonzero_exit_overrides_parsed_success(self) -> None:
        """A nonzero exit fails a run the artifact reported as green."""
        summary = TestSummary(passed=3, total=3)
        parsed = TestRunResultFactory.build(success=True, failures=(), summary=summary)

        result = reconcile(parsed, 1)

        assert result.success is False
        assert result.summary == summary
        assert result.failures == ()

    def test_failures_fail_a_clean_exit(self) -> None:
        """Parsed failures win over a zero exit code."""
        parsed = TestRunResultFactory.build(
            success=False, failures=(TestFailure(test_name="Broken"),)
        )

        assert reconcile(parsed, 0).success is False


class TestExitCodeResult:
    """Tests for exit_code_result."""

    @pytest.mark.parametrize("exit_code", [0, None])
    def test_clean_exit_is_success_with_zero_counts(
        self, exit_code: int | None
    ) -> None:
        """No artifact and a clean exit is a success."""
        result = exit_code_result(exit_code)

        assert result.success is True
        assert result.failures == ()
        assert result.summary == TestSummary()

    @pytest.mark.parametrize("exit_code", [1, 2, -9])
    def test_nonzero_exit_is_one_synthetic_failure(self, exit_code: int) -> None:
        """No artifact and a failing exit counts a single failure."""
        result = exit_code_result(exit_code)

        assert result.success is False
        assert result.failures == ()
        assert result.summary == TestSummary(failed=1, total=1)
        assert result.results_file is None


class TestCollectResults:
    """Tests for collect_results."""

    def test_parsed_artifact_is_reconciled(self, tmp_path: Path) -> None:
        """An all-green artifact with a failing exit is reported failed."""
        artifact = tmp_path / "results.trx"
        artifact.write_text(trx_document([unit_test_result(outcome="Passed")]))

        result = collect_results(tmp_path, 1)

        assert result.success is False
        assert result.summary.failed == 0
        assert result.summary.passed == 1
        assert result.results_file == artifact

    def test_unparseable_artifact_falls_back_to_exit_code(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Invalid XML is logged and the exit code decides."""
        (tmp_path / "results.trx").write_text("<TestRun><Results>")

        result = collect_results(tmp_path, 0)

        assert result.success is True
        assert result.results_file is None
        assert "Failed to parse TRX" in caplog.text

    def test_missing_directory_falls_back_to_exit_code(self, tmp_path: Path) -> None:
        """No results directory at all is not fatal."""
        result = collect_results(tmp_path / "missing", 5)

        assert result.success is False
        assert result.summary == TestSummary(failed=1, total=1)


class TestStreamOutput:
    """Tests for _stream_output."""

    @staticmethod
    async def stream_lines(
        data: bytes, caplog: pytest.LogCaptureFixture
    ) -> list[str]:
        reader = asyncio.StreamReader()
        reader.feed_data(data)
        reader.feed_eof()
        with caplog.at_level(logging.INFO, logger="stream-output"):
            await _stream_output(reader, logging.getLogger("stream-output"))
        return [r.getMessage() for r in caplog.records if r.name == "stream-output"]

    async def test_splits_lines_and_flushes_trailing_text(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Each line is logged once, including an unterminated last line."""
        lines = await self.stream_lines(b"first\r\nsecond\n\nlast", caplog)

        assert lines == ["first", "second", "", "last"]

    async def test_overlong_line_is_logged_in_pieces(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A line longer than the limit does not stop the stream."""
        data = b"a" * (STREAM_LIMIT * 2 + 5) + b"\nok\n"

        lines = await self.stream_lines(data, caplog)

        assert [len(line) for line in lines] == [STREAM_LIMIT, STREAM_LIMIT, 5, 2]
        assert lines[-1] == "ok"

    async def test_missing_stream_is_ignored(self) -> None:
        """Processes without a pipe produce no output."""
        await _stream_output(None, logging.getLogger("stream-output"))
