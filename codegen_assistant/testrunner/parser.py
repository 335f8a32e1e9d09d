"""Parse TRX test result documents into test run results.

TRX is the XML format written by ``dotnet test --logger trx``. Only the parts
needed for a verdict are read::

    <TestRun>
      <Results>
        <UnitTestResult testName="..." outcome="Failed" duration="00:00:01.25">
          <Output>
            <ErrorInfo>
              <Message>...</Message>
              <StackTrace>...</StackTrace>
            </ErrorInfo>
          </Output>
        </UnitTestResult>
      </Results>
    </TestRun>

Elements are matched by local name, so documents with or without the
TeamTest namespace parse the same way.
"""

import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from pathlib import Path

from codegen_assistant.errors import ParseError
from codegen_assistant.models.result import (
    Outcome,
    TestFailure,
    TestRunResult,
    TestSummary,
)

log = logging.getLogger(__name__)

UNKNOWN_TEST_NAME = "Unknown test"

_DURATION_PATTERN = re.compile(r"(\d+):(\d+):(\d+)(?:\.(\d+))?")


def parse_duration(duration: str) -> int | None:
    """Convert ``HH:MM:SS[.fraction]`` to milliseconds.

    The fraction is truncated or padded to three digits. Returns None when
    the text does not match the format.
    """
    match = _DURATION_PATTERN.fullmatch(duration.strip())
    if match is None:
        return None

    hours, minutes, seconds, fraction = match.groups()
    milliseconds = int((fraction or "0")[:3].ljust(3, "0"))
    return (
        int(hours) * 3_600_000 + int(minutes) * 60_000 + int(seconds) * 1000
    ) + milliseconds


def _local_name(element: ET.Element) -> str:
    return element.tag.rpartition("}")[2]


def _child(element: ET.Element | None, name: str) -> ET.Element | None:
    if element is None:
        return None
    return next((c for c in element if _local_name(c) == name), None)


def _children(element: ET.Element | None, name: str) -> Sequence[ET.Element]:
    if element is None:
        return []
    return [c for c in element if _local_name(c) == name]


def _text(element: ET.Element | None) -> str | None:
    if element is None:
        return None
    return "".join(element.itertext())


def _test_records(root: ET.Element) -> Sequence[ET.Element]:
    if _local_name(root) != "TestRun":
        return []
    return _children(_child(root, "Results"), "UnitTestResult")


def _failure(record: ET.Element, test_name: str) -> TestFailure:
    error_info = _child(_child(record, "Output"), "ErrorInfo")
    return TestFailure(
        test_name=test_name,
        message=_text(_child(error_info, "Message")),
        stack_trace=_text(_child(error_info, "StackTrace")),
    )


def parse_trx(xml_text: str, results_file: Path | None = None) -> TestRunResult:
    """Parse a TRX document.

    Args:
        xml_text: Document content
        results_file: Path the content was read from, kept on the result

    Returns:
        Result whose success flag only reflects the parsed outcomes

    Raises:
        ParseError: If the text is not well-formed XML

    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise ParseError(f"Invalid TRX document: {exc}") from exc

    records = _test_records(root)
    failures: list[TestFailure] = []
    passed = 0
    skipped = 0
    duration_ms = 0

    for record in records:
        test_name = record.get("testName") or UNKNOWN_TEST_NAME

        if (raw_duration := record.get("duration")) is not None:
            if (duration := parse_duration(raw_duration)) is None:
                log.warning(
                    "Ignoring malformed duration %r for %s", raw_duration, test_name
                )
            else:
                duration_ms += duration

        match Outcome.classify(record.get("outcome")):
            case Outcome.PASSED:
                passed += 1
            case Outcome.SKIPPED:
                skipped += 1
            case Outcome.FAILED:
                failures.append(_failure(record, test_name))

    summary = TestSummary(
        passed=passed,
        failed=len(failures),
        skipped=skipped,
        total=len(records),
        duration_ms=duration_ms,
    )
    return TestRunResult(
        success=not failures,
        failures=tuple(failures),
        summary=summary,
        results_file=results_file,
    )


def parse_trx_file(path: Path) -> TestRunResult:
    """Read and parse a TRX file.

    Raises:
        ParseError: If the file cannot be read as text or is not valid XML

    """
    try:
        content = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(f"Cannot read {path}: {exc}") from exc
    return parse_trx(content, results_file=path)
