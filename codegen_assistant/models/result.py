"""Models for generation and test execution results."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


@dataclass(frozen=True, kw_only=True)
class GenerateResult:
    """Outcome of one completion call.

    ``content`` is empty when the response carried no recognizable payload;
    ``raw`` keeps the decoded body for diagnostics.
    """

    content: str
    raw: Any = field(default=None, repr=False)


class Outcome(Enum):
    """Classification of a single test record."""

    PASSED = "passed"
    SKIPPED = "skipped"
    FAILED = "failed"

    @classmethod
    def classify(cls, outcome: str | None) -> "Outcome":
        """Map a raw outcome string to an Outcome.

        Anything not recognized as a pass or a skip counts as a failure.
        """
        match (outcome or "").strip().lower():
            case "passed":
                return cls.PASSED
            case "notexecuted" | "skipped":
                return cls.SKIPPED
            case _:
                return cls.FAILED


@dataclass(frozen=True, kw_only=True)
class TestFailure:
    """A failing test record.

    ``None`` for message or stack trace means the element was absent; an empty
    string means it was present with no text.
    """

    __test__ = False

    test_name: str
    message: str | None = None
    stack_trace: str | None = None


@dataclass(frozen=True, kw_only=True)
class TestSummary:
    """Aggregate counts of a test run."""

    __test__ = False

    passed: int = 0
    failed: int = 0
    skipped: int = 0
    total: int = 0
    duration_ms: int = 0


@dataclass(frozen=True, kw_only=True)
class TestRunResult:
    """Final verdict of a test run."""

    __test__ = False

    success: bool
    failures: Sequence[TestFailure] = ()
    summary: TestSummary = field(default_factory=TestSummary)
    results_file: Path | None = None
