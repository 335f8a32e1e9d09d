"""Code generation assistant: completion client and test run validation."""

from codegen_assistant.llm.client import LlmClient
from codegen_assistant.models.options import RequestOptions
from codegen_assistant.models.result import GenerateResult, TestRunResult
from codegen_assistant.testrunner.pipeline import run_tests

__all__ = [
    "GenerateResult",
    "LlmClient",
    "RequestOptions",
    "TestRunResult",
    "run_tests",
]
