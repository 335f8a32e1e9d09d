"""CLI entry point for the code generation assistant."""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from pydantic import SecretStr

from codegen_assistant.config import AssistantConfig, load_config
from codegen_assistant.editing import Selection
from codegen_assistant.errors import AssistantError, ConfigurationError
from codegen_assistant.llm.client import LlmClient
from codegen_assistant.models.result import TestRunResult
from codegen_assistant.orchestrator import Assistant
from codegen_assistant.testrunner.pipeline import run_tests

API_KEY_ENV = "CODEGEN_ASSISTANT_API_KEY"

STATUS_SYMBOLS = {
    True: "✅",
    False: "❌",
}


def log_results_summary(log: logging.Logger, result: TestRunResult) -> None:
    """Log a formatted summary of a test run with its failures."""
    summary = result.summary
    log.info("=" * 80)
    log.info("Test Results Summary:")
    log.info("=" * 80)
    log.info(
        "%s %s (passed=%d, failed=%d, skipped=%d, total=%d, %.2fs)",
        STATUS_SYMBOLS[result.success],
        "Tests passed" if result.success else "Tests finished with failures",
        summary.passed,
        summary.failed,
        summary.skipped,
        summary.total,
        summary.duration_ms / 1000,
    )
    if result.results_file:
        log.info("  Results file: %s", result.results_file)
    for failure in result.failures:
        log.info("  %s: %s", failure.test_name, failure.message or "Test failed")


def format_output(result: TestRunResult) -> dict[str, Any]:
    """Format a test run result for JSON output."""
    summary = result.summary
    return {
        "success": result.success,
        "summary": {
            "passed": summary.passed,
            "failed": summary.failed,
            "skipped": summary.skipped,
            "total": summary.total,
            "duration_ms": summary.duration_ms,
        },
        "failures": [
            {
                "test_name": failure.test_name,
                "message": failure.message,
                "stack_trace": failure.stack_trace,
            }
            for failure in result.failures
        ],
        "results_file": str(result.results_file) if result.results_file else None,
    }


def build_selection(start_line: int, end_line: int | None) -> Selection:
    """Convert 1-based inclusive CLI line numbers to a selection."""
    if end_line is None:
        return Selection(start_line - 1, start_line - 1)
    return Selection(start_line - 1, end_line)


def resolve_config(config_path: Path | None, api_key: str | None) -> AssistantConfig:
    """Load settings and apply the API key override, if any."""
    config = load_config(config_path)
    if api_key:
        config = config.model_copy(update={"api_key": SecretStr(api_key)})
    return config


async def run_assist(
    config: AssistantConfig,
    source: Path,
    selection: Selection,
    workspace: Path,
    *,
    apply: bool,
) -> int:
    """Generate code for a selection and return exit code."""
    log = logging.getLogger("codegen_assistant")

    async with LlmClient.from_options(config.to_request_options()) as client:
        assistant = Assistant(client=client, config=config)
        try:
            outcome = await assistant.assist(source, selection, workspace, apply=apply)
        except AssistantError as exc:
            log.error("Request failed: %s", exc)
            return 1
        except OSError as exc:
            log.error("Cannot access source file %s: %s", source, exc)
            return 1

    if not apply:
        print(outcome.generated)
        return 0

    output: dict[str, Any] = {
        "applied": outcome.applied,
        "generated": outcome.generated,
        "test_result": None,
    }
    if outcome.test_result is not None:
        log_results_summary(log, outcome.test_result)
        output["test_result"] = format_output(outcome.test_result)
    print(json.dumps(output, indent=2))

    if outcome.test_result is not None and not outcome.test_result.success:
        return 1
    return 0


async def run_test_command(command: str, cwd: Path) -> int:
    """Run the tests command and return exit code."""
    log = logging.getLogger("codegen_assistant")

    try:
        result = await run_tests(command, cwd)
    except AssistantError as exc:
        log.error("Test run failed: %s", exc)
        return 1

    log_results_summary(log, result)
    print(json.dumps(format_output(result), indent=2))
    return 0 if result.success else 1


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Generate code with a language model and validate it with tests"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a JSON settings file",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        default=Path.cwd(),
        help="Project root (test working directory, template base)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("generate", "Print generated code for a selection"),
        ("assist", "Generate code, optionally apply it and run tests"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--file", type=Path, required=True, help="Source file")
        sub.add_argument(
            "--start-line",
            type=int,
            required=True,
            help="First selected line (1-based)",
        )
        sub.add_argument(
            "--end-line",
            type=int,
            default=None,
            help="Last selected line (1-based, inclusive); omit to insert",
        )
        sub.add_argument(
            "--api-key",
            default=os.environ.get(API_KEY_ENV),
            help=f"API key (default: ${API_KEY_ENV})",
        )
        if name == "assist":
            sub.add_argument(
                "--apply",
                action="store_true",
                help="Write the generated code into the file and run tests",
            )

    test_parser = subparsers.add_parser("test", help="Run the tests command")
    test_parser.add_argument(
        "--tests-command",
        default=None,
        help="Override the configured tests command",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        config = resolve_config(args.config, getattr(args, "api_key", None))
    except ConfigurationError as exc:
        logging.getLogger("codegen_assistant").error("%s", exc)
        sys.exit(1)

    if args.command == "test":
        exit_code = asyncio.run(
            run_test_command(args.tests_command or config.tests_command, args.workspace)
        )
    else:
        exit_code = asyncio.run(
            run_assist(
                config,
                args.file,
                build_selection(args.start_line, args.end_line),
                args.workspace,
                apply=getattr(args, "apply", False),
            )
        )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
