"""Coordinate generation, insertion and validation for one source file."""

import logging
from dataclasses import dataclass
from pathlib import Path

from codegen_assistant.config import AssistantConfig
from codegen_assistant.editing import Selection, apply_generated_code
from codegen_assistant.llm.client import LlmClient
from codegen_assistant.models.result import TestRunResult
from codegen_assistant.prompt import build_context_snippet, build_prompt, read_template
from codegen_assistant.testrunner.pipeline import run_tests

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class AssistOutcome:
    """Everything produced by one assist request."""

    prompt: str
    generated: str
    applied: bool = False
    test_result: TestRunResult | None = None


@dataclass(frozen=True, kw_only=True)
class Assistant:
    """Generates code for a selection and optionally validates it with tests."""

    client: LlmClient
    config: AssistantConfig

    def build_prompt(self, source: Path, selection: Selection, workspace: Path) -> str:
        """Build the prompt for a selection of a source file."""
        lines = source.read_text(encoding="utf-8").splitlines()
        snippet = build_context_snippet(lines, selection, self.config.context_lines)
        template = read_template(self.config.prompt_template_path, workspace)
        return build_prompt(snippet, template)

    async def assist(
        self,
        source: Path,
        selection: Selection,
        workspace: Path,
        *,
        apply: bool = False,
    ) -> AssistOutcome:
        """Generate code for the selection, then apply and test it if asked.

        Args:
            source: Source file the selection belongs to
            selection: Lines to replace, or an empty insertion point
            workspace: Project root, used for templates and as the test cwd
            apply: Write the generated code into the source file

        Returns:
            Prompt, generated code and, when tests ran, their result

        """
        prompt = self.build_prompt(source, selection, workspace)
        log.info("Requesting code for %s", source)
        result = await self.client.generate(prompt)

        if not result.content:
            log.warning("No content returned from the model")
            return AssistOutcome(prompt=prompt, generated="")

        if not apply:
            return AssistOutcome(prompt=prompt, generated=result.content)

        apply_generated_code(source, selection, result.content)
        test_result = await self.run_tests(workspace, reason="Generation")
        return AssistOutcome(
            prompt=prompt,
            generated=result.content,
            applied=True,
            test_result=test_result,
        )

    async def run_tests(self, workspace: Path, reason: str) -> TestRunResult | None:
        """Run the configured test command if automatic test runs are enabled."""
        if not self.config.auto_run_tests:
            return None
        if not self.config.tests_command:
            log.warning("Tests command is not configured")
            return None

        log.info(
            "Running tests (%s) with command: %s", reason, self.config.tests_command
        )
        return await run_tests(self.config.tests_command, workspace)
