"""Assistant configuration."""

from pathlib import Path

from pydantic import Field, SecretStr, ValidationError

from codegen_assistant.errors import ConfigurationError
from codegen_assistant.models.base import Model
from codegen_assistant.models.options import RequestOptions
from codegen_assistant.testrunner.pipeline import DEFAULT_RESULTS_DIRECTORY

DEFAULT_API_URL = "https://api.deepseek.com/v1/chat/completions"
DEFAULT_TESTS_COMMAND = (
    'dotnet test --logger "trx;LogFileName=results.trx" '
    f"--results-directory ./{DEFAULT_RESULTS_DIRECTORY}"
)


class AssistantConfig(Model):
    """User settings for generation and test runs."""

    api_url: str = DEFAULT_API_URL
    api_key: SecretStr = SecretStr("")
    model: str = "deepseek-chat"
    timeout_ms: int = Field(default=30_000, gt=0)
    max_tokens: int = 1024
    temperature: float = 0.0
    max_concurrent_requests: int = 2
    auto_run_tests: bool = True
    tests_command: str = DEFAULT_TESTS_COMMAND
    context_lines: int = Field(default=30, ge=0)
    prompt_template_path: str = ""

    def to_request_options(self) -> RequestOptions:
        """Client options derived from these settings."""
        return RequestOptions(
            api_url=self.api_url,
            api_key=self.api_key,
            model=self.model,
            timeout=self.timeout_ms / 1000,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            max_concurrent_requests=self.max_concurrent_requests,
        )


def load_config(path: Path | None) -> AssistantConfig:
    """Load settings from a JSON file, or defaults when no path is given."""
    if path is None:
        return AssistantConfig()
    try:
        return AssistantConfig.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValidationError) as exc:
        raise ConfigurationError(f"Invalid settings file {path}: {exc}") from exc
