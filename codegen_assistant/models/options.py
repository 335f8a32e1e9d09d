"""Options for the remote code generation client."""

from pydantic import Field, SecretStr, field_validator

from codegen_assistant.models.base import Model


class RequestOptions(Model):
    """Per-client settings for the completion endpoint."""

    api_url: str = Field(default="", description="Completion endpoint URL")
    api_key: SecretStr = Field(
        default=SecretStr(""), description="Bearer token for the endpoint"
    )
    model: str = Field(default="deepseek-chat", description="Model identifier")
    timeout: float = Field(
        default=30.0, gt=0, description="Per-attempt timeout in seconds"
    )
    max_tokens: int = Field(default=1024, description="Maximum output tokens")
    temperature: float = Field(default=0.0, description="Sampling temperature")
    max_concurrent_requests: int = Field(
        default=1, description="Ceiling on requests in flight at once"
    )

    @field_validator("max_concurrent_requests")
    @classmethod
    def _clamp_concurrency(cls, value: int) -> int:
        return max(1, value)
