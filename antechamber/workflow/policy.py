"""Retry, backoff and timeout configuration for workflow steps."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class RetryPolicy(BaseModel):
    """Attempt limit, exponential backoff bounds and per-attempt timeout."""

    max_attempts: int = Field(default=3, ge=1)
    base_delay_ms: int = Field(default=1000, ge=0)
    max_delay_ms: int = Field(default=30000, ge=0)
    timeout_ms: int = Field(default=120000, gt=0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    def merged(self, override: Optional[Mapping[str, Any]] = None) -> "RetryPolicy":
        """Return a policy with ``override`` keys laid over this one."""
        if not override:
            return self
        return RetryPolicy.model_validate({**self.model_dump(), **dict(override)})

    def backoff_ms(self, attempt: int) -> int:
        """Delay before the attempt following ``attempt`` (1-based)."""
        return min(self.base_delay_ms * 2 ** (attempt - 1), self.max_delay_ms)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


DEFAULT_RETRY_POLICY = RetryPolicy()
