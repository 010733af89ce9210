"""Configuration errors raised while assembling provider components."""

from __future__ import annotations

from typing import Optional


class ModelConfigurationError(RuntimeError):
    """Base class for fatal configuration problems found at startup."""


class MissingConfigurationError(ModelConfigurationError):
    """A required connection field is missing; the client cannot be built."""

    def __init__(self, field: str, provider: Optional[str] = None):
        self.field = field
        self.provider = provider
        where = f" for {provider} backend" if provider else ""
        super().__init__(f"Missing required configuration '{field}'{where}.")
