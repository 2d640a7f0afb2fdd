"""Exception hierarchy for driverflow."""

from __future__ import annotations

from typing import Iterable, Optional


class DriverflowError(Exception):
    """Base class for all driverflow errors."""


class ProviderError(DriverflowError):
    """An external provider call failed.

    Covers network errors, timeouts, authentication failures and upstream
    rejections alike; callers cannot tell them apart.
    """

    def __init__(self, message: str, provider: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider


class NotConfigured(ProviderError):
    """A provider lacks the credentials it needs to make a call."""


class UnknownStep(DriverflowError):
    """A step name is not part of the workflow's registry."""

    def __init__(self, step_name: str, workflow: str, known: Iterable[str] = ()) -> None:
        known = sorted(known)
        message = f"Unknown step '{step_name}' for workflow '{workflow}'"
        if known:
            message += f" (expected one of: {', '.join(known)})"
        super().__init__(message)
        self.step_name = step_name
        self.workflow = workflow


class NotFound(DriverflowError):
    """A subject or workflow run does not exist."""
