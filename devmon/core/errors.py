"""Shared error types.

Three families matter to the sampler:

- ``CommunicationFailure``: the device did not answer (transport error, timeout).
- ``ParseFailure``: the device answered with text we could not read.
- ``ConfigurationError``: a caller asked for a capacity/interval out of range.

The first two are per metric and per tick; only the last one reaches the caller
synchronously.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(eq=False)
class AppError(Exception):
    """Base error for application-level failures."""

    message: str
    cause: Exception | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.cause is None:
            return self.message
        return f"{self.message} (cause: {self.cause})"


class DomainError(AppError):
    """Domain rule violation."""


class ValidationError(AppError):
    """Invalid user input or configuration."""


class IntegrationError(AppError):
    """External integration failed."""


class InfrastructureError(AppError):
    """IO/OS/driver/FS failures."""


class CancelledError(AppError):
    """Cooperative cancellation of a background loop."""


class ConfigurationError(ValidationError):
    """Capacity, interval or device id outside the allowed range."""


@dataclass(eq=False)
class CommunicationFailure(IntegrationError):
    """The device command failed, exited non-zero or timed out."""

    command: str = ""


@dataclass(eq=False)
class ParseFailure(DomainError):
    """Command output did not have the shape expected for a metric."""

    metric: str = ""
