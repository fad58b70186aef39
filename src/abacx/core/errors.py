from __future__ import annotations


class AbacxError(Exception):
    """Base class for every error raised by abacx."""


class ValidationError(AbacxError, ValueError):
    """A rule (or persisted rule record) has an unsupported shape."""


class ConfigurationError(AbacxError):
    """Policy configuration cannot be applied to the given principal."""


class ForbiddenError(AbacxError):
    """Raised by ``authorize`` when the principal may not perform an action.

    Only the attempted ``(action, subject)`` pair is carried. Resource
    attributes are never attached to the error.
    """

    def __init__(self, action: str, subject: str, message: str | None = None) -> None:
        self.action = action
        self.subject = subject
        super().__init__(message or f'Cannot execute "{action}" on "{subject}"')


__all__ = ["AbacxError", "ValidationError", "ConfigurationError", "ForbiddenError"]
