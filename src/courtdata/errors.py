from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    TERMINAL = "terminal"
    NOT_FOUND = "not_found"
    HANDOFF = "handoff"
    RETRYABLE = "retryable"


class ErrorCode(str, Enum):
    """Error values returned inside a ``ProviderResult`` envelope."""

    INVALID_CNR = "INVALID_CNR"
    NOT_FOUND = "NOT_FOUND"
    MANUAL_FETCH_REQUIRED = "MANUAL_FETCH_REQUIRED"
    CAPTCHA_REQUIRED = "CAPTCHA_REQUIRED"
    CONFIG_ERROR = "CONFIG_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    INVALID_DATE = "INVALID_DATE"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
    PARSE_ERROR = "PARSE_ERROR"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES.get(self, ErrorCategory.TERMINAL)

    @property
    def retryable(self) -> bool:
        return self.category is ErrorCategory.RETRYABLE

    @property
    def requires_handoff(self) -> bool:
        return self.category is ErrorCategory.HANDOFF


_CATEGORIES = {
    ErrorCode.NOT_FOUND: ErrorCategory.NOT_FOUND,
    ErrorCode.MANUAL_FETCH_REQUIRED: ErrorCategory.HANDOFF,
    ErrorCode.CAPTCHA_REQUIRED: ErrorCategory.HANDOFF,
    ErrorCode.NETWORK_ERROR: ErrorCategory.RETRYABLE,
    ErrorCode.TIMEOUT: ErrorCategory.RETRYABLE,
}


class ProviderConfigError(ValueError):
    """Raised when a provider cannot be constructed from the given type/config."""


class RecordNormalizationError(ValueError):
    """An upstream record is missing fields every normalized case must carry."""


class PortalParseError(ValueError):
    """Portal HTML could not be turned into a case record."""


class ProviderFailure(Exception):
    """
    Expected domain failure raised inside a provider operation.

    Never escapes a provider: the operation wrapper turns it into a failed ``ProviderResult``.
    """

    def __init__(self, code: ErrorCode, message: str, *, handoff: object | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.handoff = handoff
