from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, TypeVar

from courtdata.errors import ErrorCode, ProviderFailure
from courtdata.types import ProviderCapabilities, ProviderResult
from courtdata.validation import is_valid_cnr

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProviderOperationsMixin:
    """
    Shared envelope handling for provider operations.

    Operation bodies raise ``ProviderFailure`` for expected domain outcomes; ``_execute`` turns
    both outcomes into a timed ``ProviderResult`` so callers never see those as exceptions.
    """

    name: str = "Court Provider"
    provider_type: str = ""
    capabilities: ProviderCapabilities

    _clock: Callable[[], float] = time.perf_counter

    def get_capabilities(self) -> ProviderCapabilities:
        return self.capabilities

    async def _execute(
        self,
        operation: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        timeout: float | None = None,
    ) -> ProviderResult[T]:
        started = self._clock()
        try:
            if timeout is not None:
                data = await asyncio.wait_for(func(*args), timeout)
            else:
                data = await func(*args)
        except ProviderFailure as failure:
            return self._failure(operation, started, failure)
        except asyncio.TimeoutError:
            failure = ProviderFailure(ErrorCode.TIMEOUT, f"{operation} did not complete within {timeout}s")
            return self._failure(operation, started, failure)
        return ProviderResult(
            success=True,
            provider=self.name,
            response_time=self._clock() - started,
            data=data,
        )

    def _failure(self, operation: str, started: float, failure: ProviderFailure) -> ProviderResult[Any]:
        level = logging.WARNING if failure.code.retryable else logging.INFO
        logger.log(
            level,
            "Provider operation failed",
            extra={
                "provider": self.name,
                "operation": operation,
                "error_code": failure.code.value,
                "error": failure.message,
            },
        )
        return ProviderResult(
            success=False,
            provider=self.name,
            response_time=self._clock() - started,
            error=failure.code,
            message=failure.message,
            handoff=failure.handoff,
        )


def require_valid_cnr(cnr: str) -> None:
    if not is_valid_cnr(cnr):
        raise ProviderFailure(ErrorCode.INVALID_CNR, f"Invalid CNR format: {cnr!r}")
