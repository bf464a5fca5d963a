"""
Call executor: the single choke point for every remote invocation.

Consults the result cache, resolves the provider endpoint, awaits the
invoker under a timeout, stores successful results and applies a fallback
that is exactly one level deep. Errors from the invocation channel are
always converted into failed ``CallResult`` values here.
"""
from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Dict, Optional

from orchestrator.cache import MISS, ResultCache
from orchestrator.deadline import Deadline
from orchestrator.exceptions import ProviderNotFoundError
from orchestrator.invokers.base import Invoker
from orchestrator.models import CallResult, Fallback, LoggingSettings
from orchestrator.registry import CapabilityRegistry
from utils.logger import get_logger
from utils.observability import observe

logger = get_logger(__name__)

REDACTED = "[REDACTED]"


class CallExecutor:
    def __init__(
        self,
        *,
        registry: CapabilityRegistry,
        invoker: Invoker,
        cache: ResultCache,
        default_timeout: Optional[float] = None,
        max_concurrent_calls: Optional[int] = None,
        log_settings: LoggingSettings = LoggingSettings(),
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.registry = registry
        self.invoker = invoker
        self.cache = cache
        self.default_timeout = default_timeout
        self.log_settings = log_settings
        self._clock = clock
        self._slots = asyncio.Semaphore(max_concurrent_calls) if max_concurrent_calls else None

    @observe(redact=("payload",), capture_output=False)
    async def invoke(
        self,
        provider: str,
        tool: str,
        payload: Dict[str, Any],
        correlation_id: str,
        fallback: Optional[Fallback] = None,
        deadline: Optional[Deadline] = None,
    ) -> CallResult:
        """Perform one remote call. Never raises for remote failures."""
        key = self.cache.key_for(provider, tool, payload)
        cached = self.cache.get(key)
        if cached is not MISS:
            logger.debug("cache_hit", provider=provider, tool=tool, correlation_id=correlation_id)
            return CallResult(success=True, provider=provider, tool=tool, data=cached, execution_time_ms=0.0, cached=True)

        logger.info(
            "call_start",
            provider=provider,
            tool=tool,
            correlation_id=correlation_id,
            payload=payload if self.log_settings.include_payloads else REDACTED,
        )
        start = self._clock()
        try:
            data = await self._call_channel(provider, tool, payload, deadline)
        except Exception as exc:
            elapsed_ms = self._elapsed_ms(start)
            error = _describe(exc)
            logger.warning("call_failed", provider=provider, tool=tool, correlation_id=correlation_id, error=error)
            if fallback is None:
                return CallResult.failure(error, provider=provider, tool=tool, execution_time_ms=elapsed_ms)

            logger.info(
                "fallback_invoked",
                provider=provider,
                tool=tool,
                fallback_provider=fallback.provider,
                fallback_tool=fallback.tool,
                correlation_id=correlation_id,
            )
            # No further fallback: a failing fallback is final
            result = await self.invoke(
                fallback.provider,
                fallback.tool,
                {**payload, **fallback.params},
                correlation_id,
                deadline=deadline,
            )
            result.fallback_used = True
            return result

        elapsed_ms = self._elapsed_ms(start)
        self.cache.put(key, data)
        logger.info(
            "call_succeeded",
            provider=provider,
            tool=tool,
            correlation_id=correlation_id,
            execution_time_ms=elapsed_ms,
            response=data if self.log_settings.include_responses else REDACTED,
        )
        return CallResult(success=True, provider=provider, tool=tool, data=data, execution_time_ms=elapsed_ms)

    async def _call_channel(self, provider_id: str, tool: str, payload: Dict[str, Any], deadline: Optional[Deadline]) -> Any:
        provider = self.registry.get_provider(provider_id)
        if provider is None:
            raise ProviderNotFoundError(provider_id, tool=tool)

        if self._slots is None:
            return await self._bounded_call(provider.endpoint_id, tool, payload, deadline)

        # the wait for a slot spends the same budget as the call itself
        await asyncio.wait_for(self._slots.acquire(), self._time_left(deadline))
        try:
            return await self._bounded_call(provider.endpoint_id, tool, payload, deadline)
        finally:
            self._slots.release()

    async def _bounded_call(self, endpoint: str, tool: str, payload: Dict[str, Any], deadline: Optional[Deadline]) -> Any:
        timeout = self._time_left(deadline)
        return await asyncio.wait_for(self.invoker.invoke(endpoint, tool, payload), timeout)

    def _time_left(self, deadline: Optional[Deadline]) -> Optional[float]:
        timeout = deadline.bound(self.default_timeout) if deadline is not None else self.default_timeout
        if timeout is not None and timeout <= 0:
            raise asyncio.TimeoutError("deadline exceeded before call started")
        return timeout

    def _elapsed_ms(self, start: float) -> float:
        return round((self._clock() - start) * 1000, 3)


def _describe(exc: Exception) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return f"Timed out: {exc}" if str(exc) else "Timed out waiting for tool response"
    return str(exc) or exc.__class__.__name__
