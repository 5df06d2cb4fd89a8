"""Async collaborator executor with timeouts, circuit breaker, and cancellation.

Implements collaborator calls with:
- Hard timeout per call
- No retries: a failed call degrades to the caller's safe default
- Per-collaborator circuit breaker (shared state via registry)
- Cancellation support (stale results are never returned)
- Metrics and structured logging
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TypeVar

from backend.app.config import Settings, get_settings
from backend.app.reconciliation.errors import CollaboratorError

T = TypeVar("T")

log = logging.getLogger(__name__)


# Exception types
class CollaboratorTimeoutError(CollaboratorError):
    """Collaborator call exceeded timeout."""

    pass


class CollaboratorCircuitOpenError(CollaboratorError):
    """Circuit breaker is open for this collaborator."""

    pass


class CallCancelledError(Exception):
    """The plan that issued the call was superseded."""

    pass


@dataclass(frozen=True)
class CallContext:
    """Context for a collaborator call."""

    plan_id: str
    collaborator: str


@dataclass
class CancelToken:
    """Token for cancellation signaling."""

    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    def throw_if_cancelled(self) -> None:
        """Raise CallCancelledError if cancelled."""
        if self.cancelled:
            raise CallCancelledError("plan superseded")


@dataclass
class CallConfig:
    """Configuration for collaborator calls."""

    timeout_ms: int
    breaker_failure_threshold: int = 5
    breaker_window_seconds: int = 60
    breaker_half_open_seconds: int = 30

    @classmethod
    def from_settings(cls, settings: Settings) -> "CallConfig":
        return cls(
            timeout_ms=settings.collaborator_timeout_ms,
            breaker_failure_threshold=settings.circuit_breaker_failures,
            breaker_window_seconds=settings.circuit_breaker_window_sec,
            breaker_half_open_seconds=settings.circuit_breaker_half_open_sec,
        )


class BreakerState(str, Enum):
    """Circuit breaker state."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """Per-collaborator circuit breaker.

    Tracks failures within a time window and opens after threshold.
    """

    collaborator: str
    failure_threshold: int
    window_seconds: int
    half_open_seconds: int
    state: BreakerState = BreakerState.CLOSED
    failure_times: list[datetime] = field(default_factory=list)
    opened_at: datetime | None = None

    def record_success(self) -> None:
        """Record successful call."""
        if self.state == BreakerState.HALF_OPEN:
            self.state = BreakerState.CLOSED
            self.failure_times.clear()
            self.opened_at = None

    def record_failure(self, now: datetime) -> None:
        """Record failed call."""
        cutoff = now - timedelta(seconds=self.window_seconds)
        self.failure_times = [t for t in self.failure_times if t > cutoff]
        self.failure_times.append(now)

        if len(self.failure_times) >= self.failure_threshold:
            self.state = BreakerState.OPEN
            self.opened_at = now

    def is_open(self, now: datetime) -> bool:
        """Check if breaker is currently open (rejecting calls)."""
        if self.state == BreakerState.OPEN:
            if self.opened_at and (now - self.opened_at).total_seconds() >= self.half_open_seconds:
                self.state = BreakerState.HALF_OPEN
        return self.state == BreakerState.OPEN


class BreakerRegistry:
    """Registry of per-collaborator circuit breakers with shared state."""

    def __init__(self) -> None:
        self._by_collaborator: dict[str, CircuitBreaker] = {}

    def get_or_create(self, collaborator: str, config: CallConfig) -> CircuitBreaker:
        """Get existing breaker for collaborator or create one with given config."""
        if collaborator not in self._by_collaborator:
            self._by_collaborator[collaborator] = CircuitBreaker(
                collaborator=collaborator,
                failure_threshold=config.breaker_failure_threshold,
                window_seconds=config.breaker_window_seconds,
                half_open_seconds=config.breaker_half_open_seconds,
            )
        return self._by_collaborator[collaborator]

    def clear(self) -> None:
        """Clear all breakers (useful for testing)."""
        self._by_collaborator.clear()


_global_breaker_registry = BreakerRegistry()


def get_breaker_registry() -> BreakerRegistry:
    """Get the global breaker registry instance."""
    return _global_breaker_registry


# Metrics interface (to be implemented by actual metrics system)
class CollaboratorMetrics:
    """Interface for collaborator call metrics."""

    def record_latency(self, collaborator: str, outcome: str, latency_ms: float) -> None:
        pass

    def inc_error(self, collaborator: str, reason: str) -> None:
        pass


# Logging interface
class CollaboratorLogger:
    """Interface for structured logging."""

    def log_call(
        self,
        ctx: CallContext,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        pass


class CollaboratorExecutor:
    """Runs one collaborator call with timeout, breaker and cancellation."""

    def __init__(
        self,
        metrics: CollaboratorMetrics | None = None,
        logger: CollaboratorLogger | None = None,
        registry: BreakerRegistry | None = None,
    ) -> None:
        self._metrics = metrics or CollaboratorMetrics()
        self._logger = logger or CollaboratorLogger()
        self._registry = registry or get_breaker_registry()

    async def execute(
        self,
        ctx: CallContext,
        config: CallConfig,
        fn: Callable[[], Awaitable[T]],
        cancel_token: CancelToken | None = None,
    ) -> T:
        """Execute ``fn`` once.

        Raises:
            CollaboratorCircuitOpenError: Circuit breaker is open
            CollaboratorTimeoutError: Call exceeded the hard timeout
            CollaboratorError: Any other failure, chained to the cause
            CallCancelledError: Token cancelled before or during the call
        """
        cancel_token = cancel_token or CancelToken()
        breaker = self._registry.get_or_create(ctx.collaborator, config)

        cancel_token.throw_if_cancelled()

        if breaker.is_open(datetime.now()):
            self._metrics.inc_error(ctx.collaborator, "breaker_open")
            self._logger.log_call(ctx, "breaker_open", 0.0, error_reason="breaker_open")
            raise CollaboratorCircuitOpenError(f"Circuit breaker open for {ctx.collaborator}")

        start = time.monotonic()
        try:
            result = await asyncio.wait_for(fn(), timeout=config.timeout_ms / 1000)
        except TimeoutError as e:
            elapsed_ms = (time.monotonic() - start) * 1000
            breaker.record_failure(datetime.now())
            self._metrics.record_latency(ctx.collaborator, "timeout", elapsed_ms)
            self._metrics.inc_error(ctx.collaborator, "timeout")
            self._logger.log_call(ctx, "timeout", elapsed_ms, error_reason="timeout")
            raise CollaboratorTimeoutError(f"{ctx.collaborator} timed out") from e
        except Exception as e:
            elapsed_ms = (time.monotonic() - start) * 1000
            breaker.record_failure(datetime.now())
            self._metrics.record_latency(ctx.collaborator, "error", elapsed_ms)
            self._metrics.inc_error(ctx.collaborator, "execution_error")
            self._logger.log_call(ctx, "error", elapsed_ms, error_reason=type(e).__name__)
            raise CollaboratorError(f"{ctx.collaborator} failed") from e

        elapsed_ms = (time.monotonic() - start) * 1000
        breaker.record_success()
        self._metrics.record_latency(ctx.collaborator, "success", elapsed_ms)
        self._logger.log_call(ctx, "success", elapsed_ms)

        # A result that arrives after the plan was superseded is discarded.
        cancel_token.throw_if_cancelled()
        return result

    async def execute_or_none(
        self,
        ctx: CallContext,
        config: CallConfig,
        fn: Callable[[], Awaitable[T | None]],
        cancel_token: CancelToken | None = None,
    ) -> T | None:
        """Execute ``fn``, degrading any collaborator failure to None."""
        try:
            return await self.execute(ctx, config, fn, cancel_token)
        except CollaboratorError as e:
            log.warning("Collaborator %s degraded to default: %s", ctx.collaborator, e)
            return None


def default_executor(settings: Settings | None = None) -> tuple[CollaboratorExecutor, CallConfig]:
    """Executor wired to Prometheus metrics and structured logging."""
    from backend.app.utils.logging import StructuredCollaboratorLogger
    from backend.app.utils.metrics import PrometheusCollaboratorMetrics

    settings = settings or get_settings()
    executor = CollaboratorExecutor(
        metrics=PrometheusCollaboratorMetrics(),
        logger=StructuredCollaboratorLogger(),
    )
    return executor, CallConfig.from_settings(settings)
