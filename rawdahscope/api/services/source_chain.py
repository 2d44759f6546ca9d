"""
Source chains: ordered fallback across upstream strategies.

A chain holds strategies from most to least authoritative. One fetch:

1. Cache lookup by key; a live hit returns without any network call.
2. Otherwise the *whole* chain runs inside one retry-executor call.
   Strategies are tried strictly in order, one at a time; the first
   ``Ok`` wins. ``Failure`` (exception) and ``Invalid`` (HTTP success but
   semantically empty payload) both fall through to the next strategy
   immediately, without waiting.
3. If every strategy misses, the attempt fails and the executor backs
   off, then restarts from strategy 1.
4. A success is written to the cache with the chain's TTL. Exhaustion
   raises ``NoRealDataAvailable``. Chains never substitute made-up data.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence

from loguru import logger

from rawdahscope.api.middleware.prometheus_metrics import (
    CACHE_LOOKUPS_TOTAL,
    RETRY_WAITS_TOTAL,
    STRATEGY_ATTEMPTS_TOTAL,
)
from rawdahscope.infrastructure.cache.ttl_cache import TTLCache
from rawdahscope.infrastructure.retry.retry_executor import (
    RetryPolicy,
    Sleep,
    execute_with_retry,
)

# ============================================================================
# ERRORS
# ============================================================================


class SourceChainError(Exception):
    """Base class for acquisition-layer failures."""


class InvalidCoordinatesError(SourceChainError, ValueError):
    """Coordinates outside the valid lat/lng range (never retried)."""


class ChainAttemptFailed(SourceChainError):
    """Every strategy missed during one pass over the chain."""

    def __init__(self, chain: str, outcomes: list["StrategyOutcome"]):
        self.chain = chain
        self.outcomes = outcomes
        summary = "; ".join(o.describe() for o in outcomes) or "no strategies"
        super().__init__(f"{chain}: all strategies failed ({summary})")


class NoRealDataAvailable(SourceChainError):
    """All strategies and all retries failed for a chain."""

    def __init__(
        self,
        chain: str,
        attempts: int,
        last_error: BaseException | None = None,
    ):
        self.chain = chain
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"No real {chain} data available after {attempts} attempt(s)"
            + (f": {last_error}" if last_error else "")
        )


# ============================================================================
# TAGGED STRATEGY OUTCOMES
# ============================================================================


@dataclass(frozen=True)
class Ok:
    strategy: str
    payload: Any

    def describe(self) -> str:
        return f"{self.strategy}=ok"


@dataclass(frozen=True)
class Invalid:
    strategy: str
    reason: str

    def describe(self) -> str:
        return f"{self.strategy}=invalid({self.reason})"


@dataclass(frozen=True)
class Failure:
    strategy: str
    error: BaseException

    def describe(self) -> str:
        kind = type(self.error).__name__
        return f"{self.strategy}=failed({kind}: {self.error})"


StrategyOutcome = Ok | Invalid | Failure

Validator = Callable[[Any], str | None]


def require_fields(*path: str) -> Validator:
    """
    Build a validator that requires a non-null value at ``path``.

    Example:
        require_fields("current", "temperature_2m")
    """

    def _validate(payload: Any) -> str | None:
        node = payload
        walked = []
        for key in path:
            walked.append(key)
            if not isinstance(node, dict) or node.get(key) is None:
                return f"missing {'.'.join(walked)}"
            node = node[key]
        return None

    return _validate


def require_non_empty(*path: str) -> Validator:
    """Like ``require_fields`` but the final value must also be non-empty."""
    present = require_fields(*path)

    def _validate(payload: Any) -> str | None:
        reason = present(payload)
        if reason:
            return reason
        node = payload
        for key in path:
            node = node[key]
        if hasattr(node, "__len__") and len(node) == 0:
            return f"empty {'.'.join(path)}"
        return None

    return _validate


@dataclass
class Strategy:
    """
    One upstream provider or computation method within a chain.

    Args:
        name: Identifier used in logs, metrics and payload labels
        fetch: Coroutine function taking the chain request
        validate: Returns a reason string when the payload is unusable
    """

    name: str
    fetch: Callable[[Any], Awaitable[Any]]
    validate: Validator = field(default=lambda payload: None)

    async def run(self, request: Any) -> StrategyOutcome:
        try:
            payload = await self.fetch(request)
        except Exception as e:
            return Failure(self.name, e)

        if payload is None:
            return Invalid(self.name, "empty payload")

        reason = self.validate(payload)
        if reason:
            return Invalid(self.name, reason)
        return Ok(self.name, payload)


# ============================================================================
# CHAIN
# ============================================================================


class SourceChain:
    """
    Ordered fallback chain for one data domain, with caching and retry.

    Args:
        name: Chain identifier (e.g. "air_quality")
        strategies: Strategies from most to least authoritative
        cache: Shared TTL cache
        ttl_minutes: TTL applied to successful payloads
        retry_policy: Outer retry budget for whole-chain passes
        sleep: Awaitable sleep used between passes (injectable)
    """

    def __init__(
        self,
        name: str,
        strategies: Sequence[Strategy],
        cache: TTLCache,
        ttl_minutes: float,
        retry_policy: RetryPolicy,
        sleep: Sleep = asyncio.sleep,
    ):
        if not strategies:
            raise ValueError(f"Chain '{name}' needs at least one strategy")
        self.name = name
        self.strategies = list(strategies)
        self.cache = cache
        self.ttl_minutes = ttl_minutes
        self.retry_policy = retry_policy
        self._sleep = sleep

    async def fetch(
        self, cache_key: str, request: Any = None, use_cache: bool = True
    ) -> Any:
        """
        Return the payload for ``request``, from cache or upstream.

        Raises:
            NoRealDataAvailable: every strategy failed on every attempt
        """
        if use_cache:
            hit = self.cache.get(cache_key)
            if hit is not None:
                CACHE_LOOKUPS_TOTAL.labels(chain=self.name, result="hit").inc()
                logger.info(
                    f"Cache HIT: {cache_key} (age {hit.age_seconds:.0f}s)"
                )
                return hit.value
            CACHE_LOOKUPS_TOTAL.labels(chain=self.name, result="miss").inc()
            logger.info(f"Cache MISS: {cache_key}")

        result = await execute_with_retry(
            lambda: self._run_once(request),
            policy=self.retry_policy,
            on_retry=self._log_retry,
            sleep=self._sleep,
        )

        if not result.success:
            logger.error(
                f"{self.name}: exhausted after {result.attempts} "
                f"attempt(s): {result.error}"
            )
            raise NoRealDataAvailable(
                self.name, result.attempts, result.error
            )

        winner: Ok = result.data
        self.cache.set(cache_key, winner.payload, self.ttl_minutes)
        logger.info(
            f"Cache SAVE: {cache_key} from {winner.strategy} "
            f"(attempt {result.attempts})"
        )
        return winner.payload

    async def _run_once(self, request: Any) -> Ok:
        outcomes: list[StrategyOutcome] = []
        for strategy in self.strategies:
            outcome = await strategy.run(request)
            STRATEGY_ATTEMPTS_TOTAL.labels(
                chain=self.name,
                strategy=strategy.name,
                outcome=type(outcome).__name__.lower(),
            ).inc()

            if isinstance(outcome, Ok):
                return outcome
            if isinstance(outcome, Invalid):
                logger.warning(
                    f"{self.name}: {strategy.name} returned unusable data "
                    f"({outcome.reason}), trying next source"
                )
            else:
                logger.warning(
                    f"{self.name}: {strategy.name} failed "
                    f"({type(outcome.error).__name__}: {outcome.error}), "
                    f"trying next source"
                )
            outcomes.append(outcome)

        raise ChainAttemptFailed(self.name, outcomes)

    def _log_retry(self, attempt: int, wait: float, error: BaseException):
        RETRY_WAITS_TOTAL.labels(chain=self.name).inc()
        logger.warning(
            f"Retrying {self.name}... attempt {attempt} failed, "
            f"waiting {wait:.1f}s ({error})"
        )
