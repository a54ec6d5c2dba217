"""Ordered fallback over scopes (models) and strategies (prompt variants).

Every multi-stage retry chain in the pipeline is expressed as:

- an ordered list of scopes, e.g. model identifiers in priority order
- an ordered list of strategies tried within each scope
- a classifier mapping a strategy failure onto one of three outcomes:
  RETRY_SAME_SCOPE (next strategy, same scope), RETRY_NEXT_SCOPE (skip the
  remaining strategies and move to the next scope) or FATAL (propagate now)

Example:
    >>> runner = FallbackRunner(
    ...     scopes=["gemini-2.5-flash", "gemini-2.0-flash"],
    ...     strategies=[Strategy("strict", strict), Strategy("relaxed", relaxed)],
    ...     classify=classify_extraction_error,
    ... )
    >>> value = await runner.run()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Classification(str, Enum):
    RETRY_SAME_SCOPE = "retry_same_scope"
    RETRY_NEXT_SCOPE = "retry_next_scope"
    FATAL = "fatal"


class ScopeExhaustion(str, Enum):
    """What happens when a scope runs out of strategies."""

    RAISE = "raise"
    NEXT_SCOPE = "next_scope"


@dataclass(frozen=True)
class Strategy(Generic[T]):
    name: str
    run: Callable[[str], Awaitable[T]]


@dataclass
class Attempt:
    scope: str
    strategy: str
    outcome: str
    error: Optional[BaseException] = None


class StrategiesExhausted(Exception):
    """Raised when every scope was moved past without an accepted value."""

    def __init__(self, attempts: list[Attempt]):
        super().__init__(f"all strategies exhausted after {len(attempts)} attempts")
        self.attempts = attempts

    @property
    def last_error(self) -> Optional[BaseException]:
        for attempt in reversed(self.attempts):
            if attempt.error is not None:
                return attempt.error
        return None


@dataclass
class FallbackRunner(Generic[T]):
    """Walk scopes x strategies until a strategy yields an accepted value.

    Args:
        scopes: Ordered scope identifiers
        strategies: Ordered strategies tried within each scope
        classify: Maps a strategy exception onto a Classification
        accept: Predicate for a returned value; a rejected value advances to
            the next strategy in the same scope
        on_scope_exhausted: RAISE re-raises the last error of a scope whose
            strategies all failed; NEXT_SCOPE moves on
        name: Label used in logs
    """

    scopes: Sequence[str]
    strategies: Sequence[Strategy[T]]
    classify: Callable[[BaseException], Classification]
    accept: Callable[[T], bool] = lambda _value: True
    on_scope_exhausted: ScopeExhaustion = ScopeExhaustion.RAISE
    name: str = "fallback"
    attempts: list[Attempt] = field(default_factory=list)

    async def run(self) -> T:
        for scope in self.scopes:
            last_error: Optional[BaseException] = None
            moved_on = False

            for strategy in self.strategies:
                try:
                    value = await strategy.run(scope)
                except Exception as e:
                    classification = self.classify(e)
                    self.attempts.append(
                        Attempt(scope, strategy.name, classification.value, e)
                    )
                    logger.info(
                        "%s strategy %s failed: %s",
                        self.name,
                        strategy.name,
                        classification.value,
                        extra={"model": scope, "stage": strategy.name},
                    )
                    if classification is Classification.FATAL:
                        raise
                    if classification is Classification.RETRY_NEXT_SCOPE:
                        moved_on = True
                        break
                    last_error = e
                    continue

                if self.accept(value):
                    self.attempts.append(Attempt(scope, strategy.name, "accepted"))
                    return value
                self.attempts.append(Attempt(scope, strategy.name, "rejected"))

            if (
                not moved_on
                and last_error is not None
                and self.on_scope_exhausted is ScopeExhaustion.RAISE
            ):
                raise last_error

        raise StrategiesExhausted(self.attempts)
