"""Resilience utilities for external service calls.

Multi-model, multi-prompt retry chains are expressed as an ordered
fallback over scopes and strategies with explicit failure classification.
"""

from docverify.resilience.fallback import (
    Attempt,
    Classification,
    FallbackRunner,
    ScopeExhaustion,
    StrategiesExhausted,
    Strategy,
)

__all__ = [
    "Attempt",
    "Classification",
    "FallbackRunner",
    "ScopeExhaustion",
    "StrategiesExhausted",
    "Strategy",
]
