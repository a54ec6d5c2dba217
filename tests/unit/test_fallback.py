"""Unit tests for the scopes x strategies fallback runner."""

import pytest

from docverify.resilience import (
    Classification,
    FallbackRunner,
    ScopeExhaustion,
    StrategiesExhausted,
    Strategy,
)


class Retryable(Exception):
    pass


class SkipScope(Exception):
    pass


class Fatal(Exception):
    pass


def classify(error):
    if isinstance(error, Retryable):
        return Classification.RETRY_SAME_SCOPE
    if isinstance(error, SkipScope):
        return Classification.RETRY_NEXT_SCOPE
    return Classification.FATAL


def scripted(name, outcomes, calls):
    """Strategy whose result per scope comes from ``outcomes``."""

    async def run(scope):
        calls.append((scope, name))
        outcome = outcomes[scope]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return Strategy(name, run)


class TestFallbackRunner:
    async def test_first_success_wins(self):
        calls = []
        runner = FallbackRunner(
            scopes=["m1", "m2"],
            strategies=[scripted("strict", {"m1": "ok", "m2": "other"}, calls)],
            classify=classify,
        )
        assert await runner.run() == "ok"
        assert calls == [("m1", "strict")]

    async def test_same_scope_retry_uses_next_strategy(self):
        calls = []
        runner = FallbackRunner(
            scopes=["m1"],
            strategies=[
                scripted("strict", {"m1": Retryable()}, calls),
                scripted("relaxed", {"m1": "relaxed-ok"}, calls),
            ],
            classify=classify,
        )
        assert await runner.run() == "relaxed-ok"
        assert calls == [("m1", "strict"), ("m1", "relaxed")]

    async def test_next_scope_skips_remaining_strategies(self):
        calls = []
        runner = FallbackRunner(
            scopes=["m1", "m2"],
            strategies=[
                scripted("strict", {"m1": SkipScope(), "m2": "m2-ok"}, calls),
                scripted("relaxed", {"m1": "never", "m2": "never"}, calls),
            ],
            classify=classify,
        )
        assert await runner.run() == "m2-ok"
        assert calls == [("m1", "strict"), ("m2", "strict")]

    async def test_fatal_propagates_immediately(self):
        calls = []
        runner = FallbackRunner(
            scopes=["m1", "m2"],
            strategies=[
                scripted("strict", {"m1": Fatal("stop"), "m2": "ok"}, calls),
            ],
            classify=classify,
        )
        with pytest.raises(Fatal):
            await runner.run()
        assert calls == [("m1", "strict")]

    async def test_scope_exhaustion_raises_last_error_by_default(self):
        runner = FallbackRunner(
            scopes=["m1", "m2"],
            strategies=[
                scripted("strict", {"m1": Retryable("first"), "m2": "ok"}, []),
                scripted("relaxed", {"m1": Retryable("second"), "m2": "ok"}, []),
            ],
            classify=classify,
        )
        with pytest.raises(Retryable, match="second"):
            await runner.run()

    async def test_scope_exhaustion_can_move_on(self):
        runner = FallbackRunner(
            scopes=["m1", "m2"],
            strategies=[scripted("only", {"m1": Retryable(), "m2": "m2-ok"}, [])],
            classify=classify,
            on_scope_exhausted=ScopeExhaustion.NEXT_SCOPE,
        )
        assert await runner.run() == "m2-ok"

    async def test_rejected_values_advance(self):
        runner = FallbackRunner(
            scopes=["m1", "m2"],
            strategies=[
                scripted("a", {"m1": "", "m2": ""}, []),
                scripted("b", {"m1": "", "m2": "Female"}, []),
            ],
            classify=classify,
            accept=lambda value: value in ("Male", "Female"),
            on_scope_exhausted=ScopeExhaustion.NEXT_SCOPE,
        )
        assert await runner.run() == "Female"
        assert [a.outcome for a in runner.attempts] == [
            "rejected",
            "rejected",
            "rejected",
            "accepted",
        ]

    async def test_all_scopes_skipped_raises_strategies_exhausted(self):
        error = SkipScope("gone")
        runner = FallbackRunner(
            scopes=["m1", "m2"],
            strategies=[scripted("strict", {"m1": error, "m2": error}, [])],
            classify=classify,
        )
        with pytest.raises(StrategiesExhausted) as exc_info:
            await runner.run()
        assert len(exc_info.value.attempts) == 2
        assert exc_info.value.last_error is error
