"""Unit tests for the control combinators."""

from __future__ import annotations

import pytest

from kubeadm_provisioner.provisioner.workflow import combinators
from kubeadm_provisioner.provisioner.workflow.actions import (
    NO_OP,
    Action,
    ActionError,
    ActionFunc,
    apply,
    fatal_error,
    is_error,
    sequence,
)
from kubeadm_provisioner.provisioner.workflow.checkers import CheckError, CheckerFunc
from kubeadm_provisioner.provisioner.workflow.combinators import (
    Retry,
    do_if,
    do_if_else,
    do_retry,
    do_try,
    do_with_cleanup,
)
from kubeadm_provisioner.provisioner.workflow.context import Context


class Counter:
    """An action recording how many times it ran, failing on chosen attempts."""

    def __init__(self, results: list[Action | None] | None = None) -> None:
        self.calls = 0
        self._results = results or []

    def run(self, _ctx: Context) -> Action | None:
        self.calls += 1
        if self.calls <= len(self._results):
            return self._results[self.calls - 1]
        return None

    @property
    def action(self) -> ActionFunc:
        return ActionFunc(self.run)


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    recorded: list[float] = []
    monkeypatch.setattr(combinators.time, "sleep", recorded.append)
    return recorded


def _appending(order: list[str], name: str) -> ActionFunc:
    def run(_ctx: Context) -> Action | None:
        order.append(name)
        return None

    return ActionFunc(run)


def _checker(answer: bool) -> CheckerFunc:
    return CheckerFunc(name=f"always {answer}", fn=lambda _ctx: answer)


def test_try_swallows_errors_but_runs_side_effects(ctx: Context) -> None:
    counter = Counter([ActionError("boom")])

    res = apply(do_try(counter.action), ctx)

    assert res is NO_OP
    assert counter.calls == 1


def test_try_of_success_is_success(ctx: Context) -> None:
    assert apply(do_try(None), ctx) is NO_OP


def test_try_does_not_swallow_fatal_errors(ctx: Context) -> None:
    fatal = fatal_error("invariant broken")
    assert apply(do_try(fatal), ctx) is fatal


def test_retry_always_failing_runs_every_attempt(ctx: Context, sleeps: list[float]) -> None:
    errors: list[Action | None] = [ActionError(f"attempt {i}") for i in range(1, 4)]
    counter = Counter(errors)

    res = apply(do_retry(Retry(times=3, interval_seconds=0.5), counter.action), ctx)

    assert counter.calls == 3
    assert sleeps == [0.5, 0.5]
    assert isinstance(res, ActionError)
    assert res.message == "attempt 3"


def test_retry_stops_at_first_success(ctx: Context, sleeps: list[float]) -> None:
    counter = Counter([ActionError("first"), None])

    res = apply(do_retry(Retry(times=3, interval_seconds=1.0), counter.action), ctx)

    assert res is NO_OP
    assert counter.calls == 2
    assert sleeps == [1.0]


def test_retry_does_not_retry_fatal_errors(ctx: Context, sleeps: list[float]) -> None:
    counter = Counter([fatal_error("nope")])

    res = apply(do_retry(Retry(times=5, interval_seconds=1.0), counter.action), ctx)

    assert counter.calls == 1
    assert sleeps == []
    assert is_error(res)


@pytest.mark.parametrize("times,interval", [(0, 1.0), (-1, 1.0), (1, -0.1)])
def test_retry_policy_validation(times: int, interval: float) -> None:
    with pytest.raises(ValueError):
        Retry(times=times, interval_seconds=interval)


def test_with_cleanup_runs_cleanup_after_success(ctx: Context) -> None:
    order: list[str] = []
    main = _appending(order, "main")
    cleanup = _appending(order, "cleanup")

    assert apply(do_with_cleanup(cleanup, main), ctx) is NO_OP
    assert order == ["main", "cleanup"]


def test_with_cleanup_runs_cleanup_after_failure(ctx: Context) -> None:
    cleanup = Counter()
    main_err = ActionError("main failed")

    res = apply(do_with_cleanup(cleanup.action, main_err), ctx)

    assert res is main_err
    assert cleanup.calls == 1


def test_with_cleanup_reports_cleanup_failure_when_main_succeeds(ctx: Context) -> None:
    cleanup_err = ActionError("cleanup failed")

    res = apply(do_with_cleanup(cleanup_err, sequence()), ctx)

    assert res is cleanup_err


def test_with_cleanup_main_failure_wins_when_both_fail(ctx: Context) -> None:
    main_err = ActionError("main failed")
    cleanup_err = ActionError("cleanup failed")

    res = apply(do_with_cleanup(cleanup_err, main_err), ctx)

    assert res is main_err


def test_with_cleanup_runs_cleanup_when_main_raises(ctx: Context) -> None:
    cleanup = Counter()

    def explode(_ctx: Context) -> Action | None:
        raise RuntimeError("unexpected")

    with pytest.raises(RuntimeError):
        apply(do_with_cleanup(cleanup.action, ActionFunc(explode)), ctx)

    assert cleanup.calls == 1


def test_if_else_selects_branch(ctx: Context) -> None:
    then = Counter()
    otherwise = Counter()

    apply(do_if_else(_checker(True), then.action, otherwise.action), ctx)
    assert (then.calls, otherwise.calls) == (1, 0)

    apply(do_if_else(_checker(False), then.action, otherwise.action), ctx)
    assert (then.calls, otherwise.calls) == (1, 1)


def test_if_else_propagates_checker_failure(ctx: Context) -> None:
    then = Counter()
    otherwise = Counter()

    def failing(_ctx: Context) -> bool:
        raise CheckError("test -f /x", ActionError("connection lost"))

    res = apply(
        do_if_else(CheckerFunc(name="test -f /x", fn=failing), then.action, otherwise.action),
        ctx,
    )

    assert isinstance(res, ActionError)
    assert "connection lost" in res.message
    assert isinstance(res.cause, CheckError)
    assert then.calls == 0
    assert otherwise.calls == 0


def test_if_without_else_is_success_when_false(ctx: Context) -> None:
    then = Counter()
    assert apply(do_if(_checker(False), then.action), ctx) is NO_OP
    assert then.calls == 0
