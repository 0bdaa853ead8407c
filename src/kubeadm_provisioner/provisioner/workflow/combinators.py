"""Control combinators: conditionals, try, retry and guaranteed cleanup."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from .actions import NO_OP, Action, ActionError, ActionFunc, Result, apply, is_error, is_fatal
from .checkers import CheckError, Checker
from .context import Context

logger = logging.getLogger(__name__)


def do_if_else(checker: Checker, then: Action | None, otherwise: Action | None) -> Action:
    """Apply `then` if the checker answers True, `otherwise` if it answers False.

    If the checker itself fails, neither branch is applied and the failure is
    the result.
    """

    def run(ctx: Context) -> Action | None:
        try:
            ok = checker.check(ctx)
        except CheckError as e:
            return ActionError(str(e), cause=e)
        return then if ok else otherwise

    return ActionFunc(run)


def do_if(checker: Checker, then: Action | None) -> Action:
    return do_if_else(checker, then, None)


def do_try(action: Action | None) -> Action:
    """Apply `action` and ignore its failure (fatal errors still propagate)."""

    def run(ctx: Context) -> Action | None:
        res = apply(action, ctx)
        if is_fatal(res):
            return res
        if is_error(res):
            logger.debug("Ignoring error", extra={"error": str(res)})
        return NO_OP

    return ActionFunc(run)


@dataclass(frozen=True, slots=True)
class Retry:
    """Retry policy: total number of attempts and the pause between them."""

    times: int = 3
    interval_seconds: float = 5.0

    def __post_init__(self) -> None:
        if self.times < 1:
            raise ValueError("Retry.times must be at least 1")
        if self.interval_seconds < 0:
            raise ValueError("Retry.interval_seconds must not be negative")


def do_retry(policy: Retry, action: Action | None) -> Action:
    """Apply `action` until it succeeds, at most `policy.times` times.

    Returns the error of the last attempt when every attempt failed.
    """

    def run(ctx: Context) -> Action | None:
        res: Result = NO_OP
        for attempt in range(1, policy.times + 1):
            res = apply(action, ctx)
            if not is_error(res) or is_fatal(res):
                return res
            if attempt < policy.times:
                logger.warning(
                    "Attempt failed, retrying",
                    extra={
                        "attempt": attempt,
                        "attempts": policy.times,
                        "interval_seconds": policy.interval_seconds,
                        "error": str(res),
                    },
                )
                time.sleep(policy.interval_seconds)
        return res

    return ActionFunc(run)


def do_with_cleanup(cleanup: Action | None, main: Action | None) -> Action:
    """Apply `main`, then always apply `cleanup`.

    The cleanup runs even when `main` failed or raised. The result is the
    error of `main` if it failed; otherwise the error of `cleanup`, if any.
    """

    def run(ctx: Context) -> Action | None:
        main_res: Result = NO_OP
        try:
            main_res = apply(main, ctx)
        finally:
            cleanup_res = apply(cleanup, ctx)

        if is_error(main_res):
            if is_error(cleanup_res):
                logger.warning("Cleanup failed too", extra={"error": str(cleanup_res)})
            return main_res
        return cleanup_res

    return ActionFunc(run)
