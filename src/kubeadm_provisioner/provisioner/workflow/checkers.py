"""Checkers: named boolean predicates evaluated against a context.

A checker answers True or False. When it cannot answer (for example, the
remote command used for checking could not run) it raises `CheckError`, which
is distinct from answering False.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from kubeadm_provisioner.provisioner.transport.base import CommandExitError

from .actions import ActionError, apply, is_error
from .context import BufferOutput, Context
from .exec import do_exec, do_sending_exec_output_to

logger = logging.getLogger(__name__)

CONDITION_SUCCEEDED = "CONDITION_SUCCEEDED"
CONDITION_FAILED = "CONDITION_FAILED"


class CheckError(Exception):
    """A checker could not be evaluated."""

    def __init__(self, check: str, error: ActionError) -> None:
        super().__init__(f"check {check!r} failed: {error.message}")
        self.check = check
        self.error = error


class Checker(Protocol):
    name: str

    def check(self, ctx: Context) -> bool: ...


@dataclass(frozen=True, slots=True)
class CheckerFunc:
    name: str
    fn: Callable[[Context], bool]

    def check(self, ctx: Context) -> bool:
        return self.fn(ctx)


def check_once(checker: Checker) -> CheckerFunc:
    """Memoize a checker in the context's check cache.

    Only for facts that cannot regress during a workflow run (once true, they
    stay true). Failed evaluations are not cached.
    """

    def run(ctx: Context) -> bool:
        if checker.name in ctx.check_cache:
            cached = ctx.check_cache[checker.name]
            logger.debug(
                "Using cached check result",
                extra={"check": checker.name, "result": cached},
            )
            return cached
        result = checker.check(ctx)
        ctx.check_cache.setdefault(checker.name, result)
        return result

    return CheckerFunc(name=checker.name, fn=run)


def check_not(checker: Checker) -> CheckerFunc:
    return CheckerFunc(name=f"not ({checker.name})", fn=lambda ctx: not checker.check(ctx))


def check_and(*checkers: Checker) -> CheckerFunc:
    def run(ctx: Context) -> bool:
        return all(c.check(ctx) for c in checkers)

    return CheckerFunc(name=" and ".join(f"({c.name})" for c in checkers), fn=run)


def check_or(*checkers: Checker) -> CheckerFunc:
    def run(ctx: Context) -> bool:
        return any(c.check(ctx) for c in checkers)

    return CheckerFunc(name=" or ".join(f"({c.name})" for c in checkers), fn=run)


def _run_capturing(name: str, command: str, ctx: Context) -> str:
    buf = BufferOutput()
    res = apply(do_sending_exec_output_to(buf, do_exec(command)), ctx)
    if is_error(res):
        assert isinstance(res, ActionError)
        logger.debug("Check could not run", extra={"check": name, "error": res.message})
        raise CheckError(name, res)
    return buf.getvalue()


def check_exec(cmd: str) -> CheckerFunc:
    """Check that a shell command succeeds on the target."""

    command = f"{cmd} && echo '{CONDITION_SUCCEEDED}' || echo '{CONDITION_FAILED}'"

    def run(ctx: Context) -> bool:
        logger.debug("Checking condition", extra={"check": cmd})
        out = _run_capturing(cmd, command, ctx)

        # The command's own output could mention either marker, so require
        # the success marker alone.
        if CONDITION_SUCCEEDED in out and CONDITION_FAILED not in out:
            logger.debug("Check succeeded", extra={"check": cmd})
            return True
        logger.debug("Check failed", extra={"check": cmd})
        return False

    return CheckerFunc(name=cmd, fn=run)


def check_file_exists(path: str) -> CheckerFunc:
    return check_exec(f"test -f '{path}'")


def check_file_exists_once(path: str) -> CheckerFunc:
    return check_once(check_file_exists(path))


def check_binary_exists(name: str) -> CheckerFunc:
    """Check that a binary can be found in the target's PATH.

    `command` is a shell builtin, so the lookup runs without sudo. It exits
    with a non-zero status when nothing is found.
    """

    command = f"command -v '{name}'"

    def run(ctx: Context) -> bool:
        try:
            out = _run_capturing(command, command, ctx.without_sudo()).strip()
        except CheckError as e:
            if not isinstance(e.error.cause, CommandExitError):
                raise
            out = ""

        if not out:
            logger.debug("Binary not found", extra={"binary": name})
            return False

        # some shells print the name they were given
        if out == name:
            return True

        if posixpath.isabs(out):
            return check_file_exists(out).check(ctx)

        logger.debug("Binary not found", extra={"binary": name, "output": out})
        return False

    return CheckerFunc(name=command, fn=run)


def check_local_file_exists(path: str | Path) -> CheckerFunc:
    return CheckerFunc(name=f"local file {path}", fn=lambda _ctx: Path(path).exists())
