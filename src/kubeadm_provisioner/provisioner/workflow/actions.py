"""Actions: the values a provisioning workflow is built from.

An action is one of four variants:

- ``NoOp``: success, nothing left to do (``None`` is accepted as a ``NoOp``)
- ``ActionError``: failure, with a human readable message
- ``ActionList``: an ordered sequence of actions
- ``ActionFunc``: a deferred function ``Context -> Action``, evaluated when
  the sequencing reaches it

``apply`` walks an action tree against a context and resolves it to either
``NO_OP`` or an ``ActionError``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeAlias

from .context import Context


@dataclass(frozen=True, slots=True)
class NoOp:
    def __str__(self) -> str:
        return "no-op"


NO_OP = NoOp()


@dataclass(frozen=True, slots=True)
class ActionError:
    """A failed action.

    `fatal` marks an internal invariant violation. Fatal errors are not
    swallowed by `do_try` and are not retried by `do_retry`.
    """

    message: str
    cause: BaseException | None = None
    fatal: bool = False

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class ActionList:
    actions: tuple[Action | None, ...] = ()

    def __len__(self) -> int:
        return len(self.actions)


@dataclass(frozen=True, slots=True)
class ActionFunc:
    fn: Callable[[Context], Action | None]


Action: TypeAlias = NoOp | ActionError | ActionList | ActionFunc
Result: TypeAlias = NoOp | ActionError


def sequence(*actions: Action | None) -> ActionList:
    """Build an ordered list of actions."""

    return ActionList(tuple(actions))


def fatal_error(message: str) -> ActionError:
    return ActionError(message, fatal=True)


def is_error(action: Action | None) -> bool:
    return isinstance(action, ActionError)


def is_fatal(action: Action | None) -> bool:
    return isinstance(action, ActionError) and action.fatal


def apply(action: Action | None, ctx: Context) -> Result:
    """Run an action tree and return its terminal result.

    Lists stop at the first element resolving to an error and return that
    error; elements after it are never applied.
    """

    match action:
        case None | NoOp():
            return NO_OP
        case ActionError():
            return action
        case ActionList(actions=actions):
            for element in actions:
                res = apply(element, ctx)
                if is_error(res):
                    return res
            return NO_OP
        case ActionFunc(fn=fn):
            return apply(fn(ctx), ctx)
    raise TypeError(f"not an action: {action!r}")
