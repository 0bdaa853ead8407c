from __future__ import annotations

import logging

from .actions import Action, ActionFunc
from .context import Context

logger = logging.getLogger(__name__)


def do_message(text: str, level: int = logging.INFO) -> Action:
    """Show a progress message to the user."""

    def run(ctx: Context) -> Action | None:
        logger.log(level, text)
        if level >= logging.WARNING:
            ctx.user_output.emit(f"WARNING: {text}")
        elif level >= logging.INFO:
            ctx.user_output.emit(text)
        return None

    return ActionFunc(run)


def do_message_info(text: str) -> Action:
    return do_message(text, logging.INFO)


def do_message_warn(text: str) -> Action:
    return do_message(text, logging.WARNING)


def do_message_debug(text: str) -> Action:
    return do_message(text, logging.DEBUG)
