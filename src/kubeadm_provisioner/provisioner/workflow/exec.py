"""Command execution actions.

Both the remote and the local primitive stream output while the command runs:
one reader thread per output channel splits the raw bytes into lines and emits
them to the context's exec output. The primitives return only after both
readers have finished, so every line reaches the sink before the result is
returned.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import threading
from collections import deque
from typing import BinaryIO

from kubeadm_provisioner.provisioner.transport.base import CommandExitError, TransportError

from .actions import Action, ActionError, ActionFunc, apply
from .context import Context, OutputSink

logger = logging.getLogger(__name__)

SUDO_ARGS = "--non-interactive"

# Lines of stderr kept for the error message of a failed local command.
_LOCAL_STDERR_TAIL = 20


def _pipe() -> tuple[BinaryIO, BinaryIO]:
    r, w = os.pipe()
    return os.fdopen(r, "rb"), os.fdopen(w, "wb")


def _copy_lines(reader: BinaryIO, sink: OutputSink, prefix: str) -> None:
    # Keep draining even if the sink fails, or the writer side could block.
    with reader:
        for raw in reader:
            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            try:
                sink.emit(prefix + line)
            except Exception:
                logger.exception("Output sink failed")


def _start_copy(
    reader: BinaryIO, sink: OutputSink, name: str, prefix: str = ""
) -> threading.Thread:
    thread = threading.Thread(
        target=_copy_lines, args=(reader, sink, prefix), name=name, daemon=True
    )
    thread.start()
    return thread


def build_remote_command(command: str, *, use_sudo: bool) -> str:
    if use_sudo:
        command = f"sudo {SUDO_ARGS} {command}"
    return command + " 2>&1"


def do_exec(command: str) -> Action:
    """Run a command on the target through the context's transport.

    An empty command does nothing.
    """

    def run(ctx: Context) -> Action | None:
        if not command:
            return None

        full_command = build_remote_command(command, use_sudo=ctx.use_sudo)
        logger.debug("Running remote command", extra={"command": full_command})

        sink = ctx.get_exec_output()
        out_r, out_w = _pipe()
        err_r, err_w = _pipe()
        readers = [
            _start_copy(out_r, sink, "exec-stdout"),
            _start_copy(err_r, sink, "exec-stderr"),
        ]

        res: Action | None = None
        try:
            handle = ctx.transport.start(full_command, stdout=out_w, stderr=err_w)
            handle.wait()
        except CommandExitError as e:
            res = ActionError(
                f"Command {e.command!r} exited with non-zero exit status: {e.exit_status}",
                cause=e,
            )
        except TransportError as e:
            res = ActionError(f"Error executing command {full_command!r}: {e}", cause=e)
        finally:
            out_w.close()
            err_w.close()
            for reader in readers:
                reader.join()

        return res

    return ActionFunc(run)


def do_sending_exec_output_to(sink: OutputSink, action: Action) -> Action:
    """Apply `action` with command output redirected to `sink`."""

    return ActionFunc(lambda ctx: apply(action, ctx.with_exec_output(sink)))


class _TailOutput:
    """Forward lines to another sink, remembering the last few."""

    def __init__(self, sink: OutputSink, maxlen: int) -> None:
        self._sink = sink
        self.tail: deque[str] = deque(maxlen=maxlen)

    def emit(self, line: str) -> None:
        self.tail.append(line)
        self._sink.emit(line)


def do_local_exec(command: str, *args: str) -> Action:
    """Run a command on the local machine, streaming its output."""

    def run(ctx: Context) -> Action | None:
        argv = [command, *args]
        full_command = shlex.join(argv)
        ctx.user_output.emit(f"Running local command {full_command!r}...")

        output = ctx.get_exec_output()
        try:
            proc = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            return ActionError(f"Could not run local command {full_command!r}: {e}", cause=e)

        assert proc.stdout is not None
        assert proc.stderr is not None
        errors = _TailOutput(output, _LOCAL_STDERR_TAIL)
        readers = [
            _start_copy(proc.stdout, output, "local-stdout"),
            _start_copy(proc.stderr, errors, "local-stderr", prefix="ERROR: "),
        ]
        try:
            rc = proc.wait()
        finally:
            for reader in readers:
                reader.join()

        if rc != 0:
            detail = "\n".join(errors.tail)
            ctx.user_output.emit(f"Error waiting for {command!r}: exit status {rc}")
            cause = subprocess.CalledProcessError(rc, argv, stderr=detail)
            message = f"Local command {full_command!r} exited with non-zero exit status: {rc}"
            if detail:
                message = f"{message}\n{detail}"
            return ActionError(message, cause=cause)

        return None

    return ActionFunc(run)
