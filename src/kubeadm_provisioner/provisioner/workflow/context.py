from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass, field
from typing import Protocol, TextIO

from kubeadm_provisioner.provisioner.transport.base import Transport

EXEC_LOGGER_NAME = "kubeadm_provisioner.exec"


class OutputSink(Protocol):
    """Destination for output lines. Must accept lines from several threads."""

    def emit(self, line: str) -> None: ...


class LoggerOutput:
    """Forward each line to a logger."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self._logger = logger or logging.getLogger(EXEC_LOGGER_NAME)
        self._level = level

    def emit(self, line: str) -> None:
        self._logger.log(self._level, line)


class BufferOutput:
    """Collect lines in memory."""

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._lock = threading.Lock()

    def emit(self, line: str) -> None:
        with self._lock:
            self._lines.append(line)

    @property
    def lines(self) -> list[str]:
        with self._lock:
            return list(self._lines)

    def getvalue(self) -> str:
        return "".join(f"{line}\n" for line in self.lines)


class StreamOutput:
    """Write lines to a text stream."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._lock = threading.Lock()

    def emit(self, line: str) -> None:
        with self._lock:
            self._stream.write(line + "\n")
            self._stream.flush()


@dataclass(slots=True)
class Context:
    """Per-workflow execution state.

    One instance per top-level workflow invocation. It is mutated only by the
    actions applied against it (check cache writes, leftover registration) and
    must not be shared by workflows running concurrently.
    """

    transport: Transport
    use_sudo: bool = False
    user_output: OutputSink = field(default_factory=LoggerOutput)
    exec_output: OutputSink | None = None
    check_cache: dict[str, bool] = field(default_factory=dict)
    leftovers: list[str] = field(default_factory=list)

    def get_exec_output(self) -> OutputSink:
        if self.exec_output is not None:
            return self.exec_output
        return self.user_output

    def with_exec_output(self, sink: OutputSink) -> Context:
        """Return a context sending command output to `sink`.

        The cache and the leftover registry are shared with this context.
        """

        return dataclasses.replace(self, exec_output=sink)

    def without_sudo(self) -> Context:
        """Return a context running commands as the login user.

        The cache and the leftover registry are shared with this context.
        """

        return dataclasses.replace(self, use_sudo=False)

    def add_leftover(self, path: str) -> None:
        if path not in self.leftovers:
            self.leftovers.append(path)

    def drain_leftovers(self) -> list[str]:
        drained = list(self.leftovers)
        self.leftovers.clear()
        return drained
