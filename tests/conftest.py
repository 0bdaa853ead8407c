"""Test configuration and fixtures."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import BinaryIO

import pytest

from kubeadm_provisioner.provisioner.transport.base import (
    CommandExitError,
    CommandHandle,
    Transport,
)
from kubeadm_provisioner.provisioner.workflow.context import BufferOutput, Context


@dataclass
class _Response:
    stdout: str = ""
    stderr: str = ""
    exit_status: int = 0
    start_error: Exception | None = None
    wait_error: Exception | None = None


class _FakeHandle(CommandHandle):
    def __init__(self, error: Exception | None) -> None:
        self._error = error

    def wait(self) -> None:
        if self._error is not None:
            raise self._error


class FakeTransport(Transport):
    """Scripted transport.

    A started command uses the response of the first rule whose fragment it
    contains; otherwise it consumes the next queued response, and with no
    response queued it succeeds without output. Commands and uploads are
    recorded.
    """

    def __init__(self) -> None:
        self.responses: deque[_Response] = deque()
        self.rules: list[tuple[str, _Response]] = []
        self.commands: list[str] = []
        self.uploads: dict[str, bytes] = {}
        self.upload_error: Exception | None = None

    def respond(
        self, stdout: str = "", *, stderr: str = "", exit_status: int = 0
    ) -> FakeTransport:
        self.responses.append(_Response(stdout=stdout, stderr=stderr, exit_status=exit_status))
        return self

    def on(
        self, fragment: str, stdout: str = "", *, exit_status: int = 0
    ) -> FakeTransport:
        self.rules.append((fragment, _Response(stdout=stdout, exit_status=exit_status)))
        return self

    def fail_start(self, error: Exception) -> FakeTransport:
        self.responses.append(_Response(start_error=error))
        return self

    def fail_wait(self, error: Exception, stdout: str = "") -> FakeTransport:
        self.responses.append(_Response(stdout=stdout, wait_error=error))
        return self

    def start(self, command: str, *, stdout: BinaryIO, stderr: BinaryIO) -> CommandHandle:
        self.commands.append(command)
        response = self._next_response(command)
        if response.start_error is not None:
            raise response.start_error

        stdout.write(response.stdout.encode("utf-8"))
        stdout.flush()
        stderr.write(response.stderr.encode("utf-8"))
        stderr.flush()

        error = response.wait_error
        if error is None and response.exit_status != 0:
            error = CommandExitError(command, response.exit_status)
        return _FakeHandle(error)

    def _next_response(self, command: str) -> _Response:
        for fragment, response in self.rules:
            if fragment in command:
                return response
        return self.responses.popleft() if self.responses else _Response()

    def upload(self, data: BinaryIO, remote_path: str) -> None:
        if self.upload_error is not None:
            raise self.upload_error
        self.uploads[remote_path] = data.read()


@pytest.fixture
def transport() -> FakeTransport:
    """Provide a scripted transport."""
    return FakeTransport()


@pytest.fixture
def output() -> BufferOutput:
    """Provide a buffer collecting both progress and command output."""
    return BufferOutput()


@pytest.fixture
def ctx(transport: FakeTransport, output: BufferOutput) -> Context:
    """Provide a context bound to the scripted transport."""
    return Context(transport=transport, user_output=output)
