"""Abstract transport interface.

A transport starts commands on the target machine and uploads files to it.
Connection setup (SSH handshake, authentication) is the transport's own
business; the workflow engine only borrows an already usable transport.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import BinaryIO


class TransportError(Exception):
    """The transport could not start a command or lost it while it was running.

    There is no exit status attached: the remote side never reported one.
    """


class CommandExitError(Exception):
    """A remote command terminated with a non-zero exit status."""

    def __init__(self, command: str, exit_status: int) -> None:
        super().__init__(f"Command {command!r} exited with non-zero exit status: {exit_status}")
        self.command = command
        self.exit_status = exit_status


class CommandHandle(ABC):
    """A command started by a transport."""

    @abstractmethod
    def wait(self) -> None:
        """Block until the command completes.

        Raises:
            CommandExitError: If the command exited with a non-zero status.
            TransportError: If the transport lost the command.
        """
        pass


class Transport(ABC):
    """Abstract base class for transports.

    Implementations must write command output to the provided binary streams
    while the command runs, so callers can consume both streams concurrently.
    """

    @abstractmethod
    def start(self, command: str, *, stdout: BinaryIO, stderr: BinaryIO) -> CommandHandle:
        """Start a shell command on the target.

        Args:
            command: The full shell command line.
            stdout: Writable binary stream receiving standard output.
            stderr: Writable binary stream receiving standard error.

        Returns:
            A handle to wait on.

        Raises:
            TransportError: If the command could not be started.
        """
        pass

    @abstractmethod
    def upload(self, data: BinaryIO, remote_path: str) -> None:
        """Upload the contents of a readable binary stream to a remote path.

        Raises:
            TransportError: If the upload failed.
        """
        pass
