"""SSH transport built on the system ``ssh`` binary.

Using the system client means the user's SSH config, agent and keys are reused
as they are; this module does not implement any part of the SSH protocol.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import BinaryIO

from .base import CommandExitError, CommandHandle, Transport, TransportError

logger = logging.getLogger(__name__)

# ssh(1) exits with 255 when the connection itself failed.
SSH_CONNECTION_FAILED = 255


def shell_quote(s: str) -> str:
    """Quote a string for a POSIX shell: 'foo'"'"'bar'."""

    if s == "":
        return "''"
    return "'" + s.replace("'", "'\"'\"'") + "'"


@dataclass(frozen=True, slots=True)
class HostConfig:
    """Target machine address (no secrets)."""

    host: str
    user: str = ""
    port: int = 22
    ssh_extra_args: str = ""  # e.g. "-o StrictHostKeyChecking=accept-new"

    @property
    def user_host(self) -> str:
        return f"{self.user}@{self.host}" if self.user else self.host


class SSHCommandHandle(CommandHandle):
    def __init__(
        self, proc: subprocess.Popen[bytes], command: str, timeout_seconds: float | None
    ) -> None:
        self._proc = proc
        self._command = command
        self._timeout_seconds = timeout_seconds

    def wait(self) -> None:
        try:
            rc = self._proc.wait(timeout=self._timeout_seconds)
        except subprocess.TimeoutExpired as e:
            self._proc.kill()
            self._proc.wait()
            raise TransportError(
                f"command did not complete within {self._timeout_seconds}s"
            ) from e

        if rc == SSH_CONNECTION_FAILED:
            raise TransportError(f"ssh connection failed (exit status {rc})")
        if rc != 0:
            raise CommandExitError(self._command, rc)


class SSHTransport(Transport):
    """Run commands and upload files through ``ssh``."""

    def __init__(self, host: HostConfig, *, command_timeout_seconds: float | None = None) -> None:
        if not host.host:
            raise ValueError("SSH host is required")
        self.host = host
        self.command_timeout_seconds = command_timeout_seconds

    def _extra_args(self) -> list[str]:
        extra = self.host.ssh_extra_args.strip()
        if not extra:
            return []
        return shlex.split(extra)

    def _ssh_cmd(self, bash_cmd: str) -> list[str]:
        cmd: list[str] = ["ssh", "-p", str(self.host.port)]
        cmd += self._extra_args()
        cmd.append(self.host.user_host)
        return cmd + ["bash", "-lc", shell_quote(bash_cmd)]

    def start(self, command: str, *, stdout: BinaryIO, stderr: BinaryIO) -> CommandHandle:
        logger.debug("ssh start", extra={"host": self.host.user_host, "command": command})
        try:
            proc = subprocess.Popen(
                self._ssh_cmd(command),
                stdin=subprocess.DEVNULL,
                stdout=stdout,
                stderr=stderr,
            )
        except OSError as e:
            raise TransportError(f"could not run ssh: {e}") from e
        return SSHCommandHandle(proc, command, self.command_timeout_seconds)

    def upload(self, data: BinaryIO, remote_path: str) -> None:
        logger.debug("ssh upload", extra={"host": self.host.user_host, "path": remote_path})
        try:
            proc = subprocess.run(
                self._ssh_cmd(f"cat > {shell_quote(remote_path)}"),
                input=data.read(),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                timeout=self.command_timeout_seconds,
            )
        except OSError as e:
            raise TransportError(f"could not run ssh: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise TransportError(f"upload to {remote_path!r} timed out") from e

        if proc.returncode != 0:
            err = proc.stderr.decode("utf-8", errors="replace").strip()
            raise TransportError(
                f"upload to {remote_path!r} failed (exit status {proc.returncode}): {err}"
            )
