"""Transports used to reach the target machine."""

from kubeadm_provisioner.provisioner.transport.base import (
    CommandExitError,
    CommandHandle,
    Transport,
    TransportError,
)
from kubeadm_provisioner.provisioner.transport.ssh_transport import HostConfig, SSHTransport

__all__ = [
    "CommandExitError",
    "CommandHandle",
    "HostConfig",
    "SSHTransport",
    "Transport",
    "TransportError",
]
