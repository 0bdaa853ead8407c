#!/usr/bin/env python3
"""Programmatic provisioning example.

This demonstrates composing the workflow actions directly:

* load settings from `.env`
* upload a kubeadm configuration and run `kubeadm init` unless the node
  already has a control plane
* load a CNI plugin
* remove any temporary files left on the node

The target host is passed as an argument (not read from `.env`).
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from kubeadm_provisioner.provisioner.config import ProvisionerSettings
from kubeadm_provisioner.provisioner.kubernetes.addons import do_load_cni
from kubeadm_provisioner.provisioner.kubernetes.kubectl import DEFAULT_ADMIN_KUBECONFIG
from kubeadm_provisioner.provisioner.logging import configure_logging
from kubeadm_provisioner.provisioner.transport.ssh_transport import HostConfig, SSHTransport
from kubeadm_provisioner.provisioner.workflow import (
    ActionError,
    Context,
    StreamOutput,
    apply,
    check_binary_exists,
    check_file_exists,
    do_cleanup_leftovers,
    do_exec,
    do_if_else,
    do_message_info,
    do_retry,
    do_upload_bytes_to_file,
    do_with_cleanup,
    is_error,
    sequence,
)

KUBEADM_CONFIG = """\
apiVersion: kubeadm.k8s.io/v1beta3
kind: ClusterConfiguration
networking:
  podSubnet: 10.244.0.0/16
"""

KUBEADM_CONFIG_PATH = "/etc/kubeadm/kubeadm.yaml"


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Initialize a control plane (example).")
    parser.add_argument("--host", required=True, help="Target host")
    parser.add_argument("--user", default="", help="SSH login")
    parser.add_argument("--cni", default="flannel", help="CNI plugin to load")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = ProvisionerSettings()
    configure_logging(settings.log_level)

    transport = SSHTransport(
        HostConfig(host=args.host, user=args.user),
        command_timeout_seconds=settings.command_timeout_seconds,
    )
    ctx = Context(transport=transport, use_sudo=True, user_output=StreamOutput(sys.stdout))

    init = sequence(
        do_upload_bytes_to_file(KUBEADM_CONFIG, KUBEADM_CONFIG_PATH),
        do_exec(f"kubeadm init --config={KUBEADM_CONFIG_PATH}"),
    )
    workflow = sequence(
        do_if_else(
            check_binary_exists("kubeadm"),
            None,
            ActionError("kubeadm is not installed on the node"),
        ),
        do_if_else(
            check_file_exists(DEFAULT_ADMIN_KUBECONFIG),
            do_message_info("Control plane already initialized"),
            init,
        ),
        do_retry(settings.retry_policy(), do_load_cni(settings.kubectl, None, plugin=args.cni)),
    )

    res = apply(do_with_cleanup(do_cleanup_leftovers(), workflow), ctx)
    if is_error(res):
        print(f"Provisioning failed: {res}", file=sys.stderr)
        return 1

    print("Control plane ready")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
