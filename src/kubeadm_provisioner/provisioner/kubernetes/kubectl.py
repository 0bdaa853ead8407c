"""Run kubectl on the target machine.

kubectl is invoked remotely with the cluster's `admin.conf` when the target
already has one; otherwise a local kubeconfig is uploaded to a temporary file
for the duration of the command.
"""

from __future__ import annotations

from collections.abc import Iterable

from kubeadm_provisioner.provisioner.workflow.actions import (
    Action,
    ActionError,
    ActionFunc,
    sequence,
)
from kubeadm_provisioner.provisioner.workflow.checkers import (
    CheckerFunc,
    check_and,
    check_exec,
    check_file_exists,
    check_file_exists_once,
)
from kubeadm_provisioner.provisioner.workflow.combinators import (
    Retry,
    do_if_else,
    do_retry,
    do_try,
    do_with_cleanup,
)
from kubeadm_provisioner.provisioner.workflow.context import Context
from kubeadm_provisioner.provisioner.workflow.exec import do_exec
from kubeadm_provisioner.provisioner.workflow.files import (
    do_delete_file,
    do_upload_bytes_to_file,
    do_upload_file_to_file,
    get_temp_filename,
)

from .manifests import Manifest

DEFAULT_ADMIN_KUBECONFIG = "/etc/kubernetes/admin.conf"
DEFAULT_KUBECTL_RETRY = Retry(times=3)


def check_admin_conf_alive(kubectl: str = "kubectl") -> CheckerFunc:
    """True if the target has an admin.conf that can reach the API server."""

    return check_and(
        check_file_exists(DEFAULT_ADMIN_KUBECONFIG),
        check_exec(f"{kubectl} --kubeconfig={DEFAULT_ADMIN_KUBECONFIG} get nodes"),
    )


def do_remote_kubectl(
    kubectl: str,
    kubeconfig: str | None,
    *args: str,
    retry: Retry = DEFAULT_KUBECTL_RETRY,
) -> Action:
    """Run `kubectl <args>` on the target.

    Args:
        kubectl: kubectl binary on the target.
        kubeconfig: Local kubeconfig uploaded when the target has no admin.conf.
        *args: kubectl arguments.
        retry: Retry policy used when running with an uploaded kubeconfig.
    """

    args_str = " ".join(args)

    def with_uploaded_kubeconfig(_ctx: Context) -> Action | None:
        if not kubeconfig:
            return ActionError("no kubeconfig provided, and no remote admin.conf found")

        remote_kubeconfig = get_temp_filename()
        return do_retry(
            retry,
            do_with_cleanup(
                do_try(do_delete_file(remote_kubeconfig)),
                sequence(
                    do_upload_file_to_file(kubeconfig, remote_kubeconfig),
                    do_exec(f"{kubectl} --kubeconfig={remote_kubeconfig} {args_str}"),
                ),
            ),
        )

    # admin.conf is never removed once created, so its existence can be cached.
    return do_if_else(
        check_file_exists_once(DEFAULT_ADMIN_KUBECONFIG),
        do_exec(f"{kubectl} --kubeconfig={DEFAULT_ADMIN_KUBECONFIG} {args_str}"),
        ActionFunc(with_uploaded_kubeconfig),
    )


def _do_apply_uploaded(
    kubectl: str, kubeconfig: str | None, manifest: Manifest, retry: Retry
) -> Action:
    def run(_ctx: Context) -> Action | None:
        remote_manifest = get_temp_filename()
        if manifest.inline:
            upload = do_upload_bytes_to_file(manifest.inline, remote_manifest)
        else:
            upload = do_upload_file_to_file(manifest.path, remote_manifest)
        return do_with_cleanup(
            do_try(do_delete_file(remote_manifest)),
            sequence(
                upload,
                do_remote_kubectl(kubectl, kubeconfig, "apply", "-f", remote_manifest, retry=retry),
            ),
        )

    return ActionFunc(run)


def do_remote_kubectl_apply(
    kubectl: str,
    kubeconfig: str | None,
    manifests: Iterable[Manifest],
    *,
    retry: Retry = DEFAULT_KUBECTL_RETRY,
) -> Action:
    """`kubectl apply` some manifests on the target.

    Local files and inline manifests are uploaded to temporary files first;
    URLs are passed to kubectl as they are.
    """

    actions: list[Action] = []
    for manifest in manifests:
        if manifest.url:
            actions.append(
                do_remote_kubectl(kubectl, kubeconfig, "apply", "-f", manifest.url, retry=retry)
            )
        else:
            actions.append(_do_apply_uploaded(kubectl, kubeconfig, manifest, retry))
    return sequence(*actions)
