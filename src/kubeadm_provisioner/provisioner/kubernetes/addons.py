"""Cluster add-ons loaded after `kubeadm init`: CNI, dashboard, extra manifests."""

from __future__ import annotations

from collections.abc import Iterable

from kubeadm_provisioner.provisioner.workflow.actions import (
    Action,
    ActionError,
    fatal_error,
    sequence,
)
from kubeadm_provisioner.provisioner.workflow.messages import do_message_info, do_message_warn

from .kubectl import do_remote_kubectl_apply
from .manifests import Manifest, new_manifest

CNI_PLUGIN_MANIFESTS: dict[str, Manifest] = {
    "flannel": Manifest(
        url=(
            "https://raw.githubusercontent.com/flannel-io/flannel/master/"
            "Documentation/kube-flannel.yml"
        )
    ),
    "weave": Manifest(
        url="https://github.com/weaveworks/weave/releases/download/v2.8.1/weave-daemonset-k8s.yaml"
    ),
    "calico": Manifest(
        url="https://raw.githubusercontent.com/projectcalico/calico/v3.27.0/manifests/calico.yaml"
    ),
}

DEFAULT_DASHBOARD_MANIFEST = (
    "https://raw.githubusercontent.com/kubernetes/dashboard/v2.7.0/aio/deploy/recommended.yaml"
)


def is_known_cni_plugin(plugin: str) -> bool:
    return plugin.strip().lower() in CNI_PLUGIN_MANIFESTS


def do_load_cni(
    kubectl: str,
    kubeconfig: str | None,
    *,
    plugin: str = "",
    manifest: str = "",
) -> Action:
    """Load the CNI driver.

    An explicit manifest (URL or local file) wins over a plugin name. Plugin
    names are expected to be validated beforehand: an unknown one is a fatal
    error.
    """

    manifest = manifest.strip()
    plugin = plugin.strip().lower()

    if manifest:
        m = new_manifest(manifest)
        if m.inline:
            return ActionError(f"{manifest!r} not recognized as URL or local filename")
        message = do_message_info(f"Loading CNI plugin from {manifest!r}")
    elif plugin:
        if plugin not in CNI_PLUGIN_MANIFESTS:
            return fatal_error(
                f"unknown CNI driver {plugin!r}: should have been caught at the validation stage"
            )
        m = CNI_PLUGIN_MANIFESTS[plugin]
        message = do_message_info(f"Loading CNI plugin {plugin!r}")
    else:
        return do_message_warn("no CNI driver is going to be loaded")

    return sequence(message, do_remote_kubectl_apply(kubectl, kubeconfig, [m]))


def do_load_dashboard(
    kubectl: str,
    kubeconfig: str | None,
    *,
    enabled: bool,
    manifest_url: str = DEFAULT_DASHBOARD_MANIFEST,
) -> Action:
    if not enabled:
        return do_message_warn("The Dashboard will not be loaded")
    if not manifest_url:
        return do_message_warn("No manifest for Dashboard: the Dashboard will not be loaded")
    return sequence(
        do_message_info(f"Loading Dashboard from {manifest_url!r}"),
        do_remote_kubectl_apply(kubectl, kubeconfig, [Manifest(url=manifest_url)]),
    )


def do_load_extra_manifests(
    kubectl: str, kubeconfig: str | None, manifests: Iterable[str]
) -> Action:
    parsed = [new_manifest(m) for m in manifests if m.strip()]
    if not parsed:
        return do_message_warn("Could not find valid manifests to load")
    return sequence(
        do_message_info(f"Loading {len(parsed)} extra manifests"),
        do_remote_kubectl_apply(kubectl, kubeconfig, parsed),
    )
