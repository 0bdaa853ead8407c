"""Kubernetes-specific actions built on the workflow engine."""

from kubeadm_provisioner.provisioner.kubernetes.addons import (
    CNI_PLUGIN_MANIFESTS,
    do_load_cni,
    do_load_dashboard,
    do_load_extra_manifests,
)
from kubeadm_provisioner.provisioner.kubernetes.kubectl import (
    DEFAULT_ADMIN_KUBECONFIG,
    check_admin_conf_alive,
    do_remote_kubectl,
    do_remote_kubectl_apply,
)
from kubeadm_provisioner.provisioner.kubernetes.manifests import Manifest, new_manifest

__all__ = [
    "CNI_PLUGIN_MANIFESTS",
    "DEFAULT_ADMIN_KUBECONFIG",
    "Manifest",
    "check_admin_conf_alive",
    "do_load_cni",
    "do_load_dashboard",
    "do_load_extra_manifests",
    "do_remote_kubectl",
    "do_remote_kubectl_apply",
    "new_manifest",
]
