"""kubeadm provisioner.

Provisions Kubernetes nodes by composing remote operations over SSH:
- an action-orchestration engine (sequence, conditionals, try, retry, cleanup)
- remote and local command execution with streamed output
- temporary remote files with guaranteed removal
- kubectl manifest delivery and cluster add-ons
"""

__version__ = "0.1.0"

from kubeadm_provisioner.provisioner.config import ProvisionerSettings

__all__ = ["__version__", "ProvisionerSettings"]
