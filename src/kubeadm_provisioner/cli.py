"""Console script entrypoint.

The CLI itself is implemented in `kubeadm_provisioner.provisioner.main`.
"""

from __future__ import annotations

from kubeadm_provisioner.provisioner.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
