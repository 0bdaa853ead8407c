"""CLI entrypoint for the provisioner.

Each subcommand builds an action tree, applies it against a fresh context
connected to the target over SSH, and removes any registered leftovers before
exiting.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from kubeadm_provisioner import __version__
from kubeadm_provisioner.provisioner.config import ProvisionerSettings
from kubeadm_provisioner.provisioner.kubernetes.addons import (
    CNI_PLUGIN_MANIFESTS,
    do_load_cni,
    do_load_dashboard,
)
from kubeadm_provisioner.provisioner.kubernetes.kubectl import do_remote_kubectl_apply
from kubeadm_provisioner.provisioner.kubernetes.manifests import new_manifest
from kubeadm_provisioner.provisioner.logging import configure_logging
from kubeadm_provisioner.provisioner.transport.ssh_transport import HostConfig, SSHTransport
from kubeadm_provisioner.provisioner.workflow.actions import (
    Action,
    ActionError,
    apply,
    is_error,
    is_fatal,
)
from kubeadm_provisioner.provisioner.workflow.checkers import check_binary_exists
from kubeadm_provisioner.provisioner.workflow.combinators import do_if_else, do_with_cleanup
from kubeadm_provisioner.provisioner.workflow.context import Context, LoggerOutput, StreamOutput
from kubeadm_provisioner.provisioner.workflow.exec import do_exec
from kubeadm_provisioner.provisioner.workflow.files import (
    do_cleanup_leftovers,
    do_download_file,
    do_exec_script,
)
from kubeadm_provisioner.provisioner.workflow.messages import do_message_info

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ACTION_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_FATAL = 3


def build_parser() -> argparse.ArgumentParser:
    target = argparse.ArgumentParser(add_help=False)
    target.add_argument("--host", default=None, help="Target host (overrides PROVISIONER_SSH_HOST)")
    target.add_argument("--user", default=None, help="SSH login (overrides PROVISIONER_SSH_USER)")
    target.add_argument(
        "--port", type=int, default=None, help="SSH port (overrides PROVISIONER_SSH_PORT)"
    )
    target.add_argument(
        "--sudo",
        action="store_true",
        help="Run remote commands with 'sudo --non-interactive'",
    )

    parser = argparse.ArgumentParser(
        prog="kubeadm-provisioner",
        description="Provision Kubernetes nodes over SSH",
    )
    parser.add_argument(
        "--version", action="version", version=f"kubeadm-provisioner {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    exec_cmd = subparsers.add_parser("exec", parents=[target], help="Run a remote command")
    exec_cmd.add_argument("remote_command", nargs="+", help="Command line to run")

    script = subparsers.add_parser(
        "script", parents=[target], help="Upload a local script and run it remotely"
    )
    script.add_argument("script", help="Path to the local script")
    script.add_argument("--interpreter", default="sh", help="Remote interpreter (default: sh)")

    apply_cmd = subparsers.add_parser(
        "apply", parents=[target], help="kubectl apply manifests on the target"
    )
    apply_cmd.add_argument(
        "manifests", nargs="+", help="Manifests: URLs, local files or inline YAML"
    )

    check_binary = subparsers.add_parser(
        "check-binary", parents=[target], help="Check that a binary is in the target's PATH"
    )
    check_binary.add_argument("binary", help="Binary name")

    load_cni = subparsers.add_parser("load-cni", parents=[target], help="Load the CNI driver")
    source = load_cni.add_mutually_exclusive_group()
    source.add_argument(
        "--plugin",
        choices=sorted(CNI_PLUGIN_MANIFESTS),
        default=None,
        help="Known CNI plugin (overrides PROVISIONER_CNI_PLUGIN)",
    )
    source.add_argument("--manifest", default=None, help="CNI manifest URL or local file")

    dashboard = subparsers.add_parser(
        "load-dashboard", parents=[target], help="Load the Kubernetes dashboard"
    )
    dashboard.add_argument("--manifest-url", default=None, help="Dashboard manifest URL")

    download = subparsers.add_parser(
        "download", parents=[target], help="Download a remote text file"
    )
    download.add_argument("remote_path", help="Remote file")
    download.add_argument("local_path", help="Local destination")

    return parser


def build_action(args: argparse.Namespace, settings: ProvisionerSettings) -> Action:
    kubeconfig = str(settings.kubeconfig) if settings.kubeconfig else None

    if args.command == "exec":
        return do_exec(" ".join(args.remote_command))

    if args.command == "script":
        contents = Path(args.script).read_bytes()
        return do_exec_script(contents, interpreter=args.interpreter)

    if args.command == "apply":
        manifests = [new_manifest(m) for m in args.manifests]
        return do_remote_kubectl_apply(
            settings.kubectl, kubeconfig, manifests, retry=settings.retry_policy()
        )

    if args.command == "check-binary":
        return do_if_else(
            check_binary_exists(args.binary),
            do_message_info(f"{args.binary!r} found"),
            ActionError(f"{args.binary!r} not found"),
        )

    if args.command == "load-cni":
        return do_load_cni(
            settings.kubectl,
            kubeconfig,
            plugin=args.plugin or settings.cni_plugin,
            manifest=args.manifest or "",
        )

    if args.command == "load-dashboard":
        if args.manifest_url:
            return do_load_dashboard(
                settings.kubectl, kubeconfig, enabled=True, manifest_url=args.manifest_url
            )
        return do_load_dashboard(settings.kubectl, kubeconfig, enabled=True)

    if args.command == "download":
        return do_download_file(args.remote_path, args.local_path)

    raise ValueError(f"Unknown command: {args.command}")


def build_context(args: argparse.Namespace, settings: ProvisionerSettings) -> Context:
    base = settings.host_config()
    host = HostConfig(
        host=args.host or base.host,
        user=args.user or base.user,
        port=args.port or base.port,
        ssh_extra_args=base.ssh_extra_args,
    )
    transport = SSHTransport(host, command_timeout_seconds=settings.command_timeout_seconds)
    return Context(
        transport=transport,
        use_sudo=args.sudo or settings.use_sudo,
        user_output=StreamOutput(sys.stdout),
        exec_output=LoggerOutput(),
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ProvisionerSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return EXIT_CONFIG_ERROR

    configure_logging(settings.log_level)

    if not (args.host or settings.ssh_host):
        print("No target host: use --host or set PROVISIONER_SSH_HOST", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        action = build_action(args, settings)
    except (ValueError, OSError) as e:
        print(f"Invalid arguments: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        ctx = build_context(args, settings)

        # Leftovers are removed whatever happened to the main action.
        res = apply(do_with_cleanup(do_cleanup_leftovers(), action), ctx)

        if is_fatal(res):
            logger.critical("Internal error", extra={"command": args.command, "error": str(res)})
            print(f"FATAL: {res}", file=sys.stderr)
            return EXIT_FATAL
        if is_error(res):
            logger.error("Command failed", extra={"command": args.command, "error": str(res)})
            print(f"ERROR: {res}", file=sys.stderr)
            return EXIT_ACTION_FAILED
        return EXIT_OK

    except Exception:
        logger.exception("Command failed")
        return EXIT_ACTION_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
