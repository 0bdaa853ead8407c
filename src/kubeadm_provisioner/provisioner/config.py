"""Configuration for the provisioner.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Command line options override the target host settings.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kubeadm_provisioner.provisioner.kubernetes.addons import is_known_cni_plugin
from kubeadm_provisioner.provisioner.transport.ssh_transport import HostConfig
from kubeadm_provisioner.provisioner.workflow.combinators import Retry


class ProvisionerSettings(BaseSettings):
    """Settings for the provisioner.

    Environment variables:
    - PROVISIONER_SSH_HOST, PROVISIONER_SSH_USER, PROVISIONER_SSH_PORT
    - PROVISIONER_SSH_EXTRA_ARGS  (optional)
    - PROVISIONER_USE_SUDO        (optional)
    - PROVISIONER_KUBECTL         (optional)
    - PROVISIONER_KUBECONFIG      (optional)
    - PROVISIONER_CNI_PLUGIN      (optional)
    - PROVISIONER_RETRY_ATTEMPTS, PROVISIONER_RETRY_INTERVAL_SECONDS (optional)
    - PROVISIONER_COMMAND_TIMEOUT_SECONDS (optional)
    - LOG_LEVEL                   (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `ProvisionerSettings(_env_file=path_to_env)`.
    """

    ssh_host: str = Field(
        default="",
        validation_alias="PROVISIONER_SSH_HOST",
        description="Target machine (host name or address)",
    )
    ssh_user: str = Field(
        default="",
        validation_alias="PROVISIONER_SSH_USER",
        description="SSH login on the target (defaults to the ssh client's choice)",
    )
    ssh_port: int = Field(
        default=22,
        ge=1,
        le=65535,
        validation_alias="PROVISIONER_SSH_PORT",
        description="SSH port on the target",
    )
    ssh_extra_args: str = Field(
        default="",
        validation_alias="PROVISIONER_SSH_EXTRA_ARGS",
        description="Extra ssh arguments, e.g. '-o StrictHostKeyChecking=accept-new'",
    )

    use_sudo: bool = Field(
        default=False,
        validation_alias="PROVISIONER_USE_SUDO",
        description="Run remote commands with 'sudo --non-interactive'",
    )

    kubectl: str = Field(
        default="kubectl",
        validation_alias="PROVISIONER_KUBECTL",
        description="kubectl binary on the target",
    )
    kubeconfig: Path | None = Field(
        default=None,
        validation_alias="PROVISIONER_KUBECONFIG",
        description="Local kubeconfig uploaded when the target has no admin.conf",
    )
    cni_plugin: str = Field(
        default="",
        validation_alias="PROVISIONER_CNI_PLUGIN",
        description="CNI plugin loaded by 'load-cni' when no manifest is given",
    )

    retry_attempts: int = Field(
        default=3,
        ge=1,
        validation_alias="PROVISIONER_RETRY_ATTEMPTS",
        description="Attempts for retried remote steps",
    )
    retry_interval_seconds: float = Field(
        default=5.0,
        ge=0.0,
        validation_alias="PROVISIONER_RETRY_INTERVAL_SECONDS",
        description="Pause between attempts of retried remote steps",
    )
    command_timeout_seconds: float | None = Field(
        default=None,
        gt=0.0,
        validation_alias="PROVISIONER_COMMAND_TIMEOUT_SECONDS",
        description="Kill remote commands running longer than this (no limit by default)",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_kubeconfig_and_cni(self) -> ProvisionerSettings:
        if self.kubeconfig is not None and not self.kubeconfig.is_file():
            raise ValueError(f"PROVISIONER_KUBECONFIG does not exist: {self.kubeconfig}")
        if self.cni_plugin and not is_known_cni_plugin(self.cni_plugin):
            raise ValueError(f"PROVISIONER_CNI_PLUGIN is not a known CNI plugin: {self.cni_plugin}")
        return self

    def host_config(self) -> HostConfig:
        return HostConfig(
            host=self.ssh_host,
            user=self.ssh_user,
            port=self.ssh_port,
            ssh_extra_args=self.ssh_extra_args,
        )

    def retry_policy(self) -> Retry:
        return Retry(times=self.retry_attempts, interval_seconds=self.retry_interval_seconds)
