# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel


class LogLevel(str, Enum):
    """Python log level."""

    debug = "debug"
    info = "info"
    warning = "warning"
    error = "error"


class PvcRemapConfig(BaseModel):
    """pvc-remap configuration."""

    log_level: LogLevel = LogLevel.info
    log_dir: Path | None = None
    # Whether to use console logging.
    log_console: bool = True

    # Kubernetes access. If "in_cluster" is set, the service account
    # credentials of the pod are used and the kubeconfig is ignored.
    kubeconfig: Path | None = None
    kube_context: str | None = None
    in_cluster: bool = False
    # Timeout (seconds) applied to every Kubernetes API request.
    request_timeout: int = 30

    # The naming policy. An empty suffix selects the legacy claim name,
    # "<instance>" for data volumes and "<instance>-wal" for WAL volumes.
    data_volume_suffix: str = ""
    wal_archive_volume_suffix: str = ""

    # Pod and claim labels set by the operator.
    role_label_names: list[str] = ["cnpg.io/instanceRole", "role"]
    primary_role_value: str = "primary"
    cluster_label_name: str = "cnpg.io/cluster"
    instance_label_name: str = "cnpg.io/instanceName"
    pvc_role_label_name: str = "cnpg.io/pvcRole"

    # A deleted pod may take a while to terminate, we'll keep trying to
    # recreate it until this timeout expires.
    pod_recreate_timeout: int = 300
    pod_recreate_interval: int = 2

    # When the expected claim already exists and is in use, ensure that it
    # points to the same volume and storage class as the claim it replaces
    # before considering the volume migrated.
    verify_existing_target: bool = True

    # The workflow used to move the primary role away from the primary
    # instance once the replicas are migrated: "cnpg" or "manual".
    switchover_handler: str = "cnpg"

    def load_config(self, path: Path):
        """Load the configuration from the specified file."""
        with path.open() as f:
            cfg_yaml = yaml.safe_load(f) or {}

            updated = self.model_validate({**self.model_dump(), **cfg_yaml})
            self.__dict__.update(updated.__dict__)


_CONFIG: PvcRemapConfig | None = None


def get_config() -> PvcRemapConfig:
    """Retrieve the global config object."""
    global _CONFIG
    if not _CONFIG:
        _CONFIG = PvcRemapConfig()
    return _CONFIG


def load_config(path: Path):
    """Load the configuration from the specified file."""
    get_config().load_config(path)
