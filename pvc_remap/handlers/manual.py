# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging

from kubernetes import client

from pvc_remap.handlers import base
from pvc_remap.models import ClusterInfo, InstanceStatus

LOG = logging.getLogger()


class ManualSwitchoverHandler(base.BaseSwitchoverHandler):
    """Leave the switchover to the operator."""

    def promote(
        self,
        cluster: ClusterInfo,
        statuses: list[InstanceStatus],
        primary_pod: client.V1Pod,
        force_failover: bool,
        force_switchover: bool,
        reason: str,
    ) -> bool:
        candidates = self._get_candidates(statuses, primary_pod, force_failover)
        LOG.warning(
            "Primary %s of cluster %s must be switched over manually (%s). "
            "Candidates: %s",
            primary_pod.metadata.name,
            cluster.name,
            reason,
            [candidate.pod_name for candidate in candidates],
        )
        return False
