# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import datetime
import logging

from kubernetes import client

from pvc_remap import constants
from pvc_remap.handlers import base
from pvc_remap.models import ClusterInfo, InstanceStatus

LOG = logging.getLogger()


class CnpgSwitchoverHandler(base.BaseSwitchoverHandler):
    """Request a switchover through the Cluster status subresource.

    This is what "kubectl cnpg promote" does, the operator takes care of
    demoting the current primary and promoting the target.
    """

    def promote(
        self,
        cluster: ClusterInfo,
        statuses: list[InstanceStatus],
        primary_pod: client.V1Pod,
        force_failover: bool,
        force_switchover: bool,
        reason: str,
    ) -> bool:
        """Move the primary role away from the specified pod."""
        if cluster.switchover_in_progress:
            LOG.info(
                "Switchover already in progress for cluster %s: %s -> %s",
                cluster.name,
                cluster.current_primary,
                cluster.target_primary,
            )
            return True

        if (
            cluster.primary_update_strategy == constants.PRIMARY_UPDATE_SUPERVISED
            and not force_switchover
        ):
            LOG.info(
                "Cluster %s uses supervised primary updates, waiting for "
                "a manual switchover.",
                cluster.name,
            )
            return False

        candidates = self._get_candidates(statuses, primary_pod, force_failover)
        if not candidates:
            LOG.warning(
                "No replica available to replace primary %s of cluster %s.",
                primary_pod.metadata.name,
                cluster.name,
            )
            return False

        target = candidates[0].pod_name
        LOG.info(
            "Requesting switchover of cluster %s: %s -> %s (%s)",
            cluster.name,
            primary_pod.metadata.name,
            target,
            reason,
        )
        outcome = self.store.patch_cluster_status(
            cluster.namespace,
            cluster.name,
            {
                "targetPrimary": target,
                "targetPrimaryTimestamp": datetime.datetime.now(
                    datetime.timezone.utc
                ).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
                "phase": constants.PHASE_SWITCHOVER,
                "phaseReason": reason,
            },
        )
        if outcome == constants.StoreOutcome.conflict:
            LOG.warning("Cluster %s changed, retrying switchover later.", cluster.name)
            return False
        return True
