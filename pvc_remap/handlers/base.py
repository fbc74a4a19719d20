# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import abc

from kubernetes import client

from pvc_remap.models import ClusterInfo, InstanceStatus


class BaseSwitchoverHandler(abc.ABC):
    """Base switchover class.

    Switchover handlers move the primary role away from an instance,
    allowing it to be remapped as a replica.
    """

    def __init__(self, store):
        self.store = store

    @abc.abstractmethod
    def promote(
        self,
        cluster: ClusterInfo,
        statuses: list[InstanceStatus],
        primary_pod: client.V1Pod,
        force_failover: bool,
        force_switchover: bool,
        reason: str,
    ) -> bool:
        """Move the primary role away from the specified pod.

        :param cluster: the database cluster
        :param statuses: the instance statuses, ordered by preference
        :param primary_pod: the pod of the current primary instance
        :param force_failover: fall back to replicas that aren't ready
               if there's no ready replica
        :param force_switchover: switch over even if the cluster expects
               primary updates to be supervised
        :param reason: the reason of the switchover

        Returns True if the switchover was initiated.
        """
        pass

    def _get_candidates(
        self,
        statuses: list[InstanceStatus],
        primary_pod: client.V1Pod,
        force_failover: bool,
    ) -> list[InstanceStatus]:
        replicas = [
            status
            for status in statuses
            if not status.is_primary and status.pod_name != primary_pod.metadata.name
        ]
        ready = [status for status in replicas if status.is_ready]
        if ready or not force_failover:
            return ready
        return replicas
