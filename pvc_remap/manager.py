# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging

from kubernetes import client

from pvc_remap import config, constants, exception, resolver
from pvc_remap.handlers import base, factory
from pvc_remap.models import ClusterInfo, InstanceStatus
from pvc_remap.orchestrator import InstanceRemapper, is_primary
from pvc_remap.store import KubeObjectStore

CONFIG = config.get_config()
LOG = logging.getLogger()


def _is_pod_ready(pod: client.V1Pod) -> bool:
    for condition in (pod.status.conditions if pod.status else None) or []:
        if condition.type == "Ready":
            return condition.status == "True"
    return False


class RemapManager:
    def __init__(
        self,
        store=None,
        switchover_handler: base.BaseSwitchoverHandler | None = None,
        remapper: InstanceRemapper | None = None,
    ):
        self.store = store or KubeObjectStore()
        self._switchover_handler = switchover_handler
        self.remapper = remapper or InstanceRemapper(self.store)

    @property
    def switchover_handler(self) -> base.BaseSwitchoverHandler:
        if not self._switchover_handler:
            self._switchover_handler = factory.get_switchover_handler(
                CONFIG.switchover_handler, self.store
            )
        return self._switchover_handler

    def get_cluster(self, namespace: str, name: str) -> ClusterInfo:
        resource = self.store.get_cluster(namespace, name)
        if not resource:
            raise exception.NotFound(f"Cluster not found: {namespace}/{name}")
        return ClusterInfo.from_resource(resource)

    def _cluster_selector(self, cluster_name: str) -> str:
        return f"{CONFIG.cluster_label_name}={cluster_name}"

    def get_claims(
        self, namespace: str, cluster_name: str
    ) -> list[client.V1PersistentVolumeClaim]:
        return self.store.list_pvcs(
            namespace, label_selector=self._cluster_selector(cluster_name)
        )

    def get_plan(self, namespace: str, cluster_name: str) -> resolver.RemapPlan:
        """Classify the claims of the specified cluster."""
        return resolver.classify(
            self.get_claims(namespace, cluster_name),
            resolver.naming_policy_from_config(),
        )

    def get_instance_statuses(
        self, namespace: str, cluster_name: str
    ) -> list[InstanceStatus]:
        """Get the instance statuses, the primary first."""
        pods = self.store.list_pods(
            namespace, label_selector=self._cluster_selector(cluster_name)
        )
        statuses = [
            InstanceStatus(
                pod_name=pod.metadata.name,
                is_primary=is_primary(pod),
                is_ready=_is_pod_ready(pod),
            )
            for pod in pods
        ]
        statuses.sort(
            key=lambda status: (
                not status.is_primary,
                not status.is_ready,
                status.pod_name,
            )
        )
        return statuses

    def _get_pod(self, namespace: str, name: str) -> client.V1Pod:
        pod = self.store.get_pod(namespace, name)
        if pod is None:
            raise exception.NotFound(f"Pod not found: {namespace}/{name}")
        return pod

    def run_for_cluster(self, namespace: str, cluster_name: str, dry_run: bool = False):
        """Run a remapping pass for the specified cluster."""
        cluster = self.get_cluster(namespace, cluster_name)
        self.reconcile_remapping(
            cluster,
            self.get_claims(namespace, cluster_name),
            self.get_instance_statuses(namespace, cluster_name),
            dry_run=dry_run,
        )

    def remap_instance(
        self, namespace: str, cluster_name: str, instance_name: str
    ) -> bool:
        """Remap the claims of a single instance.

        Returns False if the instance is the primary.
        """
        plan = self.get_plan(namespace, cluster_name)
        if instance_name not in plan:
            raise exception.NotFound(
                f"No PVCs found for instance {namespace}/{instance_name}"
            )
        pod = self._get_pod(namespace, instance_name)
        return self.remapper.remap(pod, plan[instance_name])

    def reconcile_remapping(
        self,
        cluster: ClusterInfo,
        claims: list[client.V1PersistentVolumeClaim],
        instance_statuses: list[InstanceStatus],
        dry_run: bool = False,
    ):
        """Remap the claims of every cluster instance.

        Replicas are remapped first. The primary is remapped only after
        a switchover, once it becomes a replica itself. The instance
        statuses are read again before the switchover if any replica pod
        got recreated in the meantime.
        """
        try:
            plan = resolver.classify(claims, resolver.naming_policy_from_config())
        except exception.MalformedInventory as ex:
            LOG.error(
                "Unexpected PVCs linked to cluster %s, auto remapping disabled: %s",
                cluster.name,
                ex,
            )
            return

        LOG.info(
            "Cluster %s PVC info: %s PVCs, instances: %s",
            cluster.name,
            len(resolver.flatten(plan)),
            resolver.instances(plan),
        )

        primary_pod: client.V1Pod | None = None
        pods_recreated = False
        failures: dict[str, exception.PvcRemapException] = {}
        for instance_name in resolver.instances(plan):
            to_remap = resolver.remap_required(plan[instance_name])
            LOG.info(
                "Instance %s: %s PVCs, %s to remap",
                instance_name,
                len(plan[instance_name]),
                len(to_remap),
            )
            if not to_remap:
                continue

            try:
                pod = self._get_pod(cluster.namespace, instance_name)
                if dry_run:
                    self._log_dry_run(pod, to_remap)
                    done = not is_primary(pod)
                else:
                    LOG.info("Remapping is required, instance: %s", instance_name)
                    done = self.remapper.remap(pod, to_remap)
            except exception.Cancelled:
                raise
            except exception.PvcRemapException as ex:
                # Unrelated instances are still remapped, the switchover
                # is skipped though.
                LOG.error("Remapping failed for instance %s: %s", instance_name, ex)
                failures[instance_name] = ex
                continue

            if not done:
                primary_pod = pod
            elif not dry_run:
                pods_recreated = True

        if failures:
            instance_name, ex = next(iter(failures.items()))
            raise exception.RemapFailed(instance=instance_name, reason=ex) from ex

        if primary_pod is None:
            return
        if dry_run:
            LOG.info(
                "DRY-RUN: switching over primary %s (%s)",
                primary_pod.metadata.name,
                CONFIG.switchover_handler,
            )
            return

        try:
            if pods_recreated:
                instance_statuses = self.get_instance_statuses(
                    cluster.namespace, cluster.name
                )
            done = self.switchover_handler.promote(
                cluster,
                instance_statuses,
                primary_pod,
                force_failover=True,
                force_switchover=True,
                reason=constants.SWITCHOVER_REASON_REMAP,
            )
        except exception.PvcRemapException as ex:
            raise exception.RemapFailed(
                instance=primary_pod.metadata.name, reason=ex
            ) from ex
        if not done:
            raise exception.SwitchoverFailed(pod=primary_pod.metadata.name)

    def _log_dry_run(self, pod: client.V1Pod, to_remap):
        if is_primary(pod):
            LOG.info(
                "DRY-RUN: deferring primary instance %s until switchover.",
                pod.metadata.name,
            )
            return
        for ref in to_remap:
            LOG.info(
                "DRY-RUN: remapping %s PVC %s -> %s (PV %s)",
                ref.kind.value,
                ref.current_name,
                ref.expected_name,
                ref.pv_name,
            )
