# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

"""
Instance claim remapping.

Remapping the claims of an instance consists of the following steps:

1. Clone every claim under its expected name.
2. Retain the backing volumes until the remapping completes.
3. Recreate the instance pod, pointing it at the new claims. Pod volumes
   are immutable, so the pod has to be deleted first.
4. Remove the old claims.

Each step may be interrupted and is resumed by the next pass. Already
cloned claims are left in place and pods that no longer reference the
old claims aren't recreated again.
"""

import contextlib
import copy
import logging
import time

from kubernetes import client

from pvc_remap import config, constants, exception, resolver
from pvc_remap.executor import RemapExecutor
from pvc_remap.models import InstanceVolumeRef

CONF = config.get_config()
LOG = logging.getLogger()


def is_primary(pod: client.V1Pod) -> bool:
    labels = pod.metadata.labels or {}
    for label_name in CONF.role_label_names:
        if label_name in labels:
            return labels[label_name] == CONF.primary_role_value
    return False


def pod_claim_names(pod: client.V1Pod) -> set[str]:
    return {
        volume.persistent_volume_claim.claim_name
        for volume in pod.spec.volumes or []
        if volume.persistent_volume_claim
    }


def rewrite_pod_claims(
    pod: client.V1Pod, to_remap: list[InstanceVolumeRef]
) -> client.V1Pod:
    """Get a copy of the pod that uses the expected claim names."""
    renames = {ref.current_name: ref.expected_name for ref in to_remap}
    new_pod = copy.deepcopy(pod)
    for volume in new_pod.spec.volumes or []:
        pvc_source = volume.persistent_volume_claim
        if pvc_source and pvc_source.claim_name in renames:
            pvc_source.claim_name = renames[pvc_source.claim_name]
    return new_pod


class InstanceRemapper:
    def __init__(self, store, executor: RemapExecutor | None = None):
        self.store = store
        self.executor = executor or RemapExecutor(store)

    def remap(self, pod: client.V1Pod, refs: list[InstanceVolumeRef]) -> bool:
        """Remap the claims used by the specified pod.

        Returns False if the pod belongs to the primary instance, which
        can only be remapped after a switchover. Errors are propagated,
        the whole operation can be retried afterwards.
        """
        instance_name = pod.metadata.name
        to_remap = resolver.remap_required(resolver.for_instance(refs, instance_name))
        if not to_remap:
            LOG.debug("No PVCs to remap for instance %s.", instance_name)
            return True
        if is_primary(pod):
            LOG.info(
                "Instance %s is the primary, deferring its remapping.",
                instance_name,
            )
            return False

        claim_names = pod_claim_names(pod)
        with contextlib.ExitStack() as stack:
            retained: set[str] = set()
            for ref in to_remap:
                outcome = self.executor.clone_under_new_identity(
                    ref, target_in_use=ref.expected_name in claim_names
                )
                LOG.debug("Clone %s: %s", ref.current_name, outcome.value)
                if ref.pv_name and ref.pv_name not in retained:
                    stack.enter_context(self.executor.retained_volume(ref.pv_name))
                    retained.add(ref.pv_name)

            if claim_names & {ref.current_name for ref in to_remap}:
                new_pod = rewrite_pod_claims(pod, to_remap)
                LOG.info("Recreating pod %s using the new PVCs.", instance_name)
                self.store.delete_pod(pod)
                stack.enter_context(self._recreated_on_exit(new_pod))
            else:
                LOG.info(
                    "Pod %s no longer uses the old PVCs, skipping recreation.",
                    instance_name,
                )

            for ref in to_remap:
                if not self.executor.safe_delete_if_unbound(
                    ref.namespace, ref.current_name
                ):
                    raise exception.StaleResourceError(
                        namespace=ref.namespace, name=ref.current_name
                    )

        LOG.info("Finished remapping instance %s.", instance_name)
        return True

    @contextlib.contextmanager
    def _recreated_on_exit(self, pod: client.V1Pod):
        # Leaving the instance without a pod is worse than leaving stale
        # claims behind, so the pod is recreated even if the cleanup fails.
        try:
            yield
        except BaseException:
            self._recreate_pod(pod, reraise=False)
            raise
        self._recreate_pod(pod)

    def _recreate_pod(self, pod: client.V1Pod, reraise: bool = True):
        name = pod.metadata.name
        deadline = time.monotonic() + CONF.pod_recreate_timeout
        try:
            with self.store.cancel_token.shielded():
                while True:
                    outcome = self.store.create_pod(copy.deepcopy(pod))
                    if outcome == constants.StoreOutcome.created:
                        LOG.info("Recreated pod %s.", name)
                        return
                    if time.monotonic() >= deadline:
                        raise exception.StoreError(
                            operation="recreate",
                            kind="pod",
                            name=name,
                            reason="the previous pod is still terminating",
                        )
                    LOG.debug("Waiting for the previous pod %s to go away.", name)
                    time.sleep(CONF.pod_recreate_interval)
        except Exception as ex:
            if reraise:
                raise
            LOG.error("Unable to recreate pod %s: %r", name, ex)
