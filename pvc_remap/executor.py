# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

"""
Claim remapping primitives.

Every primitive is idempotent and may be safely rerun from any point
of a partially completed remapping.
"""

import contextlib
import copy
import logging

from kubernetes import client

from pvc_remap import config, constants, exception
from pvc_remap.models import InstanceVolumeRef

CONF = config.get_config()
LOG = logging.getLogger()


def _is_bound(pvc: client.V1PersistentVolumeClaim) -> bool:
    return bool(pvc.status and pvc.status.phase == constants.CLAIM_BOUND)


class RemapExecutor:
    def __init__(self, store):
        self.store = store

    def safe_delete_if_unbound(self, namespace: str, name: str) -> bool:
        """Delete the specified claim unless it's bound.

        Bound claims may hold the only copy of committed data, so they're
        never removed. Returns True if the claim is gone and False if it
        changed before it could be removed (e.g. it was concurrently bound).
        """
        pvc = self.store.get_pvc(namespace, name)
        if pvc is None:
            LOG.debug("PVC %s/%s already gone.", namespace, name)
            return True
        if _is_bound(pvc):
            raise exception.UnsafeDeletion(namespace=namespace, name=name)

        LOG.info("Deleting unbound PVC %s/%s", namespace, name)
        try:
            self.store.delete_pvc(pvc)
        except exception.StoreConflict:
            LOG.warning("PVC %s/%s changed, not removing it.", namespace, name)
            return False
        return True

    def _verify_existing_target(
        self,
        source: client.V1PersistentVolumeClaim,
        target: client.V1PersistentVolumeClaim,
    ):
        if not CONF.verify_existing_target:
            return
        name = source.metadata.name
        namespace = source.metadata.namespace
        expected_name = target.metadata.name
        source_pv = source.spec.volume_name
        target_pv = target.spec.volume_name
        if source_pv and target_pv and source_pv != target_pv:
            raise exception.TargetMismatch(
                namespace=namespace,
                name=expected_name,
                source=name,
                reason=f"volume {target_pv} != {source_pv}",
            )
        if source.spec.storage_class_name != target.spec.storage_class_name:
            raise exception.TargetMismatch(
                namespace=namespace,
                name=expected_name,
                source=name,
                reason=(
                    f"storage class {target.spec.storage_class_name} != "
                    f"{source.spec.storage_class_name}"
                ),
            )

    def _already_migrated(
        self,
        source: client.V1PersistentVolumeClaim,
        ref: InstanceVolumeRef,
    ) -> constants.CloneOutcome:
        target = self.store.get_pvc(ref.namespace, ref.expected_name)
        if target is None:
            raise exception.TargetMismatch(
                namespace=ref.namespace,
                name=ref.expected_name,
                source=ref.current_name,
                reason="target vanished",
            )
        self._verify_existing_target(source, target)
        LOG.info(
            "PVC %s/%s already exists, considering %s migrated.",
            ref.namespace,
            ref.expected_name,
            ref.current_name,
        )
        return constants.CloneOutcome.already_migrated

    def clone_under_new_identity(
        self, ref: InstanceVolumeRef, target_in_use: bool = False
    ) -> constants.CloneOutcome:
        """Create a copy of the claim using its expected name.

        An existing target claim that's bound or used by the instance is
        left in place, assuming that it was created by a previous
        run.
        """
        if not ref.remap_required:
            return constants.CloneOutcome.not_required

        source = self.store.get_pvc(ref.namespace, ref.current_name)
        if source is None:
            raise exception.SourceMissing(
                namespace=ref.namespace, name=ref.current_name
            )

        if target_in_use:
            return self._already_migrated(source, ref)
        try:
            gone = self.safe_delete_if_unbound(ref.namespace, ref.expected_name)
        except exception.UnsafeDeletion:
            gone = False
        if not gone:
            return self._already_migrated(source, ref)

        new_pvc = copy.deepcopy(source)
        new_pvc.metadata.name = ref.expected_name
        LOG.info(
            "Cloning PVC %s/%s as %s",
            ref.namespace,
            ref.current_name,
            ref.expected_name,
        )
        outcome = self.store.create_pvc(new_pvc)
        if outcome == constants.StoreOutcome.already_exists:
            return self._already_migrated(source, ref)
        return constants.CloneOutcome.cloned

    def set_reclaim_policy(self, pv_name: str | None, policy: str) -> str | None:
        """Set the reclaim policy of a volume.

        Returns the previous policy or None if the volume was left
        untouched.
        """
        if not pv_name:
            return None

        pv = self.store.get_pv(pv_name)
        if pv is None:
            raise exception.NotFound(f"PV not found: {pv_name}")
        orig_policy = pv.spec.persistent_volume_reclaim_policy
        if orig_policy == policy:
            return None

        LOG.info(
            "Changing PV %s reclaim policy: %s -> %s", pv_name, orig_policy, policy
        )
        outcome = self.store.patch_pv_reclaim_policy(pv, policy)
        if outcome == constants.StoreOutcome.conflict:
            raise exception.StoreConflict(operation="patch", kind="PV", name=pv_name)
        return orig_policy

    @contextlib.contextmanager
    def retained_volume(self, pv_name: str | None):
        """Keep the volume retained for the duration of the context.

        The original reclaim policy is restored on exit, regardless of
        the outcome.
        """
        orig_policy = self.set_reclaim_policy(pv_name, constants.RECLAIM_RETAIN)
        try:
            yield
        except BaseException:
            if orig_policy:
                self._restore_reclaim_policy(pv_name, orig_policy, reraise=False)
            raise
        if orig_policy:
            self._restore_reclaim_policy(pv_name, orig_policy)

    def _restore_reclaim_policy(self, pv_name, policy, reraise=True):
        try:
            with self.store.cancel_token.shielded():
                self.set_reclaim_policy(pv_name, policy)
        except Exception as ex:
            # Don't mask the error that closed the protection window.
            if reraise:
                raise
            LOG.error(
                "Unable to restore PV %s reclaim policy (%s): %r",
                pv_name,
                policy,
                ex,
            )
