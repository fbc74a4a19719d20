# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

"""
Remap plan resolver.

Classifies the claims of a cluster into per-instance volume references,
each carrying the current claim name and the name expected under the
configured naming policy. The plan is rebuilt from the live inventory on
every pass, nothing is cached.
"""

import logging

from kubernetes import client

from pvc_remap import config, constants, exception
from pvc_remap.models import InstanceVolumeRef, NamingPolicy

CONF = config.get_config()
LOG = logging.getLogger()

RemapPlan = dict[str, list[InstanceVolumeRef]]


def naming_policy_from_config() -> NamingPolicy:
    return NamingPolicy(
        data_volume_suffix=CONF.data_volume_suffix,
        wal_archive_volume_suffix=CONF.wal_archive_volume_suffix,
    )


def _classify_claim(
    pvc: client.V1PersistentVolumeClaim,
    policy: NamingPolicy,
    instance_label: str,
    role_label: str,
) -> InstanceVolumeRef:
    name = pvc.metadata.name
    labels = pvc.metadata.labels or {}

    instance_name = labels.get(instance_label)
    if not instance_name:
        raise exception.MalformedInventory(
            claim=name, reason=f"missing '{instance_label}' label"
        )
    pvc_role = labels.get(role_label)
    if pvc_role not in constants.PVC_ROLE_TO_KIND:
        raise exception.MalformedInventory(
            claim=name, reason=f"unknown '{role_label}' label: {pvc_role}"
        )
    kind = constants.PVC_ROLE_TO_KIND[pvc_role]
    expected_name = policy.expected_name(instance_name, kind, name)
    # "pg-10" must not be attributed to "pg-1".
    owned = name == instance_name or name.startswith(instance_name + "-")
    if kind != constants.VolumeKind.tablespace:
        owned = owned or name == expected_name
    if not owned:
        raise exception.MalformedInventory(
            claim=name,
            reason=f"name doesn't match instance {instance_name}",
        )

    phase = pvc.status.phase if pvc.status else None
    return InstanceVolumeRef(
        namespace=pvc.metadata.namespace,
        instance_name=instance_name,
        kind=kind,
        current_name=name,
        expected_name=expected_name,
        pv_name=(pvc.spec.volume_name if pvc.spec else None) or None,
        bound=phase == constants.CLAIM_BOUND,
    )


def classify(
    claims: list[client.V1PersistentVolumeClaim],
    policy: NamingPolicy,
    instance_label: str | None = None,
    role_label: str | None = None,
) -> RemapPlan:
    """Group the claims by instance.

    Raises MalformedInventory if any of the claims can't be attributed
    to an instance and volume kind.
    """
    instance_label = instance_label or CONF.instance_label_name
    role_label = role_label or CONF.pvc_role_label_name

    plan: RemapPlan = {}
    for pvc in claims:
        ref = _classify_claim(pvc, policy, instance_label, role_label)
        plan.setdefault(ref.instance_name, []).append(ref)
    return plan


def instances(plan: RemapPlan) -> list[str]:
    return sorted(plan)


def flatten(plan: RemapPlan) -> list[InstanceVolumeRef]:
    return [ref for instance in instances(plan) for ref in plan[instance]]


def for_instance(
    refs: list[InstanceVolumeRef], instance_name: str
) -> list[InstanceVolumeRef]:
    return [ref for ref in refs if ref.instance_name == instance_name]


def remap_required(refs: list[InstanceVolumeRef]) -> list[InstanceVolumeRef]:
    return [ref for ref in refs if ref.remap_required]
