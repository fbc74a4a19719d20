# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import pydantic

from pvc_remap import constants


class NamingPolicy(pydantic.BaseModel):
    """Volume suffixes used to build the expected claim names."""

    data_volume_suffix: str = ""
    wal_archive_volume_suffix: str = ""

    def expected_name(
        self,
        instance_name: str,
        kind: constants.VolumeKind,
        current_name: str,
    ) -> str:
        """Get the claim name expected under this policy."""
        if kind == constants.VolumeKind.data:
            return instance_name + self.data_volume_suffix
        if kind == constants.VolumeKind.wal:
            return instance_name + (
                self.wal_archive_volume_suffix or constants.LEGACY_WAL_SUFFIX
            )
        # Tablespace claims are never renamed.
        return current_name


class InstanceVolumeRef(pydantic.BaseModel):
    """A claim used by an instance, along with its expected identity.

    Refs are recomputed from the live claim inventory on every pass and
    are never persisted.
    """

    namespace: str
    instance_name: str
    kind: constants.VolumeKind
    current_name: str
    expected_name: str
    # The name of the backing PersistentVolume, if the claim is bound.
    pv_name: str | None = None
    bound: bool = False

    @property
    def remap_required(self) -> bool:
        return self.current_name != self.expected_name


class InstanceStatus(pydantic.BaseModel):
    """Instance status, passed to the switchover workflow."""

    pod_name: str
    is_primary: bool = False
    is_ready: bool = False


class ClusterInfo(pydantic.BaseModel):
    """The relevant fields of a database cluster resource."""

    name: str
    namespace: str
    current_primary: str | None = None
    target_primary: str | None = None
    primary_update_strategy: str | None = None

    @property
    def switchover_in_progress(self) -> bool:
        return bool(
            self.target_primary
            and self.current_primary
            and self.target_primary != self.current_primary
        )

    @classmethod
    def from_resource(cls, resource: dict) -> "ClusterInfo":
        """Build the cluster info out of a Cluster custom resource."""
        metadata = resource.get("metadata") or {}
        spec = resource.get("spec") or {}
        status = resource.get("status") or {}
        return cls(
            name=metadata["name"],
            namespace=metadata["namespace"],
            current_primary=status.get("currentPrimary"),
            target_primary=status.get("targetPrimary"),
            primary_update_strategy=spec.get("primaryUpdateStrategy"),
        )
