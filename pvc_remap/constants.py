# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import enum

# PersistentVolumeClaim phases.
CLAIM_PENDING = "Pending"
CLAIM_BOUND = "Bound"
CLAIM_LOST = "Lost"

# PersistentVolume reclaim policies.
RECLAIM_RETAIN = "Retain"
RECLAIM_DELETE = "Delete"
RECLAIM_RECYCLE = "Recycle"

# Values of the "cnpg.io/pvcRole" label.
PVC_ROLE_DATA = "PG_DATA"
PVC_ROLE_WAL = "PG_WAL"
PVC_ROLE_TABLESPACE = "PG_TABLESPACE"

# Legacy WAL claim suffix, used when no WAL suffix is configured.
LEGACY_WAL_SUFFIX = "-wal"

CLUSTER_API_GROUP = "postgresql.cnpg.io"
CLUSTER_API_VERSION = "v1"
CLUSTER_PLURAL = "clusters"

PRIMARY_UPDATE_SUPERVISED = "supervised"
PHASE_SWITCHOVER = "Switchover in progress"

SWITCHOVER_REASON_REMAP = "remapping PVCs"


class VolumeKind(str, enum.Enum):
    """Instance volume kinds."""

    data = "data"
    wal = "wal"
    tablespace = "tablespace"


PVC_ROLE_TO_KIND = {
    PVC_ROLE_DATA: VolumeKind.data,
    PVC_ROLE_WAL: VolumeKind.wal,
    PVC_ROLE_TABLESPACE: VolumeKind.tablespace,
}


class StoreOutcome(str, enum.Enum):
    """Expected, non-exceptional object store results."""

    created = "created"
    already_exists = "already-exists"
    patched = "patched"
    conflict = "conflict"
    deleted = "deleted"


class CloneOutcome(str, enum.Enum):
    """Result of cloning a claim under its expected name."""

    not_required = "not-required"
    cloned = "cloned"
    already_migrated = "already-migrated"
