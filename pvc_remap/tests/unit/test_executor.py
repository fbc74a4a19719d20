# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import random

import pytest

from pvc_remap import constants, exception
from pvc_remap.executor import RemapExecutor
from pvc_remap.models import InstanceVolumeRef
from pvc_remap.tests.unit import fakes

NS = fakes.NAMESPACE


def _ref(current="pg-2", expected="pg-2-data2", pv_name="pv-pg-2"):
    return InstanceVolumeRef(
        namespace=NS,
        instance_name="pg-2",
        kind=constants.VolumeKind.data,
        current_name=current,
        expected_name=expected,
        pv_name=pv_name,
        bound=True,
    )


@pytest.fixture
def executor(fake_store):
    return RemapExecutor(fake_store)


def test_safe_delete_missing(fake_store, executor):
    assert executor.safe_delete_if_unbound(NS, "missing")
    assert fake_store.mutations == []


def test_safe_delete_bound(fake_store, executor):
    fake_store.add_pvc(fakes.make_pvc("pg-2", "pg-2", bound=True))

    with pytest.raises(exception.UnsafeDeletion):
        executor.safe_delete_if_unbound(NS, "pg-2")
    assert "pg-2" in fake_store.claim_names()


def test_safe_delete_unbound(fake_store, executor):
    fake_store.add_pvc(fakes.make_pvc("pg-2", "pg-2", bound=False))

    assert executor.safe_delete_if_unbound(NS, "pg-2")
    assert "pg-2" not in fake_store.claim_names()


def test_safe_delete_concurrently_bound(fake_store, executor):
    fake_store.add_pvc(fakes.make_pvc("pg-2", "pg-2", bound=False))
    # The claim gets bound between the check and the deletion.
    fake_store.hooks[("delete", "pvc", "pg-2")] = lambda: fake_store.set_pvc_phase(
        NS, "pg-2", constants.CLAIM_BOUND
    )

    assert not executor.safe_delete_if_unbound(NS, "pg-2")
    assert "pg-2" in fake_store.claim_names()


@pytest.mark.parametrize("seed", range(20))
def test_safe_delete_never_removes_bound_claims(fake_store, executor, seed):
    rand = random.Random(seed)
    phases = {
        f"pvc-{idx}": rand.choice(
            [constants.CLAIM_BOUND, constants.CLAIM_PENDING, constants.CLAIM_LOST]
        )
        for idx in range(10)
    }
    for name, phase in phases.items():
        pvc = fakes.make_pvc(name, "pvc")
        pvc.status.phase = phase
        fake_store.add_pvc(pvc)

    for name in phases:
        try:
            executor.safe_delete_if_unbound(NS, name)
        except exception.UnsafeDeletion:
            pass

    for name, phase in phases.items():
        assert (name in fake_store.claim_names()) == (phase == constants.CLAIM_BOUND)


def test_clone_not_required(fake_store, executor):
    ref = _ref(expected="pg-2")

    assert executor.clone_under_new_identity(ref) == constants.CloneOutcome.not_required
    assert fake_store.mutations == []


def test_clone_source_missing(executor):
    with pytest.raises(exception.SourceMissing):
        executor.clone_under_new_identity(_ref())


def test_clone(fake_store, executor):
    source = fake_store.add_pvc(fakes.make_pvc("pg-2", "pg-2", pv_name="pv-pg-2"))

    outcome = executor.clone_under_new_identity(_ref())

    assert outcome == constants.CloneOutcome.cloned
    clone = fake_store.pvcs[(NS, "pg-2-data2")]
    assert clone.spec.volume_name == "pv-pg-2"
    assert clone.spec.storage_class_name == fakes.STORAGE_CLASS
    assert clone.metadata.labels == source.metadata.labels
    assert clone.metadata.uid != source.metadata.uid
    assert clone.status is None
    # The source is left untouched.
    assert fake_store.pvcs[(NS, "pg-2")].status.phase == constants.CLAIM_BOUND


def test_clone_replaces_unbound_leftover(fake_store, executor):
    fake_store.add_pvc(fakes.make_pvc("pg-2", "pg-2", pv_name="pv-pg-2"))
    fake_store.add_pvc(fakes.make_pvc("pg-2-data2", "pg-2", bound=False))

    outcome = executor.clone_under_new_identity(_ref())

    assert outcome == constants.CloneOutcome.cloned
    assert fake_store.mutations == [
        ("delete", "pvc", "pg-2-data2"),
        ("create", "pvc", "pg-2-data2"),
    ]


def test_clone_already_migrated(fake_store, executor):
    fake_store.add_pvc(fakes.make_pvc("pg-2", "pg-2", pv_name="pv-pg-2"))
    fake_store.add_pvc(fakes.make_pvc("pg-2-data2", "pg-2", pv_name="pv-pg-2"))

    outcome = executor.clone_under_new_identity(_ref())

    assert outcome == constants.CloneOutcome.already_migrated
    assert fake_store.mutations == []


def test_clone_target_in_use(fake_store, executor):
    fake_store.add_pvc(fakes.make_pvc("pg-2", "pg-2", pv_name="pv-pg-2"))
    fake_store.add_pvc(fakes.make_pvc("pg-2-data2", "pg-2", bound=False))

    outcome = executor.clone_under_new_identity(_ref(), target_in_use=True)

    assert outcome == constants.CloneOutcome.already_migrated
    assert fake_store.mutations == []


def test_clone_target_mismatch(conf, fake_store, executor):
    fake_store.add_pvc(fakes.make_pvc("pg-2", "pg-2", pv_name="pv-pg-2"))
    fake_store.add_pvc(fakes.make_pvc("pg-2-data2", "pg-2", pv_name="pv-other"))

    with pytest.raises(exception.TargetMismatch):
        executor.clone_under_new_identity(_ref())

    conf.verify_existing_target = False
    outcome = executor.clone_under_new_identity(_ref())
    assert outcome == constants.CloneOutcome.already_migrated


def test_clone_created_concurrently(fake_store, executor):
    fake_store.add_pvc(fakes.make_pvc("pg-2", "pg-2", pv_name="pv-pg-2"))

    def _create_target():
        fake_store.add_pvc(fakes.make_pvc("pg-2-data2", "pg-2", pv_name="pv-pg-2"))

    fake_store.hooks[("create", "pvc", "pg-2-data2")] = _create_target

    outcome = executor.clone_under_new_identity(_ref())

    assert outcome == constants.CloneOutcome.already_migrated


def test_set_reclaim_policy(fake_store, executor):
    fake_store.add_pv(fakes.make_pv("pv-1", constants.RECLAIM_DELETE))

    orig_policy = executor.set_reclaim_policy("pv-1", constants.RECLAIM_RETAIN)

    assert orig_policy == constants.RECLAIM_DELETE
    assert fake_store.reclaim_policies() == {"pv-1": constants.RECLAIM_RETAIN}


def test_set_reclaim_policy_unchanged(fake_store, executor):
    fake_store.add_pv(fakes.make_pv("pv-1", constants.RECLAIM_RETAIN))

    assert executor.set_reclaim_policy("pv-1", constants.RECLAIM_RETAIN) is None
    assert executor.set_reclaim_policy(None, constants.RECLAIM_RETAIN) is None
    assert executor.set_reclaim_policy("", constants.RECLAIM_RETAIN) is None
    assert fake_store.mutations == []


def test_set_reclaim_policy_errors(fake_store, executor):
    with pytest.raises(exception.NotFound):
        executor.set_reclaim_policy("pv-1", constants.RECLAIM_RETAIN)

    fake_store.add_pv(fakes.make_pv("pv-1", constants.RECLAIM_DELETE))
    fake_store.hooks[("patch", "pv", "pv-1")] = lambda: constants.StoreOutcome.conflict
    with pytest.raises(exception.StoreConflict):
        executor.set_reclaim_policy("pv-1", constants.RECLAIM_RETAIN)


def test_retained_volume(fake_store, executor):
    fake_store.add_pv(fakes.make_pv("pv-1", constants.RECLAIM_DELETE))

    with executor.retained_volume("pv-1"):
        assert fake_store.reclaim_policies() == {"pv-1": constants.RECLAIM_RETAIN}
    assert fake_store.reclaim_policies() == {"pv-1": constants.RECLAIM_DELETE}

    with pytest.raises(exception.UnsafeDeletion):
        with executor.retained_volume("pv-1"):
            raise exception.UnsafeDeletion(namespace=NS, name="pg-2")
    assert fake_store.reclaim_policies() == {"pv-1": constants.RECLAIM_DELETE}


def test_retained_volume_restore_failure(fake_store, executor):
    fake_store.add_pv(fakes.make_pv("pv-1", constants.RECLAIM_DELETE))

    def _fail_restore():
        raise exception.StoreError(
            operation="patch", kind="PV", name="pv-1", reason="unavailable"
        )

    # The original error is preserved.
    with pytest.raises(exception.UnsafeDeletion):
        with executor.retained_volume("pv-1"):
            fake_store.hooks[("patch", "pv", "pv-1")] = _fail_restore
            raise exception.UnsafeDeletion(namespace=NS, name="pg-2")

    fake_store.hooks.clear()
    fake_store.pvs["pv-1"].spec.persistent_volume_reclaim_policy = (
        constants.RECLAIM_DELETE
    )
    with pytest.raises(exception.StoreError):
        with executor.retained_volume("pv-1"):
            fake_store.hooks[("patch", "pv", "pv-1")] = _fail_restore
