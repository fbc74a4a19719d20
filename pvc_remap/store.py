# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

"""
Kubernetes object store.

A thin wrapper around the Kubernetes API, exposing the operations needed
to remap claims. Missing objects are reported as None, while "already
exists" and "conflict" responses are returned as expected outcomes.
Every other API error is wrapped in a StoreError.
"""

import contextlib
import logging
import threading

import urllib3
from kubernetes import client
from kubernetes import config as kube_config
from kubernetes.client.rest import ApiException

from pvc_remap import config, constants, exception

CONF = config.get_config()
LOG = logging.getLogger()


class CancelToken:
    """Cancellation signal shared by all the store calls of a pass.

    Release actions (e.g. restoring reclaim policies, recreating pods)
    must complete even after cancellation, so they run while shielded.
    """

    def __init__(self):
        self._event = threading.Event()
        self._shield_depth = 0

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self):
        if self._event.is_set() and not self._shield_depth:
            raise exception.Cancelled()

    @contextlib.contextmanager
    def shielded(self):
        self._shield_depth += 1
        try:
            yield
        finally:
            self._shield_depth -= 1


def load_kube_config():
    """Load the Kubernetes client configuration."""
    if CONF.in_cluster:
        kube_config.load_incluster_config()
    else:
        kube_config.load_kube_config(
            config_file=str(CONF.kubeconfig) if CONF.kubeconfig else None,
            context=CONF.kube_context,
        )


def _stripped_for_create(obj):
    """Clear the server populated fields of an object about to be created."""
    obj.metadata.resource_version = None
    obj.metadata.uid = None
    obj.metadata.creation_timestamp = None
    obj.metadata.deletion_timestamp = None
    obj.metadata.deletion_grace_period_seconds = None
    obj.metadata.managed_fields = None
    obj.status = None
    return obj


class KubeObjectStore:
    """Object store backed by the Kubernetes API."""

    def __init__(
        self,
        core_api: client.CoreV1Api | None = None,
        custom_api: client.CustomObjectsApi | None = None,
        cancel_token: CancelToken | None = None,
    ):
        self._core_api = core_api
        self._custom_api = custom_api
        self.cancel_token = cancel_token or CancelToken()

    @property
    def core_api(self) -> client.CoreV1Api:
        if not self._core_api:
            self._core_api = client.CoreV1Api()
        return self._core_api

    @property
    def custom_api(self) -> client.CustomObjectsApi:
        if not self._custom_api:
            self._custom_api = client.CustomObjectsApi()
        return self._custom_api

    def _call(self, operation: str, kind: str, name: str, func, *args, **kwargs):
        self.cancel_token.check()
        LOG.debug("%s %s %s", operation, kind, name)
        try:
            return func(*args, _request_timeout=CONF.request_timeout, **kwargs)
        except urllib3.exceptions.HTTPError as ex:
            # Timeouts and connection failures.
            raise exception.StoreError(
                operation=operation, kind=kind, name=name, reason=str(ex)
            ) from ex

    def _error(self, ex: ApiException, operation: str, kind: str, name: str):
        return exception.StoreError(
            operation=operation, kind=kind, name=name, reason=ex.reason
        )

    def _get(self, kind: str, name: str, func, *args, **kwargs):
        try:
            return self._call("get", kind, name, func, *args, **kwargs)
        except ApiException as ex:
            if ex.status == 404:
                return None
            raise self._error(ex, "get", kind, name) from ex

    def _list(self, kind: str, name: str, func, *args, **kwargs) -> list:
        try:
            return self._call("list", kind, name, func, *args, **kwargs).items
        except ApiException as ex:
            raise self._error(ex, "list", kind, name) from ex

    def _create(self, kind: str, name: str, func, *args, **kwargs):
        try:
            self._call("create", kind, name, func, *args, **kwargs)
        except ApiException as ex:
            if ex.status == 409:
                LOG.debug("%s %s already exists.", kind, name)
                return constants.StoreOutcome.already_exists
            raise self._error(ex, "create", kind, name) from ex
        return constants.StoreOutcome.created

    def _delete(self, kind: str, name: str, func, *args, **kwargs):
        try:
            self._call("delete", kind, name, func, *args, **kwargs)
        except ApiException as ex:
            if ex.status == 409:
                # Failed precondition, the object changed since we've read it.
                raise exception.StoreConflict(
                    operation="delete", kind=kind, name=name
                ) from ex
            if ex.status != 404:
                raise self._error(ex, "delete", kind, name) from ex
            LOG.debug("%s %s already deleted.", kind, name)
        return constants.StoreOutcome.deleted

    def _patch(self, kind: str, name: str, func, *args, **kwargs):
        try:
            self._call("patch", kind, name, func, *args, **kwargs)
        except ApiException as ex:
            if ex.status == 409:
                return constants.StoreOutcome.conflict
            raise self._error(ex, "patch", kind, name) from ex
        return constants.StoreOutcome.patched

    # Claims.
    def get_pvc(
        self, namespace: str, name: str
    ) -> client.V1PersistentVolumeClaim | None:
        return self._get(
            "PVC",
            f"{namespace}/{name}",
            self.core_api.read_namespaced_persistent_volume_claim,
            name,
            namespace,
        )

    def list_pvcs(
        self, namespace: str, label_selector: str | None = None
    ) -> list[client.V1PersistentVolumeClaim]:
        return self._list(
            "PVC",
            f"{namespace}/{label_selector or '*'}",
            self.core_api.list_namespaced_persistent_volume_claim,
            namespace,
            label_selector=label_selector,
        )

    def create_pvc(
        self, pvc: client.V1PersistentVolumeClaim
    ) -> constants.StoreOutcome:
        pvc = _stripped_for_create(pvc)
        return self._create(
            "PVC",
            f"{pvc.metadata.namespace}/{pvc.metadata.name}",
            self.core_api.create_namespaced_persistent_volume_claim,
            pvc.metadata.namespace,
            pvc,
        )

    def delete_pvc(
        self, pvc: client.V1PersistentVolumeClaim
    ) -> constants.StoreOutcome:
        # Preconditions ensure that we're removing the claim that was
        # inspected and not one that got recreated in the meantime.
        body = client.V1DeleteOptions(
            preconditions=client.V1Preconditions(
                uid=pvc.metadata.uid,
                resource_version=pvc.metadata.resource_version,
            )
        )
        return self._delete(
            "PVC",
            f"{pvc.metadata.namespace}/{pvc.metadata.name}",
            self.core_api.delete_namespaced_persistent_volume_claim,
            pvc.metadata.name,
            pvc.metadata.namespace,
            body=body,
        )

    # Volumes.
    def get_pv(self, name: str) -> client.V1PersistentVolume | None:
        return self._get(
            "PV", name, self.core_api.read_persistent_volume, name
        )

    def patch_pv_reclaim_policy(
        self, pv: client.V1PersistentVolume, policy: str
    ) -> constants.StoreOutcome:
        body = {
            "metadata": {"resourceVersion": pv.metadata.resource_version},
            "spec": {"persistentVolumeReclaimPolicy": policy},
        }
        return self._patch(
            "PV",
            pv.metadata.name,
            self.core_api.patch_persistent_volume,
            pv.metadata.name,
            body,
        )

    # Pods.
    def get_pod(self, namespace: str, name: str) -> client.V1Pod | None:
        return self._get(
            "pod",
            f"{namespace}/{name}",
            self.core_api.read_namespaced_pod,
            name,
            namespace,
        )

    def list_pods(
        self, namespace: str, label_selector: str | None = None
    ) -> list[client.V1Pod]:
        return self._list(
            "pod",
            f"{namespace}/{label_selector or '*'}",
            self.core_api.list_namespaced_pod,
            namespace,
            label_selector=label_selector,
        )

    def create_pod(self, pod: client.V1Pod) -> constants.StoreOutcome:
        pod = _stripped_for_create(pod)
        return self._create(
            "pod",
            f"{pod.metadata.namespace}/{pod.metadata.name}",
            self.core_api.create_namespaced_pod,
            pod.metadata.namespace,
            pod,
        )

    def delete_pod(self, pod: client.V1Pod) -> constants.StoreOutcome:
        return self._delete(
            "pod",
            f"{pod.metadata.namespace}/{pod.metadata.name}",
            self.core_api.delete_namespaced_pod,
            pod.metadata.name,
            pod.metadata.namespace,
        )

    # Database clusters.
    def get_cluster(self, namespace: str, name: str) -> dict | None:
        return self._get(
            "cluster",
            f"{namespace}/{name}",
            self.custom_api.get_namespaced_custom_object,
            constants.CLUSTER_API_GROUP,
            constants.CLUSTER_API_VERSION,
            namespace,
            constants.CLUSTER_PLURAL,
            name,
        )

    def patch_cluster_status(
        self, namespace: str, name: str, status: dict
    ) -> constants.StoreOutcome:
        return self._patch(
            "cluster",
            f"{namespace}/{name}",
            self.custom_api.patch_namespaced_custom_object_status,
            constants.CLUSTER_API_GROUP,
            constants.CLUSTER_API_VERSION,
            namespace,
            constants.CLUSTER_PLURAL,
            name,
            {"status": status},
        )
