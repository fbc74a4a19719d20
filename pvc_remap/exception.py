# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0


class PvcRemapException(Exception):
    msg_fmt = "An exception has been encountered."

    def __init__(self, message=None, **kwargs):
        self.kwargs = kwargs
        if not message:
            message = self.msg_fmt % kwargs
        super(PvcRemapException, self).__init__(message)


class Invalid(PvcRemapException):
    msg_fmt = "Invalid data."


class InvalidInput(Invalid):
    msg_fmt = "Invalid input provided."


class NotFound(PvcRemapException):
    msg_fmt = "Resource not found."


class MalformedInventory(Invalid):
    msg_fmt = "Unable to classify claim %(claim)s: %(reason)s"


class UnsafeDeletion(PvcRemapException):
    msg_fmt = "Refusing to remove bound PVC %(namespace)s/%(name)s."


class SourceMissing(NotFound):
    msg_fmt = "Source PVC %(namespace)s/%(name)s not found, unable to clone it."


class StaleResourceError(PvcRemapException):
    msg_fmt = "Old PVC %(namespace)s/%(name)s should be cleaned but wasn't."


class TargetMismatch(PvcRemapException):
    msg_fmt = (
        "PVC %(namespace)s/%(name)s already exists but does not match "
        "its source %(source)s: %(reason)s"
    )


class StoreError(PvcRemapException):
    msg_fmt = "Failed to %(operation)s %(kind)s %(name)s: %(reason)s"


class StoreConflict(StoreError):
    msg_fmt = "Conflict while trying to %(operation)s %(kind)s %(name)s."


class Cancelled(PvcRemapException):
    msg_fmt = "Operation cancelled."


class SwitchoverFailed(PvcRemapException):
    msg_fmt = "Primary pod %(pod)s is not migrated to new storage."


class RemapFailed(PvcRemapException):
    msg_fmt = "Remapping failed for instance %(instance)s: %(reason)s"
