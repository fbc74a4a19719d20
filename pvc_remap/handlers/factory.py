# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import importlib

from pvc_remap import exception
from pvc_remap.handlers import base

SWITCHOVER_HANDLERS = {
    "cnpg": "pvc_remap.handlers.cnpg.CnpgSwitchoverHandler",
    "manual": "pvc_remap.handlers.manual.ManualSwitchoverHandler",
}


def get_switchover_handler(name: str | None, store) -> base.BaseSwitchoverHandler:
    """Get the switchover handler with the given name."""
    if not name:
        raise exception.InvalidInput("No switchover handler specified.")
    if name not in SWITCHOVER_HANDLERS:
        raise exception.InvalidInput("Unsupported switchover handler: %s" % name)

    module_name, class_name = SWITCHOVER_HANDLERS[name].rsplit(".", 1)
    module = importlib.import_module(module_name)
    cls = getattr(module, class_name)
    return cls(store)
