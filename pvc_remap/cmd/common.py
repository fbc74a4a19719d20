# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging
import signal

from pvc_remap import manager, store

LOG = logging.getLogger()


def get_manager(handle_signals: bool = False) -> manager.RemapManager:
    """Build a remap manager connected to the configured cluster.

    If requested, SIGTERM and SIGINT cancel the pending API requests.
    Pods and reclaim policies are still restored before exiting.
    """
    store.load_kube_config()
    cancel_token = store.CancelToken()

    if handle_signals:

        def _cancel(signum, frame):
            LOG.warning(
                "Received signal %s, cancelling. Pending cleanups will "
                "still be performed.",
                signum,
            )
            cancel_token.cancel()

        signal.signal(signal.SIGTERM, _cancel)
        signal.signal(signal.SIGINT, _cancel)

    return manager.RemapManager(store=store.KubeObjectStore(cancel_token=cancel_token))
