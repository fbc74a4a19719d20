# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

from unittest import mock

import pytest

from pvc_remap import config
from pvc_remap.tests.unit import fakes


@pytest.fixture
def conf(monkeypatch):
    """The global config, using the new volume suffixes.

    Changes are reverted after each test.
    """
    cfg = config.get_config()
    monkeypatch.setattr(cfg, "data_volume_suffix", "-data2")
    monkeypatch.setattr(cfg, "wal_archive_volume_suffix", "-wal2")
    monkeypatch.setattr(cfg, "verify_existing_target", True)
    monkeypatch.setattr(cfg, "pod_recreate_timeout", 10)
    monkeypatch.setattr(cfg, "pod_recreate_interval", 0)
    return cfg


@pytest.fixture
def fake_store():
    return fakes.FakeObjectStore()


@pytest.fixture(autouse=True)
def no_sleep():
    with mock.patch("time.sleep"):
        yield
