# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

from pathlib import Path

import pydantic
import pytest

from pvc_remap import config


def test_load_config(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(
        "log_level: debug\n"
        "kubeconfig: /etc/kube/config\n"
        "data_volume_suffix: -data2\n"
        "wal_archive_volume_suffix: -wal2\n"
        "role_label_names: [cnpg.io/instanceRole]\n"
        "switchover_handler: manual\n"
    )
    cfg = config.PvcRemapConfig()

    cfg.load_config(cfg_path)

    assert cfg.log_level == config.LogLevel.debug
    assert cfg.kubeconfig == Path("/etc/kube/config")
    assert cfg.data_volume_suffix == "-data2"
    assert cfg.wal_archive_volume_suffix == "-wal2"
    assert cfg.role_label_names == ["cnpg.io/instanceRole"]
    assert cfg.switchover_handler == "manual"
    # Defaults are preserved.
    assert cfg.primary_role_value == "primary"
    assert cfg.verify_existing_target


def test_load_empty_config(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("")
    cfg = config.PvcRemapConfig()

    cfg.load_config(cfg_path)

    assert cfg == config.PvcRemapConfig()


def test_load_invalid_config(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("log_level: verbose\n")

    with pytest.raises(pydantic.ValidationError):
        config.PvcRemapConfig().load_config(cfg_path)


def test_get_config():
    assert config.get_config() is config.get_config()
