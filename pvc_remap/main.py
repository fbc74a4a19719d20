# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging
import sys
from pathlib import Path

import click

from pvc_remap import config, log
from pvc_remap.cmd import plan as plan_cmd
from pvc_remap.cmd import reconcile as reconcile_cmd

LOG = logging.getLogger()

# Update the help options to allow -h in addition to --help for
# triggering the help for various commands
CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group("init", context_settings=CONTEXT_SETTINGS)
@click.option("--config", "-c", "config_path", envvar="PVC_REMAP_CONFIG")
@click.option("--debug", is_flag=True, help="Debug logging.")
@click.pass_context
def cli(ctx, config_path: str, debug: bool):
    """Rename the PVCs of database cluster instances.

    The PVCs are remapped according to the configured volume suffixes,
    one instance at a time, leaving the primary instance last.
    """
    if config_path:
        config.load_config(Path(config_path))

    log.configure_logging(debug=debug)

    if config_path:
        LOG.debug("Loaded config: %s", config_path)


def main():
    """Main entry point."""
    LOG.debug("command: %s", " ".join(sys.argv))

    cli.add_command(plan_cmd.show_plan)
    cli.add_command(reconcile_cmd.reconcile)
    cli.add_command(reconcile_cmd.remap_instance)

    cli()


if __name__ == "__main__":
    main()
