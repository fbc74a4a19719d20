# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging

import click

from pvc_remap.cmd import common

LOG = logging.getLogger()


@click.command("reconcile")
@click.option("--namespace", "-n", required=True, help="The cluster namespace.")
@click.option("--cluster", "cluster_name", required=True, help="The cluster name.")
@click.option(
    "--dry-run",
    is_flag=True,
    help="Only log the steps to be executed, skipping remappings.",
)
def reconcile(namespace: str, cluster_name: str, dry_run: bool):
    """Remap the PVCs of every cluster instance.

    Replicas are remapped first, after which a switchover is requested
    for the primary. Run the command again once the switchover completes.
    """
    mgr = common.get_manager(handle_signals=True)
    mgr.run_for_cluster(namespace, cluster_name, dry_run=dry_run)


@click.command("remap-instance")
@click.option("--namespace", "-n", required=True, help="The cluster namespace.")
@click.option("--cluster", "cluster_name", required=True, help="The cluster name.")
@click.argument("instance")
def remap_instance(namespace: str, cluster_name: str, instance: str):
    """Remap the PVCs of a single replica instance."""
    mgr = common.get_manager(handle_signals=True)
    if not mgr.remap_instance(namespace, cluster_name, instance):
        raise click.ClickException(
            f"Instance {instance} is the primary, a switchover is required first."
        )
