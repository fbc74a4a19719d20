# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import json

import click
import prettytable

from pvc_remap import resolver
from pvc_remap.cmd import common
from pvc_remap.models import InstanceVolumeRef


@click.command("plan")
@click.option("--namespace", "-n", required=True, help="The cluster namespace.")
@click.option("--cluster", "cluster_name", required=True, help="The cluster name.")
@click.option("--instance", help="Filter by instance name.")
@click.option(
    "--pending", is_flag=True, help="Only show the PVCs that need to be remapped."
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["json", "table"]),
    default="table",
    help="Set the output format.",
)
def show_plan(
    namespace: str,
    cluster_name: str,
    instance: str,
    pending: bool,
    output_format: str,
):
    """Show the cluster PVCs and their expected names."""
    mgr = common.get_manager()
    refs = resolver.flatten(mgr.get_plan(namespace, cluster_name))
    if instance:
        refs = resolver.for_instance(refs, instance)
    if pending:
        refs = resolver.remap_required(refs)

    if output_format == "table":
        _table_format(refs)
    else:
        _json_format(refs)


def _table_format(refs: list[InstanceVolumeRef]):
    table = prettytable.PrettyTable()
    table.title = "PVCs"
    table.field_names = [
        "Instance",
        "Kind",
        "Current name",
        "Expected name",
        "PV",
        "Bound",
        "Remap required",
    ]
    for ref in refs:
        table.add_row(
            [
                ref.instance_name,
                ref.kind.value,
                ref.current_name,
                ref.expected_name,
                ref.pv_name or "",
                ref.bound,
                ref.remap_required,
            ]
        )
    print(table)


def _json_format(refs: list[InstanceVolumeRef]):
    ref_dict_list = [
        {**ref.model_dump(mode="json"), "remap_required": ref.remap_required}
        for ref in refs
    ]
    print(json.dumps(ref_dict_list))
