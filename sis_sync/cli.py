"""
CLI commands for SIS reconciliation runs.

Registered on the Flask CLI as ``flask sync ...`` by :func:`sis_sync.init_sync`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import click
from flask.cli import ScriptInfo

from sis_sync.adapters.powerschool import (
    SisAdapterConfigError,
    SnapshotLoadError,
    check_sis_adapter_readiness,
    create_query_pager,
    load_snapshot,
)
from sis_sync.errors import SisSyncError
from sis_sync.mapping import MappingLoadError, get_active_mapping
from sis_sync.models import DatasetLoadError, load_dataset
from sis_sync.reconcile.keys import STUDENT_MATCH_FIELDS
from sis_sync.service import fetch_snapshot_from_config, run_reconciliation, student_key_from_config


def is_sync_enabled(app) -> bool:
    return bool(app.config.get("SIS_SYNC_ENABLED", True))


def _load_app(ctx):
    info = ctx.ensure_object(ScriptInfo)
    return info.load_app()


@click.group(name="sync", invoke_without_command=True)
@click.pass_context
def sync_cli(ctx):
    """
    SIS reconciliation commands.

    Shows adapter readiness when invoked without a subcommand.
    """
    app = _load_app(ctx)
    if not is_sync_enabled(app):
        raise click.ClickException("SIS sync is disabled via SIS_SYNC_ENABLED=false.")
    if ctx.invoked_subcommand is None:
        readiness = check_sis_adapter_readiness(app.config)
        click.echo(f"SIS adapter status: {readiness.status}")
        for message in readiness.messages():
            click.echo(f"  - {message}")


def get_disabled_sync_group() -> click.Group:
    """
    Return a minimal command group that informs the operator sync is disabled.
    """

    @click.group(name="sync", invoke_without_command=True)
    def disabled_group():
        raise click.ClickException("SIS sync commands are unavailable because SIS_SYNC_ENABLED=false.")

    return disabled_group


@sync_cli.command("readiness")
@click.option("--strict", is_flag=True, help="Exit with an error when the adapter is not ready.")
@click.pass_context
def sync_readiness(ctx, strict: bool):
    """Report whether the SIS adapter is configured and its mapping loads."""
    app = _load_app(ctx)
    readiness = check_sis_adapter_readiness(app.config)
    click.echo(json.dumps(readiness.as_dict(), indent=2, sort_keys=True))
    if strict and readiness.status != "ready":
        raise click.ClickException(f"SIS adapter not ready (status={readiness.status}).")


@sync_cli.command("count")
@click.argument("query")
@click.pass_context
def sync_count(ctx, query: str):
    """Print the record count for a named query (or a mapped entity name)."""
    app = _load_app(ctx)
    try:
        with app.app_context():
            mapping = get_active_mapping()
        if query in mapping.entities:
            query = mapping.spec_for(query).query
        pager = create_query_pager(app.config)
        try:
            total = pager.count(query)
        finally:
            pager.client.session.close()
    except (MappingLoadError, SisAdapterConfigError, SisSyncError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"{query}: {total}")


@sync_cli.command("fetch")
@click.option(
    "--output",
    "output_path",
    required=True,
    type=click.Path(path_type=Path, dir_okay=False),
    help="Where to write the raw snapshot JSON.",
)
@click.pass_context
def sync_fetch(ctx, output_path: Path):
    """Fetch every remote collection and persist the raw snapshot."""
    app = _load_app(ctx)
    try:
        with app.app_context():
            mapping = get_active_mapping()
        snapshot = fetch_snapshot_from_config(app.config, mapping)
    except (MappingLoadError, SisAdapterConfigError, SisSyncError) as exc:
        raise click.ClickException(str(exc)) from exc
    snapshot.save(output_path)
    counts = snapshot.counts()
    app.logger.info("Remote snapshot written", extra={"snapshot_path": str(output_path), "counts": counts})
    click.echo(f"Snapshot written to {output_path}")
    for name, count in counts.items():
        click.echo(f"  {name:<13}: {count}")


@sync_cli.command("reconcile")
@click.option(
    "--local",
    "local_path",
    required=True,
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    help="Normalized local dataset (JSON).",
)
@click.option(
    "--remote",
    "remote_path",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    help="Previously fetched snapshot; the SIS is queried when omitted.",
)
@click.option(
    "--output",
    "output_path",
    type=click.Path(path_type=Path, dir_okay=False),
    help="Write the full change report JSON to this file.",
)
@click.option(
    "--student-key",
    type=click.Choice(STUDENT_MATCH_FIELDS),
    help="Student match field (defaults to SIS_STUDENT_MATCH_FIELD).",
)
@click.option("--json", "emit_json", is_flag=True, help="Print the full change report JSON.")
@click.pass_context
def sync_reconcile(
    ctx,
    local_path: Path,
    remote_path: Optional[Path],
    output_path: Optional[Path],
    student_key: Optional[str],
    emit_json: bool,
):
    """Compare a local dataset with the SIS and report the differences."""
    app = _load_app(ctx)
    try:
        local = load_dataset(local_path)
        with app.app_context():
            mapping = get_active_mapping()
        if remote_path is not None:
            remote = load_snapshot(remote_path, mapping)
        else:
            remote = fetch_snapshot_from_config(app.config, mapping)
        report = run_reconciliation(
            local,
            remote,
            student_key=student_key_from_config(app.config, student_key),
            student_number_numeric=bool(app.config.get("SIS_STUDENT_NUMBER_NUMERIC", True)),
        )
    except (DatasetLoadError, SnapshotLoadError, MappingLoadError, SisAdapterConfigError, SisSyncError) as exc:
        raise click.ClickException(str(exc)) from exc

    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(report.to_json(), encoding="utf-8")
    for line in report.summary_lines():
        click.echo(line)
    if output_path is not None:
        click.echo(f"Report written to {output_path}")
    if emit_json:
        click.echo(report.to_json())
