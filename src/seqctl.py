#!/usr/bin/env python3
"""
CLI tool for the Seq operator.

Provides a plan/apply interface for managing Seq resources declared in
manifest files, with recorded state kept in a local state file.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import click
import yaml
from tabulate import tabulate

from config import CLIConfig, ConfigError
from manifest import ManifestError, ResourceManifest, load_manifests
from plugins.actions.base import ActionPlugin
from plugins.base import ActionContext, calculate_spec_hash
from plugins.registry import get_registry, register_builtin_plugins
from resources.api_key import ResourceError
from state import StateEntry, StateStore

logger = logging.getLogger(__name__)

DEFAULT_PLUGIN = "seq_api_key"
SENSITIVE_ATTRIBUTES = {"token"}


def _run(coro):
    """Run a coroutine, turning operator errors into CLI errors."""
    try:
        return asyncio.run(coro)
    except (ConfigError, ResourceError) as e:
        raise click.ClickException(f"{e.summary}: {e.detail}")
    except ValueError as e:
        raise click.ClickException(str(e))


def _load_state(obj: Dict[str, Any]) -> StateStore:
    try:
        return StateStore.load(obj["state_file"])
    except ValueError as e:
        raise click.ClickException(str(e))


async def _get_plugin(obj: Dict[str, Any], name: str) -> ActionPlugin:
    return await get_registry().get_action_plugin(name, obj["seq"])


def _mask(attributes: Dict[str, Any], show_sensitive: bool = False) -> Dict[str, Any]:
    if show_sensitive:
        return dict(attributes)
    return {
        key: ("(sensitive)" if key in SENSITIVE_ATTRIBUTES and value else value)
        for key, value in attributes.items()
    }


def _changed_attributes(before: Dict[str, Any], after: Dict[str, Any]) -> List[str]:
    return sorted(
        key
        for key in set(before) | set(after)
        if key not in SENSITIVE_ATTRIBUTES and before.get(key) != after.get(key)
    )


async def _refresh(
    plugin: ActionPlugin, store: StateStore, name: str
) -> Tuple[Optional[StateEntry], List[str]]:
    """
    Refresh one recorded resource, dropping it when it no longer exists.

    Returns:
        The refreshed entry (None when gone) and the attributes that changed.
    """
    entry = store.get(name)
    if entry is None:
        return None, []

    ctx = ActionContext(resource_name=name, spec={}, state=entry.attributes)
    workspace = await plugin.prepare(ctx)
    try:
        refreshed = await plugin.get_state(ctx, workspace)
    finally:
        await plugin.cleanup(workspace)

    if refreshed is None:
        logger.info(f"Resource {name} no longer exists, removing from state")
        store.remove(name)
        store.save()
        return None, []

    changed = _changed_attributes(entry.attributes, refreshed)
    entry.attributes = refreshed
    store.put(entry)
    store.save()
    return entry, changed


async def _plan_resource(
    obj: Dict[str, Any], store: StateStore, manifest: ResourceManifest, apply: bool
) -> List[str]:
    """Refresh, plan and optionally apply one manifest. Returns a table row."""
    plugin = await _get_plugin(obj, manifest.action_plugin)

    is_valid, error = await plugin.validate_spec(manifest.spec)
    if not is_valid:
        raise click.ClickException(f"{manifest.name}: invalid spec: {error}")

    entry, _ = await _refresh(plugin, store, manifest.name)

    ctx = ActionContext(
        resource_name=manifest.name,
        spec=manifest.spec,
        state=entry.attributes if entry else {},
    )
    workspace = await plugin.prepare(ctx)
    try:
        plan = await plugin.plan(ctx, workspace)
        if not plan.has_changes:
            return [manifest.name, "no-op", plan.plan_output]
        if not apply:
            action = "update" if entry else "create"
            return [manifest.name, action, plan.plan_output]

        result = await plugin.apply(ctx, workspace)
    finally:
        await plugin.cleanup(workspace)

    if not result.success:
        raise click.ClickException(f"{manifest.name}: {result.error_message}")

    store.put(
        StateEntry(
            name=manifest.name,
            action_plugin=manifest.action_plugin,
            attributes=result.outputs,
            spec_hash=calculate_spec_hash(manifest.spec),
        )
    )
    store.save()
    action = "created" if result.resources_created else "updated"
    return [manifest.name, action, result.apply_output]


def _load_manifests_or_fail(filename: str) -> List[ResourceManifest]:
    try:
        return load_manifests(filename)
    except ManifestError as e:
        raise click.ClickException(str(e))


@click.group()
@click.option("--server-url", help="Seq server URL [env: SEQ_SERVER_URL]")
@click.option("--api-key", help="Seq API key [env: SEQ_API_KEY]")
@click.option(
    "--insecure-skip-verify/--verify-tls",
    default=None,
    help="Skip TLS certificate verification [env: SEQ_INSECURE_SKIP_VERIFY]",
)
@click.option(
    "--timeout-seconds",
    type=int,
    default=None,
    help="HTTP timeout in seconds [env: SEQ_TIMEOUT_SECONDS, default: 30]",
)
@click.option("--state-file", help="State file path [env: SEQ_STATE_FILE]")
@click.option("--log-level", help="Log level [env: LOG_LEVEL]")
@click.pass_context
def cli(
    ctx,
    server_url,
    api_key,
    insecure_skip_verify,
    timeout_seconds,
    state_file,
    log_level,
):
    """Seq operator CLI - declarative management of Seq API keys"""
    cli_config = CLIConfig.from_env()
    logging.basicConfig(
        level=(log_level or cli_config.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    register_builtin_plugins()

    ctx.ensure_object(dict)
    ctx.obj["state_file"] = state_file or cli_config.state_file
    ctx.obj["seq"] = {
        "server_url": server_url,
        "api_key": api_key,
        "insecure_skip_verify": insecure_skip_verify,
        "timeout_seconds": timeout_seconds,
    }


@cli.command()
@click.argument("filename", type=click.Path(exists=True))
@click.pass_obj
def plan(obj, filename):
    """Show the changes apply would make for a manifest file"""
    manifests = _load_manifests_or_fail(filename)
    store = _load_state(obj)

    async def run():
        return [await _plan_resource(obj, store, m, apply=False) for m in manifests]

    rows = _run(run())
    click.echo(tabulate(rows, headers=["Name", "Action", "Details"], tablefmt="grid"))


@cli.command()
@click.argument("filename", type=click.Path(exists=True))
@click.pass_obj
def apply(obj, filename):
    """Create or update the resources in a manifest file"""
    manifests = _load_manifests_or_fail(filename)
    store = _load_state(obj)

    async def run():
        return [await _plan_resource(obj, store, m, apply=True) for m in manifests]

    rows = _run(run())
    click.echo(tabulate(rows, headers=["Name", "Result", "Details"], tablefmt="grid"))


@cli.command()
@click.pass_obj
def refresh(obj):
    """Refresh recorded state from Seq, dropping resources deleted remotely"""
    store = _load_state(obj)

    async def run():
        rows = []
        for name in store.names():
            plugin = await _get_plugin(obj, store.get(name).action_plugin)
            entry, changed = await _refresh(plugin, store, name)
            if entry is None:
                rows.append([name, "removed (no longer exists)"])
            elif changed:
                rows.append([name, "changed: " + ", ".join(changed)])
            else:
                rows.append([name, "unchanged"])
        return rows

    rows = _run(run())
    if not rows:
        click.echo("No resources in state")
        return
    click.echo(tabulate(rows, headers=["Name", "Refresh"], tablefmt="grid"))


@cli.command()
@click.pass_obj
def drift(obj):
    """Report drift between recorded state and Seq without changing state"""
    store = _load_state(obj)

    async def run():
        rows = []
        for name in store.names():
            entry = store.get(name)
            plugin = await _get_plugin(obj, entry.action_plugin)
            ctx = ActionContext(resource_name=name, spec={}, state=entry.attributes)
            workspace = await plugin.prepare(ctx)
            try:
                result = await plugin.detect_drift(ctx, workspace)
            finally:
                await plugin.cleanup(workspace)
            if result.error_message:
                rows.append([name, "error", result.error_message])
            elif result.has_drift:
                rows.append([name, "drifted", result.drift_details])
            else:
                rows.append([name, "in sync", ""])
        return rows

    rows = _run(run())
    if not rows:
        click.echo("No resources in state")
        return
    click.echo(tabulate(rows, headers=["Name", "Drift", "Details"], tablefmt="grid"))


@cli.command()
@click.argument("name")
@click.confirmation_option(prompt="Are you sure you want to delete this resource?")
@click.pass_obj
def destroy(obj, name):
    """Delete a resource in Seq and remove it from state"""
    store = _load_state(obj)
    entry = store.get(name)
    if entry is None:
        raise click.ClickException(f"Resource {name} is not in state")

    async def run():
        plugin = await _get_plugin(obj, entry.action_plugin)
        ctx = ActionContext(resource_name=name, spec={}, state=entry.attributes)
        workspace = await plugin.prepare(ctx)
        try:
            return await plugin.destroy(ctx, workspace)
        finally:
            await plugin.cleanup(workspace)

    result = _run(run())
    if not result.success:
        raise click.ClickException(f"{name}: {result.error_message}")

    store.remove(name)
    store.save()
    click.echo(result.apply_output)


@cli.command(name="import")
@click.argument("name")
@click.argument("identifier")
@click.option("--plugin", "action_plugin", default=DEFAULT_PLUGIN, show_default=True)
@click.pass_obj
def import_(obj, name, identifier, action_plugin):
    """Adopt an existing Seq resource into state by its id"""
    store = _load_state(obj)
    if store.get(name) is not None:
        raise click.ClickException(f"Resource {name} is already in state")

    async def run():
        plugin = await _get_plugin(obj, action_plugin)
        return await plugin.import_resource(identifier)

    attributes = _run(run())
    if attributes is None:
        raise click.ClickException(f"Cannot import {name}: {identifier} not found")

    store.put(
        StateEntry(name=name, action_plugin=action_plugin, attributes=attributes)
    )
    store.save()
    click.echo(f"Imported {identifier} as {name}")


@cli.command()
@click.option(
    "--output", "-o", type=click.Choice(["table", "json", "yaml"]), default="table"
)
@click.option("--show-sensitive", is_flag=True, help="Show sensitive values")
@click.pass_obj
def show(obj, output, show_sensitive):
    """Show recorded state"""
    store = _load_state(obj)
    resources = {
        name: _mask(store.get(name).attributes, show_sensitive)
        for name in store.names()
    }

    if output == "json":
        click.echo(json.dumps(resources, indent=2))
    elif output == "yaml":
        click.echo(yaml.dump(resources, default_flow_style=False))
    elif not resources:
        click.echo("No resources in state")
    else:
        rows = [
            [
                name,
                attrs.get("id"),
                attrs.get("title"),
                attrs.get("owner_id"),
                ", ".join(attrs.get("permissions") or []),
                attrs.get("token"),
            ]
            for name, attrs in resources.items()
        ]
        headers = ["Name", "ID", "Title", "Owner", "Permissions", "Token"]
        click.echo(tabulate(rows, headers=headers, tablefmt="grid"))


@cli.command()
@click.argument("name")
@click.pass_obj
def outputs(obj, name):
    """Show non-sensitive outputs for a resource"""
    store = _load_state(obj)
    entry = store.get(name)
    if entry is None:
        raise click.ClickException(f"Resource {name} is not in state")

    async def run():
        plugin = await _get_plugin(obj, entry.action_plugin)
        ctx = ActionContext(resource_name=name, spec={}, state=entry.attributes)
        workspace = await plugin.prepare(ctx)
        return await plugin.get_outputs(ctx, workspace)

    click.echo(json.dumps(_run(run()), indent=2))


@cli.command()
@click.pass_obj
def health(obj):
    """Show the Seq server health"""

    async def run():
        plugin = await _get_plugin(obj, DEFAULT_PLUGIN)
        return await plugin.health()

    click.echo(json.dumps(_run(run()), indent=2))


if __name__ == "__main__":
    cli()
