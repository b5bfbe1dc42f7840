"""ab CLI - Main Entry Point.

Commands:
    build        - Build every group for production and write the manifest
    resolve      - Show the resolved dependency order of groups
    render       - Print output references (or tags) for groups
    clear-cache  - Delete stale compiled files
    inspect      - Show a group definition or the production manifest
"""

import logging
import sys
import time
from typing import Optional

import click

from . import __version__, __cli_name__
from ..config import AssetBuilderConfig, ConfigLoader
from ..core import AssetBuilder
from ..faults import Fault
from ..manifest import RenderManifest
from ..registry import AssetKind, GroupRegistry
from .utils.colors import (
    success, error, info, warning, dim, bold,
    section, kv, bullet, table,
    _CHECK, _CROSS,
)

KIND_CHOICE = click.Choice([kind.value for kind in AssetKind])


def _config(ctx: click.Context) -> AssetBuilderConfig:
    """Load (once) the typed configuration for this invocation."""
    if "config" not in ctx.obj:
        loader = ConfigLoader.load(
            paths=list(ctx.obj["config_paths"]) or None,
            env_file=ctx.obj["env_file"],
        )
        ctx.obj["config"] = loader.get_asset_config()
    return ctx.obj["config"]


def _builder(ctx: click.Context, *, from_config: bool = False) -> AssetBuilder:
    config = _config(ctx)
    registry = GroupRegistry.from_config(config.groups) if from_config else None
    return AssetBuilder(config, registry=registry)


def _fail(message: str, fault: Fault) -> None:
    error(f"  {_CROSS} {message}: {fault}")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name=__cli_name__)
@click.option("--config", "-c", "config_paths", multiple=True, help="Config file (YAML or JSON); repeatable")
@click.option("--env-file", type=click.Path(), default=None, help="Load AB_* settings from a .env file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output")
@click.pass_context
def cli(ctx, config_paths: tuple, env_file: Optional[str], verbose: bool, quiet: bool):
    """Build, inspect and maintain compiled asset groups.

    \b
    Quick start:
      ab resolve js app
      ab render css --tags
      ab build
    """
    ctx.ensure_object(dict)
    ctx.obj["config_paths"] = config_paths
    ctx.obj["env_file"] = env_file
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# ============================================================================
# Commands
# ============================================================================


@cli.command("build")
@click.pass_context
def build(ctx):
    """
    Build every group for production.

    Compiles and minifies all groups, writes the manifest to
    <cache_dir>/asset.cache and removes stale cache files.
    """
    try:
        builder = _builder(ctx, from_config=True)
        manifest = builder.build_production()
    except Fault as fault:
        _fail("Build failed", fault)

    if not ctx.obj["quiet"]:
        for kind in AssetKind:
            for name, entry in manifest.entries(kind).items():
                mark = _CHECK if entry.enabled else "-"
                dim(f"  {mark} {kind.value}:{name} ({len(entry.compiled_files)} files)")
    success(f"  {_CHECK} Manifest written to {builder.config.manifest_path}")


@cli.command("resolve")
@click.argument("kind", type=KIND_CHOICE)
@click.argument("names", nargs=-1, required=True)
@click.option("--force", is_flag=True, help="Include disabled top-level groups")
@click.pass_context
def resolve(ctx, kind: str, names: tuple, force: bool):
    """
    Print groups in dependency order, one per line.

    Examples:
      ab resolve js app
      ab resolve css theme print --force
    """
    try:
        resolved = _builder(ctx).resolve(kind, list(names), force=force)
    except Fault as fault:
        _fail("Resolution failed", fault)

    for name in resolved:
        click.echo(name)


@cli.command("render")
@click.argument("kind", type=KIND_CHOICE)
@click.argument("names", nargs=-1)
@click.option("--force", is_flag=True, help="Render disabled groups too")
@click.option("--tags", is_flag=True, help="Print HTML tags instead of references")
@click.pass_context
def render(ctx, kind: str, names: tuple, force: bool, tags: bool):
    """
    Print output references for groups (all groups when none given).

    Builds out-of-date groups in development mode.
    """
    try:
        builder = _builder(ctx)
        groups = list(names) or None
        if tags:
            output = builder.render_js(groups, force) if kind == "js" else builder.render_css(groups, force)
            click.echo(output, nl=False)
        else:
            for ref in builder.render(kind, groups, force):
                click.echo(ref)
    except Fault as fault:
        _fail("Render failed", fault)


@cli.command("clear-cache")
@click.option("--kind", type=KIND_CHOICE, default=None, help="Only clear files of this kind")
@click.option("--older-than", type=float, default=None, help="Only clear files older than SECONDS")
@click.pass_context
def clear_cache(ctx, kind: Optional[str], older_than: Optional[float]):
    """Delete compiled files from the cache directory."""
    before = time.time() - older_than if older_than is not None else None
    try:
        builder = _builder(ctx, from_config=True)
        if kind == "js":
            removed = builder.clear_js_cache(before)
        elif kind == "css":
            removed = builder.clear_css_cache(before)
        else:
            removed = builder.clear_cache(before)
    except Fault as fault:
        _fail("Cache clear failed", fault)

    if not ctx.obj["quiet"]:
        for name in removed:
            bullet(name)
    success(f"  {_CHECK} Removed {len(removed)} file(s)")


@cli.group("inspect")
def inspect():
    """Inspect group definitions and the production manifest."""


@inspect.command("group")
@click.argument("kind", type=KIND_CHOICE)
@click.argument("name")
@click.pass_context
def inspect_group(ctx, kind: str, name: str):
    """Show one configured group."""
    try:
        group = GroupRegistry.from_config(_config(ctx).groups).require(kind, name)
    except Fault as fault:
        _fail("Inspection failed", fault)

    section(f"{kind}:{name}")
    kv("enabled", "yes" if group.enabled else "no")
    kv("deps", ", ".join(group.deps) or "-")
    if group.less:
        kv("less", ", ".join(group.less))
    kv("files", len(group.files))
    for ref in group.files:
        bullet(ref)


@inspect.command("manifest")
@click.pass_context
def inspect_manifest(ctx):
    """Show the production manifest."""
    try:
        config = _config(ctx)
        manifest = RenderManifest.load(config.manifest_path)
    except Fault as fault:
        _fail("Inspection failed", fault)

    section("Manifest")
    kv("path", config.manifest_path)
    kv("built at", manifest.built_at or "unknown")
    rows = [
        (kind.value, name, "yes" if entry.enabled else "no", str(len(entry.compiled_files)))
        for kind in AssetKind
        for name, entry in manifest.entries(kind).items()
    ]
    if not rows:
        warning("  Manifest contains no groups")
        return
    table(["Kind", "Group", "Enabled", "Files"], rows)
    if ctx.obj["verbose"]:
        click.echo()
        info(bold("Files"))
        for ref in manifest.files():
            bullet(ref)


def main():
    """Entry point for `ab` command."""
    cli(obj={})


if __name__ == "__main__":
    main()
