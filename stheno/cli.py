"""Command-line interface for Stheno.

Commands:
- build: Build the site into the output directory.
- tree: Show the node tree of the site.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from . import __version__

LOG_FORMAT = "%(levelname)s | %(name)s | %(message)s"


@click.group()
@click.version_option(version=__version__, prog_name="stheno")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
def cli(verbose: bool):
    """Stheno static site generator."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft content")
def build(drafts: bool):
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import BuildError, build_site

    try:
        result = build_site(project_root, include_drafts=drafts)
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc)) from None
    except BuildError as exc:
        source = exc.source_path
        if source.is_absolute() and source.is_relative_to(project_root):
            source = source.relative_to(project_root)
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  File: {source}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None
    click.echo(f"Built {len(result.written)} files into {result.output_dir}")


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft content")
def tree(drafts: bool):
    """Show every node with its destination path."""
    project_root = Path.cwd()
    from .build import BuildError, build_tree, load_config

    config = load_config(project_root)
    site_dir = project_root / config["site_dir"]
    if not site_dir.exists():
        raise click.ClickException(f"Expected site directory at {site_dir}")
    try:
        site_tree = build_tree(site_dir, config, include_drafts=drafts)
    except BuildError as exc:
        raise click.ClickException(str(exc)) from None
    for node in site_tree:
        lang = f" [{node.lang}]" if node.lang else ""
        click.echo(f"{'  ' * node.level}{node.alcn}{lang} -> {node.dest_path}")


def main():
    """Entry point for the CLI application."""
    cli()
