#!/usr/bin/env python3
"""
podfs CLI

Command-line interface for a local podfs deployment (blobs on disk, feeds,
directories and pod keys in SQLite).

Usage:
    podfs pod-new NAME                      # Create a pod
    podfs upload FILE POD PATH              # Upload a file
    podfs download POD PATH                 # Download a file
    podfs ls POD [DIR]                      # List a directory
    podfs rm POD PATH                       # Delete a file
    podfs share POD PATH                    # Share a file
    podfs share-info REF                    # Show shared file info
    podfs save-shared POD DIR REF           # Save a shared file into a pod
    podfs download-shared REF               # Download a shared file
    podfs share-pod POD                     # Share a whole pod
    podfs download-shared-pod REF PATH      # Download from a shared pod
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .account import PodWallet, Session, assert_pod_name
from .config import Config, load_config
from .connection import Connection
from .errors import PodfsError
from .file import DataUploadOptions, Files
from .share import share_pod
from .store.database import init_database
from .store.disk import DiskStore
from .utils import combine

console = Console()


def setup_logging(level: str):
    """Configure logging with rich output."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)]
    )


@asynccontextmanager
async def open_deployment(config: Config):
    """Open the local store and database, yield (files, session, db)."""
    db = await init_database(config.data_dir)
    try:
        connection = Connection(
            store=DiskStore(config.data_dir),
            feeds=db.feeds,
            directory=db.directory,
            config=config,
        )
        session = Session(pods=await db.get_pods())
        yield Files(connection), session, db
    finally:
        await db.close()


def fail(error: PodfsError):
    """Print a podfs error and exit with status 1."""
    console.print(f"[red]✗ {type(error).__name__}: {error}[/red]")
    raise SystemExit(1)


def run(coro):
    """Run a coroutine, turning podfs errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except PodfsError as e:
        fail(e)


def local_file_name(name: str) -> str:
    """Last segment of a (possibly remote-supplied) name, safe to create in the cwd."""
    leaf = Path(name).name
    return leaf if leaf not in ('', '.', '..') else 'download'


def write_output(data: bytes, output: Optional[str], default_name: str):
    output_path = Path(output) if output else Path(local_file_name(default_name))
    output_path.write_bytes(data)
    console.print(f"[green]✓ Saved {format_size(len(data))} to: {output_path}[/green]")


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--config', 'config_path', type=click.Path(), default=None, help='JSON config file')
@click.option('--data-dir', default=None, help='Data directory')
@click.pass_context
def cli(ctx, verbose, config_path, data_dir):
    """podfs - chunked file storage and sharing on pods."""
    try:
        config = load_config(Path(config_path) if config_path else None)
    except PodfsError as e:
        fail(e)
    if data_dir:
        config.data_dir = Path(data_dir)
    setup_logging('DEBUG' if verbose else config.log_level)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


@cli.command('pod-new')
@click.argument('pod_name')
@click.pass_context
def pod_new(ctx, pod_name):
    """Create a pod with a fresh signing key."""
    config = ctx.obj['config']

    async def main():
        assert_pod_name(pod_name)
        async with open_deployment(config) as (_, session, db):
            if pod_name in session.pods:
                console.print(f"[yellow]Pod already exists: {pod_name}[/yellow]")
                return
            wallet = PodWallet()
            await db.add_pod(pod_name, wallet)
            console.print(f"[green]✓ Created pod {pod_name}[/green] ([cyan]{wallet.address}[/cyan])")

    run(main())


@cli.command('pods')
@click.pass_context
def list_pods(ctx):
    """List local pods."""
    config = ctx.obj['config']

    async def main():
        async with open_deployment(config) as (_, session, _db):
            if not session.pods:
                console.print("[yellow]No pods[/yellow]")
                return
            table = Table(title="Pods")
            table.add_column("Name", style="cyan")
            table.add_column("Address", style="green")
            for name, wallet in session.pods.items():
                table.add_row(name, wallet.address)
            console.print(table)

    run(main())


@cli.command()
@click.argument('file_path', type=click.Path(exists=True, dir_okay=False))
@click.argument('pod_name')
@click.argument('full_path')
@click.option('--block-size', type=int, default=None, help='Block size in bytes')
@click.option('--content-type', default=None, help='Content type to record')
@click.pass_context
def upload(ctx, file_path, pod_name, full_path, block_size, content_type):
    """Upload a local file to POD at FULL_PATH."""
    config = ctx.obj['config']
    options = DataUploadOptions(block_size=block_size, content_type=content_type)

    async def main():
        async with open_deployment(config) as (files, session, _db):
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                task = progress.add_task("Uploading...", total=None)
                meta = await files.upload_file(session, pod_name, full_path, Path(file_path), options)
                progress.update(task, description="Done!")

        block_count = (meta.file_size + meta.block_size - 1) // meta.block_size
        console.print(Panel.fit(
            f"[bold green]File Uploaded[/bold green]\n\n"
            f"Path: [cyan]{combine(meta.file_path, meta.file_name)}[/cyan]\n"
            f"Size: [yellow]{meta.file_size:,} bytes[/yellow]\n"
            f"Blocks: [yellow]{block_count}[/yellow]\n"
            f"Manifest: [green]{meta.blocks_reference}[/green]",
            title=f"Pod {pod_name}"
        ))

    run(main())


@cli.command()
@click.argument('pod_name')
@click.argument('full_path')
@click.option('--output', '-o', type=click.Path(), help='Output path')
@click.pass_context
def download(ctx, pod_name, full_path, output):
    """Download FULL_PATH from POD."""
    config = ctx.obj['config']

    async def main():
        async with open_deployment(config) as (files, session, _db):
            data = await files.download_data(session, pod_name, full_path)
        write_output(data, output, Path(full_path).name)

    run(main())


@cli.command('ls')
@click.argument('pod_name')
@click.argument('dir_path', default='/')
@click.pass_context
def list_directory(ctx, pod_name, dir_path):
    """List a directory of POD."""
    config = ctx.obj['config']

    async def main():
        async with open_deployment(config) as (files, session, _db):
            entries = await files.list_directory(session, pod_name, dir_path)

        if not entries:
            console.print("[yellow]Empty directory[/yellow]")
            return
        table = Table(title=f"{pod_name}:{dir_path}")
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        for entry in entries:
            table.add_row(entry.name, "file" if entry.is_file else "dir")
        console.print(table)

    run(main())


@cli.command('rm')
@click.argument('pod_name')
@click.argument('full_path')
@click.pass_context
def remove(ctx, pod_name, full_path):
    """Delete FULL_PATH from POD's directory."""
    config = ctx.obj['config']

    async def main():
        async with open_deployment(config) as (files, session, _db):
            await files.delete(session, pod_name, full_path)
        console.print(f"[green]✓ Deleted {full_path}[/green]")

    run(main())


@cli.command()
@click.argument('pod_name')
@click.argument('full_path')
@click.pass_context
def share(ctx, pod_name, full_path):
    """Share FULL_PATH from POD."""
    config = ctx.obj['config']

    async def main():
        async with open_deployment(config) as (files, session, _db):
            reference = await files.share(session, pod_name, full_path)
        console.print(Panel.fit(
            f"[bold]Reference (share this):[/bold]\n[green]{reference}[/green]",
            title="Shared File"
        ))

    run(main())


@cli.command('share-info')
@click.argument('reference')
@click.pass_context
def share_info(ctx, reference):
    """Show what a file share reference points to."""
    config = ctx.obj['config']

    async def main():
        async with open_deployment(config) as (files, _session, _db):
            info = await files.get_shared_info(reference)
        meta = info.metadata
        console.print(Panel.fit(
            f"Name: [cyan]{meta.file_name}[/cyan]\n"
            f"Path: [cyan]{meta.file_path}[/cyan]\n"
            f"Size: [yellow]{format_size(meta.file_size)}[/yellow]\n"
            f"Pod: [cyan]{meta.pod_name}[/cyan]\n"
            f"Source: [green]{info.source_address}[/green]",
            title="Shared File Info"
        ))

    run(main())


@cli.command('save-shared')
@click.argument('pod_name')
@click.argument('parent_path')
@click.argument('reference')
@click.option('--name', default=None, help='Save under a different file name')
@click.pass_context
def save_shared(ctx, pod_name, parent_path, reference, name):
    """Save a shared file into POD under PARENT_PATH."""
    config = ctx.obj['config']

    async def main():
        async with open_deployment(config) as (files, session, _db):
            meta = await files.save_shared(session, pod_name, parent_path, reference, name)
        console.print(f"[green]✓ Saved as {combine(meta.file_path, meta.file_name)}[/green]")

    run(main())


@cli.command('download-shared')
@click.argument('reference')
@click.option('--output', '-o', type=click.Path(), help='Output path')
@click.pass_context
def download_shared(ctx, reference, output):
    """Download a shared file."""
    config = ctx.obj['config']

    async def main():
        async with open_deployment(config) as (files, _session, _db):
            info = await files.get_shared_info(reference)
            data = await files.download_shared(reference)
        write_output(data, output, info.metadata.file_name)

    run(main())


@cli.command('share-pod')
@click.argument('pod_name')
@click.pass_context
def share_pod_command(ctx, pod_name):
    """Share a whole pod for reading."""
    config = ctx.obj['config']

    async def main():
        async with open_deployment(config) as (files, session, _db):
            reference = await share_pod(files.connection, session, pod_name)
        console.print(Panel.fit(
            f"[bold]Reference (share this):[/bold]\n[green]{reference}[/green]",
            title="Shared Pod"
        ))

    run(main())


@cli.command('download-shared-pod')
@click.argument('reference')
@click.argument('full_path')
@click.option('--output', '-o', type=click.Path(), help='Output path')
@click.pass_context
def download_shared_pod(ctx, reference, full_path, output):
    """Download FULL_PATH from a shared pod."""
    config = ctx.obj['config']

    async def main():
        async with open_deployment(config) as (files, _session, _db):
            data = await files.download_from_shared_pod(reference, full_path)
        write_output(data, output, Path(full_path).name)

    run(main())


def format_size(bytes_count: int) -> str:
    """Format bytes as human-readable size."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_count < 1024:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1024
    return f"{bytes_count:.1f} PB"


if __name__ == '__main__':
    cli()
