# cli.py
import os
import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv

from precacher.app import InMemoryManifest, create_app
from plugins.core_precache.archive import VpkArchiveReader
from plugins.core_precache.config import config_path_for, load_config
from plugins.core_precache.resource_set import ResourceSet
from plugins.core_precache.scanner import ArchiveScanner

app = typer.Typer(name="precacher", help="Resource Precacher Command-Line Interface")
config_app = typer.Typer(name="config", help="Inspect precacher configuration.")
app.add_typer(config_app)

MODULE_DIR_OPTION = typer.Option(
    None, "--module-dir", "-m",
    help="Plugin directory containing 'assets/'. Defaults to $PRECACHER_MODULE_DIR or the current directory."
)


@app.command("scan")
def scan_assets(
    root: Path = typer.Argument(..., help="Directory to scan recursively for VPK packages."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print the summary line.")
):
    """
    Scans a directory for VPK packages and prints the resources that would be precached.
    """
    resource_set = ResourceSet()
    report = ArchiveScanner(resource_set, VpkArchiveReader()).scan(root)

    if not quiet:
        for resource_path in resource_set:
            typer.echo(resource_path)

    typer.secho(
        f"📦 {resource_set.count} resource(s) from {report.archives_read} package(s); "
        f"{report.duplicates} duplicate(s), {report.archives_failed} unreadable package(s).",
        fg=typer.colors.GREEN if report.archives_failed == 0 else typer.colors.YELLOW
    )


@app.command("run")
def run_precache(
    module_dir: Optional[Path] = MODULE_DIR_OPTION,
    disable: Optional[List[str]] = typer.Option(None, "--disable", "-d", help="Plugin to skip while loading. Can be repeated.")
):
    """
    Boots the plugins, fires one precache event against an in-memory manifest and shuts down.
    """
    async def _run() -> InMemoryManifest:
        manifest = InMemoryManifest()
        async with create_app(module_dir=module_dir, disabled_plugins=disable) as precacher:
            await precacher.precache(manifest)
        # shutdown 会等待后台任务完成，此时失败通道已完整
        for failure in precacher.task_manager.failures:
            typer.secho(f"🔥 Background task '{failure.task_name}' failed: {failure.exception}", fg=typer.colors.RED)
        return manifest

    manifest = asyncio.run(_run())
    typer.secho(f"✅ Precached {len(manifest.resources)} resource(s).", fg=typer.colors.GREEN)


@config_app.command("show")
def show_config(module_dir: Optional[Path] = MODULE_DIR_OPTION):
    """
    Prints the effective configuration (config file plus environment overrides).
    """
    load_dotenv()
    resolved_dir = module_dir or Path(os.getenv("PRECACHER_MODULE_DIR") or Path.cwd())
    config = load_config(resolved_dir)
    typer.echo(f"# {config_path_for(resolved_dir)}")
    typer.echo(config.model_dump_json(by_alias=True, indent=2))


if __name__ == "__main__":
    app()
