import logging
import shutil
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .cache_paths import RuntimeContext, cache_root, unit_path
from .cli_config import create_sample_config, get_config
from .dependency import ImportSpecification
from .error_handling import (
    ScriptError,
    log_filesystem_error,
    log_process_error,
    setup_error_handling,
)
from .manifest import render_manifest
from .parsers import load_dependency_file
from .script import Script
from .structured_logging import configure_logging

__version__ = "1.0.0"

console = Console(stderr=True)


def load_dependencies(deps_file: Optional[str]) -> List[ImportSpecification]:
    """Load the dependency document given on the command line, if any."""
    if not deps_file:
        return []
    try:
        return load_dependency_file(deps_file)
    except ValueError as e:
        raise click.ClickException(f"Failed to load dependencies: {e}")


def load_script(script_path: str, name: Optional[str], deps_file: Optional[str]) -> Script:
    path = Path(script_path)
    try:
        with path.open(encoding="utf-8", newline="") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise click.ClickException(f"Failed to read script {path}: {e}")

    # split on "\n" only; other line separators belong to the script text
    contents = text.split("\n")
    if contents[-1] == "":
        contents.pop()

    return Script(
        name=name or path.stem,
        contents=contents,
        dependencies=load_dependencies(deps_file),
    )


def materialize_or_fail(script: Script, ctx: RuntimeContext) -> bool:
    try:
        return script.materialize(ctx)
    except OSError as e:
        log_filesystem_error(
            f"Failed to write build unit {script.name}",
            "main",
            "materialize_or_fail",
            path=script.path(ctx),
            exception=e,
        )
        raise click.ClickException(f"could not write build unit {script.path(ctx)}: {e}")


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.pass_context
def cli(ctx, version):
    """
    swift-sh: run Swift scripts with their dependencies

    Each script becomes a cached Swift package that is rebuilt only when
    its content changes, then handed over to `swift run`.
    """
    if version:
        console.print(f"swift-sh version {__version__}", style="bold blue")
        ctx.exit()

    config = get_config()
    level = getattr(logging, config.logging.log_level.upper(), logging.WARNING)
    configure_logging(
        config.logging.log_level,
        enable_json=config.logging.enable_json,
        mask_sensitive_data=config.logging.enable_sensitive_data_masking,
    )
    setup_error_handling(
        log_level=level,
        mask_sensitive_data=config.logging.enable_sensitive_data_masking,
    )

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@cli.command()
@click.argument("script_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--deps",
    "deps_file",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON or YAML document listing the script's dependencies",
)
@click.option("--name", help="Build unit name (defaults to the script's file stem)")
def run(script_path: str, deps_file: Optional[str], name: Optional[str]):
    """Build and run a script through `swift run`."""
    script = load_script(script_path, name, deps_file)
    runtime = RuntimeContext.from_process()

    try:
        script.run(runtime)
    except OSError as e:
        log_filesystem_error(
            f"Failed to write build unit {script.name}",
            "main",
            "run",
            path=script.path(runtime),
            exception=e,
        )
        raise click.ClickException(str(e))
    except ScriptError as e:
        log_process_error(e, "main", "run")
        raise click.ClickException(e.stderr_string)


@cli.command()
@click.argument("script_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--deps",
    "deps_file",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON or YAML document listing the script's dependencies",
)
@click.option("--name", help="Build unit name (defaults to the script's file stem)")
def prepare(script_path: str, deps_file: Optional[str], name: Optional[str]):
    """Materialize a script's build unit without running it."""
    script = load_script(script_path, name, deps_file)
    runtime = RuntimeContext.from_process()

    written = materialize_or_fail(script, runtime)
    if written:
        console.print(f"✅ Wrote build unit {script.name}", style="green")
    else:
        console.print(f"✨ Build unit {script.name} is up to date", style="dim")
    click.echo(str(script.path(runtime)))


@cli.command()
@click.option("--name", required=True, help="Build unit name")
@click.option(
    "--deps",
    "deps_file",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON or YAML document listing the script's dependencies",
)
def manifest(name: str, deps_file: Optional[str]):
    """Print the Package.swift generated for a build unit."""
    build = get_config().build
    cache = get_config().cache
    click.echo(
        render_manifest(
            name,
            load_dependencies(deps_file),
            tools_version=build.tools_version,
            script_filename=cache.script_filename,
        ),
        nl=False,
    )


@cli.command()
def info():
    """Show cache location, configuration sources and input formats."""
    runtime = RuntimeContext.from_process()
    info_text = f"""
[bold blue]📦 Cache Root:[/bold blue]

  {cache_root(runtime)}

[bold blue]🌍 Environment Variables:[/bold blue]

• [cyan]XDG_CACHE_HOME[/cyan] - Cache root on non-macOS platforms
• [cyan]PATH[/cyan] - Searched for the build tool
• [cyan]SWIFT_SH_TOOL[/cyan] - Build tool name (default: swift)
• [cyan]SWIFT_SH_TOOLS_VERSION[/cyan] - swift-tools-version of generated manifests
• [cyan]SWIFT_SH_LOG_LEVEL[/cyan] - Log level for structured logs on stderr

[bold blue]📄 Configuration Files:[/bold blue]

• [green].swift-sh.json[/green] / [green].swift-sh.yaml[/green] - Project-level config
• [green]~/.config/swift-sh/config.json[/green] - User-level config

[bold blue]🧩 Dependency Documents:[/bold blue]

  [
    {{"name": "mxcl/PromiseKit", "import_name": "PromiseKit", "up_to_next_major": "6.0.0"}},
    {{"name": "https://example.com/Foo.git", "import_name": "Foo", "exact": "1.2.3"}},
    {{"name": "owner/Bar", "import_name": "Bar", "ref": "main"}}
  ]

[bold blue]💡 Usage Examples:[/bold blue]

  swift-sh run script.swift --deps deps.json
  swift-sh prepare script.swift --deps deps.yaml
  swift-sh cache clean --confirm
"""
    console.print(
        Panel(
            info_text,
            title="[bold]swift-sh Information[/bold]",
            border_style="blue",
        )
    )


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("init")
@click.option(
    "--path",
    type=click.Path(),
    default=".swift-sh.json",
    help="Path where to create the config file",
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(path: str, force: bool):
    """Create a sample configuration file."""
    config_path = Path(path)

    if config_path.exists() and not force:
        console.print(f"⚠️  Config file already exists at {config_path}", style="yellow")
        console.print("Use --force to overwrite", style="dim")
        return

    try:
        config_path.write_text(create_sample_config(), encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Failed to create config file: {e}")

    console.print(f"✅ Created configuration file at {config_path}", style="green")


@config.command("show")
def config_show():
    """Show current configuration settings."""
    current_config = get_config()

    console.print(Panel("[bold blue]🔧 Configuration[/bold blue]", border_style="blue"))

    console.print("\n[bold cyan]🔨 Build Settings:[/bold cyan]")
    console.print(f"  Tool: {current_config.build.tool_name}")
    console.print(f"  Subcommand: {current_config.build.subcommand}")
    console.print(f"  Tools Version: {current_config.build.tools_version}")
    console.print(f"  Fallback Executable: {current_config.build.default_executable}")
    console.print(f"  Which: {current_config.build.which_path}")

    console.print("\n[bold cyan]📦 Cache Settings:[/bold cyan]")
    console.print(f"  Directory Name: {current_config.cache.cache_dir_name}")
    console.print(f"  Manifest: {current_config.cache.manifest_filename}")
    console.print(f"  Script: {current_config.cache.script_filename}")
    console.print(f"  Atomic Writes: {current_config.cache.atomic_writes}")

    console.print("\n[bold cyan]📝 Logging Settings:[/bold cyan]")
    console.print(f"  Log Level: {current_config.logging.log_level}")
    console.print(f"  JSON Logs: {current_config.logging.enable_json}")
    console.print(
        f"  Sensitive Data Masking: {current_config.logging.enable_sensitive_data_masking}"
    )


@cli.group()
def cache():
    """Build unit cache commands."""
    pass


@cache.command("path")
@click.argument("name", required=False)
def cache_path(name: Optional[str]):
    """Print the cache root, or the directory of build unit NAME."""
    runtime = RuntimeContext.from_process()
    click.echo(str(unit_path(name, runtime) if name else cache_root(runtime)))


@cache.command("list")
def cache_list():
    """List cached build units."""
    runtime = RuntimeContext.from_process()
    root = cache_root(runtime)
    units = sorted(p for p in root.iterdir() if p.is_dir()) if root.is_dir() else []

    if not units:
        console.print("📭 Cache is empty", style="yellow")
        return

    cache_settings = get_config().cache
    table = Table(title=f"Build units in {root}")
    table.add_column("Name", style="cyan")
    table.add_column("Manifest")
    table.add_column("Script")
    for unit in units:
        table.add_row(
            unit.name,
            "✅" if (unit / cache_settings.manifest_filename).exists() else "❌",
            "✅" if (unit / cache_settings.script_filename).exists() else "❌",
        )
    console.print(table)


@cache.command("clean")
@click.argument("name", required=False)
@click.option("--confirm", is_flag=True, help="Skip confirmation prompt")
def cache_clean(name: Optional[str], confirm: bool):
    """Remove build unit NAME, or every cached build unit."""
    runtime = RuntimeContext.from_process()
    root = cache_root(runtime)
    target = unit_path(name, runtime) if name else root

    if name and root.resolve() not in target.resolve().parents:
        raise click.ClickException(f"{name} is not a build unit inside {root}")

    if not target.exists():
        console.print(f"📭 Nothing cached at {target}", style="yellow")
        return

    if not confirm:
        if not click.confirm(f"Are you sure you want to remove {target}?"):
            console.print("❌ Cache clean cancelled")
            return

    try:
        shutil.rmtree(target)
    except OSError as e:
        log_filesystem_error("Failed to clean cache", "main", "cache_clean", path=target, exception=e)
        raise click.ClickException(f"could not remove {target}: {e}")

    console.print(f"✅ Removed {target}", style="green")


def main() -> None:
    cli(prog_name="swift-sh")


if __name__ == "__main__":
    main()
