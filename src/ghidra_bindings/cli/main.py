from __future__ import annotations

import json
import shutil
import sys
import time
from pathlib import Path
from typing import Callable, Dict, Optional

import typer
from rich.console import Console
from rich.table import Table

from ghidra_bindings.catalog.parser import CatalogFormatError, load_catalog
from ghidra_bindings.config import (
    PRESET_DIR,
    build_env_overrides,
    export_script,
    load_config,
    resolve_config_path,
    synthesis_options,
)
from ghidra_bindings.ghidra_automation.runner import (
    DEFAULT_EXPORT_SCRIPT,
    GhidraRunner,
    GhidraRunnerError,
)
from ghidra_bindings.header.writer import HeaderSummary, write_header
from ghidra_bindings.synthesis.declarations import (
    CatalogIntegrityError,
    DeclarationSynthesizer,
    SynthesisStats,
)

console = Console()
app = typer.Typer(help="Generate address-bound C headers from Ghidra symbol catalogs")
presets_app = typer.Typer(help="Manage configuration presets", invoke_without_command=True)
app.add_typer(presets_app, name="presets")
KNOWN_COMMANDS = {"generate", "header", "inspect", "presets"}


@presets_app.callback()
def presets_callback(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        _list_presets()


@presets_app.command("list")
def presets_list() -> None:
    _list_presets()


@app.command()
def generate(
    binary: Path = typer.Argument(..., exists=True, readable=True, help="Executable to analyse"),
    ghidra: Optional[Path] = typer.Option(
        None, "--ghidra", help="Optional Ghidra install directory (defaults detected automatically)"
    ),
    output: Path = typer.Option(
        Path("./bindings-output"), "--output", "-o", help="Directory the header is written to"
    ),
    preset: Optional[str] = typer.Option(
        None, "--preset", "-p", help="Preset name from config directory (e.g. sanitized.json)"
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", help="Explicit JSON config path (overrides preset)"
    ),
    catalog_json: Optional[Path] = typer.Option(
        None,
        "--catalog-json",
        help="Skip Ghidra and reuse an existing catalog JSON (useful for tests/offline work)",
    ),
) -> None:
    """
    Export the symbol catalog with headless Ghidra and write <program>.h.
    """
    console.rule("[bold blue]Binding Generator")
    console.print(f"[cyan]Binary:[/] {binary}")
    console.print(f"[cyan]Output:[/] {output}")

    config_path = resolve_config_path(preset, config, log_callback=_warn)
    if config_path:
        console.print(f"[cyan]Config:[/] {config_path}")

    try:
        result = run_pipeline(
            binary=binary,
            ghidra=ghidra,
            output=output,
            config_path=config_path,
            catalog_json=catalog_json,
            log_callback=RateLimitedConsoleLogger(console),
        )
    except (
        FileNotFoundError,
        ValueError,
        GhidraRunnerError,
        CatalogIntegrityError,
    ) as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(code=1)

    console.print(f"[green]OK[/] Catalog written to {result['catalog_json']}")
    _print_summary(result["header"])


@app.command()
def header(
    catalog: Path = typer.Argument(..., exists=True, readable=True, help="Catalog JSON to render"),
    output: Path = typer.Option(
        Path("./bindings-output"), "--output", "-o", help="Directory the header is written to"
    ),
    preset: Optional[str] = typer.Option(
        None, "--preset", "-p", help="Preset name from config directory"
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", help="Explicit JSON config path (overrides preset)"
    ),
) -> None:
    """
    Write <program>.h from an already exported catalog JSON.
    """
    config_path = resolve_config_path(preset, config, log_callback=_warn)
    try:
        options = synthesis_options(load_config(config_path))
        summary = write_header(load_catalog(catalog), output, options=options)
    except (FileNotFoundError, ValueError, CatalogIntegrityError) as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(code=1)
    _print_summary(summary)


@app.command("inspect")
def inspect_command(
    catalog: Path = typer.Argument(..., exists=True, readable=True, help="Catalog JSON to inspect"),
) -> None:
    """
    Summarize which symbols would be bound or skipped, without writing anything.
    """
    try:
        loaded = load_catalog(catalog)
    except CatalogFormatError as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(code=1)

    synthesizer = DeclarationSynthesizer(loaded)
    try:
        for _ in synthesizer.iter_declarations():
            pass
    except CatalogIntegrityError as exc:
        console.print(f"[red]Catalog inconsistent:[/] {exc}")
        raise typer.Exit(code=1)

    console.print(f"[cyan]Program:[/] {loaded.program_name}")
    console.print(f"[cyan]Type preamble:[/] {len(loaded.type_definitions.splitlines())} lines")
    console.print(_stats_table(synthesizer.stats, title="Catalog Symbols"))


def run_pipeline(
    *,
    binary: Path,
    ghidra: Optional[Path],
    output: Path,
    config_path: Optional[Path],
    catalog_json: Optional[Path] = None,
    log_callback: Optional[Callable[[str], None]] = None,
) -> Dict[str, object]:
    config_data = load_config(config_path) if config_path else {}
    options = synthesis_options(config_data)

    raw_dir = output / "raw"
    raw_dir.mkdir(parents=True, exist_ok=True)

    if catalog_json:
        raw_json = raw_dir / "catalog.json"
        if Path(catalog_json).resolve() != raw_json.resolve():
            shutil.copyfile(catalog_json, raw_json)
    else:
        runner = GhidraRunner(
            ghidra_install=ghidra,
            script_name=export_script(config_data) or DEFAULT_EXPORT_SCRIPT,
        )
        raw_json = runner.export_catalog(
            binary,
            output,
            log_callback=log_callback,
            env_overrides=build_env_overrides(config_data),
        )

    catalog = load_catalog(raw_json)
    summary = write_header(catalog, output, options=options, log_callback=log_callback)
    return {
        "catalog_json": raw_json,
        "header": summary,
        "program": catalog.program_name,
    }


def main():
    if len(sys.argv) > 1:
        first = sys.argv[1]
        if not first.startswith("-") and first not in KNOWN_COMMANDS:
            sys.argv.insert(1, "generate")
    app()


def _warn(message: str) -> None:
    console.print(f"[yellow]{message}[/]")


def _stats_table(stats: SynthesisStats, title: str) -> Table:
    table = Table(title=title, show_lines=True)
    table.add_column("Category")
    table.add_column("Count", justify="right")
    table.add_row("Label declarations", str(stats.labels))
    table.add_row("Function declarations", str(stats.functions))
    table.add_row("Skipped (external)", str(stats.skipped_external))
    table.add_row("Skipped (no data)", str(stats.skipped_unbacked))
    table.add_row("Skipped (other kind)", str(stats.skipped_other))
    return table


def _print_summary(summary: HeaderSummary) -> None:
    console.print(f"[green]OK[/] Header written to {summary.path}")
    console.print(_stats_table(summary.stats, title="Declarations"))
    console.print("[bold green]Done.[/]")


def _list_presets() -> None:
    if not PRESET_DIR.exists():
        console.print(f"[red]Config directory not found at {PRESET_DIR}[/]")
        raise typer.Exit(code=1)

    table = Table(title="Available Presets", show_header=True, header_style="bold magenta")
    table.add_column("Preset")
    table.add_column("Export script")
    table.add_column("Description")
    count = 0
    for cfg in sorted(PRESET_DIR.glob("*.json")):
        try:
            data = json.loads(cfg.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            table.add_row(cfg.name, "?", "unreadable")
        else:
            table.add_row(
                cfg.name,
                export_script(data) or DEFAULT_EXPORT_SCRIPT,
                str(data.get("description", "")) if isinstance(data, dict) else "",
            )
        count += 1

    if count == 0:
        console.print("[yellow]No presets found in config directory[/]")
    else:
        console.print(table)


class RateLimitedConsoleLogger:
    def __init__(self, console, min_interval: float = 0.1) -> None:
        self.console = console
        self.min_interval = min_interval
        self._last = 0.0

    def __call__(self, line: str) -> None:
        now = time.time()
        if now - self._last >= self.min_interval:
            self.console.log(f"[ghidra] {line}")
            self._last = now


if __name__ == "__main__":
    main()
