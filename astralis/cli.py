"""Typer-based CLI for Astralis flowchart analysis."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__, config
from .analyzer import analyze, detect_language
from .config_manager import (
    DEFAULT_CONFIGS,
    load_analysis_config,
    load_config,
    save_analysis_config,
    save_config,
)
from .graph_export import EXPORTERS, write_export
from .llm import LocalLLM
from .models import AnalysisResult
from .orchestrator import AnalysisOrchestrator
from .storage import AnalysisHistory

app = typer.Typer(
    help="Astralis: turn source files into annotated flowcharts.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

_SHAPE_GLYPHS = {"rectangle": "▭", "diamond": "◇", "rounded": "▢", "hexagon": "⬡"}
_RICH_STYLES = {"orange": "dark_orange", "purple": "magenta"}


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"Astralis v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """Astralis: heuristic source-to-flowchart analyzer."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _read_source(path: Path) -> str:
    if not path.exists() or not path.is_file():
        raise typer.BadParameter(f"File '{path}' does not exist.")
    return path.read_text(encoding="utf-8", errors="replace")


def _open_history() -> AnalysisHistory:
    config.HISTORY_DB.parent.mkdir(parents=True, exist_ok=True)
    return AnalysisHistory(config.HISTORY_DB)


def _render_result(result: AnalysisResult) -> None:
    table = Table(title=f"{result.file_name} ({result.language})", show_lines=False)
    table.add_column("ID", style="dim")
    table.add_column("Lines", justify="right")
    table.add_column("Shape")
    table.add_column("Label", style="bold")
    table.add_column("Narrative")
    for node in result.nodes:
        style = _RICH_STYLES.get(node.color, node.color)
        lines = f"{node.line_start}" if node.line_start == node.line_end else f"{node.line_start}-{node.line_end}"
        table.add_row(
            node.id,
            lines,
            f"{_SHAPE_GLYPHS.get(node.shape, '?')} {node.shape}",
            f"[{style}]{escape(node.label)}[/{style}]",
            node.narrative,
        )
    console.print(table)
    console.print(
        f"Lines: {result.total_lines} | Sections: {result.total_sections} | Edges: {len(result.edges)}"
    )


@app.command("analyze")
def analyze_file(
    path: Path = typer.Argument(..., help="Source file to analyze."),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Language tag (default: from extension)."),
    mode: str = typer.Option(config.ANALYSIS_MODE, "--mode", "-m", help="Verbosity: concise, standard, deep_dive."),
    enhance: bool = typer.Option(config.ENHANCE_BY_DEFAULT, "--enhance/--no-enhance", help="Polish labels with the configured LLM."),
    use_cache: bool = typer.Option(True, "--cache/--no-cache", help="Reuse a stored result for unchanged source."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON result."),
):
    """Analyze a source file into a flowchart."""
    source = _read_source(path)
    lang = language or detect_language(path.name)

    history = _open_history()
    try:
        orchestrator = AnalysisOrchestrator(
            history=history,
            llm=LocalLLM() if enhance else None,
            timeout=config.ENHANCE_TIMEOUT,
        )
        outcome = orchestrator.run(source, path.name, lang, mode=mode, enhance=enhance, use_cache=use_cache)
    finally:
        history.close()

    if as_json:
        typer.echo(json.dumps(outcome.result.to_dict(), indent=2))
        return

    _render_result(outcome.result)
    notes = []
    if outcome.cached:
        notes.append("cached")
    if outcome.enhanced:
        notes.append("LLM-enhanced")
    if outcome.analysis_id:
        notes.append(f"id {outcome.analysis_id}")
    if notes:
        console.print(f"[dim]({', '.join(notes)})[/dim]")


@app.command("export")
def export_file(
    path: Path = typer.Argument(..., help="Source file to analyze."),
    fmt: str = typer.Option("mermaid", "--format", "-f", help="Output format: json, dot, mermaid."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to this file instead of stdout."),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Language tag (default: from extension)."),
):
    """Export a file's flowchart as JSON, Graphviz DOT, or Mermaid."""
    if fmt not in EXPORTERS:
        raise typer.BadParameter(f"Unknown format '{fmt}'. Choose from: {', '.join(EXPORTERS)}.")
    source = _read_source(path)
    result = analyze(source, path.name, language or detect_language(path.name))

    if output is None:
        typer.echo(EXPORTERS[fmt](result))
        return
    write_export(result, fmt, output)
    typer.echo(f"Exported {result.total_sections} nodes to {output}")


@app.command("history")
def list_history(
    limit: int = typer.Option(config.HISTORY_LIMIT, "--limit", "-n", help="Maximum entries to show."),
):
    """List previous analyses."""
    history = _open_history()
    try:
        entries = history.list_history(limit=limit)
    finally:
        history.close()

    if not entries:
        typer.echo("No analyses yet.")
        return

    table = Table(title="Analysis History")
    table.add_column("ID", style="dim")
    table.add_column("File")
    table.add_column("Language")
    table.add_column("Mode")
    table.add_column("Enhanced")
    table.add_column("Created")
    for entry in entries:
        table.add_row(
            entry["id"],
            entry["file_name"],
            entry["language"],
            entry["mode"],
            "yes" if entry["enhanced"] else "no",
            entry["created_at"],
        )
    console.print(table)


@app.command("show")
def show_analysis(
    analysis_id: str = typer.Argument(..., help="Analysis id from `astralis history`."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON result."),
):
    """Show a stored analysis."""
    history = _open_history()
    try:
        record = history.get(analysis_id)
    finally:
        history.close()

    if record is None:
        raise typer.BadParameter(f"No analysis with id '{analysis_id}'.")
    if as_json:
        typer.echo(json.dumps(record["result"].to_dict(), indent=2))
    else:
        _render_result(record["result"])


@app.command("delete")
def delete_analysis(analysis_id: str = typer.Argument(..., help="Analysis id to delete.")):
    """Delete a stored analysis."""
    history = _open_history()
    try:
        removed = history.delete(analysis_id)
    finally:
        history.close()
    if not removed:
        typer.echo(f"No analysis with id '{analysis_id}'.")
        raise typer.Exit(code=1)
    typer.echo(f"Deleted {analysis_id}.")


@app.command("set-llm")
def set_llm(
    provider: str = typer.Argument(..., help=f"Provider: {', '.join(DEFAULT_CONFIGS)}."),
    model: str = typer.Option("", "--model", help="Model name."),
    api_key: str = typer.Option("", "--api-key", help="API key for cloud providers."),
    endpoint: str = typer.Option("", "--endpoint", help="Custom endpoint URL."),
):
    """Configure the LLM used by --enhance."""
    provider = provider.lower()
    if provider not in DEFAULT_CONFIGS:
        raise typer.BadParameter(f"Unknown provider '{provider}'.")
    if not save_config(provider, model, api_key, endpoint, config_file=config.CONFIG_FILE):
        typer.echo("Could not write configuration.")
        raise typer.Exit(code=1)
    typer.echo(f"LLM provider set to {provider}.")


@app.command("show-llm")
def show_llm():
    """Show the configured LLM."""
    llm = load_config(config.CONFIG_FILE)
    key = llm.get("api_key") or ""
    masked = f"{key[:4]}…{key[-4:]}" if len(key) > 8 else ("set" if key else "not set")
    typer.echo(f"Provider: {llm.get('provider', 'openrouter')}")
    typer.echo(f"Model:    {llm.get('model', '')}")
    typer.echo(f"Endpoint: {llm.get('endpoint') or 'default'}")
    typer.echo(f"API key:  {masked}")


@app.command("set-analysis")
def set_analysis(
    mode: Optional[str] = typer.Option(None, "--mode", "-m", help="Default verbosity: concise, standard, deep_dive."),
    enhance: Optional[bool] = typer.Option(None, "--enhance/--no-enhance", help="Enhance with the LLM by default."),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds allowed for each LLM pass."),
):
    """Configure analysis defaults used by `astralis analyze`."""
    if mode is None and enhance is None and timeout is None:
        raise typer.BadParameter("Pass at least one of --mode, --enhance/--no-enhance, --timeout.")
    if mode is not None and mode not in config.VERBOSITY_MODES:
        raise typer.BadParameter(f"Unknown mode '{mode}'. Choose from: {', '.join(config.VERBOSITY_MODES)}.")
    if timeout is not None and timeout <= 0:
        raise typer.BadParameter("Timeout must be positive.")
    if not save_analysis_config(config.CONFIG_FILE, mode=mode, enhance=enhance, timeout=timeout):
        typer.echo("Could not write configuration.")
        raise typer.Exit(code=1)
    typer.echo("Analysis defaults updated.")


@app.command("show-analysis")
def show_analysis_config():
    """Show the analysis defaults."""
    settings = load_analysis_config(config.CONFIG_FILE)
    typer.echo(f"Mode:    {settings['mode']}")
    typer.echo(f"Enhance: {'yes' if settings['enhance'] else 'no'}")
    typer.echo(f"Timeout: {float(settings['timeout']):g}s")


if __name__ == "__main__":
    app()
