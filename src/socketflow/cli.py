import asyncio
from pathlib import Path
import typer
from rich import print as rprint
from rich.panel import Panel
from rich.progress import Progress
from rich.markup import escape
from rich.table import Table
from typing import List, Optional

from .config import FlowSettings, configure_logging, load_settings
from .generator import apply_overrides, generate_graph_from_template, load_graph, parse_override, save_graph_yaml
from .nodes import builtin_registry
from .runtime import FlowExecutionOptions, create_flow_runtime
from .validator import validate_graph_from_file
from .visualize import ascii_plan

app = typer.Typer(no_args_is_help=True, help="socketflow CLI — run node graphs wired through sockets")


@app.command()
def init():
    """Create a local project layout (flows/)."""
    Path("flows").mkdir(exist_ok=True)
    rprint(Panel.fit("[bold green]Initialized[/] directory: flows/"))


@app.command()
def new(template: str = typer.Option(..., help="Template to use: chain | diamond | template-hash"),
        name: str = typer.Option("flow", help="Output filename (without .yaml)"),
        outdir: Path = typer.Option(Path("flows"), help="Where to place the YAML"),
    ):
    """Write a flow YAML from a bundled template."""
    try:
        graph = generate_graph_from_template(template)
    except ValueError as e:
        rprint(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(code=2)
    outdir.mkdir(exist_ok=True, parents=True)
    outfile = outdir / f"{name}.yaml"
    save_graph_yaml(graph, outfile)
    rprint(Panel.fit(f"Saved template [bold]{template}[/] to [cyan]{outfile}[/]"))


@app.command()
def validate(file: Path):
    """Validate a flow YAML (sockets, connections, cycles, end nodes)."""
    ok, messages = validate_graph_from_file(file)
    table = Table(title="Validation Report", show_lines=True)
    table.add_column("Status", justify="center", style="bold")
    table.add_column("Message")
    for m in messages:
        status = "OK" if m.startswith("OK:") else "ERR"
        table.add_row(status, m)
    rprint(table)
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def explain(file: Path):
    """Print an ASCII plan of the flow graph."""
    print(ascii_plan(file))


@app.command()
def kinds():
    """List the built-in node kinds by category."""
    registry = builtin_registry()
    table = Table(title="Node kinds")
    table.add_column("Category", style="bold")
    table.add_column("Kind", style="cyan")
    table.add_column("Description")
    for category in registry.list_categories():
        for kind, description in registry.kinds_by_category(category).items():
            table.add_row(category, kind, description)
    rprint(table)


@app.command()
def run(file: Path,
        set_: Optional[List[str]] = typer.Option(None, "--set", help="Override a node value: NODE_ID=VALUE."),
        config: Optional[Path] = typer.Option(None, help="YAML settings file."),
        log_level: Optional[str] = typer.Option(None, help="Logging level (overrides settings)."),
        progress: Optional[bool] = typer.Option(None, "--progress/--no-progress", help="Show a progress bar.")):
    """Execute the flow and print the end node results."""
    try:
        settings = load_settings(config)
        if log_level:
            settings = FlowSettings.model_validate({**settings.model_dump(), "log_level": log_level})
    except ValueError as e:
        rprint(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(code=2)
    configure_logging(settings.log_level)
    show_progress = settings.show_progress if progress is None else progress

    overrides = dict(settings.overrides)
    try:
        overrides.update(parse_override(item) for item in set_ or [])
        graph = apply_overrides(load_graph(file), overrides)
        runtime = create_flow_runtime(graph, builtin_registry())
    except (ValueError, KeyError) as e:
        rprint(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(code=2)

    try:
        if show_progress:
            with Progress(transient=True) as bar:
                task = bar.add_task("Running flow", total=None)
                options = FlowExecutionOptions(
                    on_progress=lambda done, total: bar.update(task, completed=done, total=total or None),
                    on_node_start=lambda nid, title: bar.update(task, description=f"Running {title}"),
                )
                results = asyncio.run(runtime.execute(options))
        else:
            results = asyncio.run(runtime.execute())
    except ValueError as e:
        rprint(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(code=1)

    table = Table(title="Results", show_lines=True)
    table.add_column("Node", justify="right")
    table.add_column("Title")
    table.add_column("Result")
    table.add_column("Time", justify="right")
    for r in results:
        shown = f"[red]Error: {escape(r.error)}[/]" if r.error is not None else escape(repr(r.value))
        table.add_row(str(r.node_id), r.title, shown, f"{r.elapsed_time * 1000:.1f} ms")
    rprint(table)
    if any(r.error is not None for r in results):
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
