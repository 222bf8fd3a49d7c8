"""CLI commands for offer layout management.

Subcommands for listing the layouts the agent will try (in match order) and
validating a layout JSON file before dropping it into the layouts directory.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

layouts_app = typer.Typer(help="Manage offer layouts — list and validate.")
console = Console()


# ---------------------------------------------------------------------------
# chasecatcher layouts list
# ---------------------------------------------------------------------------


@layouts_app.command("list")
def layouts_list(
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON."),
) -> None:
    """List configured layouts in match order."""
    from chasecatcher.layouts.matcher import OfferMatcher
    from chasecatcher.settings import get_settings

    settings = get_settings()
    layouts = OfferMatcher.from_settings(settings).layouts

    if not layouts:
        console.print(f"No layouts configured (dir: {settings.layouts.layouts_dir})")
        return

    if json_output:
        console.print_json(json.dumps([layout.model_dump(mode="json") for layout in layouts], indent=2))
        return

    table = Table(title=f"Offer layouts ({settings.layouts.layouts_dir})")
    table.add_column("ID", style="cyan")
    table.add_column("Enabled", justify="center")
    table.add_column("Tile", style="dim", max_width=30)
    table.add_column("Actionable selector", style="dim", max_width=50)
    table.add_column("Description", max_width=40)

    for layout in layouts:
        table.add_row(
            layout.layout_id,
            "[green]✓[/green]" if layout.enabled else "[red]✗[/red]",
            layout.tile_selector,
            layout.actionable_selector,
            layout.description[:40] if layout.description else "",
        )

    console.print(table)
    console.print(f"\n[bold]{len(layouts)}[/bold] layout(s) registered")


# ---------------------------------------------------------------------------
# chasecatcher layouts validate
# ---------------------------------------------------------------------------


@layouts_app.command("validate")
def layouts_validate(
    path: Path = typer.Argument(..., help="Path to a layout JSON file."),
) -> None:
    """Validate a layout JSON file against the schema."""
    from pydantic import ValidationError

    from chasecatcher.layouts.loader import load_layout_from_file

    if not path.exists():
        console.print(f"[red]File not found:[/red] {path}")
        raise typer.Exit(code=1)

    try:
        layout = load_layout_from_file(path)
        console.print(f"[green]✓[/green] Valid layout: {layout.layout_id}")
        console.print(f"  Actionable: {layout.actionable_selector}")
    except json.JSONDecodeError as e:
        console.print(f"[red]✗ Invalid JSON:[/red] {e}")
        raise typer.Exit(code=1) from None
    except ValidationError as e:
        console.print("[red]✗ Validation errors:[/red]")
        for err in e.errors():
            loc = " → ".join(str(x) for x in err["loc"])
            console.print(f"  {loc}: {err['msg']}")
        raise typer.Exit(code=1) from None
