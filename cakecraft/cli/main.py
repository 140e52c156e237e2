"""
CLI interface for CakeCraft.

Provides command-line access to pricing, backups and the web server.
"""

import json
import logging
import sys
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cakecraft.config.loader import load_settings
from cakecraft.core.pricing import CakeConfiguration, ZeroCakeSelectionError, calculate_price
from cakecraft.core.validation import PricingValidationError, validate_pricing_document
from cakecraft.demo.seed_pricing import seed
from cakecraft.notifications.mailer import format_price
from cakecraft.storage.document_store import PricingDocumentError, PricingDocumentStore

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

ConfigOption = typer.Option(None, "--config", "-c", help="Path to YAML configuration file")


def _store(config: Optional[str]) -> PricingDocumentStore:
    settings = load_settings(config)
    return PricingDocumentStore(settings.storage.pricing_path, settings.storage.backup_dir)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """CakeCraft CLI."""
    if ctx.invoked_subcommand is None:
        console.print("CakeCraft - Use --help to see available commands")


@app.command()
def init(config: Optional[str] = ConfigOption):
    """Create the order database and seed the pricing document."""
    try:
        created = seed(load_settings(config))
        if created:
            console.print("[green]✓[/] Pricing document created")
        else:
            console.print("[green]✓[/] Pricing document already present")
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def quote(
    six_inch: int = typer.Option(0, "--six-inch", help="Number of 6 inch cakes"),
    eight_inch: int = typer.Option(0, "--eight-inch", help="Number of 8 inch cakes"),
    layers: int = typer.Option(1, "--layers", "-l", help="Layers per cake"),
    shape: str = typer.Option("round", "--shape", help="Cake shape"),
    flavor: List[str] = typer.Option([], "--flavor", "-f", help="Flavor (repeat per layer)"),
    icing: str = typer.Option("butter", "--icing", "-i", help="Icing type"),
    decoration: List[str] = typer.Option([], "--decoration", "-d", help="Decoration (repeatable)"),
    dietary: List[str] = typer.Option([], "--dietary", help="Dietary restriction (repeatable)"),
    template: Optional[str] = typer.Option(None, "--template", "-t", help="Template id"),
    config: Optional[str] = ConfigOption,
):
    """Price a cake configuration against the live pricing document."""
    cake = CakeConfiguration(
        six_inch_cakes=max(0, six_inch),
        eight_inch_cakes=max(0, eight_inch),
        layers=max(0, layers),
        shape=shape,
        flavors=list(flavor),
        icing_type=icing,
        decorations=list(decoration),
        dietary_restrictions=list(dietary),
        template=template,
    )
    try:
        breakdown = calculate_price(cake, _store(config).load())
    except ZeroCakeSelectionError as e:
        console.print(f"[red]Error:[/] {escape(e.message)}")
        sys.exit(EXIT_CODE_FAIL)
    except PricingDocumentError as e:
        console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)

    _display_breakdown(breakdown)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def backups(config: Optional[str] = ConfigOption):
    """List pricing document backups, newest first."""
    items = _store(config).list_backups()
    if not items:
        console.print("\n[bold yellow]No backups found[/]")
        sys.exit(EXIT_CODE_PASS)

    table = Table(title="Pricing Backups")
    table.add_column("Created", no_wrap=True)
    table.add_column("Filename", overflow="fold")
    table.add_column("Size", justify="right", no_wrap=True)
    for backup in items:
        table.add_row(
            backup.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            backup.filename,
            f"{backup.size / 1024:.2f} KB",
        )
    console.print(table)


@app.command()
def validate(path: str = typer.Argument(..., help="Candidate pricing JSON file")):
    """Validate a pricing document without installing it."""
    # ValueError covers malformed JSON and bytes that are not UTF-8
    try:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error reading {escape(path)}:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAIL)

    try:
        validate_pricing_document(document)
    except PricingValidationError as e:
        console.print(f"[red]Invalid pricing document:[/] {escape(e.message)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print("[green]✓[/] Pricing document is valid")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(5000, "--port", "-p", help="Bind port"),
    log_level: str = typer.Option("info", "--log-level", help="Logging level"),
    config: Optional[str] = ConfigOption,
):
    """Run the HTTP API."""
    import uvicorn

    from cakecraft.api.app import create_app

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(load_settings(config)), host=host, port=port, log_level=log_level.lower())


def _display_breakdown(breakdown):
    """Display a price breakdown in a clean, financial format."""
    console.print("\n[bold]Cake Price Breakdown[/bold]")
    console.print("-" * 40)

    lines = [
        ("Base", breakdown.base_price),
        ("Extra layers", breakdown.layer_price),
        ("Flavors", breakdown.flavor_price),
        ("Shape", breakdown.shape_price),
        ("Decorations", breakdown.decoration_total),
        ("Icing", breakdown.icing_price),
        ("Dietary", breakdown.dietary_upcharge),
        ("Template", breakdown.template_price),
    ]
    for label, amount in lines:
        if amount:
            console.print(f"{label}: {format_price(amount)}")

    console.print(f"Cakes: {breakdown.cake_quantity}")
    console.print(f"[bold]Total:[/bold] {format_price(breakdown.total_price)}")


if __name__ == "__main__":
    app()
