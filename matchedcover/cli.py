"""MatchedCover CLI — command-line interface for the carrier integration service.

Provides commands for listing eligible carriers, estimating premiums offline,
running multi-carrier quotes from a request file, and serving the HTTP API.
Uses Typer for argument parsing and Rich for formatted terminal output.

Usage::

    matchedcover --help
    matchedcover carriers --product auto --state OH
    matchedcover estimate --carrier geico --dob 1994-03-12 --vehicle-year 2019
    matchedcover quote request.json
    matchedcover serve --port 8002
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from matchedcover.config import settings

# ---------------------------------------------------------------------------
# App & console setup
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="matchedcover",
    help="MatchedCover CLI — multi-carrier insurance quoting.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True, style="bold red")

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("matchedcover.cli")

# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------


def _run(coro):
    """Execute a coroutine from synchronous CLI context."""
    return asyncio.run(coro)


def _money(value: float) -> str:
    return f"${value:,.0f}"


# ---------------------------------------------------------------------------
# Command: carriers
# ---------------------------------------------------------------------------


@app.command("carriers")
def carriers(
    product: str = typer.Option("auto", "--product", "-p", help="Product type (auto, home, ...)"),
    state: str = typer.Option(..., "--state", "-s", help="State code (e.g. OH, TX)"),
) -> None:
    """List carriers writing a product in a state.

    Examples:

      matchedcover carriers --state OH

      matchedcover carriers --product home --state TX
    """
    from matchedcover.carriers import CarrierRegistry

    eligible = CarrierRegistry.default(settings).get_available_carriers(product, state)
    if not eligible:
        console.print(f"[yellow]No carriers write {product} in {state.upper()}.[/yellow]")
        return

    table = Table(title=f"Carriers — {product} | {state.upper()}", box=box.ROUNDED)
    table.add_column("ID", style="dim")
    table.add_column("Carrier", style="cyan")
    table.add_column("Multiplier", justify="right")
    table.add_column("Binding", justify="center")
    table.add_column("Claims", justify="center")
    table.add_column("Discounts")

    for carrier in eligible:
        offered = carrier.product(product)
        table.add_row(
            carrier.carrier_id,
            carrier.name,
            f"{carrier.premium_multiplier:.2f}",
            "yes" if carrier.binding_capabilities else "no",
            "yes" if carrier.claims_support else "no",
            ", ".join(offered.discounts_available) if offered else "",
        )

    console.print(table)


# ---------------------------------------------------------------------------
# Command: estimate
# ---------------------------------------------------------------------------


@app.command("estimate")
def estimate(
    carrier_id: str = typer.Option(..., "--carrier", "-c", help="Carrier id (e.g. geico)"),
    dob: str = typer.Option(..., "--dob", help="Applicant date of birth (YYYY-MM-DD)"),
    vehicle_year: Optional[int] = typer.Option(None, "--vehicle-year", help="Vehicle model year"),
    product: str = typer.Option("auto", "--product", "-p", help="Product type"),
    as_of: Optional[str] = typer.Option(None, "--as-of", help="Reference date (YYYY-MM-DD)"),
) -> None:
    """Estimate an annual premium without calling the carrier.

    Examples:

      matchedcover estimate --carrier geico --dob 1995-06-01 --vehicle-year 2020
    """
    from matchedcover.carriers import CarrierRegistry
    from matchedcover.quotes.estimator import (
        EVEN_SPLIT_RATIOS,
        INSTALLMENT_RATIOS,
        estimate_premium,
        premium_breakdown,
    )

    carrier = CarrierRegistry.default(settings).get(carrier_id)
    if carrier is None:
        err_console.print(f"Unknown carrier: {carrier_id}")
        raise typer.Exit(1)

    try:
        birth_date = date.fromisoformat(dob)
        reference = date.fromisoformat(as_of) if as_of else None
    except ValueError:
        err_console.print("Invalid date format. Use YYYY-MM-DD.")
        raise typer.Exit(1)

    result = estimate_premium(
        carrier, birth_date, vehicle_year=vehicle_year, product_type=product, as_of=reference
    )
    installments = premium_breakdown(result.annual, INSTALLMENT_RATIOS)
    fallback = premium_breakdown(result.annual, EVEN_SPLIT_RATIOS)

    table = Table(title=f"Premium Estimate — {carrier.name}", box=box.SIMPLE)
    table.add_column("Factor", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Base premium", _money(result.base_premium))
    table.add_row("Carrier factor", f"×{result.carrier_factor:.2f}")
    table.add_row("Applicant age", f"{result.applicant_age} (×{result.age_factor:.2f})")
    if result.vehicle_age is not None:
        table.add_row("Vehicle age", f"{result.vehicle_age} (×{result.vehicle_factor:.2f})")
    table.add_row("Annual", f"[green]{_money(result.annual)}[/green]")
    table.add_row("Semi-annual", _money(installments.semi_annual))
    table.add_row("Quarterly", f"{_money(installments.quarterly)} (fallback {_money(fallback.quarterly)})")
    table.add_row("Monthly", f"{_money(installments.monthly)} (fallback {_money(fallback.monthly)})")

    console.print(table)


# ---------------------------------------------------------------------------
# Command: quote
# ---------------------------------------------------------------------------


@app.command("quote")
def quote(
    request_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Quote request JSON"),
    carrier_id: Optional[str] = typer.Option(
        None, "--carrier", "-c", help="Quote a single carrier instead of all eligible ones"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON instead of a table"),
) -> None:
    """Request quotes for the applicant described in REQUEST_FILE.

    Examples:

      matchedcover quote request.json

      matchedcover quote request.json --carrier progressive --json
    """
    from matchedcover.errors import CarrierError
    from matchedcover.quotes.analysis import analyze_quotes
    from matchedcover.quotes.schemas import QuoteRequest
    from matchedcover.service import CarrierIntegrationService

    try:
        request = QuoteRequest.model_validate(json.loads(request_file.read_text(encoding="utf-8")))
    except (ValueError, ValidationError) as exc:
        err_console.print(f"Invalid quote request: {exc}")
        raise typer.Exit(1)

    console.print(
        Panel(
            f"[bold cyan]MatchedCover Quote[/bold cyan]\n"
            f"Customer: [yellow]{request.customer_id}[/yellow]  "
            f"Product: [yellow]{request.product_type}[/yellow]  "
            f"State: [yellow]{request.applicant.address.state}[/yellow]",
            title="Quote",
            expand=False,
        )
    )

    async def _quote():
        service = CarrierIntegrationService(settings)
        try:
            if carrier_id:
                return [await service.get_carrier_quote(carrier_id, request)]
            return await service.get_multi_carrier_quotes(request)
        finally:
            await service.close()

    try:
        with console.status("[bold green]Requesting carrier quotes...[/bold green]"):
            quotes = _run(_quote())
    except CarrierError as exc:
        err_console.print(f"Quote failed: {exc}")
        logger.exception("CLI quote command failed")
        raise typer.Exit(1)

    if not quotes:
        console.print("[yellow]No carriers returned a quote for this request.[/yellow]")
        return

    if as_json:
        console.print_json(
            json.dumps([q.model_dump(mode="json", by_alias=True) for q in quotes])
        )
        return

    table = Table(title=f"Quotes — {request.product_type} | {request.applicant.address.state}", box=box.ROUNDED)
    table.add_column("Rank", style="dim", width=6)
    table.add_column("Carrier", style="cyan")
    table.add_column("Annual", justify="right")
    table.add_column("Monthly", justify="right")
    table.add_column("Valid Until")
    table.add_column("Source")

    for i, q in enumerate(quotes, 1):
        table.add_row(
            str(i),
            q.carrier_name,
            _money(q.premium.annual),
            _money(q.premium.monthly),
            q.valid_until.strftime("%Y-%m-%d %H:%M"),
            "[yellow]estimate[/yellow]" if q.is_fallback else "[green]carrier[/green]",
        )

    console.print(table)

    if len(quotes) > 1:
        analysis = analyze_quotes(quotes)
        console.print(
            f"Average {_money(analysis.average_premium)}  "
            f"Potential savings [green]{_money(analysis.potential_savings)}[/green]  "
            f"Best value [cyan]{analysis.best_value.carrier_name}[/cyan]"
        )


# ---------------------------------------------------------------------------
# Command: serve
# ---------------------------------------------------------------------------


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(settings.matchedcover_api_port, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the MatchedCover HTTP API with uvicorn."""
    import uvicorn

    console.print(f"[bold cyan]MatchedCover API[/bold cyan] on http://{host}:{port}")
    uvicorn.run(
        "matchedcover.api.routes:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
