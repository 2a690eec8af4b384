"""
CLI interface for Bolzoni pricing.

Provides command-line access to fee settings, quotes and the ledger.
"""

import json
import logging
import sqlite3
import sys
from datetime import date
from decimal import Decimal
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from bolzoni_pricing.config.loader import ConfigurationSnapshot, load_pricing_config
from bolzoni_pricing.core.fee_schedule import SettlementSpeed, resolve_fee, FeesNotConfigured
from bolzoni_pricing.core.ledger import build_purchase_payables
from bolzoni_pricing.core.quote import quote_event
from bolzoni_pricing.storage.db import DEFAULT_DB_PATH
from bolzoni_pricing.storage.repository import (
    get_repository,
    initialize_schema,
    insert_transactions,
)
from bolzoni_pricing.utils.logger import setup_logging

app = typer.Typer()
settings_app = typer.Typer(help="Show and edit pricing settings.")
app.add_typer(settings_app, name="settings")
console = Console()
logger = logging.getLogger(__name__)

EXIT_CODE_OK = 0
EXIT_CODE_FAIL = 1


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
):
    """Bolzoni event pricing CLI."""
    setup_logging(log_level)
    if ctx.invoked_subcommand is None:
        console.print("Bolzoni pricing - Use --help to see available commands")


@app.command()
def init(db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path")):
    """Initialize the settings and ledger database."""
    try:
        initialize_schema(db)
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_OK)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@settings_app.command("show")
def settings_show(db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path")):
    """List stored settings."""
    try:
        settings = get_repository(db).get_settings()
    except sqlite3.OperationalError as e:
        console.print(f"[red]Error:[/] {e}. Run `bolzoni-pricing init` first.")
        sys.exit(EXIT_CODE_FAIL)

    if not settings:
        console.print("[dim]No settings stored, defaults apply.[/]")
        sys.exit(EXIT_CODE_OK)

    table = Table(title="Settings")
    table.add_column("Key")
    table.add_column("Value")
    for key, value in settings.items():
        table.add_row(key, value)
    console.print(table)


@settings_app.command("set")
def settings_set(
    key: str = typer.Argument(..., help="Setting key, e.g. fee_type or km_value"),
    value: str = typer.Argument(..., help="New value; custom_fees takes a JSON object"),
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path"),
):
    """Store a setting."""
    try:
        parsed = json.loads(value) if key == "custom_fees" else value
        get_repository(db).upsert_setting(key, parsed)
        console.print(f"[green]✓[/] {key} saved")
    except json.JSONDecodeError:
        console.print("[red]Error:[/] custom_fees must be a JSON object")
        sys.exit(EXIT_CODE_FAIL)
    except (ValueError, sqlite3.OperationalError) as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def fee(
    method: str = typer.Option(..., "--method", "-m", help="cash, pix, credit_card or debit_card"),
    card_type: Optional[str] = typer.Option(None, "--card-type", help="visa_master or others (debit)"),
    installments: str = typer.Option("1", "--installments", "-n", help="Installment count"),
    instant: bool = typer.Option(False, "--instant", help="Instant settlement rates"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML config instead of the database"),
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path"),
):
    """Resolve the card fee and monthly interest for a payment choice."""
    try:
        snapshot = _load_snapshot(config, db)
        resolution = resolve_fee(
            snapshot, method, card_type, installments,
            SettlementSpeed.INSTANT if instant else SettlementSpeed.STANDARD,
        )
    except FeesNotConfigured as e:
        console.print(f"[yellow]{e}[/]")
        sys.exit(EXIT_CODE_FAIL)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"Fee type: {resolution.fee_type}")
    console.print(f"Fee: {resolution.fee_percentage}%")
    console.print(f"Monthly interest: {resolution.monthly_interest_rate}%")
    console.print(f"Installment interest: {'yes' if resolution.has_installment_interest else 'no'}")


@app.command()
def quote(
    contract_value: str = typer.Option(..., "--contract-value", "-v", help="Contract value"),
    entry: str = typer.Option("0", "--entry", "-e", help="Entry paid up front"),
    method: str = typer.Option(..., "--method", "-m", help="cash, pix, credit_card or debit_card"),
    card_type: Optional[str] = typer.Option(None, "--card-type", help="visa_master or others (debit)"),
    installments: str = typer.Option("1", "--installments", "-n", help="Installment count"),
    instant: bool = typer.Option(False, "--instant", help="Instant settlement rates"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML config instead of the database"),
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path"),
):
    """Quote the payment of an event."""
    try:
        snapshot = _load_snapshot(config, db)
        result = quote_event(
            snapshot, contract_value, entry, method, card_type, installments,
            SettlementSpeed.INSTANT if instant else SettlementSpeed.STANDARD,
        )
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    _display_quote(result)


@app.command()
def purchase(
    description: str = typer.Option(..., "--description", "-d", help="What was bought"),
    supplier: str = typer.Option(..., "--supplier", "-s", help="Supplier name"),
    amount: str = typer.Option(..., "--amount", "-a", help="Purchase total"),
    purchase_date: str = typer.Option(..., "--date", help="Purchase date (YYYY-MM-DD)"),
    installments: Optional[int] = typer.Option(None, "--installments", "-n", help="Installment count"),
    first_date: Optional[str] = typer.Option(None, "--first-date", help="First installment due date (YYYY-MM-DD)"),
    notes: Optional[str] = typer.Option(None, "--notes", help="Notes copied to every payable"),
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path"),
):
    """Record a purchase as one or more payables."""
    try:
        payables = build_purchase_payables(
            description=description,
            supplier=supplier,
            amount=amount,
            purchase_date=date.fromisoformat(purchase_date),
            installments=installments,
            first_installment_date=date.fromisoformat(first_date) if first_date else None,
            notes=notes,
        )
        insert_transactions(payables, db)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    table = Table(title="Payables recorded")
    table.add_column("Due date")
    table.add_column("Description")
    table.add_column("Amount", justify="right")
    for payable in payables:
        table.add_row(
            payable.due_date.strftime("%d/%m/%Y"),
            payable.description,
            _format_currency(payable.amount),
        )
    console.print(table)


def _load_snapshot(config_path: Optional[str], db_path: str) -> ConfigurationSnapshot:
    """Read configuration from a YAML file, or from stored settings."""
    if config_path:
        return load_pricing_config(config_path)
    try:
        return get_repository(db_path).load_snapshot()
    except sqlite3.OperationalError as e:
        if "no such table" in str(e).lower():
            logger.warning("Settings table missing, using default configuration")
            return ConfigurationSnapshot()
        raise


def _format_currency(amount: Decimal) -> str:
    """Format an amount as Brazilian reais, e.g. R$ 1.234,56."""
    text = f"{amount:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"R$ {text}"


def _display_quote(result) -> None:
    """Display a quote as a payment breakdown."""
    pricing = result.pricing
    console.print("\n[bold]Payment Quote[/bold]")
    console.print("-" * 40)

    if not result.fees_configured:
        console.print("[yellow]Custom fees are not configured; quoting without fees.[/]")

    if not pricing.show_breakdown:
        console.print(f"Total: {_format_currency(pricing.final_total)}")
        console.print("[dim]Nothing left to finance after the entry.[/]")
        return

    table = Table(show_header=False)
    table.add_column("Item")
    table.add_column("Value", justify="right")
    table.add_row(f"Fee ({result.resolution.fee_percentage}%)", _format_currency(pricing.fee_amount))
    table.add_row("Value to finance", _format_currency(pricing.value_to_finance))
    table.add_row(
        "Installments",
        f"{pricing.installment_count}x {_format_currency(pricing.installment_amount)}",
    )
    if result.resolution.has_installment_interest:
        table.add_row(
            f"Interest ({result.resolution.monthly_interest_rate}% a.m.)",
            _format_currency(pricing.interest_amount),
        )
    table.add_row("Total financed", _format_currency(pricing.total_financed))
    table.add_row("[bold]Final total[/bold]", f"[bold]{_format_currency(pricing.final_total)}[/bold]")
    console.print(table)


if __name__ == "__main__":
    app()
