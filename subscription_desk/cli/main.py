"""
CLI interface for Subscription Desk.

Drives the signup session from the command line.
"""

import asyncio
import logging
import sys
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from subscription_desk.config.loader import AppConfig, default_config, load_config
from subscription_desk.core.catalog import CatalogLoader
from subscription_desk.core.dedup import ALREADY_SUBSCRIBED_LABEL
from subscription_desk.core.lookup import SubscriptionLookup
from subscription_desk.core.notifications import Notification, NotificationLevel, Notifier
from subscription_desk.core.session import PaymentMethod, SignupSession
from subscription_desk.core.subscribe import SubscribeOutcome, SubscriptionService
from subscription_desk.sdk.gateway import TOKEN_KEY, RemoteGateway
from subscription_desk.storage.backends import KeyValueStorage, SqliteStorage
from subscription_desk.storage.ledger import LedgerCache

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


def _print_notification(notification: Notification) -> None:
    if notification.level == NotificationLevel.SUCCESS:
        console.print(f"[green]✓[/] {notification.message}")
    else:
        console.print(f"[red]✗[/] {notification.message}")


def _session_expired() -> None:
    console.print("[yellow]Session expired. Please log in again.[/]")


def _build_storage(config: AppConfig) -> KeyValueStorage:
    return SqliteStorage(config.ledger.db_path)


def _build_gateway(config: AppConfig, storage: KeyValueStorage) -> RemoteGateway:
    return RemoteGateway(
        base_url=config.gateway.base_url,
        storage=storage,
        timeout=config.gateway.timeout,
        on_unauthorized=_session_expired
    )


class _Context:
    """Wired components shared by the commands of one invocation."""

    def __init__(self, config: AppConfig):
        self.config = config
        self.notifier = Notifier(sink=_print_notification)
        self.storage = _build_storage(config)
        self.gateway = _build_gateway(config, self.storage)
        self.ledger = LedgerCache(self.storage, key=config.ledger.key)

    def session(self) -> SignupSession:
        service = SubscriptionService(
            self.gateway,
            self.ledger,
            self.notifier,
            due_days=self.config.ledger.due_days
        )
        return SignupSession(
            catalog=CatalogLoader(self.gateway, self.notifier),
            lookup=SubscriptionLookup(self.gateway, self.notifier),
            service=service
        )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        envvar="SUBSCRIPTION_DESK_TOKEN",
        help="Bearer token to store before calling the API"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging"
    )
):
    """Subscription Desk CLI."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)]
        )

    try:
        config = load_config(config_path) if config_path else default_config()
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error loading config:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    state = _Context(config)
    if token:
        state.storage.set_item(TOKEN_KEY, token)
    ctx.obj = state

    if ctx.invoked_subcommand is None:
        console.print("Subscription Desk - Use --help to see available commands")


@app.command()
def publications(ctx: typer.Context):
    """List publications available for subscription."""
    session = ctx.obj.session()
    asyncio.run(session.activate())

    if session.empty_message:
        console.print(session.empty_message)
        sys.exit(EXIT_CODE_PASS)

    table = Table(title="Publications")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Language")
    table.add_column("Monthly price", justify="right")
    for pub in session.publications:
        table.add_row(pub.id, pub.name, pub.language, _format_currency(pub.monthly_price))
    console.print(table)


@app.command()
def subscriptions(
    ctx: typer.Context,
    customer_name: str = typer.Argument(..., help="Customer name as registered")
):
    """Show the publications a customer is subscribed to."""
    state = ctx.obj
    session = state.session()

    async def _run():
        await session.activate()
        return await session.set_customer_name(customer_name)

    subs = asyncio.run(_run())
    if state.notifier.errors():
        sys.exit(EXIT_CODE_FAIL)

    if not subs:
        console.print(f"No subscriptions found for {customer_name}.")
        return

    names = {pub.id: pub.name for pub in session.publications}
    table = Table(title=f"Subscriptions of {customer_name}")
    table.add_column("Publication ID")
    table.add_column("Name")
    for sub in subs:
        table.add_row(sub.publication_id, names.get(sub.publication_id, "-"))
    console.print(table)


@app.command()
def subscribe(
    ctx: typer.Context,
    customer_name: str = typer.Argument(..., help="Name to subscribe under"),
    publication_id: str = typer.Argument(..., help="Publication to subscribe to"),
    method: PaymentMethod = typer.Option(
        PaymentMethod.QR,
        "--method",
        "-m",
        help="Payment method (display only)"
    )
):
    """Subscribe a customer to a publication and record the payment."""
    session = ctx.obj.session()

    async def _run() -> SubscribeOutcome:
        await session.activate()
        publication = session.find_publication(publication_id)
        if publication is None:
            console.print(session.empty_message or f"[red]✗[/] Unknown publication: {publication_id}")
            return SubscribeOutcome.REJECTED

        session.select(publication)
        session.choose_payment_method(method)
        await session.set_customer_name(customer_name)

        if not session.can_subscribe(publication):
            console.print(f"[yellow]{ALREADY_SUBSCRIBED_LABEL}[/] to {publication.name}")
            return SubscribeOutcome.REJECTED

        if method == PaymentMethod.QR:
            console.print(
                f"Scan the QR code to pay {_format_currency(publication.monthly_price)} "
                f"for {publication.name}."
            )
        else:
            console.print(
                f"Pay {_format_currency(publication.monthly_price)} in cash on delivery."
            )
        return await session.confirm()

    outcome = asyncio.run(_run())
    if outcome != SubscribeOutcome.COMMITTED:
        sys.exit(EXIT_CODE_FAIL)

    _display_ledger(ctx.obj.ledger)


@app.command()
def payments(ctx: typer.Context):
    """Show the local payment ledger."""
    try:
        _display_ledger(ctx.obj.ledger)
    except ValueError as e:
        console.print(f"[red]Error reading ledger:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command("clear-payments")
def clear_payments(ctx: typer.Context):
    """Remove every entry from the local payment ledger."""
    ctx.obj.ledger.clear()
    console.print("[green]✓[/] Payment ledger cleared")


def _format_currency(amount: float) -> str:
    """Format currency with two decimals."""
    return f"₹{amount:,.2f}"


def _format_date(value) -> str:
    return value.strftime("%Y-%m-%d") if value else "-"


def _display_ledger(ledger: LedgerCache) -> None:
    records = ledger.records()
    if not records:
        console.print("\n[dim]No payments recorded.[/]")
        return

    table = Table(title="Payments")
    table.add_column("ID")
    table.add_column("Subscription")
    table.add_column("Amount", justify="right")
    table.add_column("Due")
    table.add_column("Status")
    table.add_column("Paid")
    for record in records:
        table.add_row(
            record.id,
            record.subscription_name,
            _format_currency(record.amount),
            _format_date(record.due_date),
            record.status_value,
            _format_date(record.paid_date)
        )
    console.print(table)


if __name__ == "__main__":
    app()
