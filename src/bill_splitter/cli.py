"""CLI for Bill Splitter using Typer."""

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import load_settings
from .models import ParticipantBreakdown, SettlementResults, SortKey
from .reports import default_export_filename
from .service import BillSplitterService
from .storage import SnapshotFile
from .store import LedgerStore

app = typer.Typer(
    name="bill-splitter",
    help="Split shared group expenses and work out who pays whom",
    no_args_is_help=True,
)

console = Console()


class ExportKind(str, Enum):
    TEXT = "text"
    RESULTS_CSV = "results-csv"
    BILLS_CSV = "bills-csv"
    JSON = "json"


def setup_logging(verbose: bool = False, level: str = "INFO"):
    """Setup logging configuration."""
    log_level = (
        logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    )
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _open_service(verbose: bool) -> BillSplitterService:
    """Load settings and the ledger file into a ready-to-use service."""
    settings = load_settings()
    setup_logging(verbose, settings.log_level)
    service = BillSplitterService(
        settings, LedgerStore(), SnapshotFile(settings.data_path)
    )
    service.load()
    return service


def _fail(error: Exception, verbose: bool) -> NoReturn:
    console.print(f"\n[bold red]Error:[/bold red] {escape(str(error))}")
    if verbose:
        raise error
    sys.exit(1)


def _parse_share(value: str, participant_count: int) -> list[bool]:
    """Turn a comma-separated list of 1-based participant numbers into a mask."""
    mask = [False] * participant_count
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit() or not 1 <= int(part) <= participant_count:
            raise typer.BadParameter(
                f"'{part}' is not a participant number "
                f"between 1 and {participant_count}"
            )
        mask[int(part) - 1] = True
    return mask


def format_money(amount: float, use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: ($85.02)
    Positive amounts have spaces:      $85.02
    """
    abs_amount = abs(amount)
    if amount < 0 and round(abs_amount, 2) != 0:
        if use_color:
            return f"($[red]{abs_amount:,.2f}[/red])"
        return f"(${abs_amount:,.2f})"
    if use_color:
        return f" [green]${abs_amount:,.2f}[/green] "
    return f" ${abs_amount:,.2f} "


# ============================================================================
# Ledger setup
# ============================================================================


@app.command()
def init(
    demo: bool = typer.Option(
        True, "--demo/--empty", help="Seed the demo expenses or start empty"
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing data"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Create a new ledger data file."""
    try:
        settings = load_settings()
        setup_logging(verbose, settings.log_level)
        storage = SnapshotFile(settings.data_path)

        if storage.exists() and not force:
            console.print(
                f"[yellow]Data file already exists at {storage.path}. "
                f"Use --force to overwrite.[/yellow]"
            )
            return

        store = LedgerStore.with_demo_data() if demo else LedgerStore()
        storage.save(store)

        console.print(f"[green]✓ Created ledger at {storage.path}[/green]")
    except Exception as e:
        _fail(e, verbose)


@app.command()
def participants(
    count: int = typer.Argument(..., help="New number of participants (2-20)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Change the number of participants."""
    try:
        service = _open_service(verbose)
        service.store.resize_participants(count)
        service.save()
        console.print(f"[green]✓ Now {count} participants[/green]")
    except Exception as e:
        _fail(e, verbose)


@app.command()
def rename(
    number: int = typer.Argument(..., help="Participant number (starting at 1)"),
    name: str = typer.Argument(..., help="New display name (blank resets it)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Rename a participant."""
    try:
        service = _open_service(verbose)
        if not service.store.rename_participant(number - 1, name):
            console.print(f"[yellow]No participant number {number}.[/yellow]")
            sys.exit(1)
        service.save()
        new_name = service.store.participant_names[number - 1]
        console.print(
            f"[green]✓ Participant {number} is now {escape(new_name)}[/green]"
        )
    except Exception as e:
        _fail(e, verbose)


# ============================================================================
# Expense editing
# ============================================================================


@app.command()
def add(
    amount: float = typer.Option(0.0, "--amount", "-a", help="Amount paid"),
    payer: int = typer.Option(1, "--payer", "-p", help="Participant number who paid"),
    note: str = typer.Option("", "--note", "-n", help="Free-text note"),
    share: Optional[str] = typer.Option(
        None, "--share", "-s", help="Comma-separated participant numbers (default: all)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add an expense."""
    try:
        service = _open_service(verbose)
        count = service.store.participant_count
        mask = _parse_share(share, count) if share is not None else None
        expense = service.store.add_expense(
            payer=payer - 1, amount=amount, note=note, share_mask=mask
        )
        service.save()
        console.print(f"[green]✓ Added expense {expense.id}[/green]")
    except typer.BadParameter:
        raise
    except Exception as e:
        _fail(e, verbose)


@app.command()
def update(
    expense_id: str = typer.Argument(..., help="Expense id"),
    amount: Optional[float] = typer.Option(None, "--amount", "-a", help="Amount paid"),
    payer: Optional[int] = typer.Option(
        None, "--payer", "-p", help="Participant number who paid"
    ),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Free-text note"),
    share: Optional[str] = typer.Option(
        None, "--share", "-s", help="Comma-separated participant numbers"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Update fields of an existing expense."""
    try:
        service = _open_service(verbose)
        updates: dict = {}
        if amount is not None:
            updates["amount"] = amount
        if payer is not None:
            updates["payer"] = payer - 1
        if note is not None:
            updates["note"] = note
        if share is not None:
            updates["share_mask"] = _parse_share(share, service.store.participant_count)

        if not service.store.update_expense(expense_id, **updates):
            console.print(f"[yellow]No expense with id {escape(expense_id)}.[/yellow]")
            sys.exit(1)
        service.save()
        console.print(f"[green]✓ Updated expense {escape(expense_id)}[/green]")
    except typer.BadParameter:
        raise
    except Exception as e:
        _fail(e, verbose)


@app.command()
def remove(
    expense_id: str = typer.Argument(..., help="Expense id"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Remove an expense."""
    try:
        service = _open_service(verbose)
        if not service.store.remove_expense(expense_id):
            console.print(f"[yellow]No expense with id {escape(expense_id)}.[/yellow]")
            sys.exit(1)
        service.save()
        console.print(f"[green]✓ Removed expense {escape(expense_id)}[/green]")
    except Exception as e:
        _fail(e, verbose)


@app.command()
def move(
    expense_id: str = typer.Argument(..., help="Expense id"),
    position: int = typer.Argument(..., help="New position (starting at 1)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Move an expense to a new position in the list."""
    try:
        service = _open_service(verbose)
        if not service.store.move_expense(expense_id, position - 1):
            console.print(
                f"[yellow]Cannot move {escape(expense_id)} "
                f"to position {position}.[/yellow]"
            )
            sys.exit(1)
        service.save()
        console.print(f"[green]✓ Moved expense to position {position}[/green]")
    except Exception as e:
        _fail(e, verbose)


@app.command()
def sort(
    key: SortKey = typer.Argument(..., help="Sort column"),
    descending: bool = typer.Option(False, "--desc", help="Sort in descending order"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Sort the expense list."""
    try:
        service = _open_service(verbose)
        service.store.sort_expenses(key, "desc" if descending else "asc")
        service.save()
        console.print(f"[green]✓ Sorted expenses by {key.value}[/green]")
    except Exception as e:
        _fail(e, verbose)


@app.command()
def group(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Group expenses by who paid."""
    try:
        service = _open_service(verbose)
        service.store.group_by_payer()
        service.save()
        console.print("[green]✓ Grouped expenses by payer[/green]")
    except Exception as e:
        _fail(e, verbose)


@app.command()
def ungroup(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Restore chronological order after grouping."""
    try:
        service = _open_service(verbose)
        if not service.store.ungroup_expenses():
            console.print("[yellow]Expenses are not grouped.[/yellow]")
            return
        service.save()
        console.print("[green]✓ Restored chronological order[/green]")
    except Exception as e:
        _fail(e, verbose)


@app.command(name="list")
def list_expenses(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show participants and expenses."""
    try:
        service = _open_service(verbose)
        snapshot = service.store.snapshot()

        console.print("\n[bold]Participants:[/bold]")
        for index, name in enumerate(snapshot.participant_names, start=1):
            console.print(f"  {index}. {escape(name)}")
        console.print()

        title = "Expenses (grouped by payer)" if snapshot.is_grouped else "Expenses"
        table = Table(title=title, show_header=True, header_style="bold magenta")
        table.add_column("#", style="dim", justify="right")
        table.add_column("ID", style="dim")
        table.add_column("Date")
        table.add_column("Paid by", style="cyan")
        table.add_column("Amount", justify="right")
        table.add_column("Note")
        table.add_column("Shared by", style="yellow")

        for position, expense in enumerate(snapshot.expenses, start=1):
            shared = [
                snapshot.participant_names[index]
                for index, flag in enumerate(expense.share_mask)
                if flag
            ]
            table.add_row(
                str(position),
                expense.id,
                expense.created_at.date().isoformat(),
                escape(snapshot.payer_name(expense)),
                format_money(expense.amount),
                escape(expense.note),
                escape(", ".join(shared)) or "[red]nobody[/red]",
            )

        console.print(table)
    except Exception as e:
        _fail(e, verbose)


# ============================================================================
# Settlement
# ============================================================================


def display_results(results: SettlementResults):
    """Display balances and transfers in table format."""
    table = Table(title="Balances", show_header=True, header_style="bold magenta")
    table.add_column("Participant", style="cyan")
    table.add_column("Paid", justify="right")
    table.add_column("Owed", justify="right")
    table.add_column("Balance", justify="right")

    for index, name in enumerate(results.participant_names):
        table.add_row(
            escape(name),
            format_money(results.total_paid[index], use_color=False),
            format_money(results.total_owed[index], use_color=False),
            format_money(results.balances[index]),
        )
    console.print(table)

    if not results.transfers:
        console.print("\n[green]✓ Everyone is settled up[/green]")
        return

    transfers = Table(title="Settle Up", show_header=True, header_style="bold magenta")
    transfers.add_column("From", style="cyan")
    transfers.add_column("To", style="cyan")
    transfers.add_column("Amount", justify="right")
    for transfer in results.transfers:
        transfers.add_row(
            escape(transfer.sender),
            escape(transfer.recipient),
            format_money(transfer.amount, use_color=False),
        )
    console.print(transfers)


@app.command()
def settle(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Compute balances and who pays whom.

    Shows validation errors instead of results when the ledger is incomplete.
    """
    try:
        service = _open_service(verbose)
        report, results = service.calculate()

        for warning in report.warnings:
            console.print(f"[yellow]⚠️  {escape(warning)}[/yellow]")

        if results is None:
            console.print("\n[bold red]Cannot calculate results:[/bold red]")
            for error in report.errors:
                console.print(f"  • {escape(error)}")
            sys.exit(1)

        display_results(results)

        summary = service.summary(results)
        console.print("\n[bold]Summary:[/bold]")
        console.print(f"  Total: {format_money(summary.total_amount, use_color=False)}")
        console.print(
            f"  Average per person: "
            f"{format_money(summary.average_per_person, use_color=False)}"
        )
        console.print(
            f"  Balanced participants: {summary.balanced_count}"
            f"/{summary.participant_count}"
        )
    except Exception as e:
        _fail(e, verbose)


def display_breakdown(breakdown: ParticipantBreakdown):
    """Display one participant's settlement details."""
    console.print(f"\n[bold]{escape(breakdown.name)}[/bold]")
    console.print(f"  Total paid: {format_money(breakdown.paid, use_color=False)}")
    console.print(f"  Total owed: {format_money(breakdown.owed, use_color=False)}")
    console.print(f"  Balance: {format_money(breakdown.balance)}")
    console.print(f"  Paid for {len(breakdown.expenses_paid)} expenses")
    console.print(f"  Shares {len(breakdown.expenses_shared)} expenses")

    if breakdown.is_balanced:
        console.print("  [green]✓ Settled up[/green]")

    if breakdown.transfers_out:
        console.print("  Owes to:")
        for transfer in breakdown.transfers_out:
            console.print(
                f"    {escape(transfer.recipient)}: "
                f"{format_money(transfer.amount, use_color=False)}"
            )

    if breakdown.transfers_in:
        console.print("  Owed by:")
        for transfer in breakdown.transfers_in:
            console.print(
                f"    {escape(transfer.sender)}: "
                f"{format_money(transfer.amount, use_color=False)}"
            )


@app.command()
def show(
    number: int = typer.Argument(..., help="Participant number (starting at 1)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show one participant's settlement breakdown."""
    try:
        service = _open_service(verbose)
        if not 1 <= number <= service.store.participant_count:
            console.print(f"[yellow]No participant number {number}.[/yellow]")
            sys.exit(1)

        report, results = service.calculate()
        if results is None:
            console.print("\n[bold red]Cannot calculate results:[/bold red]")
            for error in report.errors:
                console.print(f"  • {escape(error)}")
            sys.exit(1)

        display_breakdown(service.breakdown(number - 1, results))
    except Exception as e:
        _fail(e, verbose)


# ============================================================================
# Import/export
# ============================================================================


@app.command()
def export(
    kind: ExportKind = typer.Argument(..., help="What to export"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output file ('-' for stdout)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Export results, bills or the raw ledger."""
    try:
        service = _open_service(verbose)

        renderers = {
            ExportKind.TEXT: service.export_text,
            ExportKind.RESULTS_CSV: service.export_results_csv,
            ExportKind.BILLS_CSV: service.export_bills_csv,
            ExportKind.JSON: service.export_snapshot,
        }
        content = renderers[kind]()

        if output is not None and str(output) == "-":
            typer.echo(content, nl=False)
            return

        target = output or Path(default_export_filename(kind.value))
        target.write_text(content, encoding="utf-8")
        console.print(f"[green]✓ Exported {kind.value} to {target}[/green]")
    except Exception as e:
        _fail(e, verbose)


@app.command(name="import")
def import_file(
    path: Path = typer.Argument(..., help="JSON snapshot to load"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Replace the ledger with a saved JSON snapshot.

    Invalid files are rejected and the existing data is left intact.
    """
    try:
        service = _open_service(verbose)
        SnapshotFile(path).load(service.store)
        service.save()

        summary = service.store.state_summary()
        console.print(
            f"[green]✓ Loaded {summary.participant_count} participants and "
            f"{summary.expense_count} expenses[/green]"
        )
    except Exception as e:
        _fail(e, verbose)


if __name__ == "__main__":
    app()
