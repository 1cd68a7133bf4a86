"""Text and CSV renderings of a ledger and its settlement results."""

from datetime import date

from .engine import participant_breakdown, summarize
from .models import LedgerSnapshot, SettlementResults

RULE = "=" * 50

EXPORT_FILENAMES = {
    "json": "bill-splitter-data-{date}.json",
    "text": "bill-splitter-results.txt",
    "results-csv": "bill-splitter-results-{date}.csv",
    "bills-csv": "bill-splitter-bills-{date}.csv",
}


def format_money(amount: float, currency_symbol: str = "$") -> str:
    """Format an amount with two decimals, sign before the currency symbol."""
    sign = "-" if amount < 0 and round(abs(amount), 2) != 0 else ""
    return f"{sign}{currency_symbol}{abs(amount):.2f}"


def results_to_text(
    snapshot: LedgerSnapshot,
    results: SettlementResults,
    currency_symbol: str = "$",
) -> str:
    """
    Render the human-readable results report.

    Sections: SUMMARY, BILLS BREAKDOWN and PARTICIPANT RESULTS.
    """
    summary = summarize(results)
    names = results.participant_names

    def money(amount: float) -> str:
        return format_money(amount, currency_symbol)

    lines = ["BILL SPLITTER RESULTS", RULE, ""]

    lines.append("SUMMARY:")
    lines.append(f"Total bills: {money(results.total_amount)}")
    lines.append(f"Number of participants: {results.participant_count}")
    lines.append(f"Number of bills: {results.expense_count}")
    lines.append(f"Average per person: {money(summary.average_per_person)}")
    lines.append(f"Balanced participants: {summary.balanced_count}")
    lines.append("")

    lines.append("BILLS BREAKDOWN:")
    for position, expense in enumerate(snapshot.expenses, start=1):
        shared_names = [
            names[index] if index < len(names) and names[index] else f"P{index + 1}"
            for index, shared in enumerate(expense.share_mask)
            if shared
        ]
        lines.append("")
        lines.append(f"Bill {position}:")
        lines.append(f"  Paid by: {snapshot.payer_name(expense)}")
        lines.append(f"  Amount: {money(expense.amount)}")
        lines.append(f"  Notes: {expense.note or 'No notes'}")
        lines.append(f"  Date Added: {expense.created_at.date().isoformat()}")
        lines.append(f"  Participants: {', '.join(shared_names)}")

    lines.extend(["", RULE, ""])

    lines.append("PARTICIPANT RESULTS:")
    for index, name in enumerate(names):
        breakdown = participant_breakdown(snapshot, results, index)
        lines.append("")
        lines.append(f"{name}:")
        lines.append(f"  Total paid: {money(breakdown.paid)}")
        lines.append(f"  Total owed: {money(breakdown.owed)}")
        lines.append(f"  Balance: {money(breakdown.balance)}")

        if breakdown.transfers_out:
            lines.append("  Owes to:")
            for transfer in breakdown.transfers_out:
                lines.append(f"    {transfer.recipient}: {money(transfer.amount)}")

        if breakdown.transfers_in:
            lines.append("  Owed by:")
            for transfer in breakdown.transfers_in:
                lines.append(f"    {transfer.sender}: {money(transfer.amount)}")

    return "\n".join(lines) + "\n"


def _quote(value: str) -> str:
    # csv.writer cannot quote every text column while leaving the
    # two-decimal amount strings bare
    return '"' + value.replace('"', '""') + '"'


def results_to_csv(results: SettlementResults) -> str:
    """Render per-participant totals as CSV."""
    rows = ["Participant,Total Paid,Total Owed,Balance"]
    for index, name in enumerate(results.participant_names):
        rows.append(
            f"{_quote(name)},"
            f"{results.total_paid[index]:.2f},"
            f"{results.total_owed[index]:.2f},"
            f"{results.balances[index]:.2f}"
        )
    return "\n".join(rows) + "\n"


def expenses_to_csv(snapshot: LedgerSnapshot) -> str:
    """Render the expense list as CSV, one row per expense."""
    names = snapshot.participant_names
    rows = ["Date,Who Paid,Amount,Notes,Participants"]
    for expense in snapshot.expenses:
        shared_names = [
            names[index]
            for index, shared in enumerate(expense.share_mask)
            if shared and index < len(names) and names[index]
        ]
        rows.append(
            f"{_quote(expense.created_at.date().isoformat())},"
            f"{_quote(snapshot.payer_name(expense))},"
            f"{expense.amount:.2f},"
            f"{_quote(expense.note)},"
            f"{_quote('; '.join(shared_names))}"
        )
    return "\n".join(rows) + "\n"


def default_export_filename(kind: str, on: date | None = None) -> str:
    """
    Default file name for an export.

    Args:
        kind: One of ``json``, ``text``, ``results-csv``, ``bills-csv``
        on: Date stamped into the name (defaults to today)

    Raises:
        ValueError: If ``kind`` is unknown
    """
    try:
        template = EXPORT_FILENAMES[kind]
    except KeyError:
        raise ValueError(f"Unknown export kind: {kind}") from None
    return template.format(date=(on or date.today()).isoformat())
