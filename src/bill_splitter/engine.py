"""Core settlement logic for computing balances and settle-up transfers."""

import logging
from dataclasses import dataclass

from .models import (
    LedgerSnapshot,
    ParticipantBreakdown,
    SettlementResults,
    SettlementSummary,
    Transfer,
    ValidationReport,
)

logger = logging.getLogger(__name__)

# Balances within this many currency units of zero count as settled
TOLERANCE = 0.01

MIN_PARTICIPANTS = 2
MAX_PARTICIPANTS = 20


@dataclass
class _Party:
    """A creditor or debtor with the amount still to settle."""

    name: str
    remaining: float


def compute_results(snapshot: LedgerSnapshot) -> SettlementResults:
    """
    Compute totals, balances and the settle-up plan for a ledger snapshot.

    Steps:
    1. Start every participant at zero paid and zero owed
    2. For each positive expense, credit the payer and split the amount
       evenly across the participants sharing it
    3. Balance = paid - owed
    4. Greedily match debtors to creditors

    Expenses with a non-positive amount contribute nothing. Expenses shared
    by nobody still count towards the payer's total paid; ``validate_inputs``
    reports them so callers do not present such results as valid.

    Args:
        snapshot: Ledger snapshot to settle (never mutated)

    Returns:
        Settlement results

    Raises:
        ValueError: If an expense references a payer outside the participant set
            or its share mask does not match the participant count
    """
    count = snapshot.participant_count
    total_paid = [0.0] * count
    total_owed = [0.0] * count

    for expense in snapshot.expenses:
        if expense.amount <= 0:
            continue

        if expense.payer >= count:
            raise ValueError(
                f"Expense {expense.id} is paid by participant {expense.payer}, "
                f"but only {count} participants exist"
            )
        if len(expense.share_mask) != count:
            raise ValueError(
                f"Expense {expense.id} has {len(expense.share_mask)} share entries, "
                f"expected {count}"
            )
        total_paid[expense.payer] += expense.amount

        shared_count = expense.shared_count
        if shared_count > 0:
            share = expense.amount / shared_count
            for index, shared in enumerate(expense.share_mask):
                if shared:
                    total_owed[index] += share

    balances = [paid - owed for paid, owed in zip(total_paid, total_owed)]
    total_amount = sum(total_paid)

    transfers = generate_transfers(balances, snapshot.participant_names)

    logger.debug(
        f"Settled {len(snapshot.expenses)} expenses across {count} participants "
        f"with {len(transfers)} transfers (total: {total_amount:.2f})"
    )

    return SettlementResults(
        total_paid=total_paid,
        total_owed=total_owed,
        balances=balances,
        total_amount=total_amount,
        participant_count=count,
        participant_names=list(snapshot.participant_names),
        transfers=transfers,
        expense_count=len(snapshot.expenses),
    )


def generate_transfers(balances: list[float], names: list[str]) -> list[Transfer]:
    """
    Convert net balances into settle-up transfers.

    Greedy largest-first matching: the largest remaining debtor pays the
    largest remaining creditor the smaller of their two remainders. Sorting
    is stable, so equal balances keep participant order. The result has at
    most ``creditors + debtors - 1`` transfers; it is deterministic but not
    guaranteed to be globally minimal.

    Args:
        balances: Net balance per participant (positive = is owed money)
        names: Display name per participant

    Returns:
        Ordered list of transfers
    """
    creditors: list[_Party] = []
    debtors: list[_Party] = []
    for index, balance in enumerate(balances):
        if balance > TOLERANCE:
            creditors.append(_Party(names[index], balance))
        elif balance < -TOLERANCE:
            debtors.append(_Party(names[index], abs(balance)))

    creditors.sort(key=lambda party: party.remaining, reverse=True)
    debtors.sort(key=lambda party: party.remaining, reverse=True)

    transfers = []
    creditor_idx = 0
    debtor_idx = 0

    while creditor_idx < len(creditors) and debtor_idx < len(debtors):
        creditor = creditors[creditor_idx]
        debtor = debtors[debtor_idx]

        amount = min(creditor.remaining, debtor.remaining)
        if amount > TOLERANCE:
            transfers.append(
                Transfer(sender=debtor.name, recipient=creditor.name, amount=amount)
            )
            creditor.remaining -= amount
            debtor.remaining -= amount

        if creditor.remaining < TOLERANCE:
            creditor_idx += 1
        if debtor.remaining < TOLERANCE:
            debtor_idx += 1

    return transfers


def validate_inputs(snapshot: LedgerSnapshot) -> ValidationReport:
    """
    Check a snapshot before settlement.

    Errors block the results from being presented as valid; warnings do not.
    This never raises.
    """
    errors = []
    warnings = []

    if snapshot.participant_count < MIN_PARTICIPANTS:
        errors.append(f"At least {MIN_PARTICIPANTS} participants are required")

    if snapshot.participant_count > MAX_PARTICIPANTS:
        warnings.append("Large number of participants may make calculations complex")

    if not snapshot.expenses:
        errors.append("At least one expense is required")

    for position, expense in enumerate(snapshot.expenses, start=1):
        if expense.shared_count == 0:
            errors.append(f"Expense {position} has no participants selected")

    for position, expense in enumerate(snapshot.expenses, start=1):
        if expense.amount < 0:
            errors.append(f"Expense {position} has a negative amount")

    return ValidationReport(valid=not errors, errors=errors, warnings=warnings)


def summarize(results: SettlementResults) -> SettlementSummary:
    """Derive aggregate statistics from settlement results."""
    count = results.participant_count
    average = results.total_amount / count if count > 0 else 0.0

    return SettlementSummary(
        total_amount=results.total_amount,
        average_per_person=average,
        max_balance=max(results.balances, default=0.0),
        min_balance=min(results.balances, default=0.0),
        balanced_count=sum(1 for b in results.balances if abs(b) < TOLERANCE),
        participant_count=count,
        expense_count=results.expense_count,
    )


def participant_breakdown(
    snapshot: LedgerSnapshot, results: SettlementResults, index: int
) -> ParticipantBreakdown:
    """
    Build the detailed settlement view for one participant.

    Transfers are matched to the participant by display name, so two
    participants sharing a name will see each other's transfers.

    Args:
        snapshot: The snapshot the results were computed from
        results: Settlement results
        index: Participant index

    Returns:
        Participant breakdown

    Raises:
        IndexError: If ``index`` is outside the participant set
    """
    if not 0 <= index < results.participant_count:
        raise IndexError(f"Participant index {index} out of range")

    name = snapshot.participant_names[index]
    balance = results.balances[index]

    return ParticipantBreakdown(
        index=index,
        name=name,
        paid=results.total_paid[index],
        owed=results.total_owed[index],
        balance=balance,
        expenses_paid=[e for e in snapshot.expenses if e.payer == index],
        expenses_shared=[e for e in snapshot.expenses if e.shared_by(index)],
        transfers_in=[t for t in results.transfers if t.recipient == name],
        transfers_out=[t for t in results.transfers if t.sender == name],
        is_balanced=abs(balance) < TOLERANCE,
    )
