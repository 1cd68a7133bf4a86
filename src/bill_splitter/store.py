"""In-memory ledger of participants and shared expenses.

The store owns both collections and keeps them structurally consistent:
every expense always has one share entry per participant and a payer inside
the participant range. Each mutation completes before any change notice is
delivered, and subscribers are notified synchronously in subscription order.
"""

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .engine import MAX_PARTICIPANTS, MIN_PARTICIPANTS
from .exceptions import SnapshotImportError, ValidationError
from .models import (
    ChangeEvent,
    ChangeNotice,
    Expense,
    LedgerSnapshot,
    SavedState,
    SortDirection,
    SortKey,
    StateSummary,
    new_expense_id,
    placeholder_name,
    utc_now,
)

logger = logging.getLogger(__name__)

Subscriber = Callable[[ChangeNotice], None]

DEFAULT_PARTICIPANTS = ("Alice", "Bob", "Charlie", "Diana")
UPDATABLE_FIELDS = frozenset({"payer", "amount", "note", "share_mask", "created_at"})
REQUIRED_IMPORT_KEYS = ("participantCount", "participantNames", "bills")

_DEMO_DATE = datetime(2024, 1, 1, tzinfo=UTC)
_DEMO_EXPENSES = (
    (0, 100.0, "Dinner for everyone"),
    (1, 30.0, "Drinks"),
    (2, 40.0, "Dessert"),
    (3, 20.0, "Tip"),
)


def resize_mask(mask: list[bool], new_count: int) -> list[bool]:
    """Return a new share mask truncated or padded with ``True`` to ``new_count``."""
    return list(mask[:new_count]) + [True] * (new_count - len(mask))


def fit_expense(expense: Expense, participant_count: int) -> Expense:
    """Return a copy of ``expense`` adjusted to a participant count.

    The share mask is resized and a payer that no longer exists is reset
    to the first participant.
    """
    payer = expense.payer if expense.payer < participant_count else 0
    return expense.model_copy(
        update={
            "payer": payer,
            "share_mask": resize_mask(expense.share_mask, participant_count),
        }
    )


def is_valid_participant_count(count: Any) -> bool:
    """Whether ``count`` is an integer in the supported participant range."""
    return (
        isinstance(count, int)
        and not isinstance(count, bool)
        and MIN_PARTICIPANTS <= count <= MAX_PARTICIPANTS
    )


class LedgerStore:
    """Authoritative list of participants and expenses."""

    def __init__(
        self,
        participant_names: list[str] | None = None,
        expenses: list[Expense] | None = None,
    ):
        """Initialize the store, defaulting to four named participants."""
        names = list(
            DEFAULT_PARTICIPANTS if participant_names is None else participant_names
        )
        if not is_valid_participant_count(len(names)):
            raise ValidationError(
                f"Participant count must be between {MIN_PARTICIPANTS} "
                f"and {MAX_PARTICIPANTS}, got {len(names)}"
            )

        self._participant_names = [
            _clean_name(name, index) for index, name in enumerate(names)
        ]
        self._expenses: list[Expense] = []
        for expense in expenses or []:
            self._check_expense(expense)
            self._expenses.append(expense.model_copy(deep=True))

        self.is_grouped = False
        self._subscribers: dict[ChangeEvent, list[Subscriber]] = {
            event: [] for event in ChangeEvent
        }

    @classmethod
    def with_demo_data(cls) -> "LedgerStore":
        """Create a store seeded with the four demonstration expenses."""
        store = cls()
        store.load_demo_data()
        return store

    def load_demo_data(self) -> None:
        """Replace the ledger with the four default participants and demo bills."""
        self._participant_names = list(DEFAULT_PARTICIPANTS)
        self._expenses = [
            Expense(
                payer=payer,
                amount=amount,
                note=note,
                share_mask=[True] * len(DEFAULT_PARTICIPANTS),
                created_at=_DEMO_DATE,
            )
            for payer, amount, note in _DEMO_EXPENSES
        ]
        self.is_grouped = False

        logger.info("Loaded demo data")

        details = {"participant_count": self.participant_count}
        self._emit(ChangeEvent.PARTICIPANTS_CHANGED, "reset", details)
        self._emit(ChangeEvent.EXPENSES_CHANGED, "reset", details)
        self._emit(ChangeEvent.DATA_CHANGED, "reset", details)

    # ========================================================================
    # Read access
    # ========================================================================

    @property
    def participant_count(self) -> int:
        return len(self._participant_names)

    @property
    def participant_names(self) -> list[str]:
        return list(self._participant_names)

    @property
    def expenses(self) -> list[Expense]:
        return [expense.model_copy(deep=True) for expense in self._expenses]

    def get_expense(self, expense_id: str) -> Expense | None:
        """Get a copy of an expense by id."""
        index = self._find(expense_id)
        if index is None:
            return None
        return self._expenses[index].model_copy(deep=True)

    def snapshot(self) -> LedgerSnapshot:
        """Take a deep copy of the ledger for the settlement engine."""
        return LedgerSnapshot(
            participant_names=list(self._participant_names),
            expenses=self.expenses,
            is_grouped=self.is_grouped,
        )

    def state_summary(self) -> StateSummary:
        """Summarize the current ledger state."""
        return StateSummary(
            participant_count=self.participant_count,
            expense_count=len(self._expenses),
            total_amount=sum(expense.amount for expense in self._expenses),
            is_grouped=self.is_grouped,
        )

    # ========================================================================
    # Participant operations
    # ========================================================================

    def resize_participants(self, new_count: int) -> None:
        """
        Change the number of participants.

        New participants get placeholder names and are added to every
        expense's share mask. When shrinking, expenses paid by a removed
        participant are reassigned to the first participant.

        Raises:
            ValidationError: If ``new_count`` is not an integer in [2, 20]
        """
        if not is_valid_participant_count(new_count):
            raise ValidationError(
                f"Participant count must be an integer between {MIN_PARTICIPANTS} "
                f"and {MAX_PARTICIPANTS}, got {new_count!r}"
            )

        old_count = self.participant_count
        self._participant_names = [
            self._participant_names[index]
            if index < old_count
            else placeholder_name(index)
            for index in range(new_count)
        ]
        self._expenses = [fit_expense(e, new_count) for e in self._expenses]

        logger.info(f"Resized participants from {old_count} to {new_count}")

        self._notify(
            ChangeEvent.PARTICIPANTS_CHANGED,
            "resize",
            {"old_count": old_count, "new_count": new_count},
        )

    def rename_participant(self, index: int, name: str | None) -> bool:
        """
        Rename a participant.

        A blank name resets the participant to its placeholder name.

        Returns:
            True if renamed, False if ``index`` is out of range
        """
        if not 0 <= index < self.participant_count:
            logger.debug(f"Ignoring rename of unknown participant {index}")
            return False

        self._participant_names[index] = _clean_name(name, index)
        self._notify(
            ChangeEvent.PARTICIPANTS_CHANGED,
            "rename",
            {"index": index, "name": self._participant_names[index]},
        )
        return True

    # ========================================================================
    # Expense operations
    # ========================================================================

    def add_expense(
        self,
        payer: int = 0,
        amount: float = 0.0,
        note: str | None = "",
        share_mask: list[bool] | None = None,
        created_at: datetime | None = None,
    ) -> Expense:
        """
        Append a new expense.

        Omitted fields default to the first participant as payer, a zero
        amount, an empty note, everyone sharing, and the current time.

        Returns:
            A copy of the created expense

        Raises:
            ValidationError: If the payer or share mask do not fit the
                current participant set
        """
        expense = self._build_expense(
            {
                "id": new_expense_id(),
                "payer": payer,
                "amount": amount,
                "note": note,
                "share_mask": (
                    list(share_mask)
                    if share_mask is not None
                    else [True] * self.participant_count
                ),
                "created_at": created_at or utc_now(),
            }
        )
        self._expenses.append(expense)

        logger.debug(f"Added expense {expense.id} ({expense.amount:.2f})")

        self._notify(
            ChangeEvent.EXPENSES_CHANGED,
            "add",
            {"expense": expense.model_copy(deep=True)},
        )
        return expense.model_copy(deep=True)

    def update_expense(self, expense_id: str, **updates: Any) -> bool:
        """
        Merge the given fields into an existing expense.

        Fields that are not passed keep their current values.

        Returns:
            True if updated, False if no expense has ``expense_id``

        Raises:
            ValidationError: If an unknown field is passed or the merged
                expense would not fit the participant set
        """
        index = self._find(expense_id)
        if index is None:
            logger.debug(f"Cannot update unknown expense {expense_id}")
            return False

        unknown = sorted(set(updates) - UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Cannot update expense fields: {', '.join(unknown)}"
            )

        merged = {**self._expenses[index].model_dump(), **updates}
        updated = self._build_expense(merged)
        self._expenses[index] = updated

        logger.debug(f"Updated expense {expense_id}: {sorted(updates)}")

        self._notify(
            ChangeEvent.EXPENSES_CHANGED,
            "update",
            {"expense": updated.model_copy(deep=True)},
        )
        return True

    def remove_expense(self, expense_id: str) -> bool:
        """
        Remove an expense by id.

        Returns:
            True if removed, False if no expense has ``expense_id``
        """
        index = self._find(expense_id)
        if index is None:
            logger.debug(f"Cannot remove unknown expense {expense_id}")
            return False

        removed = self._expenses.pop(index)
        logger.debug(f"Removed expense {expense_id}")

        self._notify(
            ChangeEvent.EXPENSES_CHANGED,
            "remove",
            {"expense": removed.model_copy(deep=True)},
        )
        return True

    def move_expense(self, expense_id: str, new_index: int) -> bool:
        """
        Move an expense to a new position, keeping the order of the others.

        Returns:
            True if moved, False if the id is unknown or ``new_index`` is
            outside the list
        """
        current = self._find(expense_id)
        if current is None or not 0 <= new_index < len(self._expenses):
            logger.debug(f"Cannot move expense {expense_id} to {new_index}")
            return False

        moved = self._expenses.pop(current)
        self._expenses.insert(new_index, moved)

        self._notify(
            ChangeEvent.EXPENSES_CHANGED,
            "move",
            {"expense": moved.model_copy(deep=True), "new_index": new_index},
        )
        return True

    def sort_expenses(
        self,
        key: SortKey | str,
        direction: SortDirection | str = SortDirection.ASC,
    ) -> None:
        """
        Stable-sort the expense list.

        Expenses that compare equal keep their previous relative order in
        both directions.

        Raises:
            ValidationError: If ``key`` or ``direction`` is not recognised
        """
        sort_key, sort_direction = _parse_sort(key, direction)
        self._sort(sort_key, sort_direction)
        self._notify(
            ChangeEvent.EXPENSES_CHANGED,
            "sort",
            {"key": sort_key.value, "direction": sort_direction.value},
        )

    def group_by_payer(self) -> None:
        """Order expenses by payer name and mark the list as grouped."""
        self._sort(SortKey.PAYER, SortDirection.ASC)
        self.is_grouped = True
        self._notify(ChangeEvent.EXPENSES_CHANGED, "group")

    def ungroup_expenses(self) -> bool:
        """
        Restore chronological order after grouping.

        Returns:
            True if the list was grouped, False if there was nothing to undo
        """
        if not self.is_grouped:
            return False

        self._sort(SortKey.DATE, SortDirection.ASC)
        self.is_grouped = False
        self._notify(ChangeEvent.EXPENSES_CHANGED, "ungroup")
        return True

    # ========================================================================
    # Snapshot export/import
    # ========================================================================

    def export_data(self) -> dict[str, Any]:
        """Export the ledger in the persisted snapshot format."""
        state = SavedState(
            participant_count=self.participant_count,
            participant_names=list(self._participant_names),
            bills=self._expenses,
            is_grouped=self.is_grouped,
            saved_at=utc_now(),
        )
        return state.model_dump(by_alias=True, mode="json")

    def import_data(self, data: Any) -> None:
        """
        Replace the ledger with imported snapshot data.

        The import is all-or-nothing: any structural problem leaves the
        store unchanged.

        Raises:
            SnapshotImportError: If ``data`` is not a valid snapshot
        """
        try:
            state = _parse_snapshot(data)
        except SnapshotImportError as e:
            logger.warning(f"Rejected import: {e.reason}")
            raise

        count = state.participant_count
        seen_ids: set[str] = set()
        expenses = []
        for bill in state.bills:
            expense = fit_expense(bill, count)
            if expense.id in seen_ids:
                expense = expense.model_copy(update={"id": new_expense_id()})
            seen_ids.add(expense.id)
            expenses.append(expense)

        self._participant_names = [
            _clean_name(name, index)
            for index, name in enumerate(state.participant_names)
        ]
        self._expenses = expenses
        self.is_grouped = state.is_grouped

        logger.info(f"Imported {count} participants and {len(expenses)} expenses")

        details = {"participant_count": count, "expense_count": len(expenses)}
        self._emit(ChangeEvent.PARTICIPANTS_CHANGED, "import", details)
        self._emit(ChangeEvent.EXPENSES_CHANGED, "import", details)
        self._emit(ChangeEvent.DATA_CHANGED, "import", details)

    # ========================================================================
    # Subscriptions
    # ========================================================================

    def subscribe(self, event: ChangeEvent, callback: Subscriber) -> None:
        """Register a callback for a category of changes."""
        self._subscribers[ChangeEvent(event)].append(callback)

    def unsubscribe(self, event: ChangeEvent, callback: Subscriber) -> bool:
        """
        Remove a previously registered callback.

        Returns:
            True if the callback was registered
        """
        callbacks = self._subscribers[ChangeEvent(event)]
        if callback in callbacks:
            callbacks.remove(callback)
            return True
        return False

    def _notify(
        self,
        event: ChangeEvent,
        action: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Deliver a specific change notice followed by a data-changed notice."""
        self._emit(event, action, details)
        self._emit(ChangeEvent.DATA_CHANGED, action, details)

    def _emit(
        self,
        event: ChangeEvent,
        action: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        notice = ChangeNotice(event=event, action=action, details=details or {})
        # Copy so that callbacks may unsubscribe while being notified
        for callback in list(self._subscribers[event]):
            try:
                callback(notice)
            except Exception:
                logger.exception(f"Error in subscriber for {event.value}")

    # ========================================================================
    # Helpers
    # ========================================================================

    def _find(self, expense_id: str) -> int | None:
        for index, expense in enumerate(self._expenses):
            if expense.id == expense_id:
                return index
        return None

    def _check_expense(self, expense: Expense) -> None:
        """Raise if an expense does not fit the current participant set."""
        count = self.participant_count
        if expense.payer >= count:
            raise ValidationError(
                f"Payer {expense.payer} is out of range for {count} participants"
            )
        if len(expense.share_mask) != count:
            raise ValidationError(
                f"Share mask has {len(expense.share_mask)} entries, expected {count}"
            )

    def _build_expense(self, fields: dict[str, Any]) -> Expense:
        try:
            expense = Expense.model_validate(fields)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid expense: {e}") from e
        self._check_expense(expense)
        return expense

    def _sort(self, key: SortKey, direction: SortDirection) -> None:
        names = self._participant_names

        def payer_name(expense: Expense) -> str:
            if 0 <= expense.payer < len(names) and names[expense.payer]:
                return names[expense.payer]
            return f"P{expense.payer + 1}"

        sort_keys: dict[SortKey, Callable[[Expense], Any]] = {
            SortKey.PAYER: payer_name,
            SortKey.AMOUNT: lambda expense: expense.amount,
            SortKey.NOTE: lambda expense: expense.note.lower(),
            SortKey.DATE: lambda expense: expense.created_at,
        }
        self._expenses = sorted(
            self._expenses,
            key=sort_keys[key],
            reverse=direction is SortDirection.DESC,
        )


def _clean_name(name: str | None, index: int) -> str:
    """Strip a display name, falling back to the placeholder when blank."""
    cleaned = (name or "").strip()
    return cleaned or placeholder_name(index)


def _parse_sort(
    key: SortKey | str, direction: SortDirection | str
) -> tuple[SortKey, SortDirection]:
    try:
        return SortKey(key), SortDirection(direction)
    except ValueError as e:
        raise ValidationError(f"Unsupported sort: {key!r} {direction!r}") from e


def _parse_snapshot(data: Any) -> SavedState:
    """Validate the structure of imported snapshot data."""
    if not isinstance(data, Mapping):
        raise SnapshotImportError("expected a JSON object")

    missing = [key for key in REQUIRED_IMPORT_KEYS if key not in data]
    if missing:
        raise SnapshotImportError(f"missing required fields: {', '.join(missing)}")

    count = data["participantCount"]
    if (
        isinstance(count, bool)
        or not isinstance(count, (int, float))
        or (isinstance(count, float) and not count.is_integer())
        or count < MIN_PARTICIPANTS
    ):
        raise SnapshotImportError("invalid participant count")

    names = data["participantNames"]
    if not isinstance(names, list) or len(names) != count:
        raise SnapshotImportError("invalid participant names array")

    if not isinstance(data["bills"], list):
        raise SnapshotImportError("invalid bills array")

    try:
        return SavedState.model_validate({**data, "participantCount": int(count)})
    except PydanticValidationError as e:
        raise SnapshotImportError(
            f"invalid bill data ({e.error_count()} errors)"
        ) from e
