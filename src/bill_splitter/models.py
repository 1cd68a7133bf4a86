"""Pydantic domain models for Bill Splitter."""

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

SCHEMA_VERSION = "2.0"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def new_expense_id() -> str:
    """Generate an opaque, unique expense identifier."""
    return f"bill_{uuid.uuid4().hex[:16]}"


def placeholder_name(index: int) -> str:
    """Default display name for the participant at ``index``."""
    return f"Participant {index + 1}"


# ============================================================================
# Ledger Models
# ============================================================================


class Expense(BaseModel):
    """A shared expense paid by one participant.

    Field aliases match the keys used in saved snapshot files, so the same
    model reads both Python-side keyword arguments and persisted ``bills``.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_expense_id)
    payer: int = Field(default=0, ge=0, alias="whoPaid")
    amount: float = Field(default=0.0, allow_inf_nan=False)
    note: str = Field(default="", alias="notes")
    share_mask: list[bool] = Field(default_factory=list, alias="participants")
    created_at: datetime = Field(default_factory=utc_now, alias="dateAdded")

    @field_validator("note", mode="before")
    @classmethod
    def _none_note_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are stored as UTC so that sorting never mixes kinds
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def shared_count(self) -> int:
        """Number of participants sharing this expense."""
        return sum(1 for shared in self.share_mask if shared)

    def shared_by(self, index: int) -> bool:
        """Whether the participant at ``index`` shares this expense."""
        return 0 <= index < len(self.share_mask) and self.share_mask[index]


class LedgerSnapshot(BaseModel):
    """Read-only copy of the ledger handed to the settlement engine."""

    participant_names: list[str]
    expenses: list[Expense] = Field(default_factory=list)
    is_grouped: bool = False

    @property
    def participant_count(self) -> int:
        return len(self.participant_names)

    def payer_name(self, expense: Expense) -> str:
        """Display name of the expense payer, with a short fallback."""
        if 0 <= expense.payer < self.participant_count:
            return self.participant_names[expense.payer]
        return f"P{expense.payer + 1}"


class StateSummary(BaseModel):
    """Quick counters describing the current ledger."""

    participant_count: int
    expense_count: int
    total_amount: float
    is_grouped: bool


# ============================================================================
# Settlement Models
# ============================================================================


class Transfer(BaseModel):
    """A single settle-up payment from a debtor to a creditor."""

    model_config = ConfigDict(populate_by_name=True)

    sender: str = Field(alias="from")
    recipient: str = Field(alias="to")
    amount: float


class SettlementResults(BaseModel):
    """Per-participant totals, balances and the settle-up plan.

    All lists are index-aligned with ``participant_names``.
    """

    total_paid: list[float]
    total_owed: list[float]
    balances: list[float]
    total_amount: float
    participant_count: int
    participant_names: list[str]
    transfers: list[Transfer]
    expense_count: int


class ValidationReport(BaseModel):
    """Outcome of checking a snapshot before settlement."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class SettlementSummary(BaseModel):
    """Aggregate statistics derived from settlement results."""

    total_amount: float
    average_per_person: float
    max_balance: float
    min_balance: float
    balanced_count: int
    participant_count: int
    expense_count: int


class ParticipantBreakdown(BaseModel):
    """Detailed settlement view for a single participant."""

    index: int
    name: str
    paid: float
    owed: float
    balance: float
    expenses_paid: list[Expense]
    expenses_shared: list[Expense]
    transfers_in: list[Transfer]  # participant receives
    transfers_out: list[Transfer]  # participant pays
    is_balanced: bool


# ============================================================================
# Store Events
# ============================================================================


class ChangeEvent(str, Enum):
    """Independently subscribable categories of ledger changes."""

    DATA_CHANGED = "data_changed"
    PARTICIPANTS_CHANGED = "participants_changed"
    EXPENSES_CHANGED = "expenses_changed"


class ChangeNotice(BaseModel):
    """Payload delivered to change subscribers."""

    event: ChangeEvent
    action: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class SortKey(str, Enum):
    """Columns the expense list can be sorted by."""

    PAYER = "payer"
    AMOUNT = "amount"
    NOTE = "note"
    DATE = "date"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


# ============================================================================
# Persistence Models
# ============================================================================


class SavedState(BaseModel):
    """The persisted snapshot format.

    Serialized with ``by_alias=True`` this produces the camelCase layout
    shared with the original browser application's JSON files.
    """

    model_config = ConfigDict(populate_by_name=True)

    participant_count: int = Field(alias="participantCount")
    participant_names: list[str] = Field(alias="participantNames")
    bills: list[Expense]
    is_grouped: bool = Field(default=False, alias="isGrouped")
    version: str = SCHEMA_VERSION
    saved_at: datetime | None = Field(default=None, alias="savedAt")

    @field_validator("is_grouped", mode="before")
    @classmethod
    def _missing_flag_is_false(cls, value: Any) -> Any:
        return False if value is None else value
