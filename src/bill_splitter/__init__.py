"""Bill Splitter - Split shared group expenses and settle up fairly."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .engine import (
    compute_results,
    generate_transfers,
    participant_breakdown,
    summarize,
    validate_inputs,
)
from .models import (
    ChangeEvent,
    Expense,
    LedgerSnapshot,
    SettlementResults,
    Transfer,
)
from .service import BillSplitterService
from .storage import SnapshotFile
from .store import LedgerStore

__all__ = [
    "Settings",
    "load_settings",
    "compute_results",
    "generate_transfers",
    "participant_breakdown",
    "summarize",
    "validate_inputs",
    "ChangeEvent",
    "Expense",
    "LedgerSnapshot",
    "SettlementResults",
    "Transfer",
    "BillSplitterService",
    "SnapshotFile",
    "LedgerStore",
]
