"""Service layer that composes the ledger store, storage and settlement engine.

This module provides a higher-level API for callers such as the CLI. The
store and storage are passed in explicitly; the engine functions it calls
are pure and never mutate the ledger.
"""

import json
import logging

from .config import Settings
from .engine import (
    compute_results,
    participant_breakdown,
    summarize,
    validate_inputs,
)
from .exceptions import ValidationError
from .models import (
    ParticipantBreakdown,
    SettlementResults,
    SettlementSummary,
    ValidationReport,
)
from .reports import expenses_to_csv, results_to_csv, results_to_text
from .storage import SnapshotFile
from .store import LedgerStore

logger = logging.getLogger(__name__)


class BillSplitterService:
    """Service for editing a ledger and settling it up."""

    def __init__(self, settings: Settings, store: LedgerStore, storage: SnapshotFile):
        """Initialize the service."""
        self.settings = settings
        self.store = store
        self.storage = storage

    def load(self) -> bool:
        """
        Load the ledger from the snapshot file.

        When no file exists yet, the store is seeded with the demonstration
        expenses if configured to.

        Returns:
            True if a file was loaded, False if the store kept its defaults
        """
        if self.storage.exists():
            self.storage.load(self.store)
            return True

        if self.settings.seed_demo_data:
            self.store.load_demo_data()
            logger.info("No data file found, seeded demo expenses")
        return False

    def save(self) -> None:
        """Persist the ledger to the snapshot file."""
        self.storage.save(self.store)

    def calculate(self) -> tuple[ValidationReport, SettlementResults | None]:
        """
        Validate and settle the current ledger.

        Returns:
            Tuple of (validation report, results); results are None when the
            report has errors
        """
        snapshot = self.store.snapshot()
        report = validate_inputs(snapshot)

        for warning in report.warnings:
            logger.warning(warning)

        if not report.valid:
            logger.info(f"Ledger has {len(report.errors)} validation errors")
            return report, None

        results = compute_results(snapshot)
        logger.info(
            f"Computed {len(results.transfers)} transfers "
            f"for total {results.total_amount:.2f}"
        )
        return report, results

    def summary(self, results: SettlementResults) -> SettlementSummary:
        return summarize(results)

    def breakdown(
        self, index: int, results: SettlementResults
    ) -> ParticipantBreakdown:
        """Get the settlement breakdown for one participant."""
        return participant_breakdown(self.store.snapshot(), results, index)

    def export_text(self) -> str:
        """Render the results report as text."""
        results = self._require_results()
        return results_to_text(
            self.store.snapshot(), results, self.settings.currency_symbol
        )

    def export_results_csv(self) -> str:
        """Render per-participant results as CSV."""
        return results_to_csv(self._require_results())

    def export_bills_csv(self) -> str:
        """Render the expense list as CSV."""
        return expenses_to_csv(self.store.snapshot())

    def export_snapshot(self) -> str:
        """Render the ledger in the persisted JSON snapshot format."""
        return json.dumps(self.store.export_data(), indent=2)

    def _require_results(self) -> SettlementResults:
        report, results = self.calculate()
        if results is None:
            raise ValidationError(
                "Cannot export results:\n  " + "\n  ".join(report.errors)
            )
        return results
