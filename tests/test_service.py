"""Tests for BillSplitterService layer."""

import json

import pytest

from bill_splitter.config import Settings
from bill_splitter.exceptions import ValidationError
from bill_splitter.service import BillSplitterService
from bill_splitter.storage import SnapshotFile
from bill_splitter.store import LedgerStore


@pytest.fixture
def mock_settings(tmp_path):
    """Create settings pointing at a temporary data file."""
    return Settings(data_path=tmp_path / "ledger.json", currency_symbol="$")


@pytest.fixture
def storage(mock_settings):
    return SnapshotFile(mock_settings.data_path)


@pytest.fixture
def service(mock_settings, storage):
    """Create a BillSplitterService instance with demo data loaded."""
    service = BillSplitterService(mock_settings, LedgerStore(), storage)
    service.load()
    return service


class TestLoad:
    def test_seeds_demo_data_without_file(self, service):
        assert len(service.store.expenses) == 4

    def test_seeding_disabled(self, tmp_path):
        settings = Settings(data_path=tmp_path / "ledger.json", seed_demo_data=False)
        service = BillSplitterService(
            settings, LedgerStore(), SnapshotFile(settings.data_path)
        )

        assert not service.load()
        assert service.store.expenses == []

    def test_loads_existing_file(self, mock_settings, storage):
        store = LedgerStore(["Ann", "Ben"])
        store.add_expense(amount=12)
        storage.save(store)

        service = BillSplitterService(mock_settings, LedgerStore(), storage)

        assert service.load()
        assert service.store.participant_names == ["Ann", "Ben"]
        assert len(service.store.expenses) == 1

    def test_save(self, service, storage):
        service.store.rename_participant(0, "Ally")

        service.save()

        data = json.loads(storage.path.read_text(encoding="utf-8"))
        assert data["participantNames"][0] == "Ally"


class TestCalculate:
    def test_valid_ledger(self, service):
        report, results = service.calculate()

        assert report.valid
        assert results is not None
        assert results.total_amount == 190
        assert len(results.transfers) == 3

    def test_invalid_ledger_returns_no_results(self, service):
        service.store.add_expense(amount=-4)

        report, results = service.calculate()

        assert not report.valid
        assert results is None
        assert report.errors == ["Expense 5 has a negative amount"]

    def test_calculate_does_not_mutate_store(self, service):
        before = service.store.export_data()

        service.calculate()

        assert service.store.export_data()["bills"] == before["bills"]

    def test_summary_and_breakdown(self, service):
        _, results = service.calculate()

        summary = service.summary(results)
        breakdown = service.breakdown(1, results)

        assert summary.average_per_person == 47.5
        assert breakdown.name == "Bob"
        assert [(t.recipient, t.amount) for t in breakdown.transfers_out] == [
            ("Alice", 17.5)
        ]


class TestExports:
    def test_text(self, service):
        assert "PARTICIPANT RESULTS:" in service.export_text()

    def test_results_csv(self, service):
        assert service.export_results_csv().startswith(
            "Participant,Total Paid,Total Owed,Balance\n"
        )

    def test_bills_csv(self, service):
        assert len(service.export_bills_csv().splitlines()) == 5

    def test_snapshot(self, service):
        data = json.loads(service.export_snapshot())

        assert data["participantCount"] == 4

    def test_invalid_ledger_blocks_result_exports(self, service):
        for expense in service.store.expenses:
            service.store.remove_expense(expense.id)

        with pytest.raises(ValidationError, match="At least one expense"):
            service.export_text()
        with pytest.raises(ValidationError):
            service.export_results_csv()

        # Bills export does not need valid results
        assert service.export_bills_csv() == "Date,Who Paid,Amount,Notes,Participants\n"
