"""Tests for the bill-splitter command line interface."""

import json

import pytest
from typer.testing import CliRunner

from bill_splitter.cli import app

runner = CliRunner()


@pytest.fixture
def data_path(tmp_path, monkeypatch):
    """Point the CLI at a temporary ledger file."""
    path = tmp_path / "ledger.json"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BILL_SPLITTER_DATA_PATH", str(path))
    monkeypatch.setenv("BILL_SPLITTER_SEED_DEMO_DATA", "true")
    return path


def read_ledger(path):
    return json.loads(path.read_text(encoding="utf-8"))


class TestInit:
    def test_creates_demo_ledger(self, data_path):
        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert "Created ledger" in result.output
        assert len(read_ledger(data_path)["bills"]) == 4

    def test_refuses_to_overwrite(self, data_path):
        runner.invoke(app, ["init", "--empty"])
        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert "already exists" in result.output
        assert read_ledger(data_path)["bills"] == []

    def test_force_overwrites(self, data_path):
        runner.invoke(app, ["init", "--empty"])
        result = runner.invoke(app, ["init", "--force"])

        assert result.exit_code == 0
        assert len(read_ledger(data_path)["bills"]) == 4


class TestEditing:
    def test_add_expense(self, data_path):
        runner.invoke(app, ["init", "--empty"])

        result = runner.invoke(
            app,
            ["add", "-a", "30", "-p", "2", "--note", "Taxi", "--share", "1,2"],
        )

        assert result.exit_code == 0
        bill = read_ledger(data_path)["bills"][0]
        assert bill["whoPaid"] == 1
        assert bill["amount"] == 30
        assert bill["notes"] == "Taxi"
        assert bill["participants"] == [True, True, False, False]

    def test_add_rejects_bad_share(self, data_path):
        runner.invoke(app, ["init", "--empty"])

        result = runner.invoke(app, ["add", "--amount", "5", "--share", "1,9"])

        assert result.exit_code != 0
        assert read_ledger(data_path)["bills"] == []

    def test_participants_and_rename(self, data_path):
        runner.invoke(app, ["init"])

        assert runner.invoke(app, ["participants", "3"]).exit_code == 0
        assert runner.invoke(app, ["rename", "3", "Chuck"]).exit_code == 0

        data = read_ledger(data_path)
        assert data["participantCount"] == 3
        assert data["participantNames"] == ["Alice", "Bob", "Chuck"]
        assert all(len(bill["participants"]) == 3 for bill in data["bills"])
        # Diana's bill falls back to the first participant
        assert data["bills"][3]["whoPaid"] == 0

    def test_participants_out_of_range(self, data_path):
        runner.invoke(app, ["init"])

        result = runner.invoke(app, ["participants", "1"])

        assert result.exit_code == 1
        assert read_ledger(data_path)["participantCount"] == 4

    def test_sort_by_amount_descending(self, data_path):
        runner.invoke(app, ["init"])

        result = runner.invoke(app, ["sort", "amount", "--desc"])

        assert result.exit_code == 0
        amounts = [bill["amount"] for bill in read_ledger(data_path)["bills"]]
        assert amounts == [100, 40, 30, 20]

    def test_group_and_ungroup(self, data_path):
        runner.invoke(app, ["init"])

        runner.invoke(app, ["group"])
        assert read_ledger(data_path)["isGrouped"] is True

        runner.invoke(app, ["ungroup"])
        assert read_ledger(data_path)["isGrouped"] is False

    def test_update_and_remove(self, data_path):
        runner.invoke(app, ["init"])
        expense_id = read_ledger(data_path)["bills"][0]["id"]

        result = runner.invoke(app, ["update", expense_id, "--amount", "80"])
        assert result.exit_code == 0
        assert read_ledger(data_path)["bills"][0]["amount"] == 80

        result = runner.invoke(app, ["remove", expense_id])
        assert result.exit_code == 0
        assert len(read_ledger(data_path)["bills"]) == 3

    def test_remove_unknown_expense(self, data_path):
        runner.invoke(app, ["init"])

        result = runner.invoke(app, ["remove", "bill_missing"])

        assert result.exit_code == 1
        assert "No expense with id" in result.output
        assert len(read_ledger(data_path)["bills"]) == 4


class TestSettle:
    def test_demo_ledger(self, data_path):
        runner.invoke(app, ["init"])

        result = runner.invoke(app, ["settle"])

        assert result.exit_code == 0
        assert "Settle Up" in result.output
        assert "Diana" in result.output
        assert "$190.00" in result.output

    def test_empty_ledger(self, data_path):
        runner.invoke(app, ["init", "--empty"])

        result = runner.invoke(app, ["settle"])

        assert result.exit_code == 1
        assert "At least one expense is required" in result.output

    def test_show_participant(self, data_path):
        runner.invoke(app, ["init"])

        result = runner.invoke(app, ["show", "2"])

        assert result.exit_code == 0
        assert "Owes to:" in result.output
        assert "Alice" in result.output


class TestImportExport:
    def test_results_csv_to_stdout(self, data_path):
        runner.invoke(app, ["init"])

        result = runner.invoke(app, ["export", "results-csv", "--output", "-"])

        assert result.exit_code == 0
        assert "Participant,Total Paid,Total Owed,Balance\n" in result.stdout
        assert '"Diana",20.00,47.50,-27.50' in result.stdout

    def test_text_to_file(self, data_path, tmp_path):
        runner.invoke(app, ["init"])
        target = tmp_path / "report.txt"

        result = runner.invoke(app, ["export", "text", "--output", str(target)])

        assert result.exit_code == 0
        assert "BILL SPLITTER RESULTS" in target.read_text(encoding="utf-8")

    def test_json_round_trip(self, data_path, tmp_path):
        runner.invoke(app, ["init"])
        runner.invoke(app, ["rename", "1", "Ally"])
        backup = tmp_path / "backup.json"
        runner.invoke(app, ["export", "json", "--output", str(backup)])
        runner.invoke(app, ["init", "--empty", "--force"])

        result = runner.invoke(app, ["import", str(backup)])

        assert result.exit_code == 0
        data = read_ledger(data_path)
        assert data["participantNames"][0] == "Ally"
        assert len(data["bills"]) == 4

    def test_invalid_import_keeps_data(self, data_path, tmp_path):
        runner.invoke(app, ["init"])
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"participantCount": 3}), encoding="utf-8")

        result = runner.invoke(app, ["import", str(bad)])

        assert result.exit_code == 1
        assert "Invalid data format" in result.output
        assert len(read_ledger(data_path)["bills"]) == 4
