"""
Tests for the command line interface.
"""

import json

import pytest
from typer.testing import CliRunner

from conftest import NOW
from medconsult.adapters.clock import FixedClock
from medconsult.cli import app as cli_app
from medconsult.cli.app import app

runner = CliRunner()

DATA = """\
doctors:
  - id: d-one
    name: Dr. One
    specialization: Cardiology
    consultationFee: 40
    rating: 4.5
    isVerified: true
    isOnline: true
    workingHours:
      monday: {start: "09:00", end: "12:00", isWorking: true}
  - id: d-hidden
    name: Dr. Hidden
    specialization: Dermatology
    consultationFee: 40
patients:
  - id: p-1
    name: Jane Doe
"""


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    # Keep table cells on one line
    monkeypatch.setattr(cli_app.console, "width", 200)


@pytest.fixture
def config_file(tmp_path):
    (tmp_path / "data.yaml").write_text(DATA, encoding="utf-8")
    path = tmp_path / "config.yaml"
    path.write_text(
        "timezone: Europe/Berlin\n"
        "data_file: data.yaml\n"
        "consultations_file: consultations.json\n",
        encoding="utf-8",
    )
    return path


class TestCli:
    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "medconsult" in result.output

    def test_doctors_lists_only_verified(self, config_file):
        result = runner.invoke(app, ["doctors", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "Dr. One" in result.output
        assert "Dr. Hidden" not in result.output

    def test_doctors_no_match(self, config_file):
        result = runner.invoke(app, ["doctors", "--max-fee", "10", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "No doctors found" in result.output

    def test_specializations(self, config_file):
        result = runner.invoke(app, ["specializations", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "Cardiology" in result.output
        assert "Dermatology" not in result.output

    def test_unknown_doctor_exits_with_error(self, config_file):
        result = runner.invoke(app, ["slots", "nobody", "--config", str(config_file)])

        assert result.exit_code == 1
        assert "Doctor not found: nobody" in result.output

    def test_no_consultations(self, config_file):
        result = runner.invoke(app, ["consultations", "p-1", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "No consultations found" in result.output

    def test_missing_config(self, tmp_path):
        result = runner.invoke(app, ["doctors", "--config", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 1
        assert "Config file not found" in result.output


@pytest.fixture
def clock(monkeypatch):
    fixed = FixedClock(NOW)
    monkeypatch.setattr(cli_app, "SystemClock", lambda timezone: fixed)
    return fixed


def _stored(config_file):
    data = json.loads((config_file.parent / "consultations.json").read_text(encoding="utf-8"))
    return data["consultations"]


class TestBookingCommands:
    def _book(self, config_file, when="2024-11-25 09:30"):
        return runner.invoke(app, ["book", "d-one", "p-1", when, "--config", str(config_file)])

    def test_slots(self, config_file, clock):
        result = runner.invoke(app, ["slots", "d-one", "--days", "1", "--date", "2024-11-25",
                                     "--config", str(config_file)])

        assert result.exit_code == 0
        assert "6 slot(s) available" in result.output
        assert "Mon 25.11.2024 09:00" in result.output
        assert "Mon 25.11.2024 11:30" in result.output

    def test_booking_persists_across_invocations(self, config_file, clock):
        result = self._book(config_file)

        assert result.exit_code == 0
        assert "Consultation booked" in result.output
        [stored] = _stored(config_file)
        assert stored["doctorId"] == "d-one"
        assert stored["status"] == "scheduled"

        listed = runner.invoke(app, ["consultations", "p-1", "--config", str(config_file)])
        assert listed.exit_code == 0
        assert stored["id"] in listed.output
        assert "Mon 25.11.2024 09:30" in listed.output

        open_slots = runner.invoke(app, ["slots", "d-one", "--open", "--date", "2024-11-25",
                                         "--days", "1", "--config", str(config_file)])
        assert "5 slot(s) available" in open_slots.output
        assert "09:30" not in open_slots.output

    def test_second_booking_of_same_slot_fails(self, config_file, clock):
        assert self._book(config_file).exit_code == 0

        result = self._book(config_file)

        assert result.exit_code == 1
        assert "already booked" in result.output
        assert len(_stored(config_file)) == 1

    def test_time_that_is_not_a_slot(self, config_file, clock):
        result = self._book(config_file, "2024-11-25 09:10")

        assert result.exit_code == 1
        assert "not on the doctor's schedule" in result.output

    def test_lifecycle(self, config_file, clock):
        self._book(config_file)
        [stored] = _stored(config_file)
        consultation_id = stored["id"]

        early = runner.invoke(app, ["transition", consultation_id, "ongoing", "--config", str(config_file)])
        assert early.exit_code == 1

        clock.set(NOW.add(days=1).set(hour=9, minute=30))
        started = runner.invoke(app, ["transition", consultation_id, "ongoing", "--config", str(config_file)])
        assert started.exit_code == 0
        assert "ongoing" in started.output

        noted = runner.invoke(app, ["notes", consultation_id, "Blood pressure high",
                                    "--config", str(config_file)])
        assert noted.exit_code == 0

        done = runner.invoke(app, [
            "complete", consultation_id,
            "-m", "Amlodipine:5mg:once daily:30 days",
            "--config", str(config_file),
        ])
        assert done.exit_code == 0
        [stored] = _stored(config_file)
        assert stored["status"] == "completed"
        assert stored["consultationNotes"] == "Blood pressure high"
        assert stored["prescription"]["medications"][0]["name"] == "Amlodipine"

    def test_cancel_with_reason(self, config_file, clock):
        self._book(config_file)
        [stored] = _stored(config_file)

        result = runner.invoke(app, ["cancel", stored["id"], "--reason", "Feeling better",
                                     "--config", str(config_file)])

        assert result.exit_code == 0
        assert "Feeling better" in result.output
        [stored] = _stored(config_file)
        assert stored["status"] == "cancelled"
        assert self._book(config_file).exit_code == 0

    def test_cancelled_cannot_be_started(self, config_file, clock):
        self._book(config_file)
        [stored] = _stored(config_file)
        runner.invoke(app, ["cancel", stored["id"], "--config", str(config_file)])

        result = runner.invoke(app, ["transition", stored["id"], "ongoing", "--config", str(config_file)])

        assert result.exit_code == 1
        assert "Cannot transition" in result.output

    def test_instant(self, config_file, clock):
        result = runner.invoke(app, ["instant", "p-1", "--type", "chat", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "Instant consultation started" in result.output
        [stored] = _stored(config_file)
        assert stored["status"] == "ongoing"
        assert stored["type"] == "chat"

    def test_invalid_medication(self, config_file, clock):
        self._book(config_file)
        [stored] = _stored(config_file)

        result = runner.invoke(app, ["complete", stored["id"], "-m", "Aspirin",
                                     "--config", str(config_file)])

        assert result.exit_code == 1
        assert "Invalid medication" in result.output
