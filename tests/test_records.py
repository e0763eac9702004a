"""
Tests for parsing raw doctor and patient documents.
"""

from datetime import time

import pytest
from pydantic import ValidationError

from medconsult.adapters.records import DoctorRecord, PatientRecord, load_seed_data
from medconsult.domain.models import Weekday

RAW_DOCTOR = {
    "id": "d-johnson",
    "name": " Dr. Sarah Johnson ",
    "email": "Sarah.Johnson@Example.com",
    "specialization": "General Medicine",
    "experience": 8,
    "rating": 4.8,
    "reviewCount": 156,
    "consultationFee": 50,
    "isOnline": True,
    "isVerified": True,
    "location": {"city": "Berlin", "state": "Berlin"},
    "consultationDuration": 30,
    "workingHours": {
        "monday": {"start": "09:00", "end": "17:00", "isWorking": True},
        "saturday": {"isWorking": False},
    },
}


class TestDoctorRecord:
    def test_to_domain(self):
        doctor = DoctorRecord(**RAW_DOCTOR).to_domain()

        assert doctor.name == "Dr. Sarah Johnson"
        assert doctor.email == "sarah.johnson@example.com"
        assert doctor.review_count == 156
        assert doctor.consultation_fee == 50
        assert doctor.is_bookable and doctor.is_online
        assert doctor.location.city == "Berlin"
        monday = doctor.working_hours.for_day(Weekday.MONDAY)
        assert (monday.start, monday.end) == (time(9, 0), time(17, 0))
        assert not doctor.working_hours.for_day(Weekday.SATURDAY).is_working

    def test_defaults_follow_profile_service(self):
        doctor = DoctorRecord(
            id="d2", name="Dr. X", specialization="Cardiology", consultationFee=10
        ).to_domain()

        assert doctor.consultation_duration == 30
        assert doctor.rating == 0
        assert doctor.is_active and not doctor.is_verified and not doctor.is_online

    @pytest.mark.parametrize(
        "overrides",
        [
            {"consultationDuration": 10},
            {"consultationDuration": 150},
            {"rating": 6},
            {"consultationFee": -5},
            {"workingHours": {"monday": {"start": "9am", "end": "17:00"}}},
            {"workingHours": {"someday": {"start": "09:00", "end": "17:00"}}},
        ],
    )
    def test_invalid_documents(self, overrides):
        with pytest.raises(ValidationError):
            DoctorRecord(**{**RAW_DOCTOR, **overrides})

    def test_overnight_hours_rejected(self):
        record = DoctorRecord(**{
            **RAW_DOCTOR,
            "workingHours": {"monday": {"start": "20:00", "end": "02:00", "isWorking": True}},
        })

        with pytest.raises(ValueError, match="must not be after end"):
            record.to_domain()


class TestPatientRecord:
    def test_invalid_gender(self):
        with pytest.raises(ValueError):
            PatientRecord(id="p1", name="X", gender="unknown").to_domain()


class TestLoadSeedData:
    def test_yaml(self, tmp_path):
        path = tmp_path / "data.yaml"
        path.write_text(
            "doctors:\n"
            "  - id: d1\n"
            "    name: Dr. One\n"
            "    specialization: Cardiology\n"
            "    consultationFee: 40\n"
            "patients:\n"
            "  - id: p1\n"
            "    name: Jane\n",
            encoding="utf-8",
        )

        doctors, patients = load_seed_data(path)

        assert [d.id for d in doctors] == ["d1"]
        assert [p.id for p in patients] == ["p1"]

    def test_json(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text('{"doctors": [], "patients": [{"id": "p1", "name": "Jane"}]}', encoding="utf-8")

        doctors, patients = load_seed_data(path)

        assert doctors == []
        assert patients[0].name == "Jane"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_seed_data(tmp_path / "missing.yaml")

    def test_root_must_be_mapping(self, tmp_path):
        path = tmp_path / "data.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ValueError, match="mapping"):
            load_seed_data(path)
