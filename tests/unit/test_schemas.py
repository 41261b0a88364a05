"""Unit tests for capacity report validation"""
from datetime import datetime, timezone

import pytest

from hospital_capacity.domain.model import BedCapacity
from hospital_capacity.entrypoints.schemas import API_SOURCE, InvalidReport, STREAM_SOURCE, parse_report


def report_payload(**overrides):
    payload = {
        "hospital_id": "H1",
        "name": "City General",
        "location": {"lat": 40.0, "lon": 30.0},
        "city": "Ankara",
        "capacity": {"total_beds": 100, "available_beds": 10, "icu_total": 20, "icu_available": 5},
        "updated_at": "2024-10-24T10:30:00Z",
    }
    payload.update(overrides)
    return payload


def test_valid_report_becomes_command():
    cmd = parse_report(report_payload(district="Cankaya", capabilities={"cardiology": True}), API_SOURCE)

    assert cmd.hospital_id == "H1"
    assert cmd.name == "City General"
    assert (cmd.lat, cmd.lon) == (40.0, 30.0)
    assert cmd.city == "Ankara"
    assert cmd.district == "Cankaya"
    assert cmd.address is None
    assert cmd.capabilities == {"cardiology": True}
    assert cmd.capacity == BedCapacity(total_beds=100, available_beds=10, icu_total=20, icu_available=5)
    assert cmd.updated_at == datetime(2024, 10, 24, 10, 30, tzinfo=timezone.utc)
    assert cmd.source == API_SOURCE


def test_reporter_source_wins_over_default():
    assert parse_report(report_payload(source="ministry-feed"), STREAM_SOURCE).source == "ministry-feed"
    assert parse_report(report_payload(), STREAM_SOURCE).source == STREAM_SOURCE


def test_capacity_is_optional():
    payload = report_payload()
    del payload["capacity"]

    assert parse_report(payload, API_SOURCE).capacity is None


def test_missing_timestamp_defaults_to_now():
    payload = report_payload()
    del payload["updated_at"]
    before = datetime.now(timezone.utc)

    cmd = parse_report(payload, API_SOURCE)

    assert before <= cmd.updated_at <= datetime.now(timezone.utc)


def test_naive_timestamp_is_read_as_utc():
    cmd = parse_report(report_payload(updated_at="2024-10-24T10:30:00"), API_SOURCE)

    assert cmd.updated_at == datetime(2024, 10, 24, 10, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize("missing", ["hospital_id", "name", "location"])
def test_required_fields(missing):
    payload = report_payload()
    del payload[missing]

    with pytest.raises(InvalidReport) as exc_info:
        parse_report(payload, API_SOURCE)

    assert any(error["loc"][0] == missing for error in exc_info.value.errors)


@pytest.mark.parametrize(
    "overrides",
    [
        {"location": {"lat": "north", "lon": 30.0}},
        {"location": {"lat": 95.0, "lon": 30.0}},
        {"capacity": {"total_beds": 100, "available_beds": -1, "icu_total": 20, "icu_available": 5}},
        {"capacity": {"total_beds": 100}},
        {"hospital_id": ""},
        {"updated_at": "yesterday"},
    ],
)
def test_malformed_reports_are_rejected(overrides):
    with pytest.raises(InvalidReport):
        parse_report(report_payload(**overrides), API_SOURCE)


def test_non_object_payload_is_rejected():
    with pytest.raises(InvalidReport):
        parse_report(["not", "a", "report"], API_SOURCE)
