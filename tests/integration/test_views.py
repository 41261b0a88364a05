"""Integration tests for the read side"""
from datetime import datetime, timedelta, timezone

from sqlalchemy import insert

from conftest import make_report
from hospital_capacity import views
from hospital_capacity.adapters import orm
from hospital_capacity.domain.recommendation import RecommendationQuery
from hospital_capacity.service_layer import messagebus

NOW = datetime.now(timezone.utc)
STALE_AFTER = timedelta(minutes=10)


def insert_hospital(session_factory, hospital_id, lat, lon, available_beds, last_update):
    session = session_factory()
    session.execute(
        insert(orm.hospitals).values(
            id=hospital_id,
            name=f"Hospital {hospital_id}",
            city="Unknown",
            lat=lat,
            lon=lon,
            current_total_beds=100,
            current_available_beds=available_beds,
            current_icu_total=10,
            current_icu_available=2,
            last_capacity_update=last_update,
            updated_at=last_update,
        )
    )
    session.commit()
    session.close()


def test_recommendation_returns_nearby_fresh_hospital(uow):
    messagebus.handle(make_report("H1", lat=40.0, lon=30.0, updated_at=NOW), uow)
    messagebus.handle(make_report("FAR", lat=50.0, lon=50.0, updated_at=NOW), uow)

    result = views.get_recommendations(RecommendationQuery(lat=40.0, lon=30.0), uow, STALE_AFTER)

    assert [item["id"] for item in result.items] == ["H1"]
    assert result.items[0]["current_available_beds"] == 10
    assert result.items[0]["distance_km"] == 0.0
    assert result.excluded_stale_count == 0


def test_recommendation_skips_stale_hospitals(uow, sqlite_session_factory):
    messagebus.handle(make_report("FRESH", updated_at=NOW), uow)
    insert_hospital(sqlite_session_factory, "STALE", 40.0, 30.0, 50, NOW - timedelta(hours=1))

    result = views.get_recommendations(RecommendationQuery(lat=40.0, lon=30.0), uow, STALE_AFTER)

    assert [item["id"] for item in result.items] == ["FRESH"]
    assert result.excluded_stale_count == 1


def test_recommendation_ignores_hospitals_that_never_reported(uow):
    messagebus.handle(make_report("NEW", capacity=None), uow)

    result = views.get_recommendations(RecommendationQuery(lat=40.0, lon=30.0), uow, STALE_AFTER)

    assert result.items == []
    assert result.excluded_stale_count == 0


def test_recommendation_ranking_across_hospitals(uow):
    messagebus.handle(make_report("A", lat=40.05, lon=30.0, capacity=(100, 10, 20, 5), updated_at=NOW), uow)
    messagebus.handle(make_report("B", lat=40.02, lon=30.0, capacity=(100, 10, 20, 5), updated_at=NOW), uow)
    messagebus.handle(make_report("C", lat=40.2, lon=30.0, capacity=(100, 15, 20, 5), updated_at=NOW), uow)

    result = views.get_recommendations(RecommendationQuery(lat=40.0, lon=30.0), uow, STALE_AFTER)

    assert [item["id"] for item in result.items] == ["C", "B", "A"]


def test_list_hospitals_sorted_by_name(uow):
    messagebus.handle(make_report("H2", name="Zeynep Kamil"), uow)
    messagebus.handle(make_report("H1", name="Ankara City"), uow)

    hospitals = views.list_hospitals(uow)

    assert [h["name"] for h in hospitals] == ["Ankara City", "Zeynep Kamil"]


def test_history_is_ordered_by_reporting_time(uow):
    first = datetime(2024, 10, 24, 10, 0, tzinfo=timezone.utc)
    # Arrives last but was reported in between
    reports = [(first, 10), (first + timedelta(minutes=20), 8), (first + timedelta(minutes=10), 9)]
    for reported_at, beds in reports:
        messagebus.handle(make_report("H1", capacity=(100, beds, 20, 5), updated_at=reported_at), uow)

    history = views.get_capacity_history("H1", uow)

    assert [snapshot["available_beds"] for snapshot in history] == [8, 9, 10]


def test_history_limit(uow):
    first = datetime(2024, 10, 24, 10, 0, tzinfo=timezone.utc)
    for minute in range(5):
        messagebus.handle(make_report("H1", updated_at=first + timedelta(minutes=minute)), uow)

    assert len(views.get_capacity_history("H1", uow, limit=3)) == 3


def test_get_hospital_includes_history(uow):
    messagebus.handle(make_report("H1", district="Cankaya"), uow)

    hospital = views.get_hospital("H1", uow)

    assert hospital["id"] == "H1"
    assert hospital["district"] == "Cankaya"
    assert len(hospital["history"]) == 1
    assert hospital["history"][0]["source"] == "api"


def test_get_unknown_hospital(uow):
    assert views.get_hospital("NOPE", uow) is None
