from concurrent.futures import ThreadPoolExecutor

import pytest

from hospital_capacity.service_layer.metrics import COUNTERS, Metrics


def test_all_counters_start_at_zero():
    assert Metrics().snapshot() == {name: 0 for name in COUNTERS}


def test_increment_by_amount():
    metrics = Metrics()

    metrics.increment("updates_received")
    metrics.increment("stale_filtered", 3)

    snapshot = metrics.snapshot()
    assert snapshot["updates_received"] == 1
    assert snapshot["stale_filtered"] == 3


def test_unknown_counter_is_rejected():
    with pytest.raises(KeyError):
        Metrics().increment("updates_lost")


def test_snapshot_is_a_copy():
    metrics = Metrics()
    snapshot = metrics.snapshot()

    metrics.increment("db_errors")

    assert snapshot["db_errors"] == 0


def test_concurrent_increments_are_not_lost():
    metrics = Metrics()

    with ThreadPoolExecutor(max_workers=8) as pool:
        for _ in range(1000):
            pool.submit(metrics.increment, "updates_received")

    assert metrics.snapshot()["updates_received"] == 1000
