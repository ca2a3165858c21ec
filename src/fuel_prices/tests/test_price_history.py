"""Price history reads over a long, append-only observation log."""

import pytest

from fuel_prices.repositories import FuelPricesRepository
from fuel_prices.utils.geo import BoundingBox

LONDON = BoundingBox(-0.2, 51.4, 0.0, 51.6)

pytestmark = pytest.mark.django_db


@pytest.fixture
def repo():
    return FuelPricesRepository()


@pytest.fixture
def alternating_history(repo, station_record, price_record, hours_ago):
    """Two hundred E10 observations alternating between two prices."""
    repo.insert_stations([station_record(node_id="pfs-1")])
    entries = [("E10", 141.9 if i % 2 else 142.9, hours_ago(i)) for i in range(200)]
    repo.insert_prices([price_record("pfs-1", *entries)])


def test_limit_is_applied_in_the_database(repo, alternating_history):
    rows = repo._price_history_rows(LONDON, limit=1)

    assert "ROW_NUMBER" in str(rows.query).upper()
    assert len(rows) == 1


def test_only_run_starts_are_read(repo, alternating_history):
    assert len(repo._price_history_rows(LONDON, limit=500)) == 200


def test_equal_runs_collapse_before_ranking(repo, station_record, price_record, hours_ago):
    repo.insert_stations([station_record(node_id="pfs-2")])
    repo.insert_prices(
        [
            price_record(
                "pfs-2",
                ("B7", 150.9, hours_ago(0)),
                ("B7", 149.9, hours_ago(1)),
                ("B7", 149.9, hours_ago(2)),
                ("B7", 149.9, hours_ago(3)),
                ("B7", 148.9, hours_ago(4)),
            )
        ]
    )

    rows = list(repo._price_history_rows(LONDON, limit=2))

    assert [(float(price), updated) for _, _, price, updated, _ in rows] == [
        (150.9, hours_ago(0)),
        (149.9, hours_ago(3)),
    ]


def test_history_per_station_and_fuel(repo, alternating_history):
    history = repo.find_price_history(LONDON, limit=3)

    assert list(history) == ["pfs-1"]
    assert [p.price for p in history["pfs-1"]["E10"]] == [142.9, 141.9, 142.9]
