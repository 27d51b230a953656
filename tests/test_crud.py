from datetime import datetime, timezone

from country_api import crud, models


def make_record(name, **overrides):
    record = {
        "name": name,
        "capital": None,
        "region": "Africa",
        "population": 100,
        "currency_code": "AAA",
        "exchange_rate": 2.0,
        "estimated_gdp": 1000.0,
        "flag_url": None,
        "last_refreshed_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
    }
    record.update(overrides)
    return record


def seed(db):
    crud.upsert_country(db, make_record("Alpha", region="Africa", population=100, currency_code="AAA", estimated_gdp=1000.0))
    crud.upsert_country(db, make_record("Bravo", region="Europe", population=300, currency_code="BBB", estimated_gdp=500.0))
    crud.upsert_country(db, make_record("Charlie", region="africa", population=200, currency_code="BBB", estimated_gdp=1500.0))


def test_upsert_inserts_then_updates_case_insensitively(db):
    crud.upsert_country(db, make_record("Nigeria", population=100))
    crud.upsert_country(db, make_record("NIGERIA", population=250, capital="Abuja"))

    rows = db.query(models.Country).all()
    assert len(rows) == 1
    assert rows[0].population == 250
    assert rows[0].capital == "Abuja"
    assert rows[0].name == "NIGERIA"
    assert rows[0].name_key == "nigeria"


def test_upsert_overwrites_nullable_fields(db):
    crud.upsert_country(db, make_record("Ghana", currency_code="GHS", exchange_rate=15.0, estimated_gdp=99.0))
    crud.upsert_country(db, make_record("Ghana", currency_code="GHS", exchange_rate=None, estimated_gdp=None))

    db.expire_all()
    ghana = crud.get_country(db, "ghana")
    assert ghana.exchange_rate is None
    assert ghana.estimated_gdp is None


def test_get_country_is_case_insensitive(db):
    seed(db)
    assert crud.get_country(db, "ALPHA").name == "Alpha"
    assert crud.get_country(db, "alpha").id == crud.get_country(db, "Alpha").id
    assert crud.get_country(db, "Delta") is None


def test_filters_are_exact_and_combined(db):
    seed(db)
    assert {c.name for c in crud.get_countries(db, region="Africa")} == {"Alpha"}
    assert {c.name for c in crud.get_countries(db, currency="BBB")} == {"Bravo", "Charlie"}
    assert {c.name for c in crud.get_countries(db, region="africa", currency="BBB")} == {"Charlie"}
    assert crud.get_countries(db, currency="bbb") == []


def test_sort_orders(db):
    seed(db)
    names = lambda sort: [c.name for c in crud.get_countries(db, sort=sort)]  # noqa: E731
    assert names("gdp_desc") == ["Charlie", "Alpha", "Bravo"]
    assert names("gdp_asc") == ["Bravo", "Alpha", "Charlie"]
    assert names("population_desc") == ["Bravo", "Charlie", "Alpha"]
    assert names("population_asc") == ["Alpha", "Charlie", "Bravo"]


def test_unknown_sort_falls_back_to_name(db):
    seed(db)
    expected = ["Alpha", "Bravo", "Charlie"]
    assert [c.name for c in crud.get_countries(db, sort="name_desc")] == expected
    assert [c.name for c in crud.get_countries(db, sort="bogus")] == expected
    assert [c.name for c in crud.get_countries(db)] == expected


def test_pagination(db):
    seed(db)
    assert [c.name for c in crud.get_countries(db, limit=1, offset=1)] == ["Bravo"]


def test_delete_country(db):
    seed(db)
    assert crud.delete_country(db, "bravo") is True
    assert crud.get_country(db, "Bravo") is None
    assert crud.delete_country(db, "bravo") is False
    assert crud.count_countries(db) == 2


def test_status_helpers(db):
    assert crud.count_countries(db) == 0
    assert crud.get_last_refresh(db) is None

    crud.upsert_country(db, make_record("Old", last_refreshed_at=datetime(2024, 5, 1, tzinfo=timezone.utc)))
    crud.upsert_country(db, make_record("New", last_refreshed_at=datetime(2025, 6, 1, tzinfo=timezone.utc)))

    assert crud.count_countries(db) == 2
    assert crud.get_last_refresh(db) == datetime(2025, 6, 1, tzinfo=timezone.utc)
    assert crud.get_last_refresh(db).tzinfo is not None


def test_top_by_gdp(db):
    seed(db)
    crud.upsert_country(db, make_record("Echo", estimated_gdp=5000.0))
    top = crud.get_top_by_gdp(db, limit=2)
    assert [c.name for c in top] == ["Echo", "Charlie"]


def test_name_match_ignores_case_only(db):
    seed(db)
    assert crud.get_country(db, " alpha ") is None
    assert crud.delete_country(db, "alpha ") is False
    assert crud.count_countries(db) == 3


def test_timestamps_round_trip_as_utc(db):
    crud.upsert_country(db, make_record("Kenya", last_refreshed_at=datetime(2025, 3, 4, 5, 6, 7, tzinfo=timezone.utc)))
    kenya = crud.get_country(db, "kenya")
    assert kenya.last_refreshed_at == datetime(2025, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
    assert kenya.last_refreshed_at.tzinfo is not None
