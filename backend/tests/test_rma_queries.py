from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from rma_tracker.services.rma_queries import (
    PageInfo,
    RmaFilters,
    list_customers,
    list_rmas,
    parse_status_list,
)
from rma_tracker.use_cases.customer_lifecycle import create_customer_use_case, delete_customer_with_preservation
from rma_tracker.use_cases.service_cycles import update_cycle_status_by_serial_use_case


def _set_created(db, rma, when: datetime) -> None:
    rma.creation_date = when
    rma.last_update_date = when
    db.commit()


@pytest.fixture
def three_rmas(db, customer, make_rma):
    globex = create_customer_use_case(db=db, name="Globex Clinics")
    oldest = make_rma(customer.id, "SN1")
    middle = make_rma(globex.id, "SN2", is_injury_related=True, injury_details="Cut finger")
    newest = make_rma(customer.id, "SN3")
    _set_created(db, oldest, datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc))
    _set_created(db, middle, datetime(2026, 3, 2, 23, 59, tzinfo=timezone.utc))
    _set_created(db, newest, datetime(2026, 3, 3, 9, 30, tzinfo=timezone.utc))
    return oldest.id, middle.id, newest.id, globex.id


def test_parse_status_list_canonicalizes_and_skips_blanks() -> None:
    assert parse_status_list("received, in repair,,Closed") == ("Received", "In Repair", "Closed")
    assert parse_status_list(None) == ()
    assert parse_status_list("bogus") == ("bogus",)


@pytest.mark.parametrize(("total", "limit", "pages"), [(0, 10, 0), (10, 10, 1), (11, 10, 2), (101, 50, 3)])
def test_page_info_total_pages(total, limit, pages) -> None:
    assert PageInfo(page=1, limit=limit, total=total).total_pages == pages


def test_list_rmas_newest_first_with_pagination(db, three_rmas) -> None:
    oldest, middle, newest, _ = three_rmas

    first_page, info = list_rmas(db, filters=RmaFilters(), page=1, limit=2)
    second_page, _ = list_rmas(db, filters=RmaFilters(), page=2, limit=2)

    assert [rma.id for rma in first_page] == [newest, middle]
    assert [rma.id for rma in second_page] == [oldest]
    assert (info.total, info.total_pages) == (3, 2)


def test_list_rmas_search_matches_id_and_customer_name(db, three_rmas) -> None:
    oldest, middle, newest, _ = three_rmas

    by_customer, _ = list_rmas(db, filters=RmaFilters(search="globex"))
    by_id, _ = list_rmas(db, filters=RmaFilters(search=oldest.lower()))

    assert [rma.id for rma in by_customer] == [middle]
    assert [rma.id for rma in by_id] == [oldest]


def test_list_rmas_search_matches_preserved_customer_snapshot(db, customer, three_rmas) -> None:
    oldest, _, newest, _ = three_rmas
    delete_customer_with_preservation(db=db, customer_id=customer.id)

    rmas, info = list_rmas(db, filters=RmaFilters(search="acme"))

    assert [rma.id for rma in rmas] == [newest, oldest]
    assert info.total == 2


def test_list_rmas_filters_by_status_of_any_cycle(db, three_rmas) -> None:
    oldest, middle, _, _ = three_rmas
    update_cycle_status_by_serial_use_case(db=db, rma_id=oldest, device_serial_number="SN1", new_status="In Repair")
    update_cycle_status_by_serial_use_case(db=db, rma_id=middle, device_serial_number="SN2", new_status="Shipped")

    rmas, info = list_rmas(db, filters=RmaFilters(statuses=("In Repair", "Shipped")))

    assert [rma.id for rma in rmas] == [middle, oldest]
    assert info.total == 2


def test_list_rmas_date_range_includes_whole_end_day(db, three_rmas) -> None:
    oldest, middle, _, _ = three_rmas

    rmas, _ = list_rmas(db, filters=RmaFilters(date_from=date(2026, 3, 1), date_to=date(2026, 3, 2)))

    assert [rma.id for rma in rmas] == [middle, oldest]


def test_list_rmas_filters_by_customer_and_injury(db, customer, three_rmas) -> None:
    oldest, middle, newest, _ = three_rmas

    by_customer, _ = list_rmas(db, filters=RmaFilters(customer_id=customer.id))
    injuries, _ = list_rmas(db, filters=RmaFilters(is_injury_related=True))
    no_injuries, _ = list_rmas(db, filters=RmaFilters(is_injury_related=False))

    assert [rma.id for rma in by_customer] == [newest, oldest]
    assert [rma.id for rma in injuries] == [middle]
    assert [rma.id for rma in no_injuries] == [newest, oldest]


def test_list_customers_sorted_by_name_with_search(db, customer) -> None:
    create_customer_use_case(db=db, name="Zeta Labs", email="desk@zeta.example")
    create_customer_use_case(db=db, name="Beta Corp", contact_person="Jane Roe")

    everyone, info = list_customers(db, page=1, limit=10)
    janes, _ = list_customers(db, search="jane")
    by_email, _ = list_customers(db, search="zeta.example")

    assert [c.name for c in everyone] == ["Acme Medical", "Beta Corp", "Zeta Labs"]
    assert info.total == 3
    assert [c.name for c in janes] == ["Acme Medical", "Beta Corp"]
    assert [c.name for c in by_email] == ["Zeta Labs"]
