from datetime import date

import pytest

from dashboard import DashboardView

TODAY = date(2026, 10, 21)  # Wednesday


@pytest.fixture
def view(onturn):
    return DashboardView(onturn.schedules, onturn.clients, onturn.services, today=lambda: TODAY)


def book(onturn, day, time="10:00", service="Corte de pelo", status=None):
    record = onturn.schedules.create({"client": "Ana", "service": service, "date": day, "time": time})
    if status:
        onturn.schedules.set_status(record["id"], status)
    return record


def test_empty_dashboard(view):
    assert view.todays_appointments() == []
    assert view.summary() == {
        "todays_appointments": 0,
        "active_clients": 1,
        "hours_this_week": 0,
        "revenue": 0,
    }


def test_todays_appointments_only_today_sorted(onturn, view):
    book(onturn, "2026-10-21", "15:00")
    book(onturn, "2026-10-21", "09:30")
    book(onturn, "2026-10-22", "08:00")

    assert [a["time"] for a in view.todays_appointments()] == ["09:30", "15:00"]
    assert view.summary()["todays_appointments"] == 2


def test_hours_this_week(onturn, view):
    book(onturn, "2026-10-19")                      # Monday
    book(onturn, "2026-10-25")                      # Sunday
    book(onturn, "2026-10-21", status="cancelled")
    book(onturn, "2026-10-26")                      # next week
    book(onturn, "2026-10-18")                      # last week

    assert view.week_bounds() == (date(2026, 10, 19), date(2026, 10, 25))
    assert view.hours_this_week() == 2.0


def test_hours_skip_malformed_dates(onturn, view):
    book(onturn, "someday")
    book(onturn, "2026-10-20")
    assert view.hours_this_week() == 1.0


def test_revenue_from_completed_appointments(onturn, view):
    onturn.services.create({"name": "Tinte", "category": "Color", "duration": "90", "price": "45.5"})
    book(onturn, "2026-10-01", status="completed")
    book(onturn, "2026-10-02", service="Tinte", status="completed")
    book(onturn, "2026-10-03", service="Tinte", status="confirmed")
    book(onturn, "2026-10-04", service="Unknown", status="completed")

    assert view.revenue() == 22000 + 45.5


def test_active_clients_counts_collection(onturn, view):
    onturn.clients.create({"name": "Ana Ruiz", "email": "ana@x.com", "phone": "5551234"})
    assert view.summary()["active_clients"] == 2
