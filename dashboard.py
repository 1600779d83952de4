# dashboard.py
"""
Dashboard aggregates
--------------------
Read-only figures for the dashboard section, derived from the stores.
"""

from datetime import date, timedelta
from typing import Callable, Dict, List, Optional

from stores import ClientStore, Record, ScheduleStore, ServiceStore


def _parse_day(value) -> Optional[date]:
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        return None


def _number(value) -> float:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    return 0


class DashboardView:
    def __init__(
        self,
        schedules: ScheduleStore,
        clients: ClientStore,
        services: ServiceStore,
        today: Callable[[], date] = date.today,
    ):
        self.schedules = schedules
        self.clients = clients
        self.services = services
        self.today = today

    def todays_appointments(self) -> List[Record]:
        """Appointments dated today, earliest first"""
        records = self.schedules.for_date(self.today())
        return sorted(records, key=lambda r: str(r.get("time", "")))

    def week_bounds(self):
        today = self.today()
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)

    def hours_this_week(self) -> float:
        start, end = self.week_bounds()
        minutes = 0
        for record in self.schedules.list():
            if record.get("status") == "cancelled":
                continue
            day = _parse_day(record.get("date"))
            if day is not None and start <= day <= end:
                minutes += _number(record.get("duration"))
        return round(minutes / 60, 1)

    def revenue(self) -> float:
        """Sum of service prices over completed appointments"""
        prices = {}
        for service in self.services.list():
            prices.setdefault(service.get("name"), _number(service.get("price")))

        total = 0
        for record in self.schedules.filter(lambda r: r.get("status") == "completed"):
            total += prices.get(record.get("service"), 0)
        return total

    def summary(self) -> Dict[str, float]:
        return {
            "todays_appointments": len(self.todays_appointments()),
            "active_clients": len(self.clients),
            "hours_this_week": self.hours_this_week(),
            "revenue": self.revenue(),
        }
