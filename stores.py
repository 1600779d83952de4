# stores.py
"""
Entity stores
-------------
One in-memory collection per record type (clients, services, schedules,
reminders), mirrored as a JSON list into LocalStorage after every mutation.
"""

import json
import logging
import math
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from storage import (
    CLIENTS_KEY,
    REMINDERS_KEY,
    SCHEDULES_KEY,
    SERVICES_KEY,
    LocalStorage,
)

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
Listener = Callable[["EntityStore"], None]


# =========================
# Errors
# =========================
class OnTurnError(Exception):
    """Base error of the dashboard"""


class ValidationError(OnTurnError):
    """Input rejected before any state was touched"""


# =========================
# Validation
# =========================
def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def validate_required(data: Record, fields: Iterable[str]) -> Tuple[bool, str]:
    """Every field must be present and, for strings, non-blank"""
    missing = [name for name in fields if _is_blank(data.get(name))]
    if missing:
        return False, f"Please fill in all required fields: {', '.join(missing)}."
    return True, ""


def _valid_id(value: Any) -> bool:
    # bool is an int subclass, True must not pass as id 1
    return isinstance(value, int) and not isinstance(value, bool)


# =========================
# Base store
# =========================
class EntityStore:
    """CRUD over one collection with a persistent mirror.

    Ids come from a monotonic counter that starts one above the largest
    integer id found at load time; they are never reused in a process.
    """

    key: str = ""
    label: str = "Record"
    required_fields: Tuple[str, ...] = ()
    # set by the store itself, never taken from input
    protected_fields: Tuple[str, ...] = ()
    created_verb: str = "added"

    def __init__(self, storage: LocalStorage, today: Callable[[], date] = date.today):
        self.storage = storage
        self.today = today
        self._records: List[Record] = []
        self._next_id = 1
        self._listeners: List[Listener] = []
        self._loaded = False

    # -------------------------------------------------
    # Load / persist

    def default_records(self) -> List[Record]:
        return []

    def load(self) -> None:
        raw = self.storage.get_item(self.key)
        records = None

        if raw is None:
            logger.info(f"{self.key}: nothing stored yet, using defaults")
        else:
            try:
                parsed = json.loads(raw)
            except ValueError as e:
                logger.error(f"Error parsing stored {self.key}: {e}")
            else:
                if isinstance(parsed, list) and all(isinstance(r, dict) for r in parsed):
                    records = parsed
                else:
                    logger.error(f"Stored {self.key} is not a list of records, using defaults")

        fallback = records is None
        self._records = self.default_records() if fallback else records
        rekeyed = self._normalize_ids()
        self._loaded = True

        if fallback or rekeyed:
            self._persist()
        logger.info(f"{self.key}: loaded {len(self._records)} records")

    def _normalize_ids(self) -> int:
        valid = [r["id"] for r in self._records if _valid_id(r.get("id"))]
        # a refresh never moves the counter backwards
        self._next_id = max(max(valid, default=0) + 1, self._next_id)

        seen = set()
        rekeyed = 0
        for record in self._records:
            current = record.get("id")
            if _valid_id(current) and current not in seen:
                seen.add(current)
                continue
            record["id"] = self._allocate_id()
            seen.add(record["id"])
            rekeyed += 1
            logger.warning(f"{self.key}: id {current!r} replaced with {record['id']}")
        return rekeyed

    def _allocate_id(self) -> int:
        new_id = self._next_id
        self._next_id += 1
        return new_id

    def _persist(self, records: Optional[List[Record]] = None) -> None:
        records = self._records if records is None else records
        self.storage.set_item(self.key, json.dumps(records))

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def refresh(self) -> None:
        """Re-read the collection from storage and notify subscribers"""
        self.load()
        self._notify()

    # -------------------------------------------------
    # Subscriptions

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _commit(self, records: List[Record], action: str, record_id: int) -> None:
        # memory follows storage, a failed write leaves the collection as it was
        self._persist(records)
        self._records = records
        logger.info(f"{self.label} {action}: id={record_id}")
        self._notify()

    # -------------------------------------------------
    # Hooks

    def coerce(self, data: Record) -> Record:
        """Convert form values to stored types, raise ValidationError if impossible"""
        return data

    def creation_fields(self) -> Record:
        """Fields forced on every new record"""
        return {}

    def prepare(self, data: Record, partial: bool = False) -> Record:
        data = dict(data)
        data.pop("id", None)
        for name in self.protected_fields:
            data.pop(name, None)
        if partial:
            fields = [name for name in self.required_fields if name in data]
        else:
            fields = self.required_fields

        is_valid, error_msg = validate_required(data, fields)
        if not is_valid:
            logger.info(f"{self.label} rejected: {error_msg}")
            raise ValidationError(error_msg)
        return self.coerce(data)

    # -------------------------------------------------
    # Queries

    def __len__(self) -> int:
        self._ensure_loaded()
        return len(self._records)

    def list(self) -> List[Record]:
        self._ensure_loaded()
        return [dict(r) for r in self._records]

    def filter(self, predicate: Callable[[Record], bool]) -> List[Record]:
        self._ensure_loaded()
        return [dict(r) for r in self._records if predicate(r)]

    def get(self, record_id: int) -> Optional[Record]:
        index = self._index_of(record_id)
        return dict(self._records[index]) if index is not None else None

    def _index_of(self, record_id: int) -> Optional[int]:
        self._ensure_loaded()
        for index, record in enumerate(self._records):
            if record.get("id") == record_id:
                return index
        return None

    # -------------------------------------------------
    # Mutations

    def create(self, data: Record) -> Record:
        self._ensure_loaded()
        fields = self.prepare(data)
        record = {"id": self._allocate_id(), **fields, **self.creation_fields()}
        self._commit(self._records + [record], "created", record["id"])
        return dict(record)

    def update(self, record_id: int, changes: Record) -> Optional[Record]:
        changes = self.prepare(changes, partial=True)
        index = self._index_of(record_id)
        if index is None:
            logger.debug(f"{self.label} {record_id} not found, update skipped")
            return None

        merged = {**self._records[index], **changes}
        records = list(self._records)
        records[index] = merged
        self._commit(records, "updated", record_id)
        return dict(merged)

    def delete(self, record_id: int) -> bool:
        index = self._index_of(record_id)
        if index is None:
            logger.debug(f"{self.label} {record_id} not found, delete skipped")
            return False

        records = self._records[:index] + self._records[index + 1:]
        self._commit(records, "deleted", record_id)
        return True


# =========================
# Entities
# =========================
class ClientStore(EntityStore):
    key = CLIENTS_KEY
    label = "Client"
    required_fields = ("name", "email", "phone")
    protected_fields = ("total_appointments", "last_visit")

    def default_records(self) -> List[Record]:
        return [
            {
                "id": 1,
                "name": "Richar Vasques",
                "email": "richar@hotmail.com",
                "phone": "3106667777",
                "total_appointments": 15,
                "last_visit": "2024-01-10",
            }
        ]

    def creation_fields(self) -> Record:
        return {"total_appointments": 0, "last_visit": self.today().isoformat()}

    def search(self, term: str) -> List[Record]:
        """Case-insensitive substring match on name or email"""
        needle = (term or "").strip().lower()
        if not needle:
            return self.list()
        return self.filter(
            lambda r: needle in str(r.get("name", "")).lower()
            or needle in str(r.get("email", "")).lower()
        )


def _to_number(value: Any, integer: bool) -> Any:
    if isinstance(value, str):
        value = value.strip()
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(value)
    if integer:
        if not number.is_integer():
            raise ValueError(value)
        return int(number)
    return int(number) if number.is_integer() else number


class ServiceStore(EntityStore):
    key = SERVICES_KEY
    label = "Service"
    required_fields = ("name", "category", "duration", "price")

    def default_records(self) -> List[Record]:
        return [
            {
                "id": 1,
                "name": "Corte de pelo",
                "category": "Corte",
                "duration": 40,
                "price": 22000,
                "description": "Corte sencillo",
            }
        ]

    def coerce(self, data: Record) -> Record:
        for field, integer in (("duration", True), ("price", False)):
            if field not in data:
                continue
            try:
                number = _to_number(data[field], integer)
            except (TypeError, ValueError):
                kind = "a whole number" if integer else "a number"
                raise ValidationError(f"{field.capitalize()} must be {kind}.")
            if number < 0:
                raise ValidationError(f"{field.capitalize()} cannot be negative.")
            data[field] = number

        if "description" in data and data["description"] is None:
            data["description"] = ""
        return data


class ScheduleStore(EntityStore):
    key = SCHEDULES_KEY
    label = "Appointment"
    required_fields = ("client", "service", "date", "time")
    protected_fields = ("duration",)
    created_verb = "created"
    statuses = ("pending", "confirmed", "completed", "cancelled")
    default_duration = 60

    def coerce(self, data: Record) -> Record:
        if "status" in data and data["status"] not in self.statuses:
            raise ValidationError(f"Unknown appointment status: {data['status']}.")
        if "date" in data and isinstance(data["date"], date):
            data["date"] = data["date"].isoformat()
        return data

    def creation_fields(self) -> Record:
        return {"duration": self.default_duration, "status": "pending"}

    def for_date(self, day) -> List[Record]:
        """Exact match on the YYYY-MM-DD date string"""
        wanted = day.isoformat() if isinstance(day, date) else str(day)
        return self.filter(lambda r: r.get("date") == wanted)

    def set_status(self, record_id: int, status: str) -> Optional[Record]:
        return self.update(record_id, {"status": status})

    def day_stats(self, day) -> Dict[str, int]:
        counts = {status: 0 for status in self.statuses}
        for record in self.for_date(day):
            if record.get("status") in counts:
                counts[record["status"]] += 1
        return counts


class ReminderStore(EntityStore):
    key = REMINDERS_KEY
    label = "Reminder"
    required_fields = ("client", "scheduled_time", "message", "service")
    protected_fields = ("scheduled_date",)
    created_verb = "created"
    statuses = ("pending", "sent")

    def coerce(self, data: Record) -> Record:
        if "status" in data and data["status"] not in self.statuses:
            raise ValidationError(f"Unknown reminder status: {data['status']}.")
        return data

    def creation_fields(self) -> Record:
        # the date picked in the form is ignored, reminders are stamped with today
        return {"scheduled_date": self.today().isoformat(), "status": "pending"}

    def mark_sent(self, record_id: int) -> Optional[Record]:
        return self.update(record_id, {"status": "sent"})

    def status_counts(self) -> Dict[str, int]:
        counts = {status: 0 for status in self.statuses}
        for record in self.list():
            if record.get("status") in counts:
                counts[record["status"]] += 1
        return counts


# =========================
# Form choices
# =========================
class FormOptions:
    """Client and service names offered by the schedule and reminder forms.

    Kept current through store subscriptions instead of re-reading storage
    every time a form is opened.
    """

    def __init__(self, clients: ClientStore, services: ServiceStore):
        self.client_names: List[str] = []
        self.service_names: List[str] = []
        clients.subscribe(self._on_clients)
        services.subscribe(self._on_services)
        self._on_clients(clients)
        self._on_services(services)

    @staticmethod
    def _names(store: EntityStore) -> List[str]:
        names = [str(r.get("name", "")).strip() for r in store.list()]
        return list(dict.fromkeys(n for n in names if n))

    def _on_clients(self, store: EntityStore) -> None:
        self.client_names = self._names(store)

    def _on_services(self, store: EntityStore) -> None:
        self.service_names = self._names(store)
