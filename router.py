# router.py
import logging
from enum import Enum
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class Section(Enum):
    DASHBOARD = ("dashboard", "Dashboard")
    SCHEDULES = ("schedules", "Schedules")
    CLIENTS = ("clients", "Clients")
    SERVICES = ("services", "Services")
    REMINDERS = ("reminders", "Reminders")

    def __init__(self, slug: str, label: str):
        self.slug = slug
        self.label = label

    @classmethod
    def from_slug(cls, slug: Optional[str]) -> Optional["Section"]:
        for section in cls:
            if section.slug == slug:
                return section
        return None


DEFAULT_SECTION = Section.DASHBOARD


class ViewRouter:
    """Holds the active section and dispatches rendering to its handler.

    Nothing is persisted: a fresh router always starts on the dashboard.
    """

    def __init__(self, default: Section = DEFAULT_SECTION):
        self.default = default
        self.active = default
        self._handlers: Dict[Section, Callable[[], str]] = {}

    def select(self, slug: Optional[str]) -> Section:
        section = Section.from_slug(slug)
        if section is None:
            if slug:
                logger.warning(f"Unknown section {slug!r}, falling back to {self.default.slug}")
            section = self.default
        self.active = section
        return section

    def register(self, section: Section, handler: Callable[[], str]) -> None:
        self._handlers[section] = handler

    def render(self) -> str:
        handler = self._handlers.get(self.active) or self._handlers.get(self.default)
        if handler is None:
            raise LookupError(f"No view registered for section {self.active.slug}")
        return handler()

    @property
    def sections(self):
        return list(Section)
