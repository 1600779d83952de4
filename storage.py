# storage.py
import logging
from typing import List, Optional

from models import db, StorageItem

logger = logging.getLogger(__name__)

CLIENTS_KEY = "clients"
SERVICES_KEY = "services"
REMINDERS_KEY = "reminders"
SCHEDULES_KEY = "appointments_schedules"


class LocalStorage:
    """String key/value store on top of the storage_item table.

    Every write commits immediately. Must be used inside an app context.
    """

    def get_item(self, key: str) -> Optional[str]:
        item = db.session.get(StorageItem, key, populate_existing=True)
        return item.value if item is not None else None

    def set_item(self, key: str, value: str) -> None:
        item = db.session.get(StorageItem, key)
        if item is None:
            item = StorageItem(key=key, value=value)
            db.session.add(item)
        else:
            item.value = value
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            logger.exception(f"storage: {key} write failed")
            raise
        logger.debug(f"storage: {key} written ({len(value)} bytes)")

    def remove_item(self, key: str) -> None:
        item = db.session.get(StorageItem, key)
        if item is not None:
            db.session.delete(item)
            db.session.commit()

    def keys(self) -> List[str]:
        return [row.key for row in StorageItem.query.order_by(StorageItem.key).all()]

    def clear(self) -> None:
        StorageItem.query.delete()
        db.session.commit()
