import logging
from contextlib import contextmanager
from typing import Any, Optional

from app import db
from models import AppSetting

logger = logging.getLogger(__name__)


class LocalStore:
    """Durable key-value persistence for the decision session.

    ``save`` only stages a value; it is flushed when the surrounding
    ``transaction()`` block exits, or immediately outside of one.
    """

    def __init__(self, session=None):
        self.session = session or db.session
        self._depth = 0

    def load(self, key: str) -> Optional[Any]:
        setting = AppSetting.query.filter_by(key=key).first()
        if not setting:
            return None
        return setting.value

    def save(self, key: str, value: Any) -> None:
        setting = AppSetting.query.filter_by(key=key).first()
        if not setting:
            setting = AppSetting(key=key, value=value)
            self.session.add(setting)
        else:
            setting.value = value

        if self._depth == 0:
            self.session.commit()

    @contextmanager
    def transaction(self):
        """Scope a group of saves: commit on success, roll back on error"""
        self._depth += 1
        try:
            yield self
            if self._depth == 1:
                self.session.commit()
        except Exception as e:
            logger.error(f"Local store transaction failed: {str(e)}")
            self.session.rollback()
            raise
        finally:
            self._depth -= 1
