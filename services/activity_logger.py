from typing import Optional

from sqlalchemy.orm import Session

from core.database import run_atomic
from models.user_logs import LogTemplate, UserAction, UserLog
from utils.logger import get_logger

logger = get_logger(__name__)


class UserActivityLogger:
    """Writes the per-user activity trail kept in `user_logs`."""

    def __init__(self, db: Session):
        self.db = db

    def add(self, user_id: int, action: UserAction, template: LogTemplate,
            details: Optional[str] = None) -> UserLog:
        """Stage an entry in the current transaction without committing."""
        entry = UserLog(user_id=user_id, action=action, template=template, details=details)
        self.db.add(entry)
        return entry

    def write(self, user_id: int, action: UserAction, template: LogTemplate,
              details: Optional[str] = None) -> UserLog:
        entry = run_atomic(self.db, lambda: self.add(user_id, action, template, details))
        logger.debug("User activity recorded", extra={"user_id": user_id, "action": action.value})
        return entry
