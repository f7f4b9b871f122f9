"""
Read path for stored alert records, newest first.
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import sessionmaker

from emergency_alerts.storage import list_alert_records

logger = logging.getLogger(__name__)


def parse_limit(raw: Optional[Any], default: int = 10, maximum: Optional[int] = None) -> int:
    """
    Interpret the ?limit= query value.

    Absent, non-numeric or non-positive values fall back to the default.
    A positive value is used as given unless a maximum is configured.
    """
    if raw is None:
        return default
    try:
        limit = int(str(raw).strip())
    except ValueError:
        logger.debug(f"Ignoring non-numeric limit: {raw!r}")
        return default
    if limit < 1:
        return default
    if maximum is not None:
        return min(limit, maximum)
    return limit


class AlertListing:
    def __init__(self, session_factory: sessionmaker, default_limit: int = 10, max_limit: Optional[int] = None):
        self.session_factory = session_factory
        self.default_limit = default_limit
        self.max_limit = max_limit

    def list(self, limit: Optional[int] = None) -> list:
        """
        Return at most `limit` records ordered by created_at descending.
        Store errors propagate; the route turns them into a 500.
        """
        limit = parse_limit(limit, self.default_limit, self.max_limit)
        with self.session_factory() as db:
            records = list_alert_records(db, limit)
            # Detach so attributes stay readable after the session closes
            db.expunge_all()
        return records
