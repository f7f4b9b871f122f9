import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Base class for SQLAlchemy models
Base = declarative_base()

ALERTS_TABLE = "emergency_alerts"


def create_db_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine.

    SQLite needs check_same_thread=False because sync routes run in
    FastAPI's threadpool. In-memory SQLite additionally needs a StaticPool
    so every session sees the same database.
    """
    logger.debug(f"Creating engine for {database_url}")
    kwargs = {"echo": False}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool

    return create_engine(database_url, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """
    Initialize the database by creating all tables.
    Called during application startup.
    """
    logger.debug(f"Initializing database: {engine.url}")
    try:
        # Import models to register them with Base.metadata
        from emergency_alerts.models import AlertRecord  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


def check_db_health(session_factory: sessionmaker) -> bool:
    """
    Check if the database is reachable and the alerts table exists.

    Returns:
        True if DB is healthy and schema exists, False otherwise.
    """
    logger.debug("Checking database health...")
    try:
        with session_factory() as db:
            db.execute(text("SELECT 1"))
            db.execute(text(f"SELECT COUNT(*) FROM {ALERTS_TABLE}")).scalar()
        logger.debug("Database health check passed")
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


def utc_timestamp() -> str:
    """Server time as ISO-8601 UTC with microseconds; sorts lexicographically."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


# =============================================================================
# Alert Record Repository Functions
# =============================================================================

def add_alert_record(
    db: Session,
    phone_number: str,
    status: str,
    message: Optional[str] = None,
    gateway_message_id: Optional[str] = None,
    gateway_status: Optional[str] = None,
    error: Optional[str] = None,
):
    """
    Append one alert record. created_at is assigned here, never by the caller.

    Raises whatever the database raises; the caller decides whether a failed
    write matters.
    """
    from emergency_alerts.models import AlertRecord

    record = AlertRecord(
        phone_number=phone_number,
        message=message,
        status=status,
        gateway_message_id=gateway_message_id,
        gateway_status=gateway_status,
        error=error,
        created_at=utc_timestamp(),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.debug(f"Alert record {record.id} stored with status={status}")
    return record


def list_alert_records(db: Session, limit: int) -> list:
    """
    Retrieve the most recent alert records.

    Ordering: created_at DESC, id DESC (ties broken by insertion order).
    """
    from emergency_alerts.models import AlertRecord

    logger.info(f"Querying alert records: limit={limit}")

    records = (
        db.query(AlertRecord)
        .order_by(AlertRecord.created_at.desc(), AlertRecord.id.desc())
        .limit(limit)
        .all()
    )
    logger.debug(f"Retrieved {len(records)} alert records")
    return records
