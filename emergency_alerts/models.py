"""
SQLAlchemy ORM models for database tables.

For Pydantic request/response schemas, see schemas.py.
"""

from sqlalchemy import Column, Integer, String, Text

from emergency_alerts.storage import Base, ALERTS_TABLE


class AlertRecord(Base):
    """
    One row per dispatch attempt, written once and never updated.

    Table: emergency_alerts
    gateway_* columns are set only for sent records, error only for failed ones.
    """
    __tablename__ = ALERTS_TABLE

    id = Column(Integer, primary_key=True, autoincrement=True)
    phone_number = Column(String, nullable=False)
    message = Column(Text, nullable=True)
    status = Column(String, nullable=False)  # sent | failed
    gateway_message_id = Column(String, nullable=True)
    gateway_status = Column(String, nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(String, nullable=False, index=True)  # Server time ISO-8601
