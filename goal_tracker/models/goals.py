from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON
from goal_tracker.database import Base


class GoalDocument(Base):
    """A goal as mirrored by a client, keyed by (id, user_id)."""
    __tablename__ = "goals"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(128), primary_key=True, index=True)
    date = Column(String(10), index=True)               # day the client issued the write
    start_date = Column(String(10), nullable=False)     # YYYY-MM-DD, compares lexicographically
    end_date = Column(String(10), nullable=False)
    document = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class DayDataDocument(Base):
    """A per-day aggregate as mirrored by a client, keyed by (date, user_id)."""
    __tablename__ = "day_data"

    date = Column(String(10), primary_key=True)
    user_id = Column(String(128), primary_key=True, index=True)
    document = Column(JSON, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
