# tuneserver/models.py
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint

from tuneserver.database import Base

# The two collections the service persists. Each class maps to one table;
# rows are plain documents with no relationships between them.


def _utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)  # bcrypt hash
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class StreamCount(Base):
    __tablename__ = "streams"
    __table_args__ = (CheckConstraint("streams >= 1", name="ck_streams_positive"),)
    id = Column(Integer, primary_key=True, index=True)
    song_id = Column(String, unique=True, index=True, nullable=False)
    streams = Column(Integer, nullable=False, default=1)
