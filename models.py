from sqlalchemy import Column, String, DateTime, Integer
from db import Base
from datetime import datetime, timezone


def _utcnow():
    return datetime.now(timezone.utc)


class Link(Base):
    __tablename__ = "links"

    id = Column(Integer, primary_key=True, autoincrement=True)
    short_code = Column(String(50), unique=True, index=True, nullable=False)
    original_url = Column(String(2048), nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    clicks = Column(Integer, default=0, nullable=False)
