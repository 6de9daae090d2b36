from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class Webhook(Base):
    __tablename__ = "webhooks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    method = Column(String(10), nullable=False)
    pathname = Column(Text, nullable=False)
    ip = Column(String(45), nullable=False)
    status_code = Column(Integer, nullable=False, default=200)
    content_type = Column(String(255), nullable=True)
    content_length = Column(Integer, nullable=True)  # bytes
    query_params = Column(JSON, nullable=True)
    headers = Column(JSON, nullable=False, default=dict)
    body = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_webhooks_created_at", "created_at"),
    )
