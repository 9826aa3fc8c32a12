# FILE: app/models/number_series.py
from __future__ import annotations

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint

from app.db.base import Base


class DocNumberSeries(Base):
    __tablename__ = "doc_number_series"
    __table_args__ = (
        UniqueConstraint("prefix", name="uq_doc_number_series_prefix"),
    )

    id = Column(Integer, primary_key=True)
    prefix = Column(String(100), nullable=False)     # DCTPL/25-26/SITE01/
    next_seq = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
