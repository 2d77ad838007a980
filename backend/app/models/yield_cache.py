from sqlalchemy import JSON, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.database import Base


class YieldCacheEntry(Base):
    """One cached PVGIS PVcalc response, keyed by rounded request parameters."""

    __tablename__ = "yield_cache_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    response: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[float] = mapped_column(Float, nullable=False)  # unix seconds
    expires_at: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (Index("ix_yield_cache_entries_created_at", "created_at"),)
