from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db.models.base import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (Index("idx_products_promoted_until", "is_promoted", "promoted_until"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    artist_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_promoted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    promoted_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
