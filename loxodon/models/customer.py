"""Customer (tenant) ORM model."""
from __future__ import annotations

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from loxodon.models.base import Base, TimestampMixin


class Customer(TimestampMixin, Base):
    """An isolated customer organization; owns its users and roles."""

    __tablename__ = "customers"
    __table_args__ = (Index("ix_customers_domain", "domain"),)

    tenant_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    auto_sync: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    users = relationship("User", back_populates="customer", passive_deletes=True)
    roles = relationship("Role", back_populates="customer", passive_deletes=True)


__all__ = ["Customer"]
