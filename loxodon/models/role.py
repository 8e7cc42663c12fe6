"""Role ORM model."""
from __future__ import annotations

from sqlalchemy import ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from loxodon.models.base import Base, TimestampMixin

SITE_ADMIN_TITLE = "Site Admin"
DEFAULT_ROLE_TITLES = (SITE_ADMIN_TITLE, "Viewer", "Manager")
PLATFORM_ADMIN_TITLES = frozenset({"platform admin", "platform-admin"})
WILDCARD_PERMISSION = "*"


def normalize_title(title: str | None) -> str:
    return (title or "").strip().lower()


def is_platform_admin_title(title: str | None) -> bool:
    return normalize_title(title) in PLATFORM_ADMIN_TITLES


def is_site_admin_title(title: str | None) -> bool:
    return normalize_title(title) == SITE_ADMIN_TITLE.lower()


class Role(TimestampMixin, Base):
    """Named permission set scoped to a single customer."""

    __tablename__ = "roles"
    __table_args__ = (Index("ix_roles_tenant_id", "tenant_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    tenant_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("customers.tenant_id", ondelete="CASCADE"), nullable=False
    )
    description: Mapped[str | None] = mapped_column(Text)
    permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    customer = relationship("Customer", back_populates="roles")
    users = relationship("User", back_populates="role")

    @property
    def is_platform_admin(self) -> bool:
        return is_platform_admin_title(self.title)

    @property
    def is_site_admin(self) -> bool:
        return is_site_admin_title(self.title)


__all__ = [
    "DEFAULT_ROLE_TITLES",
    "PLATFORM_ADMIN_TITLES",
    "Role",
    "SITE_ADMIN_TITLE",
    "WILDCARD_PERMISSION",
    "is_platform_admin_title",
    "is_site_admin_title",
    "normalize_title",
]
