"""ORM models package."""
from .audit_log import AuditLog
from .base import Base, TimestampMixin, utcnow
from .customer import Customer
from .role import (
    DEFAULT_ROLE_TITLES,
    PLATFORM_ADMIN_TITLES,
    SITE_ADMIN_TITLE,
    WILDCARD_PERMISSION,
    Role,
    is_platform_admin_title,
    is_site_admin_title,
)
from .user import User, UserStatus

__all__ = [
    "AuditLog",
    "Base",
    "Customer",
    "DEFAULT_ROLE_TITLES",
    "PLATFORM_ADMIN_TITLES",
    "Role",
    "SITE_ADMIN_TITLE",
    "TimestampMixin",
    "User",
    "UserStatus",
    "WILDCARD_PERMISSION",
    "is_platform_admin_title",
    "is_site_admin_title",
    "utcnow",
]
