"""Pydantic schemas package."""

from .audit_log import AuditLogCreate, AuditLogRead
from .common import DataResponse, ErrorResponse, HealthResponse, ListResponse, PageResponse
from .customer import CustomerCreate, CustomerRead, CustomerUpdate
from .role import RoleCreate, RoleRead, RoleUpdate
from .stats import LoginStats, LoginStatsRange, RangeCounts, StatsOverview
from .user import UserActivityRead, UserRead, UserUpdate

__all__ = [
    "AuditLogCreate",
    "AuditLogRead",
    "CustomerCreate",
    "CustomerRead",
    "CustomerUpdate",
    "DataResponse",
    "ErrorResponse",
    "HealthResponse",
    "ListResponse",
    "LoginStats",
    "LoginStatsRange",
    "PageResponse",
    "RangeCounts",
    "RoleCreate",
    "RoleRead",
    "RoleUpdate",
    "StatsOverview",
    "UserActivityRead",
    "UserRead",
    "UserUpdate",
]
