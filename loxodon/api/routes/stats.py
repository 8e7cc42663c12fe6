"""Dashboard statistics endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from loxodon.api.deps import get_db_session, get_directory_client, require_any_permission
from loxodon.api.errors import error_boundary
from loxodon.core.config import get_settings
from loxodon.core.dates import LOGIN_STATS_RANGES
from loxodon.core.errors import ValidationError
from loxodon.schemas import DataResponse, LoginStats, RangeCounts, StatsOverview
from loxodon.services import stats as stats_service
from loxodon.services.authorization import AccessContext
from loxodon.services.directory import DirectoryClient

router = APIRouter(prefix="/stats")
# login stats are also served under the directory provider's path
entra_router = APIRouter(prefix="/entra-id")


@router.get("/overview", response_model=DataResponse[StatsOverview])
def get_overview(
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_any_permission("users.read", "users.update")),
) -> DataResponse[StatsOverview]:
    """Customer and user counts; scoped to the caller's tenant unless global."""

    settings = get_settings()
    with error_boundary("Failed to fetch stats"):
        result = stats_service.overview(
            session,
            tenant_id=access.scope_tenant(None),
            active_window_seconds=settings.active_now_window_seconds,
        )
        overview = StatsOverview(
            active_customers=result.active_customers,
            total_users=result.total_users,
            new_users=RangeCounts.model_validate(result.new_users),
            deleted_users=RangeCounts.model_validate(result.deleted_users),
            active_now=result.active_now,
        )
    return DataResponse[StatsOverview](data=overview)


@entra_router.get(
    "/login-stats",
    response_model=DataResponse[LoginStats],
    dependencies=[Depends(require_any_permission("logs.read", "audit_logs.read"))],
)
@router.get(
    "/logins",
    response_model=DataResponse[LoginStats],
    dependencies=[Depends(require_any_permission("logs.read", "audit_logs.read"))],
)
def get_login_stats(
    range_name: str | None = Query(default=None, alias="range"),
    directory: DirectoryClient = Depends(get_directory_client),
) -> DataResponse[LoginStats]:
    """Successful and failed directory sign-ins over a named range."""

    if range_name not in LOGIN_STATS_RANGES:
        raise ValidationError(f"range must be one of: {', '.join(LOGIN_STATS_RANGES)}")
    with error_boundary("Failed to fetch login stats"):
        summary = directory.login_stats(range_name)
        stats = LoginStats(
            range=summary.range,
            from_=summary.start,
            to=summary.end,
            success_count=summary.success_count,
            failure_count=summary.failure_count,
        )
    return DataResponse[LoginStats](data=stats)
