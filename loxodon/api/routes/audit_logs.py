"""Audit trail endpoints, including the CSV export."""
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from loxodon.api.deps import get_db_session, parse_id, require_any_permission
from loxodon.api.errors import error_boundary
from loxodon.core.config import get_settings
from loxodon.core.dates import as_utc
from loxodon.core.errors import AuthorizationError, NotFoundError, ValidationError
from loxodon.schemas import AuditLogCreate, AuditLogRead, DataResponse, PageResponse
from loxodon.services import audit_logs as audit_service
from loxodon.services import users as user_service
from loxodon.services.authorization import AccessContext
from loxodon.services.tasks import run_post_commit

router = APIRouter(prefix="/audit-logs")

READ_PERMISSIONS = ("audit_logs.read", "logs.read")
WRITE_PERMISSIONS = ("audit_logs.write", "logs.write")
EXPORT_PERMISSIONS = ("audit_logs.export", "logs.export")


def _parse_date(raw: str | None, name: str) -> datetime | None:
    if not raw:
        return None
    try:
        return as_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError as exc:
        raise ValidationError(f"Invalid {name}") from exc


def _scope_filters(
    session: Session, access: AccessContext, *, tenant_id: str | None, user_id: str | None
) -> str | None:
    """Resolve the tenant filter and reject a user filter pointing at another tenant."""

    scoped_tenant = access.scope_tenant(tenant_id)
    if user_id and not access.has_global_access():
        target = user_service.get_by_oid(session, user_id)
        if target is not None and target.tenant_id != scoped_tenant:
            raise AuthorizationError()
    return scoped_tenant


@router.get("", response_model=PageResponse[AuditLogRead])
def list_audit_logs(
    page: str | None = None,
    limit: str | None = None,
    user_id: str | None = Query(default=None, alias="userId"),
    tenant_id: str | None = Query(default=None, alias="tenantId"),
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_any_permission(*READ_PERMISSIONS)),
) -> PageResponse[AuditLogRead]:
    """Page through audit entries, newest first."""

    settings = get_settings()
    with error_boundary("Failed to fetch audit logs"):
        scoped_tenant = _scope_filters(session, access, tenant_id=tenant_id, user_id=user_id)
        page_number, page_size = audit_service.normalize_page(
            page, limit, default_limit=settings.default_page_size, max_limit=settings.max_page_size
        )
        result = audit_service.list_audit_logs(
            session, page=page_number, limit=page_size, user_id=user_id, tenant_id=scoped_tenant
        )
        data = [AuditLogRead.model_validate(log) for log in result.items]
        if data:
            run_post_commit(
                session,
                [
                    audit_service.audit_task(
                        tenant_id=scoped_tenant or data[0].tenant_id,
                        user_id=access.oid,
                        action="audit_logs.view",
                        description=f"Viewed audit logs{f' for user {user_id}' if user_id else ''}",
                    )
                ],
            )
    return PageResponse[AuditLogRead](data=data, count=result.total, page=result.page, limit=result.limit)


@router.get("/export", response_class=Response)
def export_audit_logs(
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    user_id: str | None = Query(default=None, alias="userId"),
    tenant_id: str | None = Query(default=None, alias="tenantId"),
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_any_permission(*EXPORT_PERMISSIONS)),
) -> Response:
    """Download matching audit entries as CSV."""

    start = _parse_date(start_date, "startDate")
    end = _parse_date(end_date, "endDate")
    with error_boundary("Failed to export audit logs"):
        scoped_tenant = _scope_filters(session, access, tenant_id=tenant_id, user_id=user_id)
        logs = audit_service.list_by_date_range(
            session, start=start, end=end, user_id=user_id, tenant_id=scoped_tenant
        )
        csv_body = audit_service.render_csv(logs)
        if logs:
            first_tenant = logs[0].tenant_id
            run_post_commit(
                session,
                [
                    audit_service.audit_task(
                        tenant_id=scoped_tenant or first_tenant,
                        user_id=access.oid,
                        action="audit_logs.export",
                        description=f"Exported audit logs{f' for user {user_id}' if user_id else ''}",
                    )
                ],
            )
    return Response(
        content=csv_body,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="audit-logs.csv"'},
    )


@router.get("/{log_id}", response_model=DataResponse[AuditLogRead])
def get_audit_log(
    log_id: str,
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_any_permission(*READ_PERMISSIONS)),
) -> DataResponse[AuditLogRead]:
    with error_boundary("Failed to fetch audit log"):
        log = audit_service.get_audit_log(session, parse_id(log_id, "Invalid audit log id"))
        if log is None:
            raise NotFoundError("Audit log not found")
        access.ensure_tenant_access(log.tenant_id)
        return DataResponse[AuditLogRead](data=AuditLogRead.model_validate(log))


@router.post("", response_model=DataResponse[AuditLogRead], status_code=status.HTTP_201_CREATED)
def create_audit_log(
    payload: AuditLogCreate,
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_any_permission(*WRITE_PERMISSIONS)),
) -> DataResponse[AuditLogRead]:
    with error_boundary("Failed to create audit log"):
        access.ensure_tenant_access(payload.tenant_id)
        log = audit_service.create_audit_log(
            session,
            tenant_id=payload.tenant_id,
            user_id=payload.user_id,
            action=payload.action,
            description=payload.description,
        )
        session.commit()
        session.refresh(log)
        return DataResponse[AuditLogRead](data=AuditLogRead.model_validate(log))
