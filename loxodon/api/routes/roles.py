"""Role and permission set endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from loxodon.api.deps import get_db_session, parse_id, require_permissions
from loxodon.api.errors import error_boundary
from loxodon.core.errors import NotFoundError, ValidationError
from loxodon.models import Role
from loxodon.schemas import DataResponse, ListResponse, RoleCreate, RoleRead, RoleUpdate
from loxodon.services import customers as customer_service
from loxodon.services import roles as role_service
from loxodon.services.audit_logs import audit_task
from loxodon.services.authorization import AccessContext
from loxodon.services.tasks import run_post_commit

router = APIRouter(prefix="/roles")


def _load_role(session: Session, raw_id: str) -> Role:
    role = role_service.get_role(session, parse_id(raw_id, "Invalid role id"))
    if role is None:
        raise NotFoundError("Role not found")
    return role


@router.get("", response_model=ListResponse[RoleRead])
def list_roles(
    tenant_id: str | None = Query(default=None, alias="tenantId"),
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_permissions("roles.read")),
) -> ListResponse[RoleRead]:
    with error_boundary("Failed to fetch roles"):
        roles = role_service.list_roles(session, tenant_id=access.scope_tenant(tenant_id))
        data = [RoleRead.model_validate(role) for role in roles]
    return ListResponse[RoleRead](data=data, count=len(data))


@router.get("/{role_id}", response_model=DataResponse[RoleRead])
def get_role(
    role_id: str,
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_permissions("roles.read")),
) -> DataResponse[RoleRead]:
    with error_boundary("Failed to fetch role"):
        role = _load_role(session, role_id)
        access.ensure_tenant_access(role.tenant_id)
        return DataResponse[RoleRead](data=RoleRead.model_validate(role))


@router.post("", response_model=DataResponse[RoleRead], status_code=status.HTTP_201_CREATED)
def create_role(
    payload: RoleCreate,
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_permissions("roles.create")),
) -> DataResponse[RoleRead]:
    with error_boundary("Failed to create role"):
        access.ensure_tenant_access(payload.tenant_id)
        access.ensure_can_grant(payload.title, payload.permissions)
        if customer_service.get_customer(session, payload.tenant_id) is None:
            raise NotFoundError("Customer not found")
        role = role_service.create_role(
            session,
            title=payload.title.strip(),
            tenant_id=payload.tenant_id,
            permissions=payload.permissions,
            description=payload.description,
        )
        data = RoleRead.model_validate(role)
        run_post_commit(
            session,
            [
                audit_task(
                    tenant_id=role.tenant_id,
                    user_id=access.oid,
                    action="roles.create",
                    description=f"Created role {role.title}",
                )
            ],
        )
    return DataResponse[RoleRead](data=data)


@router.put("/{role_id}", response_model=DataResponse[RoleRead])
def update_role(
    role_id: str,
    payload: RoleUpdate,
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_permissions("roles.update")),
) -> DataResponse[RoleRead]:
    """Update a role; editing a Site Admin role caps the tenant's other roles."""

    with error_boundary("Failed to update role"):
        role = _load_role(session, role_id)
        access.ensure_tenant_access(role.tenant_id)
        changes = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key == "description"
        }
        if changes.pop("tenant_id", role.tenant_id) != role.tenant_id:
            raise ValidationError("A role cannot move to another customer")
        if "title" in changes:
            changes["title"] = changes["title"].strip()
        access.ensure_can_grant(changes.get("title", role.title), changes.get("permissions", role.permissions))

        result = role_service.update_role(session, role, changes=changes)
        data = RoleRead.model_validate(result.role)
        run_post_commit(
            session,
            [
                audit_task(
                    tenant_id=result.role.tenant_id,
                    user_id=access.oid,
                    action="roles.update",
                    description=f"Updated role {result.role.title}",
                )
            ],
        )
    return DataResponse[RoleRead](data=data)


@router.delete("/{role_id}", response_model=DataResponse[RoleRead])
def delete_role(
    role_id: str,
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_permissions("roles.delete")),
) -> DataResponse[RoleRead]:
    """Delete a role; users holding it are left without a role."""

    with error_boundary("Failed to delete role"):
        role = _load_role(session, role_id)
        access.ensure_tenant_access(role.tenant_id)
        data = RoleRead.model_validate(role)
        role_service.delete_role(session, role)
        run_post_commit(
            session,
            [
                audit_task(
                    tenant_id=data.tenant_id,
                    user_id=access.oid,
                    action="roles.delete",
                    description=f"Deleted role {data.title}",
                )
            ],
        )
    return DataResponse[RoleRead](data=data)
