"""Directory-synced user endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from loxodon.api.deps import (
    get_db_session,
    get_directory_client,
    require_permissions,
    require_self_or_permission,
)
from loxodon.api.errors import error_boundary
from loxodon.core.errors import AuthorizationError, NotFoundError, ValidationError
from loxodon.models import User
from loxodon.schemas import DataResponse, ListResponse, UserActivityRead, UserRead, UserUpdate
from loxodon.services import customers as customer_service
from loxodon.services import roles as role_service
from loxodon.services import users as user_service
from loxodon.services.audit_logs import audit_task
from loxodon.services.authorization import AccessContext
from loxodon.services.directory import DirectoryClient
from loxodon.services.tasks import run_post_commit

router = APIRouter(prefix="/users")


def _load_user(session: Session, oid: str) -> User:
    user = user_service.get_by_oid(session, oid)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _ensure_user_access(access: AccessContext, user: User) -> None:
    if not access.is_self(user.oid):
        access.ensure_tenant_access(user.tenant_id)


@router.get("", response_model=ListResponse[UserRead])
def list_users(
    customer_id: str | None = Query(default=None, alias="customerId"),
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_permissions("users.read")),
    directory: DirectoryClient = Depends(get_directory_client),
) -> ListResponse[UserRead]:
    """Sync the customer's users from the directory, then list them.

    The list reflects whatever is stored, even when the sync fails.
    """

    if not customer_id:
        raise ValidationError("customerId is required")
    with error_boundary("Failed to fetch users"):
        access.ensure_tenant_access(customer_id)
        customer = customer_service.get_customer(session, customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")
        user_service.sync_directory_users(session, directory, customer)
        users = user_service.list_by_tenant(session, customer_id)
        data = [UserRead.model_validate(user) for user in users]
    return ListResponse[UserRead](data=data, count=len(data))


@router.get("/{oid}", response_model=DataResponse[UserRead])
def get_user(
    oid: str,
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_self_or_permission("users.read")),
) -> DataResponse[UserRead]:
    with error_boundary("Failed to fetch user"):
        user = _load_user(session, oid)
        _ensure_user_access(access, user)
        return DataResponse[UserRead](data=UserRead.model_validate(user))


@router.put("/{oid}", response_model=DataResponse[UserRead])
def update_user(
    oid: str,
    payload: UserUpdate,
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_self_or_permission("users.update")),
) -> DataResponse[UserRead]:
    """Update a user. Nobody may change their own role."""

    with error_boundary("Failed to update user"):
        if access.is_self(oid) and "role_id" in payload.model_fields_set:
            raise AuthorizationError("You cannot change your own role")
        user = _load_user(session, oid)
        _ensure_user_access(access, user)

        changes = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key == "role_id"
        }
        role_id = changes.get("role_id")
        if role_id is not None:
            role = role_service.get_role(session, role_id)
            if role is None:
                raise ValidationError("Invalid role")
            if role.tenant_id != user.tenant_id:
                if not access.has_global_access():
                    raise AuthorizationError()
                raise ValidationError("Role belongs to another customer")
            access.ensure_can_grant(role.title, role.permissions)

        user = user_service.update_user(session, user, changes=changes)
        data = UserRead.model_validate(user)
        run_post_commit(
            session,
            [
                audit_task(
                    tenant_id=user.tenant_id,
                    user_id=access.oid,
                    action="users.update",
                    description=f"Updated user {user.email}",
                )
            ],
        )
    return DataResponse[UserRead](data=data)


@router.delete("/{oid}", response_model=DataResponse[UserRead])
def delete_user(
    oid: str,
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_permissions("users.delete")),
) -> DataResponse[UserRead]:
    """Soft-delete a user; the row is kept with ``status=deleted``."""

    with error_boundary("Failed to delete user"):
        user = _load_user(session, oid)
        access.ensure_tenant_access(user.tenant_id)
        user = user_service.soft_delete(session, user)
        data = UserRead.model_validate(user)
        run_post_commit(
            session,
            [
                audit_task(
                    tenant_id=user.tenant_id,
                    user_id=access.oid,
                    action="users.delete",
                    description=f"Deleted user {user.email}",
                )
            ],
        )
    return DataResponse[UserRead](data=data)


@router.put("/{oid}/activity", response_model=DataResponse[UserActivityRead])
def update_activity(
    oid: str,
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_self_or_permission("users.update")),
) -> DataResponse[UserActivityRead]:
    """Record activity; the first call for a user also records a login event."""

    with error_boundary("Failed to update user activity"):
        user = _load_user(session, oid)
        _ensure_user_access(access, user)
        result = user_service.touch_activity(session, user)
        data = UserActivityRead.model_validate(result.user).model_copy(
            update={"first_login_set": result.first_login_set}
        )
        if result.first_login_set:
            run_post_commit(
                session,
                [
                    audit_task(
                        tenant_id=result.user.tenant_id,
                        user_id=result.user.oid,
                        action="auth.login",
                        description=f"User {result.user.email} logged in",
                    )
                ],
            )
    return DataResponse[UserActivityRead](data=data)
