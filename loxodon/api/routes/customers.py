"""Customer (tenant) endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from loxodon.api.deps import (
    get_db_session,
    get_directory_client,
    require_global_access,
    require_permissions,
)
from loxodon.api.errors import error_boundary
from loxodon.core.errors import ConflictError, NotFoundError
from loxodon.models import Customer
from loxodon.schemas import CustomerCreate, CustomerRead, CustomerUpdate, DataResponse, ListResponse
from loxodon.services import customers as customer_service
from loxodon.services.audit_logs import audit_task
from loxodon.services.authorization import AccessContext
from loxodon.services.directory import DirectoryClient
from loxodon.services.tasks import run_post_commit

router = APIRouter(prefix="/customers")


def _load_customer(session: Session, tenant_id: str) -> Customer:
    customer = customer_service.get_customer(session, tenant_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


@router.get("", response_model=ListResponse[CustomerRead])
def list_customers(
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_permissions("customers.read")),
) -> ListResponse[CustomerRead]:
    """List customers; callers without global access only see their own."""

    with error_boundary("Failed to fetch customers"):
        customers = customer_service.list_customers(session, tenant_id=access.scope_tenant(None))
        data = [CustomerRead.model_validate(customer) for customer in customers]
    return ListResponse[CustomerRead](data=data, count=len(data))


@router.get("/{tenant_id}", response_model=DataResponse[CustomerRead])
def get_customer(
    tenant_id: str,
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_permissions("customers.read")),
) -> DataResponse[CustomerRead]:
    with error_boundary("Failed to fetch customer"):
        access.ensure_tenant_access(tenant_id)
        customer = _load_customer(session, tenant_id)
        return DataResponse[CustomerRead](data=CustomerRead.model_validate(customer))


@router.post("", response_model=DataResponse[CustomerRead], status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: CustomerCreate,
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_global_access),
    directory: DirectoryClient = Depends(get_directory_client),
) -> DataResponse[CustomerRead]:
    """Create a customer, then seed its roles and users on a best-effort basis."""

    with error_boundary("Failed to create customer"):
        try:
            customer = customer_service.create_customer(
                session, domain=payload.domain, tenant_id=payload.tenant_id, auto_sync=payload.auto_sync
            )
        except customer_service.CustomerExistsError as exc:
            raise ConflictError(str(exc)) from exc
        data = CustomerRead.model_validate(customer)

        tasks = customer_service.provisioning_tasks(
            customer, directory=directory, geolocation_enabled=payload.geolocation_enabled
        )
        tasks.append(
            audit_task(
                tenant_id=access.tenant_id,
                user_id=access.oid,
                action="customers.create",
                description=f"Created customer {customer.tenant_id} ({customer.domain})",
            )
        )
        run_post_commit(session, tasks)
    return DataResponse[CustomerRead](data=data)


@router.put("/{tenant_id}", response_model=DataResponse[CustomerRead])
def update_customer(
    tenant_id: str,
    payload: CustomerUpdate,
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_permissions("customers.update")),
) -> DataResponse[CustomerRead]:
    with error_boundary("Failed to update customer"):
        access.ensure_tenant_access(tenant_id)
        customer = _load_customer(session, tenant_id)
        changes = payload.model_dump(exclude_unset=True, exclude={"geolocation_enabled"})
        customer = customer_service.update_customer(session, customer, changes=changes)
        data = CustomerRead.model_validate(customer)

        tasks = []
        if payload.geolocation_enabled is not None:
            tasks.append(customer_service.geolocation_task(tenant_id, enabled=payload.geolocation_enabled))
        tasks.append(
            audit_task(
                tenant_id=access.tenant_id,
                user_id=access.oid,
                action="customers.update",
                description=f"Updated customer {tenant_id}",
            )
        )
        run_post_commit(session, tasks)
    return DataResponse[CustomerRead](data=data)


@router.delete("/{tenant_id}", response_model=DataResponse[CustomerRead])
def delete_customer(
    tenant_id: str,
    session: Session = Depends(get_db_session),
    access: AccessContext = Depends(require_global_access),
) -> DataResponse[CustomerRead]:
    """Delete a customer together with all of its users and roles."""

    with error_boundary("Failed to delete customer"):
        customer = _load_customer(session, tenant_id)
        data = CustomerRead.model_validate(customer)
        actor_tenant = access.tenant_id
        customer_service.delete_customer(session, customer)
        run_post_commit(
            session,
            [
                audit_task(
                    tenant_id=actor_tenant,
                    user_id=access.oid,
                    action="customers.delete",
                    description=f"Deleted customer {tenant_id}",
                )
            ],
        )
    return DataResponse[CustomerRead](data=data)
