"""Customer lifecycle: creation with derived state, updates and cascade deletion."""
from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from loxodon.db.session import atomic
from loxodon.models import Customer, Role, User
from loxodon.services.directory import DirectoryClient
from loxodon.services.roles import (
    GEOLOCATION_PERMISSIONS,
    create_defaults_for_tenant,
    prune_to_site_admin,
    set_site_admin_permissions,
)
from loxodon.services.tasks import PostCommitTask
from loxodon.services.users import sync_directory_users

logger = logging.getLogger(__name__)


class CustomerError(RuntimeError):
    """Base exception for customer service errors."""


class CustomerExistsError(CustomerError):
    """Raised when a customer with the same tenant id is already registered."""


def list_customers(session: Session, *, tenant_id: str | None = None) -> list[Customer]:
    statement = select(Customer)
    if tenant_id is not None:
        statement = statement.where(Customer.tenant_id == tenant_id)
    return list(session.scalars(statement.order_by(Customer.created_at.desc(), Customer.tenant_id)).all())


def get_customer(session: Session, tenant_id: str) -> Customer | None:
    return session.get(Customer, tenant_id)


def create_customer(session: Session, *, domain: str, tenant_id: str, auto_sync: bool = False) -> Customer:
    if session.get(Customer, tenant_id) is not None:
        raise CustomerExistsError(f"Customer '{tenant_id}' already exists")
    customer = Customer(domain=domain.strip(), tenant_id=tenant_id, auto_sync=auto_sync, active=True)
    session.add(customer)
    session.commit()
    session.refresh(customer)
    return customer


def provisioning_tasks(
    customer: Customer,
    *,
    directory: DirectoryClient,
    geolocation_enabled: bool | None = None,
) -> list[PostCommitTask]:
    """Follow-up work for a freshly created customer, in execution order."""

    tenant_id = customer.tenant_id

    def _seed_roles(session: Session) -> None:
        create_defaults_for_tenant(session, tenant_id)

    def _grant_geolocation(session: Session) -> None:
        set_site_admin_permissions(session, tenant_id, GEOLOCATION_PERMISSIONS, enabled=True)

    def _sync_users(session: Session) -> None:
        current = session.get(Customer, tenant_id)
        if current is not None:
            sync_directory_users(session, directory, current)

    tasks = [PostCommitTask(name="customers.seed_roles", run=_seed_roles)]
    if geolocation_enabled:
        tasks.append(PostCommitTask(name="customers.grant_geolocation", run=_grant_geolocation))
    tasks.append(PostCommitTask(name="customers.sync_users", run=_sync_users))
    return tasks


def update_customer(session: Session, customer: Customer, *, changes: dict[str, object]) -> Customer:
    for field_name in ("domain", "active", "auto_sync"):
        if field_name in changes and changes[field_name] is not None:
            setattr(customer, field_name, changes[field_name])
    session.commit()
    session.refresh(customer)
    return customer


def geolocation_task(tenant_id: str, *, enabled: bool) -> PostCommitTask:
    """Toggle location permissions on the tenant's Site Admin role.

    Disabling also removes them from the other roles, since the Site Admin
    permission list caps its siblings.
    """

    def _run(session: Session) -> None:
        site_admin = set_site_admin_permissions(session, tenant_id, GEOLOCATION_PERMISSIONS, enabled=enabled)
        if site_admin is not None and not enabled:
            prune_to_site_admin(session, site_admin)

    return PostCommitTask(name="customers.toggle_geolocation", run=_run)


def delete_customer(session: Session, customer: Customer) -> None:
    """Delete the customer with all of its users and roles in one transaction."""

    tenant_id = customer.tenant_id
    options = {"synchronize_session": False}
    with atomic(session):
        session.execute(delete(User).where(User.tenant_id == tenant_id), execution_options=options)
        session.execute(delete(Role).where(Role.tenant_id == tenant_id), execution_options=options)
        session.execute(delete(Customer).where(Customer.tenant_id == tenant_id), execution_options=options)
    logger.info("deleted customer %s", tenant_id)


__all__ = [
    "CustomerError",
    "CustomerExistsError",
    "create_customer",
    "delete_customer",
    "geolocation_task",
    "get_customer",
    "list_customers",
    "provisioning_tasks",
    "update_customer",
]
