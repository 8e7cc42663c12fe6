"""Seed script for a demo customer, its roles and a platform admin."""
from __future__ import annotations

import logging
import os

from sqlalchemy.orm import Session

from loxodon.db.session import SessionLocal, engine
from loxodon.models import Base, Customer, Role, User, UserStatus
from loxodon.services.roles import create_defaults_for_tenant

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_TENANT_ID = "demo-tenant"
DEMO_DOMAIN = "demo.local"
PLATFORM_ADMIN_ROLE = "Platform Admin"


def seed(session: Session, *, admin_oid: str, admin_email: str) -> None:
    """Create the demo customer with default roles and a platform admin user."""

    customer = session.get(Customer, DEMO_TENANT_ID)
    if customer is None:
        customer = Customer(tenant_id=DEMO_TENANT_ID, domain=DEMO_DOMAIN, active=True, auto_sync=False)
        session.add(customer)
        session.flush()
        logger.info("Created customer %s", DEMO_TENANT_ID)
    else:
        logger.info("Customer %s already exists", DEMO_TENANT_ID)

    for role in create_defaults_for_tenant(session, DEMO_TENANT_ID):
        logger.info("Added role %s", role.title)

    admin_role = (
        session.query(Role)
        .filter(Role.tenant_id == DEMO_TENANT_ID, Role.title == PLATFORM_ADMIN_ROLE)
        .one_or_none()
    )
    if admin_role is None:
        admin_role = Role(title=PLATFORM_ADMIN_ROLE, tenant_id=DEMO_TENANT_ID, permissions=[])
        session.add(admin_role)
        session.flush()
        logger.info("Added role %s", PLATFORM_ADMIN_ROLE)

    if session.get(User, admin_oid) is not None:
        logger.info("User %s already exists", admin_email)
        return
    session.add(
        User(
            oid=admin_oid,
            email=admin_email,
            tenant_id=DEMO_TENANT_ID,
            role_id=admin_role.id,
            status=UserStatus.ACTIVE,
        )
    )
    logger.info("Added user %s", admin_email)


def main() -> None:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        seed(
            session,
            admin_oid=os.environ.get("DEMO_ADMIN_OID", "00000000-0000-0000-0000-000000000001"),
            admin_email=os.environ.get("DEMO_ADMIN_EMAIL", f"admin@{DEMO_DOMAIN}"),
        )
        session.commit()


if __name__ == "__main__":
    main()
