from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from loxodon.models import AuditLog, Customer, Role, User
from loxodon.services import customers as customer_service
from loxodon.services.tasks import run_post_commit


def test_delete_customer_cascades_users_and_roles(db_session: Session, seed) -> None:
    seed.customer("T1")
    seed.customer("T2")
    seed.member("alice", "T1", ["users.read"])
    seed.user("bob", "T1")
    seed.member("carol", "T2", ["users.read"])
    db_session.add(AuditLog(tenant_id="T1", user_id="alice", action="users.update", description="x"))
    db_session.commit()

    customer_service.delete_customer(db_session, db_session.get(Customer, "T1"))

    db_session.expire_all()
    assert db_session.get(Customer, "T1") is None
    assert db_session.query(User).filter(User.tenant_id == "T1").count() == 0
    assert db_session.query(Role).filter(Role.tenant_id == "T1").count() == 0
    assert db_session.get(User, "carol") is not None
    assert db_session.query(AuditLog).count() == 1


def test_delete_customer_is_all_or_nothing(db_session: Session, seed, monkeypatch: pytest.MonkeyPatch) -> None:
    seed.customer("T1")
    seed.member("alice", "T1", ["users.read"])
    customer = db_session.get(Customer, "T1")
    original_execute = db_session.execute

    def failing_execute(statement, *args, **kwargs):
        if getattr(getattr(statement, "table", None), "name", None) == "customers":
            raise RuntimeError("connection lost")
        return original_execute(statement, *args, **kwargs)

    monkeypatch.setattr(db_session, "execute", failing_execute)

    with pytest.raises(RuntimeError):
        customer_service.delete_customer(db_session, customer)

    monkeypatch.undo()
    db_session.expire_all()
    assert db_session.get(Customer, "T1") is not None
    assert db_session.get(User, "alice") is not None
    assert db_session.query(Role).filter(Role.tenant_id == "T1").count() == 1


def test_create_customer_rejects_duplicate_tenant(db_session: Session, seed) -> None:
    seed.customer("T1")

    with pytest.raises(customer_service.CustomerExistsError):
        customer_service.create_customer(db_session, domain="t1.example", tenant_id="T1")


def test_provisioning_seeds_roles_and_geolocation(db_session: Session, directory_client, graph) -> None:
    graph.add_user("u1", "u1@acme.com")
    customer = customer_service.create_customer(db_session, domain="acme.com", tenant_id="T1")

    tasks = customer_service.provisioning_tasks(customer, directory=directory_client, geolocation_enabled=True)
    outcomes = run_post_commit(db_session, tasks)

    assert [outcome.succeeded for outcome in outcomes] == [True, True, True]
    roles = {role.title: role.permissions for role in db_session.query(Role).filter(Role.tenant_id == "T1")}
    assert roles == {
        "Site Admin": ["location.read", "location.update"],
        "Viewer": [],
        "Manager": [],
    }
    assert db_session.get(User, "u1").tenant_id == "T1"


def test_disabling_geolocation_prunes_siblings(db_session: Session, seed) -> None:
    seed.customer("T1")
    seed.role("T1", "Site Admin", ["users.read", "location.read", "location.update"])
    manager = seed.role("T1", "Manager", ["users.read", "location.read"])

    run_post_commit(db_session, [customer_service.geolocation_task("T1", enabled=False)])

    db_session.expire_all()
    assert db_session.get(Role, manager.id).permissions == ["users.read"]


def test_update_customer_ignores_null_fields(db_session: Session, seed) -> None:
    customer = seed.customer("T1", "t1.example")

    updated = customer_service.update_customer(
        db_session, customer, changes={"domain": None, "active": False, "auto_sync": True}
    )

    assert updated.domain == "t1.example"
    assert updated.active is False
    assert updated.auto_sync is True
