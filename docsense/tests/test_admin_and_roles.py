import pytest

from conftest import make_admin, make_document, make_user
from docsense.core.errors import Conflict, InvalidState, NotFound, ValidationFailed
from docsense.core.roles import ADMIN_ROLE, DEFAULT_ROLE
from docsense.db.init_db import ensure_superuser_exists, seed_data
from docsense.models import DownloadRequest, Role, User
from docsense.schemas.role import RoleCreate, RoleUpdate
from docsense.services import admin_service, role_service
from docsense.services import download_request_service as ledger


def test_approve_and_reject_pending_users(db):
    admin = make_admin(db)
    alice = make_user(db, "alice", approved=False)
    bob = make_user(db, "bob", approved=False)

    assert {u.id for u in admin_service.list_pending_users(db)} == {alice.id, bob.id}
    assert admin_service.approve_user(db, alice.id, admin).is_approved
    assert admin_service.reject_user(db, bob.id, admin).is_rejected

    with pytest.raises(InvalidState):
        admin_service.approve_user(db, alice.id, admin)
    with pytest.raises(InvalidState):
        admin_service.approve_user(db, bob.id, admin)
    with pytest.raises(InvalidState):
        admin_service.reject_user(db, alice.id, admin)

    stats = admin_service.list_users(db)["stats"]
    assert stats == {"total": 3, "approved": 2, "pending": 0, "rejected": 1, "superusers": 1}


def test_toggle_approval_clears_rejection(db):
    admin = make_admin(db)
    bob = make_user(db, "bob", approved=False)
    admin_service.reject_user(db, bob.id, admin)
    toggled = admin_service.toggle_approval(db, bob.id, admin)
    assert toggled.is_approved and not toggled.is_rejected


def test_admin_cannot_change_own_role(db):
    admin = make_admin(db)
    with pytest.raises(InvalidState) as exc:
        admin_service.update_user_role(db, admin.id, DEFAULT_ROLE, admin)
    assert exc.value.detail == "Cannot change your own role"
    assert db.query(User).filter(User.id == admin.id).one().role == ADMIN_ROLE


def test_role_change_requires_active_role(db):
    admin = make_admin(db)
    user = make_user(db, "reader")
    with pytest.raises(ValidationFailed):
        admin_service.update_user_role(db, user.id, "ghost", admin)
    assert admin_service.update_user_role(db, user.id, "superuser", admin).role == ADMIN_ROLE


def test_delete_user_protections(db):
    admin = make_admin(db)
    with pytest.raises(InvalidState) as exc:
        admin_service.delete_user(db, admin.id, admin)
    assert exc.value.detail == "Cannot delete your own account"

    other_admin = make_admin(db, "root2")
    admin_service.delete_user(db, other_admin.id, admin)
    with pytest.raises(NotFound):
        admin_service.get_user(db, other_admin.id)


def test_last_superuser_cannot_be_deleted(db):
    admin = make_admin(db)
    other = make_user(db, "operator")
    with pytest.raises(InvalidState) as exc:
        admin_service.delete_user(db, admin.id, other)
    assert exc.value.detail == "Cannot delete the last superuser account"


def test_delete_user_removes_their_requests(db, upload_dir):
    admin = make_admin(db)
    owner = make_user(db, "owner")
    reader = make_user(db, "reader")
    document = make_document(db, owner, upload_dir)
    ledger.create_request(db, document.id, reader.id, "audit")

    admin_service.delete_user(db, reader.id, admin)
    assert db.query(DownloadRequest).count() == 0


def test_role_counts_are_derived(db):
    make_admin(db)
    make_user(db, "alice")
    make_user(db, "bob")
    roles = {r["name"]: r for r in role_service.list_roles(db)}
    assert roles[ADMIN_ROLE]["user_count"] == 1
    assert roles[DEFAULT_ROLE]["user_count"] == 2
    assert not roles[DEFAULT_ROLE]["can_be_deleted"]


def test_role_lifecycle(db):
    role = role_service.create_role(db, RoleCreate(name="auditor", display_name="Auditor", permissions=["read"]))
    assert role.name == "AUDITOR"
    with pytest.raises(Conflict):
        role_service.create_role(db, RoleCreate(name="Auditor", display_name="Dup"))

    updated = role_service.update_role(db, role.id, RoleUpdate(display_name="Auditors", is_active=False))
    assert updated.display_name == "Auditors"
    assert [r["name"] for r in role_service.list_roles(db, active_only=True)] == [ADMIN_ROLE, DEFAULT_ROLE]

    role_service.delete_role(db, role.id)
    assert db.query(Role).filter(Role.name == "AUDITOR").first() is None


def test_roles_in_use_or_system_cannot_be_deleted(db):
    role = role_service.create_role(db, RoleCreate(name="auditor", display_name="Auditor"))
    make_user(db, "alice", role="AUDITOR")
    with pytest.raises(InvalidState):
        role_service.delete_role(db, role.id)

    system = db.query(Role).filter(Role.name == DEFAULT_ROLE).one()
    with pytest.raises(InvalidState):
        role_service.delete_role(db, system.id)
    with pytest.raises(InvalidState):
        role_service.update_role(db, system.id, RoleUpdate(is_active=False))


def test_seed_is_idempotent(db):
    seed_data(db)
    seed_data(db)
    assert db.query(Role).filter(Role.is_system.is_(True)).count() == 2
    superusers = db.query(User).filter(User.role == ADMIN_ROLE).all()
    assert len(superusers) == 1
    assert superusers[0].is_approved
    assert ensure_superuser_exists(db).id == superusers[0].id
