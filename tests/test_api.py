"""HTTP-level tests for auth, admin and workflow routes."""
import csv
import io

from civicdesk.api.deps import get_delegation_gate, get_override_store
from civicdesk.main import app
from civicdesk.models.audit_log import AuditLog
from civicdesk.models.user import User
from civicdesk.services.audit_service import MASK, AuditTrail, audit_trail
from civicdesk.services.override_store import PermissionOverrideStore


# ---- Auth ----

def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_login_returns_token_and_audits(client, db, make_user):
    make_user("captain", email="chair@civicdesk.test")

    resp = client.post("/api/auth/login", json={"email": "chair@civicdesk.test", "password": "secret123"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "barangay_chairperson"
    assert db.query(AuditLog).filter_by(action="user.login").count() == 1


def test_login_rejects_bad_password(client, admin_user):
    resp = client.post("/api/auth/login", json={"email": admin_user.email, "password": "wrong-one"})
    assert resp.status_code == 401


def test_me_reports_effective_permissions(client, staff_user, headers_for):
    resp = client.get("/api/auth/me", headers=headers_for(staff_user))

    assert resp.status_code == 200
    data = resp.json()
    assert data["role"] == "staff_user"
    assert data["role_label"] == "Staff User"
    assert data["panel"] == "staff"
    assert "blotter.create" in data["permissions"]
    assert data["delegation_enabled"] is False


def test_me_admin_panel(client, admin_user, headers_for):
    assert client.get("/api/auth/me", headers=headers_for(admin_user)).json()["panel"] == "admin"


def test_requests_without_token_are_unauthenticated(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/admin/role-permissions").status_code == 401
    assert client.post("/api/workflow/blotters/1/approve").status_code == 401


def test_deactivated_user_token_is_rejected(client, make_user, headers_for):
    user = make_user("encoder", is_active=False)
    assert client.get("/api/auth/me", headers=headers_for(user)).status_code == 401


# ---- Role permissions ----

def test_staff_gets_generic_forbidden(client, staff_user, headers_for):
    resp = client.get("/api/admin/role-permissions", headers=headers_for(staff_user))
    assert resp.status_code == 403
    assert resp.json() == {"detail": "Insufficient permission"}


def test_list_role_permissions(client, admin_user, headers_for, catalog):
    resp = client.get("/api/admin/role-permissions?role=encoder", headers=headers_for(admin_user))

    assert resp.status_code == 200
    data = resp.json()
    assert data["roles"] == list(catalog.roles())
    assert data["selected_role"] == "encoder"
    assert data["catalog_version"] == catalog.version
    assert data["role_permissions"]["encoder"] == list(catalog.defaults_for("encoder"))


def test_update_role_permissions(client, db, admin_user, headers_for):
    headers = headers_for(admin_user)

    resp = client.put("/api/admin/role-permissions/encoder",
                      json={"permissions": ["residents.view", "audit.view"]}, headers=headers)

    assert resp.status_code == 200
    assert resp.json() == {"role": "encoder", "permissions": ["residents.view", "audit.view"]}
    listed = client.get("/api/admin/role-permissions", headers=headers).json()
    assert listed["role_permissions"]["encoder"] == ["residents.view", "audit.view"]

    entry = db.query(AuditLog).filter_by(action="role.permissions.update").one()
    assert entry.actor_id == admin_user.id
    assert entry.ip_address == "testclient"


def test_override_takes_effect_on_next_request(client, admin_user, make_user, headers_for):
    encoder = make_user("encoder")
    client.put("/api/admin/role-permissions/encoder",
               json={"permissions": ["audit.view"]}, headers=headers_for(admin_user))

    assert client.get("/api/admin/audit", headers=headers_for(encoder)).status_code == 200


def test_invalid_permissions_are_itemized(client, db, admin_user, headers_for):
    resp = client.put("/api/admin/role-permissions/encoder",
                      json={"permissions": ["residents.view", "residents.obliterate"]},
                      headers=headers_for(admin_user))

    assert resp.status_code == 422
    assert resp.json() == {
        "detail": "Invalid permissions provided.",
        "invalid_permissions": ["residents.obliterate"],
    }
    assert db.query(AuditLog).count() == 0


def test_unknown_role_is_not_found(client, admin_user, headers_for):
    headers = headers_for(admin_user)
    assert client.put("/api/admin/role-permissions/janitor",
                      json={"permissions": []}, headers=headers).status_code == 404
    assert client.post("/api/admin/role-permissions/janitor/reset", headers=headers).status_code == 404


def test_reset_role_and_reset_all(client, db, admin_user, headers_for, catalog):
    headers = headers_for(admin_user)
    client.put("/api/admin/role-permissions/encoder", json={"permissions": []}, headers=headers)

    resp = client.post("/api/admin/role-permissions/encoder/reset", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["permissions"] == list(catalog.defaults_for("encoder"))

    resp = client.post("/api/admin/role-permissions/reset-all", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["detail"] == {"roles": list(catalog.roles())}
    assert db.query(AuditLog).filter_by(action="role.permissions.reset_all").count() == 1


def test_audit_failure_rolls_back_and_returns_500(client, db, catalog, admin_user, headers_for):
    class BrokenAuditTrail(AuditTrail):
        @staticmethod
        def record(db, actor, action, target_type, target_id=None, **kwargs):
            return AuditTrail.record(db, actor, action, None, target_id, **kwargs)

    app.dependency_overrides[get_override_store] = lambda: PermissionOverrideStore(
        db, catalog, audit=BrokenAuditTrail()
    )

    resp = client.put("/api/admin/role-permissions/encoder",
                      json={"permissions": ["dashboard.view"]}, headers=headers_for(admin_user))

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal server error"}
    assert not PermissionOverrideStore(db, catalog).has_override("encoder")


# ---- Access matrix ----

def test_access_matrix(client, admin_user, headers_for, catalog):
    headers = headers_for(admin_user)
    client.put("/api/admin/role-permissions/encoder", json={"permissions": ["dashboard.view"]}, headers=headers)

    data = client.get("/api/admin/access-matrix", headers=headers).json()

    assert data["all_permissions"] == list(catalog.all_permissions())
    encoder = next(row for row in data["matrix"] if row["role"] == "encoder")
    assert encoder["effective_permissions"] == ["dashboard.view"]
    assert "residents.create" in encoder["removed_permissions"]


def test_access_matrix_export(client, admin_user, headers_for):
    resp = client.get("/api/admin/access-matrix/export", headers=headers_for(admin_user))

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert 'attachment; filename="access-matrix-' in resp.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(resp.text)))
    assert rows[0][0] == "Role"


# ---- Delegation ----

def test_delegation_toggle_controls_staff_approval(client, db, admin_user, staff_user, headers_for):
    admin_headers = headers_for(admin_user)
    staff_headers = headers_for(staff_user)

    assert client.post("/api/workflow/blotters/7/approve", headers=staff_headers).status_code == 403
    assert client.get("/api/admin/delegation", headers=admin_headers).json()["staff_can_approve"] is False

    resp = client.patch("/api/admin/delegation/toggle", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["detail"] == {"staff_can_approve": True}

    resp = client.post("/api/workflow/blotters/7/approve", headers=staff_headers)
    assert resp.status_code == 200
    assert resp.json() == {
        "target_type": "blotter",
        "target_id": 7,
        "permission": "blotter.approve",
        "allowed": True,
        "delegated": True,
    }
    # delegation never reaches the admin surface
    assert client.patch("/api/admin/delegation/toggle", headers=staff_headers).status_code == 403

    client.patch("/api/admin/delegation/toggle", headers=admin_headers)
    assert client.post("/api/workflow/certificates/3/approve", headers=staff_headers).status_code == 403
    assert db.query(AuditLog).filter_by(action="delegation.toggle").count() == 2


def test_chairperson_approves_without_delegation(client, make_user, headers_for):
    chair = make_user("barangay_chairperson")
    resp = client.post("/api/workflow/certificates/3/approve", headers=headers_for(chair))
    assert resp.status_code == 200
    assert resp.json()["delegated"] is False


class FakeGate:
    def is_enabled(self):
        return True


def test_delegation_gate_can_be_swapped(client, staff_user, headers_for):
    app.dependency_overrides[get_delegation_gate] = lambda: FakeGate()

    resp = client.post("/api/workflow/certificates/5/approve", headers=headers_for(staff_user))

    assert resp.status_code == 200
    assert resp.json()["delegated"] is True


# ---- Audit ----

def test_audit_list_masks_snapshots(client, db, admin_user, headers_for):
    audit_trail.record(db, admin_user, "user.update", "user", admin_user.id,
                       before={"password": "old-pass"}, after={"password": "new-pass", "role": "encoder"})
    db.commit()

    resp = client.get("/api/admin/audit?action=user.update", headers=headers_for(admin_user))

    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 1
    log = data["logs"][0]
    assert log["before"] == {"password": MASK}
    assert log["after"] == {"password": MASK, "role": "encoder"}
    assert log["action_label"] == "Updated User"
    assert "user.update" in data["available_actions"]


def test_audit_export(client, db, admin_user, headers_for):
    headers = headers_for(admin_user)
    client.patch("/api/admin/delegation/toggle", headers=headers)

    resp = client.get("/api/admin/audit/export?module=delegation", headers=headers)

    assert resp.status_code == 200
    assert 'filename="audit-logs-' in resp.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(resp.text)))
    assert len(rows) == 2
    assert rows[1][3] == "Toggled Delegation"
    assert rows[1][4] == "Delegation Setting"


def test_audit_requires_permission(client, staff_user, headers_for):
    assert client.get("/api/admin/audit", headers=headers_for(staff_user)).status_code == 403


# ---- Users ----

def test_update_user_role_is_canonicalized_and_audited(client, db, admin_user, make_user, headers_for):
    target = make_user("encoder")

    resp = client.put(f"/api/admin/users/{target.id}", json={"role": "captain"}, headers=headers_for(admin_user))

    assert resp.status_code == 200
    assert resp.json()["role"] == "barangay_chairperson"
    db.expire_all()
    assert db.get(User, target.id).role == "barangay_chairperson"
    entry = db.query(AuditLog).filter_by(action="user.update").one()
    assert '"encoder"' in entry.before_json
    assert '"barangay_chairperson"' in entry.after_json


def test_update_user_unknown_role_or_user(client, admin_user, make_user, headers_for):
    headers = headers_for(admin_user)
    target = make_user("encoder")
    assert client.put(f"/api/admin/users/{target.id}", json={"role": "janitor"}, headers=headers).status_code == 404
    assert client.put("/api/admin/users/9999", json={"full_name": "Nobody"}, headers=headers).status_code == 404


def test_role_change_applies_to_existing_token(client, db, admin_user, make_user, headers_for):
    target = make_user("encoder")
    target_headers = headers_for(target)
    assert client.get("/api/admin/audit", headers=target_headers).status_code == 403

    client.put(f"/api/admin/users/{target.id}", json={"role": "external_auditor"}, headers=headers_for(admin_user))

    assert client.get("/api/admin/audit", headers=target_headers).status_code == 200


def test_list_users(client, admin_user, staff_user, headers_for):
    data = client.get("/api/admin/users", headers=headers_for(admin_user)).json()
    assert data["total"] == 2
    assert {u["email"] for u in data["users"]} == {admin_user.email, staff_user.email}
