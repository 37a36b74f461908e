"""Tests for the audit trail."""
from unittest.mock import patch

from fastapi import status
from sqlalchemy.exc import OperationalError

from erms.audit.service import AuditService, client_info
from erms.models import AuditActionType, AuditLog, AuditStatus


class FakeRequest:
    def __init__(self, headers, host="10.0.0.5"):
        self.headers = headers
        self.client = type("Client", (), {"host": host})()


class TestAuditService:
    def test_record(self, db_session, teacher):
        entry = AuditService(db_session).record(
            "Created class", AuditActionType.create, user=teacher.user,
            resource_type="class", resource_id=42, metadata={"code": "ABC123"},
        )

        assert entry.user_name == "Maria Santos"
        assert entry.user_role == "teacher"
        assert entry.resource_id == "42"
        assert entry.extra == {"code": "ABC123"}
        assert db_session.query(AuditLog).count() == 1

    def test_failure_does_not_raise(self, db_session):
        service = AuditService(db_session)

        with patch.object(db_session, "commit", side_effect=OperationalError("INSERT", {}, Exception("locked"))):
            assert service.record("Login", AuditActionType.login) is None

        assert db_session.query(AuditLog).count() == 0

    def test_client_info_prefers_forwarded_header(self):
        request = FakeRequest({"x-forwarded-for": "203.0.113.7, 10.0.0.1", "user-agent": "pytest"})
        assert client_info(request) == ("203.0.113.7", "pytest")

    def test_client_info_falls_back(self):
        assert client_info(FakeRequest({"x-real-ip": "198.51.100.2"})) == ("198.51.100.2", None)
        assert client_info(FakeRequest({})) == ("10.0.0.5", None)
        assert client_info(None) == (None, None)

    def test_long_user_agent_is_truncated(self):
        _, agent = client_info(FakeRequest({"user-agent": "x" * 400}))
        assert len(agent) == 255


class TestAuditEndpoints:
    def test_client_events_use_caller_identity(self, client, student, student_headers):
        response = client.post(
            "/audit-logs",
            json={"action": "Opened quiz", "action_type": "access", "details": "Chapter 1 Quiz"},
            headers={**student_headers, "X-Forwarded-For": "203.0.113.9"},
        )

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["user_id"] == student.user_id
        assert body["user_name"] == "Juan Dela Cruz"
        assert body["ip_address"] == "203.0.113.9"

    def test_admin_lists_and_filters(self, client, db_session, admin_headers):
        service = AuditService(db_session)
        service.record("Login", AuditActionType.login)
        service.record("Login", AuditActionType.login, status=AuditStatus.failure)
        service.record("Deleted class", AuditActionType.delete)

        assert len(client.get("/admin/audit-logs", headers=admin_headers).json()) == 3

        failures = client.get("/admin/audit-logs", params={"status": "failure"}, headers=admin_headers).json()
        assert [(e["action"], e["status"]) for e in failures] == [("Login", "failure")]

        deletes = client.get(
            "/admin/audit-logs", params={"action_type": "delete"}, headers=admin_headers
        ).json()
        assert [e["action"] for e in deletes] == ["Deleted class"]

    def test_only_admins_list(self, client, teacher_headers):
        response = client.get("/admin/audit-logs", headers=teacher_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_requires_login(self, client):
        response = client.post("/audit-logs", json={"action": "x", "action_type": "access"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
